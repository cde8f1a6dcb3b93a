"""Database seeding service for demo data."""
from attendguard import db
from attendguard.models.classroom import Classroom
from attendguard.models.user import User, UserRole

DEMO_PASSWORD = 'password123'

class SeedService:
    """Service to seed database with a demo class."""
    
    @staticmethod
    def seed_all(student_count: int = 5) -> Classroom:
        """Seed a teacher, students and one class with them enrolled."""
        teacher = SeedService.get_or_create_user(
            'teacher@attendguard.dev', 'Demo Teacher', UserRole.TEACHER
        )
        students = [
            SeedService.get_or_create_user(
                f'student{i}@attendguard.dev', f'Demo Student {i}',
                UserRole.STUDENT, roll_no=f'R{i:03d}'
            )
            for i in range(1, student_count + 1)
        ]
        
        classroom = Classroom.query.filter_by(code='DEMO101').first()
        if not classroom:
            classroom = Classroom(
                name='Demo Class',
                code='DEMO101',
                department='CS',
                semester=1,
                teacher_id=teacher.id
            )
            db.session.add(classroom)
        
        for student in students:
            if student not in classroom.students:
                classroom.students.append(student)
        
        db.session.commit()
        return classroom
    
    @staticmethod
    def get_or_create_user(email: str, name: str, role: UserRole, roll_no: str = None) -> User:
        user = User.query.filter_by(email=email).first()
        if user:
            return user
        
        user = User(email=email, name=name, role=role, roll_no=roll_no)
        user.set_password(DEMO_PASSWORD)
        db.session.add(user)
        db.session.flush()
        return user
