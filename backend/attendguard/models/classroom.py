"""Class (course section) model and its enrollment roster."""
from attendguard import db
from attendguard.models.base import BaseModel

enrollments = db.Table(
    'enrollments',
    db.Column('class_id', db.Integer, db.ForeignKey('classes.id', ondelete='CASCADE'), primary_key=True),
    db.Column('student_id', db.Integer, db.ForeignKey('users.id'), primary_key=True)
)

class Classroom(BaseModel):
    """A class taught by one teacher to a roster of students."""
    
    __tablename__ = 'classes'
    
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(20), unique=True, nullable=False, index=True)
    department = db.Column(db.String(100), nullable=True)
    semester = db.Column(db.Integer, nullable=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    
    # Relationships
    teacher = db.relationship('User', foreign_keys=[teacher_id])
    students = db.relationship('User', secondary=enrollments, lazy='select',
                               order_by='User.name')
    sessions = db.relationship('ClassSession', backref='classroom', lazy='dynamic',
                               cascade='all, delete-orphan')
    
    def is_owned_by(self, user) -> bool:
        """Teacher of record, or any admin."""
        return user.is_admin() or self.teacher_id == user.id
    
    def is_enrolled(self, student_id: int) -> bool:
        """Roster membership, checked without loading the whole roster."""
        row = db.session.execute(
            db.select(enrollments.c.student_id).where(
                enrollments.c.class_id == self.id,
                enrollments.c.student_id == student_id
            )
        ).first()
        return row is not None
    
    def summary(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'code': self.code
        }
    
    def __repr__(self):
        return f'<Classroom {self.code}>'
