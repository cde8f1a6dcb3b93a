"""Attendance ledger: the only place attendance rows are written."""
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import pandas as pd
from flask import current_app
from sqlalchemy.exc import IntegrityError

from attendguard import db
from attendguard.models.attendance import (
    Attendance, AttendanceStatus, DeviceClaim, MANUAL_STATUSES, VerificationMethod
)
from attendguard.models.class_session import ClassSession
from attendguard.models.classroom import Classroom
from attendguard.services.session_service import SessionService
from attendguard.utils.exceptions import (
    AttendanceError, AuthorizationError, ConflictError, NotFoundError,
    PolicyViolation, ValidationError
)
from attendguard.utils.helpers import isoformat, utcnow

class AttendanceLedger:
    """Uniqueness-enforced store of per-(session, student) attendance."""
    
    @staticmethod
    def parse_status(value) -> AttendanceStatus:
        if isinstance(value, AttendanceStatus):
            status = value
        else:
            try:
                status = AttendanceStatus(value)
            except ValueError:
                status = None
        
        if status not in MANUAL_STATUSES:
            valid = ', '.join(s.value for s in MANUAL_STATUSES)
            raise ValidationError(f"Status must be one of: {valid}")
        return status
    
    # =================== WRITES ===================
    
    @staticmethod
    def mark_by_scan(
        decision,
        student_id: int,
        device_id: Optional[str] = None,
        position: Optional[Dict[str, float]] = None
    ) -> Attendance:
        """Insert the row for an accepted scan.
        
        The insert is the uniqueness check: of any number of concurrent scans
        for the same student and session exactly one commits, and the others
        get the same ConflictError a sequential duplicate would.
        """
        session = decision.session
        attendance = Attendance(
            session_id=session.id,
            student_id=student_id,
            class_id=session.class_id,
            status=decision.status,
            verification_method=VerificationMethod.SCAN,
            device_id=device_id,
            latitude=position['latitude'] if position else None,
            longitude=position['longitude'] if position else None,
            date=utcnow()
        )
        db.session.add(attendance)
        
        if session.device_lock_enabled and device_id:
            db.session.add(DeviceClaim(
                session_id=session.id,
                device_id=device_id,
                student_id=student_id
            ))
        
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise AttendanceLedger._scan_race_error(session.id, student_id, device_id)
        
        return attendance
    
    @staticmethod
    def _scan_race_error(session_id: int, student_id: int, device_id: Optional[str]) -> AttendanceError:
        """Explain a uniqueness violation raised by a concurrent scan."""
        existing = Attendance.find(session_id, student_id)
        if existing:
            current_app.logger.info(
                f"Duplicate scan race lost by student {student_id} on session {session_id}"
            )
            return ConflictError(
                f"Attendance already marked as {existing.status.value}",
                current_status=existing.status.value
            )
        
        claim = DeviceClaim.find(session_id, device_id) if device_id else None
        if claim and claim.student_id != student_id:
            current_app.logger.warning(
                f"Device {device_id} race on session {session_id}: "
                f"claimed by student {claim.student_id}, lost by {student_id}"
            )
            return PolicyViolation(
                "Device already used to mark attendance for another student in this session",
                code=PolicyViolation.DEVICE_LOCK
            )
        
        return ConflictError("Attendance could not be recorded, please try again")
    
    @staticmethod
    def mark_manually(session_id: int, student_id: int, status, requester) -> Attendance:
        """Create or overwrite a student's attendance. Bypasses the scan policy."""
        status = AttendanceLedger.parse_status(status)
        session = SessionService.get_owned(session_id, requester)
        
        classroom = Classroom.get_by_id(session.class_id)
        if not classroom:
            raise NotFoundError("Class not found")
        if not classroom.is_enrolled(student_id):
            raise ValidationError("Student is not enrolled in this class")
        
        attendance = Attendance.find(session.id, student_id)
        if attendance is None:
            attendance = Attendance(
                session_id=session.id,
                student_id=student_id,
                class_id=session.class_id,
                status=status,
                verification_method=VerificationMethod.MANUAL,
                date=session.start_time
            )
            db.session.add(attendance)
            try:
                db.session.commit()
                return attendance
            except IntegrityError:
                # A scan landed first; overwrite it like any other correction
                db.session.rollback()
                attendance = Attendance.find(session.id, student_id)
                if attendance is None:
                    raise ConflictError("Attendance could not be recorded, please try again")
        
        attendance.status = status
        attendance.verification_method = VerificationMethod.MANUAL
        attendance.set_date(session.start_time)
        db.session.commit()
        
        current_app.logger.info(
            f"Attendance for student {student_id} on session {session.id} "
            f"set to {status.value} by user {requester.id}"
        )
        return attendance
    
    @staticmethod
    def approve(session_id: int, student_ids: Iterable[int], requester) -> int:
        """Move listed Pending students to Present. Returns how many changed."""
        session = SessionService.get_owned(session_id, requester)
        student_ids = list(student_ids)
        if not student_ids:
            return 0
        
        now = utcnow()
        count = Attendance.query.filter(
            Attendance.session_id == session.id,
            Attendance.student_id.in_(student_ids),
            Attendance.status == AttendanceStatus.PENDING
        ).update({
            Attendance.status: AttendanceStatus.PRESENT,
            Attendance.approved_by: requester.id,
            Attendance.approved_at: now,
            Attendance.updated_at: now
        }, synchronize_session=False)
        db.session.commit()
        
        current_app.logger.info(
            f"Approved {count} pending attendance record(s) on session {session.id}"
        )
        return count
    
    # =================== QUERIES ===================
    
    @staticmethod
    def roster_for_session(session_id: int, requester) -> Dict:
        """Every enrolled student with their status, Absent when unmarked."""
        session = SessionService.get(session_id)
        classroom = Classroom.get_by_id(session.class_id)
        if not classroom:
            raise NotFoundError("Class not found")
        
        if not (classroom.is_owned_by(requester) or classroom.is_enrolled(requester.id)):
            raise AuthorizationError("You do not have access to this session")
        
        records = {
            record.student_id: record
            for record in Attendance.query.filter_by(session_id=session.id).all()
        }
        
        roster = []
        for student in classroom.students:
            record = records.get(student.id)
            roster.append({
                'student': student.summary(),
                'status': record.status.value if record else AttendanceStatus.ABSENT.value,
                'verification_method': record.verification_method.value if record else None,
                'marked_at': isoformat(record.created_at) if record else None,
                'attendance_id': record.id if record else None
            })
        
        stats = {'total': len(roster)}
        for status in AttendanceStatus:
            stats[status.value.lower()] = sum(1 for row in roster if row['status'] == status.value)
        
        return {
            'session': session.to_dict(),
            'stats': stats,
            'attendance': roster
        }
    
    @staticmethod
    def student_history(student_id: int, requester, class_id: Optional[int] = None) -> List[Dict]:
        """A student's records, newest first. Students see only their own."""
        if not (requester.is_admin() or requester.id == student_id):
            raise AuthorizationError("You can only view your own attendance records")
        
        query = Attendance.query.filter_by(student_id=student_id)
        if class_id is not None:
            query = query.filter_by(class_id=class_id)
        
        history = []
        for record in query.order_by(Attendance.date.desc()).all():
            item = record.to_dict()
            item['session'] = {
                'id': record.session.id,
                'start_time': isoformat(record.session.start_time),
                'type': record.session.session_type.value
            }
            history.append(item)
        return history
    
    @staticmethod
    def class_export(
        class_id: int,
        requester,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> Dict:
        """Sessions in range crossed with the enrolled roster."""
        classroom = Classroom.get_by_id(class_id)
        if not classroom:
            raise NotFoundError("Class not found")
        if not classroom.is_owned_by(requester):
            raise AuthorizationError("You do not have access to this class attendance")
        
        query = ClassSession.query.filter_by(class_id=classroom.id)
        if start is not None:
            query = query.filter(ClassSession.start_time >= start)
        if end is not None:
            query = query.filter(ClassSession.start_time <= end)
        sessions = query.order_by(ClassSession.start_time.asc()).all()
        
        session_ids = [s.id for s in sessions]
        records = {}
        if session_ids:
            for record in Attendance.query.filter(Attendance.session_id.in_(session_ids)).all():
                records[(record.session_id, record.student_id)] = record
        
        report = []
        for student in classroom.students:
            cells = []
            for session in sessions:
                record = records.get((session.id, student.id))
                cells.append({
                    'session_id': session.id,
                    'date': isoformat(session.start_time),
                    'status': record.status.value if record else AttendanceStatus.ABSENT.value,
                    'marked_at': isoformat(record.created_at) if record else None
                })
            report.append({
                'student_id': student.id,
                'student_name': student.name,
                'email': student.email,
                'roll_no': student.roll_no or 'N/A',
                'sessions': cells
            })
        
        return {
            'class': {
                'name': classroom.name,
                'code': classroom.code,
                'teacher': classroom.teacher.name if classroom.teacher else None
            },
            'sessions': [
                {'id': s.id, 'date': isoformat(s.start_time), 'type': s.session_type.value}
                for s in sessions
            ],
            'attendance': report
        }
    
    @staticmethod
    def export_frame(export: Dict) -> pd.DataFrame:
        """Flatten a class export into one row per student, one column per session."""
        columns = ['roll_no', 'student_name', 'email'] + [
            f"{s['date']} ({s['type']})" for s in export['sessions']
        ]
        rows = []
        for student in export['attendance']:
            row = [student['roll_no'], student['student_name'], student['email']]
            row.extend(cell['status'] for cell in student['sessions'])
            rows.append(row)
        return pd.DataFrame(rows, columns=columns)
