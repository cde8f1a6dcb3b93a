"""Attendance ledger models."""
from enum import Enum

from attendguard import db
from attendguard.models.base import BaseModel
from attendguard.utils.helpers import calendar_fields, isoformat

class AttendanceStatus(Enum):
    PRESENT = 'Present'
    PENDING = 'Pending'
    ABSENT = 'Absent'
    LATE = 'Late'
    LEAVE = 'Leave'

class VerificationMethod(Enum):
    SCAN = 'Scan'
    MANUAL = 'Manual'

# Statuses a teacher may set by hand; Pending only ever comes from a scan
MANUAL_STATUSES = (
    AttendanceStatus.PRESENT,
    AttendanceStatus.ABSENT,
    AttendanceStatus.LATE,
    AttendanceStatus.LEAVE
)

class Attendance(BaseModel):
    """One student's attendance for one session.
    
    Rows are never deleted. Unenrolling a student leaves their history here.
    """
    
    __tablename__ = 'attendance_records'
    __table_args__ = (
        db.UniqueConstraint('session_id', 'student_id', name='uq_attendance_session_student'),
        db.Index('ix_attendance_class_date', 'class_id', 'date'),
        db.Index('ix_attendance_student_date', 'student_id', 'date'),
        db.Index('ix_attendance_session_device', 'session_id', 'device_id'),
    )
    
    session_id = db.Column(db.Integer, db.ForeignKey('class_sessions.id'), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    class_id = db.Column(db.Integer, nullable=False, index=True)
    status = db.Column(db.Enum(AttendanceStatus), nullable=False, default=AttendanceStatus.PRESENT)
    verification_method = db.Column(db.Enum(VerificationMethod), nullable=False)
    device_id = db.Column(db.String(128), nullable=True)
    
    # Location where the scan happened
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    
    date = db.Column(db.DateTime, nullable=False, index=True)
    week = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=False)
    year = db.Column(db.Integer, nullable=False)
    
    # Pending -> Present approvals
    approved_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    
    # Relationships
    student = db.relationship('User', foreign_keys=[student_id])
    session = db.relationship('ClassSession', foreign_keys=[session_id])
    
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.date is not None:
            self.set_date(self.date)
    
    def set_date(self, value) -> None:
        """Set the attendance date and its denormalised calendar fields."""
        self.date = value
        self.week, self.month, self.year = calendar_fields(value)
    
    @classmethod
    def find(cls, session_id: int, student_id: int):
        return cls.query.filter_by(session_id=session_id, student_id=student_id).first()
    
    @classmethod
    def find_by_device(cls, session_id: int, device_id: str):
        return cls.query.filter_by(session_id=session_id, device_id=device_id).first()
    
    def to_dict(self):
        return {
            'id': self.id,
            'session_id': self.session_id,
            'student_id': self.student_id,
            'class_id': self.class_id,
            'status': self.status.value,
            'verification_method': self.verification_method.value,
            'device_id': self.device_id,
            'date': isoformat(self.date),
            'week': self.week,
            'month': self.month,
            'year': self.year,
            'marked_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
            'approved_by': self.approved_by,
            'approved_at': isoformat(self.approved_at)
        }
    
    def __repr__(self):
        return f'<Attendance {self.session_id}-{self.student_id} {self.status.value}>'

class DeviceClaim(db.Model):
    """Binds a device to the one student it backs for a session.
    
    Written in the same transaction as the scan's Attendance row, only for
    sessions with device lock enabled.
    """
    
    __tablename__ = 'device_claims'
    __table_args__ = (
        db.UniqueConstraint('session_id', 'device_id', name='uq_device_claim_session_device'),
    )
    
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('class_sessions.id'), nullable=False)
    device_id = db.Column(db.String(128), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    
    @classmethod
    def find(cls, session_id: int, device_id: str):
        return cls.query.filter_by(session_id=session_id, device_id=device_id).first()
    
    def __repr__(self):
        return f'<DeviceClaim {self.session_id}:{self.device_id} -> {self.student_id}>'
