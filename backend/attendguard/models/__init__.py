"""Models package with all models."""
from .base import BaseModel
from .user import User, UserRole
from .classroom import Classroom, enrollments
from .class_session import ClassSession, SessionType, SessionState
from .attendance import (
    Attendance, AttendanceStatus, VerificationMethod, DeviceClaim, MANUAL_STATUSES
)

__all__ = [
    'BaseModel', 'User', 'UserRole',
    'Classroom', 'enrollments',
    'ClassSession', 'SessionType', 'SessionState',
    'Attendance', 'AttendanceStatus', 'VerificationMethod',
    'DeviceClaim', 'MANUAL_STATUSES'
]
