"""Class session model: one meeting during which attendance is captured."""
from enum import Enum
from typing import Dict, Optional

from attendguard import db
from attendguard.models.base import BaseModel
from attendguard.utils.helpers import isoformat

class SessionType(Enum):
    """Kind of meeting."""
    LECTURE = 'Lecture'
    LAB = 'Lab'
    EXAM = 'Exam'

class SessionState(Enum):
    NOT_STARTED = 'not_started'
    ACTIVE = 'active'
    ENDED = 'ended'

class ClassSession(BaseModel):
    """Live or retroactive class meeting.
    
    The security columns are a snapshot of the defaults in force when the
    session started. Nothing writes them after creation.
    """
    
    __tablename__ = 'class_sessions'
    __table_args__ = (
        # At most one live session per class, enforced by the database
        db.Index(
            'uq_class_sessions_active_class', 'class_id',
            unique=True,
            sqlite_where=db.text('active = 1'),
            postgresql_where=db.text('active')
        ),
    )
    
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False, index=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=True)
    active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    is_retroactive = db.Column(db.Boolean, default=False, nullable=False)
    origin_ip = db.Column(db.String(64), nullable=True)
    session_type = db.Column(db.Enum(SessionType), nullable=False, default=SessionType.LECTURE)
    
    # Geofence anchor
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)
    
    # Security snapshot
    radius_meters = db.Column(db.Float, nullable=False)
    ip_match_enabled = db.Column(db.Boolean, nullable=False, default=True)
    device_lock_enabled = db.Column(db.Boolean, nullable=False, default=False)
    refresh_seconds = db.Column(db.Integer, nullable=False)
    manual_approval_required = db.Column(db.Boolean, nullable=False, default=False)
    
    # Relationships
    teacher = db.relationship('User', foreign_keys=[teacher_id])
    
    @property
    def state(self) -> SessionState:
        if self.start_time is None:
            return SessionState.NOT_STARTED
        return SessionState.ACTIVE if self.active else SessionState.ENDED
    
    @property
    def anchor(self) -> Optional[Dict[str, float]]:
        if self.latitude is None or self.longitude is None:
            return None
        return {'latitude': self.latitude, 'longitude': self.longitude}
    
    def security_config(self) -> Dict:
        return {
            'radius_meters': self.radius_meters,
            'ip_match_enabled': self.ip_match_enabled,
            'device_lock_enabled': self.device_lock_enabled,
            'refresh_seconds': self.refresh_seconds,
            'manual_approval_required': self.manual_approval_required
        }
    
    @classmethod
    def find_active(cls, class_id: int) -> Optional['ClassSession']:
        return cls.query.filter_by(class_id=class_id, active=True).first()
    
    def to_dict(self):
        """Convert to dictionary."""
        return {
            'id': self.id,
            'class_id': self.class_id,
            'teacher_id': self.teacher_id,
            'start_time': isoformat(self.start_time),
            'end_time': isoformat(self.end_time),
            'active': self.active,
            'state': self.state.value,
            'is_retroactive': self.is_retroactive,
            'origin_ip': self.origin_ip,
            'type': self.session_type.value if self.session_type else None,
            'location': self.anchor,
            'security_config': self.security_config()
        }
    
    def __repr__(self):
        return f'<ClassSession {self.id} class={self.class_id} active={self.active}>'
