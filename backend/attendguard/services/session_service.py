"""Session lifecycle: start, end, retroactive creation and token issue."""
from datetime import datetime
from typing import Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from attendguard import db
from attendguard.models.class_session import ClassSession, SessionType
from attendguard.models.classroom import Classroom
from attendguard.services.qr_service import QRService
from attendguard.services.token_service import TokenCodec
from attendguard.utils.exceptions import (
    AuthorizationError, ConflictError, NotFoundError, ValidationError
)
from attendguard.utils.helpers import utcnow

class SessionService:
    """State machine for a class meeting: NotStarted -> Active -> Ended."""
    
    @staticmethod
    def parse_type(value: Optional[str]) -> SessionType:
        if not value:
            return SessionType.LECTURE
        try:
            return SessionType(value)
        except ValueError:
            valid = ', '.join(t.value for t in SessionType)
            raise ValidationError(f"Type must be one of: {valid}")
    
    @staticmethod
    def security_snapshot(overrides: Optional[Dict] = None) -> Dict:
        """Merge per-session overrides onto the configured defaults."""
        config = current_app.config
        if overrides is None:
            overrides = {}
        if not isinstance(overrides, dict):
            raise ValidationError("security must be an object")
        
        snapshot = {
            'radius_meters': float(config['GEOFENCE_DEFAULT_RADIUS']),
            'ip_match_enabled': bool(config['SECURITY_IP_MATCH_ENABLED']),
            'device_lock_enabled': bool(config['SECURITY_DEVICE_LOCK_ENABLED']),
            'refresh_seconds': int(config['QR_REFRESH_SECONDS']),
            'manual_approval_required': bool(config['SECURITY_MANUAL_APPROVAL'])
        }
        
        unknown = set(overrides) - set(snapshot)
        if unknown:
            raise ValidationError(f"Unknown security setting: {', '.join(sorted(unknown))}")
        
        if overrides.get('radius_meters') is not None:
            try:
                snapshot['radius_meters'] = float(overrides['radius_meters'])
            except (TypeError, ValueError):
                raise ValidationError("radius_meters must be a number")
            if snapshot['radius_meters'] <= 0:
                raise ValidationError("radius_meters must be positive")
        
        if overrides.get('refresh_seconds') is not None:
            low = config['QR_REFRESH_MIN_SECONDS']
            high = config['QR_REFRESH_MAX_SECONDS']
            try:
                refresh = int(overrides['refresh_seconds'])
            except (TypeError, ValueError):
                raise ValidationError("refresh_seconds must be an integer")
            if not low <= refresh <= high:
                raise ValidationError(f"refresh_seconds must be between {low} and {high}")
            snapshot['refresh_seconds'] = refresh
        
        for flag in ('ip_match_enabled', 'device_lock_enabled', 'manual_approval_required'):
            if overrides.get(flag) is not None:
                if not isinstance(overrides[flag], bool):
                    raise ValidationError(f"{flag} must be true or false")
                snapshot[flag] = overrides[flag]
        
        return snapshot
    
    @staticmethod
    def _owned_class(class_id: int, requester) -> Classroom:
        classroom = Classroom.get_by_id(class_id)
        if not classroom:
            raise NotFoundError("Class not found")
        if not classroom.is_owned_by(requester):
            raise AuthorizationError("You are not authorized to manage sessions for this class")
        return classroom
    
    @staticmethod
    def get(session_id: int) -> ClassSession:
        session = ClassSession.get_by_id(session_id)
        if not session:
            raise NotFoundError("Session not found")
        return session
    
    @staticmethod
    def get_owned(session_id: int, requester) -> ClassSession:
        session = SessionService.get(session_id)
        if not session.classroom.is_owned_by(requester):
            raise AuthorizationError("You are not authorized to access this session")
        return session
    
    @staticmethod
    def start(
        class_id: int,
        requester,
        origin_ip: Optional[str],
        location: Optional[Dict[str, float]] = None,
        session_type: Optional[str] = None,
        security: Optional[Dict] = None
    ) -> ClassSession:
        """Open a live session for a class."""
        classroom = SessionService._owned_class(class_id, requester)
        
        conflict = ConflictError(
            "There is already an active session for this class. "
            "Please end it before starting a new one."
        )
        if ClassSession.find_active(classroom.id):
            raise conflict
        
        snapshot = SessionService.security_snapshot(security)
        session = ClassSession(
            class_id=classroom.id,
            teacher_id=classroom.teacher_id,
            start_time=utcnow(),
            active=True,
            is_retroactive=False,
            origin_ip=origin_ip,
            session_type=SessionService.parse_type(session_type),
            latitude=location['latitude'] if location else None,
            longitude=location['longitude'] if location else None,
            **snapshot
        )
        
        db.session.add(session)
        try:
            db.session.commit()
        except IntegrityError:
            # Lost the race against a concurrent start for the same class
            db.session.rollback()
            current_app.logger.info(f"Concurrent session start rejected for class {class_id}")
            raise conflict
        
        current_app.logger.info(
            f"Session {session.id} started for class {class_id} by user {requester.id} "
            f"from {origin_ip} (geofence={'on' if session.anchor else 'off'})"
        )
        return session
    
    @staticmethod
    def end(session_id: int, requester) -> ClassSession:
        """End a live session. Irreversible."""
        session = SessionService.get_owned(session_id, requester)
        
        if not session.active:
            raise ConflictError("Session is already ended")
        
        session.active = False
        session.end_time = utcnow()
        db.session.commit()
        
        current_app.logger.info(f"Session {session.id} ended by user {requester.id}")
        return session
    
    @staticmethod
    def create_retroactive(
        class_id: int,
        start_time: datetime,
        end_time: datetime,
        requester,
        origin_ip: Optional[str],
        session_type: Optional[str] = None
    ) -> ClassSession:
        """Create an already-ended session used as an anchor for manual back-entry."""
        classroom = SessionService._owned_class(class_id, requester)
        
        if start_time >= end_time:
            raise ValidationError("Start time must be before end time")
        if end_time > utcnow():
            raise ValidationError("Cannot create retroactive session for a future time")
        
        session = ClassSession(
            class_id=classroom.id,
            teacher_id=classroom.teacher_id,
            start_time=start_time,
            end_time=end_time,
            active=False,
            is_retroactive=True,
            origin_ip=origin_ip,
            session_type=SessionService.parse_type(session_type),
            **SessionService.security_snapshot()
        )
        session.save()
        
        current_app.logger.info(
            f"Retroactive session {session.id} created for class {class_id} by user {requester.id}"
        )
        return session
    
    @staticmethod
    def issue_token(session_id: int, requester, codec: Optional[TokenCodec] = None,
                    include_image: bool = True) -> Dict:
        """Mint the current rotating token for display.
        
        The caller's display loop decides when to ask again.
        """
        session = SessionService.get_owned(session_id, requester)
        
        if not session.active:
            raise ConflictError("Session is not active")
        
        codec = codec or TokenCodec.from_app()
        token, payload = codec.mint(session)
        
        result = {
            'token': token,
            'expires_in_seconds': payload.lifetime_seconds,
            'expires_at': payload.expires_at.isoformat(),
            'session_id': session.id
        }
        if include_image:
            result['qr_image'] = QRService.render_data_uri(token)
        return result
    
    @staticmethod
    def list_for_class(class_id: int, requester) -> List[ClassSession]:
        """Sessions of a class, newest first, for its teacher, students or admins."""
        classroom = Classroom.get_by_id(class_id)
        if not classroom:
            raise NotFoundError("Class not found")
        
        if not (classroom.is_owned_by(requester) or classroom.is_enrolled(requester.id)):
            raise AuthorizationError("You do not have access to this class")
        
        return classroom.sessions.order_by(ClassSession.start_time.desc()).all()
