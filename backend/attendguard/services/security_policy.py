"""Ordered fraud-prevention checks applied to every scan.

Rules run in a fixed order and the first hard failure stops evaluation:

1. token signature and expiry
2. session exists and is active
3. scanner is enrolled in the token's class
4. geofence, when the session has an anchor
5. device lock, when enabled
6. network origin match, when enabled (advisory only)
7. no existing attendance for this student and session
8. status assignment

Nothing is written here. The ledger performs the single insert afterwards.
"""
from dataclasses import dataclass
from typing import Dict, Optional

from flask import current_app

from attendguard.models.attendance import Attendance, AttendanceStatus
from attendguard.models.class_session import ClassSession
from attendguard.models.classroom import Classroom
from attendguard.services.geofence_service import GeofenceEvaluator, GeofenceResult
from attendguard.services.token_service import TokenCodec, TokenPayload
from attendguard.utils.exceptions import (
    AuthorizationError, ConflictError, NotFoundError, PolicyViolation, ValidationError
)

@dataclass
class PolicyDecision:
    """Everything the ledger needs to record an accepted scan."""
    payload: TokenPayload
    session: ClassSession
    status: AttendanceStatus
    ip_match: Optional[bool]
    geofence: GeofenceResult
    
    @property
    def requires_approval(self) -> bool:
        return self.status == AttendanceStatus.PENDING

class SecurityPolicy:
    """Evaluate a scan against its session's security snapshot."""
    
    def __init__(self, codec: Optional[TokenCodec] = None):
        self.codec = codec or TokenCodec.from_app()
    
    def evaluate(
        self,
        token: str,
        student,
        origin_ip: Optional[str] = None,
        position: Optional[Dict[str, float]] = None,
        device_id: Optional[str] = None
    ) -> PolicyDecision:
        payload = self.codec.verify(token)
        
        session = ClassSession.get_by_id(payload.session_id)
        if not session:
            raise NotFoundError("Session not found")
        if not session.active:
            raise ConflictError("Session is no longer active")
        
        classroom = Classroom.get_by_id(payload.class_id)
        if not classroom:
            raise NotFoundError("Class not found")
        if not classroom.is_enrolled(student.id):
            raise AuthorizationError("You are not enrolled in this class")
        
        geofence = self.check_geofence(session, position)
        self.check_device(session, student, device_id)
        ip_match = self.check_origin(session, student, origin_ip)
        
        existing = Attendance.find(session.id, student.id)
        if existing:
            raise ConflictError(
                f"Attendance already marked as {existing.status.value}",
                current_status=existing.status.value
            )
        
        status = (AttendanceStatus.PENDING if session.manual_approval_required
                  else AttendanceStatus.PRESENT)
        
        return PolicyDecision(
            payload=payload,
            session=session,
            status=status,
            ip_match=ip_match,
            geofence=geofence
        )
    
    @staticmethod
    def check_geofence(session: ClassSession, position: Optional[Dict[str, float]]) -> GeofenceResult:
        try:
            result = GeofenceEvaluator.enforce(session.anchor, position, session.radius_meters)
        except PolicyViolation as e:
            current_app.logger.info(f"Geofence rejected scan for session {session.id}: {e.message}")
            raise
        
        if result.applicable:
            current_app.logger.debug(
                f"Geofence passed for session {session.id}: "
                f"{result.distance:.1f}m of {result.radius:g}m"
            )
        return result
    
    @staticmethod
    def check_device(session: ClassSession, student, device_id: Optional[str]) -> None:
        if not session.device_lock_enabled:
            return
        if not device_id:
            raise ValidationError("Device identifier is required for this session")
        
        bound = Attendance.find_by_device(session.id, device_id)
        if bound and bound.student_id != student.id:
            current_app.logger.warning(
                f"Device {device_id} reused on session {session.id}: "
                f"bound to student {bound.student_id}, scanned by {student.id}"
            )
            raise PolicyViolation(
                "Device already used to mark attendance for another student in this session",
                code=PolicyViolation.DEVICE_LOCK
            )
    
    @staticmethod
    def check_origin(session: ClassSession, student, origin_ip: Optional[str]) -> Optional[bool]:
        """Compare network origins. A mismatch is reported, never enforced."""
        if not session.ip_match_enabled:
            return None
        
        matched = origin_ip is not None and origin_ip == session.origin_ip
        if not matched:
            current_app.logger.warning(
                f"IP mismatch on session {session.id}: teacher {session.origin_ip}, "
                f"student {student.id} from {origin_ip}"
            )
        return matched
