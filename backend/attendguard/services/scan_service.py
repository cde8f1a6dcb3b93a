"""Scan coordination: the entry point a student's scan request goes through."""
from dataclasses import dataclass
from typing import Dict, Optional

from attendguard.models.attendance import Attendance
from attendguard.services.geofence_service import GeofenceResult
from attendguard.services.ledger_service import AttendanceLedger
from attendguard.services.security_policy import SecurityPolicy
from attendguard.services.token_service import TokenCodec

@dataclass
class ScanResult:
    attendance: Attendance
    requires_approval: bool
    ip_match: Optional[bool]
    geofence: GeofenceResult
    
    def to_dict(self) -> Dict:
        return {
            'attendance': self.attendance.to_dict(),
            'requires_approval': self.requires_approval,
            'ip_match': self.ip_match,
            'geofence': self.geofence.to_dict()
        }

class ScanCoordinator:
    """Token -> security policy -> ledger insert."""
    
    def __init__(self, codec: Optional[TokenCodec] = None):
        self.policy = SecurityPolicy(codec)
    
    def scan(
        self,
        token: str,
        student,
        origin_ip: Optional[str] = None,
        position: Optional[Dict[str, float]] = None,
        device_id: Optional[str] = None
    ) -> ScanResult:
        decision = self.policy.evaluate(
            token,
            student,
            origin_ip=origin_ip,
            position=position,
            device_id=device_id
        )
        attendance = AttendanceLedger.mark_by_scan(
            decision,
            student.id,
            device_id=device_id,
            position=position
        )
        return ScanResult(
            attendance=attendance,
            requires_approval=decision.requires_approval,
            ip_match=decision.ip_match,
            geofence=decision.geofence
        )
