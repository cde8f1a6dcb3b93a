"""Domain exceptions raised by the attendance services.

Every exception carries the HTTP status the API layer renders it with, so
blueprints never translate errors themselves.
"""
from typing import Any, Dict, Optional

class AttendanceError(Exception):
    """Base exception for attendance rule violations."""
    
    status_code = 400
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'error': True,
            'message': self.message,
            'status_code': self.status_code,
            'type': self.__class__.__name__,
            'details': self.details
        }

class ValidationError(AttendanceError):
    """Bad or missing input. Not worth retrying."""
    status_code = 400

class AuthorizationError(AttendanceError):
    """Role, ownership or enrollment failure."""
    status_code = 403

class NotFoundError(AttendanceError):
    status_code = 404

class ConflictError(AttendanceError):
    """State conflict: duplicate attendance, session already active or ended."""
    
    status_code = 409
    
    def __init__(self, message: str, current_status: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        if current_status is not None:
            details['current_status'] = current_status
        super().__init__(message, details)
        self.current_status = current_status

class TokenError(AttendanceError):
    """Rotating token could not be used. The client should re-scan."""
    status_code = 401

class TokenExpiredError(TokenError):
    status_code = 410

class TokenInvalidError(TokenError):
    status_code = 401

class PolicyViolation(AttendanceError):
    """A fraud-prevention rule rejected the scan."""
    
    status_code = 403
    
    GEOFENCE = 'geofence'
    MISSING_LOCATION = 'missing_location'
    DEVICE_LOCK = 'device_lock'
    
    def __init__(self, message: str, code: str, distance: Optional[float] = None,
                 radius: Optional[float] = None, details: Optional[Dict[str, Any]] = None):
        details = dict(details or {})
        details['code'] = code
        if distance is not None:
            details['distance'] = distance
        if radius is not None:
            details['radius'] = radius
        super().__init__(message, details)
        self.code = code
        self.distance = distance
        self.radius = radius
