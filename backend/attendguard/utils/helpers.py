"""Helper functions for the application."""
from datetime import date, datetime, timezone
from typing import Any, Dict, Optional, Tuple

from flask import jsonify, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

def handle_error(error, status_code: int):
    """Handle application errors with consistent format."""
    return jsonify({
        'error': True,
        'message': str(error),
        'status_code': status_code
    }), status_code

def success_response(data: Any = None, message: str = "Success", status_code: int = 200):
    """Return consistent success response."""
    response = {
        'error': False,
        'message': message
    }
    
    if data is not None:
        response['data'] = data
    
    return jsonify(response), status_code

def error_response(message: str, status_code: int = 400, details: Optional[Dict] = None):
    """Return consistent error response."""
    body = {
        'error': True,
        'message': message,
        'status_code': status_code
    }
    if details:
        body['details'] = details
    return jsonify(body), status_code

def get_client_ip() -> Optional[str]:
    """Network origin of the current request, honouring reverse proxies."""
    forwarded = request.headers.get('X-Forwarded-For')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.headers.get('X-Real-IP') or request.remote_addr

def rate_limit_key() -> str:
    """Rate-limit bucket for the caller: their user id, else their address."""
    verify_jwt_in_request(optional=True)
    identity = get_jwt_identity()
    if identity:
        return f"user:{identity}"
    return get_client_ip() or 'anonymous'

def calendar_fields(value) -> Tuple[int, int, int]:
    """Return (iso_week, month, year) for a date or datetime."""
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        raise TypeError(f"Expected date, got {type(value).__name__}")
    return value.isocalendar()[1], value.month, value.year

def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None

def utcnow() -> datetime:
    """Naive UTC timestamp, the convention for every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
