"""Custom decorators for authorization."""
from functools import wraps

from flask import g
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from attendguard.models.user import UserRole
from attendguard.services.auth_service import AuthService
from attendguard.utils.helpers import error_response

def roles_required(*roles: UserRole):
    """Require a valid access token whose user holds one of ``roles``.
    
    The loaded user is stored on ``g.current_user``. With no roles given any
    authenticated, active user passes.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verify_jwt_in_request()
            user = AuthService.get_user_by_id(get_jwt_identity())
            
            if not user or not user.is_active:
                return error_response("User not found", 404)
            
            if roles and user.role not in roles:
                allowed = ', '.join(role.value for role in roles)
                return error_response(f"Access denied. Required roles: {allowed}", 403)
            
            g.current_user = user
            return f(*args, **kwargs)
        return decorated_function
    return decorator

login_required = roles_required()
teacher_required = roles_required(UserRole.TEACHER, UserRole.ADMIN)
student_required = roles_required(UserRole.STUDENT)
