"""Authentication API: caller identity for the attendance endpoints."""
from flask import Blueprint, g, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from attendguard import limiter
from attendguard.services.auth_service import AuthService
from attendguard.utils.decorators import login_required
from attendguard.utils.helpers import error_response, success_response

auth_bp = Blueprint("auth", __name__)

@auth_bp.route("/health", methods=["GET"])
def health_check():
    """Health check endpoint."""
    return success_response(message="Auth service is running")

@auth_bp.route("/login", methods=["POST"])
@limiter.limit("5 per minute")
def login():
    """User login with email and password."""
    data = request.get_json(silent=True)
    
    if not data:
        return error_response("Request body must be JSON", 400)
    
    result, error = AuthService.login(
        data.get("email", "").strip(),
        data.get("password", "")
    )
    
    if error:
        return error_response(error, 401)
    
    return success_response(data=result, message="Login successful")

@auth_bp.route("/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh():
    """Exchange a refresh token for a new access token."""
    result, error = AuthService.refresh_token(get_jwt_identity())
    
    if error:
        return error_response(error, 401)
    
    return success_response(data=result, message="Token refreshed")

@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    """Get current user profile."""
    return success_response(data=g.current_user.to_dict())
