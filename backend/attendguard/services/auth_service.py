"""Authentication service issuing caller-identity tokens."""
import re
from typing import Optional, Tuple

from flask_jwt_extended import create_access_token, create_refresh_token

from attendguard import db
from attendguard.models.user import User
from attendguard.utils.helpers import utcnow

class AuthService:
    @staticmethod
    def validate_email(email: str) -> bool:
        """Validate email format."""
        pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        return re.match(pattern, email) is not None
    
    @staticmethod
    def issue_tokens(user: User) -> dict:
        return {
            "access_token": create_access_token(identity=str(user.id)),
            "refresh_token": create_refresh_token(identity=str(user.id)),
            "user": user.to_dict()
        }
    
    @staticmethod
    def login(email: str, password: str) -> Tuple[Optional[dict], Optional[str]]:
        """Authenticate user and return tokens."""
        if not email or not password:
            return None, "Email and password are required"
        
        if not AuthService.validate_email(email):
            return None, "Invalid email format"
        
        user = User.query.filter_by(email=email.lower().strip()).first()
        
        if not user or not user.check_password(password):
            return None, "Invalid email or password"
        
        if not user.is_active:
            return None, "Account is deactivated"
        
        user.last_login = utcnow()
        db.session.commit()
        
        return AuthService.issue_tokens(user), None
    
    @staticmethod
    def get_user_by_id(user_id) -> Optional[User]:
        """Get user by ID, accepting the string identity stored in JWTs."""
        try:
            return User.get_by_id(int(user_id))
        except (TypeError, ValueError):
            return None
    
    @staticmethod
    def refresh_token(user_id) -> Tuple[Optional[dict], Optional[str]]:
        """Generate new access token."""
        user = AuthService.get_user_by_id(user_id)
        if not user or not user.is_active:
            return None, "User not found or inactive"
        
        return {
            "access_token": create_access_token(identity=str(user.id)),
            "user": user.to_dict()
        }, None
