"""Session API: start, rotate tokens, end, backfill."""
from flask import Blueprint, current_app, g, request

from attendguard import limiter
from attendguard.services.session_service import SessionService
from attendguard.utils.decorators import login_required, teacher_required
from attendguard.utils.helpers import get_client_ip, rate_limit_key, success_response
from attendguard.utils.validators import Validator

sessions_bp = Blueprint('sessions', __name__)

def token_rate_limit() -> str:
    return current_app.config['TOKEN_RATE_LIMIT']

@sessions_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Session service is running')

@sessions_bp.route('/start', methods=['POST'])
@teacher_required
def start_session():
    """Start a live session for a class."""
    data = Validator.require_fields(request.get_json(silent=True), ['class_id'])
    
    session = SessionService.start(
        class_id=Validator.parse_id(data['class_id'], 'class_id'),
        requester=g.current_user,
        origin_ip=get_client_ip(),
        location=Validator.parse_position(data.get('latitude'), data.get('longitude')),
        session_type=data.get('type'),
        security=data.get('security')
    )
    
    return success_response(
        data=session.to_dict(),
        message="Session started successfully",
        status_code=201
    )

@sessions_bp.route('/retroactive', methods=['POST'])
@teacher_required
def create_retroactive_session():
    """Create a past session for manual attendance back-entry."""
    data = Validator.require_fields(
        request.get_json(silent=True),
        ['class_id', 'start_time', 'end_time']
    )
    
    session = SessionService.create_retroactive(
        class_id=Validator.parse_id(data['class_id'], 'class_id'),
        start_time=Validator.parse_datetime(data['start_time'], 'start_time'),
        end_time=Validator.parse_datetime(data['end_time'], 'end_time'),
        requester=g.current_user,
        origin_ip=get_client_ip(),
        session_type=data.get('type')
    )
    
    return success_response(
        data=session.to_dict(),
        message="Retroactive session created successfully. You can now manually mark attendance.",
        status_code=201
    )

@sessions_bp.route('/<int:session_id>/token', methods=['GET'])
@limiter.limit(token_rate_limit, key_func=rate_limit_key)
@teacher_required
def get_token(session_id):
    """Current rotating token for the session's display."""
    include_image = request.args.get('image', 'true').lower() != 'false'
    result = SessionService.issue_token(session_id, g.current_user, include_image=include_image)
    return success_response(data=result, message="QR token generated successfully")

@sessions_bp.route('/<int:session_id>/end', methods=['POST'])
@teacher_required
def end_session(session_id):
    """End a live session."""
    session = SessionService.end(session_id, g.current_user)
    return success_response(data=session.to_dict(), message="Session ended successfully")

@sessions_bp.route('/<int:session_id>', methods=['GET'])
@login_required
def get_session(session_id):
    """Session details."""
    session = SessionService.get(session_id)
    return success_response(data=session.to_dict())

@sessions_bp.route('/class/<int:class_id>', methods=['GET'])
@login_required
def list_class_sessions(class_id):
    """All sessions of a class, newest first."""
    sessions = SessionService.list_for_class(class_id, g.current_user)
    return success_response(data={
        'count': len(sessions),
        'sessions': [session.to_dict() for session in sessions]
    })
