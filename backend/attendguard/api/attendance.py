"""Attendance API: scans, teacher overrides, approvals and rosters."""
from flask import Blueprint, Response, current_app, g, request

from attendguard import limiter
from attendguard.services.ledger_service import AttendanceLedger
from attendguard.services.scan_service import ScanCoordinator
from attendguard.utils.decorators import login_required, student_required, teacher_required
from attendguard.utils.helpers import get_client_ip, rate_limit_key, success_response
from attendguard.utils.validators import Validator

attendance_bp = Blueprint('attendance', __name__)

def scan_rate_limit() -> str:
    return current_app.config['SCAN_RATE_LIMIT']

@attendance_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return success_response(message='Attendance service is running')

@attendance_bp.route('/scan', methods=['POST'])
@limiter.limit(scan_rate_limit, key_func=rate_limit_key)
@student_required
def scan():
    """Mark attendance by presenting the session's current token."""
    data = Validator.require_fields(request.get_json(silent=True), ['token'])
    
    result = ScanCoordinator().scan(
        token=data['token'],
        student=g.current_user,
        origin_ip=get_client_ip(),
        position=Validator.parse_position(data.get('latitude'), data.get('longitude')),
        device_id=data.get('device_id') or None
    )
    
    message = ("Attendance recorded, awaiting teacher approval"
               if result.requires_approval else "Attendance marked successfully")
    return success_response(data=result.to_dict(), message=message, status_code=201)

@attendance_bp.route('/update', methods=['PATCH'])
@teacher_required
def manual_update():
    """Teacher override: create or overwrite a student's status."""
    data = Validator.require_fields(
        request.get_json(silent=True),
        ['session_id', 'student_id', 'status']
    )
    
    attendance = AttendanceLedger.mark_manually(
        session_id=Validator.parse_id(data['session_id'], 'session_id'),
        student_id=Validator.parse_id(data['student_id'], 'student_id'),
        status=data['status'],
        requester=g.current_user
    )
    return success_response(data=attendance.to_dict(), message="Attendance updated successfully")

@attendance_bp.route('/approve', methods=['POST'])
@teacher_required
def approve():
    """Approve pending scans for the listed students."""
    data = Validator.require_fields(request.get_json(silent=True), ['session_id', 'student_ids'])
    
    count = AttendanceLedger.approve(
        session_id=Validator.parse_id(data['session_id'], 'session_id'),
        student_ids=Validator.parse_id_list(data['student_ids'], 'student_ids'),
        requester=g.current_user
    )
    return success_response(data={'count': count}, message=f"Approved {count} attendance record(s)")

@attendance_bp.route('/session/<int:session_id>', methods=['GET'])
@login_required
def session_roster(session_id):
    """Every enrolled student with their status for one session."""
    roster = AttendanceLedger.roster_for_session(session_id, g.current_user)
    return success_response(data=roster, message="Attendance retrieved successfully")

@attendance_bp.route('/student/<int:student_id>', methods=['GET'])
@login_required
def student_history(student_id):
    """A student's attendance history."""
    history = AttendanceLedger.student_history(
        student_id,
        g.current_user,
        class_id=request.args.get('class_id', type=int)
    )
    return success_response(data={'count': len(history), 'attendance': history})

@attendance_bp.route('/class/<int:class_id>/detailed', methods=['GET'])
@teacher_required
def class_detailed(class_id):
    """Sessions x students matrix for a class, as JSON or CSV."""
    start = request.args.get('start_date')
    end = request.args.get('end_date')
    
    export = AttendanceLedger.class_export(
        class_id,
        g.current_user,
        start=Validator.parse_datetime(start, 'start_date') if start else None,
        end=Validator.parse_datetime(end, 'end_date') if end else None
    )
    
    if request.args.get('format') == 'csv':
        frame = AttendanceLedger.export_frame(export)
        return Response(
            frame.to_csv(index=False),
            mimetype='text/csv',
            headers={'Content-Disposition': f"attachment; filename=attendance_{export['class']['code']}.csv"}
        )
    
    return success_response(data=export, message="Detailed attendance retrieved successfully")
