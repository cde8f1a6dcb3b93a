"""Attendance ledger writes, races and query surfaces."""
from datetime import datetime, timedelta

import pytest

from attendguard import db
from attendguard.models.attendance import Attendance, AttendanceStatus, DeviceClaim, VerificationMethod
from attendguard.services.ledger_service import AttendanceLedger
from attendguard.services.security_policy import SecurityPolicy
from attendguard.services.session_service import SessionService
from attendguard.utils.exceptions import (
    AuthorizationError, ConflictError, NotFoundError, PolicyViolation, ValidationError
)
from attendguard.utils.helpers import calendar_fields

@pytest.fixture
def live_session(classroom, teacher):
    def _start(**security):
        return SessionService.start(classroom.id, teacher, '10.0.0.1', security=security)
    return _start

@pytest.fixture
def retro_session(classroom, teacher):
    start = datetime(2026, 3, 2, 9, 0)
    return SessionService.create_retroactive(
        classroom.id, start, start + timedelta(hours=1), teacher, '10.0.0.1'
    )

@pytest.fixture
def decide(codec):
    policy = SecurityPolicy(codec)
    def _decide(session, student, device_id=None):
        token, _ = codec.mint(session)
        return policy.evaluate(token, student, origin_ip='10.0.0.1', device_id=device_id)
    return _decide

# =================== SCANS ===================

def test_mark_by_scan_records_row(live_session, decide, students):
    session = live_session()
    
    attendance = AttendanceLedger.mark_by_scan(
        decide(session, students[0]), students[0].id,
        position={'latitude': 10.0, 'longitude': 20.0}
    )
    
    assert attendance.id is not None
    assert attendance.status == AttendanceStatus.PRESENT
    assert attendance.verification_method == VerificationMethod.SCAN
    assert attendance.class_id == session.class_id
    assert attendance.latitude == 10.0
    assert (attendance.week, attendance.month, attendance.year) == calendar_fields(attendance.date)

def test_concurrent_duplicate_scans_insert_once(live_session, decide, students):
    session = live_session()
    # Every request passed the policy before any of them inserted
    decisions = [decide(session, students[0]) for _ in range(5)]
    
    outcomes = []
    for decision in decisions:
        try:
            AttendanceLedger.mark_by_scan(decision, students[0].id)
            outcomes.append('inserted')
        except ConflictError as e:
            outcomes.append(e.current_status)
    
    assert outcomes == ['inserted'] + ['Present'] * 4
    assert Attendance.query.filter_by(session_id=session.id, student_id=students[0].id).count() == 1

def test_concurrent_device_reuse_is_closed_by_claim(live_session, decide, students):
    session = live_session(device_lock_enabled=True)
    first = decide(session, students[0], device_id='phone-1')
    second = decide(session, students[1], device_id='phone-1')
    
    AttendanceLedger.mark_by_scan(first, students[0].id, device_id='phone-1')
    with pytest.raises(PolicyViolation) as exc:
        AttendanceLedger.mark_by_scan(second, students[1].id, device_id='phone-1')
    
    assert exc.value.code == PolicyViolation.DEVICE_LOCK
    assert Attendance.find(session.id, students[1].id) is None
    assert DeviceClaim.find(session.id, 'phone-1').student_id == students[0].id

def test_no_device_claim_without_lock(live_session, decide, students):
    session = live_session()
    AttendanceLedger.mark_by_scan(decide(session, students[0]), students[0].id, device_id='phone-1')
    assert DeviceClaim.query.count() == 0

# =================== MANUAL ===================

def test_mark_manually_creates_row_on_session_date(retro_session, teacher, students):
    attendance = AttendanceLedger.mark_manually(retro_session.id, students[0].id, 'Late', teacher)
    
    assert attendance.status == AttendanceStatus.LATE
    assert attendance.verification_method == VerificationMethod.MANUAL
    assert attendance.date == retro_session.start_time
    assert (attendance.week, attendance.month, attendance.year) == (10, 3, 2026)

def test_mark_manually_overwrites(retro_session, teacher, students):
    AttendanceLedger.mark_manually(retro_session.id, students[0].id, 'Absent', teacher)
    AttendanceLedger.mark_manually(retro_session.id, students[0].id, 'Leave', teacher)
    
    rows = Attendance.query.filter_by(session_id=retro_session.id, student_id=students[0].id).all()
    assert len(rows) == 1
    assert rows[0].status == AttendanceStatus.LEAVE

def test_mark_manually_overrides_scan(live_session, decide, teacher, students):
    session = live_session()
    AttendanceLedger.mark_by_scan(decide(session, students[0]), students[0].id)
    
    attendance = AttendanceLedger.mark_manually(session.id, students[0].id, 'Absent', teacher)
    
    assert attendance.status == AttendanceStatus.ABSENT
    assert attendance.verification_method == VerificationMethod.MANUAL

@pytest.mark.parametrize('status', ['Pending', 'present', 'Excused', None])
def test_mark_manually_rejects_status(retro_session, teacher, students, status):
    with pytest.raises(ValidationError):
        AttendanceLedger.mark_manually(retro_session.id, students[0].id, status, teacher)

def test_mark_manually_requires_enrollment(retro_session, teacher, outsider):
    with pytest.raises(ValidationError):
        AttendanceLedger.mark_manually(retro_session.id, outsider.id, 'Present', teacher)

def test_mark_manually_authorization(retro_session, other_teacher, admin, students):
    with pytest.raises(AuthorizationError):
        AttendanceLedger.mark_manually(retro_session.id, students[0].id, 'Present', other_teacher)
    
    assert AttendanceLedger.mark_manually(
        retro_session.id, students[0].id, 'Present', admin
    ).status == AttendanceStatus.PRESENT

def test_mark_manually_unknown_session(app, teacher, students):
    with pytest.raises(NotFoundError):
        AttendanceLedger.mark_manually(999, students[0].id, 'Present', teacher)

def test_mark_manually_conflict_when_race_row_is_missing(retro_session, teacher, students, monkeypatch):
    AttendanceLedger.mark_manually(retro_session.id, students[0].id, 'Absent', teacher)
    # Both lookups miss, so the insert hits the unique constraint with nothing to update
    monkeypatch.setattr(Attendance, 'find', classmethod(lambda cls, session_id, student_id: None))

    with pytest.raises(ConflictError):
        AttendanceLedger.mark_manually(retro_session.id, students[0].id, 'Present', teacher)

    assert Attendance.query.filter_by(session_id=retro_session.id).count() == 1

# =================== APPROVAL ===================

def test_approve_pending(live_session, decide, teacher, students):
    session = live_session(manual_approval_required=True)
    for student in students[:2]:
        AttendanceLedger.mark_by_scan(decide(session, student), student.id)
    
    assert AttendanceLedger.approve(session.id, [students[0].id], teacher) == 1
    
    approved = Attendance.find(session.id, students[0].id)
    assert approved.status == AttendanceStatus.PRESENT
    assert approved.approved_by == teacher.id
    assert Attendance.find(session.id, students[1].id).status == AttendanceStatus.PENDING

def test_approve_is_noop_for_non_pending(live_session, decide, teacher, students):
    session = live_session(manual_approval_required=True)
    AttendanceLedger.mark_by_scan(decide(session, students[0]), students[0].id)
    AttendanceLedger.approve(session.id, [students[0].id], teacher)
    
    # Already Present, and one student without any row
    assert AttendanceLedger.approve(session.id, [students[0].id, students[2].id], teacher) == 0
    assert Attendance.find(session.id, students[0].id).status == AttendanceStatus.PRESENT
    assert Attendance.find(session.id, students[2].id) is None

def test_approve_requires_ownership(live_session, other_teacher, students):
    session = live_session(manual_approval_required=True)
    with pytest.raises(AuthorizationError):
        AttendanceLedger.approve(session.id, [students[0].id], other_teacher)

# =================== QUERIES ===================

def test_roster_for_session(live_session, decide, teacher, students):
    session = live_session()
    AttendanceLedger.mark_by_scan(decide(session, students[0]), students[0].id)
    AttendanceLedger.mark_manually(session.id, students[1].id, 'Late', teacher)
    
    roster = AttendanceLedger.roster_for_session(session.id, teacher)
    by_student = {row['student']['id']: row for row in roster['attendance']}
    
    assert by_student[students[0].id]['status'] == 'Present'
    assert by_student[students[0].id]['verification_method'] == 'Scan'
    assert by_student[students[0].id]['marked_at'] is not None
    assert by_student[students[1].id]['status'] == 'Late'
    assert by_student[students[2].id]['status'] == 'Absent'
    assert by_student[students[2].id]['verification_method'] is None
    assert roster['stats'] == {
        'total': 3, 'present': 1, 'pending': 0, 'absent': 1, 'late': 1, 'leave': 0
    }

def test_roster_access(live_session, students, outsider):
    session = live_session()
    assert AttendanceLedger.roster_for_session(session.id, students[0])['stats']['total'] == 3
    with pytest.raises(AuthorizationError):
        AttendanceLedger.roster_for_session(session.id, outsider)

def test_history_survives_unenrollment(retro_session, classroom, teacher, students):
    AttendanceLedger.mark_manually(retro_session.id, students[0].id, 'Present', teacher)
    classroom.students.remove(students[0])
    db.session.commit()
    
    history = AttendanceLedger.student_history(students[0].id, students[0])
    
    assert len(history) == 1
    assert history[0]['session']['id'] == retro_session.id

def test_history_is_private(retro_session, students, admin):
    with pytest.raises(AuthorizationError):
        AttendanceLedger.student_history(students[0].id, students[1])
    assert AttendanceLedger.student_history(students[0].id, admin) == []

def test_history_filters_by_class(retro_session, classroom, teacher, students):
    AttendanceLedger.mark_manually(retro_session.id, students[0].id, 'Present', teacher)
    assert AttendanceLedger.student_history(students[0].id, students[0], class_id=classroom.id)
    assert AttendanceLedger.student_history(students[0].id, students[0], class_id=999) == []

def test_class_export(classroom, teacher, students):
    early = datetime(2026, 2, 2, 9, 0)
    late = datetime(2026, 2, 9, 9, 0)
    first = SessionService.create_retroactive(classroom.id, early, early + timedelta(hours=1), teacher, None)
    second = SessionService.create_retroactive(classroom.id, late, late + timedelta(hours=1), teacher, None)
    AttendanceLedger.mark_manually(first.id, students[0].id, 'Present', teacher)
    AttendanceLedger.mark_manually(second.id, students[0].id, 'Late', teacher)
    
    export = AttendanceLedger.class_export(classroom.id, teacher)
    
    assert [s['id'] for s in export['sessions']] == [first.id, second.id]
    row = next(r for r in export['attendance'] if r['student_id'] == students[0].id)
    assert [cell['status'] for cell in row['sessions']] == ['Present', 'Late']
    
    ranged = AttendanceLedger.class_export(classroom.id, teacher, start=datetime(2026, 2, 5))
    assert [s['id'] for s in ranged['sessions']] == [second.id]

def test_export_frame(classroom, teacher, students):
    start = datetime(2026, 2, 2, 9, 0)
    session = SessionService.create_retroactive(classroom.id, start, start + timedelta(hours=1), teacher, None)
    AttendanceLedger.mark_manually(session.id, students[1].id, 'Leave', teacher)
    
    frame = AttendanceLedger.export_frame(AttendanceLedger.class_export(classroom.id, teacher))
    
    assert list(frame.columns) == ['roll_no', 'student_name', 'email', '2026-02-02T09:00:00 (Lecture)']
    assert list(frame.iloc[:, 3]) == ['Absent', 'Leave', 'Absent']

def test_class_export_requires_owner(classroom, other_teacher):
    with pytest.raises(AuthorizationError):
        AttendanceLedger.class_export(classroom.id, other_teacher)

def test_calendar_fields():
    assert calendar_fields(datetime(2026, 1, 1, 12, 0)) == (1, 1, 2026)
    assert calendar_fields(datetime(2026, 10, 19).date()) == (43, 10, 2026)
