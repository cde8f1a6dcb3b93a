"""Session lifecycle: start, end, retroactive sessions and token issue."""
from datetime import timedelta

import pytest

from attendguard.models.class_session import ClassSession, SessionState, SessionType
from attendguard.services.session_service import SessionService
from attendguard.utils.exceptions import (
    AuthorizationError, ConflictError, NotFoundError, ValidationError
)
from attendguard.utils.helpers import utcnow
from tests.conftest import ANCHOR

def test_start_creates_active_session(classroom, teacher):
    session = SessionService.start(classroom.id, teacher, '10.0.0.1', location=ANCHOR, session_type='Lab')
    
    assert session.active
    assert session.state == SessionState.ACTIVE
    assert session.origin_ip == '10.0.0.1'
    assert session.session_type == SessionType.LAB
    assert session.anchor == ANCHOR
    assert session.teacher_id == teacher.id
    assert session.end_time is None

def test_start_snapshots_default_security_config(app, classroom, teacher):
    session = SessionService.start(classroom.id, teacher, '10.0.0.1')
    
    assert session.security_config() == {
        'radius_meters': 50.0,
        'ip_match_enabled': True,
        'device_lock_enabled': False,
        'refresh_seconds': 20,
        'manual_approval_required': False
    }

def test_later_default_changes_do_not_alter_running_session(app, classroom, teacher):
    session = SessionService.start(classroom.id, teacher, '10.0.0.1')
    app.config['GEOFENCE_DEFAULT_RADIUS'] = 5
    app.config['SECURITY_MANUAL_APPROVAL'] = True
    
    reloaded = ClassSession.get_by_id(session.id)
    assert reloaded.radius_meters == 50.0
    assert reloaded.manual_approval_required is False

def test_start_applies_overrides(classroom, teacher):
    session = SessionService.start(
        classroom.id, teacher, '10.0.0.1',
        security={'radius_meters': 20, 'device_lock_enabled': True, 'refresh_seconds': 5}
    )
    assert session.radius_meters == 20
    assert session.device_lock_enabled is True
    assert session.refresh_seconds == 5

@pytest.mark.parametrize('security', [
    {'refresh_seconds': 4},
    {'refresh_seconds': 61},
    {'radius_meters': 0},
    {'radius_meters': 'far'},
    {'device_lock_enabled': 'yes'},
    {'unknown_rule': True},
    5,
    [{'radius_meters': 10}],
    'strict',
])
def test_start_rejects_bad_overrides(classroom, teacher, security):
    with pytest.raises(ValidationError):
        SessionService.start(classroom.id, teacher, '10.0.0.1', security=security)

def test_start_rejects_unknown_type(classroom, teacher):
    with pytest.raises(ValidationError):
        SessionService.start(classroom.id, teacher, '10.0.0.1', session_type='Seminar')

def test_second_start_conflicts(classroom, teacher):
    SessionService.start(classroom.id, teacher, '10.0.0.1')
    with pytest.raises(ConflictError):
        SessionService.start(classroom.id, teacher, '10.0.0.1')

def test_concurrent_start_loses_on_unique_index(classroom, teacher, monkeypatch):
    # Both requests pass the existence read before either commits
    monkeypatch.setattr(ClassSession, 'find_active', classmethod(lambda cls, class_id: None))
    
    SessionService.start(classroom.id, teacher, '10.0.0.1')
    with pytest.raises(ConflictError):
        SessionService.start(classroom.id, teacher, '10.0.0.1')
    
    assert ClassSession.query.filter_by(class_id=classroom.id, active=True).count() == 1

def test_start_requires_ownership(classroom, other_teacher):
    with pytest.raises(AuthorizationError):
        SessionService.start(classroom.id, other_teacher, '10.0.0.1')

def test_admin_may_start_any_class(classroom, admin, teacher):
    session = SessionService.start(classroom.id, admin, '10.0.0.1')
    assert session.teacher_id == teacher.id

def test_class_teacher_runs_admin_started_session(classroom, admin, teacher, codec):
    session = SessionService.start(classroom.id, admin, '10.0.0.1')

    result = SessionService.issue_token(session.id, teacher, include_image=False)
    assert codec.verify(result['token']).teacher_id == teacher.id

    assert SessionService.end(session.id, teacher).active is False

def test_retroactive_session_belongs_to_class_teacher(classroom, admin, teacher):
    start = utcnow() - timedelta(days=1)
    session = SessionService.create_retroactive(
        classroom.id, start, start + timedelta(hours=1), admin, None
    )
    assert session.teacher_id == teacher.id

def test_start_unknown_class(app, teacher):
    with pytest.raises(NotFoundError):
        SessionService.start(999, teacher, '10.0.0.1')

def test_end_session(classroom, teacher):
    session = SessionService.start(classroom.id, teacher, '10.0.0.1')
    
    ended = SessionService.end(session.id, teacher)
    
    assert not ended.active
    assert ended.state == SessionState.ENDED
    assert ended.end_time is not None

def test_end_is_irreversible(classroom, teacher):
    session = SessionService.start(classroom.id, teacher, '10.0.0.1')
    SessionService.end(session.id, teacher)
    
    with pytest.raises(ConflictError):
        SessionService.end(session.id, teacher)

def test_new_session_after_end(classroom, teacher):
    first = SessionService.start(classroom.id, teacher, '10.0.0.1')
    SessionService.end(first.id, teacher)
    
    second = SessionService.start(classroom.id, teacher, '10.0.0.1')
    assert second.id != first.id

def test_end_errors(classroom, teacher, other_teacher):
    session = SessionService.start(classroom.id, teacher, '10.0.0.1')
    
    with pytest.raises(NotFoundError):
        SessionService.end(999, teacher)
    with pytest.raises(AuthorizationError):
        SessionService.end(session.id, other_teacher)

def test_create_retroactive(classroom, teacher):
    start = utcnow() - timedelta(days=2)
    session = SessionService.create_retroactive(
        classroom.id, start, start + timedelta(hours=1), teacher, '10.0.0.1'
    )
    
    assert session.is_retroactive
    assert not session.active
    assert session.state == SessionState.ENDED
    assert session.start_time == start

def test_retroactive_does_not_block_live_session(classroom, teacher):
    start = utcnow() - timedelta(days=1)
    SessionService.create_retroactive(classroom.id, start, start + timedelta(hours=1), teacher, None)
    
    assert SessionService.start(classroom.id, teacher, '10.0.0.1').active

@pytest.mark.parametrize('start_offset,end_offset', [
    (timedelta(hours=-1), timedelta(hours=-2)),
    (timedelta(hours=-1), timedelta(hours=-1)),
    (timedelta(hours=-1), timedelta(hours=1)),
    (timedelta(hours=1), timedelta(hours=2)),
])
def test_retroactive_range_validation(classroom, teacher, start_offset, end_offset):
    now = utcnow()
    with pytest.raises(ValidationError):
        SessionService.create_retroactive(
            classroom.id, now + start_offset, now + end_offset, teacher, None
        )

def test_retroactive_never_mints_tokens(classroom, teacher):
    start = utcnow() - timedelta(days=1)
    session = SessionService.create_retroactive(
        classroom.id, start, start + timedelta(hours=1), teacher, None
    )
    with pytest.raises(ConflictError):
        SessionService.issue_token(session.id, teacher, include_image=False)

def test_issue_token(classroom, teacher, codec):
    session = SessionService.start(classroom.id, teacher, '10.0.0.1')
    
    result = SessionService.issue_token(session.id, teacher)
    
    assert result['expires_in_seconds'] == 20
    assert result['session_id'] == session.id
    assert result['qr_image'].startswith('data:image/png;base64,')
    assert codec.verify(result['token']).session_id == session.id

def test_issue_token_requires_ownership(classroom, teacher, other_teacher):
    session = SessionService.start(classroom.id, teacher, '10.0.0.1')
    with pytest.raises(AuthorizationError):
        SessionService.issue_token(session.id, other_teacher, include_image=False)

def test_list_for_class(classroom, teacher, students, outsider):
    first = SessionService.start(classroom.id, teacher, '10.0.0.1')
    SessionService.end(first.id, teacher)
    second = SessionService.start(classroom.id, teacher, '10.0.0.1')
    
    assert [s.id for s in SessionService.list_for_class(classroom.id, students[0])] == [second.id, first.id]
    with pytest.raises(AuthorizationError):
        SessionService.list_for_class(classroom.id, outsider)
