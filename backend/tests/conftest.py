"""Shared fixtures: an app on in-memory SQLite with one populated class."""
import math

import pytest
from flask_jwt_extended import create_access_token

from attendguard import create_app, db
from attendguard.models.classroom import Classroom
from attendguard.models.user import User, UserRole
from attendguard.services.token_service import TokenCodec

EARTH_RADIUS_METERS = 6371000
ANCHOR = {'latitude': 10.0, 'longitude': 20.0}

def offset_north(point, meters):
    """A position ``meters`` due north of ``point``."""
    return {
        'latitude': point['latitude'] + math.degrees(meters / EARTH_RADIUS_METERS),
        'longitude': point['longitude']
    }

def make_user(email, name, role, roll_no=None):
    user = User(email=email, name=name, role=role, roll_no=roll_no)
    user.set_password('password123')
    return user.save()

@pytest.fixture
def app():
    """Create test app."""
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()

@pytest.fixture
def teacher(app):
    return make_user('teacher@example.com', 'Teacher One', UserRole.TEACHER)

@pytest.fixture
def other_teacher(app):
    return make_user('other@example.com', 'Teacher Two', UserRole.TEACHER)

@pytest.fixture
def admin(app):
    return make_user('admin@example.com', 'Admin', UserRole.ADMIN)

@pytest.fixture
def students(app):
    return [
        make_user(f'student{i}@example.com', f'Student {i}', UserRole.STUDENT, roll_no=f'R{i:03d}')
        for i in range(1, 4)
    ]

@pytest.fixture
def outsider(app):
    return make_user('outsider@example.com', 'Not Enrolled', UserRole.STUDENT)

@pytest.fixture
def classroom(app, teacher, students):
    classroom = Classroom(name='Networks', code='NET101', teacher_id=teacher.id)
    classroom.students.extend(students)
    return classroom.save()

@pytest.fixture
def codec(app):
    return TokenCodec.from_app()

@pytest.fixture
def auth_headers(app):
    """Build bearer headers for a user, optionally from a given origin."""
    def _headers(user, ip=None):
        headers = {'Authorization': f'Bearer {create_access_token(identity=str(user.id))}'}
        if ip:
            headers['X-Forwarded-For'] = ip
        return headers
    return _headers
