"""AttendGuard - Application Factory."""
import logging
import os
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)

def create_app(config_name: str = None) -> Flask:
    """Application factory pattern."""
    app = Flask(__name__)
    
    # Load configuration
    from attendguard.config import get_config
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    
    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    limiter.init_app(app)
    
    # Configure CORS
    CORS(app, origins=app.config.get('CORS_ORIGINS', ["*"]))
    
    setup_logging(app)
    register_blueprints(app)
    register_error_handlers(app)
    setup_database(app)
    register_commands(app)
    
    @app.route('/health')
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'AttendGuard',
            'version': '1.0.0'
        })
    
    return app

def register_blueprints(app: Flask) -> None:
    """Register all application blueprints."""
    from attendguard.api.auth import auth_bp
    from attendguard.api.sessions import sessions_bp
    from attendguard.api.attendance import attendance_bp
    
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(sessions_bp, url_prefix='/api/sessions')
    app.register_blueprint(attendance_bp, url_prefix='/api/attendance')

def register_error_handlers(app: Flask) -> None:
    """Register error handlers."""
    from attendguard.utils.exceptions import AttendanceError
    from attendguard.utils.helpers import handle_error
    from werkzeug.exceptions import HTTPException
    
    @app.errorhandler(AttendanceError)
    def handle_attendance_error(error):
        db.session.rollback()
        return jsonify(error.to_dict()), error.status_code
    
    @app.errorhandler(HTTPException)
    def handle_exception(e):
        return handle_error(e.description, e.code)
    
    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.exception("Unhandled error")
        return handle_error("Internal server error", 500)
    
    # JWT error handlers
    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_payload):
        return jsonify({
            'error': True,
            'message': 'Token has expired',
            'status_code': 401
        }), 401
    
    @jwt.invalid_token_loader
    def invalid_token_callback(error):
        return jsonify({
            'error': True,
            'message': 'Invalid token',
            'status_code': 401
        }), 401
    
    @jwt.unauthorized_loader
    def missing_token_callback(error):
        return jsonify({
            'error': True,
            'message': 'Authorization token required',
            'status_code': 401
        }), 401

def setup_logging(app: Flask) -> None:
    """Setup application logging."""
    level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO'), logging.INFO)
    app.logger.setLevel(level)
    
    if not app.debug and not app.testing:
        log_file = app.config.get('LOG_FILE', 'logs/app.log')
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        ))
        file_handler.setLevel(level)
        app.logger.addHandler(file_handler)
        
        app.logger.info('AttendGuard startup')

def setup_database(app: Flask) -> None:
    """Import models so their tables are registered on the metadata."""
    with app.app_context():
        from attendguard.models import (
            User, UserRole, Classroom, ClassSession, Attendance, DeviceClaim
        )

def register_commands(app: Flask) -> None:
    """Register CLI commands."""
    import click
    
    @app.cli.command('init-db')
    @click.option('--drop', is_flag=True, help='Drop existing tables')
    def init_db(drop):
        """Initialize the database."""
        if drop:
            db.drop_all()
            click.echo('Dropped all tables.')
        
        db.create_all()
        click.echo('Created all tables.')
    
    @app.cli.command('seed-demo')
    @click.option('--students', default=5, show_default=True, help='Number of demo students')
    def seed_demo(students):
        """Seed a demo teacher, students and class."""
        from attendguard.services.seed_service import SeedService, DEMO_PASSWORD
        
        classroom = SeedService.seed_all(student_count=students)
        click.echo(f'Seeded class {classroom.code} with {len(classroom.students)} students.')
        click.echo(f'Teacher: teacher@attendguard.dev / {DEMO_PASSWORD}')
    
    @app.cli.command('create-admin')
    def create_admin():
        """Create admin user."""
        email = click.prompt('Admin email')
        name = click.prompt('Admin name')
        password = click.prompt('Password', hide_input=True)
        
        from attendguard.models.user import User, UserRole
        
        admin = User(
            email=email.lower().strip(),
            name=name,
            role=UserRole.ADMIN
        )
        admin.set_password(password)
        db.session.add(admin)
        db.session.commit()
        click.echo(f'Admin user created: {email}')
