"""Testing configuration."""
from datetime import timedelta

from .base import Config

class TestingConfig(Config):
    """Testing configuration class."""
    
    # Basic Flask config
    DEBUG = False
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    
    # Database (in-memory SQLite for testing)
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    
    # JWT Configuration
    JWT_SECRET_KEY = 'test-jwt-secret-with-enough-length-for-hs256'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)
    
    QR_TOKEN_SECRET = 'test-qr-secret-with-enough-length-for-hs256'
    QR_REFRESH_SECONDS = 20
    
    # Rate Limiting (disabled for testing)
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = 'memory://'
    
    # Logging
    LOG_LEVEL = 'WARNING'
