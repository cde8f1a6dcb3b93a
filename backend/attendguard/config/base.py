"""Base configuration shared by every environment."""
import os
from datetime import timedelta

class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False
    
    # JWT Configuration (caller identity)
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=2)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=7)
    JWT_ALGORITHM = 'HS256'
    
    # Rotating QR tokens, signed separately from access tokens
    QR_TOKEN_SECRET = os.environ.get('QR_TOKEN_SECRET') or 'qr-secret-key-change-in-production'
    QR_TOKEN_ALGORITHM = 'HS256'
    QR_REFRESH_SECONDS = int(os.environ.get('QR_REFRESH_SECONDS', 20))
    QR_REFRESH_MIN_SECONDS = 5
    QR_REFRESH_MAX_SECONDS = 60
    # Clock skew tolerated between instances verifying each other's codes
    QR_TOKEN_LEEWAY_SECONDS = int(os.environ.get('QR_TOKEN_LEEWAY_SECONDS', 2))
    
    # Session security defaults, snapshotted onto each session at start
    GEOFENCE_DEFAULT_RADIUS = float(os.environ.get('GEOFENCE_DEFAULT_RADIUS', 50))
    SECURITY_IP_MATCH_ENABLED = True
    SECURITY_DEVICE_LOCK_ENABLED = False
    SECURITY_MANUAL_APPROVAL = False
    
    # CORS
    CORS_ORIGINS = ["http://localhost:*", "http://127.0.0.1:*"]
    
    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL') or 'memory://'
    RATELIMIT_DEFAULT = "200 per day, 50 per hour"
    SCAN_RATE_LIMIT = "30 per minute"
    TOKEN_RATE_LIMIT = "60 per minute"
    
    # Logging
    LOG_LEVEL = 'INFO'
    LOG_FILE = 'logs/app.log'
