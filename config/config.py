"""
Configuration settings for the Event Shopping Lists application.
"""

import os
from datetime import timedelta
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).parent.parent.absolute()


class Config:
    """Base configuration."""

    # Flask Configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'event-lists-dev-key-change-in-production'

    # Session Configuration
    SESSION_TYPE = 'cachelib'
    SESSION_FILE_DIR = BASE_DIR / 'data' / 'sessions'
    SESSION_PERMANENT = False
    PERMANENT_SESSION_LIFETIME = timedelta(days=7)

    # Database Configuration
    DATABASE_URL = os.environ.get('DATABASE_URL') or f"sqlite:///{BASE_DIR / 'data' / 'events.db'}"
    SQL_ECHO = False

    # Bootstrap administrator
    ADMIN_USERNAME = os.environ.get('ADMIN_USERNAME', 'admin')
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD', 'admin')

    # Application Settings
    DEFAULT_CATEGORY_COLOR = '#3B82F6'

    # Event dates are wall-clock times in this zone
    TIMEZONE = os.environ.get('APP_TIMEZONE', 'Europe/Paris')

    # Recurring dates (month, day) for the well-known event types.
    # An empty mapping makes every type recur on its own stored date.
    RECURRING_EVENT_DATES = {
        'anniversaire': (9, 28),
        'noel': (12, 25),
        'saint-valentin': (2, 14),
        'anniversaire-rencontre': (11, 4),
    }

    # Rate Limiting
    RATELIMIT_STORAGE_URL = "memory://"
    RATELIMIT_DEFAULT = "200 per minute"

    # CORS
    CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FILE = BASE_DIR / 'logs' / 'app.log'


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False

    # More verbose logging in development
    LOG_LEVEL = 'DEBUG'

    WTF_CSRF_ENABLED = False


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False

    # Production security
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    WTF_CSRF_ENABLED = True

    # Production logging
    LOG_LEVEL = 'WARNING'


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    DEBUG = True

    # Tests point these at a temporary directory
    DATABASE_URL = 'sqlite:///' + str(BASE_DIR / 'data' / 'test_events.db')
    SESSION_FILE_DIR = BASE_DIR / 'data' / 'test_sessions'
    LOG_FILE = BASE_DIR / 'logs' / 'test.log'

    ADMIN_USERNAME = 'admin'
    ADMIN_PASSWORD = 'admin-test'
    TIMEZONE = 'Europe/Paris'

    # Disable CSRF and rate limiting for tests
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config(config_name=None):
    """Get configuration based on environment."""
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'default')

    return config.get(config_name, config['default'])
