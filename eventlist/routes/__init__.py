"""
Flask routes for the Event Shopping Lists application.
"""

from .main import main_bp
from .auth import auth_bp
from .events import events_bp
from .admin import admin_bp
from .api import api_bp

__all__ = [
    'main_bp',
    'auth_bp',
    'events_bp',
    'admin_bp',
    'api_bp'
]
