"""
WSGI entry point for production deployment.
"""

import os
from eventlist import create_app

app = create_app(os.environ.get('FLASK_ENV', 'production'))
