"""
Flask application factory for Event Shopping Lists.

Pages live under `/`, `/auth`, `/events` and `/admin`; the JSON API is
mounted at `/api/v1`. Services are built per request from
`app.database_service`, which is created once here.
"""

import logging
from pathlib import Path
from zoneinfo import ZoneInfo
from cachelib.file import FileSystemCache
from flask import Flask, render_template, request
from flask_session import Session
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_wtf.csrf import CSRFProtect

from config.config import get_config

LOG_FORMAT = '%(asctime)s %(levelname)s [%(name)s] %(message)s [in %(pathname)s:%(lineno)d]'
CONSOLE_LOG_FORMAT = '%(levelname)s [%(name)s] %(message)s'

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ('werkzeug', 'sqlalchemy.engine', 'urllib3')

# Item photos are arbitrary remote images
CONTENT_SECURITY_POLICY = (
    "default-src 'self'; "
    "script-src 'self' 'unsafe-inline'; "
    "style-src 'self' 'unsafe-inline'; "
    "img-src 'self' data: https: http:; "
    "connect-src 'self'"
)

# status -> (API error code, message shown on HTML pages)
HTTP_ERRORS = {
    403: ('FORBIDDEN', "Vous n'avez pas accès à cette page."),
    404: ('NOT_FOUND', 'Page introuvable.'),
    429: ('RATE_LIMIT_EXCEEDED', 'Trop de requêtes. Réessayez dans un instant.'),
    500: ('INTERNAL_ERROR', 'Une erreur interne est survenue.'),
}


def create_app(config_name=None, **overrides):
    """
    Create and configure the Flask application.

    Args:
        config_name: 'development', 'production' or 'testing'
        **overrides: Config values applied on top of the config class
    """
    app = Flask(__name__, template_folder='templates', static_folder='static')

    app.config.from_object(get_config(config_name))
    app.config.update(overrides)
    app.timezone = ZoneInfo(app.config['TIMEZONE'])

    _prepare_paths(app)
    _setup_logging(app)
    _init_extensions(app)
    _register_blueprints(app)
    _setup_error_handlers(app)
    _init_database(app)

    return app


def _prepare_paths(app):
    """Make sure the session, log and SQLite directories exist."""
    paths = [Path(app.config['SESSION_FILE_DIR']), Path(app.config['LOG_FILE']).parent]

    database_url = app.config.get('DATABASE_URL', '')
    if database_url.startswith('sqlite:///') and ':memory:' not in database_url:
        paths.append(Path(database_url[len('sqlite:///'):]).parent)

    for path in paths:
        path.mkdir(parents=True, exist_ok=True)


def _setup_logging(app):
    """Send every logger to the log file, and to the console when debugging."""
    level_name = app.config.get('LOG_LEVEL', 'INFO')
    level = getattr(logging, level_name)
    log_file = Path(app.config.get('LOG_FILE', 'logs/app.log'))

    handlers = [logging.FileHandler(log_file, encoding='utf-8')]
    handlers[0].setFormatter(logging.Formatter(LOG_FORMAT))
    if app.debug and not app.testing:
        handlers.append(logging.StreamHandler())
        handlers[-1].setFormatter(logging.Formatter(CONSOLE_LOG_FORMAT))

    root_logger = logging.getLogger()
    # create_app may run several times in one process (tests)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setLevel(level)
        root_logger.addHandler(handler)
    root_logger.setLevel(level)
    app.logger.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    app.logger.info(f'Event lists starting: log level {level_name}, file {log_file}')


def _init_extensions(app):
    """Sessions, CSRF, CORS, rate limiting and response headers."""
    # Server-side sessions kept in a cachelib file store
    if app.config.get('SESSION_TYPE') == 'cachelib' and not app.config.get('SESSION_CACHELIB'):
        app.config['SESSION_CACHELIB'] = FileSystemCache(
            cache_dir=str(app.config['SESSION_FILE_DIR']),
            threshold=app.config.get('SESSION_FILE_THRESHOLD', 500)
        )
    Session(app)

    # HTML forms only; the API blueprint is exempted when registered
    app.csrf = CSRFProtect(app)

    CORS(app, resources={
        r"/api/*": {
            "origins": app.config.get('CORS_ORIGINS', []),
            "methods": ["GET", "POST", "PUT", "PATCH", "DELETE"],
            "allow_headers": ["Content-Type", "X-Admin-Password"],
            "supports_credentials": True
        }
    })

    app.limiter = Limiter(
        key_func=get_remote_address,
        app=app,
        storage_uri=app.config.get('RATELIMIT_STORAGE_URL', 'memory://'),
        default_limits=[app.config.get('RATELIMIT_DEFAULT', '200 per minute')]
    )

    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Referrer-Policy'] = 'same-origin'
        response.headers['Content-Security-Policy'] = CONTENT_SECURITY_POLICY
        if not app.debug:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response


def _register_blueprints(app):
    """Register page and API blueprints."""
    from eventlist.routes import admin_bp, api_bp, auth_bp, events_bp, main_bp

    app.csrf.exempt(api_bp)

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(events_bp, url_prefix='/events')
    app.register_blueprint(admin_bp, url_prefix='/admin')
    app.register_blueprint(api_bp, url_prefix='/api/v1')


def _setup_error_handlers(app):
    """JSON envelopes under /api/, French error pages elsewhere."""

    def handle_http_error(error):
        status = getattr(error, 'code', None) or 500
        code, message = HTTP_ERRORS.get(status, HTTP_ERRORS[500])
        if status >= 500:
            app.logger.error(f"Internal server error on {request.path}: {str(error)}")

        if request.path.startswith('/api/'):
            return {'success': False, 'error': {'code': code, 'message': message}}, status
        if status == 404:
            return render_template('404.html'), 404
        return render_template('error.html', error_message=message), status

    for status in HTTP_ERRORS:
        app.register_error_handler(status, handle_http_error)


def _init_database(app):
    """Connect to the database, create tables and the bootstrap admin."""
    from eventlist.services.database_service import DatabaseService
    from eventlist.services.user_service import UserService

    app.database_service = DatabaseService(app.config)

    if not app.database_service.is_available():
        app.logger.error("Database service not available!")
        return

    if not app.database_service.create_tables():
        app.logger.error("Failed to create database tables!")
        return

    UserService(app.database_service, app.config).ensure_admin_exists()
    app.logger.info(f"Database ready: {app.database_service.get_table_counts()}")
