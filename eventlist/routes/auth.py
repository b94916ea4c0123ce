"""
Authentication routes for user login, registration and logout.

The signed-in user is resolved once per request from the server-side
session and exposed as `g.current_user`.
"""

import logging
from functools import wraps
from typing import Optional
from flask import Blueprint, render_template, request, session, redirect, url_for, flash, jsonify, current_app, g

from eventlist.models.user import User
from eventlist.services.user_service import UserService

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)


def get_user_service() -> UserService:
    """Get user service instance."""
    if not getattr(current_app, 'database_service', None) or not current_app.database_service.is_available():
        raise RuntimeError("Database service not available")
    return UserService(current_app.database_service, current_app.config)


def get_current_user() -> Optional[User]:
    """
    Get the signed-in user for this request.

    Clears the session when it points to a user that no longer exists.
    """
    if 'current_user' in g:
        return g.current_user

    user = None
    user_id = session.get('user_id')
    if user_id:
        try:
            user = get_user_service().get_user(user_id)
        except RuntimeError as e:
            logger.error(f"Cannot resolve session user: {str(e)}")
        if user is None:
            session.clear()

    g.current_user = user
    return user


def login_user(user: User):
    """Store the user's identity in the session."""
    session.clear()
    session.update(user.to_session())
    g.current_user = user


@auth_bp.app_context_processor
def inject_current_user():
    """Expose the signed-in user to every template."""
    return {'current_user': get_current_user()}


def _wants_json() -> bool:
    return request.path.startswith('/api/') or request.is_json


# Authentication required decorator
def login_required(f):
    """Decorator to require authentication for routes."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if get_current_user() is None:
            if _wants_json():
                return jsonify({'success': False,
                                'error': {'code': 'AUTH_REQUIRED', 'message': 'Authentication required'}}), 401
            flash('Please sign in first.', 'error')
            return redirect(url_for('auth.login', next=request.path))

        return f(*args, **kwargs)

    return decorated_function


def admin_required(f):
    """Decorator to require an administrator."""

    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if not g.current_user.is_admin:
            if _wants_json():
                return jsonify({'success': False,
                                'error': {'code': 'ADMIN_REQUIRED', 'message': 'Administrator access required'}}), 403
            flash('Administrator access required.', 'error')
            return redirect(url_for('main.index'))

        return f(*args, **kwargs)

    return decorated_function


def _safe_next(target: Optional[str]) -> Optional[str]:
    """Only allow redirects to local paths."""
    if target and target.startswith('/') and not target.startswith('//'):
        return target
    return None


@auth_bp.route('/login', methods=['GET', 'POST'])
def login():
    """User login page and handler."""
    if request.method == 'GET':
        return render_template('login.html', next=request.args.get('next', ''))

    username = request.form.get('username', '').strip()
    password = request.form.get('password', '')
    next_url = _safe_next(request.form.get('next'))

    if not username or not password:
        flash('Please enter your username and password.', 'error')
        return render_template('login.html', next=next_url or ''), 400

    try:
        user = get_user_service().authenticate_user(username, password)
    except RuntimeError as e:
        logger.error(f"Database service not available during login: {str(e)}")
        flash('System is still initializing. Please wait a moment and try again.', 'error')
        return render_template('login.html', next=next_url or ''), 503

    if not user:
        flash('Incorrect username or password.', 'error')
        return render_template('login.html', next=next_url or ''), 401

    login_user(user)
    logger.info(f"User logged in successfully: {user.username}")
    flash(f'Welcome, {user.username}!', 'success')

    return redirect(next_url or url_for('events.my_events'))


@auth_bp.route('/register', methods=['GET', 'POST'])
def register():
    """User registration page and handler."""
    if request.method == 'GET':
        return render_template('register.html')

    try:
        user = get_user_service().register_user(
            request.form.get('username', ''),
            request.form.get('password', ''),
            request.form.get('email') or None
        )
    except ValueError as e:
        flash(str(e), 'error')
        return render_template('register.html'), 400
    except RuntimeError as e:
        logger.error(f"Error during registration: {str(e)}")
        flash('An error occurred during registration. Please try again.', 'error')
        return render_template('register.html'), 500

    flash(f'Account created for {user.username}. You can sign in now.', 'success')
    return redirect(url_for('auth.login'))


@auth_bp.route('/logout', methods=['GET', 'POST'])
def logout():
    """User logout."""
    username = session.get('username')
    session.clear()
    g.pop('current_user', None)

    logger.info(f"User logged out: {username}")
    flash('You have been logged out successfully.', 'success')

    return redirect(url_for('main.index'))
