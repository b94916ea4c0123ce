"""
User service for registration, authentication, and the bootstrap admin.

Passwords are stored as salted hashes produced by werkzeug.security.
"""

import logging
from typing import Any, Dict, Optional
from datetime import datetime, timezone

from werkzeug.security import generate_password_hash, check_password_hash

from eventlist.models.user import User
from eventlist.services.database_service import DatabaseService
from eventlist.services.security_service import SecurityService


class UserService:
    """
    Service for user authentication and management.

    Handles registration, password checks and the administrator account
    created from configuration at start-up.
    """

    def __init__(self, database_service: DatabaseService, config: Optional[Dict[str, Any]] = None):
        """
        Initialize user service with database service.

        Args:
            database_service: Database service instance
            config: Application config (for the bootstrap admin credentials)
        """
        self.db = database_service
        self.config = config or {}
        self.logger = logging.getLogger(__name__)

    def register_user(self, username: str, password: str,
                      email: Optional[str] = None) -> User:
        """
        Register a new user.

        Args:
            username: Unique username
            password: Plain text password (stored hashed)
            email: Optional email address

        Returns:
            Created User

        Raises:
            ValueError: if input is invalid or the username is taken
            RuntimeError: if the user could not be stored
        """
        username = (username or '').strip()
        email = SecurityService.clean_optional_text(email)

        if not SecurityService.validate_username(username):
            raise ValueError("Username must be 3-30 letters, digits, '.', '_' or '-'")

        if not SecurityService.validate_password(password):
            raise ValueError(f"Password must be at least {SecurityService.MIN_PASSWORD_LENGTH} characters")

        if not SecurityService.validate_email(email):
            raise ValueError("Invalid email address")

        if self.get_user_by_username(username):
            raise ValueError("This username is already taken")

        user = User.create_new(username, generate_password_hash(password), email=email)
        if not self._insert_user(user):
            raise RuntimeError("Failed to create user")

        self.logger.info(f"Registered user {username}")
        return user

    def authenticate_user(self, username: str, password: str) -> Optional[User]:
        """
        Check credentials.

        Args:
            username: Username
            password: Plain text password

        Returns:
            User if the credentials match, None otherwise
        """
        if not username or not password:
            return None

        user = self.get_user_by_username(username.strip())
        if not user or not check_password_hash(user.password_hash, password):
            SecurityService.log_security_event('login_failed', username, severity='WARNING')
            return None

        SecurityService.log_security_event('login', username)
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        if not user_id:
            return None

        row = self.db.query_one("SELECT * FROM users WHERE id = :id", {'id': user_id})
        return User.from_row(row) if row else None

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Get user by username (case-insensitive)."""
        if not username:
            return None

        row = self.db.query_one(
            "SELECT * FROM users WHERE LOWER(username) = LOWER(:username)",
            {'username': username}
        )
        return User.from_row(row) if row else None

    def ensure_admin_exists(self) -> bool:
        """
        Create the configured administrator when no admin account exists.

        Returns:
            True if an admin exists after the call
        """
        if self.db.count("SELECT COUNT(*) AS count FROM users WHERE is_admin = :admin", {'admin': True}):
            return True

        return self.recreate_admin()

    def recreate_admin(self) -> bool:
        """
        Reset the configured administrator account.

        Creates the account if missing, otherwise restores its password and
        admin flag from configuration.
        """
        username = self.config.get('ADMIN_USERNAME', 'admin')
        password = self.config.get('ADMIN_PASSWORD', 'admin')
        password_hash = generate_password_hash(password)

        existing = self.get_user_by_username(username)
        if existing:
            success = self.db.execute_update(
                """UPDATE users SET password_hash = :password_hash, is_admin = :admin,
                   updated_at = :now WHERE id = :id""",
                {'password_hash': password_hash, 'admin': True,
                 'now': datetime.now(timezone.utc).isoformat(), 'id': existing.user_id}
            )
        else:
            success = self._insert_user(User.create_new(username, password_hash, is_admin=True))

        if success:
            self.logger.info(f"Administrator account '{username}' is ready")
        else:
            self.logger.error(f"Failed to create administrator account '{username}'")

        return success

    def check_admin_password(self, password: str) -> bool:
        """Check a password against every administrator account."""
        if not password:
            return False

        rows = self.db.execute_query(
            "SELECT password_hash FROM users WHERE is_admin = :admin", {'admin': True}
        )
        return any(check_password_hash(row['password_hash'], password) for row in rows)

    def _insert_user(self, user: User) -> bool:
        """Store a new user row."""
        return self.db.execute_update(
            """INSERT INTO users (id, username, password_hash, email, is_admin, created_at, updated_at)
               VALUES (:id, :username, :password_hash, :email, :is_admin, :created_at, :updated_at)""",
            {
                'id': user.user_id,
                'username': user.username,
                'password_hash': user.password_hash,
                'email': user.email,
                'is_admin': user.is_admin,
                'created_at': user.created_at.isoformat(),
                'updated_at': user.updated_at.isoformat()
            }
        )
