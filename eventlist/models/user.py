"""
User model for authentication and event ownership.
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import uuid

from .fields import parse_bool, parse_datetime, format_datetime


@dataclass
class User:
    """
    Registered user.

    Users sign in with a username and password. Admin users can see and
    delete every event and manage categories.
    """

    # User identification
    user_id: str
    username: str
    password_hash: str = ''
    email: Optional[str] = None

    is_admin: bool = False

    # Metadata
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Initialize default values."""
        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc)

        if self.updated_at is None:
            self.updated_at = self.created_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert user to dictionary format (never includes the password hash)."""
        return {
            'id': self.user_id,
            'username': self.username,
            'email': self.email,
            'isAdmin': self.is_admin,
            'createdAt': format_datetime(self.created_at)
        }

    def to_session(self) -> Dict[str, Any]:
        """Minimal identity stored in the server-side session."""
        return {
            'user_id': self.user_id,
            'username': self.username,
            'is_admin': self.is_admin
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'User':
        """
        Create User instance from a database row.

        Args:
            row: Dictionary of column values

        Returns:
            User instance
        """
        return cls(
            user_id=row['id'],
            username=row['username'],
            password_hash=row.get('password_hash') or '',
            email=row.get('email'),
            is_admin=parse_bool(row.get('is_admin', False)),
            created_at=parse_datetime(row.get('created_at')),
            updated_at=parse_datetime(row.get('updated_at'))
        )

    @classmethod
    def create_new(cls, username: str, password_hash: str,
                   email: Optional[str] = None, is_admin: bool = False) -> 'User':
        """Create a new, not yet persisted user."""
        return cls(
            user_id=str(uuid.uuid4()),
            username=username,
            password_hash=password_hash,
            email=email,
            is_admin=is_admin
        )
