"""
In-app notification model.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import json
import uuid

from .fields import parse_bool, parse_datetime, format_datetime

EVENT_SHARE = 'EVENT_SHARE'
EVENT_LEAVE = 'EVENT_LEAVE'


@dataclass
class Notification:
    """Message shown to a user about activity on shared events."""

    notification_id: str
    user_id: str
    type: str
    title: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    is_read: bool = False
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert notification to dictionary format."""
        return {
            'id': self.notification_id,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'data': self.data,
            'isRead': self.is_read,
            'createdAt': format_datetime(self.created_at)
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Notification':
        """Create Notification instance from a database row."""
        data = row.get('data') or {}
        if isinstance(data, str):
            data = json.loads(data) if data else {}

        return cls(
            notification_id=row['id'],
            user_id=row['user_id'],
            type=row['type'],
            title=row['title'],
            message=row['message'],
            data=data,
            is_read=parse_bool(row.get('is_read', False)),
            created_at=parse_datetime(row.get('created_at'))
        )

    @classmethod
    def create_new(cls, user_id: str, type: str, title: str, message: str,
                   data: Optional[Dict[str, Any]] = None) -> 'Notification':
        """Create a new, unread notification."""
        return cls(
            notification_id=str(uuid.uuid4()),
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            data=data or {}
        )
