"""
Notification service for in-app messages about shared events.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from eventlist.models.notification import Notification
from eventlist.models.user import User
from eventlist.services.database_service import DatabaseService


class NotificationService:
    """Stores and reads per-user notifications."""

    def __init__(self, database_service: DatabaseService):
        self.db = database_service
        self.logger = logging.getLogger(__name__)

    def notify(self, user_id: str, type: str, title: str, message: str,
               data: Optional[Dict[str, Any]] = None) -> Optional[Notification]:
        """
        Create a notification for a user.

        Returns:
            Created Notification, or None if it could not be stored
        """
        notification = Notification.create_new(user_id, type, title, message, data)

        success = self.db.execute_update(
            """INSERT INTO notifications (id, user_id, type, title, message, data, is_read, created_at)
               VALUES (:id, :user_id, :type, :title, :message, :data, :is_read, :created_at)""",
            {
                'id': notification.notification_id,
                'user_id': notification.user_id,
                'type': notification.type,
                'title': notification.title,
                'message': notification.message,
                'data': json.dumps(notification.data),
                'is_read': False,
                'created_at': notification.created_at.isoformat()
            }
        )

        if not success:
            self.logger.error(f"Failed to store {type} notification for user {user_id}")
            return None

        self.logger.debug(f"Stored {type} notification for user {user_id}")
        return notification

    def get_user_notifications(self, user: User, unread_only: bool = False,
                               limit: int = 50) -> List[Notification]:
        """Get a user's notifications, newest first."""
        query = "SELECT * FROM notifications WHERE user_id = :user_id"
        if unread_only:
            query += " AND is_read = :is_read"
        query += " ORDER BY created_at DESC LIMIT :limit"

        rows = self.db.execute_query(query, {'user_id': user.user_id, 'is_read': False, 'limit': limit})
        return [Notification.from_row(row) for row in rows]

    def get_unread_count(self, user: User) -> int:
        """Number of unread notifications for a user."""
        return self.db.count(
            "SELECT COUNT(*) AS count FROM notifications WHERE user_id = :user_id AND is_read = :is_read",
            {'user_id': user.user_id, 'is_read': False}
        )

    def mark_as_read(self, notification_id: str, user: User) -> bool:
        """
        Mark one of the user's notifications as read.

        Returns:
            True if the notification exists and belongs to the user
        """
        row = self.db.query_one(
            "SELECT id FROM notifications WHERE id = :id AND user_id = :user_id",
            {'id': notification_id, 'user_id': user.user_id}
        )
        if not row:
            return False

        return self.db.execute_update(
            "UPDATE notifications SET is_read = :is_read WHERE id = :id",
            {'is_read': True, 'id': notification_id}
        )

    def mark_all_as_read(self, user: User) -> bool:
        """Mark every notification of a user as read."""
        return self.db.execute_update(
            "UPDATE notifications SET is_read = :is_read WHERE user_id = :user_id",
            {'is_read': True, 'user_id': user.user_id}
        )
