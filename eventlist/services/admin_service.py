"""
Administration service: dashboard figures and database maintenance.
"""

import logging
from typing import Any, Dict, Optional

from eventlist.services.category_service import CategoryService
from eventlist.services.database_service import DatabaseService
from eventlist.services.event_service import EventService
from eventlist.services.user_service import UserService


class AdminService:
    """Operations reserved to administrators."""

    def __init__(self, database_service: DatabaseService, config: Optional[Dict[str, Any]] = None):
        self.db = database_service
        self.config = config or {}
        self.users = UserService(database_service, self.config)
        self.events = EventService(database_service, user_service=self.users)
        self.categories = CategoryService(database_service, self.config.get('DEFAULT_CATEGORY_COLOR'))
        self.logger = logging.getLogger(__name__)

    def get_dashboard(self) -> Dict[str, Any]:
        """
        Everything the admin dashboard shows.

        Returns:
            {'events', 'categories', 'items', 'counts'}
        """
        return {
            'events': self.events.get_all_active_events(with_items=True),
            'categories': self.categories.get_categories_with_item_count(),
            'items': self.events.items.count_items(),
            'counts': self.db.get_table_counts()
        }

    def clear_database(self) -> bool:
        """
        Delete all application data, then recreate the configured admin.

        Every user is removed, so existing sessions stop resolving.
        """
        if not self.db.clear_all_data():
            return False

        self.logger.warning("Database cleared by an administrator")
        return self.users.ensure_admin_exists()

    def recreate_admin(self) -> bool:
        """Reset the configured administrator account."""
        return self.users.recreate_admin()
