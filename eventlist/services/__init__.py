"""
Service layer for Event Shopping Lists.
"""

from .database_service import DatabaseService
from .admin_service import AdminService
from .user_service import UserService
from .event_service import EventService, EventAccess
from .shopping_item_service import ShoppingItemService
from .category_service import CategoryService
from .notification_service import NotificationService
from .event_presenter import EventListPresenter
from .occurrence_resolver import resolve_next_occurrence, countdown_parts, Occurrence

__all__ = [
    'DatabaseService',
    'AdminService',
    'UserService',
    'EventService',
    'EventAccess',
    'ShoppingItemService',
    'CategoryService',
    'NotificationService',
    'EventListPresenter',
    'resolve_next_occurrence',
    'countdown_parts',
    'Occurrence'
]
