"""
Data models for the Event Shopping Lists application.
"""

from .user import User
from .category import Category
from .shopping_item import ShoppingItem, ItemPhoto
from .event import Event, EventShare
from .notification import Notification

__all__ = [
    'User',
    'Category',
    'ShoppingItem',
    'ItemPhoto',
    'Event',
    'EventShare',
    'Notification'
]
