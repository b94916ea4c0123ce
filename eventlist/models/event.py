"""
Event model: a celebration owning a shopping list.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone
import uuid

from .shopping_item import ShoppingItem
from .fields import parse_bool, parse_datetime, format_datetime

# Known event types and their display labels
EVENT_TYPES = {
    'anniversaire': 'Anniversaire',
    'noel': 'Noël',
    'saint-valentin': 'Saint-Valentin',
    'anniversaire-rencontre': 'Anniversaire de rencontre',
    'autre': 'Autre',
}

EVENT_EMOJIS = {
    'anniversaire': '🎂',
    'noel': '🎄',
    'saint-valentin': '💝',
    'anniversaire-rencontre': '💕',
}


@dataclass
class EventShare:
    """Access granted on an event to a user other than its owner."""
    share_id: str
    event_id: str
    user_id: str
    can_edit: bool = False
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.share_id,
            'eventId': self.event_id,
            'userId': self.user_id,
            'canEdit': self.can_edit,
            'createdAt': format_datetime(self.created_at)
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'EventShare':
        """Create EventShare instance from a database row."""
        return cls(
            share_id=row['id'],
            event_id=row['event_id'],
            user_id=row['user_id'],
            can_edit=parse_bool(row.get('can_edit', False)),
            created_at=parse_datetime(row.get('created_at'))
        )


@dataclass
class Event:
    """
    Event model.

    `target_date` is only meaningful when `has_target_date` is set; a
    dateless event never gets a countdown.
    """

    # Event identification
    event_id: str
    name: str
    event_type: str

    # Target date
    target_date: Optional[datetime] = None
    has_target_date: bool = True

    # Visibility
    is_private: bool = False
    is_active: bool = True

    # Ownership
    owner_id: Optional[str] = None
    owner_username: Optional[str] = None

    # Shopping list
    items: List[ShoppingItem] = field(default_factory=list)

    # Viewer-relative flags (filled when listing a user's events)
    is_owned: Optional[bool] = None
    can_edit: Optional[bool] = None
    shared_by: Optional[str] = None

    # Metadata
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Normalise target date state."""
        if not self.has_target_date:
            self.target_date = None

        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc)

        if self.updated_at is None:
            self.updated_at = self.created_at

    @property
    def has_countdown(self) -> bool:
        """True when a next occurrence can be resolved for this event."""
        return self.has_target_date and self.target_date is not None

    @property
    def type_label(self) -> str:
        return EVENT_TYPES.get(self.event_type, self.event_type)

    @property
    def emoji(self) -> str:
        return EVENT_EMOJIS.get(self.event_type, '🎁')

    def get_item_count(self) -> int:
        """Get total number of items."""
        return len(self.items)

    def get_purchased_count(self) -> int:
        """Get number of purchased items."""
        return sum(1 for item in self.items if item.is_purchased)

    def get_total_price(self) -> float:
        """Sum of known item prices."""
        return round(sum(item.price or 0.0 for item in self.items), 2)

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary format."""
        data = {
            'id': self.event_id,
            'name': self.name,
            'eventType': self.event_type,
            'targetDate': format_datetime(self.target_date),
            'hasTargetDate': self.has_target_date,
            'isPrivate': self.is_private,
            'isActive': self.is_active,
            'ownerId': self.owner_id,
            'owner': {'id': self.owner_id, 'username': self.owner_username} if self.owner_id else None,
            'items': [item.to_dict() for item in self.items],
            'createdAt': format_datetime(self.created_at),
            'updatedAt': format_datetime(self.updated_at)
        }

        if self.is_owned is not None:
            data['isOwned'] = self.is_owned
            data['canEdit'] = bool(self.can_edit)
            data['sharedBy'] = self.shared_by

        return data

    @classmethod
    def from_row(cls, row: Dict[str, Any], items: Optional[List[ShoppingItem]] = None) -> 'Event':
        """
        Create Event instance from a database row.

        Args:
            row: Dictionary of column values (optionally joined with the
                owner's `owner_username`)
            items: Items already loaded for this event

        Returns:
            Event instance
        """
        return cls(
            event_id=row['id'],
            name=row['name'],
            event_type=row['event_type'],
            target_date=parse_datetime(row.get('target_date')),
            has_target_date=parse_bool(row.get('has_target_date', True)),
            is_private=parse_bool(row.get('is_private', False)),
            is_active=parse_bool(row.get('is_active', True)),
            owner_id=row.get('owner_id'),
            owner_username=row.get('owner_username'),
            items=list(items or []),
            created_at=parse_datetime(row.get('created_at')),
            updated_at=parse_datetime(row.get('updated_at'))
        )

    @classmethod
    def create_new(cls, name: str, event_type: str, owner_id: Optional[str],
                   target_date: Optional[datetime] = None, has_target_date: bool = True,
                   is_private: bool = False) -> 'Event':
        """
        Create a new event.

        The target date is dropped unless `has_target_date` is set and a
        date is actually given. Such an event keeps its flag but has no
        countdown.
        """
        has_date = bool(has_target_date and target_date is not None)
        return cls(
            event_id=str(uuid.uuid4()),
            name=name,
            event_type=event_type,
            target_date=target_date if has_date else None,
            has_target_date=has_target_date,
            is_private=is_private,
            owner_id=owner_id
        )
