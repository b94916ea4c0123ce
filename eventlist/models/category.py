"""
Category model for grouping shopping items.
"""

from dataclasses import dataclass
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import uuid

from .fields import parse_datetime, format_datetime

DEFAULT_COLOR = '#3B82F6'


@dataclass
class Category:
    """Item category with a display colour and an optional icon."""

    category_id: str
    name: str
    color: str = DEFAULT_COLOR
    icon: Optional[str] = None

    # Number of items using the category (only filled by counting queries)
    item_count: Optional[int] = None

    created_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.color:
            self.color = DEFAULT_COLOR

        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert category to dictionary format."""
        data = {
            'id': self.category_id,
            'name': self.name,
            'color': self.color,
            'icon': self.icon,
            'createdAt': format_datetime(self.created_at)
        }
        if self.item_count is not None:
            data['itemCount'] = self.item_count
        return data

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Category':
        """Create Category instance from a database row."""
        item_count = row.get('item_count')
        return cls(
            category_id=row['id'],
            name=row['name'],
            color=row.get('color') or DEFAULT_COLOR,
            icon=row.get('icon'),
            item_count=int(item_count) if item_count is not None else None,
            created_at=parse_datetime(row.get('created_at'))
        )

    @classmethod
    def create_new(cls, name: str, color: Optional[str] = None,
                   icon: Optional[str] = None) -> 'Category':
        """Create a new, not yet persisted category."""
        return cls(
            category_id=str(uuid.uuid4()),
            name=name,
            color=color or DEFAULT_COLOR,
            icon=icon
        )
