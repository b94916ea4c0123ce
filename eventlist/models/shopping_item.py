"""
Shopping item model representing individual items in an event's list.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional
from datetime import datetime, timezone
import uuid

from .category import Category
from .fields import parse_bool, parse_datetime, parse_price, format_datetime


@dataclass
class ItemPhoto:
    """Photo attached to a shopping item, displayed in `order`."""
    photo_id: str
    item_id: str
    image_url: str
    alt_text: Optional[str] = None
    order: int = 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.photo_id,
            'imageUrl': self.image_url,
            'altText': self.alt_text,
            'order': self.order
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'ItemPhoto':
        """Create ItemPhoto instance from a database row."""
        return cls(
            photo_id=row['id'],
            item_id=row['item_id'],
            image_url=row['image_url'],
            alt_text=row.get('alt_text'),
            order=int(row.get('sort_order') or 1)
        )


@dataclass
class ShoppingItem:
    """
    Item on an event's shopping list.

    Carries the gift idea itself (name, price, purchase link, photos) and
    its purchase state.
    """

    # Unique item identifier
    item_id: str
    event_id: str

    # Item details
    name: str
    description: Optional[str] = None
    price: Optional[float] = None
    purchase_url: Optional[str] = None

    # Category
    category_id: Optional[str] = None
    category: Optional[Category] = None

    # Photos, in display order
    photos: List[ItemPhoto] = field(default_factory=list)

    # Purchase state
    is_purchased: bool = False
    purchased_by: Optional[str] = None
    purchased_at: Optional[datetime] = None

    # Metadata
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """Initialize computed fields."""
        if self.created_at is None:
            self.created_at = datetime.now(timezone.utc)

        if self.updated_at is None:
            self.updated_at = self.created_at

        self.photos.sort(key=lambda photo: photo.order)

    def mark_purchased(self, purchased_by: Optional[str] = None,
                       when: Optional[datetime] = None):
        """
        Mark item as purchased.

        Args:
            purchased_by: Name of the person who bought it
            when: Purchase time (defaults to now)
        """
        self.is_purchased = True
        self.purchased_by = purchased_by
        self.purchased_at = when or datetime.now(timezone.utc)
        self.updated_at = datetime.now(timezone.utc)

    def mark_not_purchased(self):
        """Clear purchase state."""
        self.is_purchased = False
        self.purchased_by = None
        self.purchased_at = None
        self.updated_at = datetime.now(timezone.utc)

    def get_main_photo(self) -> Optional[ItemPhoto]:
        """Get first photo in display order."""
        return self.photos[0] if self.photos else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert shopping item to dictionary format."""
        return {
            'id': self.item_id,
            'eventId': self.event_id,
            'name': self.name,
            'description': self.description,
            'price': self.price,
            'purchaseUrl': self.purchase_url,
            'categoryId': self.category_id,
            'category': self.category.to_dict() if self.category else None,
            'photos': [photo.to_dict() for photo in self.photos],
            'isPurchased': self.is_purchased,
            'purchasedBy': self.purchased_by,
            'purchasedAt': format_datetime(self.purchased_at),
            'createdAt': format_datetime(self.created_at),
            'updatedAt': format_datetime(self.updated_at)
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any], photos: Optional[List[ItemPhoto]] = None) -> 'ShoppingItem':
        """
        Create ShoppingItem instance from a database row.

        Category columns are read when the row was joined with categories
        (`category_name`, `category_color`, `category_icon`).

        Args:
            row: Dictionary of column values
            photos: Photos already loaded for this item

        Returns:
            ShoppingItem instance
        """
        category = None
        if row.get('category_id') and row.get('category_name'):
            category = Category(
                category_id=row['category_id'],
                name=row['category_name'],
                color=row.get('category_color'),
                icon=row.get('category_icon')
            )

        return cls(
            item_id=row['id'],
            event_id=row['event_id'],
            name=row['name'],
            description=row.get('description'),
            price=parse_price(row.get('price')),
            purchase_url=row.get('purchase_url'),
            category_id=row.get('category_id'),
            category=category,
            photos=list(photos or []),
            is_purchased=parse_bool(row.get('is_purchased', False)),
            purchased_by=row.get('purchased_by'),
            purchased_at=parse_datetime(row.get('purchased_at')),
            created_at=parse_datetime(row.get('created_at')),
            updated_at=parse_datetime(row.get('updated_at'))
        )

    @classmethod
    def create_new(cls, event_id: str, name: str, description: Optional[str] = None,
                   price: Optional[float] = None, purchase_url: Optional[str] = None,
                   category_id: Optional[str] = None,
                   photos: Optional[List[Dict[str, Any]]] = None) -> 'ShoppingItem':
        """
        Create a new shopping item with its photos.

        Args:
            event_id: Owning event
            name: Item name
            description: Optional description
            price: Optional price
            purchase_url: Optional link to buy the item
            category_id: Optional category
            photos: List of {'imageUrl', 'altText'} dicts; blank URLs are skipped

        Returns:
            New ShoppingItem instance
        """
        item_id = str(uuid.uuid4())

        item_photos = []
        for photo in photos or []:
            image_url = (photo.get('imageUrl') or '').strip()
            if not image_url:
                continue
            item_photos.append(ItemPhoto(
                photo_id=str(uuid.uuid4()),
                item_id=item_id,
                image_url=image_url,
                alt_text=(photo.get('altText') or '').strip() or None,
                order=len(item_photos) + 1
            ))

        return cls(
            item_id=item_id,
            event_id=event_id,
            name=name,
            description=description,
            price=price,
            purchase_url=purchase_url,
            category_id=category_id,
            photos=item_photos
        )
