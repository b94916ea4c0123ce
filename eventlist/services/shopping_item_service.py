"""
Shopping item service for storing items and their photos.

This service is storage only: permission checks on the owning event are
made by EventService before it calls in here.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from eventlist.models.shopping_item import ShoppingItem, ItemPhoto
from eventlist.services.database_service import DatabaseService

ITEM_SELECT = """
    SELECT i.*, c.name AS category_name, c.color AS category_color, c.icon AS category_icon
    FROM shopping_items i
    LEFT JOIN categories c ON c.id = i.category_id
"""


def in_clause(prefix: str, values: Sequence[str]) -> Tuple[str, Dict[str, str]]:
    """Build an `IN (...)` placeholder list and its parameters."""
    params = {f'{prefix}_{i}': value for i, value in enumerate(values)}
    placeholders = ','.join(f':{name}' for name in params)
    return f"({placeholders})", params


class ShoppingItemService:
    """Service for shopping item persistence."""

    def __init__(self, database_service: DatabaseService):
        """
        Initialize shopping item service.

        Args:
            database_service: Database service instance
        """
        self.db = database_service
        self.logger = logging.getLogger(__name__)

    def get_item(self, item_id: str) -> Optional[ShoppingItem]:
        """Get item by ID with its photos and category."""
        if not item_id:
            return None

        row = self.db.query_one(ITEM_SELECT + " WHERE i.id = :id", {'id': item_id})
        if not row:
            return None

        photos = self._load_photos([item_id]).get(item_id, [])
        return ShoppingItem.from_row(row, photos)

    def get_items_for_events(self, event_ids: Sequence[str]) -> Dict[str, List[ShoppingItem]]:
        """
        Load items of several events in two queries.

        Returns:
            Mapping of event ID to its items, oldest first
        """
        if not event_ids:
            return {}

        clause, params = in_clause('event', list(event_ids))
        rows = self.db.execute_query(
            ITEM_SELECT + f" WHERE i.event_id IN {clause} ORDER BY i.created_at ASC", params
        )

        photos = self._load_photos([row['id'] for row in rows])

        items: Dict[str, List[ShoppingItem]] = {event_id: [] for event_id in event_ids}
        for row in rows:
            items.setdefault(row['event_id'], []).append(
                ShoppingItem.from_row(row, photos.get(row['id'], []))
            )
        return items

    def create_item(self, event_id: str, name: str, description: Optional[str] = None,
                    price: Optional[float] = None, purchase_url: Optional[str] = None,
                    category_id: Optional[str] = None,
                    photos: Optional[List[Dict[str, Any]]] = None) -> Optional[ShoppingItem]:
        """
        Store a new item and its photos in one transaction.

        Returns:
            Created ShoppingItem, or None if storing failed
        """
        item = ShoppingItem.create_new(
            event_id=event_id,
            name=name,
            description=description,
            price=price,
            purchase_url=purchase_url,
            category_id=category_id,
            photos=photos
        )

        statements = [(
            """INSERT INTO shopping_items (id, event_id, name, description, price, purchase_url,
                   category_id, is_purchased, created_at, updated_at)
               VALUES (:id, :event_id, :name, :description, :price, :purchase_url,
                   :category_id, :is_purchased, :created_at, :updated_at)""",
            {
                'id': item.item_id,
                'event_id': item.event_id,
                'name': item.name,
                'description': item.description,
                'price': item.price,
                'purchase_url': item.purchase_url,
                'category_id': item.category_id,
                'is_purchased': False,
                'created_at': item.created_at.isoformat(),
                'updated_at': item.updated_at.isoformat()
            }
        )]

        for photo in item.photos:
            statements.append((
                """INSERT INTO item_photos (id, item_id, image_url, alt_text, sort_order)
                   VALUES (:id, :item_id, :image_url, :alt_text, :sort_order)""",
                {
                    'id': photo.photo_id,
                    'item_id': photo.item_id,
                    'image_url': photo.image_url,
                    'alt_text': photo.alt_text,
                    'sort_order': photo.order
                }
            ))

        if not self.db.execute_transaction(statements):
            self.logger.error(f"Failed to create item '{name}' for event {event_id}")
            return None

        self.logger.info(f"Created item '{name}' with {len(item.photos)} photo(s) for event {event_id}")
        return self.get_item(item.item_id) or item

    def update_status(self, item: ShoppingItem, is_purchased: bool,
                      purchased_by: Optional[str] = None) -> bool:
        """
        Persist an item's purchase state.

        Marking as purchased stamps `purchased_at`; clearing it resets the
        buyer and the timestamp.
        """
        if is_purchased:
            item.mark_purchased(purchased_by)
        else:
            item.mark_not_purchased()

        return self.db.execute_update(
            """UPDATE shopping_items
               SET is_purchased = :is_purchased, purchased_by = :purchased_by,
                   purchased_at = :purchased_at, updated_at = :updated_at
               WHERE id = :id""",
            {
                'is_purchased': item.is_purchased,
                'purchased_by': item.purchased_by,
                'purchased_at': item.purchased_at.isoformat() if item.purchased_at else None,
                'updated_at': item.updated_at.isoformat(),
                'id': item.item_id
            }
        )

    def delete_item(self, item_id: str) -> bool:
        """Delete an item and its photos."""
        return self.db.execute_transaction([
            ("DELETE FROM item_photos WHERE item_id = :id", {'id': item_id}),
            ("DELETE FROM shopping_items WHERE id = :id", {'id': item_id}),
        ])

    def delete_statements_for_events(self, event_ids: Sequence[str]) -> List[Tuple[str, dict]]:
        """Statements removing every item and photo of the given events."""
        if not event_ids:
            return []

        clause, params = in_clause('event', list(event_ids))
        return [
            (f"""DELETE FROM item_photos WHERE item_id IN
                 (SELECT id FROM shopping_items WHERE event_id IN {clause})""", params),
            (f"DELETE FROM shopping_items WHERE event_id IN {clause}", params),
        ]

    def count_items(self) -> Dict[str, int]:
        """Total and purchased item counts."""
        return {
            'total': self.db.count("SELECT COUNT(*) AS count FROM shopping_items"),
            'purchased': self.db.count(
                "SELECT COUNT(*) AS count FROM shopping_items WHERE is_purchased = :p", {'p': True}
            )
        }

    def _load_photos(self, item_ids: Sequence[str]) -> Dict[str, List[ItemPhoto]]:
        """Load photos for several items, in display order."""
        if not item_ids:
            return {}

        clause, params = in_clause('item', list(item_ids))
        rows = self.db.execute_query(
            f"SELECT * FROM item_photos WHERE item_id IN {clause} ORDER BY sort_order ASC", params
        )

        photos: Dict[str, List[ItemPhoto]] = {}
        for row in rows:
            photos.setdefault(row['item_id'], []).append(ItemPhoto.from_row(row))
        return photos
