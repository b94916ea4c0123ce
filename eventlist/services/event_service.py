"""
Event service for managing events, their sharing, and their shopping lists.

Every permission rule on events lives here:

* anyone may view a public event; a private one is visible to its owner,
  to users it is shared with, to admins, and to whoever gives an admin
  password;
* the owner, admins and users holding an editable share may change the
  event and add or remove items;
* only the owner (or an admin) may share or delete an event;
* any viewer may mark items as purchased.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone, tzinfo
import uuid

from eventlist.models.event import Event, EventShare
from eventlist.models.notification import EVENT_SHARE, EVENT_LEAVE
from eventlist.models.shopping_item import ShoppingItem
from eventlist.models.user import User
from eventlist.services.database_service import DatabaseService
from eventlist.services.notification_service import NotificationService
from eventlist.services.security_service import SecurityService
from eventlist.services.shopping_item_service import ShoppingItemService

EVENT_SELECT = """
    SELECT e.*, u.username AS owner_username
    FROM events e
    LEFT JOIN users u ON u.id = e.owner_id
"""

# The four events of the personal calendar, seeded on demand
PERSONAL_EVENTS = [
    ('Anniversaire', 'anniversaire', 9, 28),
    ('Saint-Valentin', 'saint-valentin', 2, 14),
    ('Noël', 'noel', 12, 25),
    ('Anniversaire de notre rencontre', 'anniversaire-rencontre', 11, 4),
]


@dataclass(frozen=True)
class EventAccess:
    """What a given user may do on a given event."""
    can_view: bool
    can_edit: bool
    is_owner: bool
    is_shared: bool = False

    def to_dict(self) -> Dict[str, bool]:
        """Convert to dictionary."""
        return {
            'canView': self.can_view,
            'canEdit': self.can_edit,
            'isOwner': self.is_owner,
            'isShared': self.is_shared
        }


def resolve_access(event: Event, user: Optional[User], share: Optional[EventShare] = None) -> EventAccess:
    """
    Work out a user's rights on an event.

    Args:
        event: The event
        user: Signed-in user, or None for anonymous visitors
        share: The user's share on the event, if any

    Returns:
        EventAccess
    """
    is_owner = bool(user and event.owner_id and event.owner_id == user.user_id)
    is_admin = bool(user and user.is_admin)
    is_shared = share is not None

    can_edit = is_owner or is_admin or (is_shared and share.can_edit)
    can_view = can_edit or is_shared or not event.is_private

    return EventAccess(can_view=can_view, can_edit=can_edit, is_owner=is_owner, is_shared=is_shared)


class EventService:
    """
    Service for event management.

    Handles event CRUD, sharing between users, access checks and the
    item operations that depend on them.
    """

    def __init__(self, database_service: DatabaseService,
                 notification_service: Optional[NotificationService] = None,
                 user_service=None, tz: Optional[tzinfo] = None):
        """
        Initialize event service.

        Args:
            database_service: Database service instance
            notification_service: Used to notify users on share/leave
            user_service: Used to look up users and admin passwords
            tz: Zone that incoming dates with an offset are stored in
        """
        self.db = database_service
        self.items = ShoppingItemService(database_service)
        self.notifications = notification_service or NotificationService(database_service)
        self.users = user_service
        self.tz = tz
        self.logger = logging.getLogger(__name__)

    # Reading

    def get_event(self, event_id: str, with_items: bool = True) -> Optional[Event]:
        """Get event by ID, with its items unless asked otherwise."""
        if not event_id:
            return None

        row = self.db.query_one(EVENT_SELECT + " WHERE e.id = :id", {'id': event_id})
        if not row:
            return None

        event = Event.from_row(row)
        if with_items:
            event.items = self.items.get_items_for_events([event.event_id]).get(event.event_id, [])
        return event

    def get_all_active_events(self, with_items: bool = True) -> List[Event]:
        """Get every active event, ordered by stored target date."""
        rows = self.db.execute_query(
            EVENT_SELECT + " WHERE e.is_active = :active ORDER BY e.target_date ASC, e.created_at ASC",
            {'active': True}
        )
        return self._build_events(rows, with_items)

    def get_events_by_type(self, event_type: str, with_items: bool = True) -> List[Event]:
        """Get active events of one type."""
        rows = self.db.execute_query(
            EVENT_SELECT + """ WHERE e.is_active = :active AND e.event_type = :event_type
                               ORDER BY e.target_date ASC""",
            {'active': True, 'event_type': event_type}
        )
        return self._build_events(rows, with_items)

    def get_user_events(self, user: User) -> List[Event]:
        """
        Get events owned by or shared with a user.

        Each event carries `is_owned`, `can_edit` and, for shared events,
        `shared_by` (the owner's username).
        """
        owned_rows = self.db.execute_query(
            EVENT_SELECT + " WHERE e.owner_id = :user_id ORDER BY e.created_at DESC",
            {'user_id': user.user_id}
        )
        shared_rows = self.db.execute_query(
            """SELECT e.*, u.username AS owner_username, s.can_edit AS share_can_edit
               FROM event_shares s
               JOIN events e ON e.id = s.event_id
               LEFT JOIN users u ON u.id = e.owner_id
               WHERE s.user_id = :user_id
               ORDER BY s.created_at DESC""",
            {'user_id': user.user_id}
        )

        events = self._build_events(owned_rows + shared_rows, with_items=True)
        owned_count = len(owned_rows)
        for index, (event, row) in enumerate(zip(events, owned_rows + shared_rows)):
            if index < owned_count:
                event.is_owned = True
                event.can_edit = True
            else:
                event.is_owned = False
                event.can_edit = bool(SecurityService.parse_bool(row.get('share_can_edit')))
                event.shared_by = event.owner_username

        self.logger.debug(f"Retrieved {owned_count} owned and {len(shared_rows)} shared events for {user.username}")
        return events

    def get_share(self, event_id: str, user_id: str) -> Optional[EventShare]:
        """Get a user's share on an event."""
        row = self.db.query_one(
            "SELECT * FROM event_shares WHERE event_id = :event_id AND user_id = :user_id",
            {'event_id': event_id, 'user_id': user_id}
        )
        return EventShare.from_row(row) if row else None

    def get_shared_users(self, event_id: str) -> List[Dict[str, Any]]:
        """Users an event is shared with."""
        rows = self.db.execute_query(
            """SELECT u.id, u.username, s.can_edit
               FROM event_shares s JOIN users u ON u.id = s.user_id
               WHERE s.event_id = :event_id ORDER BY u.username ASC""",
            {'event_id': event_id}
        )
        return [
            {'id': row['id'], 'username': row['username'],
             'canEdit': SecurityService.parse_bool(row['can_edit'])}
            for row in rows
        ]

    # Access

    def get_access(self, event: Event, user: Optional[User]) -> EventAccess:
        """Get a user's rights on an event."""
        share = self.get_share(event.event_id, user.user_id) if user else None
        return resolve_access(event, user, share)

    def check_event_access(self, event_id: str, user: Optional[User] = None,
                           admin_password: Optional[str] = None) -> Optional[Dict[str, bool]]:
        """
        Check whether an event may be viewed.

        Returns:
            {'hasAccess': bool, 'requiresPassword': bool}, or None if the
            event does not exist
        """
        event = self.get_event(event_id, with_items=False)
        if not event:
            return None

        if self.get_access(event, user).can_view:
            return {'hasAccess': True, 'requiresPassword': False}

        if self._password_unlocks(admin_password):
            return {'hasAccess': True, 'requiresPassword': False}

        return {'hasAccess': False, 'requiresPassword': True}

    def _password_unlocks(self, admin_password: Optional[str]) -> bool:
        return bool(admin_password and self.users and self.users.check_admin_password(admin_password))

    def get_event_for_user(self, event_id: str, user: Optional[User],
                           admin_password: Optional[str] = None) -> Optional[Event]:
        """
        Get an event with its items on behalf of a user.

        Returns:
            Event annotated with the viewer's rights, or None if missing

        Raises:
            PermissionError: if the user may not view the event
        """
        event = self.get_event(event_id)
        if not event:
            return None

        access = self.get_access(event, user)
        if not access.can_view:
            if not self._password_unlocks(admin_password):
                raise PermissionError("This event is private")

        event.is_owned = access.is_owner
        event.can_edit = access.can_edit
        if access.is_shared:
            event.shared_by = event.owner_username
        return event

    # Writing

    def create_event(self, owner: Optional[User], data: Dict[str, Any]) -> Event:
        """
        Create an event.

        Args:
            owner: Owning user
            data: {'name', 'eventType', 'targetDate'?, 'hasTargetDate'?, 'isPrivate'?}

        Returns:
            Created Event

        Raises:
            ValueError: if data is invalid
            RuntimeError: if the event could not be stored
        """
        validation = SecurityService.validate_event_data(data)
        if validation['errors']:
            raise ValueError('; '.join(validation['errors']))

        has_target_date = SecurityService.parse_bool(data.get('hasTargetDate'), default=True)
        event = Event.create_new(
            name=SecurityService.clean_text(data['name']),
            event_type=SecurityService.clean_text(data['eventType']),
            owner_id=owner.user_id if owner else None,
            target_date=SecurityService.parse_date(data.get('targetDate'), self.tz) if has_target_date else None,
            has_target_date=has_target_date,
            is_private=SecurityService.parse_bool(data.get('isPrivate'))
        )

        if not self._insert_event(event):
            raise RuntimeError("Failed to create event")

        event.owner_username = owner.username if owner else None
        self.logger.info(f"Created event '{event.name}' ({event.event_type})")
        return event

    def update_event(self, event_id: str, user: User, data: Dict[str, Any]) -> Optional[Event]:
        """
        Update an event's details.

        Only the keys present in data are changed.

        Returns:
            Updated Event, or None if it does not exist

        Raises:
            PermissionError: if the user may not edit the event
            ValueError: if data is invalid
        """
        event = self.get_event(event_id, with_items=False)
        if not event:
            return None

        if not self.get_access(event, user).can_edit:
            raise PermissionError("You are not allowed to modify this event")

        merged = {
            'name': data.get('name', event.name),
            'eventType': data.get('eventType', event.event_type),
            'hasTargetDate': data.get('hasTargetDate', event.has_target_date),
            'targetDate': data['targetDate'] if 'targetDate' in data else event.target_date,
            'isPrivate': data.get('isPrivate', event.is_private),
        }
        validation = SecurityService.validate_event_data(merged)
        if validation['errors']:
            raise ValueError('; '.join(validation['errors']))

        event.name = SecurityService.clean_text(merged['name'])
        event.event_type = SecurityService.clean_text(merged['eventType'])
        event.has_target_date = SecurityService.parse_bool(merged['hasTargetDate'], default=True)
        event.target_date = SecurityService.parse_date(merged['targetDate'], self.tz) if event.has_target_date else None
        event.is_private = SecurityService.parse_bool(merged['isPrivate'])
        if 'isActive' in data:
            event.is_active = SecurityService.parse_bool(data['isActive'], default=True)
        event.updated_at = datetime.now(timezone.utc)

        success = self.db.execute_update(
            """UPDATE events SET name = :name, event_type = :event_type, target_date = :target_date,
                   has_target_date = :has_target_date, is_private = :is_private,
                   is_active = :is_active, updated_at = :updated_at
               WHERE id = :id""",
            self._event_params(event)
        )
        if not success:
            raise RuntimeError("Failed to update event")

        self.logger.info(f"Updated event {event_id}")
        return self.get_event(event_id)

    def delete_event(self, event_id: str, user: User) -> bool:
        """
        Delete an event with its items, photos and shares.

        Returns:
            True if deleted, False if it does not exist

        Raises:
            PermissionError: if the user is neither the owner nor an admin
        """
        event = self.get_event(event_id, with_items=False)
        if not event:
            return False

        if not (self.get_access(event, user).is_owner or user.is_admin):
            raise PermissionError("Only the owner can delete this event")

        statements = self.items.delete_statements_for_events([event_id])
        statements += [
            ("DELETE FROM event_shares WHERE event_id = :id", {'id': event_id}),
            ("DELETE FROM events WHERE id = :id", {'id': event_id}),
        ]

        success = self.db.execute_transaction(statements)
        if success:
            self.logger.info(f"Deleted event {event_id} ('{event.name}')")
        return success

    def create_personal_events(self, owner: User, year: Optional[int] = None) -> List[Event]:
        """Seed the four personal-calendar events, dated in the given year."""
        year = year or datetime.now().year
        return [
            self.create_event(owner, {
                'name': name,
                'eventType': event_type,
                'targetDate': datetime(year, month, day),
                'hasTargetDate': True
            })
            for name, event_type, month, day in PERSONAL_EVENTS
        ]

    # Sharing

    def share_event(self, event_id: str, owner: User, target_username: str,
                    can_edit: bool = False) -> EventShare:
        """
        Share an event with another user.

        Sharing again with the same user updates the edit right.

        Returns:
            The created or updated EventShare

        Raises:
            LookupError: if the event does not exist
            PermissionError: if the caller is not the owner (or an admin)
            ValueError: if the target user is unknown or is the owner
        """
        event = self.get_event(event_id, with_items=False)
        if not event:
            raise LookupError("Event not found")

        if not (self.get_access(event, owner).is_owner or owner.is_admin):
            raise PermissionError("Only the owner can share this event")

        target = self.users.get_user_by_username((target_username or '').strip()) if self.users else None
        if not target:
            raise ValueError(f"User '{target_username}' not found")

        if target.user_id == event.owner_id:
            raise ValueError("You cannot share an event with its owner")

        existing = self.get_share(event_id, target.user_id)
        if existing:
            existing.can_edit = bool(can_edit)
            success = self.db.execute_update(
                "UPDATE event_shares SET can_edit = :can_edit WHERE id = :id",
                {'can_edit': existing.can_edit, 'id': existing.share_id}
            )
            share = existing
        else:
            share = EventShare(
                share_id=str(uuid.uuid4()),
                event_id=event_id,
                user_id=target.user_id,
                can_edit=bool(can_edit)
            )
            success = self.db.execute_update(
                """INSERT INTO event_shares (id, event_id, user_id, can_edit, created_at)
                   VALUES (:id, :event_id, :user_id, :can_edit, :created_at)""",
                {
                    'id': share.share_id,
                    'event_id': share.event_id,
                    'user_id': share.user_id,
                    'can_edit': share.can_edit,
                    'created_at': share.created_at.isoformat()
                }
            )

        if not success:
            raise RuntimeError("Failed to share event")

        rights = 'view and edit' if share.can_edit else 'view'
        self.notifications.notify(
            target.user_id, EVENT_SHARE,
            title='Event shared with you',
            message=f"{owner.username} shared '{event.name}' with you ({rights}).",
            data={'eventId': event_id, 'eventName': event.name,
                  'sharedBy': owner.username, 'canEdit': share.can_edit}
        )

        self.logger.info(f"Event {event_id} shared with {target.username} (can_edit={share.can_edit})")
        return share

    def leave_event(self, event_id: str, user: User) -> bool:
        """
        Give up access to an event shared with the user.

        The owner is notified.

        Raises:
            LookupError: if the event does not exist or is not shared with the user
        """
        event = self.get_event(event_id, with_items=False)
        share = self.get_share(event_id, user.user_id) if event else None
        if not share:
            raise LookupError("This event is not shared with you")

        success = self.db.execute_update(
            "DELETE FROM event_shares WHERE id = :id", {'id': share.share_id}
        )
        if not success:
            return False

        if event.owner_id:
            self.notifications.notify(
                event.owner_id, EVENT_LEAVE,
                title='A user left your event',
                message=f"{user.username} left '{event.name}'.",
                data={'eventId': event_id, 'eventName': event.name, 'leftBy': user.username}
            )

        self.logger.info(f"User {user.username} left event {event_id}")
        return True

    # Items

    def add_item(self, event_id: str, user: User, data: Dict[str, Any]) -> ShoppingItem:
        """
        Add an item to an event's shopping list.

        Args:
            event_id: Event ID
            user: Acting user
            data: {'name', 'description'?, 'price'?, 'purchaseUrl'?, 'categoryId'?, 'photos'?}

        Raises:
            LookupError: if the event does not exist
            PermissionError: if the user may not edit the event
            ValueError: if data is invalid
        """
        event = self.get_event(event_id, with_items=False)
        if not event:
            raise LookupError("Event not found")

        if not self.get_access(event, user).can_edit:
            raise PermissionError("You are not allowed to add items to this list")

        validation = SecurityService.validate_item_data(data)
        if validation['errors']:
            raise ValueError('; '.join(validation['errors']))

        category_id = SecurityService.clean_optional_text(data.get('categoryId'))
        if category_id and not self.db.query_one("SELECT id FROM categories WHERE id = :id", {'id': category_id}):
            raise ValueError("Unknown category")

        item = self.items.create_item(
            event_id=event_id,
            name=SecurityService.clean_text(data['name']),
            description=SecurityService.clean_optional_text(data.get('description')),
            price=SecurityService.parse_price(data.get('price')),
            purchase_url=SecurityService.clean_optional_text(data.get('purchaseUrl')),
            category_id=category_id,
            photos=data.get('photos') or []
        )
        if not item:
            raise RuntimeError("Failed to create item")
        return item

    def set_item_purchased(self, item_id: str, user: Optional[User], is_purchased: bool,
                           purchased_by: Optional[str] = None, admin_password: Optional[str] = None,
                           unlocked: bool = False) -> Optional[ShoppingItem]:
        """
        Mark an item as purchased or not purchased.

        A private event also opens to a correct admin password, or when the
        caller has already unlocked it with one (`unlocked`).

        Returns:
            Updated item, or None if it does not exist

        Raises:
            PermissionError: if the user may not view the owning event
        """
        item = self.items.get_item(item_id)
        if not item:
            return None

        event = self.get_event(item.event_id, with_items=False)
        if not event:
            return None
        if not (unlocked or self.get_access(event, user).can_view or self._password_unlocks(admin_password)):
            raise PermissionError("You are not allowed to update this list")

        buyer = SecurityService.clean_optional_text(purchased_by)
        if is_purchased and not buyer and user:
            buyer = user.username

        if not self.items.update_status(item, bool(is_purchased), buyer):
            raise RuntimeError("Failed to update item status")
        return item

    def delete_item(self, item_id: str, user: User) -> bool:
        """
        Delete an item.

        Returns:
            True if deleted, False if it does not exist

        Raises:
            PermissionError: if the user may not edit the owning event
        """
        item = self.items.get_item(item_id)
        if not item:
            return False

        event = self.get_event(item.event_id, with_items=False)
        if not event or not self.get_access(event, user).can_edit:
            raise PermissionError("You are not allowed to remove items from this list")

        return self.items.delete_item(item_id)

    # Helpers

    def _build_events(self, rows: List[Dict[str, Any]], with_items: bool) -> List[Event]:
        """Turn event rows into Events, loading items in bulk."""
        events = [Event.from_row(row) for row in rows]
        if with_items and events:
            items = self.items.get_items_for_events([event.event_id for event in events])
            for event in events:
                event.items = items.get(event.event_id, [])
        return events

    def _event_params(self, event: Event) -> Dict[str, Any]:
        return {
            'id': event.event_id,
            'name': event.name,
            'event_type': event.event_type,
            'target_date': event.target_date.isoformat() if event.target_date else None,
            'has_target_date': event.has_target_date,
            'is_private': event.is_private,
            'is_active': event.is_active,
            'owner_id': event.owner_id,
            'created_at': event.created_at.isoformat(),
            'updated_at': event.updated_at.isoformat()
        }

    def _insert_event(self, event: Event) -> bool:
        return self.db.execute_update(
            """INSERT INTO events (id, name, event_type, target_date, has_target_date, is_private,
                   is_active, owner_id, created_at, updated_at)
               VALUES (:id, :name, :event_type, :target_date, :has_target_date, :is_private,
                   :is_active, :owner_id, :created_at, :updated_at)""",
            self._event_params(event)
        )
