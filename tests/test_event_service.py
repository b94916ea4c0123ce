"""
Tests for events: permissions, sharing, notifications and shopping items.
"""

from datetime import datetime

import pytest

from eventlist.models.event import Event, EventShare
from eventlist.models.notification import EVENT_LEAVE, EVENT_SHARE
from eventlist.models.user import User
from eventlist.services.event_service import PERSONAL_EVENTS, resolve_access


@pytest.fixture
def event(event_service, alice):
    return event_service.create_event(alice, {
        'name': 'Anniversaire de Léa',
        'eventType': 'anniversaire',
        'targetDate': '2024-09-28',
    })


@pytest.fixture
def private_event(event_service, alice):
    return event_service.create_event(alice, {
        'name': 'Surprise',
        'eventType': 'autre',
        'targetDate': '2024-06-01',
        'isPrivate': True,
    })


class TestResolveAccess:

    owner = User(user_id='owner', username='owner')
    other = User(user_id='other', username='other')
    admin = User(user_id='admin', username='admin', is_admin=True)

    def make_event(self, is_private):
        return Event(event_id='e', name='E', event_type='autre', owner_id='owner', is_private=is_private)

    def test_owner(self):
        access = resolve_access(self.make_event(True), self.owner)
        assert access.can_view and access.can_edit and access.is_owner

    def test_admin(self):
        access = resolve_access(self.make_event(True), self.admin)
        assert access.can_view and access.can_edit and not access.is_owner

    def test_stranger_on_public_event(self):
        access = resolve_access(self.make_event(False), self.other)
        assert access.can_view and not access.can_edit

    def test_stranger_on_private_event(self):
        assert not resolve_access(self.make_event(True), self.other).can_view
        assert not resolve_access(self.make_event(True), None).can_view

    def test_read_only_share(self):
        share = EventShare(share_id='s', event_id='e', user_id='other', can_edit=False)

        access = resolve_access(self.make_event(True), self.other, share)
        assert access.can_view and not access.can_edit and access.is_shared


class TestEvents:

    def test_create(self, event_service, event, alice):
        stored = event_service.get_event(event.event_id)

        assert stored.name == 'Anniversaire de Léa'
        assert stored.target_date == datetime(2024, 9, 28)
        assert stored.owner_id == alice.user_id
        assert stored.owner_username == 'alice'
        assert stored.items == []

    def test_create_without_date(self, event_service, alice):
        event = event_service.create_event(alice, {
            'name': 'Un jour', 'eventType': 'autre', 'targetDate': '2024-01-01', 'hasTargetDate': False
        })

        stored = event_service.get_event(event.event_id)
        assert not stored.has_target_date
        assert stored.target_date is None
        assert not stored.has_countdown

    def test_create_rejects_invalid_data(self, event_service, alice):
        with pytest.raises(ValueError):
            event_service.create_event(alice, {'name': '', 'eventType': 'noel'})

    def test_update_requires_edit_rights(self, event_service, event, bob):
        with pytest.raises(PermissionError):
            event_service.update_event(event.event_id, bob, {'name': 'Pirate'})

    def test_partial_update(self, event_service, event, alice):
        updated = event_service.update_event(event.event_id, alice, {'name': 'Les 30 ans de Léa'})

        assert updated.name == 'Les 30 ans de Léa'
        assert updated.target_date == datetime(2024, 9, 28)
        assert event_service.update_event('missing', alice, {'name': 'x'}) is None

    def test_delete_cascades(self, event_service, event, alice, bob, db):
        event_service.add_item(event.event_id, alice, {
            'name': 'Livre', 'photos': [{'imageUrl': 'https://example.com/a.jpg'}]
        })
        event_service.share_event(event.event_id, alice, 'bob')

        with pytest.raises(PermissionError):
            event_service.delete_event(event.event_id, bob)

        assert event_service.delete_event(event.event_id, alice)
        assert event_service.get_event(event.event_id) is None
        for table in ('shopping_items', 'item_photos', 'event_shares'):
            assert db.count(f"SELECT COUNT(*) AS count FROM {table}") == 0

        assert not event_service.delete_event(event.event_id, alice)

    def test_admin_can_delete(self, event_service, event, admin):
        assert event_service.delete_event(event.event_id, admin)

    def test_listing_and_type_filter(self, event_service, event, alice):
        event_service.create_event(alice, {'name': 'Noël', 'eventType': 'noel', 'targetDate': '2024-12-25'})

        assert len(event_service.get_all_active_events()) == 2
        assert [e.name for e in event_service.get_events_by_type('noel')] == ['Noël']

    def test_inactive_events_are_hidden(self, event_service, event, alice):
        event_service.update_event(event.event_id, alice, {'isActive': False})

        assert event_service.get_all_active_events() == []

    def test_personal_events(self, event_service, alice):
        events = event_service.create_personal_events(alice, 2025)

        assert [e.event_type for e in events] == [t for _, t, _, _ in PERSONAL_EVENTS]
        assert {e.target_date for e in events} == {
            datetime(2025, 9, 28), datetime(2025, 2, 14), datetime(2025, 12, 25), datetime(2025, 11, 4)
        }


class TestAccess:

    def test_private_event_is_hidden(self, event_service, private_event, bob):
        with pytest.raises(PermissionError):
            event_service.get_event_for_user(private_event.event_id, bob)

        with pytest.raises(PermissionError):
            event_service.get_event_for_user(private_event.event_id, None)

    def test_admin_password_opens_private_event(self, event_service, private_event):
        event = event_service.get_event_for_user(private_event.event_id, None, 'admin-test')

        assert event.name == 'Surprise'

    def test_check_event_access(self, event_service, event, private_event, alice, bob):
        assert event_service.check_event_access(event.event_id) == {'hasAccess': True, 'requiresPassword': False}
        assert event_service.check_event_access(private_event.event_id, bob) == {
            'hasAccess': False, 'requiresPassword': True
        }
        assert event_service.check_event_access(private_event.event_id, bob, 'wrong')['hasAccess'] is False
        assert event_service.check_event_access(private_event.event_id, bob, 'admin-test')['hasAccess'] is True
        assert event_service.check_event_access(private_event.event_id, alice)['hasAccess'] is True
        assert event_service.check_event_access('missing') is None

    def test_viewer_flags(self, event_service, event, alice, bob):
        as_owner = event_service.get_event_for_user(event.event_id, alice)
        as_visitor = event_service.get_event_for_user(event.event_id, bob)

        assert as_owner.is_owned and as_owner.can_edit
        assert not as_visitor.is_owned and not as_visitor.can_edit


class TestSharing:

    def test_share_gives_access_and_notifies(self, event_service, notification_service,
                                             private_event, alice, bob):
        share = event_service.share_event(private_event.event_id, alice, 'bob', can_edit=False)

        assert not share.can_edit
        assert event_service.get_event_for_user(private_event.event_id, bob).name == 'Surprise'

        notifications = notification_service.get_user_notifications(bob)
        assert len(notifications) == 1
        assert notifications[0].type == EVENT_SHARE
        assert notifications[0].data['eventId'] == private_event.event_id
        assert notifications[0].data['sharedBy'] == 'alice'

    def test_user_events(self, event_service, event, private_event, alice, bob):
        event_service.share_event(private_event.event_id, alice, 'bob', can_edit=True)
        own = event_service.create_event(bob, {'name': 'Mon Noël', 'eventType': 'noel'})

        events = {e.event_id: e for e in event_service.get_user_events(bob)}

        assert set(events) == {private_event.event_id, own.event_id}
        assert events[own.event_id].is_owned
        shared = events[private_event.event_id]
        assert not shared.is_owned
        assert shared.can_edit
        assert shared.shared_by == 'alice'

    def test_resharing_updates_rights(self, event_service, event, alice, bob, db):
        event_service.share_event(event.event_id, alice, 'bob', can_edit=False)
        event_service.share_event(event.event_id, alice, 'bob', can_edit=True)

        assert db.count("SELECT COUNT(*) AS count FROM event_shares") == 1
        assert event_service.get_share(event.event_id, bob.user_id).can_edit
        assert event_service.get_shared_users(event.event_id) == [
            {'id': bob.user_id, 'username': 'bob', 'canEdit': True}
        ]

    def test_edit_share_allows_items(self, event_service, event, alice, bob):
        with pytest.raises(PermissionError):
            event_service.add_item(event.event_id, bob, {'name': 'Livre'})

        event_service.share_event(event.event_id, alice, 'bob', can_edit=True)
        item = event_service.add_item(event.event_id, bob, {'name': 'Livre'})

        assert item.name == 'Livre'

    def test_share_errors(self, event_service, event, alice, bob):
        with pytest.raises(LookupError):
            event_service.share_event('missing', alice, 'bob')
        with pytest.raises(PermissionError):
            event_service.share_event(event.event_id, bob, 'alice')
        with pytest.raises(ValueError):
            event_service.share_event(event.event_id, alice, 'nobody')
        with pytest.raises(ValueError):
            event_service.share_event(event.event_id, alice, 'alice')

    def test_leave_notifies_owner(self, event_service, notification_service, event, alice, bob):
        event_service.share_event(event.event_id, alice, 'bob')

        assert event_service.leave_event(event.event_id, bob)
        assert event_service.get_share(event.event_id, bob.user_id) is None

        notifications = notification_service.get_user_notifications(alice)
        assert [n.type for n in notifications] == [EVENT_LEAVE]
        assert notifications[0].data['leftBy'] == 'bob'

    def test_leave_without_share(self, event_service, event, bob):
        with pytest.raises(LookupError):
            event_service.leave_event(event.event_id, bob)


class TestNotifications:

    def test_read_state(self, event_service, notification_service, event, alice, bob):
        event_service.share_event(event.event_id, alice, 'bob')
        event_service.share_event(event.event_id, alice, 'bob', can_edit=True)

        assert notification_service.get_unread_count(bob) == 2
        first = notification_service.get_user_notifications(bob)[0]

        assert not notification_service.mark_as_read(first.notification_id, alice)
        assert notification_service.mark_as_read(first.notification_id, bob)
        assert notification_service.get_unread_count(bob) == 1
        assert len(notification_service.get_user_notifications(bob, unread_only=True)) == 1

        notification_service.mark_all_as_read(bob)
        assert notification_service.get_unread_count(bob) == 0


class TestItems:

    def test_add_item_with_photos(self, event_service, category_service, event, alice):
        category = category_service.create_category({'name': 'Livres'})

        item = event_service.add_item(event.event_id, alice, {
            'name': 'Roman',
            'description': 'Un polar',
            'price': '12,90',
            'purchaseUrl': 'https://example.com/roman',
            'categoryId': category.category_id,
            'photos': [
                {'imageUrl': 'https://example.com/1.jpg', 'altText': 'Couverture'},
                {'imageUrl': ''},
                {'imageUrl': 'https://example.com/2.jpg'},
            ],
        })

        assert item.price == 12.9
        assert item.category.name == 'Livres'
        assert [(p.image_url, p.order) for p in item.photos] == [
            ('https://example.com/1.jpg', 1), ('https://example.com/2.jpg', 2)
        ]
        assert item.get_main_photo().alt_text == 'Couverture'

        stored = event_service.get_event(event.event_id)
        assert [i.name for i in stored.items] == ['Roman']
        assert stored.get_total_price() == 12.9

    def test_unknown_category(self, event_service, event, alice):
        with pytest.raises(ValueError):
            event_service.add_item(event.event_id, alice, {'name': 'Roman', 'categoryId': 'missing'})

    def test_add_to_missing_event(self, event_service, alice):
        with pytest.raises(LookupError):
            event_service.add_item('missing', alice, {'name': 'Roman'})

    def test_any_viewer_can_mark_purchased(self, event_service, event, alice, bob):
        item = event_service.add_item(event.event_id, alice, {'name': 'Roman'})

        updated = event_service.set_item_purchased(item.item_id, bob, True)
        assert updated.is_purchased
        assert updated.purchased_by == 'bob'
        assert updated.purchased_at is not None

        stored = event_service.items.get_item(item.item_id)
        assert stored.is_purchased and stored.purchased_by == 'bob'

        event_service.set_item_purchased(item.item_id, None, False)
        stored = event_service.items.get_item(item.item_id)
        assert not stored.is_purchased
        assert stored.purchased_by is None
        assert stored.purchased_at is None

    def test_anonymous_buyer_name(self, event_service, event, alice):
        item = event_service.add_item(event.event_id, alice, {'name': 'Roman'})

        updated = event_service.set_item_purchased(item.item_id, None, True, 'Mamie')

        assert updated.purchased_by == 'Mamie'

    def test_private_items_need_access(self, event_service, private_event, alice, bob):
        item = event_service.add_item(private_event.event_id, alice, {'name': 'Roman'})

        with pytest.raises(PermissionError):
            event_service.set_item_purchased(item.item_id, bob, True)
        with pytest.raises(PermissionError):
            event_service.set_item_purchased(item.item_id, None, True, admin_password='wrong')

    def test_admin_password_lets_visitors_mark_private_items(self, event_service, private_event, alice):
        item = event_service.add_item(private_event.event_id, alice, {'name': 'Roman'})

        updated = event_service.set_item_purchased(item.item_id, None, True, 'Tata', admin_password='admin-test')
        assert updated.is_purchased

        updated = event_service.set_item_purchased(item.item_id, None, False, unlocked=True)
        assert not updated.is_purchased

    def test_delete_item(self, event_service, event, alice, bob):
        item = event_service.add_item(event.event_id, alice, {'name': 'Roman'})

        with pytest.raises(PermissionError):
            event_service.delete_item(item.item_id, bob)

        assert event_service.delete_item(item.item_id, alice)
        assert event_service.items.get_item(item.item_id) is None
        assert not event_service.delete_item(item.item_id, alice)
