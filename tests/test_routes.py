"""
Tests for the HTML pages and form handlers.
"""

from datetime import datetime

import pytest
from flask import render_template

from eventlist.models.event import Event
from eventlist.services.event_presenter import EventListPresenter


def form_login(client, username, password):
    return client.post('/auth/login', data={'username': username, 'password': password})


@pytest.fixture
def event(event_service, alice):
    return event_service.create_event(alice, {
        'name': 'Noël en famille', 'eventType': 'noel', 'targetDate': '2023-12-25'
    })


class TestPublicPages:

    def test_home_lists_countdowns(self, client, event):
        response = client.get('/')

        assert response.status_code == 200
        page = response.get_data(as_text=True)
        assert 'Noël en famille' in page
        assert 'jour' in page

    def test_home_empty(self, client):
        assert client.get('/').status_code == 200

    def test_health(self, client):
        body = client.get('/health').get_json()

        assert body['app_status'] == 'running'
        assert body['database']['available'] is True
        assert body['database']['dialect'] == 'sqlite'

    def test_security_headers(self, client):
        response = client.get('/')

        assert response.headers['X-Content-Type-Options'] == 'nosniff'
        assert response.headers['X-Frame-Options'] == 'DENY'
        assert 'Content-Security-Policy' in response.headers

    def test_404_page(self, client):
        response = client.get('/events/does-not-exist')

        assert response.status_code == 404
        assert 'Page introuvable' in response.get_data(as_text=True)

    def test_event_page(self, client, event):
        response = client.get(f'/events/{event.event_id}')

        assert response.status_code == 200
        assert 'Noël en famille' in response.get_data(as_text=True)

    def test_markup_is_escaped(self, client, event_service, alice):
        event = event_service.create_event(alice, {'name': '<script>x</script>', 'eventType': 'autre'})

        page = client.get(f'/events/{event.event_id}').get_data(as_text=True)

        assert '<script>x</script>' not in page
        assert '&lt;script&gt;' in page


class TestAuthPages:

    def test_login_redirects_to_my_events(self, client, alice):
        response = form_login(client, 'alice', 'secret1')

        assert response.status_code == 302
        assert response.headers['Location'].endswith('/events/')

    def test_login_keeps_local_next(self, client, alice):
        response = client.post('/auth/login', data={'username': 'alice', 'password': 'secret1',
                                                    'next': '/events/notifications'})

        assert response.headers['Location'].endswith('/events/notifications')

    def test_login_ignores_external_next(self, client, alice):
        response = client.post('/auth/login', data={'username': 'alice', 'password': 'secret1',
                                                    'next': '//evil.example.com'})

        assert response.headers['Location'].endswith('/events/')

    def test_bad_login(self, client, alice):
        assert form_login(client, 'alice', 'wrong').status_code == 401
        assert form_login(client, '', '').status_code == 400

    def test_register(self, client):
        response = client.post('/auth/register', data={'username': 'dave', 'password': 'pass1234'})
        assert response.status_code == 302

        assert form_login(client, 'dave', 'pass1234').status_code == 302

    def test_register_invalid(self, client):
        assert client.post('/auth/register', data={'username': 'x', 'password': 'pass1234'}).status_code == 400

    def test_protected_page_redirects(self, client):
        response = client.get('/events/')

        assert response.status_code == 302
        assert '/auth/login' in response.headers['Location']

    def test_logout(self, client, alice):
        form_login(client, 'alice', 'secret1')
        client.post('/auth/logout')

        assert client.get('/events/').status_code == 302


class TestEventPages:

    @pytest.fixture
    def logged_in(self, client, alice):
        form_login(client, 'alice', 'secret1')
        return client

    def test_my_events(self, logged_in, event):
        page = logged_in.get('/events/').get_data(as_text=True)

        assert 'Noël en famille' in page

    def test_create_event(self, logged_in, event_service, alice):
        response = logged_in.post('/events/create', data={
            'name': 'Pot de départ', 'event_type': 'autre', 'has_target_date': 'on', 'target_date': '2099-06-30'
        })

        assert response.status_code == 302
        events = event_service.get_user_events(alice)
        assert [e.name for e in events] == ['Pot de départ']

    def test_add_item_and_search(self, logged_in, event):
        logged_in.post(f'/events/{event.event_id}/items', data={
            'name': 'Pull en laine', 'price': '45', 'photo_url': ['https://example.com/pull.jpg', '']
        })
        # the redirect target shows and consumes the flashed messages
        logged_in.post(f'/events/{event.event_id}/items', data={'name': 'Chocolats'}, follow_redirects=True)

        page = logged_in.get(f'/events/{event.event_id}?q=laine').get_data(as_text=True)

        assert 'Pull en laine' in page
        assert 'Chocolats' not in page

    def test_purchase_toggle(self, client, event, event_service, alice):
        item = event_service.add_item(event.event_id, alice, {'name': 'Chocolats'})

        response = client.post(f'/events/items/{item.item_id}/purchase',
                               data={'is_purchased': '1', 'purchased_by': 'Tata'})

        assert response.status_code == 302
        assert event_service.items.get_item(item.item_id).purchased_by == 'Tata'

    def test_share_and_leave(self, app, logged_in, event, event_service, bob):
        logged_in.post(f'/events/{event.event_id}/share', data={'username': 'bob'})
        assert event_service.get_share(event.event_id, bob.user_id) is not None

        bob_client = app.test_client()
        form_login(bob_client, 'bob', 'secret2')
        assert 'Noël en famille' in bob_client.get('/events/notifications').get_data(as_text=True)

        bob_client.post(f'/events/{event.event_id}/leave')
        assert event_service.get_share(event.event_id, bob.user_id) is None

    def test_delete_event(self, logged_in, event, event_service):
        response = logged_in.post(f'/events/{event.event_id}/delete')

        assert response.status_code == 302
        assert event_service.get_event(event.event_id) is None

    def test_private_event_unlock(self, client, event_service, alice):
        event = event_service.create_event(alice, {'name': 'Surprise', 'eventType': 'autre', 'isPrivate': True})
        url = f'/events/{event.event_id}'

        assert client.get(url).status_code == 403

        client.post(f'{url}/unlock', data={'password': 'wrong'})
        assert client.get(url).status_code == 403

        client.post(f'{url}/unlock', data={'password': 'admin-test'})
        assert client.get(url).status_code == 200

    def test_unlocked_private_event_allows_purchase(self, client, event_service, alice):
        event = event_service.create_event(alice, {'name': 'Surprise', 'eventType': 'autre', 'isPrivate': True})
        item = event_service.add_item(event.event_id, alice, {'name': 'Chocolats'})
        purchase_url = f'/events/items/{item.item_id}/purchase'

        client.post(purchase_url, data={'is_purchased': '1', 'purchased_by': 'Tata'})
        assert not event_service.items.get_item(item.item_id).is_purchased

        client.post(f'/events/{event.event_id}/unlock', data={'password': 'admin-test'})
        response = client.post(purchase_url, data={'is_purchased': '1', 'purchased_by': 'Tata'})

        assert response.headers['Location'].endswith(f'/events/{event.event_id}')
        updated = event_service.items.get_item(item.item_id)
        assert updated.is_purchased
        assert updated.purchased_by == 'Tata'


class TestAdminPages:

    def test_requires_admin(self, client, alice):
        form_login(client, 'alice', 'secret1')

        response = client.get('/admin/')

        assert response.status_code == 302

    def test_dashboard_and_categories(self, client, category_service):
        form_login(client, 'admin', 'admin-test')

        assert client.get('/admin/').status_code == 200

        client.post('/admin/categories/defaults')
        assert len(category_service.get_categories()) == 15

        client.post('/admin/categories', data={'name': 'Divers', 'color': '#000000'})
        assert len(category_service.get_categories()) == 16

    def test_clear_database(self, client, event, db):
        form_login(client, 'admin', 'admin-test')

        client.post('/admin/clear', data={'confirm': 'nope'})
        assert db.count("SELECT COUNT(*) AS count FROM events") == 1

        response = client.post('/admin/clear', data={'confirm': 'CLEAR'})
        assert response.status_code == 302
        assert db.count("SELECT COUNT(*) AS count FROM events") == 0
        assert db.count("SELECT COUNT(*) AS count FROM users") == 1


class TestCountdownBlock:

    def render(self, app, target, now):
        event = Event(event_id='e1', name='Pot', event_type='autre', target_date=target, has_target_date=True)
        with app.test_request_context('/'):
            return render_template('_countdown.html', countdown=EventListPresenter().countdown_for(event, now))

    def test_reached(self, app):
        now = datetime(2024, 6, 1, 12, 0)

        assert "C'est aujourd'hui" in self.render(app, now, now)

    def test_running(self, app):
        html = self.render(app, datetime(2024, 6, 3, 18, 30), datetime(2024, 6, 1, 12, 0))

        assert '2 j 6 h 30 min' in html
        assert '3 jours restants' in html
