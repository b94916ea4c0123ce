"""
Event routes: the user's events, shopping list pages, sharing and notifications.
"""

import logging
from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app, session, g, abort

from eventlist.models.event import EVENT_TYPES
from eventlist.routes.auth import login_required, get_current_user, get_user_service
from eventlist.services.category_service import CategoryService
from eventlist.services.event_presenter import EventListPresenter
from eventlist.services.event_service import EventService
from eventlist.services.item_search import search_items, filter_by_categories, category_counts
from eventlist.services.notification_service import NotificationService

events_bp = Blueprint('events', __name__)
logger = logging.getLogger(__name__)


def get_services():
    """Get service instances."""
    database_service = current_app.database_service
    notification_service = NotificationService(database_service)
    event_service = EventService(database_service, notification_service, get_user_service(), tz=current_app.timezone)
    category_service = CategoryService(database_service, current_app.config.get('DEFAULT_CATEGORY_COLOR'))
    presenter = EventListPresenter(current_app.config.get('RECURRING_EVENT_DATES'), current_app.timezone)

    return event_service, category_service, notification_service, presenter


def _event_form_data():
    """Read the event form into the service's camelCase shape."""
    return {
        'name': request.form.get('name', ''),
        'eventType': request.form.get('event_type', 'autre'),
        'hasTargetDate': 'has_target_date' in request.form,
        'targetDate': request.form.get('target_date') or None,
        'isPrivate': 'is_private' in request.form
    }


def _item_form_data():
    """Read the item form, collecting every non-blank photo URL."""
    urls = request.form.getlist('photo_url')
    alts = request.form.getlist('photo_alt')
    photos = [
        {'imageUrl': url, 'altText': alts[i] if i < len(alts) else ''}
        for i, url in enumerate(urls) if url.strip()
    ]
    return {
        'name': request.form.get('name', ''),
        'description': request.form.get('description') or None,
        'price': request.form.get('price') or None,
        'purchaseUrl': request.form.get('purchase_url') or None,
        'categoryId': request.form.get('category_id') or None,
        'photos': photos
    }


@events_bp.route('/')
@login_required
def my_events():
    """Events owned by and shared with the signed-in user."""
    event_service, _, notification_service, presenter = get_services()
    user = g.current_user

    events = event_service.get_user_events(user)
    now = presenter.now()
    countdowns = {event.event_id: presenter.countdown_for(event, now) for event in events}

    return render_template('my_events.html',
                           owned_events=[e for e in events if e.is_owned],
                           shared_events=[e for e in events if not e.is_owned],
                           countdowns=countdowns,
                           unread_count=notification_service.get_unread_count(user),
                           event_types=EVENT_TYPES)


@events_bp.route('/create', methods=['POST'])
@login_required
def create_event():
    """Create an event from the form."""
    event_service, _, _, _ = get_services()

    try:
        event = event_service.create_event(g.current_user, _event_form_data())
    except ValueError as e:
        flash(str(e), 'error')
        return redirect(url_for('events.my_events'))
    except RuntimeError as e:
        logger.error(f"Error creating event: {str(e)}")
        flash('An error occurred creating the event.', 'error')
        return redirect(url_for('events.my_events'))

    flash(f"Event '{event.name}' created.", 'success')
    return redirect(url_for('events.event_page', event_id=event.event_id))


@events_bp.route('/personal', methods=['POST'])
@login_required
def create_personal_events():
    """Seed the four personal-calendar events for the current year."""
    event_service, _, _, _ = get_services()

    try:
        events = event_service.create_personal_events(g.current_user)
    except (ValueError, RuntimeError) as e:
        logger.error(f"Error creating personal events: {str(e)}")
        flash('An error occurred creating the personal events.', 'error')
    else:
        flash(f'{len(events)} personal events created.', 'success')

    return redirect(url_for('events.my_events'))


@events_bp.route('/<event_id>')
def event_page(event_id):
    """Shopping list of one event, with search and category filter."""
    event_service, category_service, _, presenter = get_services()
    user = get_current_user()

    try:
        event = event_service.get_event_for_user(event_id, user)
    except PermissionError:
        if event_id not in session.get('unlocked_events', []):
            return render_template('unlock.html', event_id=event_id), 403
        event = event_service.get_event(event_id)

    if not event:
        abort(404)

    query = request.args.get('q', '').strip()
    selected_categories = request.args.getlist('category')

    items = filter_by_categories(event.items, selected_categories)
    if query:
        items = search_items(items, query)

    categories = category_service.get_categories()
    counts = category_counts(event.items)

    return render_template('event.html',
                           event=event,
                           items=items,
                           query=query,
                           selected_categories=selected_categories,
                           categories=categories,
                           category_counts=counts,
                           countdown=presenter.countdown_for(event, presenter.now()),
                           shared_users=event_service.get_shared_users(event_id) if event.is_owned else [],
                           event_types=EVENT_TYPES)


@events_bp.route('/<event_id>/unlock', methods=['POST'])
def unlock_event(event_id):
    """Open a private event with the administrator password."""
    event_service, _, _, _ = get_services()

    result = event_service.check_event_access(event_id, get_current_user(), request.form.get('password'))
    if result is None:
        abort(404)

    if result['hasAccess']:
        unlocked = session.get('unlocked_events', [])
        if event_id not in unlocked:
            session['unlocked_events'] = unlocked + [event_id]
    else:
        flash('Incorrect password.', 'error')

    return redirect(url_for('events.event_page', event_id=event_id))


@events_bp.route('/<event_id>/edit', methods=['POST'])
@login_required
def edit_event(event_id):
    """Update event details."""
    event_service, _, _, _ = get_services()

    try:
        event = event_service.update_event(event_id, g.current_user, _event_form_data())
    except PermissionError as e:
        flash(str(e), 'error')
        return redirect(url_for('events.event_page', event_id=event_id))
    except ValueError as e:
        flash(str(e), 'error')
        return redirect(url_for('events.event_page', event_id=event_id))

    if not event:
        abort(404)

    flash('Event updated.', 'success')
    return redirect(url_for('events.event_page', event_id=event_id))


@events_bp.route('/<event_id>/delete', methods=['POST'])
@login_required
def delete_event(event_id):
    """Delete an event and its list."""
    event_service, _, _, _ = get_services()

    try:
        deleted = event_service.delete_event(event_id, g.current_user)
    except PermissionError as e:
        flash(str(e), 'error')
        return redirect(url_for('events.event_page', event_id=event_id))

    if not deleted:
        abort(404)

    flash('Event deleted.', 'success')
    return redirect(url_for('events.my_events'))


@events_bp.route('/<event_id>/share', methods=['POST'])
@login_required
def share_event(event_id):
    """Share an event with another user."""
    event_service, _, _, _ = get_services()
    username = request.form.get('username', '').strip()

    try:
        event_service.share_event(event_id, g.current_user, username, 'can_edit' in request.form)
    except LookupError:
        abort(404)
    except (PermissionError, ValueError) as e:
        flash(str(e), 'error')
    else:
        flash(f'Event shared with {username}.', 'success')

    return redirect(url_for('events.event_page', event_id=event_id))


@events_bp.route('/<event_id>/leave', methods=['POST'])
@login_required
def leave_event(event_id):
    """Leave an event shared with the user."""
    event_service, _, _, _ = get_services()

    try:
        event_service.leave_event(event_id, g.current_user)
    except LookupError as e:
        flash(str(e), 'error')
    else:
        flash('You left the event.', 'success')

    return redirect(url_for('events.my_events'))


@events_bp.route('/<event_id>/items', methods=['POST'])
@login_required
def add_item(event_id):
    """Add an item to an event's list."""
    event_service, _, _, _ = get_services()

    try:
        item = event_service.add_item(event_id, g.current_user, _item_form_data())
    except LookupError:
        abort(404)
    except (PermissionError, ValueError) as e:
        flash(str(e), 'error')
    except RuntimeError as e:
        logger.error(f"Error adding item: {str(e)}")
        flash('An error occurred adding the item.', 'error')
    else:
        flash(f"'{item.name}' added to the list.", 'success')

    return redirect(url_for('events.event_page', event_id=event_id))


@events_bp.route('/items/<item_id>/purchase', methods=['POST'])
def toggle_purchased(item_id):
    """Mark an item as purchased or not purchased."""
    event_service, _, _, _ = get_services()
    is_purchased = request.form.get('is_purchased', '1') == '1'

    item = event_service.items.get_item(item_id)
    if not item:
        abort(404)

    try:
        item = event_service.set_item_purchased(
            item_id, get_current_user(), is_purchased, request.form.get('purchased_by'),
            unlocked=item.event_id in session.get('unlocked_events', [])
        )
    except PermissionError as e:
        flash(str(e), 'error')
        return redirect(url_for('events.event_page', event_id=item.event_id))

    if not item:
        abort(404)

    if is_purchased:
        flash(f"Thank you! '{item.name}' is marked as purchased.", 'success')
    return redirect(url_for('events.event_page', event_id=item.event_id))


@events_bp.route('/items/<item_id>/delete', methods=['POST'])
@login_required
def delete_item(item_id):
    """Remove an item from its list."""
    event_service, _, _, _ = get_services()
    item = event_service.items.get_item(item_id)
    if not item:
        abort(404)

    try:
        event_service.delete_item(item_id, g.current_user)
    except PermissionError as e:
        flash(str(e), 'error')
    else:
        flash('Item removed.', 'success')

    return redirect(url_for('events.event_page', event_id=item.event_id))


@events_bp.route('/notifications')
@login_required
def notifications():
    """The user's notifications."""
    _, _, notification_service, _ = get_services()
    return render_template('notifications.html',
                           notifications=notification_service.get_user_notifications(g.current_user))


@events_bp.route('/notifications/<notification_id>/read', methods=['POST'])
@login_required
def mark_notification_read(notification_id):
    """Mark a notification as read."""
    _, _, notification_service, _ = get_services()
    if not notification_service.mark_as_read(notification_id, g.current_user):
        abort(404)
    return redirect(url_for('events.notifications'))


@events_bp.route('/notifications/read-all', methods=['POST'])
@login_required
def mark_all_notifications_read():
    """Mark every notification as read."""
    _, _, notification_service, _ = get_services()
    notification_service.mark_all_as_read(g.current_user)
    return redirect(url_for('events.notifications'))
