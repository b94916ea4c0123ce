"""
API routes for the Event Shopping Lists application.

JSON endpoints mirroring the HTML screens. Every response uses the same
envelope: {success, timestamp, data?, message?, error?}. Callers are
identified by the server-side session cookie set at /auth/login.
"""

import logging
from datetime import datetime, timezone
from flask import Blueprint, request, jsonify, current_app, session, g

from eventlist.routes.auth import get_current_user, login_user
from eventlist.services.admin_service import AdminService
from eventlist.services.category_service import CategoryService
from eventlist.services.event_presenter import EventListPresenter
from eventlist.services.event_service import EventService
from eventlist.services.item_search import search_items, filter_by_categories
from eventlist.services.notification_service import NotificationService
from eventlist.services.security_service import SecurityService, validate_json
from eventlist.services.user_service import UserService

api_bp = Blueprint('api', __name__)
logger = logging.getLogger(__name__)

# Exception raised by a service -> (HTTP status, error code)
SERVICE_ERRORS = (
    (LookupError, 404, 'NOT_FOUND'),
    (PermissionError, 403, 'FORBIDDEN'),
    (ValueError, 400, 'INVALID_INPUT'),
)


def get_services():
    """Get service instances."""
    database_service = current_app.database_service
    user_service = UserService(database_service, current_app.config)
    notification_service = NotificationService(database_service)
    event_service = EventService(database_service, notification_service, user_service, tz=current_app.timezone)
    category_service = CategoryService(database_service, current_app.config.get('DEFAULT_CATEGORY_COLOR'))

    return user_service, event_service, category_service, notification_service


def get_presenter() -> EventListPresenter:
    return EventListPresenter(current_app.config.get('RECURRING_EVENT_DATES'), current_app.timezone)


def api_response(success=True, data=None, message=None, error=None, status_code=200):
    """Create standardized API response."""
    response = {
        'success': success,
        'timestamp': datetime.now(timezone.utc).isoformat()
    }

    if data is not None:
        response['data'] = data

    if message:
        response['message'] = message

    if error:
        response['error'] = error

    return jsonify(response), status_code


def service_error(e: Exception, action: str):
    """Turn a service exception into an API error response."""
    for exc_type, status_code, code in SERVICE_ERRORS:
        if isinstance(e, exc_type):
            return api_response(False, error={'code': code, 'message': str(e)}, status_code=status_code)

    logger.error(f"Error in API {action}: {str(e)}")
    return api_response(False, error={'code': 'INTERNAL_ERROR', 'message': f'{action.capitalize()} failed'},
                        status_code=500)


def require_session():
    """Validate session and return user."""
    user = get_current_user()

    if not user:
        return None, api_response(False, error={'code': 'AUTH_REQUIRED', 'message': 'Authentication required'},
                                  status_code=401)

    return user, None


def require_admin():
    """Validate session and administrator rights."""
    user, error_response = require_session()
    if error_response:
        return None, error_response

    if not user.is_admin:
        return None, api_response(False, error={'code': 'ADMIN_REQUIRED', 'message': 'Administrator access required'},
                                  status_code=403)

    return user, None


def not_found(what: str):
    return api_response(False, error={'code': 'NOT_FOUND', 'message': f'{what} not found'}, status_code=404)


@api_bp.before_request
def check_database():
    """Refuse API calls while the database is unreachable."""
    database_service = getattr(current_app, 'database_service', None)
    if not database_service or not database_service.is_available():
        return api_response(False, error={'code': 'SERVICE_UNAVAILABLE', 'message': 'Database not available'},
                            status_code=503)


# Authentication endpoints

@api_bp.route('/auth/login', methods=['POST'])
@validate_json(['username', 'password'])
def login():
    """User login endpoint."""
    data = request.validated_data
    user_service, _, _, _ = get_services()

    user = user_service.authenticate_user(str(data['username']), str(data['password']))
    if not user:
        return api_response(False, error={'code': 'AUTH_FAILED', 'message': 'Incorrect username or password'},
                            status_code=401)

    login_user(user)
    return api_response(True, data={'user': user.to_dict()}, message='Login successful')


@api_bp.route('/auth/register', methods=['POST'])
@validate_json(['username', 'password'], ['email'])
def register():
    """User registration endpoint."""
    data = request.validated_data
    user_service, _, _, _ = get_services()

    try:
        user = user_service.register_user(str(data['username']), str(data['password']), data.get('email'))
    except (ValueError, RuntimeError) as e:
        return service_error(e, 'registration')

    return api_response(True, data={'user': user.to_dict()}, message='Account created', status_code=201)


@api_bp.route('/auth/logout', methods=['POST'])
def logout():
    """User logout endpoint."""
    session.clear()
    g.pop('current_user', None)
    return api_response(True, message='Successfully logged out')


@api_bp.route('/auth/me', methods=['GET'])
def me():
    """The signed-in user."""
    user, error_response = require_session()
    if error_response:
        return error_response

    return api_response(True, data={'user': user.to_dict()})


# Event endpoints

@api_bp.route('/events', methods=['GET'])
def list_events():
    """
    Active events with their countdowns.

    Dated events come first, soonest first; events without a date follow.
    Optional `type` query parameter restricts the listing to one event type.
    """
    _, event_service, _, _ = get_services()
    event_type = request.args.get('type')
    include_items = SecurityService.parse_bool(request.args.get('items'))

    if event_type:
        events = event_service.get_events_by_type(event_type, with_items=include_items)
    else:
        events = event_service.get_all_active_events(with_items=include_items)

    # Private lists stay hidden from callers who cannot open them
    user = get_current_user()
    for event in events:
        if event.items and event.is_private and not event_service.get_access(event, user).can_view:
            event.items = []

    presenter = get_presenter()
    listing = presenter.present(events, presenter.now())
    return api_response(True, data=listing.to_dict())


@api_bp.route('/events/mine', methods=['GET'])
def my_events():
    """Events owned by and shared with the caller."""
    user, error_response = require_session()
    if error_response:
        return error_response

    _, event_service, _, _ = get_services()
    presenter = get_presenter()
    now = presenter.now()

    events = []
    for event in event_service.get_user_events(user):
        countdown = presenter.countdown_for(event, now)
        events.append(countdown.to_dict() if countdown else event.to_dict())

    return api_response(True, data={'events': events, 'count': len(events)})


@api_bp.route('/events', methods=['POST'])
@validate_json(['name', 'eventType'], ['targetDate', 'hasTargetDate', 'isPrivate'])
def create_event():
    """Create an event."""
    user, error_response = require_session()
    if error_response:
        return error_response

    _, event_service, _, _ = get_services()
    try:
        event = event_service.create_event(user, request.validated_data)
    except (ValueError, RuntimeError) as e:
        return service_error(e, 'event creation')

    return api_response(True, data={'event': event.to_dict()}, message='Event created', status_code=201)


@api_bp.route('/events/personal', methods=['POST'])
def create_personal_events():
    """Seed the personal-calendar events for the caller."""
    user, error_response = require_session()
    if error_response:
        return error_response

    data = request.get_json(silent=True) or {}
    _, event_service, _, _ = get_services()
    try:
        year = int(data['year']) if data.get('year') else None
        events = event_service.create_personal_events(user, year)
    except (ValueError, RuntimeError) as e:
        return service_error(e, 'personal events creation')

    return api_response(True, data={'events': [event.to_dict() for event in events]},
                        message=f'{len(events)} events created', status_code=201)


@api_bp.route('/events/<event_id>', methods=['GET'])
def get_event(event_id):
    """
    One event with its items, countdown and the caller's rights.

    Private events may be opened with the administrator password in the
    X-Admin-Password header.
    """
    _, event_service, _, _ = get_services()
    user = get_current_user()

    try:
        event = event_service.get_event_for_user(event_id, user, request.headers.get('X-Admin-Password'))
    except PermissionError as e:
        return api_response(False, error={'code': 'PASSWORD_REQUIRED', 'message': str(e)}, status_code=403)

    if not event:
        return not_found('Event')

    presenter = get_presenter()
    countdown = presenter.countdown_for(event, presenter.now())
    data = countdown.to_dict() if countdown else event.to_dict()
    data['access'] = event_service.get_access(event, user).to_dict()
    # reaching here means the caller may view it, password unlock included
    data['access']['canView'] = True

    return api_response(True, data={'event': data})


@api_bp.route('/events/<event_id>', methods=['PATCH'])
@validate_json([], ['name', 'eventType', 'targetDate', 'hasTargetDate', 'isPrivate', 'isActive'])
def update_event(event_id):
    """Update an event."""
    user, error_response = require_session()
    if error_response:
        return error_response

    _, event_service, _, _ = get_services()
    try:
        event = event_service.update_event(event_id, user, request.validated_data)
    except (PermissionError, ValueError, RuntimeError) as e:
        return service_error(e, 'event update')

    if not event:
        return not_found('Event')

    return api_response(True, data={'event': event.to_dict()}, message='Event updated')


@api_bp.route('/events/<event_id>', methods=['DELETE'])
def delete_event(event_id):
    """Delete an event with its list."""
    user, error_response = require_session()
    if error_response:
        return error_response

    _, event_service, _, _ = get_services()
    try:
        deleted = event_service.delete_event(event_id, user)
    except PermissionError as e:
        return service_error(e, 'event deletion')

    if not deleted:
        return not_found('Event')

    return api_response(True, message='Event deleted')


@api_bp.route('/events/<event_id>/access', methods=['POST'])
def check_event_access(event_id):
    """Whether the caller may open an event, optionally with the admin password."""
    data = request.get_json(silent=True) or {}
    _, event_service, _, _ = get_services()

    result = event_service.check_event_access(event_id, get_current_user(), data.get('password'))
    if result is None:
        return not_found('Event')

    return api_response(True, data=result)


@api_bp.route('/events/<event_id>/shares', methods=['GET'])
def get_shares(event_id):
    """Users an event is shared with (owner and admins only)."""
    user, error_response = require_session()
    if error_response:
        return error_response

    _, event_service, _, _ = get_services()
    event = event_service.get_event(event_id, with_items=False)
    if not event:
        return not_found('Event')

    if not (event_service.get_access(event, user).is_owner or user.is_admin):
        return api_response(False, error={'code': 'FORBIDDEN', 'message': 'Only the owner can see shares'},
                            status_code=403)

    return api_response(True, data={'shares': event_service.get_shared_users(event_id)})


@api_bp.route('/events/<event_id>/share', methods=['POST'])
@validate_json(['username'], ['canEdit'])
def share_event(event_id):
    """Share an event with another user."""
    user, error_response = require_session()
    if error_response:
        return error_response

    data = request.validated_data
    _, event_service, _, _ = get_services()
    try:
        share = event_service.share_event(event_id, user, str(data['username']),
                                          SecurityService.parse_bool(data.get('canEdit')))
    except (LookupError, PermissionError, ValueError, RuntimeError) as e:
        return service_error(e, 'event sharing')

    return api_response(True, data={'share': share.to_dict()}, message=f"Event shared with {data['username']}")


@api_bp.route('/events/<event_id>/leave', methods=['POST'])
def leave_event(event_id):
    """Leave an event shared with the caller."""
    user, error_response = require_session()
    if error_response:
        return error_response

    _, event_service, _, _ = get_services()
    try:
        left = event_service.leave_event(event_id, user)
    except LookupError as e:
        return service_error(e, 'leaving event')

    if not left:
        return api_response(False, error={'code': 'INTERNAL_ERROR', 'message': 'Leaving event failed'},
                            status_code=500)

    return api_response(True, message='You left the event')


# Item endpoints

@api_bp.route('/events/<event_id>/items', methods=['POST'])
@validate_json(['name'], ['description', 'price', 'purchaseUrl', 'categoryId', 'photos'])
def add_item(event_id):
    """Add an item to an event's list."""
    user, error_response = require_session()
    if error_response:
        return error_response

    _, event_service, _, _ = get_services()
    try:
        item = event_service.add_item(event_id, user, request.validated_data)
    except (LookupError, PermissionError, ValueError, RuntimeError) as e:
        return service_error(e, 'item creation')

    return api_response(True, data={'item': item.to_dict()}, message='Item added', status_code=201)


@api_bp.route('/events/<event_id>/items/search', methods=['GET'])
def search_event_items(event_id):
    """
    Search an event's list.

    Query parameters: `q` (text) and any number of `category` IDs. With no
    category every item is considered; with no text the category filter
    alone applies.
    """
    _, event_service, _, _ = get_services()

    try:
        event = event_service.get_event_for_user(event_id, get_current_user(),
                                                 request.headers.get('X-Admin-Password'))
    except PermissionError as e:
        return service_error(e, 'item search')

    if not event:
        return not_found('Event')

    query = request.args.get('q', '').strip()
    limit = min(request.args.get('limit', 100, type=int), 100)

    items = filter_by_categories(event.items, request.args.getlist('category'))
    if query:
        items = search_items(items, query, limit)

    return api_response(True, data={
        'items': [item.to_dict() for item in items[:limit]],
        'count': len(items),
        'query': query
    })


@api_bp.route('/items/<item_id>/status', methods=['PATCH'])
@validate_json(['isPurchased'], ['purchasedBy'])
def update_item_status(item_id):
    """Mark an item as purchased or not purchased."""
    data = request.validated_data
    _, event_service, _, _ = get_services()

    try:
        item = event_service.set_item_purchased(item_id, get_current_user(),
                                                SecurityService.parse_bool(data['isPurchased']),
                                                data.get('purchasedBy'),
                                                admin_password=request.headers.get('X-Admin-Password'))
    except (PermissionError, RuntimeError) as e:
        return service_error(e, 'item status update')

    if not item:
        return not_found('Item')

    return api_response(True, data={'item': item.to_dict()})


@api_bp.route('/items/<item_id>', methods=['DELETE'])
def delete_item(item_id):
    """Remove an item from its list."""
    user, error_response = require_session()
    if error_response:
        return error_response

    _, event_service, _, _ = get_services()
    try:
        deleted = event_service.delete_item(item_id, user)
    except PermissionError as e:
        return service_error(e, 'item deletion')

    if not deleted:
        return not_found('Item')

    return api_response(True, message='Item deleted')


# Category endpoints

@api_bp.route('/categories', methods=['GET'])
def list_categories():
    """All categories; `withCounts=1` adds the number of items using each."""
    _, _, category_service, _ = get_services()

    if SecurityService.parse_bool(request.args.get('withCounts')):
        categories = category_service.get_categories_with_item_count()
    else:
        categories = category_service.get_categories()

    return api_response(True, data={'categories': [c.to_dict() for c in categories], 'count': len(categories)})


@api_bp.route('/categories', methods=['POST'])
@validate_json(['name'], ['color', 'icon'])
def create_category():
    """Create a category (admin)."""
    _, error_response = require_admin()
    if error_response:
        return error_response

    _, _, category_service, _ = get_services()
    try:
        category = category_service.create_category(request.validated_data)
    except (ValueError, RuntimeError) as e:
        return service_error(e, 'category creation')

    return api_response(True, data={'category': category.to_dict()}, message='Category created', status_code=201)


@api_bp.route('/categories/<category_id>', methods=['PUT'])
@validate_json(['name'], ['color', 'icon'])
def update_category(category_id):
    """Update a category (admin)."""
    _, error_response = require_admin()
    if error_response:
        return error_response

    _, _, category_service, _ = get_services()
    try:
        category = category_service.update_category(category_id, request.validated_data)
    except (ValueError, RuntimeError) as e:
        return service_error(e, 'category update')

    if not category:
        return not_found('Category')

    return api_response(True, data={'category': category.to_dict()}, message='Category updated')


@api_bp.route('/categories/<category_id>', methods=['DELETE'])
def delete_category(category_id):
    """Delete an unused category (admin)."""
    _, error_response = require_admin()
    if error_response:
        return error_response

    _, _, category_service, _ = get_services()
    try:
        deleted = category_service.delete_category(category_id)
    except ValueError as e:
        return api_response(False, error={'code': 'CATEGORY_IN_USE', 'message': str(e)}, status_code=409)

    if not deleted:
        return not_found('Category')

    return api_response(True, message='Category deleted')


@api_bp.route('/categories/defaults', methods=['POST'])
def initialize_categories():
    """Create the default categories on an empty base (admin)."""
    _, error_response = require_admin()
    if error_response:
        return error_response

    _, _, category_service, _ = get_services()
    try:
        created = category_service.initialize_default_categories()
    except ValueError as e:
        return api_response(False, error={'code': 'CATEGORIES_EXIST', 'message': str(e)}, status_code=409)
    except RuntimeError as e:
        return service_error(e, 'category initialisation')

    return api_response(True, data={'categories': [c.to_dict() for c in created]},
                        message=f'{len(created)} categories created', status_code=201)


# Notification endpoints

@api_bp.route('/notifications', methods=['GET'])
def list_notifications():
    """The caller's notifications, newest first; `unread=1` keeps unread ones."""
    user, error_response = require_session()
    if error_response:
        return error_response

    _, _, _, notification_service = get_services()
    notifications = notification_service.get_user_notifications(
        user, unread_only=SecurityService.parse_bool(request.args.get('unread'))
    )

    return api_response(True, data={
        'notifications': [n.to_dict() for n in notifications],
        'unreadCount': notification_service.get_unread_count(user)
    })


@api_bp.route('/notifications/<notification_id>/read', methods=['POST'])
def mark_notification_read(notification_id):
    """Mark one notification as read."""
    user, error_response = require_session()
    if error_response:
        return error_response

    _, _, _, notification_service = get_services()
    if not notification_service.mark_as_read(notification_id, user):
        return not_found('Notification')

    return api_response(True, message='Notification marked as read')


@api_bp.route('/notifications/read-all', methods=['POST'])
def mark_all_notifications_read():
    """Mark all of the caller's notifications as read."""
    user, error_response = require_session()
    if error_response:
        return error_response

    _, _, _, notification_service = get_services()
    notification_service.mark_all_as_read(user)
    return api_response(True, message='All notifications marked as read')


# Admin endpoints

@api_bp.route('/admin/check-password', methods=['POST'])
@validate_json(['password'])
def check_admin_password():
    """Check a password against the administrator accounts."""
    user_service, _, _, _ = get_services()
    valid = user_service.check_admin_password(str(request.validated_data['password']))

    if not valid:
        SecurityService.log_security_event('admin_password_failed', severity='WARNING')

    return api_response(True, data={'valid': valid})


@api_bp.route('/admin/clear', methods=['POST'])
@validate_json(['confirm'])
def clear_database():
    """Delete all data and recreate the administrator (admin)."""
    _, error_response = require_admin()
    if error_response:
        return error_response

    if request.validated_data['confirm'] != 'CLEAR':
        return api_response(False, error={'code': 'CONFIRMATION_REQUIRED', 'message': "Send confirm='CLEAR'"},
                            status_code=400)

    if not AdminService(current_app.database_service, current_app.config).clear_database():
        return api_response(False, error={'code': 'INTERNAL_ERROR', 'message': 'Clearing the database failed'},
                            status_code=500)

    session.clear()
    g.pop('current_user', None)
    return api_response(True, message='Database cleared')
