"""
Main routes: home page countdowns and health check.
"""

import logging
from datetime import datetime
from flask import Blueprint, render_template, current_app, jsonify

from eventlist.services.event_presenter import EventListPresenter
from eventlist.services.event_service import EventService

main_bp = Blueprint('main', __name__)
logger = logging.getLogger(__name__)


def get_presenter() -> EventListPresenter:
    """Presenter configured with the recurring date table."""
    return EventListPresenter(current_app.config.get('RECURRING_EVENT_DATES'), current_app.timezone)


@main_bp.route('/')
def index():
    """Home page: every active event with its countdown, soonest first."""
    try:
        events = EventService(current_app.database_service).get_all_active_events(with_items=False)
        presenter = get_presenter()
        listing = presenter.present(events, presenter.now())
    except Exception as e:
        logger.error(f"Error loading home page: {str(e)}")
        return render_template('error.html',
                               error_message="An error occurred loading the events."), 500

    return render_template('index.html', listing=listing)


@main_bp.route('/health')
def health():
    """Health check endpoint."""
    status = {
        'timestamp': datetime.now().isoformat(),
        'app_status': 'running',
        'database': {}
    }

    database_service = getattr(current_app, 'database_service', None)
    if database_service and database_service.is_available():
        status['database']['available'] = True
        status['database']['dialect'] = database_service.dialect
        status['database']['counts'] = database_service.get_table_counts()
        code = 200
    else:
        status['database']['available'] = False
        status['app_status'] = 'degraded'
        code = 503

    return jsonify(status), code
