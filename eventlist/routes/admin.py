"""
Administration routes: dashboard, categories and database maintenance.
"""

import logging
from flask import Blueprint, render_template, request, redirect, url_for, flash, current_app, session, abort

from eventlist.routes.auth import admin_required
from eventlist.services.admin_service import AdminService

admin_bp = Blueprint('admin', __name__)
logger = logging.getLogger(__name__)


def get_admin_service() -> AdminService:
    """Get admin service instance."""
    return AdminService(current_app.database_service, current_app.config)


def _category_form_data():
    return {
        'name': request.form.get('name', ''),
        'color': request.form.get('color') or None,
        'icon': request.form.get('icon') or None
    }


@admin_bp.route('/')
@admin_required
def dashboard():
    """Admin dashboard."""
    return render_template('admin.html', **get_admin_service().get_dashboard())


@admin_bp.route('/categories', methods=['POST'])
@admin_required
def create_category():
    """Create a category."""
    admin_service = get_admin_service()

    try:
        category = admin_service.categories.create_category(_category_form_data())
    except ValueError as e:
        flash(str(e), 'error')
    except RuntimeError as e:
        logger.error(f"Error creating category: {str(e)}")
        flash('An error occurred creating the category.', 'error')
    else:
        flash(f"Category '{category.name}' created.", 'success')

    return redirect(url_for('admin.dashboard'))


@admin_bp.route('/categories/<category_id>/edit', methods=['POST'])
@admin_required
def update_category(category_id):
    """Rename or recolour a category."""
    admin_service = get_admin_service()

    try:
        category = admin_service.categories.update_category(category_id, _category_form_data())
    except ValueError as e:
        flash(str(e), 'error')
        return redirect(url_for('admin.dashboard'))

    if not category:
        abort(404)

    flash(f"Category '{category.name}' updated.", 'success')
    return redirect(url_for('admin.dashboard'))


@admin_bp.route('/categories/<category_id>/delete', methods=['POST'])
@admin_required
def delete_category(category_id):
    """Delete an unused category."""
    admin_service = get_admin_service()

    try:
        deleted = admin_service.categories.delete_category(category_id)
    except ValueError as e:
        flash(str(e), 'error')
        return redirect(url_for('admin.dashboard'))

    if not deleted:
        abort(404)

    flash('Category deleted.', 'success')
    return redirect(url_for('admin.dashboard'))


@admin_bp.route('/categories/defaults', methods=['POST'])
@admin_required
def initialize_categories():
    """Create the default categories on an empty base."""
    admin_service = get_admin_service()

    try:
        created = admin_service.categories.initialize_default_categories()
    except ValueError as e:
        flash(str(e), 'error')
    else:
        flash(f'{len(created)} default categories created.', 'success')

    return redirect(url_for('admin.dashboard'))


@admin_bp.route('/clear', methods=['POST'])
@admin_required
def clear_database():
    """Delete all data and sign out."""
    if request.form.get('confirm') != 'CLEAR':
        flash('Type CLEAR to confirm.', 'error')
        return redirect(url_for('admin.dashboard'))

    if not get_admin_service().clear_database():
        flash('An error occurred clearing the database.', 'error')
        return redirect(url_for('admin.dashboard'))

    session.clear()
    flash('Database cleared. Sign in again with the administrator account.', 'success')
    return redirect(url_for('auth.login'))


@admin_bp.route('/recreate-admin', methods=['POST'])
@admin_required
def recreate_admin():
    """Reset the configured administrator account."""
    if get_admin_service().recreate_admin():
        flash('Administrator account reset.', 'success')
    else:
        flash('An error occurred resetting the administrator account.', 'error')
    return redirect(url_for('admin.dashboard'))
