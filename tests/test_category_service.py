"""
Tests for category management.
"""

import pytest

from eventlist.services.category_service import DEFAULT_CATEGORIES


def test_create_with_default_colour(category_service):
    category = category_service.create_category({'name': 'Livres'})

    assert category.color == '#3B82F6'
    assert category_service.get_category(category.category_id).name == 'Livres'


def test_names_are_unique(category_service):
    category_service.create_category({'name': 'Livres'})

    with pytest.raises(ValueError):
        category_service.create_category({'name': 'livres'})


def test_invalid_colour(category_service):
    with pytest.raises(ValueError):
        category_service.create_category({'name': 'Livres', 'color': 'red'})


def test_update(category_service):
    category = category_service.create_category({'name': 'Livres'})
    other = category_service.create_category({'name': 'Jeux'})

    updated = category_service.update_category(category.category_id,
                                               {'name': 'Livres & BD', 'color': '#112233', 'icon': '📚'})
    assert (updated.name, updated.color, updated.icon) == ('Livres & BD', '#112233', '📚')

    with pytest.raises(ValueError):
        category_service.update_category(other.category_id, {'name': 'Livres & BD'})

    assert category_service.update_category('missing', {'name': 'X'}) is None


def test_delete_refuses_used_category(category_service, event_service, alice):
    category = category_service.create_category({'name': 'Livres'})
    event = event_service.create_event(alice, {'name': 'Noël', 'eventType': 'noel'})
    event_service.add_item(event.event_id, alice, {'name': 'Roman', 'categoryId': category.category_id})

    with pytest.raises(ValueError, match='used by 1 item'):
        category_service.delete_category(category.category_id)

    counts = {c.name: c.item_count for c in category_service.get_categories_with_item_count()}
    assert counts == {'Livres': 1}


def test_delete(category_service):
    category = category_service.create_category({'name': 'Livres'})

    assert category_service.delete_category(category.category_id)
    assert category_service.get_category(category.category_id) is None
    assert not category_service.delete_category(category.category_id)


def test_default_categories_only_on_empty_base(category_service):
    created = category_service.initialize_default_categories()

    assert len(created) == len(DEFAULT_CATEGORIES) == 15
    with pytest.raises(ValueError):
        category_service.initialize_default_categories()
