"""
In-memory search and category filtering over shopping items.
"""

from typing import Dict, Iterable, List, Optional

from eventlist.models.shopping_item import ShoppingItem


def _matches_words(text: Optional[str], query: str) -> bool:
    """True if text starts with query or any of its words contains it."""
    if not text:
        return False

    text = text.lower()
    if text.startswith(query):
        return True

    return any(query in word for word in text.split(' '))


def item_matches(item: ShoppingItem, query: str) -> bool:
    """
    Check an item against a search query.

    Matches the name, the description and the category name,
    case-insensitively. A blank query matches nothing.
    """
    query = (query or '').strip().lower()
    if not query:
        return False

    category_name = item.category.name if item.category else None
    return (
        _matches_words(item.name, query)
        or _matches_words(item.description, query)
        or _matches_words(category_name, query)
    )


def search_items(items: Iterable[ShoppingItem], query: str, limit: Optional[int] = None) -> List[ShoppingItem]:
    """Items matching query, in their original order."""
    results = [item for item in items if item_matches(item, query)]
    return results[:limit] if limit else results


def filter_by_categories(items: Iterable[ShoppingItem], category_ids: Iterable[str]) -> List[ShoppingItem]:
    """
    Keep items in any of the selected categories.

    An empty selection means every category, so all items are kept.
    """
    selected = {category_id for category_id in category_ids if category_id}
    items = list(items)
    if not selected:
        return items

    return [item for item in items if item.category_id in selected]


def category_counts(items: Iterable[ShoppingItem]) -> Dict[str, int]:
    """Number of items per category ID (uncategorised items are skipped)."""
    counts: Dict[str, int] = {}
    for item in items:
        if item.category_id:
            counts[item.category_id] = counts.get(item.category_id, 0) + 1
    return counts
