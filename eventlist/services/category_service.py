"""
Category service for managing item categories.
"""

import logging
from typing import Any, Dict, List, Optional

from eventlist.models.category import Category
from eventlist.services.database_service import DatabaseService
from eventlist.services.security_service import SecurityService

# (name, colour, icon)
DEFAULT_CATEGORIES = [
    ('Vêtements & Chaussures', '#EC4899', '👕'),
    ('Électronique & Tech', '#3B82F6', '💻'),
    ('Livres & Médias', '#8B5CF6', '📚'),
    ('Beauté & Soins', '#F472B6', '💄'),
    ('Cuisine & Maison', '#F59E0B', '🏠'),
    ('Gaming & Loisirs', '#10B981', '🎮'),
    ('Sport & Fitness', '#EF4444', '⚽'),
    ('Bijoux & Accessoires', '#FBBF24', '💍'),
    ('Santé & Bien-être', '#14B8A6', '🌿'),
    ('Bricolage & Jardinage', '#84CC16', '🔨'),
    ('Alimentation & Boissons', '#F97316', '🍫'),
    ('Décoration & Art', '#A855F7', '🎨'),
    ('Outils & Équipements', '#6B7280', '🧰'),
    ('Mode & Accessoires', '#DB2777', '👜'),
    ('Loisirs & Hobbies', '#0EA5E9', '🎯'),
]


class CategoryService:
    """
    Service for category management.

    Categories are shared by every event; a category still used by an item
    cannot be deleted.
    """

    def __init__(self, database_service: DatabaseService, default_color: Optional[str] = None):
        """
        Initialize category service.

        Args:
            database_service: Database service instance
            default_color: Colour used when none is given
        """
        self.db = database_service
        self.default_color = default_color or '#3B82F6'
        self.logger = logging.getLogger(__name__)

    def get_categories(self) -> List[Category]:
        """Get all categories ordered by name."""
        rows = self.db.execute_query("SELECT * FROM categories ORDER BY name ASC")
        return [Category.from_row(row) for row in rows]

    def get_categories_with_item_count(self) -> List[Category]:
        """Get all categories with the number of items using each."""
        rows = self.db.execute_query(
            """SELECT c.id, c.name, c.color, c.icon, c.created_at, COUNT(i.id) AS item_count
               FROM categories c
               LEFT JOIN shopping_items i ON i.category_id = c.id
               GROUP BY c.id, c.name, c.color, c.icon, c.created_at
               ORDER BY c.name ASC"""
        )
        return [Category.from_row(row) for row in rows]

    def get_category(self, category_id: str) -> Optional[Category]:
        """Get category by ID."""
        if not category_id:
            return None

        row = self.db.query_one("SELECT * FROM categories WHERE id = :id", {'id': category_id})
        return Category.from_row(row) if row else None

    def create_category(self, data: Dict[str, Any]) -> Category:
        """
        Create a category.

        Args:
            data: {'name', 'color'?, 'icon'?}

        Returns:
            Created Category

        Raises:
            ValueError: if data is invalid or the name is already used
            RuntimeError: if the category could not be stored
        """
        name, color, icon = self._clean(data)

        if self._name_taken(name):
            raise ValueError(f"A category named '{name}' already exists")

        category = Category.create_new(name, color, icon)
        success = self.db.execute_update(
            """INSERT INTO categories (id, name, color, icon, created_at)
               VALUES (:id, :name, :color, :icon, :created_at)""",
            {
                'id': category.category_id,
                'name': category.name,
                'color': category.color,
                'icon': category.icon,
                'created_at': category.created_at.isoformat()
            }
        )
        if not success:
            raise RuntimeError("Failed to create category")

        self.logger.info(f"Created category '{name}'")
        return category

    def update_category(self, category_id: str, data: Dict[str, Any]) -> Optional[Category]:
        """
        Update a category.

        Returns:
            Updated Category, or None if it does not exist

        Raises:
            ValueError: if data is invalid or the name is already used
            RuntimeError: if the update failed
        """
        category = self.get_category(category_id)
        if not category:
            return None

        name, color, icon = self._clean(data)

        if self._name_taken(name, exclude_id=category_id):
            raise ValueError(f"A category named '{name}' already exists")

        success = self.db.execute_update(
            "UPDATE categories SET name = :name, color = :color, icon = :icon WHERE id = :id",
            {'name': name, 'color': color, 'icon': icon, 'id': category_id}
        )
        if not success:
            raise RuntimeError("Failed to update category")

        category.name, category.color, category.icon = name, color, icon
        return category

    def delete_category(self, category_id: str) -> bool:
        """
        Delete an unused category.

        Returns:
            True if deleted, False if it does not exist

        Raises:
            ValueError: if items still use the category
        """
        if not self.get_category(category_id):
            return False

        in_use = self.db.count(
            "SELECT COUNT(*) AS count FROM shopping_items WHERE category_id = :id", {'id': category_id}
        )
        if in_use:
            raise ValueError(
                f"Cannot delete this category: it is used by {in_use} item(s)"
            )

        return self.db.execute_update("DELETE FROM categories WHERE id = :id", {'id': category_id})

    def initialize_default_categories(self) -> List[Category]:
        """
        Create the default categories on an empty base.

        Raises:
            ValueError: if categories already exist
        """
        if self.db.count("SELECT COUNT(*) AS count FROM categories"):
            raise ValueError("Default categories can only be created when no category exists")

        created = [
            self.create_category({'name': name, 'color': color, 'icon': icon})
            for name, color, icon in DEFAULT_CATEGORIES
        ]
        self.logger.info(f"Created {len(created)} default categories")
        return created

    def _clean(self, data: Dict[str, Any]):
        """Validate and normalise category input."""
        validation = SecurityService.validate_category_data(data)
        if validation['errors']:
            raise ValueError('; '.join(validation['errors']))

        name = SecurityService.clean_text(data.get('name'))
        color = SecurityService.clean_text(data.get('color')) or self.default_color
        icon = SecurityService.clean_optional_text(data.get('icon'))
        return name, color, icon

    def _name_taken(self, name: str, exclude_id: Optional[str] = None) -> bool:
        """Check for another category with the same name (case-insensitive)."""
        row = self.db.query_one(
            "SELECT id FROM categories WHERE LOWER(name) = LOWER(:name)", {'name': name}
        )
        return bool(row) and row['id'] != exclude_id
