"""
Database service for the relational store.

This service handles all database operations using SQLAlchemy. The schema
is written to run on both PostgreSQL and SQLite.
"""

import logging
from typing import Dict, List, Any, Optional, Sequence, Tuple
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id VARCHAR(36) PRIMARY KEY,
        username VARCHAR(50) UNIQUE NOT NULL,
        password_hash VARCHAR(255) NOT NULL,
        email VARCHAR(255),
        is_admin BOOLEAN DEFAULT FALSE,
        created_at TIMESTAMP WITH TIME ZONE,
        updated_at TIMESTAMP WITH TIME ZONE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS events (
        id VARCHAR(36) PRIMARY KEY,
        name VARCHAR(200) NOT NULL,
        event_type VARCHAR(50) NOT NULL,
        target_date TIMESTAMP,
        has_target_date BOOLEAN DEFAULT TRUE,
        is_private BOOLEAN DEFAULT FALSE,
        is_active BOOLEAN DEFAULT TRUE,
        owner_id VARCHAR(36) REFERENCES users(id) ON DELETE CASCADE,
        created_at TIMESTAMP WITH TIME ZONE,
        updated_at TIMESTAMP WITH TIME ZONE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS event_shares (
        id VARCHAR(36) PRIMARY KEY,
        event_id VARCHAR(36) NOT NULL REFERENCES events(id) ON DELETE CASCADE,
        user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        can_edit BOOLEAN DEFAULT FALSE,
        created_at TIMESTAMP WITH TIME ZONE,
        UNIQUE (event_id, user_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS categories (
        id VARCHAR(36) PRIMARY KEY,
        name VARCHAR(100) UNIQUE NOT NULL,
        color VARCHAR(7) DEFAULT '#3B82F6',
        icon VARCHAR(20),
        created_at TIMESTAMP WITH TIME ZONE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS shopping_items (
        id VARCHAR(36) PRIMARY KEY,
        event_id VARCHAR(36) NOT NULL REFERENCES events(id) ON DELETE CASCADE,
        name VARCHAR(200) NOT NULL,
        description TEXT,
        price NUMERIC(10,2),
        purchase_url TEXT,
        category_id VARCHAR(36) REFERENCES categories(id),
        is_purchased BOOLEAN DEFAULT FALSE,
        purchased_by VARCHAR(100),
        purchased_at TIMESTAMP WITH TIME ZONE,
        created_at TIMESTAMP WITH TIME ZONE,
        updated_at TIMESTAMP WITH TIME ZONE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS item_photos (
        id VARCHAR(36) PRIMARY KEY,
        item_id VARCHAR(36) NOT NULL REFERENCES shopping_items(id) ON DELETE CASCADE,
        image_url TEXT NOT NULL,
        alt_text VARCHAR(255),
        sort_order INTEGER DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS notifications (
        id VARCHAR(36) PRIMARY KEY,
        user_id VARCHAR(36) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        type VARCHAR(50) NOT NULL,
        title VARCHAR(200) NOT NULL,
        message TEXT NOT NULL,
        data TEXT,
        is_read BOOLEAN DEFAULT FALSE,
        created_at TIMESTAMP WITH TIME ZONE
    )
    """,
]

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_events_owner_id ON events(owner_id)",
    "CREATE INDEX IF NOT EXISTS idx_event_shares_user_id ON event_shares(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_shopping_items_event_id ON shopping_items(event_id)",
    "CREATE INDEX IF NOT EXISTS idx_shopping_items_category_id ON shopping_items(category_id)",
    "CREATE INDEX IF NOT EXISTS idx_item_photos_item_id ON item_photos(item_id)",
    "CREATE INDEX IF NOT EXISTS idx_notifications_user_id ON notifications(user_id)",
]


class DatabaseService:
    """Service for relational database operations."""

    def __init__(self, config: Dict[str, Any]):
        """Initialize database service with configuration."""
        self.config = config
        self.logger = logging.getLogger(__name__)
        self._engine: Optional[Engine] = None
        self._initialized = False

        self._initialize_database()

    def _initialize_database(self):
        """Initialize database connection."""
        database_url = self.config.get('DATABASE_URL')

        try:
            engine_options = {
                'echo': bool(self.config.get('SQL_ECHO', False)),
                'pool_pre_ping': True,
            }
            if not database_url.startswith('sqlite'):
                engine_options.update(pool_size=5, max_overflow=10)

            self._engine = create_engine(database_url, **engine_options)

            # Test connection
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))

            self._initialized = True
            self.logger.info(f"Database connection successful ({self._engine.dialect.name})")

        except SQLAlchemyError as e:
            self.logger.error(f"Failed to initialize database: {str(e)}")
            self._initialized = False

    @property
    def dialect(self) -> str:
        return self._engine.dialect.name if self._engine is not None else ''

    def is_available(self) -> bool:
        """Check if database is available."""
        return self._initialized and self._engine is not None

    def create_tables(self) -> bool:
        """Create database tables."""
        if not self.is_available():
            return False

        try:
            with self._engine.begin() as conn:
                for statement in SCHEMA + INDEXES:
                    conn.execute(text(statement))

            self.logger.info("Database tables created successfully")
            return True

        except SQLAlchemyError as e:
            self.logger.error(f"Failed to create tables: {str(e)}")
            return False

    def execute_query(self, query: str, params: dict = None) -> List[Dict[str, Any]]:
        """Execute a SELECT query and return results."""
        if not self.is_available():
            return []

        try:
            with self._engine.connect() as conn:
                result = conn.execute(text(query), params or {})
                return [dict(row) for row in result.mappings().all()]

        except SQLAlchemyError as e:
            self.logger.error(f"Query execution failed: {str(e)}")
            return []

    def query_one(self, query: str, params: dict = None) -> Optional[Dict[str, Any]]:
        """Execute a SELECT query and return the first row, if any."""
        results = self.execute_query(query, params)
        return results[0] if results else None

    def count(self, query: str, params: dict = None) -> int:
        """Execute a `SELECT COUNT(*) AS count` query."""
        row = self.query_one(query, params)
        return int(row['count']) if row else 0

    def execute_update(self, query: str, params: dict = None) -> bool:
        """Execute an INSERT/UPDATE/DELETE query."""
        return self.execute_transaction([(query, params or {})])

    def execute_transaction(self, statements: Sequence[Tuple[str, dict]]) -> bool:
        """
        Execute several INSERT/UPDATE/DELETE statements atomically.

        Args:
            statements: Sequence of (sql, params) pairs

        Returns:
            True if every statement ran and the transaction committed
        """
        if not self.is_available():
            return False

        try:
            with self._engine.begin() as conn:
                for query, params in statements:
                    conn.execute(text(query), params or {})
            return True

        except SQLAlchemyError as e:
            self.logger.error(f"Update execution failed: {str(e)}")
            return False

    def clear_all_data(self) -> bool:
        """Delete every row from every table, children first."""
        tables = ('item_photos', 'shopping_items', 'event_shares', 'notifications',
                  'events', 'categories', 'users')
        success = self.execute_transaction([(f"DELETE FROM {table}", {}) for table in tables])
        if success:
            self.logger.warning("All application data deleted")
        return success

    def get_table_counts(self) -> Dict[str, int]:
        """Row counts per table, for health checks."""
        counts = {}
        for table in ('users', 'events', 'shopping_items', 'categories', 'notifications'):
            counts[table] = self.count(f"SELECT COUNT(*) AS count FROM {table}")
        return counts

    def dispose(self):
        """Release pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
