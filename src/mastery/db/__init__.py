"""Database module for SQLite persistence.

Provides:
- Database connection management and schema initialization
- Repository functions for concepts, mastery progress and the task catalog
"""

from mastery.db.database import Database, StoreUnavailableError

__all__ = ["Database", "StoreUnavailableError"]
