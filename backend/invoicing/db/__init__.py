"""Database package"""

from invoicing.db.session import AsyncSessionLocal, engine, enable_sqlite_foreign_keys, get_db
from invoicing.models.base import Base

__all__ = ["Base", "AsyncSessionLocal", "engine", "enable_sqlite_foreign_keys", "get_db"]
