"""
Entity Store — the authoritative remote service and its reference backends.

Usage:
    from artisan.store import MemoryEntityStore, SQLAlchemyEntityStore, create_database

    store = MemoryEntityStore()                       # tests, demos
    session_factory, _ = await create_database(url)   # relational backend
    store = SQLAlchemyEntityStore(session_factory)
"""

from artisan.store._protocol import EntityStore, StoreResult, utcnow
from artisan.store._memory import MemoryEntityStore, new_id
from artisan.store._sqlalchemy import SQLAlchemyEntityStore, create_database

__all__ = (
    "EntityStore",
    "StoreResult",
    "utcnow",
    "MemoryEntityStore",
    "new_id",
    "SQLAlchemyEntityStore",
    "create_database",
)
