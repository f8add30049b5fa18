"""
Factory for creating link store instances.
"""

from enum import Enum
from typing import Optional

from sqlalchemy.orm import Session

from .strategies import LinkStore, SQLAlchemyLinkStore, InMemoryLinkStore


class StoreBackend(Enum):
    """Available store backends"""
    SQLALCHEMY = "sqlalchemy"
    MEMORY = "memory"


class LinkStoreFactory:
    """
    Simple factory for creating link store instances.

    SQLAlchemy stores wrap the caller's session, so a new one is built
    for every session. The in-memory store has no session and is kept as
    a singleton, otherwise every request would see an empty store.
    """

    _memory_instance: Optional[InMemoryLinkStore] = None

    @classmethod
    def create(cls, backend: StoreBackend, db: Optional[Session] = None) -> LinkStore:
        """
        Create a store for the given backend.

        Args:
            backend: Type of store backend (from enum)
            db: Database session, required for the SQLAlchemy backend

        Returns:
            LinkStore instance
        """
        if backend == StoreBackend.SQLALCHEMY:
            if db is None:
                raise ValueError("SQLAlchemy store requires a database session")
            return SQLAlchemyLinkStore(db)

        if backend == StoreBackend.MEMORY:
            if cls._memory_instance is None:
                cls._memory_instance = InMemoryLinkStore()
            return cls._memory_instance

        raise ValueError(f"Unknown store backend: {backend}")

    @classmethod
    def clear_instance(cls):
        """Clear cached in-memory instance (for testing)"""
        cls._memory_instance = None
