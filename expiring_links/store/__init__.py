"""
Durable link store.
Implements Strategy Pattern for flexible persistence backends.
"""

from .exceptions import LinkAlreadyExistsError, StoreError
from .strategies import LinkStore, SQLAlchemyLinkStore, InMemoryLinkStore
from .factory import LinkStoreFactory, StoreBackend

__all__ = [
    "LinkStore",
    "SQLAlchemyLinkStore",
    "InMemoryLinkStore",
    "LinkStoreFactory",
    "StoreBackend",
    "StoreError",
    "LinkAlreadyExistsError",
]
