"""
Cache module for the expiring links service.
Implements Strategy Pattern for flexible cache backends.
"""

from .exceptions import CacheError
from .strategies import CacheStrategy, RedisCache, InMemoryCache, NullCache
from .link_cache import LinkCache
from .factory import CacheFactory, CacheBackend

__all__ = [
    "CacheStrategy",
    "RedisCache",
    "InMemoryCache",
    "NullCache",
    "LinkCache",
    "CacheFactory",
    "CacheBackend",
    "CacheError",
]
