"""
FastAPI dependencies for dependency injection.

This module provides singleton instances of the cache and the policy,
and builds a LinkService per request around the request's DB session.

Pattern: Dependency Injection
- Loose coupling between components
- Easy to test (override get_cache / get_link_store)
- Flexible (swap implementations via config)
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from expiring_links.cache.factory import CacheFactory, CacheBackend
from expiring_links.cache.link_cache import LinkCache
from expiring_links.cache.strategies import CacheStrategy
from expiring_links.config import LinkPolicy, settings
from expiring_links.database.connection import get_db
from expiring_links.services.link_service import LinkService
from expiring_links.services.short_code_generator import (
    RandomShortCodeGenerator,
    ShortCodeGenerator,
)
from expiring_links.store.factory import LinkStoreFactory, StoreBackend
from expiring_links.store.strategies import LinkStore


@lru_cache()
def get_policy() -> LinkPolicy:
    """Immutable link policy, snapshotted from settings once"""
    return settings.link_policy()


@lru_cache()
def get_cache() -> CacheStrategy:
    """
    Get cache instance (singleton).

    Factory gets config from settings internally.
    @lru_cache ensures this is called only once.
    """
    backend = CacheBackend(settings.cache_backend)
    return CacheFactory.create(backend)


@lru_cache()
def get_generator() -> ShortCodeGenerator:
    return RandomShortCodeGenerator(get_policy())


def get_link_store(db: Session = Depends(get_db)) -> LinkStore:
    """Store bound to this request's session"""
    return LinkStoreFactory.create(StoreBackend(settings.store_backend), db=db)


def get_link_service(
    store: LinkStore = Depends(get_link_store),
    cache: CacheStrategy = Depends(get_cache),
    generator: ShortCodeGenerator = Depends(get_generator),
    policy: LinkPolicy = Depends(get_policy),
) -> LinkService:
    """
    Get LinkService with all dependencies injected.

    Controllers depend on the service only; the service depends on the
    store, cache and generator.
    """
    return LinkService(
        store=store,
        cache=LinkCache(cache),
        generator=generator,
        policy=policy,
    )
