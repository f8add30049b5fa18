"""
Test configuration and fixtures for the expiring links service.
This centralizes all test setup, making individual tests clean.
"""

import os

# Must be set before the app (and its settings) are imported
os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["STORE_BACKEND"] = "sqlalchemy"
os.environ["CACHE_BACKEND"] = "memory"

import pytest
from fastapi.testclient import TestClient

from main import app
from expiring_links.cache.link_cache import LinkCache
from expiring_links.cache.strategies import InMemoryCache
from expiring_links.config import LinkPolicy
from expiring_links.database.connection import Base, SessionLocal, engine, get_db
from expiring_links.dependencies import get_cache
from expiring_links.services.link_service import LinkService
from expiring_links.services.short_code_generator import RandomShortCodeGenerator
from expiring_links.store.strategies import InMemoryLinkStore


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    This ensures tests are isolated and don't affect each other.
    """
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def memory_cache():
    return InMemoryCache()


@pytest.fixture(scope="function")
def client(db_session, memory_cache):
    """
    Create a test client with database and cache dependencies overridden.
    This is the main fixture that tests will use.
    """
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: memory_cache

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def policy():
    return LinkPolicy(code_length=6)


@pytest.fixture
def store():
    return InMemoryLinkStore()


@pytest.fixture
def link_cache(memory_cache):
    return LinkCache(memory_cache)


@pytest.fixture
def service(store, link_cache, policy):
    """LinkService over in-memory store and cache"""
    return LinkService(
        store=store,
        cache=link_cache,
        generator=RandomShortCodeGenerator(policy),
        policy=policy,
    )
