"""
Tests for LinkService business logic, over in-memory store and cache.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple
from unittest.mock import AsyncMock

import pytest
from freezegun import freeze_time

from expiring_links.cache.exceptions import CacheError
from expiring_links.cache.link_cache import LinkCache
from expiring_links.cache.strategies import CacheStrategy, InMemoryCache
from expiring_links.config import LinkPolicy
from expiring_links.schemas.link import NewLink
from expiring_links.services.exceptions import (
    ConflictError,
    GenerationExhaustedError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from expiring_links.services.link_service import MAX_GENERATION_ATTEMPTS, LinkService
from expiring_links.services.short_code_generator import ALPHABET, ShortCodeGenerator
from expiring_links.store.exceptions import LinkAlreadyExistsError, StoreError
from expiring_links.store.strategies import InMemoryLinkStore

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class ScriptedGenerator(ShortCodeGenerator):
    """Hands out a fixed sequence of candidates"""

    def __init__(self, codes):
        self.codes = list(codes)
        self.calls = 0

    def next_code(self) -> str:
        self.calls += 1
        return self.codes.pop(0)


class TTLIgnoringCache(CacheStrategy):
    """Backend that never expires anything, like a cache with a skewed clock"""

    def __init__(self):
        self.entries: Dict[str, Tuple[str, timedelta]] = {}

    async def get(self, key: str) -> Optional[str]:
        entry = self.entries.get(key)
        return entry[0] if entry else None

    async def set(self, key: str, value: str, ttl: timedelta) -> bool:
        self.entries[key] = (value, ttl)
        return True

    async def delete(self, key: str) -> bool:
        return self.entries.pop(key, None) is not None


def build_service(store=None, backend=None, generator=None, **policy) -> LinkService:
    policy = LinkPolicy(**policy)
    return LinkService(
        store=store or InMemoryLinkStore(),
        cache=LinkCache(backend or InMemoryCache()),
        generator=generator or ScriptedGenerator(["gen001", "gen002", "gen003"]),
        policy=policy,
    )


class TestCreateLink:

    def test_default_expiration_and_length(self, service, policy):
        """Example: no custom code, no duration -> configured length, now + 24h"""
        with freeze_time(NOW):
            link = asyncio.run(service.create_link("https://example.com"))

        assert len(link.code) == policy.code_length
        assert set(link.code) <= set(ALPHABET)
        assert link.expires_at == NOW + timedelta(hours=24)
        assert link.is_custom is False
        assert link.original_url == "https://example.com"

    def test_explicit_duration_in_hours(self, service):
        with freeze_time(NOW):
            link = asyncio.run(service.create_link("https://example.com", duration_hours=3))

        assert link.expires_at == NOW + timedelta(hours=3)

    def test_configured_default_expiration(self):
        service = build_service(default_expiration=timedelta(days=7))

        with freeze_time(NOW):
            link = asyncio.run(service.create_link("https://example.com"))

        assert link.expires_at == NOW + timedelta(days=7)

    def test_custom_code(self, service):
        link = asyncio.run(service.create_link("https://example.com", custom_code="promo1"))

        assert link.code == "promo1"
        assert link.is_custom is True

    def test_custom_code_twice_conflicts(self, service, store):
        """Example: the same custom code twice -> second fails with ConflictError"""
        asyncio.run(service.create_link("https://example.com", custom_code="promo1"))

        with pytest.raises(ConflictError, match="promo1"):
            asyncio.run(service.create_link("https://other.example", custom_code="promo1"))

        stored = asyncio.run(store.get_by_code("promo1"))
        assert stored.original_url == "https://example.com"

    def test_custom_code_conflicts_with_generated_code(self):
        service = build_service(generator=ScriptedGenerator(["taken1"]))
        asyncio.run(service.create_link("https://example.com"))

        with pytest.raises(ConflictError):
            asyncio.run(service.create_link("https://example.com", custom_code="taken1"))

    def test_concurrent_custom_code_exactly_one_wins(self, store):
        service = build_service(store=store)

        async def race():
            return await asyncio.gather(
                *(service.create_link(f"https://example.com/{i}", custom_code="promo1") for i in range(10)),
                return_exceptions=True,
            )

        results = asyncio.run(race())

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        assert len(successes) == 1
        assert len(failures) == 9
        assert all(isinstance(f, ConflictError) for f in failures)
        assert asyncio.run(store.get_by_code("promo1")).original_url == successes[0].original_url

    def test_insert_race_on_custom_code_is_conflict(self):
        """Availability check passes but the unique index rejects the insert"""
        store = AsyncMock(spec=InMemoryLinkStore)
        store.is_code_available.return_value = True
        store.create_url.side_effect = LinkAlreadyExistsError("promo1")
        service = build_service(store=store)

        with pytest.raises(ConflictError):
            asyncio.run(service.create_link("https://example.com", custom_code="promo1"))

    def test_retries_until_free_candidate(self, store):
        for code in ("gen001", "gen002"):
            asyncio.run(store.create_url(NewLink(
                code=code, original_url="https://taken.example", expires_at=NOW + timedelta(days=1),
            )))
        generator = ScriptedGenerator(["gen001", "gen002", "gen003", "gen004"])
        service = build_service(store=store, generator=generator)

        link = asyncio.run(service.create_link("https://example.com"))

        assert link.code == "gen003"
        assert generator.calls == 3

    def test_first_free_candidate_is_used(self):
        generator = ScriptedGenerator(["gen001", "gen002"])
        service = build_service(generator=generator)

        link = asyncio.run(service.create_link("https://example.com"))

        assert link.code == "gen001"
        assert generator.calls == 1

    def test_generation_exhausted_after_five_attempts(self, store):
        asyncio.run(store.create_url(NewLink(
            code="dupdup", original_url="https://taken.example", expires_at=NOW + timedelta(days=1),
        )))
        generator = ScriptedGenerator(["dupdup"] * 10)
        service = build_service(store=store, generator=generator)

        with pytest.raises(GenerationExhaustedError):
            asyncio.run(service.create_link("https://example.com"))

        assert generator.calls == MAX_GENERATION_ATTEMPTS == 5

    def test_insert_race_on_generated_code_retries(self):
        store = InMemoryLinkStore()
        real_create = store.create_url
        attempts = []

        async def create_losing_first_race(params):
            attempts.append(params.code)
            if len(attempts) == 1:
                raise LinkAlreadyExistsError(params.code)
            return await real_create(params)

        store.create_url = create_losing_first_race
        service = build_service(store=store, generator=ScriptedGenerator(["gen001", "gen002"]))

        link = asyncio.run(service.create_link("https://example.com"))

        assert attempts == ["gen001", "gen002"]
        assert link.code == "gen002"

    def test_store_failure_is_internal_error(self):
        store = AsyncMock(spec=InMemoryLinkStore)
        store.is_code_available.side_effect = StoreError("database is down")
        service = build_service(store=store)

        with pytest.raises(InternalError, match="promo1") as exc_info:
            asyncio.run(service.create_link("https://example.com", custom_code="promo1"))

        assert isinstance(exc_info.value.__cause__, StoreError)

    def test_cache_failure_is_surfaced_but_link_persists(self, store):
        backend = AsyncMock(spec=InMemoryCache)
        backend.set.side_effect = CacheError("redis down")
        service = build_service(store=store, backend=backend)

        with pytest.raises(InternalError, match="cache.set_url"):
            asyncio.run(service.create_link("https://example.com", custom_code="promo1"))

        assert asyncio.run(store.get_by_code("promo1")) is not None

    def test_cache_failure_tolerated_when_not_strict(self, store):
        backend = AsyncMock(spec=InMemoryCache)
        backend.set.side_effect = CacheError("redis down")
        service = build_service(store=store, backend=backend, strict_cache_writes=False)

        link = asyncio.run(service.create_link("https://example.com", custom_code="promo1"))

        assert link.code == "promo1"

    def test_link_is_cached_after_create(self):
        backend = InMemoryCache()
        service = build_service(backend=backend)

        link = asyncio.run(service.create_link("https://example.com"))

        assert asyncio.run(backend.get(f"link:{link.code}")) is not None

    def test_zero_duration_is_not_cached(self):
        backend = InMemoryCache()
        service = build_service(backend=backend)

        with freeze_time(NOW):
            link = asyncio.run(service.create_link("https://example.com", duration_hours=0))

        assert asyncio.run(backend.get(f"link:{link.code}")) is None

    @pytest.mark.parametrize("kwargs", [
        {"original_url": ""},
        {"original_url": "https://example.com", "duration_hours": -1},
    ])
    def test_invalid_input(self, service, kwargs):
        with pytest.raises(ValidationError):
            asyncio.run(service.create_link(**kwargs))


class TestGetLink:

    def test_get_after_create_returns_same_url(self, service):
        link = asyncio.run(service.create_link("https://example.com/some/long/path?q=1"))

        found = asyncio.run(service.get_link(link.code))

        assert found.original_url == "https://example.com/some/long/path?q=1"

    def test_unknown_code_not_found(self, service):
        """Example: GetLink("doesnotexist") -> NotFound"""
        with pytest.raises(NotFoundError):
            asyncio.run(service.get_link("doesnotexist"))

    def test_zero_duration_link_not_found(self, service):
        """Example: durationHours=0 then immediate lookup -> NotFound"""
        with freeze_time(NOW):
            link = asyncio.run(service.create_link("https://example.com", duration_hours=0))

            with pytest.raises(NotFoundError):
                asyncio.run(service.get_link(link.code))

    def test_expired_link_not_found_even_if_cache_still_has_it(self, store):
        backend = TTLIgnoringCache()
        service = build_service(store=store, backend=backend)

        with freeze_time(NOW) as frozen:
            link = asyncio.run(service.create_link("https://example.com", duration_hours=1))
            key = f"link:{link.code}"
            assert key in backend.entries

            frozen.move_to(NOW + timedelta(hours=1))
            with pytest.raises(NotFoundError):
                asyncio.run(service.get_link(link.code))

        assert key not in backend.entries
        # Not purged from the store until cleanup runs
        assert asyncio.run(store.get_by_code(link.code)) is not None

    def test_cache_miss_falls_back_to_store_and_repairs_cache(self, store):
        backend = InMemoryCache()
        service = build_service(store=store, backend=backend)
        asyncio.run(store.create_url(NewLink(
            code="direct", original_url="https://example.com", expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )))

        link = asyncio.run(service.get_link("direct"))

        assert link.original_url == "https://example.com"
        assert asyncio.run(backend.get("link:direct")) is not None

    def test_cache_hit_skips_store(self):
        store = AsyncMock(spec=InMemoryLinkStore)
        store.is_code_available.return_value = True
        store.create_url.side_effect = InMemoryLinkStore().create_url
        service = build_service(store=store)
        link = asyncio.run(service.create_link("https://example.com", custom_code="promo1"))

        found = asyncio.run(service.get_link("promo1"))

        assert found == link
        store.get_by_code.assert_not_awaited()

    def test_cache_repair_failure_is_tolerated(self, store):
        backend = AsyncMock(spec=InMemoryCache)
        backend.get.return_value = None
        backend.set.side_effect = CacheError("redis down")
        service = build_service(store=store, backend=backend)
        asyncio.run(store.create_url(NewLink(
            code="direct", original_url="https://example.com", expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )))

        assert asyncio.run(service.get_link("direct")).original_url == "https://example.com"

    def test_expired_entry_is_not_found_when_eviction_fails(self, store):
        past = datetime.now(timezone.utc) - timedelta(seconds=1)
        stale = asyncio.run(store.create_url(NewLink(
            code="old123", original_url="https://old.example/", expires_at=past,
        )))
        backend = AsyncMock(spec=InMemoryCache)
        backend.get.return_value = stale.model_dump_json()
        backend.delete.side_effect = CacheError("redis down")
        service = build_service(store=store, backend=backend)

        with pytest.raises(NotFoundError):
            asyncio.run(service.get_link("old123"))

    def test_cache_read_failure_is_internal_error(self):
        backend = AsyncMock(spec=InMemoryCache)
        backend.get.side_effect = CacheError("redis down")
        service = build_service(backend=backend)

        with pytest.raises(InternalError, match="cache.get_url"):
            asyncio.run(service.get_link("abc123"))

    def test_store_read_failure_is_internal_error(self):
        store = AsyncMock(spec=InMemoryLinkStore)
        store.get_by_code.side_effect = StoreError("database is down")
        service = build_service(store=store)

        with pytest.raises(InternalError, match="store.get_by_code"):
            asyncio.run(service.get_link("abc123"))


class TestCleanup:

    def test_removes_only_expired_links(self, service, store):
        """Example: one expired and one live record, cleanup removes only the expired one"""
        now = datetime.now(timezone.utc)
        asyncio.run(store.create_url(NewLink(
            code="expired", original_url="https://old.example", expires_at=now - timedelta(minutes=1),
        )))
        asyncio.run(store.create_url(NewLink(
            code="alive1", original_url="https://new.example", expires_at=now + timedelta(hours=1),
        )))

        assert asyncio.run(service.cleanup()) == 1

        assert asyncio.run(store.get_by_code("expired")) is None
        assert asyncio.run(service.get_link("alive1")).original_url == "https://new.example"

    def test_is_idempotent(self, service, store):
        asyncio.run(store.create_url(NewLink(
            code="expired", original_url="https://old.example",
            expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
        )))

        assert asyncio.run(service.cleanup()) == 1
        assert asyncio.run(service.cleanup()) == 0

    def test_boundary_is_strictly_before_now(self, service, store):
        with freeze_time(NOW):
            asyncio.run(store.create_url(NewLink(code="edge01", original_url="https://a.example", expires_at=NOW)))
            asyncio.run(store.create_url(NewLink(
                code="edge02", original_url="https://b.example", expires_at=NOW - timedelta(microseconds=1),
            )))

            assert asyncio.run(service.cleanup()) == 1

        assert asyncio.run(store.get_by_code("edge01")) is not None

    def test_store_failure_is_internal_error(self):
        store = AsyncMock(spec=InMemoryLinkStore)
        store.delete_expired_urls.side_effect = StoreError("database is down")
        service = build_service(store=store)

        with pytest.raises(InternalError, match="store.delete_expired_urls"):
            asyncio.run(service.cleanup())
