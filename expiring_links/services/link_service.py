import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from expiring_links.cache.exceptions import CacheError
from expiring_links.cache.link_cache import LinkCache
from expiring_links.config import LinkPolicy
from expiring_links.schemas.link import Link, NewLink
from expiring_links.services.exceptions import (
    ConflictError,
    GenerationExhaustedError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from expiring_links.services.short_code_generator import ShortCodeGenerator
from expiring_links.store.exceptions import LinkAlreadyExistsError, StoreError
from expiring_links.store.strategies import LinkStore

logger = logging.getLogger(__name__)

MAX_GENERATION_ATTEMPTS = 5


class LinkService:
    """
    Link service with dependency injection for store, cache and generator.

    The store is the source of truth. The cache only ever receives a link
    after the store has committed it, and is never trusted past a link's
    expires_at.
    """

    def __init__(
        self,
        store: LinkStore,
        cache: LinkCache,
        generator: ShortCodeGenerator,
        policy: LinkPolicy,
    ):
        """
        Initialize link service with dependencies.

        Args:
            store: Durable link store
            cache: Expiry-aware link cache
            generator: Candidate code generator
            policy: Immutable allocation policy
        """
        self.store = store
        self.cache = cache
        self.generator = generator
        self.policy = policy

    async def create_link(
        self,
        original_url: str,
        custom_code: Optional[str] = None,
        duration_hours: Optional[int] = None,
    ) -> Link:
        """Create a new short link.

        Process:
        1. Reserve the custom code, or find a free random one (max 5 tries)
        2. Compute expires_at from duration_hours or the default expiration
        3. Persist the link (authoritative write)
        4. Cache the persisted link

        Raises:
            ValidationError: Empty URL or negative duration
            ConflictError: Custom code already taken
            GenerationExhaustedError: Every random candidate collided
            InternalError: Store or cache failure
        """
        if not original_url:
            raise ValidationError("original_url must not be empty")
        if duration_hours is not None and duration_hours < 0:
            raise ValidationError("duration_hours must not be negative")

        now = datetime.now(timezone.utc)
        if duration_hours is not None:
            expires_at = now + timedelta(hours=duration_hours)
        else:
            expires_at = now + self.policy.default_expiration

        if custom_code:
            link = await self._create_with_custom_code(original_url, custom_code, expires_at)
        else:
            link = await self._create_with_generated_code(original_url, expires_at)

        # The link exists from here on, a cache failure doesn't undo it
        try:
            await self.cache.set_url(link)
        except CacheError as e:
            if self.policy.strict_cache_writes:
                raise InternalError("cache.set_url", link.code) from e
            logger.warning("Caching new link %s failed: %s", link.code, e)

        logger.info(
            "Created short link %s (custom=%s, expires_at=%s)",
            link.code, link.is_custom, link.expires_at.isoformat(),
        )
        return link

    async def _create_with_custom_code(
        self, original_url: str, code: str, expires_at: datetime
    ) -> Link:
        if not await self._is_code_available(code):
            raise ConflictError(code)
        try:
            return await self.store.create_url(NewLink(
                code=code,
                original_url=original_url,
                expires_at=expires_at,
                is_custom=True,
            ))
        except LinkAlreadyExistsError as e:
            # Lost a race with a concurrent create of the same code
            raise ConflictError(code) from e
        except StoreError as e:
            raise InternalError("store.create_url", code) from e

    async def _create_with_generated_code(self, original_url: str, expires_at: datetime) -> Link:
        for attempt in range(1, MAX_GENERATION_ATTEMPTS + 1):
            code = self.generator.next_code()
            if not await self._is_code_available(code):
                logger.debug("Candidate %s taken (attempt %d)", code, attempt)
                continue
            try:
                return await self.store.create_url(NewLink(
                    code=code,
                    original_url=original_url,
                    expires_at=expires_at,
                    is_custom=False,
                ))
            except LinkAlreadyExistsError:
                logger.debug("Candidate %s taken on insert (attempt %d)", code, attempt)
                continue
            except StoreError as e:
                raise InternalError("store.create_url", code) from e

        logger.error("Short code generation exhausted after %d attempts", MAX_GENERATION_ATTEMPTS)
        raise GenerationExhaustedError(MAX_GENERATION_ATTEMPTS)

    async def _is_code_available(self, code: str) -> bool:
        try:
            return await self.store.is_code_available(code)
        except StoreError as e:
            raise InternalError("store.is_code_available", code) from e

    async def get_link(self, code: str) -> Link:
        """
        Get a live link using the Cache-Aside pattern.

        Flow:
        1. Check cache first (expired entries are evicted, not returned)
        2. On a miss, query the store
        3. Reject store records that are past expires_at (sweep not run yet)
        4. Repair the cache, best effort
        5. Return the link

        Raises:
            NotFoundError: No live link for this code
            InternalError: Store or cache read failure
        """
        try:
            cached = await self.cache.get_url(code)
        except CacheError as e:
            raise InternalError("cache.get_url", code) from e

        if cached is not None:
            logger.debug("Cache hit for %s", code)
            return cached

        try:
            link = await self.store.get_by_code(code)
        except StoreError as e:
            raise InternalError("store.get_by_code", code) from e

        if link is None or not link.is_live(datetime.now(timezone.utc)):
            raise NotFoundError(code)

        # Read repair is an optimization, the lookup already succeeded
        try:
            await self.cache.set_url(link)
        except CacheError as e:
            logger.warning("Cache repair for %s failed: %s", code, e)

        return link

    async def cleanup(self) -> int:
        """
        Purge every link with expires_at < now from the store.

        The cache is left alone: its entries expire on their own TTL and
        get_link rejects anything past expires_at.

        Returns:
            Number of links deleted
        """
        now = datetime.now(timezone.utc)
        try:
            deleted = await self.store.delete_expired_urls(now)
        except StoreError as e:
            raise InternalError("store.delete_expired_urls") from e

        logger.info("Expiry sweep removed %d links", deleted)
        return deleted
