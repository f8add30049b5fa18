"""
Link cache policy on top of a raw CacheStrategy.

The cache is subordinate to the store: it only ever holds a copy of a
persisted link, for no longer than the link's remaining lifetime.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from expiring_links.schemas.link import Link
from .exceptions import CacheError
from .strategies import CacheStrategy

logger = logging.getLogger(__name__)

KEY_PREFIX = "link:"


class LinkCache:
    """
    Expiry-aware link cache.

    - get_url never returns an expired link, even if the backend still
      has the entry (TTL and expires_at may disagree under clock skew)
    - set_url refuses expired links and uses the remaining lifetime as TTL
    """

    def __init__(self, backend: CacheStrategy):
        self.backend = backend

    @staticmethod
    def key(code: str) -> str:
        return f"{KEY_PREFIX}{code}"

    async def get_url(self, code: str) -> Optional[Link]:
        """
        Get a live link from cache.

        Returns:
            The cached link, or None on a miss or if the entry had expired

        Raises:
            CacheError: If the backend fails or the entry can't be decoded
        """
        key = self.key(code)
        data = await self.backend.get(key)
        if data is None:
            return None

        try:
            link = Link.model_validate_json(data)
        except ValidationError as e:
            raise CacheError(f"Undecodable cache entry for {key!r}") from e

        if not link.is_live(datetime.now(timezone.utc)):
            logger.debug("Evicting expired cache entry %s", key)
            try:
                await self.backend.delete(key)
            except CacheError as e:
                logger.warning("Evicting expired cache entry %s failed: %s", key, e)
            return None

        return link

    async def set_url(self, link: Link) -> bool:
        """
        Cache a link until it expires.

        Returns:
            True if stored, False if the link had already expired

        Raises:
            CacheError: If the backend fails
        """
        ttl = link.expires_at - datetime.now(timezone.utc)
        if ttl.total_seconds() <= 0:
            return False
        return await self.backend.set(self.key(link.code), link.model_dump_json(), ttl)

    async def delete_url(self, code: str) -> bool:
        """Remove a link from cache unconditionally (e.g. manual revocation)"""
        return await self.backend.delete(self.key(code))

    async def close(self) -> None:
        await self.backend.close()
