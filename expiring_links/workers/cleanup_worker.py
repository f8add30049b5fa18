"""
Expiry Sweeper

Periodically purges expired links from the durable store.

Architecture:
- Sleeps for the configured interval, then runs one cleanup
- A failed run is logged and the next tick tries again
- Runs as a background task inside the API process (see main.py),
  or standalone via `python -m expiring_links.workers.cleanup_worker`
"""

import asyncio
import logging
from datetime import timedelta
from typing import Awaitable, Callable, Optional

from expiring_links.cache.link_cache import LinkCache
from expiring_links.cache.strategies import NullCache
from expiring_links.config import settings
from expiring_links.database.connection import SessionLocal
from expiring_links.logging_config import setup_logging
from expiring_links.services.link_service import LinkService
from expiring_links.services.short_code_generator import RandomShortCodeGenerator
from expiring_links.store.factory import LinkStoreFactory, StoreBackend

logger = logging.getLogger(__name__)


class CleanupSweeper:
    """
    Periodic trigger for LinkService.cleanup.

    The sweeper knows nothing about stores or sessions; it just calls
    `run_cleanup` every `interval`.
    """

    def __init__(
        self,
        run_cleanup: Callable[[], Awaitable[int]],
        interval: timedelta,
    ):
        """
        Initialize sweeper.

        Args:
            run_cleanup: Coroutine function performing one sweep, returns rows deleted
            interval: Time between sweeps
        """
        self.run_cleanup = run_cleanup
        self.interval = interval
        self.running = False
        self.runs = 0

    async def run_once(self) -> Optional[int]:
        """Run a single sweep. Returns rows deleted, or None if it failed"""
        try:
            deleted = await self.run_cleanup()
        except Exception:
            logger.exception("Expiry sweep failed")
            return None

        self.runs += 1
        logger.info("Expiry sweep #%d deleted %d expired links", self.runs, deleted)
        return deleted

    async def start(self):
        """Sweep every interval until stopped or cancelled"""
        self.running = True
        logger.info("Cleanup sweeper started (interval: %s)", self.interval)

        while self.running:
            try:
                await asyncio.sleep(self.interval.total_seconds())
                if not self.running:
                    break
                await self.run_once()
            except asyncio.CancelledError:
                logger.info("Cleanup sweeper cancelled")
                raise

        logger.info("Cleanup sweeper stopped")

    def stop(self):
        """Stop the sweeper after the current sleep"""
        self.running = False


async def run_scheduled_cleanup() -> int:
    """
    One production sweep: fresh DB session, SQLAlchemy store, cleanup.

    The cache is not touched by cleanup, so a null cache is enough here.
    """
    policy = settings.link_policy()
    db = SessionLocal()
    try:
        store = LinkStoreFactory.create(StoreBackend(settings.store_backend), db=db)
        service = LinkService(
            store=store,
            cache=LinkCache(NullCache()),
            generator=RandomShortCodeGenerator(policy),
            policy=policy,
        )
        return await service.cleanup()
    finally:
        db.close()


async def main():
    """
    Main entry point for a standalone sweeper process.

    Usage:
        python -m expiring_links.workers.cleanup_worker
    """
    setup_logging(settings.log_level, settings.log_json)
    logger.info("Environment: %s, store backend: %s", settings.environment, settings.store_backend)

    sweeper = CleanupSweeper(run_scheduled_cleanup, settings.cleanup_interval)
    await sweeper.start()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
