"""
Link store strategies using Strategy Pattern.

The store is the source of truth for links:
- SQLAlchemy: Production (any SQL database, unique index on code)
- In-Memory: Development/testing
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import delete, exists, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from expiring_links.models.link import LinkRecord
from expiring_links.schemas.link import Link, NewLink
from .exceptions import LinkAlreadyExistsError, StoreError


class LinkStore(ABC):
    """
    Abstract base class for durable link stores.

    Every method is a single record or single statement operation;
    nothing here spans the store and the cache.

    All methods are async because store operations involve I/O.
    """

    @abstractmethod
    async def is_code_available(self, code: str) -> bool:
        """
        Check whether no link currently uses this code.

        Args:
            code: Short code to check

        Returns:
            True if the code is free
        """
        pass

    @abstractmethod
    async def create_url(self, params: NewLink) -> Link:
        """
        Insert a new link.

        Args:
            params: Code, target URL, expiry and custom flag

        Returns:
            The persisted link

        Raises:
            LinkAlreadyExistsError: If the code is already taken
            StoreError: On any other backend failure
        """
        pass

    @abstractmethod
    async def get_by_code(self, code: str) -> Optional[Link]:
        """
        Fetch a link by code, expired or not.

        Returns:
            The link or None if no row has this code
        """
        pass

    @abstractmethod
    async def delete_expired_urls(self, before: datetime) -> int:
        """
        Delete every link with expires_at < before.

        Returns:
            Number of links deleted
        """
        pass


class SQLAlchemyLinkStore(LinkStore):
    """
    SQLAlchemy implementation backed by the `links` table.

    Uniqueness is enforced by the database (unique index on code), so a
    concurrent insert of the same code surfaces as IntegrityError and is
    translated to LinkAlreadyExistsError.

    Note: Async for interface consistency, DB queries are sync (fast).
    """

    def __init__(self, db: Session):
        """
        Initialize store.

        Args:
            db: Database session (one per request or per sweep run)
        """
        self.db = db

    async def is_code_available(self, code: str) -> bool:
        try:
            taken = self.db.scalar(select(exists().where(LinkRecord.code == code)))
        except SQLAlchemyError as e:
            raise StoreError(f"is_code_available({code!r}) failed: {e}") from e
        return not taken

    async def create_url(self, params: NewLink) -> Link:
        record = LinkRecord(
            code=params.code,
            original_url=params.original_url,
            expires_at=params.expires_at,
            is_custom=params.is_custom,
        )
        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except IntegrityError as e:
            self.db.rollback()
            raise LinkAlreadyExistsError(params.code) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"create_url({params.code!r}) failed: {e}") from e
        return Link.model_validate(record)

    async def get_by_code(self, code: str) -> Optional[Link]:
        try:
            record = self.db.scalars(
                select(LinkRecord).where(LinkRecord.code == code)
            ).first()
        except SQLAlchemyError as e:
            raise StoreError(f"get_by_code({code!r}) failed: {e}") from e
        if record is None:
            return None
        return Link.model_validate(record)

    async def delete_expired_urls(self, before: datetime) -> int:
        try:
            result = self.db.execute(
                delete(LinkRecord).where(LinkRecord.expires_at < before)
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreError(f"delete_expired_urls failed: {e}") from e
        return result.rowcount


class InMemoryLinkStore(LinkStore):
    """
    In-memory store using a Python dict keyed by code.

    Same semantics as the SQL store, including the uniqueness check on
    insert. Each method runs without awaiting, so check-and-insert is
    atomic with respect to other coroutines on the same loop.

    Used in development/testing environments.
    """

    def __init__(self):
        """Initialize in-memory store"""
        self._links: Dict[str, Link] = {}

    async def is_code_available(self, code: str) -> bool:
        return code not in self._links

    async def create_url(self, params: NewLink) -> Link:
        if params.code in self._links:
            raise LinkAlreadyExistsError(params.code)
        link = Link(
            code=params.code,
            original_url=params.original_url,
            expires_at=params.expires_at,
            is_custom=params.is_custom,
            created_at=datetime.now(timezone.utc),
        )
        self._links[link.code] = link
        return link

    async def get_by_code(self, code: str) -> Optional[Link]:
        return self._links.get(code)

    async def delete_expired_urls(self, before: datetime) -> int:
        expired = [code for code, link in self._links.items() if link.expires_at < before]
        for code in expired:
            del self._links[code]
        return len(expired)
