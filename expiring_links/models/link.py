from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from expiring_links.database.connection import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LinkRecord(Base):
    """
    Durable link row.

    The unique index on `code` is the only concurrency control for
    allocation: two inserts of the same code can never both commit.
    No is_active column: a link is live iff now < expires_at.
    """
    __tablename__ = "links"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    code = Column(String(16), unique=True, nullable=False, index=True)
    original_url = Column(String, nullable=False)
    # Indexed for the expiry sweep (DELETE ... WHERE expires_at < :now)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    is_custom = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
