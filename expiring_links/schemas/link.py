from datetime import datetime, timezone
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    computed_field,
    field_validator,
)

from expiring_links.config import settings


class NewLink(BaseModel):
    """Parameters for a durable insert"""
    code: str
    original_url: str
    expires_at: datetime
    is_custom: bool = False


class Link(BaseModel):
    """
    A short link as returned by the store and the cache.

    Reads straight from the SQLAlchemy row (from_attributes=True) and
    round-trips through JSON for the cache.
    """
    code: str
    original_url: str
    expires_at: datetime
    is_custom: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("expires_at", "created_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive datetimes; everything is stored as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def is_live(self, now: Optional[datetime] = None) -> bool:
        """A link is live iff now < expires_at"""
        now = now or datetime.now(timezone.utc)
        return now < self.expires_at


class LinkCreate(BaseModel):
    original_url: HttpUrl = Field(..., description="The original URL to be shortened")
    custom_code: Optional[str] = Field(
        None,
        min_length=4,
        max_length=10,
        pattern=r"^[a-zA-Z0-9]+$",
        description="Caller chosen short code",
    )
    duration: Optional[int] = Field(
        None, ge=0, description="Lifetime in hours, defaults to the configured expiration"
    )

    @field_validator("custom_code", mode="before")
    @classmethod
    def empty_code_means_generated(cls, value):
        return value or None


class LinkCreateResponse(BaseModel):
    """Response for a created link"""
    short_code: str
    expires_at: datetime

    @computed_field
    @property
    def short_url(self) -> str:
        """Computed field - automatically generated from short_code"""
        return f"{settings.base_url}/{self.short_code}"
