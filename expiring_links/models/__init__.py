"""
Database models for the expiring links service.

Only the link table is persisted; liveness is derived from expires_at.
"""

from .link import LinkRecord

__all__ = ["LinkRecord"]
