"""Exceptions raised by link store backends.

Classes:
    StoreError:
        The backend failed (connection lost, timeout, unexpected database error).

    LinkAlreadyExistsError:
        An insert hit the unique index on the link code.
"""


class StoreError(Exception):
    """Generic base class for durable store failures."""

    pass


class LinkAlreadyExistsError(StoreError):
    """Raised when inserting a link whose code is already taken."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Link with code '{code}' already exists.")
