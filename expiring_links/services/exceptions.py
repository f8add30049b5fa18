"""Errors raised by LinkService.

Classes:
    LinkServiceError:
        Base class, everything the service raises derives from it.

    ValidationError:
        Input the service can't act on (empty URL, negative duration).

    ConflictError:
        A requested custom code is already in use.

    GenerationExhaustedError:
        Every random candidate collided with an existing code.

    NotFoundError:
        No live link exists for a code.

    InternalError:
        The store or cache failed. Carries the operation and code.
"""

from typing import Optional


class LinkServiceError(Exception):
    """Generic base class for link service errors."""

    pass


class ValidationError(LinkServiceError):
    """Raised for malformed input that slipped past request validation."""

    pass


class ConflictError(LinkServiceError):
    """Raised when a custom code is already taken."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Short code '{code}' is already taken.")


class GenerationExhaustedError(LinkServiceError):
    """Raised when no free code was found within the attempt budget."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not generate a unique short code after {attempts} attempts.")


class NotFoundError(LinkServiceError):
    """Raised when a code has no live link."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Short URL with code '{code}' not found.")


class InternalError(LinkServiceError):
    """Raised when a store or cache call fails; the cause is chained."""

    def __init__(self, operation: str, code: Optional[str] = None):
        self.operation = operation
        self.code = code
        target = f" for code '{code}'" if code else ""
        super().__init__(f"{operation} failed{target}.")
