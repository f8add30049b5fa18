class CacheError(Exception):
    """Raised when the cache backend is unreachable or returns garbage."""

    pass
