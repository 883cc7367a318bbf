class CacheError(Exception):
    """Base class for errors raised by namespaced_cache."""


class RecordParseError(CacheError):
    """Raised when a persisted record cannot be decoded."""

    def __init__(self, message: str, raw_key: str | None = None) -> None:
        self.raw_key = raw_key
        if raw_key is not None:
            message = f"{message} (key={raw_key!r})"
        super().__init__(message)
