"""Custom exceptions for the rate limiter."""


class RateLimiterException(Exception):
    """Base class for rate limiter exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500

    def __init__(self, message: str = "Rate limiter error"):
        self.message = message
        super().__init__(message)


class ConfigurationError(RateLimiterException, ValueError):
    """Raised when a limiter is constructed with invalid settings.

    Covers non-positive limits, unknown algorithms, empty prefixes and
    windows that are not strictly positive. Configuration is never
    clamped silently.
    """

    def __init__(self, message: str = "Invalid rate limiter configuration", field: str | None = None):
        self.field = field
        super().__init__(message)


class DurationFormatError(ConfigurationError):
    """Raised when a duration string cannot be parsed."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(
            f'Invalid duration: "{value}". Use format like "10s", "1m", "2h", "1d", "500ms".',
            field="window",
        )


class StorageError(RateLimiterException):
    """Raised when the counter store fails (network error, script error...).

    The limiter never retries; the caller decides between fail-open and
    fail-closed. Maps to HTTP 503 Service Unavailable.
    """
    status_code = 503

    def __init__(self, backend: str, operation: str, detail: str | None = None):
        self.backend = backend
        self.operation = operation
        message = f"{backend} storage failed during {operation}"
        if detail:
            message += f": {detail}"
        super().__init__(message)
