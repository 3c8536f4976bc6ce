"""Store error hierarchy.

All store implementations wrap backend-specific errors in these.
"""


class StoreError(Exception):
    """Base exception for all store errors."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ConnectionError(StoreError):
    """Raised when the backing store cannot be reached.

    Examples:
        - Redis server unavailable
        - Filesystem blob root not writable
    """

    pass


class NotFoundError(StoreError):
    """Raised when a specific record lookup fails.

    Not raised for empty list results.
    """

    pass
