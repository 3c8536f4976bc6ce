"""Telephony platform call errors."""


class PlatformError(Exception):
    """A call to the telephony platform or an integration target failed.

    Treated as transient and retried where the caller uses backoff.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class RetryExhaustedError(PlatformError):
    """A retried platform call failed on every attempt."""

    def __init__(self, message: str, attempts: int, cause: Exception | None = None) -> None:
        super().__init__(message, cause=cause)
        self.attempts = attempts
