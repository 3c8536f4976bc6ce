"""API exception hierarchy for consistent error handling.

All API exceptions inherit from SwitchboardAPIError. Each subclass picks
an ErrorCode, and the code decides the HTTP status of the response.
"""

from switchboard.api.models.errors import ErrorCode
from switchboard.inference.errors import ConfigurationError as EngineConfigurationError
from switchboard.inference.errors import InferenceError
from switchboard.platform.errors import PlatformError
from switchboard.stores.errors import StoreError
from switchboard.verify.errors import BatchNotFoundError as MissingBatchError
from switchboard.verify.errors import InvalidBatchRequestError


class SwitchboardAPIError(Exception):
    """Base exception for all API errors."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, contact_id: str | None = None) -> None:
        self.message = message
        self.contact_id = contact_id
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return self.error_code.http_status


class InvalidRequestError(SwitchboardAPIError):
    """Raised when a request cannot be processed as sent."""

    error_code = ErrorCode.INVALID_REQUEST


class ConfigurationError(SwitchboardAPIError):
    """Raised when rule configuration cannot drive the session."""

    error_code = ErrorCode.CONFIGURATION_ERROR


class BatchNotFoundError(SwitchboardAPIError):
    """Raised when batch_id doesn't exist."""

    error_code = ErrorCode.BATCH_NOT_FOUND


class PlatformUnavailableError(SwitchboardAPIError):
    """Raised when telephony platform calls keep failing."""

    error_code = ErrorCode.PLATFORM_ERROR


class StoreUnavailableError(SwitchboardAPIError):
    """Raised when a backing store cannot be reached."""

    error_code = ErrorCode.STORE_UNAVAILABLE


def from_domain_error(error: Exception) -> SwitchboardAPIError:
    """Map an engine, store, platform or batch error to its API error."""
    match error:
        case EngineConfigurationError():
            return ConfigurationError(error.message, contact_id=error.contact_id)
        case InferenceError():
            return InvalidRequestError(error.message, contact_id=error.contact_id)
        case MissingBatchError():
            return BatchNotFoundError(error.message)
        case InvalidBatchRequestError():
            return InvalidRequestError(error.message)
        case PlatformError():
            return PlatformUnavailableError(str(error))
        case StoreError():
            return StoreUnavailableError(str(error))
        case _:
            return SwitchboardAPIError(str(error))
