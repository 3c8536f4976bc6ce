"""The JSON error envelope shared by every Switchboard endpoint.

Each ErrorCode owns its HTTP status, so a handler only has to pick the
code. A body names the contact it concerns when the failure happened
inside a session.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Machine-readable failure categories."""

    INVALID_REQUEST = "INVALID_REQUEST"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    BATCH_NOT_FOUND = "BATCH_NOT_FOUND"
    PLATFORM_ERROR = "PLATFORM_ERROR"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


# Configuration problems are well formed requests the rules cannot serve
_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.CONFIGURATION_ERROR: 422,
    ErrorCode.BATCH_NOT_FOUND: 404,
    ErrorCode.PLATFORM_ERROR: 502,
    ErrorCode.STORE_UNAVAILABLE: 503,
    ErrorCode.INTERNAL_ERROR: 500,
}


class ErrorDetail(BaseModel):
    """One rejected input location."""

    field: str | None = None
    message: str

    @classmethod
    def from_validation_errors(cls, errors: list[dict[str, Any]]) -> list["ErrorDetail"]:
        """Flatten pydantic error entries, joining each location with dots."""
        return [
            cls(field=".".join(str(part) for part in error["loc"]), message=error["msg"])
            for error in errors
        ]


class ErrorBody(BaseModel):
    code: ErrorCode
    message: str
    details: list[ErrorDetail] | None = None
    contact_id: str | None = None


class ErrorResponse(BaseModel):
    """Envelope wrapping an ErrorBody under "error".

    Example:
        {
            "error": {
                "code": "CONFIGURATION_ERROR",
                "message": "Failed to find end point by dialled number: +61300000000",
                "details": null,
                "contact_id": "c1"
            }
        }
    """

    error: ErrorBody

    @classmethod
    def build(
        cls,
        code: ErrorCode,
        message: str,
        details: list[ErrorDetail] | None = None,
        contact_id: str | None = None,
    ) -> "ErrorResponse":
        return cls(
            error=ErrorBody(code=code, message=message, details=details, contact_id=contact_id)
        )

    @property
    def status_code(self) -> int:
        return self.error.code.http_status
