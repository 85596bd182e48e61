"""
Error taxonomy shared by the resource pipeline, the MAAS client and the MCP layer.

Every error that leaves a resource handler is a ``MaasApiError`` whose
``error_code`` is one member of the closed ``ErrorCode`` enumeration. Callers
branch on ``error_code``, never on message text.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    INVALID_PARAMETERS = "invalid_parameters"
    INVALID_PARAMETER_FORMAT = "invalid_parameter_format"
    MISSING_PARAMETER = "missing_parameter"
    RESOURCE_NOT_FOUND = "resource_not_found"
    INVALID_RESPONSE_FORMAT = "invalid_response_format"
    VALIDATION_ERROR = "validation_error"
    NETWORK_ERROR = "network_error"
    REQUEST_TIMEOUT = "request_timeout"
    REQUEST_ABORTED = "request_aborted"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    SERVER_ERROR = "server_error"
    UNKNOWN_ERROR = "unknown_error"
    UNEXPECTED_ERROR = "unexpected_error"


# Upstream HTTP statuses with a dedicated code. Anything else is unknown_error.
_STATUS_CODES: dict[int, ErrorCode] = {
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    500: ErrorCode.SERVER_ERROR,
}


class MaasApiError(Exception):
    """A typed failure with HTTP-like status semantics."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = ErrorCode(error_code)
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "message": self.message,
            "status_code": self.status_code,
            "error_code": self.error_code.value,
        }
        if self.details:
            data["details"] = self.details
        return data

    def __repr__(self) -> str:
        return f"MaasApiError({self.status_code}, {self.error_code.value}, {self.message!r})"


class RequestAborted(MaasApiError):
    """Raised when the caller's cancellation token fires."""

    def __init__(self, message: str = "Request was aborted by the client") -> None:
        super().__init__(message, 499, ErrorCode.REQUEST_ABORTED)


def code_for_status(status_code: int | None) -> ErrorCode:
    """Map an upstream HTTP status to the matching error code."""
    if status_code is None:
        return ErrorCode.UNKNOWN_ERROR
    return _STATUS_CODES.get(status_code, ErrorCode.UNKNOWN_ERROR)


def from_upstream_status(
    status_code: int | None,
    message: str,
    details: dict[str, Any] | None = None,
) -> MaasApiError:
    """Build the error for an explicit upstream status, falling back to 500."""
    return MaasApiError(
        message,
        status_code if status_code is not None else 500,
        code_for_status(status_code),
        details,
    )
