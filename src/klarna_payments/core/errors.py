"""
Error taxonomy shared by the transport client and the lifecycle operations.

Every failure surfaced by the package is an instance of :class:`PaymentsError`
tagged with exactly one :class:`ErrorKind`. The transport client performs the
classification once; callers can either ``except`` a specific subclass or
branch on ``exc.kind``.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Dict, Optional

__all__ = [
    "ErrorKind",
    "PaymentsError",
    "PreconditionError",
    "ConfigError",
    "InputError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "RateLimitedError",
    "RemoteRejectedError",
    "UnreachableError",
    "RequestTimeoutError",
    "RequestCancelledError",
    "UnknownError",
    "error_for_status",
]


class ErrorKind(str, Enum):
    PRECONDITION = "precondition"
    INVALID_INPUT = "invalid_input"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    REMOTE_REJECTED = "remote_rejected"
    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class PaymentsError(Exception):
    """Base class for every error raised by the package."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        body: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body

    def to_dict(self) -> Dict[str, Any]:
        """Structured form used for machine-readable output."""
        payload: Dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.status is not None:
            payload["status"] = self.status
        if self.body is not None:
            payload["body"] = self.body
        return payload


class PreconditionError(PaymentsError):
    """Credentials are missing or incomplete; no request was attempted."""

    kind = ErrorKind.PRECONDITION


class ConfigError(PreconditionError):
    """Raised when the supplied configuration is invalid."""


class InputError(PaymentsError):
    """Malformed caller input, detected before any request is built."""

    kind = ErrorKind.INVALID_INPUT


class UnauthorizedError(PaymentsError):
    kind = ErrorKind.UNAUTHORIZED


class ForbiddenError(PaymentsError):
    kind = ErrorKind.FORBIDDEN


class NotFoundError(PaymentsError):
    kind = ErrorKind.NOT_FOUND


class RateLimitedError(PaymentsError):
    kind = ErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        body: Any = None,
        retry_after: Optional[str] = None,
    ) -> None:
        super().__init__(message, status=status, body=body)
        self.retry_after = retry_after

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        if self.retry_after is not None:
            payload["retry_after"] = self.retry_after
        return payload


class RemoteRejectedError(PaymentsError):
    """The service answered with a non-2xx status outside the named ones."""

    kind = ErrorKind.REMOTE_REJECTED

    @property
    def error_code(self) -> Optional[str]:
        if isinstance(self.body, dict):
            return self.body.get("error_code")
        return None

    @property
    def correlation_id(self) -> Optional[str]:
        if isinstance(self.body, dict):
            return self.body.get("correlation_id")
        return None


class UnreachableError(PaymentsError):
    kind = ErrorKind.UNREACHABLE


class RequestTimeoutError(UnreachableError):
    kind = ErrorKind.TIMEOUT


class RequestCancelledError(PaymentsError):
    kind = ErrorKind.CANCELLED


class UnknownError(PaymentsError):
    kind = ErrorKind.UNKNOWN


_STATUS_ERRORS = {
    401: (UnauthorizedError, "Authentication failed. Check your credentials."),
    403: (ForbiddenError, "Access forbidden. Check your API permissions."),
    404: (NotFoundError, "Resource not found."),
    429: (RateLimitedError, "Rate limit exceeded. Please wait before retrying."),
}


def _remote_message(body: Any) -> str:
    if isinstance(body, dict):
        for key in ("error_message", "message"):
            value = body.get(key)
            if value:
                return str(value)
    if isinstance(body, str):
        return body
    try:
        return json.dumps(body)
    except (TypeError, ValueError):
        return repr(body)


def error_for_status(
    status: int,
    body: Any,
    *,
    retry_after: Optional[str] = None,
) -> PaymentsError:
    """
    Map a non-2xx HTTP status to its error instance.

    401, 403, 404 and 429 are classified by status alone; the body never
    changes their kind.
    """
    known = _STATUS_ERRORS.get(status)
    if known is not None:
        error_cls, message = known
        if error_cls is RateLimitedError:
            return RateLimitedError(
                message, status=status, body=body, retry_after=retry_after
            )
        return error_cls(message, status=status, body=body)

    return RemoteRejectedError(
        f"API Error ({status}): {_remote_message(body)}",
        status=status,
        body=body,
    )
