"""
Public facade for the Klarna payments client package.

The most useful pieces are re-exported so integrators can
``from klarna_payments import ...`` without navigating the package.
"""

from .api import create_payments_client
from .core import (
    ApiResponse,
    ClientConfig,
    ConfigError,
    ConfigStore,
    Credentials,
    ErrorKind,
    ForbiddenError,
    InputError,
    NotFoundError,
    PaymentsClient,
    PaymentsError,
    PreconditionError,
    RateLimitedError,
    RemoteRejectedError,
    RequestCancelledError,
    RequestTimeoutError,
    TransportClient,
    UnauthorizedError,
    UnknownError,
    UnreachableError,
    build_auth_header,
    load_client_config,
    resolve_base_endpoint,
)

__version__ = "1.0.0"

__all__ = (
    "ApiResponse",
    "ClientConfig",
    "ConfigError",
    "ConfigStore",
    "Credentials",
    "ErrorKind",
    "ForbiddenError",
    "InputError",
    "NotFoundError",
    "PaymentsClient",
    "PaymentsError",
    "PreconditionError",
    "RateLimitedError",
    "RemoteRejectedError",
    "RequestCancelledError",
    "RequestTimeoutError",
    "TransportClient",
    "UnauthorizedError",
    "UnknownError",
    "UnreachableError",
    "build_auth_header",
    "create_payments_client",
    "load_client_config",
    "resolve_base_endpoint",
)
