"""
Core primitives that implement the Klarna payment lifecycle.
"""

from .client import (
    PRIMARY_REGION,
    REGIONS,
    ApiResponse,
    TransportClient,
    build_auth_header,
    resolve_base_endpoint,
)
from .config import (
    ClientConfig,
    ConfigStore,
    Credentials,
    load_client_config,
)
from .environment import PaymentEnvironment, build_environment, load_env_file
from .errors import (
    ConfigError,
    ErrorKind,
    ForbiddenError,
    InputError,
    NotFoundError,
    PaymentsError,
    PreconditionError,
    RateLimitedError,
    RemoteRejectedError,
    RequestCancelledError,
    RequestTimeoutError,
    UnauthorizedError,
    UnknownError,
    UnreachableError,
)
from .lifecycle import (
    PaymentsClient,
    cancel_authorization,
    capture_order,
    create_authorization,
    create_refund,
    create_session,
    get_authorization,
    get_order,
    get_refunds,
    get_session,
    list_captures,
    update_order_lines,
    update_session,
)
from .payloads import parse_order_lines

__all__ = [
    "ApiResponse",
    "ClientConfig",
    "ConfigError",
    "ConfigStore",
    "Credentials",
    "ErrorKind",
    "ForbiddenError",
    "InputError",
    "NotFoundError",
    "PRIMARY_REGION",
    "PaymentEnvironment",
    "PaymentsClient",
    "PaymentsError",
    "PreconditionError",
    "REGIONS",
    "RateLimitedError",
    "RemoteRejectedError",
    "RequestCancelledError",
    "RequestTimeoutError",
    "TransportClient",
    "UnauthorizedError",
    "UnknownError",
    "UnreachableError",
    "build_auth_header",
    "build_environment",
    "cancel_authorization",
    "capture_order",
    "create_authorization",
    "create_refund",
    "create_session",
    "get_authorization",
    "get_order",
    "get_refunds",
    "get_session",
    "list_captures",
    "load_client_config",
    "load_env_file",
    "parse_order_lines",
    "resolve_base_endpoint",
    "update_order_lines",
    "update_session",
]
