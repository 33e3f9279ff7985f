"""
Authenticated HTTP transport for the Klarna Payments and Order Management APIs.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Union

import requests

from .config import ClientConfig, Credentials
from .errors import (
    PreconditionError,
    RequestCancelledError,
    RequestTimeoutError,
    UnknownError,
    UnreachableError,
    error_for_status,
)

__all__ = [
    "ApiResponse",
    "PRIMARY_REGION",
    "REGIONS",
    "TransportClient",
    "build_auth_header",
    "resolve_base_endpoint",
]

USER_AGENT = "klarna-payments-cli/1.0.0"

REGIONS: Mapping[str, str] = MappingProxyType(
    {
        "eu": "https://api.klarna.com",
        "na": "https://api-na.klarna.com",
        "oc": "https://api-oc.klarna.com",
    }
)
PRIMARY_REGION = "eu"

_MISSING_CREDENTIALS = (
    "Credentials not configured. Run: klarna-payments config set "
    "--username <user> --password <pass>  (or --api-key <key>)"
)

ConfigSource = Union[ClientConfig, Callable[[], ClientConfig]]


def resolve_base_endpoint(config: ClientConfig) -> str:
    """
    Pick the base URL for ``config``.

    An explicit ``base_url`` wins. Otherwise the region code is looked up in
    :data:`REGIONS`; unknown or missing codes intentionally resolve to the
    primary region instead of failing.
    """
    if config.base_url:
        return config.base_url.rstrip("/")

    region = (config.region or PRIMARY_REGION).lower()
    endpoint = REGIONS.get(region)
    if endpoint is None:
        logging.warning(
            "Unknown region '%s'; falling back to '%s'", config.region, PRIMARY_REGION
        )
        endpoint = REGIONS[PRIMARY_REGION]
    return endpoint


def build_auth_header(credentials: Credentials) -> str:
    """
    Return the ``Authorization`` header value for ``credentials``.

    Raises :class:`PreconditionError` when the material is missing, partial,
    or configures both schemes at once.
    """
    if credentials.has_api_key and credentials.has_basic:
        raise PreconditionError(
            "Both an API key and username/password are configured; keep only one."
        )

    if credentials.has_api_key:
        return f"Bearer {credentials.api_key}"

    if not credentials.username or not credentials.password:
        raise PreconditionError(_MISSING_CREDENTIALS)

    token = f"{credentials.username}:{credentials.password}".encode("utf-8")
    return "Basic " + base64.b64encode(token).decode("ascii")


def _decode_error_body(response: requests.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


@dataclass(frozen=True)
class ApiResponse:
    status: int
    headers: Mapping[str, str]
    body: Any

    @classmethod
    def from_response(cls, response: requests.Response) -> "ApiResponse":
        if not response.content:
            body = None
        else:
            try:
                body = response.json()
            except ValueError as exc:
                raise UnknownError(
                    f"Failed to parse JSON from {response.url}: {response.text}",
                    status=response.status_code,
                ) from exc
        return cls(
            status=response.status_code,
            headers=dict(response.headers),
            body=body,
        )

    def header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class TransportClient:
    """
    Issues one authenticated call per :meth:`request` and classifies failures.

    ``config`` is either a :class:`ClientConfig` or a callable returning one;
    a callable is invoked on every call so profile changes apply immediately.
    """

    def __init__(
        self,
        config: ConfigSource,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._config = config
        self.session = session or requests.Session()

    @property
    def config(self) -> ClientConfig:
        if callable(self._config):
            return self._config()
        return self._config

    def request(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        query: Optional[Mapping[str, Any]] = None,
    ) -> ApiResponse:
        config = self.config
        headers: Dict[str, str] = {
            "Authorization": build_auth_header(config.credentials),
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }
        url = f"{resolve_base_endpoint(config)}{path}"

        logging.info("%s %s", method, url)
        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                json=body,
                params=query,
                timeout=config.timeout_seconds,
            )
        except KeyboardInterrupt as exc:
            self.session.close()
            raise RequestCancelledError(f"Request {method} {path} was cancelled") from exc
        except requests.exceptions.Timeout as exc:
            raise RequestTimeoutError(
                f"Klarna API did not respond within {config.timeout_seconds:g}s"
            ) from exc
        except requests.exceptions.ConnectionError as exc:
            raise UnreachableError(
                "No response from Klarna API. Check your internet connection."
            ) from exc
        except (
            requests.exceptions.RequestException,
            OverflowError,
            TypeError,
            ValueError,
        ) as exc:
            raise UnknownError(str(exc)) from exc

        logging.debug("%s %s -> %s", method, url, response.status_code)
        if not 200 <= response.status_code < 300:
            raise error_for_status(
                response.status_code,
                _decode_error_body(response),
                retry_after=response.headers.get("Retry-After"),
            )
        return ApiResponse.from_response(response)

    def send(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        query: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Issue the call and return the decoded body unmodified."""
        return self.request(method, path, body=body, query=query).body

    def close(self) -> None:
        self.session.close()
