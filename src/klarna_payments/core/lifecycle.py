"""
Payment lifecycle operations: sessions, authorizations, orders, captures, refunds.

Each function shapes one request and issues exactly one call through the
:class:`~klarna_payments.core.client.TransportClient`. Nothing is cached and
nothing is retried; errors raised by the transport propagate unchanged.

The lifecycle is Session -> Authorization -> Order -> captures / refunds.
The remote service owns that state machine; these helpers do not try to
enforce it locally.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from .client import ApiResponse, TransportClient
from .config import ClientConfig
from .payloads import (
    OrderLine,
    build_authorization_payload,
    build_capture_payload,
    build_order_lines_payload,
    build_refund_payload,
    build_session_payload,
    path_segment,
)

__all__ = [
    "PaymentsClient",
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
    "update_order_lines",
    "update_session",
]

SESSIONS_PATH = "/payments/v1/sessions"
AUTHORIZATIONS_PATH = "/payments/v1/authorizations"
ORDERS_PATH = "/ordermanagement/v1/orders"


def _ledger_entry(response: ApiResponse, id_field: str, id_header: str) -> Dict[str, Any]:
    # Captures and refunds are usually answered with 201 and an empty body;
    # the new identifier only travels in the response headers.
    if isinstance(response.body, dict):
        entry = dict(response.body)
    else:
        entry = {}
    if not entry.get(id_field) and response.header(id_header):
        entry[id_field] = response.header(id_header)
    location = response.header("Location")
    if location and "location" not in entry:
        entry["location"] = location
    return entry


# Sessions


def create_session(
    client: TransportClient,
    *,
    order_amount: int,
    order_lines: Sequence[OrderLine],
    purchase_country: Optional[str] = None,
    purchase_currency: Optional[str] = None,
    locale: Optional[str] = None,
) -> Dict[str, Any]:
    body = build_session_payload(
        order_amount=order_amount,
        order_lines=order_lines,
        purchase_country=purchase_country,
        purchase_currency=purchase_currency,
        locale=locale,
    )
    logging.info("Creating payment session for %s minor units", body["order_amount"])
    return client.send("POST", SESSIONS_PATH, body)


def get_session(client: TransportClient, session_id: str) -> Dict[str, Any]:
    return client.send("GET", f"{SESSIONS_PATH}/{path_segment(session_id, 'session_id')}")


def update_session(
    client: TransportClient,
    session_id: str,
    *,
    order_amount: int,
    order_lines: Sequence[OrderLine],
) -> Any:
    """Only the amount and lines of a session can change after creation."""
    path = f"{SESSIONS_PATH}/{path_segment(session_id, 'session_id')}"
    body = build_order_lines_payload(order_amount=order_amount, order_lines=order_lines)
    return client.send("POST", path, body)


# Authorizations


def create_authorization(
    client: TransportClient,
    auth_token: str,
    *,
    order_amount: int,
    order_lines: Sequence[OrderLine],
    purchase_country: Optional[str] = None,
    purchase_currency: Optional[str] = None,
    locale: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Turn the opaque ``auth_token`` from the checkout flow into an order.

    The order is always created with ``auto_capture`` disabled.
    """
    path = f"{AUTHORIZATIONS_PATH}/{path_segment(auth_token, 'auth_token')}"
    body = build_authorization_payload(
        order_amount=order_amount,
        order_lines=order_lines,
        purchase_country=purchase_country,
        purchase_currency=purchase_currency,
        locale=locale,
    )
    return client.send("POST", path, body)


def get_authorization(client: TransportClient, auth_token: str) -> Dict[str, Any]:
    return client.send("GET", f"{ORDERS_PATH}/{path_segment(auth_token, 'auth_token')}")


def cancel_authorization(client: TransportClient, auth_token: str) -> Any:
    """
    Cancel an authorization that has not been captured yet.

    Irreversible on the remote side. Uses ``POST .../cancel`` without a body.
    """
    path = f"{ORDERS_PATH}/{path_segment(auth_token, 'auth_token')}/cancel"
    return client.send("POST", path)


# Orders


def get_order(client: TransportClient, order_id: str) -> Dict[str, Any]:
    return client.send("GET", f"{ORDERS_PATH}/{path_segment(order_id, 'order_id')}")


def capture_order(
    client: TransportClient,
    order_id: str,
    *,
    captured_amount: int,
    description: Optional[str] = None,
) -> Dict[str, Any]:
    path = f"{ORDERS_PATH}/{path_segment(order_id, 'order_id')}/captures"
    body = build_capture_payload(captured_amount=captured_amount, description=description)
    response = client.request("POST", path, body)
    return _ledger_entry(response, "capture_id", "Capture-Id")


def list_captures(client: TransportClient, order_id: str) -> List[Dict[str, Any]]:
    path = f"{ORDERS_PATH}/{path_segment(order_id, 'order_id')}/captures"
    return client.send("GET", path) or []


def update_order_lines(
    client: TransportClient,
    order_id: str,
    *,
    order_amount: int,
    order_lines: Sequence[OrderLine],
) -> Any:
    path = f"{ORDERS_PATH}/{path_segment(order_id, 'order_id')}/authorization"
    body = build_order_lines_payload(order_amount=order_amount, order_lines=order_lines)
    return client.send("PATCH", path, body)


# Refunds


def create_refund(
    client: TransportClient,
    order_id: str,
    *,
    refunded_amount: int,
    description: Optional[str] = None,
) -> Dict[str, Any]:
    path = f"{ORDERS_PATH}/{path_segment(order_id, 'order_id')}/refunds"
    body = build_refund_payload(refunded_amount=refunded_amount, description=description)
    response = client.request("POST", path, body)
    return _ledger_entry(response, "refund_id", "Refund-Id")


def get_refunds(client: TransportClient, order_id: str) -> List[Dict[str, Any]]:
    """Refunds recorded on an order; an order without refunds yields ``[]``."""
    order = get_order(client, order_id)
    if not isinstance(order, dict):
        return []
    return list(order.get("refunds") or [])


class PaymentsClient:
    """
    Thin convenience wrapper exposing the lifecycle operations as methods.
    """

    def __init__(self, transport: TransportClient) -> None:
        self.transport = transport

    @property
    def config(self) -> ClientConfig:
        return self.transport.config

    def create_session(self, **kwargs: Any) -> Dict[str, Any]:
        return create_session(self.transport, **kwargs)

    def get_session(self, session_id: str) -> Dict[str, Any]:
        return get_session(self.transport, session_id)

    def update_session(self, session_id: str, **kwargs: Any) -> Any:
        return update_session(self.transport, session_id, **kwargs)

    def create_authorization(self, auth_token: str, **kwargs: Any) -> Dict[str, Any]:
        return create_authorization(self.transport, auth_token, **kwargs)

    def get_authorization(self, auth_token: str) -> Dict[str, Any]:
        return get_authorization(self.transport, auth_token)

    def cancel_authorization(self, auth_token: str) -> Any:
        return cancel_authorization(self.transport, auth_token)

    def get_order(self, order_id: str) -> Dict[str, Any]:
        return get_order(self.transport, order_id)

    def capture_order(self, order_id: str, **kwargs: Any) -> Dict[str, Any]:
        return capture_order(self.transport, order_id, **kwargs)

    def list_captures(self, order_id: str) -> List[Dict[str, Any]]:
        return list_captures(self.transport, order_id)

    def update_order_lines(self, order_id: str, **kwargs: Any) -> Any:
        return update_order_lines(self.transport, order_id, **kwargs)

    def create_refund(self, order_id: str, **kwargs: Any) -> Dict[str, Any]:
        return create_refund(self.transport, order_id, **kwargs)

    def get_refunds(self, order_id: str) -> List[Dict[str, Any]]:
        return get_refunds(self.transport, order_id)

    def close(self) -> None:
        self.transport.close()
