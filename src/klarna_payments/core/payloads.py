"""
Helpers for constructing the JSON payloads sent to the Klarna APIs.

All checks here are local shape checks on caller input. Business rules such
as "captured amount must not exceed the remaining authorized amount" belong
to the remote service and are not repeated.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Mapping, Optional, Sequence
from urllib.parse import quote

from .errors import InputError

__all__ = [
    "DEFAULT_LOCALE",
    "DEFAULT_PURCHASE_COUNTRY",
    "DEFAULT_PURCHASE_CURRENCY",
    "build_authorization_payload",
    "build_capture_payload",
    "build_order_lines_payload",
    "build_refund_payload",
    "build_session_payload",
    "parse_order_lines",
    "path_segment",
    "require_amount",
    "require_order_lines",
]

DEFAULT_PURCHASE_COUNTRY = "US"
DEFAULT_PURCHASE_CURRENCY = "USD"
DEFAULT_LOCALE = "en-US"

OrderLine = Mapping[str, Any]


def path_segment(value: Any, field_name: str) -> str:
    """Validate an identifier and percent-encode it as one URL path segment."""
    if not isinstance(value, str) or not value.strip():
        raise InputError(f"{field_name} must be a non-empty string")
    return quote(value.strip(), safe="")


def require_amount(value: Any, field_name: str) -> int:
    """Amounts are non-negative integers of minor units; zero is allowed."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InputError(
            f"{field_name} must be an integer number of minor units, got {value!r}"
        )
    if value < 0:
        raise InputError(f"{field_name} must not be negative")
    return value


def require_order_lines(lines: Any) -> List[Dict[str, Any]]:
    if isinstance(lines, (str, bytes)) or not isinstance(lines, Sequence):
        raise InputError("order_lines must be a list of order line objects")
    result: List[Dict[str, Any]] = []
    for index, line in enumerate(lines):
        if not isinstance(line, Mapping):
            raise InputError(f"order_lines[{index}] must be an object")
        result.append(dict(line))
    return result


def parse_order_lines(raw: str) -> List[Dict[str, Any]]:
    """Decode order lines given as a JSON array on the command line."""
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise InputError(f"Invalid JSON for --lines: {exc}") from exc
    return require_order_lines(decoded)


def _amount_and_lines(
    order_amount: Any,
    order_lines: Sequence[OrderLine],
) -> Dict[str, Any]:
    return {
        "order_amount": require_amount(order_amount, "order_amount"),
        "order_lines": require_order_lines(order_lines),
    }


def build_session_payload(
    *,
    order_amount: int,
    order_lines: Sequence[OrderLine],
    purchase_country: Optional[str] = None,
    purchase_currency: Optional[str] = None,
    locale: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the body for ``POST /payments/v1/sessions``."""
    body: Dict[str, Any] = {
        "purchase_country": purchase_country or DEFAULT_PURCHASE_COUNTRY,
        "purchase_currency": purchase_currency or DEFAULT_PURCHASE_CURRENCY,
        "locale": locale or DEFAULT_LOCALE,
    }
    body.update(_amount_and_lines(order_amount, order_lines))
    return body


def build_order_lines_payload(
    *,
    order_amount: int,
    order_lines: Sequence[OrderLine],
) -> Dict[str, Any]:
    """Amount and lines only; used by session updates and order line updates."""
    return _amount_and_lines(order_amount, order_lines)


def build_authorization_payload(
    *,
    order_amount: int,
    order_lines: Sequence[OrderLine],
    purchase_country: Optional[str] = None,
    purchase_currency: Optional[str] = None,
    locale: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the body for creating an order from an authorization token.

    ``auto_capture`` is always ``False``: capturing is a separate step.
    """
    body = build_session_payload(
        order_amount=order_amount,
        order_lines=order_lines,
        purchase_country=purchase_country,
        purchase_currency=purchase_currency,
        locale=locale,
    )
    body["auto_capture"] = False
    return body


def build_capture_payload(
    *,
    captured_amount: int,
    description: Optional[str] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "captured_amount": require_amount(captured_amount, "captured_amount"),
    }
    if description:
        body["description"] = description
    return body


def build_refund_payload(
    *,
    refunded_amount: int,
    description: Optional[str] = None,
) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "refunded_amount": require_amount(refunded_amount, "refunded_amount"),
    }
    if description:
        body["description"] = description
    return body
