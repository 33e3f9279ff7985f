"""
Command-line interface for driving the Klarna payment lifecycle.
"""

from __future__ import annotations

import argparse
import json
import logging
import math
import os
import sys
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .api import create_payments_client
from .core.client import PRIMARY_REGION, REGIONS
from .core.config import ConfigStore, resolve_setting_key
from .core.environment import load_env_file
from .core.errors import ConfigError, PaymentsError
from .core.lifecycle import PaymentsClient
from .core.payloads import parse_order_lines

Handler = Callable[[argparse.Namespace, "CommandContext"], int]


class CommandContext:
    def __init__(
        self,
        store: ConfigStore,
        *,
        base: Optional[Mapping[str, str]] = None,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.store = store
        self.base = base
        self.overrides = overrides
        self._client: Optional[PaymentsClient] = None

    @property
    def client(self) -> PaymentsClient:
        if self._client is None:
            self._client = create_payments_client(
                store=self.store, base=self.base, overrides=self.overrides
            )
        return self._client


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def _env_override(value: str) -> Tuple[str, str]:
    if "=" not in value:
        raise argparse.ArgumentTypeError("Overrides must look like KEY=VALUE")
    key, val = value.split("=", 1)
    key = key.strip()
    if not key:
        raise argparse.ArgumentTypeError("Override key must not be empty")
    try:
        return resolve_setting_key(key), val
    except ConfigError as exc:
        raise argparse.ArgumentTypeError(exc.message) from exc


def _collect_overrides(pairs: Iterable[Tuple[str, str]]) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, value in pairs:
        overrides[key] = value
    return overrides


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2))


def _field(data: Any, key: str, default: Any = "N/A") -> Any:
    if isinstance(data, dict) and data.get(key) is not None:
        return data[key]
    return default


# config


def _config_set(args: argparse.Namespace, ctx: CommandContext) -> int:
    changes: Dict[str, Optional[str]] = {}
    if args.api_key is not None and (args.username or args.password):
        print(
            "Error: use either --api-key or --username/--password, not both",
            file=sys.stderr,
        )
        return 1

    # One authentication scheme per profile: setting one clears the other.
    if args.username is not None or args.password is not None:
        changes["api_key"] = None
        if args.username is not None:
            changes["username"] = args.username
        if args.password is not None:
            changes["password"] = args.password
    if args.api_key is not None:
        changes.update({"api_key": args.api_key, "username": None, "password": None})
    if args.region is not None:
        changes["region"] = args.region.strip().lower()
    if args.base_url is not None:
        changes["base_url"] = args.base_url
    if args.timeout is not None:
        if not math.isfinite(args.timeout) or args.timeout <= 0:
            print("Error: --timeout must be a finite number greater than zero", file=sys.stderr)
            return 1
        changes["timeout_seconds"] = f"{args.timeout:g}"

    if not changes:
        print(
            "Error: No options provided. Use --username, --password, --api-key, "
            "--region, --base-url or --timeout",
            file=sys.stderr,
        )
        return 1

    ctx.store.update(changes)
    for key, label in (("username", "Username"), ("password", "Password"), ("api_key", "API key")):
        if changes.get(key):
            print(f"{label} set")
    if "region" in changes:
        print(f"Region set to: {changes['region']}")
        if changes["region"] not in REGIONS:
            print(
                f"Warning: unknown region '{changes['region']}'; "
                f"requests will use '{PRIMARY_REGION}'",
                file=sys.stderr,
            )
    if "base_url" in changes:
        print(f"Base URL set to: {changes['base_url']}")
    if "timeout_seconds" in changes:
        print(f"Timeout set to: {changes['timeout_seconds']}s")
    return 0


def _config_show(args: argparse.Namespace, ctx: CommandContext) -> int:
    values = ctx.store.as_dict(mask_secrets=True)
    if args.json:
        _print_json({"path": str(ctx.store.path), **values})
        return 0

    print("\nKlarna Payments CLI Configuration\n")
    print("Username: ", values["username"] or "not set")
    print("Password: ", values["password"] or "not set")
    print("API key:  ", values["api_key"] or "not set")
    print("Region:   ", values["region"] or PRIMARY_REGION)
    print("Base URL: ", values["base_url"] or "default for region")
    print("Timeout:  ", values["timeout_seconds"] or "30", "s")
    print("File:     ", ctx.store.path)
    print("")
    return 0


def _config_clear(args: argparse.Namespace, ctx: CommandContext) -> int:
    ctx.store.clear()
    print("Configuration cleared")
    return 0


# sessions


def _sessions_create(args: argparse.Namespace, ctx: CommandContext) -> int:
    session = ctx.client.create_session(
        order_amount=args.amount,
        order_lines=parse_order_lines(args.lines),
        purchase_country=args.country,
        purchase_currency=args.currency,
        locale=args.locale,
    )
    if args.json:
        _print_json(session)
        return 0

    print("Session created")
    print("Session ID:     ", _field(session, "session_id"))
    print("Client Token:   ", "Generated" if _field(session, "client_token", None) else "N/A")
    print("Payment Methods:", len(_field(session, "payment_method_categories", [])))
    return 0


def _sessions_get(args: argparse.Namespace, ctx: CommandContext) -> int:
    session = ctx.client.get_session(args.session_id)
    if args.json:
        _print_json(session)
        return 0

    print("\nSession Details\n")
    print("Session ID:     ", _field(session, "session_id", args.session_id))
    print("Order Amount:   ", _field(session, "order_amount"))
    print("Currency:       ", _field(session, "purchase_currency"))
    print("Status:         ", _field(session, "status"))
    return 0


def _sessions_update(args: argparse.Namespace, ctx: CommandContext) -> int:
    result = ctx.client.update_session(
        args.session_id,
        order_amount=args.amount,
        order_lines=parse_order_lines(args.lines),
    )
    if args.json:
        _print_json(result if result is not None else {"status": "updated"})
        return 0

    print("Session updated")
    return 0


# authorizations


def _authorizations_create(args: argparse.Namespace, ctx: CommandContext) -> int:
    auth = ctx.client.create_authorization(
        args.auth_token,
        order_amount=args.amount,
        order_lines=parse_order_lines(args.lines),
        purchase_country=args.country,
        purchase_currency=args.currency,
        locale=args.locale,
    )
    if args.json:
        _print_json(auth)
        return 0

    print("Authorization created")
    print("Order ID:   ", _field(auth, "order_id"))
    print("Fraud Risk: ", _field(auth, "fraud_status"))
    return 0


def _authorizations_get(args: argparse.Namespace, ctx: CommandContext) -> int:
    auth = ctx.client.get_authorization(args.auth_token)
    if args.json:
        _print_json(auth)
        return 0

    print("\nAuthorization Details\n")
    print("Order ID:         ", _field(auth, "order_id", args.auth_token))
    print("Order Amount:     ", _field(auth, "order_amount"))
    print("Status:           ", _field(auth, "status"))
    print("Captured Amount:  ", _field(auth, "captured_amount", 0))
    print("Remaining Amount: ", _field(auth, "remaining_authorized_amount", 0))
    return 0


def _authorizations_cancel(args: argparse.Namespace, ctx: CommandContext) -> int:
    ctx.client.cancel_authorization(args.auth_token)
    if args.json:
        _print_json({"status": "cancelled"})
        return 0

    print("Authorization cancelled")
    return 0


# orders


def _orders_get(args: argparse.Namespace, ctx: CommandContext) -> int:
    order = ctx.client.get_order(args.order_id)
    if args.json:
        _print_json(order)
        return 0

    print("\nOrder Details\n")
    print("Order ID:         ", _field(order, "order_id", args.order_id))
    print("Order Amount:     ", _field(order, "order_amount"))
    print("Currency:         ", _field(order, "purchase_currency"))
    print("Status:           ", _field(order, "status"))
    print("Captured Amount:  ", _field(order, "captured_amount", 0))
    print("Refunded Amount:  ", _field(order, "refunded_amount", 0))
    return 0


def _orders_capture(args: argparse.Namespace, ctx: CommandContext) -> int:
    capture = ctx.client.capture_order(
        args.order_id,
        captured_amount=args.amount,
        description=args.description,
    )
    if args.json:
        _print_json(capture)
        return 0

    print("Order captured")
    print("Capture ID: ", _field(capture, "capture_id"))
    return 0


def _orders_captures(args: argparse.Namespace, ctx: CommandContext) -> int:
    captures = ctx.client.list_captures(args.order_id)
    if args.json:
        _print_json(captures)
        return 0

    if not captures:
        print("No captures found")
        return 0

    print(f"\n{len(captures)} Capture(s)\n")
    for index, capture in enumerate(captures, start=1):
        print(f"{index}. Capture ID: {_field(capture, 'capture_id')}")
        print(f"   Amount:     {_field(capture, 'captured_amount', 0)}")
        print("")
    return 0


def _orders_update(args: argparse.Namespace, ctx: CommandContext) -> int:
    ctx.client.update_order_lines(
        args.order_id,
        order_amount=args.amount,
        order_lines=parse_order_lines(args.lines),
    )
    if args.json:
        _print_json({"status": "updated"})
        return 0

    print("Order updated")
    return 0


# refunds


def _refunds_create(args: argparse.Namespace, ctx: CommandContext) -> int:
    refund = ctx.client.create_refund(
        args.order_id,
        refunded_amount=args.amount,
        description=args.description,
    )
    if args.json:
        _print_json(refund)
        return 0

    print("Refund created")
    print("Refund ID: ", _field(refund, "refund_id"))
    return 0


def _refunds_list(args: argparse.Namespace, ctx: CommandContext) -> int:
    refunds = ctx.client.get_refunds(args.order_id)
    if args.json:
        _print_json(refunds)
        return 0

    if not refunds:
        print("No refunds found")
        return 0

    print(f"\n{len(refunds)} Refund(s)\n")
    for index, refund in enumerate(refunds, start=1):
        print(f"{index}. Refund ID: {_field(refund, 'refund_id')}")
        print(f"   Amount:    {_field(refund, 'refunded_amount', 0)}")
        print("")
    return 0


def _add_json_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--json", action="store_true", help="Output as JSON")


def _add_amount_and_lines(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--amount",
        type=int,
        required=True,
        help="Order amount in minor units (e.g. 1000 = $10.00)",
    )
    parser.add_argument(
        "--lines",
        required=True,
        metavar="JSON",
        help="Order lines as a JSON array",
    )


def _add_purchase_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--country", default="US", help="Purchase country (default: US)")
    parser.add_argument("--currency", default="USD", help="Purchase currency (default: USD)")
    parser.add_argument("--locale", default="en-US", help="Locale (default: en-US)")


def _command(
    group: argparse._SubParsersAction,
    name: str,
    handler: Handler,
    help_text: str,
) -> argparse.ArgumentParser:
    parser = group.add_parser(name, help=help_text, description=help_text)
    parser.set_defaults(handler=handler)
    return parser


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="klarna-payments",
        description="Klarna Payments CLI - payment processing from your terminal",
    )
    parser.add_argument(
        "--config-file",
        default=None,
        help="Path to the profile file (default: per-user config directory)",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Optional .env file with KLARNA_* settings layered over the profile",
    )
    parser.add_argument(
        "--set",
        action="append",
        type=_env_override,
        metavar="KEY=VALUE",
        default=None,
        help="Override a KLARNA_* setting for this invocation only",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Python logging level (default: WARNING)",
    )
    groups = parser.add_subparsers(dest="group", metavar="<command>")

    config_cmd = groups.add_parser("config", help="Manage CLI configuration")
    config_sub = config_cmd.add_subparsers(dest="command", metavar="<action>")
    config_set = _command(config_sub, "set", _config_set, "Set configuration values")
    config_set.add_argument("--username", help="Klarna API username")
    config_set.add_argument("--password", help="Klarna API password")
    config_set.add_argument("--api-key", help="Bearer API key (replaces username/password)")
    config_set.add_argument(
        "--region", help=f"Region ({', '.join(REGIONS)}; default {PRIMARY_REGION})"
    )
    config_set.add_argument("--base-url", help="Explicit API base URL (overrides region)")
    config_set.add_argument("--timeout", type=float, help="Request timeout in seconds")
    config_show = _command(config_sub, "show", _config_show, "Show current configuration")
    _add_json_flag(config_show)
    _command(config_sub, "clear", _config_clear, "Remove the stored configuration")

    sessions_cmd = groups.add_parser("sessions", help="Manage payment sessions")
    sessions_sub = sessions_cmd.add_subparsers(dest="command", metavar="<action>")
    create = _command(sessions_sub, "create", _sessions_create, "Create a payment session")
    _add_amount_and_lines(create)
    _add_purchase_options(create)
    _add_json_flag(create)
    get = _command(sessions_sub, "get", _sessions_get, "Get session details")
    get.add_argument("session_id", metavar="session-id")
    _add_json_flag(get)
    update = _command(sessions_sub, "update", _sessions_update, "Update session")
    update.add_argument("session_id", metavar="session-id")
    _add_amount_and_lines(update)
    _add_json_flag(update)

    auth_cmd = groups.add_parser("authorizations", help="Manage payment authorizations")
    auth_sub = auth_cmd.add_subparsers(dest="command", metavar="<action>")
    create = _command(auth_sub, "create", _authorizations_create, "Create authorization")
    create.add_argument("auth_token", metavar="auth-token")
    _add_amount_and_lines(create)
    _add_purchase_options(create)
    _add_json_flag(create)
    get = _command(auth_sub, "get", _authorizations_get, "Get authorization details")
    get.add_argument("auth_token", metavar="auth-token")
    _add_json_flag(get)
    cancel = _command(auth_sub, "cancel", _authorizations_cancel, "Cancel authorization")
    cancel.add_argument("auth_token", metavar="auth-token")
    _add_json_flag(cancel)

    orders_cmd = groups.add_parser("orders", help="Manage orders")
    orders_sub = orders_cmd.add_subparsers(dest="command", metavar="<action>")
    get = _command(orders_sub, "get", _orders_get, "Get order details")
    get.add_argument("order_id", metavar="order-id")
    _add_json_flag(get)
    capture = _command(orders_sub, "capture", _orders_capture, "Capture order amount")
    capture.add_argument("order_id", metavar="order-id")
    capture.add_argument(
        "--amount", type=int, required=True, help="Amount to capture in minor units"
    )
    capture.add_argument("--description", help="Capture description")
    _add_json_flag(capture)
    captures = _command(orders_sub, "captures", _orders_captures, "List captures for order")
    captures.add_argument("order_id", metavar="order-id")
    _add_json_flag(captures)
    update = _command(orders_sub, "update", _orders_update, "Update order lines")
    update.add_argument("order_id", metavar="order-id")
    _add_amount_and_lines(update)
    _add_json_flag(update)

    refunds_cmd = groups.add_parser("refunds", help="Manage refunds")
    refunds_sub = refunds_cmd.add_subparsers(dest="command", metavar="<action>")
    create = _command(refunds_sub, "create", _refunds_create, "Create refund")
    create.add_argument("order_id", metavar="order-id")
    create.add_argument(
        "--amount", type=int, required=True, help="Amount to refund in minor units"
    )
    create.add_argument("--description", help="Refund description")
    _add_json_flag(create)
    listing = _command(refunds_sub, "list", _refunds_list, "List refunds for order")
    listing.add_argument("order_id", metavar="order-id")
    _add_json_flag(listing)

    return parser


def _report_error(exc: PaymentsError, *, as_json: bool) -> int:
    logging.error("Command failed (%s): %s", exc.kind.value, exc.message)
    if as_json:
        _print_json({"error": exc.to_dict()})
    else:
        print(f"Error: {exc.message}", file=sys.stderr)
    return 1


def _load_env_file(path: Optional[str]) -> Optional[Dict[str, str]]:
    if path is None:
        return None
    try:
        return load_env_file(path, environ=dict(os.environ))
    except OSError as exc:
        raise ConfigError(f"Cannot read env file {path}: {exc}") from exc


def run_cli(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        # argparse exits with 0 for --help and 2 for usage errors.
        return 0 if exc.code in (0, None) else 1

    _configure_logging(args.log_level)

    handler: Optional[Handler] = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 1

    try:
        ctx = CommandContext(
            ConfigStore(args.config_file),
            base=_load_env_file(args.env_file),
            overrides=_collect_overrides(args.set or ()),
        )
        return handler(args, ctx)
    except PaymentsError as exc:
        return _report_error(exc, as_json=getattr(args, "json", False))


def main() -> None:
    sys.exit(run_cli())
