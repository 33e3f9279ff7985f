"""
Minimal script that uses the public API to capture and partially refund an order.
"""

from __future__ import annotations

import argparse
import logging
import sys

from klarna_payments import PaymentsError, create_payments_client


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Capture an authorized Klarna order and refund part of it"
    )
    parser.add_argument("order_id", help="Order to capture")
    parser.add_argument(
        "--capture-amount",
        type=int,
        required=True,
        help="Amount to capture in minor units",
    )
    parser.add_argument(
        "--refund-amount",
        type=int,
        default=0,
        help="Amount to refund afterwards in minor units (default: none)",
    )
    parser.add_argument(
        "--region",
        help="Override the configured region (eu, na, oc)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO)",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    client = create_payments_client(region=args.region)
    try:
        order = client.get_order(args.order_id)
        logging.info(
            "Order %s: amount=%s captured=%s",
            args.order_id,
            order.get("order_amount"),
            order.get("captured_amount"),
        )

        capture = client.capture_order(
            args.order_id, captured_amount=args.capture_amount
        )
        logging.info("Captured %s (capture id %s)", args.capture_amount, capture.get("capture_id"))

        if args.refund_amount:
            refund = client.create_refund(
                args.order_id, refunded_amount=args.refund_amount
            )
            logging.info("Refunded %s (refund id %s)", args.refund_amount, refund.get("refund_id"))

        for refund in client.get_refunds(args.order_id):
            logging.info("Refund on record: %s", refund)
    except PaymentsError as exc:
        logging.error("%s: %s", exc.kind.value, exc.message)
        return 1
    finally:
        client.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
