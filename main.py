"""
main.py - CLI entrypoint for the receipt points service.

Two commands:
1. serve   run the HTTP API under uvicorn
2. score   score a receipt JSON file offline (no store involved)
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

import uvicorn
from pydantic import ValidationError

from api import create_app
from config import load_settings
from errors import ConfigError, ReceiptValidationError
from logging_config import get_logger, setup_logging
from models import Receipt
from scoring import score_breakdown

logger = get_logger("receipt-points")


def load_receipt(path: str) -> Receipt:
    """Read and decode a receipt JSON file."""
    receipt_path = Path(path)
    if not receipt_path.exists():
        raise FileNotFoundError(f"Receipt file not found: {receipt_path}")
    try:
        raw = json.loads(receipt_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Receipt file is not valid JSON: {exc}") from exc
    try:
        return Receipt.model_validate(raw)
    except ValidationError as exc:
        raise ValueError(f"Receipt file does not match the receipt schema: {exc}") from exc


def run_score(path: str, as_json: bool = False) -> int:
    receipt = load_receipt(path)
    breakdown = score_breakdown(receipt)
    total = sum(breakdown.values())

    if as_json:
        print(json.dumps({"points": total, "breakdown": breakdown}, indent=2))
    else:
        print(f"Receipt: {receipt.retailer} ({receipt.purchase_date} {receipt.purchase_time})")
        for rule, points in breakdown.items():
            print(f"  {rule:<18} {points:>5}")
        print(f"  {'total':<18} {total:>5}")
    return total


def run_serve(host: str, port: int | None) -> None:
    settings = load_settings()
    uvicorn.run(
        create_app(settings),
        host=host,
        port=port or settings.server_port,
        reload=False,
        log_config=None,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Receipt points service")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=None, help="Defaults to SERVER_PORT")

    score = sub.add_parser("score", help="Score a receipt JSON file")
    score.add_argument("receipt", help="Path to a receipt JSON file")
    score.add_argument("--json", action="store_true", help="Print the breakdown as JSON")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else None)

    try:
        if args.command == "serve":
            logger.info("cli_mode | mode=serve | host=%s | port=%s", args.host, args.port)
            run_serve(args.host, args.port)
            return

        logger.info("cli_mode | mode=score | receipt=%s", args.receipt)
        run_score(args.receipt, as_json=args.json)
    except ReceiptValidationError as exc:
        logger.error("cli_error | type=ReceiptValidationError | field=%s | error=%s", exc.field, exc)
        print(f"\nThe receipt is invalid: {exc}")
        raise SystemExit(1) from exc
    except (ConfigError, FileNotFoundError, ValueError) as exc:
        logger.error("cli_error | type=%s | error=%s", type(exc).__name__, exc)
        print(f"\nError: {exc}")
        raise SystemExit(1) from exc
    except KeyboardInterrupt:
        print("\nInterrupted.")
        raise SystemExit(130)


if __name__ == "__main__":
    main(sys.argv[1:])
