"""
parsers.py - Strict field parsers for untrusted receipt strings.

Three parsers:
    parse_currency_amount(amount)          -> float
    parse_calendar_date(date_str)          -> day of month
    parse_wall_clock(time_str, date_str)   -> datetime

Design principles:
    - Fail closed: any malformed or out-of-range input raises
      ReceiptValidationError, never a neutral default
    - Pure transformations; `now` is injectable for tests
    - Dates and times are naive local wall-clock values
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from errors import ReceiptValidationError
from models import ValidationReason

DATE_FORMAT = "%Y-%m-%d"
DATE_TIME_FORMAT = "%Y-%m-%d %H:%M"

# strptime accepts unpadded fields ("2022-1-1", "12:5"); these do not.
# Only the hour may be a single digit ("9:05").
_DATE_SHAPE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_DATE_TIME_SHAPE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2} [0-9]{1,2}:[0-9]{2}")

_AMOUNT_CHARS = re.compile(r"[0-9.]*")
_AMOUNT_SHAPE = re.compile(r"[0-9]+\.[0-9]{2}")


def parse_currency_amount(amount: str, field: str = "amount") -> float:
    """Parse a dollar amount such as '1,234.56' into a float.

    Commas are treated as thousands separators and dropped. What remains
    must be ASCII digits with exactly two digits after a single decimal
    point, so '36', '1.5' and '.50' are all rejected.
    """
    cleaned = amount.replace(",", "")

    if not _AMOUNT_CHARS.fullmatch(cleaned):
        raise ReceiptValidationError(field, ValidationReason.INVALID_CHARACTER, amount)

    if not _AMOUNT_SHAPE.fullmatch(cleaned):
        raise ReceiptValidationError(
            field,
            ValidationReason.INVALID_PRECISION,
            amount,
            "expected digits with exactly two decimal places",
        )

    return float(cleaned)


def parse_calendar_date(date_str: str, now: Optional[datetime] = None) -> int:
    """Return the day of month for a strict YYYY-MM-DD date in the past."""
    if not _DATE_SHAPE.fullmatch(date_str):
        raise ReceiptValidationError("purchaseDate", ValidationReason.INVALID_DATE, date_str)
    try:
        purchase_date = datetime.strptime(date_str, DATE_FORMAT)
    except ValueError as exc:
        raise ReceiptValidationError(
            "purchaseDate", ValidationReason.INVALID_DATE, date_str, str(exc)
        ) from exc

    current = now or datetime.now()
    if purchase_date > current:
        raise ReceiptValidationError(
            "purchaseDate",
            ValidationReason.FUTURE_DATE,
            date_str,
            f"later than {current.isoformat(timespec='seconds')}",
        )
    return purchase_date.day


def parse_wall_clock(time_str: str, date_str: str, now: Optional[datetime] = None) -> datetime:
    """Combine purchaseDate and purchaseTime into one instant.

    The date is needed to reject a time later today that has not happened
    yet, not just dates in the future.
    """
    combined = f"{date_str} {time_str}"
    if not _DATE_TIME_SHAPE.fullmatch(combined):
        raise ReceiptValidationError("purchaseTime", ValidationReason.INVALID_TIME, combined)
    try:
        purchase_instant = datetime.strptime(combined, DATE_TIME_FORMAT)
    except ValueError as exc:
        raise ReceiptValidationError(
            "purchaseTime", ValidationReason.INVALID_TIME, combined, str(exc)
        ) from exc

    current = now or datetime.now()
    if purchase_instant > current:
        raise ReceiptValidationError(
            "purchaseTime",
            ValidationReason.FUTURE_TIME,
            combined,
            f"later than {current.isoformat(timespec='seconds')}",
        )
    return purchase_instant
