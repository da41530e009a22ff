"""
scoring.py - Deterministic receipt points rules.

Each rule turns one part of a Receipt into a non-negative point
contribution. `score_receipt` sums them in a fixed order and stops at the
first field that fails validation. The one exception is the item
description rule: an item with an unparseable price is logged and skipped
instead of rejecting the whole receipt.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Optional

from errors import ReceiptValidationError
from logging_config import get_logger
from models import Item, Receipt
from parsers import parse_calendar_date, parse_currency_amount, parse_wall_clock

logger = get_logger(__name__)

# -- Rule constants --

ROUND_TOTAL_POINTS = 50
QUARTER_MULTIPLE_POINTS = 25
POINTS_PER_ITEM_PAIR = 5
DESCRIPTION_LENGTH_MULTIPLE = 3
DESCRIPTION_PRICE_MULTIPLIER = 0.2
ODD_DAY_POINTS = 6
AFTERNOON_WINDOW_POINTS = 10

# HHMM bounds, both exclusive: 14:00 and 16:00 themselves earn nothing.
AFTERNOON_WINDOW_START = 1400
AFTERNOON_WINDOW_END = 1600


def retailer_points(retailer: str) -> int:
    """One point per Unicode letter or digit in the retailer name."""
    return sum(1 for char in retailer if char.isalpha() or char.isdecimal())


def total_points(total: str) -> int:
    """50 for a round dollar total, 25 more for a multiple of 0.25."""
    amount = parse_currency_amount(total, field="total")
    points = 0
    if amount == math.floor(amount):
        points += ROUND_TOTAL_POINTS
    quarters = amount * 4
    if quarters == math.floor(quarters):
        points += QUARTER_MULTIPLE_POINTS
    return points


def item_pair_points(items: list[Item]) -> int:
    return (len(items) // 2) * POINTS_PER_ITEM_PAIR


def item_description_points(items: list[Item]) -> int:
    """ceil(price * 0.2) for each item whose trimmed description length is a multiple of 3."""
    points = 0
    for index, item in enumerate(items):
        # Length is measured in UTF-8 bytes: "Cé" counts as 3.
        trimmed = item.short_description.strip(" ").encode("utf-8")
        if len(trimmed) % DESCRIPTION_LENGTH_MULTIPLE != 0:
            continue
        try:
            price = parse_currency_amount(item.price, field=f"items[{index}].price")
        except ReceiptValidationError as exc:
            # Skipped, not rejected: a bad item price only forfeits this bonus.
            logger.warning(
                "item_price_skipped | index=%s | description=%r | error=%s",
                index,
                item.short_description,
                exc,
            )
            continue
        points += math.ceil(price * DESCRIPTION_PRICE_MULTIPLIER)
    return points


def purchase_date_points(purchase_date: str, now: Optional[datetime] = None) -> int:
    day = parse_calendar_date(purchase_date, now=now)
    return ODD_DAY_POINTS if day % 2 != 0 else 0


def purchase_time_points(purchase_time: str, purchase_date: str, now: Optional[datetime] = None) -> int:
    """10 points for purchases strictly between 14:00 and 16:00."""
    instant = parse_wall_clock(purchase_time, purchase_date, now=now)
    hhmm = instant.hour * 100 + instant.minute
    if AFTERNOON_WINDOW_START < hhmm < AFTERNOON_WINDOW_END:
        return AFTERNOON_WINDOW_POINTS
    return 0


def score_breakdown(receipt: Receipt, now: Optional[datetime] = None) -> dict[str, int]:
    """Per-rule contributions in evaluation order.

    Raises:
        ReceiptValidationError: total, purchaseDate or purchaseTime is invalid.
    """
    breakdown: dict[str, int] = {}
    breakdown["retailer"] = retailer_points(receipt.retailer)
    breakdown["total"] = total_points(receipt.total)
    breakdown["item_pairs"] = item_pair_points(receipt.items)
    breakdown["item_descriptions"] = item_description_points(receipt.items)
    breakdown["purchase_date"] = purchase_date_points(receipt.purchase_date, now=now)
    breakdown["purchase_time"] = purchase_time_points(
        receipt.purchase_time, receipt.purchase_date, now=now
    )
    return breakdown


def score_receipt(receipt: Receipt, now: Optional[datetime] = None) -> int:
    """Total points for a receipt."""
    breakdown = score_breakdown(receipt, now=now)
    total = sum(breakdown.values())
    logger.debug("score_breakdown | retailer=%r | parts=%s | total=%s", receipt.retailer, breakdown, total)
    return total
