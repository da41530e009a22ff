"""
models.py - Data Models for the receipt points service

This file defines the data structures passed between the HTTP layer,
the scoring pipeline and the store:

    api.py      ->  Receipt (decoded request body)
    scoring.py  ->  int score (uses Receipt as input)
    api.py      ->  ProcessReceiptResponse / PointsResponse

Design principles:
1. Receipt fields stay raw strings; parsers.py owns their validation,
   so a schema-valid receipt with a bad amount is a scoring failure
   rather than a decode failure
2. JSON keys are camelCase on the wire, snake_case in Python
3. A Receipt is immutable once decoded
4. Missing fields decode to empty values ("" or []); the parsers then
   decide whether the receipt can be scored
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ValidationReason(str, Enum):
    """Why a single receipt field was rejected by the parsers."""

    # Something other than digits, commas and "." in an amount.
    INVALID_CHARACTER = "invalid_character"

    # Amount without exactly two digits after a single decimal point.
    # "36" is rejected on purpose: whole-dollar amounts must be "36.00".
    INVALID_PRECISION = "invalid_precision"

    # purchaseDate not in strict YYYY-MM-DD form, or not a real date.
    INVALID_DATE = "invalid_date"

    # purchaseDate later than the moment of scoring.
    FUTURE_DATE = "future_date"

    # purchaseDate + purchaseTime not in strict YYYY-MM-DD HH:MM form.
    INVALID_TIME = "invalid_time"

    # Combined purchase instant later than the moment of scoring.
    FUTURE_TIME = "future_time"


class Item(BaseModel):
    """One purchased line on a receipt."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    short_description: str = Field(
        default="",
        alias="shortDescription",
        description=(
            "Short product description as printed on the receipt. "
            "Leading/trailing spaces are ignored when its length is scored."
        ),
    )
    price: str = Field(
        default="",
        description="Line price as a decimal currency string, e.g. '6.49'.",
    )


class Receipt(BaseModel):
    """A submitted purchase receipt, scored once and then discarded.

    Only the identifier and the resulting score outlive the request; no
    other receipt data is retained after scoring.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    retailer: str = Field(
        default="",
        description="Retailer or store name. Each letter or digit is worth one point.",
    )
    purchase_date: str = Field(
        default="",
        alias="purchaseDate",
        description="Purchase date in strict YYYY-MM-DD form, e.g. '2022-01-01'.",
    )
    purchase_time: str = Field(
        default="",
        alias="purchaseTime",
        description="Purchase time in 24-hour HH:MM form, e.g. '13:01'.",
    )
    items: list[Item] = Field(
        default_factory=list,
        description="Purchased items in receipt order.",
    )
    total: str = Field(
        default="",
        description="Total paid as a decimal currency string, e.g. '35.35'.",
    )


class ProcessReceiptResponse(BaseModel):
    """Body returned by POST /receipts/process."""

    id: str = Field(..., description="UUIDv4 identifier for the stored score.")


class PointsResponse(BaseModel):
    """Body returned by GET /receipts/{id}/points."""

    points: int = Field(..., ge=0, description="Points awarded to the receipt.")
