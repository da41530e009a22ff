"""
api.py - FastAPI HTTP layer for the receipt points service.

Endpoints:
  - POST /receipts/process      score a receipt, store it, return its id
  - GET  /receipts/{id}/points  look up a stored score
  - GET  /health                store connectivity check

No scoring or retry logic lives here; see scoring.py and receipt_store.py.
"""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import Settings, load_settings
from errors import KeyNotFoundError, ReceiptValidationError, StoreError
from logging_config import get_logger
from models import PointsResponse, ProcessReceiptResponse, Receipt
from receipt_store import ReceiptStore
from scoring import score_receipt

logger = get_logger("receipt-api")

INVALID_RECEIPT_DETAIL = "The receipt is invalid"
NOT_FOUND_DETAIL = "No receipt found for that id"


def canonical_uuid4(value: str) -> Optional[str]:
    """Canonical text of `value` if it parses as a version 4 UUID, else None.

    Accepts the same spellings as uuid.UUID (braces, urn:uuid:, no hyphens,
    upper case); keys are always stored in the canonical lower-case form.
    """
    try:
        parsed = uuid.UUID(value)
    except (TypeError, ValueError):
        return None
    # Version nibble only; UUID.version is None for non-RFC 4122 variants.
    if (parsed.int >> 76) & 0xF != 4:
        return None
    return str(parsed)


async def request_deadline(request: Request) -> float:
    """Absolute event-loop time by which this request's store calls must finish."""
    settings: Settings = request.app.state.settings
    return asyncio.get_running_loop().time() + settings.request_timeout


async def get_store(request: Request) -> ReceiptStore:
    return request.app.state.store


def create_app(settings: Optional[Settings] = None, store: Optional[ReceiptStore] = None) -> FastAPI:
    """Build the API. Settings and store are resolved at startup when omitted."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        resolved = settings or (store.settings if store is not None else load_settings())
        owned = store is None
        active_store = store or ReceiptStore.from_settings(resolved)
        app.state.settings = resolved
        app.state.store = active_store

        logger.info("store_check | redis_addr=%s", resolved.redis_addr)
        await active_store.check_connection()
        logger.info("store_check | status=ok")
        try:
            yield
        finally:
            if owned:
                await active_store.close()

    app = FastAPI(
        title="Receipt Points API",
        version="1.0.0",
        lifespan=lifespan,
    )

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("receipt_decode_error | path=%s | errors=%s", request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"detail": INVALID_RECEIPT_DETAIL})

    @app.get("/health")
    async def health(
        store: ReceiptStore = Depends(get_store),
        deadline: float = Depends(request_deadline),
    ) -> JSONResponse:
        try:
            await store.check_connection(deadline=deadline)
        except StoreError as exc:
            logger.warning("health_check | status=unavailable | error=%s", exc)
            return JSONResponse(status_code=503, content={"status": "unavailable"})
        return JSONResponse(content={"status": "ok"})

    @app.post("/receipts/process", response_model=ProcessReceiptResponse)
    async def process_receipt(
        receipt: Receipt,
        store: ReceiptStore = Depends(get_store),
        deadline: float = Depends(request_deadline),
    ) -> ProcessReceiptResponse:
        try:
            points = score_receipt(receipt)
        except ReceiptValidationError as exc:
            logger.info(
                "receipt_rejected | field=%s | reason=%s | error=%s",
                exc.field,
                exc.reason.value,
                exc,
            )
            raise HTTPException(status_code=400, detail=INVALID_RECEIPT_DETAIL) from exc

        receipt_id = str(uuid.uuid4())
        try:
            await store.put(receipt_id, str(points), deadline=deadline)
        except StoreError as exc:
            logger.error("receipt_store_error | op=set | id=%s | error=%s", receipt_id, exc)
            raise HTTPException(status_code=400, detail=INVALID_RECEIPT_DETAIL) from exc

        logger.info("receipt_processed | id=%s | points=%s", receipt_id, points)
        return ProcessReceiptResponse(id=receipt_id)

    @app.get("/receipts/{receipt_id}/points", response_model=PointsResponse)
    async def get_points(
        receipt_id: str,
        store: ReceiptStore = Depends(get_store),
        deadline: float = Depends(request_deadline),
    ) -> PointsResponse:
        key = canonical_uuid4(receipt_id)
        if key is None:
            logger.info("points_lookup_rejected | id=%r | reason=invalid_uuid4", receipt_id)
            raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL)

        try:
            stored = await store.get(key, deadline=deadline)
        except KeyNotFoundError as exc:
            logger.info("points_lookup_miss | id=%s", key)
            raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL) from exc
        except StoreError as exc:
            logger.error("receipt_store_error | op=get | id=%s | error=%s", key, exc)
            raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL) from exc

        if not (stored.isascii() and stored.isdigit()):
            logger.error("points_value_corrupt | id=%s | value=%r", key, stored)
            raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL)

        return PointsResponse(points=int(stored))

    return app


app = create_app()
