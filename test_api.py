"""
test_api.py - HTTP layer regression checks.

Focus:
1) POST /receipts/process -> GET /receipts/{id}/points round trip
2) Invalid receipts and invalid ids map to 400 / 404
3) Store failures surface as rejections, /health reflects store state

Usage:
    python test_api.py   (or: pytest test_api.py)
"""

from __future__ import annotations

import copy
import os
import sys
import uuid
from typing import Any

from fastapi.testclient import TestClient

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from api import INVALID_RECEIPT_DETAIL, NOT_FOUND_DETAIL, canonical_uuid4, create_app
from config import Settings
from receipt_store import ReceiptStore
from test_receipt_store import FakeRedis
from test_scoring import CORNER_MARKET_RECEIPT, TARGET_RECEIPT


def _symbols() -> tuple[str, str, str]:
    try:
        if hasattr(sys.stdout, "reconfigure"):
            sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    except Exception:
        pass

    try:
        "✓✗═".encode(sys.stdout.encoding or "utf-8")
        return "✓", "✗", "═"
    except Exception:
        return "[OK]", "[FAIL]", "="


PASS, FAIL, LINE = _symbols()


def _client(fake: FakeRedis, **overrides: Any) -> TestClient:
    values: dict[str, Any] = {"store_timeout": 0.05, "ttl": 600, "max_retries": 3, "request_timeout": 1.0}
    values.update(overrides)
    store = ReceiptStore(fake, Settings(**values))
    return TestClient(create_app(store=store))


def _process(client: TestClient, receipt: dict[str, Any]) -> Any:
    return client.post("/receipts/process", json=receipt)


def test_process_then_fetch_points() -> None:
    fake = FakeRedis()
    with _client(fake) as client:
        for receipt, expected in ((TARGET_RECEIPT, 28), (CORNER_MARKET_RECEIPT, 109)):
            response = _process(client, receipt)
            assert response.status_code == 200, response.text
            receipt_id = response.json()["id"]
            assert uuid.UUID(receipt_id).version == 4
            assert fake.data[receipt_id] == (str(expected), 600)

            points = client.get(f"/receipts/{receipt_id}/points")
            assert points.status_code == 200
            assert points.json() == {"points": expected}


def test_each_submission_gets_new_id() -> None:
    with _client(FakeRedis()) as client:
        first = _process(client, TARGET_RECEIPT).json()["id"]
        second = _process(client, TARGET_RECEIPT).json()["id"]
    assert first != second


def test_invalid_receipt_fields_rejected() -> None:
    fake = FakeRedis()
    with _client(fake) as client:
        for field, value in (("total", "36"), ("purchaseDate", "2022-13-01"), ("purchaseTime", "1:01 PM")):
            receipt = copy.deepcopy(TARGET_RECEIPT)
            receipt[field] = value
            response = _process(client, receipt)
            assert response.status_code == 400, field
            assert response.json() == {"detail": INVALID_RECEIPT_DETAIL}
    assert "set" not in fake.calls


def test_undecodable_receipt_rejected() -> None:
    with _client(FakeRedis()) as client:
        missing = copy.deepcopy(TARGET_RECEIPT)
        del missing["total"]
        wrong_type = copy.deepcopy(TARGET_RECEIPT)
        wrong_type["total"] = 35.35
        for body in (missing, wrong_type):
            response = _process(client, body)
            assert response.status_code == 400
            assert response.json() == {"detail": INVALID_RECEIPT_DETAIL}

        response = client.post(
            "/receipts/process",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400


def test_missing_retailer_and_items_still_scored() -> None:
    receipt = copy.deepcopy(TARGET_RECEIPT)
    del receipt["retailer"]
    del receipt["items"]
    with _client(FakeRedis()) as client:
        response = _process(client, receipt)
        assert response.status_code == 200, response.text
        receipt_id = response.json()["id"]
        # Only the odd purchase day scores.
        assert client.get(f"/receipts/{receipt_id}/points").json() == {"points": 6}


def test_bad_item_price_still_processed() -> None:
    receipt = copy.deepcopy(TARGET_RECEIPT)
    receipt["items"][1]["price"] = "12"
    with _client(FakeRedis()) as client:
        receipt_id = _process(client, receipt).json()["id"]
        assert client.get(f"/receipts/{receipt_id}/points").json() == {"points": 25}


def test_unknown_or_malformed_id_is_404() -> None:
    fake = FakeRedis()
    with _client(fake) as client:
        unknown_v4 = str(uuid.uuid4())
        version1 = str(uuid.uuid1())
        for receipt_id in (unknown_v4, version1, "not-a-uuid", "123"):
            response = client.get(f"/receipts/{receipt_id}/points")
            assert response.status_code == 404, receipt_id
            assert response.json() == {"detail": NOT_FOUND_DETAIL}
    # Only the well-formed v4 id reaches the store.
    assert fake.calls.count("get") == 1


def test_expired_id_is_404() -> None:
    fake = FakeRedis()
    with _client(fake, ttl=5) as client:
        receipt_id = _process(client, TARGET_RECEIPT).json()["id"]
        fake.clock = 5.0
        response = client.get(f"/receipts/{receipt_id}/points")
    assert response.status_code == 404


def test_uppercase_id_finds_record() -> None:
    with _client(FakeRedis()) as client:
        receipt_id = _process(client, TARGET_RECEIPT).json()["id"]
        response = client.get(f"/receipts/{receipt_id.upper()}/points")
    assert response.status_code == 200
    assert response.json() == {"points": 28}


def test_store_timeouts_reject_receipt() -> None:
    fake = FakeRedis()
    with _client(fake) as client:
        fake.failures = [RedisTimeoutError("slow")] * 3
        response = _process(client, TARGET_RECEIPT)
    assert response.status_code == 400
    assert fake.calls.count("set") == 3


def test_store_error_on_lookup_is_404() -> None:
    fake = FakeRedis()
    with _client(fake) as client:
        fake.failures = [RedisConnectionError("refused")]
        response = client.get(f"/receipts/{uuid.uuid4()}/points")
    assert response.status_code == 404
    assert fake.calls.count("get") == 1


def test_corrupt_stored_value_is_404() -> None:
    fake = FakeRedis()
    receipt_id = str(uuid.uuid4())
    fake.data[receipt_id] = ("not-a-number", 600)
    with _client(fake) as client:
        response = client.get(f"/receipts/{receipt_id}/points")
    assert response.status_code == 404


def test_health_reflects_store() -> None:
    fake = FakeRedis()
    with _client(fake) as client:
        assert client.get("/health").json() == {"status": "ok"}
        fake.failures = [RedisConnectionError("refused")]
        response = client.get("/health")
        assert response.status_code == 503
        assert response.json() == {"status": "unavailable"}


def test_canonical_uuid4() -> None:
    value = uuid.uuid4()
    assert canonical_uuid4(str(value)) == str(value)
    assert canonical_uuid4("{" + str(value).upper() + "}") == str(value)
    assert canonical_uuid4(value.hex) == str(value)
    assert canonical_uuid4(str(uuid.uuid1())) is None
    # Version nibble 4 with a non-RFC 4122 variant is still accepted.
    assert canonical_uuid4("6f1c8a8e-3c55-4d7b-cb0e-4f5b8f1e2a10") == "6f1c8a8e-3c55-4d7b-cb0e-4f5b8f1e2a10"
    assert canonical_uuid4("6f1c8a8e-3c55-1d7b-cb0e-4f5b8f1e2a10") is None
    assert canonical_uuid4("") is None


def main() -> None:
    passed = 0
    failed = 0

    print(LINE * 62)
    print("  Receipt Points API")
    print(LINE * 62)

    for name, func in sorted(globals().items()):
        if not name.startswith("test_") or not callable(func):
            continue
        try:
            func()
        except AssertionError as exc:
            failed += 1
            print(f"    {FAIL} {name} {exc}")
        else:
            passed += 1
            print(f"    {PASS} {name}")

    print(f"\n{LINE * 62}")
    print(f"  Results: {passed}/{passed + failed} passed")
    print(f"{LINE * 62}")
    if failed:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
