"""
receipt_store.py - Redis-backed storage for receipt scores.

Each score is one `SET <uuid> <points> EX <ttl>`; Redis owns expiry.
Every call is bounded per attempt by `settings.store_timeout` and retried,
sequentially, only when that bound is exceeded. A missing key and any
other backend error are returned immediately.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

import redis.asyncio as aioredis
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from config import Settings
from errors import KeyNotFoundError, StoreError, StoreUnavailableError
from logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class ReceiptStore:
    """Deadline-bounded, retrying wrapper around an async Redis client.

    The client is shared by all requests; redis-py's connection pool makes
    it safe for concurrent use, so the store keeps no state of its own.
    """

    def __init__(self, client: Any, settings: Settings) -> None:
        self.client = client
        self.settings = settings

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReceiptStore":
        client = aioredis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            decode_responses=True,
            socket_timeout=settings.store_timeout,
            socket_connect_timeout=settings.store_timeout,
        )
        return cls(client, settings)

    def _attempt_timeout(self, deadline: Optional[float]) -> Optional[float]:
        """Per-attempt bound, clipped to what is left of the caller's deadline.

        Returns None once the deadline has passed.
        """
        timeout = self.settings.store_timeout
        if deadline is None:
            return timeout
        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            return None
        return min(timeout, remaining)

    async def _with_retries(
        self,
        op: str,
        key: str,
        call: Callable[[], Awaitable[T]],
        deadline: Optional[float],
    ) -> T:
        attempts = 0
        while attempts < self.settings.max_retries:
            timeout = self._attempt_timeout(deadline)
            if timeout is None:
                logger.warning("store_deadline_passed | op=%s | key=%s | attempts=%s", op, key, attempts)
                break
            attempts += 1
            try:
                return await asyncio.wait_for(call(), timeout=timeout)
            except (asyncio.TimeoutError, RedisTimeoutError):
                logger.warning(
                    "store_retry | op=%s | key=%s | attempt=%s | max_retries=%s | timeout=%.3fs",
                    op,
                    key,
                    attempts,
                    self.settings.max_retries,
                    timeout,
                )
                continue
            except RedisError as exc:
                raise StoreError(f"Error during store {op}: {exc}") from exc

        raise StoreUnavailableError(op, attempts)

    async def put(self, key: str, value: str, deadline: Optional[float] = None) -> None:
        """Write `value` under `key` with the configured TTL.

        Raises:
            StoreUnavailableError: every attempt timed out or the deadline passed.
            StoreError: the backend rejected the write.
        """
        await self._with_retries(
            "set",
            key,
            lambda: self.client.set(key, value, ex=self.settings.ttl),
            deadline,
        )
        logger.debug("store_set | key=%s | ttl=%ss", key, self.settings.ttl)

    async def get(self, key: str, deadline: Optional[float] = None) -> str:
        """Read the value stored under `key`.

        Raises:
            KeyNotFoundError: the key was never written or has expired.
            StoreUnavailableError: every attempt timed out or the deadline passed.
            StoreError: any other backend failure.
        """
        value = await self._with_retries("get", key, lambda: self.client.get(key), deadline)
        if value is None:
            raise KeyNotFoundError(key)
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def check_connection(self, deadline: Optional[float] = None) -> None:
        """Single bounded PING; no retries."""
        timeout = self._attempt_timeout(deadline)
        if timeout is None:
            raise StoreUnavailableError("ping", 0)
        try:
            await asyncio.wait_for(self.client.ping(), timeout=timeout)
        except (asyncio.TimeoutError, RedisTimeoutError) as exc:
            raise StoreUnavailableError("ping", 1) from exc
        except RedisError as exc:
            raise StoreError(f"Error connecting to store: {exc}") from exc

    async def close(self) -> None:
        await self.client.aclose()
