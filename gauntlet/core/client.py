"""gauntlet.core.client

HTTP access to an exchange's market-data API.

Every candle request goes through ExchangeClient:
- requests are paced by a token bucket (exchanges ban noisy clients)
- 5xx, transport errors and 429 are retried; 429 honours Retry-After
- repeated failures trip a circuit breaker for a cooldown
- response size and list length are capped before parsing
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ClientConfig:
    base_url: str = ""
    rate_limit_rps: float = 5.0
    max_retries: int = 3
    timeout_s: float = 20.0
    backoff_base_s: float = 1.0
    backoff_cap_s: float = 8.0
    breaker_threshold: int = 5
    breaker_cooldown_s: float = 30.0
    max_bytes: int = 2 * 1024 * 1024
    max_items: int = 10_000


class RateLimiter:
    """Token bucket with a burst of one request."""

    def __init__(self, rate_per_sec: float) -> None:
        self.rate = max(rate_per_sec, 0.001)
        self._tokens = 1.0
        self._stamp = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        self._tokens = min(1.0, self._tokens + (now - self._stamp) * self.rate)
        self._stamp = now

    async def wait(self) -> None:
        while True:
            async with self._lock:
                self._refill()
                if self._tokens >= 1.0:
                    self._tokens -= 1.0
                    return
                delay = (1.0 - self._tokens) / self.rate
            await asyncio.sleep(delay)


class CircuitBreaker:
    def __init__(self, threshold: int, cooldown_s: float) -> None:
        self.threshold = threshold
        self.cooldown_s = cooldown_s
        self.failures = 0
        self.opened_at: float | None = None

    @property
    def is_open(self) -> bool:
        if self.opened_at is None:
            return False
        if time.monotonic() - self.opened_at >= self.cooldown_s:
            # Half-open: let the next request through and start counting again.
            self.failures = 0
            self.opened_at = None
            return False
        return True

    def record_success(self) -> None:
        self.failures = 0
        self.opened_at = None

    def record_failure(self) -> None:
        self.failures += 1
        if self.failures >= self.threshold:
            self.opened_at = time.monotonic()


def _retryable(exc: Exception) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        return code == 429 or code >= 500
    return isinstance(exc, httpx.TransportError)


def _retry_delay(exc: Exception, attempt: int, cfg: ClientConfig) -> float:
    if isinstance(exc, httpx.HTTPStatusError) and exc.response.status_code == 429:
        retry_after = exc.response.headers.get("Retry-After")
        if retry_after is not None:
            try:
                return min(max(float(retry_after), 0.0), cfg.backoff_cap_s)
            except ValueError:
                pass
    return min(cfg.backoff_base_s * 2**attempt, cfg.backoff_cap_s)


class ExchangeClient:
    """Async client bound to one API base URL. Pass `transport=` to replace the network in tests."""

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        headers: dict[str, str] | None = None,
        auth: httpx.Auth | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        self._limiter = RateLimiter(self.config.rate_limit_rps)
        self._breaker = CircuitBreaker(self.config.breaker_threshold, self.config.breaker_cooldown_s)
        self._http = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout_s,
            headers=headers,
            auth=auth,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> ExchangeClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> httpx.Response:
        if self._breaker.is_open:
            raise httpx.TransportError("circuit breaker open")

        attempt = 0
        while True:
            await self._limiter.wait()
            try:
                resp = await self._http.get(path, params=params)
                resp.raise_for_status()
            except httpx.HTTPError as e:
                self._breaker.record_failure()
                if attempt >= self.config.max_retries or not _retryable(e):
                    raise
                delay = _retry_delay(e, attempt, self.config)
                logger.warning("http_retry", extra={"path": path, "attempt": attempt + 1, "error": type(e).__name__, "delay_s": delay})
                await asyncio.sleep(delay)
                attempt += 1
                continue
            self._breaker.record_success()
            return resp

    async def get_json(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        expected: type | tuple[type, ...] | None = None,
    ) -> Any:
        """GET and decode JSON, refusing oversized bodies and lists."""

        resp = await self.get(path, params=params)
        size = len(resp.content)
        if size > self.config.max_bytes:
            raise httpx.TransportError(f"response_too_large:{size}")
        data: Any = resp.json()
        if expected is not None and not isinstance(data, expected):
            raise httpx.TransportError("response_schema_mismatch")
        if isinstance(data, list) and len(data) > self.config.max_items:
            raise httpx.TransportError(f"response_too_many_items:{len(data)}")
        return data
