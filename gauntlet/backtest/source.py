"""gauntlet.backtest.source

Where candles come from.

The simulator does not care: it gets a fully materialized CandleSeries.
Sources only promise ascending, de-duplicated candles (not re-validated here).

- HttpCandleSource: exchange REST endpoint `GET {base}/candles/{symbol}`
- CsvCandleSource: `{directory}/{symbol}_{interval}.csv` snapshots
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import httpx

from gauntlet.backtest.candles import Candle, CandleSeries
from gauntlet.backtest.io import load_candles_csv
from gauntlet.core.client import ClientConfig, ExchangeClient
from gauntlet.core.config import DataSettings
from gauntlet.core.exceptions import ConfigError, DataSourceError
from gauntlet.core.signing import API_KEY_HEADER, Ed25519RequestAuth

logger = logging.getLogger(__name__)


@runtime_checkable
class CandleSource(Protocol):
    async def fetch_historical_data(self, symbol: str, interval_minutes: int, count: int) -> CandleSeries: ...


def parse_candle_rows(rows: list[Any]) -> CandleSeries:
    """Turn exchange JSON rows into candles. Numeric strings are accepted."""

    out: list[Candle] = []
    for row in rows:
        if not isinstance(row, dict):
            raise DataSourceError(f"candle row is not an object: {row!r}")
        try:
            out.append(
                Candle(
                    start=int(float(row["start"])),
                    open=float(row["open"]),
                    high=float(row["high"]),
                    low=float(row["low"]),
                    close=float(row["close"]),
                    volume=float(row.get("volume") or 0.0),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DataSourceError(f"malformed candle row: {row!r}") from e
    return CandleSeries(out)


class HttpCandleSource:
    def __init__(self, client: ExchangeClient) -> None:
        self.client = client

    @classmethod
    def from_settings(cls, settings: DataSettings, *, transport: httpx.AsyncBaseTransport | None = None) -> HttpCandleSource:
        """Build a source for the configured venue.

        With a private key path every request is signed (Ed25519); with only an
        API key the key is sent unsigned. Raises ConfigError for an unusable key.
        """

        headers = {"Accept": "application/json"}
        auth = None
        if settings.private_key_path:
            if not settings.api_key:
                raise ConfigError("data.private_key_path is set but data.api_key is empty")
            auth = Ed25519RequestAuth.from_pem_file(settings.api_key, settings.private_key_path)
        elif settings.api_key:
            headers[API_KEY_HEADER] = settings.api_key
        cfg = ClientConfig(
            base_url=settings.base_url.rstrip("/") + "/",
            rate_limit_rps=settings.rate_limit_rps,
            max_retries=settings.max_retries,
            timeout_s=settings.timeout_s,
        )
        return cls(ExchangeClient(cfg, headers=headers, auth=auth, transport=transport))

    async def aclose(self) -> None:
        await self.client.aclose()

    async def fetch_historical_data(self, symbol: str, interval_minutes: int, count: int) -> CandleSeries:
        try:
            data = await self.client.get_json(f"candles/{symbol}", params={"interval": int(interval_minutes), "limit": int(count)})
        except (httpx.HTTPError, ValueError) as e:
            raise DataSourceError(f"candle fetch failed for {symbol}@{interval_minutes}m: {e}") from e

        if isinstance(data, dict):
            data = data.get("data") or []
        if not isinstance(data, list):
            raise DataSourceError(f"unexpected candle payload for {symbol}: {type(data).__name__}")

        series = parse_candle_rows(data)
        logger.info("candles_fetched", extra={"symbol": symbol, "interval": interval_minutes, "count": len(series)})
        return series


class CsvCandleSource:
    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def path_for(self, symbol: str, interval_minutes: int) -> Path:
        return self.directory / f"{symbol}_{int(interval_minutes)}.csv"

    async def fetch_historical_data(self, symbol: str, interval_minutes: int, count: int) -> CandleSeries:
        path = self.path_for(symbol, interval_minutes)
        if not path.exists():
            raise DataSourceError(f"candle file not found: {path}")
        try:
            series = load_candles_csv(path)
        except (OSError, ValueError) as e:
            raise DataSourceError(f"candle file unreadable: {path} ({e})") from e
        return series.tail(count)
