"""gauntlet.backtest.registry

Winners registry: a JSON file of strategies that cleared the gate.

One entry per (file, interval); an entry lists every symbol the strategy has
passed on at that interval. Registering is an upsert:
- unknown (file, interval)           -> new entry
- known entry, symbol not listed yet -> symbol appended
- symbol already listed              -> no change

Pydantic owns the file boundary; unknown top-level keys are preserved.
"""

from __future__ import annotations

import json
import logging
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from gauntlet.backtest.validation import Metrics
from gauntlet.core.exceptions import RegistryError
from gauntlet.core.time import utc_now

logger = logging.getLogger(__name__)

DESCRIPTION = "Strategies that passed the backtest gate, by file and interval."


class RegistryEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    file: str
    symbols: list[str] = Field(default_factory=list)
    interval: int
    notes: str = ""


class RegistryDocument(BaseModel):
    model_config = ConfigDict(extra="allow")

    description: str | None = DESCRIPTION
    strategies: list[RegistryEntry] = Field(default_factory=list)
    updated: str | None = None


class RegistrationOutcome(StrEnum):
    ADDED_ENTRY = "added_entry"
    ADDED_SYMBOL = "added_symbol"
    ALREADY_REGISTERED = "already_registered"


def registration_notes(metrics: Metrics, interval: int) -> str:
    return (
        f"Auto-registered @{int(interval)}m: {metrics.win_rate:.1f}% WR, "
        f"{metrics.total_pnl_percent:.2f}% PnL, {metrics.sharpe_ratio:.2f} Sharpe"
    )


class WinnersRegistry:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> RegistryDocument:
        if not self.path.exists():
            return RegistryDocument()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return RegistryDocument.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise RegistryError(f"registry unreadable: {self.path} ({e})") from e

    def save(self, doc: RegistryDocument) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(doc.model_dump(mode="json", exclude_none=True), indent=2) + "\n", encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            raise RegistryError(f"registry not writable: {self.path} ({e})") from e

    def find(self, *, file: str, interval: int) -> RegistryEntry | None:
        for entry in self.load().strategies:
            if entry.file == file and entry.interval == int(interval):
                return entry
        return None

    def register(self, *, file: str, symbol: str, interval: int, notes: str = "") -> RegistrationOutcome:
        doc = self.load()
        entry = next((e for e in doc.strategies if e.file == file and e.interval == int(interval)), None)

        if entry is not None and symbol in entry.symbols:
            outcome = RegistrationOutcome.ALREADY_REGISTERED
        elif entry is not None:
            entry.symbols.append(symbol)
            outcome = RegistrationOutcome.ADDED_SYMBOL
        else:
            doc.strategies.append(RegistryEntry(file=file, symbols=[symbol], interval=int(interval), notes=notes))
            outcome = RegistrationOutcome.ADDED_ENTRY

        if outcome is not RegistrationOutcome.ALREADY_REGISTERED:
            doc.updated = utc_now().isoformat()
            self.save(doc)

        logger.info("registry_upsert", extra={"file": file, "symbol": symbol, "interval": interval, "outcome": str(outcome)})
        return outcome
