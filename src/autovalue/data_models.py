from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Literal

logger = logging.getLogger(__name__)


InputMethod = Literal["vin", "make_model"]


@dataclass(frozen=True)
class ValuationRequest:
    mileage: int
    zip: str
    email: str
    vin: str = ""
    make: str = ""
    model: str = ""
    year: str = ""

    @property
    def method(self) -> InputMethod:
        return "vin" if self.vin else "make_model"

    @property
    def has_vehicle(self) -> bool:
        return bool(self.vin) or all((self.make, self.model, self.year))


class RunTrace:
    """Append-only list of human-readable workflow steps."""

    def __init__(self) -> None:
        self._steps: list[str] = []

    def add(self, step: str) -> None:
        self._steps.append(step)
        logger.info(step)

    def snapshot(self) -> list[str]:
        return list(self._steps)

    def __iter__(self):
        return iter(self._steps)

    def __len__(self) -> int:
        return len(self._steps)


@dataclass
class MarketValue:
    average: int
    source_url: str = ""
    below_market: int | None = None
    above_market: int | None = None
    certainty: int | None = None
    sample_size: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "average": self.average,
            "belowMarket": self.below_market,
            "aboveMarket": self.above_market,
            "certainty": self.certainty,
            "sampleSize": self.sample_size,
            "source": self.source_url,
        }


@dataclass
class ValuationResult:
    valuation_text: str
    method: InputMethod
    selections: list[str] = field(default_factory=list)
    screenshots: dict[str, str | None] = field(default_factory=dict)
    trace: list[str] = field(default_factory=list)
    market_value: MarketValue | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "valuation": self.valuation_text,
            "marketValue": self.market_value.to_dict() if self.market_value else None,
            "selections": self.selections,
            "screenshots": self.screenshots,
            "steps": self.trace,
        }
