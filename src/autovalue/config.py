from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class WorkflowConfig:
    landing_url: str = "https://www.webuyanycarusa.com/?r=1"
    details_url_markers: tuple[str, ...] = ("vehicledetails", "vehicle-details")
    navigation_timeout_ms: int = 90_000
    mileage_wait_ms: int = 30_000
    contact_wait_ms: int = 20_000
    dropdown_enable_timeout_s: float = 15.0
    dropdown_poll_interval_s: float = 0.25
    options_settle_ms: int = 1_000
    condition_settle_ms: int = 2_000
    placeholder_words: tuple[str, ...] = ("select", "choose", "please")


@dataclass(frozen=True)
class ValuationDefaults:
    zip: str = "34238"
    email: str = "valuations@example.com"


@dataclass(frozen=True)
class MarketValueConfig:
    enabled: bool = True
    timeout_seconds: float = 20.0
    url_templates: tuple[str, ...] = field(
        default_factory=lambda: (
            "https://www.vinaudit.com/market-value?vin={vin}",
            "https://www.vinaudit.com/vehicle-market-value/{vin}",
            "https://www.vinaudit.com/market-value-tool?vin={vin}",
        )
    )
    min_plausible_price: int = 500
    max_plausible_price: int = 500_000
