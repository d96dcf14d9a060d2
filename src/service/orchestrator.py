from __future__ import annotations

import logging
from typing import Any, AsyncContextManager, Mapping, Protocol

from playwright.async_api import Page

from autovalue.config import ValuationDefaults
from autovalue.data_models import MarketValue, ValuationRequest, ValuationResult
from autovalue.errors import InvalidRequest
from autovalue.navigation import NavigationDriver
from service.logging_config import vehicle

logger = logging.getLogger(__name__)

MISSING_VEHICLE = "Either vin and mileage, or make, model, year and mileage are required"
MISSING_MILEAGE = "mileage is required"


class SessionProvider(Protocol):
    def session(self) -> AsyncContextManager[Page]: ...


class MarketValueLookup(Protocol):
    async def lookup(self, vin: str) -> MarketValue | None: ...


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _mileage(value: Any) -> int | None:
    raw = _text(value).replace(",", "")
    if not raw:
        return None
    try:
        miles = int(float(raw))
    except (ValueError, OverflowError):
        return None
    return miles if miles > 0 else None


def build_request(payload: Mapping[str, Any], defaults: ValuationDefaults) -> ValuationRequest:
    """Validate an inbound body and fill ZIP/email from configured defaults."""
    vin = _text(payload.get("vin")).upper()
    make = _text(payload.get("make"))
    model = _text(payload.get("model"))
    year = _text(payload.get("year"))
    if not vin and not all((make, model, year)):
        raise InvalidRequest(MISSING_VEHICLE)

    mileage = _mileage(payload.get("mileage"))
    if mileage is None:
        raise InvalidRequest(MISSING_MILEAGE)

    return ValuationRequest(
        vin=vin,
        make=make,
        model=model,
        year=year,
        mileage=mileage,
        zip=_text(payload.get("zip")) or defaults.zip,
        email=_text(payload.get("email")) or defaults.email,
    )


class ValuationService:
    def __init__(
        self,
        defaults: ValuationDefaults,
        sessions: SessionProvider,
        driver: NavigationDriver,
        market: MarketValueLookup | None = None,
    ) -> None:
        self.defaults = defaults
        self.sessions = sessions
        self.driver = driver
        self.market = market

    def build_request(self, payload: Mapping[str, Any]) -> ValuationRequest:
        return build_request(payload, self.defaults)

    async def value(self, request: ValuationRequest) -> ValuationResult:
        token = vehicle.set(describe_vehicle(request))
        try:
            async with self.sessions.session() as page:
                result = await self.driver.run(page, request)
            if request.vin and self.market is not None:
                result.market_value = await self._market_value(request.vin)
            return result
        finally:
            vehicle.reset(token)

    async def _market_value(self, vin: str) -> MarketValue | None:
        try:
            return await self.market.lookup(vin)
        except Exception as exc:
            logger.warning("Market value unavailable for %s: %s", vin, exc)
            return None


def describe_vehicle(request: ValuationRequest) -> str:
    if request.vin:
        return f"VIN {request.vin}"
    return f"{request.year} {request.make} {request.model}"


def summarize(request: ValuationRequest, result: ValuationResult) -> dict[str, Any]:
    return {
        "success": True,
        "valuation": result.valuation_text,
        "method": request.method,
        "selections": result.selections,
        "message": f"Valuation of {result.valuation_text} found for {describe_vehicle(request)}",
    }


def summarize_failure(message: str, request: ValuationRequest | None = None) -> dict[str, Any]:
    return {
        "success": False,
        "valuation": None,
        "method": request.method if request is not None else None,
        "selections": [],
        "message": message,
    }
