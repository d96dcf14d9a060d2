import pytest

from autovalue.config import ValuationDefaults, WorkflowConfig
from autovalue.data_models import MarketValue, ValuationRequest
from autovalue.errors import AutomationError, InvalidRequest
from autovalue.navigation import NavigationDriver
from fakes import FakePage, FakeSessions
from service.orchestrator import (
    MISSING_MILEAGE,
    MISSING_VEHICLE,
    ValuationService,
    build_request,
    summarize,
    summarize_failure,
)
from sites import make_model_site, vin_landing, vin_site

DEFAULTS = ValuationDefaults(zip="34238", email="valuations@example.com")
VIN = "1HGCM82633A004352"


class RecordingMarket:
    def __init__(self, value=None, error=None):
        self.value = value
        self.error = error
        self.calls = []

    async def lookup(self, vin):
        self.calls.append(vin)
        if self.error:
            raise self.error
        return self.value


def _service(page: FakePage, market=None) -> ValuationService:
    driver = NavigationDriver(WorkflowConfig(mileage_wait_ms=10, contact_wait_ms=10))
    return ValuationService(DEFAULTS, FakeSessions(page), driver, market=market)


# ── Request validation ──────────────────────────────────────────────


def test_build_request_requires_vehicle():
    with pytest.raises(InvalidRequest) as info:
        build_request({"mileage": 1000}, DEFAULTS)
    assert str(info.value) == MISSING_VEHICLE
    assert "vin" in MISSING_VEHICLE and "make, model, year" in MISSING_VEHICLE


def test_build_request_partial_make_model_is_invalid():
    with pytest.raises(InvalidRequest, match="Either vin"):
        build_request({"make": "Toyota", "year": 2020, "mileage": 1000}, DEFAULTS)


@pytest.mark.parametrize("mileage", [None, "", "abc", 0, -5, "inf", "-inf", "nan", "1e999", 1e999])
def test_build_request_requires_positive_mileage(mileage):
    with pytest.raises(InvalidRequest) as info:
        build_request({"vin": VIN, "mileage": mileage}, DEFAULTS)
    assert str(info.value) == MISSING_MILEAGE


def test_build_request_applies_defaults_and_normalizes():
    req = build_request({"vin": " 1hgcm82633a004352 ", "mileage": "45,000"}, DEFAULTS)
    assert req.vin == VIN
    assert req.mileage == 45000
    assert req.zip == "34238"
    assert req.email == "valuations@example.com"
    assert req.method == "vin"


def test_build_request_keeps_caller_contact_details():
    req = build_request(
        {"make": "Toyota", "model": "Camry", "year": 2020, "mileage": 30000.0, "zip": 10001, "email": "a@b.c"},
        DEFAULTS,
    )
    assert req.method == "make_model"
    assert req.year == "2020"
    assert req.zip == "10001"
    assert req.email == "a@b.c"


def test_vin_wins_when_both_shapes_supplied():
    req = build_request({"vin": VIN, "make": "Toyota", "model": "Camry", "year": "2020", "mileage": 1}, DEFAULTS)
    assert req.method == "vin"


# ── Valuation runs ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_vin_valuation_attaches_market_value():
    market = RecordingMarket(MarketValue(average=13000, source_url="https://mv.test"))
    service = _service(vin_site(), market)

    result = await service.value(build_request({"vin": VIN, "mileage": 45000}, DEFAULTS))

    assert result.valuation_text == "$12,345.00"
    assert result.market_value.average == 13000
    assert market.calls == [VIN]
    assert result.to_dict()["marketValue"]["average"] == 13000


@pytest.mark.asyncio
async def test_market_failure_does_not_fail_valuation():
    service = _service(vin_site(), RecordingMarket(error=RuntimeError("boom")))
    result = await service.value(build_request({"vin": VIN, "mileage": 45000}, DEFAULTS))
    assert result.valuation_text == "$12,345.00"
    assert result.market_value is None


@pytest.mark.asyncio
async def test_make_model_valuation_skips_market_lookup():
    market = RecordingMarket(MarketValue(average=1))
    service = _service(make_model_site(), market)
    req = build_request({"make": "Toyota", "model": "Camry", "year": "2020", "mileage": 30000}, DEFAULTS)

    result = await service.value(req)

    assert market.calls == []
    assert result.market_value is None


@pytest.mark.asyncio
async def test_session_released_on_failure():
    landing = vin_landing()
    landing.extras = []
    page = FakePage([landing])
    service = _service(page, RecordingMarket())

    with pytest.raises(AutomationError):
        await service.value(build_request({"vin": VIN, "mileage": 45000}, DEFAULTS))

    assert service.sessions.opened == 1
    assert service.sessions.closed == 1
    assert service.market.calls == []


# ── Summaries ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_summarize_success():
    service = _service(vin_site())
    req = build_request({"vin": VIN, "mileage": 45000}, DEFAULTS)
    body = summarize(req, await service.value(req))
    assert body["success"] is True
    assert body["method"] == "vin"
    assert body["valuation"] == "$12,345.00"
    assert body["message"] == f"Valuation of $12,345.00 found for VIN {VIN}"


def test_summarize_failure_without_request():
    body = summarize_failure(MISSING_VEHICLE)
    assert body == {
        "success": False,
        "valuation": None,
        "method": None,
        "selections": [],
        "message": MISSING_VEHICLE,
    }


def test_summarize_failure_names_method():
    req = ValuationRequest(make="Ford", model="F-150", year="2018", mileage=1, zip="1", email="e")
    assert summarize_failure("nope", req)["method"] == "make_model"
