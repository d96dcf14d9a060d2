from autovalue.data_models import MarketValue, RunTrace, ValuationRequest, ValuationResult
from autovalue.errors import AutomationError


def test_request_method_and_vehicle_presence():
    assert ValuationRequest(mileage=1, zip="1", email="e", vin="X").method == "vin"
    by_model = ValuationRequest(mileage=1, zip="1", email="e", make="Ford", model="Focus", year="2015")
    assert by_model.method == "make_model"
    assert by_model.has_vehicle
    assert not ValuationRequest(mileage=1, zip="1", email="e", make="Ford", year="2015").has_vehicle


def test_run_trace_is_append_only_snapshot():
    trace = RunTrace()
    trace.add("Navigating to site")
    snap = trace.snapshot()
    trace.add("Clicking Value My Car")
    assert snap == ["Navigating to site"]
    assert list(trace) == ["Navigating to site", "Clicking Value My Car"]
    assert len(trace) == 2


def test_result_to_dict_shape():
    result = ValuationResult(
        valuation_text="$9,000",
        method="vin",
        selections=["Automatic"],
        screenshots={"filled": "/shots/filled-1.png", "result": None},
        trace=["Valuation found: $9,000"],
        market_value=MarketValue(average=9500, below_market=8000, sample_size=40, source_url="https://mv.test"),
    )
    body = result.to_dict()
    assert body["valuation"] == "$9,000"
    assert body["screenshots"]["result"] is None
    assert body["marketValue"] == {
        "average": 9500,
        "belowMarket": 8000,
        "aboveMarket": None,
        "certainty": None,
        "sampleSize": 40,
        "source": "https://mv.test",
    }


def test_automation_error_copies_diagnostics():
    steps = ["a"]
    err = AutomationError("broken", steps=steps, screenshots={"error": None})
    steps.append("b")
    assert err.to_dict() == {"error": "broken", "steps": ["a"], "screenshots": {"error": None}}
    assert str(err) == "broken"
