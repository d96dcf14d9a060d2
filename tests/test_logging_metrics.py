import json
import logging

from service.logging_config import QUIET_LOGGERS, CorrelationFilter, JSONFormatter, configure_logging, correlation_id, vehicle
from service.metrics import Metrics


def _record(msg: str = "hello %s", args=("world",)) -> logging.LogRecord:
    return logging.LogRecord("autovalue.test", logging.INFO, __file__, 1, msg, args, None)


def test_json_formatter_includes_correlation_and_data():
    token = correlation_id.set("cid-42")
    car = vehicle.set("VIN X")
    try:
        record = _record()
        record.extra_data = {"mileage": 45000}
        entry = json.loads(JSONFormatter().format(record))
    finally:
        vehicle.reset(car)
        correlation_id.reset(token)
    assert entry["msg"] == "hello world"
    assert entry["level"] == "INFO"
    assert entry["correlation_id"] == "cid-42"
    assert entry["vehicle"] == "VIN X"
    assert entry["data"] == {"mileage": 45000}


def test_correlation_filter_defaults_to_dash():
    record = _record()
    assert CorrelationFilter().filter(record)
    assert record.correlation_id == "-"
    assert record.vehicle == "-"


def test_configure_logging_replaces_handlers():
    configure_logging(level="debug", fmt="json")
    configure_logging(level="warning", fmt="text")
    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert len(root.handlers) == 1
    assert not isinstance(root.handlers[0].formatter, JSONFormatter)
    for name in QUIET_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING


def test_metrics_snapshot_and_prometheus():
    m = Metrics(prefix="test")
    m.incr("valuation_success")
    m.incr("valuation_success")
    for seconds in (0.1, 0.2, 0.3):
        m.observe("valuation", seconds)

    snap = m.snapshot()
    assert snap["counters"]["valuation_success"] == 2
    assert snap["counters"]["valuation_count"] == 3
    assert snap["latency"]["valuation"]["count"] == 3
    assert snap["latency"]["valuation"]["p50_ms"] == 200.0

    text = m.prometheus()
    assert "# TYPE test_valuation_success counter" in text
    assert "test_valuation_success 2" in text
    assert "test_valuation_seconds_count 3" in text
