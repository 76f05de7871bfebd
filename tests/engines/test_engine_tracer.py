"""Engine tracer: deterministic fingerprints and one trace record per call."""

from decimal import Decimal

from coop_engines.tracer import compute_input_fingerprint, traced_engine
from coop_kernel.domain.records import FinancialRatio
from coop_kernel.domain.values import Trend


def test_fingerprint_ignores_dict_order_and_decimal_scale():
    a = compute_input_fingerprint(("previous",), {"previous": {"x": Decimal("1.50"), "y": 2}})
    b = compute_input_fingerprint(("previous",), {"previous": {"y": 2, "x": Decimal("1.5")}})
    assert a == b
    assert len(a) == 16


def test_fingerprint_expands_dataclasses():
    one = compute_input_fingerprint(("r",), {"r": [FinancialRatio("ROE", 0.1, Trend.UP)]})
    two = compute_input_fingerprint(("r",), {"r": [FinancialRatio("ROE", 0.1, Trend.DOWN)]})
    assert one != two


def test_missing_fields_fingerprint_as_null():
    assert compute_input_fingerprint(("a",), {}) == compute_input_fingerprint(("a",), {"a": None})


def test_decorator_emits_trace(captured_logs):
    @traced_engine("demo", "2.1", fingerprint_fields=("values",))
    def total(*, values):
        return sum(values)

    assert total(values=[1, 2, 3]) == 6
    (trace,) = [r for r in captured_logs() if r["message"] == "COOP_ENGINE_TRACE"]
    assert trace["engine_name"] == "demo"
    assert trace["engine_version"] == "2.1"
    assert trace["input_fingerprint"] == compute_input_fingerprint(("values",), {"values": [1, 2, 3]})
    assert trace["duration_ms"] >= 0
