"""
Tests for the engine invocation tracer.
"""

from datetime import date
from decimal import Decimal

from stock_engines.abc import AbcItem, classify_abc
from stock_engines.tracer import compute_input_fingerprint, traced_engine


class TestFingerprint:

    def test_deterministic(self):
        kwargs = {"as_of_date": date(2024, 2, 20), "quantity": Decimal("1.50")}

        first = compute_input_fingerprint(("as_of_date", "quantity"), kwargs)
        second = compute_input_fingerprint(("as_of_date", "quantity"), dict(kwargs))

        assert first == second
        assert len(first) == 16

    def test_decimal_scale_does_not_matter(self):
        a = compute_input_fingerprint(("q",), {"q": Decimal("1.50")})
        b = compute_input_fingerprint(("q",), {"q": Decimal("1.5")})

        assert a == b

    def test_different_inputs_differ(self):
        a = compute_input_fingerprint(("q",), {"q": Decimal("1")})
        b = compute_input_fingerprint(("q",), {"q": Decimal("2")})

        assert a != b

    def test_missing_field_is_null(self):
        assert compute_input_fingerprint(("q",), {}) == compute_input_fingerprint(("q",), {"q": None})


class TestTracedEngine:

    def test_emits_trace_and_returns_result(self, captured_logs):
        @traced_engine("sample", "2.1", fingerprint_fields=("n",))
        def double(n):
            return n * 2

        assert double(n=4) == 8

        traces = [r for r in captured_logs() if r["message"] == "STOCK_ENGINE_TRACE"]
        assert len(traces) == 1
        assert traces[0]["engine_name"] == "sample"
        assert traces[0]["engine_version"] == "2.1"
        assert traces[0]["input_fingerprint"] == compute_input_fingerprint(("n",), {"n": 4})
        assert traces[0]["function"].endswith("double")

    def test_preserves_wrapped_metadata(self):
        assert classify_abc.__name__ == "classify_abc"

    def test_abc_invocation_fingerprints_thresholds(self, captured_logs):
        classify_abc(items=[AbcItem("X", Decimal("1"))], a_pct=Decimal("70"), b_pct=Decimal("20"))

        trace = next(r for r in captured_logs() if r.get("engine_name") == "abc")
        assert trace["input_fingerprint"] == compute_input_fingerprint(
            ("a_pct", "b_pct"), {"a_pct": Decimal("70"), "b_pct": Decimal("20")},
        )
