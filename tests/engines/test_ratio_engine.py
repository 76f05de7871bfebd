"""Ratio Engine: totals, named ratios, trend classification."""

from decimal import Decimal

import pytest

from coop_config.schema import RatioConfig
from coop_engines.ratios import (
    CURRENT_RATIO,
    DEBT_TO_ASSETS,
    OPERATING_MARGIN,
    RATIO_NAMES,
    RETURN_ON_EQUITY,
    balance_totals,
    classify_trend,
    compute_ratios,
)
from coop_kernel.domain.records import BalanceEntry
from coop_kernel.domain.values import BalanceCategory, Trend


def _entry(category: BalanceCategory, debit: str = "0", credit: str = "0") -> BalanceEntry:
    return BalanceEntry(
        account_code="x",
        account_name="x",
        category=category,
        final_debit=Decimal(debit),
        final_credit=Decimal(credit),
    )


@pytest.fixture
def params():
    return RatioConfig(descriptions={DEBT_TO_ASSETS: "Nivel de endeudamiento"})


SCENARIO = [
    _entry(BalanceCategory.ASSETS, debit="510000"),
    _entry(BalanceCategory.LIABILITIES, credit="255000"),
    _entry(BalanceCategory.EQUITY, credit="255000"),
]


class TestTotals:
    def test_sides_per_category(self):
        totals = balance_totals(
            [
                _entry(BalanceCategory.ASSETS, debit="100", credit="20"),
                _entry(BalanceCategory.LIABILITIES, debit="5", credit="50"),
                _entry(BalanceCategory.EQUITY, credit="25"),
            ]
        )
        assert totals.total_assets == Decimal("80")
        assert totals.total_liabilities == Decimal("45")
        assert totals.total_equity == Decimal("25")


class TestComputeRatios:
    def test_scenario_values(self, params):
        ratios = {r.name: r for r in compute_ratios(entries=SCENARIO, previous={}, params=params)}
        assert ratios[DEBT_TO_ASSETS].value == pytest.approx(0.5)
        assert ratios[RETURN_ON_EQUITY].value == pytest.approx(0.0)
        # (510000 * 0.6) / (255000 * 0.5)
        assert ratios[CURRENT_RATIO].value == pytest.approx(2.4)
        assert ratios[OPERATING_MARGIN].value == pytest.approx(0.18)

    def test_order_and_descriptions(self, params):
        ratios = compute_ratios(entries=SCENARIO, previous={}, params=params)
        assert [r.name for r in ratios] == list(RATIO_NAMES)
        assert ratios[1].description == "Nivel de endeudamiento"
        assert ratios[0].description is None

    def test_zero_denominators_yield_zero(self, params):
        ratios = {
            r.name: r.value
            for r in compute_ratios(
                entries=[_entry(BalanceCategory.ASSETS, debit="0")], previous={}, params=params
            )
        }
        assert ratios[CURRENT_RATIO] == 0.0
        assert ratios[DEBT_TO_ASSETS] == 0.0
        assert ratios[RETURN_ON_EQUITY] == 0.0

    def test_no_previous_means_stable(self, params):
        ratios = compute_ratios(entries=SCENARIO, previous={}, params=params)
        assert all(r.trend == Trend.STABLE for r in ratios)

    def test_trend_against_previous(self, params):
        ratios = {
            r.name: r
            for r in compute_ratios(
                entries=SCENARIO,
                previous={DEBT_TO_ASSETS: 0.6, CURRENT_RATIO: 2.0, RETURN_ON_EQUITY: 0.005},
                params=params,
            )
        }
        assert ratios[DEBT_TO_ASSETS].trend == Trend.DOWN
        assert ratios[CURRENT_RATIO].trend == Trend.UP
        assert ratios[RETURN_ON_EQUITY].trend == Trend.STABLE

    def test_fractions_are_configurable(self):
        params = RatioConfig(
            current_asset_fraction=Decimal("1"), current_liability_fraction=Decimal("1")
        )
        ratios = {r.name: r.value for r in compute_ratios(entries=SCENARIO, previous={}, params=params)}
        assert ratios[CURRENT_RATIO] == pytest.approx(2.0)

    def test_invalid_fraction_rejected(self):
        with pytest.raises(ValueError):
            RatioConfig(current_asset_fraction=Decimal("0"))


class TestClassifyTrend:
    @pytest.mark.parametrize(
        "previous,current,expected",
        [
            (5.00, 5.00, Trend.STABLE),
            (5.00, 5.50, Trend.UP),
            (5.00, 4.40, Trend.DOWN),
            (5.00, 5.01, Trend.STABLE),
            (5.00, 4.99, Trend.STABLE),
            (5.00, 5.02, Trend.UP),
            (None, 9.99, Trend.STABLE),
        ],
    )
    def test_cases(self, previous, current, expected):
        assert classify_trend(current, previous, 0.01) == expected


def test_engine_trace_emitted(captured_logs, params):
    compute_ratios(entries=SCENARIO, previous={}, params=params)
    traces = [r for r in captured_logs() if r["message"] == "COOP_ENGINE_TRACE"]
    assert traces
    assert traces[-1]["engine_name"] == "ratios"
    assert len(traces[-1]["input_fingerprint"]) == 16
