"""
coop_engines.ratios -- Ratio Engine.

Responsibility:
    Derive the named financial ratios of a period from its persisted
    balance entries, and label each with a trend against the same-named
    ratio of the preceding month.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The Ingestion
    Orchestrator loads the inputs through the Period Store and persists the
    output through it.

Algorithm:
    1. totals: assets = sum(final_debit - final_credit) over assets;
       liabilities and equity = sum(final_credit - final_debit).
    2. current assets / liabilities = totals x configured fractions.  This is
       an approximation until accounts carry a current / non-current split.
    3. Current Ratio, Debt to Assets, Return on Equity
       ((assets - liabilities - equity) / equity), Operating Margin
       (configured placeholder; there is no income statement source).
       Any zero denominator yields 0.0.
    4. Trend: no prior value -> stable; |delta| <= tolerance -> stable;
       otherwise up or down.

Invariants enforced:
    - Identical inputs produce identical outputs, in RATIO_NAMES order.
    - Totals are accumulated in Decimal; only the final ratios are float.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from coop_config.schema import RatioConfig
from coop_engines.tracer import traced_engine
from coop_kernel.domain.records import BalanceEntry, FinancialRatio
from coop_kernel.domain.values import BalanceCategory, Trend

CURRENT_RATIO = "Current Ratio"
DEBT_TO_ASSETS = "Debt to Assets"
RETURN_ON_EQUITY = "Return on Equity"
OPERATING_MARGIN = "Operating Margin"

RATIO_NAMES: tuple[str, ...] = (
    CURRENT_RATIO,
    DEBT_TO_ASSETS,
    RETURN_ON_EQUITY,
    OPERATING_MARGIN,
)

ZERO = Decimal("0")

# Float noise on the tolerance boundary (5.01 - 5.00 == 0.00999...98)
_TREND_ROUNDING = 10


@dataclass(frozen=True)
class BalanceTotals:
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal


def balance_totals(entries: Iterable[BalanceEntry]) -> BalanceTotals:
    assets = liabilities = equity = ZERO
    for e in entries:
        if e.category == BalanceCategory.ASSETS:
            assets += e.final_debit - e.final_credit
        elif e.category == BalanceCategory.LIABILITIES:
            liabilities += e.final_credit - e.final_debit
        elif e.category == BalanceCategory.EQUITY:
            equity += e.final_credit - e.final_debit
    return BalanceTotals(assets, liabilities, equity)


def _safe_ratio(numerator: Decimal, denominator: Decimal) -> float:
    if denominator == ZERO:
        return 0.0
    return float(numerator / denominator)


def classify_trend(current: float, previous: float | None, tolerance: float) -> Trend:
    if previous is None:
        return Trend.STABLE
    delta = round(abs(current - previous), _TREND_ROUNDING)
    if delta <= tolerance:
        return Trend.STABLE
    return Trend.UP if current > previous else Trend.DOWN


@traced_engine("ratios", "1.0", fingerprint_fields=("entries", "previous"))
def compute_ratios(
    *,
    entries: Sequence[BalanceEntry],
    previous: Mapping[str, float],
    params: RatioConfig,
) -> list[FinancialRatio]:
    """Compute the period's ratios.

    Args:
        entries: Balance entries of the period (must be non-empty; the
            caller raises NoBalanceDataError otherwise).
        previous: Ratio values of the preceding month keyed by name.
        params: Fractions, placeholder margin, tolerance and descriptions.
    """
    totals = balance_totals(entries)
    current_assets = totals.total_assets * params.current_asset_fraction
    current_liabilities = totals.total_liabilities * params.current_liability_fraction

    values = {
        CURRENT_RATIO: _safe_ratio(current_assets, current_liabilities),
        DEBT_TO_ASSETS: _safe_ratio(totals.total_liabilities, totals.total_assets),
        RETURN_ON_EQUITY: _safe_ratio(
            totals.total_assets - totals.total_liabilities - totals.total_equity,
            totals.total_equity,
        ),
        OPERATING_MARGIN: float(params.operating_margin),
    }

    return [
        FinancialRatio(
            name=name,
            value=values[name],
            trend=classify_trend(values[name], previous.get(name), params.trend_tolerance),
            description=params.descriptions.get(name),
        )
        for name in RATIO_NAMES
    ]
