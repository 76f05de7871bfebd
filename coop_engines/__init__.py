"""
coop_engines -- pure calculation layer.

Engines take canonical records and configuration values and return new
values.  No I/O, no clock, no session.  Invocations are traced through
``coop_engines.tracer.traced_engine``.
"""

from coop_engines.ratios import (
    CURRENT_RATIO,
    DEBT_TO_ASSETS,
    OPERATING_MARGIN,
    RATIO_NAMES,
    RETURN_ON_EQUITY,
    BalanceTotals,
    balance_totals,
    classify_trend,
    compute_ratios,
)
from coop_engines.summaries import (
    BalanceSheetSummary,
    CashFlowSummary,
    MembershipFeeSummary,
    balance_sheet_summary,
    cash_flow_summary,
    membership_fee_summary,
)

__all__ = [
    "CURRENT_RATIO",
    "DEBT_TO_ASSETS",
    "OPERATING_MARGIN",
    "RATIO_NAMES",
    "RETURN_ON_EQUITY",
    "BalanceTotals",
    "balance_totals",
    "classify_trend",
    "compute_ratios",
    "BalanceSheetSummary",
    "CashFlowSummary",
    "MembershipFeeSummary",
    "balance_sheet_summary",
    "cash_flow_summary",
    "membership_fee_summary",
]
