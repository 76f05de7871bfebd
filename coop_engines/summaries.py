"""
coop_engines.summaries -- period summaries for the read side.

Pure reductions over canonical records: balance sheet totals with the
balance check, cash flow per activity category, and membership fee
collection figures.  The balance check is reported, never enforced.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from coop_engines.ratios import balance_totals
from coop_engines.tracer import traced_engine
from coop_kernel.domain.records import BalanceEntry, CashFlowEntry, MembershipFee
from coop_kernel.domain.values import CashFlowCategory

ZERO = Decimal("0")
BALANCE_TOLERANCE = Decimal("0.01")


@dataclass(frozen=True)
class BalanceSheetSummary:
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    difference: Decimal
    is_balanced: bool
    entry_count: int


@dataclass(frozen=True)
class CashFlowSummary:
    by_category: dict[CashFlowCategory, Decimal]
    total_inflows: Decimal
    total_outflows: Decimal
    net_cash_flow: Decimal


@dataclass(frozen=True)
class MembershipFeeSummary:
    total_expected: Decimal
    total_paid: Decimal
    total_debt: Decimal
    member_count: int
    members_with_debt: int
    collection_rate: float


@traced_engine("balance_sheet_summary", "1.0")
def balance_sheet_summary(entries: Iterable[BalanceEntry]) -> BalanceSheetSummary:
    entries = list(entries)
    totals = balance_totals(entries)
    difference = totals.total_assets - (totals.total_liabilities + totals.total_equity)
    return BalanceSheetSummary(
        total_assets=totals.total_assets,
        total_liabilities=totals.total_liabilities,
        total_equity=totals.total_equity,
        difference=difference,
        is_balanced=abs(difference) < BALANCE_TOLERANCE,
        entry_count=len(entries),
    )


@traced_engine("cash_flow_summary", "1.0")
def cash_flow_summary(entries: Iterable[CashFlowEntry]) -> CashFlowSummary:
    by_category = {c: ZERO for c in CashFlowCategory}
    inflows = outflows = ZERO
    for e in entries:
        by_category[e.category] += e.amount
        if e.amount > ZERO:
            inflows += e.amount
        else:
            outflows += e.amount
    return CashFlowSummary(
        by_category=by_category,
        total_inflows=inflows,
        total_outflows=outflows,
        net_cash_flow=inflows + outflows,
    )


@traced_engine("membership_fee_summary", "1.0")
def membership_fee_summary(fees: Iterable[MembershipFee]) -> MembershipFeeSummary:
    expected = paid = debt = ZERO
    count = with_debt = 0
    for f in fees:
        expected += f.expected_contribution
        paid += f.payment_made
        debt += f.debt
        count += 1
        if f.debt > ZERO:
            with_debt += 1
    rate = float(paid / expected * 100) if expected != ZERO else 0.0
    return MembershipFeeSummary(
        total_expected=expected,
        total_paid=paid,
        total_debt=debt,
        member_count=count,
        members_with_debt=with_debt,
        collection_rate=rate,
    )
