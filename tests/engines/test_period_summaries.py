"""Period summaries: balance check, cash flow by activity, fee collection."""

from decimal import Decimal

import pytest

from coop_engines.summaries import (
    balance_sheet_summary,
    cash_flow_summary,
    membership_fee_summary,
)
from coop_kernel.domain.records import BalanceEntry, CashFlowEntry, MembershipFee
from coop_kernel.domain.values import BalanceCategory, CashFlowCategory, FeeStatus


def _balance(category, debit="0", credit="0"):
    return BalanceEntry("x", "x", category, final_debit=Decimal(debit), final_credit=Decimal(credit))


def test_balanced_sheet():
    summary = balance_sheet_summary(
        [
            _balance(BalanceCategory.ASSETS, debit="510000"),
            _balance(BalanceCategory.LIABILITIES, credit="255000"),
            _balance(BalanceCategory.EQUITY, credit="255000"),
        ]
    )
    assert summary.is_balanced
    assert summary.difference == Decimal("0")
    assert summary.entry_count == 3


def test_unbalanced_sheet_is_reported_not_raised():
    summary = balance_sheet_summary(
        [
            _balance(BalanceCategory.ASSETS, debit="100"),
            _balance(BalanceCategory.EQUITY, credit="90"),
        ]
    )
    assert not summary.is_balanced
    assert summary.difference == Decimal("10")


def test_cash_flow_by_category_and_net():
    summary = cash_flow_summary(
        [
            CashFlowEntry("Cuotas", CashFlowCategory.OPERATING, Decimal("1200")),
            CashFlowEntry("Luz", CashFlowCategory.OPERATING, Decimal("-200")),
            CashFlowEntry("Equipo", CashFlowCategory.INVESTING, Decimal("-800")),
        ]
    )
    assert summary.by_category[CashFlowCategory.OPERATING] == Decimal("1000")
    assert summary.by_category[CashFlowCategory.FINANCING] == Decimal("0")
    assert summary.total_inflows == Decimal("1200")
    assert summary.total_outflows == Decimal("-1000")
    assert summary.net_cash_flow == Decimal("200")
    assert summary.net_cash_flow == sum(summary.by_category.values())


def _fee(expected, paid):
    expected, paid = Decimal(expected), Decimal(paid)
    debt = max(expected - paid, Decimal("0"))
    return MembershipFee(
        "S", "Socio", expected, paid, debt,
        FeeStatus.WITH_DEBT if debt else FeeStatus.UP_TO_DATE,
    )


def test_fee_collection_rate():
    summary = membership_fee_summary([_fee("500", "500"), _fee("500", "250")])
    assert summary.total_debt == Decimal("250")
    assert summary.members_with_debt == 1
    assert summary.collection_rate == pytest.approx(75.0)


def test_fee_summary_of_nothing():
    summary = membership_fee_summary([])
    assert summary.member_count == 0
    assert summary.collection_rate == 0.0
