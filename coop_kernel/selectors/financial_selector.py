"""
Module: coop_kernel.selectors.financial_selector
Responsibility: Read side of the period-partitioned financial tables: period
    listing, per-module record retrieval, and trailing ratio history.
Architecture position: Kernel > Selectors.  Read-only; returns canonical
    records, never ORM instances.
"""

from dataclasses import dataclass

from sqlalchemy import and_, or_, select

from coop_kernel.domain.period import PeriodKey
from coop_kernel.domain.records import (
    BalanceEntry,
    CashFlowEntry,
    FinancialRatio,
    MembershipFee,
)
from coop_kernel.models import (
    BalanceSheetEntryModel,
    CashFlowEntryModel,
    FinancialRatioModel,
    MembershipFeeModel,
    PeriodModel,
)
from coop_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class PeriodInfo:
    cooperative_id: str
    year: int
    month: int
    is_active: bool

    @property
    def label(self) -> str:
        return f"{self.month}/{self.year}"


@dataclass(frozen=True)
class RatioHistoryPoint:
    year: int
    month: int
    value: float


def _in_period(model, key: PeriodKey):
    return (
        model.cooperative_id == key.cooperative_id,
        model.year == key.year,
        model.month == key.month,
    )


class FinancialSelector(BaseSelector):
    def list_periods(self, cooperative_id: str, active_only: bool = True) -> list[PeriodInfo]:
        """Periods most-recent-first."""
        stmt = select(PeriodModel).where(PeriodModel.cooperative_id == cooperative_id)
        if active_only:
            stmt = stmt.where(PeriodModel.is_active.is_(True))
        stmt = stmt.order_by(PeriodModel.year.desc(), PeriodModel.month.desc())
        return [
            PeriodInfo(p.cooperative_id, p.year, p.month, p.is_active)
            for p in self.session.execute(stmt).scalars()
        ]

    def balance_entries(self, key: PeriodKey) -> list[BalanceEntry]:
        rows = self.session.execute(
            select(BalanceSheetEntryModel)
            .where(*_in_period(BalanceSheetEntryModel, key))
            .order_by(BalanceSheetEntryModel.category, BalanceSheetEntryModel.account_code)
        ).scalars()
        return [r.to_record() for r in rows]

    def cash_flow_entries(self, key: PeriodKey) -> list[CashFlowEntry]:
        rows = self.session.execute(
            select(CashFlowEntryModel)
            .where(*_in_period(CashFlowEntryModel, key))
            .order_by(CashFlowEntryModel.category, CashFlowEntryModel.description)
        ).scalars()
        return [r.to_record() for r in rows]

    def membership_fees(self, key: PeriodKey) -> list[MembershipFee]:
        rows = self.session.execute(
            select(MembershipFeeModel)
            .where(*_in_period(MembershipFeeModel, key))
            .order_by(MembershipFeeModel.member_name)
        ).scalars()
        return [r.to_record() for r in rows]

    def ratios(self, key: PeriodKey) -> list[FinancialRatio]:
        rows = self.session.execute(
            select(FinancialRatioModel)
            .where(*_in_period(FinancialRatioModel, key))
            .order_by(FinancialRatioModel.name)
        ).scalars()
        return [r.to_record() for r in rows]

    def ratio_history(
        self, key: PeriodKey, months: int
    ) -> dict[str, list[RatioHistoryPoint]]:
        """For each ratio of ``key``, its value over the trailing ``months``.

        Oldest first; months with no stored value report 0.0.
        """
        window = key.trailing(months)
        names = [r.name for r in self.ratios(key)]
        if not names:
            return {}

        period_clause = or_(
            *(and_(FinancialRatioModel.year == p.year, FinancialRatioModel.month == p.month)
              for p in window)
        )
        rows = self.session.execute(
            select(
                FinancialRatioModel.name,
                FinancialRatioModel.year,
                FinancialRatioModel.month,
                FinancialRatioModel.value,
            ).where(
                FinancialRatioModel.cooperative_id == key.cooperative_id,
                FinancialRatioModel.name.in_(names),
                period_clause,
            )
        ).all()
        found = {(name, year, month): float(value) for name, year, month, value in rows}

        return {
            name: [
                RatioHistoryPoint(p.year, p.month, found.get((name, p.year, p.month), 0.0))
                for p in window
            ]
            for name in names
        }
