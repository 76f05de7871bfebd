"""
PeriodReportService -- read-side summaries over stored periods.

Applies the pure summary engines to selector output.  Read-only: every call
opens a session, reads, and closes it.
"""

from __future__ import annotations

from sqlalchemy.orm import Session, sessionmaker

from coop_config.schema import RatioConfig
from coop_engines.summaries import (
    BalanceSheetSummary,
    CashFlowSummary,
    MembershipFeeSummary,
    balance_sheet_summary,
    cash_flow_summary,
    membership_fee_summary,
)
from coop_kernel.db.engine import session_scope
from coop_kernel.domain.period import PeriodKey
from coop_kernel.selectors.financial_selector import (
    FinancialSelector,
    PeriodInfo,
    RatioHistoryPoint,
)


class PeriodReportService:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        ratio_config: RatioConfig | None = None,
    ):
        self._session_factory = session_factory
        self._ratio_config = ratio_config or RatioConfig()

    def list_periods(self, cooperative_id: str) -> list[PeriodInfo]:
        with session_scope(self._session_factory) as session:
            return FinancialSelector(session).list_periods(cooperative_id)

    def balance_sheet(self, key: PeriodKey) -> BalanceSheetSummary:
        with session_scope(self._session_factory) as session:
            entries = FinancialSelector(session).balance_entries(key)
        return balance_sheet_summary(entries)

    def cash_flow(self, key: PeriodKey) -> CashFlowSummary:
        with session_scope(self._session_factory) as session:
            entries = FinancialSelector(session).cash_flow_entries(key)
        return cash_flow_summary(entries)

    def membership_fees(self, key: PeriodKey) -> MembershipFeeSummary:
        with session_scope(self._session_factory) as session:
            fees = FinancialSelector(session).membership_fees(key)
        return membership_fee_summary(fees)

    def ratio_history(
        self, key: PeriodKey, months: int | None = None
    ) -> dict[str, list[RatioHistoryPoint]]:
        """Trailing values of each of the period's ratios (default window from config)."""
        window = months if months is not None else self._ratio_config.history_months
        with session_scope(self._session_factory) as session:
            return FinancialSelector(session).ratio_history(key, window)
