"""
Module: coop_kernel.models.balance_sheet
Responsibility: ORM persistence for BalanceEntry rows of a period.
Architecture position: Kernel > Models.

Invariants enforced:
    - Rows are written in bulk by an ingestion run and replaced as a whole
      set on overwrite; they are never individually mutated.
    - Monetary columns are Numeric(38, 9).
"""

from decimal import Decimal

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from coop_kernel.db.base import TrackedBase
from coop_kernel.domain.records import BalanceEntry
from coop_kernel.domain.values import BalanceCategory


class BalanceSheetEntryModel(TrackedBase):
    __tablename__ = "balance_sheet_entries"

    __table_args__ = (
        Index("idx_balance_period", "cooperative_id", "year", "month"),
        Index("idx_balance_account", "cooperative_id", "year", "month", "account_code"),
    )

    cooperative_id: Mapped[str] = mapped_column(String(64), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)

    account_code: Mapped[str] = mapped_column(String(50), nullable=False)
    account_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    subcategory: Mapped[str | None] = mapped_column(String(255), nullable=True)

    initial_debit: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    initial_credit: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    period_debit: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    period_credit: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    final_debit: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    final_credit: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)

    external_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)

    @classmethod
    def from_record(
        cls, cooperative_id: str, year: int, month: int, record: BalanceEntry
    ) -> "BalanceSheetEntryModel":
        return cls(
            cooperative_id=cooperative_id,
            year=year,
            month=month,
            account_code=record.account_code,
            account_name=record.account_name,
            category=record.category.value,
            subcategory=record.subcategory,
            initial_debit=record.initial_debit,
            initial_credit=record.initial_credit,
            period_debit=record.period_debit,
            period_credit=record.period_credit,
            final_debit=record.final_debit,
            final_credit=record.final_credit,
            external_ref=record.external_ref,
        )

    def to_record(self) -> BalanceEntry:
        return BalanceEntry(
            account_code=self.account_code,
            account_name=self.account_name,
            category=BalanceCategory(self.category),
            subcategory=self.subcategory,
            initial_debit=Decimal(self.initial_debit),
            initial_credit=Decimal(self.initial_credit),
            period_debit=Decimal(self.period_debit),
            period_credit=Decimal(self.period_credit),
            final_debit=Decimal(self.final_debit),
            final_credit=Decimal(self.final_credit),
            external_ref=self.external_ref,
        )
