"""
Module: coop_kernel.models.cash_flow
Responsibility: ORM persistence for CashFlowEntry rows of a period.
    ``amount`` is signed: inflows positive, outflows negative.
"""

from decimal import Decimal

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from coop_kernel.db.base import TrackedBase
from coop_kernel.domain.records import CashFlowEntry
from coop_kernel.domain.values import CashFlowCategory


class CashFlowEntryModel(TrackedBase):
    __tablename__ = "cash_flow_entries"

    __table_args__ = (
        Index("idx_cash_flow_period", "cooperative_id", "year", "month"),
    )

    cooperative_id: Mapped[str] = mapped_column(String(64), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)

    description: Mapped[str] = mapped_column(String(4000), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    external_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)

    @classmethod
    def from_record(
        cls, cooperative_id: str, year: int, month: int, record: CashFlowEntry
    ) -> "CashFlowEntryModel":
        return cls(
            cooperative_id=cooperative_id,
            year=year,
            month=month,
            description=record.description,
            category=record.category.value,
            amount=record.amount,
            external_ref=record.external_ref,
        )

    def to_record(self) -> CashFlowEntry:
        return CashFlowEntry(
            description=self.description,
            category=CashFlowCategory(self.category),
            amount=Decimal(self.amount),
            external_ref=self.external_ref,
        )
