"""
Module: coop_kernel.models.financial_ratio
Responsibility: ORM persistence for named FinancialRatio values of a period.

Invariants enforced:
    - Natural key (cooperative_id, year, month, name) is unique
      (uq_ratio_natural_key); writes are upserts on that key.
"""

from sqlalchemy import Float, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from coop_kernel.db.base import TrackedBase
from coop_kernel.domain.records import FinancialRatio
from coop_kernel.domain.values import Trend


class FinancialRatioModel(TrackedBase):
    __tablename__ = "financial_ratios"

    __table_args__ = (
        UniqueConstraint(
            "cooperative_id", "year", "month", "name", name="uq_ratio_natural_key"
        ),
        Index("idx_ratio_period", "cooperative_id", "year", "month"),
    )

    cooperative_id: Mapped[str] = mapped_column(String(64), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    trend: Mapped[str] = mapped_column(String(10), nullable=False)
    description: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    @classmethod
    def from_record(
        cls, cooperative_id: str, year: int, month: int, record: FinancialRatio
    ) -> "FinancialRatioModel":
        return cls(
            cooperative_id=cooperative_id,
            year=year,
            month=month,
            name=record.name,
            value=record.value,
            trend=record.trend.value,
            description=record.description,
        )

    def to_record(self) -> FinancialRatio:
        return FinancialRatio(
            name=self.name,
            value=float(self.value),
            trend=Trend(self.trend),
            description=self.description,
        )
