"""
Module: coop_kernel.models.period
Responsibility: ORM persistence for the Period marker of a (cooperative, year,
    month) key.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - One row per (cooperative_id, year, month) (uq_period_key).
    - The row is created by any successful ingestion into the key.  It is
      never the authority for whether module data exists; each module's own
      rows are.
"""

from sqlalchemy import Boolean, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from coop_kernel.db.base import TrackedBase


class PeriodModel(TrackedBase):
    __tablename__ = "periods"

    __table_args__ = (
        UniqueConstraint("cooperative_id", "year", "month", name="uq_period_key"),
        Index("idx_period_coop", "cooperative_id", "year", "month"),
    )

    cooperative_id: Mapped[str] = mapped_column(String(64), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<PeriodModel {self.cooperative_id} {self.month}/{self.year}>"
