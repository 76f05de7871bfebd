"""
Module: coop_kernel.models.upload_history
Responsibility: ORM persistence for the append-only Upload History ledger.

Invariants enforced:
    - Rows are inserted once and never updated or deleted.  The ledger
      service exposes no mutation besides ``record``.
    - created_at comes from the injected Clock, not the database server, so
      listing order is deterministic under test.

Audit relevance:
    One row per ingestion attempt outcome (success / partial / failed),
    written as the last action of the attempt.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from coop_kernel.db.base import Base
from coop_kernel.domain.records import UploadHistoryRecord
from coop_kernel.domain.values import Module, UploadStatus


class UploadHistoryModel(Base):
    __tablename__ = "upload_history"

    __table_args__ = (
        Index("idx_upload_history_coop_created", "cooperative_id", "created_at"),
    )

    cooperative_id: Mapped[str] = mapped_column(String(64), nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    module: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False)
    records_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_message: Mapped[str | None] = mapped_column(String(4000), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_record(self) -> UploadHistoryRecord:
        return UploadHistoryRecord(
            id=self.id,
            cooperative_id=self.cooperative_id,
            actor_id=self.actor_id,
            year=self.year,
            month=self.month,
            module=Module(self.module),
            status=UploadStatus(self.status),
            records_count=self.records_count,
            error_message=self.error_message,
            recorded_at=self.created_at,
        )
