"""
Module: coop_kernel.selectors.upload_history_selector
Responsibility: Read side of the Upload History ledger: most-recent-first
    listing and the latest successful attempt per cooperative.
"""

from sqlalchemy import select

from coop_kernel.domain.records import UploadHistoryRecord
from coop_kernel.domain.values import UploadStatus
from coop_kernel.models import UploadHistoryModel
from coop_kernel.selectors.base import BaseSelector

DEFAULT_HISTORY_LIMIT = 20


class UploadHistorySelector(BaseSelector):
    def list_history(
        self, cooperative_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[UploadHistoryRecord]:
        if limit <= 0:
            return []
        rows = self.session.execute(
            select(UploadHistoryModel)
            .where(UploadHistoryModel.cooperative_id == cooperative_id)
            .order_by(UploadHistoryModel.created_at.desc())
            .limit(limit)
        ).scalars()
        return [r.to_record() for r in rows]

    def latest_success(self, cooperative_id: str) -> UploadHistoryRecord | None:
        row = self.session.execute(
            select(UploadHistoryModel)
            .where(
                UploadHistoryModel.cooperative_id == cooperative_id,
                UploadHistoryModel.status == UploadStatus.SUCCESS.value,
            )
            .order_by(UploadHistoryModel.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()
        return row.to_record() if row is not None else None
