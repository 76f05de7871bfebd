"""
UploadHistoryLedger -- append-only audit of ingestion attempts.

Responsibility:
    Writes one ledger row per ingestion attempt outcome.  There is no
    update or delete operation.  Reads live in
    ``coop_kernel.selectors.upload_history_selector``.

Invariants enforced:
    - Append-only: ``record`` inserts; nothing mutates an existing row.
    - The Ingestion Orchestrator calls ``record`` as the last action of an
      attempt, inside the same transaction as the data it describes on
      success, or in a fresh transaction after rollback on failure.
    - Flush-only: never commits.

Audit relevance:
    The ledger is the operational view of what was ingested, when, by whom,
    and with what outcome.
"""

from sqlalchemy.orm import Session

from coop_kernel.domain.clock import Clock, SystemClock
from coop_kernel.domain.period import PeriodKey
from coop_kernel.domain.records import UploadHistoryRecord
from coop_kernel.domain.values import Module, UploadStatus
from coop_kernel.logging_config import get_logger
from coop_kernel.models import UploadHistoryModel
from coop_kernel.services.base import BaseService

logger = get_logger("services.upload_history")

_MAX_ERROR_LENGTH = 4000


class UploadHistoryLedger(BaseService):
    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def record(
        self,
        key: PeriodKey,
        actor_id: str | None,
        module: Module,
        status: UploadStatus,
        records_count: int,
        error_message: str | None = None,
    ) -> UploadHistoryRecord:
        if records_count < 0:
            raise ValueError("records_count cannot be negative")
        if error_message is not None:
            error_message = error_message[:_MAX_ERROR_LENGTH]

        row = UploadHistoryModel(
            cooperative_id=key.cooperative_id,
            actor_id=actor_id,
            year=key.year,
            month=key.month,
            module=module.value,
            status=status.value,
            records_count=records_count,
            error_message=error_message,
            created_at=self._clock.now(),
        )
        self.session.add(row)
        self.session.flush()

        logger.info(
            "upload_history_recorded",
            extra={
                "history_id": str(row.id),
                "history_module": module.value,
                "status": status.value,
                "records_count": records_count,
            },
        )
        return row.to_record()
