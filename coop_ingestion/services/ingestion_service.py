"""
coop_ingestion.services.ingestion_service -- Ingestion Orchestrator.

Responsibility:
    Drive one ingestion attempt for a (cooperative, year, month, module)
    unit through ``INGESTION_WORKFLOW``: acquire raw rows, normalize,
    idempotency check, replace, persist, audit.  Also computes the derived
    ratio module from stored balance entries.

Architecture position:
    Ingestion > Services.  Owns the transaction: kernel services only
    flush; this module commits or rolls back.

Invariants enforced:
    - Steps 4-7 (delete, insert, period upsert, history) run in ONE
      transaction.  A failure anywhere rolls the unit back to its previous
      complete state.
    - At most one replace per unit is in flight: an in-process lock per
      unit token, plus ``PeriodStore.lock_unit`` on PostgreSQL.
    - The Upload History row is the last write of every attempt.  On
      success it commits with the data; on failure it is written in a fresh
      transaction after rollback.
    - A DataExists rejection touches no financial rows and writes no
      history row.

Failure modes:
    Every ingestion error kind is returned as an ``IngestionResult`` with
    its error code.  Only caller errors raise: ``InvalidPeriodError`` for a
    bad period key and ``UnsupportedModuleError`` for ``Module.ALL``.
"""

from __future__ import annotations

import time
from uuid import uuid4

from sqlalchemy.orm import Session, sessionmaker

from coop_config import get_active_config
from coop_config.schema import CoopFinanceConfig
from coop_engines.ratios import RATIO_NAMES, compute_ratios
from coop_ingestion.adapters.file_source import FileSource
from coop_ingestion.domain.types import (
    ErpQuery,
    FileUpload,
    IngestionResult,
    IngestionStatus,
    NormalizationResult,
    RawRow,
    Source,
)
from coop_ingestion.erp.connection_cache import ErpConnectionCache
from coop_ingestion.erp.source import ErpSource
from coop_ingestion.mapping.normalizer import RecordNormalizer
from coop_ingestion.services.activity_log import ActivityLog, LoggingActivityLog
from coop_ingestion.services.erp_config_service import ErpConfigService
from coop_kernel.db.engine import session_scope
from coop_kernel.domain.clock import Clock, SystemClock
from coop_kernel.domain.period import PeriodKey
from coop_kernel.domain.records import UploadHistoryRecord
from coop_kernel.domain.values import Module, UploadStatus
from coop_kernel.domain.workflow import (
    AUDITING,
    COMPLETED,
    FAILED,
    FETCHING,
    IDEMPOTENCY_CHECK,
    INGESTION_WORKFLOW,
    NORMALIZING,
    PERSISTING,
    REJECTED,
    REPLACING,
    WorkflowRun,
)
from coop_kernel.exceptions import (
    CoopFinanceError,
    DataExistsError,
    IngestionError,
    NoBalanceDataError,
    NoValidRecordsError,
    PersistenceFailureError,
    UnsupportedModuleError,
)
from coop_kernel.logging_config import LogContext, get_logger
from coop_kernel.selectors.upload_history_selector import (
    DEFAULT_HISTORY_LIMIT,
    UploadHistorySelector,
)
from coop_kernel.services.period_store import PeriodStore
from coop_kernel.services.upload_history import UploadHistoryLedger
from coop_kernel.utils.locks import UnitLockRegistry, unit_token

logger = get_logger("ingestion.orchestrator")


def _source_kind(source: Source) -> str:
    if isinstance(source, ErpQuery):
        return "erp"
    if isinstance(source, FileUpload):
        return "file"
    raise TypeError(f"unsupported source type: {type(source).__name__}")


def _elapsed_ms(started: float) -> float:
    return round((time.monotonic() - started) * 1000, 2)


class IngestionOrchestrator:
    """Coordinates ingestion attempts and ratio computation per period unit.

    Each attempt opens its own session from ``session_factory``.  Sources,
    the activity log, the clock and the lock registry are injected so that
    tests and callers can substitute them.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        config: CoopFinanceConfig | None = None,
        *,
        erp_source: ErpSource | None = None,
        erp_cache: ErpConnectionCache | None = None,
        file_source: FileSource | None = None,
        activity_log: ActivityLog | None = None,
        clock: Clock | None = None,
        locks: UnitLockRegistry | None = None,
    ):
        self._session_factory = session_factory
        self._config = config or get_active_config()
        self._clock = clock or SystemClock()
        self._locks = locks or UnitLockRegistry()
        self._erp_cache = erp_cache or ErpConnectionCache()
        self._erp_source = erp_source or ErpSource(
            session_factory, self._erp_cache, self._config.erp
        )
        self._file_source = file_source or FileSource()
        self._activity = activity_log or LoggingActivityLog()
        self._normalizer = RecordNormalizer(self._config.ingestion)

    @property
    def erp_cache(self) -> ErpConnectionCache:
        return self._erp_cache

    # =========================================================================
    # Raw module ingestion
    # =========================================================================

    def ingest(
        self,
        cooperative_id: str,
        year: int,
        month: int,
        module: Module | str,
        source: Source,
        overwrite: bool = False,
        actor_id: str | None = None,
        compute_ratios_after_balance: bool = False,
    ) -> IngestionResult:
        key = PeriodKey(cooperative_id, year, month)
        module = Module(module)
        if module == Module.ALL:
            raise UnsupportedModuleError(module.value, "ingestion")
        kind = _source_kind(source)

        run = WorkflowRun(INGESTION_WORKFLOW)
        started = time.monotonic()
        with LogContext.bind(
            correlation_id=str(uuid4()),
            cooperative_id=cooperative_id,
            actor_id=actor_id,
            module=module.value,
            period=key.label,
        ):
            logger.info(
                "ingestion_started",
                extra={"source_kind": kind, "overwrite": overwrite},
            )

            # Steps 1-2: acquire and normalize.  No storage is touched.
            normalized: NormalizationResult | None = None
            try:
                run.advance(FETCHING)
                rows = self._acquire(key, module, source)
                run.advance(NORMALIZING)
                normalized = self._normalizer.normalize(module, rows)
                if not normalized.records:
                    raise NoValidRecordsError(
                        normalized.rejected_count,
                        cooperative_id=cooperative_id,
                        year=year,
                        month=month,
                        module=module.value,
                    )
            except IngestionError as exc:
                run.advance(FAILED)
                return self._fail(
                    run,
                    key,
                    module,
                    actor_id,
                    exc,
                    started,
                    normalized=normalized,
                )

            result = self._replace_unit(
                run, key, module, normalized, overwrite, actor_id, kind, started
            )

        if (
            result.ok
            and module == Module.BALANCE_SHEET
            and compute_ratios_after_balance
        ):
            ratios = self.compute_ratios(
                cooperative_id, year, month, overwrite=False, actor_id=actor_id
            )
            result = IngestionResult(
                status=result.status,
                module=result.module,
                cooperative_id=result.cooperative_id,
                year=result.year,
                month=result.month,
                records_count=result.records_count,
                rejected_count=result.rejected_count,
                warnings=result.warnings,
                message=result.message,
                ratios=ratios,
            )
        return result

    def _acquire(self, key: PeriodKey, module: Module, source: Source) -> list[RawRow]:
        if isinstance(source, ErpQuery):
            return list(self._erp_source.read(key, module))
        try:
            return list(
                self._file_source.read(source, self._normalizer.header_keywords(module))
            )
        except IngestionError as exc:
            # FileSource has no period context of its own
            exc.cooperative_id = key.cooperative_id
            exc.year = key.year
            exc.month = key.month
            exc.module = module.value
            raise

    def _replace_unit(
        self,
        run: WorkflowRun,
        key: PeriodKey,
        module: Module,
        normalized: NormalizationResult,
        overwrite: bool,
        actor_id: str | None,
        kind: str,
        started: float,
    ) -> IngestionResult:
        token = unit_token(key.cooperative_id, key.year, key.month, module.value)
        warnings = tuple(str(w) for w in normalized.warnings)
        failure: CoopFinanceError | None = None
        records_count = 0

        with self._locks.hold(token):
            run.advance(IDEMPOTENCY_CHECK)
            session: Session | None = None
            try:
                session = self._session_factory()
                store = PeriodStore(session)
                store.lock_unit(key, module)

                # Ratio uploads upsert by name and are never rejected.
                if (
                    not overwrite
                    and module != Module.RATIOS
                    and store.exists(key, module)
                ):
                    session.rollback()
                    run.advance(REJECTED)
                    return self._reject(key, module, normalized, started)

                run.advance(REPLACING)
                if overwrite:
                    store.delete_all(key, module)

                run.advance(PERSISTING)
                if module == Module.RATIOS:
                    records_count = store.upsert_ratios(key, normalized.records)
                else:
                    records_count = store.bulk_insert(key, module, normalized.records)
                store.upsert_period(key)
                if kind == "erp":
                    ErpConfigService(
                        session, self._erp_cache, self._config.erp, clock=self._clock
                    ).mark_synced(key.cooperative_id)

                run.advance(AUDITING)
                UploadHistoryLedger(session, self._clock).record(
                    key, actor_id, module, UploadStatus.SUCCESS, records_count
                )
                session.commit()
                run.advance(COMPLETED)
            except Exception as exc:
                if session is not None:
                    session.rollback()
                logger.error(
                    "unit_replace_rolled_back",
                    extra={"unit": token, "state": run.state},
                    exc_info=True,
                )
                run.advance(FAILED)
                failure = PersistenceFailureError(
                    str(exc) or type(exc).__name__,
                    cooperative_id=key.cooperative_id,
                    year=key.year,
                    month=key.month,
                    module=module.value,
                )
            finally:
                if session is not None:
                    session.close()

        if failure is not None:
            return self._fail(
                run, key, module, actor_id, failure, started, normalized=normalized
            )

        self._record_activity(
            actor_id,
            "data_uploaded",
            {
                "period": str(key),
                "module": module.value,
                "records_count": records_count,
                "source": kind,
            },
        )
        logger.info(
            "ingestion_completed",
            extra={
                "records_count": records_count,
                "rejected_count": normalized.rejected_count,
                "warning_count": len(warnings),
                "duration_ms": _elapsed_ms(started),
            },
        )
        return IngestionResult(
            status=IngestionStatus.COMPLETED,
            module=module,
            cooperative_id=key.cooperative_id,
            year=key.year,
            month=key.month,
            records_count=records_count,
            rejected_count=normalized.rejected_count,
            warnings=warnings,
            message=f"Ingested {records_count} record(s) for {module.value} {key.label}",
        )

    # =========================================================================
    # Derived module: ratios
    # =========================================================================

    def compute_ratios(
        self,
        cooperative_id: str,
        year: int,
        month: int,
        overwrite: bool = False,
        actor_id: str | None = None,
    ) -> IngestionResult:
        """Compute and store the period's ratios from its balance entries."""
        key = PeriodKey(cooperative_id, year, month)
        module = Module.RATIOS
        token = unit_token(cooperative_id, year, month, module.value)
        run = WorkflowRun(INGESTION_WORKFLOW)
        started = time.monotonic()
        failure: CoopFinanceError | None = None
        records_count = 0

        with LogContext.bind(
            correlation_id=str(uuid4()),
            cooperative_id=cooperative_id,
            actor_id=actor_id,
            module=module.value,
            period=key.label,
        ):
            logger.info("ratio_computation_started", extra={"overwrite": overwrite})

            with self._locks.hold(token):
                session: Session | None = None
                try:
                    run.advance(FETCHING)
                    session = self._session_factory()
                    store = PeriodStore(session)
                    store.lock_unit(key, module)

                    entries = store.fetch_balance_entries(key)
                    if not entries:
                        raise NoBalanceDataError(cooperative_id, year, month)

                    run.advance(NORMALIZING)
                    prior_key = key.previous_or_none()
                    previous = (
                        store.fetch_ratio_values(prior_key, RATIO_NAMES)
                        if prior_key is not None
                        else {}
                    )
                    ratios = compute_ratios(
                        entries=entries, previous=previous, params=self._config.ratios
                    )

                    run.advance(IDEMPOTENCY_CHECK)
                    run.advance(REPLACING)
                    if overwrite:
                        store.delete_all(key, module)
                    run.advance(PERSISTING)
                    if overwrite:
                        records_count = store.bulk_insert(key, module, ratios)
                    else:
                        records_count = store.upsert_ratios(key, ratios)
                    store.upsert_period(key)

                    run.advance(AUDITING)
                    UploadHistoryLedger(session, self._clock).record(
                        key, actor_id, module, UploadStatus.SUCCESS, records_count
                    )
                    session.commit()
                    run.advance(COMPLETED)
                except NoBalanceDataError as exc:
                    session.rollback()
                    run.advance(FAILED)
                    failure = exc
                except Exception as exc:
                    if session is not None:
                        session.rollback()
                    logger.error(
                        "ratio_write_rolled_back",
                        extra={"unit": token, "state": run.state},
                        exc_info=True,
                    )
                    run.advance(FAILED)
                    failure = PersistenceFailureError(
                        str(exc) or type(exc).__name__,
                        cooperative_id=cooperative_id,
                        year=year,
                        month=month,
                        module=module.value,
                    )
                finally:
                    if session is not None:
                        session.close()

            if failure is not None:
                return self._fail(run, key, module, actor_id, failure, started)

            self._record_activity(
                actor_id,
                "ratios_computed",
                {"period": str(key), "records_count": records_count},
            )
            logger.info(
                "ingestion_completed",
                extra={
                    "records_count": records_count,
                    "duration_ms": _elapsed_ms(started),
                },
            )
            return IngestionResult(
                status=IngestionStatus.COMPLETED,
                module=module,
                cooperative_id=cooperative_id,
                year=year,
                month=month,
                records_count=records_count,
                message=f"Computed {records_count} ratio(s) for {key.label}",
            )

    # =========================================================================
    # History queries
    # =========================================================================

    def list_history(
        self, cooperative_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> list[UploadHistoryRecord]:
        with session_scope(self._session_factory) as session:
            return UploadHistorySelector(session).list_history(cooperative_id, limit)

    def latest_success(self, cooperative_id: str) -> UploadHistoryRecord | None:
        with session_scope(self._session_factory) as session:
            return UploadHistorySelector(session).latest_success(cooperative_id)

    # =========================================================================
    # Outcomes
    # =========================================================================

    def _reject(
        self,
        key: PeriodKey,
        module: Module,
        normalized: NormalizationResult,
        started: float,
    ) -> IngestionResult:
        exc = DataExistsError(key.cooperative_id, key.year, key.month, module.value)
        logger.info(
            "ingestion_rejected",
            extra={"error_code": exc.code, "duration_ms": _elapsed_ms(started)},
        )
        return IngestionResult(
            status=IngestionStatus.REJECTED,
            module=module,
            cooperative_id=key.cooperative_id,
            year=key.year,
            month=key.month,
            rejected_count=normalized.rejected_count,
            warnings=tuple(str(w) for w in normalized.warnings),
            error_code=exc.code,
            message=str(exc),
        )

    def _fail(
        self,
        run: WorkflowRun,
        key: PeriodKey,
        module: Module,
        actor_id: str | None,
        exc: CoopFinanceError,
        started: float,
        normalized: NormalizationResult | None = None,
    ) -> IngestionResult:
        message = str(exc)
        self._record_failure(key, module, actor_id, message)
        logger.warning(
            "ingestion_failed",
            extra={
                "error_code": exc.code,
                "error": message,
                "states": list(run.visited),
                "duration_ms": _elapsed_ms(started),
            },
        )
        return IngestionResult(
            status=IngestionStatus.FAILED,
            module=module,
            cooperative_id=key.cooperative_id,
            year=key.year,
            month=key.month,
            rejected_count=normalized.rejected_count if normalized else 0,
            warnings=tuple(str(w) for w in normalized.warnings) if normalized else (),
            error_code=exc.code,
            message=message,
        )

    def _record_failure(
        self, key: PeriodKey, module: Module, actor_id: str | None, message: str
    ) -> None:
        try:
            with session_scope(self._session_factory) as session:
                UploadHistoryLedger(session, self._clock).record(
                    key, actor_id, module, UploadStatus.FAILED, 0, message
                )
        except Exception:
            # The attempt has already failed; the result still reports it.
            logger.error("failure_history_not_recorded", exc_info=True)

    def _record_activity(self, actor_id: str | None, action: str, details: dict) -> None:
        try:
            self._activity.record(actor_id, action, details)
        except Exception:
            logger.warning("activity_log_failed", extra={"activity": action}, exc_info=True)
