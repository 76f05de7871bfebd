"""
PeriodStore -- persistence boundary for one period unit.

Responsibility:
    Existence check, delete-all, bulk insert and Period marker upsert for a
    (cooperative, year, month, module) slice, plus ratio upsert by natural
    key.  All operations flush into the caller's transaction; the Ingestion
    Orchestrator composes them into one atomic replace.

Architecture position:
    Kernel > Services.  Flush-only (see ``BaseService``).

Invariants enforced:
    - ``lock_unit`` takes a transaction-scoped PostgreSQL advisory lock so
      that concurrent processes serialize on the same unit.  On other
      backends it is a no-op and the in-process ``UnitLockRegistry`` is the
      only guard.
    - ``upsert_period`` is idempotent: create if absent, no-op if present,
      even when two transactions race to create the same key.
    - Ratio writes never create two rows for the same
      (cooperative, year, month, name).

Failure modes:
    - ``UnsupportedModuleError`` for a module with no backing table
      (``Module.ALL``).
    - SQLAlchemy errors propagate to the caller, which rolls back.
"""

from collections.abc import Iterable, Sequence

from sqlalchemy import delete, func, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from coop_kernel.domain.period import PeriodKey
from coop_kernel.domain.records import (
    BalanceEntry,
    CanonicalRecord,
    FinancialRatio,
)
from coop_kernel.domain.values import Module
from coop_kernel.exceptions import UnsupportedModuleError
from coop_kernel.logging_config import get_logger
from coop_kernel.models import (
    BalanceSheetEntryModel,
    CashFlowEntryModel,
    FinancialRatioModel,
    MembershipFeeModel,
    PeriodModel,
)
from coop_kernel.services.base import BaseService
from coop_kernel.utils.locks import advisory_lock_key, unit_token

logger = get_logger("services.period_store")

_MODULE_MODELS = {
    Module.BALANCE_SHEET: BalanceSheetEntryModel,
    Module.CASH_FLOW: CashFlowEntryModel,
    Module.MEMBERSHIP_FEES: MembershipFeeModel,
    Module.RATIOS: FinancialRatioModel,
}

_CONFLICT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def model_for(module: Module):
    try:
        return _MODULE_MODELS[module]
    except KeyError:
        raise UnsupportedModuleError(module.value, "period storage") from None


def _period_filter(model, key: PeriodKey):
    return (
        model.cooperative_id == key.cooperative_id,
        model.year == key.year,
        model.month == key.month,
    )


class PeriodStore(BaseService):
    """Flush-only persistence for period-partitioned financial rows."""

    def lock_unit(self, key: PeriodKey, module: Module) -> None:
        """Serialize this transaction against others on the same unit."""
        if self.session.get_bind().dialect.name != "postgresql":
            return
        token = unit_token(key.cooperative_id, key.year, key.month, module.value)
        self.session.execute(
            text("SELECT pg_advisory_xact_lock(:k)"),
            {"k": advisory_lock_key(token)},
        )
        logger.debug("unit_lock_acquired", extra={"unit": token})

    def count(self, key: PeriodKey, module: Module) -> int:
        model = model_for(module)
        return self.session.execute(
            select(func.count()).select_from(model).where(*_period_filter(model, key))
        ).scalar_one()

    def exists(self, key: PeriodKey, module: Module) -> bool:
        model = model_for(module)
        row = self.session.execute(
            select(model.id).where(*_period_filter(model, key)).limit(1)
        ).first()
        return row is not None

    def delete_all(self, key: PeriodKey, module: Module) -> int:
        """Delete every row of the unit. Returns the number deleted."""
        model = model_for(module)
        result = self.session.execute(
            delete(model)
            .where(*_period_filter(model, key))
            .execution_options(synchronize_session=False)
        )
        self.session.flush()
        logger.info(
            "period_unit_cleared",
            extra={"unit": str(key), "unit_module": module.value, "deleted": result.rowcount},
        )
        return result.rowcount

    def bulk_insert(
        self, key: PeriodKey, module: Module, records: Sequence[CanonicalRecord]
    ) -> int:
        """Insert canonical records for the unit. Returns the number inserted."""
        model = model_for(module)
        rows = [
            model.from_record(key.cooperative_id, key.year, key.month, r)
            for r in records
        ]
        self.session.add_all(rows)
        self.session.flush()
        return len(rows)

    def upsert_period(self, key: PeriodKey) -> None:
        """Create the Period marker for the key if it does not exist."""
        insert_fn = _CONFLICT_INSERTS.get(self.session.get_bind().dialect.name)
        if insert_fn is None:
            existing = self.session.execute(
                select(PeriodModel.id).where(*_period_filter(PeriodModel, key))
            ).first()
            if existing is None:
                self.session.add(
                    PeriodModel(
                        cooperative_id=key.cooperative_id,
                        year=key.year,
                        month=key.month,
                        is_active=True,
                    )
                )
                self.session.flush()
            return

        stmt = (
            insert_fn(PeriodModel)
            .values(
                cooperative_id=key.cooperative_id,
                year=key.year,
                month=key.month,
                is_active=True,
            )
            .on_conflict_do_nothing(index_elements=["cooperative_id", "year", "month"])
        )
        self.session.execute(stmt)
        self.session.flush()

    def upsert_ratios(self, key: PeriodKey, ratios: Iterable[FinancialRatio]) -> int:
        """Insert or update ratios by (cooperative, year, month, name)."""
        existing = {
            m.name: m
            for m in self.session.execute(
                select(FinancialRatioModel).where(
                    *_period_filter(FinancialRatioModel, key)
                )
            ).scalars()
        }
        written = 0
        for ratio in ratios:
            model = existing.get(ratio.name)
            if model is None:
                model = FinancialRatioModel(
                    cooperative_id=key.cooperative_id,
                    year=key.year,
                    month=key.month,
                    name=ratio.name,
                )
                self.session.add(model)
                existing[ratio.name] = model
            model.value = ratio.value
            model.trend = ratio.trend.value
            model.description = ratio.description
            written += 1
        self.session.flush()
        return written

    # -- reads used inside the write transaction --------------------------

    def fetch_balance_entries(self, key: PeriodKey) -> list[BalanceEntry]:
        rows = self.session.execute(
            select(BalanceSheetEntryModel)
            .where(*_period_filter(BalanceSheetEntryModel, key))
            .order_by(BalanceSheetEntryModel.account_code)
        ).scalars()
        return [r.to_record() for r in rows]

    def fetch_ratio_values(
        self, key: PeriodKey, names: Iterable[str] | None = None
    ) -> dict[str, float]:
        stmt = select(FinancialRatioModel.name, FinancialRatioModel.value).where(
            *_period_filter(FinancialRatioModel, key)
        )
        if names is not None:
            stmt = stmt.where(FinancialRatioModel.name.in_(list(names)))
        return {name: float(value) for name, value in self.session.execute(stmt)}

    def fetch_records(self, key: PeriodKey, module: Module) -> list[CanonicalRecord]:
        model = model_for(module)
        rows = self.session.execute(
            select(model).where(*_period_filter(model, key))
        ).scalars()
        return [r.to_record() for r in rows]
