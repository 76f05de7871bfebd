"""
ErpSource -- fetches one period's raw rows from a cooperative's ERP.

Responsibility:
    Resolves the cooperative's saved connection (through the connection
    cache), runs the ERP queries for the month, and returns rows in the
    ERP's native shape for the Record Normalizer.

Operations:
    fetch_balance_movements  posted journal lines of the month, aggregated
                             per account (debit and credit sums)
    fetch_payments           posted payments of the month
    fetch_partners           individual customer partners (members)

Failure modes:
    Each fetch returns ``ErpFetchResult(success=False, error=...)`` instead
    of raising, for ERP errors and for database errors while reading the
    saved connection.  ``read`` converts a failed result into
    ``SourceUnavailableError`` for the orchestrator.
"""

from __future__ import annotations

import calendar
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from coop_config.schema import ErpConfig
from coop_ingestion.domain.types import ErpCredentials, ErpRow
from coop_ingestion.erp.client import OdooClient
from coop_ingestion.erp.connection_cache import ErpConnectionCache
from coop_kernel.db.engine import session_scope
from coop_kernel.domain.period import PeriodKey
from coop_kernel.domain.values import Module
from coop_kernel.exceptions import (
    ErpError,
    ErpNotConfiguredError,
    SourceUnavailableError,
    UnsupportedModuleError,
)
from coop_kernel.logging_config import get_logger
from coop_kernel.models import ErpConnectionConfigModel

logger = get_logger("ingestion.erp.source")

ClientFactory = Callable[[ErpCredentials, float], OdooClient]

MOVE_LINE_FIELDS = ["account_id", "date", "debit", "credit", "name", "ref"]
ACCOUNT_FIELDS = ["code", "name", "account_type"]
PAYMENT_FIELDS = ["name", "amount", "payment_type", "date", "ref"]
PARTNER_FIELDS = ["name", "ref", "credit", "debit"]


def default_client_factory(credentials: ErpCredentials, timeout_s: float) -> OdooClient:
    return OdooClient(credentials, timeout_s=timeout_s)


def month_range(year: int, month: int) -> tuple[str, str]:
    """First and last calendar day of the month as ISO dates."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1).isoformat(), date(year, month, last_day).isoformat()


def _many2one_id(value: Any) -> int | None:
    # many2one fields come back as [id, display_name] or False
    if isinstance(value, (list, tuple)) and value:
        return value[0]
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def aggregate_move_lines(
    lines: list[dict[str, Any]], accounts: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """Sum debit and credit per account, in account order of first appearance.

    Lines whose account is not in ``accounts`` are skipped.
    """
    account_map = {a["id"]: a for a in accounts if "id" in a}
    totals: dict[int, dict[str, Any]] = {}
    for line in lines:
        account_id = _many2one_id(line.get("account_id"))
        account = account_map.get(account_id)
        if account is None:
            continue
        entry = totals.get(account_id)
        if entry is None:
            entry = {
                "account_id": account_id,
                "code": account.get("code"),
                "name": account.get("name"),
                "account_type": account.get("account_type"),
                "debit": 0.0,
                "credit": 0.0,
            }
            totals[account_id] = entry
        entry["debit"] += line.get("debit") or 0.0
        entry["credit"] += line.get("credit") or 0.0
    return list(totals.values())


@dataclass(frozen=True)
class ErpFetchResult:
    success: bool
    records: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None


class ErpSource:
    """Raw-row source backed by the cooperative's configured ERP."""

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        cache: ErpConnectionCache,
        config: ErpConfig | None = None,
        client_factory: ClientFactory = default_client_factory,
    ) -> None:
        self._session_factory = session_factory
        self._cache = cache
        self._config = config or ErpConfig()
        self._client_factory = client_factory
        self._fetchers: dict[Module, Callable[[str, int, int], ErpFetchResult]] = {
            Module.BALANCE_SHEET: self.fetch_balance_movements,
            Module.CASH_FLOW: self.fetch_payments,
            Module.MEMBERSHIP_FEES: self.fetch_partners,
        }

    # -- connection ------------------------------------------------------------

    def _load_credentials(self, cooperative_id: str) -> ErpCredentials:
        with session_scope(self._session_factory) as session:
            row = session.execute(
                select(ErpConnectionConfigModel).where(
                    ErpConnectionConfigModel.cooperative_id == cooperative_id
                )
            ).scalar_one_or_none()
            if row is None:
                raise ErpNotConfiguredError(cooperative_id)
            return ErpCredentials(
                url=row.url,
                database=row.database,
                username=row.username,
                api_key=row.api_key,
            )

    def client_for(self, cooperative_id: str) -> OdooClient:
        while True:
            client = self._cache.get(cooperative_id)
            if client is not None:
                return client
            generation = self._cache.generation(cooperative_id)
            credentials = self._load_credentials(cooperative_id)
            client = self._client_factory(credentials, self._config.timeout_s)
            # Refused when the credentials were replaced after we read them.
            if self._cache.put(cooperative_id, client, generation):
                return client

    def _run(
        self,
        operation: str,
        cooperative_id: str,
        fetch: Callable[[OdooClient], list[dict[str, Any]]],
    ) -> ErpFetchResult:
        try:
            client = self.client_for(cooperative_id)
            records = fetch(client)
        except ErpError as exc:
            # A cached client may hold a stale session; drop it so the next
            # attempt re-authenticates.
            self._cache.invalidate(cooperative_id)
            logger.warning(
                "erp_fetch_failed",
                extra={"operation": operation, "error_code": exc.code, "error": str(exc)},
            )
            return ErpFetchResult(success=False, error=str(exc))
        except SQLAlchemyError as exc:
            logger.error(
                "erp_config_unreadable",
                extra={"operation": operation, "error": str(exc)},
                exc_info=True,
            )
            return ErpFetchResult(
                success=False, error=f"ERP configuration could not be read: {exc}"
            )
        logger.info(
            "erp_fetch_completed",
            extra={"operation": operation, "record_count": len(records)},
        )
        return ErpFetchResult(success=True, records=records)

    # -- fetches ---------------------------------------------------------------

    def fetch_balance_movements(self, cooperative_id: str, year: int, month: int) -> ErpFetchResult:
        start, end = month_range(year, month)

        def fetch(client: OdooClient) -> list[dict[str, Any]]:
            lines = client.search_read(
                "account.move.line",
                [
                    ["date", ">=", start],
                    ["date", "<=", end],
                    ["parent_state", "=", self._config.posted_state],
                ],
                MOVE_LINE_FIELDS,
                order="account_id",
            )
            accounts = client.search_read("account.account", [], ACCOUNT_FIELDS)
            return aggregate_move_lines(lines, accounts)

        return self._run("fetch_balance_movements", cooperative_id, fetch)

    def fetch_payments(self, cooperative_id: str, year: int, month: int) -> ErpFetchResult:
        start, end = month_range(year, month)

        def fetch(client: OdooClient) -> list[dict[str, Any]]:
            return client.search_read(
                "account.payment",
                [
                    ["date", ">=", start],
                    ["date", "<=", end],
                    ["state", "=", self._config.posted_state],
                ],
                PAYMENT_FIELDS,
            )

        return self._run("fetch_payments", cooperative_id, fetch)

    def fetch_partners(self, cooperative_id: str, year: int, month: int) -> ErpFetchResult:
        def fetch(client: OdooClient) -> list[dict[str, Any]]:
            return client.search_read(
                "res.partner",
                [["is_company", "=", False], ["customer_rank", ">", 0]],
                PARTNER_FIELDS,
            )

        return self._run("fetch_partners", cooperative_id, fetch)

    # -- orchestrator entry point ---------------------------------------------

    def read(self, key: PeriodKey, module: Module) -> list[ErpRow]:
        """Fetch the unit's rows or raise ``SourceUnavailableError``."""
        fetcher = self._fetchers.get(module)
        if fetcher is None:
            raise UnsupportedModuleError(module.value, "ERP ingestion")
        result = fetcher(key.cooperative_id, key.year, key.month)
        if not result.success:
            raise SourceUnavailableError(
                result.error or "ERP fetch failed",
                cooperative_id=key.cooperative_id,
                year=key.year,
                month=key.month,
                module=module.value,
            )
        return [ErpRow(row_number=i, record=r) for i, r in enumerate(result.records, start=1)]
