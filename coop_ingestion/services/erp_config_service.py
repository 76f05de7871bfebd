"""
ErpConfigService -- saves and inspects a cooperative's ERP connection.

Invariants enforced:
    - ``save_config`` invalidates the cached connection for the cooperative
      before it returns and again when the caller commits, so no fetch after
      the commit reuses a client built from the old credentials.
    - One configuration row per cooperative (upsert by cooperative id).
    - Flush-only, like every kernel service: the caller commits.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import event, select
from sqlalchemy.orm import Session

from coop_config.schema import ErpConfig
from coop_ingestion.domain.types import ErpCredentials
from coop_ingestion.erp.client import OdooClient
from coop_ingestion.erp.connection_cache import ErpConnectionCache
from coop_ingestion.erp.source import ClientFactory, default_client_factory
from coop_kernel.domain.clock import Clock, SystemClock
from coop_kernel.exceptions import ErpError
from coop_kernel.logging_config import get_logger
from coop_kernel.models import ErpConnectionConfigModel
from coop_kernel.services.base import BaseService

logger = get_logger("ingestion.erp_config")


@dataclass(frozen=True)
class ErpStatus:
    configured: bool
    is_connected: bool
    url: str | None = None
    database: str | None = None
    username: str | None = None
    last_sync: datetime | None = None


class ErpConfigService(BaseService):
    def __init__(
        self,
        session: Session,
        cache: ErpConnectionCache,
        config: ErpConfig | None = None,
        client_factory: ClientFactory = default_client_factory,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._cache = cache
        self._config = config or ErpConfig()
        self._client_factory = client_factory
        self._clock = clock or SystemClock()

    def _get(self, cooperative_id: str) -> ErpConnectionConfigModel | None:
        return self.session.execute(
            select(ErpConnectionConfigModel).where(
                ErpConnectionConfigModel.cooperative_id == cooperative_id
            )
        ).scalar_one_or_none()

    def save_config(
        self, cooperative_id: str, credentials: ErpCredentials, is_connected: bool = False
    ) -> None:
        row = self._get(cooperative_id)
        if row is None:
            row = ErpConnectionConfigModel(cooperative_id=cooperative_id)
            self.session.add(row)
        row.url = credentials.url
        row.database = credentials.database
        row.username = credentials.username
        row.api_key = credentials.api_key
        row.is_connected = is_connected
        self.session.flush()

        # Other sessions read the old row until the caller commits.
        self._cache.invalidate(cooperative_id)
        event.listen(
            self.session,
            "after_commit",
            lambda _session: self._cache.invalidate(cooperative_id),
            once=True,
        )
        logger.info(
            "erp_config_saved",
            extra={"cooperative": cooperative_id, "erp_url": credentials.url},
        )

    def get_status(self, cooperative_id: str) -> ErpStatus:
        row = self._get(cooperative_id)
        if row is None:
            return ErpStatus(configured=False, is_connected=False)
        return ErpStatus(
            configured=True,
            is_connected=row.is_connected,
            url=row.url,
            database=row.database,
            username=row.username,
            last_sync=row.last_sync,
        )

    def mark_synced(self, cooperative_id: str) -> None:
        row = self._get(cooperative_id)
        if row is None:
            return
        row.last_sync = self._clock.now()
        row.is_connected = True
        self.session.flush()

    def test_connection(self, credentials: ErpCredentials) -> tuple[bool, str]:
        """Authenticate with the given credentials without saving them."""
        client: OdooClient = self._client_factory(credentials, self._config.timeout_s)
        try:
            uid = client.authenticate()
        except ErpError as exc:
            logger.info(
                "erp_connection_test_failed",
                extra={"erp_url": credentials.url, "error_code": exc.code},
            )
            return False, str(exc)
        finally:
            client.close()
        return True, f"Connected as user {uid}"
