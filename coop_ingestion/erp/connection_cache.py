"""
Per-cooperative cache of authenticated ERP clients.

Entries are keyed by cooperative id.  Every ``invalidate`` bumps the
cooperative's generation; ``put`` with a generation read before the last
invalidation is refused, so a client built from credentials loaded before a
save never lands in the cache afterwards.
"""

from __future__ import annotations

import threading

from coop_ingestion.erp.client import OdooClient
from coop_kernel.logging_config import get_logger

logger = get_logger("ingestion.erp.cache")


class ErpConnectionCache:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._clients: dict[str, OdooClient] = {}
        self._generations: dict[str, int] = {}

    def get(self, cooperative_id: str) -> OdooClient | None:
        with self._lock:
            return self._clients.get(cooperative_id)

    def generation(self, cooperative_id: str) -> int:
        with self._lock:
            return self._generations.get(cooperative_id, 0)

    def put(
        self, cooperative_id: str, client: OdooClient, generation: int | None = None
    ) -> bool:
        """Cache ``client``.  Returns False, closing it, if ``generation`` is stale."""
        with self._lock:
            current = self._generations.get(cooperative_id, 0)
            stale = generation is not None and generation != current
            previous = None
            if not stale:
                previous = self._clients.get(cooperative_id)
                self._clients[cooperative_id] = client
        if stale:
            client.close()
            logger.info(
                "erp_connection_discarded",
                extra={"cooperative": cooperative_id, "generation": generation},
            )
            return False
        if previous is not None and previous is not client:
            previous.close()
        return True

    def invalidate(self, cooperative_id: str) -> None:
        with self._lock:
            self._generations[cooperative_id] = self._generations.get(cooperative_id, 0) + 1
            client = self._clients.pop(cooperative_id, None)
        if client is not None:
            client.close()
            logger.info("erp_connection_invalidated", extra={"cooperative": cooperative_id})

    def clear(self) -> None:
        with self._lock:
            clients = list(self._clients.values())
            for cooperative_id in set(self._clients) | set(self._generations):
                self._generations[cooperative_id] = self._generations.get(cooperative_id, 0) + 1
            self._clients.clear()
        for client in clients:
            client.close()

    def __contains__(self, cooperative_id: object) -> bool:
        with self._lock:
            return cooperative_id in self._clients

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)
