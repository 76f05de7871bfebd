"""ERP integration: JSON-RPC client, connection cache and period source."""

from coop_ingestion.erp.client import OdooClient
from coop_ingestion.erp.connection_cache import ErpConnectionCache
from coop_ingestion.erp.source import (
    ErpFetchResult,
    ErpSource,
    aggregate_move_lines,
    month_range,
)

__all__ = [
    "OdooClient",
    "ErpConnectionCache",
    "ErpFetchResult",
    "ErpSource",
    "aggregate_move_lines",
    "month_range",
]
