"""Ingestion services: orchestrator, ERP configuration, period reports."""

from coop_ingestion.services.activity_log import ActivityLog, LoggingActivityLog
from coop_ingestion.services.erp_config_service import ErpConfigService, ErpStatus
from coop_ingestion.services.ingestion_service import IngestionOrchestrator
from coop_ingestion.services.period_reports import PeriodReportService

__all__ = [
    "ActivityLog",
    "ErpConfigService",
    "ErpStatus",
    "IngestionOrchestrator",
    "LoggingActivityLog",
    "PeriodReportService",
]
