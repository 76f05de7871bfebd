"""Kernel services -- flush-only, caller owns the transaction."""

from coop_kernel.services.period_store import PeriodStore
from coop_kernel.services.upload_history import UploadHistoryLedger

__all__ = ["PeriodStore", "UploadHistoryLedger"]
