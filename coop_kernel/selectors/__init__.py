"""Read-only selectors."""

from coop_kernel.selectors.financial_selector import (
    FinancialSelector,
    PeriodInfo,
    RatioHistoryPoint,
)
from coop_kernel.selectors.upload_history_selector import (
    DEFAULT_HISTORY_LIMIT,
    UploadHistorySelector,
)

__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "FinancialSelector",
    "PeriodInfo",
    "RatioHistoryPoint",
    "UploadHistorySelector",
]
