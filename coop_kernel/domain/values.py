"""
Value enums shared by every layer (``coop_kernel.domain.values``).

String-valued enums so that they round-trip through the database, JSON log
payloads and configuration token tables unchanged.
"""

from enum import Enum


class Module(str, Enum):
    """Financial data category of an ingestion unit."""

    BALANCE_SHEET = "balance_sheet"
    CASH_FLOW = "cash_flow"
    MEMBERSHIP_FEES = "membership_fees"
    RATIOS = "ratios"
    ALL = "all"

    @property
    def is_raw(self) -> bool:
        """True for modules fed directly by an external source."""
        return self in RAW_MODULES


RAW_MODULES = frozenset(
    {Module.BALANCE_SHEET, Module.CASH_FLOW, Module.MEMBERSHIP_FEES}
)


class UploadStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class BalanceCategory(str, Enum):
    ASSETS = "assets"
    LIABILITIES = "liabilities"
    EQUITY = "equity"


class CashFlowCategory(str, Enum):
    OPERATING = "operating"
    INVESTING = "investing"
    FINANCING = "financing"


class FeeStatus(str, Enum):
    UP_TO_DATE = "up_to_date"
    WITH_DEBT = "with_debt"


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"
