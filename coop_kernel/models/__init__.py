"""ORM models for the cooperative finance kernel."""

from coop_kernel.models.balance_sheet import BalanceSheetEntryModel
from coop_kernel.models.cash_flow import CashFlowEntryModel
from coop_kernel.models.erp_config import ErpConnectionConfigModel
from coop_kernel.models.financial_ratio import FinancialRatioModel
from coop_kernel.models.membership_fee import MembershipFeeModel
from coop_kernel.models.period import PeriodModel
from coop_kernel.models.upload_history import UploadHistoryModel

__all__ = [
    "BalanceSheetEntryModel",
    "CashFlowEntryModel",
    "ErpConnectionConfigModel",
    "FinancialRatioModel",
    "MembershipFeeModel",
    "PeriodModel",
    "UploadHistoryModel",
]
