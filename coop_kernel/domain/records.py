"""
Canonical record shapes (``coop_kernel.domain.records``).

Responsibility
--------------
Frozen value objects produced by the Record Normalizer and consumed by the
Period Store and the Ratio Engine.  Nothing downstream of the normalizer
sees a dynamically keyed row.

Invariants enforced
-------------------
* Monetary fields are ``Decimal``; ratio values are ``float``.
* ``MembershipFee.debt`` is never negative.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from coop_kernel.domain.values import (
    BalanceCategory,
    CashFlowCategory,
    FeeStatus,
    Module,
    Trend,
    UploadStatus,
)

ZERO = Decimal("0")


@dataclass(frozen=True)
class BalanceEntry:
    account_code: str
    account_name: str
    category: BalanceCategory
    subcategory: str | None = None
    initial_debit: Decimal = ZERO
    initial_credit: Decimal = ZERO
    period_debit: Decimal = ZERO
    period_credit: Decimal = ZERO
    final_debit: Decimal = ZERO
    final_credit: Decimal = ZERO
    external_ref: str | None = None


@dataclass(frozen=True)
class CashFlowEntry:
    description: str
    category: CashFlowCategory
    amount: Decimal
    external_ref: str | None = None


@dataclass(frozen=True)
class MembershipFee:
    member_id: str
    member_name: str
    expected_contribution: Decimal
    payment_made: Decimal
    debt: Decimal
    status: FeeStatus
    external_ref: str | None = None

    def __post_init__(self) -> None:
        if self.debt < ZERO:
            raise ValueError(f"debt cannot be negative: {self.debt}")


@dataclass(frozen=True)
class FinancialRatio:
    name: str
    value: float
    trend: Trend = Trend.STABLE
    description: str | None = None


CanonicalRecord = BalanceEntry | CashFlowEntry | MembershipFee | FinancialRatio


@dataclass(frozen=True)
class UploadHistoryRecord:
    """Read-side view of one Upload History ledger row."""

    id: UUID
    cooperative_id: str
    actor_id: str | None
    year: int
    month: int
    module: Module
    status: UploadStatus
    records_count: int
    error_message: str | None
    recorded_at: datetime
