"""
Module: coop_kernel.models.membership_fee
Responsibility: ORM persistence for MembershipFee rows of a period.

Invariants enforced:
    - debt >= 0.  Status consistency with debt is established by the Record
      Normalizer before rows reach this table.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from coop_kernel.db.base import TrackedBase
from coop_kernel.domain.records import MembershipFee
from coop_kernel.domain.values import FeeStatus


class MembershipFeeModel(TrackedBase):
    __tablename__ = "membership_fees"

    __table_args__ = (
        Index("idx_fee_period", "cooperative_id", "year", "month"),
        CheckConstraint("debt >= 0", name="chk_fee_debt_non_negative"),
    )

    cooperative_id: Mapped[str] = mapped_column(String(64), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)

    member_id: Mapped[str] = mapped_column(String(50), nullable=False)
    member_name: Mapped[str] = mapped_column(String(255), nullable=False)
    expected_contribution: Mapped[Decimal] = mapped_column(nullable=False)
    payment_made: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    debt: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    external_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)

    @classmethod
    def from_record(
        cls, cooperative_id: str, year: int, month: int, record: MembershipFee
    ) -> "MembershipFeeModel":
        return cls(
            cooperative_id=cooperative_id,
            year=year,
            month=month,
            member_id=record.member_id,
            member_name=record.member_name,
            expected_contribution=record.expected_contribution,
            payment_made=record.payment_made,
            debt=record.debt,
            status=record.status.value,
            external_ref=record.external_ref,
        )

    def to_record(self) -> MembershipFee:
        return MembershipFee(
            member_id=self.member_id,
            member_name=self.member_name,
            expected_contribution=Decimal(self.expected_contribution),
            payment_made=Decimal(self.payment_made),
            debt=Decimal(self.debt),
            status=FeeStatus(self.status),
            external_ref=self.external_ref,
        )
