"""
Module: coop_kernel.models.erp_config
Responsibility: ORM persistence for a cooperative's ERP connection settings.

Invariants enforced:
    - At most one row per cooperative (uq_erp_config_coop).
    - Writes go through ErpConfigService so the connection cache is
      invalidated in the same call that changes the credentials.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from coop_kernel.db.base import TrackedBase


class ErpConnectionConfigModel(TrackedBase):
    __tablename__ = "erp_connection_configs"

    __table_args__ = (
        UniqueConstraint("cooperative_id", name="uq_erp_config_coop"),
    )

    cooperative_id: Mapped[str] = mapped_column(String(64), nullable=False)
    url: Mapped[str] = mapped_column(String(500), nullable=False)
    database: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(255), nullable=False)
    api_key: Mapped[str] = mapped_column(String(500), nullable=False)
    is_connected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    last_sync: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        return f"<ErpConnectionConfig {self.cooperative_id} {self.url}>"
