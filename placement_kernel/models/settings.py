"""
Module: placement_kernel.models.settings
Responsibility: ORM persistence for the singleton system settings row.

The row is seeded from configuration when the store is initialized and
changed only by SettingsService.update().  Readers take a frozen
SystemSettings snapshot via to_snapshot().
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from placement_kernel.db.base import TimestampedBase
from placement_kernel.domain.settings import SystemSettings

SETTINGS_KEY = "global"


class SystemSettingsRow(TimestampedBase):
    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, default=SETTINGS_KEY)

    commission_amount: Mapped[Decimal] = mapped_column(nullable=False)
    opening_book_fee: Mapped[Decimal] = mapped_column(nullable=False)
    passport_expiry_months: Mapped[int] = mapped_column(Integer, nullable=False)
    lead_idle_days: Mapped[int] = mapped_column(Integer, nullable=False)
    application_idle_days: Mapped[int] = mapped_column(Integer, nullable=False)
    current_pricing_version: Mapped[int] = mapped_column(Integer, nullable=False)

    updated_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    def to_snapshot(self) -> SystemSettings:
        return SystemSettings(
            commission_amount=self.commission_amount,
            opening_book_fee=self.opening_book_fee,
            passport_expiry_months=self.passport_expiry_months,
            lead_idle_days=self.lead_idle_days,
            application_idle_days=self.application_idle_days,
            current_pricing_version=self.current_pricing_version,
        )

    def apply(self, settings: SystemSettings) -> None:
        for key, value in settings.to_dict().items():
            setattr(self, key, value)
