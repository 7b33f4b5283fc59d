"""
Module: placement_kernel.services.settings_service
Responsibility: Seed, read and update the singleton system settings row.
Architecture position: Kernel > Services.

Invariants enforced:
    - Exactly one settings row exists once the store is initialized.
    - Updates are validated (known keys, non-negative, correct type) before
      anything is written; a bad key rejects the whole update.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import select

from placement_kernel.domain.settings import SystemSettings
from placement_kernel.logging_config import get_logger
from placement_kernel.models.settings import SETTINGS_KEY, SystemSettingsRow
from placement_kernel.services.base import BaseService

logger = get_logger("services.settings")


class SettingsService(BaseService):
    def _row(self) -> SystemSettingsRow | None:
        return self.session.execute(
            select(SystemSettingsRow).where(SystemSettingsRow.key == SETTINGS_KEY)
        ).scalar_one_or_none()

    def ensure_initialized(self, seed: SystemSettings) -> SystemSettings:
        """Create the settings row from ``seed`` if none exists yet."""
        row = self._row()
        if row is not None:
            return row.to_snapshot()

        row = SystemSettingsRow(key=SETTINGS_KEY, created_at=self.clock.now())
        row.apply(seed)
        self.session.add(row)
        self.session.flush()
        logger.info("settings_initialized", extra=seed.to_dict())
        return seed

    def snapshot(self) -> SystemSettings:
        """Current settings; defaults if the store was never seeded."""
        row = self._row()
        return row.to_snapshot() if row is not None else SystemSettings()

    def update(self, updates: dict[str, Any], actor_id: str) -> tuple[SystemSettings, SystemSettings]:
        """
        Apply ``updates`` and return ``(before, after)``.

        Raises:
            InvalidSettingsError: unknown key or invalid value.
        """
        before = self.snapshot()
        after = before.with_updates(updates)

        row = self._row()
        if row is None:
            row = SystemSettingsRow(key=SETTINGS_KEY, created_at=self.clock.now())
            self.session.add(row)
        row.apply(after)
        row.updated_at = self.clock.now()
        row.updated_by = actor_id
        self.session.flush()

        logger.info(
            "settings_updated",
            extra={"changed_keys": sorted(updates), "updated_by": actor_id},
        )
        return before, after
