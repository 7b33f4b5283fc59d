"""
System settings snapshot (``placement_kernel.domain.settings``).

The engine reads settings exactly once per operation and passes the
frozen snapshot down, so a concurrent ``update_system_settings`` can
never change thresholds halfway through a cascade.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from decimal import Decimal
from typing import Any

from placement_kernel.exceptions import InvalidSettingsError


@dataclass(frozen=True)
class SystemSettings:
    """Immutable configuration snapshot."""

    commission_amount: Decimal = Decimal("20000")
    opening_book_fee: Decimal = Decimal("50")
    passport_expiry_months: int = 6
    lead_idle_days: int = 7
    application_idle_days: int = 3
    current_pricing_version: int = 1

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def with_updates(self, updates: dict[str, Any]) -> SystemSettings:
        """
        Return a copy with ``updates`` applied.

        Raises:
            InvalidSettingsError: unknown key, or a value that does not
                coerce to the field's type, or a negative value.
        """
        coerced: dict[str, Any] = {}
        known = {f.name: f for f in fields(self)}
        for key, value in updates.items():
            if key not in known:
                raise InvalidSettingsError(key, "unknown setting")
            target = Decimal if known[key].type in ("Decimal", Decimal) else int
            try:
                parsed = target(str(value))
            except (ArithmeticError, ValueError) as exc:
                raise InvalidSettingsError(key, f"not a valid {target.__name__}") from exc
            if parsed < 0:
                raise InvalidSettingsError(key, "must not be negative")
            coerced[key] = parsed
        return replace(self, **coerced)
