"""
Configuration schema (``placement_config.schema``).

Frozen dataclasses describing a parsed configuration.  The kernel consumes
``PlacementConfig.settings`` and ``PlacementConfig.pricing`` directly; both
are kernel domain types, so no translation layer is needed.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from placement_kernel.domain.pricing import ScholarshipPrice, ScholarshipType
from placement_kernel.domain.settings import SystemSettings


@dataclass(frozen=True)
class PlacementConfig:
    """The single runtime configuration artifact."""

    config_id: str
    version: int
    settings: SystemSettings
    pricing: Mapping[ScholarshipType, ScholarshipPrice]
    checksum: str

    def __post_init__(self) -> None:
        # Freeze the pricing mapping so the config stays immutable end to end.
        object.__setattr__(self, "pricing", MappingProxyType(dict(self.pricing)))
