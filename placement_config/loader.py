"""
Configuration Loader (``placement_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and parses it into the typed
``placement_config.schema.PlacementConfig``.  The single public entry
point for runtime config is ``placement_config.get_active_config()``.

Invariants enforced
-------------------
* Parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* The pricing table must cover every ``ScholarshipType``.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from placement_config.schema import PlacementConfig
from placement_kernel.domain.pricing import ScholarshipPrice, ScholarshipType
from placement_kernel.domain.settings import SystemSettings


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, field_name: str) -> Decimal:
    """Parse a YAML scalar as Decimal; floats go through str() to avoid binary noise."""
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"{field_name}: cannot parse {value!r} as a decimal") from exc


def parse_system_settings(data: dict[str, Any]) -> SystemSettings:
    """
    Parse the ``system_settings`` section.

    Missing keys fall back to the SystemSettings defaults; unknown keys
    are rejected so a typo cannot silently leave a default in place.
    """
    defaults = SystemSettings()
    return defaults.with_updates(dict(data or {}))


def parse_pricing_table(data: dict[str, Any]) -> dict[ScholarshipType, ScholarshipPrice]:
    """
    Parse the ``scholarship_pricing`` section.

    Raises:
        KeyError: a scholarship type or a price column is missing.
        ValueError: an unknown scholarship type or unparseable amount.
    """
    table: dict[ScholarshipType, ScholarshipPrice] = {}
    for raw_type, row in data.items():
        scholarship_type = ScholarshipType(raw_type)
        table[scholarship_type] = ScholarshipPrice(
            total_service_fee=parse_decimal(row["total_service_fee"], f"{raw_type}.total_service_fee"),
            deposit=parse_decimal(row["deposit"], f"{raw_type}.deposit"),
            credit=parse_decimal(row["credit"], f"{raw_type}.credit"),
            client_pays=parse_decimal(row["client_pays"], f"{raw_type}.client_pays"),
        )

    missing = [t.value for t in ScholarshipType if t not in table]
    if missing:
        raise KeyError(f"scholarship_pricing is missing types: {', '.join(missing)}")
    return table


def compute_checksum(data: dict[str, Any]) -> str:
    """
    SHA-256 checksum of the canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_config(data: dict[str, Any]) -> PlacementConfig:
    """Parse a full configuration document."""
    return PlacementConfig(
        config_id=data.get("config_id", "placement-default"),
        version=int(data.get("version", 1)),
        settings=parse_system_settings(data.get("system_settings", {})),
        pricing=parse_pricing_table(data["scholarship_pricing"]),
        checksum=compute_checksum(data),
    )
