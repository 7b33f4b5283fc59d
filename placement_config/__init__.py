"""
placement_config -- single public entrypoint for placement configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``PlacementConfig`` holding
    the system settings seed and the scholarship pricing table.

Architecture position:
    Configuration -- YAML-driven.  Sits above ``placement_kernel.domain``
    (whose value types it produces) and is consumed by the workflow
    engine's factory.  The kernel's services and selectors never read
    configuration files.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` / ``ValueError`` -- schema validation failures.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``placement_config_loaded`` log entry with the config id, version and
    checksum.
"""

from __future__ import annotations

from pathlib import Path

from placement_config.loader import load_yaml_file, parse_config
from placement_config.schema import PlacementConfig
from placement_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | None = None) -> PlacementConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a YAML configuration file.
            Defaults to placement_config/defaults.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        KeyError, ValueError: If the document fails validation.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    config = parse_config(load_yaml_file(path))

    _logger.info(
        "placement_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "pricing_types": len(config.pricing),
        },
    )
    return config


__all__ = ["PlacementConfig", "get_active_config", "DEFAULT_CONFIG_PATH"]
