"""Read-only selectors returning DTOs."""

from placement_kernel.selectors.base import BaseSelector, parse_id
from placement_kernel.selectors.entity_selector import EntitySelector
from placement_kernel.selectors.idle_selector import IdleSelector
from placement_kernel.selectors.ledger_selector import LedgerSelector

__all__ = [
    "BaseSelector",
    "EntitySelector",
    "IdleSelector",
    "LedgerSelector",
    "parse_id",
]
