"""Pure domain layer: transition tables, pricing, settings, DTOs, clock."""
