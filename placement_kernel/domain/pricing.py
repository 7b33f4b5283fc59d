"""
Scholarship pricing (``placement_kernel.domain.pricing``).

Pure pricing table and the final-balance formula.  The default table below
is what ships in ``placement_config/defaults.yaml``; the engine always
uses the table it was configured with.

Final balance::

    total_service_fee(type) - (deposit_paid - FIXED_CREDIT)

The fixed credit is the part of the 750 deposit that counts toward the
service fee; the remaining 500 is the non-refundable contract portion.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Mapping

FIXED_CREDIT = Decimal("250")
DEPOSIT_AMOUNT = Decimal("750")
NON_REFUNDABLE_AMOUNT = Decimal("500")


class ScholarshipType(str, Enum):
    SELF_SUPPORT = "self_support"
    PARTIAL_B = "partial_b"
    PARTIAL_A = "partial_a"
    FULL_B = "full_b"
    FULL_A = "full_a"


@dataclass(frozen=True)
class ScholarshipPrice:
    """One row of the pricing table."""

    total_service_fee: Decimal
    deposit: Decimal
    credit: Decimal
    client_pays: Decimal


PricingTable = Mapping[ScholarshipType, ScholarshipPrice]

DEFAULT_PRICING: dict[ScholarshipType, ScholarshipPrice] = {
    ScholarshipType.SELF_SUPPORT: ScholarshipPrice(
        Decimal("1000"), Decimal("750"), Decimal("500"), Decimal("500"),
    ),
    ScholarshipType.PARTIAL_B: ScholarshipPrice(
        Decimal("1250"), Decimal("750"), Decimal("500"), Decimal("750"),
    ),
    ScholarshipType.PARTIAL_A: ScholarshipPrice(
        Decimal("1500"), Decimal("750"), Decimal("500"), Decimal("1000"),
    ),
    ScholarshipType.FULL_B: ScholarshipPrice(
        Decimal("1750"), Decimal("750"), Decimal("500"), Decimal("1250"),
    ),
    ScholarshipType.FULL_A: ScholarshipPrice(
        Decimal("2000"), Decimal("750"), Decimal("500"), Decimal("1500"),
    ),
}


def final_balance(
    scholarship_type: ScholarshipType | str | None,
    deposit_paid: Decimal,
    pricing: PricingTable = DEFAULT_PRICING,
) -> Decimal:
    """
    Remaining service-fee balance for a student.

    Returns ``Decimal("0")`` when no scholarship type has been chosen.
    The result may be negative if more than the fixed credit plus the
    service fee has been deposited; callers decide how to present that.
    """
    if not scholarship_type:
        return Decimal("0")
    price = pricing[ScholarshipType(scholarship_type)]
    return price.total_service_fee - (Decimal(deposit_paid) - FIXED_CREDIT)
