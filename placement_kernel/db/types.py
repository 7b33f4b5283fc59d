"""
Module: placement_kernel.db.types
Responsibility: The UTC-preserving datetime column type and the money and
    currency helpers every service uses, so precision and rounding are
    decided in one place.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats for money.  Amounts arrive as Decimal, int or str and leave
      ``to_money`` as a Decimal with two places, rounded half-up.
    - Currency codes are restricted to the agency's billing currencies.

Failure modes:
    - InvalidAmountError on an amount that is not a finite number.
    - InvalidCurrencyError on a currency outside SUPPORTED_CURRENCIES.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator

CENTS = Decimal("0.01")

SUPPORTED_CURRENCIES: frozenset[str] = frozenset({"TZS", "USD", "EUR"})


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime column.

    Values are normalized to UTC on write.  SQLite drops tzinfo, so UTC is
    re-attached on read and callers always compare aware datetimes.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else to_utc(value)

    def process_result_value(self, value, dialect):
        if value is None or value.tzinfo is not None:
            return value
        return value.replace(tzinfo=timezone.utc)


def to_utc(value: datetime) -> datetime:
    """Normalize an aware or naive datetime to aware UTC; naive means UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class InvalidAmountError(ValueError):
    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Not a monetary amount: {value!r}")


class InvalidCurrencyError(ValueError):
    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Unsupported currency code: '{currency}'")


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_money(value: Decimal | int | str) -> Decimal:
    """
    Coerce ``value`` to a two-place Decimal.

    Raises:
        InvalidAmountError: ``value`` is not a finite number.  Floats are
            refused outright.
    """
    if isinstance(value, float):
        raise InvalidAmountError(value)
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise InvalidAmountError(value) from exc
    if not amount.is_finite():
        raise InvalidAmountError(value)
    return round_money(amount)


def validate_currency(currency: str) -> str:
    """
    Validate and normalize a billing currency code.

    Returns:
        The currency code, upper-cased.

    Raises:
        InvalidCurrencyError: If the currency code is not supported.
    """
    if not currency or not isinstance(currency, str):
        raise InvalidCurrencyError(str(currency))
    normalized = currency.upper().strip()
    if normalized not in SUPPORTED_CURRENCIES:
        raise InvalidCurrencyError(currency)
    return normalized
