"""Money, currency and datetime column helpers."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from placement_kernel.db.types import (
    InvalidAmountError,
    InvalidCurrencyError,
    UTCDateTime,
    to_money,
    to_utc,
    validate_currency,
)


class TestToMoney:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("750", Decimal("750.00")),
            (20000, Decimal("20000.00")),
            (Decimal("0.005"), Decimal("0.01")),
            (" 12.344 ", Decimal("12.34")),
        ],
    )
    def test_coerces_to_cents(self, raw, expected):
        assert to_money(raw) == expected

    @pytest.mark.parametrize("raw", ["lots", "", "NaN", "Infinity", 1.5])
    def test_rejects(self, raw):
        with pytest.raises(InvalidAmountError):
            to_money(raw)


class TestCurrency:
    def test_normalizes(self):
        assert validate_currency(" tzs ") == "TZS"

    @pytest.mark.parametrize("code", ["GBP", "", None])
    def test_unsupported(self, code):
        with pytest.raises(InvalidCurrencyError):
            validate_currency(code)


class TestUTCDateTime:
    def test_naive_is_treated_as_utc(self):
        naive = datetime(2024, 3, 1, 9, 0)
        assert to_utc(naive) == datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    def test_offset_is_converted(self):
        eat = timezone(timedelta(hours=3))
        column = UTCDateTime()
        bound = column.process_bind_param(datetime(2024, 3, 1, 12, 0, tzinfo=eat), None)
        assert bound == datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)
        assert bound.tzinfo == timezone.utc

    def test_result_gets_utc_attached(self):
        loaded = UTCDateTime().process_result_value(datetime(2024, 3, 1, 9, 0), None)
        assert loaded.tzinfo == timezone.utc
