"""Pure tests for scholarship pricing, the batch rule and settings snapshots."""

from decimal import Decimal
from uuid import uuid4

import pytest
from hypothesis import given
from hypothesis import strategies as st

from placement_kernel.domain.batch_strategy import check_batch_slot
from placement_kernel.domain.pricing import (
    DEFAULT_PRICING,
    FIXED_CREDIT,
    ScholarshipType,
    final_balance,
)
from placement_kernel.domain.settings import SystemSettings
from placement_kernel.exceptions import (
    BatchLimitExceededError,
    DuplicateUniversityError,
    InvalidSettingsError,
    PreconditionError,
)


class TestFinalBalance:
    @pytest.mark.parametrize(
        "scholarship_type,expected",
        [
            ("self_support", Decimal("500")),
            ("partial_b", Decimal("750")),
            ("partial_a", Decimal("1000")),
            ("full_b", Decimal("1250")),
            ("full_a", Decimal("1500")),
        ],
    )
    def test_full_deposit_leaves_client_pays(self, scholarship_type, expected):
        assert final_balance(scholarship_type, Decimal("750")) == expected

    def test_no_type_means_zero(self):
        assert final_balance(None, Decimal("750")) == Decimal("0")

    @given(st.decimals(min_value=0, max_value=100000, places=2))
    def test_formula(self, deposit):
        price = DEFAULT_PRICING[ScholarshipType.FULL_A]
        assert final_balance("full_a", deposit) == price.total_service_fee - (deposit - FIXED_CREDIT)


class TestBatchSlot:
    def test_two_primary_choices_then_full(self):
        student_id = uuid4()
        existing = [(uuid4(), 1), (uuid4(), 1)]
        with pytest.raises(BatchLimitExceededError):
            check_batch_slot(student_id, uuid4(), 1, existing)

    def test_backup_batch_takes_three(self):
        student_id = uuid4()
        existing = [(uuid4(), 1), (uuid4(), 1), (uuid4(), 2), (uuid4(), 2)]
        check_batch_slot(student_id, uuid4(), 2, existing)
        with pytest.raises(BatchLimitExceededError):
            check_batch_slot(student_id, uuid4(), 2, existing + [(uuid4(), 2)])

    def test_university_once_across_batches(self):
        university_id = uuid4()
        with pytest.raises(DuplicateUniversityError):
            check_batch_slot(uuid4(), university_id, 2, [(university_id, 1)])

    def test_unknown_batch(self):
        with pytest.raises(PreconditionError):
            check_batch_slot(uuid4(), uuid4(), 3, [])


class TestSettingsSnapshot:
    def test_with_updates_coerces_types(self):
        updated = SystemSettings().with_updates({"commission_amount": "15000", "lead_idle_days": "10"})
        assert updated.commission_amount == Decimal("15000")
        assert updated.lead_idle_days == 10

    def test_unknown_key(self):
        with pytest.raises(InvalidSettingsError):
            SystemSettings().with_updates({"not_a_setting": 1})

    def test_negative_value(self):
        with pytest.raises(InvalidSettingsError):
            SystemSettings().with_updates({"lead_idle_days": -1})

    def test_snapshot_is_not_mutated(self):
        original = SystemSettings()
        original.with_updates({"lead_idle_days": 30})
        assert original.lead_idle_days == 7
