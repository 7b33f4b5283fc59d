"""Tests for YAML configuration loading and the engine's use of it."""

from dataclasses import replace
from decimal import Decimal
from pathlib import Path

import pytest
import yaml

from placement_config import DEFAULT_CONFIG_PATH, get_active_config
from placement_config.loader import compute_checksum, load_yaml_file, parse_config
from placement_kernel.domain.pricing import DEFAULT_PRICING, ScholarshipPrice, ScholarshipType
from placement_kernel.exceptions import InvalidSettingsError
from placement_kernel.services.workflow_engine import WorkflowEngine


def _write(tmp_path, data) -> Path:
    path = tmp_path / "placement.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


@pytest.fixture
def default_data():
    return load_yaml_file(DEFAULT_CONFIG_PATH)


class TestDefaults:
    def test_defaults_match_builtin_pricing(self):
        config = get_active_config()
        assert config.config_id == "placement-default"
        assert dict(config.pricing) == DEFAULT_PRICING
        assert config.settings.commission_amount == Decimal("20000")

    def test_pricing_is_read_only(self):
        config = get_active_config()
        with pytest.raises(TypeError):
            config.pricing[ScholarshipType.FULL_A] = None

    def test_load_is_logged(self, captured_logs):
        config = get_active_config()
        loaded = [r for r in captured_logs() if r["message"] == "placement_config_loaded"]
        assert loaded[-1]["checksum"] == config.checksum


class TestParsing:
    def test_checksum_is_deterministic(self, default_data):
        assert compute_checksum(default_data) == compute_checksum(dict(default_data))

    def test_override_settings(self, tmp_path, default_data):
        default_data["system_settings"]["lead_idle_days"] = 10
        config = get_active_config(_write(tmp_path, default_data))
        assert config.settings.lead_idle_days == 10

    def test_missing_settings_use_defaults(self, default_data):
        del default_data["system_settings"]
        assert parse_config(default_data).settings.passport_expiry_months == 6

    def test_unknown_setting_rejected(self, default_data):
        default_data["system_settings"]["bogus"] = 1
        with pytest.raises(InvalidSettingsError):
            parse_config(default_data)

    def test_missing_pricing_type(self, default_data):
        del default_data["scholarship_pricing"]["full_a"]
        with pytest.raises(KeyError):
            parse_config(default_data)

    def test_bad_amount(self, default_data):
        default_data["scholarship_pricing"]["full_a"]["client_pays"] = "lots"
        with pytest.raises(ValueError):
            parse_config(default_data)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "nope.yaml")


class TestEngineUsesConfig:
    def test_custom_pricing_drives_scholarship(self, clock):
        config = get_active_config()
        pricing = dict(config.pricing)
        pricing[ScholarshipType.FULL_A] = ScholarshipPrice(
            Decimal("3000"), Decimal("750"), Decimal("500"), Decimal("2500")
        )
        engine = WorkflowEngine.from_config(config=replace(config, pricing=pricing), clock=clock)
        staff = engine.add_staff("S", "s@agency.test")
        lead = engine.add_lead("L", "l@example.test")
        student = engine.convert_lead_to_student(lead.id, staff.id)

        engine.set_scholarship_type(student.id, "full_a")
        assert engine.get_student_by_id(student.id).total_owed == Decimal("2500")
        assert engine.calculate_final_balance(student.id) == Decimal("3250")

    def test_settings_seeded_from_config(self, clock):
        config = get_active_config()
        settings = config.settings.with_updates({"commission_amount": "5000"})
        engine = WorkflowEngine.from_config(config=replace(config, settings=settings), clock=clock)
        assert engine.get_system_settings().commission_amount == Decimal("5000")
