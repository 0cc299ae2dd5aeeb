"""Tests for settings loading (materials_config)."""

from decimal import Decimal

import pytest

from materials_config import CONFIG_ENV_VAR, get_active_config, parse_settings
from materials_engines.rules import RuleThresholds
from materials_kernel.exceptions import ConfigurationError
from materials_services.engine import ProjectionEngine


def _write(tmp_path, text, name="settings.yaml"):
    path = tmp_path / name
    path.write_text(text)
    return path


class TestDefaults:

    def test_packaged_defaults_match_code_defaults(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)

        settings = get_active_config()

        assert settings.thresholds == RuleThresholds()
        assert settings.database_url == "sqlite:///materials.db"
        assert settings.log_level == "INFO"
        assert settings.source.endswith("defaults.yaml")

    def test_empty_mapping_takes_defaults(self):
        settings = parse_settings({})
        assert settings.thresholds == RuleThresholds()
        assert settings.source is None


class TestResolution:

    def test_explicit_path(self, tmp_path):
        path = _write(tmp_path, "log_level: debug\nthresholds:\n  safety_margin_days: 4\n")

        settings = get_active_config(path)

        assert settings.log_level == "DEBUG"
        assert settings.thresholds.safety_margin_days == 4
        assert settings.thresholds.critical_safety_margin_days == 5
        assert settings.source == str(path)

    def test_environment_variable(self, tmp_path, monkeypatch):
        path = _write(tmp_path, 'database_url: "sqlite://"\n')
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert get_active_config().database_url == "sqlite://"

    def test_emits_config_trace(self, tmp_path, captured_logs):
        path = _write(tmp_path, 'thresholds:\n  deviation_threshold: "0.25"\n')

        get_active_config(path)

        (trace,) = [r for r in captured_logs() if r["message"] == "MATERIALS_CONFIG_TRACE"]
        assert trace["source"] == str(path)
        assert trace["thresholds"]["deviation_threshold"] == "0.25"

    def test_engine_from_settings_uses_thresholds(self, tmp_path):
        path = _write(tmp_path, 'database_url: "sqlite://"\nthresholds:\n  expiry_high_days: 10\n')

        engine = ProjectionEngine.from_settings(get_active_config(path))

        assert engine.thresholds.expiry_high_days == 10


class TestThresholdParsing:

    def test_decimals_parsed_exactly(self):
        settings = parse_settings({"thresholds": {"imminent_reorder_factor": 1.1}})
        assert settings.thresholds.imminent_reorder_factor == Decimal("1.1")

    @pytest.mark.parametrize("value", ["5", 2.5, True, None])
    def test_integer_fields_reject_non_integers(self, value):
        with pytest.raises(ConfigurationError):
            parse_settings({"thresholds": {"stagnant_min_days": value}})

    def test_unknown_threshold(self):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_settings({"thresholds": {"safety_margin_dayz": 3}}, source="x.yaml")
        assert "safety_margin_dayz" in str(exc_info.value)
        assert exc_info.value.source == "x.yaml"

    def test_inconsistent_bands(self):
        with pytest.raises(ConfigurationError):
            parse_settings({"thresholds": {"stagnant_min_days": 100}})

    def test_thresholds_must_be_mapping(self):
        with pytest.raises(ConfigurationError):
            parse_settings({"thresholds": [1, 2]})


class TestInvalidFiles:

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            get_active_config(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = _write(tmp_path, "thresholds: [unclosed\n")
        with pytest.raises(ConfigurationError) as exc_info:
            get_active_config(path)
        assert exc_info.value.code == "CONFIGURATION_ERROR"

    def test_top_level_must_be_mapping(self, tmp_path):
        with pytest.raises(ConfigurationError):
            get_active_config(_write(tmp_path, "- a\n- b\n"))

    def test_unknown_top_level_key(self):
        with pytest.raises(ConfigurationError):
            parse_settings({"databse_url": "sqlite://"})

    def test_unknown_log_level(self):
        with pytest.raises(ConfigurationError):
            parse_settings({"log_level": "chatty"})
