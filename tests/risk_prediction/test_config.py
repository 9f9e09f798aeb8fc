"""
Tests for configuration presets and environment overrides.
"""

import os

import pytest

from risk_prediction.config import (
    DEFAULT_WEIGHTS,
    RiskPredictionConfig,
    get_default_config,
    get_relaxed_config,
    get_sensitive_config,
    load_config_from_env,
)


@pytest.fixture
def no_dotenv(monkeypatch):
    """Keep a developer's .env out of the tests."""
    monkeypatch.setattr("risk_prediction.config.load_dotenv", lambda *args, **kwargs: False)


class TestPresets:

    def test_default_config(self):
        config = get_default_config()
        assert config.default_weights == DEFAULT_WEIGHTS
        assert config.extractors.purge_phase_start_day == 15
        assert config.extractors.purge_phase_end_day == 45
        assert config.adaptation.adjustment_rate == 0.05
        assert config.alerting.notify_threshold == 70
        assert config.store.max_feedback == 100

    def test_sensitive_triggers_earlier(self):
        default = get_default_config()
        sensitive = get_sensitive_config()
        assert sensitive.extractors.energy_drop_threshold < default.extractors.energy_drop_threshold
        assert sensitive.alerting.notify_threshold < default.alerting.notify_threshold

    def test_relaxed_triggers_later(self):
        default = get_default_config()
        relaxed = get_relaxed_config()
        assert relaxed.extractors.energy_drop_threshold > default.extractors.energy_drop_threshold
        assert relaxed.alerting.notify_threshold > default.alerting.notify_threshold

    def test_to_dict_is_plain(self):
        data = RiskPredictionConfig().to_dict()
        assert data["extractors"]["weekend_days"] == [5, 6]
        assert data["confidence"]["max_confidence"] == 95
        assert data["engine_version"] == "1.0.0"

    def test_config_is_hashable(self):
        assert hash(get_default_config()) == hash(RiskPredictionConfig())
        assert {get_default_config(), RiskPredictionConfig()} == {RiskPredictionConfig()}


class TestEnvironmentOverrides:

    def test_unset_variables_keep_defaults(self, no_dotenv, monkeypatch):
        for name in [key for key in os.environ if key.startswith("RISK_")]:
            monkeypatch.delenv(name)
        assert load_config_from_env() == get_default_config()

    def test_overrides_applied(self, no_dotenv, monkeypatch):
        monkeypatch.setenv("RISK_ADJUSTMENT_RATE", "0.1")
        monkeypatch.setenv("RISK_PURGE_PHASE_END_DAY", "60")
        monkeypatch.setenv("RISK_NOTIFY_THRESHOLD", "65")
        monkeypatch.setenv("RISK_ALERT_WEBHOOK_URL", "https://alerts.example.com/hook")

        config = load_config_from_env()

        assert config.adaptation.adjustment_rate == 0.1
        assert config.extractors.purge_phase_end_day == 60
        assert config.alerting.notify_threshold == 65
        assert config.alerting.webhook_url == "https://alerts.example.com/hook"

    def test_bad_number_raises(self, no_dotenv, monkeypatch):
        monkeypatch.setenv("RISK_MIN_WEIGHT", "lots")
        with pytest.raises(ValueError, match="RISK_MIN_WEIGHT"):
            load_config_from_env()
