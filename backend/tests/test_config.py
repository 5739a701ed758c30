"""
Configuration Tests
Environment loading and startup validation

Run: python -m pytest tests/test_config.py -v
"""

import pytest

from agents.strategy_registry import StrategyRegistry, get_default_registry
from conftest import make_registry
from infrastructure.config import Environment, FleetConfig, SecretsManager
from infrastructure.errors import ConfigurationError
from services.fleet_service import build_fleet_engine, validate_config


# =============================================================================
# TEST: ENVIRONMENT LOADING
# =============================================================================

class TestFromEnv:

    def test_defaults(self, monkeypatch):
        for name in ["APEX_ENV", "CYCLE_PERIOD_SECONDS", "AUTO_COMPOUND_RATE", "AUTO_COMPOUND_ENABLED"]:
            monkeypatch.delenv(name, raising=False)

        config = FleetConfig.from_env()

        assert config.environment == Environment.DEVELOPMENT
        assert config.scheduler.period_seconds == 60.0
        assert config.scheduler.initial_delay_seconds == 5.0
        assert config.batch.batch_size == 10
        assert config.batch.pause_seconds == pytest.approx(0.1)
        assert config.compound.rate == pytest.approx(0.10)
        assert config.compound.min_amount_usd == pytest.approx(1.00)
        assert config.compound.funding_strategy_id == 1
        assert config.ledger.failover_threshold_usd == -1500.0
        assert config.features.enable_auto_compound is False

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("APEX_ENV", "production")
        monkeypatch.setenv("CYCLE_PERIOD_SECONDS", "30")
        monkeypatch.setenv("AUTO_COMPOUND_RATE", "0.25")
        monkeypatch.setenv("AUTO_COMPOUND_ENABLED", "true")
        monkeypatch.setenv("FUNDING_STRATEGY_ID", "51")

        config = FleetConfig.from_env()

        assert config.environment == Environment.PRODUCTION
        assert config.debug is False
        assert config.monitoring.log_level == "WARNING"
        assert config.scheduler.period_seconds == 30.0
        assert config.compound.rate == pytest.approx(0.25)
        assert config.compound.funding_strategy_id == 51
        assert config.features.enable_auto_compound is True

    def test_unknown_environment_falls_back(self, monkeypatch):
        monkeypatch.setenv("APEX_ENV", "moon")

        assert FleetConfig.from_env().environment == Environment.DEVELOPMENT

    def test_to_dict_hides_secrets(self, monkeypatch):
        monkeypatch.setenv("SENTRY_DSN", "https://key@sentry.example/1")

        data = FleetConfig.from_env().to_dict()

        assert "sentry_dsn" not in data["monitoring"]
        assert data["scheduler"]["period_seconds"] == 60.0

    def test_secrets_manager_reads_vault_key(self, monkeypatch):
        monkeypatch.setenv("VAULT_PRIVATE_KEY", "0xabc")

        secrets = SecretsManager()

        assert secrets.get("VAULT_PRIVATE_KEY") == "0xabc"


# =============================================================================
# TEST: STARTUP VALIDATION
# =============================================================================

class TestValidation:

    def test_default_fleet_is_valid(self):
        validate_config(FleetConfig(), get_default_registry())

    def test_unknown_funding_strategy_is_fatal(self):
        config = FleetConfig()
        config.compound.funding_strategy_id = 999

        with pytest.raises(ConfigurationError) as exc:
            validate_config(config, make_registry(3))

        assert exc.value.details["setting"] == "FUNDING_STRATEGY_ID"

    @pytest.mark.parametrize("rate", [0.0, -0.1, 1.5])
    def test_rate_out_of_range(self, rate):
        config = FleetConfig()
        config.compound.rate = rate

        with pytest.raises(ConfigurationError):
            validate_config(config, make_registry(3))

    def test_non_positive_period(self):
        config = FleetConfig()
        config.scheduler.period_seconds = 0

        with pytest.raises(ConfigurationError):
            validate_config(config, make_registry(3))

    def test_empty_registry(self):
        with pytest.raises(ConfigurationError):
            validate_config(FleetConfig(), StrategyRegistry([]))

    def test_duplicate_strategy_ids(self):
        records = [
            {"id": 1, "address": "0x1", "protocol": "uniswap"},
            {"id": 1, "address": "0x2", "protocol": "aave"},
        ]

        with pytest.raises(ConfigurationError):
            StrategyRegistry.from_records(records)

    def test_auto_compound_without_key_aborts_build(self, monkeypatch):
        monkeypatch.delenv("VAULT_PRIVATE_KEY", raising=False)
        config = FleetConfig()
        config.features.enable_auto_compound = True

        with pytest.raises(ConfigurationError):
            build_fleet_engine(config=config, secrets=SecretsManager(), registry=make_registry(3))
