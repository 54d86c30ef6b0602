"""Tests for risk profiles and environment loading."""

import pytest
from pydantic import ValidationError

from copybot.config import (
    AGGRESSIVE_RISK_CONFIG,
    BotConfig,
    RiskConfig,
    get_risk_profile,
)
from copybot.errors import FatalConfigError

USER = "0x" + "A" * 40
PROXY = "0x" + "b" * 40

ENV_VARS = [
    "USER_ADDRESS",
    "PROXY_WALLET",
    "PRIVATE_KEY",
    "DRY_RUN",
    "RISK_PROFILE",
    "MONITOR_MODE",
    "FETCH_INTERVAL",
    "TOO_OLD_TIMESTAMP",
    "RETRY_LIMIT",
    "RISK_MAX_POSITION_SIZE_USDC",
    "RISK_NOT_A_FIELD",
]


@pytest.fixture
def env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("USER_ADDRESS", USER)
    monkeypatch.setenv("PROXY_WALLET", PROXY)
    return monkeypatch


class TestRiskConfig:
    def test_defaults_are_conservative(self):
        config = RiskConfig()
        assert config.max_position_size_usdc == 10
        assert config.max_total_exposure_usdc == 25
        assert config.min_balance_to_keep_usdc == 3
        assert config.min_time_between_trades_ms == 3000
        assert get_risk_profile("conservative") == config

    def test_aggressive_profile(self):
        assert get_risk_profile("Aggressive") is AGGRESSIVE_RISK_CONFIG
        assert AGGRESSIVE_RISK_CONFIG.max_position_size_usdc == 100

    def test_unknown_profile(self):
        with pytest.raises(FatalConfigError):
            get_risk_profile("yolo")

    def test_rejects_negative_and_unknown_fields(self):
        with pytest.raises(ValidationError):
            RiskConfig(max_total_exposure_usdc=-5)
        with pytest.raises(ValidationError):
            RiskConfig(max_balance_usage_percent=120)
        with pytest.raises(ValidationError):
            RiskConfig(leverage=3)

    def test_immutable(self):
        config = RiskConfig()
        with pytest.raises(ValidationError):
            config.stop_loss_percent = 1

    def test_merged_returns_new_config(self):
        config = RiskConfig()
        merged = config.merged({"copy_ratio_percent": 50})
        assert merged.copy_ratio_percent == 50
        assert config.copy_ratio_percent == 100


class TestBotConfigFromEnv:
    def test_minimal_env(self, env):
        config = BotConfig.from_env()
        assert config.user_address == USER.lower()
        assert config.proxy_wallet == PROXY
        assert config.dry_run is True
        assert config.poller.mode == "fast"
        assert config.retry_limit == 3

    def test_missing_identity(self, env):
        env.delenv("USER_ADDRESS")
        with pytest.raises(FatalConfigError, match="USER_ADDRESS"):
            BotConfig.from_env()

    def test_live_mode_requires_key(self, env):
        env.setenv("DRY_RUN", "false")
        with pytest.raises(FatalConfigError, match="PRIVATE_KEY"):
            BotConfig.from_env()

    def test_invalid_address(self, env):
        env.setenv("PROXY_WALLET", "0x1234")
        with pytest.raises(FatalConfigError):
            BotConfig.from_env()

    def test_slow_monitor(self, env):
        env.setenv("MONITOR_MODE", "slow")
        env.setenv("FETCH_INTERVAL", "5")
        env.setenv("TOO_OLD_TIMESTAMP", "30")
        config = BotConfig.from_env()
        assert config.poller.mode == "slow"
        assert config.poller.interval_seconds == 5
        assert config.poller.max_age_minutes == 30
        assert config.poller.record_history_on_first_run is True

    def test_unknown_monitor_mode(self, env):
        env.setenv("MONITOR_MODE", "turbo")
        with pytest.raises(FatalConfigError):
            BotConfig.from_env()

    def test_profile_with_overrides(self, env):
        env.setenv("RISK_PROFILE", "aggressive")
        env.setenv("RISK_MAX_POSITION_SIZE_USDC", "25")
        config = BotConfig.from_env()
        assert config.risk_profile == "aggressive"
        assert config.risk.max_position_size_usdc == 25
        assert config.risk.max_total_exposure_usdc == 500

    def test_invalid_override(self, env):
        env.setenv("RISK_MAX_POSITION_SIZE_USDC", "lots")
        with pytest.raises(FatalConfigError):
            BotConfig.from_env()
