"""
Copybot configuration.

RiskConfig is the policy parameter set evaluated by the RiskEngine. It ships as
two named profiles:
- conservative: sized for a ~$30 account (the plain RiskConfig() defaults)
- aggressive: larger caps, looser tolerances, higher trade frequency

BotConfig carries identity, cadence, storage and execution settings and is
loaded from the environment by BotConfig.from_env().
"""

import os
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from copybot.errors import FatalConfigError

DEFAULT_CLOB_HTTP_URL = "https://clob.polymarket.com"
DEFAULT_DATA_API_URL = "https://data-api.polymarket.com"
DEFAULT_RPC_URL = "https://polygon-rpc.com"
# USDC.e on Polygon (the collateral token Polymarket settles in)
DEFAULT_USDC_CONTRACT = "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174"
POLYGON_CHAIN_ID = 137


class RiskConfig(BaseModel):
    """
    Risk policy parameters. Immutable: replace wholesale, never mutate.

    Percent fields are plain percentages (5 means 5%).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Position limits
    max_position_size_usdc: float = Field(
        10.0, ge=0, description="Max USDC for a single copied order"
    )
    max_total_exposure_usdc: float = Field(
        25.0, ge=0, description="Max USDC across all open positions"
    )
    min_trade_amount_usdc: float = Field(
        0.1, ge=0, description="Smallest order worth copying"
    )

    # Loss limits
    max_daily_loss_usdc: float = Field(6.0, ge=0, description="Daily loss cap in USDC")
    max_daily_loss_percent: float = Field(
        20.0, ge=0, description="Daily loss cap as % of balance (reported only)"
    )
    stop_loss_percent: float = Field(
        25.0, ge=0, description="Sell a position at this % unrealized loss"
    )

    # Profit targets
    take_profit_percent: float = Field(
        40.0, ge=0, description="Sell a position at this % unrealized gain"
    )

    # Slippage & price protection (prices live in [0, 1], so 1 point = 1%)
    max_slippage_percent: float = Field(
        5.0, ge=0, description="Max price points between observed and current price"
    )
    max_price_difference_percent: float = Field(
        10.0, ge=0, description="Max deviation from the target's price (reported only)"
    )
    skip_if_price_changed_percent: float = Field(
        15.0, ge=0, description="Skip the copy if the price moved more than this"
    )

    # Trade frequency
    min_time_between_trades_ms: int = Field(
        3000, ge=0, description="Minimum spacing between executed trades"
    )
    max_trades_per_hour: int = Field(15, ge=0, description="Hourly trade cap")
    max_trades_per_day: int = Field(50, ge=0, description="Daily trade cap")

    # Balance protection
    min_balance_to_keep_usdc: float = Field(
        3.0, ge=0, description="Reserve that is never spent"
    )
    max_balance_usage_percent: float = Field(
        90.0, ge=0, le=100, description="Max share of balance usable by one order"
    )

    # Copy trading
    copy_ratio_percent: float = Field(
        100.0, gt=0, description="Share of the target's notional to copy"
    )

    # Market freshness
    market_time_check_enabled: bool = Field(
        True, description="Reject markets whose time window is about to close"
    )
    min_minutes_before_end: float = Field(
        5.0, ge=0, description="Minutes that must remain before the window closes"
    )

    def merged(self, updates: Dict[str, object]) -> "RiskConfig":
        """Return a validated copy with `updates` applied."""
        return RiskConfig.model_validate({**self.model_dump(), **updates})


CONSERVATIVE_RISK_CONFIG = RiskConfig()

AGGRESSIVE_RISK_CONFIG = RiskConfig(
    max_position_size_usdc=100.0,
    max_total_exposure_usdc=500.0,
    min_trade_amount_usdc=1.0,
    max_daily_loss_usdc=100.0,
    max_daily_loss_percent=50.0,
    stop_loss_percent=50.0,
    take_profit_percent=100.0,
    max_slippage_percent=10.0,
    max_price_difference_percent=20.0,
    skip_if_price_changed_percent=25.0,
    min_time_between_trades_ms=500,
    max_trades_per_hour=120,
    max_trades_per_day=1000,
    min_balance_to_keep_usdc=1.0,
    max_balance_usage_percent=100.0,
    copy_ratio_percent=100.0,
    min_minutes_before_end=2.0,
)

RISK_PROFILES: Dict[str, RiskConfig] = {
    "conservative": CONSERVATIVE_RISK_CONFIG,
    "aggressive": AGGRESSIVE_RISK_CONFIG,
}


def get_risk_profile(name: str) -> RiskConfig:
    """Look up a named risk profile."""
    try:
        return RISK_PROFILES[name.lower()]
    except KeyError:
        raise FatalConfigError(
            f"Unknown risk profile '{name}'. Choose one of: {', '.join(RISK_PROFILES)}"
        )


class PollerConfig(BaseModel):
    """
    Poller cadence and staleness policy.

    The instant-copy and catch-up monitors are the same Poller with different
    settings; see fast_poller_config() and slow_poller_config().
    """

    model_config = ConfigDict(frozen=True)

    mode: str = Field("fast", description="Preset name, for logging")
    interval_seconds: float = Field(0.2, gt=0, description="Delay between polls")
    activity_limit: int = Field(20, gt=0, description="Activities fetched per poll")
    max_age_minutes: Optional[float] = Field(
        None, description="Silently drop trades older than this (None = keep all)"
    )
    ignore_before_start: bool = Field(
        True, description="Never copy trades made before the poller started"
    )
    record_history_on_first_run: bool = Field(
        False, description="First poll stores in-window trades as already processed"
    )
    sync_target_positions: bool = Field(
        False, description="Upsert the target's positions on every poll"
    )


def fast_poller_config() -> PollerConfig:
    """Low-latency preset: 200ms polling, only trades after startup."""
    return PollerConfig(mode="fast", interval_seconds=0.2, activity_limit=20)


def slow_poller_config(
    interval_seconds: float = 1.0, too_old_minutes: float = 60.0
) -> PollerConfig:
    """Catch-up preset: configurable interval with a staleness cutoff."""
    return PollerConfig(
        mode="slow",
        interval_seconds=interval_seconds,
        activity_limit=50,
        max_age_minutes=too_old_minutes,
        ignore_before_start=False,
        record_history_on_first_run=True,
        sync_target_positions=True,
    )


class BotConfig(BaseModel):
    """Process-level configuration."""

    # Identity (required)
    user_address: str = Field(..., description="Target trader's wallet to copy")
    proxy_wallet: str = Field(..., description="Our Polymarket proxy wallet")
    private_key: Optional[str] = Field(
        None, description="Signer key for the CLOB client (live mode only)"
    )

    # Venue endpoints
    clob_http_url: str = Field(DEFAULT_CLOB_HTTP_URL)
    data_api_url: str = Field(DEFAULT_DATA_API_URL)
    rpc_url: str = Field(DEFAULT_RPC_URL)
    usdc_contract_address: str = Field(DEFAULT_USDC_CONTRACT)
    chain_id: int = Field(POLYGON_CHAIN_ID)
    signature_type: int = Field(
        2, description="CLOB signature type (2 = browser proxy wallet)"
    )

    # Cadence
    poller: PollerConfig = Field(default_factory=fast_poller_config)
    executor_interval_seconds: float = Field(1.0, gt=0)
    position_check_interval_seconds: float = Field(60.0, gt=0)

    # Execution
    retry_limit: int = Field(3, ge=1, description="Attempts before a trade is abandoned")
    dry_run: bool = Field(True, description="Log orders instead of placing them")

    # Risk
    risk_profile: str = Field("conservative")
    risk: RiskConfig = Field(default_factory=RiskConfig)

    # Storage
    db_path: str = Field("copybot.db", description="SQLite database path")

    # Alerts
    discord_webhook_url: Optional[str] = Field(None)

    @field_validator("user_address", "proxy_wallet")
    @classmethod
    def validate_address(cls, v: str) -> str:
        """Validate Ethereum address format"""
        v = v.strip()
        if not v.startswith("0x") or len(v) != 42:
            raise ValueError(f"Invalid wallet address: {v!r}")
        if not all(c in "0123456789abcdefABCDEF" for c in v[2:]):
            raise ValueError(f"Wallet address must be hex: {v!r}")
        return v.lower()

    @classmethod
    def from_env(cls) -> "BotConfig":
        """
        Load config from environment variables.

        Raises:
            FatalConfigError: identity missing, live mode without a key,
                or any value fails validation
        """
        user_address = os.getenv("USER_ADDRESS")
        proxy_wallet = os.getenv("PROXY_WALLET")
        if not user_address:
            raise FatalConfigError("USER_ADDRESS is not defined")
        if not proxy_wallet:
            raise FatalConfigError("PROXY_WALLET is not defined")

        dry_run = os.getenv("DRY_RUN", "true").lower() in ("true", "1", "yes")
        private_key = os.getenv("PRIVATE_KEY") or None
        if not dry_run and not private_key:
            raise FatalConfigError("PRIVATE_KEY is required when DRY_RUN is false")

        profile_name = os.getenv("RISK_PROFILE", "conservative")
        risk = get_risk_profile(profile_name)
        overrides = _risk_overrides_from_env()

        try:
            if overrides:
                risk = risk.merged(overrides)

            mode = os.getenv("MONITOR_MODE", "fast").lower()
            if mode == "slow":
                poller = slow_poller_config(
                    interval_seconds=float(os.getenv("FETCH_INTERVAL", "1")),
                    too_old_minutes=float(os.getenv("TOO_OLD_TIMESTAMP", "60")),
                )
            elif mode == "fast":
                poller = fast_poller_config()
            else:
                raise FatalConfigError(f"MONITOR_MODE must be 'fast' or 'slow', got '{mode}'")

            return cls(
                user_address=user_address,
                proxy_wallet=proxy_wallet,
                private_key=private_key,
                clob_http_url=os.getenv("CLOB_HTTP_URL", DEFAULT_CLOB_HTTP_URL),
                data_api_url=os.getenv("DATA_API_URL", DEFAULT_DATA_API_URL),
                rpc_url=os.getenv("RPC_URL", DEFAULT_RPC_URL),
                usdc_contract_address=os.getenv(
                    "USDC_CONTRACT_ADDRESS", DEFAULT_USDC_CONTRACT
                ),
                signature_type=int(os.getenv("SIGNATURE_TYPE", "2")),
                poller=poller,
                executor_interval_seconds=float(os.getenv("EXECUTOR_INTERVAL", "1")),
                position_check_interval_seconds=float(
                    os.getenv("POSITION_CHECK_INTERVAL", "60")
                ),
                retry_limit=int(os.getenv("RETRY_LIMIT", "3")),
                dry_run=dry_run,
                risk_profile=profile_name.lower(),
                risk=risk,
                db_path=os.getenv("DB_PATH", "copybot.db"),
                discord_webhook_url=os.getenv("DISCORD_WEBHOOK_URL") or None,
            )
        except (ValidationError, ValueError) as e:
            raise FatalConfigError(f"Invalid configuration: {e}") from e


def _risk_overrides_from_env() -> Dict[str, str]:
    """Collect RISK_<FIELD> overrides, e.g. RISK_MAX_POSITION_SIZE_USDC=20."""
    overrides = {}
    for name in RiskConfig.model_fields:
        value = os.getenv(f"RISK_{name.upper()}")
        if value is not None and value != "":
            overrides[name] = value
    return overrides
