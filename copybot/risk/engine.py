"""
Risk Engine for the copy trader.

This is the GATEKEEPER: no copied trade executes without approval.

evaluate() runs an ordered chain of checks. The chain short-circuits on the
first rejection, and the result names the check that failed. Checks that cap
the amount hand the capped amount to the checks after them.
"""

import inspect
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_DOWN
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from copybot.config import RiskConfig
from copybot.market_time import parse_market_time
from copybot.models import Position, Side
from copybot.risk.stats import RollingStats

logger = logging.getLogger(__name__)

RESOLVED_HIGH = 0.999
RESOLVED_LOW = 0.001

BalanceFetcher = Callable[[], Awaitable[float]]
PositionsFetcher = Callable[[], Awaitable[List[Position]]]


@dataclass(frozen=True)
class RiskCheckResult:
    """
    Result of a risk validation check.

    allowed: Whether the trade may proceed
    reason: Human-readable explanation (set on rejection)
    adjusted_amount: USDC amount after caps, if changed
    blocked_by: Which check caused the block (if blocked)
    """

    allowed: bool
    reason: Optional[str] = None
    adjusted_amount: Optional[float] = None
    blocked_by: Optional[str] = None

    def __repr__(self) -> str:
        if self.allowed:
            if self.adjusted_amount is not None:
                return f"ALLOWED (amount {self.adjusted_amount})"
            return "ALLOWED"
        return f"BLOCKED by {self.blocked_by}: {self.reason}"


def _reject(blocked_by: str, reason: str) -> RiskCheckResult:
    return RiskCheckResult(allowed=False, reason=reason, blocked_by=blocked_by)


_ALLOW = RiskCheckResult(allowed=True)


def round_down_cents(amount: float) -> float:
    """Truncate to cents so a capped amount never rounds above its cap."""
    return float(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_DOWN))


@dataclass
class _Evaluation:
    """Mutable state for one evaluate() call."""

    config: RiskConfig
    side: Side
    amount: float
    balance: Optional[float] = None


class RiskEngine:
    """
    Policy evaluator for copied trades.

    Enforces:
    - Resolved-market and market-window freshness filters
    - Minimum order size and per-order ceiling
    - Daily loss limit and trade frequency caps
    - Slippage and price-moved tolerances
    - Balance reserve and total exposure (BUY only)
    """

    def __init__(
        self,
        config: RiskConfig,
        get_balance: Optional[BalanceFetcher] = None,
        get_positions: Optional[PositionsFetcher] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Initialize risk engine.

        Args:
            config: Active risk configuration
            get_balance: Async callback returning our USDC balance
            get_positions: Async callback returning our open positions
            clock: Returns epoch seconds (injected by tests)
        """
        self._config = config
        self._get_balance = get_balance
        self._get_positions = get_positions
        self._clock = clock or time.time
        self.stats = RollingStats()

        # Last successful fetches, used when the gateway is degraded
        self._last_known_balance: Optional[float] = None
        self._last_known_exposure: Optional[float] = None

        logger.info(f"RiskEngine initialized with config: {config.model_dump()}")

    @property
    def config(self) -> RiskConfig:
        return self._config

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    async def evaluate(
        self,
        side: Union[Side, str],
        amount: float,
        current_price: float,
        original_price: float,
        market_id: str,
        market_title: Optional[str] = None,
        scale: bool = True,
    ) -> RiskCheckResult:
        """
        Validate a copied trade against all risk rules.

        Args:
            side: BUY or SELL
            amount: Target's USDC notional
            current_price: Price we would trade at now
            original_price: Price the target traded at
            market_id: Market condition id
            market_title: Title, used for the market-window check
            scale: Apply copy_ratio_percent. Pass False to re-check an amount
                that is already copy-sized.

        Returns:
            RiskCheckResult with approval/rejection details
        """
        state = _Evaluation(config=self._config, side=Side(side), amount=amount)
        config = state.config

        logger.debug(
            f"Evaluating {state.side.value} ${amount:.2f} on {market_id} "
            f"(current {current_price}, original {original_price})"
        )

        checks = [
            lambda: self.check_market_resolved(current_price),
            lambda: self.check_market_time(market_title, config),
            lambda: self.check_min_trade_amount(state.amount, config),
            lambda: self.check_max_position_size(state.amount, config),
            lambda: self.check_daily_loss_limit(config),
            lambda: self.check_trade_frequency(config),
            lambda: self.check_slippage(current_price, original_price, config),
            lambda: self.check_price_difference(current_price, original_price, config),
            lambda: self._check_balance(state),
            lambda: self._check_exposure(state),
        ]

        for check in checks:
            result = check()
            if inspect.isawaitable(result):
                result = await result
            if not result.allowed:
                logger.info(f"❌ Risk check failed [{result.blocked_by}]: {result.reason}")
                return result
            if result.adjusted_amount is not None:
                state.amount = result.adjusted_amount

        result = self.adjust_trade_amount(
            state.amount, state.side, state.balance, config, scale=scale
        )
        if result.allowed:
            logger.info(
                f"✅ Risk checks passed: ${amount:.2f} -> ${result.adjusted_amount:.2f}"
            )
        else:
            logger.info(f"❌ Risk check failed [{result.blocked_by}]: {result.reason}")
        return result

    # ------------------------------------------------------------------
    # Individual checks
    # ------------------------------------------------------------------

    def check_market_resolved(self, current_price: float) -> RiskCheckResult:
        if current_price >= RESOLVED_HIGH or current_price <= RESOLVED_LOW:
            return _reject(
                "market_resolved",
                f"Market appears resolved (price: {current_price})",
            )
        return _ALLOW

    def check_market_time(
        self, market_title: Optional[str], config: Optional[RiskConfig] = None
    ) -> RiskCheckResult:
        config = config or self._config
        if not config.market_time_check_enabled or not market_title:
            return _ALLOW

        now = datetime.fromtimestamp(self._clock(), tz=timezone.utc)
        info = parse_market_time(market_title, now=now)
        if info is None:
            return _ALLOW

        if info.minutes_remaining < config.min_minutes_before_end:
            return _reject(
                "market_time",
                f"Market closes in {info.minutes_remaining:.1f} min at {info.end_time} "
                f"(minimum {config.min_minutes_before_end} min)",
            )
        return _ALLOW

    def check_min_trade_amount(
        self, amount: float, config: Optional[RiskConfig] = None
    ) -> RiskCheckResult:
        config = config or self._config
        if amount < config.min_trade_amount_usdc:
            return _reject(
                "min_trade_amount",
                f"Amount ${amount:.2f} below minimum ${config.min_trade_amount_usdc}",
            )
        return _ALLOW

    def check_max_position_size(
        self, amount: float, config: Optional[RiskConfig] = None
    ) -> RiskCheckResult:
        """Never rejects; caps the amount to the per-order ceiling."""
        config = config or self._config
        if amount > config.max_position_size_usdc:
            logger.info(
                f"Amount ${amount:.2f} capped to max position ${config.max_position_size_usdc}"
            )
            return RiskCheckResult(
                allowed=True, adjusted_amount=config.max_position_size_usdc
            )
        return _ALLOW

    def check_daily_loss_limit(
        self, config: Optional[RiskConfig] = None
    ) -> RiskCheckResult:
        config = config or self._config
        if self.stats.daily_pnl <= -config.max_daily_loss_usdc:
            return _reject(
                "daily_loss",
                f"Daily loss limit reached: ${self.stats.daily_pnl:.2f} "
                f"(max -${config.max_daily_loss_usdc})",
            )
        return _ALLOW

    def check_trade_frequency(
        self, config: Optional[RiskConfig] = None
    ) -> RiskCheckResult:
        config = config or self._config
        now = self._clock()

        elapsed_ms = (now - self.stats.last_trade_time) * 1000
        if elapsed_ms < config.min_time_between_trades_ms:
            return _reject(
                "trade_frequency",
                f"Too soon since last trade ({elapsed_ms:.0f}ms < "
                f"{config.min_time_between_trades_ms}ms)",
            )

        hourly = self.stats.trades_last_hour(now)
        if hourly >= config.max_trades_per_hour:
            return _reject(
                "trade_frequency",
                f"Hourly trade limit reached ({hourly}/{config.max_trades_per_hour})",
            )

        daily = self.stats.trades_today(now)
        if daily >= config.max_trades_per_day:
            return _reject(
                "trade_frequency",
                f"Daily trade limit reached ({daily}/{config.max_trades_per_day})",
            )
        return _ALLOW

    def check_slippage(
        self,
        current_price: float,
        original_price: float,
        config: Optional[RiskConfig] = None,
    ) -> RiskCheckResult:
        # Prices are probabilities in [0, 1]: one cent is one point.
        config = config or self._config
        slippage = abs(current_price - original_price) * 100
        if slippage > config.max_slippage_percent:
            return _reject(
                "slippage",
                f"Slippage too high: {slippage:.2f}% (max {config.max_slippage_percent}%)",
            )
        return _ALLOW

    def check_price_difference(
        self,
        current_price: float,
        original_price: float,
        config: Optional[RiskConfig] = None,
    ) -> RiskCheckResult:
        config = config or self._config
        change = abs(current_price - original_price) * 100
        if change > config.skip_if_price_changed_percent:
            return _reject(
                "price_changed",
                f"Price changed too much: {change:.2f}% "
                f"(max {config.skip_if_price_changed_percent}%)",
            )
        return _ALLOW

    def check_balance_protection(
        self,
        amount: float,
        side: Side,
        balance: float,
        config: Optional[RiskConfig] = None,
    ) -> RiskCheckResult:
        """Keep the reserve and cap the order to the usable share of balance."""
        config = config or self._config
        if side != Side.BUY:
            return _ALLOW

        available = balance - config.min_balance_to_keep_usdc
        if available <= 0:
            return _reject(
                "balance",
                f"Balance ${balance:.2f} at or below reserve "
                f"${config.min_balance_to_keep_usdc}",
            )

        max_usable = balance * config.max_balance_usage_percent / 100
        capped = min(amount, max_usable, available)
        if capped < amount:
            logger.info(f"Amount ${amount:.2f} capped to ${capped:.2f} by balance protection")
            return RiskCheckResult(allowed=True, adjusted_amount=capped)
        return _ALLOW

    def check_total_exposure(
        self,
        amount: float,
        side: Side,
        exposure: float,
        config: Optional[RiskConfig] = None,
    ) -> RiskCheckResult:
        """Cap the order to the remaining exposure headroom."""
        config = config or self._config
        if side != Side.BUY:
            return _ALLOW

        if exposure + amount <= config.max_total_exposure_usdc:
            return _ALLOW

        headroom = config.max_total_exposure_usdc - exposure
        if headroom >= config.min_trade_amount_usdc:
            logger.info(
                f"Amount ${amount:.2f} capped to ${headroom:.2f} "
                f"(exposure ${exposure:.2f} of ${config.max_total_exposure_usdc})"
            )
            return RiskCheckResult(allowed=True, adjusted_amount=headroom)

        return _reject(
            "total_exposure",
            f"Total exposure limit reached: ${exposure:.2f} + ${amount:.2f} "
            f"> ${config.max_total_exposure_usdc}",
        )

    async def _check_balance(self, state: _Evaluation) -> RiskCheckResult:
        if state.side != Side.BUY:
            return _ALLOW

        balance = await self._fetch_balance()
        if balance is None:
            return _reject("balance", "Failed to check balance")

        state.balance = balance
        return self.check_balance_protection(
            state.amount, state.side, balance, state.config
        )

    async def _check_exposure(self, state: _Evaluation) -> RiskCheckResult:
        if state.side != Side.BUY:
            return _ALLOW

        exposure = await self._fetch_exposure()
        if exposure is None:
            logger.warning("Exposure unknown, skipping total exposure check")
            return _ALLOW

        return self.check_total_exposure(
            state.amount, state.side, exposure, state.config
        )

    # ------------------------------------------------------------------
    # Amount adjustment
    # ------------------------------------------------------------------

    def adjust_trade_amount(
        self,
        amount: float,
        side: Side,
        balance: Optional[float],
        config: Optional[RiskConfig] = None,
        scale: bool = True,
    ) -> RiskCheckResult:
        """
        Apply the copy ratio, re-apply the ceiling and re-clamp to balance.

        The result is truncated to cents.
        """
        config = config or self._config

        adjusted = amount * config.copy_ratio_percent / 100 if scale else amount
        adjusted = round_down_cents(adjusted)
        if adjusted < config.min_trade_amount_usdc:
            return _reject(
                "min_trade_amount",
                f"Adjusted amount ${adjusted:.2f} below minimum after copy ratio",
            )

        adjusted = min(adjusted, config.max_position_size_usdc)

        if side == Side.BUY and balance is not None:
            available = balance - config.min_balance_to_keep_usdc
            max_usable = balance * config.max_balance_usage_percent / 100
            adjusted = round_down_cents(min(adjusted, available, max_usable))
            if adjusted < config.min_trade_amount_usdc:
                return _reject(
                    "balance",
                    f"Insufficient funds after adjustments (${adjusted:.2f})",
                )

        return RiskCheckResult(allowed=True, adjusted_amount=round_down_cents(adjusted))

    # ------------------------------------------------------------------
    # Position exits
    # ------------------------------------------------------------------

    def check_stop_loss(self, position: Position) -> bool:
        """True if the position's unrealized loss reached the stop-loss."""
        if not position.percent_pnl:
            return False
        if position.percent_pnl <= -self._config.stop_loss_percent:
            logger.warning(
                f"🛑 Stop-loss triggered for {position.title or position.condition_id}: "
                f"{position.percent_pnl:.2f}%"
            )
            return True
        return False

    def check_take_profit(self, position: Position) -> bool:
        """True if the position's unrealized gain reached the take-profit."""
        if not position.percent_pnl:
            return False
        if position.percent_pnl >= self._config.take_profit_percent:
            logger.info(
                f"🎯 Take-profit triggered for {position.title or position.condition_id}: "
                f"{position.percent_pnl:.2f}%"
            )
            return True
        return False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def record_trade(self, pnl: float = 0.0) -> None:
        """Record an executed trade for frequency and daily-loss tracking."""
        self.stats.record(self._clock(), pnl)
        logger.debug(
            f"Trade recorded (pnl ${pnl:.2f}, daily pnl ${self.stats.daily_pnl:.2f})"
        )

    def reset_daily_stats(self) -> None:
        self.stats.reset_daily()
        logger.info("📊 Daily risk stats reset")

    def update_config(self, updates: Dict[str, Any]) -> RiskConfig:
        """
        Validate and merge a partial configuration.

        Evaluations already in flight keep the config they started with.

        Raises:
            pydantic.ValidationError: if the merged config is invalid
        """
        self._config = self._config.merged(updates)
        logger.info(f"Risk config updated: {updates}")
        return self._config

    async def get_risk_status(self) -> Dict[str, Any]:
        """Snapshot of config, stats, balance and exposure."""
        balance = await self._fetch_balance()
        positions = await self._fetch_positions()
        exposure = (
            sum(p.current_value for p in positions) if positions is not None else None
        )
        return {
            "config": self._config.model_dump(),
            "stats": self.stats.snapshot(self._clock()),
            "balance": balance,
            "positions": positions or [],
            "total_exposure": exposure,
        }

    # ------------------------------------------------------------------
    # Collaborator fetches with last-known fallback
    # ------------------------------------------------------------------

    async def _fetch_balance(self) -> Optional[float]:
        if self._get_balance is None:
            return self._last_known_balance
        try:
            balance = await self._get_balance()
        except Exception as e:
            logger.warning(
                f"Balance fetch failed, using last known ({self._last_known_balance}): {e}"
            )
            return self._last_known_balance
        self._last_known_balance = balance
        return balance

    async def _fetch_positions(self) -> Optional[List[Position]]:
        if self._get_positions is None:
            return None
        try:
            positions = await self._get_positions()
        except Exception as e:
            logger.warning(f"Positions fetch failed: {e}")
            return None
        self._last_known_exposure = sum(p.current_value for p in positions)
        return positions

    async def _fetch_exposure(self) -> Optional[float]:
        """Sum of current_value across our positions, or the last known sum."""
        positions = await self._fetch_positions()
        if positions is None and self._last_known_exposure is not None:
            logger.warning(f"Using last known exposure ${self._last_known_exposure:.2f}")
        return self._last_known_exposure
