"""
Copybot runner.

Builds every component from BotConfig and runs the loops:
- poller: detect the target's new trades
- executor: copy pending trades
- position watcher: stop-loss / take-profit on our positions
- daily reset: zero daily PnL at local midnight
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from copybot.alerts import AlertService
from copybot.config import BotConfig
from copybot.execution.executor import TradeExecutor
from copybot.execution.orders import OrderPlacer, create_order_placer
from copybot.monitor.poller import Poller
from copybot.monitor.position_watcher import PositionWatcher
from copybot.polymarket.gateway import PolymarketGateway
from copybot.risk.engine import RiskEngine
from copybot.scheduler import CancellationToken, PeriodicTask
from copybot.storage import CopyBotDB

logger = logging.getLogger(__name__)


def seconds_until_midnight(now: Optional[datetime] = None) -> float:
    """Seconds until the next local midnight."""
    now = now or datetime.now()
    tomorrow = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return (tomorrow - now).total_seconds()


@dataclass
class CopyBot:
    """All wired components plus the shared stop signal."""

    config: BotConfig
    store: CopyBotDB
    gateway: object
    risk_engine: RiskEngine
    alerts: AlertService
    placer: OrderPlacer
    poller: Poller
    executor: TradeExecutor
    position_watcher: PositionWatcher
    token: CancellationToken = field(default_factory=CancellationToken)

    def tasks(self, max_iterations: Optional[int] = None) -> List[PeriodicTask]:
        return [
            PeriodicTask(
                "poller",
                self.poller.poll_once,
                self.config.poller.interval_seconds,
                self.token,
                max_iterations=max_iterations,
            ),
            PeriodicTask(
                "executor",
                self.executor.run_once,
                self.config.executor_interval_seconds,
                self.token,
                max_iterations=max_iterations,
            ),
            PeriodicTask(
                "position_watcher",
                self.position_watcher.check_once,
                self.config.position_check_interval_seconds,
                self.token,
                max_iterations=max_iterations,
            ),
            PeriodicTask(
                "daily_reset",
                self._reset_daily,
                seconds_until_midnight,
                self.token,
                max_iterations=max_iterations,
                run_immediately=False,
            ),
        ]

    async def _reset_daily(self) -> None:
        self.risk_engine.reset_daily_stats()

    async def run(self, max_iterations: Optional[int] = None) -> None:
        """
        Main run loop.

        Args:
            max_iterations: Per-task iteration cap (None = run until stopped)
        """
        mode = "DRY-RUN" if self.config.dry_run else "LIVE"
        logger.info("=" * 60)
        logger.info("COPYBOT STARTING")
        logger.info("=" * 60)
        logger.info(f"Mode: {mode}")
        logger.info(f"Risk profile: {self.config.risk_profile}")
        logger.info(f"Monitor: {self.config.poller.mode}")
        logger.info("=" * 60)

        self.poller.log_startup()
        await self.executor.log_startup()

        tasks = self.tasks(max_iterations)
        if max_iterations:
            # The daily reset sleeps until midnight; bounded runs stop without it
            tasks = [t for t in tasks if t.name != "daily_reset"]

        try:
            await asyncio.gather(*(task.run() for task in tasks))
        finally:
            self.token.cancel()
            logger.info("Copybot stopped")

    def stop(self) -> None:
        self.token.cancel()


def build_bot(
    config: BotConfig,
    gateway=None,
    placer: Optional[OrderPlacer] = None,
    clock=None,
) -> CopyBot:
    """
    Wire every component from config.

    Args:
        config: Bot configuration
        gateway: Overrides the Polymarket gateway (tests)
        placer: Overrides the order placer (tests)
        clock: Epoch-seconds clock shared by time-aware components
    """
    store = CopyBotDB(config.db_path)
    gateway = gateway or PolymarketGateway.from_config(config)
    alerts = AlertService(config.discord_webhook_url)

    risk_engine = RiskEngine(
        config.risk,
        get_balance=lambda: gateway.get_balance(config.proxy_wallet),
        get_positions=lambda: gateway.get_positions(config.proxy_wallet),
        clock=clock,
    )
    placer = placer or create_order_placer(config.dry_run, gateway)

    return CopyBot(
        config=config,
        store=store,
        gateway=gateway,
        risk_engine=risk_engine,
        alerts=alerts,
        placer=placer,
        poller=Poller(store, gateway, config.user_address, config.poller, clock=clock),
        executor=TradeExecutor(
            store,
            gateway,
            risk_engine,
            placer,
            alerts,
            user_address=config.user_address,
            proxy_wallet=config.proxy_wallet,
            retry_limit=config.retry_limit,
        ),
        position_watcher=PositionWatcher(
            store, gateway, risk_engine, alerts, config.proxy_wallet, clock=clock
        ),
    )


async def run_bot(config: BotConfig, max_iterations: Optional[int] = None) -> None:
    bot = build_bot(config)
    await bot.run(max_iterations=max_iterations)
