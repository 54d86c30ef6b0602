"""
Target activity poller.

One component for both monitor modes; PollerConfig decides cadence, fetch
limit and staleness policy (see fast_poller_config / slow_poller_config).
"""

import logging
import time
from typing import Callable, List, Optional

from copybot.config import PollerConfig
from copybot.errors import DataFetchDegradation
from copybot.models import TradeEvent
from copybot.monitor.dedup import Deduplicator
from copybot.storage import CopyBotDB

logger = logging.getLogger(__name__)


class Poller:
    """Fetches the target's recent activity and queues new trades."""

    def __init__(
        self,
        store: CopyBotDB,
        gateway,
        user_address: str,
        config: PollerConfig,
        on_trade: Optional[Callable[[TradeEvent], None]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Args:
            store: Trade event queue
            gateway: Provides get_activity() and get_positions()
            user_address: Target wallet
            config: Cadence and staleness policy
            on_trade: Called with each accepted trade
            clock: Returns epoch seconds (injected by tests)
        """
        self.store = store
        self.gateway = gateway
        self.user_address = user_address
        self.config = config
        self.on_trade = on_trade
        self._clock = clock or time.time

        self.start_time = int(self._clock())
        self.dedup = Deduplicator(
            store,
            user_address,
            start_time=self.start_time if config.ignore_before_start else None,
        )
        self._first_run = True

    def log_startup(self) -> None:
        logger.info(f"📡 Trade Monitor Starting ({self.config.mode} mode)...")
        logger.info(f"   👤 Target User: {self.user_address}")
        logger.info(f"   ⏱️  Fetch Interval: {self.config.interval_seconds}s")
        if self.config.max_age_minutes is not None:
            logger.info(f"   📅 Too Old Threshold: {self.config.max_age_minutes} minutes")

    def filter_new(self, activities: List[TradeEvent]) -> List[TradeEvent]:
        """Drop non-trades, stale, already-seen and pre-start trades. Oldest first."""
        now = self._clock()
        cutoff = None
        if self.config.max_age_minutes is not None:
            cutoff = now - self.config.max_age_minutes * 60

        seen_hashes = set()
        fresh = []
        for event in activities:
            if not event.is_trade:
                continue
            if cutoff is not None and event.timestamp < cutoff:
                continue
            if self.config.ignore_before_start and event.timestamp < self.start_time:
                continue
            if event.transaction_hash in seen_hashes:
                continue
            if self.dedup.is_duplicate(event):
                continue
            seen_hashes.add(event.transaction_hash)
            fresh.append(event)

        return sorted(fresh, key=lambda e: e.timestamp)

    async def poll_once(self) -> List[TradeEvent]:
        """
        One poll cycle.

        Returns:
            Trades queued for execution this cycle
        """
        try:
            activities = await self.gateway.get_activity(
                self.user_address, self.config.activity_limit
            )
        except DataFetchDegradation as e:
            logger.warning(f"Activity fetch failed: {e}")
            return []

        history_only = self._first_run and self.config.record_history_on_first_run
        accepted = []
        for event in self.filter_new(activities):
            event_id = self.dedup.record(event, processed=history_only)
            if event_id is None or history_only:
                continue

            stored = event.model_copy(update={"id": event_id})
            accepted.append(stored)
            logger.info(
                f"🔔 NEW TRADE DETECTED: {event.side.value} ${event.usdc_size:.2f} "
                f"@ {event.price} | {event.title}"
            )
            if self.on_trade is not None:
                self.on_trade(stored)

        if accepted:
            logger.info(f"📊 Found {len(accepted)} new trade(s) to copy")

        if self.config.sync_target_positions:
            await self._sync_positions()

        if self._first_run:
            self._first_run = False
            if history_only:
                logger.info("✅ Initial sync complete. Now monitoring for new trades...")

        return accepted

    async def _sync_positions(self) -> None:
        try:
            positions = await self.gateway.get_positions(self.user_address)
        except DataFetchDegradation as e:
            logger.warning(f"Target position sync failed: {e}")
            return
        for position in positions:
            self.store.upsert_position(position)
        logger.debug(f"Synced {len(positions)} target position(s)")
