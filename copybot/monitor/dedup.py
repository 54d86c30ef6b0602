"""
Watermark and deduplication for the target's activity feed.

The watermark is the latest timestamp of any trade durably recorded for the
target. It only moves forward.
"""

import logging
from typing import Optional

from copybot.models import TradeEvent
from copybot.storage import CopyBotDB

logger = logging.getLogger(__name__)


class Watermark:
    """Monotone high-water mark over trade timestamps (seconds)."""

    def __init__(self, value: int = 0):
        self._value = value

    @property
    def value(self) -> int:
        return self._value

    def is_new(self, timestamp: int) -> bool:
        return timestamp > self._value

    def advance(self, timestamp: int) -> bool:
        """Move forward to `timestamp`; never backwards. Returns True if moved."""
        if timestamp > self._value:
            self._value = timestamp
            return True
        return False


class Deduplicator:
    """Suppresses trades already seen, by watermark first and hash second."""

    def __init__(
        self,
        store: CopyBotDB,
        wallet: str,
        start_time: Optional[int] = None,
    ):
        """
        Args:
            store: Persisted trade events
            wallet: Target wallet whose events seed the watermark
            start_time: Never accept trades at or before this (epoch seconds)
        """
        self.store = store
        self.wallet = wallet
        self.start_time = start_time
        self.watermark = Watermark()
        self._initialized = False

    def initialize(self) -> None:
        """Seed the watermark from the store (and the start time, if any)."""
        latest = self.store.find_latest(self.wallet)
        if latest is not None:
            self.watermark.advance(latest.timestamp)
            logger.info(f"📚 Loaded last trade timestamp: {latest.timestamp}")
        if self.start_time is not None:
            self.watermark.advance(self.start_time)
        self._initialized = True

    def is_duplicate(self, event: TradeEvent) -> bool:
        if not self._initialized:
            self.initialize()
        if not self.watermark.is_new(event.timestamp):
            return True
        return self.store.find_by_hash(event.transaction_hash) is not None

    def record(self, event: TradeEvent, processed: bool = False) -> Optional[int]:
        """
        Persist `event` and advance the watermark.

        Returns:
            Row id, or None when the hash was already stored
        """
        event_id = self.store.insert_event(event.model_copy(update={"processed": processed}))
        self.watermark.advance(event.timestamp)
        return event_id
