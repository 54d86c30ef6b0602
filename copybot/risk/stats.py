"""In-memory trade statistics for frequency windows and daily PnL."""

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Dict, Any

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400


def start_of_local_day(now: float) -> float:
    """Epoch seconds of the most recent local midnight."""
    midnight = datetime.fromtimestamp(now).replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.timestamp()


@dataclass
class RollingStats:
    """
    Process-lifetime counters. Resets on restart.

    trade_timestamps is kept in ascending order; entries older than 24h are
    pruned whenever a trade is recorded.
    """

    daily_pnl: float = 0.0
    trade_timestamps: Deque[float] = field(default_factory=deque)
    last_trade_time: float = 0.0

    def record(self, now: float, pnl: float = 0.0) -> None:
        """Record one executed trade. Single synchronous step."""
        self.last_trade_time = now
        self.daily_pnl += pnl
        self.trade_timestamps.append(now)

        cutoff = now - SECONDS_PER_DAY
        while self.trade_timestamps and self.trade_timestamps[0] < cutoff:
            self.trade_timestamps.popleft()

    def trades_since(self, cutoff: float) -> int:
        return sum(1 for t in self.trade_timestamps if t >= cutoff)

    def trades_last_hour(self, now: float) -> int:
        return self.trades_since(now - SECONDS_PER_HOUR)

    def trades_today(self, now: float) -> int:
        return self.trades_since(start_of_local_day(now))

    def reset_daily(self) -> None:
        self.daily_pnl = 0.0

    def snapshot(self, now: float) -> Dict[str, Any]:
        return {
            "daily_pnl": self.daily_pnl,
            "trades_last_hour": self.trades_last_hour(now),
            "trades_today": self.trades_today(now),
            "last_trade_time": self.last_trade_time,
        }
