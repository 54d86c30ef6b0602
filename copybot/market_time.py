"""
Market time window parsing.

Short-horizon markets carry their trading window in the title, e.g.
"Bitcoin Up or Down - October 17, 6:30PM-6:45PM ET". parse_market_time()
pulls out the window end and reports how many minutes remain.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

EASTERN = ZoneInfo("America/New_York")

# Minutes below which a negative remainder is taken to mean the window ends
# after the next midnight.
WRAPAROUND_THRESHOLD_MINUTES = -60.0

_WINDOW_PATTERN = re.compile(
    r"(\d{1,2})(?::(\d{2}))?\s*([AP]M)\s*-\s*(\d{1,2})(?::(\d{2}))?\s*([AP]M)\s*ET\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class MarketTimeInfo:
    """Parsed window end."""

    minutes_remaining: float
    end_time: str  # normalized, e.g. "6:45PM ET"


def _to_24h(hour: int, meridiem: str) -> int:
    hour = hour % 12
    if meridiem.upper() == "PM":
        hour += 12
    return hour


def parse_market_time(
    title: str, now: Optional[datetime] = None
) -> Optional[MarketTimeInfo]:
    """
    Extract the window end from a market title.

    Args:
        title: Market title
        now: Reference time (aware; naive is treated as UTC). Defaults to now.

    Returns:
        MarketTimeInfo, or None when the title carries no time window.
    """
    if not title:
        return None

    match = _WINDOW_PATTERN.search(title)
    if not match:
        return None

    end_hour = int(match.group(4))
    end_minute = int(match.group(5) or 0)
    meridiem = match.group(6).upper()
    if not 1 <= end_hour <= 12 or end_minute > 59:
        return None

    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now_et = now.astimezone(EASTERN)

    end_et = now_et.replace(
        hour=_to_24h(end_hour, meridiem),
        minute=end_minute,
        second=0,
        microsecond=0,
    )
    minutes_remaining = (end_et - now_et) / timedelta(minutes=1)
    if minutes_remaining < WRAPAROUND_THRESHOLD_MINUTES:
        minutes_remaining += 24 * 60

    return MarketTimeInfo(
        minutes_remaining=minutes_remaining,
        end_time=f"{end_hour}:{end_minute:02d}{meridiem} ET",
    )
