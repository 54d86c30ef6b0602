from copybot.monitor.dedup import Deduplicator, Watermark
from copybot.monitor.poller import Poller
from copybot.monitor.position_watcher import PositionWatcher

__all__ = ["Deduplicator", "Poller", "PositionWatcher", "Watermark"]
