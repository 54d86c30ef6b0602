"""Stop-loss / take-profit watcher for our own positions."""

import logging
import time
from typing import Callable, Dict, List, Optional

from copybot.alerts import AlertService
from copybot.models import ExitAction, Position, Side, TradeEvent
from copybot.risk.engine import RESOLVED_HIGH, RESOLVED_LOW, RiskEngine
from copybot.storage import CopyBotDB

logger = logging.getLogger(__name__)


def is_resolved(position: Position) -> bool:
    """Settled markets stay listed until redeemed; there is no book to sell into."""
    return (
        position.redeemable
        or position.cur_price >= RESOLVED_HIGH
        or position.cur_price <= RESOLVED_LOW
    )


class PositionWatcher:
    """
    Scans our open positions and queues a SELL for each triggered exit.

    The executor treats the synthetic SELL like any other trade. Once an exit
    has been queued for a market, another one is only queued after the
    position size changes, so an exit the executor skips or abandons is not
    re-queued every cycle.
    """

    def __init__(
        self,
        store: CopyBotDB,
        gateway,
        risk_engine: RiskEngine,
        alerts: AlertService,
        proxy_wallet: str,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.store = store
        self.gateway = gateway
        self.risk_engine = risk_engine
        self.alerts = alerts
        self.proxy_wallet = proxy_wallet
        self._clock = clock or time.time
        self._last_key_ms = 0
        # condition_id -> position size when its last exit was queued
        self._exited: Dict[str, float] = {}

    async def check_once(self) -> List[TradeEvent]:
        """Returns the exit trades queued this cycle."""
        try:
            positions = await self.gateway.get_positions(self.proxy_wallet)
        except Exception as e:
            logger.error(f"❌ Error checking own positions: {e}")
            return []

        held = {position.condition_id for position in positions}
        for condition_id in list(self._exited):
            if condition_id not in held:
                del self._exited[condition_id]

        queued = []
        for position in positions:
            if is_resolved(position):
                logger.debug(f"Skipping resolved position {position.condition_id}")
                continue

            action = self._exit_action(position)
            if action is None:
                continue

            if self.store.has_pending_exit(position.condition_id):
                logger.debug(f"Exit already queued for {position.condition_id}")
                continue

            if self._exited.get(position.condition_id) == position.size:
                logger.debug(
                    f"Exit for {position.condition_id} already attempted at size {position.size}"
                )
                continue

            event = self._build_exit(position, action)
            event_id = self.store.insert_event(event)
            if event_id is None:
                continue

            self._exited[position.condition_id] = position.size
            queued.append(event.model_copy(update={"id": event_id}))
            await self.alerts.notify_position_exit(
                action.value, position.title or position.condition_id, position.percent_pnl
            )
        return queued

    def _exit_action(self, position: Position) -> Optional[ExitAction]:
        if self.risk_engine.check_stop_loss(position):
            return ExitAction.STOP_LOSS
        if self.risk_engine.check_take_profit(position):
            return ExitAction.TAKE_PROFIT
        return None

    def _next_key_ms(self) -> int:
        # Strictly increasing so two exits in the same millisecond get distinct keys
        now_ms = int(self._clock() * 1000)
        self._last_key_ms = max(now_ms, self._last_key_ms + 1)
        return self._last_key_ms

    def _build_exit(self, position: Position, action: ExitAction) -> TradeEvent:
        key_ms = self._next_key_ms()
        return TradeEvent(
            type="TRADE",
            proxy_wallet=self.proxy_wallet,
            timestamp=key_ms // 1000,
            condition_id=position.condition_id,
            asset=position.asset,
            side=Side.SELL,
            size=position.size,
            usdc_size=position.current_value,
            price=position.cur_price,
            transaction_hash=f"{action.value}_{key_ms}",
            title=position.title,
            slug=position.slug,
            event_slug=position.event_slug,
            outcome=position.outcome,
            outcome_index=position.outcome_index,
            processed=False,
        )
