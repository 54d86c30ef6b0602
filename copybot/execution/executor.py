"""
Trade executor.

Drains the pending-trade queue: prices each trade against the live book, asks
the RiskEngine for a verdict, decides buy/sell/merge, and places the order.
Every outcome is written back through the state machine in
copybot.execution.state, so an event is executed at most once.
"""

import asyncio
import logging
from typing import List, Optional, Tuple

from copybot.alerts import AlertService
from copybot.errors import PolicyRejection
from copybot.execution.orders import OrderContext, OrderPlacer, OrderResult
from copybot.execution.state import (
    TradeState,
    Transition,
    on_failure,
    on_rejection,
    on_success,
)
from copybot.models import Position, Side, TradeCondition, TradeEvent
from copybot.risk.engine import RiskEngine
from copybot.storage import CopyBotDB

logger = logging.getLogger(__name__)


def determine_condition(
    event: TradeEvent,
    my_position: Optional[Position],
    target_position: Optional[Position],
) -> TradeCondition:
    """Merge when the target has left a market we still hold, else follow the side."""
    if event.is_trade and target_position is None and my_position is not None:
        return TradeCondition.MERGE
    return TradeCondition.BUY if event.side == Side.BUY else TradeCondition.SELL


def find_position(positions: List[Position], condition_id: str) -> Optional[Position]:
    for position in positions:
        if position.condition_id == condition_id:
            return position
    return None


def realized_pnl(result: OrderResult, my_position: Optional[Position]) -> float:
    """PnL locked in by a sell against our average entry; buys realize nothing."""
    if result.side != Side.SELL or my_position is None:
        return 0.0
    return (result.price - my_position.avg_price) * result.amount


class TradeExecutor:
    """Executes pending copied trades one at a time, oldest first."""

    def __init__(
        self,
        store: CopyBotDB,
        gateway,
        risk_engine: RiskEngine,
        placer: OrderPlacer,
        alerts: AlertService,
        user_address: str,
        proxy_wallet: str,
        retry_limit: int = 3,
    ):
        """
        Args:
            store: Trade event queue
            gateway: Provides get_order_book() and get_positions()
            risk_engine: Policy gate
            placer: Order placement adapter
            alerts: Notification sink
            user_address: Target trader's wallet
            proxy_wallet: Our wallet
            retry_limit: Attempts before a trade is abandoned
        """
        self.store = store
        self.gateway = gateway
        self.risk_engine = risk_engine
        self.placer = placer
        self.alerts = alerts
        self.user_address = user_address
        self.proxy_wallet = proxy_wallet
        self.retry_limit = retry_limit

    async def log_startup(self) -> None:
        logger.info("🚀 Trade Executor Starting...")
        logger.info(f"   💼 My Wallet: {self.proxy_wallet}")
        logger.info(f"   👤 Target User: {self.user_address}")
        logger.info(f"   🔄 Retry Limit: {self.retry_limit}")
        logger.info(f"   🔧 Placer: {self.placer.get_name()}")

        status = await self.risk_engine.get_risk_status()
        balance = status["balance"]
        exposure = status["total_exposure"]
        logger.info(
            f"📊 Balance: {'unknown' if balance is None else f'${balance:.2f}'} | "
            f"Exposure: {'unknown' if exposure is None else f'${exposure:.2f}'} | "
            f"Open positions: {len(status['positions'])}"
        )

    async def run_once(self) -> List[Tuple[TradeEvent, TradeState]]:
        """Process every pending event once, in insertion order."""
        pending = self.store.find_pending(self.retry_limit)
        if pending:
            logger.info(f"💥 {len(pending)} pending trade(s)")

        outcomes = []
        for event in pending:
            state = await self.process(event)
            outcomes.append((event, state))
        return outcomes

    async def process(self, event: TradeEvent) -> TradeState:
        """Run one event through the state machine and persist the result."""
        logger.info(
            f"📋 Processing {event.side.value} ${event.usdc_size:.2f} @ {event.price} | "
            f"{event.title} ({event.transaction_hash})"
        )
        try:
            transition = await self._execute(event)
        except PolicyRejection as e:
            transition = on_rejection(event.retry_count)
            await self.alerts.notify_trade_skipped(
                event.title, event.side.value, event.usdc_size, f"[{e.blocked_by}] {e.reason}"
            )
        except Exception as e:
            transition = on_failure(event.retry_count, self.retry_limit)
            if transition.state == TradeState.ABANDONED:
                await self.alerts.notify_trade_abandoned(event.title, transition.retry_count, str(e))
            else:
                logger.warning(
                    f"🔄 Trade failed, will retry ({transition.retry_count}/{self.retry_limit}): {e}",
                    exc_info=True,
                )

        self.store.update_event_state(event.id, transition.retry_count, transition.processed)
        return transition.state

    async def _execute(self, event: TradeEvent) -> Transition:
        current_price = await self._current_price(event)

        verdict = await self.risk_engine.evaluate(
            side=event.side,
            amount=event.usdc_size,
            current_price=current_price,
            original_price=event.price,
            market_id=event.condition_id,
            market_title=event.title,
        )
        if not verdict.allowed:
            raise PolicyRejection(verdict.reason or "rejected", verdict.blocked_by or "risk")

        my_positions, target_positions = await asyncio.gather(
            self.gateway.get_positions(self.proxy_wallet),
            self.gateway.get_positions(self.user_address),
        )
        my_position = find_position(my_positions, event.condition_id)
        target_position = find_position(target_positions, event.condition_id)

        condition = determine_condition(event, my_position, target_position)
        logger.info(f"🎯 Trade Condition: {condition.value.upper()}")

        result = await self.placer.place_order(
            condition,
            OrderContext(
                event=event,
                amount=verdict.adjusted_amount,
                price=current_price,
                my_position=my_position,
                target_position=target_position,
            ),
        )

        self.risk_engine.record_trade(realized_pnl(result, my_position))
        await self.alerts.notify_trade_executed(
            event.title, condition.value, result.amount, result.price, result.dry_run
        )
        return on_success(event.retry_count)

    async def _current_price(self, event: TradeEvent) -> float:
        """Best ask for BUY, best bid for SELL; observed price on any failure."""
        try:
            book = await self.gateway.get_order_book(event.asset)
        except Exception as e:
            logger.warning(f"⚠️ Could not fetch current price, using original price: {e}")
            return event.price

        price = book.price_for(event.side)
        if price is None:
            logger.warning("⚠️ Empty order book side, using original price")
            return event.price
        return price
