"""
Order placement adapters.

Two implementations behind one interface:
- DryRunOrderPlacer: logs the order it would place, no network calls
- ClobOrderPlacer: real Polymarket CLOB execution (FOK market orders)

DRY_RUN selects the implementation; the live client is only touched when
DRY_RUN is false.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from copybot.errors import PolicyRejection, TransientExecutionError
from copybot.models import Position, Side, TradeCondition, TradeEvent
from copybot.polymarket.clob import is_filled

logger = logging.getLogger(__name__)

# Below this many shares there is nothing worth selling
MIN_SHARES = 0.01


@dataclass
class OrderContext:
    """Everything a placer needs to size one copied order."""

    event: TradeEvent
    amount: float  # risk-adjusted USDC notional
    price: float  # current market price
    my_position: Optional[Position] = None
    target_position: Optional[Position] = None


@dataclass
class OrderResult:
    """
    Standardized order result from any placer.

    amount is USDC for BUY and shares for SELL, as submitted.
    """

    success: bool
    condition: TradeCondition
    side: Side
    asset: str
    amount: float
    price: float
    order_id: Optional[str] = None
    error: Optional[str] = None
    dry_run: bool = False
    timestamp: float = field(default_factory=time.time)


def size_order(condition: TradeCondition, ctx: OrderContext) -> Tuple[Side, float]:
    """
    Decide side and size for a copied order.

    - buy: spend the risk-adjusted USDC amount
    - sell: sell our shares in the proportion the target sold of its own
      position; everything for synthetic exits or when the target's
      remaining position is unknown
    - merge: the target has fully exited, sell everything

    Raises:
        PolicyRejection: nothing to sell
    """
    if condition == TradeCondition.BUY:
        return Side.BUY, ctx.amount

    if ctx.my_position is None or ctx.my_position.size < MIN_SHARES:
        raise PolicyRejection(
            f"No position to {condition.value} in {ctx.event.condition_id}",
            blocked_by="no_position",
        )

    shares = ctx.my_position.size
    if condition == TradeCondition.SELL and not ctx.event.is_synthetic_exit:
        target = ctx.target_position
        if target is not None and ctx.event.size > 0:
            ratio = ctx.event.size / (target.size + ctx.event.size)
            shares = ctx.my_position.size * min(ratio, 1.0)

    shares = round(shares, 2)
    if shares < MIN_SHARES:
        raise PolicyRejection(
            f"Sell size {shares} below minimum {MIN_SHARES} shares",
            blocked_by="min_sell_size",
        )
    return Side.SELL, shares


class OrderPlacer(ABC):
    """
    Abstract order placer.

    All placers (dry-run or live) must implement this interface
    to ensure parity and substitutability.
    """

    async def place_order(
        self, condition: TradeCondition, ctx: OrderContext
    ) -> OrderResult:
        """
        Size and place one copied order.

        Raises:
            PolicyRejection: order can't be sized (terminal)
            TransientExecutionError: placement failed (retryable)
        """
        side, amount = size_order(condition, ctx)
        logger.info(
            f"Placing {condition.value.upper()} {side.value} "
            f"{'$' if side == Side.BUY else ''}{amount:.2f}"
            f"{'' if side == Side.BUY else ' shares'} on {ctx.event.asset} @ {ctx.price}"
        )
        return await self._submit(condition, side, amount, ctx)

    @abstractmethod
    async def _submit(
        self, condition: TradeCondition, side: Side, amount: float, ctx: OrderContext
    ) -> OrderResult:
        pass

    @abstractmethod
    def get_name(self) -> str:
        """Return placer name for logging."""
        pass


class DryRunOrderPlacer(OrderPlacer):
    """Logs orders instead of placing them."""

    def __init__(self):
        self.orders: List[OrderResult] = []

    async def _submit(
        self, condition: TradeCondition, side: Side, amount: float, ctx: OrderContext
    ) -> OrderResult:
        result = OrderResult(
            success=True,
            condition=condition,
            side=side,
            asset=ctx.event.asset,
            amount=amount,
            price=ctx.price,
            order_id=f"dry_run_{len(self.orders) + 1}",
            dry_run=True,
        )
        self.orders.append(result)
        logger.info(f"🧪 DRY RUN: order not sent ({result.order_id})")
        return result

    def get_name(self) -> str:
        return "DryRunOrderPlacer"


class ClobOrderPlacer(OrderPlacer):
    """
    Live placer for real Polymarket CLOB execution.

    NOTE: This is the ONLY place where real orders are sent.
    """

    def __init__(self, gateway):
        """
        Args:
            gateway: PolymarketGateway with an authenticated CLOB client
        """
        self.gateway = gateway

    async def _submit(
        self, condition: TradeCondition, side: Side, amount: float, ctx: OrderContext
    ) -> OrderResult:
        try:
            response = await self.gateway.place_market_order(ctx.event.asset, amount, side)
        except Exception as e:
            raise TransientExecutionError(f"Order placement failed: {e}") from e

        if not is_filled(response):
            raise TransientExecutionError(f"Order not filled: {response}")

        return OrderResult(
            success=True,
            condition=condition,
            side=side,
            asset=ctx.event.asset,
            amount=amount,
            price=ctx.price,
            order_id=response.get("orderID"),
        )

    def get_name(self) -> str:
        return "ClobOrderPlacer"


def create_order_placer(dry_run: bool, gateway=None) -> OrderPlacer:
    """
    Factory function to create the placer selected by DRY_RUN.

    Args:
        dry_run: Log orders only
        gateway: PolymarketGateway, required for live placement
    """
    if dry_run:
        logger.info("✓ Dry-run order placer enabled (safe mode)")
        return DryRunOrderPlacer()

    if gateway is None:
        raise ValueError("Live order placement requires a gateway")
    logger.warning("🔴 LIVE ORDER PLACER ENABLED - Real trades will execute!")
    return ClobOrderPlacer(gateway)
