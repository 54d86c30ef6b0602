"""
Mock Polymarket gateway and order placer for testing.

Deterministic responses, no web3 and no network calls.
"""

from typing import Dict, List, Optional

from copybot.errors import DataFetchDegradation, TransientExecutionError
from copybot.execution.orders import OrderContext, OrderPlacer, OrderResult
from copybot.models import OrderBook, Position, Side, TradeCondition, TradeEvent


class MockPolymarketGateway:
    """
    Mock gateway exposing the same async interface as PolymarketGateway.

    Failure flags make the matching call raise DataFetchDegradation.
    """

    def __init__(
        self,
        balance: float = 100.0,
        activity: Optional[List[TradeEvent]] = None,
        positions: Optional[Dict[str, List[Position]]] = None,
        order_books: Optional[Dict[str, OrderBook]] = None,
    ):
        self.balance = balance
        self.activity = activity or []
        self.positions = positions or {}
        self.order_books = order_books or {}

        self.fail_balance = False
        self.fail_positions = False
        self.fail_activity = False
        self.fail_order_book = False

        self.calls: List[tuple] = []  # Track all calls

    async def get_balance(self, account: str) -> float:
        self.calls.append(("get_balance", account))
        if self.fail_balance:
            raise DataFetchDegradation("Mock balance failure")
        return self.balance

    async def get_positions(self, account: str) -> List[Position]:
        self.calls.append(("get_positions", account))
        if self.fail_positions:
            raise DataFetchDegradation("Mock positions failure")
        return list(self.positions.get(account, []))

    async def get_activity(self, account: str, limit: int) -> List[TradeEvent]:
        self.calls.append(("get_activity", account, limit))
        if self.fail_activity:
            raise DataFetchDegradation("Mock activity failure")
        return list(self.activity[:limit])

    async def get_order_book(self, asset_id: str) -> OrderBook:
        self.calls.append(("get_order_book", asset_id))
        if self.fail_order_book or asset_id not in self.order_books:
            raise DataFetchDegradation(f"Mock order book failure for {asset_id}")
        return self.order_books[asset_id]

    def call_count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)


class MockOrderPlacer(OrderPlacer):
    """
    Records every order; optionally fails placement.

    Sizing still goes through OrderPlacer.place_order, so sell/merge
    preconditions behave as in production.
    """

    def __init__(self, should_fail: bool = False):
        self.should_fail = should_fail
        self.orders: List[OrderResult] = []
        self.attempts = 0

    async def _submit(
        self, condition: TradeCondition, side: Side, amount: float, ctx: OrderContext
    ) -> OrderResult:
        self.attempts += 1
        if self.should_fail:
            raise TransientExecutionError("Mock placement failure")

        result = OrderResult(
            success=True,
            condition=condition,
            side=side,
            asset=ctx.event.asset,
            amount=amount,
            price=ctx.price,
            order_id=f"mock_{len(self.orders) + 1}",
        )
        self.orders.append(result)
        return result

    def get_name(self) -> str:
        return "MockOrderPlacer"

    def get_last_order(self) -> Optional[OrderResult]:
        return self.orders[-1] if self.orders else None
