from copybot.execution.executor import TradeExecutor, determine_condition
from copybot.execution.orders import (
    ClobOrderPlacer,
    DryRunOrderPlacer,
    OrderContext,
    OrderPlacer,
    OrderResult,
    create_order_placer,
)
from copybot.execution.state import TradeState

__all__ = [
    "ClobOrderPlacer",
    "DryRunOrderPlacer",
    "OrderContext",
    "OrderPlacer",
    "OrderResult",
    "TradeExecutor",
    "TradeState",
    "create_order_placer",
    "determine_condition",
]
