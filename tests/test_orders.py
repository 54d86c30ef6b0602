"""Tests for order sizing and placement adapters."""

import asyncio

import pytest

from copybot.errors import PolicyRejection, TransientExecutionError
from copybot.execution.orders import (
    ClobOrderPlacer,
    DryRunOrderPlacer,
    OrderContext,
    create_order_placer,
    size_order,
)
from copybot.models import Side, TradeCondition
from copybot.polymarket.clob import is_filled
from tests.mocks.factories import make_position, make_trade


def context(**overrides) -> OrderContext:
    data = dict(event=make_trade(), amount=5.0, price=0.5)
    data.update(overrides)
    return OrderContext(**data)


class FakeClobGateway:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.orders = []

    async def place_market_order(self, token_id, amount, side):
        self.orders.append((token_id, amount, side))
        if self.error:
            raise self.error
        return self.response


class TestSizeOrder:
    def test_buy_spends_adjusted_amount(self):
        assert size_order(TradeCondition.BUY, context(amount=7.25)) == (Side.BUY, 7.25)

    def test_sell_is_proportional(self):
        ctx = context(
            event=make_trade(side="SELL", size=30.0),
            my_position=make_position(size=12.0),
            target_position=make_position(size=10.0),
        )
        # Target sold 30 of its 40 shares
        assert size_order(TradeCondition.SELL, ctx) == (Side.SELL, 9.0)

    def test_sell_with_unknown_target_sells_all(self):
        ctx = context(event=make_trade(side="SELL"), my_position=make_position(size=12.0))
        assert size_order(TradeCondition.SELL, ctx) == (Side.SELL, 12.0)

    def test_merge_sells_all(self):
        ctx = context(
            event=make_trade(side="SELL", size=1.0),
            my_position=make_position(size=12.0),
        )
        assert size_order(TradeCondition.MERGE, ctx) == (Side.SELL, 12.0)

    def test_nothing_to_sell(self):
        with pytest.raises(PolicyRejection) as exc:
            size_order(TradeCondition.SELL, context(event=make_trade(side="SELL")))
        assert exc.value.blocked_by == "no_position"

    def test_dust_sell_rejected(self):
        ctx = context(
            event=make_trade(side="SELL", size=0.001),
            my_position=make_position(size=1.0),
            target_position=make_position(size=1000.0),
        )
        with pytest.raises(PolicyRejection):
            size_order(TradeCondition.SELL, ctx)


class TestPlacers:
    def test_dry_run_records_order(self):
        placer = DryRunOrderPlacer()
        result = asyncio.run(placer.place_order(TradeCondition.BUY, context()))
        assert result.success is True
        assert result.dry_run is True
        assert result.order_id == "dry_run_1"
        assert placer.orders == [result]

    def test_clob_placer_success(self):
        gateway = FakeClobGateway(response={"success": True, "status": "matched", "orderID": "0x1"})
        placer = ClobOrderPlacer(gateway)
        result = asyncio.run(placer.place_order(TradeCondition.BUY, context(amount=3.0)))
        assert result.order_id == "0x1"
        assert gateway.orders == [("asset-1", 3.0, Side.BUY)]

    def test_clob_placer_unfilled_is_transient(self):
        placer = ClobOrderPlacer(FakeClobGateway(response={"success": False, "errorMsg": "no match"}))
        with pytest.raises(TransientExecutionError):
            asyncio.run(placer.place_order(TradeCondition.BUY, context()))

    def test_clob_placer_network_error_is_transient(self):
        placer = ClobOrderPlacer(FakeClobGateway(error=ConnectionError("down")))
        with pytest.raises(TransientExecutionError):
            asyncio.run(placer.place_order(TradeCondition.BUY, context()))

    def test_factory(self):
        assert isinstance(create_order_placer(dry_run=True), DryRunOrderPlacer)
        assert isinstance(create_order_placer(False, FakeClobGateway()), ClobOrderPlacer)
        with pytest.raises(ValueError):
            create_order_placer(dry_run=False)


class TestIsFilled:
    def test_statuses(self):
        assert is_filled({"status": "MATCHED"}) is True
        assert is_filled({"status": "live"}) is True
        assert is_filled({"status": "unmatched"}) is False
        assert is_filled({"success": False, "status": "matched"}) is False
        assert is_filled(None) is False
        assert is_filled("error") is False
