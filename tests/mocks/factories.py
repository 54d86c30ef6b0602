"""Builders for test data and a controllable clock."""

from copybot.models import Position, TradeEvent

TARGET = "0x" + "a" * 40
ME = "0x" + "b" * 40

# 2026-10-17 12:00:00 UTC
T0 = 1792238400.0


class FakeClock:
    """Callable epoch-seconds clock that only moves when told to."""

    def __init__(self, now: float = T0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


_counter = {"n": 0}


def make_trade(**overrides) -> TradeEvent:
    _counter["n"] += 1
    data = dict(
        type="TRADE",
        proxy_wallet=TARGET,
        timestamp=int(T0),
        condition_id="cond-1",
        asset="asset-1",
        side="BUY",
        size=10.0,
        usdc_size=5.0,
        price=0.5,
        transaction_hash=f"0xhash{_counter['n']}",
        title="Will it rain tomorrow?",
    )
    data.update(overrides)
    return TradeEvent(**data)


def make_position(**overrides) -> Position:
    data = dict(
        proxy_wallet=ME,
        asset="asset-1",
        condition_id="cond-1",
        size=20.0,
        avg_price=0.5,
        current_value=10.0,
        cur_price=0.5,
        percent_pnl=0.0,
        title="Will it rain tomorrow?",
    )
    data.update(overrides)
    return Position(**data)
