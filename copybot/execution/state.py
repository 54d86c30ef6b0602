"""
Per-event execution state machine.

    PENDING -> SKIPPED          policy rejection (terminal, never retried)
    PENDING -> EXECUTED         order placed
    PENDING -> RETRY_SCHEDULED  failure below the retry ceiling
    PENDING -> ABANDONED        failure reaching the retry ceiling

The store only keeps (processed, retry_count); the transitions below are the
single place that decides how those two fields move.
"""

from dataclasses import dataclass
from enum import Enum


class TradeState(str, Enum):
    PENDING = "pending"
    SKIPPED = "skipped"
    EXECUTED = "executed"
    RETRY_SCHEDULED = "retry_scheduled"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self not in (TradeState.PENDING, TradeState.RETRY_SCHEDULED)


@dataclass(frozen=True)
class Transition:
    """New persisted fields for one event."""

    state: TradeState
    retry_count: int
    processed: bool


def on_success(retry_count: int) -> Transition:
    return Transition(TradeState.EXECUTED, retry_count, True)


def on_rejection(retry_count: int) -> Transition:
    return Transition(TradeState.SKIPPED, retry_count, True)


def on_failure(retry_count: int, retry_limit: int) -> Transition:
    """Count the failed attempt; abandon once the ceiling is reached."""
    attempts = retry_count + 1
    if attempts >= retry_limit:
        return Transition(TradeState.ABANDONED, attempts, True)
    return Transition(TradeState.RETRY_SCHEDULED, attempts, False)
