"""
Error taxonomy for the copy-trading pipeline.

- PolicyRejection: a risk rule said no. Terminal, never retried.
- TransientExecutionError: network or placement failure. Retried up to the limit.
- DataFetchDegradation: a read-only fetch failed. Callers fall back locally.
- FatalConfigError: identity/config missing at startup. Aborts before any loop.
"""


class CopyBotError(Exception):
    """Base class for all copybot errors."""

    pass


class PolicyRejection(CopyBotError):
    """Raised when a trade must be skipped for a policy reason."""

    def __init__(self, reason: str, blocked_by: str = "policy"):
        super().__init__(reason)
        self.reason = reason
        self.blocked_by = blocked_by


class TransientExecutionError(CopyBotError):
    """Raised when order placement fails in a way that may succeed on retry."""

    pass


class DataFetchDegradation(CopyBotError):
    """Raised by gateway reads (order book, balance, positions) on failure."""

    pass


class FatalConfigError(CopyBotError):
    """Raised when required configuration is missing or invalid."""

    pass
