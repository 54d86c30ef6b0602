"""Copy-trade one Polymarket wallet into another, behind a risk engine."""

__version__ = "0.1.0"
