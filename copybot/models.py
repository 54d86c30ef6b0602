"""
Wire and domain models.

The Polymarket Data API returns camelCase JSON; these models accept it as-is
(aliases) and expose snake_case attributes. Unknown keys are ignored.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Side(str, Enum):
    """Trade side: BUY or SELL"""

    BUY = "BUY"
    SELL = "SELL"


class TradeCondition(str, Enum):
    """How a copied trade is executed."""

    BUY = "buy"
    SELL = "sell"
    MERGE = "merge"  # target fully exited a market we still hold


class ExitAction(str, Enum):
    """Reason a synthetic SELL was created."""

    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"


SYNTHETIC_EXIT_PREFIXES = tuple(f"{action.value}_" for action in ExitAction)


class _ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class TradeEvent(_ApiModel):
    """
    One observed or synthesized trade.

    Keyed by transaction_hash. processed/retry_count are owned by the executor.
    """

    id: Optional[int] = Field(None, description="Store row id")
    type: str = Field("TRADE", description="Activity type: TRADE, REDEEM, MERGE, ...")
    proxy_wallet: Optional[str] = Field(None, alias="proxyWallet")
    timestamp: int = Field(..., description="Seconds since epoch")
    condition_id: str = Field("", alias="conditionId")
    asset: str = Field("", description="CLOB token id of the traded outcome")
    side: Side = Side.BUY
    size: float = Field(0.0, description="Shares")
    usdc_size: float = Field(0.0, alias="usdcSize", description="USDC notional")
    price: float = 0.0
    transaction_hash: str = Field(..., alias="transactionHash")
    title: str = ""
    slug: Optional[str] = None
    event_slug: Optional[str] = Field(None, alias="eventSlug")
    outcome: Optional[str] = None
    outcome_index: Optional[int] = Field(None, alias="outcomeIndex")
    processed: bool = False
    retry_count: int = 0

    @field_validator("side", mode="before")
    @classmethod
    def normalize_side(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("size", "usdc_size", "price", mode="before")
    @classmethod
    def none_to_zero(cls, v):
        return 0.0 if v is None else v

    @field_validator("condition_id", "asset", "title", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator("proxy_wallet")
    @classmethod
    def lowercase_wallet(cls, v: Optional[str]) -> Optional[str]:
        return v.lower() if v else v

    @property
    def is_trade(self) -> bool:
        return self.type.upper() == "TRADE"

    @property
    def is_synthetic_exit(self) -> bool:
        """Stop-loss / take-profit SELL created by the position watcher."""
        return self.transaction_hash.startswith(SYNTHETIC_EXIT_PREFIXES)


class Position(_ApiModel):
    """Holding snapshot for one account in one market outcome."""

    proxy_wallet: Optional[str] = Field(None, alias="proxyWallet")
    asset: str = ""
    condition_id: str = Field(..., alias="conditionId")
    size: float = 0.0
    avg_price: float = Field(0.0, alias="avgPrice")
    initial_value: float = Field(0.0, alias="initialValue")
    current_value: float = Field(0.0, alias="currentValue")
    cash_pnl: float = Field(0.0, alias="cashPnl")
    percent_pnl: Optional[float] = Field(None, alias="percentPnl")
    total_bought: float = Field(0.0, alias="totalBought")
    realized_pnl: float = Field(0.0, alias="realizedPnl")
    percent_realized_pnl: Optional[float] = Field(None, alias="percentRealizedPnl")
    cur_price: float = Field(0.0, alias="curPrice")
    redeemable: bool = False
    mergeable: bool = False
    title: str = ""
    slug: Optional[str] = None
    event_slug: Optional[str] = Field(None, alias="eventSlug")
    outcome: Optional[str] = None
    outcome_index: Optional[int] = Field(None, alias="outcomeIndex")
    opposite_outcome: Optional[str] = Field(None, alias="oppositeOutcome")
    opposite_asset: Optional[str] = Field(None, alias="oppositeAsset")
    end_date: Optional[str] = Field(None, alias="endDate")
    negative_risk: bool = Field(False, alias="negativeRisk")

    @field_validator(
        "size",
        "avg_price",
        "initial_value",
        "current_value",
        "cash_pnl",
        "total_bought",
        "realized_pnl",
        "cur_price",
        mode="before",
    )
    @classmethod
    def none_to_zero(cls, v):
        return 0.0 if v is None else v

    @field_validator("asset", "title", mode="before")
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v


class BookLevel(BaseModel):
    price: float
    size: float


class OrderBook(BaseModel):
    """Order book snapshot for one asset."""

    asset_id: str = ""
    bids: List[BookLevel] = Field(default_factory=list)
    asks: List[BookLevel] = Field(default_factory=list)

    @property
    def best_bid(self) -> Optional[float]:
        """Highest bid, whatever order the venue sent the levels in."""
        if not self.bids:
            return None
        return max(level.price for level in self.bids)

    @property
    def best_ask(self) -> Optional[float]:
        """Lowest ask, whatever order the venue sent the levels in."""
        if not self.asks:
            return None
        return min(level.price for level in self.asks)

    def price_for(self, side: Side) -> Optional[float]:
        """Price we would get crossing the book on `side`."""
        return self.best_ask if side == Side.BUY else self.best_bid
