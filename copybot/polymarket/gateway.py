"""
Async facade over the Polymarket clients.

Every call runs the blocking HTTP/RPC client in a worker thread so the event
loop keeps polling while a request is in flight. Read failures surface as
DataFetchDegradation; callers decide the fallback.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from copybot.config import BotConfig
from copybot.errors import DataFetchDegradation
from copybot.models import OrderBook, Position, Side, TradeEvent
from copybot.polymarket.balance import UsdcBalanceReader
from copybot.polymarket.clob import ClobGateway
from copybot.polymarket.data_api import DataApiClient

logger = logging.getLogger(__name__)


class PolymarketGateway:
    """Positions, activity, order books, balances and order placement."""

    def __init__(
        self,
        data_api: DataApiClient,
        clob: ClobGateway,
        balance_reader: Optional[UsdcBalanceReader] = None,
    ):
        self.data_api = data_api
        self.clob = clob
        self.balance_reader = balance_reader

    @classmethod
    def from_config(cls, config: BotConfig) -> "PolymarketGateway":
        return cls(
            data_api=DataApiClient(config.data_api_url),
            clob=ClobGateway(
                host=config.clob_http_url,
                chain_id=config.chain_id,
                private_key=config.private_key,
                funder=config.proxy_wallet,
                signature_type=config.signature_type,
            ),
            balance_reader=UsdcBalanceReader(
                config.rpc_url, config.usdc_contract_address
            ),
        )

    async def get_positions(self, account: str) -> List[Position]:
        return await asyncio.to_thread(self.data_api.get_positions, account)

    async def get_activity(self, account: str, limit: int) -> List[TradeEvent]:
        return await asyncio.to_thread(self.data_api.get_activity, account, limit)

    async def get_order_book(self, asset_id: str) -> OrderBook:
        try:
            return await asyncio.to_thread(self.clob.get_order_book, asset_id)
        except Exception as e:
            raise DataFetchDegradation(f"Order book fetch failed for {asset_id}: {e}") from e

    async def get_balance(self, account: str) -> float:
        if self.balance_reader is None:
            raise DataFetchDegradation("No balance reader configured")
        try:
            return await asyncio.to_thread(self.balance_reader.get_balance, account)
        except Exception as e:
            raise DataFetchDegradation(f"Balance fetch failed for {account}: {e}") from e

    async def place_market_order(
        self, token_id: str, amount: float, side: Side
    ) -> Dict[str, Any]:
        return await asyncio.to_thread(
            self.clob.place_market_order, token_id, amount, side
        )
