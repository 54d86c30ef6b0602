"""
CLOB client wrapper.

py_clob_client is imported lazily: read-only use (order books) needs no key,
and nothing is signed until place_market_order() is called.
"""

import logging
from typing import Any, Dict, Optional

from copybot.models import BookLevel, OrderBook, Side

logger = logging.getLogger(__name__)

FILLED_STATUSES = ("MATCHED", "FILLED", "LIVE")


class ClobGateway:
    """Order books and FOK market orders through the official client."""

    def __init__(
        self,
        host: str,
        chain_id: int = 137,
        private_key: Optional[str] = None,
        funder: Optional[str] = None,
        signature_type: int = 2,
    ):
        self.host = host
        self.chain_id = chain_id
        self.private_key = private_key
        self.funder = funder
        self.signature_type = signature_type
        self._client = None

    @property
    def client(self):
        if self._client is None:
            from py_clob_client.client import ClobClient

            if self.private_key:
                client = ClobClient(
                    host=self.host,
                    key=self.private_key,
                    chain_id=self.chain_id,
                    signature_type=self.signature_type,
                    funder=self.funder,
                )
                creds = client.create_or_derive_api_creds()
                client.set_api_creds(creds)
                logger.info(f"CLOB client authenticated (funder {self.funder})")
            else:
                client = ClobClient(host=self.host, chain_id=self.chain_id)
                logger.info("CLOB client initialized in read-only mode")
            self._client = client
        return self._client

    def get_order_book(self, asset_id: str) -> OrderBook:
        book = self.client.get_order_book(asset_id)
        return OrderBook(
            asset_id=asset_id,
            bids=[_level(level) for level in (book.bids or [])],
            asks=[_level(level) for level in (book.asks or [])],
        )

    def place_market_order(self, token_id: str, amount: float, side: Side) -> Dict[str, Any]:
        """
        Sign and post a Fill-or-Kill market order.

        Args:
            token_id: Outcome token
            amount: USDC to spend for BUY, shares to sell for SELL
            side: BUY or SELL

        Returns:
            Raw CLOB response
        """
        if not self.private_key:
            raise RuntimeError("Cannot place orders without a private key")

        from py_clob_client.clob_types import MarketOrderArgs, OrderType

        order_args = MarketOrderArgs(token_id=token_id, amount=float(amount), side=side.value)
        signed_order = self.client.create_market_order(order_args)
        response = self.client.post_order(signed_order, orderType=OrderType.FOK)
        logger.info(f"Order response: {response}")
        return response


def _level(level: Any) -> BookLevel:
    if isinstance(level, dict):
        return BookLevel(price=float(level["price"]), size=float(level["size"]))
    return BookLevel(price=float(level.price), size=float(level.size))


def is_filled(response: Any) -> bool:
    """Whether a CLOB post_order response reports a fill."""
    if not response or not isinstance(response, dict):
        return False
    if response.get("success") is False:
        return False
    status = str(response.get("status", "")).upper()
    return status in FILLED_STATUSES
