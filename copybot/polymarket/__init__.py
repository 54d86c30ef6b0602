from copybot.polymarket.data_api import DataApiClient
from copybot.polymarket.gateway import PolymarketGateway

__all__ = ["DataApiClient", "PolymarketGateway"]
