"""
Polymarket Data API client.

Endpoints from: https://docs.polymarket.com/developers/misc-endpoints/

Data API Base URL: https://data-api.polymarket.com/
"""

import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from copybot.errors import DataFetchDegradation
from copybot.models import Position, TradeEvent

logger = logging.getLogger(__name__)


class DataApiClient:
    """Read-only access to positions and activity for any wallet."""

    def __init__(
        self,
        base_url: str = "https://data-api.polymarket.com",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, path: str, params: Dict[str, Any]) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as e:
            raise DataFetchDegradation(f"GET {path} failed: {e}") from e

    def get_positions(self, user: str, size_threshold: float = 0.0) -> List[Position]:
        """
        Fetch open positions for a wallet.

        Endpoint: GET /positions
        """
        data = self._get(
            "/positions",
            {"user": user, "sizeThreshold": size_threshold, "limit": 500},
        )
        positions = []
        for raw in data or []:
            try:
                positions.append(Position.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping malformed position record: {e}")
        return positions

    def get_activity(self, user: str, limit: int = 20) -> List[TradeEvent]:
        """
        Fetch recent activity (trades, redeems, merges...) for a wallet.

        Endpoint: GET /activity
        Records that don't parse (e.g. non-trade rows without a side) are skipped.
        """
        data = self._get(
            "/activity",
            {"user": user, "limit": limit, "sortBy": "TIMESTAMP", "sortDirection": "DESC"},
        )
        events = []
        for raw in data or []:
            try:
                events.append(TradeEvent.model_validate(raw))
            except ValidationError as e:
                logger.warning(
                    f"Skipping malformed activity record "
                    f"{raw.get('transactionHash') if isinstance(raw, dict) else raw}: {e}"
                )
        return events
