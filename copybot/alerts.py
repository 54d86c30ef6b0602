"""
Alert system for copybot notifications.

Every alert is logged. When a Discord webhook is configured the alert is also
posted as an embed from a worker thread. Delivery failure is logged but
doesn't block operations.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

import requests

logger = logging.getLogger(__name__)

GREEN = 0x00FF00
RED = 0xFF0000
YELLOW = 0xFFFF00
ORANGE = 0xFFAA00


class AlertService:
    """Sends notifications for executed, skipped and abandoned trades."""

    def __init__(self, webhook_url: Optional[str] = None, timeout: float = 5.0):
        """
        Initialize alert service.

        Args:
            webhook_url: Discord webhook. None means log only.
            timeout: HTTP timeout for webhook delivery
        """
        self.webhook_url = webhook_url
        self.timeout = timeout

        if not webhook_url:
            logger.info("No Discord webhook configured. Alerts will be logged only.")

    async def notify_trade_executed(
        self,
        title: str,
        condition: str,
        amount: float,
        price: float,
        dry_run: bool,
    ):
        mode = "🧪 DRY RUN" if dry_run else "💰 LIVE"
        logger.info(
            f"✅ TRADE EXECUTED ({mode}): {condition.upper()} {amount:.2f} @ {price:.4f} | {title}"
        )
        await self._send(
            title=f"{mode} Trade Copied",
            description=f"**Market**: {title[:100]}",
            color=YELLOW if dry_run else GREEN,
            fields=[
                {"name": "Condition", "value": condition.upper(), "inline": True},
                {"name": "Amount", "value": f"{amount:.2f}", "inline": True},
                {"name": "Price", "value": f"${price:.4f}", "inline": True},
            ],
        )

    async def notify_trade_skipped(self, title: str, side: str, amount: float, reason: str):
        logger.info(f"⏭️  TRADE SKIPPED: {side} ${amount:.2f} | {title} | {reason}")
        await self._send(
            title="⏭️ Trade Skipped",
            description=f"**Market**: {title[:100]}",
            color=ORANGE,
            fields=[
                {"name": "Side", "value": side, "inline": True},
                {"name": "Amount", "value": f"${amount:.2f}", "inline": True},
                {"name": "Reason", "value": reason[:1024], "inline": False},
            ],
        )

    async def notify_trade_abandoned(self, title: str, attempts: int, error: str):
        logger.error(f"🚫 TRADE ABANDONED after {attempts} attempts: {title} | {error}")
        await self._send(
            title="🚫 Trade Abandoned",
            description=f"**Market**: {title[:100]}",
            color=RED,
            fields=[
                {"name": "Attempts", "value": str(attempts), "inline": True},
                {"name": "Last error", "value": error[:1024], "inline": False},
            ],
        )

    async def notify_position_exit(self, action: str, title: str, percent_pnl: float):
        """Alert: stop-loss or take-profit triggered."""
        logger.warning(f"📤 {action}: {title} at {percent_pnl:.2f}%")
        await self._send(
            title=f"📤 {action.replace('_', ' ').title()} Triggered",
            description=f"**Market**: {title[:100]}",
            color=GREEN if percent_pnl > 0 else RED,
            fields=[{"name": "PnL", "value": f"{percent_pnl:.2f}%", "inline": True}],
        )

    async def _send(
        self,
        title: str,
        description: str,
        color: int,
        fields: Optional[List[dict]] = None,
    ):
        if not self.webhook_url:
            return

        embed = {
            "title": title,
            "description": description,
            "color": color,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "fields": fields or [],
        }

        await asyncio.to_thread(self._post, embed)

    def _post(self, embed: dict):
        try:
            response = requests.post(
                self.webhook_url, json={"embeds": [embed]}, timeout=self.timeout
            )
            if response.status_code not in (200, 204):
                logger.error(f"Discord alert failed: {response.status_code}")
        except requests.RequestException as e:
            logger.error(f"Discord alert error: {e}")
