import asyncio
import os
import logging
from typing import Optional

import typer
from devtools import pprint
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from copybot.config import BotConfig, RiskConfig, get_risk_profile
from copybot.errors import FatalConfigError
from copybot.polymarket.gateway import PolymarketGateway
from copybot.risk.engine import RiskEngine
from copybot.runner import build_bot
from copybot.storage import CopyBotDB

load_dotenv()

app = typer.Typer()
console = Console()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _load_config() -> BotConfig:
    try:
        return BotConfig.from_env()
    except FatalConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(code=1)


def _risk_table(risk: RiskConfig, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Setting")
    table.add_column("Value", justify="right")
    for name, value in risk.model_dump().items():
        table.add_row(name, str(value))
    return table


@app.command()
def run(
    max_iterations: Optional[int] = None,
    log_level: str = "INFO",
) -> None:
    """
    Run the copy-trading bot until interrupted.

    Args:
        max_iterations: Stop each loop after this many iterations
        log_level: DEBUG, INFO, WARNING or ERROR
    """
    _setup_logging(log_level)
    config = _load_config()
    bot = build_bot(config)
    try:
        asyncio.run(bot.run(max_iterations=max_iterations))
    except KeyboardInterrupt:
        console.print("\nShutting down...")


@app.command()
def status() -> None:
    """
    Show balance, exposure and open positions of our wallet
    """
    _setup_logging("WARNING")
    config = _load_config()
    gateway = PolymarketGateway.from_config(config)
    engine = RiskEngine(
        config.risk,
        get_balance=lambda: gateway.get_balance(config.proxy_wallet),
        get_positions=lambda: gateway.get_positions(config.proxy_wallet),
    )
    report = asyncio.run(engine.get_risk_status())

    balance = report["balance"]
    exposure = report["total_exposure"]
    console.print(f"Wallet: {config.proxy_wallet}")
    console.print(f"Balance: {'unknown' if balance is None else f'${balance:.2f}'}")
    console.print(
        f"Exposure: {'unknown' if exposure is None else f'${exposure:.2f}'}"
        f" / ${config.risk.max_total_exposure_usdc:.2f}"
    )

    table = Table(title="Open positions")
    table.add_column("Market")
    table.add_column("Outcome")
    table.add_column("Size", justify="right")
    table.add_column("Value", justify="right")
    table.add_column("PnL %", justify="right")
    for position in report["positions"]:
        pnl = position.percent_pnl
        table.add_row(
            position.title[:60],
            position.outcome or "",
            f"{position.size:.2f}",
            f"${position.current_value:.2f}",
            "" if pnl is None else f"{pnl:.2f}",
        )
    console.print(table)


@app.command()
def config(profile: Optional[str] = None, raw: bool = False) -> None:
    """
    Show the active risk configuration, or a named profile
    """
    if profile:
        try:
            risk = get_risk_profile(profile)
        except FatalConfigError as e:
            console.print(f"[red]{e}[/red]")
            raise typer.Exit(code=1)
        title = f"Risk profile: {profile.lower()}"
    else:
        bot_config = _load_config()
        risk = bot_config.risk
        title = f"Risk profile: {bot_config.risk_profile}"

    if raw:
        pprint(risk)
    else:
        console.print(_risk_table(risk, title))


@app.command()
def pending(db_path: Optional[str] = None, retry_limit: int = 3) -> None:
    """
    List trades waiting to be copied
    """
    store = CopyBotDB(db_path or os.getenv("DB_PATH", "copybot.db"))
    events = store.find_pending(retry_limit)

    table = Table(title=f"Pending trades ({len(events)})")
    table.add_column("ID", justify="right")
    table.add_column("Time")
    table.add_column("Side")
    table.add_column("USDC", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Retries", justify="right")
    table.add_column("Market")
    for event in events:
        table.add_row(
            str(event.id),
            str(event.timestamp),
            event.side.value,
            f"{event.usdc_size:.2f}",
            f"{event.price:.4f}",
            str(event.retry_count),
            event.title[:60],
        )
    console.print(table)


if __name__ == "__main__":
    app()
