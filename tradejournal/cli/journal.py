"""Journal commands for TradeJournal CLI.

Handles manual trade logging, CSV import and the trade history table.
"""

import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import click
import pytz
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tradejournal.models import Direction, Mood, SessionType

console = Console()


def _error(message: str) -> None:
    console.print(Panel(
        f"[red]{escape(message)}[/red]",
        title="[bold red]Error[/bold red]",
        border_style="red",
    ))
    raise SystemExit(1)


def _get_config() -> dict:
    """Load configuration, exiting with an error panel if it is invalid."""
    from tradejournal.config import ConfigError, load_config

    try:
        return load_config()
    except ConfigError as e:
        _error(str(e))


def _get_convention(config: dict):
    from tradejournal.config import ConfigError, time_convention

    try:
        return time_convention(config)
    except ConfigError as e:
        _error(str(e))


def _get_data_store(config: dict):
    """Get the data store instance."""
    from tradejournal.config import get_db_path
    from tradejournal.db.store import DataStore

    return DataStore(get_db_path(config))


def _pnl_markup(pnl: float) -> str:
    color = "green" if pnl >= 0 else "red"
    sign = "+" if pnl >= 0 else ""
    return f"[{color}]{sign}{pnl:.2f}[/{color}]"


@click.command()
@click.option("--pair", required=True, help="Instrument, e.g. EURUSD.")
@click.option(
    "--direction",
    required=True,
    type=click.Choice([d.value for d in Direction], case_sensitive=False),
    help="Trade direction.",
)
@click.option("--entry", required=True, type=float, help="Entry price.")
@click.option("--exit", "exit_price", required=True, type=float, help="Exit price.")
@click.option("--pnl", required=True, type=float, help="Realized P&L.")
@click.option("--lots", type=float, default=0.01, show_default=True, help="Position size.")
@click.option("--setup", default=None, help="Strategy tag.")
@click.option(
    "--mood",
    type=click.Choice([m.value for m in Mood], case_sensitive=False),
    default=None,
    help="How you felt taking the trade.",
)
@click.option(
    "--session",
    "session_type",
    type=click.Choice([s.value for s in SessionType], case_sensitive=False),
    default=None,
    help="Trading session.",
)
@click.option("--violation", default=None, help="Rule broken on this trade.")
@click.option("--quality", default=None, help="Setup grade (IMPULSE counts as a violation).")
@click.option("--sl", type=float, default=None, help="Stop loss.")
@click.option("--tp", type=float, default=None, help="Take profit.")
@click.option("--notes", default=None, help="Free-form notes.")
@click.option(
    "--at",
    "opened_at",
    type=click.DateTime(formats=["%Y-%m-%d %H:%M", "%Y-%m-%dT%H:%M", "%Y-%m-%d"]),
    default=None,
    help="Trade time in the configured time zone. Defaults to now.",
)
def log(
    pair: str,
    direction: str,
    entry: float,
    exit_price: float,
    pnl: float,
    lots: float,
    setup: Optional[str],
    mood: Optional[str],
    session_type: Optional[str],
    violation: Optional[str],
    quality: Optional[str],
    sl: Optional[float],
    tp: Optional[float],
    notes: Optional[str],
    opened_at: Optional[datetime],
) -> None:
    """Record a closed trade.

    Refused while the journal is read-only after repeated rule violations.

    \b
    Examples:
      tradejournal log --pair EURUSD --direction Long --entry 1.0850 \\
          --exit 1.0880 --pnl 30 --setup Breakout --mood calm
    """
    from pydantic import ValidationError

    from tradejournal.analytics.enforcement import evaluate_enforcement
    from tradejournal.models import Trade

    config = _get_config()
    convention = _get_convention(config)
    store = _get_data_store(config)

    now = datetime.now(pytz.utc)
    state = evaluate_enforcement(store.get_trades(), now)
    if state.is_read_only:
        _error(
            f"Journal is read-only: {state.violation_count} rule violations in the last 14 days.\n"
            "Review your trades before logging new ones."
        )

    if opened_at:
        moment = convention.localize(convention.to_epoch_ms(opened_at))
    else:
        moment = now.astimezone(convention.tz)

    try:
        trade = Trade(
            id=uuid.uuid4().hex,
            pair=pair.upper(),
            direction=direction,
            entry=entry,
            exit=exit_price,
            lots=lots,
            pnl=pnl,
            date=moment.date(),
            ts=convention.to_epoch_ms(moment),
            setup=setup,
            mood=mood,
            session_type=session_type,
            violation_reason=violation,
            setup_quality=quality.upper() if quality else None,
            sl=sl,
            tp=tp,
            notes=notes,
        )
    except ValidationError as e:
        _error(f"Invalid trade:\n\n{e}")

    store.log_trade(trade)

    console.print(Panel(
        f"[bold]{trade.pair}[/bold] {trade.direction.value} @ {trade.entry} -> {trade.exit}\n"
        f"P&L: {_pnl_markup(trade.pnl)}\n"
        f"[dim]{moment.strftime('%Y-%m-%d %H:%M %Z')} | id {trade.id}[/dim]",
        title="[bold green]Trade Logged[/bold green]",
        border_style="green",
    ))

    if state.show_warning:
        console.print(
            f"[yellow]Warning: {state.violation_count} violations in the last 14 days. "
            f"{state.violations_until_lockout} more and the journal becomes read-only.[/yellow]"
        )


@click.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def import_trades(file: Path) -> None:
    """Import trades from a broker CSV export.

    Columns are detected from the header row. Trades already in the
    journal are skipped, so re-importing the same file is safe.

    \b
    Examples:
      tradejournal import ~/Downloads/history.csv
    """
    from tradejournal.importers import import_csv

    config = _get_config()
    convention = _get_convention(config)
    store = _get_data_store(config)

    try:
        content = file.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        _error(f"Failed to read {file}: {e}")

    result = import_csv(content, convention=convention)
    inserted = store.log_trades(result.trades)
    duplicates = len(result.trades) - inserted

    summary = (
        f"Imported:   [green]{inserted}[/green]\n"
        f"Duplicates: [dim]{duplicates}[/dim]\n"
        f"Skipped:    [{'red' if result.skipped_rows else 'dim'}]{result.skipped_rows}"
        f"[/{'red' if result.skipped_rows else 'dim'}]"
    )
    for warning in result.warnings:
        summary += f"\n[yellow]{warning}[/yellow]"

    console.print(Panel(
        summary,
        title=f"[bold cyan]Import: {file.name}[/bold cyan]",
        border_style="green" if result.success else "yellow",
    ))

    if result.errors:
        table = Table(title="Rejected Rows", show_header=True, header_style="bold red")
        table.add_column("Row", justify="right")
        table.add_column("Column")
        table.add_column("Value", max_width=20)
        table.add_column("Problem")
        for error in result.errors[:20]:
            table.add_row(str(error.row), error.column, escape(error.value) or "-", escape(error.message))
        console.print(table)
        if len(result.errors) > 20:
            console.print(f"[dim]... and {len(result.errors) - 20} more[/dim]")


@click.command()
@click.option(
    "--days",
    type=int,
    default=None,
    help="Number of days of history to show.",
)
def journal(days: Optional[int]) -> None:
    """Display trade history.

    \b
    Examples:
      tradejournal journal           # All trades
      tradejournal journal --days 7  # Last 7 days
    """
    config = _get_config()
    convention = _get_convention(config)
    store = _get_data_store(config)

    from_date = convention.today() - timedelta(days=days) if days is not None else None
    trades = store.get_trades(from_date=from_date)

    if not trades:
        console.print(Panel(
            "[dim]No trades found[/dim]",
            title="[bold]Trade Journal[/bold]",
            border_style="dim",
        ))
        return

    table = Table(
        title="Trade Journal",
        show_header=True,
        header_style="bold cyan",
    )

    table.add_column("Date/Time", style="dim")
    table.add_column("Pair", style="bold")
    table.add_column("Side", justify="center")
    table.add_column("Lots", justify="right")
    table.add_column("Entry", justify="right")
    table.add_column("Exit", justify="right")
    table.add_column("P&L", justify="right")
    table.add_column("Setup")
    table.add_column("Mood", style="dim")
    table.add_column("Rule", justify="center")

    total_pnl = 0.0

    for trade in trades:
        side_color = "green" if trade.direction is Direction.LONG else "red"
        table.add_row(
            convention.localize(trade.ts).strftime("%Y-%m-%d %H:%M"),
            trade.pair,
            f"[{side_color}]{trade.direction.value}[/{side_color}]",
            f"{trade.lots:g}",
            f"{trade.entry:g}",
            f"{trade.exit:g}",
            _pnl_markup(trade.pnl),
            escape(trade.setup or "-"),
            trade.mood.value,
            "[red]x[/red]" if trade.is_violation else "",
        )
        total_pnl += trade.pnl

    console.print(table)

    console.print(f"\n[bold]Total Trades:[/bold] {len(trades)}")
    console.print(f"[bold]Total P&L:[/bold] {_pnl_markup(total_pnl)}")
