"""Analytics commands for TradeJournal CLI.

Handles performance statistics, breakdowns, insights and the
discipline status.
"""

from datetime import datetime, timedelta
from typing import Optional

import click
import pytz
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tradejournal.models import InsightType, SessionType

console = Console()

INSIGHT_STYLES = {
    InsightType.DANGER: ("red", "!!"),
    InsightType.WARNING: ("yellow", "!"),
    InsightType.SUCCESS: ("green", "+"),
    InsightType.INFO: ("blue", "i"),
}

BREAKDOWNS = ["setup", "mood", "pair", "hour", "weekday", "session", "heatmap"]


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


def _load_trades(config: dict, convention, days: Optional[int]) -> list:
    store = _get_data_store(config)
    from_date = convention.today() - timedelta(days=days) if days is not None else None
    return store.get_trades(from_date=from_date)


def _money(value: float) -> str:
    color = "green" if value >= 0 else "red"
    sign = "+" if value >= 0 else ""
    return f"[{color}]{sign}{value:,.2f}[/{color}]"


def _no_trades(title: str) -> None:
    console.print(Panel(
        "[dim]No trades found[/dim]",
        title=f"[bold]{title}[/bold]",
        border_style="dim",
    ))


@click.command()
@click.option(
    "--days",
    type=int,
    default=None,
    help="Only include the last N days.",
)
def stats(days: Optional[int]) -> None:
    """Display performance statistics.

    Shows win rate, profit factor and expectancy, R-multiple expectancy
    per setup, profitable-day streaks, the equity curve summary, Kelly
    sizing, risk of ruin and projected R.

    \b
    Examples:
      tradejournal stats
      tradejournal stats --days 30
    """
    from tradejournal.analytics.metrics import (
        compute_metrics,
        ecdf_percentiles,
        equity_curve,
        expectancy_by_setup,
        kelly_sizing,
        project_expectancy,
        r_multiple_ecdf,
        risk_of_ruin,
        summarize,
    )
    from tradejournal.analytics.streaks import compute_streaks

    config = _get_config()
    convention = _get_convention(config)
    trades = _load_trades(config, convention, days)

    if not trades:
        _no_trades("Statistics")
        return

    analytics_config = config.get("analytics", {})
    base_risk = float(analytics_config.get("base_risk", 10.0))
    starting_balance = float(analytics_config.get("starting_balance", 10000.0))

    metrics = compute_metrics(trades)
    pf = f"{metrics.profit_factor:.2f}" if metrics.profit_factor is not None else "n/a"

    metrics_text = (
        f"Trades:        {metrics.total_trades} "
        f"[dim]({metrics.winning_trades}W / {metrics.losing_trades}L / "
        f"{metrics.breakeven_trades}BE)[/dim]\n"
        f"Win Rate:      {metrics.win_rate * 100:.1f}%\n"
        f"Profit Factor: {pf}\n"
        f"Expectancy:    {_money(metrics.expectancy)} per trade\n"
        f"{'─' * 30}\n"
        f"Gross Profit:  [green]{metrics.gross_profit:,.2f}[/green]\n"
        f"Gross Loss:    [red]{metrics.gross_loss:,.2f}[/red]\n"
        f"[bold]Net P&L:       {_money(metrics.net_pnl)}[/bold]\n\n"
        f"[dim]Avg Win: {metrics.avg_win:,.2f} | Avg Loss: {metrics.avg_loss:,.2f} | "
        f"Best: {metrics.largest_win:,.2f} | Worst: -{metrics.largest_loss:,.2f}[/dim]"
    )
    console.print(Panel(
        metrics_text,
        title="[bold cyan]Performance[/bold cyan]",
        border_style="cyan",
    ))

    table = Table(
        title=f"Expectancy by Setup (1R = {base_risk:g})",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Setup", style="bold")
    table.add_column("Trades", justify="right")
    table.add_column("Win Rate", justify="right")
    table.add_column("Avg Win R", justify="right")
    table.add_column("Avg Loss R", justify="right")
    table.add_column("Expectancy", justify="right")
    table.add_column("P&L", justify="right")

    for row in expectancy_by_setup(trades, base_risk):
        color = "green" if row.expectancy >= 0 else "red"
        table.add_row(
            escape(row.setup),
            str(row.trades),
            f"{row.win_rate * 100:.1f}%",
            f"{row.avg_win_r:.2f}",
            f"{row.avg_loss_r:.2f}",
            f"[{color}]{row.expectancy:+.2f}R[/{color}]",
            _money(row.total_pnl),
        )
    console.print(table)

    percentiles = ecdf_percentiles(r_multiple_ecdf(trades, base_risk))
    console.print(
        "[dim]R distribution: "
        + " | ".join(f"{name} {value:+.2f}R" for name, value in percentiles.items())
        + "[/dim]"
    )

    streaks = compute_streaks(trades)
    curve = equity_curve(trades, starting_balance)
    final = curve[-1]
    last_day = streaks.last_profitable_day.isoformat() if streaks.last_profitable_day else "-"

    console.print(Panel(
        f"Current Streak:  {streaks.current_streak} profitable day(s)\n"
        f"Longest Streak:  {streaks.longest_streak}\n"
        f"Last Green Day:  {last_day}\n"
        f"{'─' * 30}\n"
        f"Equity:          {final.equity:,.2f} [dim](from {starting_balance:,.2f})[/dim]\n"
        f"Drawdown:        {final.drawdown:.2f}%\n"
        f"Max Drawdown:    [red]{final.max_drawdown:.2f}%[/red]",
        title="[bold cyan]Streaks & Equity[/bold cyan]",
        border_style="cyan",
    ))

    summary = summarize(trades, base_risk, convention)
    kelly = kelly_sizing(summary.win_rate, summary.avg_win_r, summary.avg_loss_r)
    ruin = risk_of_ruin(summary.win_rate, summary.avg_win_r, summary.avg_loss_r)

    console.print(Panel(
        f"Best Setup:      {escape(summary.best_setup or '-')}\n"
        f"Worst Setup:     {escape(summary.worst_setup or '-')}\n"
        f"Best Session:    {escape(summary.best_session or '-')}\n"
        f"Sharpe (R):      {summary.sharpe_ratio:.2f}\n"
        f"{'─' * 30}\n"
        f"Kelly:           {kelly.kelly_fraction * 100:.1f}% "
        f"[dim](half {kelly.half_kelly * 100:.1f}%)[/dim]\n"
        f"Risk of Ruin:    {ruin:.2f}% [dim](at 1% risk per trade)[/dim]",
        title="[bold cyan]Risk[/bold cyan]",
        border_style="cyan",
    ))

    projections = project_expectancy(summary.expectancy, summary.std_dev_r, len(trades))
    if projections:
        table = Table(title="Projected R", show_header=True, header_style="bold cyan")
        table.add_column("Trades", justify="right")
        table.add_column("Pessimistic (p10)", justify="right")
        table.add_column("Expected", justify="right")
        table.add_column("Optimistic (p90)", justify="right")
        for projection in projections:
            table.add_row(
                str(projection.trades),
                f"{projection.p10:+.1f}R",
                f"{projection.p50:+.1f}R",
                f"{projection.p90:+.1f}R",
            )
        console.print(table)


@click.command()
@click.option(
    "--by",
    "dimension",
    type=click.Choice(BREAKDOWNS, case_sensitive=False),
    default="setup",
    show_default=True,
    help="Dimension to group trades by.",
)
@click.option(
    "--days",
    type=int,
    default=None,
    help="Only include the last N days.",
)
def breakdown(dimension: str, days: Optional[int]) -> None:
    """Break down results by setup, mood, pair, hour, weekday or session.

    \b
    Examples:
      tradejournal breakdown --by hour
      tradejournal breakdown --by heatmap   # Session x 4-hour blocks
    """
    from tradejournal.analytics import aggregation

    config = _get_config()
    convention = _get_convention(config)
    trades = _load_trades(config, convention, days)

    if not trades:
        _no_trades("Breakdown")
        return

    dimension = dimension.lower()
    if dimension == "heatmap":
        base_risk = float(config.get("analytics", {}).get("base_risk", 10.0))
        _print_heatmap(aggregation.session_hour_matrix(trades, convention), base_risk)
        return

    if dimension == "hour":
        buckets = aggregation.aggregate_by_hour(trades, convention)
    elif dimension == "session":
        buckets = aggregation.aggregate_by_session(trades, convention)
    else:
        buckets = getattr(aggregation, f"aggregate_by_{dimension}")(trades)

    if dimension == "hour":
        keys = sorted(buckets, key=lambda k: (not k.isdigit(), int(k) if k.isdigit() else 0))
    elif dimension == "weekday":
        keys = [d for d in aggregation.DAY_NAMES if d in buckets]
    else:
        keys = sorted(buckets, key=lambda k: (-buckets[k].total_pnl, k))

    table = Table(
        title=f"Results by {dimension.title()}",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column(dimension.title(), style="bold")
    table.add_column("Trades", justify="right")
    table.add_column("Win Rate", justify="right")
    table.add_column("Avg P&L", justify="right")
    table.add_column("Total P&L", justify="right")

    for key in keys:
        bucket = buckets[key]
        label = f"{int(key):02d}:00" if dimension == "hour" and key.isdigit() else escape(key)
        table.add_row(
            label,
            str(bucket.count),
            f"{bucket.win_rate * 100:.1f}%",
            _money(bucket.avg_pnl),
            _money(bucket.total_pnl),
        )

    console.print(table)
    console.print(f"[dim]Times in {convention.tz_name}[/dim]")


def _print_heatmap(matrix: dict, base_risk: float) -> None:
    blocks = sorted(next(iter(matrix.values())))
    table = Table(title="Session Heatmap (total P&L, mean R)", show_header=True, header_style="bold cyan")
    table.add_column("Session", style="bold")
    for block in blocks:
        table.add_column(f"{block:02d}-{block + 4:02d}", justify="right")

    for session, cells in matrix.items():
        row = [session]
        for block in blocks:
            bucket = cells[block]
            if bucket.count:
                row.append(
                    f"{_money(bucket.total_pnl)} [dim]{bucket.expectancy_r(base_risk):+.2f}R ({bucket.count})[/dim]"
                )
            else:
                row.append("[dim]-[/dim]")
        table.add_row(*row)

    console.print(table)


@click.command()
def insights() -> None:
    """Show what your trade history says about you.

    Insights are ordered by severity: dangers first, then warnings,
    strengths and notes.

    \b
    Examples:
      tradejournal insights
    """
    from tradejournal.analytics.insights import generate_insights

    config = _get_config()
    convention = _get_convention(config)
    trades = _load_trades(config, convention, None)

    for insight in generate_insights(trades, convention):
        color, marker = INSIGHT_STYLES[insight.type]
        body = escape(insight.description)
        if insight.recommendation:
            body += f"\n\n[bold]->[/bold] {escape(insight.recommendation)}"
        body += f"\n\n[dim]Confidence: {insight.confidence}%[/dim]"
        console.print(Panel(
            body,
            title=f"[bold {color}]{marker} {escape(insight.title)}[/bold {color}]",
            border_style=color,
        ))


@click.command()
@click.option(
    "--session",
    "session_type",
    type=click.Choice([s.value for s in SessionType], case_sensitive=False),
    default=None,
    help="Session you are about to trade, to check session locks.",
)
def status(session_type: Optional[str]) -> None:
    """Display discipline status and any active trading lock.

    \b
    Examples:
      tradejournal status
      tradejournal status --session London
    """
    from tradejournal.analytics.enforcement import (
        active_lock,
        check_revenge_trade_risk,
        evaluate_enforcement,
    )

    config = _get_config()
    convention = _get_convention(config)
    trades = _load_trades(config, convention, None)
    max_trades = int(config.get("limits", {}).get("max_trades_per_day", 3))

    now = datetime.now(pytz.utc)
    state = evaluate_enforcement(trades, now)

    if state.is_read_only:
        color, headline = "red", "READ-ONLY: too many rule violations"
    elif state.show_warning:
        color, headline = "yellow", "WARNING: violations are piling up"
    else:
        color, headline = "green", "Clean"

    days_since = state.days_since_last_violation
    console.print(Panel(
        f"[bold {color}]{headline}[/bold {color}]\n\n"
        f"Violations (14 days):    {state.violation_count}\n"
        f"Until read-only:         {state.violations_until_lockout}\n"
        f"Days since violation:    {days_since if days_since != 999 else 'never violated'}",
        title="[bold cyan]Discipline[/bold cyan]",
        border_style=color,
    ))

    lock = active_lock(
        trades,
        now,
        max_trades_per_day=max_trades,
        current_session=SessionType.parse(session_type) if session_type else None,
        convention=convention,
    )
    if lock:
        expires = (
            convention.localize(lock.expires_at).strftime("%Y-%m-%d %H:%M %Z")
            if lock.expires_at else "end of session"
        )
        console.print(Panel(
            f"[red]{escape(lock.reason)}[/red]\n\n[dim]Until: {expires}[/dim]",
            title=f"[bold red]Trading Locked ({lock.type})[/bold red]",
            border_style="red",
        ))
    elif check_revenge_trade_risk(trades, now):
        console.print("[yellow]You closed a loss minutes ago. Wait before the next trade.[/yellow]")
    else:
        console.print("[green]No active locks.[/green]")
