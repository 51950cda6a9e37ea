"""Performance metric calculators.

Division by zero never raises and never yields NaN or infinity.  Rates and
averages are 0.0 when there is nothing to divide by; profit factor is
``None`` whenever there is no gross loss.
"""

from __future__ import annotations

import logging
import math
import statistics
from collections import defaultdict
from typing import Optional, Sequence

from tradejournal.analytics.aggregation import UNKNOWN_KEY, TimeConvention, aggregate_by_session
from tradejournal.models import (
    AnalyticsSummary,
    EcdfPoint,
    EquityPoint,
    ExpectancyProjection,
    KellySizing,
    SetupExpectancy,
    Trade,
    TradeMetrics,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_RISK = 10.0
DEFAULT_STARTING_BALANCE = 10000.0

# Trade counts the expectancy projection reports on
PROJECTION_MILESTONES = (10, 25, 50, 100, 250, 500)

# z-score of the 10th/90th percentile of a normal distribution
PROJECTION_Z = 1.28


def win_rate(wins: int, total: int) -> float:
    """Winning fraction in 0..1, 0.0 for no trades."""
    return wins / total if total > 0 else 0.0


def profit_factor(gross_profit: float, gross_loss: float) -> Optional[float]:
    """Gross profit over gross loss.

    Returns:
        The ratio, or None when there is no gross loss to divide by.
    """
    gross_loss = abs(gross_loss)
    if gross_loss == 0:
        return None
    return gross_profit / gross_loss


def expectancy(win_rate: float, avg_win: float, loss_rate: float, avg_loss: float) -> float:
    """Expected result per trade: ``win_rate*avg_win - loss_rate*avg_loss``.

    ``avg_loss`` is taken as a magnitude, whatever its sign.
    """
    return win_rate * avg_win - loss_rate * abs(avg_loss)


def _average(values: Sequence[float]) -> float:
    return math.fsum(values) / len(values) if values else 0.0


def compute_metrics(trades: Sequence[Trade]) -> TradeMetrics:
    """Calculate performance metrics from a list of trades.

    Args:
        trades: Trades to measure.

    Returns:
        TradeMetrics with win rate, profit factor, expectancy and totals.
    """
    wins = [t.pnl for t in trades if t.is_win]
    losses = [abs(t.pnl) for t in trades if t.is_loss]
    total = len(trades)

    gross_profit = math.fsum(wins)
    gross_loss = math.fsum(losses)
    rate_win = win_rate(len(wins), total)
    rate_loss = win_rate(len(losses), total)
    avg_win = _average(wins)
    avg_loss = _average(losses)

    return TradeMetrics(
        total_trades=total,
        winning_trades=len(wins),
        losing_trades=len(losses),
        breakeven_trades=total - len(wins) - len(losses),
        win_rate=rate_win,
        loss_rate=rate_loss,
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        net_pnl=math.fsum(t.pnl for t in trades),
        avg_win=avg_win,
        avg_loss=avg_loss,
        largest_win=max(wins, default=0.0),
        largest_loss=max(losses, default=0.0),
        profit_factor=profit_factor(gross_profit, gross_loss),
        expectancy=expectancy(rate_win, avg_win, rate_loss, avg_loss),
    )


# ==================== R-multiples ====================

def r_multiple(trade: Trade, base_risk: float = DEFAULT_BASE_RISK) -> float:
    """Trade result as a multiple of the amount risked (0.0 with no risk)."""
    if base_risk == 0:
        return 0.0
    return trade.pnl / base_risk


def expectancy_by_setup(
    trades: Sequence[Trade], base_risk: float = DEFAULT_BASE_RISK
) -> list[SetupExpectancy]:
    """Expectancy in R for each setup, best first."""
    grouped: dict[str, list[Trade]] = defaultdict(list)
    for trade in trades:
        grouped[trade.setup or UNKNOWN_KEY].append(trade)

    results = []
    for setup, setup_trades in grouped.items():
        win_r = [r_multiple(t, base_risk) for t in setup_trades if t.is_win]
        loss_r = [abs(r_multiple(t, base_risk)) for t in setup_trades if t.is_loss]
        rate_win = win_rate(len(win_r), len(setup_trades))
        rate_loss = win_rate(len(loss_r), len(setup_trades))
        avg_win_r = _average(win_r)
        avg_loss_r = _average(loss_r)
        results.append(SetupExpectancy(
            setup=setup,
            trades=len(setup_trades),
            wins=len(win_r),
            losses=len(loss_r),
            win_rate=rate_win,
            avg_win_r=avg_win_r,
            avg_loss_r=avg_loss_r,
            expectancy=expectancy(rate_win, avg_win_r, rate_loss, avg_loss_r),
            total_pnl=math.fsum(t.pnl for t in setup_trades),
        ))

    return sorted(results, key=lambda s: (-s.expectancy, s.setup))


def r_multiple_ecdf(
    trades: Sequence[Trade],
    base_risk: float = DEFAULT_BASE_RISK,
    setup: Optional[str] = None,
) -> list[EcdfPoint]:
    """Empirical cumulative distribution of R-multiples, optionally for one setup."""
    selected = [t for t in trades if setup is None or t.setup == setup]
    values = sorted(r_multiple(t, base_risk) for t in selected)
    n = len(values)
    return [EcdfPoint(r=r, cumulative=(i + 1) / n) for i, r in enumerate(values)]


def ecdf_percentiles(points: Sequence[EcdfPoint]) -> dict[str, float]:
    """Read p10/p25/p50/p75/p90 off an ECDF (all 0.0 when empty)."""
    targets = {"p10": 0.10, "p25": 0.25, "p50": 0.50, "p75": 0.75, "p90": 0.90}
    if not points:
        return {name: 0.0 for name in targets}

    def find(target: float) -> float:
        for point in points:
            if point.cumulative >= target:
                return point.r
        return points[-1].r

    return {name: find(target) for name, target in targets.items()}


# ==================== Equity curve ====================

def equity_curve(
    trades: Sequence[Trade], starting_balance: float = DEFAULT_STARTING_BALANCE
) -> list[EquityPoint]:
    """Replay trades in timestamp order and track equity and drawdown.

    Returns:
        One point per trade plus the starting point; empty for no trades.
    """
    if not trades:
        return []

    ordered = sorted(trades, key=lambda t: (t.ts, t.id))
    equity = starting_balance
    peak = starting_balance
    max_drawdown = 0.0
    curve = [EquityPoint(trade=0, equity=equity, drawdown=0.0, max_drawdown=0.0)]

    for i, trade in enumerate(ordered, start=1):
        equity += trade.pnl
        peak = max(peak, equity)
        drawdown = (peak - equity) / peak * 100 if peak > 0 else 0.0
        max_drawdown = max(max_drawdown, drawdown)
        curve.append(EquityPoint(
            trade=i, equity=equity, drawdown=drawdown, max_drawdown=max_drawdown
        ))

    logger.debug("Equity curve: %d trades, max drawdown %.2f%%", len(ordered), max_drawdown)
    return curve


# ==================== Summary ====================

def summarize(
    trades: Sequence[Trade],
    base_risk: float = DEFAULT_BASE_RISK,
    convention: Optional[TimeConvention] = None,
) -> AnalyticsSummary:
    """Headline statistics in R-multiples.

    Besides win rate and expectancy this picks the best and worst setup by
    R expectancy, the session with the highest total P&L, and a Sharpe-style
    ratio of mean R over its population standard deviation.

    Args:
        trades: Trades to summarize.
        base_risk: Amount that counts as 1R.
        convention: Time zone and sessions used to find the best session.

    Returns:
        AnalyticsSummary; all zeros and no best/worst picks for no trades.
    """
    if not trades:
        return AnalyticsSummary(
            total_trades=0,
            win_rate=0.0,
            expectancy=0.0,
            avg_win_r=0.0,
            avg_loss_r=0.0,
            std_dev_r=0.0,
            sharpe_ratio=0.0,
        )

    convention = convention or TimeConvention()
    metrics = compute_metrics(trades)
    r_values = [r_multiple(t, base_risk) for t in trades]
    avg_win_r = _average([r for t, r in zip(trades, r_values) if t.is_win])
    avg_loss_r = _average([abs(r) for t, r in zip(trades, r_values) if t.is_loss])
    std_dev_r = statistics.pstdev(r_values)

    setups = expectancy_by_setup(trades, base_risk)
    sessions = aggregate_by_session(trades, convention)
    best_session = max(sorted(sessions), key=lambda name: sessions[name].total_pnl)

    return AnalyticsSummary(
        total_trades=len(trades),
        win_rate=metrics.win_rate,
        profit_factor=metrics.profit_factor,
        expectancy=expectancy(metrics.win_rate, avg_win_r, metrics.loss_rate, avg_loss_r),
        avg_win_r=avg_win_r,
        avg_loss_r=avg_loss_r,
        std_dev_r=std_dev_r,
        sharpe_ratio=statistics.fmean(r_values) / std_dev_r if std_dev_r > 0 else 0.0,
        best_setup=setups[0].setup,
        worst_setup=setups[-1].setup,
        best_session=best_session,
    )


# ==================== Risk of ruin ====================

def risk_of_ruin(
    win_rate: float, avg_win_r: float, avg_loss_r: float, capital_units: int = 100
) -> float:
    """Chance of losing the whole account, in percent.

    Uses ``((1 - A) / (1 + A)) ** capital_units`` where ``A`` is the edge per
    trade over the average loss.  A non-positive edge is certain ruin.

    Args:
        win_rate: Win probability (0-1).
        avg_win_r: Average win in R.
        avg_loss_r: Average loss in R, as a magnitude.
        capital_units: Account size in units of 1R (100 when risking 1%).
    """
    avg_loss_r = abs(avg_loss_r)
    edge = expectancy(win_rate, avg_win_r, 1 - win_rate, avg_loss_r)
    if edge <= 0:
        return 100.0

    advantage = edge / max(avg_loss_r, 0.01)
    if advantage >= 1:
        return 0.0

    ruin = ((1 - advantage) / (1 + advantage)) ** capital_units * 100
    return min(100.0, max(0.0, ruin))


def kelly_sizing(win_rate: float, avg_win_r: float, avg_loss_r: float) -> KellySizing:
    """Kelly fraction ``(p*b - q) / b`` with ``b = avg_win / avg_loss``.

    Risk of ruin is approximated from the Kelly fraction: certain below
    zero, 0.1% from a quarter of capital upward, ``exp(-15 * kelly)``
    in between.
    """
    avg_loss_r = abs(avg_loss_r)
    payoff = avg_win_r / avg_loss_r if avg_loss_r > 0 else 1.0
    # Without an average win there is no edge to size
    kelly = (win_rate * payoff - (1 - win_rate)) / payoff if payoff > 0 else 0.0

    if kelly <= 0:
        ruin = 100.0
    elif kelly >= 0.25:
        ruin = 0.1
    else:
        ruin = math.exp(-15 * kelly) * 100

    return KellySizing(
        risk_of_ruin=min(100.0, max(0.0, ruin)),
        kelly_fraction=max(0.0, kelly),
        half_kelly=max(0.0, kelly / 2),
    )


# ==================== Projections ====================

def project_expectancy(
    expectancy_r: float, std_dev_r: float, trade_count: int = 100
) -> list[ExpectancyProjection]:
    """Project cumulative R at ``PROJECTION_MILESTONES`` trades.

    The spread grows with the square root of the trade count.  Milestones
    beyond ten times the history size are left out.
    """
    projections = []
    for n in PROJECTION_MILESTONES:
        if n > trade_count * 10:
            continue
        expected = expectancy_r * n
        spread = PROJECTION_Z * abs(std_dev_r) * math.sqrt(n)
        projections.append(ExpectancyProjection(
            trades=n,
            expected_r=expected,
            p10=expected - spread,
            p50=expected,
            p90=expected + spread,
        ))
    return projections
