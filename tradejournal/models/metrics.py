"""Performance metric data models."""

from datetime import date as date_type
from typing import Optional

from pydantic import BaseModel, Field


class TradeMetrics(BaseModel):
    """Aggregate performance statistics for a list of trades."""

    total_trades: int = Field(..., ge=0, description="Number of trades")
    winning_trades: int = Field(..., ge=0, description="Trades with pnl > 0")
    losing_trades: int = Field(..., ge=0, description="Trades with pnl < 0")
    breakeven_trades: int = Field(..., ge=0, description="Trades with pnl == 0")
    win_rate: float = Field(..., ge=0, le=1, description="Winning fraction (0-1)")
    loss_rate: float = Field(..., ge=0, le=1, description="Losing fraction (0-1)")
    gross_profit: float = Field(..., ge=0, description="Sum of winning pnl")
    gross_loss: float = Field(..., ge=0, description="Absolute sum of losing pnl")
    net_pnl: float = Field(..., description="Sum of all pnl")
    avg_win: float = Field(..., ge=0, description="Average winning pnl")
    avg_loss: float = Field(..., ge=0, description="Average losing pnl (absolute)")
    largest_win: float = Field(..., ge=0, description="Best single trade")
    largest_loss: float = Field(..., ge=0, description="Worst single trade (absolute)")
    profit_factor: Optional[float] = Field(
        default=None, description="Gross profit / gross loss (None without losses)"
    )
    expectancy: float = Field(..., description="Expected pnl per trade")

    model_config = {"frozen": True}


class StreakSummary(BaseModel):
    """Consecutive profitable-day streaks."""

    current_streak: int = Field(..., ge=0, description="Profitable days up to the latest day")
    longest_streak: int = Field(..., ge=0, description="Longest profitable-day run")
    last_profitable_day: Optional[date_type] = Field(
        default=None, description="Most recent profitable date"
    )

    model_config = {"frozen": True}


class SetupExpectancy(BaseModel):
    """R-multiple expectancy for one setup."""

    setup: str
    trades: int = Field(..., ge=0)
    wins: int = Field(..., ge=0)
    losses: int = Field(..., ge=0)
    win_rate: float = Field(..., ge=0, le=1)
    avg_win_r: float
    avg_loss_r: float
    expectancy: float = Field(..., description="Expectancy in R")
    total_pnl: float

    model_config = {"frozen": True}


class EquityPoint(BaseModel):
    """One step of the equity curve."""

    trade: int = Field(..., ge=0, description="Trade number (0 = starting balance)")
    equity: float
    drawdown: float = Field(..., ge=0, description="Drawdown from peak in percent")
    max_drawdown: float = Field(..., ge=0, description="Max drawdown so far in percent")

    model_config = {"frozen": True}


class EcdfPoint(BaseModel):
    """One point of an R-multiple empirical distribution."""

    r: float
    cumulative: float = Field(..., ge=0, le=1)

    model_config = {"frozen": True}


class AnalyticsSummary(BaseModel):
    """Headline numbers for a trade history, in R-multiples."""

    total_trades: int = Field(..., ge=0)
    win_rate: float = Field(..., ge=0, le=1)
    profit_factor: Optional[float] = Field(
        default=None, description="Gross profit / gross loss (None without losses)"
    )
    expectancy: float = Field(..., description="Expectancy in R")
    avg_win_r: float = Field(..., ge=0)
    avg_loss_r: float = Field(..., ge=0, description="Average losing R (absolute)")
    std_dev_r: float = Field(..., ge=0, description="Population standard deviation of R")
    sharpe_ratio: float = Field(..., description="Mean R over its standard deviation")
    best_setup: Optional[str] = None
    worst_setup: Optional[str] = None
    best_session: Optional[str] = None

    model_config = {"frozen": True}


class KellySizing(BaseModel):
    """Kelly position sizing and the matching risk-of-ruin estimate."""

    risk_of_ruin: float = Field(..., ge=0, le=100, description="Risk of ruin in percent")
    kelly_fraction: float = Field(..., ge=0, description="Full Kelly fraction of capital")
    half_kelly: float = Field(..., ge=0)

    model_config = {"frozen": True}


class ExpectancyProjection(BaseModel):
    """Projected cumulative R after a number of trades."""

    trades: int = Field(..., gt=0)
    expected_r: float
    p10: float = Field(..., description="Pessimistic (10th percentile) R")
    p50: float
    p90: float = Field(..., description="Optimistic (90th percentile) R")

    model_config = {"frozen": True}
