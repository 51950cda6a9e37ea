"""Trade analytics and insight engine.

Pure functions from a list of trades to statistics:

compute_aggregates    Per-key buckets of count, wins and total P&L
compute_metrics       Win rate, profit factor, expectancy
compute_streaks       Current/longest profitable-day streaks
generate_insights     Ranked heuristic insights
evaluate_enforcement  Violation-based enforcement state at a given time
summarize             Best/worst setup, best session and Sharpe ratio in R
"""

from tradejournal.analytics.aggregation import Bucket, TimeConvention, compute_aggregates
from tradejournal.analytics.enforcement import active_lock, evaluate_enforcement
from tradejournal.analytics.insights import DETECTORS, generate_insights, rank_insights
from tradejournal.analytics.metrics import (
    compute_metrics,
    equity_curve,
    expectancy_by_setup,
    summarize,
)
from tradejournal.analytics.streaks import compute_streaks

__all__ = [
    "Bucket",
    "TimeConvention",
    "compute_aggregates",
    "compute_metrics",
    "compute_streaks",
    "generate_insights",
    "rank_insights",
    "DETECTORS",
    "evaluate_enforcement",
    "active_lock",
    "equity_curve",
    "expectancy_by_setup",
    "summarize",
]
