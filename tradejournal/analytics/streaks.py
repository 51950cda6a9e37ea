"""Profitable-day streak calculator."""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import date
from typing import Sequence

from tradejournal.models import StreakSummary, Trade


def daily_pnl(trades: Sequence[Trade]) -> dict[date, float]:
    """Net P&L per calendar date."""
    per_day: dict[date, list[float]] = defaultdict(list)
    for trade in trades:
        per_day[trade.date].append(trade.pnl)
    return {day: math.fsum(pnls) for day, pnls in per_day.items()}


def compute_streaks(trades: Sequence[Trade]) -> StreakSummary:
    """Calculate current and longest runs of profitable days.

    The current streak counts back from the most recent trading day and is
    0 when that day was not profitable.  Days without trades do not break a
    streak; only trading days are considered.

    Args:
        trades: Trades to scan.

    Returns:
        StreakSummary with current/longest streak and last profitable day.
    """
    days = daily_pnl(trades)
    newest_first = sorted(days, reverse=True)

    current = 0
    for day in newest_first:
        if days[day] <= 0:
            break
        current += 1

    last_profitable = next((day for day in newest_first if days[day] > 0), None)

    longest = 0
    run = 0
    for day in reversed(newest_first):
        if days[day] > 0:
            run += 1
            longest = max(longest, run)
        else:
            run = 0

    return StreakSummary(
        current_streak=current,
        longest_streak=max(longest, current),
        last_profitable_day=last_profitable,
    )
