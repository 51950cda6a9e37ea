"""Property-based tests for the profitable-day streak calculator.

**Feature: trade-journal**
"""

from datetime import date, timedelta

from hypothesis import given, settings
from hypothesis import strategies as st

from factories import make_trade, trade_lists
from tradejournal.analytics.streaks import compute_streaks, daily_pnl

START = date(2024, 3, 1)


def _days(*pnls):
    """One trade per consecutive day with the given pnl."""
    return [make_trade(date=START + timedelta(days=i), pnl=pnl) for i, pnl in enumerate(pnls)]


class TestStreakMonotonicity:
    """
    **Feature: trade-journal, Property 6: Streak Monotonicity**

    *For any* trades, the longest streak is at least the current streak.
    """

    @given(trades=trade_lists())
    @settings(max_examples=75)
    def test_longest_at_least_current(self, trades):
        summary = compute_streaks(trades)
        assert summary.longest_streak >= summary.current_streak >= 0

    @given(trades=trade_lists(min_size=1))
    @settings(max_examples=50)
    def test_newest_day_decides_current(self, trades):
        """A non-positive newest day always resets the current streak."""
        days = daily_pnl(trades)
        newest = max(days)
        summary = compute_streaks(trades)

        if days[newest] <= 0:
            assert summary.current_streak == 0
        else:
            assert summary.current_streak >= 1
            assert summary.last_profitable_day == newest


class TestStreakCalculation:
    def test_empty(self):
        summary = compute_streaks([])
        assert (summary.current_streak, summary.longest_streak, summary.last_profitable_day) == (0, 0, None)

    def test_current_and_longest(self):
        summary = compute_streaks(_days(5, 5, 5, -1, 5, 5))

        assert summary.current_streak == 2
        assert summary.longest_streak == 3
        assert summary.last_profitable_day == START + timedelta(days=5)

    def test_losing_newest_day(self):
        summary = compute_streaks(_days(5, 5, -1))

        assert summary.current_streak == 0
        assert summary.longest_streak == 2
        assert summary.last_profitable_day == START + timedelta(days=1)

    def test_breakeven_day_breaks_streak(self):
        assert compute_streaks(_days(5, 0, 5)).longest_streak == 1

    def test_days_net_out(self):
        """Several trades on one day count as that day's net result."""
        trades = [
            make_trade(date=START, pnl=30.0),
            make_trade(date=START, pnl=-10.0),
            make_trade(date=START + timedelta(days=1), pnl=-20.0),
            make_trade(date=START + timedelta(days=1), pnl=15.0),
        ]

        summary = compute_streaks(trades)

        assert daily_pnl(trades) == {START: 20.0, START + timedelta(days=1): -5.0}
        assert summary.current_streak == 0
        assert summary.longest_streak == 1

    def test_gaps_between_trading_days_do_not_break(self):
        trades = [make_trade(date=START, pnl=5.0), make_trade(date=START + timedelta(days=10), pnl=5.0)]
        assert compute_streaks(trades).current_streak == 2

    @given(st.permutations(_days(1, 2, -3, 4, 5, 6, -7, 8)))
    @settings(max_examples=25)
    def test_input_order_irrelevant(self, trades):
        summary = compute_streaks(trades)
        assert (summary.current_streak, summary.longest_streak) == (1, 3)
