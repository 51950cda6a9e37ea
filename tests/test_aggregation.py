"""Property-based tests for trade aggregation.

**Feature: trade-journal**
"""

import random
from datetime import date, datetime

import pytest
import pytz
from hypothesis import given, settings
from hypothesis import strategies as st

from factories import epoch_ms, make_trade, trade_lists
from tradejournal.analytics.aggregation import (
    UNKNOWN_KEY,
    Bucket,
    TimeConvention,
    aggregate_by_hour,
    aggregate_by_mood,
    aggregate_by_session,
    aggregate_by_setup,
    aggregate_by_weekday,
    compute_aggregates,
    session_hour_matrix,
)
from tradejournal.models import Mood


class TestAggregationCompleteness:
    """
    **Feature: trade-journal, Property 1: Aggregation Completeness**

    *For any* list of trades and key function, bucket counts sum to the
    number of trades and bucket P&L sums to the total P&L.
    """

    def test_seven_trades_three_setups(self):
        """Seven trades across three setups land in three buckets summing to 7."""
        trades = (
            [make_trade(setup="Breakout", pnl=10.0) for _ in range(3)]
            + [make_trade(setup="Pullback", pnl=-5.0) for _ in range(2)]
            + [make_trade(setup="Reversal", pnl=2.5) for _ in range(2)]
        )

        buckets = aggregate_by_setup(trades)

        assert set(buckets) == {"Breakout", "Pullback", "Reversal"}
        assert sum(b.count for b in buckets.values()) == 7
        assert buckets["Breakout"] == Bucket(count=3, wins=3, total_pnl=30.0)
        assert buckets["Pullback"].wins == 0
        assert buckets["Pullback"].total_pnl == -10.0

    @given(trades=trade_lists())
    @settings(max_examples=50)
    def test_counts_and_pnl_are_preserved(self, trades):
        """*For any* trades, no trade is lost or double counted."""
        buckets = aggregate_by_setup(trades)

        assert sum(b.count for b in buckets.values()) == len(trades)
        assert sum(b.wins for b in buckets.values()) == sum(1 for t in trades if t.pnl > 0)
        assert sum(b.total_pnl for b in buckets.values()) == pytest.approx(
            sum(t.pnl for t in trades), abs=1e-6
        )


class TestAggregationOrderIndependence:
    """
    **Feature: trade-journal, Property 2: Order Independence**

    *For any* permutation of the input, the buckets are identical.
    """

    @given(trades=trade_lists(), seed=st.integers(min_value=0, max_value=10_000))
    @settings(max_examples=50)
    def test_shuffled_input_gives_same_buckets(self, trades, seed):
        shuffled = list(trades)
        random.Random(seed).shuffle(shuffled)

        assert aggregate_by_setup(shuffled) == aggregate_by_setup(trades)
        assert aggregate_by_weekday(shuffled) == aggregate_by_weekday(trades)

    @given(trades=trade_lists())
    @settings(max_examples=25)
    def test_input_is_not_mutated(self, trades):
        before = [t.model_dump() for t in trades]
        aggregate_by_hour(trades)
        aggregate_by_mood(trades)
        assert [t.model_dump() for t in trades] == before


class TestUnknownBucket:
    """Missing keys are grouped under the Unknown sentinel."""

    def test_missing_and_blank_setups_are_unknown(self):
        trades = [make_trade(setup=None), make_trade(setup=""), make_trade(setup="Breakout")]

        buckets = aggregate_by_setup(trades)

        assert buckets[UNKNOWN_KEY].count == 2
        assert buckets["Breakout"].count == 1

    def test_unknown_mood_is_unknown_bucket(self):
        trades = [make_trade(mood=Mood.CALM), make_trade(mood=None), make_trade(mood="sleepy")]

        buckets = aggregate_by_mood(trades)

        assert buckets["calm"].count == 1
        assert buckets[UNKNOWN_KEY].count == 2

    def test_custom_key_function(self):
        trades = [make_trade(pair="EURUSD"), make_trade(pair="GBPUSD"), make_trade(pair="EURUSD")]

        buckets = compute_aggregates(trades, lambda t: t.pair[:3])

        assert buckets == {"EUR": Bucket(2, 2, 20.0), "GBP": Bucket(1, 1, 10.0)}

    def test_empty_input(self):
        assert compute_aggregates([], lambda t: t.pair) == {}


class TestBucket:
    def test_empty_bucket_rates(self):
        assert Bucket().win_rate == 0.0
        assert Bucket().avg_pnl == 0.0

    def test_rates(self):
        bucket = Bucket(count=4, wins=3, total_pnl=20.0)
        assert bucket.win_rate == 0.75
        assert bucket.avg_pnl == 5.0

    def test_expectancy_r(self):
        bucket = Bucket(count=3, wins=2, total_pnl=30.0)

        assert bucket.expectancy_r(10.0) == 1.0
        assert bucket.expectancy_r(0.0) == 0.0
        assert Bucket().expectancy_r(10.0) == 0.0


class TestTimeConvention:
    """Hours and sessions are read in an explicit time zone."""

    def test_hour_in_utc(self):
        trade = make_trade(hour=14)
        assert TimeConvention().hour_of(trade) == "14"

    def test_hour_in_other_zone(self):
        # January: New York is UTC-5
        trade = make_trade(hour=14)
        assert TimeConvention("America/New_York").hour_of(trade) == "9"

    def test_weekday_comes_from_date(self):
        # 23:30 UTC Monday is already Tuesday in Tokyo; the date field wins
        trade = make_trade(date=date(2024, 1, 15), hour=23, minute=30)
        assert aggregate_by_weekday([trade]) == {"Monday": Bucket(1, 1, 10.0)}

    @pytest.mark.parametrize(
        "hour,session",
        [(0, "Asia"), (7, "Asia"), (8, "London"), (15, "London"), (16, "NewYork"), (23, "NewYork")],
    )
    def test_default_sessions(self, hour, session):
        assert TimeConvention().session_of_hour(hour) == session

    def test_aggregate_by_session(self):
        trades = [make_trade(hour=3), make_trade(hour=9), make_trade(hour=10, pnl=-4.0)]

        buckets = aggregate_by_session(trades)

        assert buckets["Asia"].count == 1
        assert buckets["London"] == Bucket(count=2, wins=1, total_pnl=6.0)

    def test_custom_sessions(self):
        convention = TimeConvention("UTC", [("Night", 0), ("Day", 12)])
        assert convention.session_of_hour(11) == "Night"
        assert convention.session_of_hour(12) == "Day"

    def test_unknown_zone_rejected(self):
        with pytest.raises(ValueError, match="Unknown time zone"):
            TimeConvention("Mars/Olympus")

    @pytest.mark.parametrize(
        "starts",
        [[("A", 1)], [("A", 0), ("B", 0)], [("A", 0), ("B", 12), ("C", 6)], [("A", 0), ("B", 24)], []],
    )
    def test_malformed_sessions_rejected(self, starts):
        with pytest.raises(ValueError):
            TimeConvention("UTC", starts)

    def test_epoch_round_trip_is_zone_aware(self):
        convention = TimeConvention("Europe/London")
        ts = epoch_ms(date(2024, 7, 1), 12)
        assert convention.localize(ts).hour == 13
        assert convention.to_epoch_ms(convention.localize(ts)) == ts

    @pytest.mark.parametrize("zone", ["Pacific/Kiritimati", "Pacific/Pago_Pago", "UTC"])
    def test_today_is_read_in_the_zone(self, zone):
        tz = pytz.timezone(zone)
        before = datetime.now(tz).date()
        today = TimeConvention(zone).today()
        after = datetime.now(tz).date()

        assert today in (before, after)


class TestSessionHeatmap:
    def test_every_cell_present(self):
        matrix = session_hour_matrix([])

        assert list(matrix) == ["Asia", "London", "NewYork"]
        for cells in matrix.values():
            assert list(cells) == [0, 4, 8, 12, 16, 20]
            assert all(cell == Bucket() for cell in cells.values())

    def test_trades_land_in_their_block(self):
        trades = [make_trade(hour=9), make_trade(hour=10, pnl=-2.0), make_trade(hour=17)]

        matrix = session_hour_matrix(trades)

        assert matrix["London"][8] == Bucket(count=2, wins=1, total_pnl=8.0)
        assert matrix["NewYork"][16].count == 1
        assert matrix["Asia"][0].count == 0

    def test_cells_carry_r_expectancy(self):
        trades = [make_trade(hour=9), make_trade(hour=10, pnl=-2.0)]

        cell = session_hour_matrix(trades)["London"][8]

        assert cell.expectancy_r(10.0) == pytest.approx(0.4)
