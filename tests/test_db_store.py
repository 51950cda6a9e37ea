"""Property-based tests for the database store.

**Feature: trade-journal**
"""

import tempfile
from datetime import date, timedelta
from pathlib import Path

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from factories import make_trade, trade_lists
from tradejournal.db.store import DataStore
from tradejournal.models import Mood, SessionType


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        yield DataStore(db_path)


class TestDatabaseSchemaCompleteness:
    """
    **Feature: trade-journal, Property 13: Database Schema Completeness**

    *For any* fresh database, all required tables should exist.
    """

    def test_schema_completeness(self, temp_db: DataStore):
        """Test that all required tables exist in a fresh database."""
        tables = temp_db.get_tables()

        for table in DataStore.REQUIRED_TABLES:
            assert table in tables, f"Required table '{table}' is missing"

    @given(st.integers(min_value=1, max_value=5))
    @settings(max_examples=10)
    def test_schema_completeness_multiple_instances(self, num_instances: int):
        """
        *For any* number of DataStore instances created with fresh databases,
        all required tables should exist in each.
        """
        with tempfile.TemporaryDirectory() as tmpdir:
            for i in range(num_instances):
                store = DataStore(Path(tmpdir) / f"test_{i}.db")
                tables = store.get_tables()

                for table in DataStore.REQUIRED_TABLES:
                    assert table in tables, f"Required table '{table}' missing in instance {i}"

    def test_reopening_keeps_data(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            db_path = Path(tmpdir) / "nested" / "journal.db"
            DataStore(db_path).log_trade(make_trade(id="keep"))

            assert DataStore(db_path).get_trade("keep") is not None


class TestTradePersistence:
    """
    **Feature: trade-journal, Property 14: Trade Round Trip**

    *For any* trade stored, reading it back gives an equal trade.
    """

    @given(trades=trade_lists(min_size=1, max_size=20))
    @settings(max_examples=20, deadline=None)
    def test_trades_read_back_equal(self, trades):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = DataStore(Path(tmpdir) / "test.db")
            unique = list({t.id: t for t in trades}.values())

            assert store.log_trades(unique) == len(unique)

            stored = store.get_trades()
            assert sorted(stored, key=lambda t: t.id) == sorted(unique, key=lambda t: t.id)
            assert [t.ts for t in stored] == sorted(t.ts for t in unique)

    def test_optional_fields(self, temp_db: DataStore):
        trade = make_trade(
            id="full",
            mood=Mood.GREEDY,
            session_type=SessionType.OVERLAP,
            violation_reason="No stop",
            setup_quality="IMPULSE",
            sl=1.09,
            tp=1.12,
            notes="chased",
            source="csv",
        )
        temp_db.log_trade(trade)

        assert temp_db.get_trade("full") == trade


class TestTradeOperations:
    def test_duplicate_id_ignored(self, temp_db: DataStore):
        assert temp_db.log_trade(make_trade(id="dup", pnl=5.0)) is True
        assert temp_db.log_trade(make_trade(id="dup", pnl=50.0)) is False

        assert temp_db.get_trade("dup").pnl == 5.0

    def test_log_trades_counts_inserted(self, temp_db: DataStore):
        temp_db.log_trade(make_trade(id="a"))

        inserted = temp_db.log_trades([make_trade(id="a"), make_trade(id="b"), make_trade(id="c")])

        assert inserted == 2
        assert len(temp_db.get_trades()) == 3

    def test_date_filters(self, temp_db: DataStore):
        start = date(2024, 1, 1)
        temp_db.log_trades([make_trade(date=start + timedelta(days=d)) for d in range(5)])

        assert len(temp_db.get_trades(trade_date=start + timedelta(days=2))) == 1
        assert len(temp_db.get_trades(from_date=start + timedelta(days=3))) == 2

    def test_missing_trade(self, temp_db: DataStore):
        assert temp_db.get_trade("nope") is None

    def test_delete_trade(self, temp_db: DataStore):
        temp_db.log_trade(make_trade(id="gone"))

        assert temp_db.delete_trade("gone") is True
        assert temp_db.delete_trade("gone") is False
        assert temp_db.get_trades() == []
