"""Tests for the TradeJournal command-line interface.

**Feature: trade-journal**
"""

import time
from datetime import datetime, timedelta

import pytest
import pytz
from click.testing import CliRunner

from factories import make_trade
from tradejournal.cli.main import LAZY_SUBCOMMANDS, cli
from tradejournal.config import DB_FILENAME
from tradejournal.db.store import DataStore

CSV = """Date,Time,Symbol,Side,Entry,Exit,PnL,Setup
2024-03-04,09:15,EURUSD,Buy,1.0850,1.0870,20,Breakout
2024-03-04,14:30,GBPUSD,Sell,1.2700,1.2720,-40,Reversal
2024-03-05,10:00,EURUSD,Buy,1.0900,1.0950,50,Breakout
"""


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setenv("TRADEJOURNAL_HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def store(home):
    return DataStore(home / DB_FILENAME)


def _recent_trades(count, **overrides):
    now_ms = int(time.time() * 1000)
    today = datetime.now(pytz.utc).date()
    return [
        make_trade(date=today, ts=now_ms - (count - i) * 60 * 60 * 1000, **overrides)
        for i in range(count)
    ]


class TestCliBasics:
    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["-h"])

        assert result.exit_code == 0
        for name in LAZY_SUBCOMMANDS:
            assert name in result.output

    def test_every_lazy_command_loads(self, runner):
        for name in LAZY_SUBCOMMANDS:
            result = runner.invoke(cli, [name, "--help"])
            assert result.exit_code == 0, f"{name}: {result.output}"

    def test_unknown_command(self, runner):
        assert runner.invoke(cli, ["frobnicate"]).exit_code != 0

    def test_invalid_config_exits(self, runner, home):
        (home / "config.toml").write_text("[analytics\n")

        result = runner.invoke(cli, ["journal"])

        assert result.exit_code == 1
        assert "Error" in result.output

    @pytest.mark.parametrize("content", ["sessions = 5\n", "analytics = \"x\"\n"])
    def test_non_table_section_exits(self, runner, home, content):
        (home / "config.toml").write_text(content)

        result = runner.invoke(cli, ["breakdown", "--by", "session"])

        assert result.exit_code == 1
        assert "Error" in result.output
        assert not isinstance(result.exception, (TypeError, AttributeError))


class TestImportAndJournal:
    def test_import_then_journal(self, runner, home, store):
        (home / "history.csv").write_text(CSV)

        result = runner.invoke(cli, ["import", str(home / "history.csv")])

        assert result.exit_code == 0, result.output
        assert "Imported" in result.output
        assert len(store.get_trades()) == 3

        journal = runner.invoke(cli, ["journal"])
        assert journal.exit_code == 0
        assert "GBPUSD" in journal.output
        assert "Total Trades:" in journal.output

    def test_reimport_skips_duplicates(self, runner, home, store):
        (home / "history.csv").write_text(CSV)

        runner.invoke(cli, ["import", str(home / "history.csv")])
        result = runner.invoke(cli, ["import", str(home / "history.csv")])

        assert result.exit_code == 0
        assert len(store.get_trades()) == 3

    def test_empty_journal(self, runner, home):
        result = runner.invoke(cli, ["journal"])

        assert result.exit_code == 0
        assert "No trades found" in result.output

    @pytest.mark.parametrize(
        "zone,offset,shown",
        [("Pacific/Pago_Pago", 0, True), ("Pacific/Kiritimati", -1, False)],
    )
    def test_days_cutoff_uses_configured_zone(self, runner, home, store, zone, offset, shown):
        (home / "config.toml").write_text(f'[analytics]\ntimezone = "{zone}"\n')
        local_today = datetime.now(pytz.timezone(zone)).date()
        store.log_trade(make_trade(date=local_today + timedelta(days=offset), pair="USDJPY"))

        result = runner.invoke(cli, ["journal", "--days", "0"])

        assert result.exit_code == 0, result.output
        assert ("USDJPY" in result.output) is shown


class TestLogCommand:
    ARGS = ["log", "--pair", "eurusd", "--direction", "long", "--entry", "1.1",
            "--exit", "1.2", "--pnl", "25", "--mood", "calm"]

    def test_log_trade(self, runner, store):
        result = runner.invoke(cli, self.ARGS + ["--at", "2024-03-04 10:30"])

        assert result.exit_code == 0, result.output
        assert "Trade Logged" in result.output
        (trade,) = store.get_trades()
        assert trade.pair == "EURUSD"
        assert trade.pnl == 25.0
        assert trade.mood.value == "calm"
        assert trade.date.isoformat() == "2024-03-04"

    def test_log_refused_when_read_only(self, runner, store):
        store.log_trades(_recent_trades(5, violation_reason="Moved stop"))

        result = runner.invoke(cli, self.ARGS)

        assert result.exit_code == 1
        assert "read-only" in result.output
        assert len(store.get_trades()) == 5

    def test_invalid_direction(self, runner, store):
        result = runner.invoke(cli, ["log", "--pair", "EURUSD", "--direction", "up",
                                     "--entry", "1", "--exit", "1", "--pnl", "0"])
        assert result.exit_code == 2


class TestAnalyticsCommands:
    def test_stats(self, runner, store):
        store.log_trades([make_trade(pnl=p, minute=i) for i, p in enumerate([20.0, -10.0, 30.0])])

        result = runner.invoke(cli, ["stats"])

        assert result.exit_code == 0, result.output
        assert "Performance" in result.output
        assert "Profit Factor" in result.output
        assert "Breakout" in result.output
        assert "Risk of Ruin" in result.output
        assert "Projected R" in result.output

    def test_stats_empty(self, runner, home):
        result = runner.invoke(cli, ["stats"])
        assert "No trades found" in result.output

    @pytest.mark.parametrize("dimension", ["setup", "mood", "pair", "hour", "weekday", "session", "heatmap"])
    def test_breakdown(self, runner, store, dimension):
        store.log_trades([make_trade(hour=h) for h in (3, 9, 17)])

        result = runner.invoke(cli, ["breakdown", "--by", dimension])

        assert result.exit_code == 0, result.output

    def test_insights_need_data(self, runner, store):
        store.log_trades([make_trade() for _ in range(3)])

        result = runner.invoke(cli, ["insights"])

        assert result.exit_code == 0
        assert "More data needed" in result.output

    def test_insights(self, runner, store):
        store.log_trades([make_trade(pnl=20.0, minute=i) for i in range(20)])

        result = runner.invoke(cli, ["insights"])

        assert result.exit_code == 0, result.output
        assert "on fire" in result.output

    def test_status_clean(self, runner, home):
        result = runner.invoke(cli, ["status"])

        assert result.exit_code == 0
        assert "Clean" in result.output
        assert "No active locks" in result.output

    def test_status_read_only_and_locked(self, runner, store):
        store.log_trades(_recent_trades(5, pnl=-5.0, violation_reason="FOMO", session_type="London"))

        result = runner.invoke(cli, ["status", "--session", "London"])

        assert result.exit_code == 0, result.output
        assert "READ-ONLY" in result.output
        assert "Trading Locked" in result.output
