"""CLI commands for TradeJournal.

This package provides the command-line interface for TradeJournal:
recording and importing trades, and the analytics views over them.
"""

from tradejournal.cli.main import cli, main

__all__ = ["cli", "main"]
