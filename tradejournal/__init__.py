"""TradeJournal - forex/CFD trading journal with analytics and insights."""

__version__ = "0.1.0"
