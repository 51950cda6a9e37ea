"""Data models for the trade journal."""

from tradejournal.models.trade import Direction, Mood, SessionType, Trade
from tradejournal.models.insight import Insight, InsightType
from tradejournal.models.enforcement import EnforcementLevel, EnforcementState, TradeLock
from tradejournal.models.metrics import (
    AnalyticsSummary,
    EcdfPoint,
    EquityPoint,
    ExpectancyProjection,
    KellySizing,
    SetupExpectancy,
    StreakSummary,
    TradeMetrics,
)

__all__ = [
    "Direction",
    "Mood",
    "SessionType",
    "Trade",
    "Insight",
    "InsightType",
    "EnforcementLevel",
    "EnforcementState",
    "TradeLock",
    "AnalyticsSummary",
    "EcdfPoint",
    "EquityPoint",
    "ExpectancyProjection",
    "KellySizing",
    "SetupExpectancy",
    "StreakSummary",
    "TradeMetrics",
]
