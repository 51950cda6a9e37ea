"""Heuristic insight detectors and ranking.

Each detector is an independent pure function
``(trades, convention) -> list[Insight]`` registered with ``@detector``.
``generate_insights`` runs the registry and hands the concatenated output
to ``rank_insights``, which orders by severity then confidence.

Usage::

    insights = generate_insights(trades, TimeConvention("America/New_York"))
    for insight in insights:
        print(insight.type.value, insight.title)
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from typing import Callable, Iterable, Optional, Sequence

from tradejournal.analytics.aggregation import (
    UNKNOWN_KEY,
    Bucket,
    TimeConvention,
    aggregate_by_hour,
    aggregate_by_mood,
    aggregate_by_pair,
    aggregate_by_setup,
    aggregate_by_weekday,
)
from tradejournal.models import Insight, InsightType, Trade

logger = logging.getLogger(__name__)

Detector = Callable[[Sequence[Trade], TimeConvention], list[Insight]]

MIN_TRADES_FOR_INSIGHTS = 10
MIN_TIME_BUCKET = 3
MIN_CATEGORY_BUCKET = 5

LOSS_THRESHOLD = -10.0
PROFIT_THRESHOLD = 10.0

OVERTRADING_DAILY_TRADES = 5
OVERTRADING_MIN_DAYS = 3
REVENGE_WINDOW_MS = 60 * 60 * 1000
REVENGE_MIN_TRADES = 5
STREAK_LOOKBACK = 20
HOT_WIN_RATE = 70.0
COLD_WIN_RATE = 30.0
LOW_SETUP_WIN_RATE = 40.0

DETECTORS: list[Detector] = []


def detector(func: Detector) -> Detector:
    """Register an insight detector."""
    DETECTORS.append(func)
    return func


def scaled_confidence(count: int, total: int, base: int, cap: int) -> int:
    """Confidence that grows with the bucket's share of all trades."""
    if total <= 0:
        return 0
    return min(cap, int(count / total * 100 + base))


def _ranked(
    buckets: dict[str, Bucket],
    min_count: int,
    *,
    metric: Callable[[Bucket], float] = lambda b: b.avg_pnl,
    reverse: bool = True,
    skip_unknown: bool = False,
) -> list[tuple[str, Bucket]]:
    """Buckets with enough samples, ordered by ``metric``; ties break on key."""
    eligible = [
        (key, bucket) for key, bucket in buckets.items()
        if bucket.count >= min_count and not (skip_unknown and key == UNKNOWN_KEY)
    ]
    sign = -1 if reverse else 1
    return sorted(eligible, key=lambda item: (sign * metric(item[1]), item[0]))


def _hour_label(hour: str) -> str:
    return f"{int(hour)}:00"


# ==================== Time of day ====================

@detector
def detect_best_hour(trades: Sequence[Trade], convention: TimeConvention) -> list[Insight]:
    hours = _ranked(aggregate_by_hour(trades, convention), MIN_TIME_BUCKET)
    if not hours or hours[0][1].avg_pnl <= 0:
        return []

    hour, bucket = hours[0]
    end = (int(hour) + 1) % 24
    return [Insight(
        id="best-hour",
        type=InsightType.SUCCESS,
        title=f"Peak Performance: {_hour_label(hour)}-{end}:00",
        description=(
            f"You trade best around {_hour_label(hour)} with an average of "
            f"${bucket.avg_pnl:.2f} per trade ({bucket.count} trades)"
        ),
        recommendation="Schedule your most important trades during this time window.",
        confidence=scaled_confidence(bucket.count, len(trades), base=50, cap=95),
        data={"hour": int(hour), "avg_pnl": bucket.avg_pnl, "count": bucket.count,
              "timezone": convention.tz_name},
    )]


@detector
def detect_worst_hour(trades: Sequence[Trade], convention: TimeConvention) -> list[Insight]:
    hours = _ranked(aggregate_by_hour(trades, convention), MIN_TIME_BUCKET, reverse=False)
    if not hours or hours[0][1].avg_pnl >= LOSS_THRESHOLD:
        return []

    hour, bucket = hours[0]
    return [Insight(
        id="worst-hour",
        type=InsightType.WARNING,
        title=f"Avoid trading around {_hour_label(hour)}",
        description=(
            f"Your average loss at {_hour_label(hour)} is "
            f"${abs(bucket.avg_pnl):.2f} ({bucket.count} trades)"
        ),
        recommendation="Consider taking a break during this time or only take A+ setups.",
        confidence=scaled_confidence(bucket.count, len(trades), base=40, cap=90),
        data={"hour": int(hour), "avg_pnl": bucket.avg_pnl, "count": bucket.count,
              "timezone": convention.tz_name},
    )]


@detector
def detect_best_weekday(trades: Sequence[Trade], convention: TimeConvention) -> list[Insight]:
    days = _ranked(aggregate_by_weekday(trades), MIN_TIME_BUCKET)
    if not days or days[0][1].avg_pnl <= 0:
        return []

    day, bucket = days[0]
    return [Insight(
        id="best-day",
        type=InsightType.SUCCESS,
        title=f"{day}s are your strongest day",
        description=f"Average P&L on {day}s: ${bucket.avg_pnl:.2f} ({bucket.count} trades)",
        recommendation=f"Focus your trading energy on {day}s.",
        confidence=scaled_confidence(bucket.count, len(trades), base=40, cap=90),
        data={"weekday": day, "avg_pnl": bucket.avg_pnl, "count": bucket.count},
    )]


# ==================== Behaviour ====================

@detector
def detect_overtrading(trades: Sequence[Trade], convention: TimeConvention) -> list[Insight]:
    per_day: dict[str, list[Trade]] = defaultdict(list)
    for trade in trades:
        per_day[trade.date.isoformat()].append(trade)

    busy_days = [
        math.fsum(t.pnl for t in day_trades)
        for day_trades in per_day.values()
        if len(day_trades) >= OVERTRADING_DAILY_TRADES
    ]
    if len(busy_days) < OVERTRADING_MIN_DAYS:
        return []

    avg_daily = math.fsum(busy_days) / len(busy_days)
    if avg_daily >= 0:
        return []

    return [Insight(
        id="overtrading",
        type=InsightType.DANGER,
        title="Overtrading Detected",
        description=(
            f"On days with {OVERTRADING_DAILY_TRADES}+ trades, "
            f"you average ${avg_daily:.2f} loss"
        ),
        recommendation="Set a max of 3-4 trades per day. Quality over quantity.",
        confidence=85,
        data={"days_affected": len(busy_days), "avg_daily_pnl": avg_daily},
    )]


@detector
def detect_revenge_trading(trades: Sequence[Trade], convention: TimeConvention) -> list[Insight]:
    ordered = sorted(trades, key=lambda t: (t.ts, t.id))
    revenge = [
        current.pnl
        for previous, current in zip(ordered, ordered[1:])
        if previous.date == current.date
        and previous.is_loss
        and current.ts - previous.ts < REVENGE_WINDOW_MS
    ]
    if len(revenge) < REVENGE_MIN_TRADES:
        return []

    avg_revenge = math.fsum(revenge) / len(revenge)
    if avg_revenge >= 0:
        return []

    return [Insight(
        id="revenge-trading",
        type=InsightType.DANGER,
        title="Revenge Trading Pattern",
        description=(
            f"{len(revenge)} trades taken within 1 hour of a loss, "
            f"averaging ${avg_revenge:.2f}"
        ),
        recommendation="Take a 2-hour break after any loss. Walk away and reset.",
        confidence=90,
        data={"revenge_trade_count": len(revenge), "avg_revenge_pnl": avg_revenge},
    )]


@detector
def detect_emotional_patterns(trades: Sequence[Trade], convention: TimeConvention) -> list[Insight]:
    buckets = aggregate_by_mood(trades)
    best = _ranked(buckets, MIN_CATEGORY_BUCKET, skip_unknown=True)
    worst = _ranked(buckets, MIN_CATEGORY_BUCKET, reverse=False, skip_unknown=True)
    insights = []

    if best and best[0][1].avg_pnl > 0:
        mood, bucket = best[0]
        insights.append(Insight(
            id="best-mood",
            type=InsightType.SUCCESS,
            title=f"Trade best when {mood}",
            description=f"Your '{mood}' trades average ${bucket.avg_pnl:.2f}",
            recommendation=f"Only trade when you genuinely feel {mood}.",
            confidence=scaled_confidence(bucket.count, len(trades), base=30, cap=85),
            data={"mood": mood, "avg_pnl": bucket.avg_pnl, "count": bucket.count},
        ))

    if worst and worst[0][1].avg_pnl < LOSS_THRESHOLD:
        mood, bucket = worst[0]
        insights.append(Insight(
            id="worst-mood",
            type=InsightType.WARNING,
            title=f"Avoid trading when {mood}",
            description=f"Your '{mood}' trades average ${abs(bucket.avg_pnl):.2f} loss",
            recommendation=f"Take a break when feeling {mood}. Journal instead of trading.",
            confidence=scaled_confidence(bucket.count, len(trades), base=30, cap=85),
            data={"mood": mood, "avg_pnl": bucket.avg_pnl, "count": bucket.count},
        ))

    return insights


# ==================== Instruments and setups ====================

@detector
def detect_pair_performance(trades: Sequence[Trade], convention: TimeConvention) -> list[Insight]:
    buckets = aggregate_by_pair(trades)
    best = _ranked(buckets, MIN_CATEGORY_BUCKET)
    worst = _ranked(buckets, MIN_CATEGORY_BUCKET, reverse=False)
    insights = []

    if best and best[0][1].avg_pnl > PROFIT_THRESHOLD:
        pair, bucket = best[0]
        insights.append(Insight(
            id="best-pair",
            type=InsightType.SUCCESS,
            title=f"{pair} is your money-maker",
            description=(
                f"Average: ${bucket.avg_pnl:.2f} | Total: ${bucket.total_pnl:.2f} "
                f"({bucket.count} trades)"
            ),
            recommendation=f"Focus more on {pair} setups.",
            confidence=scaled_confidence(bucket.count, len(trades), base=50, cap=90),
            data={"pair": pair, "avg_pnl": bucket.avg_pnl, "total_pnl": bucket.total_pnl},
        ))

    if worst and worst[0][1].avg_pnl < LOSS_THRESHOLD:
        pair, bucket = worst[0]
        insights.append(Insight(
            id="worst-pair",
            type=InsightType.DANGER,
            title=f"Stop trading {pair}",
            description=(
                f"Average loss: ${abs(bucket.avg_pnl):.2f} | "
                f"Total: ${abs(bucket.total_pnl):.2f} ({bucket.count} trades)"
            ),
            recommendation=f"Avoid {pair} until you develop a winning strategy for it.",
            confidence=scaled_confidence(bucket.count, len(trades), base=50, cap=90),
            data={"pair": pair, "avg_pnl": bucket.avg_pnl, "total_pnl": bucket.total_pnl},
        ))

    return insights


@detector
def detect_setup_performance(trades: Sequence[Trade], convention: TimeConvention) -> list[Insight]:
    buckets = aggregate_by_setup(trades)
    best = _ranked(buckets, MIN_CATEGORY_BUCKET)
    weakest = _ranked(buckets, MIN_CATEGORY_BUCKET, metric=lambda b: b.win_rate, reverse=False)
    insights = []

    if best and best[0][1].avg_pnl > PROFIT_THRESHOLD:
        setup, bucket = best[0]
        insights.append(Insight(
            id="best-setup",
            type=InsightType.SUCCESS,
            title=f"{setup} setup is your edge",
            description=(
                f"Win rate: {bucket.win_rate * 100:.0f}% | Avg: ${bucket.avg_pnl:.2f} "
                f"({bucket.count} trades)"
            ),
            recommendation="Master this setup and trade it more frequently.",
            confidence=scaled_confidence(bucket.count, len(trades), base=40, cap=90),
            data={"setup": setup, "avg_pnl": bucket.avg_pnl, "win_rate": bucket.win_rate},
        ))

    if weakest and weakest[0][1].win_rate * 100 < LOW_SETUP_WIN_RATE:
        setup, bucket = weakest[0]
        insights.append(Insight(
            id="low-winrate-setup",
            type=InsightType.WARNING,
            title=f"{setup} needs improvement",
            description=f"Win rate: {bucket.win_rate * 100:.0f}% ({bucket.count} trades)",
            recommendation=f"Review all {setup} trades and refine your entry criteria.",
            confidence=75,
            data={"setup": setup, "win_rate": bucket.win_rate, "count": bucket.count},
        ))

    return insights


@detector
def detect_streak_patterns(trades: Sequence[Trade], convention: TimeConvention) -> list[Insight]:
    recent = sorted(trades, key=lambda t: (t.ts, t.id))[-STREAK_LOOKBACK:]
    if not recent:
        return []

    rate = sum(1 for t in recent if t.is_win) / len(recent) * 100
    if rate >= HOT_WIN_RATE:
        return [Insight(
            id="hot-streak",
            type=InsightType.SUCCESS,
            title="You're on fire!",
            description=f"{rate:.0f}% win rate in last {len(recent)} trades",
            recommendation="Keep following your process. Don't get overconfident.",
            confidence=80,
            data={"win_rate": rate, "trades": len(recent)},
        )]
    if rate <= COLD_WIN_RATE:
        return [Insight(
            id="cold-streak",
            type=InsightType.DANGER,
            title="Take a break",
            description=f"Only {rate:.0f}% win rate in last {len(recent)} trades",
            recommendation="Stop trading. Review your journal, identify mistakes, and come back fresh.",
            confidence=85,
            data={"win_rate": rate, "trades": len(recent)},
        )]
    return []


# ==================== Pipeline ====================

def insufficient_data_insight() -> Insight:
    return Insight(
        id="insufficient-data",
        type=InsightType.INFO,
        title="More data needed",
        description=f"Track at least {MIN_TRADES_FOR_INSIGHTS} trades to unlock smart insights",
        confidence=100,
    )


def rank_insights(insights: Iterable[Insight]) -> list[Insight]:
    """Order insights by severity (danger first) then by descending confidence."""
    return sorted(insights, key=lambda i: (i.type.priority, -i.confidence))


def generate_insights(
    trades: Sequence[Trade],
    convention: Optional[TimeConvention] = None,
    detectors: Optional[Sequence[Detector]] = None,
) -> list[Insight]:
    """Run every detector over the trades and return ranked insights.

    Args:
        trades: Full trade history.
        convention: Time zone and sessions used for hour-based detectors.
            Defaults to UTC.
        detectors: Detectors to run instead of the registry.

    Returns:
        Ranked insights, or the single insufficient-data insight when there
        are fewer than ``MIN_TRADES_FOR_INSIGHTS`` trades.
    """
    if len(trades) < MIN_TRADES_FOR_INSIGHTS:
        return [insufficient_data_insight()]

    convention = convention or TimeConvention()
    found: list[Insight] = []
    for run in DETECTORS if detectors is None else detectors:
        results = run(trades, convention)
        if results:
            logger.debug("%s produced %s", run.__name__, [i.id for i in results])
        found.extend(results)

    return rank_insights(found)
