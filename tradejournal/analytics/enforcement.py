"""Discipline enforcement derived from the trade history.

Nothing here is stored: the enforcement state is recomputed from the full
trade list and an explicit ``now`` on every call.

- 3+ violations in the last 14 days: warning
- 5+ violations in the last 14 days: read-only journal
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional, Sequence, Union

from tradejournal.analytics.aggregation import TimeConvention
from tradejournal.models import (
    EnforcementLevel,
    EnforcementState,
    SessionType,
    Trade,
    TradeLock,
)

logger = logging.getLogger(__name__)

ONE_DAY_MS = 24 * 60 * 60 * 1000
VIOLATION_WINDOW_MS = 14 * ONE_DAY_MS
WARNING_THRESHOLD = 3
LOCKOUT_THRESHOLD = 5
NEVER_VIOLATED_DAYS = 999

COOLDOWN_AFTER_2_LOSSES_MS = 15 * 60 * 1000
COOLDOWN_AFTER_3_LOSSES_MS = 60 * 60 * 1000
REVENGE_TRADE_WINDOW_MS = 5 * 60 * 1000
MAX_TRADES_PER_DAY = 3
VIOLATIONS_TO_LOCK_SESSION = 2

Moment = Union[datetime, int]


def to_epoch_ms(now: Moment) -> int:
    """Normalise a moment to epoch milliseconds.

    Raises:
        ValueError: If ``now`` is a naive datetime.
    """
    if isinstance(now, datetime):
        if now.tzinfo is None:
            raise ValueError("now must be timezone-aware")
        return int(now.timestamp() * 1000)
    return int(now)


def evaluate_enforcement(trades: Sequence[Trade], now: Moment) -> EnforcementState:
    """Derive the enforcement state at ``now``.

    Args:
        trades: Full trade history.
        now: Evaluation time, aware datetime or epoch ms.

    Returns:
        EnforcementState for the rolling 14-day window ending at ``now``.
    """
    now_ms = to_epoch_ms(now)
    window_start = now_ms - VIOLATION_WINDOW_MS

    violations = [t for t in trades if t.is_violation]
    violation_count = sum(1 for t in violations if window_start <= t.ts <= now_ms)

    if violations:
        last_ts = max(t.ts for t in violations)
        days_since = max(0, (now_ms - last_ts) // ONE_DAY_MS)
    else:
        days_since = NEVER_VIOLATED_DAYS if trades else 0

    is_read_only = violation_count >= LOCKOUT_THRESHOLD
    show_warning = violation_count >= WARNING_THRESHOLD and not is_read_only

    if is_read_only:
        level = EnforcementLevel.READ_ONLY
    elif show_warning:
        level = EnforcementLevel.WARNING
    else:
        level = EnforcementLevel.CLEAN

    return EnforcementState(
        violation_count=violation_count,
        days_since_last_violation=days_since,
        is_read_only=is_read_only,
        show_warning=show_warning,
        violations_until_lockout=max(0, LOCKOUT_THRESHOLD - violation_count),
        level=level,
    )


# ==================== Trade locks ====================

def _today_trades(
    trades: Sequence[Trade], now_ms: int, convention: TimeConvention
) -> list[Trade]:
    today = convention.localize(now_ms).date()
    return [t for t in trades if t.date == today]


def check_consecutive_losses(
    trades: Sequence[Trade],
    now: Moment,
    convention: Optional[TimeConvention] = None,
) -> Optional[TradeLock]:
    """Cooldown after two or three losses in a row today."""
    convention = convention or TimeConvention()
    now_ms = to_epoch_ms(now)
    today = sorted(_today_trades(trades, now_ms, convention), key=lambda t: t.ts, reverse=True)
    if len(today) < 2:
        return None

    loss_streak = 0
    for trade in today:
        if not trade.is_loss:
            break
        loss_streak += 1

    if loss_streak >= 3:
        return TradeLock(
            type="cooldown",
            reason="Three consecutive losses detected. Trading paused for 1 hour.",
            expires_at=now_ms + COOLDOWN_AFTER_3_LOSSES_MS,
            created_at=now_ms,
        )
    if loss_streak >= 2:
        return TradeLock(
            type="cooldown",
            reason="Two consecutive losses detected. Trading paused for 15 minutes.",
            expires_at=now_ms + COOLDOWN_AFTER_2_LOSSES_MS,
            created_at=now_ms,
        )
    return None


def check_revenge_trade_risk(trades: Sequence[Trade], now: Moment) -> bool:
    """Whether the most recent loss closed less than five minutes ago."""
    now_ms = to_epoch_ms(now)
    losses = [t.ts for t in trades if t.is_loss and t.ts <= now_ms]
    if not losses:
        return False
    return now_ms - max(losses) < REVENGE_TRADE_WINDOW_MS


def check_daily_limit(
    trades: Sequence[Trade],
    now: Moment,
    max_trades: int = MAX_TRADES_PER_DAY,
    convention: Optional[TimeConvention] = None,
) -> Optional[TradeLock]:
    """Lock until local midnight once today's trade count reaches ``max_trades``."""
    convention = convention or TimeConvention()
    now_ms = to_epoch_ms(now)
    if len(_today_trades(trades, now_ms, convention)) < max_trades:
        return None

    local_now = convention.localize(now_ms)
    midnight = convention.tz.localize(
        datetime.combine(local_now.date() + timedelta(days=1), datetime.min.time())
    )
    return TradeLock(
        type="daily_limit",
        reason=f"Daily trade limit reached ({max_trades} trades). Trading locked until tomorrow.",
        expires_at=int(midnight.timestamp() * 1000),
        created_at=now_ms,
    )


def check_session_violations(
    trades: Sequence[Trade],
    now: Moment,
    session: SessionType,
    convention: Optional[TimeConvention] = None,
) -> Optional[TradeLock]:
    """Lock a session after repeated violations in it today."""
    convention = convention or TimeConvention()
    now_ms = to_epoch_ms(now)
    session = SessionType.parse(session)
    flagged = [
        t for t in _today_trades(trades, now_ms, convention)
        if t.session_type is session and t.is_violation
    ]
    if len(flagged) < VIOLATIONS_TO_LOCK_SESSION:
        return None

    return TradeLock(
        type="violations",
        reason=f"Session locked due to {len(flagged)} violations.",
        expires_at=None,
        created_at=now_ms,
        session_type=session.value,
    )


def active_lock(
    trades: Sequence[Trade],
    now: Moment,
    *,
    max_trades_per_day: int = MAX_TRADES_PER_DAY,
    current_session: Optional[SessionType] = None,
    convention: Optional[TimeConvention] = None,
) -> Optional[TradeLock]:
    """Highest-priority lock: session violations, daily limit, then cooldown."""
    if current_session is not None:
        lock = check_session_violations(trades, now, current_session, convention)
        if lock:
            return lock

    lock = check_daily_limit(trades, now, max_trades_per_day, convention)
    if lock:
        return lock

    lock = check_consecutive_losses(trades, now, convention)
    if lock:
        logger.debug("Cooldown active: %s", lock.reason)
    return lock
