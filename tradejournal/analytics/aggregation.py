"""Group-by primitives over trade lists.

Every helper folds a trade list into per-key buckets of
``{count, wins, total_pnl}``.  Folding is commutative: the same trades in
any order produce identical buckets, because P&L is summed with
``math.fsum``.  Trades are never mutated.

Hour-of-day and session depend on a time zone, which is always explicit
through ``TimeConvention``::

    convention = TimeConvention("Europe/London")
    by_hour = aggregate_by_hour(trades, convention)
    print(by_hour["9"].avg_pnl)
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Iterable, Optional, Sequence

import pytz

from tradejournal.models import Mood, Trade

logger = logging.getLogger(__name__)

UNKNOWN_KEY = "Unknown"

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# Session start hours in the convention's time zone, in ascending order.
# A session runs until the next one starts; the last one wraps to midnight.
DEFAULT_SESSION_STARTS: tuple[tuple[str, int], ...] = (
    ("Asia", 0),
    ("London", 8),
    ("NewYork", 16),
)

# Hour blocks used by the session heatmap
HEATMAP_BLOCK_HOURS = 4


@dataclass(frozen=True)
class Bucket:
    """Accumulated results for one grouping key."""

    count: int = 0
    wins: int = 0
    total_pnl: float = 0.0

    @property
    def win_rate(self) -> float:
        return self.wins / self.count if self.count else 0.0

    @property
    def avg_pnl(self) -> float:
        return self.total_pnl / self.count if self.count else 0.0

    def expectancy_r(self, base_risk: float) -> float:
        """Mean R-multiple of the bucket, 0.0 when empty or with no risk."""
        return self.avg_pnl / base_risk if base_risk else 0.0


class TimeConvention:
    """Time zone and session boundaries used to read trade timestamps.

    Args:
        tz_name: IANA time zone name understood by pytz.
        session_starts: ``(name, start_hour)`` pairs in ascending hour order.
            The first session must start at hour 0.

    Raises:
        ValueError: If the zone is unknown or the sessions are malformed.
    """

    def __init__(
        self,
        tz_name: str = "UTC",
        session_starts: Sequence[tuple[str, int]] = DEFAULT_SESSION_STARTS,
    ) -> None:
        try:
            self.tz = pytz.timezone(tz_name)
        except pytz.UnknownTimeZoneError as e:
            raise ValueError(f"Unknown time zone: {tz_name}") from e
        self.tz_name = tz_name

        starts = [(str(name), int(hour)) for name, hour in session_starts]
        hours = [hour for _, hour in starts]
        if not starts or hours[0] != 0:
            raise ValueError("The first session must start at hour 0")
        if hours != sorted(set(hours)) or hours[-1] > 23:
            raise ValueError(f"Session start hours must be unique, ascending and < 24: {hours}")
        self.session_starts = tuple(starts)

    def __repr__(self) -> str:
        return f"TimeConvention({self.tz_name!r}, {self.session_starts!r})"

    def localize(self, ts: int) -> datetime:
        """Convert epoch milliseconds to an aware datetime in this zone."""
        return datetime.fromtimestamp(ts / 1000, tz=pytz.utc).astimezone(self.tz)

    def today(self) -> date:
        """Current calendar date in this zone."""
        return datetime.now(self.tz).date()

    def to_epoch_ms(self, moment: datetime) -> int:
        """Convert a datetime to epoch milliseconds; naive values are in this zone."""
        if moment.tzinfo is None:
            moment = self.tz.localize(moment)
        return int(moment.timestamp() * 1000)

    def hour_of(self, trade: Trade) -> str:
        return str(self.localize(trade.ts).hour)

    def session_of_hour(self, hour: int) -> str:
        current = self.session_starts[0][0]
        for name, start in self.session_starts:
            if hour >= start:
                current = name
        return current

    def session_of(self, trade: Trade) -> str:
        return self.session_of_hour(self.localize(trade.ts).hour)


def compute_aggregates(
    trades: Iterable[Trade],
    key_fn: Callable[[Trade], Optional[str]],
) -> dict[str, Bucket]:
    """Fold trades into buckets keyed by ``key_fn``.

    Missing or empty keys go to the ``"Unknown"`` bucket.

    Args:
        trades: Trades to group.
        key_fn: Extracts the grouping key from a trade.

    Returns:
        Mapping of key to Bucket.
    """
    counts: dict[str, int] = defaultdict(int)
    wins: dict[str, int] = defaultdict(int)
    pnls: dict[str, list[float]] = defaultdict(list)

    for trade in trades:
        key = key_fn(trade)
        key = str(key) if key not in (None, "") else UNKNOWN_KEY
        counts[key] += 1
        if trade.is_win:
            wins[key] += 1
        pnls[key].append(trade.pnl)

    return {
        key: Bucket(count=counts[key], wins=wins[key], total_pnl=math.fsum(pnls[key]))
        for key in counts
    }


# Key functions

def by_setup(trade: Trade) -> Optional[str]:
    return trade.setup.strip() if trade.setup else None


def by_mood(trade: Trade) -> Optional[str]:
    return None if trade.mood is Mood.UNKNOWN else trade.mood.value


def by_pair(trade: Trade) -> Optional[str]:
    return trade.pair


def by_weekday(trade: Trade) -> str:
    return DAY_NAMES[trade.date.weekday()]


def aggregate_by_setup(trades: Iterable[Trade]) -> dict[str, Bucket]:
    return compute_aggregates(trades, by_setup)


def aggregate_by_mood(trades: Iterable[Trade]) -> dict[str, Bucket]:
    return compute_aggregates(trades, by_mood)


def aggregate_by_pair(trades: Iterable[Trade]) -> dict[str, Bucket]:
    return compute_aggregates(trades, by_pair)


def aggregate_by_weekday(trades: Iterable[Trade]) -> dict[str, Bucket]:
    return compute_aggregates(trades, by_weekday)


def aggregate_by_hour(
    trades: Iterable[Trade], convention: Optional[TimeConvention] = None
) -> dict[str, Bucket]:
    convention = convention or TimeConvention()
    return compute_aggregates(trades, convention.hour_of)


def aggregate_by_session(
    trades: Iterable[Trade], convention: Optional[TimeConvention] = None
) -> dict[str, Bucket]:
    convention = convention or TimeConvention()
    return compute_aggregates(trades, convention.session_of)


def session_hour_matrix(
    trades: Sequence[Trade], convention: Optional[TimeConvention] = None
) -> dict[str, dict[int, Bucket]]:
    """Build the session heatmap: session name -> 4-hour block start -> Bucket.

    Every session has every block, so empty cells come back as empty buckets.
    """
    convention = convention or TimeConvention()

    def cell(trade: Trade) -> str:
        hour = convention.localize(trade.ts).hour
        block = hour - hour % HEATMAP_BLOCK_HOURS
        return f"{convention.session_of_hour(hour)}|{block}"

    flat = compute_aggregates(trades, cell)
    matrix: dict[str, dict[int, Bucket]] = {}
    for name, _ in convention.session_starts:
        matrix[name] = {
            block: flat.get(f"{name}|{block}", Bucket())
            for block in range(0, 24, HEATMAP_BLOCK_HOURS)
        }
    logger.debug("Session heatmap built from %d trades", len(trades))
    return matrix
