"""Trade data model."""

from datetime import date as date_type
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


class Direction(str, Enum):
    """Trade direction."""

    LONG = "Long"
    SHORT = "Short"

    @classmethod
    def parse(cls, value: Any) -> "Direction":
        """Parse a direction from the spellings brokers export.

        Raises:
            ValueError: If the value is not a recognised direction.
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text in ("long", "buy", "b", "1", "up"):
            return cls.LONG
        if text in ("short", "sell", "s", "-1", "down"):
            return cls.SHORT
        raise ValueError(f"Invalid direction: {value!r} (expected Long/Short)")


class Mood(str, Enum):
    """Psychological state tagged on a trade."""

    CONFIDENT = "confident"
    FEARFUL = "fearful"
    NEUTRAL = "neutral"
    GREEDY = "greedy"
    DISCIPLINED = "disciplined"
    ANXIOUS = "anxious"
    CALM = "calm"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "Mood":
        """Parse a mood case-insensitively; anything unrecognised is UNKNOWN."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.UNKNOWN
        text = str(value).strip().lower()
        for member in cls:
            if member.value == text:
                return member
        return cls.UNKNOWN


class SessionType(str, Enum):
    """Trading session tagged on a trade."""

    LONDON = "London"
    NEW_YORK = "NewYork"
    TOKYO = "Tokyo"
    SYDNEY = "Sydney"
    FRANKFURT = "Frankfurt"
    OVERLAP = "London-NY Overlap"
    ASIAN = "Asian"
    OFF_HOURS = "Off-Hours"
    NEWS = "News Event"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Any) -> "SessionType":
        """Parse a session tag; anything unrecognised is UNKNOWN."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.UNKNOWN
        text = str(value).strip().lower().replace(" ", "").replace("-", "")
        for member in cls:
            if member.value.lower().replace(" ", "").replace("-", "") == text:
                return member
        return cls.UNKNOWN


# Setup quality grade that marks an impulsive, unplanned entry
IMPULSE_QUALITY = "IMPULSE"

# 9999-12-31T00:00:00Z, the last midnight every time zone can represent
MAX_TS_MS = 253402214400000


class Trade(BaseModel):
    """Represents a single closed forex/CFD trade.

    ``pnl``, ``date`` and ``ts`` are recorded once by the trade source and
    never recomputed from prices.
    """

    id: str = Field(..., min_length=1, description="Unique trade identifier")
    pair: str = Field(..., min_length=1, description="Instrument symbol")
    direction: Direction = Field(..., description="Trade direction (Long/Short)")
    entry: float = Field(..., allow_inf_nan=False, description="Entry price")
    exit: float = Field(..., allow_inf_nan=False, description="Exit price")
    lots: float = Field(default=0.01, ge=0, allow_inf_nan=False, description="Position size in lots")
    pnl: float = Field(..., allow_inf_nan=False, description="Realized P&L in account currency")
    date: date_type = Field(..., description="Calendar date of the trade")
    ts: int = Field(..., ge=0, le=MAX_TS_MS, description="Unix timestamp in milliseconds")
    setup: Optional[str] = Field(default=None, description="Strategy tag")
    mood: Mood = Field(
        default=Mood.UNKNOWN,
        validation_alias=AliasChoices("mood", "emotion"),
        description="Psychological state",
    )
    session_type: SessionType = Field(
        default=SessionType.UNKNOWN,
        validation_alias=AliasChoices("session_type", "sessionType"),
        description="Trading session tag",
    )
    violation_reason: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("violation_reason", "violationReason", "ruleViolation"),
        description="Rule broken on this trade",
    )
    setup_quality: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("setup_quality", "setupQuality"),
        description="Setup grade (IMPULSE marks a violation)",
    )
    sl: Optional[float] = Field(default=None, allow_inf_nan=False, description="Stop loss price")
    tp: Optional[float] = Field(default=None, allow_inf_nan=False, description="Take profit price")
    notes: Optional[str] = Field(default=None, description="Free-form notes")
    source: str = Field(default="manual", description="Where the trade came from")

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("direction", mode="before")
    @classmethod
    def _parse_direction(cls, value: Any) -> Direction:
        return Direction.parse(value)

    @field_validator("mood", mode="before")
    @classmethod
    def _parse_mood(cls, value: Any) -> Mood:
        return Mood.parse(value)

    @field_validator("session_type", mode="before")
    @classmethod
    def _parse_session(cls, value: Any) -> SessionType:
        return SessionType.parse(value)

    @property
    def is_violation(self) -> bool:
        """Whether this trade broke the trader's own rules."""
        return bool(self.violation_reason) or self.setup_quality == IMPULSE_QUALITY

    @property
    def is_win(self) -> bool:
        return self.pnl > 0

    @property
    def is_loss(self) -> bool:
        return self.pnl < 0
