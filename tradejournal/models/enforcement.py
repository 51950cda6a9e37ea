"""Enforcement state data models."""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field


class EnforcementLevel(str, Enum):
    """Discrete discipline-enforcement level."""

    CLEAN = "clean"
    WARNING = "warning"
    READ_ONLY = "read_only"


class EnforcementState(BaseModel):
    """Violation enforcement derived from the trade history at a point in time."""

    violation_count: int = Field(..., ge=0, description="Violations in the rolling window")
    days_since_last_violation: int = Field(
        ..., ge=0, description="Whole days since the last violation (999 = never)"
    )
    is_read_only: bool = Field(..., description="Journal locked for new entries")
    show_warning: bool = Field(..., description="Warning banner should be shown")
    violations_until_lockout: int = Field(..., ge=0, description="Violations left before lockout")
    level: EnforcementLevel = Field(..., description="Enforcement level")

    model_config = {"frozen": True}


class TradeLock(BaseModel):
    """A temporary restriction on logging new trades."""

    type: Literal["cooldown", "daily_limit", "violations"] = Field(..., description="Lock kind")
    reason: str = Field(..., description="Human-readable reason")
    expires_at: Optional[int] = Field(
        default=None, description="Expiry in epoch ms (None = manual unlock or session end)"
    )
    created_at: int = Field(..., description="Creation time in epoch ms")
    session_type: Optional[str] = Field(default=None, description="Locked session, if any")

    model_config = {"frozen": True}
