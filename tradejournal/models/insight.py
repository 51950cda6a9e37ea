"""Insight data model."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class InsightType(str, Enum):
    """Severity of an insight."""

    DANGER = "danger"
    WARNING = "warning"
    SUCCESS = "success"
    INFO = "info"

    @property
    def priority(self) -> int:
        """Sort priority, lower is shown first."""
        return _PRIORITY[self]


_PRIORITY = {
    InsightType.DANGER: 0,
    InsightType.WARNING: 1,
    InsightType.SUCCESS: 2,
    InsightType.INFO: 3,
}


class Insight(BaseModel):
    """A qualitative finding derived from the trade history."""

    id: str = Field(..., min_length=1, description="Stable identifier of the finding")
    type: InsightType = Field(..., description="Severity")
    title: str = Field(..., description="Short headline")
    description: str = Field(..., description="Supporting numbers in plain text")
    recommendation: Optional[str] = Field(default=None, description="Actionable advice")
    confidence: int = Field(..., ge=0, le=100, description="Strength of evidence (0-100)")
    data: Optional[dict[str, Any]] = Field(default=None, description="Supporting payload")

    model_config = {"frozen": True}
