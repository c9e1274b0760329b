"""Audit trail models"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AuditEntry(BaseModel):
    """Immutable audit record"""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    action: str = Field(..., description="What happened, e.g. IncidentCreated")
    details: str = Field("", description="Human-readable detail")
    correlation_id: Optional[str] = Field(None, description="Event or incident id")

    def format_line(self) -> str:
        """Render as a single human-readable line."""
        stamp = self.timestamp.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        return f"[{stamp}] [{self.action}] {self.details} (CorrId: {self.correlation_id or 'N/A'})"
