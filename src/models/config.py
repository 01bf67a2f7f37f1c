"""Business configuration read by the decision stage."""

from pydantic import BaseModel, Field


class TriageConfig(BaseModel):
    """Singleton config document; defaults apply when none is stored."""

    auto_close_enabled: bool = False
    confidence_threshold: float = Field(default=0.8, ge=0, le=1)
    sla_hours: int = Field(default=24, gt=0)
