"""Pydantic models for the triage pipeline stages and their persisted output."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from models.knowledge import RankedArticle
from models.ticket import TicketCategory, new_id, utcnow


class ClassificationResult(BaseModel):
    """Classifier output."""

    predicted_category: TicketCategory
    confidence: float = Field(ge=0, le=1)


class Complexity(str, Enum):
    """Informational ticket complexity recorded in the audit trail."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ExecutionPlan(BaseModel):
    """Fixed stage descriptor plus the computed complexity."""

    requires_classification: bool = True
    requires_kb_retrieval: bool = True
    requires_draft_generation: bool = True
    requires_decision: bool = True
    estimated_steps: int
    complexity: Complexity


class RetrievalStrategy(str, Enum):
    """Which candidate-selection strategy supplied the articles."""

    TEXT_SEARCH = "text_search"
    CATEGORY_FALLBACK = "category_fallback"
    RECENT_FALLBACK = "recent_fallback"
    NONE = "none"


class RetrievalResult(BaseModel):
    """Up to three ranked articles, best first."""

    articles: List[RankedArticle] = Field(default_factory=list)
    strategy: RetrievalStrategy = RetrievalStrategy.NONE

    @property
    def average_score(self) -> float:
        if not self.articles:
            return 0.0
        return sum(a.relevance_score for a in self.articles) / len(self.articles)


class DraftResult(BaseModel):
    """Drafter output."""

    draft_reply: str
    citations: List[str] = Field(default_factory=list)


class ModelInfo(BaseModel):
    """Which backend produced a suggestion and how long the run took."""

    provider: str = "stub"
    model: str = "deterministic-v1"
    prompt_version: str = "1.0"
    latency_ms: Optional[int] = None


class Suggestion(BaseModel):
    """Persisted output of one triage run. Only `auto_closed` changes later."""

    id: str = Field(default_factory=new_id)
    ticket_id: str
    predicted_category: TicketCategory
    article_ids: List[str] = Field(default_factory=list)
    draft_reply: str
    confidence: float = Field(ge=0, le=1)
    auto_closed: bool = False
    model_info: ModelInfo = Field(default_factory=ModelInfo)
    created_at: datetime = Field(default_factory=utcnow)
