"""
Audit trail models.

Every action has its own metadata model; `AuditMeta` is the closed union of
them, discriminated on the `action` field so stored entries round-trip into
the right shape.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from models.agent import ExecutionPlan
from models.ticket import new_id, utcnow

SYSTEM_ACTOR = "system"


class AuditAction(str, Enum):
    AGENT_TRIAGE_STARTED = "AGENT_TRIAGE_STARTED"
    EXECUTION_PLAN_CREATED = "EXECUTION_PLAN_CREATED"
    CLASSIFICATION_STARTED = "CLASSIFICATION_STARTED"
    AGENT_CLASSIFIED = "AGENT_CLASSIFIED"
    KB_RETRIEVAL_STARTED = "KB_RETRIEVAL_STARTED"
    KB_RETRIEVED = "KB_RETRIEVED"
    DRAFT_GENERATION_STARTED = "DRAFT_GENERATION_STARTED"
    DRAFT_GENERATED = "DRAFT_GENERATED"
    DECISION_EVALUATION_STARTED = "DECISION_EVALUATION_STARTED"
    AUTO_CLOSED = "AUTO_CLOSED"
    ASSIGNED_TO_HUMAN = "ASSIGNED_TO_HUMAN"
    AGENT_TRIAGE_COMPLETED = "AGENT_TRIAGE_COMPLETED"
    AGENT_TRIAGE_FAILED = "AGENT_TRIAGE_FAILED"
    SATISFACTION_CHECK = "SATISFACTION_CHECK"
    SATISFACTION_CHECK_FAILED = "SATISFACTION_CHECK_FAILED"


class TriageStartedMeta(BaseModel):
    action: Literal["AGENT_TRIAGE_STARTED"] = "AGENT_TRIAGE_STARTED"
    trace_id: str
    planner_steps: List[str]


class ExecutionPlanCreatedMeta(BaseModel):
    action: Literal["EXECUTION_PLAN_CREATED"] = "EXECUTION_PLAN_CREATED"
    plan: ExecutionPlan
    ticket_length: int
    has_attachments: bool


class ClassificationStartedMeta(BaseModel):
    action: Literal["CLASSIFICATION_STARTED"] = "CLASSIFICATION_STARTED"
    text_length: int
    original_category: str


class ClassifiedMeta(BaseModel):
    action: Literal["AGENT_CLASSIFIED"] = "AGENT_CLASSIFIED"
    predicted_category: str
    confidence: float
    original_category: str
    category_changed: bool
    latency_ms: int


class KBRetrievalStartedMeta(BaseModel):
    action: Literal["KB_RETRIEVAL_STARTED"] = "KB_RETRIEVAL_STARTED"
    search_query: str
    predicted_category: str


class KBRetrievedMeta(BaseModel):
    action: Literal["KB_RETRIEVED"] = "KB_RETRIEVED"
    articles_found: int
    article_ids: List[str]
    search_method: str
    latency_ms: int
    average_score: float


class DraftGenerationStartedMeta(BaseModel):
    action: Literal["DRAFT_GENERATION_STARTED"] = "DRAFT_GENERATION_STARTED"
    article_count: int
    ticket_complexity: str


class DraftGeneratedMeta(BaseModel):
    action: Literal["DRAFT_GENERATED"] = "DRAFT_GENERATED"
    draft_length: int
    citations_count: int
    latency_ms: int
    readability_score: float


class DecisionEvaluationStartedMeta(BaseModel):
    action: Literal["DECISION_EVALUATION_STARTED"] = "DECISION_EVALUATION_STARTED"
    confidence: float
    threshold: float
    auto_close_enabled: bool


class AutoClosedMeta(BaseModel):
    action: Literal["AUTO_CLOSED"] = "AUTO_CLOSED"
    confidence: float
    threshold: float
    reply_length: int


class AssignedToHumanMeta(BaseModel):
    action: Literal["ASSIGNED_TO_HUMAN"] = "ASSIGNED_TO_HUMAN"
    reason: Literal["auto_close_disabled", "low_confidence"]
    confidence: float
    threshold: float
    requires_human_review: bool = True


class TriageCompletedMeta(BaseModel):
    action: Literal["AGENT_TRIAGE_COMPLETED"] = "AGENT_TRIAGE_COMPLETED"
    suggestion_id: str
    total_latency_ms: int
    final_status: str
    auto_resolved: bool


class TriageFailedMeta(BaseModel):
    action: Literal["AGENT_TRIAGE_FAILED"] = "AGENT_TRIAGE_FAILED"
    error: str
    error_type: str
    stage: str
    suggestion_id: Optional[str] = None


class SatisfactionCheckMeta(BaseModel):
    action: Literal["SATISFACTION_CHECK"] = "SATISFACTION_CHECK"
    ticket_status: str
    hours_open: int


class SatisfactionCheckFailedMeta(BaseModel):
    action: Literal["SATISFACTION_CHECK_FAILED"] = "SATISFACTION_CHECK_FAILED"
    error: str


AuditMeta = Annotated[
    Union[
        TriageStartedMeta,
        ExecutionPlanCreatedMeta,
        ClassificationStartedMeta,
        ClassifiedMeta,
        KBRetrievalStartedMeta,
        KBRetrievedMeta,
        DraftGenerationStartedMeta,
        DraftGeneratedMeta,
        DecisionEvaluationStartedMeta,
        AutoClosedMeta,
        AssignedToHumanMeta,
        TriageCompletedMeta,
        TriageFailedMeta,
        SatisfactionCheckMeta,
        SatisfactionCheckFailedMeta,
    ],
    Field(discriminator="action"),
]


class AuditLogEntry(BaseModel):
    """Append-only audit record; entries of one run share `trace_id`."""

    id: str = Field(default_factory=new_id)
    ticket_id: str
    trace_id: str
    actor: str = SYSTEM_ACTOR
    action: AuditAction
    meta: AuditMeta
    timestamp: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _action_matches_meta(self) -> "AuditLogEntry":
        if self.action.value != self.meta.action:
            raise ValueError(f"meta for {self.meta.action} attached to {self.action.value}")
        return self

    @classmethod
    def record(
        cls, ticket_id: str, trace_id: str, meta: BaseModel, actor: str = SYSTEM_ACTOR
    ) -> "AuditLogEntry":
        """Build an entry whose action is taken from the metadata variant."""
        return cls(
            ticket_id=ticket_id,
            trace_id=trace_id,
            actor=actor,
            action=AuditAction(meta.action),
            meta=meta,
        )
