"""
Triage orchestration: classify -> retrieve -> draft -> decide.

One run is strictly sequential and every audit entry it writes carries the
run's trace id. On failure the run records AGENT_TRIAGE_FAILED and re-raises.
"""

from __future__ import annotations

import time
from typing import List
from uuid import uuid4

from models.agent import (
    ClassificationResult,
    Complexity,
    DraftResult,
    ExecutionPlan,
    ModelInfo,
    RetrievalResult,
    Suggestion,
)
from models.audit import (
    ClassificationStartedMeta,
    ClassifiedMeta,
    DraftGeneratedMeta,
    DraftGenerationStartedMeta,
    ExecutionPlanCreatedMeta,
    KBRetrievalStartedMeta,
    KBRetrievedMeta,
    TriageCompletedMeta,
    TriageFailedMeta,
    TriageStartedMeta,
)
from models.ticket import Ticket
from repositories.base import SuggestionStore, TicketStore
from services.audit_service import AuditLogger
from services.classification_service import Classifier
from services.decision_service import DecisionService
from services.response_service import Drafter
from services.retrieval_service import RetrievalService
from utils.error_handling import (
    ClassificationError,
    DraftingError,
    NotFoundError,
    RetrievalError,
    UpstreamError,
)
from utils.logging_config import get_logger
from utils.text import readability_score, truncate

logger = get_logger(__name__)

PLANNER_STEPS: List[str] = [
    "PLAN_EXECUTION",
    "CLASSIFY_TICKET",
    "RETRIEVE_KB_ARTICLES",
    "DRAFT_REPLY",
    "MAKE_DECISION",
]

COMPLEX_KEYWORDS = ("integration", "api", "database", "custom", "enterprise")
MEDIUM_DESCRIPTION_LENGTH = 500
HIGH_DESCRIPTION_LENGTH = 1000
MAX_ERROR_LENGTH = 500
SEARCH_QUERY_PREVIEW = 100


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def assess_complexity(ticket: Ticket) -> Complexity:
    """Informational only; never changes what the pipeline does."""
    complexity = Complexity.LOW
    if len(ticket.description) > MEDIUM_DESCRIPTION_LENGTH:
        complexity = Complexity.MEDIUM
    if len(ticket.description) > HIGH_DESCRIPTION_LENGTH:
        complexity = Complexity.HIGH
    if ticket.attachment_urls:
        complexity = Complexity.HIGH

    title = ticket.title.lower()
    description = ticket.description.lower()
    if any(keyword in title or keyword in description for keyword in COMPLEX_KEYWORDS):
        complexity = Complexity.HIGH
    return complexity


class TriageOrchestrator:
    """Runs the triage pipeline for one ticket and persists its Suggestion."""

    def __init__(
        self,
        tickets: TicketStore,
        suggestions: SuggestionStore,
        classifier: Classifier,
        retriever: RetrievalService,
        drafter: Drafter,
        decider: DecisionService,
        audit: AuditLogger,
    ) -> None:
        self.tickets = tickets
        self.suggestions = suggestions
        self.classifier = classifier
        self.retriever = retriever
        self.drafter = drafter
        self.decider = decider
        self.audit = audit

    def triage_ticket(self, ticket_id: str) -> Suggestion:
        trace_id = uuid4().hex
        started = time.perf_counter()
        stage = "load"
        suggestion = None

        self.audit.log(
            ticket_id,
            trace_id,
            TriageStartedMeta(trace_id=trace_id, planner_steps=list(PLANNER_STEPS)),
        )

        try:
            ticket = self.tickets.get(ticket_id)
            if ticket is None:
                raise NotFoundError(f"Ticket {ticket_id} not found")

            plan = self._create_execution_plan(ticket, trace_id)
            classification = self._classify(ticket, trace_id)
            retrieval = self._retrieve(ticket, classification, trace_id)
            draft = self._draft(ticket, retrieval, plan.complexity, trace_id)

            stage = "persist"
            suggestion = self.suggestions.create(
                Suggestion(
                    ticket_id=ticket.id,
                    predicted_category=classification.predicted_category,
                    article_ids=[ranked.article.id for ranked in retrieval.articles],
                    draft_reply=draft.draft_reply,
                    confidence=classification.confidence,
                    model_info=ModelInfo(
                        provider=self.drafter.provider,
                        model=self.drafter.model_name,
                        prompt_version=self.drafter.prompt_version,
                        latency_ms=_elapsed_ms(started),
                    ),
                )
            )

            stage = "decision"
            ticket = self.decider.decide(ticket, suggestion, trace_id)
        except Exception as exc:
            failed_stage = exc.stage if isinstance(exc, UpstreamError) else stage
            self.audit.log(
                ticket_id,
                trace_id,
                TriageFailedMeta(
                    error=str(exc)[:MAX_ERROR_LENGTH],
                    error_type=type(exc).__name__,
                    stage=failed_stage,
                    suggestion_id=suggestion.id if suggestion else None,
                ),
            )
            logger.error(
                "Triage failed",
                extra={
                    "ticket_id": ticket_id,
                    "trace_id": trace_id,
                    "stage": failed_stage,
                    "error": str(exc),
                },
            )
            raise

        total_ms = _elapsed_ms(started)
        self.audit.log(
            ticket_id,
            trace_id,
            TriageCompletedMeta(
                suggestion_id=suggestion.id,
                total_latency_ms=total_ms,
                final_status=ticket.status.value,
                auto_resolved=suggestion.auto_closed,
            ),
        )
        logger.info(
            "Triage complete",
            extra={
                "ticket_id": ticket_id,
                "trace_id": trace_id,
                "duration_ms": total_ms,
                "status": ticket.status.value,
            },
        )
        return suggestion

    def _create_execution_plan(self, ticket: Ticket, trace_id: str) -> ExecutionPlan:
        plan = ExecutionPlan(
            estimated_steps=len(PLANNER_STEPS),
            complexity=assess_complexity(ticket),
        )
        self.audit.log(
            ticket.id,
            trace_id,
            ExecutionPlanCreatedMeta(
                plan=plan,
                ticket_length=len(ticket.description),
                has_attachments=bool(ticket.attachment_urls),
            ),
        )
        return plan

    def _classify(self, ticket: Ticket, trace_id: str) -> ClassificationResult:
        start = time.perf_counter()
        text = ticket.search_text
        self.audit.log(
            ticket.id,
            trace_id,
            ClassificationStartedMeta(
                text_length=len(text), original_category=ticket.category.value
            ),
        )

        try:
            result = self.classifier.classify(text)
        except Exception as exc:
            raise ClassificationError(f"Classification failed: {exc}") from exc

        self.audit.log(
            ticket.id,
            trace_id,
            ClassifiedMeta(
                predicted_category=result.predicted_category.value,
                confidence=result.confidence,
                original_category=ticket.category.value,
                category_changed=ticket.category != result.predicted_category,
                latency_ms=_elapsed_ms(start),
            ),
        )
        return result

    def _retrieve(
        self, ticket: Ticket, classification: ClassificationResult, trace_id: str
    ) -> RetrievalResult:
        start = time.perf_counter()
        self.audit.log(
            ticket.id,
            trace_id,
            KBRetrievalStartedMeta(
                search_query=truncate(ticket.search_text, SEARCH_QUERY_PREVIEW),
                predicted_category=classification.predicted_category.value,
            ),
        )

        try:
            result = self.retriever.retrieve(ticket, classification)
        except Exception as exc:
            raise RetrievalError(f"Knowledge base retrieval failed: {exc}") from exc

        self.audit.log(
            ticket.id,
            trace_id,
            KBRetrievedMeta(
                articles_found=len(result.articles),
                article_ids=[ranked.article.id for ranked in result.articles],
                search_method=result.strategy.value,
                latency_ms=_elapsed_ms(start),
                average_score=result.average_score,
            ),
        )
        return result

    def _draft(
        self,
        ticket: Ticket,
        retrieval: RetrievalResult,
        complexity: Complexity,
        trace_id: str,
    ) -> DraftResult:
        start = time.perf_counter()
        self.audit.log(
            ticket.id,
            trace_id,
            DraftGenerationStartedMeta(
                article_count=len(retrieval.articles), ticket_complexity=complexity.value
            ),
        )

        try:
            result = self.drafter.draft(ticket.search_text, retrieval.articles)
        except Exception as exc:
            raise DraftingError(f"Draft generation failed: {exc}") from exc

        self.audit.log(
            ticket.id,
            trace_id,
            DraftGeneratedMeta(
                draft_length=len(result.draft_reply),
                citations_count=len(result.citations),
                latency_ms=_elapsed_ms(start),
                readability_score=readability_score(result.draft_reply),
            ),
        )
        return result
