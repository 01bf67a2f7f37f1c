"""End-to-end triage runs over the in-memory stores."""

from unittest.mock import MagicMock

import pytest

from models.agent import ClassificationResult, Complexity
from models.audit import AuditAction
from models.config import TriageConfig
from models.ticket import Reply, Ticket, TicketStatus
from services.bedrock_service import BedrockModelClient
from services.classification_service import BedrockClassifier, KeywordClassifier
from services.orchestration_service import PLANNER_STEPS, assess_complexity
from services.response_service import Drafter
from services.retrieval_service import RetrievalService
from utils.error_handling import (
    ClassificationError,
    ConflictError,
    DraftingError,
    NotFoundError,
    RetrievalError,
)

REFUND = dict(
    title="Refund needed",
    description="I was charged twice for my subscription, please refund",
)

HAPPY_PATH = [
    AuditAction.AGENT_TRIAGE_STARTED,
    AuditAction.EXECUTION_PLAN_CREATED,
    AuditAction.CLASSIFICATION_STARTED,
    AuditAction.AGENT_CLASSIFIED,
    AuditAction.KB_RETRIEVAL_STARTED,
    AuditAction.KB_RETRIEVED,
    AuditAction.DRAFT_GENERATION_STARTED,
    AuditAction.DRAFT_GENERATED,
    AuditAction.DECISION_EVALUATION_STARTED,
]


def _trail(stores, ticket_id):
    return stores.audit.find_for_ticket(ticket_id)


def _failed_entry(stores, ticket_id):
    [failed] = [e for e in _trail(stores, ticket_id) if e.action == AuditAction.AGENT_TRIAGE_FAILED]
    return failed


class TestHappyPath:
    def test_empty_kb_and_auto_close_disabled_goes_to_human(
        self, stores, make_ticket, make_orchestrator
    ):
        ticket = make_ticket(**REFUND)

        suggestion = make_orchestrator().triage_ticket(ticket.id)

        assert suggestion.predicted_category.value == "billing"
        assert suggestion.confidence == 0.9
        assert suggestion.article_ids == []
        assert suggestion.auto_closed is False
        assert stores.tickets.get(ticket.id).status == TicketStatus.WAITING_HUMAN

        trail = _trail(stores, ticket.id)
        assert [e.action for e in trail] == HAPPY_PATH + [
            AuditAction.ASSIGNED_TO_HUMAN,
            AuditAction.AGENT_TRIAGE_COMPLETED,
        ]
        assert trail[-2].meta.reason == "auto_close_disabled"
        retrieved = trail[5].meta
        assert retrieved.articles_found == 0
        assert retrieved.search_method == "none"
        assert retrieved.average_score == 0.0

    def test_every_entry_shares_the_run_trace_id(self, stores, make_ticket, make_orchestrator):
        ticket = make_ticket(**REFUND)

        make_orchestrator().triage_ticket(ticket.id)

        trail = _trail(stores, ticket.id)
        started = trail[0]
        assert started.meta.trace_id == started.trace_id
        assert started.meta.planner_steps == PLANNER_STEPS
        assert {e.trace_id for e in trail} == {started.trace_id}

    def test_exactly_one_suggestion_per_run(self, stores, make_ticket, make_orchestrator):
        ticket = make_ticket(**REFUND)
        orchestrator = make_orchestrator()

        first = orchestrator.triage_ticket(ticket.id)
        assert len(stores.suggestions.list_all()) == 1

        # Re-triage a waiting ticket: a second run, a second trace.
        second = orchestrator.triage_ticket(ticket.id)
        assert len(stores.suggestions.list_all()) == 2
        assert stores.suggestions.find_latest_for_ticket(ticket.id).id == second.id
        assert first.id != second.id
        traces = {e.trace_id for e in _trail(stores, ticket.id)}
        assert len(traces) == 2

    def test_auto_close_resolves_and_reports(
        self, stores, make_ticket, make_orchestrator, publish, follow_ups
    ):
        stores.config.save(TriageConfig(auto_close_enabled=True, confidence_threshold=0.8))
        article = publish("How to get a refund", body="Refunds take five days.", tags=["billing"])
        ticket = make_ticket(**REFUND)

        suggestion = make_orchestrator().triage_ticket(ticket.id)

        stored = stores.tickets.get(ticket.id)
        assert stored.status == TicketStatus.RESOLVED
        assert stored.agent_suggestion_id == suggestion.id
        assert stored.replies[-1].content == suggestion.draft_reply
        assert suggestion.auto_closed is True
        assert suggestion.article_ids == [article.id]
        assert "How to get a refund" in suggestion.draft_reply

        completed = _trail(stores, ticket.id)[-1]
        assert completed.action == AuditAction.AGENT_TRIAGE_COMPLETED
        assert completed.meta.final_status == "resolved"
        assert completed.meta.auto_resolved is True
        assert completed.meta.suggestion_id == suggestion.id
        follow_ups.schedule.assert_called_once()

    def test_classification_records_category_change(self, stores, make_ticket, make_orchestrator):
        ticket = make_ticket(category="shipping", **REFUND)

        make_orchestrator().triage_ticket(ticket.id)

        classified = _trail(stores, ticket.id)[3].meta
        assert classified.original_category == "shipping"
        assert classified.predicted_category == "billing"
        assert classified.category_changed is True

    def test_model_info_reflects_drafter(self, make_ticket, make_orchestrator):
        ticket = make_ticket(**REFUND)

        suggestion = make_orchestrator().triage_ticket(ticket.id)

        assert suggestion.model_info.provider == "stub"
        assert suggestion.model_info.model == "deterministic-v1"
        assert suggestion.model_info.prompt_version == "1.0"
        assert suggestion.model_info.latency_ms >= 0

    def test_stages_are_deterministic(self, stores, make_ticket, make_orchestrator, publish):
        publish("Refund policy", body="Refund rules.", tags=["billing"])
        orchestrator = make_orchestrator()
        first = orchestrator.triage_ticket(make_ticket(**REFUND).id)
        second = orchestrator.triage_ticket(make_ticket(**REFUND).id)

        assert first.predicted_category == second.predicted_category
        assert first.confidence == second.confidence
        assert first.article_ids == second.article_ids
        assert first.draft_reply == second.draft_reply


class TestFailures:
    def test_missing_ticket(self, stores, make_orchestrator):
        with pytest.raises(NotFoundError):
            make_orchestrator().triage_ticket("missing")

        actions = [e.action for e in _trail(stores, "missing")]
        assert actions == [AuditAction.AGENT_TRIAGE_STARTED, AuditAction.AGENT_TRIAGE_FAILED]
        failed = _failed_entry(stores, "missing")
        assert failed.meta.stage == "load"
        assert failed.meta.error_type == "NotFoundError"
        assert stores.suggestions.list_all() == []

    def test_unconfigured_llm_classifier(self, stores, make_ticket, make_orchestrator):
        client = BedrockModelClient(model_id=None, client=MagicMock())
        client.model_id = None
        ticket = make_ticket(**REFUND)

        with pytest.raises(ClassificationError) as excinfo:
            make_orchestrator(classifier=BedrockClassifier(client)).triage_ticket(ticket.id)

        assert isinstance(excinfo.value.__cause__, NotImplementedError)
        assert excinfo.value.status_code == 502
        failed = _failed_entry(stores, ticket.id)
        assert failed.meta.stage == "classification"
        assert failed.meta.error_type == "ClassificationError"
        assert failed.meta.suggestion_id is None
        assert stores.suggestions.list_all() == []
        assert stores.tickets.get(ticket.id).status == TicketStatus.OPEN

    def test_retrieval_failure(self, stores, make_ticket, make_orchestrator):
        retriever = MagicMock(spec=RetrievalService)
        retriever.retrieve.side_effect = RuntimeError("table unavailable")
        ticket = make_ticket(**REFUND)

        with pytest.raises(RetrievalError):
            make_orchestrator(retriever=retriever).triage_ticket(ticket.id)

        failed = _failed_entry(stores, ticket.id)
        assert failed.meta.stage == "retrieval"
        assert "table unavailable" in failed.meta.error

    def test_drafting_failure_leaves_ticket_untouched(self, stores, make_ticket, make_orchestrator):
        drafter = MagicMock(spec=Drafter)
        drafter.draft.side_effect = RuntimeError("x" * 2000)
        ticket = make_ticket(**REFUND)

        with pytest.raises(DraftingError):
            make_orchestrator(drafter=drafter).triage_ticket(ticket.id)

        failed = _failed_entry(stores, ticket.id)
        assert failed.meta.stage == "drafting"
        assert len(failed.meta.error) == 500
        assert stores.tickets.get(ticket.id).status == TicketStatus.OPEN
        assert stores.suggestions.list_all() == []

    def test_human_reply_mid_run_fails_decision(self, stores, make_ticket, make_orchestrator):
        ticket = make_ticket(**REFUND)
        keywords = KeywordClassifier()

        def classify_while_human_replies(text):
            stores.tickets.update(
                ticket.id,
                {"status": TicketStatus.RESOLVED},
                reply=Reply(author="agent-7", content="Done.", is_agent=True),
            )
            return keywords.classify(text)

        classifier = MagicMock()
        classifier.classify.side_effect = classify_while_human_replies

        with pytest.raises(ConflictError):
            make_orchestrator(classifier=classifier).triage_ticket(ticket.id)

        [suggestion] = stores.suggestions.list_all()
        failed = _failed_entry(stores, ticket.id)
        assert failed.meta.stage == "decision"
        assert failed.meta.suggestion_id == suggestion.id
        stored = stores.tickets.get(ticket.id)
        assert stored.status == TicketStatus.RESOLVED
        assert [r.content for r in stored.replies] == ["Done."]
        actions = [e.action for e in _trail(stores, ticket.id)]
        assert AuditAction.AGENT_TRIAGE_COMPLETED not in actions


class TestComplexity:
    def _ticket(self, title="Question", description="Short", **kwargs):
        return Ticket(title=title, description=description, created_by="u1", **kwargs)

    def test_low_by_default(self):
        assert assess_complexity(self._ticket()) == Complexity.LOW

    def test_medium_over_500_chars(self):
        assert assess_complexity(self._ticket(description="a" * 501)) == Complexity.MEDIUM

    def test_high_over_1000_chars(self):
        assert assess_complexity(self._ticket(description="a" * 1001)) == Complexity.HIGH

    def test_attachments_are_high(self):
        ticket = self._ticket(attachment_urls=["https://files.example.com/a.png"])
        assert assess_complexity(ticket) == Complexity.HIGH

    @pytest.mark.parametrize("title", ["API limits", "Enterprise plan", "custom DOMAIN"])
    def test_keywords_are_high(self, title):
        assert assess_complexity(self._ticket(title=title)) == Complexity.HIGH

    def test_plan_is_recorded(self, stores, make_ticket, make_orchestrator):
        ticket = make_ticket(
            **REFUND, attachment_urls=["https://files.example.com/receipt.pdf"]
        )

        make_orchestrator().triage_ticket(ticket.id)

        plan_entry = _trail(stores, ticket.id)[1]
        assert plan_entry.meta.has_attachments is True
        assert plan_entry.meta.plan.complexity == Complexity.HIGH
        assert plan_entry.meta.plan.estimated_steps == len(PLANNER_STEPS)
        assert plan_entry.meta.ticket_length == len(REFUND["description"])


def test_classifier_result_drives_decision(stores, make_ticket, make_orchestrator):
    stores.config.save(TriageConfig(auto_close_enabled=True, confidence_threshold=0.8))
    classifier = MagicMock()
    classifier.classify.return_value = ClassificationResult(
        predicted_category="tech", confidence=0.79
    )
    ticket = make_ticket(**REFUND)

    make_orchestrator(classifier=classifier).triage_ticket(ticket.id)

    assert stores.tickets.get(ticket.id).status == TicketStatus.WAITING_HUMAN
    assigned = [e for e in _trail(stores, ticket.id) if e.action == AuditAction.ASSIGNED_TO_HUMAN]
    assert assigned[0].meta.reason == "low_confidence"
