"""
Auto-close vs. human handoff.

Config is read on every call so admin changes apply to the next run. The
ticket write is conditional on the status the run started from, so a human
reply that lands mid-run is never overwritten.
"""

from __future__ import annotations

from models.agent import Suggestion
from models.audit import (
    AssignedToHumanMeta,
    AutoClosedMeta,
    DecisionEvaluationStartedMeta,
    SatisfactionCheckFailedMeta,
)
from models.config import TriageConfig
from models.ticket import Reply, Ticket, TicketStatus
from repositories.base import ConfigStore, SuggestionStore, TicketStore
from services.audit_service import AuditLogger
from services.followup_service import FollowUpScheduler
from utils.error_handling import ConfigurationError
from utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_FOLLOW_UP_DELAY_SECONDS = 24 * 3600


class DecisionService:
    def __init__(
        self,
        tickets: TicketStore,
        suggestions: SuggestionStore,
        config: ConfigStore,
        audit: AuditLogger,
        follow_ups: FollowUpScheduler,
        follow_up_delay_seconds: float = DEFAULT_FOLLOW_UP_DELAY_SECONDS,
    ) -> None:
        self.tickets = tickets
        self.suggestions = suggestions
        self.config = config
        self.audit = audit
        self.follow_ups = follow_ups
        self.follow_up_delay_seconds = follow_up_delay_seconds

    def current_config(self) -> TriageConfig:
        try:
            return self.config.get_or_create_default()
        except ConfigurationError as exc:
            logger.warning("Ignoring malformed config; using defaults", extra={"error": str(exc)})
            return TriageConfig()

    def decide(self, ticket: Ticket, suggestion: Suggestion, trace_id: str) -> Ticket:
        """
        Resolve the ticket with the draft, or hand it to a human.

        Mutates `suggestion.auto_closed` in place when auto-closing and
        returns the updated ticket. Raises ConflictError if the ticket
        changed status since it was loaded.
        """
        config = self.current_config()
        self.audit.log(
            ticket.id,
            trace_id,
            DecisionEvaluationStartedMeta(
                confidence=suggestion.confidence,
                threshold=config.confidence_threshold,
                auto_close_enabled=config.auto_close_enabled,
            ),
        )

        if config.auto_close_enabled and suggestion.confidence >= config.confidence_threshold:
            return self._auto_close(ticket, suggestion, config, trace_id)
        return self._assign_to_human(ticket, suggestion, config, trace_id)

    def _auto_close(
        self, ticket: Ticket, suggestion: Suggestion, config: TriageConfig, trace_id: str
    ) -> Ticket:
        updated = self.tickets.update(
            ticket.id,
            {"status": TicketStatus.RESOLVED, "agent_suggestion_id": suggestion.id},
            expected_status=ticket.status,
            reply=Reply(author=None, content=suggestion.draft_reply, is_agent=True),
        )
        self.suggestions.update(suggestion.id, {"auto_closed": True})
        suggestion.auto_closed = True

        self.audit.log(
            ticket.id,
            trace_id,
            AutoClosedMeta(
                confidence=suggestion.confidence,
                threshold=config.confidence_threshold,
                reply_length=len(suggestion.draft_reply),
            ),
        )
        self._schedule_follow_up(ticket.id, trace_id)
        logger.info("Ticket auto-closed", extra={"ticket_id": ticket.id, "trace_id": trace_id})
        return updated

    def _schedule_follow_up(self, ticket_id: str, trace_id: str) -> None:
        """Replace any pending follow-up for the ticket with a fresh one."""
        # The resolution is already committed; a scheduling failure must not fail the run.
        try:
            self.follow_ups.cancel_for_ticket(ticket_id)
            self.follow_ups.schedule(ticket_id, self.follow_up_delay_seconds)
        except Exception as exc:
            logger.exception(
                "Follow-up scheduling failed",
                extra={"ticket_id": ticket_id, "trace_id": trace_id},
            )
            self.audit.log(
                ticket_id,
                trace_id,
                SatisfactionCheckFailedMeta(error=f"schedule failed: {str(exc)[:480]}"),
            )

    def _assign_to_human(
        self, ticket: Ticket, suggestion: Suggestion, config: TriageConfig, trace_id: str
    ) -> Ticket:
        updated = self.tickets.update(
            ticket.id,
            {"status": TicketStatus.WAITING_HUMAN, "agent_suggestion_id": suggestion.id},
            expected_status=ticket.status,
        )
        reason = "auto_close_disabled" if not config.auto_close_enabled else "low_confidence"
        self.audit.log(
            ticket.id,
            trace_id,
            AssignedToHumanMeta(
                reason=reason,
                confidence=suggestion.confidence,
                threshold=config.confidence_threshold,
            ),
        )
        logger.info(
            "Ticket assigned to human",
            extra={"ticket_id": ticket.id, "trace_id": trace_id, "reason": reason},
        )
        return updated
