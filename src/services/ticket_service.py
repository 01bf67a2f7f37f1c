"""Ticket operations that sit around the triage core."""

from __future__ import annotations

from models.ticket import Reply, ReplyRequest, Ticket, TicketCreateRequest, TicketStatus
from repositories.base import TicketStore
from services.dispatch_service import WorkDispatcher
from services.followup_service import FollowUpScheduler
from utils.error_handling import NotFoundError
from utils.logging_config import get_logger

logger = get_logger(__name__)


class TicketService:
    """Create, reply to and assign tickets."""

    def __init__(
        self,
        tickets: TicketStore,
        dispatcher: WorkDispatcher,
        follow_ups: FollowUpScheduler,
    ) -> None:
        self.tickets = tickets
        self.dispatcher = dispatcher
        self.follow_ups = follow_ups

    def create_ticket(self, request: TicketCreateRequest) -> Ticket:
        """Persist an open ticket and queue its triage; never waits for the run."""
        ticket = self.tickets.create(
            Ticket(
                title=request.title,
                description=request.description,
                category=request.category,
                attachment_urls=request.attachment_urls,
                created_by=request.created_by,
            )
        )
        self.dispatcher.dispatch(ticket.id)
        logger.info("Ticket created", extra={"ticket_id": ticket.id})
        return ticket

    def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = self.tickets.get(ticket_id)
        if ticket is None:
            raise NotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    def add_reply(self, ticket_id: str, request: ReplyRequest) -> Ticket:
        """
        A reply resolves the ticket in the same atomic write.

        A human answered, so any pending satisfaction check is dropped.
        """
        ticket = self.tickets.update(
            ticket_id,
            {"status": TicketStatus.RESOLVED},
            reply=Reply(author=request.author, content=request.content, is_agent=request.is_agent),
        )
        self._cancel_follow_ups(ticket_id)
        logger.info("Reply added", extra={"ticket_id": ticket_id, "author": request.author})
        return ticket

    def assign(self, ticket_id: str, assignee_id: str) -> Ticket:
        return self.tickets.update(ticket_id, {"assignee": assignee_id})

    def set_status(self, ticket_id: str, status: TicketStatus) -> Ticket:
        """Move a ticket; leaving `resolved` cancels pending satisfaction checks."""
        ticket = self.tickets.update(ticket_id, {"status": status})
        if status != TicketStatus.RESOLVED:
            self._cancel_follow_ups(ticket_id)
        return ticket

    def _cancel_follow_ups(self, ticket_id: str) -> None:
        cancelled = self.follow_ups.cancel_for_ticket(ticket_id)
        if cancelled:
            logger.info(
                "Pending follow-ups cancelled",
                extra={"ticket_id": ticket_id, "count": cancelled},
            )
