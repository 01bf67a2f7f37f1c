"""In-memory stores: copies, conditional updates and lookups."""

from datetime import datetime, timedelta, timezone

import pytest

from models.agent import Suggestion
from models.config import TriageConfig
from models.ticket import Reply, TicketStatus
from repositories.memory_repo import MemoryConfigStore
from utils.error_handling import ConfigurationError, ConflictError, NotFoundError


class TestMemoryTicketStore:
    def test_returned_tickets_are_copies(self, stores, make_ticket):
        ticket = make_ticket()
        loaded = stores.tickets.get(ticket.id)
        loaded.title = "changed"
        assert stores.tickets.get(ticket.id).title == ticket.title

    def test_expected_status_mismatch_conflicts(self, stores, make_ticket):
        ticket = make_ticket(status=TicketStatus.RESOLVED)
        with pytest.raises(ConflictError):
            stores.tickets.update(
                ticket.id, {"status": TicketStatus.WAITING_HUMAN}, expected_status=TicketStatus.OPEN
            )
        assert stores.tickets.get(ticket.id).status == TicketStatus.RESOLVED

    def test_update_missing(self, stores):
        with pytest.raises(NotFoundError):
            stores.tickets.update("missing", {"assignee": "a"})

    def test_append_reply_bumps_updated_at(self, stores, make_ticket):
        ticket = make_ticket()
        updated = stores.tickets.append_reply(ticket.id, Reply(author="u1", content="More info"))
        assert [r.content for r in updated.replies] == ["More info"]
        assert updated.updated_at >= ticket.updated_at


class TestMemorySuggestionStore:
    def test_latest_for_ticket(self, stores):
        now = datetime.now(timezone.utc)
        old = Suggestion(
            ticket_id="t1", predicted_category="tech", draft_reply="a", confidence=0.5,
            created_at=now - timedelta(minutes=5),
        )
        new = Suggestion(
            ticket_id="t1", predicted_category="tech", draft_reply="b", confidence=0.5,
            created_at=now,
        )
        stores.suggestions.create(new)
        stores.suggestions.create(old)

        assert stores.suggestions.find_latest_for_ticket("t1").id == new.id
        assert stores.suggestions.find_latest_for_ticket("t2") is None

    def test_update_missing(self, stores):
        with pytest.raises(NotFoundError):
            stores.suggestions.update("missing", {"auto_closed": True})


class TestMemoryConfigStore:
    def test_default_created_on_first_read(self):
        store = MemoryConfigStore()
        assert store.get_or_create_default() == TriageConfig()

    def test_save_then_read(self):
        store = MemoryConfigStore()
        store.save(TriageConfig(auto_close_enabled=True, confidence_threshold=0.6))
        assert store.get_or_create_default().confidence_threshold == 0.6

    def test_malformed(self):
        with pytest.raises(ConfigurationError):
            MemoryConfigStore({"sla_hours": -1}).get_or_create_default()
