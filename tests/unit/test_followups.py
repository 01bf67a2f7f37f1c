"""Satisfaction follow-ups: the check itself and both schedulers."""

import json
import threading
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from models.audit import AuditAction
from models.ticket import TicketStatus
from services.followup_service import (
    EventBridgeFollowUpScheduler,
    SatisfactionChecker,
    TimerFollowUpScheduler,
    build_follow_up_scheduler,
)
from utils.settings import Settings


@pytest.fixture
def checker(stores, audit):
    return SatisfactionChecker(stores.tickets, audit)


class TestSatisfactionChecker:
    def test_resolved_ticket_gets_check_entry(self, stores, checker, make_ticket):
        ticket = make_ticket(
            status=TicketStatus.RESOLVED,
            created_at=datetime.now(timezone.utc) - timedelta(hours=5),
        )

        assert checker.check(ticket.id) is True

        [entry] = stores.audit.find_for_ticket(ticket.id)
        assert entry.action == AuditAction.SATISFACTION_CHECK
        assert entry.meta.ticket_status == "resolved"
        assert entry.meta.hours_open == 5

    def test_reopened_ticket_is_skipped(self, stores, checker, make_ticket):
        ticket = make_ticket(status=TicketStatus.WAITING_HUMAN)

        assert checker.check(ticket.id) is False
        assert stores.audit.find_for_ticket(ticket.id) == []

    def test_deleted_ticket_is_skipped(self, stores, checker, make_ticket):
        ticket = make_ticket(status=TicketStatus.RESOLVED)
        stores.tickets.delete(ticket.id)

        assert checker.check(ticket.id) is False
        assert stores.audit.find_for_ticket(ticket.id) == []

    def test_store_error_records_failure(self, audit, stores):
        tickets = MagicMock()
        tickets.get.side_effect = RuntimeError("dynamodb timeout")

        assert SatisfactionChecker(tickets, audit).check("t1") is False

        [entry] = stores.audit.find_for_ticket("t1")
        assert entry.action == AuditAction.SATISFACTION_CHECK_FAILED
        assert "dynamodb timeout" in entry.meta.error


class TestTimerFollowUpScheduler:
    def test_fires_after_delay(self):
        fired = threading.Event()
        seen = []

        def on_due(ticket_id):
            seen.append(ticket_id)
            fired.set()

        scheduler = TimerFollowUpScheduler(on_due)
        handle = scheduler.schedule("t1", 0.01)

        assert handle.startswith("satisfaction-t1-")
        assert fired.wait(2)
        assert seen == ["t1"]
        scheduler.scheduler.shutdown(wait=False)

    def test_cancel_prevents_firing(self):
        on_due = MagicMock()
        scheduler = TimerFollowUpScheduler(on_due)
        scheduler.schedule("t1", 5)
        scheduler.schedule("t1", 5)
        scheduler.schedule("t2", 5)

        assert scheduler.cancel_for_ticket("t1") == 2
        assert scheduler.pending("t1") == []
        assert len(scheduler.pending("t2")) == 1
        scheduler.cancel_for_ticket("t2")
        on_due.assert_not_called()
        scheduler.scheduler.shutdown(wait=False)

    def test_cancel_with_nothing_pending(self):
        scheduler = TimerFollowUpScheduler(MagicMock())
        assert scheduler.cancel_for_ticket("nope") == 0
        scheduler.scheduler.shutdown(wait=False)

    def test_jobs_go_to_given_scheduler(self):
        backend = MagicMock()
        backend.add_job.return_value.id = "satisfaction-t1-abcd1234"
        on_due = MagicMock()

        handle = TimerFollowUpScheduler(on_due, scheduler=backend).schedule("t1", 60)

        assert handle == "satisfaction-t1-abcd1234"
        args, kwargs = backend.add_job.call_args
        assert args == (on_due, "date")
        assert kwargs["args"] == ["t1"]
        assert kwargs["id"].startswith("satisfaction-t1-")
        delay = kwargs["run_date"] - datetime.now(timezone.utc)
        assert timedelta(seconds=55) < delay <= timedelta(seconds=60)


class TestEventBridgeFollowUpScheduler:
    def _scheduler(self, client):
        return EventBridgeFollowUpScheduler(
            target_arn="arn:aws:lambda:eu-west-2:123:function:check",
            role_arn="arn:aws:iam::123:role/scheduler",
            group_name="follow-ups",
            client=client,
        )

    def test_creates_one_shot_schedule(self):
        client = MagicMock()

        name = self._scheduler(client).schedule("t1", 3600)

        kwargs = client.create_schedule.call_args.kwargs
        assert kwargs["Name"] == name
        assert name.startswith("satisfaction-t1-")
        assert kwargs["GroupName"] == "follow-ups"
        assert kwargs["ScheduleExpression"].startswith("at(")
        assert kwargs["ScheduleExpressionTimezone"] == "UTC"
        assert kwargs["ActionAfterCompletion"] == "DELETE"
        assert json.loads(kwargs["Target"]["Input"]) == {"ticket_id": "t1"}
        assert kwargs["Target"]["RoleArn"] == "arn:aws:iam::123:role/scheduler"

    def test_cancel_deletes_matching_schedules(self):
        client = MagicMock()
        paginator = MagicMock()
        paginator.paginate.return_value = [
            {"Schedules": [{"Name": "satisfaction-t1-aaaa"}]},
            {"Schedules": [{"Name": "satisfaction-t1-bbbb"}]},
        ]
        client.get_paginator.return_value = paginator

        assert self._scheduler(client).cancel_for_ticket("t1") == 2

        paginator.paginate.assert_called_once_with(
            GroupName="follow-ups", NamePrefix="satisfaction-t1-"
        )
        assert client.delete_schedule.call_count == 2


class TestBuildFollowUpScheduler:
    def test_timer_without_target(self, checker):
        assert isinstance(build_follow_up_scheduler(Settings(), checker), TimerFollowUpScheduler)

    def test_eventbridge_with_target(self, checker, monkeypatch):
        monkeypatch.setattr("services.followup_service.boto3.client", MagicMock())
        settings = Settings(
            follow_up_target_arn="arn:aws:lambda:eu-west-2:123:function:check",
            follow_up_role_arn="arn:aws:iam::123:role/scheduler",
        )
        scheduler = build_follow_up_scheduler(settings, checker)
        assert isinstance(scheduler, EventBridgeFollowUpScheduler)
