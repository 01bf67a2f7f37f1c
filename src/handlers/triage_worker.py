"""
SQS consumer for queued triage jobs.

Reports partial batch failures so only failed messages are retried (the
event source mapping enables ReportBatchItemFailures). A ticket that no
longer exists, or that a human changed mid-run, is dropped rather than
retried.
"""

from __future__ import annotations

import json
from typing import Dict, List

from utils.error_handling import ConflictError, NotFoundError
from utils.logging_config import get_logger

logger = get_logger(__name__)


def _get_orchestrator():
    from services.wiring import get_app

    return get_app().orchestrator


def lambda_handler(event, context) -> Dict:
    failures: List[Dict[str, str]] = []

    for record in event.get("Records", []):
        message_id = record.get("messageId")
        try:
            ticket_id = json.loads(record.get("body") or "{}")["ticket_id"]
        except (json.JSONDecodeError, KeyError, TypeError):
            logger.error("Discarding malformed triage message", extra={"message_id": message_id})
            continue

        try:
            _get_orchestrator().triage_ticket(ticket_id)
        except NotFoundError:
            logger.warning(
                "Ticket vanished before triage; dropping message",
                extra={"message_id": message_id, "ticket_id": ticket_id},
            )
        except ConflictError:
            logger.warning(
                "Ticket changed during triage; dropping message",
                extra={"message_id": message_id, "ticket_id": ticket_id},
            )
        except Exception:
            logger.exception(
                "Triage job failed",
                extra={"message_id": message_id, "ticket_id": ticket_id},
            )
            failures.append({"itemIdentifier": message_id})

    return {"batchItemFailures": failures}
