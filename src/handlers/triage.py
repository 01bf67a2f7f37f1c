"""
Agent endpoints.

- POST /agent/triage re-runs triage synchronously for one ticket.
- GET /agent/suggestion/{ticket_id} returns the latest suggestion.
- GET /agent/stats returns aggregate triage statistics.
"""

from __future__ import annotations

import json
import uuid
from typing import Dict

from utils.error_handling import AppError, NotFoundError, to_response
from utils.http import json_body, json_response, path_param
from utils.logging_config import get_logger
from utils.validators import ensure_present

logger = get_logger(__name__)


def _get_app():
    """Lazy-load the triage app."""
    from services.wiring import get_app

    return get_app()


def lambda_handler(event, context) -> Dict:
    """Handle POST /agent/triage."""
    correlation_id = str(uuid.uuid4())
    try:
        payload = json_body(event)
        ticket_id = payload.get("ticket_id")
        ensure_present(ticket_id, "ticket_id")

        suggestion = _get_app().orchestrator.triage_ticket(ticket_id)
    except json.JSONDecodeError as exc:
        return json_response(
            400,
            {"message": "Invalid request", "error": str(exc), "correlation_id": correlation_id},
        )
    except AppError as exc:
        logger.warning(
            "Triage request failed",
            extra={"correlation_id": correlation_id, "error": str(exc)},
        )
        return to_response(exc, correlation_id)

    return json_response(200, suggestion.model_dump_json())


def suggestion_handler(event, context) -> Dict:
    """Handle GET /agent/suggestion/{ticket_id}."""
    ticket_id = path_param(event, "ticket_id", 2)
    try:
        ensure_present(ticket_id, "ticket_id")
        suggestion = _get_app().stores.suggestions.find_latest_for_ticket(ticket_id)
        if suggestion is None:
            raise NotFoundError(f"No suggestion for ticket {ticket_id}")
    except AppError as exc:
        return to_response(exc)
    return json_response(200, suggestion.model_dump_json())


def stats_handler(event, context) -> Dict:
    """Handle GET /agent/stats."""
    stats = _get_app().stats
    return json_response(
        200,
        {
            "triage": stats.triage_stats().model_dump(),
            "categories": [item.model_dump() for item in stats.category_stats()],
        },
    )
