"""GET /audit/tickets/{ticket_id}: the ticket's audit trail, oldest first."""

from __future__ import annotations

from typing import Dict

from utils.error_handling import AppError, to_response
from utils.http import json_response, path_param
from utils.validators import ensure_present


def _get_audit_logger():
    from services.wiring import get_app

    return get_app().audit


def lambda_handler(event, context) -> Dict:
    ticket_id = path_param(event, "ticket_id", 2)
    try:
        ensure_present(ticket_id, "ticket_id")
    except AppError as exc:
        return to_response(exc)

    entries = _get_audit_logger().trail(ticket_id)
    return json_response(
        200,
        {
            "ticket_id": ticket_id,
            "entries": [entry.model_dump(mode="json") for entry in entries],
        },
    )
