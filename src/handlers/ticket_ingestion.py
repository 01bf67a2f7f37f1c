"""
Ticket ingestion handlers.

POST /tickets persists the ticket and hands it to the work dispatcher; the
response never waits for triage. POST /tickets/{id}/replies records a reply
and resolves the ticket.
"""

from __future__ import annotations

import json
import uuid

from pydantic import ValidationError as PydanticValidationError

from models.response import ApiResponse
from models.ticket import ReplyRequest, TicketCreateRequest
from utils.error_handling import AppError, to_response
from utils.http import json_body, json_response, path_param
from utils.logging_config import get_logger

logger = get_logger(__name__)


def _get_ticket_service():
    """Lazy-load TicketService."""
    from services.wiring import get_app

    return get_app().tickets


def _invalid(exc: Exception, correlation_id: str):
    return json_response(
        422 if isinstance(exc, PydanticValidationError) else 400,
        {"message": "Invalid request", "error": str(exc), "correlation_id": correlation_id},
    )


def lambda_handler(event, context):
    """Handle POST /tickets."""
    correlation_id = str(uuid.uuid4())

    try:
        request = TicketCreateRequest.model_validate(json_body(event))
        ticket = _get_ticket_service().create_ticket(request)
    except (PydanticValidationError, json.JSONDecodeError) as exc:
        logger.warning(
            "Rejected ticket payload",
            extra={"correlation_id": correlation_id, "error": str(exc)},
        )
        return _invalid(exc, correlation_id)
    except AppError as exc:
        return to_response(exc, correlation_id)

    logger.info(
        "Ticket ingested",
        extra={"correlation_id": correlation_id, "ticket_id": ticket.id},
    )
    response = ApiResponse(
        message="Ticket created; triage queued",
        data=ticket.model_dump(mode="json"),
        correlation_id=correlation_id,
    )
    return json_response(201, response.model_dump_json())


def reply_handler(event, context):
    """Handle POST /tickets/{ticket_id}/replies."""
    correlation_id = str(uuid.uuid4())
    ticket_id = path_param(event, "ticket_id", 1)

    try:
        request = ReplyRequest.model_validate(json_body(event))
        ticket = _get_ticket_service().add_reply(ticket_id, request)
    except (PydanticValidationError, json.JSONDecodeError) as exc:
        return _invalid(exc, correlation_id)
    except AppError as exc:
        logger.warning(
            "Reply rejected",
            extra={"correlation_id": correlation_id, "ticket_id": ticket_id, "error": str(exc)},
        )
        return to_response(exc, correlation_id)

    response = ApiResponse(
        message="Reply added",
        data=ticket.model_dump(mode="json"),
        correlation_id=correlation_id,
    )
    return json_response(200, response.model_dump_json())
