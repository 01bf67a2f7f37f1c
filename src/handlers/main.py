"""
Single entrypoint Lambda that routes HTTP API requests to thin handler modules.

Why one Lambda?
- Keeps the triage app (stores, classifier, timers) warm across routes.
- Simpler to deploy while still keeping code organized by delegating to modules.
"""

import re
from typing import Callable, Pattern, Tuple

from . import audit, health_check, ticket_ingestion, triage
from utils.http import json_response, request_method, request_path

# Checked in order; more specific patterns first.
ROUTES: Tuple[Tuple[str, Pattern, Callable], ...] = (
    ("GET", re.compile(r"^/health/?$"), health_check.lambda_handler),
    ("POST", re.compile(r"^/tickets/[^/]+/replies/?$"), ticket_ingestion.reply_handler),
    ("POST", re.compile(r"^/tickets/?$"), ticket_ingestion.lambda_handler),
    ("POST", re.compile(r"^/agent/triage/?$"), triage.lambda_handler),
    ("GET", re.compile(r"^/agent/suggestion/[^/]+/?$"), triage.suggestion_handler),
    ("GET", re.compile(r"^/agent/stats/?$"), triage.stats_handler),
    ("GET", re.compile(r"^/audit/tickets/[^/]+/?$"), audit.lambda_handler),
)


def lambda_handler(event, context):
    """
    Entry point invoked by API Gateway HTTP API.

    The event contains the HTTP method and path; we route it to the correct
    handler while keeping shared setup (logging, error handling) centralized.
    """
    method = request_method(event)
    path = request_path(event)

    for route_method, pattern, handler in ROUTES:
        if method == route_method and pattern.match(path):
            return handler(event, context)

    return json_response(404, {"message": "Route not found", "route": f"{method} {path}"})
