"""Helpers for API Gateway HTTP API (payload v2) events and responses."""

import json
from typing import Any, Dict, List, Optional


def json_response(status: int, body: Any) -> Dict[str, Any]:
    """Format a JSON API Gateway HTTP API response."""
    return {
        "statusCode": status,
        "headers": {"Content-Type": "application/json"},
        "body": body if isinstance(body, str) else json.dumps(body, default=str),
    }


def request_method(event: Dict[str, Any]) -> str:
    return event.get("requestContext", {}).get("http", {}).get("method", "").upper()


def request_path(event: Dict[str, Any]) -> str:
    return event.get("requestContext", {}).get("http", {}).get("path", "") or event.get(
        "rawPath", ""
    )


def path_segments(event: Dict[str, Any]) -> List[str]:
    return [part for part in request_path(event).split("/") if part]


def path_param(event: Dict[str, Any], name: str, index: int) -> Optional[str]:
    """
    Read a path parameter.

    Uses `pathParameters` when API Gateway matched a templated route, and
    falls back to the segment at `index` when the request arrived through
    the catch-all route.
    """
    params = event.get("pathParameters") or {}
    if params.get(name):
        return params[name]
    segments = path_segments(event)
    if len(segments) > index:
        return segments[index]
    return None


def json_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """Parse the request body; API Gateway sends it as a string."""
    body = event.get("body")
    if not body:
        return {}
    if isinstance(body, dict):
        return body
    return json.loads(body)
