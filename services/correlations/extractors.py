"""
Signal extraction from execution run data.

Extracts:
- Outbound HTTP calls (URL-shaped fields on node output)
- User context identifiers (user/chat/correlation/response ids)

Both work from node OUTPUT payloads rather than node parameters, since
parameter templates are unresolved at this point.
"""

from typing import Any, Dict, List

from .constants import DEFAULT_HTTP_METHOD, HTTP_URL_FIELDS, USER_CONTEXT_FIELDS
from .utils import first_output_json, iter_node_runs


def extract_http_calls(execution: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Extract HTTP request calls made during an execution.

    A node invocation counts as a call when the first record of its first
    output carries a `url` or `requestUrl` field.

    Returns:
        List of {node_name, url, method, timestamp, response_data} dicts.
        timestamp is the invocation startTime in epoch ms (may be None).
    """
    calls = []

    for node_name, run in iter_node_runs(execution):
        payload = first_output_json(run)
        if not payload:
            continue

        url = None
        for field in HTTP_URL_FIELDS:
            if payload.get(field):
                url = payload[field]
                break
        if not url:
            continue

        calls.append({
            "node_name": node_name,
            "url": str(url),
            "method": str(payload.get("method") or DEFAULT_HTTP_METHOD),
            "timestamp": run.get("startTime"),
            "response_data": payload,
        })

    return calls


def _apply_context_fields(source: Dict[str, Any], result: Dict[str, str]) -> None:
    for field in USER_CONTEXT_FIELDS:
        if source.get(field):
            result[field] = str(source[field])


def extract_user_context(execution: Dict[str, Any]) -> Dict[str, str]:
    """
    Extract user/chat/correlation/response ids from node output payloads.

    Reads top-level fields, then a nested `body` dict which overrides them.
    Stops at the first invocation after which user_id or chat_id is known,
    so a correlation_id or response_id that only appears on a later node is
    not picked up.

    Returns:
        Dict containing whichever of user_id, chat_id, correlation_id and
        response_id were found.
    """
    result: Dict[str, str] = {}

    for _, run in iter_node_runs(execution):
        payload = first_output_json(run)
        if not payload:
            continue

        _apply_context_fields(payload, result)

        body = payload.get("body")
        if isinstance(body, dict):
            _apply_context_fields(body, result)

        if result.get("user_id") or result.get("chat_id"):
            return result

    return result
