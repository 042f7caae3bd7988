"""
Confidence scoring for candidate child executions.

Two scoring paths:
- Webhook-call scoring: the candidate's workflow owns the webhook a parent
  HTTP call targeted. Timestamp compared against the call itself.
- Sub-workflow scoring: the candidate's workflow can be called as a
  sub-workflow. Timestamp compared against the parent start.

Both return (confidence, method) where method is the '+'-joined list of
contributing signals in evaluation order.
"""

from typing import Any, Dict, List, Optional, Tuple

from .constants import (
    MAX_CONFIDENCE,
    RESPONSE_ID_PATTERN_SEGMENTS,
    SUB_WORKFLOW_CHAT_ID_WEIGHT,
    SUB_WORKFLOW_TIMESTAMP_TIERS,
    SUB_WORKFLOW_USER_ID_WEIGHT,
    WEBHOOK_CHAT_ID_WEIGHT,
    WEBHOOK_CORRELATION_ID_WEIGHT,
    WEBHOOK_RESPONSE_PATTERN_WEIGHT,
    WEBHOOK_TIMESTAMP_TIERS,
    WEBHOOK_URL_BASE_SCORE,
    WEBHOOK_USER_ID_WEIGHT,
)
from .extractors import extract_user_context
from .utils import execution_start_ms, to_epoch_ms


def _timestamp_bonus(
    time_diff_ms: Optional[float],
    tiers: Tuple[Tuple[int, float, str], ...]
) -> Tuple[float, Optional[str]]:
    """Return (bonus, signal) for the first tier the difference falls under."""
    if time_diff_ms is None:
        return 0.0, None
    for upper_bound, bonus, signal in tiers:
        if time_diff_ms < upper_bound:
            return bonus, signal
    return 0.0, None


def _abs_diff(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if a is None or b is None:
        return None
    return abs(a - b)


def _matches(parent_context: Dict[str, str], candidate_context: Dict[str, str], key: str) -> bool:
    parent_value = parent_context.get(key)
    return bool(parent_value) and candidate_context.get(key) == parent_value


def response_id_pattern(response_id: str) -> str:
    """Namespace prefix of a response id, e.g. 'RSP-TaskManager' for 'RSP-TaskManager-42'."""
    return "-".join(str(response_id).split("-")[:RESPONSE_ID_PATTERN_SEGMENTS])


def score_webhook_correlation(
    parent: Dict[str, Any],
    candidate: Dict[str, Any],
    parent_context: Dict[str, str],
    http_call: Dict[str, Any],
) -> Tuple[float, str]:
    """
    Score a candidate reached through a webhook the parent called.

    Callers have already matched the call URL to the candidate's workflow,
    which earns the base score.

    Returns:
        (confidence clamped to 1.0, method label)
    """
    confidence = WEBHOOK_URL_BASE_SCORE
    methods: List[str] = ["webhook_url"]

    time_diff = _abs_diff(execution_start_ms(candidate), to_epoch_ms(http_call.get("timestamp")))
    bonus, signal = _timestamp_bonus(time_diff, WEBHOOK_TIMESTAMP_TIERS)
    if signal:
        confidence += bonus
        methods.append(signal)

    candidate_context = extract_user_context(candidate)

    if _matches(parent_context, candidate_context, "user_id"):
        confidence += WEBHOOK_USER_ID_WEIGHT
        methods.append("user_id")

    if _matches(parent_context, candidate_context, "chat_id"):
        confidence += WEBHOOK_CHAT_ID_WEIGHT
        methods.append("chat_id")

    if _matches(parent_context, candidate_context, "correlation_id"):
        confidence += WEBHOOK_CORRELATION_ID_WEIGHT
        methods.append("correlation_id")

    parent_response = parent_context.get("response_id")
    candidate_response = candidate_context.get("response_id")
    if parent_response and candidate_response:
        if response_id_pattern(parent_response) == response_id_pattern(candidate_response):
            confidence += WEBHOOK_RESPONSE_PATTERN_WEIGHT
            methods.append("response_pattern")

    return min(confidence, MAX_CONFIDENCE), "+".join(methods)


def score_sub_workflow_correlation(
    parent: Dict[str, Any],
    candidate: Dict[str, Any],
    parent_context: Dict[str, str],
) -> Tuple[float, str]:
    """
    Score a candidate execution of a sub-workflow-capable workflow.

    No correlation_id or response_id signal on this path.

    Returns:
        (unclamped confidence, method label). The search compares the raw
        sum with the acceptance threshold and clamps when recording.
    """
    confidence = 0.0
    methods: List[str] = []

    time_diff = _abs_diff(execution_start_ms(candidate), execution_start_ms(parent))
    bonus, signal = _timestamp_bonus(time_diff, SUB_WORKFLOW_TIMESTAMP_TIERS)
    if signal:
        confidence += bonus
        methods.append(signal)

    candidate_context = extract_user_context(candidate)

    if _matches(parent_context, candidate_context, "user_id"):
        confidence += SUB_WORKFLOW_USER_ID_WEIGHT
        methods.append("user_id")

    if _matches(parent_context, candidate_context, "chat_id"):
        confidence += SUB_WORKFLOW_CHAT_ID_WEIGHT
        methods.append("chat_id")

    return confidence, "+".join(methods)
