"""
Shared utilities for execution correlation.

Contains timestamp conversion and run-data traversal helpers.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, Optional, Tuple, Union

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_epoch_ms(value: Union[str, int, float, None]) -> Optional[float]:
    """
    Convert an n8n timestamp to epoch milliseconds.

    Accepts ISO 8601 strings ("2025-01-15T10:00:00.000Z", with or without an
    offset) and numeric epoch milliseconds. Returns None when unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip()
    if not text:
        return None
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        # n8n reports UTC
        dt = dt.replace(tzinfo=timezone.utc)
    # timedelta division stays exact for whole milliseconds
    return (dt - EPOCH) / timedelta(milliseconds=1)


def execution_start_ms(execution: Dict[str, Any]) -> Optional[float]:
    return to_epoch_ms(execution.get("startedAt"))


def iter_node_runs(execution: Dict[str, Any]) -> Iterator[Tuple[str, Dict[str, Any]]]:
    """
    Yield (node_name, run) for every node invocation in run data.

    Order follows the runData mapping, then invocation order within a node.
    Executions fetched without data yield nothing.
    """
    data = execution.get("data") or {}
    run_data = (data.get("resultData") or {}).get("runData") or {}
    for node_name, node_runs in run_data.items():
        for run in node_runs or []:
            if isinstance(run, dict):
                yield node_name, run


def first_output_json(run: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Return the json payload of the first record on the first main output, if any."""
    main = (run.get("data") or {}).get("main") or []
    if not main or not main[0]:
        return None
    record = main[0][0]
    if not isinstance(record, dict):
        return None
    payload = record.get("json")
    return payload if isinstance(payload, dict) and payload else None


def execution_duration_seconds(execution: Dict[str, Any]) -> Optional[float]:
    """Seconds between startedAt and stoppedAt, or None while running / when either is missing."""
    start = execution_start_ms(execution)
    end = to_epoch_ms(execution.get("stoppedAt"))
    if start is None or end is None:
        return None
    return (end - start) / 1000
