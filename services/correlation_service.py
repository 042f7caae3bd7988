# services/correlation_service.py
import logging
from typing import Any, Dict, Optional
from fastmcp import Context
from utils.config import load_config
from services.n8n_api import N8nClient
from services.correlations import (
    ExecutionCorrelator,
    build_correlation_tree,
    summarize_correlations,
)
from services.correlations.constants import DEFAULT_MAX_DEPTH, DEFAULT_TIME_WINDOW_MS

# -----------------------------------------------
# Bootstrap
# -----------------------------------------------
config = load_config()
correlation_config = config.get("correlation", {})

logger = logging.getLogger(__name__)

# Process-scoped correlator; its webhook index lives as long as the server session
_CORRELATOR: Optional[ExecutionCorrelator] = None


def get_correlator() -> ExecutionCorrelator:
    global _CORRELATOR
    if _CORRELATOR is None:
        _CORRELATOR = ExecutionCorrelator(N8nClient())
    return _CORRELATOR


def reset_correlator() -> None:
    """Drop the cached correlator so the next call builds a fresh one."""
    global _CORRELATOR
    _CORRELATOR = None


def _flatten(corr: Dict[str, Any], correlator: ExecutionCorrelator) -> Dict[str, Any]:
    execution = corr["execution"]
    workflow_id = str(execution.get("workflowId", ""))
    return {
        "execution_id": str(execution.get("id")),
        "workflow_id": workflow_id,
        "workflow_name": correlator.get_workflow_name(workflow_id),
        "parent_id": corr["parent_id"],
        "confidence": round(corr["confidence"], 3),
        "method": corr["method"],
        "depth": corr["depth"],
        "status": execution.get("status", "unknown"),
        "started_at": execution.get("startedAt"),
    }


def _error_result(execution_id: str, message: str) -> Dict[str, Any]:
    return {
        "status": "ERROR",
        "message": message,
        "execution_id": execution_id,
        "count": 0,
        "correlations": [],
        "tree": None,
        "summary": {},
        "workflow_names": {},
    }


async def correlate_from_execution(
    execution_id: str,
    ctx: Context,
    time_window_ms: Optional[int] = None,
    max_depth: Optional[int] = None,
    refresh_index: bool = False,
    correlator: Optional[ExecutionCorrelator] = None,
) -> Dict[str, Any]:
    """
    Entry point for the get_correlated_executions MCP tool.

    Args:
        execution_id: Root execution (typically the orchestrator run).
        ctx: FastMCP context for logging.
        time_window_ms: Correlation window; defaults to config correlation.time_window_ms.
        max_depth: Maximum chain length; defaults to config correlation.max_depth.
        refresh_index: Rebuild the webhook index before searching.
        correlator: Explicit correlator instance (defaults to the process-wide one).

    Returns:
        dict with status, message, execution_id, count, correlations, tree,
        summary and workflow_names.
    """
    try:
        if time_window_ms is None:
            time_window_ms = int(correlation_config.get("time_window_ms", DEFAULT_TIME_WINDOW_MS))
        if max_depth is None:
            max_depth = int(correlation_config.get("max_depth", DEFAULT_MAX_DEPTH))

        correlator = correlator or get_correlator()

        if refresh_index:
            await correlator.initialize()
            built = True
        else:
            built = await correlator.ensure_initialized()
        if built:
            await ctx.info(
                f"Webhook index ready: {len(correlator.webhook_mappings)} webhooks "
                f"across {len(correlator.get_workflow_names())} active workflows"
            )

        root_execution = await correlator.client.get_execution(execution_id, include_data=True)
        correlations = await correlator.correlate_executions(
            execution_id,
            time_window_ms=time_window_ms,
            max_depth=max_depth,
            root_execution=root_execution,
        )

        workflow_names = correlator.get_workflow_names()
        msg = f"Found {len(correlations)} correlated executions for {execution_id}"
        await ctx.info(msg)

        return {
            "status": "OK",
            "message": msg,
            "execution_id": execution_id,
            "count": len(correlations),
            "correlations": [_flatten(c, correlator) for c in correlations],
            "tree": build_correlation_tree(root_execution, correlations, workflow_names),
            "summary": summarize_correlations(correlations),
            "workflow_names": workflow_names,
        }

    except Exception as e:
        msg = f"Error finding correlated executions: {e}"
        logger.exception(msg)
        await ctx.error(msg)
        return _error_result(execution_id, msg)
