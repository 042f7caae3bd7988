"""
Causal tree assembly for correlation results.

Turns the flat, discovery-ordered result list into nested nodes keyed by
parent id, plus a small summary. Output is structured data only.
"""

from typing import Any, Dict, List, Optional

from .utils import execution_duration_seconds


def _node(
    execution: Dict[str, Any],
    workflow_names: Dict[str, str],
    confidence: Optional[float] = None,
    method: Optional[str] = None,
) -> Dict[str, Any]:
    workflow_id = str(execution.get("workflowId", ""))
    return {
        "execution_id": str(execution.get("id")),
        "workflow_id": workflow_id,
        "workflow_name": workflow_names.get(workflow_id) or workflow_id,
        "status": execution.get("status", "unknown"),
        "started_at": execution.get("startedAt"),
        "duration_seconds": execution_duration_seconds(execution),
        "confidence": confidence,
        "method": method,
        "children": [],
    }


def build_correlation_tree(
    root_execution: Dict[str, Any],
    correlations: List[Dict[str, Any]],
    workflow_names: Dict[str, str],
) -> Dict[str, Any]:
    """
    Build the causal tree rooted at the starting execution.

    Children keep discovery order. Results whose parent is not reachable
    from the root are left out.
    """
    by_parent: Dict[str, List[Dict[str, Any]]] = {}
    for corr in correlations:
        by_parent.setdefault(str(corr["parent_id"]), []).append(corr)

    root = _node(root_execution, workflow_names)

    # Explicit stack; the visited set upstream guarantees this is acyclic
    stack = [root]
    while stack:
        current = stack.pop()
        for corr in by_parent.get(current["execution_id"], []):
            child = _node(corr["execution"], workflow_names, corr["confidence"], corr["method"])
            current["children"].append(child)
            stack.append(child)

    return root


def summarize_correlations(correlations: List[Dict[str, Any]]) -> Dict[str, Any]:
    methods: List[str] = []
    for corr in correlations:
        if corr["method"] not in methods:
            methods.append(corr["method"])

    total = len(correlations)
    average = sum(c["confidence"] for c in correlations) / total if total else 0.0

    return {
        "total": total,
        "methods": methods,
        "average_confidence": round(average, 3),
        "max_depth_reached": max((c.get("depth", 0) + 1 for c in correlations), default=0),
    }
