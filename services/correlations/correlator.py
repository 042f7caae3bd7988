"""
Execution correlator.

Discovers executions likely triggered by a root execution, directly or
transitively, across workflow boundaries:
- Webhook pass: HTTP calls on the parent resolved through the webhook index
- Sub-workflow pass: recent runs of workflows with a sub-workflow trigger

Accepted candidates are expanded depth-first, webhook pass before
sub-workflow pass. A visited set shared across the whole search keeps
every execution to at most one result.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from .constants import (
    ACCEPTANCE_THRESHOLD,
    DEFAULT_MAX_DEPTH,
    DEFAULT_TIME_WINDOW_MS,
    MAX_CONFIDENCE,
    SUB_WORKFLOW_CANDIDATE_LIMIT,
    SUB_WORKFLOW_WINDOW_GRACE_MS,
    WEBHOOK_CANDIDATE_LIMIT,
    WEBHOOK_WINDOW_GRACE_MS,
)
from .extractors import extract_http_calls, extract_user_context
from .scorers import score_sub_workflow_correlation, score_webhook_correlation
from .utils import execution_start_ms
from .webhook_index import WebhookIndex

logger = logging.getLogger(__name__)


class ExecutionCorrelator:
    """
    Correlates n8n executions using a data source client.

    The client must provide list_all_workflows, get_workflow,
    list_executions, get_execution, extract_webhook_paths and
    has_sub_workflow_trigger, as the n8n REST client does.

    Workflow definitions and the webhook index are cached for the lifetime
    of the instance. Call initialize() again to pick up new webhooks.
    """

    def __init__(self, client):
        self.client = client
        self._index = WebhookIndex()
        self._workflows: Dict[str, Dict[str, Any]] = {}
        self._initialized = False
        self._visited: Set[str] = set()
        self._init_lock = asyncio.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def webhook_mappings(self) -> List[Dict[str, str]]:
        return list(self._index.mappings)

    @property
    def visited(self) -> Set[str]:
        """Execution ids visited by the most recent search (root included)."""
        return set(self._visited)

    async def initialize(self) -> None:
        """(Re)build the webhook index and workflow cache from all active workflows."""
        async with self._init_lock:
            await self._build_index()

    async def ensure_initialized(self) -> bool:
        """
        Build the index if no build has completed yet.

        Concurrent callers wait for a single build instead of each starting
        their own. Returns True when this call performed the build.
        """
        if self._initialized:
            return False
        async with self._init_lock:
            if self._initialized:
                return False
            await self._build_index()
            return True

    async def _build_index(self) -> None:
        index, workflows = await WebhookIndex.build(self.client)
        self._index = index
        self._workflows = workflows
        self._initialized = True

    def find_workflow_by_webhook(self, url_or_path: str) -> Optional[Dict[str, str]]:
        return self._index.find_workflow_by_webhook(url_or_path)

    async def correlate_executions(
        self,
        root_execution_id: str,
        time_window_ms: int = DEFAULT_TIME_WINDOW_MS,
        max_depth: int = DEFAULT_MAX_DEPTH,
        root_execution: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Find executions correlated with a root execution.

        Args:
            root_execution_id: Execution to start from.
            time_window_ms: How long after a parent's start a child may begin.
            max_depth: Longest chain of accepted correlations.
            root_execution: The root execution with run data, when the caller
                already fetched it. Fetched by id otherwise.

        Returns:
            Correlation results in discovery order, each a dict with
            'execution', 'parent_id', 'confidence', 'method' and 'depth'.

        Raises:
            Any data-source error; the search is aborted without partial results.
        """
        await self.ensure_initialized()

        root_execution_id = str(root_execution_id)
        if root_execution is None:
            root_execution = await self.client.get_execution(root_execution_id, include_data=True)

        results: List[Dict[str, Any]] = []
        visited: Set[str] = {root_execution_id}
        self._visited = visited

        await self._find_correlated_executions(
            root_execution,
            root_execution_id,
            time_window_ms,
            max_depth,
            0,
            results,
            visited,
        )

        logger.info(
            "Correlated execution %s: %d related executions (window=%dms, max_depth=%d)",
            root_execution_id, len(results), time_window_ms, max_depth,
        )
        return results

    async def _find_correlated_executions(
        self,
        execution: Dict[str, Any],
        parent_id: str,
        time_window_ms: int,
        max_depth: int,
        current_depth: int,
        results: List[Dict[str, Any]],
        visited: Set[str],
    ) -> None:
        if current_depth >= max_depth:
            return

        exec_start = execution_start_ms(execution)
        if exec_start is None:
            logger.debug("Execution %s has no start time; not expanding", execution.get("id"))
            return

        user_context = extract_user_context(execution)

        # Method 1: executions triggered by HTTP calls to known webhooks
        for call in extract_http_calls(execution):
            mapping = self.find_workflow_by_webhook(call["url"])
            if not mapping:
                continue

            page = await self.client.list_executions(
                workflow_id=mapping["workflow_id"],
                limit=WEBHOOK_CANDIDATE_LIMIT,
                include_data=True,
            )

            for candidate in page.get("data", []):
                candidate_id = str(candidate.get("id"))
                if candidate_id in visited:
                    continue
                if not self._in_window(candidate, exec_start, WEBHOOK_WINDOW_GRACE_MS, time_window_ms):
                    continue

                confidence, method = score_webhook_correlation(execution, candidate, user_context, call)
                if confidence > ACCEPTANCE_THRESHOLD:
                    await self._accept(
                        candidate, parent_id, confidence, method, time_window_ms,
                        max_depth, current_depth, results, visited,
                    )

        # Method 2: sub-workflow executions, matched on timing and user context only
        sub_workflow_ids = [
            workflow_id for workflow_id, workflow in self._workflows.items()
            if self.client.has_sub_workflow_trigger(workflow)
        ]

        for workflow_id in sub_workflow_ids:
            if workflow_id == str(execution.get("workflowId")):
                continue

            page = await self.client.list_executions(
                workflow_id=workflow_id,
                limit=SUB_WORKFLOW_CANDIDATE_LIMIT,
                include_data=True,
            )

            for candidate in page.get("data", []):
                candidate_id = str(candidate.get("id"))
                if candidate_id in visited:
                    continue
                if not self._in_window(candidate, exec_start, SUB_WORKFLOW_WINDOW_GRACE_MS, time_window_ms):
                    continue

                confidence, method = score_sub_workflow_correlation(execution, candidate, user_context)
                if confidence > ACCEPTANCE_THRESHOLD:
                    await self._accept(
                        candidate, parent_id, min(confidence, MAX_CONFIDENCE), method,
                        time_window_ms, max_depth, current_depth, results, visited,
                    )

    async def _accept(
        self,
        candidate: Dict[str, Any],
        parent_id: str,
        confidence: float,
        method: str,
        time_window_ms: int,
        max_depth: int,
        current_depth: int,
        results: List[Dict[str, Any]],
        visited: Set[str],
    ) -> None:
        candidate_id = str(candidate.get("id"))
        visited.add(candidate_id)
        results.append({
            "execution": candidate,
            "parent_id": parent_id,
            "confidence": confidence,
            "method": method,
            "depth": current_depth,
        })
        logger.debug(
            "Accepted %s -> %s (confidence=%.2f, method=%s)",
            parent_id, candidate_id, confidence, method,
        )

        await self._find_correlated_executions(
            candidate,
            candidate_id,
            time_window_ms,
            max_depth,
            current_depth + 1,
            results,
            visited,
        )

    @staticmethod
    def _in_window(candidate: Dict[str, Any], exec_start: float, grace_ms: int, time_window_ms: int) -> bool:
        candidate_start = execution_start_ms(candidate)
        if candidate_start is None:
            return False
        return exec_start - grace_ms <= candidate_start <= exec_start + time_window_ms

    def get_workflow_name(self, workflow_id: str) -> str:
        """Workflow name from the cache, or the id itself when unknown."""
        workflow = self._workflows.get(str(workflow_id))
        return (workflow or {}).get("name") or str(workflow_id)

    def get_workflow_names(self) -> Dict[str, str]:
        return {workflow_id: workflow.get("name") for workflow_id, workflow in self._workflows.items()}
