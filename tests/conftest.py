"""
Shared fixtures and factories for n8n Debug MCP tests.

Executions and workflows are built as raw n8n REST payloads. The data
source is an in-memory fake wrapped in AsyncMocks so tests can inspect
which API calls the correlator made.
"""
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

os.environ.setdefault("N8N_API_KEY", "n8n_api_test_key")

from services.n8n_api import N8nClient  # noqa: E402


# 2025-01-15T10:00:00Z
BASE_MS = 1736935200000


def iso(ms: float) -> str:
    """Epoch ms -> n8n-style ISO timestamp."""
    dt = datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(milliseconds=ms)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_run(payload: Optional[Dict[str, Any]] = None, start_time: Optional[float] = BASE_MS) -> Dict[str, Any]:
    """One node invocation; payload becomes the first record of the first output."""
    run: Dict[str, Any] = {"startTime": start_time, "executionTime": 12, "executionStatus": "success"}
    if payload is not None:
        run["data"] = {"main": [[{"json": payload}]]}
    return run


def make_execution(
    execution_id: str,
    workflow_id: str,
    start_ms: Optional[float],
    run_data: Optional[Dict[str, List[Dict[str, Any]]]] = None,
    status: str = "success",
) -> Dict[str, Any]:
    execution: Dict[str, Any] = {
        "id": execution_id,
        "workflowId": workflow_id,
        "status": status,
        "mode": "webhook",
        "finished": status == "success",
        "startedAt": iso(start_ms) if start_ms is not None else None,
        "stoppedAt": iso(start_ms + 1500) if start_ms is not None else None,
    }
    if run_data is not None:
        execution["data"] = {"resultData": {"runData": run_data}}
    return execution


def make_workflow(
    workflow_id: str,
    name: str,
    webhook_paths: tuple = (),
    sub_workflow: bool = False,
) -> Dict[str, Any]:
    nodes = []
    for i, path in enumerate(webhook_paths):
        nodes.append({
            "id": f"{workflow_id}-wh-{i}",
            "name": f"Webhook {i}",
            "type": "n8n-nodes-base.webhook",
            "position": [0, 0],
            "parameters": {"path": path, "httpMethod": "POST"},
        })
    if sub_workflow:
        nodes.append({
            "id": f"{workflow_id}-sub",
            "name": "When Executed by Another Workflow",
            "type": "n8n-nodes-base.executeWorkflowTrigger",
            "position": [0, 0],
            "parameters": {},
        })
    nodes.append({
        "id": f"{workflow_id}-set",
        "name": "Set",
        "type": "n8n-nodes-base.set",
        "position": [200, 0],
        "parameters": {},
    })
    return {"id": workflow_id, "name": name, "active": True, "nodes": nodes, "connections": {}}


class FakeN8n:
    """In-memory n8n instance exposing an N8nClient-shaped mock."""

    def __init__(self):
        self.workflows: Dict[str, Dict[str, Any]] = {}
        self.executions: Dict[str, Dict[str, Any]] = {}
        self.executions_by_workflow: Dict[str, List[Dict[str, Any]]] = {}

        self.client = MagicMock()
        self.client.list_all_workflows = AsyncMock(side_effect=self._list_all_workflows)
        self.client.get_workflow = AsyncMock(side_effect=self._get_workflow)
        self.client.list_executions = AsyncMock(side_effect=self._list_executions)
        self.client.get_execution = AsyncMock(side_effect=self._get_execution)
        self.client.extract_webhook_paths = N8nClient.extract_webhook_paths
        self.client.has_sub_workflow_trigger = N8nClient.has_sub_workflow_trigger

    def add_workflow(self, workflow: Dict[str, Any]) -> Dict[str, Any]:
        self.workflows[workflow["id"]] = workflow
        self.executions_by_workflow.setdefault(workflow["id"], [])
        return workflow

    def add_execution(self, execution: Dict[str, Any]) -> Dict[str, Any]:
        self.executions[execution["id"]] = execution
        self.executions_by_workflow.setdefault(execution["workflowId"], []).append(execution)
        return execution

    async def _list_all_workflows(self, active=None):
        return [
            {"id": wf["id"], "name": wf["name"], "active": wf["active"]}
            for wf in self.workflows.values()
            if active is None or wf["active"] == active
        ]

    async def _get_workflow(self, workflow_id):
        return self.workflows[workflow_id]

    async def _list_executions(self, workflow_id=None, status=None, limit=20, cursor=None, include_data=False):
        runs = self.executions_by_workflow.get(workflow_id, []) if workflow_id else list(self.executions.values())
        return {"data": runs[:limit], "nextCursor": None}

    async def _get_execution(self, execution_id, include_data=True):
        return self.executions[execution_id]

    def listed_workflow_ids(self) -> List[str]:
        return [c.kwargs.get("workflow_id") for c in self.client.list_executions.call_args_list]


@pytest.fixture
def fake_n8n():
    return FakeN8n()


@pytest.fixture
def mock_ctx():
    """FastMCP Context stand-in."""
    ctx = MagicMock()
    ctx.info = AsyncMock()
    ctx.error = AsyncMock()
    return ctx
