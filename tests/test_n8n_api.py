"""
n8n REST client tests. HTTP is simulated with httpx.MockTransport.
"""
import json

import httpx
import pytest

from services.n8n_api import N8nClient
from tests.conftest import BASE_MS, iso, make_workflow

API_URL = "https://n8n.example.com/api/v1"


def client_with(handler):
    return N8nClient(api_url=API_URL, api_key="n8n_api_test", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
class TestRequests:

    async def test_sends_api_key_header(self):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            seen["url"] = request.url
            return httpx.Response(200, json={"id": "W1", "name": "Orchestrator", "nodes": []})

        workflow = await client_with(handler).get_workflow("W1")

        assert workflow["name"] == "Orchestrator"
        assert seen["headers"]["X-N8N-API-KEY"] == "n8n_api_test"
        assert seen["url"].path == "/api/v1/workflows/W1"

    async def test_list_executions_sends_only_supplied_filters(self):
        seen = []

        def handler(request):
            seen.append(dict(request.url.params))
            return httpx.Response(200, json={"data": [], "nextCursor": None})

        client = client_with(handler)
        await client.list_executions(workflow_id="W2", limit=10, include_data=True)
        await client.list_executions()

        assert seen[0] == {"workflowId": "W2", "limit": "10", "includeData": "true"}
        assert seen[1] == {"limit": "20"}

    async def test_get_execution_requests_data(self):
        def handler(request):
            assert request.url.path == "/api/v1/executions/1042"
            assert request.url.params["includeData"] == "true"
            return httpx.Response(200, json={"id": "1042", "workflowId": "W1"})

        execution = await client_with(handler).get_execution("1042")
        assert execution["id"] == "1042"

    async def test_list_all_workflows_follows_cursor(self):
        pages = {
            None: {"data": [{"id": "W1", "name": "A"}], "nextCursor": "page-2"},
            "page-2": {"data": [{"id": "W2", "name": "B"}], "nextCursor": None},
        }
        seen = []

        def handler(request):
            params = dict(request.url.params)
            seen.append(params)
            return httpx.Response(200, json=pages[params.get("cursor")])

        workflows = await client_with(handler).list_all_workflows(active=True)

        assert [w["id"] for w in workflows] == ["W1", "W2"]
        assert all(p["active"] == "true" for p in seen)
        assert seen[1]["cursor"] == "page-2"

    async def test_http_error_propagates(self):
        def handler(request):
            return httpx.Response(500, content=json.dumps({"message": "boom"}))

        with pytest.raises(httpx.HTTPStatusError):
            await client_with(handler).list_executions(workflow_id="W2")


class TestConstruction:

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("N8N_API_KEY", raising=False)
        with pytest.raises(ValueError):
            N8nClient(api_url=API_URL)

    def test_env_api_url(self, monkeypatch):
        monkeypatch.setenv("N8N_API_URL", "https://env.example.com/api/v1/")
        client = N8nClient(api_key="n8n_api_test")
        assert client.base_url == "https://env.example.com/api/v1"


class TestHelpers:

    def test_extract_webhook_paths(self):
        workflow = make_workflow("W2", "Agent", webhook_paths=("agent", "/memory"))
        workflow["nodes"].append({"name": "No Path", "type": "n8n-nodes-base.webhook", "parameters": {}})

        assert N8nClient.extract_webhook_paths(workflow) == ["/agent", "/memory"]

    def test_extract_webhook_paths_without_nodes(self):
        assert N8nClient.extract_webhook_paths({"id": "W1", "name": "Summary"}) == []

    def test_has_sub_workflow_trigger(self):
        assert N8nClient.has_sub_workflow_trigger(make_workflow("W3", "Memory", sub_workflow=True))
        assert not N8nClient.has_sub_workflow_trigger(make_workflow("W2", "Agent", webhook_paths=("agent",)))
        assert not N8nClient.has_sub_workflow_trigger({"id": "W4"})

    def test_execution_duration(self):
        execution = {"startedAt": iso(BASE_MS), "stoppedAt": iso(BASE_MS + 2500)}
        assert N8nClient.get_execution_duration(execution) == pytest.approx(2.5)

    def test_execution_duration_while_running(self):
        assert N8nClient.get_execution_duration({"startedAt": iso(BASE_MS), "stoppedAt": None}) is None
