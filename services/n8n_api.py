# services/n8n_api.py
import logging
import httpx
from typing import Dict, Any, List, Optional
from dotenv import load_dotenv
from utils.config import load_config, load_n8n_settings
from services.correlations.utils import execution_duration_seconds

# -----------------------------------------------
# Bootstrap
# -----------------------------------------------
load_dotenv()   # Load environment variables from .env file such as API keys and secrets
config = load_config()

WEBHOOK_NODE_TYPE = "n8n-nodes-base.webhook"
SUB_WORKFLOW_TRIGGER_NODE_TYPE = "n8n-nodes-base.executeWorkflowTrigger"

logger = logging.getLogger(__name__)


class N8nClient:
    """Read-only client for the n8n public REST API (v1)."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = load_n8n_settings(config)
        self.base_url = (api_url or settings["api_url"]).rstrip("/")
        self.api_key = api_key or settings["api_key"]
        if not self.api_key:
            raise ValueError("N8N_API_KEY is required. Set it in the environment (or .env) or pass api_key.")

        self.timeout = timeout if timeout is not None else settings["timeout_seconds"]
        self.page_limit = settings["workflow_page_limit"]
        self.headers = {
            "X-N8N-API-KEY": self.api_key,
            "Content-Type": "application/json",
        }
        self._transport = transport

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        async with httpx.AsyncClient(transport=self._transport) as client:
            response = await client.get(
                f"{self.base_url}{path}",
                headers=self.headers,
                params=params,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()

    # ============ Workflow Operations ============

    async def list_workflows(
        self,
        active: Optional[bool] = None,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Fetch one page of workflow summaries: {"data": [...], "nextCursor": ...}."""
        params: Dict[str, Any] = {"limit": limit or self.page_limit}
        if active is not None:
            params["active"] = "true" if active else "false"
        if cursor:
            params["cursor"] = cursor
        return await self._get("/workflows", params)

    async def list_all_workflows(self, active: Optional[bool] = None) -> List[Dict[str, Any]]:
        """Fetch every workflow summary, following nextCursor across pages."""
        workflows: List[Dict[str, Any]] = []
        cursor = None
        while True:
            page = await self.list_workflows(active=active, cursor=cursor)
            workflows.extend(page.get("data", []))
            cursor = page.get("nextCursor")
            if not cursor:
                break
        logger.debug("Listed %d workflows (active=%s)", len(workflows), active)
        return workflows

    async def get_workflow(self, workflow_id: str) -> Dict[str, Any]:
        """Get the full workflow definition, nodes included."""
        return await self._get(f"/workflows/{workflow_id}")

    # ============ Execution Operations ============

    async def list_executions(
        self,
        workflow_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 20,
        cursor: Optional[str] = None,
        include_data: bool = False,
    ) -> Dict[str, Any]:
        """Fetch one page of executions, most recent first. Only supplied filters are sent."""
        params: Dict[str, Any] = {"limit": limit or 20}
        if workflow_id:
            params["workflowId"] = workflow_id
        if status:
            params["status"] = status
        if cursor:
            params["cursor"] = cursor
        if include_data:
            params["includeData"] = "true"
        return await self._get("/executions", params)

    async def get_execution(self, execution_id: str, include_data: bool = True) -> Dict[str, Any]:
        return await self._get(
            f"/executions/{execution_id}",
            {"includeData": "true" if include_data else "false"},
        )

    # ============ Helper Methods ============

    @staticmethod
    def extract_webhook_paths(workflow: Dict[str, Any]) -> List[str]:
        """Extract webhook paths from a workflow's nodes, each with a leading slash."""
        paths: List[str] = []
        for node in workflow.get("nodes") or []:
            if node.get("type") != WEBHOOK_NODE_TYPE:
                continue
            path = (node.get("parameters") or {}).get("path")
            if path:
                path = str(path)
                paths.append(path if path.startswith("/") else f"/{path}")
        return paths

    @staticmethod
    def has_sub_workflow_trigger(workflow: Dict[str, Any]) -> bool:
        """Check if workflow has executeWorkflowTrigger (can be called as sub-workflow)."""
        return any(
            node.get("type") == SUB_WORKFLOW_TRIGGER_NODE_TYPE
            for node in workflow.get("nodes") or []
        )

    @staticmethod
    def get_execution_duration(execution: Dict[str, Any]) -> Optional[float]:
        """Execution duration in seconds, or None while running / when timestamps are missing."""
        return execution_duration_seconds(execution)
