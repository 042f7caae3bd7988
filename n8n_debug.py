# n8n Debug MCP Server
# Exposes execution correlation for n8n workflows to AI agents.
from fastmcp import FastMCP, Context
from typing import Optional, Dict, Any
from utils.config import load_config
from utils.logger import setup_logging

from services.correlation_service import correlate_from_execution

config = load_config()
setup_logging(config.get("logging", {}).get("level", "INFO"))

mcp = FastMCP(
    name="n8n-debug",
)

# ----------------------------------------------------------
# Execution Correlation
# ----------------------------------------------------------

@mcp.tool()
async def get_correlated_executions(
    execution_id: str,
    ctx: Context,
    time_window_ms: Optional[int] = None,
    max_depth: Optional[int] = None,
    refresh_index: bool = False,
) -> Dict[str, Any]:
    """
    Finds all related executions across workflows for a single request.

    Traces the chain from a starting execution (typically the main orchestrator)
    through webhook-called and sub-workflow executions, scoring each link.

    Args:
        execution_id (str): Starting execution ID.
        ctx (Context, optional): FastMCP context for logging and errors.
        time_window_ms (int, optional): How long after a parent starts a child may begin. Defaults to config (30000).
        max_depth (int, optional): Maximum length of a correlation chain. Defaults to config (5).
        refresh_index (bool): Rebuild the webhook-to-workflow index first (picks up new or changed webhooks).

    Returns:
        dict: Dictionary containing:
            - 'status': "OK" or "ERROR"
            - 'correlations': Flat list in discovery order (execution_id, parent_id, confidence, method, ...)
            - 'tree': Nested causal tree rooted at the starting execution
            - 'summary': total, methods, average_confidence, max_depth_reached
            - 'workflow_names': Workflow id to name lookup
    """
    return await correlate_from_execution(execution_id, ctx, time_window_ms, max_depth, refresh_index)


if __name__ == "__main__":
    try:
        mcp.run("stdio")
    except KeyboardInterrupt:
        print("Shutting down n8n Debug MCP…")
