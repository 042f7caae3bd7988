"""
Execution correlation package for the n8n Debug MCP.

Infers parent/child relationships between n8n executions across
workflow boundaries from webhook calls, timing and user context.
"""

from .correlator import ExecutionCorrelator
from .tree import build_correlation_tree, summarize_correlations
from .webhook_index import WebhookIndex, normalize_webhook_path

__all__ = [
    "ExecutionCorrelator",
    "WebhookIndex",
    "build_correlation_tree",
    "normalize_webhook_path",
    "summarize_correlations",
]
__version__ = "0.1.0"
