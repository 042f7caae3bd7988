"""
Webhook index: maps declared webhook paths to the workflows that own them.

Built once per correlator from every active workflow definition and
never refreshed automatically.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

from .constants import WEBHOOK_URL_PREFIX

logger = logging.getLogger(__name__)


def normalize_webhook_path(path: str) -> str:
    """Ensure a webhook path starts with a leading slash. Idempotent."""
    path = str(path)
    return path if path.startswith("/") else f"/{path}"


def _path_from_url(url_or_path: str) -> str:
    """Take the path component of a full URL; anything else is treated as a path already."""
    try:
        parsed = urlparse(url_or_path)
    except ValueError:
        return url_or_path
    if parsed.scheme and parsed.netloc:
        return parsed.path
    return url_or_path


def _lookup_key(url_or_path: str) -> str:
    path = _path_from_url(str(url_or_path))
    if path.startswith(WEBHOOK_URL_PREFIX):
        path = path[len(WEBHOOK_URL_PREFIX):]
    if path.startswith("/"):
        path = path[1:]
    return path


class WebhookIndex:
    """Ordered list of {path, workflow_id, workflow_name} mappings with loose path lookup."""

    def __init__(self, mappings: Optional[List[Dict[str, str]]] = None):
        self.mappings: List[Dict[str, str]] = list(mappings or [])

    def __len__(self) -> int:
        return len(self.mappings)

    def add(self, path: str, workflow_id: str, workflow_name: str) -> None:
        self.mappings.append({
            "path": normalize_webhook_path(path),
            "workflow_id": str(workflow_id),
            "workflow_name": workflow_name,
        })

    @classmethod
    async def build(cls, client) -> Tuple["WebhookIndex", Dict[str, Dict[str, Any]]]:
        """
        Build the index from all active workflows.

        The workflow listing omits nodes, so every workflow's full
        definition is fetched. Data-source errors propagate.

        Returns:
            (index, workflows) where workflows maps workflow id to its full
            definition, in listing order.
        """
        index = cls()
        workflows: Dict[str, Dict[str, Any]] = {}

        for summary in await client.list_all_workflows(active=True):
            workflow_id = str(summary["id"])
            full_workflow = await client.get_workflow(workflow_id)
            workflows[workflow_id] = full_workflow

            for path in client.extract_webhook_paths(full_workflow):
                index.add(path, workflow_id, summary.get("name") or full_workflow.get("name"))

        logger.info("Webhook index built: %d workflows, %d webhook paths", len(workflows), len(index))
        return index, workflows

    def find_workflow_by_webhook(self, url_or_path: str) -> Optional[Dict[str, str]]:
        """
        Resolve a webhook URL or bare path to the owning workflow mapping.

        A leading "/webhook" segment and leading slash are stripped from the
        input; the first mapping whose path contains the input, or is
        contained by it, wins. Returns None when nothing matches.
        """
        path = _lookup_key(url_or_path)

        for mapping in self.mappings:
            mapping_path = mapping["path"][1:] if mapping["path"].startswith("/") else mapping["path"]
            if mapping_path in path or path in mapping_path:
                return mapping
        return None
