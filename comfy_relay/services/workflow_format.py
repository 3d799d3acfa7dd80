"""Workflow format detection and conversion to execution format."""

import logging
from typing import Any, Dict, Optional

from comfy_relay.schemas.workflow import WorkflowFormat

logger = logging.getLogger(__name__)


def detect_workflow_format(workflow: Any) -> WorkflowFormat:
    """
    Classify a workflow definition by shape.

    Args:
        workflow: Decoded JSON value

    Returns:
        GRAPH when both ``nodes`` and ``links`` are lists, API otherwise
    """
    if not isinstance(workflow, dict):
        return WorkflowFormat.API

    if isinstance(workflow.get("nodes"), list) and isinstance(workflow.get("links"), list):
        return WorkflowFormat.GRAPH

    return WorkflowFormat.API


def resolve_api_prompt(
    workflow: Dict[str, Any],
    workflow_format: Optional[WorkflowFormat],
    client,
) -> Dict[str, Any]:
    """
    Return an execution-format prompt for a workflow.

    Graph workflows go through the server's converter; there is no local
    fallback, so ConverterUnavailable propagates to the caller.
    """
    final_format = workflow_format or detect_workflow_format(workflow)
    if final_format is WorkflowFormat.GRAPH:
        logger.info("Converting graph workflow via /workflow/convert")
        return client.convert_workflow(workflow)
    return workflow
