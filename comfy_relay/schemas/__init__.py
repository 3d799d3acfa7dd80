"""Pydantic schemas."""

from comfy_relay.schemas.run import (
    TERMINAL_STATES,
    Artifact,
    RunHandle,
    RunState,
    StatusReport,
    StatusSource,
)
from comfy_relay.schemas.workflow import (
    RunRequest,
    WorkflowEntry,
    WorkflowFormat,
    WorkflowSummary,
    WorkflowUpsert,
)

__all__ = [
    "TERMINAL_STATES",
    "Artifact",
    "RunHandle",
    "RunState",
    "StatusReport",
    "StatusSource",
    "RunRequest",
    "WorkflowEntry",
    "WorkflowFormat",
    "WorkflowSummary",
    "WorkflowUpsert",
]
