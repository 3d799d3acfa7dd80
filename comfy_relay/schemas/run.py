"""Run-related Pydantic schemas."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class RunState(str, Enum):
    """Normalized run status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class StatusSource(str, Enum):
    """Where a status report came from."""

    JOBS_API = "jobs_api"
    HISTORY = "history"
    QUEUE = "queue"
    UNKNOWN = "unknown"


TERMINAL_STATES = {RunState.COMPLETED, RunState.FAILED}


class Artifact(BaseModel):
    """A single output file produced by one node."""

    filename: str
    subfolder: str = ""
    type: str = "output"  # Output bucket: output, temp, input
    media_type: str
    format: Optional[str] = None
    node_id: str
    view_url: str


class RunHandle(BaseModel):
    """Response after queueing a run without waiting."""

    run_id: str
    status: RunState = RunState.PENDING
    queued: bool = True
    queue_response: Optional[Dict[str, Any]] = None


class StatusReport(BaseModel):
    """Reconciled run status."""

    run_id: str
    status: RunState
    source: StatusSource
    created_at: Optional[Any] = None
    started_at: Optional[Any] = None
    finished_at: Optional[Any] = None
    error: Optional[Any] = None
    outputs_count: int = 0
    artifacts: List[Artifact] = Field(default_factory=list)
    timed_out: Optional[bool] = None  # Only set by a waiting run
    timeout: Optional[float] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES
