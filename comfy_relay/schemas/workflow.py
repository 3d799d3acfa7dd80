"""Workflow registry and run request Pydantic schemas."""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class WorkflowFormat(str, Enum):
    """Shape of a workflow definition."""

    API = "api"  # Execution format: {node_id: {class_type, inputs}}
    GRAPH = "graph"  # Editor format: {nodes: [...], links: [...]}


class WorkflowSummary(BaseModel):
    """Registry entry without its definition."""

    name: str
    format: WorkflowFormat
    description: str = ""
    defaults: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("format", mode="before")
    @classmethod
    def _legacy_format(cls, value: Any) -> Any:
        # Older registry files name the editor format "workflow"
        return WorkflowFormat.GRAPH if value == "workflow" else value

    @field_validator("description", mode="before")
    @classmethod
    def _null_description(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("defaults", mode="before")
    @classmethod
    def _null_defaults(cls, value: Any) -> Any:
        return {} if value is None else value


class WorkflowEntry(WorkflowSummary):
    """Registry entry as persisted in the workflows file."""

    workflow: Dict[str, Any]

    def summary(self) -> WorkflowSummary:
        return WorkflowSummary(**self.model_dump(exclude={"workflow"}))


class WorkflowUpsert(BaseModel):
    """Schema for creating or replacing a registry entry."""

    name: str = Field(..., min_length=1, max_length=120)
    workflow: Dict[str, Any]
    format: Optional[WorkflowFormat] = None
    description: Optional[str] = Field(default=None, max_length=2000)
    defaults: Optional[Dict[str, Any]] = None

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class RunRequest(BaseModel):
    """Schema for starting a workflow run."""

    workflow_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    workflow: Optional[Dict[str, Any]] = None
    format: Optional[WorkflowFormat] = None
    inputs: Dict[str, Any] = Field(default_factory=dict)
    wait: bool = True
    timeout: Optional[float] = Field(default=None, ge=1, le=600)  # Seconds, COMFY_RUN_TIMEOUT when unset
    prompt_id: Optional[str] = Field(default=None, min_length=1)
    extra_data: Optional[Dict[str, Any]] = None

    @field_validator("workflow_name", "prompt_id", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _require_workflow(self) -> "RunRequest":
        if self.workflow_name is None and self.workflow is None:
            raise ValueError("workflow_name or workflow is required")
        return self
