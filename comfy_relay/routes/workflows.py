"""Workflow registry routes."""

from typing import List, Union

from fastapi import APIRouter, Depends, Query

from comfy_relay.routes.deps import get_comfy_service
from comfy_relay.schemas.workflow import WorkflowEntry, WorkflowSummary, WorkflowUpsert
from comfy_relay.services.comfy import ComfyService

router = APIRouter(prefix="/comfy", tags=["comfy"])


@router.get("/capabilities")
def get_capabilities(service: ComfyService = Depends(get_comfy_service)):
    """Report whether the integration is on and how it authenticates."""
    return service.capabilities()


@router.get("/health")
def verify_connection(service: ComfyService = Depends(get_comfy_service)):
    """Check that the ComfyUI server is reachable with the configured credentials."""
    return {"ok": True, "response": service.verify_connection()}


@router.get("/workflows", response_model=List[Union[WorkflowEntry, WorkflowSummary]])
def list_workflows(
    include_workflow: bool = False,
    service: ComfyService = Depends(get_comfy_service),
):
    """List registered workflows, without definitions unless asked."""
    return service.list_workflows(include_workflow=include_workflow)


@router.get("/workflows/{name}", response_model=WorkflowEntry)
def get_workflow(name: str, service: ComfyService = Depends(get_comfy_service)):
    """Get one registered workflow."""
    return service.get_workflow(name)


@router.post("/workflows", response_model=WorkflowEntry)
def upsert_workflow(
    data: WorkflowUpsert,
    service: ComfyService = Depends(get_comfy_service),
):
    """Create or replace a workflow by name."""
    return service.upsert_workflow(data)


@router.delete("/workflows")
def delete_workflow(
    name: str = Query(..., min_length=1, max_length=120),
    service: ComfyService = Depends(get_comfy_service),
):
    """Delete a workflow by name."""
    return service.delete_workflow(name.strip())
