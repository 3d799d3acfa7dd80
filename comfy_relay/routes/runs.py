"""Run routes."""

from typing import Union

from fastapi import APIRouter, Depends

from comfy_relay.routes.deps import get_comfy_service
from comfy_relay.schemas.run import RunHandle, StatusReport
from comfy_relay.schemas.workflow import RunRequest
from comfy_relay.services.comfy import ComfyService

router = APIRouter(prefix="/comfy/runs", tags=["comfy"])


@router.post("", response_model=Union[StatusReport, RunHandle])
def run_workflow(
    data: RunRequest,
    service: ComfyService = Depends(get_comfy_service),
):
    """
    Run a workflow.

    With ``wait`` (the default) the request blocks until the run completes,
    fails or the timeout passes; otherwise it returns right after queueing.
    """
    return service.run_workflow(data)


@router.get("/{run_id}", response_model=StatusReport)
def get_run_status(
    run_id: str,
    service: ComfyService = Depends(get_comfy_service),
):
    """Get the reconciled status and artifacts of a run."""
    return service.get_run_status(run_id)
