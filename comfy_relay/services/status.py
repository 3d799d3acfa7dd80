"""Run status reconciliation across the jobs API, history and queue."""

import logging
from typing import Any, Dict, List, Optional

from comfy_relay.schemas.run import Artifact, RunState, StatusReport, StatusSource

logger = logging.getLogger(__name__)

# Provider vocabulary folded into the four normalized states
STATE_ALIASES = {
    "completed": RunState.COMPLETED,
    "success": RunState.COMPLETED,
    "failed": RunState.FAILED,
    "error": RunState.FAILED,
    "cancelled": RunState.FAILED,
    "in_progress": RunState.IN_PROGRESS,
    "running": RunState.IN_PROGRESS,
}

# Output buckets that are flags rather than file lists
SKIPPED_BUCKETS = {"animated"}


def normalize_state(status: Optional[str]) -> RunState:
    """Map a provider status string to a RunState; unknown values are pending."""
    if not isinstance(status, str):
        return RunState.PENDING
    return STATE_ALIASES.get(status.strip().lower(), RunState.PENDING)


def _normalize_output_item(item: Any, media_type: str) -> Optional[Dict[str, Any]]:
    if not isinstance(item, dict) or not item.get("filename"):
        return None

    return {
        "filename": item["filename"],
        "subfolder": item.get("subfolder") or "",
        "type": item.get("type") or "output",
        "media_type": item.get("mediaType") or media_type,
        "format": item.get("format") or None,
    }


def collect_artifacts(outputs: Any, client) -> List[Artifact]:
    """
    Flatten per-node outputs into artifacts.

    Args:
        outputs: {node_id: {bucket: [item, ...]}} as returned by the server
        client: ComfyClient used to build view URLs

    Returns:
        Artifacts in node and bucket order; items without a filename are dropped
    """
    artifacts: List[Artifact] = []
    if not isinstance(outputs, dict):
        return artifacts

    for node_id, node_outputs in outputs.items():
        if not isinstance(node_outputs, dict):
            continue

        for media_type, media_items in node_outputs.items():
            if media_type in SKIPPED_BUCKETS or not isinstance(media_items, list):
                continue

            for item in media_items:
                normalized = _normalize_output_item(item, media_type)
                if not normalized:
                    continue
                artifacts.append(
                    Artifact(
                        **normalized,
                        node_id=str(node_id),
                        view_url=client.build_view_url(normalized),
                    )
                )

    return artifacts


def from_jobs_api(job: Dict[str, Any], run_id: str, client) -> StatusReport:
    """Status report from a /api/jobs/{id} payload."""
    artifacts = collect_artifacts(job.get("outputs"), client)
    outputs_count = job.get("outputs_count")
    return StatusReport(
        run_id=run_id,
        status=normalize_state(job.get("status")),
        source=StatusSource.JOBS_API,
        created_at=job.get("create_time"),
        started_at=job.get("execution_start_time"),
        finished_at=job.get("execution_end_time"),
        error=job.get("execution_error"),
        outputs_count=outputs_count if outputs_count is not None else len(artifacts),
        artifacts=artifacts,
    )


def from_history(history_item: Dict[str, Any], run_id: str, client) -> StatusReport:
    """Status report from a /history/{id} entry."""
    status = history_item.get("status")
    status_str = status.get("status_str") if isinstance(status, dict) else None
    artifacts = collect_artifacts(history_item.get("outputs"), client)

    # prompt is [number, prompt_id, prompt, extra_data, outputs_to_execute]
    created_at = None
    prompt = history_item.get("prompt")
    if isinstance(prompt, list) and len(prompt) > 3 and isinstance(prompt[3], dict):
        created_at = prompt[3].get("create_time")

    return StatusReport(
        run_id=run_id,
        status=normalize_state(status_str),
        source=StatusSource.HISTORY,
        created_at=created_at,
        error=status if status_str == "error" else None,
        outputs_count=len(artifacts),
        artifacts=artifacts,
    )


def _queue_contains(entries: Any, run_id: str) -> bool:
    if not isinstance(entries, list):
        return False
    return any(
        isinstance(entry, (list, tuple)) and len(entry) > 1 and entry[1] == run_id
        for entry in entries
    )


def from_queue(queue: Dict[str, Any], run_id: str) -> Optional[StatusReport]:
    """Status report from a /queue snapshot, or None when the run is absent."""
    if _queue_contains(queue.get("queue_running"), run_id):
        return StatusReport(run_id=run_id, status=RunState.IN_PROGRESS, source=StatusSource.QUEUE)
    if _queue_contains(queue.get("queue_pending"), run_id):
        return StatusReport(run_id=run_id, status=RunState.PENDING, source=StatusSource.QUEUE)
    return None


def resolve_prompt_status(run_id: str, client) -> StatusReport:
    """
    Reconcile the status of a run, richest source first.

    Order: jobs API (when the server has it), history, queue. A run found
    nowhere is reported as pending from an unknown source, which callers
    must treat as inconclusive.
    """
    job = client.get_job(run_id)
    if job:
        return from_jobs_api(job, run_id, client)

    history = client.get_history(run_id)
    if isinstance(history, dict) and isinstance(history.get(run_id), dict):
        return from_history(history[run_id], run_id, client)

    queue = client.get_queue()
    if isinstance(queue, dict):
        report = from_queue(queue, run_id)
        if report:
            return report

    logger.debug(f"Run {run_id} not found in any status source")
    return StatusReport(run_id=run_id, status=RunState.PENDING, source=StatusSource.UNKNOWN)
