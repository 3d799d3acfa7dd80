"""Run submission and bounded polling until a terminal state."""

import logging
import threading
import uuid
from typing import Any, Dict, Optional, Union

from tenacity import RetryCallState, Retrying, retry_if_result, stop_after_delay, wait_fixed

from comfy_relay.errors import NoCorrelationId, RunCancelled
from comfy_relay.schemas.run import RunHandle, StatusReport
from comfy_relay.schemas.workflow import WorkflowFormat
from comfy_relay.services.inputs import apply_inputs
from comfy_relay.services.status import resolve_prompt_status
from comfy_relay.services.workflow_format import resolve_api_prompt

logger = logging.getLogger(__name__)

DEFAULT_RUN_TIMEOUT = 120.0
DEFAULT_POLL_INTERVAL = 1.5


class CancellationToken:
    """Interruptible wait shared between a poll loop and its caller."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def sleep(self, seconds: float) -> None:
        """Wait up to ``seconds``; raise RunCancelled if cancelled meanwhile."""
        if self._event.wait(seconds):
            raise RunCancelled("Run polling was cancelled")


def wait_for_run(
    run_id: str,
    client,
    timeout: float = DEFAULT_RUN_TIMEOUT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    cancel: Optional[CancellationToken] = None,
) -> StatusReport:
    """
    Poll a run at a fixed interval until it completes, fails or times out.

    Args:
        run_id: Prompt id returned on submission
        client: ComfyClient
        timeout: Overall wait bound in seconds
        poll_interval: Delay between polls in seconds
        cancel: Optional token to interrupt the wait

    Returns:
        The terminal report with timed_out=False, or the last report seen
        with timed_out=True once the deadline passes

    Raises:
        RunCancelled: If the token is cancelled while waiting
    """
    cancel = cancel or CancellationToken()

    def _on_timeout(retry_state: RetryCallState) -> StatusReport:
        latest = retry_state.outcome.result()
        logger.warning(
            f"Run {run_id} still {latest.status.value} after {timeout}s "
            f"({retry_state.attempt_number} polls)"
        )
        return latest.model_copy(update={"timed_out": True, "timeout": timeout})

    retrying = Retrying(
        stop=stop_after_delay(timeout),
        wait=wait_fixed(poll_interval),
        retry=retry_if_result(lambda report: not report.is_terminal),
        sleep=cancel.sleep,
        retry_error_callback=_on_timeout,
    )
    report = retrying(resolve_prompt_status, run_id, client)

    if report.timed_out is None:
        logger.info(f"Run {run_id} finished: {report.status.value} (source: {report.source.value})")
        report = report.model_copy(update={"timed_out": False})
    return report


def run_prompt(
    client,
    workflow: Dict[str, Any],
    workflow_format: Optional[WorkflowFormat] = None,
    inputs: Optional[Dict[str, Any]] = None,
    wait: bool = True,
    timeout: float = DEFAULT_RUN_TIMEOUT,
    prompt_id: Optional[str] = None,
    extra_data: Optional[Dict[str, Any]] = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    cancel: Optional[CancellationToken] = None,
) -> Union[RunHandle, StatusReport]:
    """
    Submit a workflow and optionally wait for it.

    Returns:
        RunHandle when ``wait`` is false, otherwise a StatusReport

    Raises:
        NoCorrelationId: If neither the server nor the caller supplied an id
    """
    api_prompt = resolve_api_prompt(workflow, workflow_format, client)
    prompt = apply_inputs(api_prompt, inputs)

    queue_response = client.queue_prompt(
        prompt,
        prompt_id=prompt_id,
        client_id=str(uuid.uuid4()),
        extra_data=extra_data,
    )

    run_id = None
    if isinstance(queue_response, dict):
        run_id = queue_response.get("prompt_id")
    run_id = run_id or prompt_id
    if not run_id:
        raise NoCorrelationId(
            "ComfyUI did not return prompt_id for queued run",
            details=queue_response,
        )

    logger.info(f"Queued run {run_id} (wait={wait})")

    if not wait:
        return RunHandle(
            run_id=run_id,
            queue_response=queue_response if isinstance(queue_response, dict) else None,
        )

    return wait_for_run(run_id, client, timeout=timeout, poll_interval=poll_interval, cancel=cancel)
