"""Tests for run submission and polling."""

import pytest

from comfy_relay.errors import ConverterUnavailable, NoCorrelationId, RunCancelled
from comfy_relay.schemas.run import RunHandle, RunState, StatusSource
from comfy_relay.services.runner import CancellationToken, run_prompt, wait_for_run


def test_no_wait_returns_after_submission(client, fake_comfy, api_prompt):
    """Test that wait=False makes a single request."""
    handle = run_prompt(client, api_prompt, wait=False)

    assert isinstance(handle, RunHandle)
    assert handle.run_id == "run-1"
    assert handle.status is RunState.PENDING
    assert handle.queued is True
    assert handle.queue_response == {"prompt_id": "run-1", "number": 1}
    assert [(r.method, r.url.path) for r in fake_comfy.requests] == [("POST", "/prompt")]


def test_wait_stops_at_terminal_state(client, fake_comfy, api_prompt, make_history):
    """Test that polling ends on the poll that first sees completion."""
    fake_comfy.history_responses = [{}, {"run-1": make_history("success")}]

    report = run_prompt(client, api_prompt, wait=True, poll_interval=0)

    assert report.status is RunState.COMPLETED
    assert report.source is StatusSource.HISTORY
    assert report.timed_out is False
    assert fake_comfy.calls("GET", "/history/run-1") == 2


def test_wait_returns_failed_runs(client, fake_comfy, api_prompt, make_history):
    fake_comfy.history_responses = [{"run-1": make_history("error")}]

    report = run_prompt(client, api_prompt, poll_interval=0)

    assert report.status is RunState.FAILED
    assert report.timed_out is False


def test_wait_timeout_returns_last_report(client, fake_comfy, api_prompt):
    """Test that a deadline yields the last report instead of an error."""
    fake_comfy.queue = {"queue_running": [[0, "run-1", {}]], "queue_pending": []}

    report = run_prompt(client, api_prompt, timeout=0.05, poll_interval=0.01)

    assert report.timed_out is True
    assert report.timeout == 0.05
    assert report.status is RunState.IN_PROGRESS
    assert report.source is StatusSource.QUEUE
    assert fake_comfy.calls("GET", "/history/run-1") >= 2


def test_inputs_applied_before_submission(client, fake_comfy, api_prompt):
    """Test that overrides reach the server and the caller's prompt is untouched."""
    run_prompt(client, api_prompt, inputs={"6.inputs.text": "hello"}, wait=False)

    submitted = fake_comfy.submitted[0]
    assert submitted["prompt"]["6"]["inputs"] == {"text": "hello", "seed": 5}
    assert api_prompt["6"]["inputs"]["text"] == "old"
    assert submitted["client_id"]


def test_graph_workflow_converted_then_overridden(client, fake_comfy):
    """Test conversion ordering for graph workflows."""
    fake_comfy.converted = {"1": {"class_type": "CLIPTextEncode", "inputs": {"text": "x"}}}

    run_prompt(client, {"nodes": [], "links": []}, inputs={"1": {"text": "y"}}, wait=False)

    assert fake_comfy.submitted[0]["prompt"] == {"1": {"class_type": "CLIPTextEncode", "inputs": {"text": "y"}}}


def test_graph_workflow_without_converter(client, fake_comfy):
    """Test that nothing is submitted when conversion is impossible."""
    with pytest.raises(ConverterUnavailable):
        run_prompt(client, {"nodes": [], "links": []}, wait=False)

    assert fake_comfy.submitted == []


def test_prompt_id_hint_used_when_not_echoed(client, fake_comfy, api_prompt):
    """Test run id fallback to the caller's hint."""
    fake_comfy.prompt_ack = {"number": 3}

    handle = run_prompt(client, api_prompt, prompt_id="mine", wait=False)

    assert handle.run_id == "mine"
    assert fake_comfy.submitted[0]["prompt_id"] == "mine"


def test_missing_run_id_is_an_error(client, fake_comfy, api_prompt):
    """Test that an untrackable submission fails."""
    fake_comfy.prompt_ack = {"number": 3}

    with pytest.raises(NoCorrelationId) as exc_info:
        run_prompt(client, api_prompt, wait=False)

    assert exc_info.value.code == "COMFY_NO_PROMPT_ID"


def test_cancelled_wait_raises(client, fake_comfy):
    """Test that a cancelled token interrupts the poll loop."""
    token = CancellationToken()
    token.cancel()

    with pytest.raises(RunCancelled):
        wait_for_run("run-1", client, timeout=60, poll_interval=30, cancel=token)

    assert fake_comfy.calls("GET", "/history/run-1") == 1


def test_cancellation_token_sleep_without_cancel():
    token = CancellationToken()
    token.sleep(0)
    assert token.cancelled is False
