"""Pytest configuration and fixtures."""

import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from comfy_relay.config import Settings
from comfy_relay.services.comfy_client import ComfyClient
from comfy_relay.services.workflow_registry import WorkflowRegistry

BASE_URL = "http://comfy.test"


class FakeComfy:
    """In-process stand-in for a ComfyUI server, served through httpx.MockTransport."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.submitted: List[Dict[str, Any]] = []
        self.prompt_ack: Optional[Dict[str, Any]] = None  # None: echo or assign an id
        self.jobs_api = False
        self.jobs: Dict[str, Any] = {}
        self.history_responses: List[Any] = [{}]  # Last one repeats
        self.queue: Dict[str, Any] = {"queue_running": [], "queue_pending": []}
        self.converted: Optional[Dict[str, Any]] = None  # None: /workflow/convert is 404
        self.transport = httpx.MockTransport(self.handle)

    def calls(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method and r.url.path == path)

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path == "/prompt":
            body = json.loads(request.content)
            self.submitted.append(body)
            if self.prompt_ack is not None:
                return httpx.Response(200, json=self.prompt_ack)
            return httpx.Response(200, json={"prompt_id": body.get("prompt_id", "run-1"), "number": 1})

        if request.method == "POST" and path == "/workflow/convert":
            if self.converted is None:
                return httpx.Response(404, text="Not Found")
            return httpx.Response(200, json=self.converted)

        if path == "/api/jobs":
            if not self.jobs_api:
                return httpx.Response(404)
            return httpx.Response(200, json={"jobs": []})

        if path.startswith("/api/jobs/"):
            job = self.jobs.get(path.rsplit("/", 1)[1])
            return httpx.Response(200, json=job) if job else httpx.Response(404)

        if path.startswith("/history/"):
            response = self.history_responses[0]
            if len(self.history_responses) > 1:
                self.history_responses.pop(0)
            return httpx.Response(200, json=response)

        if path == "/queue":
            return httpx.Response(200, json=self.queue)

        return httpx.Response(404)


def history_entry(status_str: str = "success", outputs: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """A /history/{id} value for one prompt."""
    return {
        "prompt": [1, "run-1", {}, {"create_time": 1700000000000}, ["9"]],
        "outputs": outputs or {},
        "status": {"status_str": status_str, "completed": status_str == "success", "messages": []},
    }


@pytest.fixture
def comfy_settings(tmp_path):
    """Enabled settings pointing at the fake server, isolated from the environment."""
    return Settings(
        _env_file=None,
        COMFY_ENABLED=True,
        COMFY_BASE_URL=BASE_URL,
        COMFY_BEARER_TOKEN=None,
        COMFY_API_KEY=None,
        COMFY_POLL_INTERVAL=0,
        COMFY_WORKFLOWS_FILE=str(tmp_path / "config" / "COMFY_WORKFLOWS.json"),
    )


@pytest.fixture
def fake_comfy():
    return FakeComfy()


@pytest.fixture
def client(comfy_settings, fake_comfy):
    return ComfyClient(config=comfy_settings, transport=fake_comfy.transport)


@pytest.fixture
def registry(comfy_settings):
    return WorkflowRegistry(comfy_settings.COMFY_WORKFLOWS_FILE)


@pytest.fixture
def api_prompt():
    """Minimal execution-format prompt."""
    return {
        "3": {"class_type": "KSampler", "inputs": {"seed": 5, "steps": 20}},
        "6": {"class_type": "CLIPTextEncode", "inputs": {"text": "old", "seed": 5}},
    }


@pytest.fixture
def make_history():
    return history_entry
