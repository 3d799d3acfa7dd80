"""ComfyUI HTTP client with auth, timeouts and a typed error taxonomy."""

import json
import logging
import time
from enum import Enum
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from comfy_relay.config import Settings, settings as default_settings
from comfy_relay.errors import (
    ConfigurationError,
    ConverterUnavailable,
    HttpError,
    NetworkError,
    RequestTimeout,
    UnauthorizedError,
    integration_disabled,
)

logger = logging.getLogger(__name__)

_clock = time.monotonic


class ProbeState(str, Enum):
    """Outcome of the one-time /api/jobs capability probe."""

    UNPROBED = "unprobed"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class ComfyClient:
    """Single authenticated channel to a ComfyUI server."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        config: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Server root, overrides COMFY_BASE_URL
            timeout: Default per-request timeout in seconds
            config: Settings to read credentials from
            transport: Optional httpx transport (tests use httpx.MockTransport)

        Raises:
            ConfigurationError: If no base URL is configured
        """
        config = config or default_settings
        configured = base_url or config.COMFY_BASE_URL
        if not configured:
            raise ConfigurationError(
                "COMFY_BASE_URL is required when ComfyUI integration is enabled",
                code="COMFY_BASE_URL_REQUIRED",
            )

        self.base_url = configured[:-1] if configured.endswith("/") else configured
        self.timeout = timeout or config.COMFY_TIMEOUT
        self.bearer_token = config.COMFY_BEARER_TOKEN
        self.api_key = config.COMFY_API_KEY
        self.transport = transport
        self.jobs_api_state = ProbeState.UNPROBED

    def _build_headers(self, has_body: bool) -> Dict[str, str]:
        """Build HTTP headers, bearer token first, then API key."""
        headers = {"Accept": "application/json"}
        if self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"
        elif self.api_key:
            headers["X-API-KEY"] = self.api_key
        if has_body:
            headers["Content-Type"] = "application/json"
        return headers

    def _send(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """
        Send one request and read its body within a total deadline.

        httpx timeouts apply per phase, so the body is streamed and the
        overall deadline is checked between chunks.
        """
        timeout = timeout or self.timeout
        content = None if body is None else json.dumps(body)
        deadline = _clock() + timeout

        try:
            with httpx.Client(timeout=timeout, transport=self.transport) as client:
                with client.stream(
                    method,
                    f"{self.base_url}{path}",
                    headers=self._build_headers(content is not None),
                    content=content,
                ) as response:
                    chunks = []
                    for chunk in response.iter_raw():
                        if _clock() > deadline:
                            raise RequestTimeout(f"ComfyUI request timed out after {timeout}s")
                        chunks.append(chunk)

            return httpx.Response(
                response.status_code,
                headers=response.headers,
                content=b"".join(chunks),
                request=response.request,
            )
        except httpx.TimeoutException as exc:
            raise RequestTimeout(f"ComfyUI request timed out after {timeout}s") from exc
        except httpx.HTTPError as exc:
            raise NetworkError(str(exc) or "ComfyUI request failed") from exc

    @staticmethod
    def _parse(response: httpx.Response) -> Any:
        """Decode a response body: empty → None, non-JSON → {"raw": text}."""
        text = response.text
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError:
            return {"raw": text}

    def _raise_for_status(self, response: httpx.Response, parsed: Any) -> None:
        if response.is_success:
            return
        message = f"ComfyUI request failed: {response.status_code}"
        if response.status_code == 401:
            raise UnauthorizedError(message, status=401, details=parsed)
        raise HttpError(message, status=response.status_code, details=parsed)

    def request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        timeout: Optional[float] = None,
        allow_404: bool = False,
    ) -> Any:
        """
        Call the ComfyUI server and return the decoded JSON body.

        Args:
            path: Absolute path on the server, e.g. "/prompt"
            method: HTTP method
            body: JSON-serializable request body
            timeout: Deadline in seconds, defaults to the client timeout
            allow_404: Return None instead of raising on 404

        Returns:
            Parsed JSON, {"raw": text} for non-JSON bodies, or None

        Raises:
            UnauthorizedError, HttpError, RequestTimeout, NetworkError
        """
        response = self._send(path, method=method, body=body, timeout=timeout)

        if allow_404 and response.status_code == 404:
            return None

        parsed = self._parse(response)
        self._raise_for_status(response, parsed)
        return parsed

    def queue_prompt(
        self,
        prompt: Dict[str, Any],
        prompt_id: Optional[str] = None,
        client_id: Optional[str] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Submit an execution-format prompt. Returns the raw acknowledgement."""
        payload: Dict[str, Any] = {"prompt": prompt}
        if prompt_id:
            payload["prompt_id"] = prompt_id
        if client_id:
            payload["client_id"] = client_id
        if extra_data:
            payload["extra_data"] = extra_data

        return self.request("/prompt", method="POST", body=payload)

    def convert_workflow(self, workflow: Dict[str, Any]) -> Any:
        """Convert a graph-format workflow into an execution-format prompt."""
        try:
            return self.request("/workflow/convert", method="POST", body=workflow)
        except HttpError as exc:
            if exc.status == 404:
                raise ConverterUnavailable(
                    "Workflow conversion endpoint is unavailable. "
                    "Install a converter endpoint or use File -> Export (API).",
                    status=404,
                ) from exc
            raise

    def probe_jobs_api(self) -> bool:
        """Check once whether the server exposes /api/jobs."""
        if self.jobs_api_state is ProbeState.UNPROBED:
            response = self._send("/api/jobs")
            if response.status_code == 404:
                self.jobs_api_state = ProbeState.UNAVAILABLE
            else:
                self._raise_for_status(response, self._parse(response))
                self.jobs_api_state = ProbeState.AVAILABLE
            logger.info(f"ComfyUI jobs API probe: {self.jobs_api_state.value}")

        return self.jobs_api_state is ProbeState.AVAILABLE

    def get_job(self, run_id: str) -> Any:
        """Structured job status, or None if unsupported or unknown."""
        if not self.probe_jobs_api():
            return None
        return self.request(f"/api/jobs/{quote(run_id, safe='')}", allow_404=True)

    def get_history(self, run_id: str) -> Any:
        return self.request(f"/history/{quote(run_id, safe='')}", allow_404=True)

    def get_queue(self) -> Any:
        return self.request("/queue", allow_404=True)

    def build_view_url(self, item: Dict[str, Any]) -> str:
        """Retrieval URL for an output file; only present fields are added."""
        params = {
            key: item[key]
            for key in ("filename", "subfolder", "type")
            if item.get(key)
        }
        return str(httpx.URL(f"{self.base_url}/view", params=params))


def create_comfy_client(
    config: Optional[Settings] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> ComfyClient:
    """Build a client, refusing while the integration is disabled."""
    config = config or default_settings
    if not config.COMFY_ENABLED:
        raise integration_disabled()
    return ComfyClient(config=config, transport=transport)


