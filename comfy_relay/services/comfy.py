"""Entry points used by the HTTP routes and the agent tool layer."""

import logging
from typing import Any, Callable, Dict, List, Optional, Union

from comfy_relay.config import Settings, settings as default_settings
from comfy_relay.errors import WorkflowNotFound, integration_disabled
from comfy_relay.schemas.run import RunHandle, StatusReport
from comfy_relay.schemas.workflow import (
    RunRequest,
    WorkflowEntry,
    WorkflowSummary,
    WorkflowUpsert,
)
from comfy_relay.services.comfy_client import ComfyClient, create_comfy_client
from comfy_relay.services.runner import CancellationToken, run_prompt
from comfy_relay.services.status import resolve_prompt_status
from comfy_relay.services.workflow_registry import WorkflowRegistry

logger = logging.getLogger(__name__)


class ComfyService:
    """Workflow registry and run operations behind the COMFY_ENABLED switch."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        registry: Optional[WorkflowRegistry] = None,
        client_factory: Optional[Callable[[], ComfyClient]] = None,
    ):
        """
        Initialize the service.

        Args:
            config: Settings, defaults to the global instance
            registry: Workflow registry, defaults to COMFY_WORKFLOWS_FILE
            client_factory: Builds a ComfyClient per call
        """
        self.config = config or default_settings
        self.registry = registry or WorkflowRegistry(self.config.COMFY_WORKFLOWS_FILE)
        self.client_factory = client_factory or (lambda: create_comfy_client(self.config))

    def _assert_enabled(self) -> None:
        if not self.config.COMFY_ENABLED:
            raise integration_disabled()

    def capabilities(self) -> Dict[str, Any]:
        return {
            "enabled": self.config.COMFY_ENABLED,
            "base_url": self.config.COMFY_BASE_URL,
            "auth_mode": self.config.auth_mode,
        }

    def list_workflows(self, include_workflow: bool = False) -> List[Union[WorkflowEntry, WorkflowSummary]]:
        self._assert_enabled()
        return self.registry.list(include_workflow=include_workflow)

    def get_workflow(self, name: str) -> WorkflowEntry:
        self._assert_enabled()
        entry = self.registry.get(name)
        if entry is None:
            raise WorkflowNotFound(f'Workflow "{name}" not found', status=404)
        return entry

    def upsert_workflow(self, payload: Union[WorkflowUpsert, Dict[str, Any]]) -> WorkflowEntry:
        self._assert_enabled()
        return self.registry.upsert(payload)

    def delete_workflow(self, name: str) -> Dict[str, Any]:
        self._assert_enabled()
        return self.registry.delete(name)

    def _resolve_request(self, request: RunRequest) -> Dict[str, Any]:
        """Look up a named workflow and layer its defaults under the inputs."""
        if request.workflow_name:
            entry = self.registry.get(request.workflow_name)
            if entry is None:
                raise WorkflowNotFound(f'Workflow "{request.workflow_name}" not found', status=404)
            return {
                "workflow": entry.workflow,
                "workflow_format": request.format or entry.format,
                "inputs": {**entry.defaults, **request.inputs},
            }

        return {
            "workflow": request.workflow,
            "workflow_format": request.format,
            "inputs": dict(request.inputs),
        }

    def run_workflow(
        self,
        request: Union[RunRequest, Dict[str, Any]],
        cancel: Optional[CancellationToken] = None,
    ) -> Union[RunHandle, StatusReport]:
        """
        Run a registered or inline workflow.

        Raises:
            ConfigurationError: If the integration is disabled
            WorkflowNotFound: If workflow_name is not registered
        """
        self._assert_enabled()
        if not isinstance(request, RunRequest):
            request = RunRequest.model_validate(request)

        resolved = self._resolve_request(request)
        client = self.client_factory()
        logger.info(f"Running workflow {request.workflow_name or '<inline>'}")

        return run_prompt(
            client,
            resolved["workflow"],
            workflow_format=resolved["workflow_format"],
            inputs=resolved["inputs"],
            wait=request.wait,
            timeout=request.timeout or self.config.COMFY_RUN_TIMEOUT,
            prompt_id=request.prompt_id,
            extra_data=request.extra_data,
            poll_interval=self.config.COMFY_POLL_INTERVAL,
            cancel=cancel,
        )

    def get_run_status(self, run_id: str) -> StatusReport:
        self._assert_enabled()
        return resolve_prompt_status(run_id, self.client_factory())

    def verify_connection(self) -> Any:
        """Reach the server once; auth and network errors propagate."""
        self._assert_enabled()
        return self.client_factory().request("/prompt", allow_404=True)
