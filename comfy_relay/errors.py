"""Error taxonomy for the Comfy integration."""

from typing import Any, Optional


class ComfyClientError(Exception):
    """Base error carrying a machine code, an optional status and details."""

    code = "COMFY_CLIENT_ERROR"
    http_status = 502

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.details = details
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "details": self.details}


class ConfigurationError(ComfyClientError):
    """Integration disabled or missing required settings."""

    code = "COMFY_CONFIGURATION_ERROR"
    http_status = 500


class UnauthorizedError(ComfyClientError):
    code = "COMFY_UNAUTHORIZED"


class HttpError(ComfyClientError):
    code = "COMFY_HTTP_ERROR"


class RequestTimeout(ComfyClientError):
    code = "COMFY_TIMEOUT"
    http_status = 504


class NetworkError(ComfyClientError):
    code = "COMFY_NETWORK_ERROR"


class ConverterUnavailable(ComfyClientError):
    """The deployment does not expose /workflow/convert."""

    code = "CONVERTER_NOT_AVAILABLE"
    http_status = 501


class NoCorrelationId(ComfyClientError):
    """The service accepted a prompt but returned no id to track it by."""

    code = "COMFY_NO_PROMPT_ID"


class WorkflowNotFound(ComfyClientError):
    code = "COMFY_WORKFLOW_NOT_FOUND"
    http_status = 404


class RunCancelled(ComfyClientError):
    code = "COMFY_RUN_CANCELLED"
    http_status = 499


def integration_disabled() -> ConfigurationError:
    """Error raised by every entry point while COMFY_ENABLED is off."""
    error = ConfigurationError(
        "ComfyUI integration is disabled (set COMFY_ENABLED=true)",
        status=404,
        code="COMFY_DISABLED",
    )
    error.http_status = 404
    return error
