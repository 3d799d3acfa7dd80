"""Route dependencies."""

from functools import lru_cache

from comfy_relay.services.comfy import ComfyService


@lru_cache
def get_comfy_service() -> ComfyService:
    """Shared service built from the global settings."""
    return ComfyService()
