"""TaskTrack HTTP API."""

from tasktrack.api.router import router

__all__ = ["router"]
