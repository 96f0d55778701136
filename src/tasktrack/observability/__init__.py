"""Observability helpers for TaskTrack."""

from tasktrack.observability.metrics import metrics
from tasktrack.observability.trace import get_trace_id, set_trace_id

__all__ = ["metrics", "get_trace_id", "set_trace_id"]
