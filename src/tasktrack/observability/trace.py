"""Per-request trace id propagation."""

from contextvars import ContextVar
from uuid import uuid4

_trace_id: ContextVar[str | None] = ContextVar("tasktrack_trace_id", default=None)


def get_trace_id() -> str | None:
    return _trace_id.get()


def set_trace_id(trace_id: str | None = None) -> str:
    """Set the trace id for the current context, generating one if absent."""
    value = trace_id or uuid4().hex
    _trace_id.set(value)
    return value
