"""Trace id middleware (correlation across logs and responses)."""

from fastapi import Request

from tasktrack.observability.trace import set_trace_id

TRACE_HEADER = "X-Trace-ID"


async def trace_id_middleware(request: Request, call_next):
    trace_id = set_trace_id(request.headers.get(TRACE_HEADER))
    response = await call_next(request)
    response.headers[TRACE_HEADER] = trace_id
    return response
