from contextvars import ContextVar
from typing import Optional

# Request ID for log correlation, set per request by the logging middleware
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> str:
    return request_id_ctx.get() or "n/a"


def set_request_id(request_id: str):
    return request_id_ctx.set(request_id)
