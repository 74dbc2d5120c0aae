# Core infrastructure
from src.core.context import (
    RequestContext,
    clear_context,
    get_actor_id,
    get_context,
    get_request_id,
    set_actor_id,
    set_correlation_id,
    set_request_id,
    set_trace_id,
)
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware, set_actor_context


__all__ = [
    "RequestContext",
    "RequestContextMiddleware",
    "clear_context",
    "configure_structlog",
    "get_actor_id",
    "get_context",
    "get_logger",
    "get_request_id",
    "set_actor_context",
    "set_actor_id",
    "set_correlation_id",
    "set_request_id",
    "set_trace_id",
]
