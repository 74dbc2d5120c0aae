"""Request context management using contextvars.

Each request gets an id plus the acting user and tracing ids, readable
anywhere in the call stack (log processors, services) without passing them
explicitly.
"""

from contextvars import ContextVar, Token
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
actor_id_var: ContextVar[str | None] = ContextVar("actor_id", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_CONTEXT_VARS: dict[str, ContextVar[Any]] = {
    "request_id": request_id_var,
    "actor_id": actor_id_var,
    "trace_id": trace_id_var,
    "correlation_id": correlation_id_var,
}


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context, generating one if missing."""
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_actor_id() -> str | None:
    """Get the acting user's ID."""
    return actor_id_var.get()


def set_actor_id(actor_id: str | UUID | None) -> None:
    """Set the acting user's ID for the current context."""
    actor_id_var.set(str(actor_id) if actor_id is not None else None)


def set_trace_id(trace_id: str | None) -> None:
    """Set the trace ID from distributed tracing headers."""
    trace_id_var.set(trace_id)


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for tracking related operations."""
    correlation_id_var.set(correlation_id)


def get_context() -> dict[str, Any]:
    """Return the non-empty context variables as a dictionary."""
    return {name: value for name, var in _CONTEXT_VARS.items() if (value := var.get())}


def clear_context() -> None:
    """Reset all context variables at the end of a request."""
    request_id_var.set("")
    actor_id_var.set(None)
    trace_id_var.set(None)
    correlation_id_var.set(None)


class RequestContext:
    """Context manager binding request scope values outside of HTTP.

    Usage:
        with RequestContext(actor_id=moderator_id):
            await engine.moderate_many(...)  # logs carry request_id, actor_id
    """

    def __init__(
        self,
        request_id: str | None = None,
        actor_id: str | UUID | None = None,
        trace_id: str | None = None,
        correlation_id: str | None = None,
    ) -> None:
        self._values: dict[str, Any] = {
            "request_id": request_id or generate_request_id(),
            "actor_id": str(actor_id) if actor_id is not None else None,
            "trace_id": trace_id,
            "correlation_id": correlation_id,
        }
        self._tokens: dict[str, Token[Any]] = {}

    @property
    def request_id(self) -> str:
        return self._values["request_id"]

    def __enter__(self) -> "RequestContext":
        for name, value in self._values.items():
            if value is not None:
                self._tokens[name] = _CONTEXT_VARS[name].set(value)
        return self

    def __exit__(self, *_: object) -> None:
        for name, token in self._tokens.items():
            _CONTEXT_VARS[name].reset(token)
        self._tokens.clear()
