"""Per-request client metadata carried in context variables.

``RequestContextMiddleware`` sets these at the start of every HTTP request so
code further down the call chain (the write-operation auditor in particular)
can read the originating client IP and User-Agent without threading the
``Request`` object through every service call.
"""

from contextvars import ContextVar, Token
from dataclasses import dataclass


@dataclass(frozen=True)
class RequestContext:
    client_ip: str | None = None
    user_agent: str | None = None


_EMPTY = RequestContext()
_request_context: ContextVar[RequestContext] = ContextVar("request_context", default=_EMPTY)


def get_request_context() -> RequestContext:
    """Return the context of the current request, or an empty one outside a request."""
    return _request_context.get()


def set_request_context(client_ip: str | None, user_agent: str | None) -> Token[RequestContext]:
    return _request_context.set(RequestContext(client_ip=client_ip, user_agent=user_agent))


def reset_request_context(token: Token[RequestContext]) -> None:
    _request_context.reset(token)
