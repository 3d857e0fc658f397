"""Server-side authentication interceptors.

An auth function inspects the incoming context, usually its ``authorization``
metadata. It returns a context that is handed on to the handler, or raises to
reject the call. Raise a :class:`~rpcware.status.StatusError` with
``UNAUTHENTICATED`` when credentials are missing. Raise it with
``PERMISSION_DENIED`` when the caller is authenticated but lacks rights.

A service may override the global auth function for all of its methods by
implementing ``auth_func_override`` (see :class:`ServiceAuthFuncOverride`).
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from rpcware.calls import StreamServerInfo, UnaryServerInfo
from rpcware.context import Context
from rpcware.status import Code, StatusError

HEADER_AUTHORIZE = "authorization"

AuthFunc = Callable[[Context], Context]
UnaryHandler = Callable[[Context, Any], Any]
StreamHandler = Callable[[Any, Any], Any]


@runtime_checkable
class ServiceAuthFuncOverride(Protocol):
    """A service that authenticates its own calls instead of the global function."""

    def auth_func_override(self, ctx: Context, full_method_name: str) -> Context: ...


class WrappedServerStream:
    """A server stream whose context can be replaced."""

    def __init__(self, stream: Any, wrapped_context: Context | None = None) -> None:
        self._stream = stream
        self.wrapped_context = (
            stream.context() if wrapped_context is None else wrapped_context
        )

    def __getattr__(self, name: str) -> Any:
        return getattr(self._stream, name)

    def context(self) -> Context:
        return self.wrapped_context


def auth_from_md(ctx: Context, expected_scheme: str) -> str:
    """Return the credential of the ``authorization`` header for the given scheme.

    The scheme is compared case-insensitively. Raises a ``StatusError`` with
    ``UNAUTHENTICATED`` when the header is missing, malformed or of another
    scheme.
    """
    values = ctx.incoming_metadata().get(HEADER_AUTHORIZE)
    header = values[0] if values else ""
    if not header:
        raise StatusError(
            Code.UNAUTHENTICATED, f"Request unauthenticated with {expected_scheme}"
        )
    scheme, sep, credential = header.partition(" ")
    if not sep:
        raise StatusError(Code.UNAUTHENTICATED, "Bad authorization string")
    if scheme.casefold() != expected_scheme.casefold():
        raise StatusError(
            Code.UNAUTHENTICATED, f"Request unauthenticated with {expected_scheme}"
        )
    return credential


def unary_server_interceptor(
    auth_func: AuthFunc,
) -> Callable[[Context, Any, UnaryServerInfo, UnaryHandler], Any]:
    """Return a unary server interceptor that authenticates every request."""

    def intercept(
        ctx: Context, request: Any, info: UnaryServerInfo, handler: UnaryHandler
    ) -> Any:
        if isinstance(info.server, ServiceAuthFuncOverride):
            new_ctx = info.server.auth_func_override(ctx, info.full_method)
        else:
            new_ctx = auth_func(ctx)
        return handler(new_ctx, request)

    return intercept


def stream_server_interceptor(
    auth_func: AuthFunc,
) -> Callable[[Any, Any, StreamServerInfo, StreamHandler], Any]:
    """Return a streaming server interceptor that authenticates every call."""

    def intercept(
        server: Any, stream: Any, info: StreamServerInfo, handler: StreamHandler
    ) -> Any:
        if isinstance(server, ServiceAuthFuncOverride):
            new_ctx = server.auth_func_override(stream.context(), info.full_method)
        else:
            new_ctx = auth_func(stream.context())
        return handler(server, WrappedServerStream(stream, new_ctx))

    return intercept