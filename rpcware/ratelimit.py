"""Rate-limiting interceptors.

A pluggable :class:`Limiter` decides whether a call may proceed. Any
algorithm works: token bucket, leaky bucket and so on. A rejected call fails
with ``RESOURCE_EXHAUSTED``, and its message includes the limiter's reason.
The interceptors cover unary and streaming calls on both sides. On the client
side they can cap how many requests are sent, which may save cost.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from rpcware.calls import StreamDesc, StreamServerInfo, UnaryServerInfo
from rpcware.context import Context
from rpcware.status import Code, StatusError


class Limiter(Protocol):
    """Decides whether a request may pass.

    ``limit`` returns normally to let the request through and raises an
    exception to reject it; the exception's text becomes part of the error.
    """

    def limit(self, ctx: Context) -> None: ...


UnaryHandler = Callable[[Context, Any], Any]
StreamHandler = Callable[[Any, Any], Any]
UnaryInvoker = Callable[[Context, str, Any], Any]
Streamer = Callable[[Context, StreamDesc, str], Any]


def _check(limiter: Limiter, ctx: Context, method: str) -> None:
    try:
        limiter.limit(ctx)
    except Exception as err:
        raise StatusError(
            Code.RESOURCE_EXHAUSTED,
            f"{method} is rejected by grpc_ratelimit middleware, "
            f"please retry later. {err}",
        ) from err


def unary_server_interceptor(
    limiter: Limiter,
) -> Callable[[Context, Any, UnaryServerInfo, UnaryHandler], Any]:
    """Return a unary server interceptor that rate-limits requests."""

    def intercept(
        ctx: Context, request: Any, info: UnaryServerInfo, handler: UnaryHandler
    ) -> Any:
        _check(limiter, ctx, info.full_method)
        return handler(ctx, request)

    return intercept


def stream_server_interceptor(
    limiter: Limiter,
) -> Callable[[Any, Any, StreamServerInfo, StreamHandler], Any]:
    """Return a streaming server interceptor that rate-limits requests."""

    def intercept(
        server: Any, stream: Any, info: StreamServerInfo, handler: StreamHandler
    ) -> Any:
        _check(limiter, stream.context(), info.full_method)
        return handler(server, stream)

    return intercept


def unary_client_interceptor(
    limiter: Limiter,
) -> Callable[[Context, str, Any, UnaryInvoker], Any]:
    """Return a unary client interceptor that rate-limits outgoing requests."""

    def intercept(
        ctx: Context, method: str, request: Any, invoker: UnaryInvoker
    ) -> Any:
        _check(limiter, ctx, method)
        return invoker(ctx, method, request)

    return intercept


def stream_client_interceptor(
    limiter: Limiter,
) -> Callable[[Context, StreamDesc, str, Streamer], Any]:
    """Return a streaming client interceptor that rate-limits outgoing calls."""

    def intercept(
        ctx: Context, desc: StreamDesc, method: str, streamer: Streamer
    ) -> Any:
        _check(limiter, ctx, method)
        return streamer(ctx, desc, method)

    return intercept