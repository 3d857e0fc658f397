"""Client-side reporting interceptors.

These interceptors let other middleware (metrics, logging and the like)
observe each message sent and received and the end of every call, without
each of them having to wrap calls and streams on its own.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from datetime import timedelta
from typing import Any, Protocol

from rpcware.calls import CallMeta, StreamDesc, new_client_call_meta
from rpcware.context import Context
from rpcware.status import EndOfStream


class Reporter(Protocol):
    """Receives the events of one call."""

    def post_call(self, err: BaseException | None, duration: timedelta) -> None: ...

    def post_msg_send(
        self, payload: Any, err: BaseException | None, duration: timedelta
    ) -> None: ...

    def post_msg_receive(
        self, payload: Any, err: BaseException | None, duration: timedelta
    ) -> None: ...


class ClientReportable(Protocol):
    """Creates a reporter, and possibly a new context, for each client call."""

    def client_reporter(
        self, ctx: Context, call_meta: CallMeta
    ) -> tuple[Reporter, Context]: ...


UnaryInvoker = Callable[[Context, str, Any], Any]
Streamer = Callable[[Context, StreamDesc, str], Any]


def _since(start: float) -> timedelta:
    return timedelta(seconds=time.monotonic() - start)


def unary_client_interceptor(
    reportable: ClientReportable,
) -> Callable[[Context, str, Any, UnaryInvoker], Any]:
    """Return a unary client interceptor that reports to ``reportable``."""

    def intercept(
        ctx: Context, method: str, request: Any, invoker: UnaryInvoker
    ) -> Any:
        start = time.monotonic()
        reporter, new_ctx = reportable.client_reporter(
            ctx, new_client_call_meta(method, None, request)
        )
        reporter.post_msg_send(request, None, _since(start))
        try:
            reply = invoker(new_ctx, method, request)
        except Exception as err:
            reporter.post_msg_receive(None, err, _since(start))
            reporter.post_call(err, _since(start))
            raise
        reporter.post_msg_receive(reply, None, _since(start))
        reporter.post_call(None, _since(start))
        return reply

    return intercept


def stream_client_interceptor(
    reportable: ClientReportable,
) -> Callable[[Context, StreamDesc, str, Streamer], MonitoredClientStream]:
    """Return a streaming client interceptor that reports to ``reportable``."""

    def intercept(
        ctx: Context, desc: StreamDesc, method: str, streamer: Streamer
    ) -> MonitoredClientStream:
        start = time.monotonic()
        reporter, new_ctx = reportable.client_reporter(
            ctx, new_client_call_meta(method, desc, None)
        )
        try:
            stream = streamer(new_ctx, desc, method)
        except Exception as err:
            reporter.post_call(err, _since(start))
            raise
        return MonitoredClientStream(stream, reporter, start)

    return intercept


class MonitoredClientStream:
    """A client stream that reports every message sent and received."""

    def __init__(self, stream: Any, reporter: Reporter, start: float) -> None:
        self._stream = stream
        self._reporter = reporter
        self._start = start

    def __getattr__(self, name: str) -> Any:
        return getattr(self._stream, name)

    def send_msg(self, message: Any) -> None:
        start = time.monotonic()
        try:
            self._stream.send_msg(message)
        except Exception as err:
            self._reporter.post_msg_send(message, err, _since(start))
            raise
        self._reporter.post_msg_send(message, None, _since(start))

    def recv_msg(self) -> Any:
        """Return the next message; raises EndOfStream when the call ends."""
        start = time.monotonic()
        try:
            message = self._stream.recv_msg()
        except Exception as err:
            self._reporter.post_msg_receive(None, err, _since(start))
            final = None if isinstance(err, EndOfStream) else err
            self._reporter.post_call(final, _since(self._start))
            raise
        self._reporter.post_msg_receive(message, None, _since(start))
        return message

    def __iter__(self) -> Iterator[Any]:
        while True:
            try:
                yield self.recv_msg()
            except EndOfStream:
                return