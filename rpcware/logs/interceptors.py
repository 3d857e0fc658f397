"""Logging interceptors built on the reporting interceptors.

Each call gets a :class:`CallReporter`. It writes log lines to a
:class:`~rpcware.logs.fields.Logger` when the call starts, when payloads are
sent or received, and when the call finishes. The options choose which of
these events are logged. The reporter also puts the call's logging fields
into the context handed on down the chain, so that later code can read them
with :func:`~rpcware.logs.fields.extract_fields`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from rpcware import client
from rpcware.calls import CallMeta
from rpcware.context import Context
from rpcware.logs.fields import (
    KIND_CLIENT_FIELD_VALUE,
    KIND_SERVER_FIELD_VALUE,
    Fields,
    Level,
    Logger,
    disable_common_logging_fields,
    extract_fields,
    inject_fields,
    new_common_fields,
)
from rpcware.logs.options import (
    LoggableEvent,
    Option,
    Options,
    evaluate_client_options,
    format_duration,
)
from rpcware.status import EndOfStream

NOT_A_MESSAGE = "payload is not a message; programmatic error?"


def _is_message(payload: Any) -> bool:
    return payload is not None


@dataclass
class CallReporter:
    """Writes the log lines of one call."""

    call_meta: CallMeta
    ctx: Context
    kind: str
    options: Options
    fields: Fields
    logger: Logger
    start_call_logged: bool = False

    def _logs_on(self, event: LoggableEvent) -> bool:
        return event in self.options.loggable_events

    def _base_fields(self, err: BaseException | None) -> Fields:
        fields = self.fields.with_unique(extract_fields(self.ctx))
        if err is not None:
            fields = fields.append_unique(["grpc.error", str(err)])
        return fields

    def _maybe_log_start(self, level: Level, fields: Fields, duration: timedelta) -> None:
        if self.start_call_logged or not self._logs_on(LoggableEvent.START_CALL):
            return
        self.start_call_logged = True
        self.logger.log(
            self.ctx,
            level,
            "started call",
            *fields.append_unique(self.options.duration_field_func(duration)),
        )

    def _log_payload(
        self,
        payload: Any,
        fields: Fields,
        level: Level,
        duration: timedelta,
        *,
        role: str,
        direction: str,
        msg: str,
    ) -> None:
        if not _is_message(payload):
            self.logger.log(
                self.ctx,
                Level.ERROR,
                NOT_A_MESSAGE,
                *fields.append_unique(
                    [f"grpc.{role}.type", type(payload).__qualname__]
                ),
            )
            return
        fields = fields.append_unique(
            [
                f"grpc.{direction}.duration",
                format_duration(duration),
                f"grpc.{role}.content",
                payload,
            ]
        )
        fields = fields.append_unique(self.options.duration_field_func(duration))
        self.logger.log(self.ctx, level, msg, *fields)

    def post_call(self, err: BaseException | None, duration: timedelta) -> None:
        """Log the end of the call, if finishing calls is a logged event."""
        if not self._logs_on(LoggableEvent.FINISH_CALL):
            return
        if isinstance(err, EndOfStream):
            err = None
        code = self.options.code_func(err)
        fields = self.fields.with_unique(extract_fields(self.ctx))
        fields = fields.append_unique(["grpc.code", str(code)])
        if err is not None:
            fields = fields.append_unique(["grpc.error", str(err)])
        self.logger.log(
            self.ctx,
            self.options.level_func(code),
            "finished call",
            *fields.append_unique(self.options.duration_field_func(duration)),
        )

    def post_msg_send(
        self, payload: Any, err: BaseException | None, duration: timedelta
    ) -> None:
        """Log a sent message: a request on the client, a response on the server."""
        level = self.options.level_func(self.options.code_func(err))
        fields = self._base_fields(err)
        self._maybe_log_start(level, fields, duration)
        if err is not None or not self._logs_on(LoggableEvent.PAYLOAD_SENT):
            return
        if self.call_meta.is_client:
            self._log_payload(
                payload, fields, level, duration,
                role="request", direction="send", msg="request sent",
            )
        else:
            self._log_payload(
                payload, fields, level, duration,
                role="response", direction="send", msg="response sent",
            )

    def post_msg_receive(
        self, payload: Any, err: BaseException | None, duration: timedelta
    ) -> None:
        """Log a received message: a response on the client, a request on the server."""
        level = self.options.level_func(self.options.code_func(err))
        fields = self._base_fields(err)
        self._maybe_log_start(level, fields, duration)
        if err is not None or not self._logs_on(LoggableEvent.PAYLOAD_RECEIVED):
            return
        if self.call_meta.is_client:
            self._log_payload(
                payload, fields, level, duration,
                role="response", direction="recv", msg="response received",
            )
        else:
            self._log_payload(
                payload, fields, level, duration,
                role="request", direction="recv", msg="request received",
            )


class _Reportable:
    """Creates a :class:`CallReporter` for every call."""

    def __init__(self, logger: Logger, options: Options) -> None:
        self._logger = logger
        self._options = options

    def __call__(self, ctx: Context, call_meta: CallMeta) -> tuple[CallReporter, Context]:
        options = self._options
        kind = KIND_CLIENT_FIELD_VALUE if call_meta.is_client else KIND_SERVER_FIELD_VALUE

        if options.disable_grpc_log_fields is not None:
            fields = disable_common_logging_fields(
                kind, call_meta, options.disable_grpc_log_fields
            )
        else:
            fields = new_common_fields(kind, call_meta)
        # Duplicates coming from the context do not override the common fields.
        fields = fields.with_unique(extract_fields(ctx))

        if not call_meta.is_client and ctx.peer is not None:
            fields = Fields([*fields, "peer.address", ctx.peer])
        if options.fields_from_ctx_call_meta_fn is not None:
            extra = options.fields_from_ctx_call_meta_fn(ctx, call_meta)
            fields = Fields(extra or ()).append_unique(fields)

        single_use = Fields(
            ["grpc.start_time", options.format_timestamp(datetime.now().astimezone())]
        )
        if ctx.deadline is not None:
            single_use = single_use.append_unique(
                ["grpc.request.deadline", options.format_timestamp(ctx.deadline)]
            )
        reporter = CallReporter(
            call_meta=call_meta,
            ctx=ctx,
            kind=kind,
            options=options,
            fields=fields.with_unique(single_use),
            logger=self._logger,
        )
        return reporter, inject_fields(ctx, fields)

    def client_reporter(
        self, ctx: Context, call_meta: CallMeta
    ) -> tuple[CallReporter, Context]:
        return self(ctx, call_meta)

    def server_reporter(
        self, ctx: Context, call_meta: CallMeta
    ) -> tuple[CallReporter, Context]:
        return self(ctx, call_meta)


def make_reportable(logger: Logger, options: Options) -> _Reportable:
    """Return a factory of call reporters writing to ``logger``."""
    return _Reportable(logger, options)


def unary_client_interceptor(logger: Logger, *opts: Option) -> Callable[..., Any]:
    """Return a unary client interceptor that logs outgoing calls."""
    return client.unary_client_interceptor(
        make_reportable(logger, evaluate_client_options(opts))
    )


def stream_client_interceptor(logger: Logger, *opts: Option) -> Callable[..., Any]:
    """Return a streaming client interceptor that logs outgoing calls."""
    return client.stream_client_interceptor(
        make_reportable(logger, evaluate_client_options(opts))
    )