"""Options for the logging interceptors.

An option is a callable that adjusts an :class:`Options` instance. Pass any
number of them to the logging interceptors. They are applied in order on top
of the defaults for the client or the server side.
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta

from rpcware.calls import CallMeta
from rpcware.context import Context
from rpcware.logs.fields import Fields, Level
from rpcware.status import Code, code_of

RFC3339 = "%Y-%m-%dT%H:%M:%S%z"

DurationToFields = Callable[[timedelta], Fields]
ErrorToCode = Callable[[BaseException | None], Code]
CodeToLevel = Callable[[Code], Level]
FieldsFromContext = Callable[[Context], Fields]
FieldsFromContextAndCallMeta = Callable[[Context, CallMeta], Fields]


class LoggableEvent(enum.IntEnum):
    """Events of a call that can produce a log line."""

    START_CALL = 0
    FINISH_CALL = 1
    # The payload events log whole messages and can be very verbose.
    PAYLOAD_RECEIVED = 2
    PAYLOAD_SENT = 3


def default_error_to_code(err: BaseException | None) -> Code:
    """Return the status code of ``err``; None means OK."""
    return code_of(err)


_SERVER_LEVELS: dict[Code, Level] = {
    Code.OK: Level.INFO,
    Code.NOT_FOUND: Level.INFO,
    Code.CANCELED: Level.INFO,
    Code.ALREADY_EXISTS: Level.INFO,
    Code.INVALID_ARGUMENT: Level.INFO,
    Code.UNAUTHENTICATED: Level.INFO,
    Code.DEADLINE_EXCEEDED: Level.WARN,
    Code.PERMISSION_DENIED: Level.WARN,
    Code.RESOURCE_EXHAUSTED: Level.WARN,
    Code.FAILED_PRECONDITION: Level.WARN,
    Code.ABORTED: Level.WARN,
    Code.OUT_OF_RANGE: Level.WARN,
    Code.UNAVAILABLE: Level.WARN,
    Code.UNKNOWN: Level.ERROR,
    Code.UNIMPLEMENTED: Level.ERROR,
    Code.INTERNAL: Level.ERROR,
    Code.DATA_LOSS: Level.ERROR,
}

_CLIENT_LEVELS: dict[Code, Level] = {
    Code.OK: Level.DEBUG,
    Code.CANCELED: Level.DEBUG,
    Code.INVALID_ARGUMENT: Level.DEBUG,
    Code.NOT_FOUND: Level.DEBUG,
    Code.ALREADY_EXISTS: Level.DEBUG,
    Code.RESOURCE_EXHAUSTED: Level.DEBUG,
    Code.FAILED_PRECONDITION: Level.DEBUG,
    Code.ABORTED: Level.DEBUG,
    Code.OUT_OF_RANGE: Level.DEBUG,
    Code.UNKNOWN: Level.INFO,
    Code.DEADLINE_EXCEEDED: Level.INFO,
    Code.PERMISSION_DENIED: Level.INFO,
    Code.UNAUTHENTICATED: Level.INFO,
    Code.UNIMPLEMENTED: Level.WARN,
    Code.INTERNAL: Level.WARN,
    Code.UNAVAILABLE: Level.WARN,
    Code.DATA_LOSS: Level.WARN,
}


def default_server_code_to_level(code: Code) -> Level:
    """Map a status code to a log level for the server side."""
    return _SERVER_LEVELS.get(code, Level.ERROR)


def default_client_code_to_level(code: Code) -> Level:
    """Map a status code to a log level for the client side."""
    return _CLIENT_LEVELS.get(code, Level.INFO)


def _nanoseconds(duration: timedelta) -> int:
    return (duration.days * 86_400 + duration.seconds) * 10**9 + (
        duration.microseconds * 1000
    )


def _with_fraction(value: int, digits: int) -> str:
    whole, frac = divmod(value, 10**digits)
    if not frac:
        return str(whole)
    return f"{whole}.{str(frac).rjust(digits, '0').rstrip('0')}"


def format_duration(duration: timedelta) -> str:
    """Render a duration as e.g. ``1.5ms``, ``2s`` or ``1h0m0s``."""
    ns = _nanoseconds(duration)
    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns == 0:
        return "0s"
    if ns < 10**9:
        if ns < 1000:
            return f"{sign}{ns}ns"
        if ns < 10**6:
            return f"{sign}{_with_fraction(ns, 3)}µs"
        return f"{sign}{_with_fraction(ns, 6)}ms"
    minute = 60 * 10**9
    seconds = f"{_with_fraction(ns % minute, 9)}s"
    total_minutes = ns // minute
    if not total_minutes:
        return sign + seconds
    hours, minutes = divmod(total_minutes, 60)
    text = f"{minutes}m{seconds}"
    if hours:
        text = f"{hours}h{text}"
    return sign + text


def _milliseconds(duration: timedelta) -> float:
    micros = int(_nanoseconds(duration) / 1000)
    return micros / 1000


def duration_to_time_millis_fields(duration: timedelta) -> Fields:
    """Report the duration in milliseconds under ``grpc.time_ms``."""
    text = repr(_milliseconds(duration))
    if text.endswith(".0"):
        text = text[:-2]
    return Fields(["grpc.time_ms", text])


def duration_to_duration_field(duration: timedelta) -> Fields:
    """Report the duration as text under ``grpc.duration``."""
    return Fields(["grpc.duration", format_duration(duration)])


default_duration_to_fields = duration_to_time_millis_fields


@dataclass
class Options:
    """Settings of a logging interceptor."""

    level_func: CodeToLevel | None = None
    loggable_events: list[LoggableEvent] = field(
        default_factory=lambda: [LoggableEvent.START_CALL, LoggableEvent.FINISH_CALL]
    )
    code_func: ErrorToCode = default_error_to_code
    duration_field_func: DurationToFields = default_duration_to_fields
    timestamp_format: str = RFC3339
    fields_from_ctx_call_meta_fn: FieldsFromContextAndCallMeta | None = None
    disable_grpc_log_fields: list[str] | None = None

    def format_timestamp(self, moment: datetime) -> str:
        """Render ``moment`` in the configured timestamp format."""
        if moment.tzinfo is None:
            moment = moment.astimezone()
        if self.timestamp_format == RFC3339:
            text = moment.replace(microsecond=0).isoformat()
            if text.endswith("+00:00"):
                text = text[: -len("+00:00")] + "Z"
            return text
        return moment.strftime(self.timestamp_format)


Option = Callable[[Options], None]


def with_fields_from_context(fn: FieldsFromContext) -> Option:
    """Add or override fields of every log line, computed from the context."""

    def apply(options: Options) -> None:
        options.fields_from_ctx_call_meta_fn = lambda ctx, _call_meta: fn(ctx)

    return apply


def with_fields_from_context_and_call_meta(fn: FieldsFromContextAndCallMeta) -> Option:
    """Add or override fields of every log line from the context and the call."""

    def apply(options: Options) -> None:
        options.fields_from_ctx_call_meta_fn = fn

    return apply


def with_log_on_events(*events: LoggableEvent) -> Option:
    """Choose the events that produce log lines."""

    def apply(options: Options) -> None:
        options.loggable_events = list(events)

    return apply


def with_levels(fn: CodeToLevel) -> Option:
    """Set the mapping from status codes to log levels."""

    def apply(options: Options) -> None:
        options.level_func = fn

    return apply


def with_codes(fn: ErrorToCode) -> Option:
    """Set the mapping from errors to status codes."""

    def apply(options: Options) -> None:
        options.code_func = fn

    return apply


def with_duration_field(fn: DurationToFields) -> Option:
    """Set how a call duration becomes log fields."""

    def apply(options: Options) -> None:
        options.duration_field_func = fn

    return apply


def with_timestamp_format(fmt: str) -> Option:
    """Set the strftime format of timestamps in log fields."""

    def apply(options: Options) -> None:
        options.timestamp_format = fmt

    return apply


def with_disable_logging_fields(*fields: str) -> Option:
    """Leave the given standard call fields out of the log lines."""

    def apply(options: Options) -> None:
        options.disable_grpc_log_fields = list(fields)

    return apply


def _evaluate(level_func: CodeToLevel, options: Iterable[Option]) -> Options:
    result = replace(Options(), level_func=level_func)
    for option in options:
        option(result)
    return result


def evaluate_server_options(options: Iterable[Option]) -> Options:
    """Apply ``options`` over the server-side defaults."""
    return _evaluate(default_server_code_to_level, options)


def evaluate_client_options(options: Iterable[Option]) -> Options:
    """Apply ``options`` over the client-side defaults."""
    return _evaluate(default_client_code_to_level, options)