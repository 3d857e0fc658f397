from datetime import datetime, timedelta, timezone

import pytest

from rpcware.calls import CallMeta
from rpcware.context import background
from rpcware.logs.fields import Fields, Level
from rpcware.logs.options import (
    RFC3339,
    LoggableEvent,
    Options,
    default_client_code_to_level,
    default_error_to_code,
    default_server_code_to_level,
    duration_to_duration_field,
    duration_to_time_millis_fields,
    evaluate_client_options,
    evaluate_server_options,
    format_duration,
    with_codes,
    with_disable_logging_fields,
    with_duration_field,
    with_fields_from_context,
    with_fields_from_context_and_call_meta,
    with_levels,
    with_log_on_events,
    with_timestamp_format,
)
from rpcware.status import Code, StatusError

MICRO_SUFFIX = "\u00b5s"


def test_default_error_to_code():
    assert default_error_to_code(None) is Code.OK
    assert default_error_to_code(StatusError(Code.NOT_FOUND, "x")) is Code.NOT_FOUND
    assert default_error_to_code(ValueError("boom")) is Code.UNKNOWN


@pytest.mark.parametrize(
    "code,level",
    [
        (Code.OK, Level.INFO),
        (Code.UNAUTHENTICATED, Level.INFO),
        (Code.DEADLINE_EXCEEDED, Level.WARN),
        (Code.UNAVAILABLE, Level.WARN),
        (Code.INTERNAL, Level.ERROR),
        (Code.DATA_LOSS, Level.ERROR),
    ],
)
def test_server_levels(code, level):
    assert default_server_code_to_level(code) is level


@pytest.mark.parametrize(
    "code,level",
    [
        (Code.OK, Level.DEBUG),
        (Code.NOT_FOUND, Level.DEBUG),
        (Code.FAILED_PRECONDITION, Level.DEBUG),
        (Code.INTERNAL, Level.WARN),
        (Code.UNAUTHENTICATED, Level.INFO),
        (Code.UNKNOWN, Level.INFO),
    ],
)
def test_client_levels(code, level):
    assert default_client_code_to_level(code) is level


def test_every_code_has_a_level():
    for code in Code:
        assert default_server_code_to_level(code) in Level
        assert default_client_code_to_level(code) in Level


def test_time_millis_field_key_and_value():
    fields = duration_to_time_millis_fields(timedelta(microseconds=1500))
    assert fields == Fields(["grpc.time_ms", "1.5"])


def test_time_millis_whole_value_has_no_fraction():
    fields = duration_to_time_millis_fields(timedelta(seconds=2))
    assert fields[0] == "grpc.time_ms"
    assert "." not in fields[1]
    assert float(fields[1]) == 2000


def test_duration_field():
    assert duration_to_duration_field(timedelta(microseconds=1500)) == Fields(
        ["grpc.duration", "1.5ms"]
    )
    assert duration_to_duration_field(timedelta(seconds=90))[1] == "1m30s"


def test_format_duration_zero_and_units():
    assert format_duration(timedelta(0)) == "0s"
    assert format_duration(timedelta(microseconds=7)).endswith(MICRO_SUFFIX)
    assert format_duration(timedelta(seconds=5)).endswith("s")
    assert format_duration(timedelta(hours=1)).startswith("1h")
    negative = format_duration(-timedelta(seconds=5))
    assert negative == "-" + format_duration(timedelta(seconds=5))


def test_server_defaults():
    options = evaluate_server_options([])
    assert options.level_func is default_server_code_to_level
    assert options.loggable_events == [
        LoggableEvent.START_CALL,
        LoggableEvent.FINISH_CALL,
    ]
    assert options.code_func is default_error_to_code
    assert options.duration_field_func is duration_to_time_millis_fields
    assert options.timestamp_format == RFC3339
    assert options.fields_from_ctx_call_meta_fn is None
    assert options.disable_grpc_log_fields is None


def test_client_defaults():
    assert evaluate_client_options([]).level_func is default_client_code_to_level


def test_evaluations_do_not_share_state():
    first = evaluate_server_options([])
    first.loggable_events.append(LoggableEvent.PAYLOAD_SENT)
    assert LoggableEvent.PAYLOAD_SENT not in evaluate_server_options([]).loggable_events


def test_options_applied_in_order():
    options = evaluate_client_options(
        [
            with_levels(default_server_code_to_level),
            with_log_on_events(
                LoggableEvent.PAYLOAD_RECEIVED, LoggableEvent.PAYLOAD_SENT
            ),
            with_codes(lambda err: Code.ABORTED),
            with_duration_field(duration_to_duration_field),
            with_timestamp_format("%Y"),
            with_disable_logging_fields("grpc.method", "protocol"),
            with_levels(default_client_code_to_level),
        ]
    )
    assert options.level_func is default_client_code_to_level
    assert options.loggable_events == [
        LoggableEvent.PAYLOAD_RECEIVED,
        LoggableEvent.PAYLOAD_SENT,
    ]
    assert options.code_func(None) is Code.ABORTED
    assert options.duration_field_func is duration_to_duration_field
    assert options.timestamp_format == "%Y"
    assert options.disable_grpc_log_fields == ["grpc.method", "protocol"]


def test_fields_from_context():
    ctx = background().with_value("k", "v")
    options = evaluate_server_options(
        [with_fields_from_context(lambda c: Fields(["from", c.value("k")]))]
    )
    meta = CallMeta(service="svc", method="m")
    assert options.fields_from_ctx_call_meta_fn(ctx, meta) == Fields(["from", "v"])


def test_fields_from_context_and_call_meta():
    options = evaluate_server_options(
        [
            with_fields_from_context_and_call_meta(
                lambda c, meta: Fields(["method", meta.full_method()])
            )
        ]
    )
    meta = CallMeta(service="svc", method="m")
    result = options.fields_from_ctx_call_meta_fn(background(), meta)
    assert result == Fields(["method", "/svc/m"])


def test_rfc3339_timestamp_round_trips():
    moment = datetime(2023, 5, 17, 8, 30, 15, 999, tzinfo=timezone.utc)
    text = Options().format_timestamp(moment)
    parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    assert parsed == moment.replace(microsecond=0)
    assert "." not in text


def test_custom_timestamp_format():
    moment = datetime(2023, 5, 17, 8, 30, 15, tzinfo=timezone.utc)
    options = evaluate_server_options([with_timestamp_format("%Y")])
    assert options.format_timestamp(moment) == "2023"