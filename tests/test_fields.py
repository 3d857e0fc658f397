import pytest

from rpcware.calls import CallMeta, GRPCType
from rpcware.context import background
from rpcware.logs.fields import (
    COMPONENT_FIELD_KEY,
    KIND_SERVER_FIELD_VALUE,
    METHOD_FIELD_KEY,
    METHOD_TYPE_FIELD_KEY,
    SERVICE_FIELD_KEY,
    SYSTEM_TAG,
    Fields,
    Level,
    LoggerFunc,
    disable_common_logging_fields,
    extract_fields,
    inject_fields,
    inject_log_field,
    new_common_fields,
)


def test_fields_inject_extract_from_context():
    c = background()
    f = extract_fields(c)
    assert f == []

    f = f.append_unique(["a", "1", "b", "2"])
    assert f == ["a", "1", "b", "2"]

    c2 = inject_fields(c, f)

    assert extract_fields(c) == []
    f = extract_fields(c2)
    assert f == ["a", "1", "b", "2"]

    f = Fields(["a", "changed"]).with_unique(f)
    assert f == ["a", "changed", "b", "2"]

    c3 = inject_fields(c, f)

    assert extract_fields(c) == []
    assert extract_fields(c2) == ["a", "1", "b", "2"]
    assert extract_fields(c3) == ["a", "changed", "b", "2"]


def test_fields_delete():
    f = Fields(["a", "1", "b", "2"])
    f.delete("a")
    assert f == ["b", "2"]
    f.delete("b")
    assert f == []
    f.delete("c")
    assert f == []


def test_delete_removes_only_first_occurrence():
    f = Fields(["a", "1", "a", "2"])
    f.delete("a")
    assert f == ["a", "2"]


def test_pairs_odd_length_pads_with_empty_string():
    assert list(Fields(["a", 1, "b"]).pairs()) == [("a", 1), ("b", "")]


def test_pairs_rejects_non_string_key():
    with pytest.raises(TypeError):
        list(Fields([1, "x"]).pairs())


def test_with_unique_empty_add_returns_independent_copy():
    original = Fields(["a", "1"])
    copy = original.with_unique([])
    copy.append("b")
    assert original == ["a", "1"]
    assert copy == ["a", "1", "b"]


def test_with_unique_keeps_existing_and_duplicates_in_add():
    f = Fields(["a", "1"]).with_unique(["a", "x", "b", "2", "b", "3"])
    assert f == ["a", "1", "b", "2", "b", "3"]


def test_append_unique_drops_duplicates_within_add():
    f = Fields(["a", "1"]).append_unique(["a", "x", "b", "2", "b", "3"])
    assert f == ["a", "1", "b", "2"]


def test_extract_returns_copy():
    ctx = inject_fields(background(), ["a", "1"])
    extracted = extract_fields(ctx)
    extracted.extend(["b", "2"])
    assert extract_fields(ctx) == ["a", "1"]


def test_inject_newest_wins():
    ctx = inject_fields(background(), ["grpc.component", "server", "x", "1"])
    ctx = inject_log_field(ctx, "grpc.component", "client")
    assert extract_fields(ctx) == ["grpc.component", "client", "x", "1"]


def test_logger_func_forwards_arguments():
    calls = []

    def record(ctx, level, msg, *fields):
        calls.append((ctx, level, msg, fields))

    ctx = background()
    logger = LoggerFunc(record)
    logger.log(ctx, Level.WARN, "hello", "k", "v")
    assert calls == [(ctx, Level.WARN, "hello", ("k", "v"))]


def test_new_common_fields():
    meta = CallMeta(service="svc.Test", method="Ping", typ=GRPCType.SERVER_STREAM)
    f = new_common_fields(KIND_SERVER_FIELD_VALUE, meta)
    assert f == [
        SYSTEM_TAG[0],
        SYSTEM_TAG[1],
        COMPONENT_FIELD_KEY,
        "server",
        SERVICE_FIELD_KEY,
        "svc.Test",
        METHOD_FIELD_KEY,
        "Ping",
        METHOD_TYPE_FIELD_KEY,
        "server_stream",
    ]


def test_disable_common_logging_fields():
    meta = CallMeta(service="svc.Test", method="Ping")
    f = disable_common_logging_fields(
        "client",
        meta,
        [COMPONENT_FIELD_KEY, METHOD_TYPE_FIELD_KEY, SYSTEM_TAG[0], "not-there"],
    )
    assert f == [SERVICE_FIELD_KEY, "svc.Test", METHOD_FIELD_KEY, "Ping"]