import pytest

from rpcware.calls import (
    CallMeta,
    GRPCType,
    StreamDesc,
    StreamServerInfo,
    UnaryServerInfo,
    new_client_call_meta,
    new_server_call_meta,
    split_full_method_name,
)

SERVICE = "testing.testpb.v1.TestService"


def test_split_full_method_name():
    assert split_full_method_name(f"/{SERVICE}/Ping") == (SERVICE, "Ping")
    assert split_full_method_name(f"{SERVICE}/Ping") == (SERVICE, "Ping")


def test_split_without_separator_is_unknown():
    assert split_full_method_name("FakeMethod") == ("unknown", "unknown")
    assert split_full_method_name("/FakeMethod") == ("unknown", "unknown")


def test_split_keeps_rest_of_path_in_method():
    service, method = split_full_method_name("/svc/a/b")
    assert service == "svc"
    assert method == "a/b"


def test_full_method_round_trip():
    meta = new_client_call_meta(f"/{SERVICE}/PingList", None, None)
    assert meta.full_method() == f"/{SERVICE}/PingList"


def test_client_call_meta_unary():
    request = object()
    meta = new_client_call_meta(f"/{SERVICE}/Ping", None, request)
    assert meta.typ is GRPCType.UNARY
    assert meta.is_client is True
    assert meta.request is request
    assert (meta.service, meta.method) == (SERVICE, "Ping")


@pytest.mark.parametrize(
    "client_streams, server_streams, expected",
    [
        (True, False, GRPCType.CLIENT_STREAM),
        (False, True, GRPCType.SERVER_STREAM),
        (True, True, GRPCType.BIDI_STREAM),
        (False, False, GRPCType.BIDI_STREAM),
    ],
)
def test_stream_types(client_streams, server_streams, expected):
    client = new_client_call_meta(
        f"/{SERVICE}/PingStream", StreamDesc(client_streams, server_streams), None
    )
    server = new_server_call_meta(
        f"/{SERVICE}/PingStream",
        StreamServerInfo(f"/{SERVICE}/PingStream", client_streams, server_streams),
        None,
    )
    assert client.typ is expected
    assert server.typ is expected
    assert client.is_client and not server.is_client


def test_server_call_meta_unary():
    meta = new_server_call_meta(f"/{SERVICE}/Ping", None, None)
    assert meta == CallMeta(service=SERVICE, method="Ping", typ=GRPCType.UNARY)


def test_call_meta_type_text_values():
    unary = new_client_call_meta(f"/{SERVICE}/Ping", None, None)
    listing = new_server_call_meta(
        f"/{SERVICE}/PingList",
        StreamServerInfo(f"/{SERVICE}/PingList", False, True),
        None,
    )
    assert unary.typ.value == "unary"
    assert str(listing.typ) == "server_stream"


def test_unary_server_info_defaults():
    info = UnaryServerInfo(full_method="FakeMethod")
    assert info.full_method == "FakeMethod"
    assert info.server is None