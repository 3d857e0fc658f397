"""Descriptions of a remote call: its kind, service and method."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any


class GRPCType(str, enum.Enum):
    """The shape of a call."""

    UNARY = "unary"
    CLIENT_STREAM = "client_stream"
    SERVER_STREAM = "server_stream"
    BIDI_STREAM = "bidi_stream"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class StreamDesc:
    """Client-side description of a streaming call."""

    client_streams: bool = False
    server_streams: bool = False


@dataclass(frozen=True)
class StreamServerInfo:
    """Server-side description of a streaming call."""

    full_method: str = ""
    is_client_stream: bool = False
    is_server_stream: bool = False


@dataclass(frozen=True)
class UnaryServerInfo:
    """Server-side description of a unary call."""

    full_method: str = ""
    server: Any = None


@dataclass(frozen=True)
class CallMeta:
    """What an interceptor knows about the call it wraps."""

    service: str
    method: str
    typ: GRPCType = GRPCType.UNARY
    is_client: bool = False
    request: Any = None

    def full_method(self) -> str:
        return f"/{self.service}/{self.method}"


def split_full_method_name(full_method: str) -> tuple[str, str]:
    """Split ``/service/method`` into its service and method parts."""
    if full_method.startswith("/"):
        full_method = full_method[1:]
    service, sep, method = full_method.partition("/")
    if not sep:
        return "unknown", "unknown"
    return service, method


def _stream_type(client_streams: bool, server_streams: bool) -> GRPCType:
    if client_streams and not server_streams:
        return GRPCType.CLIENT_STREAM
    if server_streams and not client_streams:
        return GRPCType.SERVER_STREAM
    return GRPCType.BIDI_STREAM


def new_client_call_meta(
    full_method: str, stream_desc: StreamDesc | None, request: Any
) -> CallMeta:
    """Describe a call made by a client; no stream description means unary."""
    typ = GRPCType.UNARY
    if stream_desc is not None:
        typ = _stream_type(stream_desc.client_streams, stream_desc.server_streams)
    service, method = split_full_method_name(full_method)
    return CallMeta(
        service=service, method=method, typ=typ, is_client=True, request=request
    )


def new_server_call_meta(
    full_method: str, stream_info: StreamServerInfo | None, request: Any
) -> CallMeta:
    """Describe a call handled by a server; no stream info means unary."""
    typ = GRPCType.UNARY
    if stream_info is not None:
        typ = _stream_type(stream_info.is_client_stream, stream_info.is_server_stream)
    service, method = split_full_method_name(full_method)
    return CallMeta(
        service=service, method=method, typ=typ, is_client=False, request=request
    )