"""Logging fields, levels and the logger interface used by logging interceptors.

Fields are key/value pairs flattened into one list: ``["key1", value1,
"key2", value2, ...]``. The logging interceptors put call-scoped fields,
such as the service and method names, into the request context. From there
they are attached to every log line. :func:`extract_fields` reads them back
and :func:`inject_fields` adds to them.

Field names follow OpenTracing semantic conventions, with a ``grpc.``
prefix where needed.
"""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable, Iterator
from typing import Any, Protocol

from rpcware.calls import CallMeta
from rpcware.context import Context

SYSTEM_TAG: tuple[str, str] = ("protocol", "grpc")
COMPONENT_FIELD_KEY = "grpc.component"
KIND_SERVER_FIELD_VALUE = "server"
KIND_CLIENT_FIELD_VALUE = "client"
SERVICE_FIELD_KEY = "grpc.service"
METHOD_FIELD_KEY = "grpc.method"
METHOD_TYPE_FIELD_KEY = "grpc.method_type"


class _FieldsKey:
    """Context key under which logging fields are stored."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "<logging fields>"


_FIELDS_KEY = _FieldsKey()


class Level(enum.IntEnum):
    """Severity of a log event; larger is more severe."""

    DEBUG = -4
    INFO = 0
    WARN = 4
    ERROR = 8


class Fields(list):
    """Key/value pairs flattened into a list; keys are strings."""

    def pairs(self) -> Iterator[tuple[str, Any]]:
        """Yield ``(key, value)`` pairs.

        A trailing key without a value is paired with an empty string.
        Raises TypeError when a key is not a string.
        """
        for index in range(0, len(self), 2):
            key = self[index]
            if not isinstance(key, str):
                raise TypeError(f"field key must be a string, got {key!r}")
            value = self[index + 1] if index + 1 < len(self) else ""
            yield key, value

    def _keys(self) -> set[str]:
        return {key for key, _ in self.pairs()}

    def delete(self, key: str) -> None:
        """Remove the first pair with the given key, in place."""
        for position, (field_key, _) in enumerate(self.pairs()):
            if field_key == key:
                start = position * 2
                del self[start : start + 2]
                return

    def with_unique(self, add: Iterable[Any]) -> Fields:
        """Return a copy extended with the pairs of ``add`` whose keys are new.

        Keys already present here take precedence over those in ``add``.
        """
        result = Fields(self)
        add = Fields(add)
        if not add:
            return result
        existing = self._keys()
        for key, value in add.pairs():
            if key not in existing:
                result.extend((key, value))
        return result

    def append_unique(self, add: Iterable[Any]) -> Fields:
        """Return these fields followed by the pairs of ``add`` not yet present.

        Unlike :meth:`with_unique`, duplicates within ``add`` are dropped too:
        the first occurrence wins.
        """
        result = Fields(self)
        seen = result._keys()
        for key, value in Fields(add).pairs():
            if key in seen:
                continue
            seen.add(key)
            result.extend((key, value))
        return result


def new_common_fields(kind: str, call_meta: CallMeta) -> Fields:
    """Return the standard fields describing a call."""
    return Fields(
        [
            SYSTEM_TAG[0],
            SYSTEM_TAG[1],
            COMPONENT_FIELD_KEY,
            kind,
            SERVICE_FIELD_KEY,
            call_meta.service,
            METHOD_FIELD_KEY,
            call_meta.method,
            METHOD_TYPE_FIELD_KEY,
            str(call_meta.typ),
        ]
    )


def disable_common_logging_fields(
    kind: str, call_meta: CallMeta, disable_fields: Iterable[str]
) -> Fields:
    """Return the standard call fields without the given keys."""
    fields = new_common_fields(kind, call_meta)
    for key in disable_fields:
        fields.delete(key)
    return fields


def extract_fields(ctx: Context) -> Fields:
    """Return a copy of the logging fields stored in ``ctx``; empty if none."""
    stored = ctx.value(_FIELDS_KEY)
    if not isinstance(stored, Fields):
        return Fields()
    return Fields(stored)


def inject_fields(ctx: Context, fields: Iterable[Any]) -> Context:
    """Return a child context whose logging fields include ``fields``.

    On duplicate keys the newly injected value wins.
    """
    return ctx.with_value(_FIELDS_KEY, Fields(fields).with_unique(extract_fields(ctx)))


def inject_log_field(ctx: Context, key: str, value: Any) -> Context:
    """Like :func:`inject_fields`, for a single field."""
    return inject_fields(ctx, Fields([key, value]))


class Logger(Protocol):
    """What the logging interceptors write to."""

    def log(self, ctx: Context, level: Level, msg: str, *fields: Any) -> None: ...


class LoggerFunc:
    """Adapts a plain function to the :class:`Logger` interface."""

    def __init__(self, fn: Callable[..., None]) -> None:
        self._fn = fn

    def log(self, ctx: Context, level: Level, msg: str, *args: Any) -> None:
        self._fn(ctx, level, msg, *args)

    def __call__(self, ctx: Context, level: Level, msg: str, *args: Any) -> None:
        self.log(ctx, level, msg, *args)