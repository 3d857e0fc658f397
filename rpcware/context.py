"""Immutable request contexts.

A context carries request-scoped values, an optional deadline, the peer
address and incoming metadata through a chain of interceptors. Every
``with_*`` method returns a new context and leaves the original untouched,
so an interceptor can hand a derived context to the next one in the chain.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any


class Context:
    """Request-scoped, immutable bag of values."""

    __slots__ = ("_values", "_deadline", "_peer", "_metadata")

    def __init__(
        self,
        values: Mapping[Any, Any] | None = None,
        deadline: datetime | None = None,
        peer: str | None = None,
        metadata: Mapping[str, tuple[str, ...]] | None = None,
    ) -> None:
        self._values = dict(values or {})
        self._deadline = deadline
        self._peer = peer
        self._metadata = dict(metadata or {})

    def _derive(self, **changes: Any) -> Context:
        fields: dict[str, Any] = {
            "values": self._values,
            "deadline": self._deadline,
            "peer": self._peer,
            "metadata": self._metadata,
        }
        fields.update(changes)
        return Context(**fields)

    def with_value(self, key: Any, value: Any) -> Context:
        """Return a child context where ``key`` maps to ``value``."""
        values = dict(self._values)
        values[key] = value
        return self._derive(values=values)

    def value(self, key: Any) -> Any:
        """Return the value stored under ``key``, or None."""
        return self._values.get(key)

    def with_deadline(self, deadline: datetime) -> Context:
        """Return a child context with the given deadline."""
        return self._derive(deadline=deadline)

    @property
    def deadline(self) -> datetime | None:
        return self._deadline

    def with_peer(self, address: str) -> Context:
        """Return a child context that records the remote peer address."""
        return self._derive(peer=address)

    @property
    def peer(self) -> str | None:
        return self._peer

    def with_incoming_metadata(
        self, metadata: Mapping[str, str | Iterable[str]]
    ) -> Context:
        """Return a child context carrying the given incoming metadata.

        Keys are lower-cased; a value may be one string or several.
        """
        normalised: dict[str, tuple[str, ...]] = {}
        for key, raw in metadata.items():
            values = (raw,) if isinstance(raw, str) else tuple(raw)
            lowered = key.lower()
            normalised[lowered] = normalised.get(lowered, ()) + values
        return self._derive(metadata=normalised)

    def incoming_metadata(self) -> dict[str, list[str]]:
        """Return a copy of the incoming metadata."""
        return {key: list(values) for key, values in self._metadata.items()}


def background() -> Context:
    """Return an empty root context."""
    return Context()