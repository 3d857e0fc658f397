"""Status codes and errors carried by remote calls."""

from __future__ import annotations

import enum


class Code(enum.IntEnum):
    """Canonical remote-call status codes."""

    OK = 0
    CANCELED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16

    def __str__(self) -> str:
        if self is Code.OK:
            return "OK"
        return "".join(part.capitalize() for part in self.name.split("_"))

    def __format__(self, spec: str) -> str:
        return format(str(self), spec)


class StatusError(Exception):
    """An error that carries a status code and a description."""

    def __init__(self, code: Code | int, message: str = "") -> None:
        super().__init__(code, message)
        self.code = Code(code)
        self.message = message

    def __str__(self) -> str:
        return f"rpc error: code = {self.code} desc = {self.message}"


class EndOfStream(Exception):
    """Raised by a stream when no more messages will arrive."""

    def __init__(self, message: str = "EOF") -> None:
        super().__init__(message)


def code_of(err: BaseException | None) -> Code:
    """Return the status code of an error; None means success."""
    if err is None:
        return Code.OK
    if isinstance(err, StatusError):
        return err.code
    return Code.UNKNOWN