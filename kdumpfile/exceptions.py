"""Exceptions raised by kdumpfile

Each failure status libkdumpfile can return has its own exception class here;
`kdumpfile.status.exception_map` picks the right one for a status.

"""
from __future__ import annotations

__all__ = [
    "KdumpfileException",
    "SysErrException",
    "UnsupportedException",
    "NoDataException",
    "DataErrException",
    "InvalidException",
    "NoKeyException",
    "EOFException",
    "KdumpfileInternalError",
    "ShortReadError",
]

class KdumpfileException(Exception):
    "Base class for failure statuses returned by libkdumpfile"
    pass

class SysErrException(KdumpfileException):
    "An OS-level error occured inside libkdumpfile; see errno"
    pass

class UnsupportedException(KdumpfileException):
    "The dump format or requested feature isn't supported by libkdumpfile"
    pass

class NoDataException(KdumpfileException):
    """The requested data isn't stored in the dump

    This is also what we get when libkdumpfile needed a symbol resolved and our
    resolver couldn't provide it; the resolver's own exception, if any, is the
    `__cause__`.

    """
    pass

class DataErrException(KdumpfileException):
    "The dump contains corrupted data"
    pass

class InvalidException(KdumpfileException):
    "An invalid value or state was passed to libkdumpfile"
    pass

class NoKeyException(KdumpfileException):
    "No such attribute key"
    pass

class EOFException(KdumpfileException):
    "Unexpected end of file while reading the dump"
    pass

class KdumpfileInternalError(RuntimeError):
    """libkdumpfile broke its contract with us, or we broke ours with it

    For example, an attribute came back with a type tag we don't know, or
    someone tried to raise an exception for a successful status.

    """
    pass

class ShortReadError(OSError):
    "libkdumpfile reported success but filled fewer bytes than we asked for"
    def __init__(self, requested: int, actual: int, detail: str) -> None:
        super().__init__(f"Got {actual} bytes, expected {requested} bytes: {detail}")
        self.requested = requested
        self.actual = actual
        self.detail = detail
