"`kdump_status` and its translation to exceptions"
from __future__ import annotations
from kdumpfile.exceptions import (
    KdumpfileException,
    SysErrException,
    UnsupportedException,
    NoDataException,
    DataErrException,
    InvalidException,
    NoKeyException,
    EOFException,
    KdumpfileInternalError,
)
import enum
import typing as t

__all__ = [
    "Status",
    "exception_map",
    "raise_if_error",
]

class Status(enum.IntEnum):
    # these values are checked against kdumpfile.h by ffibuilder.py
    OK = 0
    SYSERR = 1
    UNSUPPORTED = 2
    NODATA = 3
    DATAERR = 4
    INVALID = 5
    NOKEY = 6
    EOF = 7

_exceptions: t.Dict[Status, t.Type[KdumpfileException]] = {
    Status.SYSERR: SysErrException,
    Status.UNSUPPORTED: UnsupportedException,
    Status.NODATA: NoDataException,
    Status.DATAERR: DataErrException,
    Status.INVALID: InvalidException,
    Status.NOKEY: NoKeyException,
    Status.EOF: EOFException,
}

def exception_map(status: int) -> t.Type[KdumpfileException]:
    """Return the exception class for this failure status

    Asking for the exception of `Status.OK`, or of a status libkdumpfile
    doesn't define, is a bug in the caller, and raises KdumpfileInternalError.

    """
    try:
        return _exceptions[Status(status)]
    except (KeyError, ValueError):
        raise KdumpfileInternalError(f"no exception for status {status!r}") from None

def raise_if_error(status: int, message: str) -> None:
    "Raise the mapped exception with `message` if `status` isn't `Status.OK`"
    if status != Status.OK:
        raise exception_map(status)(message)
