"""Python interface to libkdumpfile

libkdumpfile reads kernel crash dumps (kdump compressed, ELF, and friends).
This package lets Python code open a dump, read memory from it, and look at
the attributes libkdumpfile knows about the dump.

## `Kdumpfile`

The entry point is `kdumpfile.open`, or equivalently the `Kdumpfile`
constructor, which takes an open, readable file object:

    with open("vmcore", "rb") as f:
        dump = kdumpfile.open(f)

One `Kdumpfile` exists for each open dump, and it owns the underlying
libkdumpfile context; `Kdumpfile.close` releases it.

## Reading memory

`Kdumpfile.read` takes an address space (one of the `ADDRSPACE` constants),
an address, and a size, and returns exactly that many bytes.
If libkdumpfile can only supply part of the range, the read fails with
`ShortReadError`; partial data is never returned.

## Attributes

`Kdumpfile.attr` looks up an attribute by name and converts it to a Python
value: numbers and addresses become `int`, strings become `str`, and
directories become `dict`s of converted children.
A lookup that fails for any reason returns `None`.

## Symbol resolution

Some operations (for example, virtual-to-physical translation set up by
`Kdumpfile.vtop_init`) need kernel symbol addresses libkdumpfile can't find
by itself. Set `Kdumpfile.resolver` to a callable mapping symbol names to
addresses; libkdumpfile will call it, synchronously, whenever it needs a
symbol. If no resolver is set, or it fails, the operation fails with
`NoDataException`, chained to whatever went wrong in the resolver.

## Engines

`Kdumpfile` talks to libkdumpfile through a `kdumpfile.engine.DumpEngine`.
By default that's `kdumpfile.native.native_engine`, which calls the C library
through cffi; only that module needs the compiled extension.

"""
from kdumpfile.handle import (
    Kdumpfile, open,
    ADDRSPACE,
    KDUMP_KPHYSADDR, KDUMP_MACHPHYSADDR, KDUMP_KVADDR, KDUMP_XENVADDR,
)
from kdumpfile.status import Status
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
    ShortReadError,
)

__all__ = [
    'Kdumpfile', 'open',
    'ADDRSPACE',
    'KDUMP_KPHYSADDR', 'KDUMP_MACHPHYSADDR', 'KDUMP_KVADDR', 'KDUMP_XENVADDR',
    'Status',
    'KdumpfileException',
    'SysErrException', 'UnsupportedException', 'NoDataException', 'DataErrException',
    'InvalidException', 'NoKeyException', 'EOFException',
    'KdumpfileInternalError', 'ShortReadError',
]
