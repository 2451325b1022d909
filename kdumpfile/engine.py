"""The lowest-level interface to a dump analysis engine

A DumpEngine is a thin, stateless veneer over the libkdumpfile C API: each
method corresponds to one C function, takes the opaque context as its first
argument, and returns statuses instead of raising. Turning statuses into
exceptions, and keeping track of who owns what, is the job of
`kdumpfile.handle.Kdumpfile`.

The production implementation is `kdumpfile.native.CffiEngine`. Keeping the
interface separate lets a Kdumpfile run unchanged against anything else that
behaves like libkdumpfile, such as the in-memory engine used by the tests.

"""
from __future__ import annotations
from dataclasses import dataclass
from kdumpfile.status import Status
import abc
import typing as t
if t.TYPE_CHECKING:
    from kdumpfile.handle import Kdumpfile

__all__ = [
    "RawAttr",
    "EnumAttrCallback",
    "DumpEngine",
]

@dataclass(frozen=True)
class RawAttr:
    """An attribute as the engine handed it to us

    `type` is the engine's tag, which may be anything at all; `value` is an
    int, a str, or, for directories, an engine-specific token which can only
    be passed back to `DumpEngine.enum_attr_val`.

    RawAttrs for directory children are only valid for the duration of the
    enumeration callback which received them.

    """
    type: int
    value: t.Any

EnumAttrCallback = t.Callable[[str, RawAttr], int]
"Called for each child of a directory; returning non-zero stops the enumeration"

class DumpEngine:
    "The operations we need from libkdumpfile, one method per C function"
    @abc.abstractmethod
    def alloc_ctx(self) -> t.Any:
        "Allocate a new context, returning None if we're out of memory"
        pass

    @abc.abstractmethod
    def init_ctx(self, ctx: t.Any) -> Status:
        pass

    @abc.abstractmethod
    def free(self, ctx: t.Any) -> None:
        "Release the context; it can't be used afterwards"
        pass

    @abc.abstractmethod
    def err_str(self, ctx: t.Any) -> str:
        "Return the diagnostic string for the most recent failure on this context"
        pass

    @abc.abstractmethod
    def set_fd(self, ctx: t.Any, fd: int) -> Status:
        "Start reading the dump from this file descriptor"
        pass

    @abc.abstractmethod
    def set_priv(self, ctx: t.Any, owner: Kdumpfile) -> None:
        """Store a back-reference from the context to the Kdumpfile that owns it

        The engine must not keep `owner` alive through this reference.

        """
        pass

    @abc.abstractmethod
    def get_priv(self, ctx: t.Any) -> t.Optional[Kdumpfile]:
        "Return the owner stored with set_priv, or None if it's gone"
        pass

    @abc.abstractmethod
    def install_symbol_callback(self, ctx: t.Any) -> None:
        """Make the engine resolve symbols through the context's owner

        Whenever the engine needs a symbol's address, it must call
        `get_priv(ctx).get_symbol_val(name)`, synchronously, and use the
        returned status and address.

        """
        pass

    @abc.abstractmethod
    def readp(self, ctx: t.Any, addrspace: int, addr: int, buf: bytearray) -> t.Tuple[Status, int]:
        """Fill up to len(buf) bytes of buf from addr in addrspace

        Returns the status and the number of bytes actually filled in.

        """
        pass

    @abc.abstractmethod
    def get_attr(self, ctx: t.Any, name: str) -> t.Tuple[Status, t.Optional[RawAttr]]:
        pass

    @abc.abstractmethod
    def enum_attr_val(self, ctx: t.Any, attr: RawAttr, callback: EnumAttrCallback) -> Status:
        """Call callback with the name and value of each child of the directory attr

        The engine stops early if the callback returns non-zero; the status
        returned in that case doesn't matter, since the callback knows why it
        stopped.

        """
        pass

    @abc.abstractmethod
    def vtop_init(self, ctx: t.Any) -> Status:
        "Initialize virtual-to-physical address translation"
        pass
