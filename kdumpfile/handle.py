"""Kdumpfile, the handle for one open dump

A Kdumpfile owns a libkdumpfile context for as long as it's open, along with
the Python file object the context reads from and the resolver callable the
context calls back into.

"""
from __future__ import annotations
from kdumpfile.attr import AttrValue, attr_to_object
from kdumpfile.engine import DumpEngine
from kdumpfile.exceptions import (
    KdumpfileException,
    SysErrException,
    InvalidException,
    ShortReadError,
)
from kdumpfile.status import Status, exception_map
import contextlib
import enum
import typing as t
import logging
logger = logging.getLogger(__name__)

__all__ = [
    "ADDRSPACE",
    "KDUMP_KPHYSADDR",
    "KDUMP_MACHPHYSADDR",
    "KDUMP_KVADDR",
    "KDUMP_XENVADDR",
    "Kdumpfile",
    "open",
]

class ADDRSPACE(enum.IntEnum):
    "How `Kdumpfile.read` interprets an address; checked against kdumpfile.h by ffibuilder.py"
    KPHYSADDR = 0 # kernel physical address
    MACHPHYSADDR = 1 # machine (hypervisor) physical address
    KVADDR = 2 # kernel virtual address
    XENVADDR = 3 # Xen virtual address

KDUMP_KPHYSADDR = ADDRSPACE.KPHYSADDR
KDUMP_MACHPHYSADDR = ADDRSPACE.MACHPHYSADDR
KDUMP_KVADDR = ADDRSPACE.KVADDR
KDUMP_XENVADDR = ADDRSPACE.XENVADDR

_ADDR_MAX = 2**64 - 1
Resolver = t.Callable[[str], int]

def _default_engine() -> DumpEngine:
    # the compiled extension is only needed if we actually talk to libkdumpfile
    from kdumpfile.native import native_engine
    return native_engine

class Kdumpfile:
    """An open dump, read through libkdumpfile

    `file` must be an open, readable file object; we read the dump through its
    file descriptor, and keep a reference to it so it stays open as long as we
    do.

    libkdumpfile can't always resolve kernel symbols by itself. When it needs
    one, it calls back into `resolver`, which must be set to a callable taking
    the symbol name and returning its address. Until a resolver is set, any
    operation which needs a symbol fails with NoDataException.

    Call `close` (or use the Kdumpfile as a context manager) to release the
    libkdumpfile context deterministically; otherwise it's released when the
    Kdumpfile is garbage collected.

    """
    KDUMP_KPHYSADDR = ADDRSPACE.KPHYSADDR
    KDUMP_MACHPHYSADDR = ADDRSPACE.MACHPHYSADDR
    KDUMP_KVADDR = ADDRSPACE.KVADDR
    KDUMP_XENVADDR = ADDRSPACE.XENVADDR

    _ctx: t.Any = None
    file: t.Any = None
    _resolver: t.Optional[Resolver] = None

    def __init__(self, file: t.Any, engine: t.Optional[DumpEngine]=None) -> None:
        if not callable(getattr(file, 'fileno', None)):
            raise TypeError("file must be an open file object, not", file)
        fd = file.fileno()
        self.engine = engine if engine is not None else _default_engine()
        self._callback_errors: t.List[t.List[BaseException]] = []
        ctx = self.engine.alloc_ctx()
        if ctx is None:
            raise MemoryError("Couldn't allocate kdump context")
        try:
            status = self.engine.init_ctx(ctx)
            if status != Status.OK:
                raise SysErrException("Couldn't initialize kdump context: "
                                      + self.engine.err_str(ctx))
            status = self.engine.set_fd(ctx, fd)
            if status != Status.OK:
                raise exception_map(status)("Cannot open dump: " + self.engine.err_str(ctx))
        except BaseException:
            self.engine.free(ctx)
            raise
        self.file = file
        self._resolver = None
        self.engine.install_symbol_callback(ctx)
        self.engine.set_priv(ctx, self)
        self._ctx = ctx
        logger.debug("opened %s", self)

    def close(self) -> None:
        "Release the libkdumpfile context, then the file; does nothing if already closed"
        if self._ctx is None:
            return
        if self._callback_errors:
            # a resolver is running inside one of our calls, which still needs the context
            raise InvalidException("Kdumpfile is in use")
        ctx, self._ctx = self._ctx, None
        logger.debug("closing %s", self)
        self.engine.free(ctx)
        self.file = None
        self._resolver = None

    def __del__(self) -> None:
        self.close()

    def __enter__(self) -> Kdumpfile:
        return self

    def __exit__(self, *args, **kwargs) -> None:
        self.close()

    @property
    def closed(self) -> bool:
        return self._ctx is None

    def _validate(self) -> t.Any:
        if self._ctx is None:
            raise InvalidException("Kdumpfile is closed")
        return self._ctx

    def __str__(self) -> str:
        if self._ctx is None:
            return "Kdumpfile(closed)"
        return f"Kdumpfile({self.file!r})"

    def __repr__(self) -> str:
        return str(self)

    #### The symbol resolution bridge ####
    @property
    def resolver(self) -> t.Optional[Resolver]:
        "The callable libkdumpfile uses to look up symbol addresses, or None"
        return self._resolver

    @resolver.setter
    def resolver(self, resolver: Resolver) -> None:
        if not callable(resolver):
            raise TypeError("resolver must be callable, not", resolver)
        self._resolver = resolver

    @resolver.deleter
    def resolver(self) -> None:
        self._resolver = None

    def get_symbol_val(self, name: str) -> t.Tuple[Status, int]:
        """Resolve a symbol on behalf of libkdumpfile

        The engine calls this from inside one of its own functions, so we
        never raise; failures are reported to the engine as Status.NODATA, and
        the exception describing the failure is held until the engine returns,
        so that the failure we raise from the outer call can be chained to it.

        """
        if self._resolver is None:
            return self._callback_failed(name, LookupError("symbol resolver not set", name))
        try:
            ret = self._resolver(name)
        except BaseException as exn:
            return self._callback_failed(name, exn)
        if not isinstance(ret, int):
            return self._callback_failed(name, TypeError(
                "symbol resolver returned a non-integer", name, ret))
        if not (0 <= ret <= _ADDR_MAX):
            return self._callback_failed(name, OverflowError(
                "symbol resolver returned an address out of range", name, ret))
        logger.debug("get_symbol_val(%s) -> %s", name, hex(ret))
        return Status.OK, ret

    def _callback_failed(self, name: str, exn: BaseException) -> t.Tuple[Status, int]:
        logger.debug("get_symbol_val(%s) failed: %s", name, exn)
        if self._callback_errors:
            self._callback_errors[-1].append(exn)
        else:
            logger.warning("symbol lookup for %s failed outside of any call: %s", name, exn)
        return Status.NODATA, 0

    @contextlib.contextmanager
    def _native_call(self) -> t.Iterator[t.List[BaseException]]:
        """Collect exceptions from callbacks made while the engine is running

        Resolvers can call back into this Kdumpfile, so each call gets its own
        list, and nested calls don't see each other's failures.

        """
        errors: t.List[BaseException] = []
        self._callback_errors.append(errors)
        try:
            yield errors
        finally:
            self._callback_errors.pop()

    def _raise_for_status(self, status: Status, errors: t.List[BaseException], message: str) -> None:
        if status == Status.OK:
            return
        exc = exception_map(status)(message)
        if errors:
            cause = errors[-1]
            if not isinstance(cause, Exception):
                # don't turn KeyboardInterrupt and friends into a NoDataException
                raise cause
            raise exc from cause
        raise exc

    #### Operations ####
    def read(self, addrspace: int, address: int, size: int) -> bytes:
        """Read exactly `size` bytes starting at `address` in `addrspace`

        `addrspace` is one of the ADDRSPACE constants. If libkdumpfile can
        give us fewer than `size` bytes, we raise ShortReadError rather than
        returning the partial data.

        """
        ctx = self._validate()
        if size <= 0:
            raise ValueError("Zero size buffer" if size == 0 else f"negative size {size}")
        if not (0 <= address <= _ADDR_MAX):
            raise ValueError(f"address out of range: {address}")
        buf = bytearray(size)
        with self._native_call() as errors:
            status, count = self.engine.readp(ctx, addrspace, address, buf)
            logger.debug("readp(%s, %s, %d) -> %s, %d", addrspace, hex(address), size, status, count)
            self._raise_for_status(status, errors, self.engine.err_str(ctx))
        if count != size:
            raise ShortReadError(size, count, self.engine.err_str(ctx))
        return bytes(buf)

    def attr(self, name: str) -> t.Optional[AttrValue]:
        """Look up the attribute `name` and convert it to a Python value

        Returns None if the attribute can't be looked up, for whatever
        reason; that includes failures to enumerate one of the directories
        below it.

        """
        ctx = self._validate()
        with self._native_call():
            status, raw = self.engine.get_attr(ctx, name)
            logger.debug("get_attr(%s) -> %s", name, status)
            if status != Status.OK or raw is None:
                return None
            try:
                return attr_to_object(self.engine, ctx, raw)
            except KdumpfileException as exn:
                logger.debug("get_attr(%s): conversion failed: %s", name, exn)
                return None

    def vtop_init(self) -> None:
        "Initialize virtual-to-physical address translation"
        ctx = self._validate()
        with self._native_call() as errors:
            status = self.engine.vtop_init(ctx)
            logger.debug("vtop_init() -> %s", status)
            self._raise_for_status(status, errors, "Cannot initialize vtop: " + self.engine.err_str(ctx))

def open(file: t.Any, engine: t.Optional[DumpEngine]=None) -> Kdumpfile:
    "Open the dump readable from `file`; see Kdumpfile"
    return Kdumpfile(file, engine)
