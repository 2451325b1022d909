"""The DumpEngine backed by libkdumpfile itself, through cffi

libkdumpfile calls back into Python in two places: when it needs a symbol
resolved, and for each child while enumerating a directory attribute. Both are
`extern "Python"` functions defined here. Neither may let an exception escape
into the C stack; the Python-side code they call already reports failures as
return values, and `def_extern(error=...)` covers anything unexpected.

"""
from __future__ import annotations
from kdumpfile._raw import ffi, lib # type: ignore
from kdumpfile.engine import DumpEngine, RawAttr, EnumAttrCallback
from kdumpfile.exceptions import KdumpfileInternalError
from kdumpfile.status import Status
import os
import typing as t
import weakref
import logging
logger = logging.getLogger(__name__)
if t.TYPE_CHECKING:
    from kdumpfile.handle import Kdumpfile

__all__ = [
    "CffiEngine",
    "native_engine",
]

def _ctx_key(ctx) -> int:
    return int(ffi.cast('uintptr_t', ctx))

def _status(status: int) -> Status:
    try:
        return Status(status)
    except ValueError:
        raise KdumpfileInternalError(f"libkdumpfile returned unknown status {status}") from None

def _raw_attr(attr) -> RawAttr:
    "Copy a struct kdump_attr into a RawAttr; directories still point at the C struct"
    tag = int(attr.type)
    if tag == lib.kdump_number:
        return RawAttr(tag, int(attr.val.number))
    elif tag == lib.kdump_address:
        return RawAttr(tag, int(attr.val.address))
    elif tag == lib.kdump_string:
        return RawAttr(tag, os.fsdecode(ffi.string(attr.val.string)))
    else:
        # directories, and anything we don't know, which attr_to_object will reject
        return RawAttr(tag, attr)

class CffiEngine(DumpEngine):
    "Makes calls into libkdumpfile in the local process."
    def __init__(self) -> None:
        # Keeps the ffi.new_handle for each context alive; the handle wraps a
        # weakref, so the owner isn't kept alive through it.
        self._privs: t.Dict[int, t.Any] = {}

    def alloc_ctx(self) -> t.Any:
        ctx = lib.kdump_alloc_ctx()
        if ctx == ffi.NULL:
            return None
        return ctx

    def init_ctx(self, ctx) -> Status:
        return _status(lib.kdump_init_ctx(ctx))

    def free(self, ctx) -> None:
        lib.kdump_free(ctx)
        self._privs.pop(_ctx_key(ctx), None)

    def err_str(self, ctx) -> str:
        ret = lib.kdump_err_str(ctx)
        if ret == ffi.NULL:
            return ""
        return os.fsdecode(ffi.string(ret))

    def set_fd(self, ctx, fd: int) -> Status:
        return _status(lib.kdump_set_fd(ctx, fd))

    def set_priv(self, ctx, owner: Kdumpfile) -> None:
        handle = ffi.new_handle(weakref.ref(owner))
        self._privs[_ctx_key(ctx)] = handle
        lib.kdump_set_priv(ctx, handle)

    def get_priv(self, ctx) -> t.Optional[Kdumpfile]:
        data = lib.kdump_get_priv(ctx)
        if data == ffi.NULL:
            return None
        return ffi.from_handle(data)()

    def install_symbol_callback(self, ctx) -> None:
        lib.kdump_cb_get_symbol_val(ctx, lib._kdumpfile_get_symbol_val)

    def readp(self, ctx, addrspace: int, addr: int, buf: bytearray) -> t.Tuple[Status, int]:
        length = ffi.new('size_t*', len(buf))
        status = lib.kdump_readp(ctx, int(addrspace), addr, ffi.from_buffer(buf), length)
        return _status(status), length[0]

    def get_attr(self, ctx, name: str) -> t.Tuple[Status, t.Optional[RawAttr]]:
        attr = ffi.new('struct kdump_attr*')
        status = _status(lib.kdump_get_attr(ctx, os.fsencode(name), attr))
        if status != Status.OK:
            return status, None
        return status, _raw_attr(attr)

    def enum_attr_val(self, ctx, attr: RawAttr, callback: EnumAttrCallback) -> Status:
        data = ffi.new_handle(callback)
        ret = lib.kdump_enum_attr_val(ctx, attr.value, lib._kdumpfile_enum_attr, data)
        if ret not in Status.__members__.values():
            # libkdumpfile passes on our callback's non-zero return when it stops early
            return Status.INVALID
        return Status(ret)

    def vtop_init(self, ctx) -> Status:
        return _status(lib.kdump_vtop_init(ctx))

native_engine = CffiEngine()
"The engine every Kdumpfile uses unless told otherwise"

@ffi.def_extern(error=int(Status.NODATA))
def _kdumpfile_get_symbol_val(ctx, name, val) -> int:
    owner = native_engine.get_priv(ctx)
    name = os.fsdecode(ffi.string(name))
    if owner is None:
        logger.warning("symbol lookup for %s on a context with no owner", name)
        return Status.NODATA
    status, address = owner.get_symbol_val(name)
    if status == Status.OK:
        val[0] = address
    return status

@ffi.def_extern(error=1)
def _kdumpfile_enum_attr(data, key, valp) -> int:
    callback: EnumAttrCallback = ffi.from_handle(data)
    return callback(os.fsdecode(ffi.string(key)), _raw_attr(valp))
