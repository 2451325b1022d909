"An in-memory DumpEngine which behaves like libkdumpfile, for tests"
from __future__ import annotations
from dataclasses import dataclass, field
from kdumpfile.attr import AttrType
from kdumpfile.engine import DumpEngine, RawAttr, EnumAttrCallback
from kdumpfile.status import Status
import typing as t
import weakref

# attribute trees are written as nested (tag, value) pairs; a directory's
# value is a list of (name, (tag, value)) pairs
FakeAttr = t.Tuple[int, t.Any]

def number(value: int) -> FakeAttr:
    return (AttrType.NUMBER, value)

def address(value: int) -> FakeAttr:
    return (AttrType.ADDRESS, value)

def string(value: str) -> FakeAttr:
    return (AttrType.STRING, value)

def directory(**children: FakeAttr) -> FakeAttr:
    return (AttrType.DIRECTORY, list(children.items()))

class BrokenChildren(list):
    "Directory children whose enumeration fails with DATAERR after the last child"
    pass

def broken_directory(**children: FakeAttr) -> FakeAttr:
    return (AttrType.DIRECTORY, BrokenChildren(children.items()))

@dataclass(eq=False)
class FakeContext:
    initialized: bool = False
    fd: t.Optional[int] = None
    priv: t.Any = None
    symbol_callback: bool = False
    freed: bool = False
    err: str = ""

@dataclass(eq=False)
class FakeEngine(DumpEngine):
    """Serves memory and attributes from Python data structures

    `memory` maps (addrspace, base address) to the bytes stored there; a read
    running off the end of a region is a short read. Reading a region listed
    in `symbol_regions` first asks the owner to resolve that symbol, as
    libkdumpfile does when it needs to translate an address. `vtop_init`
    resolves each of `vtop_symbols`.

    """
    memory: t.Dict[t.Tuple[int, int], bytes] = field(default_factory=dict)
    attrs: t.Dict[str, FakeAttr] = field(default_factory=dict)
    symbol_regions: t.Dict[t.Tuple[int, int], str] = field(default_factory=dict)
    vtop_symbols: t.List[str] = field(default_factory=list)
    fail_alloc: bool = False
    init_status: Status = Status.OK
    set_fd_status: Status = Status.OK
    readp_status: Status = Status.OK

    def __post_init__(self) -> None:
        self.contexts: t.List[FakeContext] = []
        self.free_count = 0
        self.readp_calls = 0
        self.resolved: t.List[t.Tuple[str, int]] = []

    def _check(self, ctx: FakeContext) -> None:
        if ctx.freed:
            raise AssertionError("use of freed context", ctx)

    def alloc_ctx(self) -> t.Optional[FakeContext]:
        if self.fail_alloc:
            return None
        ctx = FakeContext()
        self.contexts.append(ctx)
        return ctx

    def init_ctx(self, ctx: FakeContext) -> Status:
        self._check(ctx)
        if self.init_status != Status.OK:
            ctx.err = "init failed"
            return self.init_status
        ctx.initialized = True
        return Status.OK

    def free(self, ctx: FakeContext) -> None:
        self._check(ctx)
        ctx.freed = True
        self.free_count += 1

    def err_str(self, ctx: FakeContext) -> str:
        return ctx.err

    def set_fd(self, ctx: FakeContext, fd: int) -> Status:
        self._check(ctx)
        if self.set_fd_status != Status.OK:
            ctx.err = "Unknown file format"
            return self.set_fd_status
        ctx.fd = fd
        return Status.OK

    def set_priv(self, ctx: FakeContext, owner) -> None:
        ctx.priv = weakref.ref(owner)

    def get_priv(self, ctx: FakeContext):
        return ctx.priv() if ctx.priv is not None else None

    def install_symbol_callback(self, ctx: FakeContext) -> None:
        ctx.symbol_callback = True

    def _resolve(self, ctx: FakeContext, name: str) -> Status:
        owner = self.get_priv(ctx)
        if not ctx.symbol_callback or owner is None:
            ctx.err = f"Cannot resolve {name}"
            return Status.NODATA
        status, addr = owner.get_symbol_val(name)
        if status != Status.OK:
            ctx.err = f"Cannot resolve {name}"
            return status
        self.resolved.append((name, addr))
        return Status.OK

    def readp(self, ctx: FakeContext, addrspace: int, addr: int, buf: bytearray) -> t.Tuple[Status, int]:
        self._check(ctx)
        self.readp_calls += 1
        if self.readp_status != Status.OK:
            ctx.err = "Read failed"
            return self.readp_status, 0
        for (space, base), data in self.memory.items():
            if space == addrspace and base <= addr < base + len(data):
                symbol = self.symbol_regions.get((space, base))
                if symbol is not None:
                    status = self._resolve(ctx, symbol)
                    if status != Status.OK:
                        return status, 0
                chunk = data[addr - base:addr - base + len(buf)]
                buf[:len(chunk)] = chunk
                if len(chunk) < len(buf):
                    ctx.err = "Page not present"
                return Status.OK, len(chunk)
        ctx.err = f"No data at {hex(addr)}"
        return Status.NODATA, 0

    def get_attr(self, ctx: FakeContext, name: str) -> t.Tuple[Status, t.Optional[RawAttr]]:
        self._check(ctx)
        first, *rest = name.split('.')
        if first not in self.attrs:
            ctx.err = f"No such key: {name}"
            return Status.NOKEY, None
        tag, value = self.attrs[first]
        for component in rest:
            if tag != AttrType.DIRECTORY or component not in dict(value):
                ctx.err = f"No such key: {name}"
                return Status.NOKEY, None
            tag, value = dict(value)[component]
        return Status.OK, RawAttr(tag, value)

    def enum_attr_val(self, ctx: FakeContext, attr: RawAttr, callback: EnumAttrCallback) -> Status:
        self._check(ctx)
        if attr.type != AttrType.DIRECTORY:
            ctx.err = "Not a directory"
            return Status.INVALID
        for key, (tag, value) in attr.value:
            if callback(key, RawAttr(tag, value)):
                return Status.OK
        if isinstance(attr.value, BrokenChildren):
            ctx.err = "Corrupted attribute directory"
            return Status.DATAERR
        return Status.OK

    def vtop_init(self, ctx: FakeContext) -> Status:
        self._check(ctx)
        for symbol in self.vtop_symbols:
            status = self._resolve(ctx, symbol)
            if status != Status.OK:
                return status
        return Status.OK

class FakeFile:
    "Just enough of a file object for Kdumpfile"
    def __init__(self, fd: int=3) -> None:
        self.fd = fd

    def fileno(self) -> int:
        return self.fd
