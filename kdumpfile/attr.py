"""Conversion of libkdumpfile attributes to Python values

libkdumpfile describes a dump with a tree of attributes: numbers, addresses,
strings, and directories of further attributes. We convert a whole subtree at
once into plain Python values; ints, strs, and dicts keyed by child name.
Nothing about the attribute survives the conversion, so each lookup produces
fresh objects.

"""
from __future__ import annotations
from dataclasses import dataclass
from kdumpfile.engine import DumpEngine, RawAttr
from kdumpfile.exceptions import KdumpfileInternalError
from kdumpfile.status import raise_if_error
import enum
import typing as t
import logging
logger = logging.getLogger(__name__)

__all__ = [
    "AttrType",
    "Number",
    "Address",
    "String",
    "Directory",
    "Attribute",
    "AttrValue",
    "to_attribute",
    "attr_to_object",
]

class AttrType(enum.IntEnum):
    # checked against kdumpfile.h by ffibuilder.py
    DIRECTORY = 1
    NUMBER = 2
    ADDRESS = 3
    STRING = 4

@dataclass(frozen=True)
class Number:
    value: int

@dataclass(frozen=True)
class Address:
    value: int

@dataclass(frozen=True)
class String:
    value: str

@dataclass(frozen=True)
class Directory:
    "A directory; its children are only reachable by enumerating `raw` through the engine"
    raw: RawAttr

Attribute = t.Union[Number, Address, String, Directory]
AttrValue = t.Union[int, str, t.Dict[str, t.Any]]

def to_attribute(raw: RawAttr) -> Attribute:
    "Check the engine's type tag and wrap the value in the matching Attribute"
    try:
        tag = AttrType(raw.type)
    except ValueError:
        raise KdumpfileInternalError(f"Unhandled attr type {raw.type!r}") from None
    if tag == AttrType.NUMBER:
        return Number(int(raw.value))
    elif tag == AttrType.ADDRESS:
        return Address(int(raw.value))
    elif tag == AttrType.STRING:
        return String(str(raw.value))
    else:
        return Directory(raw)

def _dir_to_dict(engine: DumpEngine, ctx: t.Any, attr: Directory) -> t.Dict[str, AttrValue]:
    ret: t.Dict[str, AttrValue] = {}
    failure: t.List[BaseException] = []
    def convert_child(key: str, child: RawAttr) -> int:
        # we're inside the engine's call stack here, so stash the exception
        # and tell the engine to stop, rather than raising through it
        try:
            ret[key] = attr_to_object(engine, ctx, child)
        except BaseException as exn:
            failure.append(exn)
            return 1
        return 0
    status = engine.enum_attr_val(ctx, attr.raw, convert_child)
    if failure:
        raise failure[0]
    raise_if_error(status, engine.err_str(ctx))
    return ret

def attr_to_object(engine: DumpEngine, ctx: t.Any, raw: RawAttr) -> AttrValue:
    """Recursively convert this attribute into a Python value

    Numbers and addresses become ints, strings become strs, and directories
    become dicts from child name to converted child, in the order the engine
    enumerated them.

    If any child fails to convert, the whole conversion fails with that
    child's exception. If the engine fails to enumerate a directory, we raise
    the corresponding KdumpfileException.

    """
    attr = to_attribute(raw)
    if isinstance(attr, (Number, Address, String)):
        return attr.value
    else:
        return _dir_to_dict(engine, ctx, attr)
