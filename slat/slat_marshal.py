"""
The wire value model and the marshaller that produces it from host values.

A wire value is transport-safe: it holds only primitives, strings, class
names and nested lists. Opaque host objects are represented by their class
name; when a HandleTable is supplied they are also pinned into it so later
requests can address them by index.
"""
from __future__ import annotations

import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Tuple

from slat.slat_datatypes import HostBindingError, UnknownObjectHandle
from slat.slat_host import HostBinding, Char, Pin, VOID
from slat.slat_transformer import I64_MIN, I64_MAX


class ValueType(Enum):
    NOT_PRESENT = "NOT_PRESENT"
    NULL_OBJECT = "NULL_OBJECT"
    PRESENT = "PRESENT"


@dataclass(frozen=True)
class ObjectType:
    class_name: str


@dataclass(frozen=True)
class WireList:
    list_type: str
    items: Tuple['WireValue', ...] = ()


@dataclass(frozen=True)
class WireValue:
    """NotPresent, NullObject, or a Present value of one `kind`.

    `kind` is one of 'integer', 'decimal', 'boolean', 'string', 'object_type'
    or 'list'; `payload` holds the matching Python value, ObjectType or WireList.
    """
    value_type: ValueType
    kind: Optional[str] = None
    payload: Any = None

    KINDS = ('integer', 'decimal', 'boolean', 'string', 'object_type', 'list')

    @property
    def is_present(self) -> bool:
        return self.value_type is ValueType.PRESENT

    @classmethod
    def integer(cls, value: int) -> 'WireValue':
        return cls(ValueType.PRESENT, 'integer', int(value))

    @classmethod
    def decimal(cls, value: float) -> 'WireValue':
        return cls(ValueType.PRESENT, 'decimal', float(value))

    @classmethod
    def boolean(cls, value: bool) -> 'WireValue':
        return cls(ValueType.PRESENT, 'boolean', bool(value))

    @classmethod
    def string(cls, value: str) -> 'WireValue':
        return cls(ValueType.PRESENT, 'string', str(value))

    @classmethod
    def object_type(cls, class_name: str) -> 'WireValue':
        return cls(ValueType.PRESENT, 'object_type', ObjectType(class_name))

    @classmethod
    def list(cls, list_type: str, items) -> 'WireValue':
        return cls(ValueType.PRESENT, 'list', WireList(list_type, tuple(items)))

    def __repr__(self) -> str:
        if self.value_type is not ValueType.PRESENT:
            return f"WireValue({self.value_type.value})"
        return f"WireValue({self.kind}={self.payload!r})"


NOT_PRESENT = WireValue(ValueType.NOT_PRESENT)
NULL_OBJECT = WireValue(ValueType.NULL_OBJECT)


class HandleTable:
    """Append-only table of pinned host objects, indexed by object id."""

    def __init__(self):
        self._pins: List[Pin] = []

    def __len__(self) -> int:
        return len(self._pins)

    def append(self, pin: Pin) -> int:
        self._pins.append(pin)
        return len(self._pins) - 1

    def get(self, object_id: int) -> Any:
        if isinstance(object_id, bool) or not isinstance(object_id, int) \
                or not 0 <= object_id < len(self._pins):
            raise UnknownObjectHandle(object_id)
        return self._pins[object_id].value

    def close(self):
        """Releases every pin. Ids issued before closing are no longer valid."""
        self._pins.clear()


def to_wire(host: HostBinding, value: Any, handles: Optional[HandleTable] = None) -> WireValue:
    """Marshals a host value. Opaque objects are pinned into `handles` when given."""
    if value is VOID:
        return NOT_PRESENT
    if value is None:
        return NULL_OBJECT
    if isinstance(value, Char):
        return WireValue.integer(ord(value))
    if isinstance(value, str):
        return WireValue.string(value)
    # bool is an Integral; test it first
    if isinstance(value, bool):
        return WireValue.boolean(value)
    if isinstance(value, numbers.Integral):
        if not I64_MIN <= value <= I64_MAX:
            raise HostBindingError(f"integer value out of 64-bit range: {value}")
        return WireValue.integer(value)
    if isinstance(value, numbers.Real):
        return WireValue.decimal(value)
    if host.is_list_like(value):
        items = [to_wire(host, item, handles) for item in host.list_as_indexable(value)]
        return WireValue.list(host.type_name(value), items)

    if handles is not None:
        handles.append(host.pin(value))
    return WireValue.object_type(host.type_name(value))


def from_wire(value: WireValue) -> Any:
    """Converts a wire value back to plain Python data.

    Object types cannot be rebuilt from their class name alone and come back as
    their ObjectType descriptor.
    """
    if value.value_type is ValueType.NOT_PRESENT:
        return VOID
    if value.value_type is ValueType.NULL_OBJECT:
        return None
    match value.kind:
        case 'list':
            return [from_wire(item) for item in value.payload.items]
        case 'integer' | 'decimal' | 'boolean' | 'string' | 'object_type':
            return value.payload
        case _:
            raise ValueError(f"Unknown wire value kind: {value.kind!r}")
