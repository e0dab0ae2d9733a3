"""
The Host Binding contract: everything the SLAT interpreter and marshaller need
from a live, reflection-capable object system.

Host values are plain Python objects. `None` is the host's null object, `VOID`
stands for "no value" (a void call), and `Char` marks a single character for
hosts that distinguish characters from strings.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Sequence


class _Void:
    """Singleton result of a call that produced no value."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "VOID"

    def __bool__(self):
        return False


VOID = _Void()

# Uniform per-argument overload hint; hosts disambiguate by name and arity.
PLACEHOLDER_HINT = "*"


class Char(str):
    """A host character value (marshalled as its code point)."""
    def __new__(cls, value):
        if isinstance(value, int):
            value = chr(value)
        if len(value) != 1:
            raise ValueError("Char must hold exactly one character")
        return super().__new__(cls, value)

    def __repr__(self) -> str:
        return f"Char({str.__repr__(self)})"


class Pin:
    """A session-lifetime reference that keeps a host object reachable."""
    __slots__ = ("value",)

    def __init__(self, value: Any):
        self.value = value

    def __repr__(self) -> str:
        return f"<Pin {type(self.value).__name__}>"


class LoadedClassType(Enum):
    CLASS = "CLASS"
    INTERFACE = "INTERFACE"
    ENUM = "ENUM"
    ANNOTATION = "ANNOTATION"
    UNRESOLVED = "UNRESOLVED"


@dataclass(frozen=True)
class FieldInfo:
    """A field as reported by the host: its name, declared type and lookup signature."""
    name: str
    type_name: str
    signature: str


@dataclass(frozen=True)
class LoadedClass:
    class_type: LoadedClassType
    class_name: str
    is_loaded: bool


@dataclass(frozen=True)
class ThreadInfo:
    name: str
    is_daemon: bool
    stack_trace: str


class HostBinding(ABC):
    """The required base class for any object system driven by the SLAT interpreter.

    Signature lookups return None when nothing (or nothing unambiguous) matches;
    the interpreter turns that into NoSuchField/NoSuchMethod. Failures of the
    object system itself are raised as HostBindingError.
    """

    # Separator between package segments in host-internal class names.
    separator: str = "."

    # --- Classes ---

    @abstractmethod
    def class_exists(self, fully_qualified_name: str) -> bool: raise NotImplementedError

    # --- Fields ---

    @abstractmethod
    def static_field_signature(self, class_name: str, field_name: str) -> Optional[str]: raise NotImplementedError
    @abstractmethod
    def instance_field_signature(self, obj: Any, field_name: str) -> Optional[str]: raise NotImplementedError
    @abstractmethod
    def get_static_field(self, class_name: str, field_name: str, signature: str) -> Any: raise NotImplementedError
    @abstractmethod
    def get_field(self, obj: Any, field_name: str, signature: str) -> Any: raise NotImplementedError

    # --- Methods ---

    @abstractmethod
    def static_method_signature(self, class_name: str, method_name: str, arg_type_hints: Sequence[str]) -> Optional[str]:
        raise NotImplementedError
    @abstractmethod
    def instance_method_signature(self, obj: Any, method_name: str, arg_type_hints: Sequence[str]) -> Optional[str]:
        raise NotImplementedError
    @abstractmethod
    def call_static_method(self, class_name: str, method_name: str, signature: str, args: List[Any]) -> Any:
        raise NotImplementedError
    @abstractmethod
    def call_method(self, obj: Any, method_name: str, signature: str, args: List[Any]) -> Any:
        raise NotImplementedError

    # --- Lists ---

    @abstractmethod
    def is_list_like(self, value: Any) -> bool: raise NotImplementedError
    @abstractmethod
    def list_as_indexable(self, value: Any) -> Sequence[Any]: raise NotImplementedError

    # --- Enumeration ---

    @abstractmethod
    def static_fields(self, class_name: str) -> List[FieldInfo]: raise NotImplementedError
    @abstractmethod
    def instance_fields(self, obj: Any) -> List[FieldInfo]: raise NotImplementedError

    def loaded_classes(self) -> List[LoadedClass]:
        return []

    def threads(self) -> List[ThreadInfo]:
        return []

    # --- Values ---

    def pin(self, obj: Any) -> Pin:
        return Pin(obj)

    def type_name(self, value: Any) -> str:
        cls = type(value)
        if cls.__module__ == "builtins":
            return cls.__qualname__
        return f"{cls.__module__}.{cls.__qualname__}"

    def is_primitive(self, value: Any) -> bool:
        return value is VOID or isinstance(value, (bool, int, float, Char))

    def type_hint(self, value: Any) -> str:
        return PLACEHOLDER_HINT

    def internal_name(self, dotted_name: str) -> str:
        """Converts a dotted class name to this host's addressing form."""
        return dotted_name.replace(".", self.separator)
