"""
A Host Binding over the running Python process.

Classes are addressed by dotted module path (`collections.OrderedDict`,
`pkg.mod.Outer.Inner`). Python has no overloads, so a method signature
matches when the callable accepts the number of arguments supplied.
"""
from __future__ import annotations

import builtins
import collections.abc
import enum
import importlib
import inspect
import sys
import threading
import traceback
from typing import Any, List, Optional, Sequence

from slat.slat_datatypes import HostBindingError
from slat.slat_host import (
    HostBinding, FieldInfo, LoadedClass, LoadedClassType, ThreadInfo, VOID
)

_MISSING = object()


def _is_dunder(name: str) -> bool:
    return name.startswith("__") and name.endswith("__")


def _host_failure(e: BaseException) -> HostBindingError:
    return HostBindingError(f"{type(e).__name__}: {e}")


def _annotation_name(ann) -> str:
    if isinstance(ann, str):
        return ann
    if isinstance(ann, type):
        return ann.__qualname__ if ann.__module__ == "builtins" else f"{ann.__module__}.{ann.__qualname__}"
    return str(ann).replace("typing.", "")


def _is_static_field(raw) -> bool:
    """A class attribute that holds data rather than behaviour."""
    if isinstance(raw, (staticmethod, classmethod)):
        return False
    if inspect.isroutine(raw) or inspect.ismethoddescriptor(raw) or inspect.isdatadescriptor(raw):
        return False
    return True


class PythonHost(HostBinding):
    """Reflects over live Python classes and objects."""

    separator = "."

    def __init__(self):
        self._class_cache: dict[str, type] = {}

    # --- Classes ---

    def resolve_class(self, name: str) -> Optional[type]:
        cached = self._class_cache.get(name)
        if cached is not None:
            return cached
        parts = name.split(self.separator)
        if not all(parts):
            return None
        for i in range(len(parts), 0, -1):
            module_name = ".".join(parts[:i])
            try:
                obj = importlib.import_module(module_name)
            except ImportError:
                continue
            except Exception as e:
                raise _host_failure(e) from e
            for attr in parts[i:]:
                obj = getattr(obj, attr, _MISSING)
                if obj is _MISSING:
                    return None
            if not isinstance(obj, type):
                return None
            self._class_cache[name] = obj
            return obj
        # Builtin types (int, dict, ...) live outside any importable path
        obj = getattr(builtins, name, None) if len(parts) == 1 else None
        return obj if isinstance(obj, type) else None

    def _require_class(self, name: str) -> type:
        cls = self.resolve_class(name)
        if cls is None:
            raise HostBindingError(f"ClassNotFound: {name}")
        return cls

    def class_exists(self, fully_qualified_name: str) -> bool:
        return self.resolve_class(fully_qualified_name) is not None

    # --- Fields ---

    def _find_class_attr(self, cls: type, name: str):
        for klass in cls.__mro__:
            if name in vars(klass):
                return klass, vars(klass)[name]
        return None, _MISSING

    def _declared_type(self, cls: type, name: str, value: Any) -> str:
        for klass in cls.__mro__:
            ann = inspect.get_annotations(klass)
            if name in ann:
                return _annotation_name(ann[name])
        return self.type_name(value)

    def static_field_signature(self, class_name: str, field_name: str) -> Optional[str]:
        if _is_dunder(field_name):
            return None
        cls = self._require_class(class_name)
        _, raw = self._find_class_attr(cls, field_name)
        if raw is _MISSING or not _is_static_field(raw):
            return None
        return self._declared_type(cls, field_name, raw)

    def instance_field_signature(self, obj: Any, field_name: str) -> Optional[str]:
        if _is_dunder(field_name):
            return None
        cls = type(obj)
        instance_dict = getattr(obj, "__dict__", None)
        if isinstance(instance_dict, dict) and field_name in instance_dict:
            return self._declared_type(cls, field_name, instance_dict[field_name])
        _, raw = self._find_class_attr(cls, field_name)
        if raw is _MISSING:
            return None
        if isinstance(raw, property):
            return "property"
        if inspect.isdatadescriptor(raw):
            # __slots__ members
            return self._declared_type(cls, field_name, getattr(obj, field_name, None))
        if _is_static_field(raw):
            return self._declared_type(cls, field_name, raw)
        return None

    def get_static_field(self, class_name: str, field_name: str, signature: str) -> Any:
        cls = self._require_class(class_name)
        try:
            return getattr(cls, field_name)
        except Exception as e:
            raise _host_failure(e) from e

    def get_field(self, obj: Any, field_name: str, signature: str) -> Any:
        try:
            return getattr(obj, field_name)
        except Exception as e:
            raise _host_failure(e) from e

    # --- Methods ---

    def _describe(self, name: str, func, arg_count: int) -> Optional[str]:
        try:
            sig = inspect.signature(func)
        except (TypeError, ValueError):
            # Builtins without introspectable signatures are accepted as-is.
            return f"{name}(...)"
        try:
            sig.bind(*range(arg_count))
        except TypeError:
            return None
        return f"{name}{sig}"

    def static_method_signature(self, class_name: str, method_name: str, arg_type_hints: Sequence[str]) -> Optional[str]:
        cls = self._require_class(class_name)
        _, raw = self._find_class_attr(cls, method_name)
        if raw is _MISSING:
            return None
        bound = getattr(cls, method_name, _MISSING)
        if isinstance(raw, (staticmethod, classmethod)):
            return self._describe(method_name, bound, len(arg_type_hints))
        # classmethod_descriptor and friends bind to the class itself
        if (inspect.ismethod(bound) or inspect.isbuiltin(bound)) and getattr(bound, "__self__", None) is cls:
            return self._describe(method_name, bound, len(arg_type_hints))
        return None

    def instance_method_signature(self, obj: Any, method_name: str, arg_type_hints: Sequence[str]) -> Optional[str]:
        try:
            bound = getattr(obj, method_name, _MISSING)
        except Exception as e:
            raise _host_failure(e) from e
        if bound is _MISSING or not callable(bound) or isinstance(bound, type):
            return None
        return self._describe(method_name, bound, len(arg_type_hints))

    def _invoke(self, func, args: List[Any]) -> Any:
        try:
            result = func(*args)
        except Exception as e:
            raise _host_failure(e) from e
        if result is None and self._returns_void(func):
            return VOID
        return result

    def _returns_void(self, func) -> bool:
        try:
            ann = inspect.signature(func).return_annotation
        except (TypeError, ValueError):
            return False
        return ann is None or ann == "None"

    def call_static_method(self, class_name: str, method_name: str, signature: str, args: List[Any]) -> Any:
        cls = self._require_class(class_name)
        return self._invoke(getattr(cls, method_name), args)

    def call_method(self, obj: Any, method_name: str, signature: str, args: List[Any]) -> Any:
        try:
            bound = getattr(obj, method_name)
        except Exception as e:
            raise _host_failure(e) from e
        return self._invoke(bound, args)

    # --- Lists ---

    def is_list_like(self, value: Any) -> bool:
        return isinstance(value, collections.abc.Sequence) and not isinstance(value, (str, bytes, bytearray))

    def list_as_indexable(self, value: Any) -> Sequence[Any]:
        # Copy so concurrent mutation of the host list cannot skew bounds checks
        try:
            return list(value)
        except Exception as e:
            raise _host_failure(e) from e

    # --- Enumeration ---

    def static_fields(self, class_name: str) -> List[FieldInfo]:
        cls = self._require_class(class_name)
        fields, seen = [], set()
        for klass in cls.__mro__:
            if klass is object:
                continue
            for name, raw in vars(klass).items():
                if name in seen or _is_dunder(name) or not _is_static_field(raw):
                    continue
                seen.add(name)
                type_name = self._declared_type(cls, name, raw)
                fields.append(FieldInfo(name, type_name, type_name))
        return fields

    def instance_fields(self, obj: Any) -> List[FieldInfo]:
        cls = type(obj)
        fields, seen = [], set()
        instance_dict = getattr(obj, "__dict__", None)
        if isinstance(instance_dict, dict):
            for name, value in instance_dict.items():
                if _is_dunder(name):
                    continue
                seen.add(name)
                type_name = self._declared_type(cls, name, value)
                fields.append(FieldInfo(name, type_name, type_name))
        for klass in cls.__mro__:
            for name in getattr(klass, "__slots__", ()) or ():
                if isinstance(name, str) and name not in seen and not _is_dunder(name) and hasattr(obj, name):
                    seen.add(name)
                    type_name = self._declared_type(cls, name, getattr(obj, name))
                    fields.append(FieldInfo(name, type_name, type_name))
        return fields

    def loaded_classes(self) -> List[LoadedClass]:
        classes = []
        for module_name, module in list(sys.modules.items()):
            if module is None:
                continue
            try:
                members = list(vars(module).items())
            except TypeError:
                continue
            for name, obj in members:
                if not isinstance(obj, type) or getattr(obj, "__module__", None) != module_name:
                    continue
                if "<lambda>" in obj.__qualname__ or "<locals>" in obj.__qualname__:
                    continue
                classes.append(LoadedClass(self._class_type(obj), f"{module_name}.{obj.__qualname__}", True))
        return classes

    def _class_type(self, cls: type) -> LoadedClassType:
        if issubclass(cls, enum.Enum):
            return LoadedClassType.ENUM
        if inspect.isabstract(cls) or getattr(cls, "_is_protocol", False):
            return LoadedClassType.INTERFACE
        return LoadedClassType.CLASS

    def threads(self) -> List[ThreadInfo]:
        frames = sys._current_frames()
        out = []
        for thread in threading.enumerate():
            frame = frames.get(thread.ident)
            stack = "".join(traceback.format_stack(frame)).rstrip("\n") if frame is not None else ""
            out.append(ThreadInfo(thread.name, thread.daemon, stack))
        return out
