"""
A pretty-printer for SLAT wire values and enumeration results.
"""
import textwrap

from slat.slat_host import LoadedClass, ThreadInfo
from slat.slat_marshal import WireValue, ValueType
from slat.slat_runtime import FieldValue, ExecutionResult


class Printer:
    """Formats wire values and session results for a terminal."""

    def __init__(self, indent_width=2):
        self._indent_char = " " * indent_width
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0):
        """Public entry point to format an object."""
        handler = self._get_handler(obj)
        return handler(obj, level)

    def _get_handler(self, obj):
        obj_type = type(obj)
        if obj_type in self._handlers:
            return self._handlers[obj_type]
        if isinstance(obj, (list, tuple)):
            return self._pformat_lines
        return lambda o, l: repr(o)

    def _create_handlers(self):
        return {
            WireValue: self._pformat_wire,
            FieldValue: self._pformat_field,
            LoadedClass: self._pformat_loaded_class,
            ThreadInfo: self._pformat_thread,
            ExecutionResult: self._pformat_result,
        }

    def _pformat_wire(self, obj: WireValue, level):
        if obj.value_type is ValueType.NOT_PRESENT:
            return 'void'
        if obj.value_type is ValueType.NULL_OBJECT:
            return 'null'
        match obj.kind:
            case 'boolean':
                return 'true' if obj.payload else 'false'
            case 'string':
                escaped = obj.payload.replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\n')
                return f'"{escaped}"'
            case 'object_type':
                return f"<{obj.payload.class_name}>"
            case 'list':
                items = ", ".join(self.pformat(item, level) for item in obj.payload.items)
                return f"[{items}]"
            case _:
                return str(obj.payload)

    def _pformat_field(self, obj: FieldValue, level):
        line = f"{obj.type} {obj.name} = {self.pformat(obj.value, level)}"
        if obj.object_id >= 0:
            line += f"  (object {obj.object_id})"
        return line

    def _pformat_loaded_class(self, obj: LoadedClass, level):
        return f"{obj.class_type.value.lower()} {obj.class_name}"

    def _pformat_thread(self, obj: ThreadInfo, level):
        header = f'"{obj.name}"' + (" daemon" if obj.is_daemon else "")
        if not obj.stack_trace:
            return header
        return f"{header}\n{textwrap.indent(obj.stack_trace, self._indent_char * (level + 1))}"

    def _pformat_result(self, obj: ExecutionResult, level):
        if obj.error:
            return obj.format_error()
        return self.pformat(obj.result, level)

    def _pformat_lines(self, obj, level):
        indent = self._indent_char * level
        return "\n".join(f"{indent}{self.pformat(item, level)}" for item in obj)
