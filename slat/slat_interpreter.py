"""
The SLAT stack machine.

Statements are evaluated by recursive descent over the AST, passing
intermediate values on an explicit operand stack. Every class, field and
method is resolved at call time through the Host Binding.
"""
import numbers
import os
import sys
from typing import Any, Dict, List, Optional

from slat.slat_datatypes import (
    Token, Identifier, Literal, Import, ArrayExpression, MemberExpression,
    MethodCall, Assignment, InterpreterValue, ClassRef, ObjectRef,
    MalformedSlat, NoSuchClass, NoSuchMethod, NoSuchField, DuplicateImport,
    ArrayIndexOutOfBounds, UnknownIdentifier, HostBindingError
)
from slat.slat_host import HostBinding, Pin, VOID
from slat.slat_marshal import HandleTable, WireValue, to_wire
from slat.slat_parser import SlatParser


class SlatInterpreter:
    """Executes parsed SLAT statements against one Host Binding.

    Imports and variables persist across scripts; the stack does not.
    """

    def __init__(self, host: HostBinding, parser: Optional[SlatParser] = None):
        self.host = host
        self.parser = parser or SlatParser()
        self.stack: List[InterpreterValue] = []
        # alias -> host-internal class name
        self.imports: Dict[str, str] = {}
        self.primitive_variables: Dict[str, Any] = {}
        self.object_variables: Dict[str, Pin] = {}
        self.current_node: Optional[Token] = None

    def _dbg(self, *parts):
        if os.environ.get("SLAT_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    def reset(self):
        """Drops every import, variable and pending stack value."""
        self.stack.clear()
        self.imports.clear()
        self.primitive_variables.clear()
        self.object_variables.clear()
        self.current_node = None

    # --- Entry points ---

    def interpret(self, source: str, handles: Optional[HandleTable] = None) -> WireValue:
        """Parses, executes and marshals one script."""
        statements = self.parser.parse(source)
        return to_wire(self.host, self.execute(statements), handles)

    def execute(self, statements: List[Token]) -> Any:
        """Runs statements in order and returns the raw host result (VOID if none).

        A failing script leaves imports and variables exactly as they were.
        """
        saved = (dict(self.imports), dict(self.primitive_variables), dict(self.object_variables))
        self.stack.clear()
        try:
            for stmt in statements:
                self.current_node = stmt
                self._dbg("exec", repr(stmt))
                self._visit(stmt)
            return self._finalize()
        except Exception:
            self.imports, self.primitive_variables, self.object_variables = saved
            raise
        finally:
            self.stack.clear()

    def _finalize(self) -> Any:
        if not self.stack:
            return VOID
        top = self.stack[-1]
        if isinstance(top, ClassRef):
            raise MalformedSlat(f"expecting object reference as result, found class '{top.name}'")
        return top.value

    # --- Stack ---

    def _push(self, value: InterpreterValue):
        self.stack.append(value)

    def _pop(self, context: str) -> InterpreterValue:
        if not self.stack:
            raise MalformedSlat(f"stack underflow while resolving {context}")
        return self.stack.pop()

    def _pop_object(self, context: str) -> Any:
        value = self._pop(context)
        if isinstance(value, ClassRef):
            raise MalformedSlat(f"expecting object reference for {context}, found class '{value.name}'")
        return value.value

    # --- Visitors ---

    def _visit(self, node: Token):
        match node:
            case Import():
                self._visit_import(node)
            case Assignment():
                self._visit_assignment(node)
            case Literal():
                self._push(ObjectRef(node.value))
            case Identifier():
                self._visit_identifier(node)
            case MemberExpression():
                self._visit_member_expression(node)
            case ArrayExpression():
                self._visit_array(node, in_chain=False)
            case MethodCall():
                raise MalformedSlat(f"method '{node.name}' called without a receiver")
            case _:
                raise MalformedSlat(f"unexpected node {node!r}")

    def _visit_import(self, node: Import):
        alias = node.alias
        if alias in self.imports:
            raise DuplicateImport(alias)
        dotted = ".".join(node.path)
        if not self.host.class_exists(dotted):
            raise NoSuchClass(dotted)
        self.imports[alias] = self.host.separator.join(node.path)
        self._dbg("import", alias, "->", self.imports[alias])

    def _visit_identifier(self, node: Identifier):
        name = node.name
        if name in self.object_variables:
            self._push(ObjectRef(self.object_variables[name].value))
        elif name in self.primitive_variables:
            self._push(ObjectRef(self.primitive_variables[name]))
        else:
            raise UnknownIdentifier(name)

    def _visit_assignment(self, node: Assignment):
        self._visit(node.expr)
        value = self._pop_object(f"assignment to '{node.variable}'")
        if self.host.is_primitive(value):
            self.object_variables.pop(node.variable, None)
            self.primitive_variables[node.variable] = value
        else:
            self.primitive_variables.pop(node.variable, None)
            self.object_variables[node.variable] = self.host.pin(value)

    def _visit_member_expression(self, node: MemberExpression):
        owner = node.owner
        if not isinstance(owner, Identifier):
            raise MalformedSlat(f"member expression owner must be an identifier, found {owner!r}")
        # Import aliases shadow variables of the same name
        if owner.name in self.imports:
            self._push(ClassRef(self.imports[owner.name]))
        else:
            self._visit_identifier(owner)
        for member in node.members:
            self._visit_member(member)

    def _visit_member(self, member: Token):
        """Applies one chain member to the receiver on top of the stack."""
        match member:
            case Identifier():
                self._access_field(member.name)
            case MethodCall():
                self._invoke(member)
            case ArrayExpression():
                self._visit_array(member, in_chain=True)
            case _:
                raise MalformedSlat(f"invalid member {member!r}")

    def _visit_array(self, node: ArrayExpression, in_chain: bool):
        if in_chain:
            self._visit_member(node.array)
        else:
            self._visit(node.array)
        array = self._pop_object("array expression")

        self._visit(node.index)
        index = self._pop_object("array index")
        if isinstance(index, bool) or not isinstance(index, numbers.Integral):
            raise MalformedSlat(f"array index must be an integer, found {self.host.type_name(index)}")
        index = int(index)
        if index < 0:
            raise ArrayIndexOutOfBounds(index)

        self._require_receiver(array, "[]")
        if not self.host.is_list_like(array):
            raise MalformedSlat(f"value of type {self.host.type_name(array)} is not indexable")
        items = self.host.list_as_indexable(array)
        if index >= len(items):
            raise ArrayIndexOutOfBounds(index, len(items))
        self._push(ObjectRef(items[index]))

    def _access_field(self, field_name: str):
        receiver = self._pop(f"field '{field_name}'")
        match receiver:
            case ClassRef(name=class_name):
                signature = self.host.static_field_signature(class_name, field_name)
                if signature is None:
                    raise NoSuchField(field_name)
                value = self.host.get_static_field(class_name, field_name, signature)
            case ObjectRef(value=obj):
                self._require_receiver(obj, field_name)
                signature = self.host.instance_field_signature(obj, field_name)
                if signature is None:
                    raise NoSuchField(field_name)
                value = self.host.get_field(obj, field_name, signature)
            case _:
                raise MalformedSlat(f"invalid receiver {receiver!r}")
        self._push(ObjectRef(value))

    def _invoke(self, call: MethodCall):
        for arg in call.args:
            self._visit(arg)
        args = [self._pop_object(f"argument to '{call.name}'") for _ in call.args]
        args.reverse()
        receiver = self._pop(f"receiver of '{call.name}'")
        hints = [self.host.type_hint(a) for a in args]
        self._dbg("call", call.name, receiver, "argc", len(args))

        match receiver:
            case ClassRef(name=class_name):
                signature = self.host.static_method_signature(class_name, call.name, hints)
                if signature is None:
                    raise NoSuchMethod(call.name)
                result = self.host.call_static_method(class_name, call.name, signature, args)
            case ObjectRef(value=obj):
                self._require_receiver(obj, call.name)
                signature = self.host.instance_method_signature(obj, call.name, hints)
                if signature is None:
                    raise NoSuchMethod(call.name)
                result = self.host.call_method(obj, call.name, signature, args)
            case _:
                raise MalformedSlat(f"invalid receiver {receiver!r}")
        self._push(ObjectRef(result))

    def _require_receiver(self, obj: Any, member: str):
        if obj is None:
            raise HostBindingError(f"NullPointerException: cannot resolve '{member}' on a null object")
        if obj is VOID:
            raise HostBindingError(f"cannot resolve '{member}' on the result of a void call")
