"""
Defines the core data types for the SLAT scripting engine.

This module provides the AST node classes produced by the transformer, the
two-variant value type the stack machine works with, and the exception tree
shared by the parser, interpreter and host bindings.
"""

from abc import ABC
from typing import List, Any


# =================================================================
# Errors
# =================================================================

class SlatError(Exception):
    """Base class for every failure reported by the SLAT engine."""
    pass


class SlatParseError(SlatError):
    """Malformed script text. Carries the grammar engine's diagnostic."""
    def __init__(self, message: str, line=None, col=None):
        super().__init__(message)
        self.line = line
        self.col = col


class InterpreterError(SlatError):
    """Script-fatal, session-surviving evaluation failure."""
    pass


class MalformedSlat(InterpreterError):
    def __init__(self, detail: str):
        super().__init__(f"Malformed expression: {detail}")
        self.detail = detail


class NoSuchClass(InterpreterError):
    def __init__(self, name: str):
        super().__init__(f"No such class with name '{name}' could be found")
        self.name = name


class NoSuchMethod(InterpreterError):
    def __init__(self, name: str):
        super().__init__(f"Could not resolve method '{name}'")
        self.name = name


class NoSuchField(InterpreterError):
    def __init__(self, name: str):
        super().__init__(f"Could not resolve field '{name}'")
        self.name = name


class DuplicateImport(InterpreterError):
    def __init__(self, alias: str):
        super().__init__(f"A class has already been imported with name '{alias}'")
        self.alias = alias


class ArrayIndexOutOfBounds(InterpreterError):
    def __init__(self, index=None, length=None):
        super().__init__("Array index out of bounds")
        self.index = index
        self.length = length


class UnknownIdentifier(InterpreterError):
    def __init__(self, name: str):
        super().__init__(f"Unknown identifier '{name}'")
        self.name = name


class HostBindingError(SlatError):
    """The host object system itself failed; the message is the host's own."""
    pass


class UnknownObjectHandle(SlatError):
    def __init__(self, object_id: int):
        super().__init__(f"No object is stored with id {object_id}")
        self.object_id = object_id


# =================================================================
# AST
# =================================================================

class Token(ABC):
    """Abstract base class for all SLAT AST nodes."""
    pass


class Identifier(Token):
    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"Identifier({self.name!r})"

    def __eq__(self, other):
        return isinstance(other, Identifier) and self.name == other.name

    def __hash__(self):
        return hash(('ident', self.name))


class Literal(Token):
    """A literal value. `kind` is one of 'integer', 'decimal', 'string', 'boolean'."""
    KINDS = ('integer', 'decimal', 'string', 'boolean')

    def __init__(self, kind: str, value: Any):
        if kind not in self.KINDS:
            raise ValueError(f"Unknown literal kind: {kind!r}")
        self.kind = kind
        self.value = value

    def __repr__(self) -> str:
        return f"Literal({self.kind}, {self.value!r})"

    def __eq__(self, other):
        return (
            isinstance(other, Literal)
            and self.kind == other.kind
            and type(self.value) is type(other.value)
            and self.value == other.value
        )


class Import(Token):
    """`import a.b.C` -> Import(['a', 'b', 'C'])."""
    def __init__(self, path: List[str]):
        if not path:
            raise ValueError("Import must have at least one path segment.")
        self.path = list(path)

    @property
    def alias(self) -> str:
        return self.path[-1]

    def __repr__(self) -> str:
        return f"Import({'.'.join(self.path)})"

    def __eq__(self, other):
        return isinstance(other, Import) and self.path == other.path


class ArrayExpression(Token):
    def __init__(self, array: Token, index: Token):
        self.array = array
        self.index = index

    def __repr__(self) -> str:
        return f"ArrayExpression({self.array!r}[{self.index!r}])"

    def __eq__(self, other):
        return isinstance(other, ArrayExpression) and self.array == other.array and self.index == other.index


class MemberExpression(Token):
    """An owner followed by an ordered chain of field/method/array members."""
    def __init__(self, owner: Token, members: List[Token]):
        self.owner = owner
        self.members = list(members)

    def __repr__(self) -> str:
        return f"MemberExpression({self.owner!r}, {self.members!r})"

    def __eq__(self, other):
        return isinstance(other, MemberExpression) and self.owner == other.owner and self.members == other.members


class MethodCall(Token):
    def __init__(self, name: str, args: List[Token]):
        self.name = name
        self.args = list(args)

    def __repr__(self) -> str:
        return f"MethodCall({self.name!r}, {self.args!r})"

    def __eq__(self, other):
        return isinstance(other, MethodCall) and self.name == other.name and self.args == other.args


class Assignment(Token):
    def __init__(self, variable: str, expr: Token):
        self.variable = variable
        self.expr = expr

    def __repr__(self) -> str:
        return f"Assignment({self.variable!r} = {self.expr!r})"

    def __eq__(self, other):
        return isinstance(other, Assignment) and self.variable == other.variable and self.expr == other.expr


# =================================================================
# Interpreter values
# =================================================================

class InterpreterValue(ABC):
    """A value on the evaluation stack: either a class or an object reference."""
    pass


class ClassRef(InterpreterValue):
    """A resolved class, addressed by its host-internal name.

    Only ever lives on the stack while a member chain is being resolved.
    """
    __slots__ = ("name",)

    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"ClassRef({self.name!r})"

    def __eq__(self, other):
        return isinstance(other, ClassRef) and self.name == other.name


class ObjectRef(InterpreterValue):
    """A host value: primitive, string, null or object handle."""
    __slots__ = ("value",)

    def __init__(self, value: Any):
        self.value = value

    def __repr__(self) -> str:
        return f"ObjectRef({self.value!r})"

    def __eq__(self, other):
        return isinstance(other, ObjectRef) and self.value is other.value
