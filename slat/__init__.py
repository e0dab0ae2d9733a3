from slat.slat_datatypes import (
    SlatError, SlatParseError, InterpreterError, MalformedSlat, NoSuchClass, NoSuchMethod,
    NoSuchField, DuplicateImport, ArrayIndexOutOfBounds, UnknownIdentifier,
    HostBindingError, UnknownObjectHandle
)
from slat.slat_host import HostBinding, VOID, Char, Pin, FieldInfo, LoadedClass, LoadedClassType, ThreadInfo
from slat.slat_parser import SlatParser, parse
from slat.slat_interpreter import SlatInterpreter
from slat.slat_marshal import WireValue, HandleTable, NOT_PRESENT, NULL_OBJECT, to_wire, from_wire
from slat.slat_pyhost import PythonHost
from slat.slat_runtime import Session, Dispatcher, ExecutionResult, Request, Response
