"""
Sessions, requests and responses.

A Session owns one interpreter environment and one handle table and serves
the five request kinds a remote operator can send: loaded classes, static
fields of a class, fields of a previously returned object, script execution
and process status. A Dispatcher maps connections to sessions.
"""
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, List, Literal, Optional, Union

from slat.slat_datatypes import SlatError, SlatParseError, NoSuchClass
from slat.slat_host import HostBinding, FieldInfo, LoadedClass, ThreadInfo
from slat.slat_interpreter import SlatInterpreter
from slat.slat_marshal import HandleTable, WireValue, NOT_PRESENT, to_wire
from slat.slat_parser import SlatParser
from slat.slat_pyhost import PythonHost


# ===================================================================
# 1. Results, requests and responses
# ===================================================================

@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    error: bool
    text: str = ""
    result: WireValue = NOT_PRESENT
    error_token: Optional[Dict] = None
    side_effects: List[Dict] = field(default_factory=list)

    @property
    def status(self) -> Literal['success', 'error']:
        return 'error' if self.error else 'success'

    def format_error(self) -> str:
        """Formats an error message with line and column if available."""
        if not self.error:
            return ""
        msg = self.text or "Unknown error"
        if self.error_token and self.error_token.get('line') is not None:
            line = self.error_token.get('line')
            col = self.error_token.get('col')
            col_info = f", col {col}" if col is not None else ""
            return f"Error on line {line}{col_info}: {msg}"
        return msg


@dataclass(frozen=True)
class FieldValue:
    """One enumerated field. `object_id` indexes the handle table, or is -1."""
    name: str
    type: str
    value: WireValue
    object_id: int = -1


@dataclass(frozen=True)
class LoadedClassesRequest:
    pass


@dataclass(frozen=True)
class StaticFieldsRequest:
    class_name: str


@dataclass(frozen=True)
class ObjectFieldsRequest:
    object_id: int


@dataclass(frozen=True)
class ExecuteSlatRequest:
    code: str


@dataclass(frozen=True)
class ProcessStatusRequest:
    pass


RequestBody = Union[LoadedClassesRequest, StaticFieldsRequest, ObjectFieldsRequest,
                    ExecuteSlatRequest, ProcessStatusRequest]


@dataclass(frozen=True)
class Request:
    id: int
    body: RequestBody


@dataclass(frozen=True)
class LoadedClassesResponse:
    classes: List[LoadedClass]


@dataclass(frozen=True)
class StaticFieldsResponse:
    fields: List[FieldValue]


@dataclass(frozen=True)
class ObjectFieldsResponse:
    fields: List[FieldValue]


@dataclass(frozen=True)
class ExecuteSlatResponse:
    error: bool
    text: str
    result: WireValue


@dataclass(frozen=True)
class ProcessStatusResponse:
    threads: List[ThreadInfo]


@dataclass(frozen=True)
class ErrorResponse:
    text: str


ResponseBody = Union[LoadedClassesResponse, StaticFieldsResponse, ObjectFieldsResponse,
                     ExecuteSlatResponse, ProcessStatusResponse, ErrorResponse]


@dataclass(frozen=True)
class Response:
    id: int
    body: ResponseBody


# ===================================================================
# 2. Session
# ===================================================================

class Session:
    """One operator's environment: imports, variables and pinned objects.

    Requests on a session are serialized by its lock; the host itself may be
    shared between sessions.
    """

    def __init__(self, host: HostBinding, parser: Optional[SlatParser] = None):
        self.host = host
        self.interpreter = SlatInterpreter(host, parser)
        self.handles = HandleTable()
        self.side_effects: List[Dict] = []
        self.lock = threading.RLock()
        self.closed = False

    def _ensure_open(self):
        if self.closed:
            raise SlatError("Session is closed")

    def _emit(self, topic: str, message: str):
        self.side_effects.append({'topics': [topic], 'message': message})

    # --- Scripts ---

    def handle_script(self, source_code: str) -> ExecutionResult:
        """Executes a script. Failures are reported in the result, never raised."""
        with self.lock:
            self.side_effects.clear()
            error_token = None
            try:
                self._ensure_open()
                result = self.interpreter.interpret(source_code)
                return ExecutionResult(error=False, result=result, side_effects=list(self.side_effects))
            except SlatParseError as e:
                msg = str(e)
            except SlatError as e:
                msg = str(e)
                error_token = getattr(self.interpreter.current_node, 'loc', None)
            except Exception as e:
                msg = f"InternalError: {type(e).__name__}: {e}"
                error_token = getattr(self.interpreter.current_node, 'loc', None)
            self._emit('stderr', msg)
            return ExecutionResult(error=True, text=msg, error_token=error_token,
                                   side_effects=list(self.side_effects))

    # --- Enumeration ---

    def _field_value(self, info: FieldInfo, value: Any) -> FieldValue:
        wire = to_wire(self.host, value, self.handles)
        object_id = len(self.handles) - 1 if wire.kind == 'object_type' else -1
        return FieldValue(info.name, info.type_name, wire, object_id)

    def static_fields(self, class_name: str) -> List[FieldValue]:
        """Enumerates the static fields of a class given by its dotted name."""
        with self.lock:
            self._ensure_open()
            if not self.host.class_exists(class_name):
                raise NoSuchClass(class_name)
            internal = self.host.internal_name(class_name)
            return [
                self._field_value(info, self.host.get_static_field(internal, info.name, info.signature))
                for info in self.host.static_fields(internal)
            ]

    def object_fields(self, object_id: int) -> List[FieldValue]:
        """Enumerates the fields of an object previously pinned in this session."""
        with self.lock:
            self._ensure_open()
            obj = self.handles.get(object_id)
            return [
                self._field_value(info, self.host.get_field(obj, info.name, info.signature))
                for info in self.host.instance_fields(obj)
            ]

    def loaded_classes(self) -> List[LoadedClass]:
        with self.lock:
            self._ensure_open()
            return list(self.host.loaded_classes())

    def process_status(self) -> List[ThreadInfo]:
        with self.lock:
            self._ensure_open()
            return list(self.host.threads())

    # --- Dispatch ---

    def handle_request(self, request: Request) -> Response:
        body = request.body
        try:
            match body:
                case ExecuteSlatRequest(code=code):
                    r = self.handle_script(code)
                    out = ExecuteSlatResponse(r.error, r.text, r.result)
                case StaticFieldsRequest(class_name=class_name):
                    out = StaticFieldsResponse(self.static_fields(class_name))
                case ObjectFieldsRequest(object_id=object_id):
                    out = ObjectFieldsResponse(self.object_fields(object_id))
                case LoadedClassesRequest():
                    out = LoadedClassesResponse(self.loaded_classes())
                case ProcessStatusRequest():
                    out = ProcessStatusResponse(self.process_status())
                case _:
                    out = ErrorResponse(f"Unsupported request: {type(body).__name__}")
        except SlatError as e:
            out = ErrorResponse(str(e))
        return Response(request.id, out)

    def close(self):
        """Releases every pin, variable and import held by this session."""
        with self.lock:
            self.handles.close()
            self.interpreter.reset()
            self.side_effects.clear()
            self.closed = True


# ===================================================================
# 3. Dispatcher
# ===================================================================

class Dispatcher:
    """Maps connection keys to sessions and routes requests to them."""

    def __init__(self, host_factory: Callable[[], HostBinding] = PythonHost):
        self.host_factory = host_factory
        self.sessions: Dict[Hashable, Session] = {}
        self._lock = threading.Lock()

    def open(self, key: Hashable) -> Session:
        with self._lock:
            if key in self.sessions:
                raise SlatError(f"A session is already open for {key!r}")
            session = Session(self.host_factory())
            self.sessions[key] = session
            return session

    def close(self, key: Hashable) -> bool:
        with self._lock:
            session = self.sessions.pop(key, None)
        if session is None:
            return False
        session.close()
        return True

    def close_all(self):
        for key in list(self.sessions):
            self.close(key)

    def session(self, key: Hashable) -> Session:
        try:
            return self.sessions[key]
        except KeyError:
            raise SlatError(f"No session is open for {key!r}") from None

    def handle(self, key: Hashable, request: Request) -> Response:
        try:
            session = self.session(key)
        except SlatError as e:
            return Response(request.id, ErrorResponse(str(e)))
        return session.handle_request(request)

    def handle_payload(self, key: Hashable, text: str, fmt: str = 'json') -> str:
        """Decodes a serialized request, handles it and encodes the response."""
        import yaml
        from slat.slat_serialize import deserialize, request_from_builtin, serialize
        try:
            request = request_from_builtin(deserialize(text, fmt=fmt))
        except (ValueError, KeyError, TypeError, yaml.YAMLError) as e:
            return serialize(Response(0, ErrorResponse(f"Malformed request: {e}")), fmt=fmt)
        return serialize(self.handle(key, request), fmt=fmt)
