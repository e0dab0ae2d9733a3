from __future__ import annotations

import json
from typing import Any, Optional
import collections.abc

import yaml

from slat.slat_host import LoadedClass, LoadedClassType, ThreadInfo
from slat.slat_marshal import WireValue, ValueType, ObjectType, WireList, NOT_PRESENT, NULL_OBJECT
from slat.slat_runtime import (
    Request, Response, FieldValue,
    LoadedClassesRequest, StaticFieldsRequest, ObjectFieldsRequest, ExecuteSlatRequest, ProcessStatusRequest,
    LoadedClassesResponse, StaticFieldsResponse, ObjectFieldsResponse, ExecuteSlatResponse,
    ProcessStatusResponse, ErrorResponse, ExecutionResult
)


# Protobuf-style message field names
_REQUEST_KEYS = {
    LoadedClassesRequest: 'loaded_classes',
    StaticFieldsRequest: 'static_fields',
    ObjectFieldsRequest: 'object_fields',
    ExecuteSlatRequest: 'execute_slat',
    ProcessStatusRequest: 'process_status',
}

_RESPONSE_KEYS = {
    LoadedClassesResponse: 'loaded_classes',
    StaticFieldsResponse: 'static_fields',
    ObjectFieldsResponse: 'object_fields',
    ExecuteSlatResponse: 'execute_slat',
    ProcessStatusResponse: 'process_status',
    ErrorResponse: 'error',
}


# --------------------------
# Helpers
# --------------------------

def _wire_to_builtin(value: WireValue) -> dict:
    out: dict = {'value_type': value.value_type.value}
    if not value.is_present:
        return out
    match value.kind:
        case 'object_type':
            out['object_type'] = {'class_name': value.payload.class_name}
        case 'list':
            out['list'] = {
                'list_type': value.payload.list_type,
                'items': [_wire_to_builtin(item) for item in value.payload.items],
            }
        case _:
            out[value.kind] = value.payload
    return out


def _field_to_builtin(f: FieldValue) -> dict:
    return {'name': f.name, 'type': f.type, 'value': _wire_to_builtin(f.value), 'object_id': f.object_id}


def to_builtin(obj: Any) -> Any:
    """Converts SLAT messages and wire values into plain dicts/lists/scalars."""
    match obj:
        case WireValue():
            return _wire_to_builtin(obj)
        case FieldValue():
            return _field_to_builtin(obj)
        case LoadedClass():
            return {'class_type': obj.class_type.value, 'class_name': obj.class_name, 'is_loaded': obj.is_loaded}
        case ThreadInfo():
            return {'name': obj.name, 'is_daemon': obj.is_daemon, 'stack_trace': obj.stack_trace}
        case ExecutionResult():
            return {'error': obj.error, 'text': obj.text, 'result': _wire_to_builtin(obj.result)}
        case Request(id=rid, body=body):
            return {'id': rid, _REQUEST_KEYS[type(body)]: _body_to_builtin(body)}
        case Response(id=rid, body=body):
            return {'id': rid, _RESPONSE_KEYS[type(body)]: _body_to_builtin(body)}
    if isinstance(obj, collections.abc.Mapping):
        return {k: to_builtin(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_builtin(x) for x in obj]
    return obj


def _body_to_builtin(body) -> dict:
    match body:
        case StaticFieldsRequest(class_name=class_name):
            return {'class_name': class_name}
        case ObjectFieldsRequest(object_id=object_id):
            return {'object_id': object_id}
        case ExecuteSlatRequest(code=code):
            return {'code': code}
        case LoadedClassesRequest() | ProcessStatusRequest():
            return {}
        case LoadedClassesResponse(classes=classes):
            return {'classes': [to_builtin(c) for c in classes]}
        case StaticFieldsResponse(fields=fields) | ObjectFieldsResponse(fields=fields):
            return {'fields': [_field_to_builtin(f) for f in fields]}
        case ExecuteSlatResponse(error=error, text=text, result=result):
            return {'error': error, 'text': text, 'result': _wire_to_builtin(result)}
        case ProcessStatusResponse(threads=threads):
            return {'threads': [to_builtin(t) for t in threads]}
        case ErrorResponse(text=text):
            return {'text': text}
    raise TypeError(f"Cannot serialize message body of type {type(body).__name__}")


def wire_from_builtin(data: Optional[dict]) -> WireValue:
    """Inverse of to_builtin for wire values."""
    if not data:
        return NOT_PRESENT
    value_type = ValueType(data.get('value_type', 'NOT_PRESENT'))
    if value_type is ValueType.NOT_PRESENT:
        return NOT_PRESENT
    if value_type is ValueType.NULL_OBJECT:
        return NULL_OBJECT
    if 'object_type' in data:
        return WireValue(ValueType.PRESENT, 'object_type', ObjectType(data['object_type']['class_name']))
    if 'list' in data:
        lst = data['list']
        items = tuple(wire_from_builtin(item) for item in lst.get('items', []))
        return WireValue(ValueType.PRESENT, 'list', WireList(lst['list_type'], items))
    for kind in ('integer', 'decimal', 'boolean', 'string'):
        if kind in data:
            return getattr(WireValue, kind)(data[kind])
    raise ValueError(f"Wire value has no payload: {data!r}")


def request_from_builtin(data: dict) -> Request:
    """Builds a Request from its dict form, e.g. {'id': 1, 'execute_slat': {'code': '...'}}."""
    if not isinstance(data, collections.abc.Mapping):
        raise ValueError(f"Request must be a mapping, got {type(data).__name__}")
    rid = data.get('id', 0)
    for cls, key in _REQUEST_KEYS.items():
        if key not in data:
            continue
        body = data[key] or {}
        match key:
            case 'static_fields':
                return Request(rid, StaticFieldsRequest(str(body['class_name'])))
            case 'object_fields':
                return Request(rid, ObjectFieldsRequest(int(body['object_id'])))
            case 'execute_slat':
                return Request(rid, ExecuteSlatRequest(str(body['code'])))
            case _:
                return Request(rid, cls())
    raise ValueError(f"Unknown request: {sorted(data)!r}")


def response_from_builtin(data: dict) -> Response:
    """Builds a Response from its dict form."""
    rid = data.get('id', 0)
    if 'execute_slat' in data:
        b = data['execute_slat']
        return Response(rid, ExecuteSlatResponse(bool(b.get('error')), b.get('text', ''), wire_from_builtin(b.get('result'))))
    if 'static_fields' in data or 'object_fields' in data:
        key = 'static_fields' if 'static_fields' in data else 'object_fields'
        fields = [
            FieldValue(f['name'], f['type'], wire_from_builtin(f.get('value')), f.get('object_id', -1))
            for f in data[key].get('fields', [])
        ]
        cls = StaticFieldsResponse if key == 'static_fields' else ObjectFieldsResponse
        return Response(rid, cls(fields))
    if 'loaded_classes' in data:
        classes = [
            LoadedClass(LoadedClassType(c['class_type']), c['class_name'], bool(c.get('is_loaded', True)))
            for c in data['loaded_classes'].get('classes', [])
        ]
        return Response(rid, LoadedClassesResponse(classes))
    if 'process_status' in data:
        threads = [
            ThreadInfo(t['name'], bool(t.get('is_daemon')), t.get('stack_trace', ''))
            for t in data['process_status'].get('threads', [])
        ]
        return Response(rid, ProcessStatusResponse(threads))
    if 'error' in data:
        return Response(rid, ErrorResponse(data['error'].get('text', '')))
    raise ValueError(f"Unknown response: {sorted(data)!r}")


def detect_format(data_hint: Optional[str] = None) -> str:
    """Returns 'json' for text that looks like JSON, else 'yaml' (a JSON superset)."""
    s = (data_hint or "").lstrip()
    if s.startswith('{') or s.startswith('['):
        return 'json'
    return 'yaml'


# --------------------------
# Public API
# --------------------------

def deserialize(data: bytes | bytearray | str, *, fmt: Optional[str] = None) -> Any:
    """Decodes JSON or YAML text into plain Python data."""
    text = data.decode('utf-8') if isinstance(data, (bytes, bytearray)) else data
    f = (fmt or detect_format(text)).lower()
    if f == 'json':
        return json.loads(text)
    if f == 'yaml':
        return yaml.safe_load(text)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


def serialize(value: Any, *, fmt: str, pretty: bool = True) -> str:
    """Encodes SLAT messages, wire values or plain data as JSON or YAML."""
    f = (fmt or '').lower()
    built = to_builtin(value)
    if f == 'json':
        return json.dumps(built, ensure_ascii=False, indent=2 if pretty else None)
    if f == 'yaml':
        return yaml.safe_dump(built, sort_keys=False)
    raise ValueError(f"Unsupported serialization format: {fmt!r}")


__all__ = [
    "to_builtin",
    "wire_from_builtin",
    "request_from_builtin",
    "response_from_builtin",
    "deserialize",
    "serialize",
    "detect_format",
]
