import pytest

from slat.slat_host import LoadedClass, LoadedClassType, ThreadInfo
from slat.slat_marshal import WireValue, NOT_PRESENT, NULL_OBJECT
from slat.slat_runtime import (
    Request, Response, FieldValue,
    StaticFieldsRequest, ObjectFieldsRequest, ExecuteSlatRequest, LoadedClassesRequest, ProcessStatusRequest,
    StaticFieldsResponse, ExecuteSlatResponse, LoadedClassesResponse, ProcessStatusResponse, ErrorResponse
)
from slat.slat_serialize import (
    serialize, deserialize, detect_format, to_builtin, wire_from_builtin,
    request_from_builtin, response_from_builtin
)


def test_wire_value_shapes():
    assert to_builtin(NOT_PRESENT) == {"value_type": "NOT_PRESENT"}
    assert to_builtin(NULL_OBJECT) == {"value_type": "NULL_OBJECT"}
    assert to_builtin(WireValue.integer(42)) == {"value_type": "PRESENT", "integer": 42}
    assert to_builtin(WireValue.object_type("a.B")) == {"value_type": "PRESENT", "object_type": {"class_name": "a.B"}}
    nested = WireValue.list("java.util.List", [WireValue.list("[I", [WireValue.integer(1)]), NULL_OBJECT])
    assert to_builtin(nested) == {
        "value_type": "PRESENT",
        "list": {
            "list_type": "java.util.List",
            "items": [
                {"value_type": "PRESENT", "list": {"list_type": "[I", "items": [{"value_type": "PRESENT", "integer": 1}]}},
                {"value_type": "NULL_OBJECT"},
            ],
        },
    }


@pytest.mark.parametrize("value", [
    NOT_PRESENT,
    NULL_OBJECT,
    WireValue.decimal(2.5),
    WireValue.boolean(False),
    WireValue.string("x"),
    WireValue.object_type("a.B"),
    WireValue.list("t", [WireValue.integer(1), WireValue.list("t", [])]),
], ids=["absent", "null", "decimal", "bool", "string", "object", "list"])
def test_wire_from_builtin_inverts(value):
    assert wire_from_builtin(to_builtin(value)) == value


def test_wire_from_builtin_rejects_empty_payload():
    with pytest.raises(ValueError):
        wire_from_builtin({"value_type": "PRESENT"})


@pytest.mark.parametrize("request_", [
    Request(1, StaticFieldsRequest("java.lang.System")),
    Request(2, ObjectFieldsRequest(3)),
    Request(3, ExecuteSlatRequest("x = 1")),
    Request(4, LoadedClassesRequest()),
    Request(5, ProcessStatusRequest()),
], ids=["static", "object", "script", "classes", "status"])
def test_request_round_trip(request_):
    assert request_from_builtin(to_builtin(request_)) == request_


def test_unknown_request():
    with pytest.raises(ValueError):
        request_from_builtin({"id": 1, "reboot": {}})
    with pytest.raises(ValueError):
        request_from_builtin(["not", "a", "mapping"])


def test_response_round_trip():
    responses = [
        Response(1, StaticFieldsResponse([FieldValue("out", "java.io.PrintStream", WireValue.object_type("java.io.PrintStream"), 0)])),
        Response(2, ExecuteSlatResponse(True, "Unknown identifier 'y'", NOT_PRESENT)),
        Response(3, LoadedClassesResponse([LoadedClass(LoadedClassType.ENUM, "a.E", True)])),
        Response(4, ProcessStatusResponse([ThreadInfo("main", False, "at x")])),
        Response(5, ErrorResponse("boom")),
    ]
    for r in responses:
        assert response_from_builtin(to_builtin(r)) == r


def test_json_and_yaml_text():
    response = Response(9, ExecuteSlatResponse(False, "", WireValue.integer(42)))
    for fmt in ("json", "yaml"):
        text = serialize(response, fmt=fmt)
        assert deserialize(text, fmt=fmt) == to_builtin(response)


def test_detect_format():
    assert detect_format('{"id": 1}') == 'json'
    assert detect_format("id: 1") == 'yaml'
    assert deserialize('{"a": [1, 2]}') == {"a": [1, 2]}
    assert deserialize(b"a: 1\n") == {"a": 1}


def test_unsupported_format():
    with pytest.raises(ValueError):
        serialize({"a": 1}, fmt="xml")
    with pytest.raises(ValueError):
        deserialize("<a/>", fmt="xml")
