import pytest

from slat.slat_datatypes import (
    Identifier, MemberExpression, MalformedSlat, NoSuchClass, NoSuchMethod, NoSuchField,
    DuplicateImport, ArrayIndexOutOfBounds, UnknownIdentifier, HostBindingError
)
from slat.slat_host import VOID
from slat.slat_interpreter import SlatInterpreter
from slat.slat_marshal import WireValue, NOT_PRESENT, NULL_OBJECT


@pytest.fixture
def interp(host, parser):
    i = SlatInterpreter(host, parser)
    i.interpret("import a.b.Util")
    return i


def run(interp, source):
    return interp.interpret(source)


# --- End-to-end scenarios ---

def test_static_integer_field(interp):
    assert run(interp, "Util.CONST") == WireValue.integer(42)


def test_object_variable_survives_between_scripts(interp, host):
    assert run(interp, "x = Util.create()") == NOT_PRESENT
    assert run(interp, "x.getName()") == WireValue.string("ok")
    assert run(interp, "x.greet('bob')") == WireValue.string("hello bob from ok")


def test_object_variable_keeps_identity(interp, host):
    run(interp, "x = Util.create()")
    first = interp.object_variables["x"].value
    for _ in range(3):
        run(interp, "y = x.self()")
        assert interp.object_variables["y"].value is first
    assert interp.object_variables["x"].value is first


def test_unknown_identifier_leaves_session_usable(interp):
    with pytest.raises(UnknownIdentifier) as exc:
        run(interp, "y.getName()")
    assert str(exc.value) == "Unknown identifier 'y'"
    assert interp.stack == []
    assert run(interp, "Util.CONST") == WireValue.integer(42)


def test_duplicate_import_keeps_first_target(interp):
    with pytest.raises(DuplicateImport):
        run(interp, "import x.y.Util")
    assert interp.imports == {"Util": "a/b/Util"}
    assert run(interp, "Util.CONST") == WireValue.integer(42)


def test_import_of_missing_class(interp):
    with pytest.raises(NoSuchClass) as exc:
        run(interp, "import no.such.Thing")
    assert "no.such.Thing" in str(exc.value)
    assert "Thing" not in interp.imports


def test_import_registers_host_internal_name(host, parser):
    i = SlatInterpreter(host, parser)
    i.interpret("import x.y.Util")
    assert i.imports["Util"] == "x/y/Util"
    assert i.interpret("Util.CONST") == WireValue.integer(7)


# --- Variables ---

@pytest.mark.parametrize("expr, expected", [
    ("5", WireValue.integer(5)),
    ("-12", WireValue.integer(-12)),
    ("2.5", WireValue.decimal(2.5)),
    ("true", WireValue.boolean(True)),
    ("Util.CONST", WireValue.integer(42)),
    ("Util.add(2, 3)", WireValue.integer(5)),
], ids=["int", "negative", "decimal", "bool", "static-field", "method"])
def test_primitive_round_trip(interp, expr, expected):
    run(interp, f"n = {expr}")
    assert "n" in interp.primitive_variables
    assert run(interp, "n") == expected


def test_string_assignment_is_pinned(interp, host):
    run(interp, 'greeting = "hi"')
    assert "greeting" in interp.object_variables
    assert host.pins[-1].value == "hi"
    assert run(interp, "greeting") == WireValue.string("hi")


def test_reassignment_moves_between_mappings(interp):
    run(interp, "v = 1")
    assert "v" in interp.primitive_variables
    run(interp, "v = Util.create()")
    assert "v" in interp.object_variables and "v" not in interp.primitive_variables
    run(interp, "v = 2")
    assert interp.primitive_variables["v"] == 2 and "v" not in interp.object_variables


def test_failed_script_does_not_leak_bindings(interp):
    run(interp, "keep = 1")
    with pytest.raises(NoSuchField):
        run(interp, "import a.b.Widget\nw = 2\nkeep = Util.create()\nUtil.MISSING")
    assert interp.primitive_variables == {"keep": 1}
    assert interp.object_variables == {}
    assert set(interp.imports) == {"Util"}


# --- Results ---

def test_empty_script_is_not_present(interp):
    assert run(interp, "") == NOT_PRESENT
    assert run(interp, "a = 1") == NOT_PRESENT


def test_last_value_wins(interp):
    assert run(interp, "Util.CONST\nUtil.NAME") == WireValue.string("util")
    assert interp.stack == []


def test_null_and_void_results(interp):
    assert run(interp, "Util.NOTHING") == NULL_OBJECT
    assert run(interp, "Util.nothing()") == NULL_OBJECT
    assert run(interp, "Util.reset()") == NOT_PRESENT


def test_execute_returns_raw_value(interp, parser):
    assert interp.execute(parser.parse("Util.NUMBERS")) == [1, 2, 3]
    assert interp.execute([]) is VOID


def test_class_reference_cannot_be_a_result(interp):
    with pytest.raises(MalformedSlat, match="expecting object reference"):
        interp.execute([MemberExpression(Identifier("Util"), [])])


# --- Member chains and calls ---

def test_arguments_are_full_expressions(interp):
    assert run(interp, "Util.add(Util.CONST, 1)") == WireValue.integer(43)
    assert run(interp, "Util.add(Util.NUMBERS[0], Util.MATRIX[1][1])") == WireValue.integer(5)


def test_indexed_method_result_in_chain(interp):
    assert run(interp, "Util.items()[1].getName()") == WireValue.string("ok")


def test_calls_reach_host_in_order(interp, host):
    run(interp, "Util.add(1, 2)")
    assert host.calls[-1] == ("a/b/Util", "add", (1, 2))


@pytest.mark.parametrize("source", [
    "Util.missing()",
    "Util.add(1)",
    "Util.ambiguous(1)",
    "Util.create().missing()",
], ids=["unknown", "wrong-arity", "ambiguous", "instance"])
def test_no_such_method(interp, source):
    with pytest.raises(NoSuchMethod):
        run(interp, source)


def test_no_such_field(interp):
    with pytest.raises(NoSuchField) as exc:
        run(interp, "Util.MISSING")
    assert str(exc.value) == "Could not resolve field 'MISSING'"
    with pytest.raises(NoSuchField):
        run(interp, "Util.create().missing")


def test_member_access_on_null(interp):
    with pytest.raises(HostBindingError):
        run(interp, "Util.NOTHING.name")


def test_method_without_receiver(interp):
    with pytest.raises(MalformedSlat, match="without a receiver"):
        run(interp, "create()")


def test_stack_underflow_is_malformed(interp):
    with pytest.raises(MalformedSlat, match="underflow"):
        interp._visit_member(Identifier("name"))


# --- Arrays ---

def test_array_indexing(interp):
    assert run(interp, "Util.NUMBERS[0]") == WireValue.integer(1)
    assert run(interp, "Util.MATRIX[1][0]") == WireValue.integer(3)
    run(interp, "xs = Util.NUMBERS\ni = 2")
    assert run(interp, "xs[i]") == WireValue.integer(3)


@pytest.mark.parametrize("source", [
    "Util.NUMBERS[3]",
    "Util.NUMBERS[-1]",
    "Util.MATRIX[0][2]",
    "Util.items()[5]",
], ids=["past-end", "negative", "nested", "objects"])
def test_array_index_out_of_bounds(interp, source):
    with pytest.raises(ArrayIndexOutOfBounds):
        run(interp, source)


def test_array_index_must_be_integer(interp):
    with pytest.raises(MalformedSlat):
        run(interp, 'Util.NUMBERS["0"]')
    with pytest.raises(MalformedSlat):
        run(interp, "Util.NUMBERS[true]")


def test_indexing_a_non_list(interp):
    with pytest.raises(MalformedSlat, match="not indexable"):
        run(interp, "Util.CONST[0]")
