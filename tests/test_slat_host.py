import pytest

from slat.slat_host import Char, Pin, VOID, PLACEHOLDER_HINT
from fake_host import FakeHost


def test_void_is_a_falsy_singleton():
    assert type(VOID)() is VOID
    assert not VOID
    assert repr(VOID) == "VOID"


def test_char():
    assert Char("x") == "x"
    assert Char(65) == "A"
    assert isinstance(Char("x"), str)
    with pytest.raises(ValueError):
        Char("xy")


@pytest.mark.parametrize("value, primitive", [
    (1, True),
    (2.5, True),
    (False, True),
    (Char("c"), True),
    (VOID, True),
    ("text", False),
    (None, False),
    ([1], False),
], ids=["int", "float", "bool", "char", "void", "str", "null", "list"])
def test_default_primitive_classification(value, primitive):
    assert FakeHost().is_primitive(value) is primitive


def test_default_helpers():
    host = FakeHost()
    assert host.type_hint(1) == PLACEHOLDER_HINT
    assert host.internal_name("a.b.C") == "a/b/C"
    assert FakeHost.type_name(host, 3) == "int"
    assert host.type_name(Pin(1)) == "slat.slat_host.Pin"
    p = host.pin("v")
    assert isinstance(p, Pin) and p.value == "v"
