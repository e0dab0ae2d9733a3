import pytest

from fake_host import build_util_host
from slat.slat_parser import SlatParser


@pytest.fixture(scope="module")
def parser():
    """Loads the SLAT grammar once per module."""
    return SlatParser()


@pytest.fixture
def host():
    return build_util_host()
