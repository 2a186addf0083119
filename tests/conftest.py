"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

import sys
from collections.abc import Callable
from pathlib import Path

import pytest

_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

for module_name in list(sys.modules.keys()):
    if module_name.startswith("compnav"):
        del sys.modules[module_name]


def position_of(text: str, needle: str, occurrence: int = 0) -> tuple[int, int]:
    """0-based (line, column) of the n-th occurrence of `needle` in `text`."""
    offset = -1
    for _ in range(occurrence + 1):
        offset = text.index(needle, offset + 1)
    line = text.count("\n", 0, offset)
    return line, offset - (text.rfind("\n", 0, offset) + 1)


@pytest.fixture
def locate() -> Callable[..., tuple[int, int]]:
    """Position finder: locate(text, needle, occurrence=0) -> (line, column)."""
    return position_of
