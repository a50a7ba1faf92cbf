"""Test configuration ensuring the project source tree is importable."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
TESTS = ROOT / "tests"

root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)
else:
    idx = sys.path.index(root_str)
    if idx != 0:
        sys.path.insert(0, sys.path.pop(idx))

if str(TESTS) in sys.path:
    sys.path.pop(sys.path.index(str(TESTS)))
sys.path.insert(1, str(TESTS))

# Import the project package eagerly so subsequent imports reuse it
importlib.import_module("vmtrace")

from asm_helpers import assemble, new_value  # noqa: E402


@pytest.fixture
def window_program() -> bytes:
    """Load the name ``window`` then use it as a property key twice."""

    return assemble(
        new_value(1, "window"),
        [251, 2, 0, 1],
        [251, 3, 0, 7],
    )
