"""
Pytest configuration for markframe tests.

Adds the repository root to sys.path so that `import markframe` works when
pytest is run from a checkout without installing the package.
"""
import sys
import os

import pytest

# markframe/tests/ → markframe/ → repo root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from markframe import GraderConfig  # noqa: E402

REFERENCE_CIRCUIT = (
    "QUBIT_COORDS(0, 0) 0\n"
    "QUBIT_COORDS(0.5, 0.5) 1\n"
    "X 0\n"
    "TICK\n"
    "TICK\n"
    "H 1\n"
    "CX 0 1\n"
    "TICK\n"
    "M 0 1"
)

CORRECT_ANSWER = (
    "QUBIT_COORDS(0, 0) 0\n"
    "QUBIT_COORDS(0.5, 0.5) 1\n"
    "X 0\n"
    "TICK\n"
    "MARKX(0) 0 1\n"
    "TICK\n"
    "H 1\n"
    "CX 0 1\n"
    "TICK\n"
    "M 0 1"
)


@pytest.fixture
def reference_text() -> str:
    return REFERENCE_CIRCUIT


@pytest.fixture
def correct_answer() -> str:
    return CORRECT_ANSWER


@pytest.fixture
def grader_config_dict() -> dict:
    return {
        "circuit": REFERENCE_CIRCUIT,
        "errors": {"0": "Y", "1": "Y"},
        "markIndex": 1,
        "measureIndex": 4,
    }


@pytest.fixture
def grader_config(grader_config_dict) -> GraderConfig:
    return GraderConfig.from_dict(grader_config_dict)
