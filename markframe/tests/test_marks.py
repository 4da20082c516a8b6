"""
Pytest test suite for marker editing helpers.
"""

from __future__ import annotations

import pytest

from markframe import (
    Circuit,
    clear_pauli_markers,
    infer_mark_bases,
    with_inferred_marks,
    with_marks,
)


def test_infer_basis_from_collapse_gates():
    c = Circuit.from_text("MX 0\nM 1\nH 2")
    assert infer_mark_bases(c.layers[0], [0, 1, 2]) == {0: 'X', 1: 'Z', 2: 'Z'}


def test_infer_single_seen_basis_is_default():
    c = Circuit.from_text("MRY 0\nH 1")
    assert infer_mark_bases(c.layers[0], [0, 1, 3]) == {0: 'Y', 1: 'Y', 3: 'Y'}


def test_infer_pair_measurement_pulls_in_partner():
    c = Circuit.from_text("MXX 0 1\nH 2")
    assert infer_mark_bases(c.layers[0], [0, 2]) == {0: 'X', 2: 'X', 1: 'X'}


def test_with_marks_extends_layers():
    c = Circuit.from_text("H 0")
    marked = with_marks(c, 2, {0: 'Y'}, mark_index=3)
    assert len(marked.layers) == 3
    (marker,) = marked.layers[2].markers
    assert marker.gate.name == 'MARKY'
    assert marker.args == (3.0,)
    assert marker.gate.default_argument == 3
    assert len(c.layers) == 1


def test_with_marks_rejects_bad_input():
    c = Circuit.from_text("H 0")
    with pytest.raises(ValueError):
        with_marks(c, 0, {0: 'I'})
    with pytest.raises(ValueError):
        with_marks(c, -1, {0: 'X'})


def test_with_inferred_marks_adds_new_positions():
    c = Circuit.from_text("Q(0,0) 0\nQ(1,0) 1\nTICK\nMX 0 1")
    marked = with_inferred_marks(c, 1, [(0, 0), (5, 5)])
    assert marked.num_qubits == 3
    assert marked.coord(2) == (5.0, 5.0)
    names = sorted((op.gate.name, op.targets[0]) for op in marked.layers[1].markers)
    assert names == [('MARKX', 0), ('MARKX', 2)]


def test_clear_pauli_markers_keeps_annotations():
    c = Circuit.from_text("H 0\nMARKX(0) 0\nMARKZ(1) 1\nMARK(0) 0\nPOLYGON(1,0,0,0.5) 0 1")
    cleared = clear_pauli_markers(c)
    assert [op.gate.name for op in cleared.layers[0].markers] == ['MARK', 'POLYGON']
    assert len(c.layers[0].markers) == 4
