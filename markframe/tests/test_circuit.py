"""
Pytest test suite for the Circuit model.

Covers canonical serialization (renumbering, grouping, number formatting),
coordinate transforms, rectification, rotation closure and layer surgery.
Stim is used to confirm the canonical text is valid Stim input.
"""

from __future__ import annotations

import numpy as np
import pytest
import stim

from markframe import Circuit, Layer, format_number


# ── Number formatting ────────────────────────────────────────────────────────


@pytest.mark.parametrize("value, expected", [
    (1.0, '1'),
    (0.0, '0'),
    (-0.0, '0'),
    (3, '3'),
    (0.5, '0.5'),
    (-1.5, '-1.5'),
    (0.25, '0.25'),
    (100.0, '100'),
    (1e-7, '1e-7'),
])
def test_format_number(value, expected):
    assert format_number(value) == expected


# ── Construction ─────────────────────────────────────────────────────────────


def test_coords_shape_and_read_only():
    c = Circuit([0, 0, 1, 0.5])
    assert c.qubit_coords.shape == (2, 2)
    assert c.coord(1) == (1.0, 0.5)
    with pytest.raises(ValueError):
        c.qubit_coords[0, 0] = 5


def test_bad_coords_rejected():
    with pytest.raises(ValueError):
        Circuit([0, 0, 1])
    with pytest.raises(ValueError):
        Circuit(np.zeros((2, 3)))


def test_layers_must_be_layers():
    with pytest.raises(TypeError):
        Circuit([], ["H 0"])


# ── Canonical text ───────────────────────────────────────────────────────────


def test_canonical_grouping_and_marker_order():
    c = Circuit.from_text("H 0\nMARKX(0) 0\nCX 1 2\nH 3\nMARK(1) 2\nMARK(1) 3")
    assert c.to_stim_circuit() == (
        "QUBIT_COORDS(0, 0) 0\n"
        "QUBIT_COORDS(1, 0) 1\n"
        "QUBIT_COORDS(2, 0) 2\n"
        "QUBIT_COORDS(3, 0) 3\n"
        "CX 1 2\n"
        "H 0 3\n"
        "MARK(1) 2\n"
        "MARK(1) 3\n"
        "MARKX(0) 0"
    )


def test_canonical_renumbers_by_position():
    c = Circuit.from_text("QUBIT_COORDS(5, 1) 0\nQUBIT_COORDS(2, 7) 1\nQUBIT_COORDS(9, 9) 2\nCX 0 1")
    assert c.to_stim_circuit() == (
        "QUBIT_COORDS(2, 7) 0\n"
        "QUBIT_COORDS(5, 1) 1\n"
        "CX 1 0"
    )


def test_canonical_keeps_inner_empty_layers_and_drops_trailing_ticks():
    c = Circuit.from_text("H 0\nTICK\nTICK\nX 0\nTICK\nTICK")
    assert c.to_stim_circuit() == "QUBIT_COORDS(0, 0) 0\nH 0\nTICK\nTICK\nX 0"


def test_equality_ignores_qubit_ids():
    a = Circuit.from_text("QUBIT_COORDS(1, 0) 0\nQUBIT_COORDS(0, 0) 1\nCX 1 0")
    b = Circuit.from_text("QUBIT_COORDS(0, 0) 0\nQUBIT_COORDS(1, 0) 1\nCX 0 1")
    assert a == b
    assert a.is_equal_to(b)
    assert a != Circuit.from_text("QUBIT_COORDS(0, 0) 0\nQUBIT_COORDS(1, 0) 1\nCX 1 0")
    assert a != "CX 0 1"


@pytest.mark.parametrize("text", [
    "QUBIT_COORDS(0, 0) 0\nQUBIT_COORDS(0.5, 0.5) 1\nX 0\nTICK\nTICK\nH 1\nCX 0 1\nTICK\nM 0 1",
    "TICK\nH 0\nMARKX(0) 0 1\nTICK\nMARKZ(1) 1\nTICK\nMZZ 0 1",
    "Q(1,2) 0\nQ(3,-4) 1\nCXSWAP 0 1\nSQRT_XX_DAG 2 3\nTICK\nPOLYGON(1,0,0,0.5) 0 1 2\nMR 0 1 2 3",
    "REPEAT 3 {\nH 0\nTICK\nCX 0 1\nTICK\n}\nM 0 1",
])
def test_round_trip(text: str):
    canonical = Circuit.from_text(text).to_stim_circuit()
    assert Circuit.from_text(canonical).to_stim_circuit() == canonical


def test_canonical_text_is_valid_stim():
    c = Circuit.from_text("Q(0,0) 0\nQ(1,0) 1\nH 0\nTICK\nCX 0 1\nMARKX(0) 1\nTICK\nM 0 1")
    sc = c.to_stim()
    assert isinstance(sc, stim.Circuit)
    assert sc.num_qubits == 2
    assert sc.num_measurements == 2
    assert "MARK" not in str(sc)


def test_from_stim_round_trip():
    sc = stim.Circuit("QUBIT_COORDS(0, 0) 0\nQUBIT_COORDS(1, 0) 1\nH 0\nTICK\nCX 0 1\nTICK\nM 0 1")
    c = Circuit.from_stim(sc)
    assert len(c.layers) == 3
    assert c.to_stim() == sc


def test_from_stim_generated_code():
    sc = stim.Circuit.generated(
        'repetition_code:memory',
        rounds=3,
        distance=3,
        after_clifford_depolarization=0.01,
    )
    c = Circuit.from_stim(sc)
    assert c.layers
    canonical = c.to_stim_circuit()
    assert Circuit.from_text(canonical).to_stim_circuit() == canonical
    assert c.to_stim().num_measurements == sc.num_measurements


# ── Coordinate transforms ────────────────────────────────────────────────────


def test_after_coord_transform_returns_new_circuit():
    c = Circuit.from_text("Q(1,2) 0\nH 0")
    shifted = c.shifted(3, -2)
    assert shifted.coord(0) == (4.0, 0.0)
    assert c.coord(0) == (1.0, 2.0)
    assert shifted.layers[0] is not c.layers[0]


def test_rotated45():
    c = Circuit.from_text("Q(1,0) 0\nQ(0,1) 1\nCZ 0 1")
    r = c.rotated45()
    assert r.coord(0) == (1.0, 1.0)
    assert r.coord(1) == (-1.0, 1.0)


def test_rectification_translates_and_scales():
    c = Circuit.from_text("Q(10,20) 0\nQ(12,20) 1\nCX 0 1")
    r = c.after_rectification()
    assert r.coord(0) == (0.0, 0.0)
    assert r.coord(1) == (1.0, 0.0)


def test_rectification_of_odd_diagonal_lattice():
    c = Circuit.from_text("Q(1,0) 0\nQ(0,1) 1\nCZ 0 1")
    r = c.after_rectification()
    assert r.coord(0) == (1.0, 0.0)
    assert r.coord(1) == (0.5, 0.5)


def test_rectification_ignores_unused_qubits():
    c = Circuit.from_text("Q(4,4) 0\nQ(6,4) 1\nQ(0.125,100) 2\nCX 0 1")
    r = c.after_rectification()
    assert r.coord(0) == (0.0, 0.0)
    assert r.coord(1) == (1.0, 0.0)


def test_rectification_without_used_qubits_uses_all():
    c = Circuit([(2, 2), (4, 2)], [Layer()])
    r = c.after_rectification()
    assert r.coord(0) == (0.0, 0.0)
    assert r.coord(1) == (1.0, 0.0)


@pytest.mark.parametrize("text", [
    "Q(0,0) 0\nQ(1,0) 1\nQ(2,0) 2\nCX 0 1\nTICK\nH 2",
    "Q(0,0) 0\nQ(1,0) 1\nQ(0,1) 2\nQ(1,1) 3\nCZ 0 3\nTICK\nMARKX(0) 1 2",
    "QUBIT_COORDS(0, 0) 0\nQUBIT_COORDS(0.5, 0.5) 1\nX 0\nTICK\nTICK\nH 1\nCX 0 1\nTICK\nM 0 1",
])
def test_eight_rotations_is_identity(text: str):
    c = Circuit.from_text(text)
    assert c.rotated_by(8) == c


def test_four_rotations_reflects_line():
    c = Circuit.from_text("Q(0,0) 0\nQ(1,0) 1\nQ(2,0) 2\nH 0\nTICK\nM 1 2")
    assert c.rotated_by(4) == Circuit.from_text("Q(0,0) 0\nQ(1,0) 1\nQ(2,0) 2\nH 2\nTICK\nM 1 0")


# ── Layer surgery ────────────────────────────────────────────────────────────


def test_excise_and_splice():
    c = Circuit.from_text("H 0\nTICK\nX 0\nTICK\nM 0")
    pre, layer, post = c.excise(1)
    assert len(pre.layers) == 1
    assert layer.gates[0].gate.name == 'X'
    assert len(post.layers) == 1
    assert Circuit.spliced(pre, layer, post) == c


def test_excise_out_of_range():
    c = Circuit.from_text("H 0")
    assert c.excise(3).layer is None


def test_splice_requires_same_coords():
    a = Circuit.from_text("H 0")
    b = a.shifted(1, 0)
    with pytest.raises(ValueError, match="coordinate"):
        Circuit.spliced(a, Layer(), b)


def test_without_markers():
    c = Circuit.from_text("H 0\nMARKX(0) 0\nMARK(0) 1")
    stripped = c.without_markers()
    assert stripped.layers[0].markers == []
    assert c.layers[0].markers


def test_with_coords_included():
    c = Circuit.from_text("Q(0,0) 0\nH 0")
    extended = c.with_coords_included([(0, 0), (3, 3)])
    assert extended.num_qubits == 2
    assert extended.coord_to_qubit_map()[(3.0, 3.0)] == 1
    assert c.num_qubits == 1


def test_all_qubits():
    c = Circuit.from_text("Q(0,0) 0\nQ(1,0) 1\nQ(2,0) 2\nH 0\nMARKZ(0) 2")
    assert c.all_qubits() == {0, 2}
