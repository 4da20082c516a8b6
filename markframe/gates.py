"""
Gate table for the editable circuit model.

Each gate carries a phase-blind conjugation table ("tableau") describing how it maps
Pauli basis strings through itself in the Heisenberg picture:

    CX:  XI → XX,  IX → IX,  ZI → ZI,  IZ → ZZ

Tables only need the basis vectors (one non-identity letter, X or Z) for unitary
gates; any other basis string is derived by XOR-ing the images of its X and Z parts.
Non-unitary gates (measurements, resets) map a basis to 'ERR:<letters>' when the
tracked Pauli anticommutes with the measured/reset observable, i.e. the frame
forces a detectable error rather than a deterministic value.

Signs are not tracked: H_XY sends Z to -Z, but the table stores 'Z'.

Markers (MARKX/Y/Z, MARK, POLYGON) are annotations with no table; they never
transform a frame and instead inject Paulis during propagation (see layer.py).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Mapping

ERR_PREFIX = 'ERR:'

# 2-bit accumulator value (bit 0 = X part, bit 1 = Z part) → letter
_BITS_TO_PAULI = 'IXZY'
_PAULI_TO_BITS: dict[str, int] = {'I': 0, 'X': 1, 'Z': 2, 'Y': 3}


class GateFamily(enum.Enum):
    CONTROLLED_PAULI = 'controlled_pauli'
    DEMOLITION_MEASUREMENT = 'demolition_measurement'
    HADAMARD_LIKE = 'hadamard_like'
    MARKER = 'marker'
    PAIR_MEASUREMENT = 'pair_measurement'
    PAULI = 'pauli'
    QUARTER_TURN = 'quarter_turn'
    RESET = 'reset'
    SOLO_MEASUREMENT = 'solo_measurement'
    SQRT_PAULI_PAIR = 'sqrt_pauli_pair'
    SWAP = 'swap'
    THIRD_TURN = 'third_turn'


# ── Basis helpers ─────────────────────────────────────────────────────────────

def expand_basis(basis: str) -> list[str]:
    """
    Split a basis string into single-letter X / Z basis vectors.

    Y contributes both an X vector and a Z vector at its position:
        'YZ' → ['XI', 'ZI', 'IZ']
    """
    result: list[str] = []
    n = len(basis)
    for k, letter in enumerate(basis):
        prefix = 'I' * k
        suffix = 'I' * (n - k - 1)
        if letter in ('X', 'Y'):
            result.append(prefix + 'X' + suffix)
        if letter in ('Z', 'Y'):
            result.append(prefix + 'Z' + suffix)
    return result


def strip_err(basis: str) -> tuple[bool, str]:
    """Return (has_err_prefix, letters)."""
    if basis.startswith(ERR_PREFIX):
        return True, basis[len(ERR_PREFIX):]
    return False, basis


def pauli_product(a: str, b: str) -> str:
    """
    Single-qubit Pauli product, ignoring phase.

    'I' and the empty/absent value act as the identity:
        pauli_product('X', 'Y') → 'Z'
        pauli_product('I', 'Z') → 'Z'
    """
    return _BITS_TO_PAULI[_PAULI_TO_BITS[a or 'I'] ^ _PAULI_TO_BITS[b or 'I']]


# ── Gate descriptor ───────────────────────────────────────────────────────────

@dataclass(frozen=True, eq=False)
class Gate:
    """
    An operation without specified targets.

    Attributes:
        name:             Canonical instruction name, e.g. 'CX', 'MARKX'.
        num_qubits:       Arity. None → variable arity (POLYGON).
        can_fuse:         Whether several operations of this gate in one layer are
                          written on a single instruction line.
        is_marker:        Annotation (may overlap other ops and other markers).
        tableau:          Phase-blind conjugation table, or None for markers.
        family:           Which gate family the gate belongs to.
        default_argument: Argument the editor attaches when placing the gate.
    """
    name: str
    num_qubits: int | None
    can_fuse: bool
    is_marker: bool
    tableau: Mapping[str, str] | None
    family: GateFamily
    default_argument: float | None = None

    def with_default_argument(self, value: float) -> 'Gate':
        return replace(self, default_argument=value)

    @property
    def marker_basis(self) -> str | None:
        """'X', 'Y' or 'Z' for MARKX / MARKY / MARKZ; None for everything else."""
        if self.is_marker and self.name in _MARKER_BASES:
            return self.name[-1]
        return None

    def conjugate(self, before: str) -> str:
        """
        Map a basis string through this gate.

        Direct table entries win. Otherwise the basis is expanded into X/Z basis
        vectors, each vector is looked up, and the images are XOR-combined per
        qubit. If any image is ERR-prefixed, the result carries a single 'ERR:'.

        Raises:
            ValueError: Basis length differs from the gate arity, or the table
                        lacks an entry needed for the decomposition.
        """
        table = self.tableau
        if table is None:
            return before
        if len(before) != self.num_qubits:
            raise ValueError(
                f"Basis '{before}' has length {len(before)} "
                f"but gate {self.name} acts on {self.num_qubits} qubits."
            )
        direct = table.get(before)
        if direct is not None:
            return direct

        acc = [0] * len(before)
        any_err = False
        for vector in expand_basis(before):
            image = table.get(vector)
            if image is None:
                raise ValueError(
                    f"Gate {self.name} has no conjugation entry for '{vector}'."
                )
            err, letters = strip_err(image)
            any_err |= err
            for k, letter in enumerate(letters):
                acc[k] ^= _PAULI_TO_BITS[letter]
        result = ''.join(_BITS_TO_PAULI[v] for v in acc)
        return ERR_PREFIX + result if any_err else result

    def __repr__(self) -> str:
        return f'Gate({self.name!r})'


def conjugate(gate: Gate, before: str) -> str:
    """Module-level alias of Gate.conjugate."""
    return gate.conjugate(before)


# ── Gate table ────────────────────────────────────────────────────────────────

_MARKER_BASES: frozenset[str] = frozenset({'MARKX', 'MARKY', 'MARKZ'})

# name → (arity, can_fuse, is_marker, tableau)
_GateRow = tuple[int | None, bool, bool, dict[str, str] | None]

_CONTROLLED_PAULIS: dict[str, _GateRow] = {
    'CXSWAP': (2, True, False, {'IX': 'XI', 'IZ': 'ZZ', 'XI': 'XX', 'ZI': 'IZ'}),
    'CX':     (2, True, False, {'IX': 'IX', 'IZ': 'ZZ', 'XI': 'XX', 'ZI': 'ZI'}),
    'CY':     (2, True, False, {'IX': 'ZX', 'IZ': 'ZZ', 'XI': 'XY', 'ZI': 'ZI'}),
    'XCX':    (2, True, False, {'IX': 'IX', 'IZ': 'XZ', 'XI': 'XI', 'ZI': 'ZX'}),
    'XCY':    (2, True, False, {'IX': 'XX', 'IZ': 'XZ', 'XI': 'XI', 'ZI': 'ZY'}),
    'YCY':    (2, True, False, {'IX': 'YX', 'IZ': 'YZ', 'XI': 'XY', 'ZI': 'ZY'}),
    'CZ':     (2, True, False, {'IX': 'ZX', 'IZ': 'IZ', 'XI': 'XZ', 'ZI': 'ZI'}),
}

_DEMOLITION_MEASUREMENTS: dict[str, _GateRow] = {
    'MR':  (1, True, False, {'X': 'ERR:I', 'Y': 'ERR:I', 'Z': 'I'}),
    'MRY': (1, True, False, {'X': 'ERR:I', 'Y': 'I', 'Z': 'ERR:I'}),
    'MRX': (1, True, False, {'X': 'I', 'Y': 'ERR:I', 'Z': 'ERR:I'}),
}

_HADAMARD_LIKES: dict[str, _GateRow] = {
    'H':    (1, True, False, {'X': 'Z', 'Z': 'X'}),
    'H_XY': (1, True, False, {'X': 'Y', 'Z': 'Z'}),  # -Z technically
    'H_YZ': (1, True, False, {'X': 'X', 'Z': 'Y'}),  # -X technically
}

_MARKERS: dict[str, _GateRow] = {
    'POLYGON': (None, False, True, None),
    'MARKX':   (1, True, True, None),
    'MARKY':   (1, True, True, None),
    'MARKZ':   (1, True, True, None),
    'MARK':    (1, False, True, None),
}


def _pair_measurement_table(basis: str) -> dict[str, str]:
    """Full 16-entry table for MXX / MYY / MZZ: anticommuting inputs become errors."""
    table: dict[str, str] = {}
    for a in 'IXYZ':
        for b in 'IXYZ':
            key = a + b
            anticommutes = sum(p not in ('I', basis) for p in key) % 2 == 1
            table[key] = ERR_PREFIX + key if anticommutes else key
    return table


_PAIR_MEASUREMENTS: dict[str, _GateRow] = {
    'MXX': (2, True, False, _pair_measurement_table('X')),
    'MYY': (2, True, False, _pair_measurement_table('Y')),
    'MZZ': (2, True, False, _pair_measurement_table('Z')),
}

_PAULIS: dict[str, _GateRow] = {
    name: (1, True, False, {'X': 'X', 'Z': 'Z'}) for name in ('I', 'X', 'Y', 'Z')
}

_QUARTER_TURNS: dict[str, _GateRow] = {
    'S':          (1, True, False, {'X': 'Y', 'Z': 'Z'}),
    'S_DAG':      (1, True, False, {'X': 'Y', 'Z': 'Z'}),
    'SQRT_X':     (1, True, False, {'X': 'X', 'Z': 'Y'}),
    'SQRT_X_DAG': (1, True, False, {'X': 'X', 'Z': 'Y'}),
    'SQRT_Y':     (1, True, False, {'X': 'Z', 'Z': 'X'}),
    'SQRT_Y_DAG': (1, True, False, {'X': 'Z', 'Z': 'X'}),
}

_RESETS: dict[str, _GateRow] = {
    name: (1, True, False, {'X': 'ERR:I', 'Y': 'ERR:I', 'Z': 'ERR:I'})
    for name in ('R', 'RX', 'RY')
}

_SOLO_MEASUREMENTS: dict[str, _GateRow] = {
    'M':  (1, True, False, {'X': 'ERR:X', 'Y': 'ERR:Y', 'Z': 'Z'}),
    'MX': (1, True, False, {'X': 'X', 'Y': 'ERR:Y', 'Z': 'ERR:Z'}),
    'MY': (1, True, False, {'X': 'ERR:X', 'Y': 'Y', 'Z': 'ERR:Z'}),
}

_SQRT_PAULI_PAIRS: dict[str, _GateRow] = {
    'SQRT_XX':     (2, True, False, {'IX': 'IX', 'IZ': 'XY', 'XI': 'XI', 'ZI': 'YX'}),
    'SQRT_XX_DAG': (2, True, False, {'IX': 'IX', 'IZ': 'XY', 'XI': 'XI', 'ZI': 'YX'}),
    'SQRT_YY':     (2, True, False, {'IX': 'YZ', 'IZ': 'YX', 'XI': 'ZY', 'ZI': 'XY'}),
    'SQRT_YY_DAG': (2, True, False, {'IX': 'YZ', 'IZ': 'YX', 'XI': 'ZY', 'ZI': 'XY'}),
    'SQRT_ZZ':     (2, True, False, {'IX': 'ZY', 'IZ': 'IZ', 'XI': 'YZ', 'ZI': 'ZI'}),
    'SQRT_ZZ_DAG': (2, True, False, {'IX': 'ZY', 'IZ': 'IZ', 'XI': 'YZ', 'ZI': 'ZI'}),
}

_SWAPS: dict[str, _GateRow] = {
    'ISWAP':     (2, True, False, {'IX': 'YZ', 'IZ': 'ZI', 'XI': 'ZY', 'ZI': 'IZ'}),
    'ISWAP_DAG': (2, True, False, {'IX': 'YZ', 'IZ': 'ZI', 'XI': 'ZY', 'ZI': 'IZ'}),
    'SWAP':      (2, True, False, {'IX': 'XI', 'IZ': 'ZI', 'XI': 'IX', 'ZI': 'IZ'}),
}

_THIRD_TURNS: dict[str, _GateRow] = {
    'C_XYZ': (1, True, False, {'X': 'Y', 'Z': 'X'}),
    'C_ZYX': (1, True, False, {'X': 'Z', 'Z': 'Y'}),
}

_FAMILIES: tuple[tuple[GateFamily, dict[str, _GateRow]], ...] = (
    (GateFamily.CONTROLLED_PAULI, _CONTROLLED_PAULIS),
    (GateFamily.DEMOLITION_MEASUREMENT, _DEMOLITION_MEASUREMENTS),
    (GateFamily.HADAMARD_LIKE, _HADAMARD_LIKES),
    (GateFamily.MARKER, _MARKERS),
    (GateFamily.PAIR_MEASUREMENT, _PAIR_MEASUREMENTS),
    (GateFamily.PAULI, _PAULIS),
    (GateFamily.QUARTER_TURN, _QUARTER_TURNS),
    (GateFamily.RESET, _RESETS),
    (GateFamily.SOLO_MEASUREMENT, _SOLO_MEASUREMENTS),
    (GateFamily.SQRT_PAULI_PAIR, _SQRT_PAULI_PAIRS),
    (GateFamily.SWAP, _SWAPS),
    (GateFamily.THIRD_TURN, _THIRD_TURNS),
)


def _build_gate_map() -> Mapping[str, Gate]:
    result: dict[str, Gate] = {}
    for family, rows in _FAMILIES:
        for name, (arity, can_fuse, is_marker, table) in rows.items():
            tableau = None if table is None else MappingProxyType(dict(table))
            result[name] = Gate(name, arity, can_fuse, is_marker, tableau, family)
    return MappingProxyType(result)


GATE_MAP: Mapping[str, Gate] = _build_gate_map()


def get_gate(name: str) -> Gate:
    """Look up a gate by canonical name. Raises KeyError for unknown names."""
    return GATE_MAP[name]
