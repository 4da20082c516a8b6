"""
Parser for the Stim-dialect text format used by the circuit editor.

    QUBIT_COORDS(0, 0) 0
    QUBIT_COORDS(1, 0) 1
    H 0
    TICK
    CX 0 1
    MARKX(0) 1
    REPEAT 2 {
        M 0 1
        TICK
    }

Rules:
    - Lines are separated by newlines or ';'. '#' starts a comment.
    - Compact shorthand is accepted: 'Q(x,y)' for QUBIT_COORDS and spaces
      instead of underscores in gate names ('S DAG 0').
    - TICK always starts a new layer, so 'TICK; TICK' leaves an empty layer.
    - REPEAT blocks are unrolled; each repetition starts on a fresh layer.
    - Targets are chunked by gate arity into one Operation per chunk. A chunk
      colliding with an earlier operation in the current layer starts a new layer.
    - MPP products become M<paulis> gates (MXX, MZZ, ...) when such a gate exists,
      otherwise one single-qubit measurement per factor.
    - Noise channels, detectors, observables and coordinate shifts are dropped.
    - Qubits without explicit QUBIT_COORDS are placed at the next free (x, 0).

Serialization lives on Circuit.to_stim_circuit().
"""

from __future__ import annotations

import warnings

from .circuit import Circuit
from .gates import GATE_MAP, Gate
from .layer import CollisionError, Layer, Operation


class ParseError(ValueError):
    """Malformed circuit text: unknown gate, bad target, bad arity, open REPEAT."""


# ── Text normalisation (applied in order, before tokenising) ──────────────────

_SHORTHAND_REWRITES: tuple[tuple[str, str], ...] = (
    (';', '\n'),
    ('_', ' '),
    ('Q(', 'QUBIT_COORDS('),
    ('DT', 'DETECTOR'),
    (' COORDS', '_COORDS'),
    (' ERROR', '_ERROR'),
    ('C XYZ', 'C_XYZ'),
    ('H XY', 'H_XY'),
    ('H YZ', 'H_YZ'),
    (' INCLUDE', '_INCLUDE'),
    ('SQRT ', 'SQRT_'),
    (' DAG ', '_DAG '),
    ('C ZYX', 'C_ZYX'),
    ('PAULI CHANNEL ', 'PAULI_CHANNEL_'),
    ('HERALDED ', 'HERALDED_'),
    ('ELSE ', 'ELSE_'),
)

# ── Alternate gate names → (canonical name, reverse target pairs) ─────────────

_ALIASES: dict[str, tuple[str, bool]] = {
    'XCZ': ('CX', True),
    'SWAPCX': ('CXSWAP', True),
    'CNOT': ('CX', False),
    'RZ': ('R', False),
    'MZ': ('M', False),
    'MRZ': ('MR', False),
    'ZCX': ('CX', False),
    'ZCY': ('CY', False),
    'ZCZ': ('CZ', False),
    'YCX': ('XCY', True),
    'YCZ': ('CY', True),
}

# Instructions outside the editable model: recognised and discarded.
_DISCARDED: frozenset[str] = frozenset({
    'X_ERROR', 'Y_ERROR', 'Z_ERROR',
    'DEPOLARIZE1', 'DEPOLARIZE2',
    'PAULI_CHANNEL_1', 'PAULI_CHANNEL_2',
    'E', 'CORRELATED_ERROR', 'ELSE_CORRELATED_ERROR',
    'HERALDED_ERASE', 'HERALDED_PAULI_CHANNEL_1',
    'DETECTOR', 'OBSERVABLE_INCLUDE', 'SHIFT_COORDS', 'MPAD',
    'REPEAT', '}',
})

_CLASSICAL_TARGET_PREFIXES: tuple[str, ...] = ('rec[', 'sweep[')


def normalize_text(text: str) -> list[str]:
    """Apply the shorthand rewrites and split into raw lines."""
    for old, new in _SHORTHAND_REWRITES:
        text = text.replace(old, new)
    return text.split('\n')


def _strip_comment(line: str) -> str:
    return line.split('#')[0].strip()


def _parse_int(token: str, line: str) -> int:
    try:
        value = int(token)
    except ValueError:
        raise ParseError(f"Expected an integer qubit target but got '{token}' in line: {line}") from None
    if value < 0:
        raise ParseError(f"Negative qubit target '{token}' in line: {line}")
    return value


def _parse_float(token: str, line: str) -> float:
    try:
        return float(token)
    except ValueError:
        raise ParseError(f"Bad gate argument '{token}' in line: {line}") from None


def split_instruction(line: str) -> tuple[str, list[float], list[str]]:
    """
    Split one instruction line into (name, args, target tokens).

        'MARKX(0) 1 2' → ('MARKX', [0.0], ['1', '2'])
        'H 0 1'        → ('H', [], ['0', '1'])
    """
    if ')' in line:
        head, _, tail = line.partition(')')
        name, _, arg_text = head.partition('(')
        args = [_parse_float(e.strip(), line) for e in arg_text.split(',') if e.strip()]
        return name.strip(), args, tail.split()
    tokens = line.split()
    if not tokens:
        return '', [], []
    return tokens[0], [], tokens[1:]


# ── Parser ────────────────────────────────────────────────────────────────────

class _CircuitParser:
    """Single-use parser state: layers under construction and qubit positions."""

    def __init__(self) -> None:
        self.layers: list[Layer] = [Layer()]
        self.i2q: dict[int, tuple[float, float]] = {}
        self.used_positions: set[tuple[float, float]] = set()
        self.next_auto_x = 0

    # ── Qubit placement ───────────────────────────────────────────────────────

    def ensure_has_coords(self, qubit: int) -> None:
        while qubit not in self.i2q:
            pos = (float(self.next_auto_x), 0.0)
            if pos not in self.used_positions:
                self.used_positions.add(pos)
                self.i2q[qubit] = pos
            self.next_auto_x += 1

    # ── Layers ────────────────────────────────────────────────────────────────

    @property
    def layer(self) -> Layer:
        return self.layers[-1]

    def start_layer(self) -> None:
        self.layers.append(Layer())

    def start_layer_if_used(self) -> None:
        if not self.layer.is_empty():
            self.start_layer()

    def place(self, op: Operation) -> None:
        """Put without overwriting; on collision continue in a fresh layer."""
        try:
            self.layer.put(op, allow_overwrite=False)
        except CollisionError:
            self.start_layer()
            self.layer.put(op, allow_overwrite=False)

    # ── Blocks ────────────────────────────────────────────────────────────────

    @staticmethod
    def find_end_of_block(lines: list[str], start: int, end: int) -> int:
        nest_level = 0
        for k in range(start, end):
            line = _strip_comment(lines[k])
            if line.lower().startswith('repeat '):
                nest_level += 1
            elif line == '}':
                nest_level -= 1
                if nest_level == 0:
                    return k
        raise ParseError("Repeat block didn't end")

    def process_chunk(self, lines: list[str], start: int, end: int, repetitions: int) -> None:
        self.start_layer_if_used()
        for _ in range(repetitions):
            k = start
            while k < end:
                line = _strip_comment(lines[k])
                if line.lower().startswith('repeat '):
                    parts = line.split()
                    reps = _parse_int(parts[1] if len(parts) > 1 else '', line)
                    block_end = self.find_end_of_block(lines, k, end)
                    self.process_chunk(lines, k + 1, block_end, reps)
                    k = block_end
                else:
                    self.process_line(line)
                k += 1
            self.start_layer_if_used()

    # ── Instructions ──────────────────────────────────────────────────────────

    def process_line(self, line: str) -> None:
        name, args, targets = split_instruction(line)
        if not name:
            return

        reverse_pairs = False
        if name in _ALIASES:
            name, reverse_pairs = _ALIASES[name]

        if name == 'TICK':
            self.start_layer()
            return
        if name == 'MPP':
            self.process_mpp(args, targets, line)
            return
        if name in _DISCARDED:
            return
        if name.startswith('QUBIT_COORDS'):
            self.process_qubit_coords(args, targets, line)
            return

        gate = GATE_MAP.get(name)
        if gate is None:
            raise ParseError(f"Unrecognized gate name in {line}")

        if gate.num_qubits == 2 and any(t.startswith(_CLASSICAL_TARGET_PREFIXES) for t in targets):
            warnings.warn(f"Ignoring classically controlled '{line}'.", stacklevel=4)
            return
        qubits = [_parse_int(t, line) for t in targets]
        for q in qubits:
            self.ensure_has_coords(q)

        if gate.num_qubits is None:
            self.layer.put(Operation(gate, tuple(args), tuple(qubits)))
            return
        if len(qubits) % gate.num_qubits != 0:
            raise ParseError(f"Incorrect number of targets in line {line}")
        for k in range(0, len(qubits), gate.num_qubits):
            chunk = qubits[k:k + gate.num_qubits]
            if reverse_pairs:
                chunk.reverse()
            self.place(Operation(gate, tuple(args), tuple(chunk)))

    def process_qubit_coords(self, args: list[float], targets: list[str], line: str) -> None:
        x = args[0] if len(args) >= 1 else 0.0
        y = args[1] if len(args) >= 2 else 0.0
        pos = (float(x), float(y))
        for token in targets:
            q = _parse_int(token, line)
            if q in self.i2q:
                warnings.warn(
                    f'Ignoring "{line}" because there\'s already coordinate data for qubit {q}.',
                    stacklevel=4,
                )
            elif pos in self.used_positions:
                warnings.warn(
                    f'Ignoring "{line}" because there\'s already a qubit placed at {x},{y}.',
                    stacklevel=4,
                )
            else:
                self.i2q[q] = pos
                self.used_positions.add(pos)

    def process_mpp(self, args: list[float], targets: list[str], line: str) -> None:
        for product in targets:
            paulis = ''
            qubits: list[int] = []
            for term in product.split('*'):
                term = term.lstrip('!')
                if len(term) < 2 or term[0] not in 'XYZ':
                    raise ParseError(f"Bad Pauli product term '{term}' in line: {line}")
                paulis += term[0]
                qubits.append(_parse_int(term[1:], line))
            for q in qubits:
                self.ensure_has_coords(q)

            gate = GATE_MAP.get('M' + paulis)
            if gate is not None and gate.num_qubits == len(qubits):
                self.place(Operation(gate, tuple(args), tuple(qubits)))
                continue
            if len(paulis) > 1:
                warnings.warn(
                    f"Splitting MPP product '{product}' into individual measurements.",
                    stacklevel=4,
                )
            for pauli, q in zip(paulis, qubits):
                sub_gate: Gate = GATE_MAP['M' if pauli == 'Z' else 'M' + pauli]
                self.place(Operation(sub_gate, tuple(args), (q,)))

    # ── Result ────────────────────────────────────────────────────────────────

    def finish(self) -> Circuit:
        if self.layers and self.layers[-1].is_empty():
            self.layers.pop()
        num_qubits = max(self.i2q, default=-1) + 1
        coords = []
        for q in range(num_qubits):
            self.ensure_has_coords(q)
            coords.append(self.i2q[q])
        return Circuit(coords, self.layers)


def parse_circuit(text: str) -> Circuit:
    """
    Parse Stim-dialect text into a Circuit.

    Raises:
        ParseError: Unknown gate name, non-integer or negative target, bad argument,
                    target count not a multiple of the gate arity, or an
                    unterminated REPEAT block.
    """
    lines = normalize_text(text)
    parser = _CircuitParser()
    parser.process_chunk(lines, 0, len(lines), 1)
    return parser.finish()
