"""
Editable circuit: qubit coordinates plus an ordered list of layers.

- qubit_coords: float64 array of shape (n_qubits, 2); row q holds (x, y) of qubit q.
- layers:       list of Layer time slices (see layer.py).

Operations refer to qubits by id, never by position, so coordinate transforms
(shift, 45° rotation, rectification) only rewrite qubit_coords.

Canonical text (to_stim_circuit) renumbers the qubits that are actually used by
sorting on (x, y, id). Two circuits are considered equal iff their canonical
texts are equal, so circuits that differ only by id assignment compare equal.

Every method returns a new Circuit; layers are copied and coordinates reallocated.
"""

from __future__ import annotations

import math
from typing import Callable, Iterable, NamedTuple

import numpy as np
import stim

from .gates import GATE_MAP
from .layer import Layer, Operation

CoordTransform = Callable[[np.ndarray, np.ndarray], tuple[np.ndarray, np.ndarray]]

# Rectification lattice steps: powers of two between these bounds.
_MAX_STEP = 256.0
_MIN_STEP = 1.0 / 256.0


# ── Number formatting ─────────────────────────────────────────────────────────

def format_number(value: float) -> str:
    """
    Format a number the way the browser editor prints it.

        1.0 → '1',  0.5 → '0.5',  -0.0 → '0',  1e-07 → '1e-7'
    """
    value = float(value)
    if math.isnan(value):
        return 'NaN'
    if math.isinf(value):
        return 'Infinity' if value > 0 else '-Infinity'
    if value == int(value) and abs(value) < 1e21:
        return str(int(value))
    if abs(value) < 1e-6 or abs(value) >= 1e21:
        return np.format_float_scientific(value, unique=True, trim='-', exp_digits=1)
    return np.format_float_positional(value, unique=True, trim='-')


def _group_sort_key(name_with_args: str) -> tuple[bool, str]:
    # Marker / polygon groups always come after real gates.
    is_marker = name_with_args.startswith('MARK') or name_with_args.startswith('POLY')
    return is_marker, name_with_args


class ExcisedCircuit(NamedTuple):
    """A circuit split around one layer: layers[:k], layers[k], layers[k+1:]."""
    pre: 'Circuit'
    layer: Layer | None
    post: 'Circuit'


# ── Circuit class ─────────────────────────────────────────────────────────────

class Circuit:
    """
    Qubit coordinates + layers.

    Build from text:
        >>> c = Circuit.from_text("QUBIT_COORDS(0, 0) 0\\nH 0\\nTICK\\nM 0")
        >>> c.to_stim_circuit()
        'QUBIT_COORDS(0, 0) 0\\nH 0\\nTICK\\nM 0'

    Rotate by 45° and snap back onto a canonical lattice:
        >>> c2 = c.rotated45().after_rectification()
    """

    def __init__(self, qubit_coords, layers: Iterable[Layer] = ()) -> None:
        coords = np.array(qubit_coords, dtype=np.float64)
        if coords.ndim == 1:
            # Flat (x0, y0, x1, y1, ...) data.
            if coords.size % 2:
                raise ValueError("Flat coordinate data must have an even length.")
            coords = coords.reshape(-1, 2)
        if coords.ndim != 2 or coords.shape[1] != 2:
            raise ValueError(f"qubit_coords must have shape (n, 2), got {coords.shape}")
        coords.flags.writeable = False
        layers = list(layers)
        if not all(isinstance(e, Layer) for e in layers):
            raise TypeError("layers must all be Layer instances")
        self.qubit_coords: np.ndarray = coords
        self.layers: list[Layer] = layers

    # ── Construction ──────────────────────────────────────────────────────────

    @classmethod
    def from_text(cls, text: str) -> 'Circuit':
        """Parse Stim-dialect text (see codec.parse_circuit)."""
        from .codec import parse_circuit
        return parse_circuit(text)

    @classmethod
    def from_stim(cls, stim_circuit: stim.Circuit) -> 'Circuit':
        """Build a Circuit from a stim.Circuit via its text form."""
        return cls.from_text(str(stim_circuit))

    @classmethod
    def spliced(cls, pre: 'Circuit', layer: Layer, post: 'Circuit') -> 'Circuit':
        """Concatenate pre.layers + [layer] + post.layers; both sides must share coordinates."""
        if not np.array_equal(pre.qubit_coords, post.qubit_coords):
            raise ValueError("Attempt to splice circuits with different qubit coordinate data")
        layers = [e.copy() for e in pre.layers] + [layer.copy()] + [e.copy() for e in post.layers]
        return cls(pre.qubit_coords, layers)

    # ── Inspection ────────────────────────────────────────────────────────────

    @property
    def num_qubits(self) -> int:
        return int(self.qubit_coords.shape[0])

    def coord(self, qubit: int) -> tuple[float, float]:
        x, y = self.qubit_coords[qubit]
        return float(x), float(y)

    def all_qubits(self) -> set[int]:
        """Ids of qubits targeted by any operation or marker."""
        result: set[int] = set()
        for layer in self.layers:
            for op in layer.iter_gates_and_markers():
                result.update(op.targets)
        return result

    def coord_to_qubit_map(self) -> dict[tuple[float, float], int]:
        result: dict[tuple[float, float], int] = {}
        for q in range(self.num_qubits):
            result[self.coord(q)] = q
        return result

    # ── Coordinate transforms ─────────────────────────────────────────────────

    def after_coord_transform(self, coord_transform: CoordTransform) -> 'Circuit':
        """
        Apply coord_transform(xs, ys) → (xs2, ys2) to every coordinate.

        The transform receives numpy columns and must be elementwise.
        """
        xs, ys = coord_transform(self.qubit_coords[:, 0], self.qubit_coords[:, 1])
        n = self.num_qubits
        new_coords = np.empty((n, 2), dtype=np.float64)
        new_coords[:, 0] = np.broadcast_to(xs, (n,))
        new_coords[:, 1] = np.broadcast_to(ys, (n,))
        return Circuit(new_coords, [e.copy() for e in self.layers])

    def shifted(self, dx: float, dy: float) -> 'Circuit':
        return self.after_coord_transform(lambda x, y: (x + dx, y + dy))

    def copy(self) -> 'Circuit':
        return self.shifted(0, 0)

    def rotated45(self) -> 'Circuit':
        return self.after_coord_transform(lambda x, y: (x - y, x + y))

    def coord_transform_for_rectification(self) -> CoordTransform:
        """
        Transform mapping the used coordinates onto a canonical lattice.

        Finds the largest power-of-two step (256 down to 1/256) dividing every
        coordinate, translates the minimum x / y to 0 and scales by 1/step. When
        every point sits on one diagonal parity class (a 45°-rotated lattice) the
        scale is halved again, and if that class is the odd one the x origin moves
        back by one step, so diagonal and axis-aligned lattices end up at the same
        density.
        """
        used = sorted(self.all_qubits())
        rows = self.qubit_coords[used] if used else self.qubit_coords
        points = {(float(x), float(y)) for x, y in rows}
        if not points:
            return lambda x, y: (x, y)

        min_x = math.inf
        min_y = math.inf
        step = _MAX_STEP
        for x, y in points:
            min_x = min(x, min_x)
            min_y = min(y, min_y)
            while (x % step != 0 or y % step != 0) and step > _MIN_STEP:
                step /= 2

        if step <= _MIN_STEP:
            scale = 1.0
        else:
            scale = 1.0 / step
            mask = 0
            for x, y in points:
                b1 = (x - min_x + y - min_y) % (2 * step)
                b2 = (x - min_x - y + min_y) % (2 * step)
                mask |= 1 if b1 == 0 else 2
                mask |= 4 if b2 == 0 else 8
            if mask == (1 | 4):
                scale /= 2
            elif mask == (2 | 8):
                min_x -= step
                scale /= 2

        offset_x = -min_x
        offset_y = -min_y
        return lambda x, y: ((x + offset_x) * scale, (y + offset_y) * scale)

    def after_rectification(self) -> 'Circuit':
        return self.after_coord_transform(self.coord_transform_for_rectification())

    def rotated_by(self, steps: int) -> 'Circuit':
        """Apply rotate-45-then-rectify `steps` times."""
        result = self.copy()
        for _ in range(steps):
            result = result.rotated45().after_rectification()
        return result

    def with_coords_included(self, coords: Iterable[tuple[float, float]]) -> 'Circuit':
        """Append qubits for any coordinates not already present."""
        coord_map = self.coord_to_qubit_map()
        extra: list[tuple[float, float]] = []
        for x, y in coords:
            key = (float(x), float(y))
            if key not in coord_map:
                coord_map[key] = len(coord_map)
                extra.append(key)
        new_coords = np.concatenate(
            [self.qubit_coords, np.array(extra, dtype=np.float64).reshape(-1, 2)]
        )
        return Circuit(new_coords, [e.copy() for e in self.layers])

    # ── Layer surgery ─────────────────────────────────────────────────────────

    def without_markers(self) -> 'Circuit':
        result = self.copy()
        for layer in result.layers:
            layer.clear_markers()
        return result

    def excise(self, layer_index: int) -> ExcisedCircuit:
        """Split around one layer. `layer` is None when the index is out of range."""
        layer = self.layers[layer_index] if 0 <= layer_index < len(self.layers) else None
        return ExcisedCircuit(
            pre=Circuit(self.qubit_coords, self.layers[:layer_index]),
            layer=layer,
            post=Circuit(self.qubit_coords, self.layers[layer_index + 1:]),
        )

    # ── Serialization ─────────────────────────────────────────────────────────

    def to_stim_circuit(self) -> str:
        """
        Canonical Stim-dialect text.

        Only used qubits are written, renumbered by ascending (x, y, old id).
        Per layer, operations are grouped by name + args; fusable groups become
        one line, others one line per operation. Groups are sorted by name with
        markers last. Layers are separated by TICK; trailing TICKs are dropped.
        """
        packed = sorted(self.all_qubits(), key=lambda q: (*self.coord(q), q))
        old_to_new: dict[int, int] = {}
        out: list[str] = []
        for new_q, old_q in enumerate(packed):
            old_to_new[old_q] = new_q
            x, y = self.coord(old_q)
            out.append(f'QUBIT_COORDS({format_number(x)}, {format_number(y)}) {new_q}')

        for layer in self.layers:
            groups: dict[str, list[Operation]] = {}
            for op in layer.iter_gates_and_markers():
                key = op.gate.name
                if op.args:
                    key += '(' + ','.join(format_number(a) for a in op.args) + ')'
                groups.setdefault(key, []).append(op)

            for key in sorted(groups, key=_group_sort_key):
                group = groups[key]
                if GATE_MAP[key.split('(')[0]].can_fuse:
                    target_groups = [[t for op in group for t in op.targets]]
                else:
                    target_groups = [list(op.targets) for op in group]
                for targets in target_groups:
                    out.append(' '.join([key, *(str(old_to_new[t]) for t in targets)]))
            out.append('TICK')

        while out and out[-1] == 'TICK':
            out.pop()
        return '\n'.join(out)

    def to_stim(self) -> stim.Circuit:
        """
        Export the non-marker content as a stim.Circuit.

        Markers are editor annotations with no Stim counterpart and are dropped.
        """
        return stim.Circuit(self.without_markers().to_stim_circuit())

    # ── Equality ──────────────────────────────────────────────────────────────

    def is_equal_to(self, other: object) -> bool:
        if not isinstance(other, Circuit):
            return False
        return self.to_stim_circuit() == other.to_stim_circuit()

    def __eq__(self, other: object) -> bool:
        return self.is_equal_to(other)

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        return self.to_stim_circuit()

    def __repr__(self) -> str:
        return f'Circuit(n_qubits={self.num_qubits}, n_layers={len(self.layers)})'
