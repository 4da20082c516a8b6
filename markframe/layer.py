"""
Operations and layers (time slices) of an editable circuit.

- Operation: an immutable gate application (gate, args, targets).
- Layer:     one time slice. Real gates occupy qubits exclusively: a qubit is
             targeted by at most one non-marker operation per layer. Markers
             (MARKX/Y/Z, MARK, POLYGON) are kept in a separate list and may overlap
             anything.

Occupancy is stored as an arena of owned operations plus a qubit → slot index,
so evicting an operation clears all of its targets in O(len(targets)).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Iterator

import numpy as np

from .gates import ERR_PREFIX, Gate, pauli_product, strip_err


class CollisionError(ValueError):
    """A non-overwriting put hit a qubit that is already occupied in the layer."""


def _as_float32_args(args: Iterable[float]) -> tuple[float, ...]:
    # Arguments are single-precision in the editor; keep serialized text identical.
    return tuple(float(np.float32(a)) for a in args)


@dataclass(frozen=True)
class Operation:
    """
    A gate bound to arguments and an ordered tuple of target qubit ids.

    Target order matters (control before target for CX, etc.).
    """
    gate: Gate
    args: tuple[float, ...] = ()
    targets: tuple[int, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, 'args', _as_float32_args(self.args))
        object.__setattr__(self, 'targets', tuple(int(t) for t in self.targets))

    @classmethod
    def of(cls, gate: Gate, targets: Iterable[int], args: Iterable[float] = ()) -> 'Operation':
        return cls(gate, tuple(args), tuple(targets))

    def pauli_frame_after(self, before: str) -> str:
        """Conjugate a basis string (one letter per target) through the gate."""
        return self.gate.conjugate(before)

    def __repr__(self) -> str:
        args = f"({','.join(repr(a) for a in self.args)})" if self.args else ''
        return f"Operation({self.gate.name}{args} {' '.join(map(str, self.targets))})"


class Layer:
    """
    A single time slice of a circuit.

    Layers are mutated in place while a circuit is being assembled (parser,
    editor); once handed to a Circuit they are copied before any change.
    """

    def __init__(self) -> None:
        self._ops: dict[int, Operation] = {}     # slot → op, in put order
        self._slot_of: dict[int, int] = {}       # qubit → slot
        self._next_slot = 0
        self.markers: list[Operation] = []

    # ── Construction / copying ────────────────────────────────────────────────

    def copy(self) -> 'Layer':
        result = Layer()
        result._ops = dict(self._ops)
        result._slot_of = dict(self._slot_of)
        result._next_slot = self._next_slot
        result.markers = list(self.markers)
        return result

    def filtered(self, predicate: Callable[[Operation], bool]) -> 'Layer':
        """New layer holding only the operations (gates and markers) accepted by predicate."""
        result = Layer()
        for op in self._ops.values():
            if predicate(op):
                result.put(op)
        for op in self.markers:
            if predicate(op):
                result.markers.append(op)
        return result

    def filtered_by_qubit(self, predicate: Callable[[int], bool]) -> 'Layer':
        """New layer holding operations that touch at least one qubit accepted by predicate."""
        return self.filtered(lambda op: any(predicate(q) for q in op.targets))

    # ── Inspection ────────────────────────────────────────────────────────────

    def is_empty(self) -> bool:
        return not self._ops and not self.markers

    def op_at(self, qubit: int) -> Operation | None:
        """The non-marker operation occupying `qubit`, if any."""
        slot = self._slot_of.get(qubit)
        return None if slot is None else self._ops[slot]

    @property
    def gates(self) -> list[Operation]:
        """Non-marker operations, in the order they were put."""
        return list(self._ops.values())

    @property
    def occupied_qubits(self) -> set[int]:
        return set(self._slot_of)

    def iter_gates_and_markers(self) -> Iterator[Operation]:
        yield from self._ops.values()
        yield from self.markers

    # ── Mutation ──────────────────────────────────────────────────────────────

    def pop_at(self, qubit: int) -> Operation | None:
        """
        Remove markers touching `qubit` and the operation occupying it.

        The whole operation is evicted, freeing all of its targets.
        Returns the evicted operation, or None.
        """
        self.markers = [op for op in self.markers if qubit not in op.targets]
        slot = self._slot_of.get(qubit)
        if slot is None:
            return None
        op = self._ops.pop(slot)
        for t in op.targets:
            self._slot_of.pop(t, None)
        return op

    def drop_markers_at(self, qubit: int, index: float | None = None) -> None:
        """Remove MARKX/Y/Z markers on `qubit` (only those with args[0] == index, if given)."""
        def keep(op: Operation) -> bool:
            if index is not None and (not op.args or op.args[0] != index):
                return True
            if op.gate.marker_basis is None:
                return True
            return op.targets[0] != qubit

        self.markers = [op for op in self.markers if keep(op)]

    def put(self, op: Operation, allow_overwrite: bool = True) -> None:
        """
        Place an operation in the layer.

        Markers: an X/Y/Z marker first replaces any marker of the same kind and
        index on the same qubit, then is appended.

        Gates: occupants of the target qubits are evicted (whole operations) when
        allow_overwrite is True.

        Raises:
            CollisionError: A target is occupied and allow_overwrite is False.
        """
        if op.gate.is_marker:
            if op.gate.marker_basis is not None:
                self._drop_same_marker(op)
            self.markers.append(op)
            return

        for t in op.targets:
            if t in self._slot_of:
                if not allow_overwrite:
                    raise CollisionError(
                        f"Qubit {t} is already used by {self.op_at(t)!r} in this layer."
                    )
                self.pop_at(t)

        slot = self._next_slot
        self._next_slot += 1
        self._ops[slot] = op
        for t in op.targets:
            self._slot_of[t] = slot

    def _drop_same_marker(self, op: Operation) -> None:
        q = op.targets[0]
        index = op.args[0] if op.args else None
        self.markers = [
            m for m in self.markers
            if not (m.gate.name == op.gate.name
                    and m.targets[0] == q
                    and (m.args[0] if m.args else None) == index)
        ]

    def clear_markers(self, names: Iterable[str] | None = None) -> None:
        """Remove all markers, or only those whose gate name is in `names`."""
        if names is None:
            self.markers = []
            return
        names = frozenset(names)
        self.markers = [op for op in self.markers if op.gate.name not in names]

    # ── Pauli frame propagation ───────────────────────────────────────────────

    def pauli_frame_after(self, before: dict[int, str], marker_index: float) -> dict[int, str]:
        """
        Propagate a sparse Pauli frame (qubit → letter) through this layer.

        Each qubit of `before` occupied by a gate has the letters of all that gate's
        targets (absent → 'I') conjugated together; the results are written for
        every target, each prefixed 'ERR:' when the gate flagged an error.
        Unoccupied qubits pass through. Finally every MARKX/Y/Z marker whose
        args[0] equals `marker_index` multiplies its Pauli into its target.
        """
        after: dict[int, str] = {}
        for q, value in before.items():
            op = self.op_at(q)
            if op is None:
                after[q] = value
                continue
            basis = ''.join(before.get(t, 'I') for t in op.targets)
            image = op.pauli_frame_after(basis)
            has_err, letters = strip_err(image)
            for t, letter in zip(op.targets, letters):
                after[t] = ERR_PREFIX + letter if has_err else letter

        for op in self.markers:
            basis = op.gate.marker_basis
            if basis is None or not op.args or op.args[0] != marker_index:
                continue
            q = op.targets[0]
            current = after.get(q, 'I')
            if current.startswith(ERR_PREFIX):
                # Errored qubits keep their flagged value.
                continue
            after[q] = pauli_product(current, basis)
        return after

    def __repr__(self) -> str:
        ops = ', '.join(repr(op) for op in self.iter_gates_and_markers())
        return f'Layer([{ops}])'
