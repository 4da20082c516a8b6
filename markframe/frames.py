"""
Pauli-frame propagation of editor markers through a circuit.

Markers MARKX(i) / MARKY(i) / MARKZ(i) inject Paulis into frame i. Walking the
layers in order, the frame is conjugated through every gate (layer.py) and the
result is summarised per layer:

    bases:     qubit → 'X' | 'Y' | 'Z'   (identity is stored as absence)
    errors:    qubits where a measurement / reset anticommuted with the frame
    crossings: two-qubit gates whose targets' letters changed across the layer

Only layers with something to show are stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

from .circuit import Circuit
from .gates import ERR_PREFIX


class Crossing(NamedTuple):
    """
    A two-qubit gate that changed the frame on its targets.

    color is the single letter involved in the change, or 'I' when several
    letters were involved.
    """
    q1: int
    q2: int
    color: str


@dataclass
class PropagatedPauliFrameLayer:
    bases: dict[int, str] = field(default_factory=dict)
    errors: set[int] = field(default_factory=set)
    crossings: list[Crossing] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.bases and not self.errors and not self.crossings

    def error_bases(self) -> dict[int, str]:
        """Letter seen at each errored qubit ('I' when the frame vanished there)."""
        return {q: self.bases.get(q, 'I') for q in sorted(self.errors)}


class PropagatedPauliFrames:
    """Sparse map layer index → PropagatedPauliFrameLayer."""

    def __init__(self, layers: dict[int, PropagatedPauliFrameLayer]) -> None:
        self.layers = layers

    def at_layer(self, layer: int) -> PropagatedPauliFrameLayer:
        result = self.layers.get(layer)
        if result is None:
            result = PropagatedPauliFrameLayer()
        return result

    @classmethod
    def from_circuit(cls, circuit: Circuit, marker_index: float) -> 'PropagatedPauliFrames':
        """
        Propagate marker frame `marker_index` through every layer of `circuit`.

        The result is deterministic and does not modify the circuit.
        """
        result = cls({})
        bases: dict[int, str] = {}
        for k, layer in enumerate(circuit.layers):
            prev_bases = bases
            bases = layer.pauli_frame_after(bases, marker_index)

            errors: set[int] = set()
            for q in list(bases):
                value = bases[q]
                if value.startswith(ERR_PREFIX):
                    errors.add(q)
                    value = value[len(ERR_PREFIX):]
                    bases[q] = value
                if value == 'I':
                    del bases[q]

            crossings: list[Crossing] = []
            for op in layer.gates:
                if op.gate.num_qubits != 2:
                    continue
                q1, q2 = op.targets
                differences: set[str] = set()
                for t in op.targets:
                    b1 = bases.get(t)
                    b2 = prev_bases.get(t)
                    if b1 != b2:
                        if b1 is not None:
                            differences.add(b1)
                        if b2 is not None:
                            differences.add(b2)
                if differences:
                    color = next(iter(differences)) if len(differences) == 1 else 'I'
                    crossings.append(Crossing(q1, q2, color))

            frame_layer = PropagatedPauliFrameLayer(bases, errors, crossings)
            if not frame_layer.is_empty():
                result.layers[k] = frame_layer
        return result

    def __repr__(self) -> str:
        return f'PropagatedPauliFrames(layers={sorted(self.layers)})'
