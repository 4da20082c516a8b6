"""
Marker editing on whole circuits.

These mirror the editor's marker commands: placing X/Y/Z markers on a set of
positions with the basis inferred from the gates already in the layer, and
clearing every Pauli marker.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from .circuit import Circuit
from .gates import GATE_MAP
from .layer import Layer, Operation

_PAULI_MARKER_NAMES: frozenset[str] = frozenset({'MARKX', 'MARKY', 'MARKZ'})

# Single-qubit collapse gate → basis it forces on a marker at the same position.
_FORCED_BASIS: dict[str, str] = {
    'RX': 'X', 'MX': 'X', 'MRX': 'X',
    'RY': 'Y', 'MY': 'Y', 'MRY': 'Y',
    'R': 'Z', 'M': 'Z', 'MR': 'Z',
}

_PAIR_MEASUREMENT_NAMES: frozenset[str] = frozenset({'MXX', 'MYY', 'MZZ'})


def infer_mark_bases(layer: Layer, qubits: Iterable[int]) -> dict[int, str]:
    """
    Choose a marker basis for each qubit.

    A qubit hit by a reset or measurement takes that gate's basis. A pair
    measurement forces its basis onto both of its targets, pulling the partner
    into the result even when it was not requested. Every other qubit gets the
    single forced basis seen, or 'Z' when there were none or several.
    """
    affected = list(dict.fromkeys(qubits))
    forced: dict[int, str] = {}
    for q in list(affected):
        op = layer.op_at(q)
        if op is None:
            continue
        name = op.gate.name
        if name in _FORCED_BASIS:
            forced[q] = _FORCED_BASIS[name]
        elif name in _PAIR_MEASUREMENT_NAMES:
            for t in op.targets:
                forced[t] = name[1]
                if t not in affected:
                    affected.append(t)

    seen = set(forced.values())
    default = next(iter(seen)) if len(seen) == 1 else 'Z'
    return {q: forced.get(q, default) for q in affected}


def with_marks(circuit: Circuit,
               layer_index: int,
               bases: Mapping[int, str],
               mark_index: int = 0) -> Circuit:
    """
    Copy of `circuit` with MARK<basis>(mark_index) placed on each qubit of `bases`.

    Empty layers are appended if `layer_index` is past the end.
    """
    if layer_index < 0:
        raise ValueError(f"layer_index must be non-negative, got {layer_index}")
    result = circuit.copy()
    while len(result.layers) <= layer_index:
        result.layers.append(Layer())
    layer = result.layers[layer_index]
    for q, basis in bases.items():
        if basis not in ('X', 'Y', 'Z'):
            raise ValueError(f"Marker basis must be X, Y or Z, got {basis!r}")
        gate = GATE_MAP['MARK' + basis].with_default_argument(mark_index)
        layer.put(Operation(gate, (mark_index,), (q,)))
    return result


def with_inferred_marks(circuit: Circuit,
                        layer_index: int,
                        coords: Iterable[tuple[float, float]],
                        mark_index: int = 0) -> Circuit:
    """
    Mark the qubits at `coords` on one layer, inferring each marker's basis.

    Positions without a qubit get a new one appended to the coordinate table.
    """
    coords = [(float(x), float(y)) for x, y in coords]
    expanded = circuit.with_coords_included(coords)
    c2q = expanded.coord_to_qubit_map()
    qubits = [c2q[xy] for xy in coords]
    layer = expanded.layers[layer_index] if layer_index < len(expanded.layers) else Layer()
    return with_marks(expanded, layer_index, infer_mark_bases(layer, qubits), mark_index)


def clear_pauli_markers(circuit: Circuit) -> Circuit:
    """Copy of `circuit` without MARKX/MARKY/MARKZ. MARK and POLYGON are kept."""
    result = circuit.copy()
    for layer in result.layers:
        layer.clear_markers(_PAULI_MARKER_NAMES)
    return result
