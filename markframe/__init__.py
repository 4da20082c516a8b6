"""
markframe: editable stabilizer circuits with marker-frame propagation and grading.

Implements the circuit model behind a layer-by-layer circuit editor:
    - A phase-blind gate table mapping Pauli basis strings through each gate.
    - Layers with exclusive qubit occupancy plus free-floating markers.
    - A Stim-dialect text codec with canonical serialization.
    - 45° rotation and lattice rectification of qubit coordinates.
    - Propagation of MARKX/Y/Z frames, and a grader for marking exercises.

Parse and propagate:
    >>> from markframe import Circuit, PropagatedPauliFrames
    >>> c = Circuit.from_text("QUBIT_COORDS(0,0) 0\\nMARKX(0) 0\\nTICK\\nH 0\\nTICK\\nMX 0")
    >>> PropagatedPauliFrames.from_circuit(c, 0).at_layer(2).errors
    {0}

Grade an answer:
    >>> from markframe import GraderConfig, grade_answer
    >>> text = "Q(0,0) 0\\nQ(0.5,0.5) 1\\nX 0\\nTICK\\nTICK\\nH 1\\nCX 0 1\\nTICK\\nM 0 1"
    >>> answer_text = text.replace("TICK\\nTICK", "TICK\\nMARKX(0) 0 1\\nTICK")
    >>> config = GraderConfig.from_dict({"circuit": text, "errors": {"0": "Y", "1": "Y"},
    ...                                  "markIndex": 1, "measureIndex": 4})
    >>> grade_answer(config, answer_text).feedback
    'Correct, well done!'
"""

from .gates import (
    ERR_PREFIX,
    GATE_MAP,
    Gate,
    GateFamily,
    conjugate,
    get_gate,
    pauli_product,
)
from .layer import CollisionError, Layer, Operation
from .circuit import Circuit, ExcisedCircuit, format_number
from .codec import ParseError, parse_circuit
from .frames import Crossing, PropagatedPauliFrameLayer, PropagatedPauliFrames
from .marks import clear_pauli_markers, infer_mark_bases, with_inferred_marks, with_marks
from .grader import GradeResult, GraderConfig, grade_answer

__all__ = [
    # Gates
    "ERR_PREFIX",
    "GATE_MAP",
    "Gate",
    "GateFamily",
    "conjugate",
    "get_gate",
    "pauli_product",
    # Layers
    "CollisionError",
    "Layer",
    "Operation",
    # Circuit
    "Circuit",
    "ExcisedCircuit",
    "format_number",
    # Codec
    "ParseError",
    "parse_circuit",
    # Frames
    "Crossing",
    "PropagatedPauliFrameLayer",
    "PropagatedPauliFrames",
    # Marks
    "clear_pauli_markers",
    "infer_mark_bases",
    "with_inferred_marks",
    "with_marks",
    # Grader
    "GradeResult",
    "GraderConfig",
    "grade_answer",
]
