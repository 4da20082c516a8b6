"""
Grader for "place the marks" exercises.

A student receives a reference circuit with an empty layer and must put
MARKX(0) / MARKY(0) / MARKZ(0) markers on that layer so that the propagated
frame produces a prescribed set of errors at a later measurement layer. The
answer may be rotated by any multiple of 45° relative to the reference; no
other change is allowed.

Request (GraderConfig.from_dict):
    {"circuit": text, "errors": {"0": "Y", ...}, "markIndex": 1, "measureIndex": 4}

Response (GradeResult.to_dict):
    {"isCorrect": bool, "feedback": str,
     "feedbackConfiguration": {"circuit": text, "initIndex": int,
                               "originalCircuit": text, "feedback": str,
                               "isCorrect": bool}}
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Mapping

from .circuit import Circuit, ExcisedCircuit
from .codec import ParseError
from .frames import PropagatedPauliFrameLayer, PropagatedPauliFrames
from .layer import Layer, Operation

logger = logging.getLogger(__name__)

CORRECT_FEEDBACK = 'Correct, well done!'
CONFIG_ERROR_FEEDBACK = 'Incorrect grader configuration. Please contact instructors'
MODIFIED_FEEDBACK = 'Incorrect. Please do not modify the circuit except by adding marks on layer {mark_index}'
MARKER_INDEX_FEEDBACK = (
    'Incorrect. Please only use the 1-tagged markers: The X1, Y1 and Z1 buttons/hotkeys, '
    'which appear as MARKX(0), MARKY(0) and MARKZ(0) in the import/export panel.'
)
GATES_IN_MARK_LAYER_FEEDBACK = 'Incorrect. Please only add marks, not operations, to layer {mark_index}'
WRONG_ERRORS_FEEDBACK = (
    'Incorrect. Your circuit yielded the following errors on each qubit index: {observed} '
    'on layer {measure_index}.  Please yield these errors instead: {expected}'
)
UNPARSEABLE_FEEDBACK = 'Incorrect. Your answer could not be read as a circuit: {reason}'

GRADED_MARKER_INDEX = 0

OnParseError = Literal['raise', 'reject']


# ── Request / response ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class GraderConfig:
    """
    One exercise: the reference circuit and what the marks must achieve.

    Attributes:
        circuit:       Reference circuit text.
        errors:        Expected qubit → letter at the measurement layer.
        mark_index:    Layer the student must mark. Empty in the reference.
        measure_index: Layer whose errors are compared.
    """
    circuit: str
    errors: dict[int, str] = field(default_factory=dict)
    mark_index: int = 0
    measure_index: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'GraderConfig':
        """Build from the JSON request shape (camelCase keys, string qubit ids)."""
        errors: dict[int, str] = {}
        for key, letter in dict(data.get('errors') or {}).items():
            if letter not in ('X', 'Y', 'Z', 'I'):
                raise ValueError(f"Expected error letter for qubit {key} must be I, X, Y or Z, got {letter!r}")
            errors[int(key)] = letter
        return cls(
            circuit=data['circuit'],
            errors=errors,
            mark_index=int(data['markIndex']),
            measure_index=int(data['measureIndex']),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            'circuit': self.circuit,
            'errors': {str(q): self.errors[q] for q in sorted(self.errors)},
            'markIndex': self.mark_index,
            'measureIndex': self.measure_index,
        }


@dataclass(frozen=True)
class GradeResult:
    is_correct: bool
    feedback: str
    circuit: str
    init_index: int
    original_circuit: str

    def to_dict(self) -> dict[str, Any]:
        return {
            'isCorrect': self.is_correct,
            'feedback': self.feedback,
            'feedbackConfiguration': {
                'circuit': self.circuit,
                'initIndex': self.init_index,
                'originalCircuit': self.original_circuit,
                'feedback': self.feedback,
                'isCorrect': self.is_correct,
            },
        }


def _result(is_correct: bool,
            feedback: str,
            circuit: Circuit,
            init_index: int,
            original: Circuit | None = None) -> GradeResult:
    if original is None:
        original = circuit
    logger.debug("Verdict: correct=%s feedback=%r", is_correct, feedback)
    return GradeResult(
        is_correct=is_correct,
        feedback=feedback,
        circuit=circuit.to_stim_circuit(),
        init_index=init_index,
        original_circuit=original.to_stim_circuit(),
    )


# ── Helpers ───────────────────────────────────────────────────────────────────

def format_error_map(errors: Mapping[int, str]) -> str:
    """Render {0: 'Y', 1: 'Y'} as '{0:Y,1:Y}' (keys ascending, no quotes)."""
    return '{' + ','.join(f'{q}:{errors[q]}' for q in sorted(errors)) + '}'


def rotation_to_match(answer: Circuit, reference: Circuit, max_rotations: int = 8) -> int | None:
    """Smallest number of rotate+rectify steps making answer equal reference, or None."""
    rotated = answer.copy()
    for k in range(max_rotations):
        if rotated.is_equal_to(reference):
            return k
        rotated = rotated.rotated45().after_rectification()
    return None


def rotated_like(circuit: Circuit, guide: Circuit, steps: int) -> Circuit:
    """
    Apply `steps` rotate+rectify steps to `circuit` using the lattice of `guide`.

    Marker-only qubits must not shift the rectification origin, so the
    transform of each step is derived from the mark-free `guide`.
    """
    for _ in range(steps):
        guide = guide.rotated45()
        circuit = circuit.rotated45()
        transform = guide.coord_transform_for_rectification()
        guide = guide.after_coord_transform(transform)
        circuit = circuit.after_coord_transform(transform)
    return circuit


def has_only_graded_markers(circuit: Circuit) -> bool:
    for layer in circuit.layers:
        for op in layer.markers:
            if op.args != (float(GRADED_MARKER_INDEX),):
                return False
    return True


def remapped_layer(layer: Layer, source: Circuit, target: Circuit) -> tuple[Layer, Circuit]:
    """
    Translate `layer` from `source` qubit ids to `target` qubit ids by position.

    Returns the translated layer and `target` extended with any positions it lacked.
    """
    used = sorted({q for op in layer.iter_gates_and_markers() for q in op.targets})
    target = target.with_coords_included(source.coord(q) for q in used)
    c2q = target.coord_to_qubit_map()
    result = Layer()
    for op in layer.iter_gates_and_markers():
        targets = tuple(c2q[source.coord(q)] for q in op.targets)
        result.put(Operation(op.gate, op.args, targets))
    return result, target


def measurement_layer_correct(frame_layer: PropagatedPauliFrameLayer,
                              expected: Mapping[int, str]) -> tuple[bool, dict[int, str]]:
    observed = frame_layer.error_bases()
    if set(observed) != set(expected):
        return False, observed
    return all(observed[q] == expected[q] for q in expected), observed


# ── Grading ───────────────────────────────────────────────────────────────────

def grade_answer(config: GraderConfig,
                 answer: str,
                 *,
                 on_parse_error: OnParseError = 'raise',
                 max_rotations: int = 8) -> GradeResult:
    """
    Grade a marked answer circuit against the exercise in `config`.

    Args:
        config:         The exercise.
        answer:         Student circuit text.
        on_parse_error: 'raise' lets a ParseError from the answer propagate;
                        'reject' turns it into an incorrect verdict.
        max_rotations:  Number of 45° orientations tried.

    Raises:
        ParseError: The reference circuit cannot be parsed, or the answer cannot
                    be parsed and on_parse_error is 'raise'.
    """
    if on_parse_error not in ('raise', 'reject'):
        raise ValueError(f"on_parse_error must be 'raise' or 'reject', got {on_parse_error!r}")

    mark_index = config.mark_index
    reference = Circuit.from_text(config.circuit)

    try:
        answer_circuit = Circuit.from_text(answer)
    except ParseError as e:
        if on_parse_error == 'raise':
            raise
        logger.info("Rejecting unparseable answer: %s", e)
        return _result(False, UNPARSEABLE_FEEDBACK.format(reason=e), reference, mark_index)

    reference_excised: ExcisedCircuit = reference.excise(mark_index)
    if reference_excised.layer is None or not reference_excised.layer.is_empty():
        logger.warning("Mark layer %d of the reference circuit is missing or not empty.", mark_index)
        return _result(False, CONFIG_ERROR_FEEDBACK, reference, mark_index)

    def modified() -> GradeResult:
        return _result(False, MODIFIED_FEEDBACK.format(mark_index=mark_index), reference, mark_index)

    bare_answer = answer_circuit.without_markers()
    rotations = rotation_to_match(bare_answer, reference.without_markers(), max_rotations)
    if rotations is None:
        return modified()
    logger.debug("Answer matches reference after %d rotation step(s).", rotations)

    if not has_only_graded_markers(answer_circuit):
        return _result(False, MARKER_INDEX_FEEDBACK, reference, mark_index)

    rotated = rotated_like(answer_circuit, bare_answer, rotations)
    answer_excised = rotated.excise(mark_index)
    if (answer_excised.layer is None
            or not reference_excised.pre.is_equal_to(answer_excised.pre)
            or not reference_excised.post.is_equal_to(answer_excised.post)):
        return modified()

    if answer_excised.layer.gates:
        return _result(
            False, GATES_IN_MARK_LAYER_FEEDBACK.format(mark_index=mark_index), reference, mark_index,
        )

    mark_layer, context = remapped_layer(answer_excised.layer, rotated, reference)
    pre = Circuit(context.qubit_coords, reference_excised.pre.layers)
    post = Circuit(context.qubit_coords, reference_excised.post.layers)
    reconstructed = Circuit.spliced(pre, mark_layer, post)

    frames = PropagatedPauliFrames.from_circuit(reconstructed, GRADED_MARKER_INDEX)
    is_correct, observed = measurement_layer_correct(
        frames.at_layer(config.measure_index), config.errors,
    )
    if is_correct:
        feedback = CORRECT_FEEDBACK
    else:
        feedback = WRONG_ERRORS_FEEDBACK.format(
            observed=format_error_map(observed),
            measure_index=config.measure_index,
            expected=format_error_map(config.errors),
        )
    return _result(is_correct, feedback, reconstructed, mark_index, reference)
