"""
Walk-through of a marking exercise.

  1. Parse the reference circuit and show its layers.
  2. Propagate an X marker frame through it.
  3. Grade a correct answer, a wrong-index answer and a gate-in-mark-layer answer.
  4. Show that a rotated copy of the correct answer is still accepted.

Run with:
    python -m markframe.example
"""

from __future__ import annotations

import json

from markframe import (
    Circuit,
    GraderConfig,
    PropagatedPauliFrames,
    grade_answer,
    with_marks,
)

REFERENCE = "QUBIT_COORDS(0, 0) 0\nQUBIT_COORDS(0.5, 0.5) 1\nX 0\nTICK\nTICK\nH 1\nCX 0 1\nTICK\nM 0 1"

CONFIG = GraderConfig.from_dict({
    "circuit": REFERENCE,
    "errors": {"0": "Y", "1": "Y"},
    "markIndex": 1,
    "measureIndex": 4,
})


# ── Formatting ────────────────────────────────────────────────────────────────

def print_verdict(name: str, answer: str) -> None:
    result = grade_answer(CONFIG, answer)
    status = "PASS" if result.is_correct else "FAIL"
    print(f"[{status}] {name}")
    print(f"       {result.feedback}")
    print()


# ── Examples ──────────────────────────────────────────────────────────────────

def example_layers() -> Circuit:
    circuit = Circuit.from_text(REFERENCE)
    print(f"{circuit!r}")
    for k, layer in enumerate(circuit.layers):
        print(f"  layer {k}: {layer!r}")
    print()
    return circuit


def example_propagation(circuit: Circuit) -> None:
    marked = with_marks(circuit, CONFIG.mark_index, {0: 'X', 1: 'X'})
    frames = PropagatedPauliFrames.from_circuit(marked, 0)
    for k in sorted(frames.layers):
        layer = frames.layers[k]
        print(f"  layer {k}: bases={layer.bases} errors={sorted(layer.errors)} "
              f"crossings={layer.crossings}")
    print()


def example_grading(circuit: Circuit) -> None:
    correct = with_marks(circuit, CONFIG.mark_index, {0: 'X', 1: 'X'})
    print_verdict("marked X on both qubits", str(correct))

    wrong_index = with_marks(circuit, CONFIG.mark_index, {0: 'X', 1: 'X'}, mark_index=1)
    print_verdict("used marker index 1", str(wrong_index))

    with_gate = REFERENCE.replace("TICK\nTICK", "TICK\nH 0\nTICK", 1)
    print_verdict("added a gate on the mark layer", with_gate)

    rotated = correct.rotated_by(3)
    print_verdict("correct answer rotated by 135°", str(rotated))

    print(json.dumps(grade_answer(CONFIG, str(correct)).to_dict(), indent=2))
    print()


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    print("=" * 64)
    print("markframe: marking exercise walk-through")
    print("=" * 64)
    print()

    reference = example_layers()
    example_propagation(reference)
    example_grading(reference)

    print("Done.")
