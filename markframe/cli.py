"""
Command line entry point.

    markframe grade CONFIG.json ANSWER.stim [--reject-unparseable]
    markframe propagate CIRCUIT.stim [--marker N]
    markframe canon CIRCUIT.stim [--rotations N]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .circuit import Circuit
from .codec import ParseError
from .frames import PropagatedPauliFrames
from .grader import GraderConfig, grade_answer

logger = logging.getLogger(__name__)


def read_text(path: str) -> str:
    if path == '-':
        return sys.stdin.read()
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Could not find file: {p}")
    return p.read_text(encoding="utf-8")


def cmd_grade(args: argparse.Namespace) -> int:
    try:
        config = GraderConfig.from_dict(json.loads(read_text(args.config)))
    except KeyError as e:
        print(f"error: grader config is missing {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"error: bad grader config: {e}", file=sys.stderr)
        return 2
    answer = read_text(args.answer)
    on_parse_error = 'reject' if args.reject_unparseable else 'raise'
    result = grade_answer(config, answer, on_parse_error=on_parse_error)
    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.is_correct else 1


def cmd_propagate(args: argparse.Namespace) -> int:
    circuit = Circuit.from_text(read_text(args.circuit))
    frames = PropagatedPauliFrames.from_circuit(circuit, args.marker)
    if not frames.layers:
        print("Marker frame is empty on every layer.")
        return 0
    for k in sorted(frames.layers):
        layer = frames.layers[k]
        bases = ' '.join(f'{q}:{layer.bases[q]}' for q in sorted(layer.bases))
        line = f"layer {k}: bases [{bases}]"
        if layer.errors:
            line += f"  errors {sorted(layer.errors)}"
        if layer.crossings:
            crossings = ' '.join(f'{c.q1}-{c.q2}:{c.color}' for c in layer.crossings)
            line += f"  crossings [{crossings}]"
        print(line)
    return 0


def cmd_canon(args: argparse.Namespace) -> int:
    circuit = Circuit.from_text(read_text(args.circuit))
    print(circuit.rotated_by(args.rotations))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="markframe",
        description="Parse, canonicalize and grade marked stabilizer circuits.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log grading steps to stderr.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    grade = sub.add_parser("grade", help="Grade an answer circuit against an exercise.")
    grade.add_argument("config", help="Exercise JSON: circuit, errors, markIndex, measureIndex.")
    grade.add_argument("answer", help="Answer circuit text file ('-' for stdin).")
    grade.add_argument(
        "--reject-unparseable",
        action="store_true",
        help="Report an unreadable answer as incorrect instead of failing.",
    )
    grade.set_defaults(func=cmd_grade)

    propagate = sub.add_parser("propagate", help="Print the propagated marker frame per layer.")
    propagate.add_argument("circuit", help="Circuit text file ('-' for stdin).")
    propagate.add_argument("--marker", type=int, default=0, help="Marker index to follow.")
    propagate.set_defaults(func=cmd_propagate)

    canon = sub.add_parser("canon", help="Print canonical circuit text.")
    canon.add_argument("circuit", help="Circuit text file ('-' for stdin).")
    canon.add_argument("--rotations", type=int, default=0, help="Rotate-45-and-rectify steps.")
    canon.set_defaults(func=cmd_canon)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    try:
        return args.func(args)
    except ParseError as e:
        logger.debug("Parse failure", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
