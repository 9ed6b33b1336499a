"""
Per-segment placement and the transform composition shared by both backends.

A transformed segment is drawn/emitted inside:

    translate(cx, cy) -> rotate(180) [flip] -> scale(-1, 1) [mirror] -> translate(-cx, -cy)

Both backends emit exactly this order, so every consumer goes through
transform_steps() instead of building its own sequence.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Tuple

Affine = Tuple[float, float, float, float, float, float]

IDENTITY_AFFINE: Affine = (1.0, 0.0, 0.0, 0.0, 1.0, 0.0)


class TransformKind(Enum):
    IDENTITY = "identity"
    ROTATE_180 = "point-reflect-180"
    MIRROR = "mirror-horizontal"
    ROTATE_180_MIRROR = "point-reflect-180+mirror-horizontal"

    @property
    def flips(self) -> bool:
        return self in (TransformKind.ROTATE_180, TransformKind.ROTATE_180_MIRROR)

    @property
    def mirrors(self) -> bool:
        return self in (TransformKind.MIRROR, TransformKind.ROTATE_180_MIRROR)

    @staticmethod
    def from_flags(flip: bool, mirror: bool) -> "TransformKind":
        if flip and mirror:
            return TransformKind.ROTATE_180_MIRROR
        if flip:
            return TransformKind.ROTATE_180
        if mirror:
            return TransformKind.MIRROR
        return TransformKind.IDENTITY


@dataclass(frozen=True)
class AlternationFlags:
    flip: bool = False
    mirror: bool = False


class TransformStep(NamedTuple):
    op: str  # "translate" | "rotate" | "scale"
    args: Tuple[float, ...]


@dataclass(frozen=True)
class Segment:
    row: int
    column: int
    text: str
    x: float
    top: float
    baseline: float
    width: float
    height: float
    transform: TransformKind = TransformKind.IDENTITY

    @property
    def origin(self) -> Tuple[float, float]:
        return self.x, self.baseline

    @property
    def center(self) -> Tuple[float, float]:
        return self.x + self.width / 2, self.top + self.height / 2

    @property
    def transform_steps(self) -> Tuple[TransformStep, ...]:
        return transform_steps(self.transform, self.center)


def is_alternate(row: int, column: int) -> bool:
    return (row + column) % 2 == 1


def place_segment(
        *,
        row: int,
        column: int,
        text: str,
        x: float,
        top: float,
        width: float,
        line_height: float,
        ascent: float,
        flags: AlternationFlags,
) -> Segment:
    alt = is_alternate(row, column)
    kind = TransformKind.from_flags(alt and flags.flip, alt and flags.mirror)
    return Segment(
        row=row,
        column=column,
        text=text,
        x=x,
        top=top,
        baseline=top + ascent,
        width=width,
        height=line_height,
        transform=kind,
    )


def transform_steps(kind: TransformKind, center: Tuple[float, float]) -> Tuple[TransformStep, ...]:
    if kind is TransformKind.IDENTITY:
        return ()

    cx, cy = center
    steps = [TransformStep("translate", (cx, cy))]
    if kind.flips:
        steps.append(TransformStep("rotate", (180.0,)))
    if kind.mirrors:
        steps.append(TransformStep("scale", (-1.0, 1.0)))
    steps.append(TransformStep("translate", (-cx, -cy)))
    return tuple(steps)


def _multiply(m: Affine, n: Affine) -> Affine:
    # m * n, both as 2x3 rows (a, b, c, d, e, f)
    a1, b1, c1, d1, e1, f1 = m
    a2, b2, c2, d2, e2, f2 = n
    return (
        a1 * a2 + b1 * d2,
        a1 * b2 + b1 * e2,
        a1 * c2 + b1 * f2 + c1,
        d1 * a2 + e1 * d2,
        d1 * b2 + e1 * e2,
        d1 * c2 + e1 * f2 + f1,
    )


def _step_matrix(step: TransformStep) -> Affine:
    if step.op == "translate":
        tx, ty = step.args
        return 1.0, 0.0, tx, 0.0, 1.0, ty
    if step.op == "rotate":
        theta = math.radians(step.args[0])
        cos_t = round(math.cos(theta), 12)
        sin_t = round(math.sin(theta), 12)
        return cos_t, -sin_t, 0.0, sin_t, cos_t, 0.0
    if step.op == "scale":
        sx, sy = step.args
        return sx, 0.0, 0.0, 0.0, sy, 0.0
    raise ValueError(f"Unknown transform step: {step.op}")


def compose_affine(steps: Tuple[TransformStep, ...]) -> Affine:
    """
    Fold transform steps into one matrix mapping local to surface coordinates.

    Steps are applied in canvas order: the first step is the outermost.
    """
    matrix = IDENTITY_AFFINE
    for step in steps:
        matrix = _multiply(matrix, _step_matrix(step))
    return matrix


def invert_affine(matrix: Affine) -> Affine:
    a, b, c, d, e, f = matrix
    det = a * e - b * d
    if det == 0:
        raise ValueError("Transform is not invertible")
    ia, ib = e / det, -b / det
    id_, ie = -d / det, a / det
    return ia, ib, -(ia * c + ib * f), id_, ie, -(id_ * c + ie * f)


def apply_affine(matrix: Affine, point: Tuple[float, float]) -> Tuple[float, float]:
    a, b, c, d, e, f = matrix
    x, y = point
    return a * x + b * y + c, d * x + e * y + f
