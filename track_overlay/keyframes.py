"""Animated scalar parameters defined by keyframe control points."""

from __future__ import annotations

import threading
from bisect import bisect_left, bisect_right
from dataclasses import dataclass
from typing import Any, Iterable, List, Tuple

LINEAR = "linear"
CONSTANT = "constant"
SMOOTH = "smooth"
INTERPOLATION_MODES = (LINEAR, CONSTANT, SMOOTH)


@dataclass(frozen=True)
class ControlPoint:
    """A fixed ``(frame, value)`` pair and the interpolation of the segment it starts."""

    frame: int
    value: float
    interpolation: str = LINEAR

    def to_dict(self) -> dict:
        return {
            "frame": self.frame,
            "value": self.value,
            "interpolation": self.interpolation,
        }


def _blend(left: ControlPoint, right: ControlPoint, frame: int) -> float:
    if left.interpolation == CONSTANT:
        return left.value

    t = (frame - left.frame) / (right.frame - left.frame)
    if left.interpolation == SMOOTH:
        t = t * t * (3.0 - 2.0 * t)
    return left.value + (right.value - left.value) * t


class KeyframeCurve:
    """Scalar value over frames, clamped outside its control points.

    Mutations build a new point table and publish it with a single attribute
    assignment, so ``value_at`` can run on any thread without locking.
    """

    DEFAULT_VALUE = 0.0

    def __init__(self, default: float = DEFAULT_VALUE) -> None:
        self.default = float(default)
        self._lock = threading.Lock()
        # (sorted frames, points) published together
        self._table: Tuple[Tuple[int, ...], Tuple[ControlPoint, ...]] = ((), ())

    @classmethod
    def from_points(cls, points: Iterable[Any]) -> "KeyframeCurve":
        """Build a curve from ``ControlPoint`` objects or ``(frame, value[, mode])`` tuples."""
        curve = cls()
        for point in points:
            if isinstance(point, ControlPoint):
                curve.set_point(point.frame, point.value, point.interpolation)
            else:
                curve.set_point(*point)
        return curve

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def value_at(self, frame: int) -> float:
        frames, points = self._table
        if not points:
            return self.default
        if frame <= frames[0]:
            return points[0].value
        if frame >= frames[-1]:
            return points[-1].value

        index = bisect_right(frames, frame)
        left = points[index - 1]
        if left.frame == frame:
            return left.value
        return _blend(left, points[index], frame)

    def has_point(self, frame: int) -> bool:
        frames, _ = self._table
        index = bisect_left(frames, frame)
        return index < len(frames) and frames[index] == frame

    def points(self) -> Tuple[ControlPoint, ...]:
        return self._table[1]

    def to_list(self) -> List[dict]:
        return [point.to_dict() for point in self._table[1]]

    def __len__(self) -> int:
        return len(self._table[1])

    def __repr__(self) -> str:
        return f"KeyframeCurve({list(self._table[1])!r})"

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set_point(self, frame: int, value: float, interpolation: str = LINEAR) -> None:
        if interpolation not in INTERPOLATION_MODES:
            raise ValueError(f"Unknown interpolation mode: {interpolation!r}")
        point = ControlPoint(int(frame), float(value), interpolation)

        with self._lock:
            frames, points = self._table
            index = bisect_left(frames, point.frame)
            replace = index < len(frames) and frames[index] == point.frame
            tail = index + 1 if replace else index
            self._table = (
                frames[:index] + (point.frame,) + frames[tail:],
                points[:index] + (point,) + points[tail:],
            )

    def remove_point(self, frame: int) -> bool:
        with self._lock:
            frames, points = self._table
            index = bisect_left(frames, frame)
            if index >= len(frames) or frames[index] != frame:
                return False
            self._table = (
                frames[:index] + frames[index + 1:],
                points[:index] + points[index + 1:],
            )
            return True

    def clear(self) -> None:
        with self._lock:
            self._table = ((), ())


__all__ = [
    "CONSTANT",
    "ControlPoint",
    "INTERPOLATION_MODES",
    "KeyframeCurve",
    "LINEAR",
    "SMOOTH",
]
