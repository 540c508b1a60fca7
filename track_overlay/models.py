"""Data models used across the tracked-region overlay."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


@dataclass(frozen=True)
class FrameRate:
    """Rational frame rate, e.g. ``30000/1001``."""

    num: int = 30
    den: int = 1

    def as_float(self) -> float:
        return self.num / self.den

    def to_dict(self) -> dict:
        return {"num": self.num, "den": self.den}


@dataclass(frozen=True)
class BoundingBoxSample:
    """Tracked region for one frame in fractional coordinates.

    ``x`` and ``y`` are the top-left corner of the region.
    """

    x: float
    y: float
    width: float
    height: float
    rotation: float = 0.0


@dataclass(frozen=True)
class Rectangle:
    """Final region produced for a frame, in fractional coordinates."""

    x: float
    y: float
    width: float
    height: float
    rotation: float = 0.0

    def to_pixels(self, frame_width: int, frame_height: int) -> Tuple[int, int, int, int]:
        """Return ``(x, y, width, height)`` truncated to whole pixels."""
        return (
            int(self.x * frame_width),
            int(self.y * frame_height),
            int(self.width * frame_width),
            int(self.height * frame_height),
        )


@dataclass(frozen=True)
class TrackRecord:
    """Raw per-frame record as stored in a track file."""

    frame_id: int
    rotation: float
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class TrackFile:
    """Decoded track file contents."""

    records: Tuple[TrackRecord, ...]
    last_updated: Optional[datetime] = None


__all__ = [
    "BoundingBoxSample",
    "FrameRate",
    "Rectangle",
    "TrackFile",
    "TrackRecord",
]
