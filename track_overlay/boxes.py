"""Sparse frame-indexed storage for tracked bounding boxes."""

from __future__ import annotations

import math
import threading
from bisect import bisect_left
from typing import Dict, Iterable, List, Optional, Tuple

from track_overlay.models import BoundingBoxSample, FrameRate, TrackRecord


class SampleNotFoundError(KeyError):
    """Raised when a sample is requested for a frame that has none."""


def _scaled_frame(frame: int, factor: float) -> int:
    # Half rounds up.
    scaled = frame * factor + 0.5
    if not math.isfinite(scaled):
        raise ValueError(f"Frame {frame} scaled by {factor} is out of range")
    return int(math.floor(scaled))


def _corner_sample(
    x1: float,
    y1: float,
    x2: float,
    y2: float,
    rotation: float,
) -> Optional[BoundingBoxSample]:
    if x1 < 0.0 or y1 < 0.0 or x2 < 0.0 or y2 < 0.0:
        return None
    return BoundingBoxSample(float(x1), float(y1), float(x2 - x1), float(y2 - y1), float(rotation))


class TrackedBoxStore:
    """Ordered map of frame number to :class:`BoundingBoxSample`.

    The sorted key list and the sample dict are published together as one
    tuple. Readers take that tuple once and never lock; writers hold
    ``_lock`` and swap in a fresh tuple when they are done.
    """

    def __init__(self, base_rate: Optional[FrameRate] = None) -> None:
        self._lock = threading.Lock()
        self._table: Tuple[List[int], Dict[int, BoundingBoxSample]] = ([], {})
        self._base_rate = base_rate or FrameRate()
        self._time_scale = 1.0

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @property
    def base_rate(self) -> FrameRate:
        return self._base_rate

    @property
    def time_scale(self) -> float:
        """Product of the rescale factors applied since the last clear."""
        return self._time_scale

    def set_base_rate(self, rate: FrameRate) -> None:
        self._base_rate = rate

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def clear(self) -> None:
        with self._lock:
            self._table = ([], {})
            self._time_scale = 1.0

    def add_sample(
        self,
        frame_id: int,
        x: float,
        y: float,
        width: float,
        height: float,
        rotation: float = 0.0,
    ) -> bool:
        """Store a sample, returning ``False`` when it was dropped as negative."""
        if x < 0.0 or y < 0.0 or width < 0.0 or height < 0.0:
            return False
        sample = BoundingBoxSample(float(x), float(y), float(width), float(height), float(rotation))
        self._insert(frame_id, sample)
        return True

    def add_corners(
        self,
        frame_id: int,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        rotation: float = 0.0,
    ) -> bool:
        """Store a sample given two opposite corners.

        Only the corners are checked; an inverted box keeps its negative
        width or height.
        """
        sample = _corner_sample(x1, y1, x2, y2, rotation)
        if sample is None:
            return False
        self._insert(frame_id, sample)
        return True

    def _insert(self, frame_id: int, sample: BoundingBoxSample) -> None:
        frame_id = int(frame_id)
        with self._lock:
            frames, samples = self._table
            samples = dict(samples)
            if frame_id not in samples:
                frames = list(frames)
                frames.insert(bisect_left(frames, frame_id), frame_id)
            samples[frame_id] = sample
            self._table = (frames, samples)

    def add_records(self, records: Iterable[TrackRecord]) -> int:
        """Add two-corner records in order under a single swap; returns how many were kept."""
        kept = 0
        with self._lock:
            samples = dict(self._table[1])
            for record in records:
                sample = _corner_sample(record.x1, record.y1, record.x2, record.y2, record.rotation)
                if sample is None:
                    continue
                samples[int(record.frame_id)] = sample
                kept += 1
            self._table = (sorted(samples), samples)
        return kept

    def rescale(self, factor: float) -> None:
        """Multiply every key by ``factor``, rounding to the nearest frame.

        Keys are remapped in ascending order, so when two keys land on the
        same frame the one with the larger original key is kept.
        """
        if not math.isfinite(factor) or factor <= 0.0:
            raise ValueError(f"Rescale factor must be positive and finite, got {factor}")
        if factor == 1.0:
            return

        with self._lock:
            frames, samples = self._table
            rescaled: Dict[int, BoundingBoxSample] = {}
            for frame in frames:
                rescaled[_scaled_frame(frame, factor)] = samples[frame]
            self._table = (sorted(rescaled), rescaled)
            self._time_scale *= factor

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def contains(self, frame_id: int) -> bool:
        return frame_id in self._table[1]

    __contains__ = contains

    def get(self, frame_id: int) -> BoundingBoxSample:
        try:
            return self._table[1][frame_id]
        except KeyError:
            raise SampleNotFoundError(f"No tracked sample for frame {frame_id}") from None

    def frames(self) -> List[int]:
        return list(self._table[0])

    def nearest_frame(self, frame: int) -> Optional[int]:
        """Return the stored frame closest to ``frame``; ties go to the earlier one."""
        frames = self._table[0]
        if not frames:
            return None
        index = bisect_left(frames, frame)
        if index == 0:
            return frames[0]
        if index == len(frames):
            return frames[-1]
        before, after = frames[index - 1], frames[index]
        return before if frame - before <= after - frame else after

    def __len__(self) -> int:
        return len(self._table[0])


__all__ = ["SampleNotFoundError", "TrackedBoxStore"]
