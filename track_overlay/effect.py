"""Tracking effect: tracked boxes combined with animated offsets per frame."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple, Union

from track_overlay.boxes import TrackedBoxStore
from track_overlay.effect_document import (
    CURVE_KEYS,
    PROPERTY_SPECS,
    EffectDocument,
    InvalidConfiguration,
    dump_curve,
    parse_effect_document,
    parse_effect_json,
    property_json,
)
from track_overlay.keyframes import KeyframeCurve
from track_overlay.models import BoundingBoxSample, FrameRate, Rectangle, TrackRecord
from track_overlay.track_files import JsonTrackFileReader, TrackFileError, TrackFileReader


class RegionProducer(Protocol):
    """Per-frame source of an optional rectangle."""

    def compute(self, frame: int) -> Optional[Rectangle]:
        ...

    def configure(self, document: Mapping[str, Any]) -> None:
        ...


@dataclass(frozen=True)
class EffectInfo:
    class_name: str
    name: str
    description: str
    has_audio: bool = False
    has_video: bool = True


@dataclass(frozen=True)
class _EffectState:
    store: TrackedBoxStore
    curves: Dict[str, KeyframeCurve]


class TrackingEffect:
    """Draw-ready region for each frame from tracked data and keyframed offsets.

    Readers (``compute``, ``properties_at``, ...) take one snapshot of
    ``_state`` and never lock. Writers hold ``_lock``, build replacement
    stores and curves off to the side and publish them by reassigning
    ``_state``.
    """

    info = EffectInfo(
        class_name="Tracker",
        name="Tracker",
        description="Track the selected bounding box through the video.",
    )

    def __init__(
        self,
        track_path: str = "",
        *,
        reader: Optional[TrackFileReader] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.reader = reader or JsonTrackFileReader()
        self.logger = logger or logging.getLogger(__name__)
        self._lock = threading.RLock()

        self.base_rate = FrameRate()
        self.time_scale = 1.0
        self.track_path = ""
        self._records: Tuple[TrackRecord, ...] = ()
        self._state = _EffectState(
            store=TrackedBoxStore(self.base_rate),
            curves={key: KeyframeCurve() for key in CURVE_KEYS},
        )

        if track_path:
            self.load(track_path)

    # ------------------------------------------------------------------
    # Per-frame queries
    # ------------------------------------------------------------------

    @property
    def store(self) -> TrackedBoxStore:
        return self._state.store

    def curve(self, name: str) -> KeyframeCurve:
        return self._state.curves[name]

    def compute(self, frame: int) -> Optional[Rectangle]:
        state = self._state
        if not state.store.contains(frame):
            return None

        sample = state.store.get(frame)
        curves = state.curves
        return Rectangle(
            x=sample.x + curves["delta_x"].value_at(frame),
            y=sample.y + curves["delta_y"].value_at(frame),
            width=sample.width + curves["scale_x"].value_at(frame),
            height=sample.height + curves["scale_y"].value_at(frame),
            rotation=curves["rotation"].value_at(frame),
        )

    def tracked_sample(self, frame: int) -> Optional[BoundingBoxSample]:
        """Raw tracked sample for ``frame`` before offsets, if any."""
        store = self._state.store
        return store.get(frame) if store.contains(frame) else None

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, path: Union[str, Path]) -> bool:
        """Replace the tracked data with the contents of ``path``.

        Returns ``False`` and clears ``track_path`` when the file cannot be
        read; the previously loaded samples stay in place.
        """
        with self._lock:
            try:
                track_file = self.reader.read(path)
            except (TrackFileError, OSError) as exc:
                self.logger.warning("Invalid track data path '%s': %s", path, exc)
                self.track_path = ""
                return False

            try:
                store = self._build_store(track_file.records, self.base_rate, self.time_scale)
            except ValueError as exc:
                self.logger.warning("Cannot rescale track data from '%s': %s", path, exc)
                self.track_path = ""
                return False
            self._records = track_file.records
            self.track_path = str(path)
            self._state = replace(self._state, store=store)

            dropped = len(track_file.records) - len(store)
            self.logger.info(
                "Loaded %s tracked frames from '%s' (%s records dropped or merged)",
                len(store),
                path,
                dropped,
            )
            if track_file.last_updated is not None:
                self.logger.info("Track data saved at %s", track_file.last_updated.isoformat())
            return True

    @staticmethod
    def _build_store(
        records: Tuple[TrackRecord, ...],
        base_rate: FrameRate,
        time_scale: float,
    ) -> TrackedBoxStore:
        store = TrackedBoxStore()
        store.add_records(records)
        store.set_base_rate(base_rate)
        store.rescale(time_scale)
        return store

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def configure(self, document: Union[Mapping[str, Any], EffectDocument]) -> None:
        """Apply a configuration document. Absent keys keep their current values."""
        if not isinstance(document, EffectDocument):
            document = parse_effect_document(document)

        with self._lock:
            base_rate = self.base_rate if document.base_rate is None else document.base_rate
            time_scale = self.time_scale if document.time_scale is None else document.time_scale

            updates: Dict[str, Any] = {}
            if base_rate != self.base_rate or time_scale != self.time_scale:
                try:
                    updates["store"] = self._build_store(self._records, base_rate, time_scale)
                except ValueError as exc:
                    raise InvalidConfiguration(str(exc)) from exc
            self.base_rate = base_rate
            self.time_scale = time_scale

            if document.track_path is not None:
                if document.track_path and self.load(document.track_path):
                    updates.pop("store", None)
                elif not document.track_path:
                    self.track_path = ""

            if document.curves:
                curves = dict(self._state.curves)
                for key, points in document.curves.items():
                    curves[key] = KeyframeCurve.from_points(points)
                updates["curves"] = curves

            if updates:
                self._state = replace(self._state, **updates)

    def set_json(self, text: str) -> None:
        self.configure(parse_effect_json(text))

    def to_document(self) -> Dict[str, Any]:
        state = self._state
        document: Dict[str, Any] = {
            "type": self.info.class_name,
            "track_path": self.track_path,
            "base_rate": self.base_rate.to_dict(),
            "time_scale": self.time_scale,
        }
        for key in CURVE_KEYS:
            document[key] = dump_curve(state.curves[key].points())
        return document

    def json(self) -> str:
        return json.dumps(self.to_document(), indent=2)

    # ------------------------------------------------------------------
    # Editor introspection
    # ------------------------------------------------------------------

    def properties_at(self, frame: int) -> Dict[str, Dict[str, Any]]:
        state = self._state
        properties = {
            "track_path": property_json(
                "Track Data",
                self.track_path,
                "string",
                -1,
                -1,
                readonly=True,
            ),
        }
        for key in CURVE_KEYS:
            spec = PROPERTY_SPECS[key]
            curve = state.curves[key]
            properties[key] = property_json(
                spec.label,
                curve.value_at(frame),
                spec.value_type,
                spec.minimum,
                spec.maximum,
                keyframe=curve.has_point(frame),
                points=len(curve),
            )
        return properties


__all__ = ["EffectInfo", "RegionProducer", "TrackingEffect"]
