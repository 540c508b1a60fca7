"""Reading and writing persisted track files."""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Protocol, Union

from track_overlay.models import TrackFile, TrackRecord


class TrackFileError(Exception):
    """Raised when a track file cannot be read or decoded."""


class TrackFileReader(Protocol):
    """Anything able to decode a track file into records."""

    def read(self, path: Union[str, Path]) -> TrackFile:
        ...


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise TrackFileError(f"Invalid last_updated value: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise TrackFileError(f"Invalid last_updated value: {value!r}") from exc


def _parse_record(entry: Any, position: int) -> TrackRecord:
    if not isinstance(entry, Mapping):
        raise TrackFileError(f"Frame entry {position} is not an object")
    box = entry.get("bounding_box")
    if not isinstance(box, Mapping):
        raise TrackFileError(f"Frame entry {position} has no bounding_box")
    try:
        return TrackRecord(
            frame_id=int(entry["id"]),
            rotation=float(entry.get("rotation", 0.0)),
            x1=float(box["x1"]),
            y1=float(box["y1"]),
            x2=float(box["x2"]),
            y2=float(box["y2"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise TrackFileError(f"Frame entry {position} is malformed: {exc}") from exc


class JsonTrackFileReader:
    """Decode the JSON track document written by :func:`write_track_file`."""

    def read(self, path: Union[str, Path]) -> TrackFile:
        track_path = Path(path)
        try:
            data = json.loads(track_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise TrackFileError(f"Failed to read track file {track_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise TrackFileError(f"Unexpected track file format for {track_path}")

        raw_frames = data.get("frames", [])
        if not isinstance(raw_frames, list):
            raise TrackFileError(f"'frames' must be a list in {track_path}")

        records = tuple(_parse_record(entry, index) for index, entry in enumerate(raw_frames))
        return TrackFile(records=records, last_updated=_parse_timestamp(data.get("last_updated")))


def track_file_payload(records: Iterable[TrackRecord], last_updated: Optional[datetime] = None) -> dict:
    frames: List[dict] = [
        {
            "id": record.frame_id,
            "rotation": record.rotation,
            "bounding_box": {
                "x1": record.x1,
                "y1": record.y1,
                "x2": record.x2,
                "y2": record.y2,
            },
        }
        for record in records
    ]
    payload: dict = {"frames": frames}
    if last_updated is not None:
        payload["last_updated"] = last_updated.replace(microsecond=0).isoformat()
    return payload


def write_track_file(
    path: Union[str, Path],
    records: Iterable[TrackRecord],
    *,
    last_updated: Optional[datetime] = None,
) -> Path:
    """Persist records as a JSON track document, replacing ``path`` atomically."""
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = track_file_payload(records, last_updated)

    temp_output = output_path.with_name(f".tmp_{uuid.uuid4().hex}_{output_path.name}")
    temp_output.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    temp_output.replace(output_path)
    return output_path


__all__ = [
    "JsonTrackFileReader",
    "TrackFileError",
    "TrackFileReader",
    "track_file_payload",
    "write_track_file",
]
