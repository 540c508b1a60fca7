"""Parsing and serialisation of the tracking effect's configuration document."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from track_overlay.keyframes import INTERPOLATION_MODES, LINEAR, ControlPoint
from track_overlay.models import FrameRate

CURVE_KEYS = ("delta_x", "delta_y", "scale_x", "scale_y", "rotation")


class InvalidConfiguration(ValueError):
    """Raised when a configuration document is malformed."""


@dataclass(frozen=True)
class PropertySpec:
    """Editor metadata for one animated parameter."""

    label: str
    minimum: float
    maximum: float
    value_type: str = "float"


PROPERTY_SPECS: Dict[str, PropertySpec] = {
    "delta_x": PropertySpec("Displacement X-axis", -1.0, 1.0),
    "delta_y": PropertySpec("Displacement Y-axis", -1.0, 1.0),
    "scale_x": PropertySpec("Scale (Width)", -1.0, 1.0),
    "scale_y": PropertySpec("Scale (Height)", -1.0, 1.0),
    "rotation": PropertySpec("Rotation", 0.0, 360.0),
}


@dataclass(frozen=True)
class EffectDocument:
    """Validated configuration update. ``None`` means the key was absent."""

    track_path: Optional[str] = None
    base_rate: Optional[FrameRate] = None
    time_scale: Optional[float] = None
    curves: Dict[str, Tuple[ControlPoint, ...]] = field(default_factory=dict)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _parse_base_rate(raw: Any) -> FrameRate:
    if not isinstance(raw, Mapping):
        raise InvalidConfiguration("base_rate must be an object with 'num' and 'den'")
    num = raw.get("num", FrameRate.num)
    den = raw.get("den", FrameRate.den)
    if not isinstance(num, int) or isinstance(num, bool) or num <= 0:
        raise InvalidConfiguration(f"base_rate.num must be a positive integer, got {num!r}")
    if not isinstance(den, int) or isinstance(den, bool) or den <= 0:
        raise InvalidConfiguration(f"base_rate.den must be a positive integer, got {den!r}")
    return FrameRate(num, den)


def _parse_time_scale(raw: Any) -> float:
    if not _is_number(raw) or not math.isfinite(raw) or raw <= 0:
        raise InvalidConfiguration(f"time_scale must be a positive finite number, got {raw!r}")
    return float(raw)


def _parse_point(key: str, raw: Any) -> ControlPoint:
    interpolation = LINEAR
    if isinstance(raw, Mapping):
        frame = raw.get("frame")
        value = raw.get("value")
        interpolation = raw.get("interpolation", LINEAR)
    elif isinstance(raw, (list, tuple)) and len(raw) in (2, 3):
        frame, value = raw[0], raw[1]
        if len(raw) == 3:
            interpolation = raw[2]
    else:
        raise InvalidConfiguration(f"{key}: invalid control point {raw!r}")

    if not isinstance(frame, int) or isinstance(frame, bool):
        raise InvalidConfiguration(f"{key}: control point frame must be an integer, got {frame!r}")
    if not _is_number(value):
        raise InvalidConfiguration(f"{key}: control point value must be a number, got {value!r}")
    if interpolation not in INTERPOLATION_MODES:
        raise InvalidConfiguration(f"{key}: unknown interpolation {interpolation!r}")
    return ControlPoint(frame, float(value), interpolation)


def _parse_curve(key: str, raw: Any) -> Tuple[ControlPoint, ...]:
    if isinstance(raw, Mapping):
        raw = raw.get("points", [])
    if not isinstance(raw, list):
        raise InvalidConfiguration(f"{key} must be a list of control points")
    return tuple(_parse_point(key, entry) for entry in raw)


def parse_effect_document(data: Any) -> EffectDocument:
    """Validate a configuration mapping. Unknown keys are ignored."""
    if not isinstance(data, Mapping):
        raise InvalidConfiguration("Configuration document must be an object")

    track_path = data.get("track_path")
    if track_path is not None and not isinstance(track_path, str):
        raise InvalidConfiguration(f"track_path must be a string, got {track_path!r}")

    base_rate = data.get("base_rate")
    time_scale = data.get("time_scale")

    curves: Dict[str, Tuple[ControlPoint, ...]] = {}
    for key in CURVE_KEYS:
        if data.get(key) is not None:
            curves[key] = _parse_curve(key, data[key])

    return EffectDocument(
        track_path=track_path,
        base_rate=_parse_base_rate(base_rate) if base_rate is not None else None,
        time_scale=_parse_time_scale(time_scale) if time_scale is not None else None,
        curves=curves,
    )


def parse_effect_json(text: str) -> EffectDocument:
    try:
        data = json.loads(text)
    except (TypeError, json.JSONDecodeError) as exc:
        raise InvalidConfiguration(f"JSON is invalid: {exc}") from exc
    return parse_effect_document(data)


def property_json(
    label: str,
    value: Any,
    value_type: str,
    minimum: float,
    maximum: float,
    *,
    readonly: bool = False,
    keyframe: bool = False,
    points: int = 0,
) -> Dict[str, Any]:
    return {
        "name": label,
        "value": value,
        "type": value_type,
        "min": minimum,
        "max": maximum,
        "readonly": readonly,
        "keyframe": keyframe,
        "points": points,
    }


def dump_curve(points: Tuple[ControlPoint, ...]) -> Dict[str, List[dict]]:
    return {"points": [point.to_dict() for point in points]}


__all__ = [
    "CURVE_KEYS",
    "EffectDocument",
    "InvalidConfiguration",
    "PROPERTY_SPECS",
    "PropertySpec",
    "dump_curve",
    "parse_effect_document",
    "parse_effect_json",
    "property_json",
]
