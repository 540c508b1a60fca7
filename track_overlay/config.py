"""Settings dataclasses and loading helpers for the tracked-region overlay."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

DEFAULT_LOG_FILE = Path("logs") / "track_overlay.log"


def _default_render_workers() -> int:
    """Determine a sensible default for CPU-bound frame rendering workers."""
    return max(1, min(4, os.cpu_count() or 1))


def _parse_positive_int(value: Any, default: int) -> int:
    """Parse a positive integer with fallback to default."""
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed > 0 else default


def _parse_log_level(value: Any, default: int) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        level = logging.getLevelName(value.strip().upper())
        if isinstance(level, int):
            return level
    return default


def _parse_log_file(value: Any, default: Optional[Path]) -> Optional[Path]:
    if value is None:
        return default
    text = str(value).strip()
    if not text or text.lower() in {"none", "off", "-"}:
        return None
    return Path(text)


def _parse_box_color(value: Any) -> Tuple[int, int, int]:
    """Parse and clamp box color definitions to BGR tuples. Default is blue."""
    default = (255, 0, 0)

    def _clamp_triplet(triplet: Any) -> Optional[Tuple[int, int, int]]:
        if not isinstance(triplet, (list, tuple)) or len(triplet) != 3:
            return None
        try:
            return tuple(
                max(0, min(255, int(channel)))
                for channel in triplet
            )
        except (TypeError, ValueError):
            return None

    if isinstance(value, (list, tuple)):
        channels = _clamp_triplet(value)
        if channels is None:
            return default
        return (channels[2], channels[1], channels[0])

    if isinstance(value, str):
        hex_value = value.strip().lstrip("#")
        if len(hex_value) == 6:
            try:
                r = int(hex_value[0:2], 16)
                g = int(hex_value[2:4], 16)
                b = int(hex_value[4:6], 16)
                return (b, g, r)
            except ValueError:
                return default

    return default


@dataclass(frozen=True)
class OverlaySettings:
    """Process-level settings for rendering and logging."""

    log_file: Optional[Path] = DEFAULT_LOG_FILE
    log_level: int = logging.INFO
    render_workers: int = 1
    box_color: Tuple[int, int, int] = (255, 0, 0)
    box_thickness: int = 2
    ffmpeg_quality: int = 23


def _parse_settings(data: Mapping[str, Any]) -> OverlaySettings:
    default = OverlaySettings()
    return OverlaySettings(
        log_file=_parse_log_file(data.get("log_file"), default.log_file),
        log_level=_parse_log_level(data.get("log_level"), default.log_level),
        render_workers=_parse_positive_int(
            data.get("render_workers"),
            _default_render_workers(),
        ),
        box_color=_parse_box_color(data.get("box_color")),
        box_thickness=_parse_positive_int(data.get("box_thickness"), default.box_thickness),
        ffmpeg_quality=_parse_positive_int(data.get("ffmpeg_quality"), default.ffmpeg_quality),
    )


def _load_env_settings(env: Mapping[str, str]) -> OverlaySettings:
    """Fallback settings derived from environment variables."""
    return _parse_settings({
        "log_file": env.get("OVERLAY_LOG_FILE"),
        "log_level": env.get("OVERLAY_LOG_LEVEL"),
        "render_workers": env.get("RENDER_WORKERS"),
        "box_color": env.get("BOX_COLOR"),
        "box_thickness": env.get("BOX_THICKNESS"),
        "ffmpeg_quality": env.get("FFMPEG_QUALITY"),
    })


def load_settings(config_path: Path | str, env: Mapping[str, str] | None = None) -> OverlaySettings:
    """Load settings from a JSON file, or from the environment when it is missing."""
    source_env = os.environ if env is None else env
    path = Path(config_path)

    if path.exists():
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
        if not isinstance(data, Mapping):
            data = {}
        return _parse_settings(data)

    return _load_env_settings(source_env)


__all__ = [
    "OverlaySettings",
    "load_settings",
    "_parse_box_color",
    "_parse_positive_int",
]
