"""
Command line utilities for overlaying tracked regions on videos.
"""

from __future__ import annotations

import argparse
import json
import logging
import subprocess
import sys
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from track_overlay.config import OverlaySettings, load_settings
from track_overlay.effect import TrackingEffect
from track_overlay.effect_document import InvalidConfiguration
from track_overlay.logging_setup import configure_logging
from track_overlay.rendering import BoxRenderer, VideoOverlayRenderer


def build_effect(args: argparse.Namespace, logger: logging.Logger) -> TrackingEffect:
    """Create an effect from the optional document file and command line overrides."""
    effect = TrackingEffect(logger=logger)
    if args.effect:
        effect.set_json(Path(args.effect).read_text(encoding="utf-8"))

    overrides = {}
    if args.time_scale is not None:
        overrides["time_scale"] = args.time_scale
    if args.track:
        overrides["track_path"] = str(args.track)
    if overrides:
        effect.configure(overrides)
    return effect


def run_render(args: argparse.Namespace, settings: OverlaySettings, logger: logging.Logger) -> int:
    effect = build_effect(args, logger)
    if not effect.track_path:
        logger.error("No usable track data; nothing to render")
        return 1

    renderer = VideoOverlayRenderer(
        effect,
        BoxRenderer(color=settings.box_color, thickness=settings.box_thickness),
        logger=logger,
        render_workers=args.workers or settings.render_workers,
        quality=settings.ffmpeg_quality,
    )
    renderer.render_video(Path(args.input), Path(args.output))
    return 0


def run_inspect(args: argparse.Namespace, settings: OverlaySettings, logger: logging.Logger) -> int:
    effect = build_effect(args, logger)
    report = {
        "document": effect.to_document(),
        "frames": len(effect.store),
    }
    if args.frame is not None:
        rectangle = effect.compute(args.frame)
        report["frame"] = args.frame
        report["region"] = None if rectangle is None else {
            "x": rectangle.x,
            "y": rectangle.y,
            "width": rectangle.width,
            "height": rectangle.height,
            "rotation": rectangle.rotation,
        }
        report["properties"] = effect.properties_at(args.frame)
    print(json.dumps(report, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="track-overlay",
        description="Draw tracked bounding boxes onto video frames.",
    )
    parser.add_argument("--config", default="config.json", help="Settings file (JSON).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--track", help="Track data file (JSON).")
    common.add_argument("--effect", help="Effect configuration document (JSON).")
    common.add_argument("--time-scale", type=float, help="Override the effect time scale.")

    subparsers = parser.add_subparsers(dest="command", required=True)

    render_parser = subparsers.add_parser("render", parents=[common], help="Render an annotated video.")
    render_parser.add_argument("input", help="Source video.")
    render_parser.add_argument("output", help="Destination video.")
    render_parser.add_argument("--workers", type=int, help="Frame rendering threads.")
    render_parser.set_defaults(handler=run_render)

    inspect_parser = subparsers.add_parser(
        "inspect",
        parents=[common],
        help="Print the effect configuration and the region for a frame.",
    )
    inspect_parser.add_argument("--frame", type=int, help="Frame number to evaluate.")
    inspect_parser.set_defaults(handler=run_inspect)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = load_settings(args.config)
    logger = configure_logging(settings, verbose=args.verbose)

    try:
        return args.handler(args, settings, logger)
    except (InvalidConfiguration, OSError, RuntimeError, subprocess.CalledProcessError) as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
