import json
import logging
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from track_overlay import cli
from track_overlay.models import TrackRecord
from track_overlay.track_files import write_track_file


def write_settings(tmp_path: Path) -> Path:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"log_file": "none"}), encoding="utf-8")
    return config_path


def test_inspect_prints_region_for_frame(tmp_path, capsys):
    track = write_track_file(tmp_path / "clip.json", [TrackRecord(4, 0.0, 0.1, 0.1, 0.3, 0.3)])
    effect_doc = tmp_path / "effect.json"
    effect_doc.write_text(json.dumps({"delta_x": [[0, 0.25]]}), encoding="utf-8")

    exit_code = cli.main([
        "--config", str(write_settings(tmp_path)),
        "inspect",
        "--track", str(track),
        "--effect", str(effect_doc),
        "--time-scale", "2",
        "--frame", "8",
    ])

    assert exit_code == 0
    report = json.loads(capsys.readouterr().out)
    assert report["frames"] == 1
    assert report["document"]["time_scale"] == 2.0
    assert report["region"]["x"] == pytest.approx(0.35)
    assert report["properties"]["delta_x"]["value"] == 0.25
    logging.basicConfig(handlers=[logging.NullHandler()], force=True)


def test_render_without_track_data_fails(tmp_path):
    exit_code = cli.main([
        "--config", str(write_settings(tmp_path)),
        "render",
        str(tmp_path / "in.mp4"),
        str(tmp_path / "out.mp4"),
        "--track", str(tmp_path / "missing.json"),
    ])
    assert exit_code == 1
    logging.basicConfig(handlers=[logging.NullHandler()], force=True)


def test_invalid_effect_document_is_reported(tmp_path):
    effect_doc = tmp_path / "effect.json"
    effect_doc.write_text("{broken", encoding="utf-8")

    exit_code = cli.main([
        "--config", str(write_settings(tmp_path)),
        "inspect",
        "--effect", str(effect_doc),
    ])
    assert exit_code == 1
    logging.basicConfig(handlers=[logging.NullHandler()], force=True)
