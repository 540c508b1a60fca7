import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from track_overlay.config import OverlaySettings, _parse_box_color, load_settings
from track_overlay.logging_setup import configure_logging


def test_settings_load_from_json_file(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({
        "log_file": "none",
        "log_level": "debug",
        "render_workers": 3,
        "box_color": "#00ff00",
        "box_thickness": 4,
        "ffmpeg_quality": 18,
    }), encoding="utf-8")

    settings = load_settings(config_path, env={})

    assert settings.log_file is None
    assert settings.log_level == logging.DEBUG
    assert settings.render_workers == 3
    assert settings.box_color == (0, 255, 0)
    assert settings.box_thickness == 4
    assert settings.ffmpeg_quality == 18


def test_settings_fall_back_to_environment(tmp_path):
    env = {
        "OVERLAY_LOG_FILE": str(tmp_path / "overlay.log"),
        "OVERLAY_LOG_LEVEL": "WARNING",
        "RENDER_WORKERS": "not-a-number",
        "BOX_THICKNESS": "-2",
    }

    settings = load_settings(tmp_path / "missing.json", env=env)

    assert settings.log_file == tmp_path / "overlay.log"
    assert settings.log_level == logging.WARNING
    assert settings.render_workers >= 1
    assert settings.box_thickness == 2
    assert settings.box_color == (255, 0, 0)


def test_box_color_accepts_rgb_lists_and_rejects_garbage():
    assert _parse_box_color([255, 0, 10]) == (10, 0, 255)
    assert _parse_box_color([300, -5, 0]) == (0, 0, 255)
    assert _parse_box_color("zzzzzz") == (255, 0, 0)
    assert _parse_box_color(None) == (255, 0, 0)


def test_configure_logging_writes_to_settings_file(tmp_path):
    log_path = tmp_path / "logs" / "overlay.log"
    settings = OverlaySettings(log_file=log_path, log_level=logging.WARNING)

    logger = configure_logging(settings, console=False, name="overlay-tests")
    logger.info("quiet")
    logger.warning("hello from tests")
    for handler in logging.getLogger().handlers:
        handler.flush()

    text = log_path.read_text(encoding="utf-8")
    assert "hello from tests" in text
    assert "quiet" not in text
    logging.basicConfig(handlers=[logging.NullHandler()], force=True)


def test_verbose_logging_overrides_settings_level(tmp_path):
    settings = OverlaySettings(log_file=None, log_level=logging.ERROR)

    logger = configure_logging(settings, verbose=True, console=False, name="overlay-tests")

    assert logger.level == logging.DEBUG
    logging.basicConfig(handlers=[logging.NullHandler()], force=True)


def test_unwritable_log_file_falls_back_to_working_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    settings = OverlaySettings(log_file=blocker / "overlay.log")

    logger = configure_logging(settings, console=False, name="overlay-tests")
    logger.warning("after fallback")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert "after fallback" in (tmp_path / "overlay.log").read_text(encoding="utf-8")
    logging.basicConfig(handlers=[logging.NullHandler()], force=True)
