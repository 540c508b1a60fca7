import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from track_overlay.boxes import SampleNotFoundError, TrackedBoxStore
from track_overlay.models import BoundingBoxSample, FrameRate, TrackRecord


def test_membership_is_exact_key_only():
    store = TrackedBoxStore()
    store.add_sample(10, 0.2, 0.3, 0.1, 0.1)
    store.add_sample(20, 0.25, 0.35, 0.12, 0.12)

    assert store.contains(10) is True
    assert store.contains(15) is False
    assert store.contains(20) is True
    assert store.get(20) == BoundingBoxSample(0.25, 0.35, 0.12, 0.12)


def test_clear_forgets_every_sample():
    store = TrackedBoxStore()
    ids = [1, 4, 9, 16]
    for frame_id in ids:
        store.add_sample(frame_id, 0.1, 0.1, 0.2, 0.2)

    store.clear()
    store.clear()

    assert len(store) == 0
    assert not any(store.contains(frame_id) for frame_id in ids)


def test_get_on_absent_key_raises():
    store = TrackedBoxStore()
    with pytest.raises(SampleNotFoundError):
        store.get(3)
    with pytest.raises(KeyError):
        store.get(3)


def test_negative_inputs_are_dropped():
    store = TrackedBoxStore()
    assert store.add_sample(1, -0.1, 0.0, 0.1, 0.1) is False
    assert store.add_corners(2, 0.1, -0.2, 0.3, 0.4) is False
    assert store.add_corners(3, 0.1, 0.2, 0.3, 0.5) is True

    assert store.frames() == [3]
    sample = store.get(3)
    assert sample.x == 0.1
    assert sample.y == 0.2
    assert sample.width == pytest.approx(0.2)
    assert sample.height == pytest.approx(0.3)


def test_add_records_applies_corner_rules_in_file_order():
    store = TrackedBoxStore()
    kept = store.add_records([
        TrackRecord(9, 0.0, 0.1, 0.1, 0.2, 0.2),
        TrackRecord(2, 0.0, -0.1, 0.1, 0.2, 0.2),
        TrackRecord(4, 0.0, 0.5, 0.1, 0.2, 0.2),
        TrackRecord(9, 30.0, 0.3, 0.3, 0.4, 0.4),
    ])

    assert kept == 3
    assert store.frames() == [4, 9]
    assert store.get(9).x == 0.3
    assert store.get(9).rotation == 30.0


def test_inverted_corners_are_kept_with_negative_extent():
    store = TrackedBoxStore()
    assert store.add_corners(1, 0.4, 0.4, 0.2, 0.2) is True
    store.add_records([TrackRecord(2, 0.0, 0.5, 0.1, 0.2, 0.3)])

    assert store.contains(1)
    assert store.get(1).width == pytest.approx(-0.2)
    assert store.get(1).height == pytest.approx(-0.2)
    assert store.get(2).x == 0.5
    assert store.get(2).width == pytest.approx(-0.3)
    assert store.get(2).height == pytest.approx(0.2)


def test_add_sample_still_drops_negative_extent():
    store = TrackedBoxStore()
    assert store.add_sample(1, 0.4, 0.4, -0.2, 0.2) is False
    assert len(store) == 0


def test_overwrite_keeps_single_key():
    store = TrackedBoxStore()
    store.add_sample(5, 0.1, 0.1, 0.1, 0.1)
    store.add_sample(5, 0.4, 0.4, 0.2, 0.2)

    assert store.frames() == [5]
    assert store.get(5).x == 0.4


def test_rescale_doubles_and_halves_keys():
    store = TrackedBoxStore()
    store.add_sample(3, 0.1, 0.1, 0.1, 0.1)
    store.add_sample(7, 0.2, 0.2, 0.1, 0.1)

    store.rescale(2.0)
    assert store.frames() == [6, 14]
    assert store.get(14).x == 0.2

    store.rescale(0.5)
    assert store.frames() == [3, 7]
    assert store.time_scale == 1.0


def test_rescale_identity_is_noop():
    store = TrackedBoxStore()
    for frame_id in (0, 1, 2, 99):
        store.add_sample(frame_id, 0.0, 0.0, 0.5, 0.5)
    before = store.frames()

    store.rescale(1.0)
    assert store.frames() == before


def test_rescale_round_trip_within_one_frame():
    store = TrackedBoxStore()
    original = [1, 2, 5, 11, 23, 47, 100]
    for index, frame_id in enumerate(original):
        store.add_sample(frame_id, index / 100.0, 0.0, 0.1, 0.1)

    store.rescale(1.7)
    store.rescale(1 / 1.7)

    for index, frame_id in enumerate(original):
        restored = [
            frame for frame in store.frames()
            if store.get(frame).x == index / 100.0
        ]
        assert len(restored) == 1
        assert abs(restored[0] - frame_id) <= 1


def test_rescale_collision_keeps_later_original_key():
    store = TrackedBoxStore()
    store.add_sample(4, 0.1, 0.0, 0.1, 0.1)
    store.add_sample(5, 0.2, 0.0, 0.1, 0.1)

    # 4 * 0.5 = 2 and 5 * 0.5 = 2.5, which rounds half up to 3
    store.rescale(0.5)
    assert store.frames() == [2, 3]

    store.clear()
    store.add_sample(4, 0.1, 0.0, 0.1, 0.1)
    store.add_sample(5, 0.2, 0.0, 0.1, 0.1)
    store.rescale(0.25)
    assert store.frames() == [1]
    assert store.get(1).x == 0.2


def test_rescale_rejects_non_positive_factor():
    store = TrackedBoxStore()
    with pytest.raises(ValueError):
        store.rescale(0.0)


@pytest.mark.parametrize("factor", [float("inf"), float("nan"), 1e308])
def test_rescale_rejects_unrepresentable_factor_without_changing_keys(factor):
    store = TrackedBoxStore()
    store.add_sample(10, 0.1, 0.1, 0.1, 0.1)

    with pytest.raises(ValueError):
        store.rescale(factor)

    assert store.frames() == [10]
    assert store.time_scale == 1.0


def test_base_rate_is_metadata_only():
    store = TrackedBoxStore()
    store.add_sample(10, 0.1, 0.1, 0.1, 0.1)
    store.set_base_rate(FrameRate(24000, 1001))

    assert store.base_rate.as_float() == pytest.approx(23.976, abs=1e-3)
    assert store.frames() == [10]


def test_nearest_frame():
    store = TrackedBoxStore()
    assert store.nearest_frame(5) is None

    for frame_id in (10, 20, 40):
        store.add_sample(frame_id, 0.0, 0.0, 0.1, 0.1)

    assert store.nearest_frame(0) == 10
    assert store.nearest_frame(15) == 10
    assert store.nearest_frame(16) == 20
    assert store.nearest_frame(20) == 20
    assert store.nearest_frame(100) == 40
