"""
Per-frame tracked-region overlay: tracked bounding boxes combined with
keyframed offsets, rendered onto video frames.
"""

from .boxes import SampleNotFoundError, TrackedBoxStore
from .effect import RegionProducer, TrackingEffect
from .effect_document import InvalidConfiguration
from .keyframes import ControlPoint, KeyframeCurve
from .models import BoundingBoxSample, FrameRate, Rectangle, TrackFile, TrackRecord
from .track_files import JsonTrackFileReader, TrackFileError, write_track_file

__all__ = [
    "BoundingBoxSample",
    "ControlPoint",
    "FrameRate",
    "InvalidConfiguration",
    "JsonTrackFileReader",
    "KeyframeCurve",
    "Rectangle",
    "RegionProducer",
    "SampleNotFoundError",
    "TrackFile",
    "TrackFileError",
    "TrackRecord",
    "TrackedBoxStore",
    "TrackingEffect",
    "write_track_file",
]
