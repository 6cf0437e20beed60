"""Utility helpers (small, dependency-light).

- geometry: rectangle IoU / union / clamping in (x, y, w, h) pixel space.
- track_logger: CSV logging of per-frame tracking state without video recording.
"""

from .geometry import Rect, area, center, clamp, iou, union, xywh_to_xyxy, xyxy_to_xywh
from .track_logger import TrackLogger, default_track_log_path

__all__ = [
    "Rect",
    "TrackLogger",
    "area",
    "center",
    "clamp",
    "default_track_log_path",
    "iou",
    "union",
    "xywh_to_xyxy",
    "xyxy_to_xywh",
]
