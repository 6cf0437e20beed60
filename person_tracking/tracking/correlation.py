from __future__ import annotations

from typing import Any, Callable, Dict, Tuple

import cv2
import numpy as np

from ..utils.geometry import Rect
from .base import TrackerFactory

# backend -> candidate constructors, first one present in the installed cv2 wins
_BACKENDS: Dict[str, Tuple[str, ...]] = {
    "mosse": ("legacy.TrackerMOSSE_create",),
    "kcf": ("TrackerKCF_create", "legacy.TrackerKCF_create"),
    "csrt": ("TrackerCSRT_create", "legacy.TrackerCSRT_create"),
    "mil": ("TrackerMIL_create", "legacy.TrackerMIL_create"),
}


def _lookup(module: Any, dotted: str) -> Callable[[], Any] | None:
    obj = module
    for part in dotted.split("."):
        obj = getattr(obj, part, None)
        if obj is None:
            return None
    return obj


class OpenCVCorrelationTracker:
    """Adapts an OpenCV tracker object to the CorrelationTracker contract.

    OpenCV trackers ignore the box passed to `update` (they keep their own
    state); the legacy API returns a bool from `init` while the new API
    returns None.
    """

    def __init__(self, impl: Any) -> None:
        self._impl = impl

    def init(self, frame: np.ndarray, box: Rect) -> bool:
        x, y, w, h = (int(v) for v in box)
        result = self._impl.init(frame, (x, y, w, h))
        return True if result is None else bool(result)

    def update(self, frame: np.ndarray, box: Rect) -> Tuple[bool, Rect]:
        ok, new_box = self._impl.update(frame)
        if not ok:
            return False, box
        x, y, w, h = new_box
        return True, (int(round(x)), int(round(y)), int(round(w)), int(round(h)))


def build_tracker_factory(backend: str, cv_module: Any = cv2) -> TrackerFactory:
    """Return a zero-argument factory producing fresh correlation trackers."""
    name = str(backend).lower()
    if name not in _BACKENDS:
        raise ValueError(f"Unknown correlation tracker backend: {backend} (choose from {sorted(_BACKENDS)})")

    for dotted in _BACKENDS[name]:
        ctor = _lookup(cv_module, dotted)
        if ctor is not None:
            return lambda: OpenCVCorrelationTracker(ctor())

    raise RuntimeError(
        f"OpenCV build has no {name.upper()} tracker. Install opencv-contrib-python."
    )
