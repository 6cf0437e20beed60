"""Shared fixtures: synthetic frames and fake correlation trackers."""
from __future__ import annotations

from typing import List

import numpy as np
import pytest

from person_tracking.detection.types import Detection


class FakeCorrelation:
    """Scriptable stand-in for an OpenCV tracker.

    Without a script, `update` echoes the box it is given, which is what a
    tracker on a perfectly static scene would report.
    """

    def __init__(self, init_ok=True, script=None, raises=False):
        self.init_ok = init_ok
        self.script = list(script or [])
        self.raises = raises
        self.init_calls: List[tuple] = []
        self.update_calls: List[tuple] = []

    def init(self, frame, box):
        self.init_calls.append(tuple(box))
        return self.init_ok

    def update(self, frame, box):
        self.update_calls.append(tuple(box))
        if self.raises:
            raise RuntimeError("tracker exploded")
        if self.script:
            return self.script.pop(0)
        return True, tuple(box)


class FakeFactory:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.created: List[FakeCorrelation] = []

    def __call__(self) -> FakeCorrelation:
        tr = FakeCorrelation(**self.kwargs)
        self.created.append(tr)
        return tr


def det(x, y, w, h, conf=0.9, name="person") -> Detection:
    return Detection(box=(x, y, w, h), confidence=conf, class_index=0, class_name=name)


@pytest.fixture()
def frame() -> np.ndarray:
    return np.zeros((480, 640, 3), dtype=np.uint8)


@pytest.fixture()
def empty_frame() -> np.ndarray:
    return np.zeros((0, 0, 3), dtype=np.uint8)


@pytest.fixture()
def factory() -> FakeFactory:
    return FakeFactory()
