from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, Tuple

import numpy as np

from ..utils.geometry import Rect


class CorrelationTracker(Protocol):
    """Single-object visual tracker (template / correlation-filter based).

    Instances are not shared: each live track owns exactly one.
    """
    def init(self, frame: np.ndarray, box: Rect) -> bool:
        ...

    def update(self, frame: np.ndarray, box: Rect) -> Tuple[bool, Rect]:
        ...


TrackerFactory = Callable[[], CorrelationTracker]


@dataclass(frozen=True)
class TrackSnapshot:
    """Read-only view of one track, safe to hand to a renderer."""
    track_id: int
    box: Rect
    class_name: str
    age: int
    misses: int
