from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

import numpy as np

from ..detection.types import Detection
from ..utils.geometry import Rect, clamp, iou
from .base import CorrelationTracker, TrackerFactory, TrackSnapshot


@dataclass
class RegistryConfig:
    """Policy for the correlation-tracker registry.

    Each track is followed by its own correlation tracker every frame and
    re-anchored to a detector box whenever one overlaps it enough.
    """

    association_iou: float = 0.2   # minimum IoU to match a detection to a predicted track
    max_misses: int = 10           # frames without a detection match before a track is dropped


class _Track:
    __slots__ = ("id", "correlation", "box", "misses", "age", "class_name")

    def __init__(self, tid: int, correlation: CorrelationTracker, box: Rect, class_name: str) -> None:
        self.id = tid
        self.correlation = correlation
        self.box = box
        self.misses = 0
        self.age = 0
        self.class_name = class_name

    def snapshot(self) -> TrackSnapshot:
        return TrackSnapshot(
            track_id=self.id,
            box=self.box,
            class_name=self.class_name,
            age=self.age,
            misses=self.misses,
        )


def _frame_is_empty(frame: np.ndarray | None) -> bool:
    return frame is None or frame.size == 0 or frame.shape[0] == 0 or frame.shape[1] == 0


def greedy_associate(
    track_boxes: Sequence[Tuple[int, Rect]],
    det_boxes: Sequence[Rect],
    min_iou: float,
) -> Tuple[Dict[int, int], List[int]]:
    """Match tracks to detections one track at a time.

    Tracks are visited in the given order; each claims the unclaimed
    detection with the highest IoU if that IoU is positive and >= min_iou.
    Not globally optimal (no Hungarian step).

    Returns ({track_id: det_idx}, unmatched det indices in input order).
    """
    claimed: Set[int] = set()
    matches: Dict[int, int] = {}
    for tid, tbox in track_boxes:
        best_j = -1
        best_iou = -1.0
        for j, dbox in enumerate(det_boxes):
            if j in claimed:
                continue
            v = iou(tbox, dbox)
            if v > best_iou:
                best_iou = v
                best_j = j
        if best_j >= 0 and best_iou > 0.0 and best_iou >= min_iou:
            matches[tid] = best_j
            claimed.add(best_j)
    unmatched = [j for j in range(len(det_boxes)) if j not in claimed]
    return matches, unmatched


class TrackRegistry:
    """Multi-object tracker built from per-object correlation trackers.

    Interface:
      update(frame, detections=None) -> List[TrackSnapshot]
      init_with_detections(frame, detections) -> List[TrackSnapshot]

    Must be driven from a single thread; callers only ever see snapshots.
    """

    def __init__(self, cfg: RegistryConfig, tracker_factory: TrackerFactory) -> None:
        self._cfg = cfg
        self._factory = tracker_factory
        self._tracks: Dict[int, _Track] = {}
        self._next_id = 0

    @property
    def next_id(self) -> int:
        return self._next_id

    def __len__(self) -> int:
        return len(self._tracks)

    def snapshot(self) -> List[TrackSnapshot]:
        return [t.snapshot() for t in self._tracks.values() if t.box[2] > 0 and t.box[3] > 0]

    def clear(self) -> None:
        """Drop every track. Ids keep counting up."""
        self._tracks.clear()

    def update(self, frame: np.ndarray, detections: Optional[Sequence[Detection]] = None) -> List[TrackSnapshot]:
        if _frame_is_empty(frame):
            for tr in self._tracks.values():
                tr.misses += 1
            self._prune()
            return self.snapshot()

        fh, fw = frame.shape[0], frame.shape[1]

        # Predict
        doomed: Set[int] = set()
        for tid, tr in self._tracks.items():
            tr.misses += 1
            box = clamp(tr.box, fw, fh)
            try:
                ok, predicted = tr.correlation.update(frame, box)
            except Exception as e:
                print(f"[WARN] track {tid} correlation update raised: {e}")
                doomed.add(tid)
                continue
            if not ok or predicted[2] <= 0 or predicted[3] <= 0:
                doomed.add(tid)
                continue
            tr.box = clamp(predicted, fw, fh)
            tr.age += 1

        for tid in doomed:
            del self._tracks[tid]

        if detections is not None:
            # Associate
            det_boxes = [d.box for d in detections]
            matches, unmatched = greedy_associate(
                [(tid, tr.box) for tid, tr in self._tracks.items()],
                det_boxes,
                float(self._cfg.association_iou),
            )

            # Apply matches / spawn
            for tid, j in matches.items():
                tr = self._tracks[tid]
                tr.box = clamp(detections[j].box, fw, fh)
                tr.misses = 0
                tr.class_name = detections[j].class_name

            for j in unmatched:
                self._spawn(frame, detections[j])

        self._prune()
        return self.snapshot()

    def init_with_detections(self, frame: np.ndarray, detections: Sequence[Detection]) -> List[TrackSnapshot]:
        """Replace every track with one fresh track per usable detection."""
        if _frame_is_empty(frame):
            print("[WARN] init_with_detections called with an empty frame; registry unchanged")
            return self.snapshot()

        self.clear()
        for det in detections:
            self._spawn(frame, det)
        return self.snapshot()

    def _spawn(self, frame: np.ndarray, det: Detection) -> None:
        _, _, w, h = det.box
        if w <= 0 or h <= 0:
            return

        box = clamp(det.box, frame.shape[1], frame.shape[0])
        try:
            correlation = self._factory()
            ok = bool(correlation.init(frame, box))
        except Exception as e:
            print(f"[WARN] correlation tracker setup failed for box {box}: {e}")
            ok = False
        if not ok:
            return

        tid = self._next_id
        self._next_id += 1
        self._tracks[tid] = _Track(tid, correlation, box, det.class_name)

    def _prune(self) -> None:
        max_misses = int(self._cfg.max_misses)
        for tid in [tid for tid, tr in self._tracks.items() if tr.misses > max_misses]:
            del self._tracks[tid]
