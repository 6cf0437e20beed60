from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple
import collections

import cv2

from ..detection.types import Detection
from ..tracking.base import TrackSnapshot
from ..utils.geometry import center


def put_text(img, text: str, org: Tuple[int, int], scale=0.6, color=(255, 255, 255), thickness=1) -> None:
    cv2.putText(img, text, org, cv2.FONT_HERSHEY_SIMPLEX, scale, color, thickness, cv2.LINE_AA)


def draw_detections(img, detections: Sequence[Detection], color=(255, 128, 0)) -> None:
    for det in detections:
        x, y, w, h = det.box
        cv2.rectangle(img, (x, y), (x + w, y + h), color, 2)
        put_text(img, f"{det.class_name} {det.confidence:.2f}", (x, max(0, y - 6)), 0.5, color, 1)


class TrackVizState:
    """Center-point history per track id, for drawing trails."""

    def __init__(self, history_len: int = 20):
        self.history_len = int(history_len)
        self._hist: Dict[int, collections.deque] = {}

    def push(self, track_id: int, cx: int, cy: int) -> None:
        if track_id not in self._hist:
            self._hist[track_id] = collections.deque(maxlen=self.history_len)
        self._hist[track_id].append((cx, cy))

    def get(self, track_id: int) -> List[Tuple[int, int]]:
        return list(self._hist.get(track_id, []))

    def retain(self, live_ids) -> None:
        live = set(live_ids)
        for tid in [tid for tid in self._hist if tid not in live]:
            del self._hist[tid]


def draw_tracks(
    img,
    tracks: Sequence[TrackSnapshot],
    track_color=(0, 255, 0),
    history: Optional[TrackVizState] = None,
) -> None:
    for t in tracks:
        x, y, w, h = t.box
        cx, cy = center(t.box)
        cx_i, cy_i = int(cx), int(cy)

        # coasting tracks (no recent detection match) are drawn thinner
        thickness = 2 if t.misses == 0 else 1
        cv2.rectangle(img, (x, y), (x + w, y + h), track_color, thickness)
        put_text(img, f"ID {t.track_id} {t.class_name}", (x, max(0, y - 10)), 0.6, track_color, 2)

        if history is not None:
            history.push(t.track_id, cx_i, cy_i)
            pts = history.get(t.track_id)
            for k in range(1, len(pts)):
                cv2.line(img, pts[k - 1], pts[k], track_color, 2)

    if history is not None:
        history.retain(t.track_id for t in tracks)


def draw_fps(img, fps: float) -> None:
    text = f"FPS: {fps:.1f}"
    (tw, _), _2 = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 0.7, 2)
    x_right = img.shape[1] - tw - 10
    y_top = 30
    put_text(img, text, (x_right, y_top), 0.7, (255, 255, 255), 2)


def draw_inference_status(img, inference_fps: float, inference_ms: float | None, busy: bool) -> None:
    latency = "--" if inference_ms is None else f"{inference_ms:.0f}ms"
    state = "busy" if busy else "idle"
    text = f"YOLO: {inference_fps:.1f}/s {latency} [{state}]"
    (tw, _), _2 = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, 0.6, 1)
    put_text(img, text, (img.shape[1] - tw - 10, 56), 0.6, (200, 200, 200), 1)


def draw_mode(img, mode: str) -> None:
    put_text(img, mode, (10, 26), 0.6, (200, 200, 200), 1)
