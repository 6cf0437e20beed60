from __future__ import annotations

from typing import Sequence, Tuple

# (x, y, w, h) in integer pixels, OpenCV Rect convention
Rect = Tuple[int, int, int, int]


def area(box: Sequence[float]) -> float:
    _, _, w, h = box
    if w <= 0 or h <= 0:
        return 0.0
    return float(w) * float(h)


def center(box: Sequence[float]) -> Tuple[float, float]:
    x, y, w, h = box
    return x + w / 2.0, y + h / 2.0


def xywh_to_xyxy(box: Sequence[float]) -> Tuple[float, float, float, float]:
    x, y, w, h = box
    return x, y, x + w, y + h


def xyxy_to_xywh(box: Sequence[float]) -> Tuple[float, float, float, float]:
    x1, y1, x2, y2 = box
    return x1, y1, x2 - x1, y2 - y1


def iou(a: Sequence[float], b: Sequence[float]) -> float:
    """Intersection over union of two (x, y, w, h) rectangles.

    Returns 0.0 when either rectangle has non-positive area or when they do
    not overlap.
    """
    area_a = area(a)
    area_b = area(b)
    if area_a <= 0.0 or area_b <= 0.0:
        return 0.0

    ax1, ay1, ax2, ay2 = xywh_to_xyxy(a)
    bx1, by1, bx2, by2 = xywh_to_xyxy(b)
    iw = min(ax2, bx2) - max(ax1, bx1)
    ih = min(ay2, by2) - max(ay1, by1)
    if iw <= 0 or ih <= 0:
        return 0.0

    inter = float(iw) * float(ih)
    return inter / (area_a + area_b - inter)


def union(a: Sequence[int], b: Sequence[int]) -> Rect:
    ax1, ay1, ax2, ay2 = xywh_to_xyxy(a)
    bx1, by1, bx2, by2 = xywh_to_xyxy(b)
    x1, y1 = min(ax1, bx1), min(ay1, by1)
    x2, y2 = max(ax2, bx2), max(ay2, by2)
    return int(x1), int(y1), int(x2 - x1), int(y2 - y1)


def clamp(box: Sequence[float], frame_width: int, frame_height: int) -> Rect:
    """Truncate a rectangle to [0, W) x [0, H).

    The result always has width and height >= 1. When the box lies entirely
    outside the frame it collapses onto the nearest edge as a 1-pixel strip.
    """
    fw = max(1, int(frame_width))
    fh = max(1, int(frame_height))
    x, y, w, h = (int(v) for v in box)

    x1 = min(max(x, 0), fw - 1)
    y1 = min(max(y, 0), fh - 1)
    x2 = min(max(x + w, x1 + 1), fw)
    y2 = min(max(y + h, y1 + 1), fh)
    return x1, y1, x2 - x1, y2 - y1
