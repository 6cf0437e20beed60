from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Tuple

from ..utils.geometry import Rect

COCO_LABELS: Tuple[str, ...] = (
    "person", "bicycle", "car", "motorcycle", "airplane", "bus", "train", "truck", "boat",
    "traffic light", "fire hydrant", "stop sign", "parking meter", "bench", "bird", "cat",
    "dog", "horse", "sheep", "cow", "elephant", "bear", "zebra", "giraffe", "backpack",
    "umbrella", "handbag", "tie", "suitcase", "frisbee", "skis", "snowboard", "sports ball",
    "kite", "baseball bat", "baseball glove", "skateboard", "surfboard", "tennis racket",
    "bottle", "wine glass", "cup", "fork", "knife", "spoon", "bowl", "banana", "apple",
    "sandwich", "orange", "broccoli", "carrot", "hot dog", "pizza", "donut", "cake", "chair",
    "couch", "potted plant", "bed", "dining table", "toilet", "tv", "laptop", "mouse",
    "remote", "keyboard", "cell phone", "microwave", "oven", "toaster", "sink", "refrigerator",
    "book", "clock", "vase", "scissors", "teddy bear", "hair drier", "toothbrush",
)


@dataclass(frozen=True)
class Detection:
    """One decoded detector box in frame pixel coordinates."""
    box: Rect  # (x, y, w, h)
    confidence: float
    class_index: int
    class_name: str


def load_labels(path: str | Path | None) -> Tuple[str, ...]:
    """Load one class name per line; `None` returns the built-in COCO labels."""
    if path is None:
        return COCO_LABELS

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Labels file not found: {p}")
    with p.open("r", encoding="utf-8") as f:
        labels = tuple(line.strip() for line in f if line.strip())
    if not labels:
        raise ValueError(f"Labels file is empty: {p}")
    return labels


def resolve_class_index(labels: Sequence[str], name: str) -> int:
    try:
        return list(labels).index(name)
    except ValueError:
        raise ValueError(f"Target class {name!r} not found in label set ({len(labels)} labels)") from None


def class_name_for(labels: Sequence[str], index: int) -> str:
    if 0 <= index < len(labels):
        return str(labels[index])
    return str(index)
