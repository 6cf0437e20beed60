from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

import numpy as np

from ..utils.geometry import xyxy_to_xywh
from .types import COCO_LABELS, Detection, class_name_for


@dataclass(frozen=True)
class DecoderConfig:
    """Post-processing policy for one YOLO-style output tensor.

    The tensor is laid out `params x predictions` where params is 4 box
    parameters (cx, cy, w, h in model input pixels) followed by one score
    per class.
    """

    input_width: int = 416
    input_height: int = 416
    confidence_threshold: float = 0.25
    nms_threshold: float = 0.45
    target_class: Optional[int] = 0       # None keeps every class
    labels: Tuple[str, ...] = field(default=COCO_LABELS)


def nms(boxes_xywh: np.ndarray, scores: np.ndarray, threshold: float) -> List[int]:
    """Greedy class-agnostic non-max suppression.

    Returns indices of kept boxes in descending score order. A box is
    suppressed when its IoU with an already kept box is >= threshold.
    """
    if len(boxes_xywh) == 0:
        return []

    b = np.asarray(boxes_xywh, dtype=np.float64)
    x1, y1 = b[:, 0], b[:, 1]
    x2, y2 = x1 + b[:, 2], y1 + b[:, 3]
    areas = b[:, 2] * b[:, 3]

    order = np.argsort(-np.asarray(scores, dtype=np.float64), kind="stable")
    keep: List[int] = []
    while order.size > 0:
        i = int(order[0])
        keep.append(i)
        rest = order[1:]
        iw = np.clip(np.minimum(x2[i], x2[rest]) - np.maximum(x1[i], x1[rest]), 0.0, None)
        ih = np.clip(np.minimum(y2[i], y2[rest]) - np.maximum(y1[i], y1[rest]), 0.0, None)
        inter = iw * ih
        ious = inter / (areas[i] + areas[rest] - inter)
        order = rest[ious < threshold]
    return keep


def _as_prediction_matrix(output: Any) -> np.ndarray | None:
    if output is None:
        return None
    pred = np.asarray(output, dtype=np.float32)
    if pred.ndim == 3 and pred.shape[0] == 1:
        pred = pred[0]
    if pred.ndim != 2 or pred.shape[0] < 5 or pred.shape[1] == 0:
        return None
    return pred


def _decode(output: Any, frame_width: int, frame_height: int, cfg: DecoderConfig) -> List[Detection]:
    pred = _as_prediction_matrix(output)
    if pred is None or frame_width <= 0 or frame_height <= 0:
        return []

    n = pred.shape[1]
    scores = pred[4:, :]
    class_idx = np.argmax(scores, axis=0)
    max_score = scores[class_idx, np.arange(n)]

    keep = (max_score >= cfg.confidence_threshold) & np.isfinite(pred[:4]).all(axis=0)
    if cfg.target_class is not None:
        keep &= class_idx == int(cfg.target_class)
    if not keep.any():
        return []

    cx, cy, w, h = (pred[i, keep].astype(np.float64) for i in range(4))

    # corners in input pixels, scaled multiply-then-divide so integral edges stay exact
    fw, fh = float(frame_width), float(frame_height)
    x1 = np.clip((cx - w / 2.0) * fw / cfg.input_width, 0.0, fw)
    y1 = np.clip((cy - h / 2.0) * fh / cfg.input_height, 0.0, fh)
    x2 = np.clip((cx + w / 2.0) * fw / cfg.input_width, 0.0, fw)
    y2 = np.clip((cy + h / 2.0) * fh / cfg.input_height, 0.0, fh)

    boxes = np.floor(np.stack(xyxy_to_xywh((x1, y1, x2, y2)), axis=1)).astype(np.int64)
    valid = (boxes[:, 2] > 0) & (boxes[:, 3] > 0)
    if not valid.any():
        return []

    boxes = boxes[valid]
    confs = max_score[keep][valid]
    classes = class_idx[keep][valid]

    out: List[Detection] = []
    for i in nms(boxes, confs, cfg.nms_threshold):
        x, y, bw, bh = (int(v) for v in boxes[i])
        ci = int(classes[i])
        out.append(
            Detection(
                box=(x, y, bw, bh),
                confidence=float(confs[i]),
                class_index=ci,
                class_name=class_name_for(cfg.labels, ci),
            )
        )
    return out


def decode_output(output: Any, frame_width: int, frame_height: int, cfg: DecoderConfig) -> List[Detection]:
    """Decode one raw output tensor into ranked, non-overlapping detections.

    Never raises: absent or malformed tensors decode to an empty list.
    """
    try:
        return _decode(output, frame_width, frame_height, cfg)
    except Exception as e:
        print(f"[WARN] detection decode failed: {e}")
        return []
