from __future__ import annotations

from typing import Any, Dict


DEFAULTS: Dict[str, Any] = {
    "camera": {
        "device": 0,
        "capture": {"width": 640, "height": 480, "fps": 30, "fourcc": "MJPG"},
    },
    "model": {
        "path": "models/yolo11n_r416.onnx",
        "input_size": [416, 416],  # width, height
        "swap_rb": True,
        "labels_path": None,       # None -> built-in COCO labels
    },
    "detection": {
        "confidence_threshold": 0.25,
        "nms_threshold": 0.45,
        "target_class": "person",  # null keeps every class
    },
    "tracking": {
        "enabled": True,
        "backend": "mosse",  # mosse | kcf | csrt | mil
        "association_iou": 0.2,
        "max_misses": 10,
        "history_len": 20,
        "color_bgr": [0, 255, 0],
    },
    "pipeline": {
        "shutdown_timeout_sec": 5.0,
        "fps_window_sec": 1.0,
    },
    "ui": {
        "window_name": "Person tracking",
        "fps_ema_alpha": 0.2,
    },
    "logging": {
        "enabled": False,
        "path": None,
        "flush_every": 60,
    },
}
