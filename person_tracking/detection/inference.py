from __future__ import annotations

from pathlib import Path
from typing import List, Protocol

import cv2
import numpy as np

from .decoder import DecoderConfig, decode_output
from .types import Detection


class InferenceRuntime(Protocol):
    """Opaque model execution: input blob in, raw output tensor out."""
    def run(self, blob: np.ndarray) -> np.ndarray:
        ...


def preprocess(frame_bgr: np.ndarray, input_width: int, input_height: int, swap_rb: bool = True) -> np.ndarray:
    """Resize (no letterbox) and scale to [0,1]; returns an NCHW float32 blob."""
    return cv2.dnn.blobFromImage(
        frame_bgr,
        scalefactor=1.0 / 255.0,
        size=(int(input_width), int(input_height)),
        swapRB=bool(swap_rb),
        crop=False,
    )


class OpenCVDnnRuntime:
    """ONNX model executed by OpenCV's dnn module on the CPU."""

    def __init__(self, model_path: str | Path) -> None:
        p = Path(model_path)
        if not p.exists():
            raise FileNotFoundError(f"Model not found: {p}")
        try:
            self._net = cv2.dnn.readNetFromONNX(str(p))
        except Exception as e:
            raise RuntimeError(f"Failed to load ONNX model {p}: {e}") from e
        self._net.setPreferableBackend(cv2.dnn.DNN_BACKEND_OPENCV)
        self._net.setPreferableTarget(cv2.dnn.DNN_TARGET_CPU)
        self.model_path = p

    def run(self, blob: np.ndarray) -> np.ndarray:
        self._net.setInput(blob)
        return self._net.forward()


class YoloDetector:
    """Inference + decode for one frame; safe to call from a worker thread.

    The runtime is not expected to be reentrant, so callers must serialize
    `detect` (the async pipeline does this with its single worker).
    """

    def __init__(self, runtime: InferenceRuntime, cfg: DecoderConfig, *, swap_rb: bool = True) -> None:
        self._runtime = runtime
        self._cfg = cfg
        self._swap_rb = swap_rb

    @property
    def config(self) -> DecoderConfig:
        return self._cfg

    def detect(self, frame_bgr: np.ndarray) -> List[Detection]:
        if frame_bgr is None or frame_bgr.size == 0:
            return []
        h, w = frame_bgr.shape[:2]
        try:
            blob = preprocess(frame_bgr, self._cfg.input_width, self._cfg.input_height, self._swap_rb)
            output = self._runtime.run(blob)
        except Exception as e:
            print(f"[WARN] inference failed: {e}")
            return []
        return decode_output(output, frame_width=w, frame_height=h, cfg=self._cfg)
