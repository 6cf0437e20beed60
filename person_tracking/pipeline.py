from __future__ import annotations

import queue
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .config import parse_size, unit_interval
from .detection.decoder import DecoderConfig
from .detection.inference import OpenCVDnnRuntime, YoloDetector
from .detection.types import Detection, load_labels, resolve_class_index
from .tracking.base import TrackerFactory, TrackSnapshot
from .tracking.correlation import build_tracker_factory
from .tracking.registry import RegistryConfig, TrackRegistry

MODES: Tuple[str, str] = ("track", "detect")

DetectFn = Callable[[np.ndarray], Sequence[Detection]]


@dataclass(frozen=True)
class FrameResult:
    mode: str
    tracks: List[TrackSnapshot]
    detections: Optional[List[Detection]]   # consumed this frame, None if nothing new
    latest_detections: List[Detection]      # last published, for detect-only display
    submitted: bool
    inference_busy: bool
    inference_fps: float
    inference_ms: float | None


def normalize_device_arg(dev: Any) -> Any:
    if isinstance(dev, str) and dev.isdigit():
        return int(dev)
    return dev


def build_decoder_config(model_cfg: Dict[str, Any], det_cfg: Dict[str, Any]) -> DecoderConfig:
    labels = load_labels(model_cfg.get("labels_path"))
    target_name = det_cfg.get("target_class", "person")
    target = None if target_name is None else resolve_class_index(labels, str(target_name))
    in_w, in_h = parse_size(model_cfg.get("input_size", 416))
    return DecoderConfig(
        input_width=in_w,
        input_height=in_h,
        confidence_threshold=unit_interval(
            det_cfg.get("confidence_threshold", 0.25), field_name="detection.confidence_threshold"
        ),
        nms_threshold=unit_interval(det_cfg.get("nms_threshold", 0.45), field_name="detection.nms_threshold"),
        target_class=target,
        labels=labels,
    )


def build_detector(model_cfg: Dict[str, Any], decoder_cfg: DecoderConfig) -> YoloDetector:
    runtime = OpenCVDnnRuntime(str(model_cfg["path"]))
    return YoloDetector(runtime, decoder_cfg, swap_rb=bool(model_cfg.get("swap_rb", True)))


def build_registry(track_cfg: Dict[str, Any], tracker_factory: TrackerFactory | None = None) -> TrackRegistry:
    if tracker_factory is None:
        tracker_factory = build_tracker_factory(str(track_cfg.get("backend", "mosse")))
    max_misses = int(track_cfg.get("max_misses", 10))
    if max_misses < 0:
        raise ValueError(f"tracking.max_misses must be >= 0: got {max_misses}")
    cfg = RegistryConfig(
        association_iou=unit_interval(track_cfg.get("association_iou", 0.2), field_name="tracking.association_iou"),
        max_misses=max_misses,
    )
    return TrackRegistry(cfg, tracker_factory)


class DetectionSlot:
    """Single-slot hand-off between the inference worker and the frame thread.

    `publish` overwrites whatever is pending, `take` reads and clears it.
    deque append/popleft are atomic, so neither side takes a lock.
    """

    def __init__(self) -> None:
        self._pending: Deque[Tuple[Detection, ...]] = deque(maxlen=1)
        self._last: Tuple[Detection, ...] = ()

    def publish(self, detections: Sequence[Detection]) -> None:
        snap = tuple(detections)
        self._last = snap
        self._pending.append(snap)

    def take(self) -> Optional[List[Detection]]:
        try:
            return list(self._pending.popleft())
        except IndexError:
            return None

    def peek_last(self) -> List[Detection]:
        return list(self._last)


class _RateMeter:
    def __init__(self, window_sec: float) -> None:
        self._window = max(1e-3, float(window_sec))
        self._t0: float | None = None
        self._count = 0
        self.rate = 0.0

    def tick(self, now: float) -> None:
        if self._t0 is None:
            self._t0 = now
        self._count += 1
        elapsed = now - self._t0
        if elapsed >= self._window:
            self.rate = self._count / elapsed
            self._count = 0
            self._t0 = now


_STOP_TOKEN = object()


class AsyncDetectionPipeline:
    """Runs detection on one worker thread while tracking runs per frame.

    - At most one inference is in flight; frames arriving meanwhile are not
      submitted (they still drive the correlation trackers).
    - The worker publishes into a single slot; each frame in track mode
      consumes it at most once.
    - In detect mode the registry is idle and the renderer is given the last
      published detections.
    """

    def __init__(
        self,
        detect_fn: DetectFn,
        registry: TrackRegistry,
        *,
        mode: str = "track",
        fps_window_sec: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._detect = detect_fn
        self._registry = registry
        self._mode = self._check_mode(mode)
        self._slot = DetectionSlot()
        self._clock = clock
        self._rate = _RateMeter(fps_window_sec)
        self._last_latency_ms: float | None = None

        # set = no inference in flight; cleared only by the frame thread, set only by the worker
        self._idle = threading.Event()
        self._idle.set()
        self._jobs: queue.Queue = queue.Queue()
        self._closed = False
        self._worker = threading.Thread(target=self._worker_main, name="inference-worker", daemon=True)
        self._worker.start()

    @staticmethod
    def _check_mode(mode: str) -> str:
        m = str(mode).lower()
        if m not in MODES:
            raise ValueError(f"mode must be one of {MODES}: got {mode!r}")
        return m

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def registry(self) -> TrackRegistry:
        return self._registry

    @property
    def in_flight(self) -> bool:
        return not self._idle.is_set()

    @property
    def inference_fps(self) -> float:
        return self._rate.rate

    @property
    def inference_ms(self) -> float | None:
        return self._last_latency_ms

    def wait_idle(self, timeout: float | None = None) -> bool:
        return self._idle.wait(timeout)

    def submit(self, frame: np.ndarray) -> bool:
        """Start inference on a copy of `frame` unless one is already running."""
        if self._closed or frame is None or frame.size == 0:
            return False
        if not self._idle.is_set():
            return False
        self._idle.clear()
        self._jobs.put(frame.copy())
        return True

    def process_frame(self, frame: np.ndarray) -> FrameResult:
        submitted = self.submit(frame)

        consumed: Optional[List[Detection]] = None
        tracks: List[TrackSnapshot] = []
        if self._mode == "track":
            consumed = self._slot.take()
            tracks = self._registry.update(frame, consumed)

        return FrameResult(
            mode=self._mode,
            tracks=tracks,
            detections=consumed,
            latest_detections=self._slot.peek_last(),
            submitted=submitted,
            inference_busy=self.in_flight,
            inference_fps=self.inference_fps,
            inference_ms=self.inference_ms,
        )

    def set_mode(self, mode: str, frame: np.ndarray | None = None) -> None:
        """Switch display mode; entering track mode reseeds from the last detections."""
        next_mode = self._check_mode(mode)
        if next_mode == self._mode:
            return
        self._registry.clear()
        self._mode = next_mode
        if next_mode == "track":
            self._slot.take()
            seed = self._slot.peek_last()
            if frame is not None and seed:
                self._registry.init_with_detections(frame, seed)

    def close(self, timeout: float = 5.0) -> bool:
        """Stop the worker; returns False if it had to be abandoned."""
        if self._closed:
            return not self._worker.is_alive()
        self._closed = True
        self._jobs.put(_STOP_TOKEN)
        self._worker.join(timeout=timeout)
        if self._worker.is_alive():
            print(f"[WARN] inference worker still busy after {timeout:.1f}s; abandoning it")
            return False
        return True

    def _worker_main(self) -> None:
        while True:
            item = self._jobs.get()
            if item is _STOP_TOKEN:
                break

            t0 = self._clock()
            try:
                try:
                    detections = list(self._detect(item))
                except Exception as e:
                    print(f"[WARN] inference worker failed: {e}")
                    detections = []
                now = self._clock()
                self._last_latency_ms = (now - t0) * 1000.0
                self._rate.tick(now)
                self._slot.publish(detections)
            finally:
                self._idle.set()
