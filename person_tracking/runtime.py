from __future__ import annotations

from typing import Any, Dict, Tuple

import cv2

from .pipeline import AsyncDetectionPipeline, FrameResult
from .ui.draw import (
    TrackVizState,
    draw_detections,
    draw_fps,
    draw_inference_status,
    draw_mode,
    draw_tracks,
)
from .utils.track_logger import TrackLogger, default_track_log_path


def create_track_logger(logging_cfg: Dict[str, Any]) -> TrackLogger | None:
    if not logging_cfg.get("enabled", False):
        return None

    log_path = logging_cfg.get("path") or default_track_log_path()
    flush_every = int(logging_cfg.get("flush_every", 60))
    track_logger = TrackLogger(str(log_path), flush_every=flush_every)
    print(f"[INFO] track log enabled: {track_logger.path}")
    return track_logger


def log_track_sample(
    track_logger: TrackLogger | None,
    frame_idx: int,
    now: float,
    dt: float,
    result: FrameResult,
) -> None:
    if track_logger is None:
        return

    fresh = result.detections is not None
    track_logger.log(
        frame_idx=frame_idx,
        t_sec=now,
        dt_sec=dt,
        mode=result.mode,
        track_ids=[t.track_id for t in result.tracks],
        n_detections=len(result.detections) if fresh else 0,
        fresh=fresh,
        inference_busy=result.inference_busy,
        inference_fps=result.inference_fps,
        inference_ms=result.inference_ms,
    )


def render_frame(
    frame,
    *,
    result: FrameResult,
    track_color_bgr: Tuple[int, int, int],
    history: TrackVizState,
    fps: float,
    win_name: str,
) -> int:
    """Draw overlays, show the frame and return the polled key code (-1 if none)."""
    if result.mode == "track":
        draw_tracks(frame, result.tracks, track_color=track_color_bgr, history=history)
        draw_mode(frame, f"MODE=TRACK ({len(result.tracks)} tracks)")
    else:
        draw_detections(frame, result.latest_detections)
        draw_mode(frame, f"MODE=DETECT ({len(result.latest_detections)} boxes)")

    draw_fps(frame, fps)
    draw_inference_status(frame, result.inference_fps, result.inference_ms, busy=result.inference_busy)

    cv2.imshow(win_name, frame)
    key = cv2.waitKey(1)
    return -1 if key < 0 else key & 0xFF


def close_track_logger(track_logger: TrackLogger | None) -> None:
    if track_logger is None:
        return
    try:
        track_logger.close()
        print(f"[INFO] track log saved: {track_logger.path} ({track_logger.summary_text()})")
    except Exception as e:
        print(f"[WARN] track logger close failed: {e}")


def close_pipeline(pipeline: AsyncDetectionPipeline | None, timeout: float) -> None:
    if pipeline is None:
        return
    if pipeline.close(timeout=timeout):
        print("[INFO] inference worker stopped")
