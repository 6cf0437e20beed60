from __future__ import annotations

import os
from typing import Any, Dict

import cv2


def _prefer_v4l2_backend(device: Any) -> bool:
    if isinstance(device, int):
        return True
    if isinstance(device, str) and device.startswith("/dev/video"):
        return True
    return False


def _is_video_file(device: Any) -> bool:
    return isinstance(device, str) and not device.startswith("/dev/") and os.path.isfile(device)


def _open_capture(device: Any) -> cv2.VideoCapture:
    """Prefer V4L2 for Linux camera devices, then fall back to default backend."""
    if _prefer_v4l2_backend(device):
        cap = cv2.VideoCapture(device, cv2.CAP_V4L2)
        if cap.isOpened():
            return cap
        cap.release()
    cap = cv2.VideoCapture(device)
    if cap.isOpened():
        return cap
    raise RuntimeError(f"Failed to open camera: {device}")


def _fourcc_to_str(v: float) -> str:
    iv = int(v)
    if iv <= 0:
        return "N/A"
    return "".join(chr((iv >> (8 * i)) & 0xFF) for i in range(4))


def setup_camera(device: Any, capture_cfg: Dict[str, Any]) -> cv2.VideoCapture:
    """Open a camera (or a video file) and request the configured format."""
    cap = _open_capture(device)

    if _is_video_file(device):
        n_frames = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
        print(
            f"[INFO] video open: {device} "
            f"{int(cap.get(cv2.CAP_PROP_FRAME_WIDTH))}x{int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT))} "
            f"@{cap.get(cv2.CAP_PROP_FPS):.1f} frames={n_frames}"
        )
        return cap

    fourcc = str(capture_cfg.get("fourcc", "MJPG"))
    width = int(capture_cfg.get("width", 640))
    height = int(capture_cfg.get("height", 480))
    fps = int(capture_cfg.get("fps", 30))

    try:
        cap.set(cv2.CAP_PROP_FOURCC, cv2.VideoWriter_fourcc(*fourcc))
    except Exception:
        print(f"[WARN] camera rejected fourcc {fourcc}")
    cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
    cap.set(cv2.CAP_PROP_FPS, fps)

    try:
        backend = cap.getBackendName()
    except Exception:
        backend = "UNKNOWN"
    actual_fourcc = _fourcc_to_str(cap.get(cv2.CAP_PROP_FOURCC))
    actual_w = cap.get(cv2.CAP_PROP_FRAME_WIDTH)
    actual_h = cap.get(cv2.CAP_PROP_FRAME_HEIGHT)
    actual_fps = cap.get(cv2.CAP_PROP_FPS)
    print(
        "[INFO] camera open: "
        f"backend={backend} requested={width}x{height}@{fps} {fourcc} "
        f"actual={int(actual_w)}x{int(actual_h)}@{actual_fps:.1f} {actual_fourcc}"
    )
    if actual_fps > 0 and actual_fps < fps * 0.5:
        print(
            "[WARN] camera negotiated low fps. "
            "Check backend and pixel format (e.g. MJPG vs YUYV)."
        )
    return cap
