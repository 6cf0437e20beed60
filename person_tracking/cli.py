from __future__ import annotations

import argparse
import os
import time
from typing import Any, Dict

import cv2

from .camera.capture import setup_camera
from .config import build_effective_config, load_config, unit_interval
from .defaults import DEFAULTS
from .pipeline import (
    AsyncDetectionPipeline,
    build_decoder_config,
    build_detector,
    build_registry,
    normalize_device_arg,
)
from .runtime import (
    close_pipeline,
    close_track_logger,
    create_track_logger,
    log_track_sample,
    render_frame,
)
from .ui.draw import TrackVizState


def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Real-time person detection and correlation tracking")
    ap.add_argument("-n", "--no-display", action="store_true", help="run headless (no window, no key handling)")
    ap.add_argument("-d", "--device", default=None, help="capture device index/path or a video file (e.g. 0, /dev/video0, clip.mp4)")
    ap.add_argument("-m", "--model", default=None, help="ONNX YOLO model path")
    ap.add_argument("--detect-only", action="store_true", help="start in detect-only mode (no tracking)")
    ap.add_argument("--tracker", default=None, help="correlation tracker backend (mosse|kcf|csrt|mil)")
    ap.add_argument("--conf", default=None, type=float, help="detection confidence threshold [0, 1]")
    ap.add_argument("--max-frames", default=None, type=int, help="stop after this many frames")
    ap.add_argument("-l", "--log", action="store_true", help="record per-frame tracking state to CSV")
    ap.add_argument("--log-path", default=None, help="CSV output path (default logs/track_log_YYYYmmdd_HHMMSS.csv)")
    ap.add_argument("--log-flush-every", default=None, type=int, help="flush the CSV every N frames (default 60)")
    ap.add_argument("--config", default="config/default.yaml", help="config file (YAML/JSON)")
    return ap.parse_args(argv)


def _apply_cli_overrides(cfg: Dict[str, Any], args: argparse.Namespace) -> None:
    if args.device is not None:
        cfg["camera"]["device"] = args.device
    if args.model is not None:
        cfg["model"]["path"] = str(args.model)
    if args.tracker is not None:
        cfg["tracking"]["backend"] = str(args.tracker)
    if args.conf is not None:
        cfg["detection"]["confidence_threshold"] = unit_interval(args.conf, field_name="--conf")

    cfg["tracking"]["enabled"] = bool(cfg["tracking"].get("enabled", True)) and not args.detect_only
    cfg["logging"]["enabled"] = bool(args.log or cfg.get("logging", {}).get("enabled", False))

    if args.log_path is not None:
        cfg["logging"]["path"] = str(args.log_path)
    if args.log_flush_every is not None:
        cfg["logging"]["flush_every"] = int(args.log_flush_every)

    timeout = float(cfg["pipeline"].get("shutdown_timeout_sec", 5.0))
    if timeout <= 0.0:
        raise ValueError(f"pipeline.shutdown_timeout_sec must be > 0: got {timeout!r}")
    cfg["pipeline"]["shutdown_timeout_sec"] = timeout


def main(argv=None) -> int:
    args = parse_args(argv)

    try:
        override = load_config(args.config) if args.config else {}
        cfg = build_effective_config(DEFAULTS, override)
        _apply_cli_overrides(cfg, args)
        decoder_cfg = build_decoder_config(cfg["model"], cfg["detection"])
        registry = build_registry(cfg["tracking"])
        detector = build_detector(cfg["model"], decoder_cfg)
    except (FileNotFoundError, ValueError, RuntimeError) as e:
        print(f"[ERROR] {e}")
        return 2

    print(
        "[INFO] detector ready: "
        f"model={cfg['model']['path']} input={decoder_cfg.input_width}x{decoder_cfg.input_height} "
        f"conf={decoder_cfg.confidence_threshold:.2f} nms={decoder_cfg.nms_threshold:.2f} "
        f"target={cfg['detection'].get('target_class')}"
    )

    do_display = not bool(args.no_display)
    device = normalize_device_arg(cfg["camera"]["device"])
    from_file = isinstance(device, str) and os.path.isfile(device)
    try:
        cap = setup_camera(device, cfg["camera"]["capture"])
    except RuntimeError as e:
        print(f"[ERROR] {e}")
        return 2

    win_name = str(cfg["ui"]["window_name"])
    if do_display:
        cv2.namedWindow(win_name, cv2.WINDOW_NORMAL)

    track_color = tuple(int(x) for x in cfg["tracking"]["color_bgr"])
    viz = TrackVizState(history_len=int(cfg["tracking"]["history_len"]))
    shutdown_timeout = float(cfg["pipeline"]["shutdown_timeout_sec"])
    track_logger = None
    pipeline = None

    try:
        track_logger = create_track_logger(cfg.get("logging", {}))
        pipeline = AsyncDetectionPipeline(
            detector.detect,
            registry,
            mode="track" if cfg["tracking"]["enabled"] else "detect",
            fps_window_sec=float(cfg["pipeline"].get("fps_window_sec", 1.0)),
        )
        print(f"[INFO] pipeline started: mode={pipeline.mode} tracker={cfg['tracking']['backend']}")

        last_t = time.time()
        fps = 0.0
        alpha = float(cfg["ui"].get("fps_ema_alpha", 0.2))
        frame_idx = 0
        toggle_requested = False

        while True:
            ret, frame = cap.read()
            if not ret:
                if from_file:
                    print("[INFO] end of video")
                    break
                continue

            # mode switches seed the registry, so they use the next clean frame
            if toggle_requested:
                toggle_requested = False
                next_mode = "detect" if pipeline.mode == "track" else "track"
                pipeline.set_mode(next_mode, frame)
                print(f"[INFO] mode switched: {next_mode}")

            frame_idx += 1

            now = time.time()
            dt = max(1e-6, now - last_t)
            last_t = now
            inst_fps = 1.0 / dt
            fps = alpha * inst_fps + (1.0 - alpha) * fps

            frame_result = pipeline.process_frame(frame)

            log_track_sample(
                track_logger=track_logger,
                frame_idx=frame_idx,
                now=now,
                dt=dt,
                result=frame_result,
            )

            if do_display:
                key = render_frame(
                    frame,
                    result=frame_result,
                    track_color_bgr=track_color,
                    history=viz,
                    fps=fps,
                    win_name=win_name,
                )
                if key == ord("q"):
                    break
                if key == ord("m"):
                    toggle_requested = True

            if args.max_frames is not None and frame_idx >= args.max_frames:
                break

    finally:
        close_pipeline(pipeline, timeout=shutdown_timeout)
        close_track_logger(track_logger)
        cap.release()
        if do_display:
            cv2.destroyAllWindows()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
