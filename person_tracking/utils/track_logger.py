from __future__ import annotations

import csv
import os
import time
from typing import Any, List, Sequence


def default_track_log_path(prefix_dir: str = "logs", basename_prefix: str = "track_log") -> str:
    """Return default CSV log path like `logs/track_log_YYYYmmdd_HHMMSS.csv`."""
    ts = time.strftime("%Y%m%d_%H%M%S")
    return os.path.join(prefix_dir, f"{basename_prefix}_{ts}.csv")


class TrackLogger:
    """Low-overhead CSV logger for per-frame tracking state.

    What it logs:
    - frame index, wall time and frame interval
    - active mode and the ids of the tracks reported for the frame
    - how many detections were consumed and whether they were fresh
    - inference worker state (busy flag, completions/s, last latency)

    Rows are buffered and flushed every `flush_every` frames.
    """

    def __init__(self, path: str, flush_every: int = 60) -> None:
        self.path = path
        self.flush_every = max(1, int(flush_every))
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)

        self._fp = open(path, "w", newline="", encoding="utf-8")
        self._wr = csv.writer(self._fp)
        self._wr.writerow(
            [
                "frame_idx",
                "t_sec",
                "dt_sec",
                "mode",
                "n_tracks",
                "track_ids",
                "n_detections",
                "fresh_detections",
                "inference_busy",
                "inference_fps",
                "inference_ms",
            ]
        )

        self._buf: List[List[Any]] = []
        self._frames = 0
        self._fresh = 0
        self._sum_tracks = 0
        self._max_track_id = -1

    def log(
        self,
        *,
        frame_idx: int,
        t_sec: float,
        dt_sec: float,
        mode: str,
        track_ids: Sequence[int],
        n_detections: int,
        fresh: bool,
        inference_busy: bool,
        inference_fps: float,
        inference_ms: float | None,
    ) -> None:
        ids = [int(t) for t in track_ids]
        self._frames += 1
        self._sum_tracks += len(ids)
        if fresh:
            self._fresh += 1
        if ids:
            self._max_track_id = max(self._max_track_id, max(ids))

        self._buf.append(
            [
                int(frame_idx),
                float(t_sec),
                float(dt_sec),
                str(mode),
                len(ids),
                " ".join(str(t) for t in ids),
                int(n_detections),
                int(bool(fresh)),
                int(bool(inference_busy)),
                round(float(inference_fps), 2),
                None if inference_ms is None else round(float(inference_ms), 2),
            ]
        )
        if len(self._buf) >= self.flush_every:
            self.flush()

    def flush(self) -> None:
        if not self._buf:
            return
        self._wr.writerows(self._buf)
        self._buf.clear()
        self._fp.flush()

    def close(self) -> None:
        try:
            self.flush()
        finally:
            self._fp.close()

    def summary_text(self) -> str:
        if self._frames <= 0:
            return "(no frames logged)"
        mean_tracks = self._sum_tracks / float(self._frames)
        fresh_ratio = self._fresh / float(self._frames)
        return (
            f"frames={self._frames}, mean_tracks={mean_tracks:.2f}, "
            f"fresh_detection_ratio={fresh_ratio:.3f}, ids_allocated={self._max_track_id + 1}"
        )
