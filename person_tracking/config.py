from __future__ import annotations

from typing import Any, Dict
import json
from pathlib import Path


def _deep_update(dst: Dict[str, Any], src: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge src into dst (in place) and return dst."""
    for k, v in src.items():
        if isinstance(v, dict) and isinstance(dst.get(k), dict):
            _deep_update(dst[k], v)
        else:
            dst[k] = v
    return dst


def load_config(path: str | Path | None) -> Dict[str, Any]:
    """Load config from YAML or JSON.

    - YAML requires PyYAML (`pip install pyyaml`)
    - JSON works with standard library.

    If path is None, returns an empty dict (caller merges defaults).
    """
    if path is None:
        return {}

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")

    suffix = p.suffix.lower()
    if suffix in (".yaml", ".yml"):
        try:
            import yaml  # type: ignore
        except Exception as e:
            raise RuntimeError(
                "YAML config requires PyYAML. Install with `pip install pyyaml` "
            ) from e
        with p.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    elif suffix == ".json":
        with p.open("r", encoding="utf-8") as f:
            data = json.load(f)
    else:
        raise ValueError(f"Unsupported config extension: {p.suffix}")

    if not isinstance(data, dict):
        raise ValueError("Config root must be a mapping/object.")
    return data


def build_effective_config(defaults: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return merged config = defaults <- override."""
    merged = json.loads(json.dumps(defaults))  # deep copy via json
    _deep_update(merged, override)
    return merged


def parse_size(value: Any) -> tuple[int, int]:
    """Accept 416, [416, 416] or '416x416'; return (width, height)."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid size value: {value!r}")
    if isinstance(value, int):
        w = h = value
    elif isinstance(value, (tuple, list)) and len(value) == 2:
        w, h = int(value[0]), int(value[1])
    elif isinstance(value, str) and "x" in value.lower():
        w_s, h_s = value.strip().lower().split("x", 1)
        w, h = int(w_s), int(h_s)
    else:
        raise ValueError(f"Invalid size value: {value!r} (expected like 416, [416, 416] or '416x416')")
    if w <= 0 or h <= 0:
        raise ValueError(f"Size must be positive: got {w}x{h}")
    return w, h


def unit_interval(value: Any, *, field_name: str) -> float:
    v = float(value)
    if not 0.0 <= v <= 1.0:
        raise ValueError(f"{field_name} must be within [0, 1]: got {value!r}")
    return v
