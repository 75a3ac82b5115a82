"""Shared configuration for the server and client.

Values live in a JSON file (``configs/defaults.json`` unless another path is
loaded) and are read through dotted paths such as ``"client.control_hz"``.
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "configs" / "defaults.json"

_config_path: Path = DEFAULT_CONFIG_PATH
_CONFIG_DATA: Dict[str, Any] = {}
_loaded = False


def _read(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        print(f"[config] {path} not found; using built-in defaults")
        return {}
    except (OSError, ValueError) as e:
        print(f"[config] failed to read {path}: {e}; using built-in defaults")
        return {}
    if not isinstance(data, dict):
        print(f"[config] {path} must hold a JSON object; using built-in defaults")
        return {}
    return data


def load(path: Optional[str] = None) -> Dict[str, Any]:
    """Load (or reload) the configuration file and return its contents."""
    global _config_path, _CONFIG_DATA, _loaded
    if path:
        _config_path = Path(path)
    _CONFIG_DATA = _read(_config_path)
    _loaded = True
    return _CONFIG_DATA


def _ensure_loaded() -> None:
    if not _loaded:
        load()


def get(path: str, default: Any = None) -> Any:
    """Return a config value using dotted paths, or default when missing."""
    _ensure_loaded()
    if not path:
        return _CONFIG_DATA

    current: Any = _CONFIG_DATA
    for segment in path.split('.'):
        if isinstance(current, dict) and segment in current:
            current = current[segment]
        else:
            return default
    return current


def set_value(path: str, value: Any) -> None:
    """Override a single value in memory (used for CLI flags)."""
    _ensure_loaded()
    segments = path.split('.')
    current = _CONFIG_DATA
    for segment in segments[:-1]:
        nxt = current.get(segment)
        if not isinstance(nxt, dict):
            nxt = {}
            current[segment] = nxt
        current = nxt
    current[segments[-1]] = value


def get_float(path: str, default: float) -> float:
    value = get(path, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        print(f"[config] {path}={value!r} is not a number; using {default}")
        return float(default)


def allowed_origins() -> Optional[List[Optional[str]]]:
    """Origins accepted by the websocket handshake.

    ``ALLOWED_ORIGINS`` (comma separated) wins over ``server.allowed_origins``.
    ``None`` means unrestricted. An empty string or null entry admits clients
    that send no Origin header (native clients such as ``client.py``).
    """
    env = os.environ.get("ALLOWED_ORIGINS")
    if env is not None:
        raw: Any = [o.strip() for o in env.split(",")]
    else:
        raw = get("server.allowed_origins")
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = [raw]
    origins: List[Optional[str]] = []
    for origin in raw:
        origins.append(origin if origin else None)
    return origins or None
