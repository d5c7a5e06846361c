from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from PIL import ImageColor

from WrapDimensions import DEFAULT_SIZE, PRODUCT_SIZES
from paths import get_app_root, get_user_config_dir

logger = logging.getLogger(__name__)

# ----------------------------
# settings.json (robust + validation)
# ----------------------------

_SETTINGS_DEFAULT = {
    "version": 1,
    "dpi": {
        "preview": 72,
        "export": 300,
    },
    "wrap": {
        "border_width_inches": 0.75,
        "border_color": "#000000",
        "blur_radius": 7.0,
        "default_size": DEFAULT_SIZE,
    },
    "preview": {
        "debounce_ms": 300,
        "background": "#ffffff",
        "guide_color": "white",
        "label_color": "black",
    },
}

BORDER_WIDTH_MIN_IN = 0.1
BORDER_WIDTH_MAX_IN = 3.0


@dataclass(frozen=True)
class WrapSettings:
    preview_dpi: int = 72
    export_dpi: int = 300
    border_width_inches: float = 0.75
    border_color: str = "#000000"
    blur_radius: float = 7.0
    default_size: str = DEFAULT_SIZE
    debounce_ms: int = 300
    background: str = "#ffffff"
    guide_color: str = "white"
    label_color: str = "black"


def _deep_merge(a, b):
    if not isinstance(a, dict) or not isinstance(b, dict):
        return b
    out = dict(a)
    for k, v in b.items():
        if k in out and isinstance(out.get(k), dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _read_json(path: Path):
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        logger.warning("settings file %s unreadable, using defaults: %s", path, e)
        return None


def _validate_enum(v, allowed, default=None):
    if isinstance(v, str) and v in allowed:
        return v
    return default


def _validate_int(v, lo=None, hi=None, default=None):
    try:
        iv = int(v)
    except (TypeError, ValueError):
        return default
    if lo is not None and iv < lo:
        return default
    if hi is not None and iv > hi:
        return default
    return iv


def _validate_float(v, lo=None, hi=None, default=None):
    try:
        fv = float(v)
    except (TypeError, ValueError):
        return default
    if lo is not None and fv < lo:
        return default
    if hi is not None and fv > hi:
        return default
    return fv


def _validate_color(v, default):
    if not isinstance(v, str):
        return default
    try:
        ImageColor.getrgb(v)
    except ValueError:
        return default
    return v


def _env_int(name: str, lo: int, hi: int) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None:
        return None
    try:
        v = int(raw)
    except ValueError:
        logger.warning("ignoring %s=%r (not an int)", name, raw)
        return None
    return max(lo, min(v, hi))


def _validate_settings(raw: dict) -> WrapSettings:
    s = _deep_merge(_SETTINGS_DEFAULT, raw if isinstance(raw, dict) else {})
    d = WrapSettings()

    dpi = s.get("dpi") or {}
    wrap = s.get("wrap") or {}
    prev = s.get("preview") or {}

    return WrapSettings(
        preview_dpi=_validate_int(dpi.get("preview"), 18, 600, d.preview_dpi),
        export_dpi=_validate_int(dpi.get("export"), 72, 1200, d.export_dpi),
        border_width_inches=_validate_float(
            wrap.get("border_width_inches"), BORDER_WIDTH_MIN_IN, BORDER_WIDTH_MAX_IN, d.border_width_inches
        ),
        border_color=_validate_color(wrap.get("border_color"), d.border_color),
        blur_radius=_validate_float(wrap.get("blur_radius"), 0.0, 100.0, d.blur_radius),
        default_size=_validate_enum(wrap.get("default_size"), set(PRODUCT_SIZES), d.default_size),
        debounce_ms=_validate_int(prev.get("debounce_ms"), 0, 5000, d.debounce_ms),
        background=_validate_color(prev.get("background"), d.background),
        guide_color=_validate_color(prev.get("guide_color"), d.guide_color),
        label_color=_validate_color(prev.get("label_color"), d.label_color),
    )


def _apply_env_overrides(s: WrapSettings) -> WrapSettings:
    # WRAP_PREVIEW_DPI / WRAP_EXPORT_DPI / WRAP_DEBOUNCE_MS (clamped)
    changes = {}
    v = _env_int("WRAP_PREVIEW_DPI", 18, 600)
    if v is not None:
        changes["preview_dpi"] = v
    v = _env_int("WRAP_EXPORT_DPI", 72, 1200)
    if v is not None:
        changes["export_dpi"] = v
    v = _env_int("WRAP_DEBOUNCE_MS", 0, 5000)
    if v is not None:
        changes["debounce_ms"] = v
    return replace(s, **changes) if changes else s


def _settings_path_candidates():
    yield get_app_root() / "settings.json"
    yield get_user_config_dir() / "settings.json"


def load_settings(path: Optional[Path] = None) -> WrapSettings:
    """
    Loads settings.json (explicit path, else beside the app, else user config
    dir), validates every key and applies environment overrides. Missing or
    invalid values fall back to defaults.
    """
    raw = None
    if path is not None:
        raw = _read_json(Path(path))
    else:
        for candidate in _settings_path_candidates():
            raw = _read_json(candidate)
            if raw is not None:
                logger.debug("settings loaded from %s", candidate)
                break

    return _apply_env_overrides(_validate_settings(raw or {}))
