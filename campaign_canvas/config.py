from __future__ import annotations

"""
Runtime configuration read from the environment.

Values are resolved once at import time. Tests and callers that need other
values pass them explicitly to the functions that use them.
"""

import os
from pathlib import Path
from typing import Optional


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# Seconds allowed for a background image or video frame to load.
MEDIA_LOAD_TIMEOUT_S: float = _float_env("CAMPAIGN_CANVAS_MEDIA_TIMEOUT", 15.0)

# Each CTA icon gets its own fixed budget; an expired icon is dropped.
ICON_LOAD_TIMEOUT_S: float = 5.0

THUMBNAIL_WIDTH: int = int(_float_env("CAMPAIGN_CANVAS_THUMBNAIL_WIDTH", 400))

# Width the grid analyzer downsamples to before measuring variance.
ANALYSIS_WIDTH: int = 150

GEMINI_VISION_MODEL: str = os.environ.get("GEMINI_VISION_MODEL", "gemini-2.5-pro")


def fonts_dir() -> Optional[Path]:
    """Optional extra directory searched for .ttf/.otf font files."""
    raw = os.environ.get("CAMPAIGN_CANVAS_FONTS_DIR")
    return Path(raw) if raw else None


def gemini_api_key() -> Optional[str]:
    return os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
