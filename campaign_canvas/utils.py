from __future__ import annotations

import logging
import re
from typing import Tuple

from PIL import ImageColor


RGBA = Tuple[int, int, int, int]


# ---------------------------------------------------------------------------
# General helpers
# ---------------------------------------------------------------------------


def slugify(text: str) -> str:
    """
    Convert an arbitrary string into a simple filesystem and id friendly slug.

    - Lowercases the input.
    - Keeps only alphanumeric characters and simple separators.
    - Collapses whitespace and punctuation into hyphens.
    - Returns "item" if everything is stripped away.
    """
    text = text.strip().lower()
    out_chars = []
    for ch in text:
        if ch.isalnum():
            out_chars.append(ch)
        elif ch in (" ", "-", "_"):
            out_chars.append("-")
    result = "".join(out_chars).strip("-")
    return result or "item"


# ---------------------------------------------------------------------------
# Colors
# ---------------------------------------------------------------------------

_RGBA_FUNC = re.compile(
    r"^rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+%?)\s*)?\)$",
    re.IGNORECASE,
)


def parse_color(value: str | None, default: RGBA = (0, 0, 0, 255)) -> RGBA:
    """Convert a CSS-style color string to an (r, g, b, a) tuple.

    Accepts #rgb, #rrggbb, #rrggbbaa, rgb()/rgba() with a 0-1 (or percent)
    alpha, and named colors. Falls back to ``default`` if parsing fails.
    """
    if not value:
        return default
    s = value.strip()

    match = _RGBA_FUNC.match(s)
    if match:
        r, g, b = (max(0, min(255, int(float(c)))) for c in match.group(1, 2, 3))
        alpha_raw = match.group(4)
        if alpha_raw is None:
            alpha = 1.0
        elif alpha_raw.endswith("%"):
            alpha = float(alpha_raw[:-1]) / 100.0
        else:
            alpha = float(alpha_raw)
        return (r, g, b, int(round(max(0.0, min(1.0, alpha)) * 255)))

    try:
        rgb = ImageColor.getrgb(s)
    except ValueError:
        logging.debug("Unparseable color %r; using default.", value)
        return default
    if len(rgb) == 3:
        return (rgb[0], rgb[1], rgb[2], 255)
    return (rgb[0], rgb[1], rgb[2], rgb[3])


def with_alpha(color: RGBA, alpha: float) -> RGBA:
    """Scale a color's own alpha channel by ``alpha`` (0-1)."""
    return (color[0], color[1], color[2], int(round(color[3] * max(0.0, min(1.0, alpha)))))


def luma(r: float, g: float, b: float) -> float:
    """Perceived brightness on a 0-255 scale (ITU-R 601 weights)."""
    return 0.299 * r + 0.587 * g + 0.114 * b


def color_luma(value: str | None) -> float:
    r, g, b, _ = parse_color(value, default=(255, 255, 255, 255))
    return luma(r, g, b)


def contrasting_shadow(font_color: str | None) -> str:
    """Dark shadow behind light text, light shadow behind dark text."""
    if color_luma(font_color) > 128:
        return "rgba(0,0,0,0.5)"
    return "rgba(255,255,255,0.5)"


# ---------------------------------------------------------------------------
# Image fitting / cover logic
# ---------------------------------------------------------------------------


def _compute_cover_scale(
        src_size: Tuple[int, int],
        dst_size: Tuple[int, int],
) -> float:
    sw, sh = src_size
    dw, dh = dst_size
    return max(dw / sw, dh / sh)


def cover_fit_box(
        src_size: Tuple[int, int],
        dst_size: Tuple[int, int],
) -> Tuple[float, float, float, float]:
    """
    Placement (x, y, width, height) that scales ``src_size`` to fully cover
    ``dst_size`` while preserving aspect ratio.

    The axis with the larger scale ratio wins; the image is centered on the
    other axis, so the overflow is cropped evenly from both sides.
    """
    sw, sh = src_size
    if sw <= 0 or sh <= 0:
        raise ValueError(f"Cannot cover-fit an empty image of size {src_size}")
    dw, dh = dst_size
    scale = _compute_cover_scale(src_size, dst_size)
    new_w = sw * scale
    new_h = sh * scale
    return ((dw - new_w) / 2.0, (dh - new_h) / 2.0, new_w, new_h)
