from __future__ import annotations

"""
An RGBA drawing surface with scoped drawing state.

Everything that gets drawn (text, shapes, images) is first rendered onto a
transparent layer the size of the canvas and then committed with
``Canvas.composite``. The commit applies the current state: a global alpha
and an optional drop shadow derived from the layer's own alpha channel.

State is only ever changed through ``Canvas.scoped``; leaving the ``with``
block restores the previous state, so a shadow or alpha set for one element
cannot bleed into the next one.
"""

import base64
import math
from contextlib import contextmanager
from dataclasses import dataclass, replace
from io import BytesIO
from typing import Iterator, List, Optional, Sequence, Tuple

from PIL import Image, ImageChops, ImageDraw, ImageFilter

from .exceptions import CanvasUnavailableError
from .utils import RGBA, parse_color


@dataclass(frozen=True)
class Shadow:
    color: str = "rgba(0,0,0,0.5)"
    blur: float = 4.0
    offset_x: float = 0.0
    offset_y: float = 0.0


@dataclass(frozen=True)
class DrawState:
    alpha: float = 1.0
    shadow: Optional[Shadow] = None


def linear_gradient(
        size: Tuple[int, int],
        stops: Sequence[Tuple[float, RGBA]],
        start: Tuple[float, float],
        end: Tuple[float, float],
) -> Image.Image:
    """
    Render a linear gradient image of ``size`` between two points.

    ``stops`` are (offset 0-1, color) pairs in ascending offset order. Pixels
    are colored by their projection onto the start→end axis, like a CSS or
    canvas linear gradient.
    """
    w, h = max(1, int(size[0])), max(1, int(size[1]))
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length_sq = dx * dx + dy * dy

    # A 256-step ramp is enough for 8-bit channels; pixels index into it.
    ramp: List[RGBA] = []
    for i in range(256):
        t = i / 255.0
        ramp.append(_color_at(stops, t))

    if length_sq == 0:
        return Image.new("RGBA", (w, h), ramp[-1])

    # Project every pixel on the gradient axis and map to a ramp index.
    index = Image.new("L", (w, h))
    if dx == 0 or dy == 0:
        # Axis-aligned: compute one row/column and stretch it.
        if dy == 0:
            strip = Image.new("L", (w, 1))
            strip.putdata([_ramp_index(x + 0.5, 0.5, start, dx, dy, length_sq) for x in range(w)])
            index = strip.resize((w, h), Image.NEAREST)
        else:
            strip = Image.new("L", (1, h))
            strip.putdata([_ramp_index(0.5, y + 0.5, start, dx, dy, length_sq) for y in range(h)])
            index = strip.resize((w, h), Image.NEAREST)
    else:
        index.putdata([
            _ramp_index(x + 0.5, y + 0.5, start, dx, dy, length_sq)
            for y in range(h)
            for x in range(w)
        ])

    channels = []
    for c in range(4):
        lut = [ramp[i][c] for i in range(256)]
        channels.append(index.point(lut))
    return Image.merge("RGBA", channels)


def angle_endpoints(box: Tuple[float, float, float, float], angle_deg: float) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    """
    Start and end points of a gradient at ``angle_deg`` across ``box``.

    0 degrees runs left to right, 90 degrees top to bottom. The axis passes
    through the box center and is long enough to reach its corners.
    """
    x0, y0, x1, y1 = box
    cx, cy = (x0 + x1) / 2.0, (y0 + y1) / 2.0
    rad = math.radians(angle_deg)
    ux, uy = math.cos(rad), math.sin(rad)
    half = (abs((x1 - x0) * ux) + abs((y1 - y0) * uy)) / 2.0
    return (cx - ux * half, cy - uy * half), (cx + ux * half, cy + uy * half)


def _ramp_index(px: float, py: float, start: Tuple[float, float], dx: float, dy: float, length_sq: float) -> int:
    t = ((px - start[0]) * dx + (py - start[1]) * dy) / length_sq
    return int(round(max(0.0, min(1.0, t)) * 255))


def _color_at(stops: Sequence[Tuple[float, RGBA]], t: float) -> RGBA:
    if t <= stops[0][0]:
        return stops[0][1]
    for (o0, c0), (o1, c1) in zip(stops, stops[1:]):
        if t <= o1:
            span = (o1 - o0) or 1.0
            k = (t - o0) / span
            return tuple(int(round(a + (b - a) * k)) for a, b in zip(c0, c1))  # type: ignore[return-value]
    return stops[-1][1]


class Canvas:
    """In-memory RGBA drawing surface used by the renderer."""

    def __init__(self, width: int, height: int):
        width, height = int(width), int(height)
        if width <= 0 or height <= 0:
            raise CanvasUnavailableError(f"Cannot create a {width}x{height} canvas")
        self.width = width
        self.height = height
        self.image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        self._states: List[DrawState] = [DrawState()]

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> DrawState:
        return self._states[-1]

    @contextmanager
    def scoped(self, alpha: Optional[float] = None, shadow: Optional[Shadow] = None,
               clear_shadow: bool = False) -> Iterator["Canvas"]:
        """
        Push a drawing state for the duration of a ``with`` block.

        ``alpha`` multiplies the enclosing alpha. ``shadow`` replaces the
        enclosing shadow and ``clear_shadow`` removes it.
        """
        current = self.state
        new = current
        if alpha is not None:
            new = replace(new, alpha=current.alpha * max(0.0, min(1.0, alpha)))
        if shadow is not None:
            new = replace(new, shadow=shadow)
        elif clear_shadow:
            new = replace(new, shadow=None)
        self._states.append(new)
        try:
            yield self
        finally:
            self._states.pop()

    # ------------------------------------------------------------------
    # Layers
    # ------------------------------------------------------------------

    def new_layer(self) -> Image.Image:
        return Image.new("RGBA", (self.width, self.height), (0, 0, 0, 0))

    def composite(self, layer: Image.Image) -> None:
        """Commit a canvas-sized RGBA layer using the current state."""
        state = self.state
        if state.alpha < 1.0:
            r, g, b, a = layer.split()
            a = a.point(lambda v: int(round(v * state.alpha)))
            layer = Image.merge("RGBA", (r, g, b, a))

        if state.shadow is not None:
            self.image.alpha_composite(self._shadow_for(layer, state.shadow))
        self.image.alpha_composite(layer)

    def _shadow_for(self, layer: Image.Image, shadow: Shadow) -> Image.Image:
        r, g, b, a = parse_color(shadow.color)
        mask = layer.getchannel("A")
        if a < 255:
            mask = mask.point(lambda v: v * a // 255)

        dx, dy = int(round(shadow.offset_x)), int(round(shadow.offset_y))
        if dx or dy:
            mask = ImageChops.offset(mask, dx, dy)
            # ImageChops.offset wraps around; blank the wrapped band.
            blank = ImageDraw.Draw(mask)
            if dx > 0:
                blank.rectangle((0, 0, dx - 1, self.height), fill=0)
            elif dx < 0:
                blank.rectangle((self.width + dx, 0, self.width, self.height), fill=0)
            if dy > 0:
                blank.rectangle((0, 0, self.width, dy - 1), fill=0)
            elif dy < 0:
                blank.rectangle((0, self.height + dy, self.width, self.height), fill=0)

        if shadow.blur > 0:
            # Canvas shadowBlur is roughly twice the gaussian sigma.
            mask = mask.filter(ImageFilter.GaussianBlur(shadow.blur / 2.0))

        shadow_layer = Image.new("RGBA", layer.size, (r, g, b, 0))
        shadow_layer.putalpha(mask)
        return shadow_layer

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def clear(self) -> None:
        self.image = Image.new("RGBA", (self.width, self.height), (0, 0, 0, 0))

    def fill(self, color: str) -> None:
        layer = Image.new("RGBA", (self.width, self.height), parse_color(color))
        self.composite(layer)

    def fill_linear_gradient(
            self,
            stops: Sequence[Tuple[float, str]],
            start: Tuple[float, float],
            end: Tuple[float, float],
    ) -> None:
        parsed = [(offset, parse_color(color)) for offset, color in stops]
        self.composite(linear_gradient((self.width, self.height), parsed, start, end))

    def draw_image(self, image: Image.Image, x: float, y: float, width: float, height: float) -> None:
        """Draw ``image`` scaled into the (x, y, width, height) box, clipped to the canvas."""
        w, h = max(1, int(round(width))), max(1, int(round(height)))
        resized = image.convert("RGBA").resize((w, h), Image.LANCZOS)
        ix, iy = int(round(x)), int(round(y))
        if ix >= self.width or iy >= self.height or ix + w <= 0 or iy + h <= 0:
            return

        layer = self.new_layer()
        layer.alpha_composite(
            resized,
            dest=(max(0, ix), max(0, iy)),
            source=(max(0, -ix), max(0, -iy)),
        )
        self.composite(layer)

    def get_pixel(self, x: float, y: float) -> RGBA:
        px = max(0, min(self.width - 1, int(x)))
        py = max(0, min(self.height - 1, int(y)))
        return self.image.getpixel((px, py))  # type: ignore[return-value]

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def to_image(self, mode: str = "RGBA") -> Image.Image:
        return self.image.copy() if mode == "RGBA" else self.image.convert(mode)

    def to_data_uri(self, fmt: str = "PNG", quality: int = 80) -> str:
        buffer = BytesIO()
        fmt = fmt.upper()
        if fmt in ("JPEG", "JPG"):
            self.image.convert("RGB").save(buffer, format="JPEG", quality=quality)
            mime = "image/jpeg"
        else:
            self.image.save(buffer, format="PNG")
            mime = "image/png"
        return f"data:{mime};base64," + base64.b64encode(buffer.getvalue()).decode("ascii")
