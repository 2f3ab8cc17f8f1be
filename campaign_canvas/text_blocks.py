from __future__ import annotations

"""
Layout and drawing of the headline rows and the subheadline.

All sizes in the settings are authored for a 480 px wide canvas and are
multiplied by ``width / 480`` so a design looks the same at any output
size. Layout is computed first (``compute_text_layout``) and only then
drawn, which keeps the geometry testable without rendering pixels.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from PIL import ImageChops, ImageDraw

from .canvas import Canvas, Shadow, angle_endpoints, linear_gradient
from .models import Campaign, DesignSettings, LayoutDefaults, TextSettings
from .text_layout import (
    HEADLINE_CJK_LINE_HEIGHT,
    HEADLINE_LINE_HEIGHT,
    SUBHEADLINE_CJK_LINE_HEIGHT,
    FontType,
    TextMeasurer,
    get_cjk_adjusted_font_size,
    is_cjk_text,
    wrap_lines,
)
from .utils import contrasting_shadow, parse_color, with_alpha


REFERENCE_WIDTH = 480.0

# Horizontal inset of text from the canvas edges, as a fraction of width.
TEXT_PADDING_RATIO = 0.05

# Landscape canvases get wider top/bottom margins.
LANDSCAPE_ASPECT = 1.2


def base_scale_factor(canvas_width: float) -> float:
    return canvas_width / REFERENCE_WIDTH


def row_gap(line_spacing: float, scale: float) -> float:
    """Extra space between headline rows; negative for tight spacing."""
    return (line_spacing - 1.2) * 20 * scale


def calculate_y(vertical_position: str, block_height: float, width: float, height: float) -> float:
    """Top edge of a text block anchored at ``vertical_position``."""
    landscape = width / height > LANDSCAPE_ASPECT
    if vertical_position == "top":
        return max(0.05 * height, (0.12 if landscape else 0.10) * height)
    if vertical_position == "bottom":
        return min(
            (0.88 if landscape else 0.90) * height - block_height,
            height - block_height - 0.05 * height,
        )
    return (height - block_height) / 2.0


@dataclass
class TextBlock:
    """One wrapped block of text (a headline row or the subheadline)."""

    text: str
    settings: TextSettings
    lines: List[str]
    font: FontType
    font_size: float
    line_height: float
    letter_spacing: float
    cjk: bool
    line_widths: List[float] = field(default_factory=list)

    @property
    def height(self) -> float:
        return len(self.lines) * self.line_height

    @property
    def max_line_width(self) -> float:
        return max(self.line_widths, default=0.0)


@dataclass
class TextLayout:
    canvas_width: int
    canvas_height: int
    scale: float
    padding: float
    row_gap: float
    headline_rows: List[TextBlock]
    headline_y: float
    subheadline: Optional[TextBlock]
    subheadline_y: float

    @property
    def headline_height(self) -> float:
        if not self.headline_rows:
            return 0.0
        return sum(row.height for row in self.headline_rows) + (len(self.headline_rows) - 1) * self.row_gap

    def headline_row_positions(self) -> List[Tuple[TextBlock, float]]:
        positions = []
        y = self.headline_y
        for row in self.headline_rows:
            positions.append((row, y))
            y += row.height + self.row_gap
        return positions


def resolve_row_settings(
        rows: Sequence[TextSettings],
        index: int,
        defaults: LayoutDefaults,
) -> TextSettings:
    """Settings for headline row ``index``: its own, else the last row's, else the template row."""
    if index < len(rows):
        return rows[index]
    if rows:
        return rows[-1]
    return defaults.fallback_row


def layout_block(
        text: str,
        settings: TextSettings,
        max_width: float,
        scale: float,
        headline: bool,
) -> TextBlock:
    """Size, wrap and measure a block of text."""
    cjk = is_cjk_text(text)
    # Full-width glyphs need no extra tracking.
    spacing = 0.0 if cjk else settings.letter_spacing * scale
    family = settings.font_family

    font_size = get_cjk_adjusted_font_size(
        text,
        settings.font_size * scale,
        max_width,
        lambda size: TextMeasurer.for_family(family, size, cjk, spacing),
    )
    measure = TextMeasurer.for_family(family, font_size, cjk, spacing)
    lines = wrap_lines(measure, text, max_width)

    if headline:
        multiplier = HEADLINE_CJK_LINE_HEIGHT if cjk else HEADLINE_LINE_HEIGHT
    else:
        multiplier = SUBHEADLINE_CJK_LINE_HEIGHT if cjk else settings.line_spacing

    return TextBlock(
        text=text,
        settings=settings,
        lines=lines,
        font=measure.font,
        font_size=font_size,
        line_height=font_size * multiplier,
        letter_spacing=spacing,
        cjk=cjk,
        line_widths=[measure(line) for line in lines],
    )


def compute_text_layout(
        width: int,
        height: int,
        campaign: Campaign,
        design: DesignSettings,
        defaults: LayoutDefaults,
) -> TextLayout:
    """
    Position the headline rows and the subheadline on a ``width`` x ``height`` canvas.

    When both blocks target the same vertical position they are stacked:
    at the bottom the headline moves up above the subheadline, otherwise the
    subheadline moves down below the headline. The blocks are separated by
    twice the headline row gap, floored at zero so they never overlap.
    """
    scale = base_scale_factor(width)
    padding = width * TEXT_PADDING_RATIO
    max_width = width - 2 * padding
    gap = row_gap(design.headline.line_spacing, scale)

    rows = [
        layout_block(
            row_text,
            resolve_row_settings(design.headline.rows, i, defaults),
            max_width,
            scale,
            headline=True,
        )
        for i, row_text in enumerate(campaign.headline_rows())
    ]

    sub: Optional[TextBlock] = None
    if campaign.subheadline:
        sub = layout_block(campaign.subheadline, design.subheadline, max_width, scale, headline=False)

    layout = TextLayout(
        canvas_width=width,
        canvas_height=height,
        scale=scale,
        padding=padding,
        row_gap=gap,
        headline_rows=rows,
        headline_y=0.0,
        subheadline=sub,
        subheadline_y=0.0,
    )

    headline_pos = design.headline.vertical_position
    sub_pos = design.subheadline.vertical_position
    headline_h = layout.headline_height
    sub_h = sub.height if sub is not None else 0.0

    layout.headline_y = calculate_y(headline_pos, headline_h, width, height)
    layout.subheadline_y = calculate_y(sub_pos, sub_h, width, height)

    if rows and sub is not None and headline_pos == sub_pos:
        separation = 2 * max(gap, 0.0)
        if headline_pos == "bottom":
            layout.headline_y -= sub_h + separation
        else:
            layout.subheadline_y = layout.headline_y + headline_h + separation

    return layout


# ---------------------------------------------------------------------------
# Drawing
# ---------------------------------------------------------------------------


def _line_x(align: str, line_width: float, canvas_width: float, padding: float) -> float:
    if align == "right":
        return canvas_width - padding - line_width
    if align == "center":
        return (canvas_width - line_width) / 2.0
    return padding


def _draw_line(draw: ImageDraw.ImageDraw, x: float, y_mid: float, text: str,
               font: FontType, spacing: float, **kwargs) -> None:
    if not spacing:
        draw.text((x, y_mid), text, font=font, anchor="lm", **kwargs)
        return
    cursor = x
    for ch in text:
        draw.text((cursor, y_mid), ch, font=font, anchor="lm", **kwargs)
        cursor += font.getlength(ch) + spacing


def _block_shadow(settings: TextSettings, scale: float) -> Shadow:
    fill_color = settings.gradient_color1 if settings.use_gradient else settings.font_color
    color = settings.shadow_color or contrasting_shadow(fill_color)
    return Shadow(color=color, blur=settings.shadow_blur * scale, offset_x=0.0, offset_y=2 * scale)


def draw_text_block(canvas: Canvas, block: TextBlock, y: float, padding: float, scale: float) -> None:
    """
    Draw a wrapped block with its top edge at ``y``.

    The optional background box is committed first without a shadow, then
    the text (stroke under fill, solid or gradient) with its drop shadow.
    """
    if not block.lines:
        return
    s = block.settings
    width = canvas.width

    if s.use_background:
        pad = s.background_padding * scale
        box_w = block.max_line_width
        box_x = _line_x(s.text_align, box_w, width, padding)
        box = (box_x - pad, y - pad, box_x + box_w + pad, y + block.height + pad)
        layer = canvas.new_layer()
        fill = with_alpha(parse_color(s.background_color), s.background_opacity)
        ImageDraw.Draw(layer).rectangle(box, fill=fill)
        with canvas.scoped(clear_shadow=True):
            canvas.composite(layer)

    stroke_width = int(round(s.stroke_width * scale)) if s.stroke_color else 0
    layer = canvas.new_layer()
    draw = ImageDraw.Draw(layer)
    placements = []
    for i, (line, line_w) in enumerate(zip(block.lines, block.line_widths)):
        if not line:
            continue
        x = _line_x(s.text_align, line_w, width, padding)
        y_mid = y + i * block.line_height + block.line_height / 2.0
        placements.append((line, line_w, x, y_mid))

    if stroke_width > 0:
        stroke = parse_color(s.stroke_color)
        for line, _, x, y_mid in placements:
            _draw_line(draw, x, y_mid, line, block.font, block.letter_spacing,
                       fill=stroke, stroke_width=stroke_width, stroke_fill=stroke)

    if s.use_gradient:
        stops = [(0.0, parse_color(s.gradient_color1)), (1.0, parse_color(s.gradient_color2))]
        for line, line_w, x, y_mid in placements:
            top = y_mid - block.line_height / 2.0
            box = (int(x), int(top), int(x + line_w) + 1, int(top + block.line_height) + 1)
            mask = canvas.new_layer().getchannel("A")
            _draw_line(ImageDraw.Draw(mask), x, y_mid, line, block.font, block.letter_spacing, fill=255)
            start, end = angle_endpoints((0, 0, box[2] - box[0], box[3] - box[1]), s.gradient_angle)
            ramp = linear_gradient((box[2] - box[0], box[3] - box[1]), stops, start, end)
            fill_layer = canvas.new_layer()
            fill_layer.paste(ramp, box[:2])
            # Clip to the line box so glyph overhang takes no unpainted color.
            fill_layer.putalpha(ImageChops.multiply(mask, fill_layer.getchannel("A")))
            layer.alpha_composite(fill_layer)
    else:
        color = parse_color(s.font_color)
        for line, _, x, y_mid in placements:
            _draw_line(draw, x, y_mid, line, block.font, block.letter_spacing, fill=color)

    with canvas.scoped(shadow=_block_shadow(s, scale)):
        canvas.composite(layer)


def draw_text_layout(canvas: Canvas, layout: TextLayout) -> None:
    """Draw every headline row, then the subheadline."""
    for row, y in layout.headline_row_positions():
        draw_text_block(canvas, row, y, layout.padding, layout.scale)
    if layout.subheadline is not None:
        draw_text_block(canvas, layout.subheadline, layout.subheadline_y, layout.padding, layout.scale)
