from __future__ import annotations

"""
Composite renderer: draws one campaign image onto a ``Canvas``.

The steps run in a fixed order because later steps read what earlier ones
drew (the CTA auto-contrast samples the finished composite under the
button):

    background -> vignette -> logo -> watermark -> headline rows
    -> subheadline -> CTA button

Any failure while rendering is turned into a red "Error loading image"
placeholder; ``render_campaign_image`` never raises for a bad image.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, ImageDraw

from .canvas import Canvas, Shadow, angle_endpoints, linear_gradient
from .media import LoadedIcon, load_icons, load_image, load_media
from .merge import effective_design, reconcile_headline_rows
from .exceptions import MediaLoadError
from .models import (
    DEFAULT_LAYOUT,
    BrandAssets,
    Campaign,
    CampaignImage,
    CTAButton,
    DesignSettings,
    LayoutDefaults,
    UserPlan,
)
from .text_blocks import base_scale_factor, compute_text_layout, draw_text_layout
from .text_layout import load_font
from .utils import cover_fit_box, luma, parse_color


VIGNETTE_STOPS = (
    (0.0, "rgba(0,0,0,0.5)"),
    (0.5, "rgba(0,0,0,0)"),
    (1.0, "rgba(0,0,0,0.6)"),
)

LOGO_MARGIN_RATIO = 0.04

WATERMARK_TEXT = "Made with AI Magic Box"
WATERMARK_ALPHA = 0.15

ERROR_FILL = "#DC2626"
ERROR_TEXT = "Error loading image"

CTA_ICON_HEIGHT = 20
CTA_ICON_GAP = 8
CTA_MARGIN_RATIO = 0.08
CTA_FONT_FAMILY = "Inter"


@dataclass(frozen=True)
class CTAPalette:
    background_color: str
    gradient_color1: str
    gradient_color2: str
    text_color: str


# Used when the area under the button is light.
DARK_CTA_PALETTE = CTAPalette("#1F2937", "#1F2937", "#111827", "#FFFFFF")
# Used when the area under the button is dark.
LIGHT_CTA_PALETTE = CTAPalette("#FFFFFF", "#FFFFFF", "#E5E7EB", "#111827")


# ---------------------------------------------------------------------------
# Geometry helpers
# ---------------------------------------------------------------------------


def logo_box(
        logo_size: Tuple[int, int],
        canvas_size: Tuple[int, int],
        size_percent: float,
        position: str,
) -> Tuple[float, float, float, float]:
    """
    (x, y, width, height) of the logo on the canvas.

    The width is an eighth of the canvas width scaled by ``size_percent``;
    the height follows the logo's natural aspect ratio.
    """
    cw, ch = canvas_size
    nat_w, nat_h = logo_size
    w = (cw / 8.0) * (size_percent / 100.0)
    h = w * nat_h / nat_w
    margin = cw * LOGO_MARGIN_RATIO

    if position == "top-left":
        return (margin, margin, w, h)
    if position == "bottom-left":
        return (margin, ch - h - margin, w, h)
    if position == "bottom-right":
        return (cw - w - margin, ch - h - margin, w, h)
    if position == "bottom-center":
        return ((cw - w) / 2.0, ch - h - margin, w, h)
    if position == "center":
        return ((cw - w) / 2.0, (ch - h) / 2.0, w, h)
    return (cw - w - margin, margin, w, h)


def cta_palette(sample: Tuple[int, int, int, int]) -> CTAPalette:
    """Pick the button palette that contrasts with the sampled pixel."""
    return DARK_CTA_PALETTE if luma(sample[0], sample[1], sample[2]) > 128 else LIGHT_CTA_PALETTE


# ---------------------------------------------------------------------------
# Steps
# ---------------------------------------------------------------------------


def _load_logo(brand_assets: Optional[BrandAssets], timeout: Optional[float]) -> Optional[Image.Image]:
    if brand_assets is None:
        return None
    logo = brand_assets.primary_logo()
    if logo is None:
        return None
    try:
        return load_image(logo.data_url, timeout)
    except MediaLoadError as exc:
        logging.warning("Brand logo '%s' could not be loaded (%s); rendering without it.", logo.name, exc)
        return None


def draw_vignette(canvas: Canvas) -> None:
    canvas.fill_linear_gradient(VIGNETTE_STOPS, (0, 0), (0, canvas.height))


def draw_logo(canvas: Canvas, logo: Image.Image, design: DesignSettings) -> None:
    x, y, w, h = logo_box(logo.size, (canvas.width, canvas.height), design.logo_size, design.logo_position)
    with canvas.scoped(alpha=design.logo_opacity):
        canvas.draw_image(logo, x, y, w, h)


def draw_watermark(canvas: Canvas) -> None:
    scale = base_scale_factor(canvas.width)
    font_size = max(10.0, canvas.width * 0.035)
    font = load_font(CTA_FONT_FAMILY, int(round(font_size)))
    margin = canvas.width * 0.02

    layer = canvas.new_layer()
    ImageDraw.Draw(layer).text(
        (canvas.width - margin, canvas.height - margin),
        WATERMARK_TEXT,
        font=font,
        fill=(255, 255, 255, 255),
        anchor="rd",
    )
    shadow = Shadow("rgba(0,0,0,0.5)", blur=4 * scale, offset_x=scale, offset_y=scale)
    with canvas.scoped(alpha=WATERMARK_ALPHA, shadow=shadow):
        canvas.composite(layer)


def draw_error_placeholder(canvas: Canvas) -> None:
    """Red fill with a centered white error label."""
    canvas.clear()
    canvas.fill(ERROR_FILL)
    font = load_font(CTA_FONT_FAMILY, int(round(max(12.0, canvas.width * 0.04))))
    layer = canvas.new_layer()
    ImageDraw.Draw(layer).text(
        (canvas.width / 2.0, canvas.height / 2.0),
        ERROR_TEXT,
        font=font,
        fill=(255, 255, 255, 255),
        anchor="mm",
    )
    canvas.composite(layer)


def _button_fill(size: Tuple[int, int], cta: CTAButton, palette: Optional[CTAPalette]) -> Image.Image:
    if palette is not None:
        solid, color1, color2 = palette.background_color, palette.gradient_color1, palette.gradient_color2
    else:
        solid, color1, color2 = cta.background_color, cta.gradient_color1, cta.gradient_color2

    if not cta.use_gradient:
        return Image.new("RGBA", size, parse_color(solid))
    start, end = angle_endpoints((0, 0, size[0], size[1]), cta.gradient_angle)
    return linear_gradient(size, [(0.0, parse_color(color1)), (1.0, parse_color(color2))], start, end)


def _icon_width(icon: LoadedIcon, height: float) -> float:
    w, h = icon.image.size
    return height * w / h if h else height


def draw_cta_button(canvas: Canvas, cta: CTAButton, timeout: Optional[float] = None) -> None:
    """
    Draw the call-to-action button.

    Icons keep their own aspect ratio at a fixed height; icons that fail to
    load are left out. With ``auto_adjust_colors`` the palette is chosen from
    the canvas pixel under the button center as drawn so far.
    """
    scale = base_scale_factor(canvas.width)
    icons = load_icons(cta.icons, timeout)
    before = [i for i in icons if i.icon.position == "before"]
    after = [i for i in icons if i.icon.position == "after"]

    font_size = cta.font_size * scale
    font = load_font(CTA_FONT_FAMILY, int(round(font_size)))
    text_w = float(font.getlength(cta.text))
    icon_h = CTA_ICON_HEIGHT * scale
    gap = CTA_ICON_GAP * scale

    before_w = sum(_icon_width(i, icon_h) + gap for i in before)
    after_w = sum(gap + _icon_width(i, icon_h) for i in after)
    pad_x, pad_y = cta.padding_x * scale, cta.padding_y * scale
    btn_w = before_w + text_w + after_w + 2 * pad_x
    btn_h = max(font_size, icon_h if icons else 0.0) + 2 * pad_y

    margin = canvas.height * CTA_MARGIN_RATIO
    if cta.horizontal_align == "left":
        x = margin
    elif cta.horizontal_align == "right":
        x = canvas.width - btn_w - margin
    else:
        x = (canvas.width - btn_w) / 2.0
    if cta.vertical_position == "top":
        y = margin
    elif cta.vertical_position == "middle":
        y = (canvas.height - btn_h) / 2.0
    else:
        y = canvas.height - btn_h - margin

    palette = None
    if cta.auto_adjust_colors:
        palette = cta_palette(canvas.get_pixel(x + btn_w / 2.0, y + btn_h / 2.0))
    text_color = palette.text_color if palette is not None else cta.text_color

    ix, iy = int(round(x)), int(round(y))
    iw, ih = max(1, int(round(btn_w))), max(1, int(round(btn_h)))
    mask = Image.new("L", (iw, ih), 0)
    ImageDraw.Draw(mask).rounded_rectangle(
        (0, 0, iw - 1, ih - 1), radius=int(round(cta.border_radius * scale)), fill=255
    )
    button = Image.new("RGBA", (iw, ih), (0, 0, 0, 0))
    button.paste(_button_fill((iw, ih), cta, palette), (0, 0), mask)

    layer = canvas.new_layer()
    layer.alpha_composite(button, dest=(max(0, ix), max(0, iy)), source=(max(0, -ix), max(0, -iy)))
    shadow = Shadow("rgba(0,0,0,0.3)", blur=10 * scale, offset_x=0.0, offset_y=4 * scale)
    with canvas.scoped(shadow=shadow):
        canvas.composite(layer)

    center_y = y + btn_h / 2.0
    cursor = x + pad_x
    for item in before:
        w = _icon_width(item, icon_h)
        canvas.draw_image(item.image, cursor, center_y - icon_h / 2.0, w, icon_h)
        cursor += w + gap

    text_layer = canvas.new_layer()
    ImageDraw.Draw(text_layer).text(
        (cursor, center_y), cta.text, font=font, fill=parse_color(text_color), anchor="lm"
    )
    canvas.composite(text_layer)
    cursor += text_w

    for item in after:
        cursor += gap
        w = _icon_width(item, icon_h)
        canvas.draw_image(item.image, cursor, center_y - icon_h / 2.0, w, icon_h)
        cursor += w


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def render_campaign_image(
        canvas: Canvas,
        image: CampaignImage,
        campaign: Campaign,
        design: Optional[DesignSettings] = None,
        brand_assets: Optional[BrandAssets] = None,
        project_size: str = "12x12",
        user_plan: str = UserPlan.CREATOR,
        defaults: LayoutDefaults = DEFAULT_LAYOUT,
        timeout: Optional[float] = None,
) -> bool:
    """
    Render ``image`` with the campaign copy and brand assets onto ``canvas``.

    ``design`` is the template design (``defaults.design`` when omitted);
    the image's own sparse override is merged onto it. Returns True when
    the composite was drawn and False when the error placeholder was drawn
    instead. ``project_size`` is accepted for parity with the thumbnail
    path; the canvas already carries the output dimensions.
    """
    try:
        canvas.clear()
        media = load_media(image.src, timeout, is_video=image.is_video)

        base = defaults if design is None else defaults.with_design(design)
        effective = reconcile_headline_rows(effective_design(base, image.design), campaign.headline)

        logo = _load_logo(brand_assets, timeout) if effective.add_logo else None

        canvas.draw_image(media.image, *cover_fit_box(media.size, (canvas.width, canvas.height)))
        draw_vignette(canvas)

        if logo is not None:
            draw_logo(canvas, logo, effective)

        if user_plan == UserPlan.STARTER:
            draw_watermark(canvas)

        layout = compute_text_layout(canvas.width, canvas.height, campaign, effective, base)
        draw_text_layout(canvas, layout)

        cta = effective.cta_button
        if cta.enabled and cta.text.strip():
            draw_cta_button(canvas, cta)
    except Exception as exc:
        logging.warning(
            "Rendering image %s (%s, plan=%s) failed: %s",
            image.id,
            project_size,
            user_plan,
            exc,
        )
        draw_error_placeholder(canvas)
        return False
    return True
