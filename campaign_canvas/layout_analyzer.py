from __future__ import annotations

"""
Automatic text placement for a background image.

The grid analyzer downsamples the image to a fixed width, splits it into a
3x3 grid and picks the cell with the lowest brightness variance: the
calmest area is the most legible place for overlaid text. The optional AI
mode asks a vision model for the region instead and falls back to the grid
whenever that service is unavailable.

Both modes return the same sparse override mapping, ready to be folded
into a per-image design with ``merge.apply_layout_suggestion``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from PIL import Image

from . import config
from .exceptions import LayoutAnalysisError, MediaLoadError, VisualAnalysisError
from .media import load_media
from .visual_analysis import VisualAnalysisResult, analyze_visual_for_text_placement


GRID_SIZE = 3
SUGGESTED_SHADOW_BLUR = 10

LIGHT_TEXT_COLOR = "#FFFFFF"
DARK_TEXT_COLOR = "#1F2937"
SHADOW_FOR_LIGHT_TEXT = "rgba(0,0,0,0.6)"
SHADOW_FOR_DARK_TEXT = "rgba(255,255,255,0.6)"

_ROW_POSITIONS = ("top", "center", "bottom")
_COL_ALIGNS = ("left", "center", "right")

VisualAnalyzer = Callable[[Image.Image], VisualAnalysisResult]


@dataclass
class RegionStats:
    row: int
    col: int
    brightness: float
    variance: float

    @property
    def vertical_position(self) -> str:
        return _ROW_POSITIONS[self.row]

    @property
    def text_align(self) -> str:
        return _COL_ALIGNS[self.col]


def _downsample(image: Image.Image, width: int) -> Image.Image:
    if image.width == width:
        return image.convert("RGB")
    height = max(GRID_SIZE, int(round(image.height * width / image.width)))
    return image.convert("RGB").resize((width, height), Image.BILINEAR)


def _luma_rows(image: Image.Image) -> List[List[float]]:
    """Per-pixel 0.299R + 0.587G + 0.114B, kept as floats."""
    raw = image.tobytes()
    stride = image.width * 3
    return [
        [
            0.299 * raw[i] + 0.587 * raw[i + 1] + 0.114 * raw[i + 2]
            for i in range(offset, offset + stride, 3)
        ]
        for offset in range(0, image.height * stride, stride)
    ]


def grid_statistics(image: Image.Image, width: int = config.ANALYSIS_WIDTH) -> List[RegionStats]:
    """
    Brightness mean and variance for each cell of a 3x3 grid, row-major.

    Luma is not rounded to 8 bits, so near-equal cells compare exactly.
    """
    rgb = _downsample(image, width)
    cell_w = rgb.width // GRID_SIZE
    cell_h = rgb.height // GRID_SIZE
    if cell_w <= 0 or cell_h <= 0:
        raise LayoutAnalysisError(f"Image of size {image.size} is too small to analyze")

    luma = _luma_rows(rgb)
    stats: List[RegionStats] = []
    for row in range(GRID_SIZE):
        for col in range(GRID_SIZE):
            values = [
                v
                for line in luma[row * cell_h:(row + 1) * cell_h]
                for v in line[col * cell_w:(col + 1) * cell_w]
            ]
            mean = sum(values) / len(values)
            variance = sum((v - mean) ** 2 for v in values) / len(values)
            stats.append(RegionStats(row, col, mean, variance))
    return stats


def quietest_region(stats: List[RegionStats]) -> RegionStats:
    """Lowest-variance cell; on a tie the earlier cell in row-major order wins."""
    best = stats[0]
    for region in stats[1:]:
        if region.variance < best.variance:
            best = region
    return best


def build_suggestion(
        vertical_position: str,
        text_align: str,
        light_text: bool,
) -> Dict[str, Any]:
    """The sparse design override both analysis modes produce."""
    font_color = LIGHT_TEXT_COLOR if light_text else DARK_TEXT_COLOR
    shadow_color = SHADOW_FOR_LIGHT_TEXT if light_text else SHADOW_FOR_DARK_TEXT
    return {
        "headline": {
            "rows": [
                {
                    "fontColor": font_color,
                    "shadowColor": shadow_color,
                    "shadowBlur": SUGGESTED_SHADOW_BLUR,
                    "textAlign": text_align,
                }
            ],
            "verticalPosition": vertical_position,
        },
        "subheadline": {
            "fontColor": font_color,
            "shadowColor": shadow_color,
            "shadowBlur": SUGGESTED_SHADOW_BLUR,
            "verticalPosition": vertical_position,
            "textAlign": text_align,
        },
    }


def analyze_grid(image: Image.Image) -> Dict[str, Any]:
    region = quietest_region(grid_statistics(image))
    logging.info(
        "Grid analysis picked %s-%s (brightness=%.1f, variance=%.1f).",
        region.vertical_position,
        region.text_align,
        region.brightness,
        region.variance,
    )
    return build_suggestion(region.vertical_position, region.text_align, region.brightness < 128)


def suggestion_from_visual_analysis(result: VisualAnalysisResult) -> Dict[str, Any]:
    """
    Map an AI recommendation such as ``"middle-right"`` onto an override.

    The model's overlay recommendation is not applied; AI analysis only
    chooses text color and position.
    """
    vertical, _, horizontal = result.recommended_text_region.partition("-")
    vertical = "center" if vertical == "middle" else vertical
    if vertical not in _ROW_POSITIONS:
        vertical = "top"
    if horizontal not in _COL_ALIGNS:
        horizontal = "left"
    return build_suggestion(vertical, horizontal, result.recommended_text_color != "dark")


def analyze_layout(
        image_src: Union[str, Image.Image],
        use_ai_mode: bool = False,
        visual_analyzer: Optional[VisualAnalyzer] = None,
        timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Suggest text position and colors for the image at ``image_src``.

    With ``use_ai_mode`` the vision model is tried first and any failure
    falls back to grid analysis. Failing to load the image itself raises
    ``LayoutAnalysisError``; callers treat that as "no suggestion".
    """
    if isinstance(image_src, Image.Image):
        image = image_src
    else:
        try:
            image = load_media(image_src, timeout).image
        except MediaLoadError as exc:
            raise LayoutAnalysisError(f"Layout analysis could not load the image: {exc}") from exc

    if use_ai_mode:
        analyzer = visual_analyzer or analyze_visual_for_text_placement
        try:
            return suggestion_from_visual_analysis(analyzer(image))
        except VisualAnalysisError as exc:
            logging.warning("AI layout analysis unavailable (%s); falling back to grid analysis.", exc)
        except Exception as exc:
            logging.warning("AI layout analysis failed unexpectedly (%s); falling back to grid analysis.", exc)

    return analyze_grid(image)
