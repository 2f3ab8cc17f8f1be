"""Canvas composition and automatic layout for campaign images."""

from .canvas import Canvas
from .layout_analyzer import analyze_layout
from .merge import deep_merge
from .renderer import render_campaign_image
from .text_layout import wrap_lines
from .thumbnail import PreviewSession, make_thumbnail

__all__ = [
    "Canvas",
    "PreviewSession",
    "analyze_layout",
    "deep_merge",
    "make_thumbnail",
    "render_campaign_image",
    "wrap_lines",
]
