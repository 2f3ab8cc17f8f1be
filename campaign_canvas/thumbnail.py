from __future__ import annotations

"""
Small previews built on top of the composite renderer.

``make_thumbnail`` is best-effort: whatever goes wrong, it still returns a
data URI (a dark gradient placeholder) so a list of previews can always be
drawn. ``PreviewSession`` guards a live preview against late results from
renders that were superseded by newer input.
"""

import logging
import threading
from typing import Optional

from . import config
from .canvas import Canvas
from .exceptions import CampaignCanvasError
from .models import (
    DEFAULT_LAYOUT,
    BrandAssets,
    Campaign,
    CampaignImage,
    DesignSettings,
    LayoutDefaults,
    UserPlan,
    project_aspect_ratio,
)
from .renderer import render_campaign_image


PLACEHOLDER_STOPS = ((0.0, "#1E293B"), (1.0, "#0F172A"))
THUMBNAIL_QUALITY = 80


def thumbnail_size(project_size: str, width: int = config.THUMBNAIL_WIDTH) -> tuple[int, int]:
    """Fixed width, height derived from the project aspect ratio."""
    return width, max(1, int(round(width / project_aspect_ratio(project_size))))


def placeholder_data_uri(width: int, height: int) -> str:
    """Dark diagonal gradient used when a thumbnail cannot be rendered."""
    canvas = Canvas(width, height)
    canvas.fill_linear_gradient(PLACEHOLDER_STOPS, (0, 0), (width, height))
    return canvas.to_data_uri("JPEG", quality=THUMBNAIL_QUALITY)


def make_thumbnail(
        image: CampaignImage,
        campaign: Campaign,
        design: Optional[DesignSettings] = None,
        brand_assets: Optional[BrandAssets] = None,
        project_size: str = "12x12",
        user_plan: str = UserPlan.CREATOR,
        defaults: LayoutDefaults = DEFAULT_LAYOUT,
        width: int = config.THUMBNAIL_WIDTH,
) -> str:
    """Render a JPEG data URI preview of ``image``, or the placeholder on failure."""
    w, h = thumbnail_size(project_size, width)
    try:
        canvas = Canvas(w, h)
        if render_campaign_image(
                canvas, image, campaign, design, brand_assets, project_size, user_plan, defaults
        ):
            return canvas.to_data_uri("JPEG", quality=THUMBNAIL_QUALITY)
        logging.info("Thumbnail for image %s fell back to the placeholder.", image.id)
    except CampaignCanvasError as exc:
        logging.warning("Thumbnail for image %s could not be rendered: %s", image.id, exc)
    return placeholder_data_uri(w, h)


class PreviewSession:
    """
    A live preview bound to one target.

    Every ``render`` call takes a new generation token. A render publishes
    its canvas only if no newer render (or ``invalidate``) happened while it
    was running, so a slow, stale render can never overwrite a newer one.
    """

    def __init__(self, width: int, height: int, defaults: LayoutDefaults = DEFAULT_LAYOUT):
        self.width = width
        self.height = height
        self.defaults = defaults
        self.canvas: Optional[Canvas] = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def invalidate(self) -> None:
        """Discard any in-flight render, e.g. when the preview goes away."""
        with self._lock:
            self._generation += 1

    def resize(self, width: int, height: int) -> None:
        with self._lock:
            self.width, self.height = width, height
            self._generation += 1

    def render(
            self,
            image: CampaignImage,
            campaign: Campaign,
            design: Optional[DesignSettings] = None,
            brand_assets: Optional[BrandAssets] = None,
            project_size: str = "12x12",
            user_plan: str = UserPlan.CREATOR,
    ) -> Optional[Canvas]:
        """Render into a fresh canvas; returns None if the result was superseded."""
        with self._lock:
            self._generation += 1
            token = self._generation
            width, height = self.width, self.height

        canvas = Canvas(width, height)
        render_campaign_image(
            canvas, image, campaign, design, brand_assets, project_size, user_plan, self.defaults
        )

        with self._lock:
            if token != self._generation:
                logging.info("Discarding superseded preview render for image %s.", image.id)
                return None
            self.canvas = canvas
        return canvas
