from __future__ import annotations

import base64
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .canvas import Canvas
from .exceptions import LayoutAnalysisError
from .layout_analyzer import analyze_layout
from .merge import apply_layout_suggestion
from .models import CampaignImage, RenderJob, project_dimensions
from .renderer import render_campaign_image
from .thumbnail import make_thumbnail
from .utils import slugify


MANIFEST_NAME = "manifest.json"


def _write_data_uri(data_uri: str, path: Path) -> None:
    _, _, payload = data_uri.partition(",")
    path.write_bytes(base64.b64decode(payload))


def _with_suggestion(image: CampaignImage, use_ai: bool) -> tuple[CampaignImage, bool]:
    """Run the layout analyzer once; a failed analysis leaves the image as it was."""
    try:
        suggestion = analyze_layout(image.src, use_ai_mode=use_ai)
    except LayoutAnalysisError as exc:
        logging.warning("No layout suggestion for image %s: %s", image.id, exc)
        return image, False
    return apply_layout_suggestion(image, suggestion), True


def render_image(
        job: RenderJob,
        image: CampaignImage,
        out_dir: Path,
        user_plan: str,
) -> Dict[str, Any]:
    """
    Render one image at full size plus its thumbnail.

    Files are written as ``<out_dir>/<image-id>.png`` and
    ``<out_dir>/<image-id>-thumb.jpg``. A failed render still writes the
    error placeholder so the output set stays complete.
    """
    width, height = project_dimensions(job.project_size)
    canvas = Canvas(width, height)
    ok = render_campaign_image(
        canvas,
        image,
        job.campaign,
        job.design,
        job.brand_assets,
        job.project_size,
        user_plan,
    )

    image_id = slugify(image.id)
    out_path = out_dir / f"{image_id}.png"
    canvas.to_image().save(out_path, format="PNG")

    thumb_path = out_dir / f"{image_id}-thumb.jpg"
    _write_data_uri(
        make_thumbnail(
            image,
            job.campaign,
            job.design,
            job.brand_assets,
            job.project_size,
            user_plan,
        ),
        thumb_path,
    )

    logging.info(
        "Rendered image %s at %sx%s (%s) to %s",
        image.id,
        width,
        height,
        "ok" if ok else "placeholder",
        out_path,
    )
    return {
        "id": image.id,
        "status": "rendered" if ok else "failed",
        "output": out_path.name,
        "thumbnail": thumb_path.name,
    }


def render_campaign(
        job: RenderJob,
        output_root: Path,
        analyze: bool = False,
        use_ai: bool = False,
        user_plan: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Render every image of a job and write a manifest next to the outputs.

    For each image:
      - Optionally run the layout analyzer and fold its suggestion into the
        image's design override.
      - Render the full-size composite for the project size.
      - Write a thumbnail beside it.

    Outputs go under ``<output_root>/<campaign-slug>/``. The returned (and
    saved) manifest lists every image with its status.
    """
    plan = user_plan or job.user_plan
    out_dir = Path(output_root) / slugify(job.campaign.id)
    out_dir.mkdir(parents=True, exist_ok=True)

    logging.info(
        "Rendering campaign %s: %d image(s), size=%s, plan=%s, analyze=%s, ai=%s",
        job.campaign.id,
        len(job.campaign.images),
        job.project_size,
        plan,
        analyze,
        use_ai,
    )

    entries: List[Dict[str, Any]] = []
    for image in job.campaign.images:
        applied = False
        if analyze:
            image, applied = _with_suggestion(image, use_ai)
        entry = render_image(job, image, out_dir, plan)
        entry["layout_suggestion_applied"] = applied
        entries.append(entry)

    manifest = {
        "campaign": job.campaign.id,
        "project_size": job.project_size,
        "user_plan": plan,
        "template": job.template,
        "rendered": sum(1 for e in entries if e["status"] == "rendered"),
        "failed": sum(1 for e in entries if e["status"] == "failed"),
        "images": entries,
    }
    with (out_dir / MANIFEST_NAME).open("w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2)

    logging.info(
        "Campaign %s done: %d rendered, %d failed.",
        job.campaign.id,
        manifest["rendered"],
        manifest["failed"],
    )
    return manifest
