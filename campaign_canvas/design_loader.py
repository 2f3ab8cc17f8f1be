from __future__ import annotations

"""
Helpers for loading a render job from YAML or JSON into strongly typed
dataclasses.

A job file carries the campaign copy, its images (each with an optional
sparse design override), the template design, the brand kit, the project
size and the user plan.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Union

import yaml

from .models import (
    DEFAULT_LAYOUT,
    MAX_BRAND_LOGOS,
    PROJECT_SIZES,
    TEMPLATES,
    BrandAssets,
    BrandLogo,
    Campaign,
    CampaignImage,
    DesignSettings,
    RenderJob,
    UserPlan,
)
from .utils import slugify


_REMOTE_PREFIXES = ("data:", "http://", "https://", "file://")


def _resolve_source(value: str, base_dir: Path) -> str:
    """Make relative file paths absolute against the job file's folder."""
    if value.startswith(_REMOTE_PREFIXES):
        return value
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return str(path)


def _load_images(raw_images: List[Mapping[str, Any]], base_dir: Path) -> List[CampaignImage]:
    images = []
    seen = set()
    for i, raw in enumerate(raw_images):
        src = raw.get("src")
        if not src:
            raise ValueError(f"Image #{i + 1} must have a 'src' field.")

        # Fall back to a slug of the file name, or the position for inline data.
        if raw.get("id"):
            image_id = str(raw["id"])
        elif str(src).startswith("data:"):
            image_id = f"image-{i + 1}"
        else:
            image_id = slugify(Path(str(src)).stem)
        if image_id in seen:
            raise ValueError(f"Duplicate image id '{image_id}'.")
        seen.add(image_id)

        override = raw.get("design") or {}
        if not isinstance(override, Mapping):
            raise ValueError(f"Design override of image '{image_id}' must be a mapping.")

        original = raw.get("original_image_url")
        images.append(
            CampaignImage(
                id=image_id,
                src=_resolve_source(str(src), base_dir),
                design=dict(override),
                original_image_url=_resolve_source(str(original), base_dir) if original else None,
                is_saved=bool(raw.get("is_saved", False)),
                is_video=bool(raw.get("is_video", False)),
            )
        )
    return images


def _load_brand(raw: Mapping[str, Any], base_dir: Path) -> BrandAssets:
    logos_data = raw.get("logos") or []
    if len(logos_data) > MAX_BRAND_LOGOS:
        raise ValueError(f"A brand kit holds at most {MAX_BRAND_LOGOS} logos.")

    logos = []
    for i, logo in enumerate(logos_data):
        source = logo.get("data_url") or logo.get("path")
        if not source:
            raise ValueError("Each logo must have a 'path' or 'data_url' field.")
        logos.append(
            BrandLogo(
                name=str(logo.get("name") or f"logo-{i + 1}"),
                data_url=_resolve_source(str(source), base_dir),
            )
        )

    return BrandAssets(
        logos=logos,
        primary_logo_index=int(raw.get("primary_logo_index", 0)),
        brand_name=raw.get("name", "My Brand"),
        colors=[str(c) for c in raw.get("colors") or []],
    )


def load_job(path: Union[str, Path]) -> RenderJob:
    """
    Load a render job from a YAML or JSON file and construct a RenderJob.

    The function:
      - Accepts .yml, .yaml, or .json files.
      - Validates that the campaign has a headline and at least one image.
      - Ensures each image has a stable, unique id.
      - Resolves relative media and logo paths against the job file's folder.
      - Canonicalizes the template design onto the built-in defaults, or
        onto the built-in template named by ``template`` when present.

    Parameters
    ----------
    path:
        Filesystem path to the job document.

    Returns
    -------
    RenderJob
        Parsed and validated job that the processor can render.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Job file not found: {path}")

    with path.open("r", encoding="utf-8") as f:
        if path.suffix.lower() in {".yml", ".yaml"}:
            raw = yaml.safe_load(f)
        else:
            raw = json.load(f)

    if not isinstance(raw, dict):
        raise ValueError("Job file must contain a mapping at the top level.")
    base_dir = path.parent.resolve()

    campaign_data: Dict[str, Any] = raw.get("campaign") or {}
    headline = campaign_data.get("headline")
    if not headline:
        raise ValueError("Campaign must have a 'headline' field.")

    images_data = raw.get("images") or []
    if len(images_data) < 1:
        raise ValueError("Job must contain at least one image.")

    campaign = Campaign(
        id=str(campaign_data.get("id") or slugify(str(headline).split("\n")[0])),
        headline=str(headline),
        subheadline=str(campaign_data.get("subheadline") or ""),
        description=str(campaign_data.get("description") or ""),
        hashtags=[str(tag) for tag in campaign_data.get("hashtags") or []],
        images=_load_images(images_data, base_dir),
    )

    project_size = str(raw.get("project_size", "12x12"))
    if project_size not in PROJECT_SIZES:
        raise ValueError(
            f"Unknown project_size '{project_size}'. Expected one of: {', '.join(PROJECT_SIZES)}."
        )

    user_plan = str(raw.get("user_plan", UserPlan.CREATOR))
    if user_plan not in UserPlan.ALL:
        raise ValueError(f"Unknown user_plan '{user_plan}'. Expected one of: {', '.join(UserPlan.ALL)}.")

    template_id = raw.get("template")
    base_design = DEFAULT_LAYOUT.design
    if template_id is not None:
        template_id = str(template_id)
        if template_id not in TEMPLATES:
            raise ValueError(
                f"Unknown template '{template_id}'. Expected one of: {', '.join(TEMPLATES)}."
            )
        base_design = TEMPLATES[template_id].design

    # The job's own design section is merged over the chosen template.
    design = DesignSettings.from_dict(
        raw.get("design") or {}, base_design, DEFAULT_LAYOUT.fallback_row
    )

    return RenderJob(
        campaign=campaign,
        design=design,
        template=template_id,
        brand_assets=_load_brand(raw.get("brand") or {}, base_dir),
        project_size=project_size,
        user_plan=user_plan,
    )
