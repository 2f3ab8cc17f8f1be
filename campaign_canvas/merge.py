from __future__ import annotations

"""
Design-settings merge helpers.

Overrides are sparse camelCase mappings (the same shape the job files and
the layout analyzer use). They are folded onto a base mapping with
``deep_merge`` and only then turned into a ``DesignSettings`` value, so the
shared defaults are never edited in place.
"""

import copy
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .models import CampaignImage, DesignSettings, HeadlineSettings, LayoutDefaults


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge ``override`` onto ``base`` and return a new mapping.

    When both sides hold a mapping for a key the two are merged recursively.
    Otherwise the override value wins outright; lists included, they replace
    the base list instead of being concatenated or merged by index. Neither
    input is modified and the result shares no containers with them.
    """
    merged: Dict[str, Any] = {key: copy.deepcopy(value) for key, value in base.items()}
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def merge_headline_rows(
        base_rows: Sequence[Mapping[str, Any]],
        override_rows: Sequence[Optional[Mapping[str, Any]]],
) -> List[Dict[str, Any]]:
    """
    Build the full replacement array for ``headline.rows``.

    Entry i of the override is merged onto base row i, or onto the last base
    row when the base has fewer rows. A ``None`` entry keeps the base row.
    """
    rows: List[Dict[str, Any]] = []
    for i, row in enumerate(override_rows):
        if i < len(base_rows):
            row_base: Mapping[str, Any] = base_rows[i]
        elif base_rows:
            row_base = base_rows[-1]
        else:
            row_base = {}
        rows.append(deep_merge(row_base, row or {}))
    return rows


def merge_override(base: Mapping[str, Any], change: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Fold an incremental edit into an existing sparse override.

    Same as ``deep_merge`` except that ``headline.rows`` is reconciled row by
    row so a partial row edit does not wipe the other fields of that row.
    """
    merged = deep_merge(base, change)
    change_rows = (change.get("headline") or {}).get("rows")
    if change_rows is not None:
        base_rows = (base.get("headline") or {}).get("rows") or []
        merged["headline"]["rows"] = merge_headline_rows(base_rows, change_rows)
    return merged


def effective_design(
        defaults: LayoutDefaults,
        override: Optional[Mapping[str, Any]] = None,
) -> DesignSettings:
    """Resolve template defaults plus a per-image override into concrete settings."""
    if not override:
        return defaults.design
    merged = merge_override(defaults.design.to_dict(), override)
    return DesignSettings.from_dict(merged, defaults.design, defaults.fallback_row)


def reconcile_headline_rows(design: DesignSettings, headline_text: str) -> DesignSettings:
    """
    Keep one row of settings per newline-delimited headline row.

    Extra rows duplicate the last configured row; surplus settings are
    dropped. An empty headline keeps the first row so the design stays
    usable once text is typed again.
    """
    text = headline_text.replace("\r\n", "\n")
    wanted = max(1, len(text.split("\n")) if text else 1)
    rows = design.headline.rows
    if len(rows) == wanted:
        return design

    if len(rows) > wanted:
        new_rows = rows[:wanted]
    else:
        new_rows = rows + (rows[-1],) * (wanted - len(rows))
    headline: HeadlineSettings = replace(design.headline, rows=tuple(new_rows))
    return replace(design, headline=headline)


def apply_layout_suggestion(
        image: CampaignImage,
        suggestion: Optional[Mapping[str, Any]],
) -> CampaignImage:
    """Return a copy of ``image`` with an analyzer suggestion folded into its override."""
    if not suggestion:
        return image
    return replace(image, design=merge_override(image.design or {}, suggestion))
