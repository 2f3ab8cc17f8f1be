from __future__ import annotations

"""
Datamodels used throughout the campaign canvas renderer.

These dataclasses are intentionally small and serializable so they can be
constructed from JSON or YAML job files (or sparse per-image override
mappings) and passed between modules without any framework specific
dependencies.

Every settings type exposes ``from_dict(data, fallback)``. That classmethod
is the one place where missing values are filled in: any key absent from
``data`` takes the value carried by ``fallback``. After it runs, no field is
left unresolved, so the layout and drawing code never needs to guess.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Mapping, Optional, Tuple


TEXT_ALIGNS = ("left", "center", "right")
VERTICAL_POSITIONS = ("top", "center", "bottom")
LOGO_POSITIONS = (
    "top-left",
    "top-right",
    "bottom-left",
    "bottom-right",
    "bottom-center",
    "center",
)
CTA_VERTICAL_POSITIONS = ("top", "middle", "bottom")
ICON_POSITIONS = ("before", "after")

MAX_CTA_ICONS = 4
MAX_BRAND_LOGOS = 3

LOGO_SIZE_MIN = 50
LOGO_SIZE_MAX = 150


class UserPlan:
    """Subscription plan names understood by the renderer."""

    STARTER = "Starter"
    CREATOR = "Creator"
    PROFUSION = "ProFusion"

    ALL = (STARTER, CREATOR, PROFUSION)


# Full-size render dimensions per project size.
PROJECT_SIZES: Dict[str, Tuple[int, int]] = {
    "12x12": (1024, 1024),
    "9x12": (768, 1024),
    "16x9": (1024, 576),
    "9x16": (576, 1024),
}


def project_dimensions(project_size: str) -> Tuple[int, int]:
    """Return the full-size pixel dimensions for a project size string."""
    return PROJECT_SIZES.get(project_size, (1024, 1024))


def project_aspect_ratio(project_size: str) -> float:
    """
    Width / height for a ``"<a>x<b>"`` project size.

    Unknown or malformed sizes are treated as square.
    """
    try:
        a, b = project_size.lower().split("x", 1)
        ratio = float(a) / float(b)
    except (AttributeError, ValueError, ZeroDivisionError):
        return 1.0
    return ratio if ratio > 0 else 1.0


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _choice(value: Any, allowed: Tuple[str, ...], default: str) -> str:
    return value if value in allowed else default


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def _get(data: Mapping[str, Any], key: str, default: Any) -> Any:
    value = data.get(key)
    return default if value is None else value


def _merge_fields(cls, data: Mapping[str, Any], base: Any, nullable: Tuple[str, ...] = ()) -> Dict[str, Any]:
    """Take each dataclass field from ``data`` (camelCase) or else from ``base``."""
    values: Dict[str, Any] = {}
    for f in fields(cls):
        key = _camel(f.name)
        value = data.get(key)
        if value is None and not (key in data and f.name in nullable):
            value = getattr(base, f.name)
        values[f.name] = value
    return values


# ---------------------------------------------------------------------------
# Text styling
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TextSettings:
    """Styling for one block of text (a headline row or the subheadline)."""

    font_family: str = "Inter"
    font_size: float = 32
    font_color: str = "#FFFFFF"
    text_align: str = "left"

    # Ignored for headline rows; the headline block has its own position.
    vertical_position: str = "bottom"

    # None means "derive a contrasting shadow from the font color".
    shadow_color: Optional[str] = None
    shadow_blur: float = 4

    # None means no stroke.
    stroke_color: Optional[str] = None
    stroke_width: float = 0

    letter_spacing: float = 0

    use_gradient: bool = False
    gradient_color1: str = "#FFFFFF"
    gradient_color2: str = "#A5B4FC"
    gradient_angle: float = 90

    use_background: bool = False
    background_color: str = "#000000"
    background_opacity: float = 0.5
    background_padding: float = 10

    # Only read for the subheadline.
    line_spacing: float = 1.4

    @classmethod
    def from_dict(
            cls,
            data: Optional[Mapping[str, Any]],
            fallback: Optional["TextSettings"] = None,
    ) -> "TextSettings":
        base = fallback or cls()
        if not data:
            return base

        values = _merge_fields(cls, data, base, nullable=("shadow_color", "stroke_color"))
        values["text_align"] = _choice(values["text_align"], TEXT_ALIGNS, base.text_align)
        values["vertical_position"] = _choice(
            values["vertical_position"], VERTICAL_POSITIONS, base.vertical_position
        )
        values["font_size"] = float(values["font_size"])
        values["background_opacity"] = _clamp(float(values["background_opacity"]), 0.0, 1.0)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class HeadlineSettings:
    """Multi-row headline: one TextSettings per newline-delimited row."""

    rows: Tuple[TextSettings, ...] = (TextSettings(),)
    line_spacing: float = 1.2
    vertical_position: str = "bottom"

    @classmethod
    def from_dict(
            cls,
            data: Optional[Mapping[str, Any]],
            fallback: Optional["HeadlineSettings"] = None,
            row_fallback: Optional[TextSettings] = None,
    ) -> "HeadlineSettings":
        base = fallback or cls()
        if not data:
            return base

        rows = base.rows
        if "rows" in data and data["rows"]:
            resolved = []
            for i, raw in enumerate(data["rows"]):
                if i < len(base.rows):
                    row_base = base.rows[i]
                elif base.rows:
                    row_base = base.rows[-1]
                else:
                    row_base = row_fallback or TextSettings()
                resolved.append(TextSettings.from_dict(raw, row_base))
            rows = tuple(resolved)

        return cls(
            rows=rows,
            line_spacing=float(_get(data, "lineSpacing", base.line_spacing)),
            vertical_position=_choice(
                data.get("verticalPosition"), VERTICAL_POSITIONS, base.vertical_position
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rows": [row.to_dict() for row in self.rows],
            "lineSpacing": self.line_spacing,
            "verticalPosition": self.vertical_position,
        }


# ---------------------------------------------------------------------------
# Call-to-action button
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CTAIcon:
    id: str
    data_url: str
    position: str = "before"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CTAIcon":
        return cls(
            id=str(data.get("id", "")),
            data_url=str(data.get("dataUrl", "")),
            position=_choice(data.get("position"), ICON_POSITIONS, "before"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "dataUrl": self.data_url, "position": self.position}


@dataclass(frozen=True)
class CTAButton:
    enabled: bool = False
    text: str = "Shop Now"
    icons: Tuple[CTAIcon, ...] = ()
    horizontal_align: str = "center"
    vertical_position: str = "bottom"
    background_color: str = "#3B82F6"
    text_color: str = "#FFFFFF"
    use_gradient: bool = True
    gradient_color1: str = "#3B82F6"
    gradient_color2: str = "#1D4ED8"
    gradient_angle: float = 90
    font_size: float = 20
    padding_x: float = 32
    padding_y: float = 16
    border_radius: float = 12
    auto_adjust_colors: bool = True

    @classmethod
    def from_dict(
            cls,
            data: Optional[Mapping[str, Any]],
            fallback: Optional["CTAButton"] = None,
    ) -> "CTAButton":
        base = fallback or cls()
        if not data:
            return base

        values = _merge_fields(cls, data, base)
        if data.get("icons") is not None:
            values["icons"] = tuple(
                CTAIcon.from_dict(icon) for icon in (data["icons"] or [])[:MAX_CTA_ICONS]
            )
        values["horizontal_align"] = _choice(
            values["horizontal_align"], TEXT_ALIGNS, base.horizontal_align
        )
        values["vertical_position"] = _choice(
            values["vertical_position"], CTA_VERTICAL_POSITIONS, base.vertical_position
        )
        values["text"] = str(values["text"] or "")
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        out = {_camel(f.name): getattr(self, f.name) for f in fields(self)}
        out["icons"] = [icon.to_dict() for icon in self.icons]
        return out


# ---------------------------------------------------------------------------
# Full design
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DesignSettings:
    """The effective, fully populated composition configuration."""

    headline: HeadlineSettings = field(default_factory=HeadlineSettings)
    subheadline: TextSettings = field(
        default_factory=lambda: TextSettings(font_size=18, font_color="#E5E7EB")
    )
    add_logo: bool = True
    logo_position: str = "top-right"
    logo_size: float = 90
    logo_opacity: float = 0.9
    cta_button: CTAButton = field(default_factory=CTAButton)

    @classmethod
    def from_dict(
            cls,
            data: Optional[Mapping[str, Any]],
            fallback: Optional["DesignSettings"] = None,
            row_fallback: Optional[TextSettings] = None,
    ) -> "DesignSettings":
        base = fallback or cls()
        if not data:
            return base

        return cls(
            headline=HeadlineSettings.from_dict(
                data.get("headline"), base.headline, row_fallback
            ),
            subheadline=TextSettings.from_dict(data.get("subheadline"), base.subheadline),
            add_logo=bool(_get(data, "addLogo", base.add_logo)),
            logo_position=_choice(data.get("logoPosition"), LOGO_POSITIONS, base.logo_position),
            logo_size=_clamp(float(_get(data, "logoSize", base.logo_size)), LOGO_SIZE_MIN, LOGO_SIZE_MAX),
            logo_opacity=_clamp(float(_get(data, "logoOpacity", base.logo_opacity)), 0.0, 1.0),
            cta_button=CTAButton.from_dict(data.get("ctaButton"), base.cta_button),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "headline": self.headline.to_dict(),
            "subheadline": self.subheadline.to_dict(),
            "addLogo": self.add_logo,
            "logoPosition": self.logo_position,
            "logoSize": self.logo_size,
            "logoOpacity": self.logo_opacity,
            "ctaButton": self.cta_button.to_dict(),
        }


@dataclass(frozen=True)
class LayoutDefaults:
    """
    Default configuration threaded explicitly through layout and rendering.

    ``fallback_row`` is used for a headline row when neither the row itself
    nor any earlier configured row exists. ``design`` is the template design
    that sparse per-image overrides are merged onto.
    """

    fallback_row: TextSettings = field(
        default_factory=lambda: TextSettings(
            font_family="Inter",
            font_size=32,
            font_color="#FFFFFF",
            text_align="left",
            shadow_color="rgba(0,0,0,0.5)",
            shadow_blur=10,
        )
    )
    design: DesignSettings = field(default_factory=DesignSettings)

    def with_design(self, design: DesignSettings) -> "LayoutDefaults":
        return replace(self, design=design)


DEFAULT_LAYOUT = LayoutDefaults()


# ---------------------------------------------------------------------------
# Built-in design templates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DesignTemplate:
    """A named starting design a job can pick with ``template: <id>``."""

    id: str
    name: str
    design: DesignSettings


def _template_design(
        headline: TextSettings,
        subheadline: TextSettings,
        logo_position: str,
        logo_size: float,
        logo_opacity: float,
) -> DesignSettings:
    return DesignSettings(
        headline=HeadlineSettings(
            rows=(headline,),
            line_spacing=1.2,
            vertical_position=headline.vertical_position,
        ),
        subheadline=subheadline,
        add_logo=True,
        logo_position=logo_position,
        logo_size=logo_size,
        logo_opacity=logo_opacity,
        cta_button=CTAButton(),
    )


TEMPLATES: Dict[str, DesignTemplate] = {
    "t1": DesignTemplate(
        "t1",
        "Bold & Modern",
        _template_design(
            TextSettings(
                font_family="Inter",
                font_size=32,
                font_color="#FFFFFF",
                text_align="left",
                vertical_position="bottom",
                shadow_color="rgba(0,0,0,0.5)",
                shadow_blur=10,
            ),
            TextSettings(
                font_family="Inter",
                font_size=18,
                font_color="#E5E7EB",
                text_align="left",
                vertical_position="bottom",
            ),
            logo_position="top-right",
            logo_size=90,
            logo_opacity=0.9,
        ),
    ),
    "t2": DesignTemplate(
        "t2",
        "Elegant & Crisp",
        _template_design(
            TextSettings(
                font_family="Georgia",
                font_size=40,
                font_color="#121212",
                text_align="center",
                vertical_position="center",
            ),
            TextSettings(
                font_family="Georgia",
                font_size=20,
                font_color="#333333",
                text_align="center",
                vertical_position="center",
            ),
            logo_position="bottom-center",
            logo_size=80,
            logo_opacity=0.8,
        ),
    ),
    "t3": DesignTemplate(
        "t3",
        "Vibrant & Playful",
        _template_design(
            TextSettings(
                font_family="Arial",
                font_size=36,
                font_color="#FFFFFF",
                text_align="center",
                vertical_position="center",
                stroke_color="#000000",
                stroke_width=2,
                shadow_color="rgba(0,0,0,0.3)",
                shadow_blur=5,
            ),
            TextSettings(
                font_family="Arial",
                font_size=18,
                font_color="#FFFFFF",
                text_align="center",
                vertical_position="center",
                stroke_color="#000000",
                stroke_width=1,
            ),
            logo_position="bottom-right",
            logo_size=110,
            logo_opacity=1.0,
        ),
    ),
    "t4": DesignTemplate(
        "t4",
        "Minimal & Clean",
        _template_design(
            TextSettings(
                font_family="Courier New",
                font_size=28,
                font_color="#2d3748",
                text_align="right",
                vertical_position="top",
            ),
            TextSettings(
                font_family="Courier New",
                font_size=16,
                font_color="#4a5568",
                text_align="right",
                vertical_position="top",
            ),
            logo_position="bottom-left",
            logo_size=100,
            logo_opacity=0.7,
        ),
    ),
}


# ---------------------------------------------------------------------------
# Campaign content and brand assets
# ---------------------------------------------------------------------------


@dataclass
class CampaignImage:
    """One generated or uploaded visual and its sparse design override."""

    id: str
    src: str
    design: Dict[str, Any] = field(default_factory=dict)
    original_image_url: Optional[str] = None

    # Owned by the persistence layer; the renderer only reads it.
    is_saved: bool = False
    is_video: bool = False


@dataclass
class Campaign:
    """A named set of copy plus its ordered images."""

    headline: str
    subheadline: str = ""
    description: str = ""
    hashtags: List[str] = field(default_factory=list)
    images: List[CampaignImage] = field(default_factory=list)
    id: str = "campaign"

    def headline_rows(self) -> List[str]:
        text = self.headline.replace("\r\n", "\n")
        return text.split("\n") if text else []


@dataclass(frozen=True)
class BrandLogo:
    name: str
    data_url: str


@dataclass
class BrandAssets:
    """Brand kit consumed read-only by the renderer."""

    logos: List[BrandLogo] = field(default_factory=list)
    primary_logo_index: int = 0
    brand_name: str = "My Brand"
    colors: List[str] = field(default_factory=list)

    def primary_logo(self) -> Optional[BrandLogo]:
        if not self.logos:
            return None
        if 0 <= self.primary_logo_index < len(self.logos):
            return self.logos[self.primary_logo_index]
        return self.logos[0]


@dataclass
class RenderJob:
    """Top level render configuration parsed from a job file."""

    campaign: Campaign

    # Template design the per-image overrides are merged onto.
    design: DesignSettings = field(default_factory=DesignSettings)

    brand_assets: BrandAssets = field(default_factory=BrandAssets)
    project_size: str = "12x12"
    user_plan: str = UserPlan.CREATOR

    # Id of the built-in template the design started from, if any.
    template: Optional[str] = None
