# visual_analysis.py
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from PIL import Image

from . import config
from .exceptions import VisualAnalysisError

try:
    # Google GenAI multimodal client
    from google import genai  # type: ignore
    from google.genai import types  # type: ignore
except Exception:  # pragma: no cover
    genai = None  # type: ignore
    types = None  # type: ignore


Box = Dict[str, float]

_VALID_OVERLAY_COLOR = re.compile(r"^(rgba?\([^)]+\)|#[0-9A-Fa-f]{6})")

# Normalized (x, y, width, height) of each named third of the image.
_REGION_BOXES: Dict[str, Tuple[float, float, float, float]] = {
    "top-left": (0.0, 0.0, 0.33, 0.33),
    "top-center": (0.33, 0.0, 0.34, 0.33),
    "top-right": (0.67, 0.0, 0.33, 0.33),
    "middle-left": (0.0, 0.33, 0.33, 0.34),
    "middle-center": (0.33, 0.33, 0.34, 0.34),
    "middle-right": (0.67, 0.33, 0.33, 0.34),
    "bottom-left": (0.0, 0.67, 0.33, 0.33),
    "bottom-center": (0.33, 0.67, 0.34, 0.33),
    "bottom-right": (0.67, 0.67, 0.33, 0.33),
}


# ---------------------------------------------------------------------------
# Gemini client
# ---------------------------------------------------------------------------

_CLIENT: Optional["genai.Client"] = None  # type: ignore


def _get_client() -> "genai.Client":  # type: ignore
    """
    Lazily create a singleton Google GenAI client for visual analysis.

    Uses GEMINI_API_KEY or GOOGLE_API_KEY from the environment.
    """
    global _CLIENT

    if _CLIENT is not None:
        return _CLIENT

    if genai is None:
        raise VisualAnalysisError(
            "google-genai is required for AI layout analysis. "
            "Install with: pip install google-genai"
        )

    api_key = config.gemini_api_key()
    if not api_key:
        raise VisualAnalysisError(
            "GEMINI_API_KEY or GOOGLE_API_KEY must be set for AI layout analysis."
        )

    _CLIENT = genai.Client(api_key=api_key)  # type: ignore

    logging.info("Initialized Gemini client for visual text-placement analysis.")
    return _CLIENT


@dataclass
class VisualAnalysisResult:
    """Structured result of the AI text-placement analysis."""

    detected_faces: List[Box] = field(default_factory=list)
    detected_objects: List[Box] = field(default_factory=list)
    brightness_zones: List[Dict[str, Any]] = field(default_factory=list)
    recommended_text_region: str = "top-left"
    recommended_text_color: str = "light"
    use_background_overlay: bool = False
    overlay_color: Optional[str] = None
    overlay_opacity: Optional[float] = None
    raw_json: Dict[str, Any] = field(default_factory=dict)


SYSTEM_PROMPT = (
    "You are an expert visual analyst specializing in image composition and text "
    "placement for marketing materials.\n\n"
    "Analyze the provided image and determine:\n"
    "1. **Detected Faces**: Identify ALL human faces and their bounding boxes "
    "(normalized 0-1 coordinates). Be thorough - even partial faces matter.\n"
    "2. **Detected Objects**: Identify ALL important objects/subjects and their bounding "
    "boxes (normalized 0-1 coordinates). Include people, products, focal points.\n"
    "3. **Brightness Zones**: Analyze brightness/darkness in 9 regions (top-left, "
    "top-center, top-right, middle-left, middle-center, middle-right, bottom-left, "
    "bottom-center, bottom-right)\n"
    "4. **Recommended Text Region**: Best region for text placement that COMPLETELY "
    "avoids faces/objects. Prioritize regions with NO detected faces or important objects.\n"
    "5. **Recommended Text Color**: 'light' (white/bright) or 'dark' (black/dark gray) "
    "based on background brightness\n"
    "6. **Background Overlay**: Whether a semi-transparent background overlay is needed "
    "behind text for better contrast and readability\n\n"
    "Return your analysis in the following JSON format:\n"
    "{\n"
    '  "detectedFaces": [{"x": 0.2, "y": 0.3, "width": 0.15, "height": 0.2}],\n'
    '  "detectedObjects": [{"x": 0.5, "y": 0.4, "width": 0.3, "height": 0.4, "label": "product"}],\n'
    '  "brightnessZones": [\n'
    '    {"region": "top-left", "brightness": 180, "variance": 1200},\n'
    '    {"region": "top-center", "brightness": 200, "variance": 800}\n'
    "  ],\n"
    '  "recommendedTextRegion": "top-right",\n'
    '  "recommendedTextColor": "light",\n'
    '  "useBackgroundOverlay": true,\n'
    '  "overlayColor": "rgba(0,0,0,0.5)",\n'
    '  "overlayOpacity": 0.7\n'
    "}\n\n"
    "CRITICAL Guidelines for Text Region Selection:\n"
    "- **TOP PRIORITY**: Choose a region with ZERO overlap with faces or important objects\n"
    "- Calculate overlap percentage for each region - ONLY recommend regions with 0% overlap\n"
    "- If multiple regions have no overlap, choose the one with lowest brightness variance "
    "(most uniform)\n"
    "- NEVER recommend a region that covers even part of a face or key object\n"
    "- Recommended region must have at least 70% empty space for text\n\n"
    "Guidelines for Background Overlay:\n"
    '- Set "useBackgroundOverlay": true when:\n'
    "  * Brightness variance in recommended region is > 3000 (indicates busy/textured background)\n"
    "  * OR recommended text color would have poor contrast (brightness 100-155 is problematic)\n"
    "  * OR there are complex patterns in the text region\n"
    '- "overlayColor" should be:\n'
    '  * "rgba(0,0,0,0.6)" (dark overlay) when recommendedTextColor is "light"\n'
    '  * "rgba(255,255,255,0.7)" (light overlay) when recommendedTextColor is "dark"\n'
    '- "overlayOpacity" should be 0.6-0.8 (higher for busier backgrounds)\n\n'
    "Technical Details:\n"
    "- Coordinates are normalized 0-1 (0 = left/top edge, 1 = right/bottom edge)\n"
    "- Brightness is 0-255 (0 = black, 255 = white)\n"
    "- Variance indicates uniformity (lower = more uniform, better for text)\n"
    "- Text must be highly readable - when in doubt, recommend background overlay"
)

USER_PROMPT = "Analyze this image and provide detailed visual analysis for optimal text placement."


def _list_field(data: Mapping[str, Any], key: str) -> List[Any]:
    value = data.get(key)
    return list(value) if isinstance(value, list) else []


def parse_analysis(data: Mapping[str, Any]) -> VisualAnalysisResult:
    """
    Sanitize a decoded analysis payload.

    Overlay opacity is clamped to 0..1 and an overlay color that is neither
    an rgb()/rgba() function nor a 6-digit hex value is dropped. Detection
    lists that are not JSON arrays are treated as empty.
    """
    overlay_opacity = data.get("overlayOpacity")
    if isinstance(overlay_opacity, (int, float)) and not isinstance(overlay_opacity, bool):
        overlay_opacity = max(0.0, min(1.0, float(overlay_opacity)))
    else:
        overlay_opacity = None

    overlay_color = data.get("overlayColor")
    if isinstance(overlay_color, str) and overlay_color:
        if not _VALID_OVERLAY_COLOR.match(overlay_color):
            logging.warning("Invalid overlay color from AI analysis, ignoring it: %s", overlay_color)
            overlay_color = None
    else:
        overlay_color = None

    text_color = data.get("recommendedTextColor")
    return VisualAnalysisResult(
        detected_faces=_list_field(data, "detectedFaces"),
        detected_objects=_list_field(data, "detectedObjects"),
        brightness_zones=_list_field(data, "brightnessZones"),
        recommended_text_region=str(data.get("recommendedTextRegion") or "top-left"),
        recommended_text_color=text_color if text_color in ("light", "dark") else "light",
        use_background_overlay=bool(data.get("useBackgroundOverlay", False)),
        overlay_color=overlay_color,
        overlay_opacity=overlay_opacity,
        raw_json=dict(data),
    )


def analyze_visual_for_text_placement(image: Image.Image) -> VisualAnalysisResult:
    """
    Ask Gemini where text can go on ``image`` without covering faces or objects.

    Raises ``VisualAnalysisError`` when the SDK or API key is missing, the
    call fails, or the model does not return a JSON object.
    """
    client = _get_client()

    logging.info(
        "Calling Gemini (%s) for text-placement analysis of a %dx%d image.",
        config.GEMINI_VISION_MODEL,
        image.width,
        image.height,
    )

    try:
        response = client.models.generate_content(  # type: ignore
            model=config.GEMINI_VISION_MODEL,
            contents=[image.convert("RGB"), USER_PROMPT],
            config=types.GenerateContentConfig(  # type: ignore
                system_instruction=SYSTEM_PROMPT,
                response_mime_type="application/json",
            ),
        )
    except Exception as exc:
        raise VisualAnalysisError(f"Gemini visual analysis request failed: {exc}") from exc

    raw = (getattr(response, "text", "") or "").strip()
    if not raw:
        raise VisualAnalysisError("Gemini visual analysis returned an empty response.")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        logging.debug("Raw visual analysis response text (truncated): %s", raw[:500])
        raise VisualAnalysisError(f"Failed to parse JSON from Gemini visual analysis: {exc}") from exc

    if not isinstance(data, dict):
        raise VisualAnalysisError("Gemini visual analysis did not return a JSON object.")

    try:
        result = parse_analysis(data)
        avoids_faces, avoids_objects = region_is_clear(result)
    except (KeyError, TypeError, ValueError) as exc:
        raise VisualAnalysisError(f"Malformed Gemini visual analysis payload: {exc}") from exc
    logging.info(
        "AI analysis recommends region=%s color=%s (avoids faces=%s, objects=%s).",
        result.recommended_text_region,
        result.recommended_text_color,
        avoids_faces,
        avoids_objects,
    )
    return result


# ---------------------------------------------------------------------------
# Region geometry
# ---------------------------------------------------------------------------


def region_box(region: str) -> Box:
    """Normalized box of a named region; unknown names map to top-left."""
    x, y, w, h = _REGION_BOXES.get(region, _REGION_BOXES["top-left"])
    return {"x": x, "y": y, "width": w, "height": h}


def boxes_intersect(a: Mapping[str, float], b: Mapping[str, float]) -> bool:
    """True if two normalized boxes overlap or touch."""
    return not (
        a["x"] + a["width"] < b["x"]
        or b["x"] + b["width"] < a["x"]
        or a["y"] + a["height"] < b["y"]
        or b["y"] + b["height"] < a["y"]
    )


def _as_box(raw: Any) -> Optional[Box]:
    try:
        return {k: float(raw[k]) for k in ("x", "y", "width", "height")}
    except (KeyError, TypeError, ValueError):
        return None


def region_is_clear(result: VisualAnalysisResult) -> Tuple[bool, bool]:
    """(avoids_faces, avoids_objects) for the recommended region."""
    region = region_box(result.recommended_text_region)
    faces = [b for b in map(_as_box, result.detected_faces) if b is not None]
    objects = [b for b in map(_as_box, result.detected_objects) if b is not None]
    return (
        not any(boxes_intersect(region, face) for face in faces),
        not any(boxes_intersect(region, obj) for obj in objects),
    )
