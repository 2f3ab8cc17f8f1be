from __future__ import annotations

"""
Text measurement, font loading and line wrapping.

Latin text wraps word by word and never splits a word. Text containing any
Chinese, Japanese or Korean character wraps character by character instead,
because those scripts do not separate words with spaces. CJK blocks are also
pre-shrunk before wrapping so long phrases do not explode into many lines.
"""

import logging
import re
from functools import lru_cache
from typing import Callable, Dict, List, Sequence, Union

from PIL import ImageFont

from . import config


HEADLINE_LINE_HEIGHT = 1.2
HEADLINE_CJK_LINE_HEIGHT = 1.3
SUBHEADLINE_CJK_LINE_HEIGHT = 1.4

# CJK Unified Ideographs (+ Extension A), Hiragana, Katakana, Hangul syllables.
_CJK_PATTERN = re.compile("[\u4E00-\u9FFF\u3400-\u4DBF\u3040-\u309F\u30A0-\u30FF\uAC00-\uD7AF]")


def is_cjk_text(text: str) -> bool:
    """True if any character of ``text`` belongs to a CJK script."""
    return bool(text) and _CJK_PATTERN.search(text) is not None


# ---------------------------------------------------------------------------
# Fonts
# ---------------------------------------------------------------------------

FontType = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]

# Candidate files per CSS family, most specific first. Pillow resolves bare
# file names against the platform font folders itself.
_FAMILY_FILES: Dict[str, Sequence[str]] = {
    "inter": ("Inter-Regular.ttf", "Inter_24pt-Regular.ttf", "Inter.ttf", "DejaVuSans.ttf"),
    "arial": ("arial.ttf", "Arial.ttf", "LiberationSans-Regular.ttf", "DejaVuSans.ttf"),
    "helvetica": ("Helvetica.ttc", "LiberationSans-Regular.ttf", "DejaVuSans.ttf"),
    "georgia": ("georgia.ttf", "Georgia.ttf", "LiberationSerif-Regular.ttf", "DejaVuSerif.ttf"),
    "times new roman": ("times.ttf", "Times New Roman.ttf", "LiberationSerif-Regular.ttf", "DejaVuSerif.ttf"),
    "courier new": ("cour.ttf", "Courier New.ttf", "LiberationMono-Regular.ttf", "DejaVuSansMono.ttf"),
}
_DEFAULT_FILES: Sequence[str] = ("DejaVuSans.ttf", "arial.ttf", "LiberationSans-Regular.ttf")
_CJK_FILES: Sequence[str] = (
    "NotoSansCJK-Regular.ttc",
    "NotoSansSC-Regular.otf",
    "NotoSansCJKsc-Regular.otf",
    "wqy-microhei.ttc",
    "msyh.ttc",
    "PingFang.ttc",
)


def _candidate_files(family: str, cjk: bool) -> List[str]:
    key = family.split(",")[0].strip().strip("'\"").lower()
    names: List[str] = []
    if cjk:
        names.extend(_CJK_FILES)
    names.extend(_FAMILY_FILES.get(key, ()))
    names.extend(_DEFAULT_FILES)

    extra = config.fonts_dir()
    if extra is not None:
        # Files dropped into the configured folder win over system fonts.
        prefixed = [str(extra / name) for name in names]
        family_file = [str(p) for p in sorted(extra.glob(f"{family.replace(' ', '')}*")) if p.is_file()]
        names = family_file + prefixed + names
    return names


@lru_cache(maxsize=256)
def load_font(family: str, size: int, cjk: bool = False) -> FontType:
    """Load a font for ``family`` at ``size`` pixels, falling back gracefully."""
    size = max(1, int(round(size)))
    for name in _candidate_files(family, cjk):
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    logging.debug("No TrueType file found for family %r; using Pillow's default font.", family)
    return ImageFont.load_default(size=size)


# ---------------------------------------------------------------------------
# Measurement
# ---------------------------------------------------------------------------


class TextMeasurer:
    """Measures rendered text width for one font and letter spacing."""

    def __init__(self, font: FontType, letter_spacing: float = 0.0):
        self.font = font
        self.letter_spacing = letter_spacing

    def __call__(self, text: str) -> float:
        if not text:
            return 0.0
        width = float(self.font.getlength(text))
        if self.letter_spacing:
            width += self.letter_spacing * (len(text) - 1)
        return width

    @classmethod
    def for_family(cls, family: str, size: float, cjk: bool = False,
                   letter_spacing: float = 0.0) -> "TextMeasurer":
        return cls(load_font(family, int(round(size)), cjk), letter_spacing)


Measure = Callable[[str], float]


# ---------------------------------------------------------------------------
# Wrapping
# ---------------------------------------------------------------------------


def _wrap_words(measure: Measure, paragraph: str, max_width: float) -> List[str]:
    words = paragraph.split()
    if not words:
        return [""]

    lines = []
    current = words[0]
    for word in words[1:]:
        trial = current + " " + word
        if measure(trial) <= max_width:
            current = trial
        else:
            lines.append(current)
            current = word
    lines.append(current)
    return lines


def _wrap_chars(measure: Measure, paragraph: str, max_width: float) -> List[str]:
    lines = []
    current = ""
    for ch in paragraph:
        trial = current + ch
        if current and measure(trial) > max_width:
            lines.append(current)
            current = ch
        else:
            current = trial
    if current:
        lines.append(current)
    return lines or [""]


def wrap_lines(measure: Measure, text: str, max_width: float) -> List[str]:
    """
    Wrap ``text`` into lines no wider than ``max_width`` where possible.

    Explicit newlines (``\\n`` or ``\\r\\n``) start a new paragraph and an
    empty paragraph produces an empty line. If the text contains any CJK
    character the whole text wraps per character; otherwise it wraps on
    spaces and a single word wider than ``max_width`` gets a line of its own.
    """
    if not text:
        return []

    text = text.replace("\r\n", "\n")
    wrap = _wrap_chars if is_cjk_text(text) else _wrap_words

    lines: List[str] = []
    for paragraph in text.split("\n"):
        if not paragraph:
            lines.append("")
            continue
        lines.extend(wrap(measure, paragraph, max_width))
    return lines


def get_cjk_adjusted_font_size(
        text: str,
        base_font_size: float,
        max_width: float,
        measure_at: Callable[[float], Measure],
) -> float:
    """
    Shrink the font size for CJK text; non-CJK text is returned unchanged.

    Long phrases are pre-shrunk by character count (more than 15 characters
    to 75%, more than 10 to 85%). If the unwrapped text is still wider than
    ``max_width`` it is shrunk proportionally with a 5% safety margin. The
    result never drops below half of ``base_font_size``.
    """
    if not is_cjk_text(text):
        return base_font_size

    count = len(text)
    if count > 15:
        factor = 0.75
    elif count > 10:
        factor = 0.85
    else:
        factor = 1.0
    size = base_font_size * factor

    measure = measure_at(size)
    width = max(measure(part) for part in text.replace("\r\n", "\n").split("\n"))
    if width > max_width > 0:
        size = size * (max_width / width) * 0.95

    return max(size, base_font_size * 0.5)
