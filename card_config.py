"""
Render configuration and font resolution for the character card generator.

Raw command line values (hex colors, spacing strings, font paths) are turned
into a fully valid RenderConfig and a FontSet here. Nothing in this module
raises for bad input: problems are logged as warnings and replaced by the
documented defaults.

Defaults:
    background color  #F5F5DC (beige, readable on transparency film)
    text color        #000000
    card spacing      0.0 cm extra on top of the fixed 0.2 cm gaps
    font              Farro-Regular.ttf from ./fonts, else Helvetica
"""
from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

from PIL import ImageColor
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont

RGB = Tuple[int, int, int]

DEFAULT_BG_COLOR = "#F5F5DC"
DEFAULT_TEXT_COLOR = "#000000"
DEFAULT_BG_RGB: RGB = (245, 245, 220)
DEFAULT_TEXT_RGB: RGB = (0, 0, 0)

BUNDLED_FONT = "Farro-Regular.ttf"
BUNDLED_BOLD_FONT = "Farro-Bold.ttf"
FALLBACK_FONT = "Helvetica"
FALLBACK_BOLD_FONT = "Helvetica-Bold"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderConfig:
    language: str
    show_name: bool = False
    print_overview: bool = True
    dry_run: bool = False
    background_color: RGB = DEFAULT_BG_RGB
    text_color: RGB = DEFAULT_TEXT_RGB
    card_spacing_cm: float = 0.0


@dataclass(frozen=True)
class FontSet:
    regular: str = FALLBACK_FONT
    bold: str = FALLBACK_BOLD_FONT
    embedded: bool = False

    @property
    def simulated_bold(self) -> bool:
        """True when names must be emboldened by stroking the regular face."""
        return self.embedded and self.bold == self.regular


def parse_color(value: Optional[str], fallback: RGB, label: str = "color", log: Optional[logging.Logger] = None) -> RGB:
    """Parse '#RGB', '#RRGGBB' or a named color; warn and use fallback otherwise."""
    log = log or logger
    if value is None:
        return fallback
    s = value.strip()
    # Bare hex digits are accepted for convenience (e.g. 'F5F5DC')
    if s and not s.startswith("#") and len(s) in (3, 6) and all(c in "0123456789abcdefABCDEF" for c in s):
        s = "#" + s
    try:
        rgb = ImageColor.getrgb(s)
    except ValueError:
        log.warning("Invalid %s '%s'; using default %s", label, value, "#%02X%02X%02X" % fallback)
        return fallback
    return (rgb[0], rgb[1], rgb[2])


def parse_spacing(value, log: Optional[logging.Logger] = None) -> float:
    """Card spacing in centimetres; anything unusable becomes 0.0."""
    log = log or logger
    if value is None or value == "":
        return 0.0
    try:
        spacing = float(value)
    except (TypeError, ValueError):
        log.warning("Invalid card spacing '%s'; using 0 cm", value)
        return 0.0
    if not math.isfinite(spacing) or spacing < 0:
        log.warning("Card spacing must be a non-negative number, got '%s'; using 0 cm", value)
        return 0.0
    return spacing


def resolve_config(
    language: str,
    show_name: bool = False,
    skip_overview: bool = False,
    dry_run: bool = False,
    bg_color: Optional[str] = None,
    text_color: Optional[str] = None,
    spacing=None,
    log: Optional[logging.Logger] = None,
) -> RenderConfig:
    log = log or logger
    return RenderConfig(
        language=language,
        show_name=bool(show_name),
        print_overview=not skip_overview,
        dry_run=bool(dry_run),
        background_color=parse_color(bg_color, DEFAULT_BG_RGB, "background color", log),
        text_color=parse_color(text_color, DEFAULT_TEXT_RGB, "text color", log),
        card_spacing_cm=parse_spacing(spacing, log),
    )


def find_font_file(candidates: List[str]) -> Optional[str]:
    """Return the first existing font file path from candidates.
    Searches ./fonts relative to this module first, then the working directory.
    """
    search_roots = [os.path.join(os.path.dirname(os.path.abspath(__file__)), "fonts"), os.getcwd()]
    for root in search_roots:
        for name in candidates:
            p = os.path.join(root, name)
            if os.path.isfile(p):
                return p
    return None


def _font_name(path: str) -> str:
    return os.path.splitext(os.path.basename(path))[0]


def register_ttf(path: str) -> str:
    name = _font_name(path)
    if name not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(TTFont(name, path))
    return name


def resolve_fonts(font_path: Optional[str] = None, log: Optional[logging.Logger] = None) -> FontSet:
    """Register the card font, falling back to the built-in Helvetica faces.

    An explicit font_path wins over the bundled Farro font. The bold face is
    looked up next to the regular one ('<stem>-Bold.ttf' or the bundled
    Farro-Bold.ttf); without it names are drawn in the regular face
    stroked to simulate bold.
    """
    log = log or logger
    path = font_path or find_font_file([BUNDLED_FONT])
    if not path:
        log.warning("Could not find %s in ./fonts; using %s as fallback", BUNDLED_FONT, FALLBACK_FONT)
        return FontSet()
    try:
        regular = register_ttf(path)
    except Exception as e:
        log.warning("Could not load font %s: %s; using %s as fallback", path, e, FALLBACK_FONT)
        return FontSet()

    bold = regular
    stem = _font_name(path).split("-")[0]
    bold_candidates = [
        os.path.join(os.path.dirname(path), f"{stem}-Bold.ttf"),
        find_font_file([BUNDLED_BOLD_FONT]) if font_path is None else None,
    ]
    for candidate in bold_candidates:
        if candidate and os.path.isfile(candidate):
            try:
                bold = register_ttf(candidate)
            except Exception as e:
                log.warning("Could not load bold font %s: %s", candidate, e)
                continue
            break
    log.info("Using font %s (bold: %s)", regular, bold)
    return FontSet(regular=regular, bold=bold, embedded=True)
