"""
Card sheet rendering engine.

Draws every character of a deck as a print-and-cut card onto A4 pages
(3x3 grid, see card_layout.py) and optionally appends an alphabetical
overview table. Each card consists of:
    - a thin black outer rectangle (the cut guide)
    - a rounded inner panel in the configured background color
    - the character name above the panel (optional)
    - the ability text inside the panel, shrunk until it fits

The whole document is built in memory and only written to its destination
once rendering succeeded.
"""
from __future__ import annotations

import contextlib
import io
import logging
import os
from dataclasses import dataclass
from typing import BinaryIO, List, Optional, Sequence, Tuple, Union
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT
from reportlab.lib.styles import ParagraphStyle
from reportlab.pdfgen import canvas as pdf_canvas
from reportlab.platypus import Frame, Paragraph, Spacer, Table, TableStyle
from reportlab.platypus.doctemplate import LayoutError

from card_config import RGB, FontSet, RenderConfig
from card_layout import CardGeometry, plan_pages

OUTER_LINE_WIDTH = 0.5
INNER_CORNER_RADIUS = 5
NAME_FONT_SIZE = 12
NAME_TOP_OFFSET = 20
SIMULATED_BOLD_STROKE = 0.3
TEXT_PADDING = 3
ABILITY_FONT_SIZE = 8.0
ABILITY_MIN_FONT_SIZE = 4.0
ABILITY_FONT_STEP = 0.5
LEADING_RATIO = 1.2

OVERVIEW_NAME_FONT_SIZE = 10
OVERVIEW_ABILITY_FONT_SIZE = 6
OVERVIEW_CELL_PADDING = 5
OVERVIEW_SPACING_BEFORE = 10
OVERVIEW_COLUMN_RATIO = (1, 3)

logger = logging.getLogger(__name__)

Output = Union[str, "os.PathLike[str]", BinaryIO]


class DeckError(ValueError):
    """The character data cannot be rendered."""


@dataclass(frozen=True)
class CharacterRecord:
    id: str
    display_name: str
    ability_text: str = ""

    def __post_init__(self):
        if not isinstance(self.id, str) or not self.id.strip():
            raise DeckError(f"Character id must be a non-empty string, got {self.id!r}")
        if not isinstance(self.display_name, str):
            raise DeckError(f"Character '{self.id}' has no usable name")
        if not isinstance(self.ability_text, str):
            raise DeckError(f"Character '{self.id}' has no usable ability text")


@dataclass(frozen=True)
class RenderResult:
    output: str
    cards_drawn: int
    card_pages: int
    overview_pages: int

    @property
    def total_pages(self) -> int:
        return self.card_pages + self.overview_pages


def output_filename(language: str) -> str:
    return f"characters_{language}.pdf"


def to_color(rgb: RGB) -> colors.Color:
    r, g, b = rgb
    return colors.Color(r / 255.0, g / 255.0, b / 255.0)


def _markup(text: str) -> str:
    return escape(text).replace("\n", "<br/>")


# --------------------------- Text fitting ------------------------------------

def ability_style(font_name: str, size: float, text_color: RGB) -> ParagraphStyle:
    return ParagraphStyle(
        name=f"ability-{size}",
        fontName=font_name,
        fontSize=size,
        leading=size * LEADING_RATIO,
        alignment=TA_CENTER,
        textColor=to_color(text_color),
    )


def text_fits(text: str, font_name: str, size: float, width: float, height: float, text_color: RGB = (0, 0, 0)) -> bool:
    """Lay the text out at the given size without drawing it."""
    para = Paragraph(_markup(text), ability_style(font_name, size, text_color))
    _, h = para.wrap(width, height)
    return h <= height


def fit_text_size(
    text: str,
    font_name: str,
    width: float,
    height: float,
    start_size: float = ABILITY_FONT_SIZE,
    min_size: float = ABILITY_MIN_FONT_SIZE,
    step: float = ABILITY_FONT_STEP,
) -> float:
    """Largest size from start_size down to min_size (in steps) at which the text fits.

    Linear rather than binary search: abilities are short and the steps few.
    At min_size the text is accepted even if it still overflows.
    """
    size = start_size
    while size > min_size:
        if text_fits(text, font_name, size, width, height):
            break
        size -= step
    return max(size, min_size)


def draw_fitted_text(
    c: pdf_canvas.Canvas,
    text: str,
    box: Tuple[float, float, float, float],
    font_name: str,
    text_color: RGB,
    start_size: float = ABILITY_FONT_SIZE,
    min_size: float = ABILITY_MIN_FONT_SIZE,
) -> float:
    """Draw text centred and top-aligned in box (x0, y0, x1, y1); returns the size used."""
    x0, y0, x1, y1 = box
    width, height = x1 - x0, y1 - y0
    size = fit_text_size(text, font_name, width, height, start_size, min_size)
    para = Paragraph(_markup(text), ability_style(font_name, size, text_color))
    _, h = para.wrap(width, height)
    para.drawOn(c, x0, y1 - h)
    return size


# --------------------------- Card Renderer -----------------------------------

def draw_name(c: pdf_canvas.Canvas, name: str, centre_x: float, baseline: float, fonts: FontSet) -> None:
    """Centred name in the bold face; a TTF without bold sibling is stroked to look bold."""
    if not fonts.simulated_bold:
        c.setFont(fonts.bold, NAME_FONT_SIZE)
        c.drawCentredString(centre_x, baseline, name)
        return
    width = c.stringWidth(name, fonts.bold, NAME_FONT_SIZE)
    text = c.beginText(centre_x - width / 2, baseline)
    text.setFont(fonts.bold, NAME_FONT_SIZE)
    # fill and stroke
    text.setTextRenderMode(2)
    c.setLineWidth(SIMULATED_BOLD_STROKE)
    c.drawText(text)


def draw_card(
    c: pdf_canvas.Canvas,
    character: CharacterRecord,
    origin: Tuple[float, float],
    config: RenderConfig,
    fonts: FontSet,
    geometry: CardGeometry,
) -> float:
    x, y = origin
    w, h = geometry.outer_width, geometry.outer_height
    ix, iy = geometry.inner_origin(origin)
    iw, ih = geometry.inner_width, geometry.inner_height
    text_color = to_color(config.text_color)

    c.saveState()

    # Outer rectangle is the cut guide and always black
    c.setLineWidth(OUTER_LINE_WIDTH)
    c.setStrokeColor(colors.black)
    c.rect(x, y, w, h, stroke=1, fill=0)

    c.setFillColor(to_color(config.background_color))
    c.roundRect(ix, iy, iw, ih, INNER_CORNER_RADIUS, stroke=0, fill=1)
    c.setStrokeColor(text_color)
    c.roundRect(ix, iy, iw, ih, INNER_CORNER_RADIUS, stroke=1, fill=0)

    c.setFillColor(text_color)
    if config.show_name:
        draw_name(c, character.display_name, x + w / 2, y + h - NAME_TOP_OFFSET, fonts)

    box = (ix + TEXT_PADDING, iy + TEXT_PADDING, ix + iw - TEXT_PADDING, iy + ih - TEXT_PADDING)
    size = draw_fitted_text(c, character.ability_text, box, fonts.regular, config.text_color)

    c.restoreState()
    return size


# --------------------------- Overview page -----------------------------------

def sorted_for_overview(deck: Sequence[CharacterRecord]) -> List[CharacterRecord]:
    """Copy of the deck ordered by display name; ties keep deck order."""
    return sorted(deck, key=lambda ch: ch.display_name)


def overview_table(deck: Sequence[CharacterRecord], fonts: FontSet, width: float) -> Table:
    name_style = ParagraphStyle(
        name="overview-name",
        fontName=fonts.bold,
        fontSize=OVERVIEW_NAME_FONT_SIZE,
        leading=OVERVIEW_NAME_FONT_SIZE * LEADING_RATIO,
        alignment=TA_LEFT,
    )
    ability_style_ = ParagraphStyle(
        name="overview-ability",
        fontName=fonts.regular,
        fontSize=OVERVIEW_ABILITY_FONT_SIZE,
        leading=OVERVIEW_ABILITY_FONT_SIZE * LEADING_RATIO,
        alignment=TA_LEFT,
    )
    rows = [
        [Paragraph(_markup(ch.display_name), name_style), Paragraph(_markup(ch.ability_text), ability_style_)]
        for ch in sorted_for_overview(deck)
    ]
    total = sum(OVERVIEW_COLUMN_RATIO)
    col_widths = [width * part / total for part in OVERVIEW_COLUMN_RATIO]
    table = Table(rows, colWidths=col_widths)
    table.setStyle(
        TableStyle(
            [
                ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("LEFTPADDING", (0, 0), (-1, -1), OVERVIEW_CELL_PADDING),
                ("RIGHTPADDING", (0, 0), (-1, -1), OVERVIEW_CELL_PADDING),
                ("TOPPADDING", (0, 0), (-1, -1), OVERVIEW_CELL_PADDING),
                ("BOTTOMPADDING", (0, 0), (-1, -1), OVERVIEW_CELL_PADDING),
            ]
        )
    )
    return table


def _page_frame(geometry: CardGeometry) -> Frame:
    m = geometry.page_margin
    page_w, page_h = geometry.page_size
    return Frame(
        m,
        m,
        page_w - 2 * m,
        page_h - 2 * m,
        leftPadding=0,
        rightPadding=0,
        topPadding=0,
        bottomPadding=0,
    )


def draw_overview(c: pdf_canvas.Canvas, deck: Sequence[CharacterRecord], fonts: FontSet, geometry: CardGeometry) -> int:
    """Draw the index table on fresh pages; returns the number of pages used.

    Expects the previous page to be finished already. A table taller than
    one page is split across as many pages as needed.
    """
    width = geometry.page_size[0] - 2 * geometry.page_margin
    story = [Spacer(1, OVERVIEW_SPACING_BEFORE), overview_table(deck, fonts, width)]
    pages = 0
    while story:
        frame = _page_frame(geometry)
        placed = False
        while story:
            if frame.add(story[0], c):
                story.pop(0)
                placed = True
                continue
            parts = frame.split(story[0], c)
            if len(parts) < 2 or not frame.add(parts[0], c):
                break
            story[0:1] = parts[1:]
            placed = True
        if not placed:
            raise LayoutError("Overview row too large to fit on a page")
        c.showPage()
        pages += 1
    return pages


# --------------------------- Document ----------------------------------------

def validate_deck(deck: Sequence[CharacterRecord]) -> None:
    if not deck:
        raise DeckError("No characters to render")
    for i, ch in enumerate(deck):
        if not isinstance(ch, CharacterRecord):
            raise DeckError(f"Deck entry {i} is not a character record: {ch!r}")


def write_output(data: bytes, output: Output) -> str:
    """Write the finished PDF; a failed write leaves no partial file behind."""
    if hasattr(output, "write"):
        output.write(data)  # type: ignore[union-attr]
        return getattr(output, "name", "<stream>")
    path = os.fspath(output)  # type: ignore[arg-type]
    f = None
    try:
        with open(path, "wb") as f:
            f.write(data)
    except OSError:
        if f is not None:
            with contextlib.suppress(OSError):
                os.remove(path)
        raise
    return path


def render_deck(
    deck: Sequence[CharacterRecord],
    config: RenderConfig,
    fonts: Optional[FontSet] = None,
    output: Optional[Output] = None,
    geometry: Optional[CardGeometry] = None,
    log: Optional[logging.Logger] = None,
) -> RenderResult:
    """Render the card pages (and the overview) and write the PDF.

    Raises DeckError for unusable data and OSError when the output cannot be
    written. The deck is only read, never reordered.
    """
    log = log or logger
    validate_deck(deck)
    fonts = fonts or FontSet()
    geometry = geometry or CardGeometry(spacing_cm=config.card_spacing_cm)
    if output is None:
        output = output_filename(config.language)
    if not geometry.grid_fits_page():
        log.warning(
            "Card spacing of %.2f cm pushes the grid past the page margins; cards will be cut off",
            config.card_spacing_cm,
        )

    with io.BytesIO() as buf:
        c = pdf_canvas.Canvas(buf, pagesize=geometry.page_size)
        c.setTitle(f"Characters ({config.language})")

        cards_drawn = 0
        card_pages = 0
        for placement in plan_pages(len(deck), geometry.cards_per_page, dry_run=config.dry_run):
            character = deck[placement.index]
            log.debug("Rendering card %d/%d: %s", placement.index + 1, len(deck), character.display_name)
            draw_card(c, character, geometry.card_origin(placement.slot), config, fonts, geometry)
            cards_drawn += 1
            if placement.new_page_after:
                c.showPage()
                card_pages += 1
        c.showPage()
        card_pages += 1

        overview_pages = 0
        if config.print_overview and not config.dry_run:
            overview_pages = draw_overview(c, deck, fonts, geometry)

        c.save()
        path = write_output(buf.getvalue(), output)

    log.info("PDF created: %s (%d cards, %d card pages, %d overview pages)", path, cards_drawn, card_pages, overview_pages)
    return RenderResult(output=path, cards_drawn=cards_drawn, card_pages=card_pages, overview_pages=overview_pages)
