"""
Physical card geometry and grid placement.

All measurements are PDF points (1 cm = 28.3465 pt). Cards are 6.1 x 8.7 cm
and tiled 3 x 3 per A4 page; the grid is centred on the page. The PDF origin
is bottom-left, so rows advance downwards by subtracting from y.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, NamedTuple, Tuple

from reportlab.lib.pagesizes import A4

CM = 28.3465

DEFAULT_GRID_COLS = 3
DEFAULT_GRID_ROWS = 3
DEFAULT_CARDS_PER_PAGE = DEFAULT_GRID_COLS * DEFAULT_GRID_ROWS
PAGE_MARGIN = 20  # points, all sides


@dataclass(frozen=True)
class CardGeometry:
    outer_width: float = 6.1 * CM
    outer_height: float = 8.7 * CM
    inner_width: float = 5.2 * CM
    inner_height: float = 2.5 * CM
    inner_margin_bottom: float = 0.7 * CM
    base_gap: float = 0.2 * CM
    spacing_cm: float = 0.0
    cols: int = DEFAULT_GRID_COLS
    rows: int = DEFAULT_GRID_ROWS
    page_size: Tuple[float, float] = A4
    page_margin: float = PAGE_MARGIN

    @property
    def horizontal_gap(self) -> float:
        return self.base_gap + self.spacing_cm * CM

    @property
    def vertical_gap(self) -> float:
        return self.base_gap + self.spacing_cm * CM

    @property
    def cards_per_page(self) -> int:
        return self.cols * self.rows

    @property
    def grid_width(self) -> float:
        return self.cols * self.outer_width + (self.cols - 1) * self.horizontal_gap

    @property
    def grid_height(self) -> float:
        return self.rows * self.outer_height + (self.rows - 1) * self.vertical_gap

    @property
    def start_x(self) -> float:
        return (self.page_size[0] - self.grid_width) / 2

    @property
    def start_y(self) -> float:
        # Bottom edge of the top row
        return (self.page_size[1] - self.grid_height) / 2 + self.grid_height - self.outer_height

    def card_origin(self, n: int) -> Tuple[float, float]:
        """Bottom-left corner of the card in slot n (0-based) of a page."""
        if not 0 <= n < self.cards_per_page:
            raise IndexError(f"slot {n} outside a {self.cols}x{self.rows} page")
        row, col = divmod(n, self.cols)
        x = self.start_x + col * (self.outer_width + self.horizontal_gap)
        y = self.start_y - row * (self.outer_height + self.vertical_gap)
        return x, y

    def inner_origin(self, origin: Tuple[float, float]) -> Tuple[float, float]:
        x, y = origin
        return x + (self.outer_width - self.inner_width) / 2, y + self.inner_margin_bottom

    def grid_fits_page(self) -> bool:
        usable_w = self.page_size[0] - 2 * self.page_margin
        usable_h = self.page_size[1] - 2 * self.page_margin
        return self.grid_width <= usable_w and self.grid_height <= usable_h


class Placement(NamedTuple):
    index: int
    slot: int
    new_page_after: bool


def plan_pages(count: int, cards_per_page: int = DEFAULT_CARDS_PER_PAGE, dry_run: bool = False) -> Iterator[Placement]:
    """Yield where each card goes and whether a page break follows it.

    A break follows a full page only when another card comes after it, so the
    last card never leaves a trailing blank page. Dry run places one card.
    """
    if dry_run:
        count = min(count, 1)
    for index in range(count):
        slot = index % cards_per_page
        has_next = index + 1 < count
        yield Placement(index, slot, slot == cards_per_page - 1 and has_next)


def page_count(count: int, cards_per_page: int = DEFAULT_CARDS_PER_PAGE) -> int:
    return -(-count // cards_per_page)
