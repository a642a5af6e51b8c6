"""
Shrink-to-fit layout for the personalised name and the salutation.

The name is rendered at a base size and shrunk geometrically until it fits
``max_width`` or the floor size is reached. Left-to-right names are split into
two coloured segments (first word bold, remainder regular); right-to-left
names are measured and drawn as a single right-aligned run.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Iterator

from PIL import Image, ImageDraw

from fonts import FontCatalog
from logging_setup import get_logger
from text_raster import (
    Direction,
    RasterResult,
    StyleSpec,
    blank_raster,
    encode_png,
    glyph_width,
    measure_run,
    render_text,
    visual_text,
)

logger = get_logger(__name__)

SHRINK_FACTOR = 0.9
LINE_HEIGHT_RATIO = 1.4
SPACE_FALLBACK_RATIO = 0.2


class FitState(str, Enum):
    MEASURING = "measuring"
    FITS = "fits"
    FLOOR_REACHED = "floor_reached"


@dataclass(frozen=True)
class FontPair:
    bold: str
    regular: str


@dataclass(frozen=True)
class NameColors:
    first: str
    rest: str


@dataclass(frozen=True)
class FitResult:
    size: int
    state: FitState
    measured_width: float
    raster: RasterResult


def shrink_sizes(base_size: int, min_size: int, factor: float = SHRINK_FACTOR) -> Iterator[int]:
    """Yield ``base_size`` then successively smaller sizes, ending at ``min_size``.

    A base size already at or below the floor is yielded alone.
    """
    size = int(base_size)
    yield size
    while size > min_size:
        size = max(min_size, math.floor(size * factor))
        yield size


def fit_text(
    candidates: Iterable[int],
    measure: Callable[[int], float],
    max_width: float,
) -> tuple[int, FitState, float]:
    """Return the first candidate size whose measured width fits.

    When none fits, the last candidate (the floor) is returned with
    ``FitState.FLOOR_REACHED``.
    """
    sizes = list(candidates)
    if not sizes:
        raise ValueError("fit_text needs at least one candidate size")

    state = FitState.MEASURING
    size, width = sizes[0], 0.0
    for index, size in enumerate(sizes):
        width = measure(size)
        if width <= max_width:
            state = FitState.FITS
            break
        if index == len(sizes) - 1:
            state = FitState.FLOOR_REACHED
    return size, state, width


def split_name(name: str) -> tuple[str, str]:
    parts = str(name or "").split(maxsplit=1)
    first = parts[0] if parts else ""
    rest = parts[1] if len(parts) > 1 else ""
    return first, rest


def render_salutation(catalog: FontCatalog, text: str, style: StyleSpec) -> RasterResult:
    return render_text(catalog, text, style)


class _SegmentMeasure:
    """Width of ``first + space + rest`` at a given size."""

    def __init__(self, catalog: FontCatalog, first: str, rest: str, fonts: FontPair) -> None:
        self.catalog = catalog
        self.first = first
        self.rest = rest
        self.fonts = fonts

    def parts(self, size: int) -> tuple[float, float, float]:
        bold = self.catalog.font(self.fonts.bold, size)
        regular = self.catalog.font(self.fonts.regular, size)
        first_w = glyph_width(measure_run(bold, self.first, size), size)
        rest_w = glyph_width(measure_run(regular, self.rest, size), size)
        space_w = bold.getlength(" ") or math.ceil(size * SPACE_FALLBACK_RATIO)
        return first_w, space_w, rest_w

    def __call__(self, size: int) -> float:
        first_w, space_w, rest_w = self.parts(size)
        return math.ceil(first_w + (space_w + rest_w if self.rest else 0))


def render_name(
    catalog: FontCatalog,
    name: str,
    base_size: int,
    fonts: FontPair,
    colors: NameColors,
    direction: Direction,
    max_width: float,
    min_size: int,
) -> FitResult:
    name = str(name or "")
    candidates = shrink_sizes(base_size, min_size)
    try:
        if direction == Direction.RTL:
            return _render_rtl_name(catalog, name, candidates, fonts, colors, max_width)
        return _render_split_name(catalog, name, candidates, fonts, colors, max_width)
    except Exception:
        logger.warning("Name layout for '%s' failed; using a blank image.", name, exc_info=True)
        return FitResult(int(base_size), FitState.MEASURING, 0.0, blank_raster())


def _render_rtl_name(
    catalog: FontCatalog,
    name: str,
    candidates: Iterable[int],
    fonts: FontPair,
    colors: NameColors,
    max_width: float,
) -> FitResult:
    shown = visual_text(name, Direction.RTL)

    def measure(size: int) -> float:
        font = catalog.font(fonts.bold, size)
        return glyph_width(measure_run(font, shown, size), size)

    size, state, width = fit_text(candidates, measure, max_width)
    logger.debug("RTL name fitted at %spx (%s, width=%.1f)", size, state.value, width)
    raster = render_text(catalog, name, StyleSpec(fonts.bold, size, colors.rest, Direction.RTL))
    return FitResult(size, state, width, raster)


def _render_split_name(
    catalog: FontCatalog,
    name: str,
    candidates: Iterable[int],
    fonts: FontPair,
    colors: NameColors,
    max_width: float,
) -> FitResult:
    first, rest = split_name(name)
    measure = _SegmentMeasure(catalog, first, rest, fonts)
    size, state, total = fit_text(candidates, measure, max_width)
    logger.debug("Name fitted at %spx (%s, width=%.1f)", size, state.value, total)

    width = max(1, int(total))
    height = max(1, math.ceil(size * LINE_HEIGHT_RATIO))
    image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)

    # Both segments share a top-aligned baseline.
    if first:
        draw.text((0, 0), first, font=catalog.font(fonts.bold, size), fill=colors.first, anchor="la")
    if rest:
        first_w, space_w, _ = measure.parts(size)
        draw.text(
            (first_w + space_w, 0),
            rest,
            font=catalog.font(fonts.regular, size),
            fill=colors.rest,
            anchor="la",
        )

    return FitResult(size, state, total, RasterResult(width, height, encode_png(image)))
