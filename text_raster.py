"""
Render a single styled text run into a tightly sized transparent PNG.

The canvas is sized from the measured glyph bounds plus a padding that is
proportional to the font size. Rendering never raises: a failure yields a
1x1 transparent image so one bad glyph cannot abort a whole presentation.
"""

from __future__ import annotations

import io
import math
from dataclasses import dataclass
from enum import Enum

import arabic_reshaper
from bidi.algorithm import get_display
from PIL import Image, ImageDraw, ImageFont

from fonts import FontCatalog
from logging_setup import get_logger

logger = get_logger(__name__)

PAD_X_RATIO = 0.20
PAD_Y_RATIO = 0.18
MIN_GLYPH_WIDTH_RATIO = 0.4
FALLBACK_ASCENT_RATIO = 0.9
FALLBACK_DESCENT_RATIO = 0.35


class Direction(str, Enum):
    LTR = "ltr"
    RTL = "rtl"


@dataclass(frozen=True)
class StyleSpec:
    family: str
    size: int
    color: str
    direction: Direction = Direction.LTR


@dataclass(frozen=True)
class RasterResult:
    width: int
    height: int
    data: bytes


@dataclass(frozen=True)
class RunMetrics:
    advance: float
    left: float
    right: float
    ascent: float
    descent: float


def visual_text(text: str, direction: Direction) -> str:
    """Shape and reorder right-to-left text into display order."""
    if direction != Direction.RTL or not text:
        return text
    return get_display(arabic_reshaper.reshape(text))


def measure_run(font: ImageFont.FreeTypeFont, text: str, size: int) -> RunMetrics:
    """Measure *text* relative to its left baseline origin.

    Runs without ink (empty or whitespace-only) get ascent/descent estimates
    derived from the font size.
    """
    advance = float(font.getlength(text)) if text else 0.0
    left, top, right, bottom = font.getbbox(text, anchor="ls") if text else (0, 0, 0, 0)
    if right <= left or bottom <= top:
        return RunMetrics(
            advance=advance,
            left=0.0,
            right=advance,
            ascent=math.ceil(size * FALLBACK_ASCENT_RATIO),
            descent=math.ceil(size * FALLBACK_DESCENT_RATIO),
        )
    return RunMetrics(
        advance=advance,
        left=float(left),
        right=float(right),
        ascent=float(-top),
        descent=float(bottom),
    )


def glyph_width(metrics: RunMetrics, size: int) -> float:
    # Guards empty strings and glyphs the font cannot draw.
    return max(metrics.right - metrics.left, metrics.advance, math.ceil(size * MIN_GLYPH_WIDTH_RATIO))


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def blank_raster() -> RasterResult:
    return RasterResult(1, 1, encode_png(Image.new("RGBA", (1, 1), (0, 0, 0, 0))))


def render_text(catalog: FontCatalog, text: str, style: StyleSpec) -> RasterResult:
    try:
        return _render(catalog, str(text or ""), style)
    except Exception:
        logger.warning(
            "Rendering '%s' with %s at %spx failed; using a blank image.",
            text,
            style.family,
            style.size,
            exc_info=True,
        )
        return blank_raster()


def _render(catalog: FontCatalog, text: str, style: StyleSpec) -> RasterResult:
    size = style.size
    font = catalog.font(style.family, size)
    shown = visual_text(text, style.direction)
    metrics = measure_run(font, shown, size)

    pad_x = math.ceil(size * PAD_X_RATIO)
    pad_y = math.ceil(size * PAD_Y_RATIO)
    width = max(1, math.ceil(glyph_width(metrics, size) + pad_x * 2))
    height = max(1, math.ceil(metrics.ascent + metrics.descent + pad_y * 2))

    image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    baseline = pad_y + metrics.ascent
    if shown:
        if style.direction == Direction.RTL:
            draw.text((width - pad_x, baseline), shown, font=font, fill=style.color, anchor="rs")
        else:
            draw.text((pad_x - metrics.left, baseline), shown, font=font, fill=style.color, anchor="ls")

    return RasterResult(width, height, encode_png(image))
