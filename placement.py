"""
Map design-tool coordinates onto PDF page coordinates.

The design file measures from the top-left corner with y growing downwards;
PDF pages measure from the bottom-left with y growing upwards.
"""

from __future__ import annotations

from dataclasses import dataclass

from text_raster import Direction


@dataclass(frozen=True)
class PlacementSpec:
    design_top: float
    design_left: float
    right_margin: float
    element_width: float
    element_height: float
    page_width: float
    page_height: float
    direction: Direction = Direction.LTR


@dataclass(frozen=True)
class Placement:
    x: float
    y: float
    width: float
    height: float


def design_to_page_y(page_height: float, design_top: float, element_height: float = 0.0) -> float:
    return page_height - design_top - element_height


def anchor_x(spec: PlacementSpec) -> float:
    if spec.direction == Direction.RTL:
        return spec.page_width - spec.right_margin - spec.element_width
    return spec.design_left


def place(spec: PlacementSpec) -> Placement:
    return Placement(
        x=anchor_x(spec),
        y=design_to_page_y(spec.page_height, spec.design_top, spec.element_height),
        width=spec.element_width,
        height=spec.element_height,
    )


def scale_to_max_width(width: float, height: float, max_width: float | None) -> tuple[float, float]:
    """Shrink (width, height) proportionally so width never exceeds *max_width*."""
    if not max_width or max_width <= 0 or width <= max_width:
        return width, height
    k = max_width / width
    return max_width, height * k
