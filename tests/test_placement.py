"""Tests for design-space to page-space coordinate mapping."""
import unittest

from placement import PlacementSpec, anchor_x, design_to_page_y, place, scale_to_max_width
from text_raster import Direction

PAGE_W = 1080.0
PAGE_H = 1920.0
MARGIN = 126.0
MAX_WIDTH = 968.0


def _spec(width: float, height: float, direction: Direction) -> PlacementSpec:
    return PlacementSpec(
        design_top=1059,
        design_left=MARGIN,
        right_margin=MARGIN,
        element_width=width,
        element_height=height,
        page_width=PAGE_W,
        page_height=PAGE_H,
        direction=direction,
    )


class DesignToPageTest(unittest.TestCase):
    def test_flips_origin_and_accounts_for_height(self) -> None:
        self.assertEqual(design_to_page_y(1920, 1006, 100), 814)
        self.assertEqual(design_to_page_y(1920, 0, 0), 1920)
        self.assertEqual(design_to_page_y(1920, 1006), 914)


class AnchorTest(unittest.TestCase):
    def test_ltr_uses_left_margin(self) -> None:
        for width in (200.0, 1500.0):
            with self.subTest(width=width):
                self.assertEqual(anchor_x(_spec(width, 90, Direction.LTR)), MARGIN)

    def test_rtl_right_edge_at_page_margin(self) -> None:
        for width in (200.0, 1500.0):
            with self.subTest(width=width):
                w, h = scale_to_max_width(width, 180, MAX_WIDTH)
                placement = place(_spec(w, h, Direction.RTL))
                self.assertAlmostEqual(placement.x + placement.width, PAGE_W - MARGIN)

    def test_place_combines_axes(self) -> None:
        placement = place(_spec(300, 150, Direction.LTR))
        self.assertEqual((placement.x, placement.y), (MARGIN, PAGE_H - 1059 - 150))
        self.assertEqual((placement.width, placement.height), (300, 150))


class ScaleToMaxWidthTest(unittest.TestCase):
    def test_within_limit_unchanged(self) -> None:
        self.assertEqual(scale_to_max_width(500, 100, MAX_WIDTH), (500, 100))
        self.assertEqual(scale_to_max_width(968, 100, MAX_WIDTH), (968, 100))

    def test_overflow_scaled_proportionally(self) -> None:
        width, height = scale_to_max_width(1936, 200, MAX_WIDTH)
        self.assertEqual(width, MAX_WIDTH)
        self.assertAlmostEqual(height, 100.0)

    def test_missing_limit_disables_scaling(self) -> None:
        self.assertEqual(scale_to_max_width(5000, 100, None), (5000, 100))


if __name__ == "__main__":
    unittest.main()
