from __future__ import annotations

import unittest

from _fakes import blank_page, draw_band, draw_checker, to_buffer
from qr_locator.contracts import PixelAccessError, PixelBuffer, Region, ScanOptions
from qr_locator.edge_density import dark_pixel_ratio, edge_density, page_has_contrast, score_region
from qr_locator.region_planner import plan_regions


class TestEdgeDensity(unittest.TestCase):
    def test_uniform_buffer_has_no_edges(self) -> None:
        self.assertEqual(edge_density(to_buffer(blank_page(50, 50))), 0.0)

    def test_tiny_buffers_score_zero(self) -> None:
        self.assertEqual(edge_density(PixelBuffer(width=2, height=2, pixels=bytes(16))), 0.0)

    def test_alternating_columns_count_every_interior_pixel(self) -> None:
        page = blank_page(10, 6)
        page[:, ::2, :3] = 0
        density = edge_density(to_buffer(page))
        self.assertAlmostEqual(density, (6 - 2) * (10 - 2) / (10 * 6))

    def test_small_deltas_are_not_edges(self) -> None:
        page = blank_page(10, 6, value=200)
        page[:, ::2, :3] = 150
        self.assertEqual(edge_density(to_buffer(page)), 0.0)

    def test_checker_window_is_worth_decoding(self) -> None:
        page = draw_checker(blank_page(200, 200), 40, 40)
        region = Region(x=0, y=0, width=200, height=200, label="top-left")
        scored = score_region(to_buffer(page), region, ScanOptions())
        # 100 pattern rows x 10 transitions each.
        self.assertAlmostEqual(scored.edge_density, 1000 / 40000)
        self.assertTrue(scored.worth_decoding)

    def test_threshold_is_configurable(self) -> None:
        page = draw_checker(blank_page(200, 200), 40, 40)
        region = Region(x=0, y=0, width=200, height=200, label="top-left")
        scored = score_region(to_buffer(page), region, ScanOptions(edge_density_threshold=0.05))
        self.assertFalse(scored.worth_decoding)

    def test_centered_pattern_lights_up_middle_section(self) -> None:
        page = to_buffer(draw_checker(blank_page(), 150, 150))
        scores = {
            r.label: score_region(page.crop(r), r, ScanOptions()) for r in plan_regions(page.width, page.height)
        }
        self.assertGreater(scores["middle-section"].edge_density, 0.01)
        self.assertTrue(scores["middle-section"].worth_decoding)
        self.assertFalse(scores["top-left"].worth_decoding)

    def test_window_must_match_region(self) -> None:
        with self.assertRaises(PixelAccessError):
            score_region(
                to_buffer(blank_page(10, 10)),
                Region(x=0, y=0, width=20, height=20, label="r"),
                ScanOptions(),
            )


class TestPageContrast(unittest.TestCase):
    def test_blank_page_is_low_contrast(self) -> None:
        page = to_buffer(blank_page())
        self.assertEqual(dark_pixel_ratio(page), 0.0)
        self.assertFalse(page_has_contrast(page, (0.10, 0.90)))

    def test_solid_ink_page_is_low_contrast(self) -> None:
        page = to_buffer(blank_page(value=0))
        self.assertEqual(dark_pixel_ratio(page), 1.0)
        self.assertFalse(page_has_contrast(page, (0.10, 0.90)))

    def test_transparent_page_has_no_ratio(self) -> None:
        page = to_buffer(blank_page(value=0, alpha=0))
        self.assertIsNone(dark_pixel_ratio(page))
        self.assertFalse(page_has_contrast(page, (0.0, 1.0)))

    def test_printed_page_has_contrast(self) -> None:
        page = to_buffer(draw_band(blank_page()))
        self.assertAlmostEqual(dark_pixel_ratio(page), 60 / 400)
        self.assertTrue(page_has_contrast(page, (0.10, 0.90)))

    def test_sample_is_limited_to_top_left_square(self) -> None:
        page = blank_page(900, 500)
        page[:, 500:, :3] = 0  # outside the 400x400 sample
        self.assertEqual(dark_pixel_ratio(to_buffer(page)), 0.0)

    def test_ratio_ignores_non_opaque_pixels(self) -> None:
        page = blank_page(40, 40)
        page[:20, :, 3] = 0
        page[:20, :, :3] = 0
        self.assertEqual(dark_pixel_ratio(to_buffer(page)), 0.0)


if __name__ == "__main__":
    unittest.main()
