"""
Cheap "could this contain a printed code" heuristics, run before any decode.

Both checks work on luminance `(R + G + B) / 3` on the 8-bit scale:
- region edge density: share of strong horizontal transitions in a region
- page contrast: share of dark pixels in a coarse sample of the page

Neither check decodes anything; they only decide whether a decode attempt is
worth its cost.
"""

from __future__ import annotations

import logging

import numpy as np

from .contracts import PixelAccessError, PixelBuffer, Region, ScanOptions, ScoredRegion

logger = logging.getLogger(__name__)

CONTRAST_SAMPLE_MAX_SIDE = 400
CONTRAST_SAMPLE_STEP = 4  # every 4th pixel of the sample, in raster order
DARK_LUMINANCE = 128
OPAQUE_ALPHA = 128


def _luminance(rgba: np.ndarray) -> np.ndarray:
    return rgba[..., :3].astype(np.float32).sum(axis=-1) / 3.0


def edge_density(buffer: PixelBuffer, *, contrast_threshold: float = 100.0) -> float:
    """
    Strong-edge count over interior pixels divided by the full buffer area.

    Each interior pixel is compared to its right-hand neighbour only.
    """

    h, w = buffer.height, buffer.width
    if w < 3 or h < 3:
        return 0.0

    lum = _luminance(buffer.to_array())
    current = lum[1 : h - 1, 1 : w - 1]
    right = lum[1 : h - 1, 2:w]
    edges = int(np.count_nonzero(np.abs(current - right) > contrast_threshold))
    return edges / float(w * h)


def score_region(window: PixelBuffer, region: Region, options: ScanOptions) -> ScoredRegion:
    """
    Score `window`, the pixels already read for `region`.

    Bounds are enforced when the window is read (PixelBuffer.crop); a window
    whose size does not match the region is a failed read of that region.
    """

    if (window.width, window.height) != (region.width, region.height):
        raise PixelAccessError(
            f"Window {window.width}x{window.height} does not match region {region.label!r} "
            f"{region.width}x{region.height}"
        )
    density = edge_density(window, contrast_threshold=options.edge_contrast_threshold)
    scored = ScoredRegion(
        region=region,
        edge_density=density,
        worth_decoding=density > options.edge_density_threshold,
    )
    logger.debug(
        "Region %s: edge density %.4f (threshold %.4f) -> %s",
        region.label,
        density,
        options.edge_density_threshold,
        "decode" if scored.worth_decoding else "skip",
    )
    return scored


def dark_pixel_ratio(page: PixelBuffer) -> float | None:
    """
    Share of dark pixels among opaque sampled pixels, or None if nothing opaque
    was sampled.

    Samples the top-left square of side min(width, height, 400), taking every
    4th pixel in raster order.
    """

    side = min(page.width, page.height, CONTRAST_SAMPLE_MAX_SIDE)
    sample = page.to_array()[:side, :side].reshape(-1, 4)[::CONTRAST_SAMPLE_STEP]

    opaque = sample[sample[:, 3] > OPAQUE_ALPHA]
    if opaque.shape[0] == 0:
        return None

    dark = int(np.count_nonzero(_luminance(opaque) < DARK_LUMINANCE))
    return dark / float(opaque.shape[0])


def page_has_contrast(page: PixelBuffer, bounds: tuple[float, float]) -> bool:
    """
    False for blank or low-contrast pages, which are a terminal "no code".
    """

    ratio = dark_pixel_ratio(page)
    lower, upper = bounds
    ok = ratio is not None and lower < ratio < upper
    logger.debug(
        "Page %dx%d: dark ratio %s, bounds (%.2f, %.2f) -> %s",
        page.width,
        page.height,
        "n/a" if ratio is None else f"{ratio:.3f}",
        lower,
        upper,
        "scan" if ok else "low contrast",
    )
    return ok
