from __future__ import annotations

import logging
import math

from .contracts import Region

logger = logging.getLogger(__name__)


# (label, x_frac, y_frac, w_frac, h_frac, max_side), in priority order.
# Most pages either carry no code or carry it near the top or in a centered band.
_ANCHORS: tuple[tuple[str, float, float, float, float, int], ...] = (
    ("top-left", 0.0, 0.0, 1.0, 1.0, 200),
    ("center-left", 0.2, 0.2, 0.6, 0.6, 200),
    ("middle-section", 0.1, 0.4, 0.8, 0.4, 300),
)


def plan_regions(width: int, height: int) -> list[Region]:
    """
    Ordered anchor regions to examine before any full-frame attempt.

    A region that does not fit the buffer is dropped, never resized, so the
    anchor proportions stay what they were meant to be. Pure: identical
    dimensions always give the identical list.
    """

    if width <= 0 or height <= 0:
        return []

    out: list[Region] = []
    for label, x_frac, y_frac, w_frac, h_frac, max_side in _ANCHORS:
        region = Region(
            x=math.floor(width * x_frac),
            y=math.floor(height * y_frac),
            width=math.floor(min(max_side, width * w_frac)),
            height=math.floor(min(max_side, height * h_frac)),
            label=label,
        )
        if not region.fits(width, height):
            logger.debug("Dropping region %s for %dx%d buffer: %s", label, width, height, region)
            continue
        out.append(region)
    return out
