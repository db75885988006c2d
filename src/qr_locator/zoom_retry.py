from __future__ import annotations

import logging
import math
from typing import Callable, Iterator

from PIL import Image

from .cancellation import CancelSignal, raise_if_cancelled
from .contracts import FULL_FRAME_LABEL, DecodeAttempt, PixelBuffer, Region
from .decode_adapter import DecodeAdapter

logger = logging.getLogger(__name__)


def zoom_target_size(width: int, height: int, zoom: float, max_dimension: int) -> int:
    return min(max_dimension, math.floor(min(width, height) * zoom))


def upsample_top_left(page: PixelBuffer, zoom: float, max_dimension: int) -> PixelBuffer | None:
    """
    Point-sample the top-left square of side target/zoom up to target x target.

    Nearest-neighbour only: smoothing would blur the module edges a decoder
    locks onto. Returns None when the target size rounds down to zero.
    """

    target = zoom_target_size(page.width, page.height, zoom, max_dimension)
    if target <= 0:
        return None

    side = target / zoom
    zoomed = page.to_pil().resize(
        (target, target),
        resample=Image.Resampling.NEAREST,
        box=(0.0, 0.0, side, side),
    )
    return PixelBuffer.from_pil(zoomed)


class ZoomRetryController:
    """
    Full-frame retries on point-sampled, upscaled copies of the page.

    Only used after region scanning at native resolution found nothing. Each
    zoomed buffer lives for one level and is owned here, not by the caller.
    """

    def __init__(self, *, zoom_levels: tuple[float, ...], max_dimension: int) -> None:
        self.zoom_levels = tuple(zoom_levels)
        self.max_dimension = max_dimension

    def frames(self, page: PixelBuffer) -> Iterator[tuple[float, PixelBuffer]]:
        for zoom in self.zoom_levels:
            frame = upsample_top_left(page, zoom, self.max_dimension)
            if frame is None:
                logger.debug("Skipping zoom %.2f for %dx%d page: empty target", zoom, page.width, page.height)
                continue
            yield zoom, frame

    def run(
        self,
        page: PixelBuffer,
        adapter: DecodeAdapter,
        *,
        cancel_event: CancelSignal | None = None,
        accept: Callable[[DecodeAttempt], bool] | None = None,
    ) -> tuple[DecodeAttempt | None, list[DecodeAttempt]]:
        attempts: list[DecodeAttempt] = []
        for zoom, frame in self.frames(page):
            raise_if_cancelled(cancel_event, step=f"zoom {zoom:.2f}")
            logger.debug("Zoom retry %.2fx on %dx%d frame", zoom, frame.width, frame.height)

            region = Region(x=0, y=0, width=frame.width, height=frame.height, label=FULL_FRAME_LABEL)
            hit, tried = adapter.decode_region(
                frame,
                region=region,
                zoom_factor=zoom,
                cancel_event=cancel_event,
                accept=accept,
            )
            attempts.extend(tried)
            if hit is not None:
                return hit, attempts
        return None, attempts
