from __future__ import annotations

import contextlib
import logging
import math
import numbers
import threading
from typing import Callable

from .cancellation import CancelSignal, raise_if_cancelled
from .contracts import (
    INVERSION_ORDER,
    DecodeAttempt,
    DecodeError,
    DecodeFailure,
    DecodeNotFound,
    DecodeSuccess,
    InversionMode,
    PixelBuffer,
    Region,
)
from .decoders.base import Decoder

logger = logging.getLogger(__name__)


def _success_problem(outcome: DecodeSuccess) -> str | None:
    if not isinstance(outcome.text, str):
        return f"Decoder returned non-text payload of type {type(outcome.text).__name__}"
    quad = outcome.quad
    if not isinstance(quad, (tuple, list)) or len(quad) != 4:
        return "Decoder returned a quad without exactly 4 corners"
    for p in quad:
        for v in (getattr(p, "x", None), getattr(p, "y", None)):
            if isinstance(v, bool) or not isinstance(v, numbers.Real) or not math.isfinite(v):
                return f"Decoder returned a non-finite or non-numeric corner: {p!r}"
    return None


class DecodeAdapter:
    """
    Fault-isolating wrapper around a Decoder.

    Every primitive call is isolated: whatever it raises becomes a
    DecodeFailure for that single region + mode and never escapes. Calls are
    serialized when the decoder is not reentrant.
    """

    def __init__(self, decoder: Decoder) -> None:
        self._decoder = decoder
        self._lock = threading.Lock() if not getattr(decoder, "reentrant", True) else None
        self.call_count = 0

    @property
    def decoder(self) -> Decoder:
        return self._decoder

    def _call(self, window: PixelBuffer, mode: InversionMode):
        guard = self._lock if self._lock is not None else contextlib.nullcontext()
        with guard:
            self.call_count += 1
            return self._decoder.decode(
                pixels=window.pixels,
                width=window.width,
                height=window.height,
                mode=mode,
            )

    def attempt(
        self,
        window: PixelBuffer,
        *,
        region: Region,
        mode: InversionMode,
        zoom_factor: float = 1.0,
    ) -> DecodeAttempt:
        """
        One decode call on `window`, whose pixels are those of `region`
        (or of the zoomed frame when zoom_factor != 1).
        """

        try:
            outcome = self._call(window, mode)
        except Exception as e:
            err = DecodeError(f"{type(e).__name__}: {e}")
            logger.warning(
                "Decoder failed on region=%s mode=%s zoom=%.2f: %s",
                region.label,
                mode.value,
                zoom_factor,
                err,
            )
            return DecodeAttempt(
                region=region, mode=mode, outcome=DecodeFailure(reason=str(err)), zoom_factor=zoom_factor
            )

        if not isinstance(outcome, (DecodeSuccess, DecodeNotFound)):
            reason = f"Decoder returned unexpected outcome type {type(outcome).__name__}"
        elif isinstance(outcome, DecodeSuccess):
            reason = _success_problem(outcome)
        else:
            reason = None

        if reason is not None:
            logger.warning(
                "%s on region=%s mode=%s zoom=%.2f", reason, region.label, mode.value, zoom_factor
            )
            outcome = DecodeFailure(reason=reason)
        else:
            logger.debug(
                "Decode region=%s mode=%s zoom=%.2f -> %s",
                region.label,
                mode.value,
                zoom_factor,
                "found" if isinstance(outcome, DecodeSuccess) else "not found",
            )

        return DecodeAttempt(region=region, mode=mode, outcome=outcome, zoom_factor=zoom_factor)

    def decode_region(
        self,
        window: PixelBuffer,
        *,
        region: Region,
        zoom_factor: float = 1.0,
        cancel_event: CancelSignal | None = None,
        accept: Callable[[DecodeAttempt], bool] | None = None,
    ) -> tuple[DecodeAttempt | None, list[DecodeAttempt]]:
        """
        Try each inversion mode in fixed order, stopping at the first success.

        A success rejected by `accept` counts as a miss for that mode and the
        next mode is tried.

        Returns (successful attempt or None, all attempts made).
        """

        attempts: list[DecodeAttempt] = []
        for mode in INVERSION_ORDER:
            raise_if_cancelled(cancel_event, step=f"decode {region.label}/{mode.value}")
            att = self.attempt(window, region=region, mode=mode, zoom_factor=zoom_factor)
            attempts.append(att)
            if att.succeeded and (accept is None or accept(att)):
                return att, attempts
        return None, attempts
