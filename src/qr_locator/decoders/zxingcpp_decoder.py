from __future__ import annotations

from typing import Any

import numpy as np
from PIL import Image, ImageOps

from ..contracts import DecodeNotFound, DecodeSuccess, InversionMode, QuadPoint
from .base import Decoder


class ZxingCppDecoder(Decoder):
    """
    QR decoding via the zxing-cpp bindings, restricted to QR symbols.

    Polarity handling per mode:
    - DEFAULT: whatever the library does on its own
    - DONT_INVERT: dark-on-light only
    - ATTEMPT_BOTH: the image as-is, then an explicitly inverted copy
    """

    def backend_id(self) -> str:
        return "zxing-cpp"

    def backend_version(self) -> str | None:
        try:
            import zxingcpp  # type: ignore

            return getattr(zxingcpp, "__version__", None)
        except ImportError:
            return None

    def _require_zxingcpp(self):
        try:
            import zxingcpp  # type: ignore

            return zxingcpp
        except ImportError as e:
            raise RuntimeError("Missing dependency: zxing-cpp is required for QR decoding.") from e

    def decode(
        self,
        *,
        pixels: bytes,
        width: int,
        height: int,
        mode: InversionMode,
    ) -> DecodeSuccess | DecodeNotFound:
        zxingcpp = self._require_zxingcpp()

        gray = Image.frombytes("RGBA", (width, height), pixels).convert("L")

        if mode == InversionMode.DEFAULT:
            candidates = [(gray, {})]
        elif mode == InversionMode.DONT_INVERT:
            candidates = [(gray, {"try_invert": False})]
        elif mode == InversionMode.ATTEMPT_BOTH:
            candidates = [
                (gray, {"try_invert": False}),
                (ImageOps.invert(gray), {"try_invert": False}),
            ]
        else:
            raise ValueError(f"Unsupported inversion mode: {mode}")

        for image, kwargs in candidates:
            results = zxingcpp.read_barcodes(
                np.asarray(image),
                formats=zxingcpp.BarcodeFormat.QRCode,
                **kwargs,
            )
            for r in results:
                if getattr(r, "valid", True) and r.text:
                    return DecodeSuccess(text=r.text, quad=_quad_from_position(r.position))

        return DecodeNotFound()


def _quad_from_position(position: Any) -> tuple[QuadPoint, QuadPoint, QuadPoint, QuadPoint]:
    return (
        QuadPoint(float(position.top_left.x), float(position.top_left.y)),
        QuadPoint(float(position.top_right.x), float(position.top_right.y)),
        QuadPoint(float(position.bottom_right.x), float(position.bottom_right.y)),
        QuadPoint(float(position.bottom_left.x), float(position.bottom_left.y)),
    )
