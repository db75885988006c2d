from __future__ import annotations

import sys
import unittest
from types import SimpleNamespace
from unittest.mock import patch

import numpy as np

from _fakes import blank_page, to_buffer
from qr_locator.contracts import DecodeNotFound, DecodeSuccess, InversionMode, QuadPoint
from qr_locator.decoders import ZxingCppDecoder


def _point(x, y):
    return SimpleNamespace(x=x, y=y)


def _result(text: str = "hello"):
    return SimpleNamespace(
        valid=True,
        text=text,
        position=SimpleNamespace(
            top_left=_point(1, 2),
            top_right=_point(11, 2),
            bottom_right=_point(11, 12),
            bottom_left=_point(1, 12),
        ),
    )


class _FakeZxing:
    BarcodeFormat = SimpleNamespace(QRCode="QRCode")

    def __init__(self, responses) -> None:
        self.responses = list(responses)
        self.calls = []

    def read_barcodes(self, image, **kwargs):
        self.calls.append((np.array(image), kwargs))
        return self.responses.pop(0) if self.responses else []


class TestZxingCppDecoder(unittest.TestCase):
    def _decode(self, fake: _FakeZxing, mode: InversionMode):
        buf = to_buffer(blank_page(20, 20))
        buf_pixels = bytearray(buf.pixels)
        buf_pixels[0:3] = b"\x00\x00\x00"  # top-left pixel dark
        with patch.dict(sys.modules, {"zxingcpp": fake}):
            return ZxingCppDecoder().decode(pixels=bytes(buf_pixels), width=20, height=20, mode=mode)

    def test_default_mode_uses_library_defaults(self) -> None:
        fake = _FakeZxing([[_result()]])
        outcome = self._decode(fake, InversionMode.DEFAULT)

        self.assertEqual(
            outcome,
            DecodeSuccess(
                text="hello",
                quad=(QuadPoint(1, 2), QuadPoint(11, 2), QuadPoint(11, 12), QuadPoint(1, 12)),
            ),
        )
        self.assertEqual(fake.calls[0][1], {"formats": "QRCode"})

    def test_dont_invert_disables_inversion(self) -> None:
        fake = _FakeZxing([[]])
        outcome = self._decode(fake, InversionMode.DONT_INVERT)

        self.assertEqual(outcome, DecodeNotFound())
        self.assertEqual(fake.calls[0][1], {"formats": "QRCode", "try_invert": False})

    def test_attempt_both_retries_on_inverted_image(self) -> None:
        fake = _FakeZxing([[], [_result("inverted")]])
        outcome = self._decode(fake, InversionMode.ATTEMPT_BOTH)

        self.assertEqual(outcome.text, "inverted")
        self.assertEqual(len(fake.calls), 2)
        normal, inverted = fake.calls[0][0], fake.calls[1][0]
        self.assertEqual((normal[0, 0], normal[5, 5]), (0, 255))
        self.assertEqual((inverted[0, 0], inverted[5, 5]), (255, 0))

    def test_results_without_text_are_ignored(self) -> None:
        fake = _FakeZxing([[_result("")]])
        self.assertEqual(self._decode(fake, InversionMode.DEFAULT), DecodeNotFound())

    def test_missing_library_raises(self) -> None:
        with patch.dict(sys.modules, {"zxingcpp": None}):
            with self.assertRaises(RuntimeError):
                ZxingCppDecoder().decode(
                    pixels=to_buffer(blank_page(4, 4)).pixels, width=4, height=4, mode=InversionMode.DEFAULT
                )


if __name__ == "__main__":
    unittest.main()
