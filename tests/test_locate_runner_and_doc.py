from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from PIL import Image

from _fakes import PAYLOAD, PatternDecoder, blank_page, draw_band, draw_checker
from qr_locator.artifacts import (
    serialize_locate_doc_result,
    serialize_locate_result,
    write_locate_doc_json,
    write_locate_json_artifact,
)
from qr_locator.contracts import LocateConfig, NotFoundReason
from qr_locator.data_access import sha256_file
from qr_locator.doc_module import run_locate_on_page_manifest
from qr_locator.runner import run_locate_on_image_relpath


def _write_png(path: Path, page) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(page).save(path, format="PNG")


class _DataRootCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.data_root = Path(self._tmp.name)

        patcher = patch("qr_locator.module._get_decoder", side_effect=lambda name: PatternDecoder())
        patcher.start()
        self.addCleanup(patcher.stop)

        _write_png(self.data_root / "doc_a" / "page_001.png", draw_band(draw_checker(blank_page(), 40, 40)))
        _write_png(self.data_root / "doc_a" / "page_002.png", blank_page())

    def config(self, **kwargs) -> LocateConfig:
        return LocateConfig(data_root=self.data_root, **kwargs)


class TestLocateRunner(_DataRootCase):
    def test_page_with_code(self) -> None:
        result = run_locate_on_image_relpath(config=self.config(), image_relpath="doc_a/page_001.png")

        self.assertTrue(result.ok)
        self.assertTrue(result.found)
        self.assertEqual(result.match.text, PAYLOAD)
        self.assertEqual(result.match.source_region_label, "top-left")
        self.assertEqual(result.source_image_relpath, "doc_a/page_001.png")
        self.assertEqual(result.meta["decoder_backend"], "fake-pattern")
        self.assertNotIn("source_sha256", result.meta)

    def test_page_without_code_is_ok_but_not_found(self) -> None:
        result = run_locate_on_image_relpath(config=self.config(), image_relpath="doc_a/page_002.png")

        self.assertTrue(result.ok)
        self.assertFalse(result.found)
        self.assertEqual(result.not_found_reason, NotFoundReason.LOW_CONTRAST)

    def test_missing_image(self) -> None:
        result = run_locate_on_image_relpath(config=self.config(), image_relpath="doc_a/page_999.png")
        self.assertFalse(result.ok)
        self.assertEqual([e.code for e in result.errors], ["QR_INPUT_NOT_FOUND"])

    def test_relpath_escaping_data_root(self) -> None:
        result = run_locate_on_image_relpath(config=self.config(), image_relpath="../outside.png")
        self.assertFalse(result.ok)
        self.assertEqual([e.code for e in result.errors], ["QR_DATA_ACCESS_ERROR"])

    def test_undecodable_image_file(self) -> None:
        (self.data_root / "broken.png").write_bytes(b"not a png")
        result = run_locate_on_image_relpath(config=self.config(), image_relpath="broken.png")
        self.assertFalse(result.ok)
        self.assertEqual([e.code for e in result.errors], ["QR_PIXEL_ACCESS_ERROR"])

    def test_pdf_inputs_are_refused(self) -> None:
        result = run_locate_on_image_relpath(config=self.config(), image_relpath="doc_a/source.pdf")
        self.assertFalse(result.ok)
        self.assertEqual([e.code for e in result.errors], ["QR_INPUT_IS_PDF"])

    def test_source_sha256_is_optional(self) -> None:
        result = run_locate_on_image_relpath(
            config=self.config(compute_source_sha256=True), image_relpath="doc_a/page_001.png"
        )
        self.assertEqual(
            result.meta["source_sha256"], sha256_file(self.data_root / "doc_a" / "page_001.png")
        )

    def test_artifact_is_stable_json(self) -> None:
        config = self.config()
        a = run_locate_on_image_relpath(config=config, image_relpath="doc_a/page_001.png")
        b = run_locate_on_image_relpath(config=config, image_relpath="doc_a/page_001.png")
        self.assertEqual(serialize_locate_result(a), serialize_locate_result(b))

        out = self.data_root / "out" / "page_001.qr.json"
        write_locate_json_artifact(result=a, out_file=out)
        payload = json.loads(out.read_text(encoding="utf-8"))
        self.assertTrue(payload["found"])
        self.assertEqual(payload["match"]["inversion_mode"], "default")
        self.assertEqual(payload["match"]["bbox"], {"x0": 40.0, "y0": 40.0, "x1": 140.0, "y1": 140.0})


class TestLocateOnPageManifest(_DataRootCase):
    def _manifest(self, payload, name: str = "manifest.json") -> str:
        path = self.data_root / name
        if isinstance(payload, str):
            path.write_text(payload, encoding="utf-8")
        else:
            path.write_text(json.dumps(payload), encoding="utf-8")
        return name

    def test_pages_are_scanned_in_page_order(self) -> None:
        relpath = self._manifest(
            {
                "doc_id": "doc_a",
                "pages": [
                    {"page_num": 2, "image_relpath": "doc_a/page_002.png"},
                    {"page_num": 1, "image_relpath": "doc_a/page_001.png"},
                ],
            }
        )

        result = run_locate_on_page_manifest(config=self.config(), manifest_relpath=relpath)

        self.assertTrue(result.ok)
        self.assertEqual(result.doc_id, "doc_a")
        self.assertEqual([p.page_num for p in result.pages], [1, 2])
        self.assertEqual([p.found for p in result.pages], [True, False])
        self.assertEqual(result.first_match[0], 1)

    def test_one_bad_page_does_not_stop_the_document(self) -> None:
        relpath = self._manifest(
            {
                "doc_id": "doc_a",
                "pages": [
                    {"page_num": 1, "image_relpath": "doc_a/missing.png"},
                    {"page_num": 2, "image_relpath": "doc_a/page_001.png"},
                ],
            }
        )

        result = run_locate_on_page_manifest(config=self.config(), manifest_relpath=relpath)

        self.assertFalse(result.ok)
        self.assertEqual([p.ok for p in result.pages], [False, True])
        self.assertEqual(result.pages[0].errors[0].code, "QR_INPUT_NOT_FOUND")
        self.assertTrue(result.pages[1].found)

    def test_manifest_errors(self) -> None:
        cases = [
            ("nope.json", None, "PAGE_MANIFEST_MISSING"),
            ("bad.json", "{not json", "PAGE_MANIFEST_INVALID_JSON"),
            ("shape.json", {"pages": []}, "PAGE_MANIFEST_BAD_SHAPE"),
            ("list.json", [1, 2], "PAGE_MANIFEST_BAD_SHAPE"),
            (
                "pages.json",
                {"doc_id": "d", "pages": [{"page_num": 0, "image_relpath": "x.png"}]},
                "PAGE_MANIFEST_INVALID_PAGES",
            ),
            (
                "dupes.json",
                {
                    "doc_id": "d",
                    "pages": [
                        {"page_num": 1, "image_relpath": "a.png"},
                        {"page_num": 1, "image_relpath": "b.png"},
                    ],
                },
                "PAGE_MANIFEST_INVALID_PAGES",
            ),
            ("../escape.json", None, "QR_DATA_ACCESS_ERROR"),
        ]
        for name, payload, code in cases:
            with self.subTest(code=code, name=name):
                relpath = name if payload is None else self._manifest(payload, name)
                result = run_locate_on_page_manifest(config=self.config(), manifest_relpath=relpath)
                self.assertFalse(result.ok)
                self.assertEqual(result.pages, [])
                self.assertEqual([e.code for e in result.errors], [code])

    def test_ledger_is_deterministic(self) -> None:
        relpath = self._manifest(
            {"doc_id": "doc_a", "pages": [{"page_num": 1, "image_relpath": "doc_a/page_001.png"}]}
        )
        a = run_locate_on_page_manifest(config=self.config(), manifest_relpath=relpath)
        b = run_locate_on_page_manifest(config=self.config(), manifest_relpath=relpath)
        self.assertEqual(serialize_locate_doc_result(a), serialize_locate_doc_result(b))

        out = self.data_root / "out" / "doc_a.qr_doc.json"
        write_locate_doc_json(result=a, out_path=out)
        payload = json.loads(out.read_text(encoding="utf-8"))
        self.assertEqual(payload["pages"][0]["match"]["source_region_label"], "top-left")
        self.assertEqual(payload["meta"]["mode"], "document")


if __name__ == "__main__":
    unittest.main()
