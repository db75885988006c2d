from __future__ import annotations

import json
import logging
from typing import Any

from .contracts import LocateConfig, LocateError
from .data_access import DataAccessError, resolve_under_data_root
from .doc_contracts import LocateDocPageRef, LocateDocResult
from .runner import run_locate_on_image_relpath

logger = logging.getLogger(__name__)


def _doc_meta(config: LocateConfig) -> dict[str, Any]:
    return {
        "mode": "document",
        "decoder": config.decoder.value,
        "zoom_levels": list(config.options.zoom_levels),
        "edge_density_threshold": config.options.edge_density_threshold,
        "contrast_bounds": list(config.options.contrast_bounds),
        "compute_source_sha256": config.compute_source_sha256,
    }


def _doc_failure(
    *, config: LocateConfig, manifest_relpath: str, doc_id: str, error: LocateError
) -> LocateDocResult:
    logger.warning("Page manifest %s rejected: %s", manifest_relpath, error.code)
    return LocateDocResult(
        doc_id=doc_id,
        ok=False,
        source_manifest_relpath=manifest_relpath,
        pages=[],
        errors=[error],
        meta=_doc_meta(config),
    )


def _invalid_page_entries(pages_in: list[Any]) -> list[dict[str, Any]]:
    invalid: list[dict[str, Any]] = []
    seen: set[int] = set()
    for i, entry in enumerate(pages_in):
        if not isinstance(entry, dict):
            invalid.append({"index": i, "page_num": None, "image_relpath": None, "reason": "entry must be a dict"})
            continue

        page_num = entry.get("page_num")
        image_relpath = entry.get("image_relpath")

        # bool is an int subclass; True is not a page number.
        if isinstance(page_num, bool) or not isinstance(page_num, int) or page_num < 1:
            reason = "page_num must be an int >= 1"
        elif page_num in seen:
            reason = "duplicate page_num"
        elif not isinstance(image_relpath, str) or image_relpath.strip() == "":
            reason = "image_relpath must be a non-empty string"
        else:
            seen.add(page_num)
            continue

        invalid.append({"index": i, "page_num": page_num, "image_relpath": image_relpath, "reason": reason})
    return invalid


def run_locate_on_page_manifest(*, config: LocateConfig, manifest_relpath: str) -> LocateDocResult:
    """
    Scan every page listed in a page manifest for a QR code.

    Manifest shape: `{"doc_id": str, "pages": [{"page_num": int, "image_relpath": str}]}`,
    with both the manifest and the page images under `config.data_root`.
    The manifest is validated strictly before any page is scanned; pages are
    then scanned in ascending page_num.
    """

    try:
        manifest_file = resolve_under_data_root(data_root=config.data_root, relpath=manifest_relpath)
    except DataAccessError as e:
        return _doc_failure(
            config=config,
            manifest_relpath=manifest_relpath,
            doc_id="",
            error=LocateError(
                code="QR_DATA_ACCESS_ERROR",
                message=str(e),
                detail={"data_root": str(config.data_root), "relpath": manifest_relpath},
            ),
        )

    if not manifest_file.exists():
        return _doc_failure(
            config=config,
            manifest_relpath=manifest_relpath,
            doc_id="",
            error=LocateError(
                code="PAGE_MANIFEST_MISSING",
                message="Page manifest JSON file not found",
                detail={"manifest_relpath": manifest_relpath},
            ),
        )

    try:
        payload = json.loads(manifest_file.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        return _doc_failure(
            config=config,
            manifest_relpath=manifest_relpath,
            doc_id="",
            error=LocateError(
                code="PAGE_MANIFEST_INVALID_JSON",
                message="Failed to parse page manifest JSON",
                detail={"manifest_relpath": manifest_relpath, "error": repr(e)},
            ),
        )

    doc_id = payload.get("doc_id") if isinstance(payload, dict) else None
    pages_in = payload.get("pages") if isinstance(payload, dict) else None
    if not isinstance(doc_id, str) or not isinstance(pages_in, list):
        return _doc_failure(
            config=config,
            manifest_relpath=manifest_relpath,
            doc_id=doc_id if isinstance(doc_id, str) else "",
            error=LocateError(
                code="PAGE_MANIFEST_BAD_SHAPE",
                message="Page manifest missing required fields (doc_id, pages[])",
                detail={"manifest_relpath": manifest_relpath},
            ),
        )

    invalid = _invalid_page_entries(pages_in)
    if invalid:
        return _doc_failure(
            config=config,
            manifest_relpath=manifest_relpath,
            doc_id=doc_id,
            error=LocateError(
                code="PAGE_MANIFEST_INVALID_PAGES",
                message="Page manifest contains invalid page entries; refusing to scan the document",
                detail={"invalid_count": len(invalid), "invalid_examples": invalid[:3]},
            ),
        )

    page_refs: list[LocateDocPageRef] = []
    for entry in sorted(pages_in, key=lambda p: p["page_num"]):
        page_num = entry["page_num"]
        image_relpath = entry["image_relpath"]
        logger.debug("Scanning %s page %d (%s)", doc_id, page_num, image_relpath)

        page_result = run_locate_on_image_relpath(config=config, image_relpath=image_relpath)
        page_refs.append(
            LocateDocPageRef(
                page_num=page_num,
                source_image_relpath=image_relpath,
                ok=page_result.ok,
                found=page_result.found,
                match=page_result.match,
                not_found_reason=page_result.not_found_reason,
                errors=page_result.errors,
            )
        )

    result = LocateDocResult(
        doc_id=doc_id,
        ok=all(p.ok for p in page_refs),
        source_manifest_relpath=manifest_relpath,
        pages=page_refs,
        errors=[],
        meta=_doc_meta(config),
    )
    logger.info(
        "Document %s: %d pages scanned, %d with a QR code, ok=%s",
        doc_id,
        len(page_refs),
        sum(1 for p in page_refs if p.found),
        result.ok,
    )
    return result
