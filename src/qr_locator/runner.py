from __future__ import annotations

from pathlib import Path
from typing import Any

from . import module
from .contracts import (
    GlobalMatch,
    LocateConfig,
    LocateError,
    LocateResult,
    PixelAccessError,
)
from .data_access import DataAccessError, resolve_under_data_root, sha256_file
from .pixel_source import ImageFilePixelSource


def _meta(config: LocateConfig) -> dict[str, Any]:
    opts = config.options
    return {
        "decoder": config.decoder.value,
        "zoom_levels": list(opts.zoom_levels),
        "edge_density_threshold": opts.edge_density_threshold,
        "contrast_bounds": list(opts.contrast_bounds),
        "edge_contrast_threshold": opts.edge_contrast_threshold,
        "max_zoom_dimension": opts.max_zoom_dimension,
        "validate_payload": opts.validate_payload,
    }


def _failure(
    *, config: LocateConfig, source_relpath: str | None, error: LocateError
) -> LocateResult:
    return LocateResult(
        ok=False,
        found=False,
        source_image_relpath=source_relpath,
        match=None,
        not_found_reason=None,
        errors=[error],
        meta=_meta(config),
    )


def run_locate_on_image_file(
    *, config: LocateConfig, image_file: Path, source_image_relpath: str | None
) -> LocateResult:
    """
    Scan an explicit page image file (no data_root resolution).

    Never raises for data problems: an unreadable image is reported as
    ok=False with a machine-readable error code.
    """

    if not image_file.exists():
        detail: dict[str, Any] = {"source_image_relpath": source_image_relpath}
        if source_image_relpath is None:
            detail["image_file"] = str(image_file)
        return _failure(
            config=config,
            source_relpath=source_image_relpath,
            error=LocateError(code="QR_INPUT_NOT_FOUND", message="Input image file not found", detail=detail),
        )

    locator = module.Locator(decoder=module._get_decoder(config.decoder), options=config.options)
    try:
        outcome = locator.scan_source(ImageFilePixelSource(image_file))
    except PixelAccessError as e:
        return _failure(
            config=config,
            source_relpath=source_image_relpath,
            error=LocateError(
                code="QR_PIXEL_ACCESS_ERROR",
                message=str(e),
                detail={"source_image_relpath": source_image_relpath},
            ),
        )

    meta = _meta(config)
    meta["decoder_backend"] = locator.decoder.backend_id()
    backend_version = locator.decoder.backend_version()
    if backend_version is not None:
        meta["decoder_backend_version"] = backend_version
    if config.compute_source_sha256:
        try:
            meta["source_sha256"] = sha256_file(image_file)
        except OSError as e:
            meta.setdefault("audit_warnings", []).append(
                {"code": "QR_SOURCE_HASH_FAILED", "error": repr(e)}
            )

    if isinstance(outcome, GlobalMatch):
        return LocateResult(
            ok=True,
            found=True,
            source_image_relpath=source_image_relpath,
            match=outcome,
            not_found_reason=None,
            errors=[],
            meta=meta,
        )

    return LocateResult(
        ok=True,
        found=False,
        source_image_relpath=source_image_relpath,
        match=None,
        not_found_reason=outcome.reason,
        errors=list(outcome.errors),
        meta=meta,
    )


def run_locate_on_image_relpath(*, config: LocateConfig, image_relpath: str) -> LocateResult:
    """
    Scan a page image referenced by a relative path under `config.data_root`.
    """

    if image_relpath.strip().lower().endswith(".pdf"):
        return _failure(
            config=config,
            source_relpath=image_relpath,
            error=LocateError(
                code="QR_INPUT_IS_PDF",
                message="PDF inputs are not scanned directly; render pages to images first.",
                detail={"source_image_relpath": image_relpath},
            ),
        )

    try:
        image_file = resolve_under_data_root(data_root=config.data_root, relpath=image_relpath)
    except DataAccessError as e:
        return _failure(
            config=config,
            source_relpath=image_relpath,
            error=LocateError(
                code="QR_DATA_ACCESS_ERROR",
                message=str(e),
                detail={"data_root": str(config.data_root), "relpath": image_relpath},
            ),
        )

    return run_locate_on_image_file(config=config, image_file=image_file, source_image_relpath=image_relpath)
