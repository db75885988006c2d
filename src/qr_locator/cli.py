from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .artifacts import write_locate_json_artifact
from .contracts import LocateConfig, ScanOptions
from .runner import run_locate_on_image_relpath

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def add_scan_option_args(p: argparse.ArgumentParser) -> None:
    defaults = ScanOptions()
    p.add_argument(
        "--zoom-levels",
        type=float,
        nargs="+",
        default=list(defaults.zoom_levels),
        help="Zoom factors for full-frame retries, in order (default: %(default)s).",
    )
    p.add_argument(
        "--edge-density-threshold",
        type=float,
        default=defaults.edge_density_threshold,
        help="Minimum edge density for a region to be decoded (default: %(default)s).",
    )
    p.add_argument(
        "--edge-contrast-threshold",
        type=float,
        default=defaults.edge_contrast_threshold,
        help="Luminance step (0..255) between neighbouring pixels that counts as an edge (default: %(default)s).",
    )
    p.add_argument(
        "--max-zoom-dimension",
        type=int,
        default=defaults.max_zoom_dimension,
        help="Side cap in pixels for zoomed full-frame retries (default: %(default)s).",
    )
    p.add_argument(
        "--contrast-lower",
        type=float,
        default=defaults.contrast_bounds[0],
        help=(
            "Pages with a dark-pixel ratio at or below this are treated as blank (default: %(default)s). "
            "Pages whose only ink is one small code can fall below 0.10; lower this (e.g. 0.0) for sparse pages."
        ),
    )
    p.add_argument(
        "--contrast-upper",
        type=float,
        default=defaults.contrast_bounds[1],
        help="Pages with a dark-pixel ratio at or above this are treated as blank (default: %(default)s).",
    )
    p.add_argument(
        "--no-validate-payload",
        action="store_true",
        help="Accept any decoded text, even if it does not look like a sane payload.",
    )
    p.add_argument(
        "--compute-source-sha256",
        action="store_true",
        help="Include SHA-256 of each source image in meta for auditing.",
    )
    p.add_argument(
        "--log-level",
        default="WARNING",
        choices=_LOG_LEVELS,
        help="Logging level (default: %(default)s).",
    )


def config_from_args(args: argparse.Namespace) -> LocateConfig:
    options = ScanOptions(
        zoom_levels=tuple(args.zoom_levels),
        edge_density_threshold=args.edge_density_threshold,
        edge_contrast_threshold=args.edge_contrast_threshold,
        max_zoom_dimension=args.max_zoom_dimension,
        contrast_bounds=(args.contrast_lower, args.contrast_upper),
        validate_payload=not args.no_validate_payload,
    )
    return LocateConfig(
        data_root=args.data_root,
        options=options,
        compute_source_sha256=args.compute_source_sha256,
    )


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="qr-locate",
        description="Locate and decode a QR code on one rendered page image; emit the result as JSON.",
    )
    p.add_argument(
        "--data-root",
        required=True,
        type=Path,
        help="Resolved DATA_ROOT path (must be passed explicitly; no env reads).",
    )
    p.add_argument(
        "--image-relpath",
        required=True,
        help="Page image path relative to --data-root.",
    )
    p.add_argument(
        "--out",
        required=True,
        type=Path,
        help="Output JSON artifact file path.",
    )
    add_scan_option_args(p)
    return p


def main(argv: list[str] | None = None) -> int:
    p = build_arg_parser()
    args = p.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = config_from_args(args)
    except (TypeError, ValueError) as e:
        p.error(str(e))

    result = run_locate_on_image_relpath(config=config, image_relpath=args.image_relpath)
    write_locate_json_artifact(result=result, out_file=args.out)

    if result.match is not None:
        print(f"found=True region={result.match.source_region_label} text={result.match.text!r}")
    else:
        reason = result.not_found_reason.value if result.not_found_reason is not None else "error"
        print(f"found=False reason={reason} ok={result.ok}")
    return 0 if result.ok else 2


if __name__ == "__main__":
    raise SystemExit(main())
