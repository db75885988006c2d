from __future__ import annotations

import argparse
import logging
from pathlib import Path

from .artifacts import write_locate_doc_json
from .cli import add_scan_option_args, config_from_args
from .doc_module import run_locate_on_page_manifest


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="qr-locate-doc",
        description=(
            "Locate QR codes (document mode): consume a page manifest of rendered page images "
            "and emit a document-level JSON ledger."
        ),
    )
    p.add_argument(
        "--data-root",
        required=True,
        type=Path,
        help="Resolved DATA_ROOT path; the manifest and all page images live under it.",
    )
    p.add_argument(
        "--manifest-relpath",
        required=True,
        help="Page manifest JSON path relative to --data-root.",
    )
    p.add_argument(
        "--out",
        required=True,
        type=Path,
        help="Output file path for the document-level ledger.",
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

    result = run_locate_on_page_manifest(config=config, manifest_relpath=args.manifest_relpath)
    write_locate_doc_json(result=result, out_path=args.out)

    found = [page.page_num for page in result.pages if page.found]
    print(f"doc_id={result.doc_id or '<missing>'} pages={len(result.pages)} found_on={found} ok={result.ok}")
    return 0 if result.ok else 2


if __name__ == "__main__":
    raise SystemExit(main())
