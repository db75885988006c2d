from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .contracts import LocateResult
from .doc_contracts import LocateDocResult


def _dumps(payload: dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2) + "\n"


def serialize_locate_result(result: LocateResult) -> str:
    """
    Stable JSON serialization for audit artifacts.
    """

    return _dumps(result.to_dict())


def write_locate_json_artifact(*, result: LocateResult, out_file: Path) -> None:
    """
    Write a single-page scan result to a JSON artifact file.

    No fixed artifact root is assumed; callers pass an explicit output path.
    """

    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(serialize_locate_result(result), encoding="utf-8")


def serialize_locate_doc_result(result: LocateDocResult) -> str:
    return _dumps(result.to_dict())


def write_locate_doc_json(*, result: LocateDocResult, out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(serialize_locate_doc_result(result), encoding="utf-8")
