from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from .contracts import GlobalMatch, LocateError, NotFoundReason


@dataclass(frozen=True, slots=True)
class LocateDocPageRef:
    """
    Document-mode ledger entry for one rendered page image.
    """

    page_num: int
    source_image_relpath: str  # data_root-relative relpath from the page manifest
    ok: bool
    found: bool
    match: GlobalMatch | None
    not_found_reason: NotFoundReason | None
    errors: list[LocateError]

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        if self.match is not None:
            d["match"] = self.match.to_dict()
        return d


@dataclass(frozen=True, slots=True)
class LocateDocResult:
    """
    Document-mode QR scan ledger.

    Pages are scanned independently; one unreadable page does not stop the
    others from being scanned.
    """

    doc_id: str
    ok: bool  # True iff all pages ok AND there are no document-level errors
    source_manifest_relpath: str
    pages: list[LocateDocPageRef]
    errors: list[LocateError]
    meta: dict[str, Any]

    @property
    def first_match(self) -> tuple[int, GlobalMatch] | None:
        for p in self.pages:
            if p.match is not None:
                return p.page_num, p.match
        return None

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["pages"] = [p.to_dict() for p in self.pages]
        return d
