from __future__ import annotations

from typing import Protocol

from .contracts import ScanCancelledError


class CancelSignal(Protocol):
    def is_set(self) -> bool: ...


def raise_if_cancelled(cancel_event: CancelSignal | None, *, step: str) -> None:
    """
    Checked between region/mode/zoom steps only, never inside a pixel scan.
    """

    if cancel_event is not None and cancel_event.is_set():
        raise ScanCancelledError(f"Scan cancelled before {step}")
