from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from .cancellation import CancelSignal, raise_if_cancelled
from .contracts import (
    BBox,
    DecodeAttempt,
    DecodeFailure,
    DecodeSuccess,
    DecoderName,
    GlobalMatch,
    LocateError,
    NotFound,
    NotFoundReason,
    PixelAccessError,
    PixelBuffer,
    ScanOptions,
    ScanOutcome,
    ScoredRegion,
)
from .decode_adapter import DecodeAdapter
from .decoders import Decoder, ZxingCppDecoder
from .edge_density import page_has_contrast, score_region
from .payload import payload_problem
from .pixel_source import BufferPixelSource, PixelSource
from .region_planner import plan_regions
from .result_mapper import bbox_within_page, global_quad, map_to_global
from .zoom_retry import ZoomRetryController

logger = logging.getLogger(__name__)


def _get_decoder(name: DecoderName) -> Decoder:
    if name == DecoderName.ZXINGCPP:
        return ZxingCppDecoder()
    raise ValueError(f"Unsupported decoder: {name}")


class LocatorState(str, Enum):
    IDLE = "idle"
    SCORING_REGIONS = "scoring_regions"
    DECODING_REGIONS = "decoding_regions"
    ZOOM_RETRYING = "zoom_retrying"
    SUCCESS = "success"
    DONE = "done"


# A low-contrast page goes straight from SCORING_REGIONS to DONE: upsampling
# cannot create contrast that is not there, so zoom retry is bypassed.
TRANSITIONS: dict[LocatorState, frozenset[LocatorState]] = {
    LocatorState.IDLE: frozenset({LocatorState.SCORING_REGIONS}),
    LocatorState.SCORING_REGIONS: frozenset({LocatorState.DECODING_REGIONS, LocatorState.DONE}),
    LocatorState.DECODING_REGIONS: frozenset({LocatorState.SUCCESS, LocatorState.ZOOM_RETRYING}),
    LocatorState.ZOOM_RETRYING: frozenset({LocatorState.SUCCESS, LocatorState.DONE}),
    LocatorState.SUCCESS: frozenset({LocatorState.DONE}),
    LocatorState.DONE: frozenset(),
}


class _ScanRun:
    """
    State for exactly one scan invocation; discarded when the scan returns.
    """

    def __init__(
        self,
        *,
        source: PixelSource,
        options: ScanOptions,
        adapter: DecodeAdapter,
        cancel_event: CancelSignal | None,
    ) -> None:
        self.source = source
        self.options = options
        self.adapter = adapter
        self.cancel_event = cancel_event

        self.state = LocatorState.IDLE
        self.history: list[LocatorState] = [LocatorState.IDLE]
        self.page: PixelBuffer | None = None
        self.scored: list[tuple[ScoredRegion, PixelBuffer]] = []
        self.hit: DecodeAttempt | None = None
        self.outcome: ScanOutcome | None = None
        self.errors: list[LocateError] = []

        self._handlers: dict[LocatorState, Callable[[], LocatorState]] = {
            LocatorState.IDLE: self._load_page,
            LocatorState.SCORING_REGIONS: self._score_regions,
            LocatorState.DECODING_REGIONS: self._decode_regions,
            LocatorState.ZOOM_RETRYING: self._zoom_retry,
            LocatorState.SUCCESS: self._finish_success,
        }

    def _transition(self, nxt: LocatorState) -> None:
        if nxt not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal locator transition {self.state.value} -> {nxt.value}")
        self.state = nxt
        self.history.append(nxt)

    def run(self) -> ScanOutcome:
        while self.state != LocatorState.DONE:
            self._transition(self._handlers[self.state]())
        assert self.outcome is not None
        return self.outcome

    # -- states --------------------------------------------------------

    def _load_page(self) -> LocatorState:
        # The only read allowed to fail the whole scan. Size is checked first so
        # an oversized page image is refused before its pixels are decoded.
        width, height = self.source.size()
        size = width * height * 4
        if size > self.options.max_page_bytes:
            raise PixelAccessError(
                f"Page too large for QR scanning: {size / 1024 / 1024:.1f}MB "
                f"(limit {self.options.max_page_bytes / 1024 / 1024:.1f}MB)"
            )
        self.page = self.source.read_page()
        return LocatorState.SCORING_REGIONS

    def _score_regions(self) -> LocatorState:
        page = self._page()
        if not page_has_contrast(page, self.options.contrast_bounds):
            self.outcome = NotFound(reason=NotFoundReason.LOW_CONTRAST, errors=tuple(self.errors))
            return LocatorState.DONE

        for region in plan_regions(page.width, page.height):
            raise_if_cancelled(self.cancel_event, step=f"region {region.label}")
            try:
                window = self.source.read_region(region)
                scored = score_region(window, region, self.options)
            except PixelAccessError as e:
                logger.warning("Skipping region %s: %s", region.label, e)
                self._record(
                    "QR_PIXEL_ACCESS_ERROR",
                    "Region pixels could not be read",
                    region=region.label,
                    error=str(e),
                )
                continue
            self.scored.append((scored, window))
        return LocatorState.DECODING_REGIONS

    def _decode_regions(self) -> LocatorState:
        for scored, window in self.scored:
            if not scored.worth_decoding:
                continue
            hit, attempts = self.adapter.decode_region(
                window,
                region=scored.region,
                cancel_event=self.cancel_event,
                accept=self._accept,
            )
            self._record_failures(attempts)
            if hit is not None:
                self.hit = hit
                return LocatorState.SUCCESS
        return LocatorState.ZOOM_RETRYING

    def _zoom_retry(self) -> LocatorState:
        controller = ZoomRetryController(
            zoom_levels=self.options.zoom_levels,
            max_dimension=self.options.max_zoom_dimension,
        )
        hit, attempts = controller.run(
            self._page(),
            self.adapter,
            cancel_event=self.cancel_event,
            accept=self._accept,
        )
        self._record_failures(attempts)
        if hit is not None:
            self.hit = hit
            return LocatorState.SUCCESS

        self.outcome = NotFound(reason=NotFoundReason.EXHAUSTED, errors=tuple(self.errors))
        return LocatorState.DONE

    def _finish_success(self) -> LocatorState:
        assert self.hit is not None
        self.outcome = map_to_global(self.hit)
        return LocatorState.DONE

    # -- helpers -------------------------------------------------------

    def _page(self) -> PixelBuffer:
        assert self.page is not None
        return self.page

    def _accept(self, attempt: DecodeAttempt) -> bool:
        outcome = attempt.outcome
        assert isinstance(outcome, DecodeSuccess)
        where = {
            "region": attempt.region.label,
            "mode": attempt.mode.value,
            "zoom_factor": attempt.zoom_factor,
        }

        if self.options.validate_payload:
            problem = payload_problem(outcome.text)
            if problem is not None:
                logger.warning("Rejecting decoded payload on %s: %s", where, problem)
                self._record("QR_INVALID_PAYLOAD", problem, **where)
                return False

        page = self._page()
        bbox = BBox.around(global_quad(attempt))
        if not bbox_within_page(bbox, width=page.width, height=page.height):
            logger.warning("Rejecting match outside page bounds on %s: %s", where, bbox)
            self._record(
                "QR_MATCH_OUT_OF_BOUNDS",
                "Decoded quad does not lie within the page",
                bbox=[bbox.x0, bbox.y0, bbox.x1, bbox.y1],
                **where,
            )
            return False
        return True

    def _record(self, code: str, message: str, **detail) -> None:
        self.errors.append(LocateError(code=code, message=message, detail=detail or None))

    def _record_failures(self, attempts: list[DecodeAttempt]) -> None:
        for att in attempts:
            if isinstance(att.outcome, DecodeFailure):
                self._record(
                    "QR_DECODE_ERROR",
                    att.outcome.reason,
                    region=att.region.label,
                    mode=att.mode.value,
                    zoom_factor=att.zoom_factor,
                )


class Locator:
    """
    End-to-end scan protocol: anchor regions first, zoom retries last.

    Holds configuration only. Every scan builds its own transient state, so
    one Locator may scan many pages, including from several threads when the
    decoder allows it.
    """

    def __init__(self, decoder: Decoder | None = None, options: ScanOptions | None = None) -> None:
        self.decoder = decoder if decoder is not None else _get_decoder(DecoderName.ZXINGCPP)
        self.options = options if options is not None else ScanOptions()

    def scan_source(self, source: PixelSource, *, cancel_event: CancelSignal | None = None) -> ScanOutcome:
        """
        Raises PixelAccessError only when the page itself cannot be read and
        ScanCancelledError when `cancel_event` is set between steps.
        """

        run = _ScanRun(
            source=source,
            options=self.options,
            adapter=DecodeAdapter(self.decoder),
            cancel_event=cancel_event,
        )
        outcome = run.run()

        if isinstance(outcome, GlobalMatch):
            logger.info(
                "QR code found in %s (zoom %.2f, mode %s) after %d decode calls",
                outcome.source_region_label,
                outcome.zoom_factor,
                outcome.inversion_mode.value,
                run.adapter.call_count,
            )
        else:
            logger.info(
                "No QR code (%s) after %d decode calls, %d absorbed errors",
                outcome.reason.value,
                run.adapter.call_count,
                len(outcome.errors),
            )
        return outcome

    def scan(self, buffer: PixelBuffer, *, cancel_event: CancelSignal | None = None) -> ScanOutcome:
        return self.scan_source(BufferPixelSource(buffer), cancel_event=cancel_event)


def scan(
    buffer: PixelBuffer,
    options: ScanOptions | None = None,
    *,
    decoder: Decoder | None = None,
    cancel_event: CancelSignal | None = None,
) -> ScanOutcome:
    """
    Locate and decode a QR code on one rendered page.

    Returns a GlobalMatch on the first accepted decode, otherwise NotFound.
    """

    return Locator(decoder=decoder, options=options).scan(buffer, cancel_event=cancel_event)


def scan_source(
    source: PixelSource,
    options: ScanOptions | None = None,
    *,
    decoder: Decoder | None = None,
    cancel_event: CancelSignal | None = None,
) -> ScanOutcome:
    return Locator(decoder=decoder, options=options).scan_source(source, cancel_event=cancel_event)
