from __future__ import annotations

from .contracts import BBox, DecodeAttempt, DecodeSuccess, GlobalMatch, Quad, QuadPoint

BASE_CONFIDENCE = 0.5
LOCATED_BONUS = 0.3
PAYLOAD_BONUS = 0.1
URL_BONUS = 0.1


def global_quad(attempt: DecodeAttempt) -> Quad:
    """
    Region-local corners of a successful attempt, in page coordinates.

    A zoomed pass decodes a different coordinate space than the page, so local
    coordinates are divided by the zoom factor before translating by the
    region origin.
    """

    outcome = attempt.outcome
    if not isinstance(outcome, DecodeSuccess):
        raise ValueError(f"Only successful attempts can be mapped, got {type(outcome).__name__}")

    z = attempt.zoom_factor
    ox, oy = attempt.region.x, attempt.region.y
    tl, tr, br, bl = (QuadPoint(x=ox + p.x / z, y=oy + p.y / z) for p in outcome.quad)
    return (tl, tr, br, bl)


def match_confidence(text: str, quad: Quad) -> float:
    """
    Score a decode from what is known about it: a located symbol with a
    non-degenerate outline, a non-empty payload, and a URL payload each add
    to a fixed base.
    """

    score = BASE_CONFIDENCE
    bbox = BBox.around(quad)
    if len(quad) == 4 and bbox.width() > 0 and bbox.height() > 0:
        score += LOCATED_BONUS
    if text:
        score += PAYLOAD_BONUS
        if text.startswith(("http://", "https://")):
            score += URL_BONUS
    return min(round(score, 4), 1.0)


def map_to_global(attempt: DecodeAttempt) -> GlobalMatch:
    outcome = attempt.outcome
    quad = global_quad(attempt)
    assert isinstance(outcome, DecodeSuccess)
    return GlobalMatch(
        text=outcome.text,
        quad=quad,
        source_region_label=attempt.region.label,
        zoom_factor=attempt.zoom_factor,
        inversion_mode=attempt.mode,
        confidence=match_confidence(outcome.text, quad),
    )


def bbox_within_page(bbox: BBox, *, width: int, height: int) -> bool:
    return (
        bbox.x0 >= 0
        and bbox.y0 >= 0
        and bbox.width() > 0
        and bbox.height() > 0
        and bbox.x1 <= width
        and bbox.y1 <= height
    )
