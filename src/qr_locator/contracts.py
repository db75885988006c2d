from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

import numpy as np

if TYPE_CHECKING:
    from PIL import Image


class LocatorError(Exception):
    pass


class PixelAccessError(LocatorError):
    """
    A page buffer or a region of it could not be read.

    Fatal only for the unit being read; the whole scan fails only when the
    initial page buffer is unreadable.
    """


class RegionOutOfBoundsError(PixelAccessError):
    pass


class DecodeError(LocatorError):
    """
    The external decode primitive failed on one region + mode.
    """


class ScanCancelledError(LocatorError):
    pass


class InversionMode(str, Enum):
    """
    Polarity hint passed to the decode primitive.
    """

    DEFAULT = "default"
    DONT_INVERT = "dont_invert"
    ATTEMPT_BOTH = "attempt_both"


# Fixed decode order for every region and zoom level.
INVERSION_ORDER: tuple[InversionMode, ...] = (
    InversionMode.DEFAULT,
    InversionMode.DONT_INVERT,
    InversionMode.ATTEMPT_BOTH,
)

FULL_FRAME_LABEL = "full-frame"


class DecoderName(str, Enum):
    """
    Decode backends supported by this package.
    """

    ZXINGCPP = "zxingcpp"


class NotFoundReason(str, Enum):
    LOW_CONTRAST = "low_contrast"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True, slots=True)
class LocateError:
    code: str
    message: str
    detail: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class Region:
    """
    Rectangle in the coordinate space of one specific PixelBuffer.
    """

    x: int
    y: int
    width: int
    height: int
    label: str

    def fits(self, buffer_width: int, buffer_height: int) -> bool:
        return (
            self.x >= 0
            and self.y >= 0
            and self.width > 0
            and self.height > 0
            and self.x + self.width <= buffer_width
            and self.y + self.height <= buffer_height
        )


@dataclass(frozen=True, slots=True)
class PixelBuffer:
    """
    Immutable RGBA8 page raster, row-major, 4 bytes per pixel.
    """

    width: int
    height: int
    pixels: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid buffer dimensions: {self.width}x{self.height}")
        if not isinstance(self.pixels, bytes):
            object.__setattr__(self, "pixels", bytes(self.pixels))
        expected = self.width * self.height * 4
        if len(self.pixels) != expected:
            raise ValueError(
                f"Pixel data length mismatch: expected {expected}, got {len(self.pixels)}"
            )

    @staticmethod
    def from_pil(image: "Image.Image") -> "PixelBuffer":
        rgba = image if image.mode == "RGBA" else image.convert("RGBA")
        width, height = rgba.size
        return PixelBuffer(width=int(width), height=int(height), pixels=rgba.tobytes())

    @staticmethod
    def from_array(array: np.ndarray) -> "PixelBuffer":
        if array.ndim != 3 or array.shape[2] != 4:
            raise ValueError(f"Expected an (h, w, 4) RGBA array, got shape {array.shape}")
        height, width = int(array.shape[0]), int(array.shape[1])
        data = np.ascontiguousarray(array, dtype=np.uint8).tobytes()
        return PixelBuffer(width=width, height=height, pixels=data)

    def to_array(self) -> np.ndarray:
        # Read-only view; bytes are immutable.
        return np.frombuffer(self.pixels, dtype=np.uint8).reshape(self.height, self.width, 4)

    def to_pil(self) -> "Image.Image":
        from PIL import Image

        return Image.frombytes("RGBA", (self.width, self.height), self.pixels)

    def crop(self, region: Region) -> "PixelBuffer":
        if not region.fits(self.width, self.height):
            raise RegionOutOfBoundsError(
                f"Region {region.label!r} ({region.x},{region.y},{region.width}x{region.height}) "
                f"exceeds buffer {self.width}x{self.height}"
            )
        arr = self.to_array()[region.y : region.y + region.height, region.x : region.x + region.width]
        return PixelBuffer.from_array(arr)


@dataclass(frozen=True, slots=True)
class ScoredRegion:
    region: Region
    edge_density: float
    worth_decoding: bool


@dataclass(frozen=True, slots=True)
class QuadPoint:
    x: float
    y: float


# Corner order: top-left, top-right, bottom-right, bottom-left.
Quad = tuple[QuadPoint, QuadPoint, QuadPoint, QuadPoint]


@dataclass(frozen=True, slots=True)
class BBox:
    """
    Axis-aligned rectangle: (x0, y0) top-left, (x1, y1) bottom-right.
    """

    x0: float
    y0: float
    x1: float
    y1: float

    def width(self) -> float:
        return self.x1 - self.x0

    def height(self) -> float:
        return self.y1 - self.y0

    @staticmethod
    def around(quad: Quad) -> "BBox":
        xs = [p.x for p in quad]
        ys = [p.y for p in quad]
        return BBox(x0=min(xs), y0=min(ys), x1=max(xs), y1=max(ys))


@dataclass(frozen=True, slots=True)
class DecodeSuccess:
    text: str
    quad: Quad  # in the coordinate space of the decoded buffer


@dataclass(frozen=True, slots=True)
class DecodeNotFound:
    pass


@dataclass(frozen=True, slots=True)
class DecodeFailure:
    reason: str


DecodeOutcome = Union[DecodeSuccess, DecodeNotFound, DecodeFailure]


@dataclass(frozen=True, slots=True)
class DecodeAttempt:
    region: Region
    mode: InversionMode
    outcome: DecodeOutcome
    zoom_factor: float = 1.0

    @property
    def succeeded(self) -> bool:
        return isinstance(self.outcome, DecodeSuccess)


@dataclass(frozen=True, slots=True)
class GlobalMatch:
    """
    A decoded QR code located in page-global coordinates.
    """

    text: str
    quad: Quad
    source_region_label: str
    zoom_factor: float
    inversion_mode: InversionMode
    confidence: float  # heuristic in [0.5, 1.0], not a decoder probability

    @property
    def bbox(self) -> BBox:
        return BBox.around(self.quad)

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["bbox"] = asdict(self.bbox)
        return d


@dataclass(frozen=True, slots=True)
class NotFound:
    """
    Explicit negative scan outcome (not an error).

    `errors` lists the per-unit failures absorbed while scanning.
    """

    reason: NotFoundReason
    errors: tuple[LocateError, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


ScanOutcome = Union[GlobalMatch, NotFound]


@dataclass(frozen=True, slots=True)
class ScanOptions:
    """
    Locator calibration.

    The defaults are engineering calibrations, not derived bounds: the edge
    density threshold trades missed low-contrast codes against wasted decode
    attempts, and the contrast bounds decide when a page counts as blank.
    """

    zoom_levels: tuple[float, ...] = (1.5, 2.0)
    edge_density_threshold: float = 0.01
    contrast_bounds: tuple[float, float] = (0.10, 0.90)
    edge_contrast_threshold: float = 100.0  # luminance delta on the 8-bit scale
    max_zoom_dimension: int = 400
    max_page_bytes: int = 50 * 1024 * 1024
    validate_payload: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "zoom_levels", tuple(float(z) for z in self.zoom_levels))
        object.__setattr__(self, "contrast_bounds", tuple(float(b) for b in self.contrast_bounds))

        if not (0.0 <= self.edge_density_threshold <= 1.0):
            raise ValueError("edge_density_threshold must be within [0, 1]")
        if len(self.contrast_bounds) != 2:
            raise ValueError("contrast_bounds must be a (lower, upper) pair")
        lower, upper = self.contrast_bounds
        if not (0.0 <= lower < upper <= 1.0):
            raise ValueError("contrast_bounds must satisfy 0 <= lower < upper <= 1")
        if not self.zoom_levels or any(z <= 0 for z in self.zoom_levels):
            raise ValueError("zoom_levels must be a non-empty sequence of factors > 0")
        if not (0.0 <= self.edge_contrast_threshold <= 255.0):
            raise ValueError("edge_contrast_threshold must be within [0, 255]")
        if self.max_zoom_dimension <= 0:
            raise ValueError("max_zoom_dimension must be a positive integer")
        if self.max_page_bytes <= 0:
            raise ValueError("max_page_bytes must be a positive integer")


@dataclass(frozen=True, slots=True)
class LocateConfig:
    """
    Runner configuration.

    `data_root` must be passed explicitly; nothing here reads environment
    variables or assumes where images live.
    """

    data_root: Path
    decoder: DecoderName = DecoderName.ZXINGCPP
    options: ScanOptions = field(default_factory=ScanOptions)
    compute_source_sha256: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.data_root, Path):
            raise TypeError("data_root must be a pathlib.Path")
        if not isinstance(self.options, ScanOptions):
            raise TypeError("options must be a ScanOptions")


@dataclass(frozen=True, slots=True)
class LocateResult:
    """
    Machine-readable outcome of scanning one page image.

    `ok` reports whether the page could be scanned at all; a page without a
    code is `ok=True, found=False`.
    """

    ok: bool
    found: bool
    source_image_relpath: str | None
    match: GlobalMatch | None
    not_found_reason: NotFoundReason | None
    errors: list[LocateError]
    meta: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        if self.match is not None:
            d["match"] = self.match.to_dict()
        return d
