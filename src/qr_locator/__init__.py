"""
QR code locator for rendered document pages (perception only).

Contract:
- Input: one RGBA page raster (or a page image file / page manifest under an
  explicitly passed data_root)
- Output: the decoded text and its four corners in page coordinates, or an
  explicit "not found" with the failures absorbed along the way
- Constraints: cheap region heuristics gate every decode; full-frame zoom
  retries run only after all anchor regions fail

Data access:
- No environment variable reads in this package
- No hardcoded paths
- All filesystem access is via explicitly passed resolved data_root/config
"""

from .contracts import (
    BBox,
    DecodeAttempt,
    DecodeError,
    DecodeFailure,
    DecodeNotFound,
    DecodeSuccess,
    DecoderName,
    GlobalMatch,
    InversionMode,
    LocateConfig,
    LocateError,
    LocateResult,
    LocatorError,
    NotFound,
    NotFoundReason,
    PixelAccessError,
    PixelBuffer,
    QuadPoint,
    Region,
    RegionOutOfBoundsError,
    ScanCancelledError,
    ScanOptions,
    ScoredRegion,
)
from .decode_adapter import DecodeAdapter
from .decoders import Decoder, ZxingCppDecoder
from .doc_contracts import LocateDocPageRef, LocateDocResult
from .doc_module import run_locate_on_page_manifest
from .edge_density import edge_density, page_has_contrast, score_region
from .module import Locator, scan, scan_source
from .pixel_source import BufferPixelSource, ImageFilePixelSource, PixelSource
from .region_planner import plan_regions
from .result_mapper import map_to_global
from .runner import run_locate_on_image_file, run_locate_on_image_relpath
from .zoom_retry import ZoomRetryController

__all__ = [
    "BBox",
    "BufferPixelSource",
    "DecodeAdapter",
    "DecodeAttempt",
    "DecodeError",
    "DecodeFailure",
    "DecodeNotFound",
    "DecodeSuccess",
    "Decoder",
    "DecoderName",
    "GlobalMatch",
    "ImageFilePixelSource",
    "InversionMode",
    "LocateConfig",
    "LocateDocPageRef",
    "LocateDocResult",
    "LocateError",
    "LocateResult",
    "Locator",
    "LocatorError",
    "NotFound",
    "NotFoundReason",
    "PixelAccessError",
    "PixelBuffer",
    "PixelSource",
    "QuadPoint",
    "Region",
    "RegionOutOfBoundsError",
    "ScanCancelledError",
    "ScanOptions",
    "ScoredRegion",
    "ZoomRetryController",
    "ZxingCppDecoder",
    "edge_density",
    "map_to_global",
    "page_has_contrast",
    "plan_regions",
    "run_locate_on_image_file",
    "run_locate_on_image_relpath",
    "run_locate_on_page_manifest",
    "scan",
    "scan_source",
    "score_region",
]
