from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .contracts import PixelAccessError, PixelBuffer, Region


class PixelSource(ABC):
    """
    Where page pixels come from.

    Any read may fail with PixelAccessError; the locator treats that as fatal
    only for the unit being read (except the initial page read).
    """

    @abstractmethod
    def read_page(self) -> PixelBuffer:
        raise NotImplementedError

    def size(self) -> tuple[int, int]:
        page = self.read_page()
        return page.width, page.height

    def read_region(self, region: Region) -> PixelBuffer:
        return self.read_page().crop(region)


class BufferPixelSource(PixelSource):
    def __init__(self, buffer: PixelBuffer) -> None:
        self._buffer = buffer

    def read_page(self) -> PixelBuffer:
        return self._buffer


class ImageFilePixelSource(PixelSource):
    """
    A rendered page image on disk (PNG etc.), decoded with Pillow on first read.
    """

    def __init__(self, image_file: Path) -> None:
        self.image_file = image_file
        self._buffer: PixelBuffer | None = None

    def read_page(self) -> PixelBuffer:
        if self._buffer is None:
            try:
                with Image.open(self.image_file) as img:
                    img.load()
                    self._buffer = PixelBuffer.from_pil(img)
            except (OSError, UnidentifiedImageError, Image.DecompressionBombError, ValueError) as e:
                raise PixelAccessError(f"Cannot read page image {self.image_file.name}: {e}") from e
        return self._buffer

    def size(self) -> tuple[int, int]:
        if self._buffer is not None:
            return self._buffer.width, self._buffer.height
        try:
            with Image.open(self.image_file) as img:
                return img.size
        except (OSError, UnidentifiedImageError, Image.DecompressionBombError) as e:
            raise PixelAccessError(f"Cannot read page image {self.image_file.name}: {e}") from e
