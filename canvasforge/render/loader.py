from __future__ import annotations
import io
import logging
from dataclasses import dataclass
from typing import Any, Protocol
import cairo


logger = logging.getLogger(__name__)


class ImageDecodeError(Exception):
    """Raised by an ImageLoader when the bytes cannot be decoded."""

    pass


@dataclass(frozen=True)
class LoadedImage:
    """A decoded bitmap: an opaque handle plus its pixel size."""

    handle: Any
    width: int
    height: int


class ImageLoader(Protocol):
    mime_types: tuple

    def load_image(self, data: bytes) -> LoadedImage:
        ...


class PNGLoader:
    """Decodes PNG data into a cairo ImageSurface."""

    mime_types = ("image/png",)

    def load_image(self, data: bytes) -> LoadedImage:
        try:
            surface = cairo.ImageSurface.create_from_png(io.BytesIO(data))
        except (cairo.Error, MemoryError) as e:
            raise ImageDecodeError(f"Not a readable PNG: {e}") from e
        width, height = surface.get_width(), surface.get_height()
        logger.debug(f"Decoded PNG of {width}x{height} pixels")
        return LoadedImage(surface, width, height)
