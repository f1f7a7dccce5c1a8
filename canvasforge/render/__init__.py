from .compositor import (
    apply_image_transform,
    composite,
    draw_image,
    render_to_surface,
)
from .loader import ImageDecodeError, ImageLoader, LoadedImage, PNGLoader

__all__ = [
    "apply_image_transform",
    "composite",
    "draw_image",
    "render_to_surface",
    "ImageDecodeError",
    "ImageLoader",
    "LoadedImage",
    "PNGLoader",
]
