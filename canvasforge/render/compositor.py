"""
Paints a document onto a cairo context.

Images are drawn with the same local-to-global matrix that the coordinate
transform uses, so a point mapped with to_global() is exactly where the
corresponding bitmap pixel ends up. Annotations are drawn by a caller
supplied callable, with the context already set to their owner's space.
"""

from __future__ import annotations
import logging
import re
from typing import Callable, Optional, Tuple
import cairo
from ..core.annotation import Annotation
from ..core.doc import Document
from ..core.image import CanvasImage
from ..core.layers import render_order
from ..core.matrix import Matrix


logger = logging.getLogger(__name__)

DrawBitmap = Callable[[cairo.Context, CanvasImage], None]
DrawAnnotation = Callable[[cairo.Context, Annotation], None]

_HEX_COLOR = re.compile(r"^#?([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})$", re.I)


def hex_to_rgb(color: str) -> Optional[Tuple[float, float, float]]:
    """Parses "#rrggbb" into cairo's 0..1 components."""
    match = _HEX_COLOR.match(color.strip())
    if not match:
        return None
    r, g, b = (int(part, 16) / 255.0 for part in match.groups())
    return r, g, b


def to_cairo_matrix(matrix: Matrix) -> cairo.Matrix:
    return cairo.Matrix(*matrix.to_cairo())


def apply_image_transform(ctx: cairo.Context, image: CanvasImage):
    """
    Multiplies the image's local-to-global matrix onto the context:
    translate to the center, rotate, scale, then offset by minus half the
    local size. Afterwards (0, 0) is the image's local origin.
    """
    ctx.transform(to_cairo_matrix(image.matrix))


def draw_surface_bitmap(ctx: cairo.Context, image: CanvasImage):
    """
    Paints `image.handle` when it is a cairo surface holding the uncropped
    bitmap. The crop offset selects the visible part.
    """
    surface = image.handle
    if not isinstance(surface, cairo.Surface):
        return
    offset_x = image.crop_rect.x if image.crop_rect else 0.0
    offset_y = image.crop_rect.y if image.crop_rect else 0.0
    ctx.set_source_surface(surface, -offset_x, -offset_y)
    ctx.paint()


def _draw_outline(ctx: cairo.Context, image: CanvasImage):
    rgb = hex_to_rgb(image.outline_color)
    if image.outline_width <= 0 or rgb is None:
        return
    ctx.set_source_rgba(*rgb, image.outline_opacity)
    # Keep the outline width in canvas units regardless of image scale.
    ctx.set_line_width(image.outline_width / image.scale)
    ctx.rectangle(0, 0, image.width, image.height)
    ctx.stroke()


def draw_image(
    ctx: cairo.Context,
    image: CanvasImage,
    draw_bitmap: DrawBitmap = draw_surface_bitmap,
    draw_annotation: Optional[DrawAnnotation] = None,
):
    """Draws one image with its outline and local annotations."""
    ctx.save()
    apply_image_transform(ctx, image)

    ctx.save()
    ctx.rectangle(0, 0, image.width, image.height)
    ctx.clip()
    draw_bitmap(ctx, image)
    ctx.restore()

    _draw_outline(ctx, image)
    if draw_annotation is not None:
        for anno in image.annotations:
            ctx.save()
            draw_annotation(ctx, anno)
            ctx.restore()
    ctx.restore()


def composite(
    ctx: cairo.Context,
    document: Document,
    draw_bitmap: DrawBitmap = draw_surface_bitmap,
    draw_annotation: Optional[DrawAnnotation] = None,
):
    """
    Paints every visible image bottom to top, then the canvas annotations
    on top of all images.
    """
    images = render_order(document)
    for image in images:
        draw_image(ctx, image, draw_bitmap, draw_annotation)
    if draw_annotation is not None:
        for anno in document.canvas_annotations:
            ctx.save()
            draw_annotation(ctx, anno)
            ctx.restore()
    logger.debug(f"Composited {len(images)} image(s)")


def render_to_surface(
    document: Document,
    width: int,
    height: int,
    view_scale: float = 1.0,
    view_offset: Tuple[float, float] = (0.0, 0.0),
    draw_bitmap: DrawBitmap = draw_surface_bitmap,
    draw_annotation: Optional[DrawAnnotation] = None,
) -> cairo.ImageSurface:
    """
    Renders the document into a new ARGB32 surface. The view maps canvas
    point p to screen point p * view_scale + view_offset.
    """
    surface = cairo.ImageSurface(cairo.FORMAT_ARGB32, width, height)
    ctx = cairo.Context(surface)
    ctx.translate(*view_offset)
    ctx.scale(view_scale, view_scale)
    composite(ctx, document, draw_bitmap, draw_annotation)
    surface.flush()
    return surface
