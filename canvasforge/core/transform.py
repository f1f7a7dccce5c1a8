"""
Conversions between an image's local space and global canvas space.

An image is drawn by translating to its center, rotating, scaling and
then drawing the bitmap offset by minus half its local size. image_matrix()
builds exactly that pipeline, and the compositor hands the same matrix to
cairo, so what the transform predicts is where pixels land.
"""

from __future__ import annotations
import logging
import math
from typing import Iterable, List, Optional, Tuple, TYPE_CHECKING
from .geometry import GeometryError, Point, Rect
from .matrix import Matrix

if TYPE_CHECKING:
    from .group import Group
    from .image import CanvasImage


logger = logging.getLogger(__name__)

__all__ = [
    "GeometryError",
    "image_matrix",
    "inverse_image_matrix",
    "to_global",
    "to_local",
    "vector_to_local",
    "image_corners",
    "image_bounds",
    "images_bounds",
    "group_bounds",
]


def _check_image(image: "CanvasImage"):
    values = (image.x, image.y, image.width, image.height, image.rotation)
    if not all(math.isfinite(v) for v in values):
        raise GeometryError(f"Image {image.id} has non-finite geometry")
    if not (math.isfinite(image.scale) and image.scale > 0):
        raise GeometryError(
            f"Image {image.id} has a degenerate scale: {image.scale}"
        )


def image_matrix(image: "CanvasImage") -> Matrix:
    """
    The local-to-global matrix of an image:
    T(center) @ R(rotation) @ S(scale) @ T(-width/2, -height/2).
    """
    _check_image(image)
    cx, cy = image.center
    return (
        Matrix.translation(cx, cy)
        @ Matrix.rotation(image.rotation)
        @ Matrix.scale(image.scale, image.scale)
        @ Matrix.translation(-image.width / 2, -image.height / 2)
    )


def inverse_image_matrix(image: "CanvasImage") -> Matrix:
    """
    The global-to-local matrix, composed from the inverted steps in reverse
    order rather than by numeric inversion.
    """
    _check_image(image)
    cx, cy = image.center
    inv_scale = 1.0 / image.scale
    return (
        Matrix.translation(image.width / 2, image.height / 2)
        @ Matrix.scale(inv_scale, inv_scale)
        @ Matrix.rotation(-image.rotation)
        @ Matrix.translation(-cx, -cy)
    )


def to_global(point: Point, image: "CanvasImage") -> Point:
    """Maps a point from the image's local space into canvas space."""
    return image_matrix(image).transform_point(point)


def to_local(point: Point, image: "CanvasImage") -> Point:
    """Maps a point from canvas space into the image's local space."""
    return inverse_image_matrix(image).transform_point(point)


def vector_to_local(delta: Point, image: "CanvasImage") -> Point:
    """
    Converts a global displacement (e.g. a drag delta) into the image's
    local space. Translation does not apply to vectors.
    """
    return inverse_image_matrix(image).transform_vector(delta)


def image_corners(image: "CanvasImage") -> Tuple[Point, Point, Point, Point]:
    """Global positions of the local corners, clockwise from top-left."""
    m = image_matrix(image)
    w, h = image.width, image.height
    return (
        m.transform_point((0.0, 0.0)),
        m.transform_point((w, 0.0)),
        m.transform_point((w, h)),
        m.transform_point((0.0, h)),
    )


def image_bounds(image: "CanvasImage") -> Rect:
    """The axis-aligned global bounding box of a (possibly rotated) image."""
    bounds = Rect.from_points(image_corners(image))
    assert bounds is not None
    return bounds


def images_bounds(images: Iterable["CanvasImage"]) -> Optional[Rect]:
    """
    Combined bounding box of all visible images, or None if there are none.
    """
    points: List[Point] = []
    for image in images:
        if not image.visible:
            continue
        points.extend(image_corners(image))
    return Rect.from_points(points)


def group_bounds(
    group: "Group",
    groups: Iterable["Group"],
    images: Iterable["CanvasImage"],
) -> Optional[Rect]:
    """
    Bounding box of everything inside a group, descending into child
    groups.
    """
    image_map = {img.id: img for img in images}
    group_map = {g.id: g for g in groups}
    visited = set()

    def collect(g: "Group") -> List["CanvasImage"]:
        if g.id in visited:
            logger.warning(f"Group cycle detected at {g.id}, skipping.")
            return []
        visited.add(g.id)
        members = [image_map[i] for i in g.image_ids if i in image_map]
        for child_id in g.group_ids:
            child = group_map.get(child_id)
            if child is not None:
                members.extend(collect(child))
        return members

    return images_bounds(collect(group))
