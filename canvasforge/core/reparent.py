"""
Moves annotations between coordinate owners (the canvas, or an image)
without changing where they appear on screen.
"""

from __future__ import annotations
import dataclasses
import logging
import math
from typing import Dict, Iterable, List, Optional, Tuple
from .annotation import Annotation
from .doc import AnnotationSelection, Document
from .geometry import GeometryError, Point
from .image import CanvasImage
from .matrix import Matrix
from .transform import image_matrix, inverse_image_matrix, vector_to_local


logger = logging.getLogger(__name__)


def _space_of(image: Optional[CanvasImage]) -> Tuple[float, float]:
    """(scale, rotation) of a coordinate owner. The canvas is (1, 0)."""
    if image is None:
        return 1.0, 0.0
    return image.scale, image.rotation


def reparent_annotation(
    annotation: Annotation,
    source: Optional[CanvasImage],
    target: Optional[CanvasImage],
) -> Annotation:
    """
    Returns a copy of `annotation` expressed in the space of `target`,
    given that it is currently expressed in the space of `source`. None
    stands for the canvas.

    Every transformable point goes local -> global -> local; scalar size
    fields are multiplied by source_scale / target_scale, and the
    annotation's own rotation and scale absorb the difference between the
    two owners.
    """
    source_scale, source_rotation = _space_of(source)
    target_scale, target_rotation = _space_of(target)
    if not math.isfinite(target_scale) or target_scale <= 0:
        raise GeometryError(
            f"Cannot reparent into a space with scale {target_scale}"
        )

    moved = annotation
    if source is not None or target is not None:
        transform = Matrix.identity()
        if source is not None:
            transform = image_matrix(source)
        if target is not None:
            transform = inverse_image_matrix(target) @ transform
        moved = moved.map_points(transform.transform_point)
    factor = source_scale / target_scale
    if factor != 1.0:
        moved = moved.scaled(factor)
    return dataclasses.replace(
        moved,
        rotation=(annotation.rotation + source_rotation) - target_rotation,
        scale=(annotation.scale * source_scale) / target_scale,
    )


def reparent_annotations(
    doc: Document,
    selections: Iterable[AnnotationSelection],
    target_image_id: Optional[str],
) -> Document:
    """
    Moves the selected annotations into `target_image_id` (None for the
    canvas), removing them from wherever they are now. Moved annotations
    are appended on top of the target's existing annotations and keep
    their ids.

    Raises KeyError if the target image does not exist.
    """
    target: Optional[CanvasImage] = None
    if target_image_id is not None:
        target = doc.get_image(target_image_id)
        if target is None:
            raise KeyError(f"No image with id {target_image_id}")

    images: Dict[str, CanvasImage] = {img.id: img for img in doc.images}
    canvas_annos: List[Annotation] = list(doc.canvas_annotations)
    moved: List[Annotation] = []

    for sel in selections:
        if sel.image_id == target_image_id:
            continue
        source = images.get(sel.image_id) if sel.image_id else None
        if sel.image_id is not None and source is None:
            logger.warning(
                f"Skipping annotation {sel.annotation_id}: "
                f"image {sel.image_id} does not exist."
            )
            continue

        if source is None:
            anno = next(
                (a for a in canvas_annos if a.id == sel.annotation_id), None
            )
        else:
            anno = source.get_annotation(sel.annotation_id)
        if anno is None:
            logger.warning(
                f"Skipping annotation {sel.annotation_id}: not found."
            )
            continue

        moved.append(reparent_annotation(anno, source, target))
        if source is None:
            canvas_annos = [a for a in canvas_annos if a.id != anno.id]
        else:
            images[source.id] = source.with_annotations(
                a for a in source.annotations if a.id != anno.id
            )

    if not moved:
        return doc

    logger.debug(
        f"Reparented {len(moved)} annotation(s) to "
        f"{target_image_id or 'canvas'}"
    )
    if target is None:
        canvas_annos.extend(moved)
    else:
        current = images[target.id]
        images[target.id] = current.with_annotations(
            current.annotations + tuple(moved)
        )
    return doc.replace(
        images=[images[img.id] for img in doc.images],
        canvas_annotations=canvas_annos,
    )


def move_annotations(
    doc: Document,
    selections: Iterable[AnnotationSelection],
    delta: Point,
) -> Document:
    """
    Translates the selected annotations by a global delta. Annotations on
    images are moved by the delta expressed in that image's local space.
    """
    per_image: Dict[Optional[str], set] = {}
    for sel in selections:
        per_image.setdefault(sel.image_id, set()).add(sel.annotation_id)
    if not per_image:
        return doc

    dx, dy = delta
    canvas_ids = per_image.pop(None, set())
    canvas_annos = [
        a.translated(dx, dy) if a.id in canvas_ids else a
        for a in doc.canvas_annotations
    ]

    images = []
    for img in doc.images:
        ids = per_image.get(img.id)
        if not ids:
            images.append(img)
            continue
        lx, ly = vector_to_local(delta, img)
        images.append(
            img.with_annotations(
                a.translated(lx, ly) if a.id in ids else a
                for a in img.annotations
            )
        )
    return doc.replace(images=images, canvas_annotations=canvas_annos)
