"""
Non-destructive cropping.

A crop never throws pixels away: the pre-crop image is archived under its
own id the first time it is cropped, and every cropped descendant keeps
pointing at that archive entry through `uncropped_from_id`. Uncropping
swaps the archived original back in, centered where the cropped image is
now.
"""

from __future__ import annotations
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple
from .geometry import Rect
from .image import CanvasImage
from .transform import to_global, to_local


logger = logging.getLogger(__name__)


class EmptyCropError(Exception):
    """
    Raised when a crop rectangle does not intersect any image that can be
    cropped. Nothing is changed.
    """

    pass


class CropArchive:
    """
    Append-only store of pre-crop originals, keyed by image id.

    An entry is written only the first time an id is archived, so chained
    crops always restore the true original rather than an intermediate
    crop. Entries are never removed, which makes uncrop repeatable.
    """

    def __init__(self, entries: Optional[Dict[str, CanvasImage]] = None):
        self._entries: Dict[str, CanvasImage] = dict(entries or {})

    def __contains__(self, image_id: object) -> bool:
        return image_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def get(self, image_id: str) -> Optional[CanvasImage]:
        return self._entries.get(image_id)

    def archive(self, image: CanvasImage) -> bool:
        """
        Stores `image` under its id unless that id is already archived.
        Returns True if a new entry was written.
        """
        if image.id in self._entries:
            return False
        self._entries[image.id] = image
        logger.debug(f"Archived pre-crop original {image.id}")
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            image_id: image.to_dict()
            for image_id, image in self._entries.items()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CropArchive:
        return cls(
            {
                str(image_id): CanvasImage.from_dict(image)
                for image_id, image in data.items()
            }
        )


@dataclass
class CropResult:
    updated_images: List[CanvasImage] = field(default_factory=list)
    archived_originals: Dict[str, CanvasImage] = field(default_factory=dict)


def local_crop_box(
    image: CanvasImage, crop_rect: Rect
) -> Optional[Tuple[float, float, float, float]]:
    """
    Intersects a global crop rectangle with an image, in the image's local
    space. The four corners of the rectangle are mapped into local space
    and their bounding box is clipped to [0, width] x [0, height].

    Returns (left, top, right, bottom), or None if the intersection is
    empty.
    """
    corners = [to_local(p, image) for p in crop_rect.normalized().corners()]
    crop_x = max(0.0, min(p[0] for p in corners))
    crop_y = max(0.0, min(p[1] for p in corners))
    crop_right = min(image.width, max(p[0] for p in corners))
    crop_bottom = min(image.height, max(p[1] for p in corners))
    if crop_x >= crop_right or crop_y >= crop_bottom:
        return None
    return crop_x, crop_y, crop_right, crop_bottom


def crop_image(
    image: CanvasImage, crop_rect: Rect
) -> Optional[CanvasImage]:
    """
    Returns the cropped version of `image`, or None if `crop_rect` does not
    intersect it. Scale and rotation are kept and the visual center of the
    kept region stays where it was on the canvas.
    """
    box = local_crop_box(image, crop_rect)
    if box is None:
        return None
    crop_x, crop_y, crop_right, crop_bottom = box
    new_width = crop_right - crop_x
    new_height = crop_bottom - crop_y

    local_center = (crop_x + new_width / 2, crop_y + new_height / 2)
    global_center = to_global(local_center, image)

    previous = image.crop_rect
    offset_x = previous.x if previous else 0.0
    offset_y = previous.y if previous else 0.0

    cropped = dataclasses.replace(
        image,
        width=new_width,
        height=new_height,
        annotations=tuple(
            anno.translated(-crop_x, -crop_y) for anno in image.annotations
        ),
        crop_rect=Rect(
            offset_x + crop_x, offset_y + crop_y, new_width, new_height
        ),
        uncropped_from_id=image.uncropped_from_id or image.id,
        original_width=(
            image.original_width
            if image.original_width is not None
            else image.width
        ),
        original_height=(
            image.original_height
            if image.original_height is not None
            else image.height
        ),
    )
    return cropped.centered_at(global_center)


def apply_crop(
    images: Iterable[CanvasImage],
    crop_rect: Rect,
    archive: CropArchive,
) -> CropResult:
    """
    Crops every visible, unlocked image that `crop_rect` (in canvas space)
    intersects. Images it does not touch are returned unchanged. Each
    cropped image's pre-crop state is archived unless its id is already in
    the archive.

    Raises EmptyCropError if no eligible image was cropped; in that case
    the archive is not modified.
    """
    result = CropResult()
    pending: List[CanvasImage] = []
    for image in images:
        cropped = None
        if image.visible and not image.locked:
            cropped = crop_image(image, crop_rect)
        if cropped is None:
            result.updated_images.append(image)
            continue
        pending.append(image)
        result.updated_images.append(cropped)

    if not pending:
        raise EmptyCropError(
            f"Crop area {crop_rect} does not intersect any croppable image"
        )

    for original in pending:
        if archive.archive(original):
            result.archived_originals[original.id] = original
    logger.info(f"Cropped {len(pending)} image(s)")
    return result


def restore(
    images: Iterable[CanvasImage],
    image_ids: Iterable[str],
    archive: CropArchive,
) -> List[CanvasImage]:
    """
    Uncrops the given images. Each one whose `uncropped_from_id` is in the
    archive is replaced, in place, by the archived original re-centered on
    the cropped image's current center. Others are returned unchanged.
    """
    wanted = set(image_ids)
    restored: List[CanvasImage] = []
    for image in images:
        original = None
        if image.id in wanted and image.uncropped_from_id:
            original = archive.get(image.uncropped_from_id)
        if original is None:
            if image.id in wanted:
                logger.debug(f"Image {image.id} has no archived original")
            restored.append(image)
            continue
        # The restored image takes over the cropped image's id, so
        # selections and group membership stay valid.
        original = dataclasses.replace(original, id=image.id)
        restored.append(original.centered_at(image.center))
    return restored
