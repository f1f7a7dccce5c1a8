from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Iterable, Optional
from ..core.crop import EmptyCropError, apply_crop, restore
from ..core.geometry import Rect

if TYPE_CHECKING:
    from .editor import DocEditor


logger = logging.getLogger(__name__)


class CropCmd:
    """Handles non-destructive cropping and uncropping."""

    def __init__(self, editor: "DocEditor"):
        self._editor = editor

    def apply(self, crop_rect: Optional[Rect] = None) -> bool:
        """
        Crops every visible, unlocked image under `crop_rect`, or under the
        editor's crop area if no rectangle is given. On success the crop
        area is cleared.
        """
        editor = self._editor
        if crop_rect is None:
            crop_rect = editor.crop_area
        if crop_rect is None:
            return False

        doc = editor.doc
        try:
            result = apply_crop(doc.images, crop_rect, editor.archive)
        except EmptyCropError as e:
            logger.warning(f"Crop skipped: {e}")
            editor.notification_requested.send(
                self, message=_("The crop area does not cover any image.")
            )
            return False

        editor.commit(doc.replace(images=result.updated_images), _("Crop"))
        editor.crop_area = None
        return True

    def uncrop(self, image_ids: Optional[Iterable[str]] = None) -> bool:
        """
        Restores the pre-crop originals of the given (or selected) images.
        Images that were never cropped are left alone.
        """
        editor = self._editor
        if image_ids is None:
            image_ids = editor.selection.image_ids
        doc = editor.doc
        images = restore(doc.images, image_ids, editor.archive)
        return editor.commit(doc.replace(images=images), _("Uncrop"))
