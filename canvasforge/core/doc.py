from __future__ import annotations
import dataclasses
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
from .annotation import Annotation
from .group import Group
from .image import CanvasImage


@dataclass(frozen=True)
class AnnotationSelection:
    """
    Names a single annotation. `image_id` is None for annotations that live
    on the canvas itself.
    """

    image_id: Optional[str]
    annotation_id: str

    @property
    def on_canvas(self) -> bool:
        return self.image_id is None


@dataclass(frozen=True)
class Document:
    """
    An immutable snapshot of everything that undo/redo restores: the images
    (in z-order, index 0 at the bottom), the group hierarchy and the
    floating canvas annotations. Commands never mutate a Document; they
    return a new one.
    """

    images: Tuple[CanvasImage, ...] = ()
    groups: Tuple[Group, ...] = ()
    canvas_annotations: Tuple[Annotation, ...] = ()

    def replace(self, **changes) -> Document:
        for key in ("images", "groups", "canvas_annotations"):
            if key in changes:
                changes[key] = tuple(changes[key])
        return dataclasses.replace(self, **changes)

    @property
    def image_ids(self) -> List[str]:
        return [img.id for img in self.images]

    def get_image(self, image_id: str) -> Optional[CanvasImage]:
        for img in self.images:
            if img.id == image_id:
                return img
        return None

    def get_group(self, group_id: str) -> Optional[Group]:
        for group in self.groups:
            if group.id == group_id:
                return group
        return None

    def get_canvas_annotation(
        self, annotation_id: str
    ) -> Optional[Annotation]:
        for anno in self.canvas_annotations:
            if anno.id == annotation_id:
                return anno
        return None

    def find_annotation(
        self, selection: AnnotationSelection
    ) -> Optional[Annotation]:
        if selection.image_id is None:
            return self.get_canvas_annotation(selection.annotation_id)
        image = self.get_image(selection.image_id)
        if image is None:
            return None
        return image.get_annotation(selection.annotation_id)

    def parent_group_of(self, item_id: str) -> Optional[Group]:
        """The group that directly contains an image or group, if any."""
        for group in self.groups:
            if item_id in group.image_ids or item_id in group.group_ids:
                return group
        return None

    def replace_images(self, updated: Iterable[CanvasImage]) -> Document:
        """
        Swaps in new versions of images by id, keeping their z-order.
        Images that are not in the document are ignored.
        """
        by_id = {img.id: img for img in updated}
        return self.replace(
            images=[by_id.get(img.id, img) for img in self.images]
        )

    def replace_groups(self, updated: Iterable[Group]) -> Document:
        by_id = {g.id: g for g in updated}
        return self.replace(
            groups=[by_id.get(g.id, g) for g in self.groups]
        )
