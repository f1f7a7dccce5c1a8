from __future__ import annotations
from typing import Iterable, List, Optional
from blinker import Signal
from ..core.doc import AnnotationSelection, Document


class Selection:
    """
    What the user has selected: images, annotations and the highlighted
    row of the layers list. Sends `changed` after every modification.
    """

    def __init__(self):
        self.image_ids: List[str] = []
        self.annotations: List[AnnotationSelection] = []
        self.layer_id: Optional[str] = None
        self.changed = Signal()

    def __bool__(self) -> bool:
        return bool(self.image_ids or self.annotations or self.layer_id)

    def set_images(self, image_ids: Iterable[str]):
        self.image_ids = list(dict.fromkeys(image_ids))
        self.changed.send(self)

    def set_annotations(self, selections: Iterable[AnnotationSelection]):
        self.annotations = list(dict.fromkeys(selections))
        self.changed.send(self)

    def select_layer(self, layer_id: Optional[str]):
        self.layer_id = layer_id
        self.changed.send(self)

    def box_select(
        self,
        image_ids: Iterable[str],
        annotations: Iterable[AnnotationSelection],
        mode: str = "replace",
    ):
        """
        Applies a marquee selection. `mode` is "replace", "add" (union)
        or "subtract".
        """
        image_ids = list(image_ids)
        annotations = list(annotations)
        if mode == "replace":
            self.image_ids = list(dict.fromkeys(image_ids))
            self.annotations = list(dict.fromkeys(annotations))
        elif mode == "add":
            self.image_ids = list(dict.fromkeys(self.image_ids + image_ids))
            self.annotations = list(
                dict.fromkeys(self.annotations + annotations)
            )
        elif mode == "subtract":
            self.image_ids = [i for i in self.image_ids if i not in image_ids]
            self.annotations = [
                a for a in self.annotations if a not in annotations
            ]
        else:
            raise ValueError(f"Unknown selection mode: {mode!r}")
        self.changed.send(self)

    def clear(self):
        if not self:
            return
        self.image_ids = []
        self.annotations = []
        self.layer_id = None
        self.changed.send(self)

    def prune(self, doc: Document):
        """Forgets anything that no longer exists in `doc`."""
        image_ids = set(doc.image_ids)
        group_ids = {g.id for g in doc.groups}
        kept_images = [i for i in self.image_ids if i in image_ids]
        kept_annos = [
            a for a in self.annotations if doc.find_annotation(a) is not None
        ]
        layer_id = self.layer_id
        if layer_id not in image_ids and layer_id not in group_ids:
            layer_id = None
        if (
            kept_images == self.image_ids
            and kept_annos == self.annotations
            and layer_id == self.layer_id
        ):
            return
        self.image_ids = kept_images
        self.annotations = kept_annos
        self.layer_id = layer_id
        self.changed.send(self)
