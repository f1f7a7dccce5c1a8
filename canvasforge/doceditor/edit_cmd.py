from __future__ import annotations
import dataclasses
import logging
from typing import TYPE_CHECKING, Iterable, Optional
from ..core.annotation import Annotation, new_id
from ..core.doc import AnnotationSelection
from ..core.image import CanvasImage
from ..core.layers import remove_image

if TYPE_CHECKING:
    from .editor import DocEditor


logger = logging.getLogger(__name__)


class EditCmd:
    """Handles adding, changing and removing images and annotations."""

    def __init__(self, editor: "DocEditor"):
        self._editor = editor

    def add_image(self, image: CanvasImage, select: bool = True) -> bool:
        """Adds an image on top of all others."""
        doc = self._editor.doc
        if doc.get_image(image.id) is not None:
            raise ValueError(f"Image id {image.id} is already in use")
        self._editor.commit(
            doc.replace(images=doc.images + (image,)), _("Add image")
        )
        if select:
            self._editor.selection.set_images([image.id])
        return True

    def delete_images(self, image_ids: Iterable[str]) -> bool:
        """
        Removes images and drops them from their groups. Groups that end
        up empty are removed too.
        """
        doc = new_doc = self._editor.doc
        for image_id in dict.fromkeys(image_ids):
            if new_doc.get_image(image_id) is not None:
                new_doc = remove_image(new_doc, image_id)
        if new_doc is doc:
            return False
        self._editor.commit(new_doc, _("Delete image(s)"))
        self._editor.selection.prune(self._editor.doc)
        deleted = len(doc.images) - len(new_doc.images)
        logger.debug(f"Deleted {deleted} image(s)")
        return True

    def delete_selected_images(self) -> bool:
        return self.delete_images(self._editor.selection.image_ids)

    def add_annotation(
        self, annotation: Annotation, image_id: Optional[str] = None
    ) -> bool:
        """
        Adds an annotation to an image (in that image's local space) or,
        if `image_id` is None, to the canvas.
        """
        if not annotation.id:
            annotation = annotation.copy_with_id()
        doc = self._editor.doc
        if image_id is None:
            new_doc = doc.replace(
                canvas_annotations=doc.canvas_annotations + (annotation,)
            )
        else:
            image = doc.get_image(image_id)
            if image is None:
                raise KeyError(f"No image with id {image_id}")
            new_doc = doc.replace_images(
                [image.with_annotations(image.annotations + (annotation,))]
            )
        return self._editor.commit(new_doc, _("Add annotation"))

    def update_annotations(
        self, selections: Iterable[AnnotationSelection], **changes
    ) -> bool:
        """
        Sets fields (e.g. color or stroke_width) on the selected
        annotations. Fields an annotation does not have are skipped.
        """
        per_owner = {}
        for sel in selections:
            per_owner.setdefault(sel.image_id, set()).add(sel.annotation_id)

        def update(anno: Annotation) -> Annotation:
            names = {f.name for f in dataclasses.fields(anno)}
            applicable = {
                k: v for k, v in changes.items() if k in names and k != "id"
            }
            return dataclasses.replace(anno, **applicable)

        doc = self._editor.doc
        canvas_ids = per_owner.pop(None, set())
        canvas = [
            update(a) if a.id in canvas_ids else a
            for a in doc.canvas_annotations
        ]
        images = [
            img.with_annotations(
                update(a) if a.id in per_owner[img.id] else a
                for a in img.annotations
            )
            if img.id in per_owner
            else img
            for img in doc.images
        ]
        return self._editor.commit(
            doc.replace(images=images, canvas_annotations=canvas),
            _("Edit annotation(s)"),
        )

    def delete_annotations(
        self, selections: Iterable[AnnotationSelection]
    ) -> bool:
        doomed = set(selections)
        if not doomed:
            return False
        doc = self._editor.doc
        canvas = [
            a
            for a in doc.canvas_annotations
            if AnnotationSelection(None, a.id) not in doomed
        ]
        images = [
            img.with_annotations(
                a
                for a in img.annotations
                if AnnotationSelection(img.id, a.id) not in doomed
            )
            for img in doc.images
        ]
        changed = self._editor.commit(
            doc.replace(images=images, canvas_annotations=canvas),
            _("Delete annotation(s)"),
        )
        self._editor.selection.prune(self._editor.doc)
        return changed

    def duplicate_layer(self, item_id: str) -> Optional[str]:
        """
        Copies an image (with fresh annotation ids) or a canvas annotation,
        offset by the configured distance. A copied image is placed
        directly above the original and joins the original's group.
        Returns the new id, or None if `item_id` names neither.
        """
        doc = self._editor.doc
        offset = self._editor.config.duplicate_offset

        image = doc.get_image(item_id)
        if image is not None:
            copy = dataclasses.replace(
                image,
                id=new_id("img"),
                name=_("{name} Copy").format(name=image.name),
                x=image.x + offset,
                y=image.y + offset,
                annotations=tuple(a.copy_with_id() for a in image.annotations),
            )
            index = doc.image_ids.index(item_id)
            images = doc.images[: index + 1] + (copy,) + doc.images[index + 1:]
            new_doc = doc.replace(images=images)
            parent = doc.parent_group_of(item_id)
            if parent is not None:
                new_doc = new_doc.replace_groups(
                    [
                        dataclasses.replace(
                            parent, image_ids=parent.image_ids + (copy.id,)
                        )
                    ]
                )
            self._editor.commit(new_doc, _("Duplicate layer"))
            self._editor.selection.set_images([copy.id])
            self._editor.selection.select_layer(copy.id)
            return copy.id

        anno = doc.get_canvas_annotation(item_id)
        if anno is not None:
            copy_anno = anno.copy_with_id().translated(offset, offset)
            self._editor.commit(
                doc.replace(
                    canvas_annotations=doc.canvas_annotations + (copy_anno,)
                ),
                _("Duplicate layer"),
            )
            return copy_anno.id

        logger.debug(f"Nothing to duplicate for {item_id}")
        return None

    def rename(self, item_id: str, name: str) -> bool:
        doc = self._editor.doc
        image = doc.get_image(item_id)
        if image is not None:
            new_doc = doc.replace_images(
                [dataclasses.replace(image, name=name)]
            )
        else:
            group = doc.get_group(item_id)
            if group is None:
                raise KeyError(f"No image or group with id {item_id}")
            new_doc = doc.replace_groups(
                [dataclasses.replace(group, name=name, label=name)]
            )
        return self._editor.commit(new_doc, _("Rename"))

    def _toggle(self, item_id: str, field_name: str, name: str) -> bool:
        doc = self._editor.doc
        image = doc.get_image(item_id)
        if image is not None:
            value = not getattr(image, field_name)
            new_doc = doc.replace_images(
                [dataclasses.replace(image, **{field_name: value})]
            )
        else:
            group = doc.get_group(item_id)
            if group is None:
                raise KeyError(f"No image or group with id {item_id}")
            value = not getattr(group, field_name)
            new_doc = doc.replace_groups(
                [dataclasses.replace(group, **{field_name: value})]
            )
        return self._editor.commit(new_doc, name)

    def toggle_visibility(self, item_id: str) -> bool:
        return self._toggle(item_id, "visible", _("Toggle visibility"))

    def toggle_lock(self, item_id: str) -> bool:
        return self._toggle(item_id, "locked", _("Toggle lock"))
