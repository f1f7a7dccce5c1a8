from __future__ import annotations
import dataclasses
import logging
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional
from ..core.doc import AnnotationSelection, Document
from ..core.geometry import Point
from ..core.image import CanvasImage
from ..core.reparent import move_annotations
from .layout import ALIGN_STRATEGIES, LayoutStrategy, SequenceStrategy

if TYPE_CHECKING:
    from .editor import DocEditor

logger = logging.getLogger(__name__)


class TransformCmd:
    """
    Handles undoable transformations of images and annotations.

    Pointer drags go through the live overlay of the history: drag_*()
    stages every intermediate frame, end_drag() commits the result as one
    undo step and cancel_drag() restores the state from before the drag.
    """

    def __init__(self, editor: "DocEditor"):
        self._editor = editor

    def _selected_images(
        self, image_ids: Optional[Iterable[str]]
    ) -> List[CanvasImage]:
        doc = self._editor.doc
        if image_ids is None:
            image_ids = self._editor.selection.image_ids
        wanted = set(image_ids)
        return [img for img in doc.images if img.id in wanted]

    @staticmethod
    def _moved(
        doc: Document, deltas: Dict[str, Point]
    ) -> Document:
        return doc.replace_images(
            img.moved_by(*deltas[img.id])
            for img in doc.images
            if img.id in deltas
        )

    def _apply_layout(self, strategy: LayoutStrategy, name: str) -> bool:
        deltas = strategy.calculate_deltas()
        if not deltas:
            return False
        logger.debug(f"{name}: moving {len(deltas)} image(s)")
        return self._editor.commit(
            self._moved(self._editor.doc, deltas), name
        )

    def _image_deltas(
        self, image_ids: Optional[Iterable[str]], delta: Point
    ) -> Dict[str, Point]:
        return {
            img.id: delta
            for img in self._selected_images(image_ids)
            if not img.locked
        }

    def move_images(
        self,
        delta: Point,
        image_ids: Optional[Iterable[str]] = None,
    ) -> bool:
        """
        Moves images (the selected ones by default) by a global delta as
        a single undo step. Locked images stay put.
        """
        if delta == (0.0, 0.0):
            return False
        deltas = self._image_deltas(image_ids, delta)
        if not deltas:
            return False
        return self._editor.commit(
            self._moved(self._editor.doc, deltas), _("Move image(s)")
        )

    def drag_images(
        self,
        delta: Point,
        image_ids: Optional[Iterable[str]] = None,
    ):
        """Stages one frame of an image drag; `delta` is per frame."""
        deltas = self._image_deltas(image_ids, delta)
        if deltas:
            history = self._editor.history_manager
            history.stage(self._moved(history.current, deltas))

    def move_annotations(
        self,
        delta: Point,
        selections: Optional[Iterable[AnnotationSelection]] = None,
    ) -> bool:
        """
        Moves annotations (the selected ones by default) by a global
        delta. Annotations on images move by the delta expressed in that
        image's local space.
        """
        if selections is None:
            selections = self._editor.selection.annotations
        new_doc = move_annotations(self._editor.doc, selections, delta)
        return self._editor.commit(new_doc, _("Move annotation(s)"))

    def drag_annotations(
        self,
        delta: Point,
        selections: Optional[Iterable[AnnotationSelection]] = None,
    ):
        if selections is None:
            selections = self._editor.selection.annotations
        history = self._editor.history_manager
        history.stage(move_annotations(history.current, selections, delta))

    def end_drag(self, name: Optional[str] = None) -> bool:
        history = self._editor.history_manager
        if history.live is None:
            return False
        return self._editor.commit(history.live, name or _("Move"))

    def cancel_drag(self):
        self._editor.history_manager.discard()

    def align(
        self,
        alignment: str,
        image_ids: Optional[Iterable[str]] = None,
    ) -> bool:
        """
        Aligns the bounding boxes of two or more images. `alignment` is
        one of left, h-center, right, top, v-center or bottom.
        """
        strategy_class = ALIGN_STRATEGIES.get(alignment)
        if strategy_class is None:
            raise ValueError(f"Unknown alignment: {alignment!r}")
        images = self._selected_images(image_ids)
        if len(images) < 2:
            return False
        return self._apply_layout(strategy_class(images), _("Align images"))

    def _sequence(
        self,
        image_ids: Optional[Iterable[str]],
        direction: str,
        order: str,
        padding: float,
        name: str,
    ) -> bool:
        images = self._selected_images(image_ids)
        if len(images) < 2:
            return False
        image_ids = self._editor.doc.image_ids
        z_order = {image_id: i for i, image_id in enumerate(image_ids)}
        strategy = SequenceStrategy(
            images, z_order, direction, order, padding
        )
        return self._apply_layout(strategy, name)

    def arrange(
        self,
        direction: str = "horizontal",
        order: str = "normal",
        image_ids: Optional[Iterable[str]] = None,
    ) -> bool:
        """
        Lines images up in layer order with the configured padding between
        them. The topmost image goes first unless `order` is "reverse".
        """
        return self._sequence(
            image_ids,
            direction,
            order,
            self._editor.config.arrange_padding,
            _("Arrange images"),
        )

    def stack(
        self,
        direction: str = "horizontal",
        order: str = "normal",
        image_ids: Optional[Iterable[str]] = None,
    ) -> bool:
        """Like arrange(), but edge to edge."""
        return self._sequence(
            image_ids, direction, order, 0.0, _("Stack images")
        )

    def match_sizes(
        self,
        dimension: str,
        image_ids: Optional[List[str]] = None,
    ) -> bool:
        """
        Rescales images so their displayed width (or height) matches the
        first image in `image_ids`, or the first selected image.
        """
        if dimension not in ("width", "height"):
            raise ValueError(f"Unknown dimension: {dimension!r}")
        if image_ids is None:
            image_ids = self._editor.selection.image_ids
        if len(image_ids) < 2:
            return False
        doc = self._editor.doc
        reference = doc.get_image(image_ids[0])
        if reference is None:
            return False
        ref_w, ref_h = reference.scaled_size

        updated = []
        for img in self._selected_images(image_ids[1:]):
            size = img.width if dimension == "width" else img.height
            if size <= 0:
                logger.warning(f"Cannot match size of empty image {img.id}")
                continue
            target = ref_w if dimension == "width" else ref_h
            updated.append(dataclasses.replace(img, scale=target / size))
        if not updated:
            return False
        return self._editor.commit(
            doc.replace_images(updated), _("Match image sizes")
        )

    def set_rotation(
        self, angle: float, image_ids: Optional[Iterable[str]] = None
    ) -> bool:
        """Sets the rotation (degrees, clockwise) about each image center."""
        updated = [
            dataclasses.replace(img, rotation=angle % 360)
            for img in self._selected_images(image_ids)
            if not img.locked
        ]
        if not updated:
            return False
        return self._editor.commit(
            self._editor.doc.replace_images(updated), _("Rotate image(s)")
        )
