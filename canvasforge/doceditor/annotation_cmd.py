from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Iterable, Optional
from ..core.doc import AnnotationSelection
from ..core.geometry import GeometryError
from ..core.reparent import reparent_annotations

if TYPE_CHECKING:
    from .editor import DocEditor


logger = logging.getLogger(__name__)


class AnnotationCmd:
    """
    Moves annotations between the canvas and images without changing how
    they look.
    """

    def __init__(self, editor: "DocEditor"):
        self._editor = editor

    def reparent(
        self,
        target_image_id: Optional[str],
        selections: Optional[Iterable[AnnotationSelection]] = None,
    ) -> bool:
        """
        Moves annotations (the selected ones by default) into
        `target_image_id`, or onto the canvas if it is None. The selection
        follows the moved annotations.
        """
        editor = self._editor
        if selections is None:
            selections = editor.selection.annotations
        selections = list(selections)
        if not selections:
            return False

        try:
            new_doc = reparent_annotations(
                editor.doc, selections, target_image_id
            )
        except (KeyError, GeometryError) as e:
            logger.warning(f"Reparent rejected: {e}")
            editor.notification_requested.send(
                self, message=_("The annotations could not be moved.")
            )
            return False

        if target_image_id is None:
            name = _("Move annotation(s) to canvas")
        else:
            name = _("Move annotation(s) to image")
        changed = editor.commit(new_doc, name)
        if changed:
            editor.selection.set_annotations(
                AnnotationSelection(target_image_id, s.annotation_id)
                for s in selections
            )
            editor.selection.prune(editor.doc)
        return changed

    def to_canvas(
        self, selections: Optional[Iterable[AnnotationSelection]] = None
    ) -> bool:
        return self.reparent(None, selections)

    def to_image(
        self,
        image_id: str,
        selections: Optional[Iterable[AnnotationSelection]] = None,
    ) -> bool:
        return self.reparent(image_id, selections)
