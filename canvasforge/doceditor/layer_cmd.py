from __future__ import annotations
import dataclasses
import logging
from typing import TYPE_CHECKING, List, Optional
from ..core import layers
from ..core.doc import Document
from ..core.layers import CycleError

if TYPE_CHECKING:
    from .editor import DocEditor


logger = logging.getLogger(__name__)


class LayerCmd:
    """Handles layer order and the group hierarchy."""

    def __init__(self, editor: "DocEditor"):
        self._editor = editor

    def _commit_groups(self, new_doc: Document, name: str) -> bool:
        """
        Commits a change to the group hierarchy after checking that it
        still forms a tree. An inconsistent result is refused.
        """
        try:
            layers.validate_groups(new_doc.groups)
        except ValueError as e:
            logger.warning(f"Group change '{name}' rejected: {e}")
            self._editor.notification_requested.send(
                self, message=_("The layer hierarchy could not be changed.")
            )
            return False
        changed = self._editor.commit(new_doc, name)
        self._editor.selection.prune(self._editor.doc)
        return changed

    def flatten(self) -> List[layers.LayerItem]:
        """The rows of the layers list, topmost first."""
        return layers.flatten(self._editor.doc)

    def reorder(
        self, item_id: str, move: str, to_index: Optional[int] = None
    ) -> bool:
        """
        Moves an image or group among its siblings. See
        `layers.reorder()` for the meaning of `move` and `to_index`.
        """
        doc = self._editor.doc
        new_doc = layers.reorder(doc, item_id, move, to_index)
        return self._editor.commit(new_doc, _("Reorder layers"))

    def reparent_group(
        self, group_id: str, new_parent_id: Optional[str]
    ) -> bool:
        """
        Nests a group inside another one (or moves it to the top level).
        A move that would make a group its own ancestor is refused.
        """
        doc = self._editor.doc
        try:
            groups = layers.reparent_group(doc.groups, group_id, new_parent_id)
        except CycleError as e:
            logger.warning(f"Group move rejected: {e}")
            self._editor.notification_requested.send(
                self, message=_("A group cannot be moved into itself.")
            )
            return False
        return self._commit_groups(doc.replace(groups=groups), _("Move group"))

    def create_group(
        self,
        image_ids: Optional[List[str]] = None,
        name: Optional[str] = None,
    ) -> Optional[str]:
        """
        Groups two or more images (the selected ones by default). Returns
        the new group's id, or None if there were too few images.
        """
        if image_ids is None:
            image_ids = self._editor.selection.image_ids
        if len(image_ids) < 2:
            return None
        new_doc, group = layers.create_group(self._editor.doc, image_ids, name)
        if not self._commit_groups(new_doc, _("Create group")):
            return None
        self._editor.selection.select_layer(group.id)
        return group.id

    def delete_group(self, group_id: str) -> bool:
        """Removes a group; its members move up one level."""
        new_doc = layers.delete_group(self._editor.doc, group_id)
        return self._commit_groups(new_doc, _("Delete group"))

    def add_image_to_group(
        self, image_id: str, group_id: Optional[str]
    ) -> bool:
        new_doc = layers.add_image_to_group(
            self._editor.doc, image_id, group_id
        )
        return self._commit_groups(new_doc, _("Move image to group"))

    def toggle_expanded(self, group_id: str) -> bool:
        doc = self._editor.doc
        group = doc.get_group(group_id)
        if group is None:
            raise KeyError(f"No group with id {group_id}")
        group = dataclasses.replace(group, is_expanded=not group.is_expanded)
        return self._editor.commit(
            doc.replace_groups([group]), _("Toggle group")
        )
