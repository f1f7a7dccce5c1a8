from __future__ import annotations
import logging
from typing import TYPE_CHECKING, Optional
from blinker import Signal
from ..config import Config
from ..core.crop import CropArchive
from ..core.doc import Document
from ..core.geometry import Rect
from ..project import Project, ViewTransform
from ..undo import HistoryStore
from .annotation_cmd import AnnotationCmd
from .crop_cmd import CropCmd
from .edit_cmd import EditCmd
from .file_cmd import FileCmd
from .layer_cmd import LayerCmd
from .selection import Selection
from .transform_cmd import TransformCmd

if TYPE_CHECKING:
    from ..config import ConfigManager


logger = logging.getLogger(__name__)


class DocEditor:
    """
    The central, non-UI controller for document state and operations.

    The editor owns the undo history, the crop archive and the selection,
    and provides a structured API for all document manipulations,
    organized into namespaced command handlers (`editor.crop.apply()`,
    `editor.layer.reorder(...)`, and so on). Every command reads the
    current document from the history and commits a new snapshot.
    """

    def __init__(
        self,
        config_manager: Optional["ConfigManager"] = None,
        document: Optional[Document] = None,
    ):
        """
        Initializes the DocEditor.

        Args:
            config_manager: The application's ConfigManager instance. If
                None, default settings are used.
            document: An optional initial document. If None, the editor
                starts empty.
        """
        self._config_manager = config_manager
        self.history_manager = HistoryStore(
            document or Document(), limit=self.config.history_limit
        )
        self.archive = CropArchive()
        self.selection = Selection()
        self.crop_area: Optional[Rect] = None
        self.view_transform = ViewTransform()

        self.notification_requested = Signal()  # For UI feedback
        self.history_manager.navigated.connect(self._on_history_navigated)

        # Instantiate and link command handlers, passing dependencies.
        self.edit = EditCmd(self)
        self.transform = TransformCmd(self)
        self.crop = CropCmd(self)
        self.layer = LayerCmd(self)
        self.annotation = AnnotationCmd(self)
        self.file = FileCmd(self)

    @property
    def config(self) -> Config:
        if self._config_manager is not None:
            return self._config_manager.config
        return _DEFAULT_CONFIG

    @property
    def doc(self) -> Document:
        """The document as the user currently sees it."""
        return self.history_manager.current

    def commit(self, document: Document, name: str) -> bool:
        """
        Records `document` as a new undo step. Returns False if it is the
        document that is already current.
        """
        if document == self.history_manager.committed:
            self.history_manager.discard()
            return False
        self.history_manager.commit(document, name)
        return True

    def notify(self, message: str):
        logger.warning(message)
        self.notification_requested.send(self, message=message)

    def undo(self) -> bool:
        return self.history_manager.undo()

    def redo(self) -> bool:
        return self.history_manager.redo()

    def set_crop_area(self, rect: Optional[Rect]):
        self.crop_area = rect.normalized() if rect else None

    def get_project(self) -> Project:
        return Project(
            document=self.history_manager.committed,
            archive=self.archive,
            view_transform=self.view_transform,
            crop_area=self.crop_area,
        )

    def set_project(self, project: Project):
        """Replaces the open project. The undo history starts over."""
        self.archive = project.archive
        self.view_transform = project.view_transform
        self.crop_area = project.crop_area
        self.selection.clear()
        self.history_manager.reset(project.document)

    def _on_history_navigated(self, sender):
        self.selection.clear()


_DEFAULT_CONFIG = Config()
