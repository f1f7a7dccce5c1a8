from __future__ import annotations
import base64
import binascii
import dataclasses
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Tuple, Union
from ..core.annotation import new_id
from ..core.crop import CropArchive
from ..core.image import CanvasImage
from ..project import LoadError, Project, load_project, save_project
from ..render.loader import ImageDecodeError, ImageLoader

if TYPE_CHECKING:
    from .editor import DocEditor


logger = logging.getLogger(__name__)


def to_data_url(data: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def from_data_url(data_url: str) -> Tuple[str, bytes]:
    """Returns (mime_type, payload) of a base64 data URL."""
    header, sep, payload = data_url.partition(",")
    if not sep or not header.startswith("data:") or ";base64" not in header:
        raise ValueError("Not a base64 data URL")
    mime_type = header[len("data:"):].split(";", 1)[0]
    try:
        return mime_type, base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Bad base64 payload: {e}") from e


class FileCmd:
    """Handles project files and image import."""

    def __init__(self, editor: "DocEditor"):
        self._editor = editor

    def import_image(
        self,
        data: bytes,
        loader: ImageLoader,
        name: str = "",
        mime_type: str = "image/png",
        position: Optional[Tuple[float, float]] = None,
    ) -> Optional[str]:
        """
        Decodes `data` with `loader` and adds it as a new top image. The
        bytes are embedded as a data URL so the project file is
        self-contained. `position` is the top-left corner; it defaults to
        the configured import position.

        Returns the new image id, or None if the data could not be decoded.
        """
        try:
            loaded = loader.load_image(data)
        except ImageDecodeError as e:
            logger.warning(f"Import of '{name}' failed: {e}")
            msg = _(
                "Failed to import {name}. The image file may be corrupted "
                "or in an unsupported format."
            ).format(name=name or _("image"))
            self._editor.notification_requested.send(self, message=msg)
            return None

        x, y = position or self._editor.config.default_image_pos
        image = CanvasImage(
            id=new_id("img"),
            name=name,
            x=x,
            y=y,
            width=float(loaded.width),
            height=float(loaded.height),
            original_width=float(loaded.width),
            original_height=float(loaded.height),
            data_url=to_data_url(data, mime_type),
            handle=loaded.handle,
        )
        self._editor.edit.add_image(image)
        logger.info(
            f"Imported '{name}' ({loaded.width}x{loaded.height}) as {image.id}"
        )
        return image.id

    def save(self, path: Union[str, Path]):
        save_project(self._editor.get_project(), path)

    def load(
        self,
        path: Union[str, Path],
        loader: Optional[ImageLoader] = None,
    ):
        """
        Opens a project, replacing the current one and its history. If a
        loader is given, embedded bitmaps are decoded for drawing.

        Raises LoadError; in that case the open project is not touched.
        """
        project = load_project(path)
        if loader is not None:
            project = self._attach_handles(project, loader)
        self._editor.set_project(project)

    def _attach_handles(
        self, project: Project, loader: ImageLoader
    ) -> Project:
        cache = {}

        def attach(image: CanvasImage) -> CanvasImage:
            if not image.data_url:
                return image
            if image.data_url not in cache:
                try:
                    _mime, data = from_data_url(image.data_url)
                    cache[image.data_url] = loader.load_image(data).handle
                except (ValueError, ImageDecodeError) as e:
                    raise LoadError(
                        f"Image {image.id} has unreadable data: {e}"
                    ) from e
            return dataclasses.replace(image, handle=cache[image.data_url])

        doc = project.document
        images = [attach(img) for img in doc.images]
        archive = CropArchive(
            {
                image_id: attach(project.archive.get(image_id))
                for image_id in project.archive
            }
        )
        return dataclasses.replace(
            project, document=doc.replace(images=images), archive=archive
        )
