"""
Saving and loading projects.

A project file is JSON:

    {"version": "1.0",
     "state": {"images": [...], "archivedImages": {...}, "groups": [...],
               "canvasAnnotations": [...],
               "viewTransform": {"scale": 1, "offset": {"x": 0, "y": 0}},
               "cropArea": null}}

Numbers are coerced once, while loading; nothing downstream re-checks
them.
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union
from .core.annotation import Annotation
from .core.crop import CropArchive
from .core.doc import Document
from .core.geometry import GeometryError, Point, Rect
from .core.group import Group
from .core.image import CanvasImage
from .core.layers import sanitize_groups


logger = logging.getLogger(__name__)

PROJECT_VERSION = "1.0"
SUPPORTED_VERSIONS = ("1.0",)


class LoadError(Exception):
    """
    Raised when a project file cannot be read, has an unsupported version
    or does not have the expected shape.
    """

    pass


@dataclass(frozen=True)
class ViewTransform:
    scale: float = 1.0
    offset: Point = (0.0, 0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scale": self.scale,
            "offset": {"x": self.offset[0], "y": self.offset[1]},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ViewTransform:
        offset = data.get("offset") or {}
        return cls(
            scale=float(data.get("scale", 1.0)),
            offset=(float(offset.get("x", 0.0)), float(offset.get("y", 0.0))),
        )


@dataclass
class Project:
    """Everything a project file holds."""

    document: Document = field(default_factory=Document)
    archive: CropArchive = field(default_factory=CropArchive)
    view_transform: ViewTransform = field(default_factory=ViewTransform)
    crop_area: Optional[Rect] = None


def project_to_dict(project: Project) -> Dict[str, Any]:
    doc = project.document
    return {
        "version": PROJECT_VERSION,
        "state": {
            "images": [img.to_dict() for img in doc.images],
            "archivedImages": project.archive.to_dict(),
            "groups": [g.to_dict() for g in doc.groups],
            "canvasAnnotations": [
                a.to_dict() for a in doc.canvas_annotations
            ],
            "viewTransform": project.view_transform.to_dict(),
            "cropArea": (
                project.crop_area.to_dict() if project.crop_area else None
            ),
        },
    }


def project_from_dict(data: Any) -> Project:
    """
    Builds a Project from parsed JSON. Group references to images or
    groups that do not exist are dropped, and so are groups that end up
    empty. Raises LoadError on anything else that is wrong.
    """
    if not isinstance(data, dict):
        raise LoadError("Project file does not contain a JSON object")
    version = data.get("version")
    if version not in SUPPORTED_VERSIONS:
        raise LoadError(f"Unsupported project version: {version!r}")
    state = data.get("state")
    if not isinstance(state, dict):
        raise LoadError("Project file has no state")

    try:
        images = tuple(
            CanvasImage.from_dict(img) for img in state.get("images") or []
        )
        archive = CropArchive.from_dict(state.get("archivedImages") or {})
        groups = tuple(
            Group.from_dict(g) for g in state.get("groups") or []
        )
        canvas_annotations = tuple(
            Annotation.from_dict(a)
            for a in state.get("canvasAnnotations") or []
        )
        view = ViewTransform.from_dict(state.get("viewTransform") or {})
        crop = state.get("cropArea")
        crop_area = Rect.from_dict(crop) if crop else None
    except (
        KeyError,
        TypeError,
        ValueError,
        AttributeError,
        GeometryError,
    ) as e:
        raise LoadError(f"Malformed project: {e}") from e

    ids = [img.id for img in images]
    if len(set(ids)) != len(ids):
        raise LoadError("Project contains duplicate image ids")

    sanitized = sanitize_groups(groups, ids)
    if len(sanitized) != len(groups):
        logger.warning(
            f"Dropped {len(groups) - len(sanitized)} empty or dangling "
            f"group(s) while loading"
        )
    document = Document(
        images=images,
        groups=sanitized,
        canvas_annotations=canvas_annotations,
    )
    return Project(document, archive, view, crop_area)


def save_project(project: Project, path: Union[str, Path]):
    path = Path(path)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(project_to_dict(project), f, indent=2)
    logger.info(
        f"Saved project with {len(project.document.images)} image(s) "
        f"to {path}"
    )


def load_project(path: Union[str, Path]) -> Project:
    """Reads a project file. Raises LoadError if it cannot be used."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        logger.error(f"Could not read project {path}: {e}", exc_info=True)
        raise LoadError(f"Could not read {path}: {e}") from e
    except ValueError as e:
        # JSONDecodeError and UnicodeDecodeError
        raise LoadError(f"{path} is not valid JSON: {e}") from e
    project = project_from_dict(data)
    logger.info(
        f"Loaded project with {len(project.document.images)} image(s) "
        f"from {path}"
    )
    return project
