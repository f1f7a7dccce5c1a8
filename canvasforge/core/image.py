from __future__ import annotations
import dataclasses
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
from .annotation import Annotation, new_id
from .geometry import GeometryError, Point, Rect
from .matrix import Matrix
from .transform import image_matrix


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class CanvasImage:
    """
    A raster image placed on the canvas.

    (x, y) is the global position of the image's local origin before scale
    and rotation are applied, i.e. the top-left corner of the unrotated,
    scaled image. Rotation is in degrees, clockwise on screen, about the
    image center. Annotations are stored in the image's local space.

    The bitmap itself is opaque to the core: `data_url` carries the
    embedded image data for persistence and `handle` whatever the image
    loader returned for drawing.
    """

    id: str = field(default_factory=lambda: new_id("img"))
    name: str = ""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    scale: float = 1.0
    rotation: float = 0.0
    annotations: Tuple[Annotation, ...] = ()
    crop_rect: Optional[Rect] = None
    uncropped_from_id: Optional[str] = None
    original_width: Optional[float] = None
    original_height: Optional[float] = None
    visible: bool = True
    locked: bool = False
    tags: Tuple[str, ...] = ()
    created_at: str = field(default_factory=_now)
    data_url: Optional[str] = None
    outline_color: str = "#000000"
    outline_width: float = 0.0
    outline_opacity: float = 1.0
    handle: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if not (math.isfinite(self.scale) and self.scale > 0):
            raise GeometryError(
                f"Image {self.id} must have a positive scale, "
                f"got {self.scale}"
            )
        if self.width < 0 or self.height < 0:
            raise GeometryError(
                f"Image {self.id} has a negative size "
                f"({self.width}x{self.height})"
            )

    @property
    def scaled_size(self) -> Tuple[float, float]:
        return self.width * self.scale, self.height * self.scale

    @property
    def center(self) -> Point:
        """The global center, which is also the rotation pivot."""
        w, h = self.scaled_size
        return self.x + w / 2, self.y + h / 2

    @property
    def matrix(self) -> Matrix:
        """The local-to-global transform."""
        return image_matrix(self)

    def centered_at(self, center: Point) -> CanvasImage:
        """Returns a copy moved so that its center lands on `center`."""
        w, h = self.scaled_size
        return dataclasses.replace(
            self, x=center[0] - w / 2, y=center[1] - h / 2
        )

    def moved_by(self, dx: float, dy: float) -> CanvasImage:
        return dataclasses.replace(self, x=self.x + dx, y=self.y + dy)

    def get_annotation(self, annotation_id: str) -> Optional[Annotation]:
        for anno in self.annotations:
            if anno.id == annotation_id:
                return anno
        return None

    def with_annotations(self, annotations) -> CanvasImage:
        return dataclasses.replace(self, annotations=tuple(annotations))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "scale": self.scale,
            "rotation": self.rotation,
            "annotations": [a.to_dict() for a in self.annotations],
            "cropRect": self.crop_rect.to_dict() if self.crop_rect else None,
            "uncroppedFromId": self.uncropped_from_id,
            "originalWidth": self.original_width,
            "originalHeight": self.original_height,
            "visible": self.visible,
            "locked": self.locked,
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "dataUrl": self.data_url,
            "outlineColor": self.outline_color,
            "outlineWidth": self.outline_width,
            "outlineOpacity": self.outline_opacity,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> CanvasImage:
        """
        Deserializes an image. All numeric fields are coerced here; a
        missing or malformed required field raises KeyError, TypeError or
        ValueError, which the project loader reports as a LoadError.
        """
        crop = data.get("cropRect")
        width = float(data["width"])
        height = float(data["height"])
        original_width = data.get("originalWidth")
        original_height = data.get("originalHeight")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            x=float(data["x"]),
            y=float(data["y"]),
            width=width,
            height=height,
            scale=float(data.get("scale", 1.0)),
            rotation=float(data.get("rotation", 0.0)),
            annotations=tuple(
                Annotation.from_dict(a) for a in data.get("annotations", [])
            ),
            crop_rect=Rect.from_dict(crop) if crop else None,
            uncropped_from_id=data.get("uncroppedFromId") or None,
            original_width=(
                float(original_width) if original_width is not None
                else width
            ),
            original_height=(
                float(original_height) if original_height is not None
                else height
            ),
            visible=data.get("visible") is not False,
            locked=bool(data.get("locked", False)),
            tags=tuple(str(t) for t in data.get("tags") or ()),
            created_at=str(data.get("createdAt") or _now()),
            data_url=data.get("dataUrl"),
            outline_color=str(data.get("outlineColor", "#000000")),
            outline_width=float(data.get("outlineWidth", 0.0)),
            outline_opacity=float(data.get("outlineOpacity", 1.0)),
        )
