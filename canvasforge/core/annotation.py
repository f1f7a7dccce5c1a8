"""
Annotation variants and the per-variant geometry that the reparenting and
cropping code relies on.

Every variant exposes its geometry as a flat tuple of "transformable
points" (one anchor for rect/circle/text, the stroke for freehand, start
and end for line/arrow) and a set of scalar fields that scale with the
coordinate space (radius, font size, box size). Callers only ever talk to
that interface, so adding a variant never touches the transform code.
"""

from __future__ import annotations
import dataclasses
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional, Sequence, Tuple, Type
from .geometry import Point, point_from_dict, point_to_dict


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4()}"


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _coerce(type_name: str, value: Any) -> Any:
    if value is None:
        return None
    if type_name in ("float", "Optional[float]"):
        return float(value)
    if type_name == "Point":
        return point_from_dict(value)
    if type_name == "Tuple[Point, ...]":
        return tuple(point_from_dict(p) for p in value)
    if type_name in ("str", "Optional[str]"):
        return str(value)
    return value


@dataclass(frozen=True)
class Annotation(ABC):
    id: str = ""
    color: str = "#ff0000"
    stroke_width: float = 4.0
    scale: float = 1.0
    rotation: float = 0.0

    kind: ClassVar[str] = ""

    @abstractmethod
    def get_points(self) -> Tuple[Point, ...]:
        """Returns the points that move with the coordinate space."""
        pass

    @abstractmethod
    def with_points(self, points: Sequence[Point]) -> Annotation:
        """
        Returns a copy whose transformable points are replaced by `points`,
        in the same order get_points() returned them.
        """
        pass

    def scaled(self, factor: float) -> Annotation:
        """
        Returns a copy with the space-dependent scalar fields multiplied by
        `factor`. Variants without such fields return themselves.
        """
        return self

    def translated(self, dx: float, dy: float) -> Annotation:
        moved = [(x + dx, y + dy) for x, y in self.get_points()]
        return self.with_points(moved)

    def map_points(self, func) -> Annotation:
        return self.with_points([func(p) for p in self.get_points()])

    def copy_with_id(self, annotation_id: Optional[str] = None) -> Annotation:
        return dataclasses.replace(
            self, id=annotation_id or new_id("anno")
        )

    def _check_count(self, points: Sequence[Point], expected: int):
        if len(points) != expected:
            raise ValueError(
                f"{self.kind} annotation takes {expected} point(s), "
                f"got {len(points)}"
            )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.kind}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if f.type == "Point":
                value = point_to_dict(value)
            elif f.type == "Tuple[Point, ...]":
                value = [point_to_dict(p) for p in value]
            data[_camel(f.name)] = value
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> Annotation:
        """
        Builds the right variant from its serialized form. The variant is
        taken from "kind", falling back to "type" as written by project
        files. Numeric fields are coerced here, once.
        """
        kind = data.get("kind") or data.get("type")
        cls = annotation_by_kind.get(kind)  # type: ignore[arg-type]
        if cls is None:
            raise ValueError(f"Unknown annotation kind: {kind!r}")
        kwargs = {}
        for f in dataclasses.fields(cls):
            key = _camel(f.name)
            if key in data:
                kwargs[f.name] = _coerce(str(f.type), data[key])
        if not kwargs.get("id"):
            kwargs["id"] = new_id("anno")
        return cls(**kwargs)


@dataclass(frozen=True)
class RectAnnotation(Annotation):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    fill_color: Optional[str] = None
    fill_opacity: Optional[float] = None

    kind: ClassVar[str] = "rect"

    def get_points(self) -> Tuple[Point, ...]:
        return ((self.x, self.y),)

    def with_points(self, points: Sequence[Point]) -> Annotation:
        self._check_count(points, 1)
        x, y = points[0]
        return dataclasses.replace(self, x=x, y=y)

    def scaled(self, factor: float) -> Annotation:
        return dataclasses.replace(
            self, width=self.width * factor, height=self.height * factor
        )


@dataclass(frozen=True)
class CircleAnnotation(Annotation):
    # x, y is the center
    x: float = 0.0
    y: float = 0.0
    radius: float = 0.0
    fill_color: Optional[str] = None
    fill_opacity: Optional[float] = None

    kind: ClassVar[str] = "circle"

    def get_points(self) -> Tuple[Point, ...]:
        return ((self.x, self.y),)

    def with_points(self, points: Sequence[Point]) -> Annotation:
        self._check_count(points, 1)
        x, y = points[0]
        return dataclasses.replace(self, x=x, y=y)

    def scaled(self, factor: float) -> Annotation:
        return dataclasses.replace(self, radius=self.radius * factor)


@dataclass(frozen=True)
class TextAnnotation(Annotation):
    x: float = 0.0
    y: float = 0.0
    text: str = ""
    font_size: float = 24.0
    font_family: str = "sans-serif"
    background_color: str = "#000000"
    background_opacity: float = 0.0
    stroke_color: str = "#000000"
    stroke_opacity: float = 1.0

    kind: ClassVar[str] = "text"

    def get_points(self) -> Tuple[Point, ...]:
        return ((self.x, self.y),)

    def with_points(self, points: Sequence[Point]) -> Annotation:
        self._check_count(points, 1)
        x, y = points[0]
        return dataclasses.replace(self, x=x, y=y)

    def scaled(self, factor: float) -> Annotation:
        return dataclasses.replace(self, font_size=self.font_size * factor)


@dataclass(frozen=True)
class FreehandAnnotation(Annotation):
    points: Tuple[Point, ...] = field(default_factory=tuple)
    outline_color: Optional[str] = None
    outline_width: Optional[float] = None
    outline_opacity: Optional[float] = None

    kind: ClassVar[str] = "freehand"

    def get_points(self) -> Tuple[Point, ...]:
        return self.points

    def with_points(self, points: Sequence[Point]) -> Annotation:
        self._check_count(points, len(self.points))
        return dataclasses.replace(
            self, points=tuple((float(x), float(y)) for x, y in points)
        )


@dataclass(frozen=True)
class LineAnnotation(Annotation):
    start: Point = (0.0, 0.0)
    end: Point = (0.0, 0.0)
    outline_color: Optional[str] = None
    outline_width: Optional[float] = None
    outline_opacity: Optional[float] = None

    kind: ClassVar[str] = "line"

    def get_points(self) -> Tuple[Point, ...]:
        return (self.start, self.end)

    def with_points(self, points: Sequence[Point]) -> Annotation:
        self._check_count(points, 2)
        start, end = points
        return dataclasses.replace(self, start=tuple(start), end=tuple(end))


@dataclass(frozen=True)
class ArrowAnnotation(LineAnnotation):
    kind: ClassVar[str] = "arrow"


annotation_by_kind: Dict[str, Type[Annotation]] = {
    cls.kind: cls
    for cls in (
        RectAnnotation,
        CircleAnnotation,
        TextAnnotation,
        FreehandAnnotation,
        LineAnnotation,
        ArrowAnnotation,
    )
}
