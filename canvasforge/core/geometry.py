from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

# An (x, y) pair. Whether it is local to an image or global is implied by
# the code handling it.
Point = Tuple[float, float]


class GeometryError(ValueError):
    """
    Raised for degenerate transform input, such as a zero scale, that would
    otherwise produce NaN coordinates.
    """

    pass


@dataclass(frozen=True)
class Rect:
    """An axis-aligned rectangle. Width and height may be negative while a
    rectangle is being dragged out; use normalized() before measuring."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return (self.x + self.width / 2, self.y + self.height / 2)

    def corners(self) -> Tuple[Point, Point, Point, Point]:
        """Top-left, top-right, bottom-left, bottom-right."""
        return (
            (self.x, self.y),
            (self.right, self.y),
            (self.x, self.bottom),
            (self.right, self.bottom),
        )

    def normalized(self) -> Rect:
        x, width = self.x, self.width
        y, height = self.y, self.height
        if width < 0:
            x, width = x + width, -width
        if height < 0:
            y, height = y + height, -height
        return Rect(x, y, width, height)

    @staticmethod
    def from_points(points: Iterable[Point]) -> Optional[Rect]:
        """Bounding box of a set of points, or None if there are none."""
        min_x, min_y = math.inf, math.inf
        max_x, max_y = -math.inf, -math.inf
        for px, py in points:
            min_x = min(min_x, px)
            min_y = min(min_y, py)
            max_x = max(max_x, px)
            max_y = max(max_y, py)
        if math.isinf(min_x):
            return None
        return Rect(min_x, min_y, max_x - min_x, max_y - min_y)

    def to_dict(self):
        return {
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data) -> Rect:
        return cls(
            float(data["x"]),
            float(data["y"]),
            float(data["width"]),
            float(data["height"]),
        )


def point_to_dict(point: Point):
    return {"x": point[0], "y": point[1]}


def point_from_dict(data) -> Point:
    return (float(data["x"]), float(data["y"]))
