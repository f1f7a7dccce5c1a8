from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Dict, List, Optional
from ..core.geometry import Point, Rect
from ..core.image import CanvasImage
from ..core.transform import image_bounds, images_bounds


class LayoutStrategy(ABC):
    """
    Abstract base class for alignment and arrangement strategies.

    Each strategy calculates the global translation that moves each image
    of a selection into place. All measurements use the axis-aligned
    bounding box of the (possibly rotated) images.
    """

    def __init__(self, images: List[CanvasImage]):
        if not images:
            raise ValueError("LayoutStrategy requires at least one image.")
        self.images = images

    def _get_selection_bbox(self) -> Optional[Rect]:
        return images_bounds(self.images)

    @abstractmethod
    def calculate_deltas(self) -> Dict[str, Point]:
        """
        Returns a mapping of image id to the (dx, dy) that moves it to its
        target position. Images that are already in place are left out.
        """
        pass


class _AxisAlignStrategy(LayoutStrategy):
    axis = 0  # 0 for x, 1 for y

    @abstractmethod
    def _target(self, bbox: Rect) -> float:
        """The coordinate every image is aligned to."""
        pass

    @abstractmethod
    def _edge(self, bbox: Rect) -> float:
        """The coordinate of an image that is moved onto the target."""
        pass

    def calculate_deltas(self) -> Dict[str, Point]:
        bbox = self._get_selection_bbox()
        if bbox is None:
            return {}
        target = self._target(bbox)

        deltas = {}
        for image in self.images:
            delta = target - self._edge(image_bounds(image))
            if abs(delta) > 1e-6:
                deltas[image.id] = (
                    (delta, 0.0) if self.axis == 0 else (0.0, delta)
                )
        return deltas


class AlignLeftStrategy(_AxisAlignStrategy):
    """Aligns the left edges of the selection's bounding boxes."""

    def _target(self, bbox):
        return bbox.x

    def _edge(self, bbox):
        return bbox.x


class AlignCenterStrategy(_AxisAlignStrategy):
    """Horizontally centers the images on the selection's center."""

    def _target(self, bbox):
        return bbox.center[0]

    def _edge(self, bbox):
        return bbox.center[0]


class AlignRightStrategy(_AxisAlignStrategy):
    def _target(self, bbox):
        return bbox.right

    def _edge(self, bbox):
        return bbox.right


class AlignTopStrategy(_AxisAlignStrategy):
    axis = 1

    def _target(self, bbox):
        return bbox.y

    def _edge(self, bbox):
        return bbox.y


class AlignMiddleStrategy(_AxisAlignStrategy):
    """Vertically centers the images on the selection's center."""

    axis = 1

    def _target(self, bbox):
        return bbox.center[1]

    def _edge(self, bbox):
        return bbox.center[1]


class AlignBottomStrategy(_AxisAlignStrategy):
    axis = 1

    def _target(self, bbox):
        return bbox.bottom

    def _edge(self, bbox):
        return bbox.bottom


ALIGN_STRATEGIES = {
    "left": AlignLeftStrategy,
    "h-center": AlignCenterStrategy,
    "right": AlignRightStrategy,
    "top": AlignTopStrategy,
    "v-center": AlignMiddleStrategy,
    "bottom": AlignBottomStrategy,
}


class SequenceStrategy(LayoutStrategy):
    """
    Lines images up one after another, starting at the top-left corner of
    the selection's bounding box, with `padding` between neighbours.

    The sequence follows the layer order: the topmost image comes first
    for the "normal" order and last for "reverse". `z_order` gives each
    image's index in the document, 0 being the bottom.
    """

    def __init__(
        self,
        images: List[CanvasImage],
        z_order: Dict[str, int],
        direction: str = "horizontal",
        order: str = "normal",
        padding: float = 0.0,
    ):
        super().__init__(images)
        if direction not in ("horizontal", "vertical"):
            raise ValueError(f"Unknown direction: {direction!r}")
        if order not in ("normal", "reverse"):
            raise ValueError(f"Unknown order: {order!r}")
        self.z_order = z_order
        self.direction = direction
        self.order = order
        self.padding = padding

    def calculate_deltas(self) -> Dict[str, Point]:
        bbox = self._get_selection_bbox()
        if bbox is None:
            return {}
        ordered = sorted(
            self.images,
            key=lambda img: self.z_order.get(img.id, 0),
            reverse=self.order == "normal",
        )

        deltas = {}
        current_x, current_y = bbox.x, bbox.y
        for image in ordered:
            bounds = image_bounds(image)
            dx, dy = current_x - bounds.x, current_y - bounds.y
            if abs(dx) > 1e-6 or abs(dy) > 1e-6:
                deltas[image.id] = (dx, dy)
            if self.direction == "horizontal":
                current_x += bounds.width + self.padding
            else:
                current_y += bounds.height + self.padding
        return deltas
