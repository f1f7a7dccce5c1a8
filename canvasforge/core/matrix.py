import math
from typing import Tuple, Any, Optional
import numpy as np


class Matrix:
    """
    A 3x3 affine transformation matrix for 2D canvas space.

    All angles are in degrees. Canvas space is y-down, so a positive
    rotation turns points clockwise on screen, which is the convention
    the compositor uses when it rotates a cairo context.
    """

    def __init__(self, data: Any = None):
        """
        Initializes a 3x3 matrix.

        Args:
            data: Can be another Matrix, a 3x3 list/tuple, a 3x3 numpy
                  array, or None to create an identity matrix.
        """
        if data is None:
            self.m: np.ndarray = np.identity(3, dtype=float)
        elif isinstance(data, Matrix):
            self.m = data.m.copy()
        else:
            try:
                self.m = np.array(data, dtype=float)
            except (TypeError, ValueError) as e:
                raise ValueError(f"Could not create Matrix from data: {e}")
            if self.m.shape != (3, 3):
                raise ValueError("Input data must be a 3x3 matrix.")

    def __matmul__(self, other: "Matrix") -> "Matrix":
        """
        Composes two transforms. `(A @ B).transform_point(p)` applies B
        first, then A.
        """
        if not isinstance(other, Matrix):
            return NotImplemented
        return Matrix(np.dot(self.m, other.m))

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Matrix):
            return False
        return np.allclose(self.m, other.m)

    def __repr__(self) -> str:
        return f"Matrix({self.m.tolist()})"

    @staticmethod
    def identity() -> "Matrix":
        return Matrix()

    @staticmethod
    def translation(tx: float, ty: float) -> "Matrix":
        return Matrix(
            [
                [1, 0, tx],
                [0, 1, ty],
                [0, 0, 1],
            ]
        )

    @staticmethod
    def scale(
        sx: float, sy: float, center: Optional[Tuple[float, float]] = None
    ) -> "Matrix":
        """
        Creates a scaling matrix, optionally about a center point.
        """
        m = Matrix(
            [
                [sx, 0, 0],
                [0, sy, 0],
                [0, 0, 1],
            ]
        )
        if center:
            cx, cy = center
            t_to_origin = Matrix.translation(-cx, -cy)
            t_back = Matrix.translation(cx, cy)
            return t_back @ m @ t_to_origin
        return m

    @staticmethod
    def rotation(
        angle_deg: float, center: Optional[Tuple[float, float]] = None
    ) -> "Matrix":
        """
        Creates a rotation matrix, optionally about a center point.
        """
        angle_rad = math.radians(angle_deg)
        c = math.cos(angle_rad)
        s = math.sin(angle_rad)
        m = Matrix(
            [
                [c, -s, 0],
                [s, c, 0],
                [0, 0, 1],
            ]
        )
        if center:
            cx, cy = center
            t_to_origin = Matrix.translation(-cx, -cy)
            t_back = Matrix.translation(cx, cy)
            return t_back @ m @ t_to_origin
        return m

    def transform_point(
        self, point: Tuple[float, float]
    ) -> Tuple[float, float]:
        vec = np.array([point[0], point[1], 1.0])
        res_vec = np.dot(self.m, vec)
        return (float(res_vec[0]), float(res_vec[1]))

    def transform_vector(
        self, vector: Tuple[float, float]
    ) -> Tuple[float, float]:
        """
        Applies the linear part only. Useful for drag deltas.
        """
        vec = np.array([vector[0], vector[1], 0.0])
        res_vec = np.dot(self.m, vec)
        return (float(res_vec[0]), float(res_vec[1]))

    def to_cairo(self) -> Tuple[float, float, float, float, float, float]:
        """
        Returns the (xx, yx, xy, yy, x0, y0) tuple expected by
        `cairo.Matrix`.
        """
        m = self.m
        return (
            float(m[0, 0]),
            float(m[1, 0]),
            float(m[0, 1]),
            float(m[1, 1]),
            float(m[0, 2]),
            float(m[1, 2]),
        )
