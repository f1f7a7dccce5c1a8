import pytest
import numpy as np
from canvasforge.core.matrix import Matrix


class TestMatrix:
    def test_initialization(self):
        # Default initialization should be identity
        m1 = Matrix()
        assert m1 == Matrix(np.identity(3))

        # Initialization from list
        list_data = [[1, 2, 3], [4, 5, 6], [0, 0, 1]]
        m2 = Matrix(list_data)
        assert np.array_equal(m2.m, np.array(list_data))

        # Initialization from another Matrix
        m3 = Matrix(m2)
        assert m3 == m2
        assert m3 is not m2
        assert m3.m is not m2.m

        with pytest.raises(ValueError):
            Matrix([[1, 2], [3, 4]])  # Wrong shape

    def test_equality(self):
        m1 = Matrix.translation(10, 20)
        m2 = Matrix.translation(10, 20)
        m3 = Matrix.translation(10, 21)
        assert m1 == m2
        assert m1 != m3
        assert m1 != "not a matrix"

    def test_representation(self):
        m = Matrix.translation(10, -20.5)
        assert eval(repr(m)) == m

    def test_translation(self):
        m = Matrix.translation(10, -5)
        assert m.transform_point((1, 1)) == pytest.approx((11, -4))
        # Vectors ignore translation
        assert m.transform_vector((1, 1)) == pytest.approx((1, 1))

    def test_scale_about_center(self):
        m = Matrix.scale(2, 3, center=(10, 10))
        assert m.transform_point((10, 10)) == pytest.approx((10, 10))
        assert m.transform_point((11, 11)) == pytest.approx((12, 13))

    def test_rotation_is_clockwise_on_screen(self):
        # In y-down canvas space, +90 degrees turns +x into +y.
        m = Matrix.rotation(90)
        assert m.transform_point((1, 0)) == pytest.approx((0, 1))

    def test_rotation_about_center(self):
        m = Matrix.rotation(180, center=(5, 5))
        assert m.transform_point((5, 5)) == pytest.approx((5, 5))
        assert m.transform_point((6, 5)) == pytest.approx((4, 5))

    def test_composition_order(self):
        t = Matrix.translation(10, 0)
        s = Matrix.scale(2, 2)
        # (t @ s) scales first, then translates
        assert (t @ s).transform_point((1, 1)) == pytest.approx((12, 2))
        assert (s @ t).transform_point((1, 1)) == pytest.approx((22, 2))

    def test_inverse_steps_undo_forward_steps(self):
        forward = (
            Matrix.translation(3, 4)
            @ Matrix.rotation(30)
            @ Matrix.scale(2, 2)
        )
        backward = (
            Matrix.scale(0.5, 0.5)
            @ Matrix.rotation(-30)
            @ Matrix.translation(-3, -4)
        )
        assert backward @ forward == Matrix.identity()
        p = (7.5, -2.25)
        assert backward.transform_point(forward.transform_point(p)) == (
            pytest.approx(p)
        )

    def test_to_cairo(self):
        m = Matrix([[1, 2, 3], [4, 5, 6], [0, 0, 1]])
        # cairo order is (xx, yx, xy, yy, x0, y0)
        assert m.to_cairo() == (1.0, 4.0, 2.0, 5.0, 3.0, 6.0)
