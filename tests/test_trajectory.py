import numpy as np
import pytest

from lipspline import (
    ComSpline, CubicPolynomial, ModelParameters, MotionDerivative, QuinticPolynomial,
    SplineJunctionConstraint, fit_com_spline
)

POS, VEL, ACC = MotionDerivative.POS, MotionDerivative.VEL, MotionDerivative.ACC


@pytest.mark.parametrize("polynomial_type, derivatives", [
    (CubicPolynomial, (POS, VEL)),
    (QuinticPolynomial, (POS, VEL, ACC)),
])
def test_fitted_spline_is_continuous_at_junctions(polynomial_type, derivatives) -> None:
    spline = ComSpline(ModelParameters(), polynomial_type)
    spline.init(2.0, 0.3)
    t_way = [0.0, 0.7, 1.2, 2.0]
    xy_way = [[0.0, 0.0], [0.1, 0.05], [0.25, -0.02], [0.3, 0.0]]
    fit_com_spline(spline, t_way, xy_way)

    polys = spline.get_polynomials()
    for curr, nxt in zip(polys[:-1], polys[1:]):
        for dxdt in derivatives:
            np.testing.assert_allclose(curr.get_value(dxdt, curr.duration), nxt.get_value(dxdt, 0.0),
                                       atol=1e-9)

    junction = SplineJunctionConstraint(spline, derivatives)
    np.testing.assert_allclose(junction.get_values(), 0.0, atol=1e-9)


def test_fitted_spline_starts_and_ends_at_rest() -> None:
    spline = ComSpline(ModelParameters())
    spline.init(1.0, 0.25)
    fit_com_spline(spline, [0.0, 1.0], [[0.0, 0.0], [0.2, -0.1]])

    start, end = spline.get_com(0.0), spline.get_com(1.0)
    np.testing.assert_allclose(start.p[:2], [0.0, 0.0], atol=1e-12)
    np.testing.assert_allclose(end.p[:2], [0.2, -0.1], atol=1e-12)
    np.testing.assert_allclose(start.v[:2], 0.0, atol=1e-12)
    np.testing.assert_allclose(end.v[:2], 0.0, atol=1e-12)


def test_fit_rejects_wrong_waypoint_shape() -> None:
    spline = ComSpline(ModelParameters())
    spline.init(1.0, 0.5)
    with pytest.raises(ValueError):
        fit_com_spline(spline, [0.0, 1.0], [[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]])
