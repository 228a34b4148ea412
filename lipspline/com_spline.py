import logging
from abc import ABC, abstractmethod
import numpy as np
from .lipspline_dataclasses import (
    Coords3D, MotionDerivative, StateLinXd, PolynomialId, LocalTime, ModelParameters
)
from .polynomial import CubicPolynomial, PolynomialXd
from .helpers import jacobian_row

logger = logging.getLogger(__name__)

_END_TOLERANCE = 1e-9
_JUNCTION_TOLERANCE = 1e-9  # cumulative durations drift by a few ulps


class BaseMotion(ABC):
    """Motion of the base/CoM that can be differentiated w.r.t. its coefficients."""

    @abstractmethod
    def get_com(self, t_global: float) -> StateLinXd:
        ...

    @abstractmethod
    def get_jacobian(self, t_global: float, dxdt: MotionDerivative, dim: Coords3D):
        ...

    @abstractmethod
    def get_free_coeff_count(self) -> int:
        ...


class ComSpline(BaseMotion):
    """
    Center of Mass motion as a sequence of polynomials.

    Turns the flat coefficient vector of all segments into CoM position,
    velocity and acceleration and builds sparse Jacobian rows of those w.r.t.
    the coefficients. Continuity between segments is not enforced here; see
    SplineJunctionConstraint.
    """

    def __init__(self, params: ModelParameters = None, polynomial_type=CubicPolynomial,
                 dims=(Coords3D.X, Coords3D.Y), id: str = "com_spline"):
        self.id = id  # Name of the variable set holding the coefficients
        self.params = params or ModelParameters()
        self.polynomial_type = polynomial_type
        self.dims = tuple(dims)
        self.polynomials = []
        self._t_start = np.zeros(0)  # Global start time of each segment

    # ----------------- structure -----------------
    def init(self, t_global: float, duration_per_polynomial: float):
        """
        Rebuild the segments to cover the horizon [0, t_global] with uniform
        durations. The last segment takes the remainder if t_global is not a
        multiple of duration_per_polynomial.
        """
        if t_global <= 0.0:
            raise ValueError(f"horizon must be positive; got {t_global}")
        if duration_per_polynomial <= 0.0:
            raise ValueError(f"duration_per_polynomial must be positive; got {duration_per_polynomial}")

        durations = []
        t_left = float(t_global)
        while t_left > 1e-10:
            durations.append(min(duration_per_polynomial, t_left))
            t_left -= duration_per_polynomial
        self.init_from_durations(durations)

    def init_from_durations(self, durations):
        durations = [float(d) for d in durations]
        if not durations:
            raise ValueError("at least one polynomial duration is required")
        for i, d in enumerate(durations):
            if d <= 0.0:
                raise ValueError(f"duration of polynomial {i} must be positive; got {d}")

        self.polynomials = [PolynomialXd(self.polynomial_type, self.dims, d, id=i)
                            for i, d in enumerate(durations)]
        self._t_start = np.concatenate([[0.0], np.cumsum(durations)[:-1]])
        logger.debug("ComSpline rebuilt: %d polynomials, total time %.3f s",
                     len(self.polynomials), self.get_total_time())

    def get_polynomials(self):
        return self.polynomials

    def get_total_time(self) -> float:
        return float(sum(p.duration for p in self.polynomials))

    def num_free_coeff_per_spline(self) -> int:
        # All polynomials share one type
        return self.polynomial_type.n_coeff

    def get_free_coeff_count(self) -> int:
        return len(self.polynomials) * len(self.dims) * self.num_free_coeff_per_spline()

    def index(self, polynomial: int, dim: Coords3D, coeff: int) -> int:
        n_coeff = self.num_free_coeff_per_spline()
        if not 0 <= polynomial < len(self.polynomials):
            raise IndexError(f"polynomial {polynomial} out of range [0, {len(self.polynomials)})")
        if dim not in self.dims:
            raise IndexError(f"dimension {dim!r} is not part of the spline {self.dims}")
        if not 0 <= coeff < n_coeff:
            raise IndexError(f"coefficient {coeff} out of range [0, {n_coeff})")
        return (polynomial * len(self.dims) + self.dims.index(dim)) * n_coeff + coeff

    # ----------------- coefficients -----------------
    def get_values(self) -> np.ndarray:
        x = np.zeros(self.get_free_coeff_count())
        for poly in self.polynomials:
            for dim in self.dims:
                start = self.index(poly.id, dim, 0)
                x[start:start + poly.n_coeff] = poly.get_dim(dim).coeff
        return x

    def set_values(self, optimized_coeff):
        optimized_coeff = np.asarray(optimized_coeff, dtype=float)
        if optimized_coeff.shape != (self.get_free_coeff_count(),):
            raise ValueError(f"expected {self.get_free_coeff_count()} coefficients; "
                             f"got shape {optimized_coeff.shape}")
        for poly in self.polynomials:
            for dim in self.dims:
                start = self.index(poly.id, dim, 0)
                poly.get_dim(dim).coeff = optimized_coeff[start:start + poly.n_coeff]

    # ----------------- evaluation -----------------
    def get_polynomial_id(self, t_global: float):
        """
        Segment owning t_global and the time local to it. A junction time
        belongs to the segment starting there; the final time to the last one.
        """
        total = self.get_total_time()
        if t_global < 0.0 or t_global > total + _END_TOLERANCE:
            raise ValueError(f"t_global={t_global} outside of spline horizon [0, {total}]")
        idx = int(np.searchsorted(self._t_start, t_global + _JUNCTION_TOLERANCE, side="right")) - 1
        idx = min(max(idx, 0), len(self.polynomials) - 1)
        t_local = np.clip(t_global - self._t_start[idx], 0.0, self.polynomials[idx].duration)
        return PolynomialId(idx), LocalTime(float(t_local))

    def get_com(self, t_global: float) -> StateLinXd:
        poly_id, t_local = self.get_polynomial_id(t_global)
        state_xy = self.polynomials[poly_id.index].get_point(t_local.seconds)

        com = StateLinXd.zeros(3)
        com.p[Coords3D.Z] = self.params.com_height
        for i, dim in enumerate(self.dims):
            com.p[dim] = state_xy.p[i]
            com.v[dim] = state_xy.v[i]
            com.a[dim] = state_xy.a[i]
        return com

    def get_jacobian_wrt_coeff_at_polynomial(self, dxdt: MotionDerivative, t_poly: LocalTime,
                                             poly_id: PolynomialId, dim: Coords3D):
        """
        Jacobian row of one motion derivative, specified by a segment and the
        time since that segment became active. Used for junction constraints.
        """
        poly = self.polynomials[poly_id.index]
        start = self.index(poly_id.index, dim, 0)
        partials = poly.get_derivative_wrt_coeffs(dxdt, t_poly.seconds, dim)
        return jacobian_row(self.get_free_coeff_count(),
                            np.arange(start, start + poly.n_coeff), partials)

    def get_jacobian(self, t_global: float, dxdt: MotionDerivative, dim: Coords3D):
        poly_id, t_local = self.get_polynomial_id(t_global)
        return self.get_jacobian_wrt_coeff_at_polynomial(dxdt, t_local, poly_id, dim)

    def get_linear_approx_wrt_coeff(self, t_global: float, dxdt: MotionDerivative, dim: Coords3D):
        """
        Linear approximation x(u) ~ J(u*)(u - u*) + x(u*) of the motion around
        the current coefficients u*.

        Returns:
            (J, x(u*)) with J a sparse (1, n_coeff) row.
        """
        poly_id, t_local = self.get_polynomial_id(t_global)
        jac = self.get_jacobian_wrt_coeff_at_polynomial(dxdt, t_local, poly_id, dim)
        value = self.polynomials[poly_id.index].get_dim(dim).get_value(dxdt, t_local.seconds)
        return jac, value
