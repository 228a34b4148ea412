import numpy as np
from .lipspline_dataclasses import Coords3D, MotionDerivative, StateLinXd
from .helpers import derivative_basis, boundary_coefficients


class Polynomial:
    """
    Scalar polynomial in local time with ascending-power coefficients
    c_0 + c_1 t + ... + c_n t^n. The number of coefficients is fixed by the
    subclass and never changes after construction.
    """
    n_coeff = 0
    n_boundary = 0  # Boundary derivatives (pos, vel, ...) matched by set_boundary

    def __init__(self, coeff=None):
        self._coeff = np.zeros(self.n_coeff)
        if coeff is not None:
            self.coeff = coeff

    @property
    def coeff(self) -> np.ndarray:
        return self._coeff

    @coeff.setter
    def coeff(self, values):
        values = np.asarray(values, dtype=float)
        if values.shape != (self.n_coeff,):
            raise ValueError(f"{type(self).__name__} takes {self.n_coeff} coefficients; got shape {values.shape}")
        self._coeff = values.copy()

    def get_value(self, dxdt: MotionDerivative, t: float) -> float:
        return float(self._coeff @ derivative_basis(self.n_coeff, t, dxdt))

    def get_derivative_wrt_coeffs(self, dxdt: MotionDerivative, t: float) -> np.ndarray:
        # Value is linear in the coefficients, so the partials are the basis itself.
        return derivative_basis(self.n_coeff, t, dxdt)

    def get_derivative_wrt_coeff(self, dxdt: MotionDerivative, coeff: int, t: float) -> float:
        if not 0 <= coeff < self.n_coeff:
            raise IndexError(f"coefficient {coeff} out of range for {type(self).__name__}")
        return float(self.get_derivative_wrt_coeffs(dxdt, t)[coeff])

    def set_boundary(self, duration: float, start, end):
        """
        Set coefficients so the first n_boundary derivatives equal `start` at
        t=0 and `end` at t=duration. Extra trailing entries are ignored.
        """
        start = np.atleast_1d(np.asarray(start, dtype=float))[:self.n_boundary]
        end = np.atleast_1d(np.asarray(end, dtype=float))[:self.n_boundary]
        if start.shape[0] < self.n_boundary or end.shape[0] < self.n_boundary:
            raise ValueError(f"{type(self).__name__} needs {self.n_boundary} boundary values per side")
        self._coeff = boundary_coefficients(duration, start, end)


class LinearPolynomial(Polynomial):
    n_coeff = 2
    n_boundary = 1


class CubicPolynomial(Polynomial):
    n_coeff = 4
    n_boundary = 2


class QuinticPolynomial(Polynomial):
    n_coeff = 6
    n_boundary = 3


class PolynomialXd:
    """One polynomial per spatial dimension, all sharing a single duration."""

    def __init__(self, polynomial_type=CubicPolynomial, dims=(Coords3D.X, Coords3D.Y),
                 duration: float = 1.0, id: int = 0):
        if duration <= 0.0:
            raise ValueError(f"polynomial duration must be positive; got {duration}")
        if len(dims) == 0 or len(set(dims)) != len(dims):
            raise ValueError(f"dimensions must be non-empty and unique; got {dims}")
        self.id = id
        self.duration = float(duration)
        self.dims = tuple(dims)
        self.polynomial_type = polynomial_type
        self.polynomials = {dim: polynomial_type() for dim in self.dims}

    @property
    def n_coeff(self) -> int:
        return self.polynomial_type.n_coeff

    def get_dim(self, dim: Coords3D) -> Polynomial:
        return self.polynomials[dim]

    def get_point(self, t: float) -> StateLinXd:
        p = [self.polynomials[d].get_value(MotionDerivative.POS, t) for d in self.dims]
        v = [self.polynomials[d].get_value(MotionDerivative.VEL, t) for d in self.dims]
        a = [self.polynomials[d].get_value(MotionDerivative.ACC, t) for d in self.dims]
        return StateLinXd(p, v, a)

    def get_value(self, dxdt: MotionDerivative, t: float) -> np.ndarray:
        return np.array([self.polynomials[d].get_value(dxdt, t) for d in self.dims])

    def get_derivative_wrt_coeffs(self, dxdt: MotionDerivative, t: float, dim: Coords3D) -> np.ndarray:
        return self.polynomials[dim].get_derivative_wrt_coeffs(dxdt, t)

    def set_boundary(self, start: StateLinXd, end: StateLinXd):
        for i, d in enumerate(self.dims):
            self.polynomials[d].set_boundary(
                self.duration,
                [start.p[i], start.v[i], start.a[i]],
                [end.p[i], end.v[i], end.a[i]],
            )
