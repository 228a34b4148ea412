import numpy as np
from .lipspline_dataclasses import Coords3D, MotionDerivative, EndeffectorID
from .polynomial import CubicPolynomial
from .helpers import boundary_coefficients, derivative_basis, jacobian_row

_N_DIM = 3
_N_NODE_DERIV = 2  # Each node stores position and velocity
_JUNCTION_TOLERANCE = 1e-9


class EndeffectorMotionNodes:
    """
    Motion of one endeffector described by nodes (position + velocity) that are
    connected by cubic Hermite polynomials.

    A stance phase is a single polynomial from a node to itself with zero
    velocity, so the foot cannot slide. A swing phase adds a mid node and a
    touch-down node and is split into two polynomials of half the duration.
    """

    def __init__(self, id: str, ee: EndeffectorID, initial_pos, phase_durations,
                 first_phase_contact: bool = True):
        initial_pos = np.asarray(initial_pos, dtype=float)
        if initial_pos.shape != (_N_DIM,):
            raise ValueError(f"initial_pos must have shape (3,); got {initial_pos.shape}")
        if len(phase_durations) == 0:
            raise ValueError("at least one phase is required")
        for i, T in enumerate(phase_durations):
            if T <= 0.0:
                raise ValueError(f"duration of phase {i} must be positive; got {T}")

        self.id = id
        self.ee = ee
        self.initial_pos = initial_pos
        self.phase_durations = [float(T) for T in phase_durations]

        # Polynomials as (start node, end node, duration, in contact)
        self.polynomials = []
        self._swing_durations = {}  # mid node id -> duration of its swing phase
        t_start = []
        self._stance_nodes = set()
        node, n_nodes = 0, 1
        contact = bool(first_phase_contact)
        phase_start = 0.0
        for T in self.phase_durations:
            if contact:
                t_start.append(phase_start)
                self.polynomials.append((node, node, T, True))
                self._stance_nodes.add(node)
            else:
                mid, end = n_nodes, n_nodes + 1
                n_nodes += 2
                t_start += [phase_start, phase_start + T / 2.0]
                self.polynomials.append((node, mid, T / 2.0, False))
                self.polynomials.append((mid, end, T / 2.0, False))
                self._swing_durations[mid] = T
                node = end
            contact = not contact
            phase_start += T
        self.n_nodes = n_nodes

        self._t_start = np.asarray(t_start)
        self._total_time = phase_start

        self._values = np.zeros((self.n_nodes, _N_NODE_DERIV, _N_DIM))
        self._values[:, MotionDerivative.POS, :] = initial_pos

    # ----------------- variable layout -----------------
    def index(self, node: int, dxdt: MotionDerivative, dim: Coords3D) -> int:
        if not 0 <= node < self.n_nodes:
            raise IndexError(f"node {node} out of range [0, {self.n_nodes})")
        if dxdt not in (MotionDerivative.POS, MotionDerivative.VEL):
            raise IndexError(f"nodes only store position and velocity; got {dxdt!r}")
        return (node * _N_NODE_DERIV + int(dxdt)) * _N_DIM + int(dim)

    def get_rows(self) -> int:
        return self._values.size

    def get_values(self) -> np.ndarray:
        return self._values.ravel().copy()

    def set_values(self, x):
        x = np.asarray(x, dtype=float)
        if x.shape != (self._values.size,):
            raise ValueError(f"expected {self._values.size} node values; got shape {x.shape}")
        self._values = x.reshape(self._values.shape).copy()

    def get_bounds(self) -> list:
        """
        The first node is pinned to the initial state, stance nodes have zero
        velocity and stay on the ground height of the initial position, swing
        mid nodes may not go below it.
        """
        ground = self.initial_pos[Coords3D.Z]
        bounds = [(-np.inf, np.inf)] * self._values.size
        for node in range(self.n_nodes):
            if node == 0 or node in self._stance_nodes:
                for dim in Coords3D:
                    bounds[self.index(node, MotionDerivative.VEL, dim)] = (0.0, 0.0)
                bounds[self.index(node, MotionDerivative.POS, Coords3D.Z)] = (ground, ground)
            if node in self._swing_durations:
                bounds[self.index(node, MotionDerivative.POS, Coords3D.Z)] = (ground, np.inf)
        for dim in Coords3D:
            p0 = self.initial_pos[dim]
            bounds[self.index(0, MotionDerivative.POS, dim)] = (p0, p0)
        return bounds

    # ----------------- nodes -----------------
    def get_node(self, node: int) -> np.ndarray:
        """(2, 3) array of the node's position and velocity."""
        return self._values[node].copy()

    def get_swing_mid_node_ids(self) -> list:
        return sorted(self._swing_durations)

    def get_swing_duration(self, node: int) -> float:
        return self._swing_durations[node]

    def get_total_time(self) -> float:
        return self._total_time

    # ----------------- evaluation -----------------
    def _get_polynomial(self, t_global: float):
        if t_global < 0.0 or t_global > self._total_time + 1e-9:
            raise ValueError(f"t_global={t_global} outside of motion horizon [0, {self._total_time}]")
        idx = int(np.searchsorted(self._t_start, t_global + _JUNCTION_TOLERANCE, side="right")) - 1
        idx = min(max(idx, 0), len(self.polynomials) - 1)
        n0, n1, T, contact = self.polynomials[idx]
        return n0, n1, T, contact, float(np.clip(t_global - self._t_start[idx], 0.0, T))

    def is_in_contact(self, t_global: float) -> bool:
        return self._get_polynomial(t_global)[3]

    def get_pos(self, t_global: float) -> np.ndarray:
        return np.array([self.get_value(t_global, MotionDerivative.POS, dim) for dim in Coords3D])

    def get_value(self, t_global: float, dxdt: MotionDerivative, dim: Coords3D) -> float:
        n0, n1, T, _, t_local = self._get_polynomial(t_global)
        poly = CubicPolynomial()
        poly.set_boundary(T, self._values[n0, :, dim], self._values[n1, :, dim])
        return poly.get_value(dxdt, t_local)

    def get_jacobian(self, t_global: float, dxdt: MotionDerivative, dim: Coords3D):
        """
        Sparse row of the motion derivative w.r.t. all node values of this set.
        The Hermite coefficients are linear in the boundary values, so each
        partial is the basis row applied to the coefficients of a unit boundary.
        """
        n0, n1, T, _, t_local = self._get_polynomial(t_global)
        basis = derivative_basis(CubicPolynomial.n_coeff, t_local, dxdt)

        columns = [self.index(n0, MotionDerivative.POS, dim), self.index(n0, MotionDerivative.VEL, dim),
                   self.index(n1, MotionDerivative.POS, dim), self.index(n1, MotionDerivative.VEL, dim)]
        partials = []
        for unit in np.eye(4):
            partials.append(basis @ boundary_coefficients(T, unit[:2], unit[2:]))
        return jacobian_row(self.get_rows(), columns, partials)


class EndeffectorLoad:
    """
    Normalized load carried by each endeffector at the dynamic sample times.
    Endeffectors in swing are bound to zero load.
    """

    def __init__(self, id: str, ee_motions, t_samples, max_load: float = 1.0):
        self.id = id
        self.ee_motions = {m.ee: m for m in ee_motions}
        self.ees = sorted(self.ee_motions)
        self.t_samples = np.asarray(t_samples, dtype=float)
        self.max_load = float(max_load)

        self._contact = np.zeros((self.t_samples.size, len(self.ees)), dtype=bool)
        for k, t in enumerate(self.t_samples):
            for j, ee in enumerate(self.ees):
                self._contact[k, j] = self.ee_motions[ee].is_in_contact(t)
            if not self._contact[k].any():
                raise ValueError(f"no endeffector in contact at t={t:.3f}; "
                                 "the inverted pendulum needs at least one")

        n_contacts = self._contact.sum(axis=1, keepdims=True)
        self._values = np.where(self._contact, 1.0 / n_contacts, 0.0)

    def index(self, k: int, ee: EndeffectorID) -> int:
        return k * len(self.ees) + self.ees.index(ee)

    def get_rows(self) -> int:
        return self._values.size

    def get_values(self) -> np.ndarray:
        return self._values.ravel().copy()

    def set_values(self, x):
        x = np.asarray(x, dtype=float)
        if x.shape != (self._values.size,):
            raise ValueError(f"expected {self._values.size} loads; got shape {x.shape}")
        self._values = x.reshape(self._values.shape).copy()

    def get_bounds(self) -> list:
        return [(0.0, self.max_load) if c else (0.0, 0.0) for c in self._contact.ravel()]

    def get_loads(self, k: int) -> dict:
        return {ee: float(self._values[k, j]) for j, ee in enumerate(self.ees)}
