import logging
from abc import ABC, abstractmethod
import numpy as np
from .lipspline_dataclasses import MotionDerivative, StateLinXd, PolynomialId, LocalTime

logger = logging.getLogger(__name__)

_SWING_DIMS = (0, 1)  # x and y of the endeffector motion


def _add_sparse_row(jac, row, sparse_row):
    coo = sparse_row.tocoo()
    for col, val in zip(coo.col, coo.data):
        jac[row, col] += val


class ConstraintSet(ABC):
    """
    Block of constraints g(x) with bounds and one Jacobian block per variable
    set. Components whose values a constraint reads are refreshed from the
    variable store by update_variables().
    """

    def __init__(self, name: str, components=()):
        self.name = name
        self.components = list(components)
        self._rows = 0

    def get_rows(self) -> int:
        return self._rows

    def set_rows(self, n_rows: int):
        self._rows = int(n_rows)

    @abstractmethod
    def get_values(self) -> np.ndarray:
        ...

    @abstractmethod
    def get_bounds(self) -> list:
        ...

    @abstractmethod
    def fill_jacobian_block(self, var_set: str, jac):
        """Write d(g)/d(var_set) into `jac`, a (rows, size of var_set) lil_matrix."""

    def init_variable_depended_quantities(self, variables):
        for component in self.components:
            if variables.get_variables(component.id).size != component.get_values().size:
                raise ValueError(f"variable set '{component.id}' does not match the size "
                                 f"expected by constraint '{self.name}'")

    def update_variables(self, variables):
        for component in self.components:
            component.set_values(variables.get_variables(component.id))


class SwingConstraint(ConstraintSet):
    """
    Keeps the swing mid node of an endeffector halfway between lift-off and
    touch-down, moving with the average swing velocity.
    """

    def __init__(self, ee_motion, node_start: int = 1):
        super().__init__(f"swing_{ee_motion.id}", [ee_motion])
        self.ee_motion = ee_motion
        self.node_start = node_start  # Skip the fixed initial nodes
        self.pure_swing_node_ids = []

    def init_variable_depended_quantities(self, variables):
        super().init_variable_depended_quantities(variables)
        self.pure_swing_node_ids = [n for n in self.ee_motion.get_swing_mid_node_ids()
                                    if n >= self.node_start]
        # position and velocity in x and y for every swing node
        self.set_rows(len(self.pure_swing_node_ids) * 2 * len(_SWING_DIMS))

    def get_values(self) -> np.ndarray:
        g = np.zeros(self.get_rows())
        row = 0
        for node_id in self.pure_swing_node_ids:
            # Every swing phase is two polynomials between stance nodes
            curr = self.ee_motion.get_node(node_id)
            prev = self.ee_motion.get_node(node_id - 1)[MotionDerivative.POS]
            nxt = self.ee_motion.get_node(node_id + 1)[MotionDerivative.POS]
            t_swing = self.ee_motion.get_swing_duration(node_id)
            distance = nxt - prev
            center = prev + 0.5 * distance
            des_vel_center = distance / t_swing
            for dim in _SWING_DIMS:
                g[row] = curr[MotionDerivative.POS, dim] - center[dim]
                row += 1
                g[row] = curr[MotionDerivative.VEL, dim] - des_vel_center[dim]
                row += 1
        return g

    def get_bounds(self) -> list:
        return [(0.0, 0.0)] * self.get_rows()

    def fill_jacobian_block(self, var_set: str, jac):
        if var_set != self.ee_motion.id:
            return
        pos, vel = MotionDerivative.POS, MotionDerivative.VEL
        index = self.ee_motion.index
        row = 0
        for node_id in self.pure_swing_node_ids:
            t_swing = self.ee_motion.get_swing_duration(node_id)
            for dim in _SWING_DIMS:
                jac[row, index(node_id, pos, dim)] = 1.0
                jac[row, index(node_id + 1, pos, dim)] = -0.5
                jac[row, index(node_id - 1, pos, dim)] = -0.5
                row += 1
                jac[row, index(node_id, vel, dim)] = 1.0
                jac[row, index(node_id + 1, pos, dim)] = -1.0 / t_swing
                jac[row, index(node_id - 1, pos, dim)] = 1.0 / t_swing
                row += 1


class SplineJunctionConstraint(ConstraintSet):
    """Equal motion derivatives at the end of one CoM segment and the start of the next."""

    def __init__(self, spline, derivatives=(MotionDerivative.POS, MotionDerivative.VEL)):
        super().__init__("spline_junction", [spline])
        self.spline = spline
        self.derivatives = tuple(derivatives)
        self._refresh_rows()

    def _refresh_rows(self):
        n_junctions = max(len(self.spline.get_polynomials()) - 1, 0)
        self.set_rows(n_junctions * len(self.derivatives) * len(self.spline.dims))

    def init_variable_depended_quantities(self, variables):
        super().init_variable_depended_quantities(variables)
        self._refresh_rows()

    def _junctions(self):
        polys = self.spline.get_polynomials()
        for i in range(len(polys) - 1):
            for dxdt in self.derivatives:
                for dim in self.spline.dims:
                    yield polys[i], polys[i + 1], dxdt, dim

    def get_values(self) -> np.ndarray:
        g = [curr.get_dim(dim).get_value(dxdt, curr.duration) - nxt.get_dim(dim).get_value(dxdt, 0.0)
             for curr, nxt, dxdt, dim in self._junctions()]
        return np.asarray(g, dtype=float)

    def get_bounds(self) -> list:
        return [(0.0, 0.0)] * self.get_rows()

    def fill_jacobian_block(self, var_set: str, jac):
        if var_set != self.spline.id:
            return
        for row, (curr, nxt, dxdt, dim) in enumerate(self._junctions()):
            jac_end = self.spline.get_jacobian_wrt_coeff_at_polynomial(
                dxdt, LocalTime(curr.duration), PolynomialId(curr.id), dim)
            jac_start = self.spline.get_jacobian_wrt_coeff_at_polynomial(
                dxdt, LocalTime(0.0), PolynomialId(nxt.id), dim)
            _add_sparse_row(jac, row, jac_end - jac_start)


class StateConstraint(ConstraintSet):
    """Fixes CoM motion derivatives at one global time, e.g. the initial or final state."""

    def __init__(self, spline, t_global: float, desired: StateLinXd,
                 derivatives=(MotionDerivative.POS, MotionDerivative.VEL), name: str = "com_state"):
        super().__init__(name, [spline])
        self.spline = spline
        self.t_global = float(t_global)
        self.desired = desired
        self.derivatives = tuple(derivatives)
        self.set_rows(len(self.derivatives) * len(spline.dims))

    def _entries(self):
        for dxdt in self.derivatives:
            for dim in self.spline.dims:
                yield dxdt, dim

    def get_values(self) -> np.ndarray:
        g = []
        for dxdt, dim in self._entries():
            _, value = self.spline.get_linear_approx_wrt_coeff(self.t_global, dxdt, dim)
            g.append(value - self.desired.get_by_index(dxdt)[dim])
        return np.asarray(g, dtype=float)

    def get_bounds(self) -> list:
        return [(0.0, 0.0)] * self.get_rows()

    def fill_jacobian_block(self, var_set: str, jac):
        if var_set != self.spline.id:
            return
        for row, (dxdt, dim) in enumerate(self._entries()):
            jac_row, _ = self.spline.get_linear_approx_wrt_coeff(self.t_global, dxdt, dim)
            _add_sparse_row(jac, row, jac_row)


class DynamicConstraint(ConstraintSet):
    """
    CoM acceleration of the spline must equal the acceleration the inverted
    pendulum produces for the current loads and endeffector positions, at
    every sample time of the load variables.
    """

    def __init__(self, spline, lip, ee_load, ee_motions):
        super().__init__("dynamic", [spline, ee_load, *ee_motions])
        self.spline = spline
        self.lip = lip
        self.ee_load = ee_load
        self.ee_motions = {m.ee: m for m in ee_motions}
        missing = set(ee_load.ees) - set(self.ee_motions)
        if missing:
            raise ValueError(f"no motion given for endeffectors {sorted(missing)}")
        self.set_rows(self.ee_load.t_samples.size * len(spline.dims))

    def set_pendulum_at_sample(self, k: int) -> float:
        t = float(self.ee_load.t_samples[k])
        com = self.spline.get_com(t)
        ee_pos = {ee: m.get_pos(t) for ee, m in self.ee_motions.items()}
        self.lip.set_current(com.p, self.ee_load.get_loads(k), ee_pos)
        return t

    def get_values(self) -> np.ndarray:
        g = np.zeros(self.get_rows())
        row = 0
        for k in range(self.ee_load.t_samples.size):
            t = self.set_pendulum_at_sample(k)
            acc_spline = self.spline.get_com(t).a
            acc_lip = self.lip.get_acceleration()
            for dim in self.spline.dims:
                g[row] = acc_spline[dim] - acc_lip[dim]
                row += 1
        return g

    def get_bounds(self) -> list:
        return [(0.0, 0.0)] * self.get_rows()

    def fill_jacobian_block(self, var_set: str, jac):
        motion_ids = {m.id: m for m in self.ee_motions.values()}
        if var_set not in (self.spline.id, self.ee_load.id) and var_set not in motion_ids:
            return

        row = 0
        for k in range(self.ee_load.t_samples.size):
            t = self.set_pendulum_at_sample(k)
            for dim in self.spline.dims:
                if var_set == self.spline.id:
                    jac_acc = self.spline.get_jacobian(t, MotionDerivative.ACC, dim)
                    jac_lip = self.lip.get_jacobian_of_acc_wrt_base(self.spline, t, dim)
                    _add_sparse_row(jac, row, jac_acc - jac_lip)
                elif var_set == self.ee_load.id:
                    for ee in self.ee_load.ees:
                        jac[row, self.ee_load.index(k, ee)] = -self.lip.get_derivative_of_acc_wrt_load(ee, dim)
                else:
                    motion = motion_ids[var_set]
                    scale = -self.lip.get_derivative_of_acc_wrt_ee_pos(motion.ee)
                    _add_sparse_row(jac, row, scale * motion.get_jacobian(t, MotionDerivative.POS, dim))
                row += 1


class ConvexityConstraint(ConstraintSet):
    """Endeffector loads at every sample time sum up to one."""

    def __init__(self, ee_load):
        super().__init__("load_convexity", [ee_load])
        self.ee_load = ee_load
        self.set_rows(self.ee_load.t_samples.size)

    def get_values(self) -> np.ndarray:
        return np.array([sum(self.ee_load.get_loads(k).values())
                         for k in range(self.ee_load.t_samples.size)])

    def get_bounds(self) -> list:
        return [(1.0, 1.0)] * self.get_rows()

    def fill_jacobian_block(self, var_set: str, jac):
        if var_set != self.ee_load.id:
            return
        for k in range(self.ee_load.t_samples.size):
            for ee in self.ee_load.ees:
                jac[k, self.ee_load.index(k, ee)] = 1.0
