import logging
import time
import numpy as np
from scipy import sparse
from .lipspline_dataclasses import (
    Coords3D, MotionDerivative, StateLinXd, ModelParameters, MotionParameters
)
from .polynomial import CubicPolynomial
from .com_spline import ComSpline
from .linear_inverted_pendulum import LinearInvertedPendulum
from .variables import OptimizationVariables
from .contact_variables import EndeffectorMotionNodes, EndeffectorLoad
from .constraints import (
    StateConstraint, SplineJunctionConstraint, DynamicConstraint, ConvexityConstraint, SwingConstraint
)
from .cost_parts import ComAccelerationCost
from .trajectory import fit_com_spline

logger = logging.getLogger(__name__)


class ComMotionProblem():
    """
    CoM motion planning problem for a legged robot: a CoM spline driven by an
    inverted pendulum whose center of pressure is set by the endeffector loads
    and foot positions. Exposes the callbacks expected by cyipopt.
    """

    def __init__(self, schedules, initial_com: StateLinXd, final_com_pos,
                 model: ModelParameters = None, motion: MotionParameters = None,
                 polynomial_type=CubicPolynomial, cost_weight: float = 1.0):
        self.model = model or ModelParameters()
        self.motion = motion or MotionParameters()

        # --- Assertions ---
        if not schedules:
            raise ValueError("at least one endeffector schedule is required")
        horizons = np.array([s.total_time for s in schedules])
        if not np.allclose(horizons, horizons[0]):
            raise ValueError(f"all endeffector schedules must span the same horizon; got {horizons}")
        if len({s.ee for s in schedules}) != len(schedules):
            raise ValueError("endeffector schedules must be unique per endeffector")
        t_total = float(horizons[0])
        final_com_pos = np.asarray(final_com_pos, dtype=float)

        # CoM spline, seeded with a clamped interpolation from start to goal
        self.spline = ComSpline(self.model, polynomial_type)
        self.spline.init(t_total, self.motion.polynomial_duration)
        xy = [Coords3D.X, Coords3D.Y]
        fit_com_spline(self.spline, [0.0, t_total],
                       np.vstack([initial_com.p[xy], final_com_pos[xy]]))

        self.ee_motions = {}
        for s in schedules:
            self.ee_motions[s.ee] = EndeffectorMotionNodes(
                f"ee_motion_{s.ee.name}", s.ee, s.initial_pos, s.phase_durations, s.first_phase_contact)

        n_samples = max(int(round(t_total / self.motion.dt_dynamics)), 1)
        self.t_samples = np.linspace(0.0, t_total, n_samples + 1)
        self.ee_load = EndeffectorLoad("ee_load", self.ee_motions.values(), self.t_samples,
                                       self.motion.max_load)

        # Decision vector: spline coefficients, foot nodes, loads
        self.variables = OptimizationVariables()
        self.variables.add_variable_set(self.spline.id, self.spline.get_values())
        for ee in sorted(self.ee_motions):
            m = self.ee_motions[ee]
            self.variables.add_variable_set(m.id, m.get_values(), m.get_bounds())
        self.variables.add_variable_set(self.ee_load.id, self.ee_load.get_values(),
                                        self.ee_load.get_bounds())

        self.lip = LinearInvertedPendulum(self.model)
        final_com = StateLinXd(final_com_pos, np.zeros(3), np.zeros(3))
        self.constraint_sets = [
            StateConstraint(self.spline, 0.0, initial_com, name="initial_com"),
            StateConstraint(self.spline, t_total, final_com, name="final_com"),
            SplineJunctionConstraint(self.spline, self.motion.junction_derivatives),
            DynamicConstraint(self.spline, self.lip, self.ee_load,
                              [self.ee_motions[ee] for ee in sorted(self.ee_motions)]),
            ConvexityConstraint(self.ee_load),
        ]
        for ee in sorted(self.ee_motions):
            self.constraint_sets.append(SwingConstraint(self.ee_motions[ee], self.motion.swing_node_start))
        for c in self.constraint_sets:
            c.init_variable_depended_quantities(self.variables)

        self.cost = ComAccelerationCost(self.spline, self.t_samples, cost_weight)

        # Updated in this order after every new iterate
        self.consumers = [*self.constraint_sets, self.cost]

        self.x0 = self.variables.get_optimization_variables()
        self.n = int(self.x0.size)
        var_bounds = np.asarray(self.variables.get_optimization_variable_bounds(), dtype=float)
        self.lb, self.ub = var_bounds[:, 0], var_bounds[:, 1]

        con_bounds = [b for c in self.constraint_sets for b in c.get_bounds()]
        con_bounds = np.asarray(con_bounds, dtype=float).reshape(-1, 2)
        self.m = int(con_bounds.shape[0])
        self.cl, self.cu = con_bounds[:, 0], con_bounds[:, 1]

        # Dense Jacobian structure (row-major)
        self._jac_rows = np.repeat(np.arange(self.m), self.n).astype(np.int64)
        self._jac_cols = np.tile(np.arange(self.n), self.m).astype(np.int64)

        self.set_all_variables(self.x0)
        logger.info("ComMotionProblem: %d variables, %d constraints, %d CoM polynomials",
                    self.n, self.m, len(self.spline.get_polynomials()))

    def set_all_variables(self, x):
        self.variables.set_all_variables(x)
        for consumer in self.consumers:
            consumer.update_variables(self.variables)

    def get_jacobian(self, x) -> sparse.csr_matrix:
        self.set_all_variables(x)
        rows, cols, data = [], [], []
        row_offset = 0
        for c in self.constraint_sets:
            for var_set in self.variables.get_var_sets():
                block = sparse.lil_matrix((c.get_rows(), var_set.size))
                c.fill_jacobian_block(var_set.id, block)
                coo = block.tocoo()
                rows.append(coo.row + row_offset)
                cols.append(coo.col + self.variables.get_offset(var_set.id))
                data.append(coo.data)
            row_offset += c.get_rows()
        return sparse.csr_matrix(
            (np.concatenate(data), (np.concatenate(rows), np.concatenate(cols))),
            shape=(self.m, self.n))

    # ============== Ipopt callbacks ==============
    def objective(self, x):
        self.set_all_variables(x)
        return self.cost.get_cost()

    def gradient(self, x):
        self.set_all_variables(x)
        g = np.zeros(self.n)
        for var_set in self.variables.get_var_sets():
            g_set = self.cost.get_gradient(var_set.id)
            if g_set is not None:
                offset = self.variables.get_offset(var_set.id)
                g[offset:offset + var_set.size] = g_set
        return g

    def constraints(self, x):
        self.set_all_variables(x)
        if self.m == 0:
            return np.array([], dtype=float)
        return np.concatenate([c.get_values() for c in self.constraint_sets if c.get_rows() > 0])

    def jacobian(self, x):
        if self.m == 0:
            return np.array([], dtype=float)
        return self.get_jacobian(x).toarray().ravel(order="C")

    def jacobianstructure(self):
        return (self._jac_rows, self._jac_cols)

    # Solve helper
    def run_single_optimization(self, options: dict | None = None):
        import cyipopt

        nlp = cyipopt.Problem(
            n=self.n, m=self.m, problem_obj=self,
            lb=self.lb, ub=self.ub, cl=self.cl, cu=self.cu
        )
        ipopt_opts = {
            "hessian_approximation": "limited-memory",
            "print_level": 0,      # silence IPOPT
            "sb": "yes",           # (small banner) further reduce output
            "max_iter": 300,
            "tol": 1e-8,
            "acceptable_tol": 1e-4,
            "print_timing_statistics": "no"
        }
        if options:
            ipopt_opts.update(options)
        for k, v in ipopt_opts.items():
            nlp.add_option(k, v)

        t0 = time.perf_counter()
        x_sol, info = nlp.solve(np.asarray(self.x0, dtype=float))
        logger.info("Ipopt finished in %.3f s: %s (objective = %.6f)",
                    time.perf_counter() - t0, info["status_msg"], info["obj_val"])

        self.set_all_variables(x_sol)
        return x_sol, info

    def get_com(self, t_global: float) -> StateLinXd:
        return self.spline.get_com(t_global)

    def get_required_com_acceleration(self, k: int) -> np.ndarray:
        """Acceleration the pendulum demands at dynamic sample k for the current iterate."""
        dynamic = next(c for c in self.constraint_sets if isinstance(c, DynamicConstraint))
        dynamic.set_pendulum_at_sample(k)
        return self.lip.get_acceleration()
