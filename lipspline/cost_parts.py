import logging
import numpy as np
import jax
import jax.numpy as jnp
from jax import jit, value_and_grad, vmap
from .helpers import evaluate_spline_acceleration

logger = logging.getLogger(__name__)


def com_acceleration_cost(x, poly_idx, t_local, n_dims, n_coeff, weight):
    """
        x: flat CoM spline coefficients (polynomial, dimension, coefficient)
        poly_idx: polynomial of every sample (shape: (N,))
        t_local: local time of every sample (shape: (N,))
        weight: scaling of the cost

        return: weighted sum of squared CoM accelerations at the samples
    """
    a = x.reshape(-1, n_dims, n_coeff)
    acc = vmap(lambda i, t: evaluate_spline_acceleration(a[i], t))(poly_idx, t_local)
    return weight * jnp.sum(jnp.square(acc))


class ComAccelerationCost:
    """
    Penalizes CoM accelerations of the spline; gradient through jax.
    Precision follows the caller's jax setup: enable jax_enable_x64 before
    building the cost to hand float64 gradients to the solver.
    """

    def __init__(self, spline, t_samples, weight: float = 1.0):
        if not jax.config.jax_enable_x64:
            logger.warning("jax_enable_x64 is off; the CoM acceleration cost is evaluated in float32")
        self.spline = spline
        self.weight = float(weight)
        ids = [spline.get_polynomial_id(float(t)) for t in t_samples]
        poly_idx = jnp.asarray([p.index for p, _ in ids], dtype=jnp.int32)
        t_local = jnp.asarray(np.array([t.seconds for _, t in ids]))
        n_dims = len(spline.dims)
        n_coeff = spline.num_free_coeff_per_spline()

        self._valgrad = jit(value_and_grad(
            lambda x: com_acceleration_cost(x, poly_idx, t_local, n_dims, n_coeff, self.weight)))
        self._x = spline.get_values()

    def update_variables(self, variables):
        self._x = variables.get_variables(self.spline.id)

    def get_cost(self) -> float:
        v, _ = self._valgrad(jnp.asarray(self._x))
        return float(v)

    def get_gradient(self, var_set: str):
        """Gradient w.r.t. `var_set`, or None if the cost does not depend on it."""
        if var_set != self.spline.id:
            return None
        _, g = self._valgrad(jnp.asarray(self._x))
        return np.asarray(g, dtype=float)
