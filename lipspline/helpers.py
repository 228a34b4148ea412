import math
import numpy as np
import jax.numpy as jnp
from scipy import sparse


def derivative_basis(n_coeff, t, dxdt):
    """
    Row of d^k/dt^k t^i for ascending powers i = 0..n_coeff-1.
    Args:
        n_coeff: Number of polynomial coefficients
        t: Local time
        dxdt: Derivative order k (0: position, 1: velocity, ...)

    Returns:
        Basis row (shape [n_coeff]). The value of the derivative is coeff @ row,
        so the row is also the partial derivative w.r.t. every coefficient.
    """
    k = int(dxdt)
    row = np.zeros(n_coeff)
    for i in range(k, n_coeff):
        row[i] = math.perm(i, k) * t**(i - k)
    return row


def boundary_coefficients(duration, start, end):
    """
    Solve for ascending-power coefficients such that the first len(start)
    derivatives match `start` at t=0 and `end` at t=duration.
    Works per component; pass sequences of scalars ordered pos, vel, acc.
    """
    start = np.atleast_1d(np.asarray(start, dtype=float))
    end = np.atleast_1d(np.asarray(end, dtype=float))
    if start.shape != end.shape:
        raise ValueError(f"boundary sizes differ: {start.shape} != {end.shape}")
    n_cond = start.shape[0]
    n_coeff = 2 * n_cond
    A = np.vstack([derivative_basis(n_coeff, 0.0, d) for d in range(n_cond)] +
                  [derivative_basis(n_coeff, duration, d) for d in range(n_cond)])
    b = np.concatenate([start, end])
    return np.linalg.solve(A, b)


def jacobian_row(n_cols, indices, values):
    """
    Sparse (1, n_cols) row holding `values` at column `indices`.
    Repeated indices are summed.
    """
    indices = np.asarray(indices, dtype=np.int64)
    values = np.asarray(values, dtype=float)
    rows = np.zeros_like(indices)
    return sparse.csr_matrix((values, (rows, indices)), shape=(1, n_cols))


def evaluate_spline_acceleration(a, t):
    """
    jax.numpy counterpart of derivative_basis(n_coeff, t, ACC) applied to every
    row of `a` (shape [n_dims, n_coeff]); traceable in t and a.
    """
    basis = jnp.array([math.perm(i, 2) * t**(i - 2) if i >= 2 else 0.0 for i in range(a.shape[1])])
    return a @ basis
