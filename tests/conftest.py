from pathlib import Path
import sys

import jax
import numpy as np
import pytest

# Allow running tests without installing the package in editable mode.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Closed-form Jacobians are compared against float64 jax derivatives
jax.config.update("jax_enable_x64", True)


def _central_difference(values_fn, set_fn, x0, eps=1e-6):
    """Numeric Jacobian of values_fn() w.r.t. the vector pushed through set_fn."""
    x0 = np.asarray(x0, dtype=float)
    set_fn(x0)
    m = np.asarray(values_fn()).size
    jac = np.zeros((m, x0.size))
    for i in range(x0.size):
        x = x0.copy()
        x[i] += eps
        set_fn(x)
        g_plus = np.asarray(values_fn(), dtype=float)
        x[i] -= 2 * eps
        set_fn(x)
        g_minus = np.asarray(values_fn(), dtype=float)
        jac[:, i] = (g_plus - g_minus) / (2 * eps)
    set_fn(x0)
    return jac


@pytest.fixture
def numeric_jacobian():
    return _central_difference


@pytest.fixture
def rng():
    return np.random.default_rng(7)
