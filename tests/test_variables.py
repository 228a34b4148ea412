import numpy as np
import pytest

from lipspline import NO_BOUND, OptimizationVariables


def _variables() -> OptimizationVariables:
    variables = OptimizationVariables()
    variables.add_variable_set("com_spline", np.arange(4.0))
    variables.add_variable_set("ee_load", [0.5, 0.5], [(0.0, 1.0), (0.0, 0.0)])
    return variables


def test_variable_sets_are_concatenated_in_order() -> None:
    variables = _variables()

    assert variables.get_optimization_variable_count() == 6
    np.testing.assert_allclose(variables.get_optimization_variables(), [0, 1, 2, 3, 0.5, 0.5])
    assert [s.id for s in variables.get_var_sets()] == ["com_spline", "ee_load"]
    assert variables.get_offset("com_spline") == 0
    assert variables.get_offset("ee_load") == 4


def test_bounds_follow_variable_layout() -> None:
    bounds = _variables().get_optimization_variable_bounds()
    assert bounds[:4] == [NO_BOUND] * 4
    assert bounds[4:] == [(0.0, 1.0), (0.0, 0.0)]


def test_set_all_variables_splits_vector() -> None:
    variables = _variables()
    variables.set_all_variables(np.arange(6.0) * 10)

    np.testing.assert_allclose(variables.get_variables("com_spline"), [0, 10, 20, 30])
    np.testing.assert_allclose(variables.get_variables("ee_load"), [40, 50])
    with pytest.raises(ValueError):
        variables.set_all_variables(np.zeros(5))


def test_get_variables_returns_a_copy() -> None:
    variables = _variables()
    values = variables.get_variables("com_spline")
    values[0] = 100.0
    assert variables.get_variables("com_spline")[0] == 0.0


def test_invalid_sets_are_rejected() -> None:
    variables = _variables()
    with pytest.raises(ValueError):
        variables.add_variable_set("ee_load", [1.0])
    with pytest.raises(ValueError):
        variables.add_variable_set("ee_motion", [1.0, 2.0], [(0.0, 1.0)])
    with pytest.raises(KeyError):
        variables.get_variables("unknown")
    with pytest.raises(KeyError):
        variables.get_offset("unknown")


def test_clear_variables() -> None:
    variables = _variables()
    variables.clear_variables()
    assert variables.get_optimization_variable_count() == 0
    assert variables.get_optimization_variables().size == 0
