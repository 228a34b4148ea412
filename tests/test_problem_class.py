import numpy as np
import pytest

from lipspline import (
    ComMotionProblem, EndeffectorID, EndeffectorSchedule, ModelParameters, MotionParameters, StateLinXd,
    get_trajectory_function
)


@pytest.fixture
def problem():
    schedules = [
        EndeffectorSchedule(EndeffectorID.E0, [0.3, 0.15, 0.0], [0.3, 0.2, 0.3]),
        EndeffectorSchedule(EndeffectorID.E1, [-0.3, -0.15, 0.0], [0.8]),
    ]
    initial_com = StateLinXd([0.0, 0.0, 0.58], np.zeros(3), np.zeros(3))
    motion = MotionParameters(polynomial_duration=0.2, dt_dynamics=0.1)
    return ComMotionProblem(schedules, initial_com, [0.05, 0.0, 0.58], ModelParameters(), motion)


def test_problem_dimensions(problem) -> None:
    # 4 cubic polynomials x 2 dims x 4 coefficients, 3 + 1 nodes x 6, 9 samples x 2 loads
    assert problem.n == 32 + 18 + 6 + 18
    # initial 4, final 4, junctions 12, dynamics 18, convexity 9, swing 4
    assert problem.m == 51
    assert problem.x0.shape == problem.lb.shape == problem.ub.shape == (problem.n,)
    assert problem.cl.shape == problem.cu.shape == (problem.m,)
    assert np.all(problem.lb <= problem.x0) and np.all(problem.x0 <= problem.ub)
    assert [c.name for c in problem.constraint_sets] == [
        "initial_com", "final_com", "spline_junction", "dynamic", "load_convexity",
        "swing_ee_motion_E0", "swing_ee_motion_E1",
    ]


def test_solver_callbacks_match_problem_size(problem) -> None:
    x = problem.x0.copy()
    assert np.ndim(problem.objective(x)) == 0
    assert problem.gradient(x).shape == (problem.n,)
    assert problem.constraints(x).shape == (problem.m,)
    rows, cols = problem.jacobianstructure()
    assert problem.jacobian(x).shape == rows.shape == cols.shape
    assert rows.max() == problem.m - 1 and cols.max() == problem.n - 1


def test_constraint_values_follow_constraint_sets(problem) -> None:
    values = problem.constraints(problem.x0)
    expected = np.concatenate([c.get_values() for c in problem.constraint_sets if c.get_rows() > 0])
    np.testing.assert_allclose(values, expected)
    # Initial and final CoM state come first
    np.testing.assert_allclose(values[:8], 0.0, atol=1e-10)


def test_set_all_variables_reaches_every_component(problem, rng) -> None:
    x = problem.x0 + rng.normal(scale=0.01, size=problem.n)
    problem.set_all_variables(x)
    np.testing.assert_allclose(problem.spline.get_values(), x[:32])
    offset = problem.variables.get_offset("ee_load")
    np.testing.assert_allclose(problem.ee_load.get_values(), x[offset:])


def test_gradient_matches_finite_differences(problem, rng, numeric_jacobian) -> None:
    x = problem.x0 + rng.normal(scale=0.01, size=problem.n)
    grad = problem.gradient(x)
    fd = numeric_jacobian(lambda: [problem.cost.get_cost()], problem.set_all_variables, x)
    np.testing.assert_allclose(grad, fd.ravel(), rtol=1e-5, atol=1e-6)
    assert np.all(grad[32:] == 0.0)


def test_jacobian_matches_finite_differences(problem, rng, numeric_jacobian) -> None:
    x = problem.x0 + rng.normal(scale=0.01, size=problem.n)
    jac = problem.get_jacobian(x).toarray()
    fd = numeric_jacobian(lambda: problem.constraints(problem.variables.get_optimization_variables()),
                          problem.set_all_variables, x)
    assert jac.shape == (problem.m, problem.n)
    np.testing.assert_allclose(jac, fd, rtol=1e-5, atol=1e-5)

    rows, cols = problem.jacobianstructure()
    dense = problem.jacobian(x)
    assert rows.size == cols.size == dense.size == problem.m * problem.n
    np.testing.assert_allclose(dense[rows * problem.n + cols], jac.ravel())


def test_required_acceleration_vanishes_above_cop(problem) -> None:
    # CoM starts above the midpoint of two equally loaded feet
    problem.set_all_variables(problem.x0)
    acc = problem.get_required_com_acceleration(0)
    np.testing.assert_allclose(acc[:2], 0.0, atol=1e-12)


def test_mismatched_horizons_are_rejected() -> None:
    schedules = [
        EndeffectorSchedule(EndeffectorID.E0, [0.3, 0.15, 0.0], [0.5]),
        EndeffectorSchedule(EndeffectorID.E1, [-0.3, -0.15, 0.0], [0.6]),
    ]
    with pytest.raises(ValueError):
        ComMotionProblem(schedules, StateLinXd.zeros(3), [0.0, 0.0, 0.58])


def test_trajectory_function_shapes(problem) -> None:
    trajectory = get_trajectory_function(problem)
    times, com_pos, feet_pos = trajectory(0.1)
    assert times[0] == 0.0 and times[-1] == pytest.approx(0.8)
    assert com_pos.shape == (times.size, 3)
    assert feet_pos.shape == (times.size, 2, 3)
    assert trajectory.endeffectors == [EndeffectorID.E0, EndeffectorID.E1]
    np.testing.assert_allclose(feet_pos[0, 0], [0.3, 0.15, 0.0])


def test_standing_shift_is_solved() -> None:
    pytest.importorskip("cyipopt")
    positions = [[0.3, 0.15, 0.0], [0.3, -0.15, 0.0], [-0.3, 0.15, 0.0], [-0.3, -0.15, 0.0]]
    schedules = [EndeffectorSchedule(ee, p, [0.6]) for ee, p in zip(EndeffectorID, positions)]
    initial_com = StateLinXd([0.0, 0.0, 0.58], np.zeros(3), np.zeros(3))
    problem = ComMotionProblem(schedules, initial_com, [0.05, 0.02, 0.58],
                               motion=MotionParameters(polynomial_duration=0.2, dt_dynamics=0.1))
    _, info = problem.run_single_optimization({"max_iter": 500})
    assert info["status"] in (0, 1)
    np.testing.assert_allclose(problem.get_com(0.6).p[:2], [0.05, 0.02], atol=1e-5)
