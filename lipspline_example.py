import logging
import jax
import numpy as np
from lipspline import (
    ComMotionProblem, EndeffectorID, EndeffectorSchedule, ModelParameters, MotionParameters,
    StateLinXd, get_trajectory_function
)

logging.basicConfig(level=logging.INFO)
jax.config.update("jax_enable_x64", True)

model = ModelParameters(gravity=9.80665, com_height=0.58)
motion = MotionParameters(
    polynomial_duration=0.1,
    dt_dynamics=0.05,
    swing_node_start=1,
    max_load=1.0,
)

# Diagonal pairs swing one after another, never both at once
pair_a = [0.2, 0.3, 0.5, 0.3, 0.4]
pair_b = [0.6, 0.3, 0.8]

schedules = [
    EndeffectorSchedule(EndeffectorID.E0, [0.25, 0.15, 0.0], pair_a),  # LF
    EndeffectorSchedule(EndeffectorID.E3, [-0.25, -0.15, 0.0], pair_a),  # RH
    EndeffectorSchedule(EndeffectorID.E1, [0.25, -0.15, 0.0], pair_b),  # RF
    EndeffectorSchedule(EndeffectorID.E2, [-0.25, 0.15, 0.0], pair_b),  # LH
]

initial_com = StateLinXd(np.array([0.0, 0.0, model.com_height]), np.zeros(3), np.zeros(3))
final_com_pos = np.array([0.2, 0.0, model.com_height])

problem = ComMotionProblem(schedules, initial_com, final_com_pos, model, motion)

x_sol, info = problem.run_single_optimization({
    "max_iter": 500,
    "acceptable_tol": 1e-4,
})

trajectory_fn = get_trajectory_function(problem)
times, com_positions, feet_positions = trajectory_fn(0.02)  # feet shape: (N, 4, 3)

print(f"CoM at t={times[-1]:.2f}s: {com_positions[-1]}")
