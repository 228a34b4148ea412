import numpy as np
from scipy.interpolate import CubicSpline
from .lipspline_dataclasses import StateLinXd


def fit_com_spline(spline, t_waypoints, xy_waypoints, bc_type="clamped"):
    """
    Fit the spline coefficients to a C2 cubic interpolation of waypoints.

    Every polynomial matches the interpolation's position and velocity (and
    acceleration for quintic polynomials) at both of its ends, so neighbouring
    polynomials are continuous at the junctions.
    Args:
        spline: ComSpline whose segments are already initialized
        t_waypoints: (K,) increasing global times spanning the spline horizon
        xy_waypoints: (K, n_dims) positions in the spline dimensions
        bc_type: boundary condition of scipy's CubicSpline ('clamped': zero end velocity)

    Returns:
        The fitted flat coefficient vector (also written into the spline)
    """
    t_waypoints = np.asarray(t_waypoints, dtype=float)
    xy_waypoints = np.asarray(xy_waypoints, dtype=float)
    if xy_waypoints.shape != (t_waypoints.size, len(spline.dims)):
        raise ValueError(f"waypoints shape {xy_waypoints.shape} != ({t_waypoints.size}, {len(spline.dims)})")
    cubic = CubicSpline(t_waypoints, xy_waypoints, axis=0, bc_type=bc_type)

    def state_at(t):
        return StateLinXd(cubic(t), cubic(t, 1), cubic(t, 2))

    t_start = 0.0
    for poly in spline.get_polynomials():
        t_end = t_start + poly.duration
        poly.set_boundary(state_at(t_start), state_at(t_end))
        t_start = t_end
    return spline.get_values()


def get_trajectory_function(problem):
    """
    Builds a function trajectory(dt) -> (times, com_pos, feet_pos) sampling the
    current solution of a ComMotionProblem at a uniform timestep.
        times:    (N,)
        com_pos:  (N, 3)
        feet_pos: (N, n_ee, 3), endeffectors in ascending id order
    """
    spline = problem.spline
    motions = [problem.ee_motions[ee] for ee in sorted(problem.ee_motions)]
    total_time = spline.get_total_time()

    def motion_trajectory(dt: float, include_endpoint: bool = True):
        if dt <= 0:
            raise ValueError("dt must be positive")

        end = total_time + (1e-12 if include_endpoint else 0.0)
        times = np.arange(0.0, end, dt, dtype=float)
        # If include_endpoint and last < total_time by tolerance, append
        if include_endpoint and (total_time - times[-1]) > 1e-9:
            times = np.append(times, total_time)

        com_pos = np.stack([spline.get_com(t).p for t in times], axis=0)
        feet_pos = np.stack([[m.get_pos(t) for m in motions] for t in times], axis=0)
        return times, com_pos, feet_pos

    motion_trajectory.total_time = total_time
    motion_trajectory.endeffectors = [m.ee for m in motions]

    return motion_trajectory
