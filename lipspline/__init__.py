# Re-export selected symbols
from .lipspline_dataclasses import (
    Coords3D,
    MotionDerivative,
    EndeffectorID,
    StateLinXd,
    PolynomialId,
    LocalTime,
    ModelParameters,
    MotionParameters,
    EndeffectorSchedule,
)
from .polynomial import (
    Polynomial,
    LinearPolynomial,
    CubicPolynomial,
    QuinticPolynomial,
    PolynomialXd,
)
from .com_spline import BaseMotion, ComSpline
from .linear_inverted_pendulum import LinearInvertedPendulum, InvalidPendulumStateError
from .variables import NO_BOUND, VariableSet, OptimizationVariables
from .contact_variables import EndeffectorMotionNodes, EndeffectorLoad
from .constraints import (
    ConstraintSet,
    SwingConstraint,
    SplineJunctionConstraint,
    StateConstraint,
    DynamicConstraint,
    ConvexityConstraint,
)
from .cost_parts import ComAccelerationCost, com_acceleration_cost
from .problem_class import ComMotionProblem
from .trajectory import fit_com_spline, get_trajectory_function

__all__ = [
    'Coords3D', 'MotionDerivative', 'EndeffectorID', 'StateLinXd', 'PolynomialId', 'LocalTime',
    'ModelParameters', 'MotionParameters', 'EndeffectorSchedule',
    'Polynomial', 'LinearPolynomial', 'CubicPolynomial', 'QuinticPolynomial', 'PolynomialXd',
    'BaseMotion', 'ComSpline', 'LinearInvertedPendulum', 'InvalidPendulumStateError',
    'NO_BOUND', 'VariableSet', 'OptimizationVariables',
    'EndeffectorMotionNodes', 'EndeffectorLoad',
    'ConstraintSet', 'SwingConstraint', 'SplineJunctionConstraint', 'StateConstraint',
    'DynamicConstraint', 'ConvexityConstraint',
    'ComAccelerationCost', 'com_acceleration_cost',
    'ComMotionProblem', 'fit_com_spline', 'get_trajectory_function',
]
