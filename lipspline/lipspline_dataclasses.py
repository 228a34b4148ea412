from dataclasses import dataclass, field
from enum import IntEnum
import numpy as np


class Coords3D(IntEnum):
    X = 0
    Y = 1
    Z = 2


class MotionDerivative(IntEnum):
    POS = 0
    VEL = 1
    ACC = 2
    JERK = 3


class EndeffectorID(IntEnum):
    E0 = 0  # left front
    E1 = 1  # right front
    E2 = 2  # left hind
    E3 = 3  # right hind


@dataclass
class StateLinXd:
    p: np.ndarray  # position
    v: np.ndarray  # velocity
    a: np.ndarray  # acceleration

    def __post_init__(self):
        self.p = np.asarray(self.p, dtype=float)
        self.v = np.asarray(self.v, dtype=float)
        self.a = np.asarray(self.a, dtype=float)
        if not (self.p.shape == self.v.shape == self.a.shape):
            raise ValueError(f"state shapes differ: p{self.p.shape} v{self.v.shape} a{self.a.shape}")

    @classmethod
    def zeros(cls, n_dims: int) -> "StateLinXd":
        return cls(np.zeros(n_dims), np.zeros(n_dims), np.zeros(n_dims))

    def get_by_index(self, dxdt: MotionDerivative) -> np.ndarray:
        if dxdt == MotionDerivative.POS:
            return self.p
        if dxdt == MotionDerivative.VEL:
            return self.v
        if dxdt == MotionDerivative.ACC:
            return self.a
        raise ValueError(f"state does not store derivative {dxdt!r}")


@dataclass(frozen=True)
class PolynomialId:
    index: int  # position of the segment in the spline


@dataclass(frozen=True)
class LocalTime:
    seconds: float  # time since the segment became active


@dataclass
class ModelParameters:
    gravity: float = 9.80665  # [m/s^2]
    com_height: float = 0.58  # Constant CoM height used by the pendulum [m]

    def __post_init__(self):
        if self.gravity <= 0.0:
            raise ValueError(f"gravity must be positive; got {self.gravity}")
        if self.com_height <= 0.0:
            raise ValueError(f"com_height must be positive; got {self.com_height}")


@dataclass
class MotionParameters:
    polynomial_duration: float = 0.1  # Duration of one CoM spline segment [s]
    dt_dynamics: float = 0.1  # Sampling step of the dynamic constraint [s]
    swing_node_start: int = 1  # Initial (fixed) nodes skipped by the swing constraint
    junction_derivatives: tuple = field(
        default_factory=lambda: (MotionDerivative.POS, MotionDerivative.VEL))
    max_load: float = 1.0  # Upper bound of the normalized endeffector load

    def __post_init__(self):
        if self.polynomial_duration <= 0.0:
            raise ValueError(f"polynomial_duration must be positive; got {self.polynomial_duration}")
        if self.dt_dynamics <= 0.0:
            raise ValueError(f"dt_dynamics must be positive; got {self.dt_dynamics}")
        if self.swing_node_start < 0:
            raise ValueError(f"swing_node_start must be >= 0; got {self.swing_node_start}")
        if self.max_load <= 0.0:
            raise ValueError(f"max_load must be positive; got {self.max_load}")


@dataclass
class EndeffectorSchedule:
    ee: EndeffectorID
    initial_pos: np.ndarray  # Foot position at t=0 [m]
    phase_durations: list  # Alternating stance/swing phase durations [s]
    first_phase_contact: bool = True  # Whether the first phase is a stance phase

    def __post_init__(self):
        self.initial_pos = np.asarray(self.initial_pos, dtype=float)
        self.phase_durations = [float(T) for T in self.phase_durations]

    @property
    def total_time(self) -> float:
        return float(sum(self.phase_durations))
