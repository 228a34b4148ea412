import numpy as np
from .lipspline_dataclasses import Coords3D, MotionDerivative, EndeffectorID, ModelParameters
from .com_spline import BaseMotion

_DIM_2D = 2


class InvalidPendulumStateError(AssertionError):
    """The pendulum was given a physically meaningless state (no load, no height)."""


class LinearInvertedPendulum:
    """
    Linear Inverted Pendulum relating the CoM acceleration to the offset between
    the CoM and the center of pressure (CoP):

        acc = g/h * (pos - cop),   cop = sum_ee load(ee)/sum(load) * pos(ee)[xy]

    The state is only replaced as a whole through set_current().
    """

    def __init__(self, params: ModelParameters = None):
        self.params = params or ModelParameters()
        self._pos = np.zeros(_DIM_2D)
        self._h = self.params.com_height
        self._ee_load = {}
        self._ee_pos = {}

    @property
    def gravity(self) -> float:
        return self.params.gravity

    def set_current(self, com_pos, ee_load: dict, ee_pos: dict):
        com_pos = np.asarray(com_pos, dtype=float)
        if com_pos.shape != (3,):
            raise ValueError(f"com_pos must have shape (3,); got {com_pos.shape}")
        unknown = set(ee_load) - set(ee_pos)
        if unknown:
            raise ValueError(f"loads given for endeffectors without position: {sorted(unknown)}")

        self._pos = com_pos[:_DIM_2D].copy()
        self._h = float(com_pos[Coords3D.Z])
        self._ee_load = {ee: float(load) for ee, load in ee_load.items()}
        self._ee_pos = {ee: np.asarray(p, dtype=float).copy() for ee, p in ee_pos.items()}

    def _g_over_h(self) -> float:
        if not self._h > 0.0:
            raise InvalidPendulumStateError(f"CoM height must be positive; got {self._h}")
        return self.gravity / self._h

    def get_acceleration(self) -> np.ndarray:
        cop = self.calculate_cop()
        return self._g_over_h() * (self._pos - cop)

    def get_jacobian_of_acc_wrt_base(self, com_motion: BaseMotion, t: float, dim: Coords3D):
        com_jac = com_motion.get_jacobian(t, MotionDerivative.POS, dim)
        return self._g_over_h() * com_jac

    def get_derivative_of_acc_wrt_load(self, ee: EndeffectorID, dim: Coords3D) -> float:
        cop_wrt_load = self.get_derivative_of_cop_wrt_load(ee)[dim]
        return self._g_over_h() * (-1.0 * cop_wrt_load)

    def get_derivative_of_acc_wrt_ee_pos(self, ee: EndeffectorID) -> float:
        cop_wrt_ee = self.get_derivative_of_cop_wrt_ee_pos(ee)
        return self._g_over_h() * (-1.0 * cop_wrt_ee)

    def get_derivative_of_cop_wrt_ee_pos(self, ee: EndeffectorID) -> float:
        # Same weight for x and y
        return self._ee_load.get(ee, 0.0) / self.get_load_sum()

    def get_derivative_of_cop_wrt_load(self, ee: EndeffectorID) -> np.ndarray:
        p = self._ee_pos[ee][:_DIM_2D]
        u = self.calculate_cop()
        return (p - u) / self.get_load_sum()

    def calculate_cop(self) -> np.ndarray:
        cop = np.zeros(_DIM_2D)
        load_sum = self.get_load_sum()
        for ee in sorted(self._ee_load):
            load_percent = self._ee_load[ee] / load_sum
            cop += load_percent * self._ee_pos[ee][:_DIM_2D]
        return cop

    def get_load_sum(self) -> float:
        load_sum = 0.0
        for ee in sorted(self._ee_load):
            load_sum += self._ee_load[ee]
        # While using the inverted pendulum this must always hold
        if not load_sum > 0.0:
            raise InvalidPendulumStateError(f"sum of endeffector loads must be positive; got {load_sum}")
        return load_sum
