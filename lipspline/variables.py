import logging
from dataclasses import dataclass
import numpy as np

logger = logging.getLogger(__name__)

NO_BOUND = (-np.inf, np.inf)


@dataclass
class VariableSet:
    id: str
    values: np.ndarray  # Current values of this block of the decision vector
    bounds: list  # One (lower, upper) pair per value

    def __post_init__(self):
        self.values = np.asarray(self.values, dtype=float).copy()
        if len(self.bounds) != self.values.size:
            raise ValueError(f"variable set '{self.id}' has {self.values.size} values "
                             f"but {len(self.bounds)} bounds")

    @property
    def size(self) -> int:
        return int(self.values.size)


class OptimizationVariables:
    """
    Holds the current value and bounds of all optimization variables as an
    ordered list of named variable sets. The full decision vector is the
    concatenation of the sets in insertion order.
    """

    def __init__(self):
        self.variable_sets = []

    def clear_variables(self):
        self.variable_sets = []

    def add_variable_set(self, id: str, values, bound=NO_BOUND):
        if self._set_exists(id):
            raise ValueError(f"variable set '{id}' already exists")
        values = np.asarray(values, dtype=float).ravel()
        if isinstance(bound, tuple):
            bounds = [bound] * values.size
        else:
            bounds = [tuple(b) for b in bound]
        self.variable_sets.append(VariableSet(id, values, bounds))
        logger.debug("Added variable set '%s' with %d variables", id, values.size)

    def get_variables(self, id: str) -> np.ndarray:
        return self._get_set(id).values.copy()

    def get_optimization_variables(self) -> np.ndarray:
        if not self.variable_sets:
            return np.zeros(0)
        return np.concatenate([s.values for s in self.variable_sets])

    def get_optimization_variable_bounds(self) -> list:
        bounds = []
        for s in self.variable_sets:
            bounds.extend(s.bounds)
        return bounds

    def get_optimization_variable_count(self) -> int:
        return sum(s.size for s in self.variable_sets)

    def get_var_sets(self) -> list:
        return list(self.variable_sets)

    def get_offset(self, id: str) -> int:
        """Column of the first variable of set `id` in the full decision vector."""
        offset = 0
        for s in self.variable_sets:
            if s.id == id:
                return offset
            offset += s.size
        raise KeyError(f"no variable set with id '{id}'")

    def set_all_variables(self, x):
        x = np.asarray(x, dtype=float).ravel()
        if x.size != self.get_optimization_variable_count():
            raise ValueError(f"expected {self.get_optimization_variable_count()} variables; got {x.size}")
        offset = 0
        for s in self.variable_sets:
            s.values = x[offset:offset + s.size].copy()
            offset += s.size

    def _get_set(self, id: str) -> VariableSet:
        for s in self.variable_sets:
            if s.id == id:
                return s
        raise KeyError(f"no variable set with id '{id}'")

    def _set_exists(self, id: str) -> bool:
        return any(s.id == id for s in self.variable_sets)
