"""Simulation engine contract and a reference 2D lattice automaton driven by parameter vectors."""

import numpy as np
from typing import List, Optional, Sequence
from scipy import ndimage

from .parameters import ParameterVector


class SimulationEngine:
    """Contract for the engine the explorer drives.

    ``advance`` reinitializes the lattice when ``reset`` is set, then runs
    ``num_generations`` steps under ``parameters`` and returns a 2D integer
    array of cell states. Callers treat the array as read-only.
    """

    def advance(self, parameters: Sequence[int], num_generations: int, reset: bool = False) -> np.ndarray:
        raise NotImplementedError


def _as_values(parameters) -> List[int]:
    if isinstance(parameters, ParameterVector):
        return parameters.values
    return list(parameters)


class LatticeAutomaton(SimulationEngine):
    """Toroidal lattice whose rule table is read from a parameter vector.

    With divisor ``d`` the automaton has ``max(d, 2)`` states. Each step sums the
    3x3 Moore neighbourhood (self included) and the new state is
    ``table[sum % d] % num_states`` with ``table = parameters[1..d]``.
    """

    def __init__(
        self,
        width: int = 256,
        height: int = 256,
        density: float = 0.3,
        rng: Optional[np.random.Generator] = None,
    ):
        self.width = width
        self.height = height
        self.density = density
        self.rng = rng if rng is not None else np.random.default_rng()
        self.grid = np.zeros((height, width), dtype=np.uint16)
        self.generation = 0
        self._kernel = np.ones((3, 3), dtype=np.int32)

    @staticmethod
    def num_states(parameters) -> int:
        return max(_as_values(parameters)[0], 2)

    def randomize(self, num_states: int = 2):
        """Fill the grid with random non-zero states at ``self.density``."""
        alive = self.rng.random((self.height, self.width)) < self.density
        states = self.rng.integers(1, num_states, size=(self.height, self.width), endpoint=False)
        self.grid = np.where(alive, states, 0).astype(np.uint16)
        self.generation = 0

    def step(self, parameters):
        """Advance simulation by one generation."""
        values = _as_values(parameters)
        d = values[0]
        n = self.num_states(values)
        table = np.array([v % n for v in values[1:d + 1]], dtype=np.uint16)

        sums = ndimage.convolve(self.grid.astype(np.int32), self._kernel, mode="wrap")
        self.grid = table[sums % d]
        self.generation += 1

    def advance(self, parameters, num_generations: int, reset: bool = False) -> np.ndarray:
        if reset:
            self.randomize(self.num_states(parameters))
        for _ in range(num_generations):
            self.step(parameters)
        return self.grid

    def population(self) -> int:
        """Count non-empty cells."""
        return int(np.count_nonzero(self.grid))

    def population_density(self) -> float:
        return self.population() / (self.width * self.height)
