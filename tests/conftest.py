import numpy as np
import pytest

from lattice_explorer.automaton import SimulationEngine


class ScriptedEngine(SimulationEngine):
    """Returns the given views one per call, repeating the last one when exhausted."""

    def __init__(self, views):
        self.views = [np.asarray(v) for v in views]
        self.calls = []

    def advance(self, parameters, num_generations, reset=False):
        self.calls.append((list(parameters)[:4], num_generations, reset))
        index = min(len(self.calls) - 1, len(self.views) - 1)
        return self.views[index]


class CyclingEngine(SimulationEngine):
    """Replays a fixed cycle of frames; each generation moves one frame forward."""

    def __init__(self, frames):
        self.frames = [np.asarray(f) for f in frames]
        self.generation = 0
        self.calls = 0

    def advance(self, parameters, num_generations, reset=False):
        self.calls += 1
        if reset:
            self.generation = 0
        self.generation += num_generations
        return self.frames[self.generation % len(self.frames)]


def density_view(density, size=10):
    """A 1D lattice with round(density * size) occupied cells."""
    view = np.zeros(size, dtype=np.uint16)
    view[:int(round(density * size))] = 1
    return view


def period_three_frames(size=12):
    """Every cell cycles 1 -> 2 -> 3 with a position-dependent phase."""
    base = np.add.outer(np.arange(size), np.arange(size))
    return [((base + g) % 3 + 1).astype(np.uint16) for g in range(3)]


@pytest.fixture
def dead_engine():
    return ScriptedEngine([np.zeros((8, 8), dtype=np.uint16)])


@pytest.fixture
def periodic_engine():
    return CyclingEngine(period_three_frames())
