"""Lattice Explorer - enumerate automaton parameters, judge them and keep atlases of the interesting ones."""

from .automaton import LatticeAutomaton, SimulationEngine
from .explorer import Explorer, ExplorerConfig
from .judge import Judgement, classify
from .parameters import ParameterVector, ParameterError, increment, decrement
from .periodicity import compute_score, score_periodicity

__all__ = [
    "LatticeAutomaton",
    "SimulationEngine",
    "Explorer",
    "ExplorerConfig",
    "Judgement",
    "classify",
    "ParameterVector",
    "ParameterError",
    "increment",
    "decrement",
    "compute_score",
    "score_periodicity",
]
