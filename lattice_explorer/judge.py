"""Automatic judgement of a parameterization as dead, chaotic or worth a closer look."""

import logging
import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from typing import List

from .automaton import SimulationEngine

logger = logging.getLogger(__name__)

DEAD_THRESHOLD = 1e-5
DEFAULT_BURSTS = 4
DEFAULT_BURST_LENGTH = 20


class Judgement(Enum):
    DEAD = "dead"
    CHAOTIC = "chaotic"
    UNKNOWN = "unknown"

    def is_interesting(self) -> bool:
        """Not dead and not obviously chaotic. Slow chaotic growth also lands here."""
        return self is Judgement.UNKNOWN

    def is_unknown(self) -> bool:
        return self is Judgement.UNKNOWN


def population_density(view: np.ndarray) -> float:
    """Fraction of non-empty cells in a lattice view."""
    if view.size == 0:
        return 0.0
    return float(np.count_nonzero(view)) / view.size


class Judge:
    """Accumulates density snapshots and renders a verdict on them."""

    def __init__(self, initial: float):
        self.snapshots: List[float] = [initial]

    def push_snapshot(self, snapshot: float):
        self.snapshots.append(snapshot)

    def judgement(self) -> Judgement:
        if len(self.snapshots) == 1:
            return Judgement.UNKNOWN

        # Growth is measured against the generation-0 density, not the previous snapshot
        d0 = self.snapshots[0]
        if all(s > d0 for s in self.snapshots[1:]):
            return Judgement.CHAOTIC

        if self.snapshots[-1] < DEAD_THRESHOLD:
            return Judgement.DEAD

        return Judgement.UNKNOWN


@dataclass
class Classification:
    """Outcome of one classification attempt."""
    judgement: Judgement
    densities: List[float] = field(default_factory=list)
    bursts: int = 0

    def to_dict(self):
        return {
            "judgement": self.judgement.value,
            "densities": list(self.densities),
            "bursts": self.bursts,
        }


def classify(
    engine: SimulationEngine,
    parameters,
    bursts: int = DEFAULT_BURSTS,
    burst_length: int = DEFAULT_BURST_LENGTH,
) -> Classification:
    """
    Reset the lattice, then run up to ``bursts`` bursts of ``burst_length``
    generations, stopping at the first Dead or Chaotic verdict.

    The verdict is only evaluated after a burst, so an empty lattice is
    reported Dead after exactly one burst. Unknown after the whole budget is
    a normal outcome.
    """
    judge = Judge(population_density(engine.advance(parameters, 0, reset=True)))

    verdict = Judgement.UNKNOWN
    ran = 0
    for _ in range(bursts):
        view = engine.advance(parameters, burst_length, reset=False)
        judge.push_snapshot(population_density(view))
        ran += 1
        verdict = judge.judgement()
        if not verdict.is_unknown():
            break

    logger.debug("densities: %s", " ".join(f"{s:.5f}" for s in judge.snapshots))
    return Classification(judgement=verdict, densities=list(judge.snapshots), bursts=ran)
