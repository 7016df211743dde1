"""Per-cell periodicity detection and the interestingness score derived from it.

A scoring pass runs the lattice for a fixed number of generations without
resetting it and keeps every generation. A strided subset of cells (the coarse
snapshot) is tested for exact repetition at every period up to a third of the
window; the smallest passing period is recorded for each cell. The resulting
period histogram is normalized by the number of sampled cells and by the
occupied-cell density of the first generation, so sparse and dense
parameterizations land on a comparable scale.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from typing import Dict, Optional

from .automaton import SimulationEngine

logger = logging.getLogger(__name__)

DEFAULT_GENERATIONS = 100
DEFAULT_STRIDE = 6

BASELINE = 1000.0
CHAOS_PENALTY = 20.0
STATIC_DOMINANCE = 5.0
STATIC_FACTOR = 0.001


@dataclass
class PeriodHistogram:
    """Counts of sampled cells per detected period.

    ``counts[0]`` holds cells with no period up to ``max_period``,
    ``counts[1]`` static occupied cells and ``counts[p]`` oscillators of
    period ``p``. Cells that are static and empty are tallied in ``empty``
    instead of any bucket.
    """
    counts: np.ndarray
    positions: int
    occupancy: float
    empty: int = 0

    @property
    def max_period(self) -> int:
        return len(self.counts) - 1

    @property
    def densities(self) -> np.ndarray:
        if self.positions == 0 or self.occupancy <= 0:
            return np.zeros(len(self.counts), dtype=np.float64)
        return self.counts / self.positions / self.occupancy

    def density(self, period: int) -> float:
        return float(self.densities[period])

    def oscillator_density(self) -> float:
        return float(self.densities[2:].sum())

    def to_dict(self) -> Dict:
        return {
            "counts": [int(c) for c in self.counts],
            "densities": [float(d) for d in self.densities],
            "positions": self.positions,
            "occupancy": self.occupancy,
            "empty": self.empty,
        }


@dataclass
class PeriodicityResult:
    """Everything a scoring pass produces."""
    histogram: PeriodHistogram
    score: float
    history: np.ndarray = field(repr=False)
    stride: int = DEFAULT_STRIDE


def record_history(engine: SimulationEngine, parameters, generations: int = DEFAULT_GENERATIONS) -> np.ndarray:
    """Advance one generation at a time (no reset) and stack the views into a (K, H, W) array."""
    if generations < 1:
        raise ValueError("generations must be positive")
    first = engine.advance(parameters, 1, reset=False)
    history = np.empty((generations,) + first.shape, dtype=first.dtype)
    history[0] = first
    for g in range(1, generations):
        history[g] = engine.advance(parameters, 1, reset=False)
    return history


def coarse_samples(history: np.ndarray, stride: int = DEFAULT_STRIDE) -> np.ndarray:
    """Every ``stride``-th linear cell of each generation, shape (K, P)."""
    if stride < 1:
        raise ValueError("stride must be positive")
    return history.reshape(len(history), -1)[:, ::stride]


def repeats(series: np.ndarray, period: int) -> bool:
    """True iff ``series[g] == series[g + period]`` for every g in [0, K - period)."""
    if not 0 < period < len(series):
        raise ValueError(f"period {period} outside 1..{len(series) - 1}")
    return bool(np.array_equal(series[:-period], series[period:]))


def is_periodic(samples: np.ndarray, period: int, position: int) -> bool:
    """Whether the sampled position repeats with ``period`` over the whole window."""
    return repeats(samples[:, position], period)


def find_periods(samples: np.ndarray, max_period: int) -> np.ndarray:
    """Smallest period in ``1..max_period`` at which each position repeats, 0 if none does."""
    k = len(samples)
    if not 0 < max_period < k:
        raise ValueError(f"max_period {max_period} outside 1..{k - 1}")

    periods = np.zeros(samples.shape[1], dtype=np.int64)
    unresolved = np.ones(samples.shape[1], dtype=bool)
    for period in range(1, max_period + 1):
        matches = np.all(samples[:k - period] == samples[period:], axis=0)
        periods[matches & unresolved] = period
        unresolved &= ~matches
        if not unresolved.any():
            break
    return periods


def build_histogram(samples: np.ndarray, occupancy: Optional[float] = None) -> PeriodHistogram:
    """
    Bucket each sampled position by its smallest period.

    ``max_period`` is a third of the window to limit false positives from
    short runs. Static cells only count when they are occupied at generation 0.
    ``occupancy`` defaults to the non-empty fraction of the first sample row.
    """
    k, positions = samples.shape
    max_period = k // 3
    if max_period < 1:
        raise ValueError(f"need at least 3 generations, got {k}")
    if occupancy is None:
        occupancy = float(np.count_nonzero(samples[0])) / positions if positions else 0.0

    periods = find_periods(samples, max_period)
    static_empty = (periods == 1) & (samples[0] == 0)
    counts = np.bincount(periods[~static_empty], minlength=max_period + 1)

    return PeriodHistogram(
        counts=counts,
        positions=positions,
        occupancy=float(occupancy),
        empty=int(static_empty.sum()),
    )


def compute_score(histogram: PeriodHistogram) -> float:
    """
    Reduce a histogram to one interestingness score.

    Oscillators are weighted by the square of their period. Chaotic cells are
    penalized unless oscillators already dominate, a flat baseline keeps the
    score positive, and a histogram dominated by static cells is scaled down
    by three orders of magnitude.
    """
    densities = histogram.densities
    periods = np.arange(len(densities), dtype=np.float64)

    score = float(np.sum(periods[2:] ** 2 * densities[2:]))
    oscillators = float(densities[2:].sum())

    if oscillators < 1.0:
        score -= CHAOS_PENALTY * float(densities[0])
    score += BASELINE
    if len(densities) > 1 and densities[1] > STATIC_DOMINANCE * oscillators:
        score *= STATIC_FACTOR
    return score


def score_periodicity(
    engine: SimulationEngine,
    parameters,
    generations: int = DEFAULT_GENERATIONS,
    stride: int = DEFAULT_STRIDE,
) -> PeriodicityResult:
    """Run a scoring pass on the engine's current lattice and score it."""
    history = record_history(engine, parameters, generations)
    occupancy = float(np.count_nonzero(history[0])) / history[0].size
    histogram = build_histogram(coarse_samples(history, stride), occupancy)
    score = compute_score(histogram)

    logger.debug(
        "score %.2f (chaotic %.3f, static %.3f, oscillating %.3f)",
        score,
        histogram.density(0),
        histogram.density(1),
        histogram.oscillator_density(),
    )
    return PeriodicityResult(histogram=histogram, score=score, history=history, stride=stride)
