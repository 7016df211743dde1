"""Enumerate parameter vectors, judge each one and keep evidence for the interesting ones."""

import logging
import numpy as np
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from .atlas import (
    ArtifactWriteError,
    CLIP_RADIUS,
    FRAME_DURATION,
    MAX_ATTEMPTS,
    SLOTS,
    VISIBILITY_THRESHOLD,
    atlas_path,
    encode_atlas,
    save_histogram_plot,
)
from .automaton import SimulationEngine
from .judge import DEFAULT_BURSTS, DEFAULT_BURST_LENGTH, Classification, Judgement, classify
from .parameters import ParameterVector
from .periodicity import DEFAULT_GENERATIONS, DEFAULT_STRIDE, PeriodHistogram, score_periodicity

logger = logging.getLogger(__name__)


@dataclass
class ExplorerConfig:
    """Knobs for one exploration session. Passed explicitly, never global."""
    bursts: int = DEFAULT_BURSTS
    burst_length: int = DEFAULT_BURST_LENGTH
    generations: int = DEFAULT_GENERATIONS
    stride: int = DEFAULT_STRIDE
    slots: int = SLOTS
    clip_radius: int = CLIP_RADIUS
    visibility_threshold: float = VISIBILITY_THRESHOLD
    max_attempts: int = MAX_ATTEMPTS
    frame_duration: int = FRAME_DURATION
    output_dir: str = "captures"
    direction: int = 1  # +1 increments the odometer, -1 decrements it
    min_score: Optional[float] = None  # Don't write atlases below this score
    plot: bool = False
    seed: Optional[int] = None


@dataclass
class RoundResult:
    """What happened to one parameter vector."""
    parameters: List[int]
    classification: Classification
    score: Optional[float] = None
    histogram: Optional[PeriodHistogram] = None
    artifact: Optional[Path] = None
    error: Optional[str] = None

    @property
    def judgement(self) -> Judgement:
        return self.classification.judgement

    def to_dict(self):
        return {
            "parameters": list(self.parameters),
            "classification": self.classification.to_dict(),
            "score": self.score,
            "histogram": self.histogram.to_dict() if self.histogram else None,
            "artifact": str(self.artifact) if self.artifact else None,
            "error": self.error,
        }


class Explorer:
    """Drives odometer -> engine -> judge, and scoring plus atlas encoding on interesting verdicts."""

    def __init__(
        self,
        engine: SimulationEngine,
        parameters: ParameterVector,
        config: Optional[ExplorerConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        if not isinstance(parameters, ParameterVector):
            parameters = ParameterVector.from_list(parameters)
        self.engine = engine
        self.parameters = parameters
        self.config = config or ExplorerConfig()
        self.rng = rng if rng is not None else np.random.default_rng(self.config.seed)
        self.rounds = 0
        self.results: List[RoundResult] = []
        self.best: Optional[RoundResult] = None

    def bucket(self) -> str:
        return f"d{self.parameters.divisor}"

    def evaluate(self) -> RoundResult:
        """Judge the current vector; score it and write its atlas when it looks interesting."""
        cfg = self.config
        values = list(self.parameters.values)
        label = self.parameters.to_string()

        classification = classify(self.engine, self.parameters, cfg.bursts, cfg.burst_length)
        result = RoundResult(parameters=values, classification=classification)
        logger.info(
            "%s: %s after %d burst(s), density %.5f -> %.5f",
            label,
            classification.judgement.value,
            classification.bursts,
            classification.densities[0],
            classification.densities[-1],
        )
        if not classification.judgement.is_interesting():
            return result

        scored = score_periodicity(self.engine, self.parameters, cfg.generations, cfg.stride)
        result.score = scored.score
        result.histogram = scored.histogram
        logger.info("%s: score %.2f", label, scored.score)

        if cfg.min_score is not None and scored.score < cfg.min_score:
            return result

        path = atlas_path(cfg.output_dir, self.bucket(), scored.score, values)
        try:
            result.artifact = encode_atlas(
                scored,
                path,
                self.rng,
                slots=cfg.slots,
                radius=cfg.clip_radius,
                threshold=cfg.visibility_threshold,
                max_attempts=cfg.max_attempts,
                duration=cfg.frame_duration,
            )
            if cfg.plot and result.artifact is not None:
                save_histogram_plot(scored.histogram, path.with_suffix(".png"), title=label)
        except ArtifactWriteError as e:
            logger.warning("%s: %s", label, e)
            result.error = str(e)
        return result

    def advance(self):
        """Move the odometer one step in the configured direction."""
        self.parameters.step(self.config.direction)

    def _record(self, result: RoundResult):
        self.rounds += 1
        self.results.append(result)
        if result.score is not None and (self.best is None or result.score > self.best.score):
            self.best = result

    def run(
        self,
        rounds: Optional[int] = None,
        callback: Optional[Callable[[int, RoundResult], None]] = None,
    ) -> List[RoundResult]:
        """
        Evaluate the current vector, advance, repeat. Stops after ``rounds``
        evaluations (never, when None) or on KeyboardInterrupt; a round cut
        short by the interrupt is dropped and the vector is left on it.
        """
        done = 0
        try:
            while rounds is None or done < rounds:
                result = self.evaluate()
                self._record(result)
                done += 1
                if callback:
                    callback(self.rounds, result)
                self.advance()
        except KeyboardInterrupt:
            logger.info("stopped at %s after %d round(s)", self.parameters.to_string(), done)
        return self.results
