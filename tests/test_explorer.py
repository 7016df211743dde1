import numpy as np
import pytest

from conftest import CyclingEngine, ScriptedEngine, period_three_frames
from lattice_explorer.explorer import Explorer, ExplorerConfig
from lattice_explorer.judge import Judgement
from lattice_explorer.parameters import ParameterError, ParameterVector


def config(tmp_path, **kwargs):
    defaults = dict(output_dir=str(tmp_path), generations=30, clip_radius=4, seed=0)
    defaults.update(kwargs)
    return ExplorerConfig(**defaults)


def test_dead_round_writes_nothing(tmp_path, dead_engine):
    explorer = Explorer(dead_engine, ParameterVector.from_list([2, 0, 0]), config(tmp_path))
    result = explorer.evaluate()
    assert result.judgement is Judgement.DEAD
    assert result.classification.bursts == 1
    assert result.score is None
    assert result.artifact is None
    assert list(tmp_path.iterdir()) == []


def test_interesting_round_writes_atlas(tmp_path, periodic_engine):
    explorer = Explorer(periodic_engine, ParameterVector.from_list([3, 0, 1, 2]), config(tmp_path))
    result = explorer.evaluate()
    assert result.judgement is Judgement.UNKNOWN
    assert result.classification.bursts == 4
    assert result.score == 1009.0
    assert result.histogram.density(3) == 1.0
    assert result.artifact == tmp_path / "d3" / "SCORE 01009.00 PARAMS 3-0-1-2.gif"
    assert result.artifact.exists()
    assert result.to_dict()["artifact"] == str(result.artifact)


def test_plot_written_next_to_atlas(tmp_path, periodic_engine):
    explorer = Explorer(periodic_engine, ParameterVector.from_list([3, 0, 1, 2]), config(tmp_path, plot=True))
    result = explorer.evaluate()
    assert result.artifact.with_suffix(".png").exists()


def test_min_score_skips_atlas(tmp_path, periodic_engine):
    explorer = Explorer(periodic_engine, ParameterVector.from_list([3, 0, 1, 2]), config(tmp_path, min_score=2000))
    result = explorer.evaluate()
    assert result.score == 1009.0
    assert result.artifact is None
    assert not (tmp_path / "d3").exists()


def test_write_failure_does_not_stop_the_search(tmp_path, periodic_engine):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    explorer = Explorer(periodic_engine, ParameterVector.from_list([3, 0, 1, 2]), config(blocker))
    results = explorer.run(rounds=2)
    assert len(results) == 2
    assert all(r.error for r in results)
    assert all(r.artifact is None for r in results)


def test_run_walks_the_odometer(tmp_path, dead_engine):
    parameters = ParameterVector.from_list([2, 0, 0])
    explorer = Explorer(dead_engine, parameters, config(tmp_path))
    seen = []
    results = explorer.run(rounds=3, callback=lambda n, r: seen.append((n, r.parameters[:3])))
    assert [r.parameters[:3] for r in results] == [[2, 0, 0], [2, 0, 1], [2, 1, 0]]
    assert seen == [(1, [2, 0, 0]), (2, [2, 0, 1]), (3, [2, 1, 0])]
    assert parameters.values[:3] == [2, 1, 1]
    assert explorer.rounds == 3
    assert explorer.best is None


def test_run_backward(tmp_path, dead_engine):
    parameters = ParameterVector.from_list([2, 1, 0])
    Explorer(dead_engine, parameters, config(tmp_path, direction=-1)).run(rounds=3)
    assert parameters.values[:3] == [2, -1, 1]


def test_best_tracks_highest_score(tmp_path, periodic_engine):
    explorer = Explorer(periodic_engine, ParameterVector.from_list([3, 0, 1, 2]), config(tmp_path))
    explorer.run(rounds=2)
    assert explorer.best is not None
    assert explorer.best.score == 1009.0


class InterruptingEngine(ScriptedEngine):
    def __init__(self, limit):
        super().__init__([np.zeros((4, 4), dtype=np.uint16)])
        self.limit = limit

    def advance(self, parameters, num_generations, reset=False):
        if len(self.calls) >= self.limit:
            raise KeyboardInterrupt
        return super().advance(parameters, num_generations, reset)


def test_interrupt_stops_between_rounds(tmp_path):
    parameters = ParameterVector.from_list([2, 0, 0])
    explorer = Explorer(InterruptingEngine(limit=3), parameters, config(tmp_path))
    results = explorer.run()
    assert len(results) == 1
    assert parameters.values[:3] == [2, 0, 1]


def test_injected_rng_is_used(tmp_path):
    rng = np.random.default_rng(5)
    explorer = Explorer(CyclingEngine(period_three_frames()), ParameterVector(), config(tmp_path), rng=rng)
    assert explorer.rng is rng
    assert explorer.bucket() == "d1"


def test_plain_list_is_validated_and_padded(tmp_path, dead_engine):
    explorer = Explorer(dead_engine, [2, 1], config(tmp_path))
    assert isinstance(explorer.parameters, ParameterVector)
    assert len(explorer.parameters) == 128
    assert explorer.evaluate().parameters[:3] == [2, 1, 0]


def test_bad_vector_rejected_before_the_engine_runs(tmp_path, dead_engine):
    with pytest.raises(ParameterError):
        Explorer(dead_engine, [0, 1], config(tmp_path))
    with pytest.raises(ParameterError):
        Explorer(dead_engine, ParameterVector([128, 1]), config(tmp_path))
    assert dead_engine.calls == []
