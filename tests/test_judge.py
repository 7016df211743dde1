import numpy as np
import pytest

from conftest import ScriptedEngine, density_view
from lattice_explorer.judge import DEAD_THRESHOLD, Judge, Judgement, classify, population_density


def judge_of(densities):
    judge = Judge(densities[0])
    for d in densities[1:]:
        judge.push_snapshot(d)
    return judge.judgement()


@pytest.mark.parametrize("densities,expected", [
    ([0.1, 0.0000001], Judgement.DEAD),
    ([0.1, 0.2, 0.3, 0.4, 0.5], Judgement.CHAOTIC),
    ([0.1, 0.1, 0.1, 0.1, 0.1], Judgement.UNKNOWN),
    ([0.1, 0.3, 0.2], Judgement.CHAOTIC),
    ([0.1, 0.2, 0.05, 0.3], Judgement.UNKNOWN),
    ([0.1, 0.05], Judgement.UNKNOWN),
    ([0.0, 0.0], Judgement.DEAD),
])
def test_judgement(densities, expected):
    assert judge_of(densities) is expected


def test_single_snapshot_is_unknown():
    assert judge_of([0.0]) is Judgement.UNKNOWN


def test_dead_threshold_is_strict():
    assert judge_of([0.1, DEAD_THRESHOLD]) is Judgement.UNKNOWN


def test_only_unknown_is_interesting():
    assert Judgement.UNKNOWN.is_interesting()
    assert not Judgement.DEAD.is_interesting()
    assert not Judgement.CHAOTIC.is_interesting()
    assert Judgement.UNKNOWN.is_unknown()
    assert not Judgement.DEAD.is_unknown()


def test_population_density():
    assert population_density(np.array([[0, 1], [2, 0]])) == 0.5
    assert population_density(np.zeros((3, 3))) == 0.0


def test_empty_lattice_is_dead_after_one_burst(dead_engine):
    result = classify(dead_engine, [1, 0, 0])
    assert result.judgement is Judgement.DEAD
    assert result.bursts == 1
    assert result.densities == [0.0, 0.0]
    assert dead_engine.calls == [([1, 0, 0], 0, True), ([1, 0, 0], 20, False)]


def test_growth_is_chaotic():
    engine = ScriptedEngine([density_view(d) for d in (0.1, 0.2, 0.3, 0.4, 0.5)])
    result = classify(engine, [1, 0])
    assert result.judgement is Judgement.CHAOTIC
    assert result.bursts == 1


def test_steady_density_exhausts_budget():
    engine = ScriptedEngine([density_view(0.1)])
    result = classify(engine, [1, 0])
    assert result.judgement is Judgement.UNKNOWN
    assert result.bursts == 4
    assert len(result.densities) == 5
    assert len(engine.calls) == 5
    assert all(not reset for _, _, reset in engine.calls[1:])


def test_budget_and_burst_length_are_respected():
    engine = ScriptedEngine([density_view(0.3), density_view(0.2)])
    result = classify(engine, [1, 0], bursts=2, burst_length=7)
    assert result.bursts == 2
    assert [n for _, n, _ in engine.calls] == [0, 7, 7]


def test_dies_after_a_while():
    engine = ScriptedEngine([density_view(d) for d in (0.5, 0.4, 0.2, 0.0)])
    result = classify(engine, [1, 0])
    assert result.judgement is Judgement.DEAD
    assert result.bursts == 3
    assert result.to_dict()["judgement"] == "dead"
