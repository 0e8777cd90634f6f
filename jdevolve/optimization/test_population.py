# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import pytest
import numpy as np
from jdevolve.common import errors
from jdevolve.common import testing
from jdevolve.parametrization.bounds import Bounds
from .population import Individual, Population


def _parameters(popsize: int) -> tuple:  # type: ignore
    return np.full(popsize, 0.5), np.full(popsize, 0.9)


def test_initialize() -> None:
    bounds = Bounds([-5.0, 0.0], [5.0, 1.0])
    pop = Population.initialize(bounds, 12, np.random.RandomState(12), _parameters(12))
    assert len(pop) == 12
    assert pop.dimension == 2
    testing.assert_within_bounds(pop.xs, bounds.lower, bounds.upper)
    assert np.all(np.isinf(pop.losses))
    assert pop.best_index == 0
    assert all(ind.F == 0.5 and ind.CR == 0.9 for ind in pop)


def test_from_vectors() -> None:
    bounds = Bounds([-1.0, -1.0], [1.0, 1.0], method="clipping")
    vectors = [[0.5, 0.5], [2.0, 0.0], [0.1, 0.2, 0.3]]
    with pytest.warns(errors.DimensionMismatchWarning):
        pop = Population.from_vectors(vectors, bounds, np.random.RandomState(0), _parameters(5))
    assert len(pop) == 5
    np.testing.assert_array_equal(pop[0].x, [0.5, 0.5])
    np.testing.assert_array_equal(pop[1].x, [1.0, 0.0])  # repaired
    testing.assert_within_bounds(pop.xs, bounds.lower, bounds.upper)
    with pytest.raises(errors.ConfigurationError):
        Population.from_vectors(np.zeros((6, 2)), bounds, np.random.RandomState(0), _parameters(5))


def test_from_vectors_non_finite() -> None:
    bounds = Bounds([-1.0, -1.0], [1.0, 1.0])
    vectors = [[np.nan, 0.0], [0.0, np.inf], [0.5, -0.5]]
    with pytest.warns(errors.JdevolveRuntimeWarning, match="non-finite"):
        pop = Population.from_vectors(vectors, bounds, np.random.RandomState(0), _parameters(4))
    assert len(pop) == 4
    assert np.all(np.isfinite(pop.xs))
    testing.assert_within_bounds(pop.xs, bounds.lower, bounds.upper)
    np.testing.assert_array_equal(pop[2].x, [0.5, -0.5])


def test_empty_population() -> None:
    with pytest.raises(errors.ConfigurationError):
        Population([])


def test_replace_is_greedy_and_non_strict() -> None:
    pop = Population([Individual([0.0], loss=2.0), Individual([1.0], loss=1.0)])
    assert not pop.replace(0, Individual([5.0], loss=3.0, F=0.2))
    np.testing.assert_array_equal(pop[0].x, [0.0])
    assert pop.replace(0, Individual([4.0], loss=2.0, F=0.2, CR=0.1))  # tie favors the trial
    np.testing.assert_array_equal(pop[0].x, [4.0])
    np.testing.assert_array_equal(pop[0].velocity, [4.0])
    assert (pop[0].F, pop[0].CR) == (0.2, 0.1)
    assert pop.best_index == 1
    assert pop.replace(0, Individual([3.0], loss=0.5))
    assert pop.best_index == 0
    np.testing.assert_array_equal(pop[0].velocity, [-1.0])
    assert pop.best().loss == 0.5


@pytest.mark.parametrize("loss", [float("nan"), float("inf")])  # type: ignore
def test_replace_rejects_non_finite(loss: float) -> None:
    pop = Population([Individual([0.0]), Individual([1.0], loss=1.0)])
    assert not pop.replace(0, Individual([2.0], loss=loss))


def test_best_tie_is_first_found() -> None:
    pop = Population([Individual([0.0], loss=2.0), Individual([1.0], loss=1.0), Individual([2.0], loss=3.0)])
    assert pop.replace(2, Individual([3.0], loss=1.0))
    assert pop.best_index == 1
    assert pop.replace(0, Individual([4.0], loss=1.0))
    assert pop.best_index == 0


def test_best_cache_matches_linear_scan() -> None:
    rng = np.random.RandomState(12)
    pop = Population([Individual(rng.normal(size=3), loss=rng.uniform(0, 10)) for _ in range(8)])
    for _ in range(500):
        index = rng.randint(8)
        loss = float(rng.choice([rng.uniform(0, 10), pop[rng.randint(8)].loss]))
        previous = pop[index].loss
        pop.replace(index, Individual(rng.normal(size=3), loss=loss))
        assert pop[index].loss <= previous
        assert pop.best_index == int(np.argmin(pop.losses))


def test_set_loss_and_snapshot() -> None:
    pop = Population([Individual([0.0, 1.0], loss=2.0), Individual([1.0, 1.0], loss=1.0)])
    xs, best = pop.snapshot()
    pop.set_loss(1, float("nan"))
    assert pop[1].loss == float("inf")
    assert pop.best_index == 0
    pop.replace(0, Individual([9.0, 9.0], loss=0.0))
    np.testing.assert_array_equal(xs, [[0.0, 1.0], [1.0, 1.0]])  # snapshot is frozen
    np.testing.assert_array_equal(best, [1.0, 1.0])


def test_reinitialize_keeps_best() -> None:
    bounds = Bounds([-5.0, -5.0], [5.0, 5.0])
    rng = np.random.RandomState(12)
    pop = Population.initialize(bounds, 6, rng, _parameters(6))
    for k in range(6):
        pop.set_loss(k, float(k + 1))
    pop.set_loss(3, 0.0)
    kept = pop.best().x.copy()
    indices = pop.reinitialize(bounds, rng, (np.full(6, 0.2), np.full(6, 0.3)), keep=pop.best_index)
    assert indices == [0, 1, 2, 4, 5]
    assert pop.best_index == 3
    np.testing.assert_array_equal(pop[3].x, kept)
    assert pop[3].F == 0.5 and pop[0].F == 0.2
    assert np.all(np.isinf(pop.losses[indices]))
    testing.assert_within_bounds(pop.xs, bounds.lower, bounds.upper)
