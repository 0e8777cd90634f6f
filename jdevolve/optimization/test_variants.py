# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import pytest
import numpy as np
import jdevolve.common.typing as tp
from jdevolve.common import errors
from jdevolve.common import testing
from jdevolve.parametrization.bounds import Bounds
from . import variants


@testing.parametrized(
    by_id=(7, "rand/1/bin"),
    by_numpy_id=(np.int64(2), "rand/1/exp"),
    by_name=("best/2/exp", "best/2/exp"),
    hybrid=(3, "current-to-best/1/exp"),
    last=(18, "rand-to-best-and-current/2/bin"),
)
def test_get_variant(key: tp.Any, name: str) -> None:
    variant = variants.get_variant(key)
    assert variant.name == name
    assert variants.get_variant(variant) is variant


@pytest.mark.parametrize("key", [0, 19, "rand/1", "rand/4/bin", True, 2.0])  # type: ignore
def test_get_variant_unknown(key: tp.Any) -> None:
    with pytest.raises(errors.ConfigurationError):
        variants.get_variant(key)


@testing.parametrized(
    best2=("best/2/bin", 5),
    rand2=("rand/2/exp", 5),
    rand1=("rand/1/bin", 3),
    best1=("best/1/exp", 3),
    rand3=("rand/3/bin", 7),
)
def test_min_popsize(name: str, min_popsize: int) -> None:
    variant = variants.get_variant(name)
    variant.check_popsize(min_popsize)
    with pytest.raises(errors.ConfigurationError):
        variant.check_popsize(min_popsize - 1)


def test_draw_indices() -> None:
    rng = np.random.RandomState(12)
    variant = variants.get_variant("rand/2/bin")
    for target in range(10):
        indices = variant.draw_indices(target, 10, rng)
        assert len(set(indices.tolist())) == 5
        assert target not in indices
    # at the minimum population size, the target can be used as base vector
    indices = variant.draw_indices(0, 5, rng)
    assert sorted(indices.tolist()) == [0, 1, 2, 3, 4]


def test_rand_1_mutation() -> None:
    xs = np.arange(12, dtype=float).reshape(6, 2) ** 2
    best = np.array([100.0, 100.0])
    variant = variants.get_variant("rand/1/bin")
    mutant = variant.mutate(1, xs, best, 0.5, np.random.RandomState(3))
    r = np.random.RandomState(3).choice([0, 2, 3, 4, 5], size=3, replace=False)
    np.testing.assert_array_almost_equal(mutant, xs[r[0]] + 0.5 * (xs[r[1]] - xs[r[2]]))


def test_current_to_best_mutation() -> None:
    xs = np.arange(12, dtype=float).reshape(6, 2) ** 2
    best = np.array([100.0, 100.0])
    variant = variants.get_variant("current-to-best/1/exp")
    mutant = variant.mutate(2, xs, best, 0.7, np.random.RandomState(3))
    r = np.random.RandomState(3).choice([0, 1, 3, 4, 5], size=2, replace=False)
    expected = xs[2] + 0.7 * (best - xs[2]) + 0.7 * (xs[r[0]] - xs[r[1]])
    np.testing.assert_array_almost_equal(mutant, expected)


def test_best_mutation_with_null_differences() -> None:
    xs = np.ones((6, 3))
    best = np.array([1.0, 2.0, 3.0])
    for name in ["best/1/bin", "best/2/bin", "best/3/bin"]:
        mutant = variants.get_variant(name).mutate(0, np.vstack([xs, xs]), best, 0.9, np.random.RandomState(0))
        np.testing.assert_array_equal(mutant, best)


@testing.parametrized(
    bin_null=("bin", 0.0, 1),
    exp_null=("exp", 0.0, 1),
    bin_full=("bin", 1.0, 8),
    exp_full=("exp", 1.0, 8),
)
def test_crossover_extremes(crossover: str, CR: float, num_from_donor: int) -> None:
    rng = np.random.RandomState(12)
    for _ in range(20):
        donor, individual = np.ones(8), np.zeros(8)
        variants.Crossover(rng, crossover, CR).apply(donor, individual)
        assert int(donor.sum()) == num_from_donor


def test_exponential_crossover_is_contiguous() -> None:
    rng = np.random.RandomState(24)
    for _ in range(50):
        donor, individual = np.ones(10), np.zeros(10)
        variants.Crossover(rng, "exp", 0.7).apply(donor, individual)
        # a contiguous run on a circle has at most one rising edge
        rising = np.sum((np.roll(donor, 1) == 0) & (donor == 1))
        assert rising <= 1
        assert donor.sum() >= 1


def test_crossover_keeps_integer_part() -> None:
    rng = np.random.RandomState(1)
    for crossover in ["bin", "exp"]:
        donor, individual = np.ones(5), np.zeros(5)
        variants.Crossover(rng, crossover, 1.0, continuous_dimension=3).apply(donor, individual)
        np.testing.assert_array_equal(donor, [1, 1, 1, 0, 0])


def test_unknown_crossover() -> None:
    with pytest.raises(ValueError):
        variants.Crossover(np.random.RandomState(0), "twopoints", 0.5)


@pytest.mark.parametrize("seed", range(5))  # type: ignore
def test_trial_within_bounds(seed: int) -> None:
    rng = np.random.RandomState(seed)
    dimension = rng.randint(1, 6)
    lower = rng.uniform(-10, 0, size=dimension)
    upper = lower + rng.uniform(0.1, 10, size=dimension)
    bounds = Bounds(lower, upper, method="clipping" if seed % 2 else "bouncing")
    xs = bounds.sample(rng, 8)
    for variant in variants.VARIANTS.values():
        for target in range(8):
            trial = variant.trial(target, xs, xs[0], 2.0, rng.uniform(), bounds, rng)
            testing.assert_within_bounds(trial, bounds.lower, bounds.upper, err_msg=variant.name)


def test_trial_differs_from_target() -> None:
    rng = np.random.RandomState(12)
    bounds = Bounds([-5.0] * 4, [5.0] * 4)
    xs = bounds.sample(rng, 10)
    variant = variants.get_variant("rand/1/bin")
    for target in range(10):
        trial = variant.trial(target, xs, xs[0], 0.5, 0.0, bounds, rng)
        assert np.sum(trial != xs[target]) >= 1
