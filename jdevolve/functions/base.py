# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import jdevolve.common.typing as tp


class Objective:
    """Wraps a function to minimize, taking a 1d array as input and returning a float.

    Parameters
    ----------
    function: callable
        the callable to minimize
    name: str
        optional name for representation (defaults to the function name)

    Note
    ----
    Objectives are only evaluated on vectors within the bounds, but the function may still
    reject some of them (nonlinear constraints etc.) by raising :code:`errors.EvaluationError`
    or returning NaN. The evolution then considers the candidate as infinitely bad.
    """

    stochastic = False

    def __init__(self, function: tp.Callable[[np.ndarray], float], name: tp.Optional[str] = None) -> None:
        assert callable(function)
        self.function = function
        self.name = name if name is not None else getattr(function, "__name__", function.__class__.__name__)

    def evaluate(self, x: np.ndarray) -> float:
        return self.function(x)  # type: ignore

    def __call__(self, x: np.ndarray) -> float:
        return self.evaluate(x)

    def reseed(self, seed: int) -> None:
        """Changes the seed of stochastic objectives (no-op if deterministic)"""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name})"


class StochasticObjective(Objective):
    """Objective whose value depends on a random state, which is provided to the function
    as second argument: :code:`function(x, random_state)`.

    The evolution reseeds such objectives once per generation and re-evaluates its population,
    so that a lucky draw is not kept forever as a stale fitness.

    Parameters
    ----------
    function: callable
        the callable to minimize, with signature :code:`function(x, random_state) -> float`
    seed: int or None
        initial seed of the random state
    """

    stochastic = True

    def __init__(
        self,
        function: tp.Callable[[np.ndarray, np.random.RandomState], float],
        seed: tp.Optional[int] = None,
        name: tp.Optional[str] = None,
    ) -> None:
        super().__init__(function, name=name)  # type: ignore
        self.seed = seed
        self.random_state = np.random.RandomState(seed)

    def evaluate(self, x: np.ndarray) -> float:
        return self.function(x, self.random_state)  # type: ignore

    def reseed(self, seed: int) -> None:
        self.seed = seed
        self.random_state = np.random.RandomState(seed)


def as_objective(function: tp.Union[Objective, tp.Callable[[np.ndarray], float]]) -> Objective:
    """Wraps plain callables into an Objective"""
    if isinstance(function, Objective):
        return function
    return Objective(function)
