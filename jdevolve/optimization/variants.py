# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import jdevolve.common.typing as tp
from jdevolve.common import errors
from jdevolve.parametrization.bounds import Bounds


# mutation(target, picked vectors, best, F) -> mutant vector
_MutationFunc = tp.Callable[[np.ndarray, np.ndarray, np.ndarray, float], np.ndarray]


def _best_1(target: np.ndarray, r: np.ndarray, best: np.ndarray, F: float) -> np.ndarray:
    return best + F * (r[0] - r[1])  # type: ignore


def _rand_1(target: np.ndarray, r: np.ndarray, best: np.ndarray, F: float) -> np.ndarray:
    return r[0] + F * (r[1] - r[2])  # type: ignore


def _current_to_best_1(target: np.ndarray, r: np.ndarray, best: np.ndarray, F: float) -> np.ndarray:
    return target + F * (best - target) + F * (r[0] - r[1])  # type: ignore


def _best_2(target: np.ndarray, r: np.ndarray, best: np.ndarray, F: float) -> np.ndarray:
    return best + F * (r[0] - r[1]) + F * (r[2] - r[3])  # type: ignore


def _rand_2(target: np.ndarray, r: np.ndarray, best: np.ndarray, F: float) -> np.ndarray:
    return r[0] + F * (r[1] - r[2]) + F * (r[3] - r[4])  # type: ignore


def _best_3(target: np.ndarray, r: np.ndarray, best: np.ndarray, F: float) -> np.ndarray:
    return best + F * (r[0] - r[1]) + F * (r[2] - r[3]) + F * (r[4] - r[5])  # type: ignore


def _rand_3(target: np.ndarray, r: np.ndarray, best: np.ndarray, F: float) -> np.ndarray:
    return r[0] + F * (r[1] - r[2]) + F * (r[3] - r[4]) + F * (r[5] - r[6])  # type: ignore


def _rand_to_current_2(target: np.ndarray, r: np.ndarray, best: np.ndarray, F: float) -> np.ndarray:
    return r[0] + F * (r[1] - target) - F * (r[2] - r[3])  # type: ignore


def _rand_to_best_and_current_2(target: np.ndarray, r: np.ndarray, best: np.ndarray, F: float) -> np.ndarray:
    return r[0] + F * (r[1] - target) - F * (r[2] - best)  # type: ignore


# name: (function, number of random indices, minimum population size)
MUTATIONS: tp.Dict[str, tp.Tuple[_MutationFunc, int, int]] = {
    "best/1": (_best_1, 2, 3),
    "rand/1": (_rand_1, 3, 3),
    "current-to-best/1": (_current_to_best_1, 2, 3),
    "best/2": (_best_2, 4, 5),
    "rand/2": (_rand_2, 5, 5),
    "best/3": (_best_3, 6, 7),
    "rand/3": (_rand_3, 7, 7),
    "rand-to-current/2": (_rand_to_current_2, 4, 5),
    "rand-to-best-and-current/2": (_rand_to_best_and_current_2, 3, 5),
}


class Crossover:
    """Recombines a donor (mutant) vector with the individual it competes against.

    Parameters
    ----------
    random_state: np.random.RandomState
        the random state to draw from
    crossover: str
        "bin" (binomial: each coordinate is taken from the donor with probability CR, and at
        least one random coordinate always is) or "exp" (exponential: a contiguous, wrapping
        around, run of coordinates starting at a random index is taken from the donor, and
        extended while a uniform draw is below CR)
    CR: float
        crossover probability
    continuous_dimension: int or None
        only the first continuous_dimension coordinates can be taken from the donor,
        the other ones (integer part of mixed problems) always come from the individual.
        None means all coordinates.
    """

    def __init__(
        self,
        random_state: np.random.RandomState,
        crossover: str,
        CR: float,
        continuous_dimension: tp.Optional[int] = None,
    ) -> None:
        if crossover not in ("bin", "exp"):
            raise ValueError(f'Unknown crossover "{crossover}"')
        self.crossover = crossover
        self.CR = CR
        self.random_state = random_state
        self.continuous_dimension = continuous_dimension

    def apply(self, donor: np.ndarray, individual: np.ndarray) -> None:
        """Updates the donor in place"""
        dim = donor.size if self.continuous_dimension is None else self.continuous_dimension
        transfer = np.ones(donor.size, dtype=bool)  # coordinates taken from the individual
        if self.crossover == "exp":
            transfer[:dim] = self.exponential(dim)
        else:
            transfer[:dim] = self.binomial(dim)
        donor[transfer] = individual[transfer]

    def binomial(self, dim: int) -> np.ndarray:
        R = self.random_state.randint(dim)
        transfer = self.random_state.uniform(0, 1, size=dim) >= self.CR
        transfer[R] = False
        return transfer  # type: ignore

    def exponential(self, dim: int) -> np.ndarray:
        transfer = np.ones(dim, dtype=bool)
        n = self.random_state.randint(dim)
        length = 0
        while True:
            transfer[n] = False
            n = (n + 1) % dim
            length += 1
            if length >= dim or self.random_state.uniform(0, 1) >= self.CR:
                break
        return transfer


class Variant:
    """Mutation and crossover scheme of a differential evolution run

    Parameters
    ----------
    identifier: int
        historical number of the variant (see VARIANTS)
    mutation: str
        name of the mutation, among the keys of MUTATIONS
    crossover: str
        "bin" or "exp"
    """

    def __init__(self, identifier: int, mutation: str, crossover: str) -> None:
        self.identifier = identifier
        self.mutation = mutation
        self.crossover = crossover
        self._func, self.num_indices, self.min_popsize = MUTATIONS[mutation]

    @property
    def name(self) -> str:
        return f"{self.mutation}/{self.crossover}"

    def check_popsize(self, popsize: int) -> None:
        if popsize < self.min_popsize:
            raise errors.ConfigurationError(
                f"Variant {self.name} requires a population of at least {self.min_popsize} individuals "
                f"(got {popsize})"
            )

    def draw_indices(self, target_index: int, popsize: int, rng: np.random.RandomState) -> np.ndarray:
        """Draws distinct random indices, excluding the target whenever the population size allows it"""
        candidates = np.arange(popsize)
        if popsize - 1 >= self.num_indices:
            candidates = np.delete(candidates, target_index)
        return rng.choice(candidates, size=self.num_indices, replace=False)  # type: ignore

    def mutate(
        self, target_index: int, xs: np.ndarray, best: np.ndarray, F: float, rng: np.random.RandomState
    ) -> np.ndarray:
        """Creates the mutant vector of the target from a population snapshot xs (NP x D)
        and the best vector of this snapshot
        """
        indices = self.draw_indices(target_index, xs.shape[0], rng)
        return self._func(xs[target_index], xs[indices], best, F)

    def trial(
        self,
        target_index: int,
        xs: np.ndarray,
        best: np.ndarray,
        F: float,
        CR: float,
        bounds: Bounds,
        rng: np.random.RandomState,
    ) -> np.ndarray:
        """Mutation, crossover and repair: provides a bounds-valid trial vector
        competing against the target.
        """
        donor = self.mutate(target_index, xs, best, F, rng)
        Crossover(rng, self.crossover, CR, continuous_dimension=bounds.continuous_dimension).apply(
            donor, xs[target_index]
        )
        return bounds.repair(donor)

    def __repr__(self) -> str:
        return f"Variant({self.identifier}: {self.name})"


VARIANTS: tp.Dict[int, Variant] = {
    k + 1: Variant(k + 1, mutation, crossover)
    for k, (mutation, crossover) in enumerate(
        [
            ("best/1", "exp"),
            ("rand/1", "exp"),
            ("current-to-best/1", "exp"),
            ("best/2", "exp"),
            ("rand/2", "exp"),
            ("best/1", "bin"),
            ("rand/1", "bin"),
            ("current-to-best/1", "bin"),
            ("best/2", "bin"),
            ("rand/2", "bin"),
            ("rand/3", "exp"),
            ("rand/3", "bin"),
            ("best/3", "exp"),
            ("best/3", "bin"),
            ("rand-to-current/2", "exp"),
            ("rand-to-current/2", "bin"),
            ("rand-to-best-and-current/2", "exp"),
            ("rand-to-best-and-current/2", "bin"),
        ]
    )
}


def get_variant(key: tp.Union[int, str, Variant]) -> Variant:
    """Finds a variant from its identifier (1 to 18) or its name (eg: "rand/1/bin")"""
    if isinstance(key, Variant):
        return key
    if isinstance(key, str):
        for variant in VARIANTS.values():
            if variant.name == key:
                return variant
    elif isinstance(key, (int, np.integer)) and not isinstance(key, bool) and int(key) in VARIANTS:
        return VARIANTS[int(key)]
    names = ", ".join(v.name for v in VARIANTS.values())
    raise errors.ConfigurationError(f"Unknown variant {key!r}, choose an identifier in 1-18 or a name among {names}")
