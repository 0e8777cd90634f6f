# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import warnings
import numpy as np
import jdevolve.common.typing as tp
from jdevolve.common import errors
from jdevolve.parametrization.bounds import Bounds


ControlParameters = tp.Tuple[np.ndarray, np.ndarray]


def _finite_or_inf(loss: float) -> float:
    loss = float(loss)
    return loss if not np.isnan(loss) else float("inf")


class Individual:
    """Candidate solution of the population

    Parameters
    ----------
    x: np.ndarray
        decision vector
    loss: float
        objective value (lower is better), infinite if unknown or rejected
    F: float
        scale factor used to breed the trial of this individual
    CR: float
        crossover probability used to breed the trial of this individual
    velocity: np.ndarray
        last accepted step (difference between the new and previous decision vectors)

    Note
    ----
    F and CR ride along with the chromosome: a trial carries the control parameters which
    produced it, and they are kept only if the trial survives selection.
    """

    def __init__(
        self,
        x: tp.ArrayLike,
        loss: float = float("inf"),
        F: float = 0.5,
        CR: float = 0.9,
        velocity: tp.Optional[np.ndarray] = None,
    ) -> None:
        self.x = np.array(x, dtype=float, copy=True)
        self.loss = _finite_or_inf(loss)
        self.F = float(F)
        self.CR = float(CR)
        self.velocity = np.zeros_like(self.x) if velocity is None else np.array(velocity, dtype=float)

    def __repr__(self) -> str:
        return f"Individual(loss={self.loss}, F={self.F:.3f}, CR={self.CR:.3f}, x={self.x})"


class Population:
    """Ordered collection of individuals of fixed size, with a cached reference to
    the best one (minimum loss, first found in case of ties).

    Parameters
    ----------
    individuals: list of Individual
        the initial individuals, which must all share the same dimension
    """

    def __init__(self, individuals: tp.Sequence[Individual]) -> None:
        if not individuals:
            raise errors.ConfigurationError("A population requires at least one individual")
        dims = {ind.x.shape for ind in individuals}
        if len(dims) != 1:
            raise errors.JdevolveValueError(f"All individuals must have the same shape, got {dims}")
        self._individuals = list(individuals)
        self._best_index = 0
        self._update_best()

    @classmethod
    def initialize(
        cls, bounds: Bounds, popsize: int, rng: np.random.RandomState, parameters: ControlParameters
    ) -> "Population":
        """Samples popsize individuals uniformly within the bounds.
        Losses are unknown (infinite) until evaluated.
        """
        return cls.from_vectors(bounds.sample(rng, popsize), bounds, rng, parameters)

    @classmethod
    def from_vectors(
        cls,
        vectors: tp.Union[np.ndarray, tp.Sequence[tp.ArrayLike]],
        bounds: Bounds,
        rng: np.random.RandomState,
        parameters: ControlParameters,
    ) -> "Population":
        """Creates a population from externally provided decision vectors.
        Out-of-bounds vectors are repaired, vectors with a wrong dimension are replaced by
        uniform samples, and missing individuals (fewer vectors than control parameters)
        are sampled uniformly as well.
        """
        F, CR = parameters
        popsize = len(F)
        vectors = list(vectors)
        if len(vectors) > popsize:
            raise errors.ConfigurationError(f"Got {len(vectors)} initial vectors for a population of size {popsize}")
        xs: tp.List[np.ndarray] = []
        for k, vector in enumerate(vectors):
            if not bounds.matches(vector):
                warnings.warn(
                    f"Initial vector #{k} has shape {np.asarray(vector).shape} instead of ({bounds.dimension},), "
                    "it is replaced by a uniform sample",
                    errors.DimensionMismatchWarning,
                )
                xs.append(bounds.sample(rng, 1)[0])
            elif not np.all(np.isfinite(np.asarray(vector, dtype=float))):
                warnings.warn(
                    f"Initial vector #{k} has non-finite coordinates {vector}, it is replaced by a uniform sample",
                    errors.JdevolveRuntimeWarning,
                )
                xs.append(bounds.sample(rng, 1)[0])
            else:
                xs.append(bounds.repair(vector))
        if len(xs) < popsize:
            xs.extend(bounds.sample(rng, popsize - len(xs)))
        return cls([Individual(x, F=f, CR=cr) for x, f, cr in zip(xs, F, CR)])

    def __len__(self) -> int:
        return len(self._individuals)

    def __getitem__(self, index: int) -> Individual:
        return self._individuals[index]

    def __iter__(self) -> tp.Iterator[Individual]:
        return iter(self._individuals)

    @property
    def dimension(self) -> int:
        return self._individuals[0].x.size

    @property
    def xs(self) -> np.ndarray:
        """np.ndarray: (NP, D) array of the decision vectors (copy)"""
        return np.array([ind.x for ind in self._individuals])

    @property
    def losses(self) -> np.ndarray:
        """np.ndarray: array of the losses (copy)"""
        return np.array([ind.loss for ind in self._individuals])

    @property
    def best_index(self) -> int:
        return self._best_index

    def best(self) -> Individual:
        """Returns the current best individual (cached)"""
        return self._individuals[self._best_index]

    def _update_best(self) -> None:
        self._best_index = int(np.argmin(self.losses))

    def snapshot(self) -> tp.Tuple[np.ndarray, np.ndarray]:
        """Frozen copy of the decision vectors and of the best vector,
        used as mutation base for a full generation
        """
        return self.xs, np.array(self.best().x, copy=True)

    def set_loss(self, index: int, loss: float) -> None:
        """Sets the loss of an individual without selection (evaluation or re-evaluation)"""
        self._individuals[index].loss = _finite_or_inf(loss)
        self._update_best()

    def replace(self, index: int, trial: Individual) -> bool:
        """Greedy selection: the trial replaces the individual at the given index iff its loss
        is lower or equal (ties favor the trial, which lets the control parameters drift on plateaus).
        Trials with non-finite losses are always rejected.

        Returns
        -------
        bool
            whether the trial was accepted
        """
        current = self._individuals[index]
        if not np.isfinite(trial.loss) or trial.loss > current.loss:
            return False
        velocity = trial.x - current.x
        self._individuals[index] = Individual(trial.x, loss=trial.loss, F=trial.F, CR=trial.CR, velocity=velocity)
        best = self._individuals[self._best_index]
        if trial.loss < best.loss or (trial.loss == best.loss and index < self._best_index):
            self._best_index = index
        return True

    def reinitialize(
        self, bounds: Bounds, rng: np.random.RandomState, parameters: ControlParameters, keep: int
    ) -> tp.List[int]:
        """Resamples uniformly all individuals except the one at index keep
        (used for restarts). Control parameters are provided for the whole population,
        the value at index keep being ignored.

        Returns
        -------
        list
            the indices of the resampled individuals, whose losses are now unknown
        """
        F, CR = parameters
        indices = [k for k in range(len(self)) if k != keep]
        xs = bounds.sample(rng, len(indices))
        for k, x in zip(indices, xs):
            self._individuals[k] = Individual(x, F=F[k], CR=CR[k])
        self._update_best()
        return indices

    def __repr__(self) -> str:
        return f"Population(size={len(self)}, dimension={self.dimension}, best_loss={self.best().loss})"
