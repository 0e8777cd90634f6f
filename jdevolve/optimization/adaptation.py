# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Self-adaptation of the control parameters F (scale factor) and CR (crossover probability).

A controller provides the initial parameters of the population, then proposes for each
individual and each generation the (F, CR) pair used to breed its trial. Proposed values
ride along with the trial, so they only survive if the trial survives selection.
"""

import numpy as np
import jdevolve.common.typing as tp
from jdevolve.common import errors
from .population import Individual


# jDE constants (Brest et al., 2006)
F_LOWER = 0.1
F_UPPER = 1.0
TAU1 = 0.1
TAU2 = 0.1


class Adaptation:
    """Base class for control parameter controllers

    Parameters
    ----------
    f_lower: float
        lower bound of the scale factor prior
    f_upper: float
        upper bound of the scale factor prior (F_max)
    """

    name = ""

    def __init__(self, f_lower: float = F_LOWER, f_upper: float = F_UPPER) -> None:
        if f_upper <= 0:
            raise errors.ConfigurationError(f"F_max must be strictly positive (got {f_upper})")
        if not 0 < f_lower <= f_upper:
            raise errors.ConfigurationError(f"F range must satisfy 0 < f_lower <= f_upper (got [{f_lower}, {f_upper}])")
        self.f_lower = float(f_lower)
        self.f_upper = float(f_upper)

    def sample_F(self, rng: np.random.RandomState, size: tp.Optional[int] = None) -> tp.Any:
        return self.f_lower + (self.f_upper - self.f_lower) * rng.uniform(0, 1, size=size)

    @staticmethod
    def sample_CR(rng: np.random.RandomState, size: tp.Optional[int] = None) -> tp.Any:
        return rng.uniform(0, 1, size=size)

    def initial(self, popsize: int, rng: np.random.RandomState) -> tp.Tuple[np.ndarray, np.ndarray]:
        """Control parameters of a newly sampled population"""
        return self.sample_F(rng, popsize), self.sample_CR(rng, popsize)

    def start_generation(self, rng: np.random.RandomState) -> None:
        """Called once at the beginning of each generation"""

    def propose(self, individual: Individual, rng: np.random.RandomState) -> tp.Tuple[float, float]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(F in [{self.f_lower}, {self.f_upper}])"


class IndependentAdaptation(Adaptation):
    """jDE: each individual resamples its F with probability tau1 and,
    independently, its CR with probability tau2. Otherwise it keeps its current values.

    Parameters
    ----------
    tau1: float
        probability of resampling F
    tau2: float
        probability of resampling CR
    """

    name = "independent"

    def __init__(
        self, tau1: float = TAU1, tau2: float = TAU2, f_lower: float = F_LOWER, f_upper: float = F_UPPER
    ) -> None:
        super().__init__(f_lower=f_lower, f_upper=f_upper)
        for name, tau in [("tau1", tau1), ("tau2", tau2)]:
            if not 0 <= tau <= 1:
                raise errors.ConfigurationError(f"{name} must be a probability (got {tau})")
        self.tau1 = float(tau1)
        self.tau2 = float(tau2)

    def propose(self, individual: Individual, rng: np.random.RandomState) -> tp.Tuple[float, float]:
        F = float(self.sample_F(rng)) if rng.uniform(0, 1) < self.tau1 else individual.F
        CR = float(self.sample_CR(rng)) if rng.uniform(0, 1) < self.tau2 else individual.CR
        return F, CR


class PopulationAdaptation(Adaptation):
    """Population-level adaptation: a single (F, CR) pair is drawn from the priors
    at the beginning of each generation, and shared by all individuals.
    """

    name = "population-level"

    def __init__(self, f_lower: float = F_LOWER, f_upper: float = F_UPPER) -> None:
        super().__init__(f_lower=f_lower, f_upper=f_upper)
        self._current: tp.Optional[tp.Tuple[float, float]] = None

    def initial(self, popsize: int, rng: np.random.RandomState) -> tp.Tuple[np.ndarray, np.ndarray]:
        F, CR = float(self.sample_F(rng)), float(self.sample_CR(rng))
        return np.full(popsize, F), np.full(popsize, CR)

    def start_generation(self, rng: np.random.RandomState) -> None:
        self._current = (float(self.sample_F(rng)), float(self.sample_CR(rng)))

    def propose(self, individual: Individual, rng: np.random.RandomState) -> tp.Tuple[float, float]:
        if self._current is None:
            raise errors.JdevolveRuntimeError("start_generation must be called before proposing parameters")
        return self._current


class ConstantAdaptation(Adaptation):
    """No self-adaptation: all individuals share the same constant (F, CR) pair

    Parameters
    ----------
    F: float
        scale factor, in (0, f_upper]
    CR: float
        crossover probability, in [0, 1]
    """

    name = "constant"

    def __init__(self, F: float = 0.8, CR: float = 0.9, f_upper: float = F_UPPER) -> None:
        super().__init__(f_lower=min(F_LOWER, f_upper), f_upper=f_upper)
        if not 0 < F <= f_upper:
            raise errors.ConfigurationError(f"F must be in (0, {f_upper}] (got {F})")
        if not 0 <= CR <= 1:
            raise errors.ConfigurationError(f"CR must be in [0, 1] (got {CR})")
        self.F = float(F)
        self.CR = float(CR)

    def initial(self, popsize: int, rng: np.random.RandomState) -> tp.Tuple[np.ndarray, np.ndarray]:
        return np.full(popsize, self.F), np.full(popsize, self.CR)

    def propose(self, individual: Individual, rng: np.random.RandomState) -> tp.Tuple[float, float]:
        return self.F, self.CR

    def __repr__(self) -> str:
        return f"ConstantAdaptation(F={self.F}, CR={self.CR})"


ADAPTATIONS: tp.Dict[tp.Union[str, int], tp.Type[Adaptation]] = {
    "independent": IndependentAdaptation,
    "population-level": PopulationAdaptation,
    "population": PopulationAdaptation,
    "constant": ConstantAdaptation,
    1: IndependentAdaptation,  # historical identifiers
    2: PopulationAdaptation,
}


def get_adaptation(key: tp.Union[str, int], **kwargs: tp.Any) -> Adaptation:
    """Instantiates the controller for an adaptation mode ("independent", "population-level", "constant")

    Parameters
    ----------
    key: str or int
        the adaptation mode
    **kwargs:
        constructor arguments of the controller
    """
    if isinstance(key, bool) or key not in ADAPTATIONS:
        raise errors.ConfigurationError(
            f"Unknown adaptation {key!r}, choose among {[k for k in ADAPTATIONS if isinstance(k, str)]}"
        )
    return ADAPTATIONS[key](**kwargs)
