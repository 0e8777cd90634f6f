# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import enum
import logging
from numbers import Real
import numpy as np
import jdevolve.common.typing as tp
from jdevolve.common import errors
from .population import Population


logger = logging.getLogger(__name__)


class Decision(enum.Enum):
    CONTINUE = "continue"
    CONVERGED = "converged"
    RESTART = "restart"


def objective_spread(population: Population) -> float:
    """max - min of the losses (infinite if some loss is unknown)"""
    losses = population.losses
    return float(np.max(losses) - np.min(losses))


def decision_spread(population: Population) -> float:
    """Largest coordinate-wise range of the decision vectors"""
    xs = population.xs
    return float(np.max(np.max(xs, axis=0) - np.min(xs, axis=0)))


def _is_integer(value: tp.Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool)


class ConvergenceMonitor:
    """Inspects the population after each generation and decides whether the evolution
    must stop (convergence) or restart (stagnation).

    Parameters
    ----------
    ftol: float
        convergence when the objective spread is strictly below ftol...
    xtol: float
        ... and the decision spread is strictly below xtol
    restart: bool
        whether stagnation triggers restarts
    stall_window: int
        number of consecutive generations where neither the best loss improves nor the
        objective spread decreases before a restart is triggered
    max_restarts: int or None
        maximum number of restarts for the run (None for unlimited)
    """

    def __init__(
        self,
        ftol: float = 1e-6,
        xtol: float = 1e-6,
        restart: bool = True,
        stall_window: int = 20,
        max_restarts: tp.Optional[int] = None,
    ) -> None:
        for name, tol in [("ftol", ftol), ("xtol", xtol)]:
            if isinstance(tol, bool) or not isinstance(tol, (Real, float)) or np.isnan(tol) or tol < 0:
                raise errors.ConfigurationError(f"{name} must be a non-negative number (got {tol!r})")
        if not isinstance(restart, (bool, np.bool_)):
            raise errors.ConfigurationError(f"restart must be a boolean (got {restart!r})")
        if not _is_integer(stall_window) or stall_window < 1:
            raise errors.ConfigurationError(f"stall_window must be a positive integer (got {stall_window!r})")
        if max_restarts is not None and (not _is_integer(max_restarts) or max_restarts < 0):
            raise errors.ConfigurationError(f"max_restarts must be a non-negative integer or None (got {max_restarts!r})")
        self.ftol = float(ftol)
        self.xtol = float(xtol)
        self.restart = bool(restart)
        self.stall_window = int(stall_window)
        self.max_restarts = max_restarts
        self.num_restarts = 0
        self.num_stalled = 0
        self._best_loss = float("inf")
        self._spread = float("inf")

    def converged(self, population: Population) -> bool:
        return objective_spread(population) < self.ftol and decision_spread(population) < self.xtol

    def _progressed(self, population: Population) -> bool:
        best_loss = population.best().loss
        spread = objective_spread(population)
        progressed = best_loss < self._best_loss or spread < self._spread
        self._best_loss = min(best_loss, self._best_loss)
        if not np.isnan(spread):
            self._spread = spread
        return progressed

    def update(self, population: Population) -> Decision:
        """Called once after each generation"""
        if self.converged(population):
            return Decision.CONVERGED
        self.num_stalled = 0 if self._progressed(population) else self.num_stalled + 1
        if not self.restart or self.num_stalled < self.stall_window:
            return Decision.CONTINUE
        if self.max_restarts is not None and self.num_restarts >= self.max_restarts:
            return Decision.CONTINUE
        self.num_restarts += 1
        self.num_stalled = 0
        self._spread = float("inf")
        logger.debug("Stagnation for %s generations, restart #%s", self.stall_window, self.num_restarts)
        return Decision.RESTART
