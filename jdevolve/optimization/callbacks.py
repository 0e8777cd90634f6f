# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Callbacks to register on a run with :code:`run.register_callback("generation", callback)`.
They are called with the run as only argument after each generation.
"""

import time
import logging
import numpy as np
import jdevolve.common.typing as tp
from jdevolve.common import errors
from . import monitor

if tp.TYPE_CHECKING:
    from .selfadaptive import SelfAdaptiveRun

global_logger = logging.getLogger(__name__)

# -------------------------------------------------------------------------------------

class GenerationLogger:
    """Logger to register as callback in a run, for logging the
    best loss and the spreads of the population regularly.

    Parameters
    ----------
    logger:
        given logger that callback will use to log
    log_level:
        log level that logger will write to
    log_interval_generations: int
        max number of generations before performing another log
    log_interval_seconds:
        max number of seconds before performing another log
    """

    def __init__(
        self,
        *,
        logger: logging.Logger = global_logger,
        log_level: int = logging.INFO,
        log_interval_generations: int = 1,
        log_interval_seconds: float = 60.0,
    ) -> None:
        assert log_interval_generations > 0
        assert log_interval_seconds > 0
        self._logger = logger
        self._log_level = log_level
        self._log_interval_generations = int(log_interval_generations)
        self._log_interval_seconds = log_interval_seconds
        self._next_generation = self._log_interval_generations
        self._next_time = time.time() + log_interval_seconds

    def __call__(self, run: "SelfAdaptiveRun") -> None:
        if time.time() >= self._next_time or run.generation >= self._next_generation:
            self._next_time = time.time() + self._log_interval_seconds
            self._next_generation = run.generation + self._log_interval_generations
            population = run.population
            assert population is not None
            self._logger.log(
                self._log_level,
                "After %s generations, best loss is %s (objective spread: %s, decision spread: %s)",
                run.generation,
                population.best().loss,
                monitor.objective_spread(population),
                monitor.decision_spread(population),
            )

# -------------------------------------------------------------------------------------

class History:
    """Records a summary of the population after each generation

    Parameters
    ----------
    keep_populations: bool
        whether to also record copies of all decision vectors and losses
        (memory intensive, mostly useful for testing and analysis)
    """

    def __init__(self, keep_populations: bool = False) -> None:
        self.keep_populations = keep_populations
        self.records: tp.List[tp.Dict[str, tp.Any]] = []

    def __call__(self, run: "SelfAdaptiveRun") -> None:
        population = run.population
        assert population is not None
        record: tp.Dict[str, tp.Any] = {
            "generation": run.generation,
            "best_loss": population.best().loss,
            "objective_spread": monitor.objective_spread(population),
            "decision_spread": monitor.decision_spread(population),
            "mean_F": float(np.mean([ind.F for ind in population])),
            "mean_CR": float(np.mean([ind.CR for ind in population])),
            "num_restarts": run.monitor.num_restarts,
        }
        if self.keep_populations:
            record["xs"] = population.xs
            record["losses"] = population.losses
        self.records.append(record)

    def __len__(self) -> int:
        return len(self.records)

    def get(self, key: str) -> tp.List[tp.Any]:
        """List of the recorded values for a key, over generations"""
        return [r[key] for r in self.records]

# -------------------------------------------------------------------------------------

class EarlyStopping:
    """Callback for stopping the evolution before the generation budget is
    fully used. The run then terminates with :code:`Termination.CANCELLED`.

    Parameters
    ----------
    stopping_criterion: func(run) -> bool
        function that takes the current run as input and returns True
        if the evolution must be stopped

    Example
    -------
    In the following code, the evolution will stop as soon as the best loss is below 12

    >>> run.register_callback("generation", EarlyStopping(lambda r: r.population.best().loss < 12))
    """

    def __init__(self, stopping_criterion: tp.Callable[["SelfAdaptiveRun"], bool]) -> None:
        self.stopping_criterion = stopping_criterion

    def __call__(self, run: "SelfAdaptiveRun") -> None:
        if self.stopping_criterion(run):
            raise errors.EarlyStopping("Early stopping criterion is reached")

    @classmethod
    def timer(cls, max_duration: float) -> "EarlyStopping":
        """Early stop when max_duration seconds has been reached (from the first generation)"""
        return cls(_DurationCriterion(max_duration))

    @classmethod
    def no_improvement_stopper(cls, tolerance_window: int) -> "EarlyStopping":
        """Early stop when the best loss didn't reduce during tolerance_window generations"""
        return cls(_StagnationCriterion(tolerance_window))


class _DurationCriterion:
    """True once max_duration seconds elapsed since its first call"""

    def __init__(self, max_duration: float) -> None:
        self._max_duration = max_duration
        self._deadline: tp.Optional[float] = None

    def __call__(self, run: "SelfAdaptiveRun") -> bool:
        now = time.time()
        if self._deadline is None:
            self._deadline = now + self._max_duration
        return now > self._deadline


class _StagnationCriterion:
    """True once the best loss did not decrease for more than tolerance_window generations"""

    def __init__(self, tolerance_window: int) -> None:
        self._tolerance_window = tolerance_window
        self._best_loss = float("nan")
        self._num_stagnant = 0

    def __call__(self, run: "SelfAdaptiveRun") -> bool:
        assert run.population is not None
        loss = run.population.best().loss
        if loss < self._best_loss or np.isnan(self._best_loss):
            self._best_loss = loss
            self._num_stagnant = 0
        else:
            self._num_stagnant += 1
        return self._num_stagnant > self._tolerance_window
