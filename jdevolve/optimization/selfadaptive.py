# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import enum
import logging
import warnings
from numbers import Real
import numpy as np
import jdevolve.common.typing as tp
from jdevolve.common import errors
from jdevolve.common import tools
from jdevolve.common.decorators import Registry
from jdevolve.functions.base import Objective, as_objective
from jdevolve.parametrization.bounds import Bounds
from . import utils
from .adaptation import F_UPPER, Adaptation, get_adaptation
from .monitor import ConvergenceMonitor, Decision
from .population import Individual, Population
from .variants import get_variant


logger = logging.getLogger(__name__)
registry: Registry["SelfAdaptiveDE"] = Registry()
_RunCallBack = tp.Callable[["SelfAdaptiveRun"], None]


class Termination(enum.Enum):
    BUDGET = "exhausted budget"
    CONVERGED = "converged"
    CANCELLED = "external cancellation"


class Result:
    """Final state of a run

    Attributes
    ----------
    population: Population
        the final population
    generation: int
        the number of generations performed when the run terminated
    termination: Termination
        why the run terminated
    num_evaluations: int
        number of objective evaluations (including failed ones)
    num_failed_evaluations: int
        number of evaluations which failed or provided a non-finite loss
    num_restarts: int
        number of restarts performed
    """

    def __init__(
        self,
        population: Population,
        generation: int,
        termination: Termination,
        num_evaluations: int,
        num_failed_evaluations: int,
        num_restarts: int,
    ) -> None:
        self.population = population
        self.generation = generation
        self.termination = termination
        self.num_evaluations = num_evaluations
        self.num_failed_evaluations = num_failed_evaluations
        self.num_restarts = num_restarts

    @property
    def best(self) -> Individual:
        return self.population.best()

    @property
    def x(self) -> np.ndarray:
        """np.ndarray: decision vector of the best individual"""
        return self.best.x

    @property
    def loss(self) -> float:
        """float: loss of the best individual"""
        return self.best.loss

    def __repr__(self) -> str:
        return (
            f"Result(loss={self.loss}, x={self.x}, generation={self.generation}, "
            f"termination={self.termination.value})"
        )


class SelfAdaptiveRun:  # pylint: disable=too-many-instance-attributes
    """One run of the self-adaptive differential evolution on a box.
    Use :code:`SelfAdaptiveDE(...)(bounds, seed)` to create it.

    Each generation works on a frozen snapshot of the population: all trial vectors are
    bred from the population as it was at the beginning of the generation, then evaluated,
    then compared to their parent in index order.

    Parameters
    ----------
    bounds: Bounds
        the box to optimize in
    config: SelfAdaptiveDE
        the configuration of the algorithm
    seed: int, RandomState or None
        seed of the random state. The whole trajectory only depends on it
        (for a deterministic objective).
    """

    def __init__(self, bounds: Bounds, config: "SelfAdaptiveDE", seed: tp.RandomLike = None) -> None:
        if not isinstance(bounds, Bounds):
            raise errors.JdevolveTypeError(f"bounds must be a Bounds instance, got {type(bounds)}")
        if config.popsize < bounds.continuous_dimension:
            warnings.warn(
                f"Population size {config.popsize} is lower than the number of continuous coordinates "
                f"({bounds.continuous_dimension}), differences between individuals cannot span the search space.",
                errors.InefficientSettingsWarning,
            )
        self.bounds = bounds
        self.name = config.name
        self._config = config
        self.variant = get_variant(config.variant)
        self.adaptation: Adaptation = config.make_adaptation()
        self.monitor: ConvergenceMonitor = config.make_monitor()
        self.random_state = seed if isinstance(seed, np.random.RandomState) else np.random.RandomState(seed)
        self.population: tp.Optional[Population] = None
        self.generation = 0
        self.num_evaluations = 0
        self.num_failed_evaluations = 0
        self.termination: tp.Optional[Termination] = None
        self._callbacks: tp.Dict[str, tp.List[_RunCallBack]] = {}

    @property
    def generations(self) -> int:
        """int: generation budget of the run"""
        return self._config.generations

    def register_callback(self, name: str, callback: _RunCallBack) -> None:
        """Add a callback called after each generation, with the run as argument.
        This can be useful for custom logging or early stopping.

        Parameters
        ----------
        name: str
            name of the event to register the callback for (only "generation" for now)
        callback: callable
            a callable taking the run as argument
        """
        assert name in ["generation"], f'Only "generation" can have callbacks (not {name})'
        self._callbacks.setdefault(name, []).append(callback)

    def remove_all_callbacks(self) -> None:
        """Removes all registered callables"""
        self._callbacks = {}

    # evaluations

    def _reject(self, message: str) -> float:
        self.num_failed_evaluations += 1
        warnings.warn(f"{message}, the candidate is considered infinitely bad.", errors.BadLossWarning)
        return float("inf")

    def _collect(self, job: tp.JobLike[tp.Any]) -> float:
        """Waits for an evaluation and converts its output into a loss.
        Failures are absorbed as infinite losses, so that one bad evaluation cannot abort the run.
        """
        self.num_evaluations += 1
        try:
            value = job.result()
        except (errors.EvaluationError, ArithmeticError, ValueError) as e:
            return self._reject(f"Evaluation failed with {e!r}")
        if isinstance(value, np.ndarray) and value.size == 1:
            value = value.item()
        # using "float" along "Real" because mypy does not understand "Real"
        if isinstance(value, bool) or not isinstance(value, (Real, float)):
            return self._reject(f"Objective returned a non-scalar value {value!r} (type: {type(value)})")
        loss = float(value)
        if not np.isfinite(loss):
            return self._reject(f"Objective returned {loss}")
        return loss

    def _evaluate_indices(self, objective: Objective, executor: tp.ExecutorLike, indices: tp.Iterable[int]) -> None:
        population = self.population
        assert population is not None
        jobs = [(k, executor.submit(objective.evaluate, np.array(population[k].x))) for k in indices]
        for k, job in jobs:
            population.set_loss(k, self._collect(job))

    # evolution steps

    def initialize(
        self,
        objective: tp.Union[Objective, tp.Callable[[np.ndarray], float]],
        initial_population: tp.Optional[tp.Union[np.ndarray, tp.Sequence[tp.ArrayLike]]] = None,
        executor: tp.Optional[tp.ExecutorLike] = None,
    ) -> Population:
        """Creates and evaluates the initial population, uniformly sampled within the bounds
        or seeded from the provided vectors (completed by uniform samples if need be).
        """
        if self.population is not None:
            raise errors.JdevolveRuntimeError("The run was already initialized")
        objective = as_objective(objective)
        executor = utils.SequentialExecutor() if executor is None else executor
        parameters = self.adaptation.initial(self._config.popsize, self.random_state)
        if initial_population is None:
            self.population = Population.initialize(
                self.bounds, self._config.popsize, self.random_state, parameters
            )
        else:
            self.population = Population.from_vectors(
                initial_population, self.bounds, self.random_state, parameters
            )
        self._evaluate_indices(objective, executor, range(len(self.population)))
        logger.debug("Initialized %s, best loss is %s", self.population, self.population.best().loss)
        return self.population

    def step(self, objective: Objective, executor: tp.ExecutorLike) -> None:
        """Performs one generation: breeding of all trials from the snapshot, evaluation,
        greedy selection in index order
        """
        population = self.population
        assert population is not None
        rng = self.random_state
        xs, best = population.snapshot()
        self.adaptation.start_generation(rng)
        trials: tp.List[Individual] = []
        for k, individual in enumerate(population):
            F, CR = self.adaptation.propose(individual, rng)
            x = self.variant.trial(k, xs, best, F, CR, self.bounds, rng)
            trials.append(Individual(x, F=F, CR=CR))
        jobs = [executor.submit(objective.evaluate, np.array(trial.x)) for trial in trials]
        for k, (trial, job) in enumerate(zip(trials, jobs)):
            trial.loss = self._collect(job)
            population.replace(k, trial)
        self.generation += 1

    def reseed(self, objective: Objective, executor: tp.ExecutorLike) -> None:
        """Changes the seed of a stochastic objective and re-evaluates the whole population,
        so that no stale fitness survives across generations
        """
        assert self.population is not None
        objective.reseed(int(self.random_state.randint(2 ** 31 - 1)))
        self._evaluate_indices(objective, executor, range(len(self.population)))

    def restart(self, objective: Objective, executor: tp.ExecutorLike) -> None:
        """Resamples all individuals except the best one, with fresh control parameters"""
        population = self.population
        assert population is not None
        parameters = self.adaptation.initial(len(population), self.random_state)
        indices = population.reinitialize(self.bounds, self.random_state, parameters, keep=population.best_index)
        self._evaluate_indices(objective, executor, indices)
        logger.info(
            "Restart #%s at generation %s (best loss: %s)",
            self.monitor.num_restarts,
            self.generation,
            population.best().loss,
        )

    def evolve(
        self,
        objective: tp.Union[Objective, tp.Callable[[np.ndarray], float]],
        initial_population: tp.Optional[tp.Union[np.ndarray, tp.Sequence[tp.ArrayLike]]] = None,
        executor: tp.Optional[tp.ExecutorLike] = None,
    ) -> Result:
        """Evolves the population until the generation budget is exhausted, the population
        converged, or a callback raised :code:`errors.EarlyStopping`.
        A run which already terminated is not evolved further, its result is returned again.

        Parameters
        ----------
        objective: Objective or callable
            the function to minimize, taking a decision vector as input
        initial_population: array-like or None
            initial decision vectors (uniform sampling within the bounds if not provided)
        executor: Executor
            An executor object, with method :code:`submit(callable, *args)` and returning a Future-like object
            with method :code:`result() -> float` (eg: :code:`concurrent.futures.ThreadPoolExecutor`).
            All trials of a generation are submitted at once, and selections are applied in index order
            once evaluated, so that the trajectory is the same as in sequential mode as long as
            the objective is deterministic. Stochastic objectives evaluated concurrently lose this
            reproducibility.

        Returns
        -------
        Result
            the final population, its best individual, and the termination information
        """
        objective = as_objective(objective)
        executor = utils.SequentialExecutor() if executor is None else executor
        if self.population is None:
            self.initialize(objective, initial_population=initial_population, executor=executor)
        elif initial_population is not None:
            raise errors.JdevolveRuntimeError("Cannot provide an initial population to an initialized run")
        assert self.population is not None
        if self.termination is not None:
            logger.debug("%s already terminated (%s)", self.name, self.termination.value)
            return self.result()
        termination = Termination.BUDGET
        try:
            while self.generation < self.generations:
                self.step(objective, executor)
                if objective.stochastic:
                    self.reseed(objective, executor)
                for callback in self._callbacks.get("generation", []):
                    callback(self)
                decision = self.monitor.update(self.population)
                if decision == Decision.CONVERGED:
                    termination = Termination.CONVERGED
                    break
                if decision == Decision.RESTART:
                    self.restart(objective, executor)
        except errors.EarlyStopping as e:
            logger.info("Evolution cancelled at generation %s: %s", self.generation, e)
            termination = Termination.CANCELLED
        self.termination = termination
        logger.info(
            "%s terminated after %s generations (%s), best loss: %s",
            self.name,
            self.generation,
            termination.value,
            self.population.best().loss,
        )
        return self.result()

    def result(self) -> Result:
        """Current state of the run (the final one once terminated)"""
        if self.population is None or self.termination is None:
            raise errors.JdevolveRuntimeError("The run has not terminated yet")
        return Result(
            self.population,
            generation=self.generation,
            termination=self.termination,
            num_evaluations=self.num_evaluations,
            num_failed_evaluations=self.num_failed_evaluations,
            num_restarts=self.monitor.num_restarts,
        )

    def __repr__(self) -> str:
        return f"Run of {self.name} on {self.bounds} (generation {self.generation}/{self.generations})"


# pylint: disable=too-many-arguments, too-many-instance-attributes
class SelfAdaptiveDE:
    """Self-adaptive differential evolution (jDE and variants).
    Differential evolution breeds one trial vector per individual from differences between
    random members of the population, and keeps it if it is not worse than its parent.
    In jDE, the scale factor F and crossover probability CR of each individual are
    self-adapted: they are occasionally resampled, and survive along with the trial they produced.

    All settings are checked at construction. Calling the instance with bounds
    provides a run.

    Parameters
    ----------
    generations: int
        maximum number of generations
    variant: int or str
        mutation/crossover scheme, either an identifier between 1 and 18 or a name
        such as "rand/1/bin" (see :code:`variants.VARIANTS`). Default is 2 ("rand/1/exp").
    adaptation: str
        control parameter adaptation:

        - "independent": jDE, each individual resamples F and CR with probability 0.1
        - "population-level": one (F, CR) pair is drawn at each generation for the whole population
        - "constant": no adaptation, the provided F and CR are used throughout
    ftol: float
        the run converges when the spread of the losses is below ftol...
    xtol: float
        ... and the spread of the decision vectors is below xtol
    restart: bool
        whether to restart the population (except its best individual) when it stagnates
    popsize: int
        size of the population, at least the minimum required by the variant
    stall_window: int
        number of generations without progress (neither best loss improvement nor
        objective spread decrease) triggering a restart
    max_restarts: int or None
        maximum number of restarts (None for unlimited)
    F: float
        scale factor for the "constant" adaptation
    CR: float
        crossover probability for the "constant" adaptation
    """

    def __init__(
        self,
        *,
        generations: int = 100,
        variant: tp.Union[int, str] = 2,
        adaptation: str = "independent",
        ftol: float = 1e-6,
        xtol: float = 1e-6,
        restart: bool = True,
        popsize: int = 20,
        stall_window: int = 20,
        max_restarts: tp.Optional[int] = None,
        F: float = 0.8,
        CR: float = 0.9,
    ) -> None:
        self._config = dict(locals())
        self._config.pop("self")
        if isinstance(generations, bool) or not isinstance(generations, (int, np.integer)) or generations < 1:
            raise errors.ConfigurationError(f"generations must be a positive integer (got {generations!r})")
        if isinstance(popsize, bool) or not isinstance(popsize, (int, np.integer)):
            raise errors.ConfigurationError(f"popsize must be an integer (got {popsize!r})")
        get_variant(variant).check_popsize(popsize)
        # only used by the constant adaptation, but checked in any case
        if isinstance(F, bool) or not isinstance(F, (Real, float)) or not 0 < F <= F_UPPER:
            raise errors.ConfigurationError(f"F must be in (0, {F_UPPER}] (got {F!r})")
        if isinstance(CR, bool) or not isinstance(CR, (Real, float)) or not 0 <= CR <= 1:
            raise errors.ConfigurationError(f"CR must be in [0, 1] (got {CR!r})")
        self.generations = int(generations)
        self.variant = variant
        self.adaptation = adaptation
        self.ftol = ftol
        self.xtol = xtol
        self.restart = restart
        self.popsize = int(popsize)
        self.stall_window = stall_window
        self.max_restarts = max_restarts
        self.F = F
        self.CR = CR
        # instantiate once for configuration checks
        self.make_adaptation()
        self.make_monitor()
        diff = tools.different_from_defaults(instance=self, instance_dict=self._config, check_mismatches=True)
        params = ", ".join(f"{x}={y!r}" for x, y in sorted(diff.items()))
        self.name = f"{self.__class__.__name__}({params})"

    def config(self) -> tp.Dict[str, tp.Any]:
        return dict(self._config)

    def make_adaptation(self) -> Adaptation:
        """Creates a new control parameter controller"""
        kwargs = {"F": self.F, "CR": self.CR} if self.adaptation == "constant" else {}
        return get_adaptation(self.adaptation, **kwargs)

    def make_monitor(self) -> ConvergenceMonitor:
        """Creates a new convergence and restart monitor"""
        return ConvergenceMonitor(
            ftol=self.ftol,
            xtol=self.xtol,
            restart=self.restart,
            stall_window=self.stall_window,
            max_restarts=self.max_restarts,
        )

    def __call__(self, bounds: Bounds, seed: tp.RandomLike = None) -> SelfAdaptiveRun:
        """Creates a run on the provided bounds

        Parameters
        ----------
        bounds: Bounds
            the box to optimize in
        seed: int, RandomState or None
            seed of the run
        """
        return SelfAdaptiveRun(bounds, config=self, seed=seed)

    def minimize(
        self,
        objective: tp.Union[Objective, tp.Callable[[np.ndarray], float]],
        bounds: Bounds,
        seed: tp.RandomLike = None,
        executor: tp.Optional[tp.ExecutorLike] = None,
        initial_population: tp.Optional[tp.Union[np.ndarray, tp.Sequence[tp.ArrayLike]]] = None,
    ) -> Result:
        """Creates a run and evolves it (see :code:`SelfAdaptiveRun.evolve`)"""
        run = self(bounds, seed=seed)
        return run.evolve(objective, initial_population=initial_population, executor=executor)

    def __repr__(self) -> str:
        return self.name

    def set_name(self, name: str, register: bool = False) -> "SelfAdaptiveDE":
        """Set a new representation for the instance"""
        self.name = name
        if register:
            registry.register_name(name, self)
        return self

    def __eq__(self, other: tp.Any) -> tp.Any:
        if self.__class__ == other.__class__:
            if self.config() == other.config():
                return True
        return False


jDE = SelfAdaptiveDE().set_name("jDE", register=True)
RandOneBinJDE = SelfAdaptiveDE(variant="rand/1/bin").set_name("RandOneBinJDE", register=True)
BestOneBinJDE = SelfAdaptiveDE(variant="best/1/bin").set_name("BestOneBinJDE", register=True)
CurrentToBestJDE = SelfAdaptiveDE(variant="current-to-best/1/bin").set_name("CurrentToBestJDE", register=True)
RandTwoBinJDE = SelfAdaptiveDE(variant="rand/2/bin").set_name("RandTwoBinJDE", register=True)
BestTwoExpJDE = SelfAdaptiveDE(variant="best/2/exp").set_name("BestTwoExpJDE", register=True)
NoRestartJDE = SelfAdaptiveDE(restart=False).set_name("NoRestartJDE", register=True)
PopulationLevelDE = SelfAdaptiveDE(adaptation="population-level").set_name("PopulationLevelDE", register=True)
ConstantDE = SelfAdaptiveDE(adaptation="constant", variant="rand/1/bin").set_name("ConstantDE", register=True)
