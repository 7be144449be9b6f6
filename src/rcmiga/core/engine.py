"""
Real-Coded Mixed-Integer Genetic Algorithm Engine.

This module implements the generational controller that owns the run state,
orchestrates the operators, evaluation and constraint handling, checks the
stopping criteria and produces the final solution.
"""

import asyncio
import logging
import time
import warnings
from typing import Callable, Optional

import logfire
import numpy as np

from src.rcmiga.core.config import RCMIGAConfig
from src.rcmiga.core.constraints import ConstraintHandler
from src.rcmiga.core.evaluation import EvaluationResult, create_evaluator
from src.rcmiga.core.exceptions import ConfigurationError, RCMIGAError
from src.rcmiga.core.operators import (
    SearchSpace,
    binary_tournament_selection,
    check_bounds,
    create_rng,
    creation_mixed_uniform,
    integer_restriction,
    laplace_mixed_crossover,
    power_mixed_mutation,
)
from src.rcmiga.core.problem import Problem
from src.rcmiga.core.state import (
    EngineFlag,
    ProgressReport,
    ReproductionCount,
    RunState,
    Solution,
    StopCode,
)
from src.rcmiga.core.stopping import StoppingCriteria


ProgressCallback = Callable[[ProgressReport], None]


class RCMIGAEngine:
    """
    Main engine for running the mixed-integer genetic algorithm.

    Moves through ``preinit -> init -> iter -> done``. Construction validates
    the problem and options; :meth:`run` executes the whole optimization and
    resolves to a :class:`Solution`. The only way to interrupt a run is
    :meth:`stop`, which is honoured at the next stopping check.
    """

    def __init__(
        self,
        problem: Problem,
        config: Optional[RCMIGAConfig] = None,
        logger: Optional[logging.Logger] = None,
        progress_callback: Optional[ProgressCallback] = None
    ):
        """
        Initialize the engine.

        Args:
            problem: Problem definition
            config: Optimizer options (defaults if omitted)
            logger: Optional logger instance
            progress_callback: Called once per generation with a ProgressReport

        Raises:
            ConfigurationError: If the problem and options are inconsistent
        """
        self.flag = EngineFlag.PREINIT
        self.problem = problem
        self.config = config or RCMIGAConfig()
        self.logger = logger or self._setup_logger()
        self.progress_callback = progress_callback
        self._abort_requested = False
        self._running = False

        self._check_inputs()

        nvars = problem.nvars
        self.population_size = self.config.evolution.resolve_population_size(nvars)
        self.max_generations = self.config.stopping.resolve_max_generations(nvars)
        self.reproduction = ReproductionCount.from_options(
            self.population_size,
            self.config.evolution.resolve_elite_count(self.population_size),
            self.config.evolution.crossover_fraction
        )

        self.space = SearchSpace.from_config(problem, self.config)
        self.constraint_handler = ConstraintHandler(self.reproduction.elite)
        self.stopping = StoppingCriteria(self.config.stopping, self.max_generations)
        self.evaluator = create_evaluator(problem, self.config)

        self.rng: Optional[np.random.Generator] = None
        self.state: Optional[RunState] = None
        self.solution: Optional[Solution] = None
        self.total_evaluations = 0

        self.flag = EngineFlag.INIT
        self._output()

    def _setup_logger(self) -> logging.Logger:
        """Setup default logger."""
        logger = logging.getLogger("rcmiga.engine")
        logger.setLevel(getattr(logging, self.config.logging.log_level))

        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        return logger

    def _check_inputs(self) -> None:
        """Validate problem and options before any generation runs."""
        self.config.validate_consistency(self.problem.nvars)

        parallel = self.config.parallelization
        for name in ("use_vectorized", "use_parallel"):
            if not isinstance(getattr(parallel, name), bool):
                raise ConfigurationError(f"Option {name} must be true or false")

        if parallel.use_vectorized and parallel.use_parallel:
            message = "Option use_parallel is ignored while option use_vectorized is true"
            warnings.warn(message, UserWarning, stacklevel=3)
            self.logger.warning(message)

    @property
    def constrained(self) -> bool:
        return self.problem.constrained

    def stop(self) -> None:
        """Request the run to stop at the next generation."""
        self._abort_requested = True

    async def run(self) -> Solution:
        """
        Run the optimization to completion.

        Returns:
            The solution taken from the last generation
        """
        if self._running:
            raise RCMIGAError("Optimization is already running")

        with logfire.span("RCMIGA Run",
                          problem=self.problem.name,
                          nvars=self.problem.nvars,
                          population_size=self.population_size):

            self.rng = create_rng(self.config.random_seed)
            self._abort_requested = False
            self.total_evaluations = 0

            self._running = True
            try:
                await self.evaluator.start()
                self._init_state()
                self._init_population()
                await self._update_state()

                self.flag = EngineFlag.ITER
                self._output()
                self._report_progress()

                stop = StopCode.CONTINUE
                while stop == StopCode.CONTINUE:
                    with logfire.span("Generation", generation=self.state.generation + 1):
                        stop = await self._next_generation()
                    self._output()
                    self._report_progress()
                    await asyncio.sleep(self.config.generation_pause)
            finally:
                self._running = False
                await self.evaluator.close()

            self.solution = self._build_solution(stop)
            self.flag = EngineFlag.DONE
            self._output()

            logfire.info("Optimization finished",
                         generations=self.solution.generations,
                         fval=self.solution.fval,
                         feasible=self.solution.feasible,
                         stopping_criteria=int(stop),
                         total_evaluations=self.total_evaluations)
            return self.solution

    def _init_state(self) -> None:
        self.state = RunState(reproduction=self.reproduction)
        self.constraint_handler.scale = None

    def _init_population(self) -> None:
        """Create generation zero."""
        population = creation_mixed_uniform(self.space, self.population_size, self.rng)
        self.state.population = check_bounds(population, self.space)

    async def _next_generation(self) -> StopCode:
        """Breed, evaluate and check one generation."""
        state = self.state
        rep = self.reproduction
        state.generation_time = time.monotonic()

        new_population = np.empty_like(state.population)

        # Elitism
        if rep.elite > 0:
            order = np.argsort(state.fun_val, kind="stable")
            state.current_elite = order[:rep.elite]
            new_population[:, rep.elite_slice] = state.population[:, state.current_elite]

        # Selection
        state.parents = binary_tournament_selection(
            self.population_size, rep.n_parents, self.rng
        )

        # Crossover
        new_population[:, rep.children_slice] = laplace_mixed_crossover(
            state.population, state.parents[:rep.children],
            self.space, self.config.operators, self.rng
        )

        # Mutation
        new_population[:, rep.mutants_slice] = power_mixed_mutation(
            state.population, state.parents[rep.children:],
            self.space, self.config.operators, self.rng
        )

        # Integer and bound restrictions
        new_population[:, rep.offspring_slice] = integer_restriction(
            new_population[:, rep.offspring_slice], self.problem.int_con, self.rng
        )
        state.population = check_bounds(new_population, self.space)

        state.generation += 1
        await self._update_state()

        return self.stopping.evaluate(state, self._abort_requested)

    async def _evaluate(self, batch: np.ndarray) -> EvaluationResult:
        with logfire.span("Evaluate Population", size=batch.shape[1]):
            if batch.shape[1] == 0:
                constraints = None
                if self.constrained:
                    constraints = np.empty((self.evaluator.n_constraints or 0, 0))
                return EvaluationResult(fitness=np.empty(0), constraints=constraints)

            result = await self.evaluator.evaluate(batch)
            self.total_evaluations += batch.shape[1]
            return result

    async def _update_state(self) -> None:
        """Evaluate the population and record the generation's best."""
        state = self.state
        rep = self.reproduction

        # Elite individuals keep the values computed when they were created
        carry_elite = rep.elite > 0 and state.generation > 0
        if carry_elite:
            result = await self._evaluate(state.population[:, rep.offspring_slice])
            state.fitness = np.concatenate([state.fitness[state.current_elite], result.fitness])
            if self.constrained:
                state.con_val = np.hstack([state.con_val[:, state.current_elite], result.constraints])
        else:
            result = await self._evaluate(state.population)
            state.fitness = result.fitness
            if self.constrained:
                state.con_val = result.constraints

        if self.constrained:
            state.con_norm_val = self.constraint_handler.normalize(
                state.con_val, update_scale=not state.any_feasible_generation
            )
            state.con_sum_val = self.constraint_handler.violation(state.con_norm_val)
            state.fun_val = self.constraint_handler.penalize(state.fitness, state.con_sum_val)
        else:
            state.fun_val = state.fitness.copy()

        state.time.append(time.monotonic() - state.generation_time)
        i = int(np.argmin(state.fun_val))
        state.best.append(float(state.fun_val[i]))
        state.best_x.append(state.population[:, i].copy())
        state.feasible.append(not (self.constrained and state.con_sum_val[i] > 0))

    def _build_solution(self, stop: StopCode) -> Solution:
        state = self.state
        i = int(np.argmin(state.fun_val))
        feasible = not (self.constrained and state.con_sum_val[i] > 0)
        return Solution(
            generations=state.generation,
            x=state.population[:, i].copy(),
            fval=float(state.fitness[i]),
            feasible=feasible,
            stopping_criteria=stop,
            best_history=list(state.best),
            feasible_history=list(state.feasible)
        )

    def _report_progress(self) -> None:
        state = self.state
        report = ProgressReport(
            generation=state.generation,
            best=state.best[state.generation],
            feasible=state.feasible[state.generation],
            stall_generations=state.stall_generations,
            max_constraint=float(np.max(state.con_sum_val)) if self.constrained else None
        )
        logfire.info("Evolution Progress",
                     evolution_generation=report.generation,
                     best=report.best,
                     feasible=report.feasible,
                     stall_generations=report.stall_generations)
        if self.progress_callback is not None:
            self.progress_callback(report)

    def _output(self) -> None:
        """Log progress according to the display option."""
        display = self.config.logging.display
        if display == "iter":
            self._display_iteration()
        elif display == "final" and self.flag == EngineFlag.DONE:
            self._display_final()

    def _display_iteration(self) -> None:
        if self.flag == EngineFlag.INIT:
            self.logger.info("Optimization is initialized!")
            if self.config.parallelization.use_vectorized:
                self.logger.info("Vectorized functions evaluation in use.")
            elif self.config.parallelization.use_parallel:
                self.logger.info("Parallel functions evaluation in use.")

        elif self.flag == EngineFlag.ITER:
            state = self.state
            gen = state.generation
            if gen % self.config.logging.header_interval == 0:
                if self.constrained:
                    self.logger.info(f"{'Generation':>12} {'Best f(x)':>14} "
                                     f"{'Max Constraint':>16} {'Stall Generations':>18}")
                else:
                    self.logger.info(f"{'Generation':>12} {'Best f(x)':>14} "
                                     f"{'Stall Generations':>18}")

            fval = f"{state.best[gen]:.5g}"
            if self.constrained:
                if not state.feasible[gen]:
                    fval += "*"
                self.logger.info(f"{gen:>12d} {fval:>14} "
                                 f"{np.max(state.con_sum_val):>16.2g} "
                                 f"{state.stall_generations:>18d}")
            else:
                self.logger.info(f"{gen:>12d} {fval:>14} {state.stall_generations:>18d}")

        elif self.flag == EngineFlag.DONE:
            self._display_final()

    def _display_final(self) -> None:
        message = "Optimization is done"
        if self.constrained:
            if self.solution.feasible:
                message += ", solution found"
            else:
                message += ", no feasible solution found"
        self.logger.info(f"{message}, stopping criteria = {int(self.solution.stopping_criteria)}!")


async def optimize(problem: Problem, config: Optional[RCMIGAConfig] = None,
                   **kwargs) -> Solution:
    """Construct an engine and run it to completion."""
    engine = RCMIGAEngine(problem, config, **kwargs)
    return await engine.run()
