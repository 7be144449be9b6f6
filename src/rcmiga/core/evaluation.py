"""
Fitness and constraint evaluation strategies.

A batch is an ``nvars x n`` matrix of candidate individuals. Every strategy
returns the same :class:`EvaluationResult`: ``n`` fitness values and, for
constrained problems, an ``m x n`` constraint matrix in the batch's column
order.
"""

import asyncio
import functools
import logging
import multiprocessing
from abc import ABC, abstractmethod
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from src.rcmiga.core.config import EvaluationConfig, ParallelizationConfig, RCMIGAConfig
from src.rcmiga.core.exceptions import EvaluationError
from src.rcmiga.core.problem import ConstraintFunction, FitnessFunction, Problem


logger = logging.getLogger("rcmiga.evaluation")

# One row per individual; None marks a failed constraint evaluation.
ConstraintRows = List[Optional[np.ndarray]]


@dataclass
class EvaluationResult:
    """Fitness values and constraint matrix of a batch."""
    fitness: np.ndarray
    constraints: Optional[np.ndarray] = None


def _call_with_retries(fn: Callable, x: np.ndarray, max_retries: int):
    for attempt in range(max_retries + 1):
        try:
            return fn(x)
        except Exception:
            if attempt == max_retries:
                raise
            logger.debug(f"Evaluation failed, retrying ({attempt + 1}/{max_retries})")


def _as_scalar(value) -> float:
    arr = np.asarray(value, dtype=float)
    if arr.size != 1:
        raise EvaluationError(
            f"Fitness function must return a scalar, got shape {arr.shape}"
        )
    return float(arr.reshape(-1)[0])


def evaluate_columns(
    fitness_fcn: FitnessFunction,
    nonlcon_fcn: Optional[ConstraintFunction],
    batch: np.ndarray,
    error_policy: str = "raise",
    max_retries: int = 0
) -> Tuple[np.ndarray, Optional[ConstraintRows]]:
    """
    Evaluate a batch one column at a time.

    Module-level so that process workers can receive it by reference.
    """
    n = batch.shape[1]
    fitness = np.empty(n, dtype=float)
    rows: Optional[ConstraintRows] = [] if nonlcon_fcn is not None else None

    for i in range(n):
        x = np.array(batch[:, i], dtype=float)
        try:
            fitness[i] = _as_scalar(_call_with_retries(fitness_fcn, x, max_retries))
        except EvaluationError:
            raise
        except Exception as e:
            if error_policy != "penalize":
                raise
            logger.warning(f"Fitness evaluation failed for individual {i}: {e}")
            fitness[i] = np.inf

        if nonlcon_fcn is None:
            continue
        try:
            value = _call_with_retries(nonlcon_fcn, x, max_retries)
            rows.append(np.atleast_1d(np.asarray(value, dtype=float)).ravel())
        except Exception as e:
            if error_policy != "penalize":
                raise
            logger.warning(f"Constraint evaluation failed for individual {i}: {e}")
            rows.append(None)

    return fitness, rows


class Evaluator(ABC):
    """
    Base class of the evaluation strategies.

    The number of constraints is learned from the first successful
    constraint evaluation and enforced afterwards.
    """

    def __init__(self, problem: Problem, config: EvaluationConfig):
        self.problem = problem
        self.config = config
        self.n_constraints: Optional[int] = None

    async def start(self) -> None:
        """Acquire resources needed for a run."""

    async def close(self) -> None:
        """Release resources acquired by :meth:`start`."""

    @abstractmethod
    async def evaluate(self, batch: np.ndarray) -> EvaluationResult:
        """Evaluate an ``nvars x n`` batch."""

    def _finalize(self, fitness: np.ndarray,
                  constraints: Optional[np.ndarray]) -> EvaluationResult:
        fitness = np.asarray(fitness, dtype=float)
        fitness = np.where(np.isnan(fitness), np.inf, fitness)
        if constraints is not None:
            m = constraints.shape[0]
            if self.n_constraints is None:
                self.n_constraints = m
            elif m != self.n_constraints:
                raise EvaluationError(
                    f"Constraint function returned {m} values, expected {self.n_constraints}"
                )
        return EvaluationResult(fitness=fitness, constraints=constraints)

    def _assemble_rows(self, rows: ConstraintRows) -> np.ndarray:
        widths = {len(row) for row in rows if row is not None}
        if self.n_constraints is not None:
            widths.add(self.n_constraints)
        if len(widths) > 1:
            raise EvaluationError(f"Inconsistent constraint counts: {sorted(widths)}")
        if not widths:
            raise EvaluationError("No constraint evaluation succeeded; constraint count unknown")

        m = widths.pop()
        matrix = np.full((m, len(rows)), np.nan)
        for i, row in enumerate(rows):
            if row is not None:
                matrix[:, i] = row
        return matrix


class SerialEvaluator(Evaluator):
    """Calls the problem functions once per individual."""

    async def evaluate(self, batch: np.ndarray) -> EvaluationResult:
        fitness, rows = evaluate_columns(
            self.problem.fitness_fcn,
            self.problem.nonlcon_fcn,
            batch,
            self.config.error_policy,
            self.config.max_retries
        )
        constraints = self._assemble_rows(rows) if rows is not None else None
        return self._finalize(fitness, constraints)


class VectorizedEvaluator(Evaluator):
    """Calls each problem function once with the whole batch."""

    async def evaluate(self, batch: np.ndarray) -> EvaluationResult:
        n = batch.shape[1]
        fitness = self._evaluate_fitness(batch, n)
        constraints = None
        if self.problem.constrained:
            constraints = self._evaluate_constraints(batch, n)
        return self._finalize(fitness, constraints)

    def _evaluate_fitness(self, batch: np.ndarray, n: int) -> np.ndarray:
        try:
            value = _call_with_retries(self.problem.fitness_fcn, batch, self.config.max_retries)
        except Exception as e:
            if self.config.error_policy != "penalize":
                raise
            logger.warning(f"Vectorized fitness evaluation failed: {e}")
            return np.full(n, np.inf)

        fitness = np.asarray(value, dtype=float).ravel()
        if fitness.size != n:
            raise EvaluationError(
                f"Vectorized fitness function returned {fitness.size} values for {n} individuals"
            )
        return fitness

    def _evaluate_constraints(self, batch: np.ndarray, n: int) -> np.ndarray:
        try:
            value = _call_with_retries(self.problem.nonlcon_fcn, batch, self.config.max_retries)
        except Exception as e:
            if self.config.error_policy != "penalize" or self.n_constraints is None:
                raise
            logger.warning(f"Vectorized constraint evaluation failed: {e}")
            return np.full((self.n_constraints, n), np.nan)

        constraints = np.asarray(value, dtype=float)
        if constraints.ndim == 1:
            constraints = constraints.reshape(-1, 1) if n == 1 else constraints.reshape(1, -1)
        if constraints.ndim != 2 or constraints.shape[1] != n:
            raise EvaluationError(
                f"Vectorized constraint function returned shape {constraints.shape} "
                f"for {n} individuals"
            )
        return constraints


class ParallelEvaluator(Evaluator):
    """
    Splits the batch into one contiguous shard per worker and evaluates the
    shards concurrently with :func:`evaluate_columns`.

    The caller is suspended until every shard returns; the first worker
    exception is re-raised. Process workers receive the problem functions
    pickled by qualified name, so they must be importable module-level
    callables.
    """

    def __init__(self, problem: Problem, config: EvaluationConfig,
                 parallel_config: ParallelizationConfig):
        super().__init__(problem, config)
        self.parallel_config = parallel_config
        self.num_workers = parallel_config.num_workers or multiprocessing.cpu_count()
        self.executor: Optional[Executor] = None

    async def start(self) -> None:
        if self.executor is not None:
            return
        if self.parallel_config.backend == "process":
            self.executor = ProcessPoolExecutor(max_workers=self.num_workers)
        else:
            self.executor = ThreadPoolExecutor(max_workers=self.num_workers)

    async def close(self) -> None:
        if self.executor is not None:
            self.executor.shutdown(wait=True)
            self.executor = None

    def shards(self, n: int) -> List[np.ndarray]:
        return [s for s in np.array_split(np.arange(n), min(self.num_workers, max(n, 1))) if len(s)]

    async def evaluate(self, batch: np.ndarray) -> EvaluationResult:
        await self.start()
        loop = asyncio.get_running_loop()

        futures = []
        for shard in self.shards(batch.shape[1]):
            task = functools.partial(
                evaluate_columns,
                self.problem.fitness_fcn,
                self.problem.nonlcon_fcn,
                np.ascontiguousarray(batch[:, shard]),
                self.config.error_policy,
                self.config.max_retries
            )
            futures.append(loop.run_in_executor(self.executor, task))

        results: Sequence[Tuple[np.ndarray, Optional[ConstraintRows]]] = await asyncio.gather(*futures)

        fitness = np.concatenate([r[0] for r in results]) if results else np.empty(0)
        constraints = None
        if self.problem.constrained:
            rows: ConstraintRows = []
            for _, shard_rows in results:
                rows.extend(shard_rows)
            constraints = self._assemble_rows(rows)
        return self._finalize(fitness, constraints)


def create_evaluator(problem: Problem, config: RCMIGAConfig) -> Evaluator:
    """Select the evaluation strategy once for a run; vectorized wins over parallel."""
    parallel = config.parallelization
    if parallel.use_vectorized:
        return VectorizedEvaluator(problem, config.evaluation)
    if parallel.use_parallel:
        return ParallelEvaluator(problem, config.evaluation, parallel)
    return SerialEvaluator(problem, config.evaluation)
