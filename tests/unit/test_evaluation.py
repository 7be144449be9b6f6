"""
Unit tests for the evaluation strategies.

Tests cover:
- Serial, vectorized and parallel evaluation agree
- Constraint matrix assembly and shape checks
- Error policies and retries
- Strategy selection
"""

import numpy as np
import pytest

from src.rcmiga.core.config import (
    EvaluationConfig,
    ParallelizationConfig,
    RCMIGAConfig,
)
from src.rcmiga.core.evaluation import (
    ParallelEvaluator,
    SerialEvaluator,
    VectorizedEvaluator,
    create_evaluator,
    evaluate_columns,
)
from src.rcmiga.core.exceptions import EvaluationError
from src.rcmiga.core.problem import Problem
from src.rcmiga.problems.benchmarks import hyperbola_constraints, rosenbrock_2d, sphere


def _batch(nvars=2, n=9, seed=3):
    return np.random.default_rng(seed).uniform(0.0, 3.0, size=(nvars, n))


def _fails_on_negative(x):
    if x[0] < 0:
        raise ValueError("negative input")
    return float(x[0])


async def _evaluate_all_modes(problem, batch, num_workers=3):
    evaluation = EvaluationConfig()
    serial = await SerialEvaluator(problem, evaluation).evaluate(batch)
    vectorized = await VectorizedEvaluator(problem, evaluation).evaluate(batch)

    parallel_evaluator = ParallelEvaluator(
        problem, evaluation, ParallelizationConfig(use_parallel=True, num_workers=num_workers)
    )
    try:
        parallel = await parallel_evaluator.evaluate(batch)
    finally:
        await parallel_evaluator.close()
    return serial, vectorized, parallel


class TestEvaluationModes:
    """Test suite for agreement between evaluation strategies."""

    @pytest.mark.asyncio
    async def test_unconstrained_modes_agree(self):
        problem = Problem(nvars=2, fitness_fcn=sphere)
        batch = _batch()

        serial, vectorized, parallel = await _evaluate_all_modes(problem, batch)

        expected = np.sum(batch ** 2, axis=0)
        np.testing.assert_allclose(serial.fitness, expected)
        np.testing.assert_allclose(vectorized.fitness, expected)
        np.testing.assert_allclose(parallel.fitness, expected)
        assert serial.constraints is None
        assert vectorized.constraints is None
        assert parallel.constraints is None

    @pytest.mark.asyncio
    async def test_constrained_modes_agree(self):
        problem = Problem(nvars=2, fitness_fcn=rosenbrock_2d, nonlcon_fcn=hyperbola_constraints)
        batch = _batch(n=10)

        serial, vectorized, parallel = await _evaluate_all_modes(problem, batch)

        assert serial.constraints.shape == (2, 10)
        np.testing.assert_allclose(vectorized.constraints, serial.constraints)
        np.testing.assert_allclose(parallel.constraints, serial.constraints)
        np.testing.assert_allclose(vectorized.fitness, serial.fitness)
        np.testing.assert_allclose(parallel.fitness, serial.fitness)

    @pytest.mark.asyncio
    async def test_more_workers_than_individuals(self):
        problem = Problem(nvars=2, fitness_fcn=sphere)
        batch = _batch(n=2)

        _, _, parallel = await _evaluate_all_modes(problem, batch, num_workers=8)

        np.testing.assert_allclose(parallel.fitness, np.sum(batch ** 2, axis=0))

    @pytest.mark.asyncio
    async def test_process_backend(self):
        problem = Problem(nvars=2, fitness_fcn=sphere)
        batch = _batch(n=6)
        evaluator = ParallelEvaluator(
            problem,
            EvaluationConfig(),
            ParallelizationConfig(use_parallel=True, num_workers=2, backend="process")
        )

        try:
            result = await evaluator.evaluate(batch)
        finally:
            await evaluator.close()

        np.testing.assert_allclose(result.fitness, np.sum(batch ** 2, axis=0))
        assert evaluator.executor is None

    def test_shards_are_contiguous_and_ordered(self):
        evaluator = ParallelEvaluator(
            Problem(nvars=1, fitness_fcn=sphere),
            EvaluationConfig(),
            ParallelizationConfig(use_parallel=True, num_workers=3)
        )

        shards = evaluator.shards(10)

        assert len(shards) == 3
        assert np.concatenate(shards).tolist() == list(range(10))


class TestEvaluationOutput:
    """Test suite for output validation."""

    @pytest.mark.asyncio
    async def test_nan_fitness_becomes_infinite(self):
        problem = Problem(nvars=1, fitness_fcn=lambda x: np.nan)

        result = await SerialEvaluator(problem, EvaluationConfig()).evaluate(np.zeros((1, 3)))

        assert np.all(np.isinf(result.fitness))

    @pytest.mark.asyncio
    async def test_non_scalar_fitness_is_rejected(self):
        problem = Problem(nvars=2, fitness_fcn=lambda x: x)

        with pytest.raises(EvaluationError):
            await SerialEvaluator(problem, EvaluationConfig()).evaluate(_batch(n=2))

    @pytest.mark.asyncio
    async def test_vectorized_fitness_size_is_checked(self):
        problem = Problem(nvars=2, fitness_fcn=lambda x: np.zeros(3))

        with pytest.raises(EvaluationError):
            await VectorizedEvaluator(problem, EvaluationConfig()).evaluate(_batch(n=5))

    @pytest.mark.asyncio
    async def test_constraint_count_is_enforced(self):
        calls = {"n": 0}

        def growing_constraints(x):
            calls["n"] += 1
            return np.zeros(calls["n"])

        problem = Problem(nvars=1, fitness_fcn=lambda x: 0.0, nonlcon_fcn=growing_constraints)
        evaluator = SerialEvaluator(problem, EvaluationConfig())

        with pytest.raises(EvaluationError):
            await evaluator.evaluate(np.zeros((1, 3)))

    @pytest.mark.asyncio
    async def test_constraint_count_is_learned(self):
        problem = Problem(nvars=2, fitness_fcn=rosenbrock_2d, nonlcon_fcn=hyperbola_constraints)
        evaluator = SerialEvaluator(problem, EvaluationConfig())

        await evaluator.evaluate(_batch(n=3))

        assert evaluator.n_constraints == 2

    @pytest.mark.asyncio
    async def test_single_individual_vectorized_constraint(self):
        problem = Problem(
            nvars=2, fitness_fcn=sphere, nonlcon_fcn=lambda x: x[0] + x[1] - 1.0
        )
        batch = np.array([[0.25], [0.5]])

        result = await VectorizedEvaluator(problem, EvaluationConfig()).evaluate(batch)

        assert result.constraints.shape == (1, 1)
        assert result.constraints[0, 0] == pytest.approx(-0.25)


class TestErrorPolicy:
    """Test suite for evaluation error handling."""

    @pytest.mark.asyncio
    async def test_raise_policy_propagates(self):
        problem = Problem(nvars=1, fitness_fcn=_fails_on_negative)
        batch = np.array([[1.0, -1.0, 2.0]])

        with pytest.raises(ValueError):
            await SerialEvaluator(problem, EvaluationConfig()).evaluate(batch)

    @pytest.mark.asyncio
    async def test_raise_policy_propagates_from_workers(self):
        problem = Problem(nvars=1, fitness_fcn=_fails_on_negative)
        evaluator = ParallelEvaluator(
            problem, EvaluationConfig(), ParallelizationConfig(use_parallel=True, num_workers=2)
        )

        try:
            with pytest.raises(ValueError):
                await evaluator.evaluate(np.array([[1.0, 2.0, -1.0, 3.0]]))
        finally:
            await evaluator.close()

    @pytest.mark.asyncio
    async def test_penalize_policy_marks_failures(self):
        problem = Problem(nvars=1, fitness_fcn=_fails_on_negative)
        config = EvaluationConfig(error_policy="penalize")

        result = await SerialEvaluator(problem, config).evaluate(np.array([[1.0, -1.0, 2.0]]))

        assert result.fitness.tolist() == [1.0, np.inf, 2.0]

    @pytest.mark.asyncio
    async def test_penalize_policy_for_constraints(self):
        def constraints(x):
            if x[0] < 0:
                raise RuntimeError("undefined")
            return [x[0] - 1.0]

        problem = Problem(nvars=1, fitness_fcn=lambda x: 0.0, nonlcon_fcn=constraints)
        config = EvaluationConfig(error_policy="penalize")

        result = await SerialEvaluator(problem, config).evaluate(np.array([[2.0, -1.0]]))

        assert result.constraints[0, 0] == 1.0
        assert np.isnan(result.constraints[0, 1])

    def test_retries(self):
        calls = {"n": 0}

        def flaky(x):
            calls["n"] += 1
            if calls["n"] == 1:
                raise RuntimeError("transient")
            return 3.0

        fitness, rows = evaluate_columns(flaky, None, np.zeros((1, 1)), max_retries=1)

        assert fitness.tolist() == [3.0]
        assert rows is None
        assert calls["n"] == 2


class TestStrategySelection:
    """Test suite for create_evaluator."""

    def test_serial_by_default(self, sphere_problem):
        assert isinstance(create_evaluator(sphere_problem, RCMIGAConfig()), SerialEvaluator)

    def test_parallel(self, sphere_problem):
        config = RCMIGAConfig(parallelization=ParallelizationConfig(use_parallel=True))

        assert isinstance(create_evaluator(sphere_problem, config), ParallelEvaluator)

    def test_vectorized_wins(self, sphere_problem):
        config = RCMIGAConfig(
            parallelization=ParallelizationConfig(use_parallel=True, use_vectorized=True)
        )

        assert isinstance(create_evaluator(sphere_problem, config), VectorizedEvaluator)
