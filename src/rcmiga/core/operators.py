"""
Genetic operators for the RCMIGA optimizer.

Every operator is a pure function of its inputs and the random generator: it
reads columns of the current population and returns a freshly allocated
block that the engine writes into the next generation. The random draws of
each operator happen in a fixed order so that a run is reproducible from its
seed.
"""

import hashlib
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from src.rcmiga.core.config import OperatorParameters, RCMIGAConfig
from src.rcmiga.core.exceptions import ConfigurationError
from src.rcmiga.core.problem import Problem


@dataclass(frozen=True)
class SearchSpace:
    """
    Decision space of a run.

    ``lb``/``ub`` are ``None`` for unbounded runs; ``seed_lb``/``seed_ub``
    always hold the range used to create the initial population. Bounds of
    integer variables are tightened to integers so that clipping never
    undoes integer repair.
    """

    nvars: int
    int_con: Tuple[int, ...]
    lb: Optional[np.ndarray]
    ub: Optional[np.ndarray]
    seed_lb: np.ndarray
    seed_ub: np.ndarray

    @property
    def bounded(self) -> bool:
        return self.lb is not None

    @classmethod
    def from_config(cls, problem: Problem, config: RCMIGAConfig) -> "SearchSpace":
        int_con = problem.int_con
        bounds = config.bounds

        if bounds.bounded:
            lb = np.asarray(bounds.lb, dtype=float).copy()
            ub = np.asarray(bounds.ub, dtype=float).copy()
            if int_con:
                idx = list(int_con)
                lb[idx] = np.ceil(lb[idx])
                ub[idx] = np.floor(ub[idx])
                empty = [i for i in idx if lb[i] > ub[i]]
                if empty:
                    raise ConfigurationError(
                        f"Integer variables {empty} have no integer value within bounds"
                    )
            return cls(nvars=problem.nvars, int_con=int_con, lb=lb, ub=ub,
                       seed_lb=lb, seed_ub=ub)

        if bounds.initial_unbounded_range is None:
            seed_range = np.tile([0.0, 1.0], (problem.nvars, 1))
        else:
            seed_range = np.asarray(bounds.initial_unbounded_range, dtype=float)
        return cls(nvars=problem.nvars, int_con=int_con, lb=None, ub=None,
                   seed_lb=seed_range[:, 0].copy(), seed_ub=seed_range[:, 1].copy())

    def per_gene(self, real_value: float, integer_value: float, count: int) -> np.ndarray:
        """``nvars x count`` matrix of a parameter that differs for integer genes."""
        values = np.full((self.nvars, count), real_value, dtype=float)
        if self.int_con:
            values[list(self.int_con), :] = integer_value
        return values


def create_rng(seed: str) -> np.random.Generator:
    """Random generator keyed by a seed string."""
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return np.random.default_rng(int.from_bytes(digest[:8], "little"))


def creation_mixed_uniform(space: SearchSpace, population_size: int,
                           rng: np.random.Generator) -> np.ndarray:
    """
    Sample a population uniformly over the seeding range.

    Integer genes are truncated and receive an extra Bernoulli(0/1) draw, so
    the top of the range is reachable as often as the rest.
    """
    lo = space.seed_lb[:, None]
    hi = space.seed_ub[:, None]
    population = lo + (hi - lo) * rng.random((space.nvars, population_size))

    if space.int_con:
        idx = list(space.int_con)
        r = rng.integers(0, 2, size=(len(idx), population_size))
        population[idx, :] = np.trunc(population[idx, :]) + r

    return population


def binary_tournament_selection(population_size: int, n_parents: int,
                                rng: np.random.Generator) -> np.ndarray:
    """Pick ``n_parents`` indices into the previous generation."""
    r1 = rng.integers(0, population_size, size=n_parents)
    r2 = rng.integers(0, population_size, size=n_parents)
    return np.where(r1 > r2, r2, r1)


def laplace_mixed_crossover(population: np.ndarray, parents: Sequence[int],
                            space: SearchSpace, params: OperatorParameters,
                            rng: np.random.Generator) -> np.ndarray:
    """
    Laplace crossover of mother/father pairs.

    The first half of ``parents`` are mothers, the second half fathers. Each
    pair yields ``mother + beta*|m - f|`` and ``father + beta*|m - f|``, so the
    result has as many columns as ``parents``: all mother-side children
    first, then all father-side children.
    """
    parents = np.asarray(parents, dtype=int)
    n_pairs = len(parents) // 2
    if n_pairs == 0:
        return np.empty((space.nvars, 0))

    b = space.per_gene(params.b_real, params.b_integer, n_pairs)
    # 1 - U[0, 1) keeps log10 finite
    u = 1.0 - rng.random((space.nvars, n_pairs))
    r = rng.random((space.nvars, n_pairs))
    log_u = np.log10(u)
    beta = np.where(r <= 0.5, params.a - b * log_u, params.a + b * log_u)

    mother = population[:, parents[:n_pairs]]
    father = population[:, parents[n_pairs:2 * n_pairs]]
    spread = beta * np.abs(mother - father)

    return np.hstack([mother + spread, father + spread])


def power_mixed_mutation(population: np.ndarray, parents: Sequence[int],
                         space: SearchSpace, params: OperatorParameters,
                         rng: np.random.Generator) -> np.ndarray:
    """
    Power mutation of the selected parents.

    Bounded runs move each gene towards the lower bound when its relative
    position ``(x - lb)/(ub - x)`` is below a uniform draw, otherwise towards
    the upper bound; the step is ``s = s1**p`` times the distance to that
    bound. Unbounded runs step by ``s`` in a random direction.
    """
    parents = np.asarray(parents, dtype=int)
    n_mutants = len(parents)
    if n_mutants == 0:
        return np.empty((space.nvars, 0))

    p = space.per_gene(params.p_real, params.p_integer, n_mutants)
    s1 = rng.random((space.nvars, n_mutants))
    r = rng.random((space.nvars, n_mutants))
    s = np.power(s1, p)

    x = population[:, parents]
    if not space.bounded:
        return np.where(r < 0.5, x + s, x - s)

    lb = space.lb[:, None]
    ub = space.ub[:, None]
    with np.errstate(divide="ignore", invalid="ignore"):
        t = (x - lb) / (ub - x)
    toward_lower = t < r
    return np.where(toward_lower, x - s * (x - lb), x + s * (ub - x))


def integer_restriction(block: np.ndarray, int_con: Sequence[int],
                        rng: np.random.Generator) -> np.ndarray:
    """
    Round non-integer genes at ``int_con`` rows down and add a Bernoulli draw.

    The Bernoulli matrix is always drawn for the whole block so the random
    stream does not depend on how many genes needed repair.
    """
    repaired = np.array(block, dtype=float)
    if not len(int_con) or repaired.shape[1] == 0:
        return repaired

    idx = list(int_con)
    r = rng.integers(0, 2, size=(len(idx), repaired.shape[1]))
    genes = repaired[idx, :]
    fractional = genes != np.floor(genes)
    genes[fractional] = np.floor(genes[fractional]) + r[fractional]
    repaired[idx, :] = genes
    return repaired


def check_bounds(population: np.ndarray, space: SearchSpace) -> np.ndarray:
    """Clip every gene to its bounds; unbounded runs are returned unchanged."""
    if not space.bounded:
        return np.array(population, dtype=float)
    return np.clip(population, space.lb[:, None], space.ub[:, None])
