"""
Run state and result records for the RCMIGA optimizer.

The controller owns a single :class:`RunState` for the whole run. Operators
receive slices of it and return new arrays; only the controller writes back.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional

import numpy as np


class EngineFlag(str, Enum):
    """Lifecycle of a run."""
    PREINIT = "preinit"
    INIT = "init"
    ITER = "iter"
    DONE = "done"


class StopCode(IntEnum):
    """Reason a run terminated; 0 means keep going."""
    CONTINUE = 0
    MAX_GENERATIONS = 1
    MAX_TIME = 2
    FITNESS_LIMIT = 3
    FUNCTION_TOLERANCE = 4
    STALL_GENERATIONS = 5
    STALL_TIME = 6
    USER_ABORT = 7


@dataclass(frozen=True)
class ReproductionCount:
    """
    Partition of the population into elite, crossover children and mutants.

    ``children`` is rounded down to an even number so that crossover always
    works on whole parent pairs.
    """

    elite: int
    children: int
    mutants: int

    @classmethod
    def from_options(cls, population_size: int, elite_count: int,
                     crossover_fraction: float) -> "ReproductionCount":
        children = int(crossover_fraction * (population_size - elite_count))
        if children % 2 != 0:
            children -= 1
        mutants = population_size - (elite_count + children)
        return cls(elite=elite_count, children=children, mutants=mutants)

    @property
    def population_size(self) -> int:
        return self.elite + self.children + self.mutants

    @property
    def n_parents(self) -> int:
        return self.children + self.mutants

    @property
    def elite_slice(self) -> slice:
        return slice(0, self.elite)

    @property
    def children_slice(self) -> slice:
        return slice(self.elite, self.elite + self.children)

    @property
    def mutants_slice(self) -> slice:
        return slice(self.elite + self.children, self.population_size)

    @property
    def offspring_slice(self) -> slice:
        """Children and mutants together; the part evaluated each generation."""
        return slice(self.elite, self.population_size)


@dataclass
class RunState:
    """Mutable per-run record owned by the engine."""

    reproduction: ReproductionCount
    generation: int = 0
    start_time: float = field(default_factory=time.monotonic)
    stall_time: float = field(default_factory=time.monotonic)
    generation_time: float = field(default_factory=time.monotonic)
    stall_generations: int = 0

    population: Optional[np.ndarray] = None
    fitness: Optional[np.ndarray] = None
    fun_val: Optional[np.ndarray] = None
    con_val: Optional[np.ndarray] = None
    con_norm_val: Optional[np.ndarray] = None
    con_sum_val: Optional[np.ndarray] = None
    parents: Optional[np.ndarray] = None
    current_elite: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=int))

    best: List[float] = field(default_factory=list)
    feasible: List[bool] = field(default_factory=list)
    time: List[float] = field(default_factory=list)
    best_x: List[np.ndarray] = field(default_factory=list)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    @property
    def stall_elapsed(self) -> float:
        return time.monotonic() - self.stall_time

    @property
    def any_feasible_generation(self) -> bool:
        return any(self.feasible)

    def reset_stall(self) -> None:
        self.stall_generations = 0
        self.stall_time = time.monotonic()


@dataclass(frozen=True)
class ProgressReport:
    """Snapshot handed to the progress hook once per generation."""
    generation: int
    best: float
    feasible: bool
    stall_generations: int
    max_constraint: Optional[float] = None


@dataclass(frozen=True)
class Solution:
    """Final result of a run."""

    generations: int
    x: np.ndarray
    fval: float
    feasible: bool
    stopping_criteria: StopCode
    best_history: List[float] = field(default_factory=list)
    feasible_history: List[bool] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert solution to dictionary representation."""
        return {
            "generations": self.generations,
            "x": self.x.tolist(),
            "fval": self.fval,
            "feasible": self.feasible,
            "stopping_criteria": int(self.stopping_criteria),
            "best_history": list(self.best_history),
            "feasible_history": list(self.feasible_history)
        }
