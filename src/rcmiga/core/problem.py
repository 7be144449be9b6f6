"""
Problem definition for the RCMIGA optimizer.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence, Tuple

import numpy as np

from src.rcmiga.core.exceptions import ConfigurationError


FitnessFunction = Callable[[np.ndarray], float]
ConstraintFunction = Callable[[np.ndarray], Sequence[float]]


@dataclass(frozen=True)
class Problem:
    """
    An optimization problem: minimize ``fitness_fcn(x)`` over ``nvars``
    variables, subject to ``nonlcon_fcn(x) <= 0`` componentwise when a
    constraint function is given.

    In vectorized mode both functions receive an ``nvars x n`` matrix and
    must return ``n`` fitness values and an ``m x n`` constraint matrix.
    """

    nvars: int
    fitness_fcn: FitnessFunction
    nonlcon_fcn: Optional[ConstraintFunction] = None
    int_con: Tuple[int, ...] = field(default_factory=tuple)
    name: str = "problem"

    def __post_init__(self):
        if not isinstance(self.nvars, (int, np.integer)) or self.nvars < 1:
            raise ConfigurationError(f"nvars must be a positive integer, got {self.nvars!r}")
        if not callable(self.fitness_fcn):
            raise ConfigurationError("fitness_fcn must be callable")
        if self.nonlcon_fcn is not None and not callable(self.nonlcon_fcn):
            raise ConfigurationError("nonlcon_fcn must be callable")

        int_con = tuple(sorted({int(i) for i in (self.int_con or ())}))
        invalid = [i for i in int_con if i < 0 or i >= self.nvars]
        if invalid:
            raise ConfigurationError(
                f"Integer constraint indices {invalid} out of range [0, {self.nvars})"
            )
        object.__setattr__(self, "int_con", int_con)

    @property
    def constrained(self) -> bool:
        return self.nonlcon_fcn is not None
