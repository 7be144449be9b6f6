"""
Constraint handling for the RCMIGA optimizer.

Raw constraint values are normalized row by row against a running scale and
summed into a per-individual violation. The violation is folded into the
fitness in two phases: while no individual is feasible the search minimizes
the violation alone; once feasible individuals exist, infeasible ones are
ranked behind the worst elite feasible individual.
"""

from typing import Optional

import numpy as np


class ConstraintHandler:
    """Adaptive constraint normalization and penalty."""

    def __init__(self, elite_count: int):
        self.elite_count = elite_count
        self.scale: Optional[np.ndarray] = None

    def normalize(self, con_val: np.ndarray, update_scale: bool) -> np.ndarray:
        """
        Normalize an ``m x n`` constraint matrix.

        Satisfied (negative), NaN and infinite entries are zeroed before the
        row norms are taken. The scale of each row only grows, and only while
        ``update_scale`` is set. NaN and infinite entries come out as a
        normalized violation of 1.
        """
        raw = np.asarray(con_val, dtype=float)
        invalid = ~np.isfinite(raw)
        clean = np.where(invalid | (raw < 0), 0.0, raw)

        if update_scale or self.scale is None:
            norms = np.sqrt(np.sum(clean ** 2, axis=1))
            if self.scale is None:
                self.scale = norms
            else:
                self.scale = np.maximum(self.scale, norms)

        divisor = np.where(self.scale > 0, self.scale, 1.0)
        normalized = clean / divisor[:, None]
        normalized[invalid] = 1.0
        return normalized

    @staticmethod
    def violation(con_norm_val: np.ndarray) -> np.ndarray:
        """Per-individual sum of normalized violations."""
        return np.sum(con_norm_val, axis=0)

    def penalize(self, fitness: np.ndarray, con_sum_val: np.ndarray) -> np.ndarray:
        """Merge constraint violation into fitness."""
        fitness = np.asarray(fitness, dtype=float)
        con_sum_val = np.asarray(con_sum_val, dtype=float)
        feasible = con_sum_val == 0

        if not feasible.any():
            return con_sum_val.copy()

        ranked = np.sort(fitness[feasible])
        if self.elite_count > 0:
            # no better than the worst elite
            f_elite = ranked[:self.elite_count][-1]
        else:
            # no better than the best feasible individual
            f_elite = ranked[0]

        fun_val = fitness.copy()
        infeasible = ~feasible
        fun_val[infeasible] = np.maximum(fitness[infeasible], f_elite) + con_sum_val[infeasible]
        return fun_val
