"""
Unit tests for constraint normalization and the adaptive penalty.
"""

import numpy as np

from src.rcmiga.core.constraints import ConstraintHandler


class TestNormalization:
    """Test suite for constraint normalization."""

    def test_rows_are_scaled_by_their_norm(self):
        handler = ConstraintHandler(elite_count=1)
        con_val = np.array([[1.0, -1.0, 3.0],
                            [0.0, 2.0, -5.0]])

        normalized = handler.normalize(con_val, update_scale=True)

        np.testing.assert_allclose(handler.scale, [np.sqrt(10.0), 2.0])
        np.testing.assert_allclose(normalized[0], [1 / np.sqrt(10.0), 0.0, 3 / np.sqrt(10.0)])
        np.testing.assert_allclose(normalized[1], [0.0, 1.0, 0.0])

    def test_invalid_entries_count_as_unit_violation(self):
        handler = ConstraintHandler(elite_count=1)
        con_val = np.array([[np.nan, 2.0, np.inf]])

        normalized = handler.normalize(con_val, update_scale=True)

        assert handler.scale.tolist() == [2.0]
        assert normalized.tolist() == [[1.0, 1.0, 1.0]]

    def test_satisfied_rows_do_not_divide_by_zero(self):
        handler = ConstraintHandler(elite_count=1)

        normalized = handler.normalize(np.array([[-1.0, -2.0]]), update_scale=True)

        assert normalized.tolist() == [[0.0, 0.0]]

    def test_scale_only_grows(self):
        handler = ConstraintHandler(elite_count=1)
        handler.normalize(np.array([[3.0, 4.0]]), update_scale=True)

        handler.normalize(np.array([[1.0, 0.0]]), update_scale=True)

        assert handler.scale.tolist() == [5.0]

    def test_scale_is_frozen_when_not_updating(self):
        handler = ConstraintHandler(elite_count=1)
        handler.normalize(np.array([[3.0, 4.0]]), update_scale=True)

        normalized = handler.normalize(np.array([[10.0, 0.0]]), update_scale=False)

        assert handler.scale.tolist() == [5.0]
        assert normalized.tolist() == [[2.0, 0.0]]

    def test_violation_sums_columns(self):
        con_norm_val = np.array([[0.5, 0.0, 0.0],
                                 [0.25, 0.0, 1.0]])

        assert ConstraintHandler.violation(con_norm_val).tolist() == [0.75, 0.0, 1.0]


class TestPenalty:
    """Test suite for the two-phase penalty."""

    def test_no_feasible_individual_minimizes_violation(self):
        handler = ConstraintHandler(elite_count=2)
        con_sum_val = np.array([0.3, 1.2, 0.7])

        fun_val = handler.penalize(np.array([-10.0, 0.0, 5.0]), con_sum_val)

        np.testing.assert_array_equal(fun_val, con_sum_val)
        assert fun_val is not con_sum_val

    def test_infeasible_ranked_behind_worst_elite(self):
        handler = ConstraintHandler(elite_count=2)
        fitness = np.array([5.0, 1.0, 3.0, 0.0])
        con_sum_val = np.array([0.0, 0.0, 0.5, 2.0])

        fun_val = handler.penalize(fitness, con_sum_val)

        assert fun_val.tolist() == [5.0, 1.0, 5.5, 7.0]

    def test_without_elites_best_feasible_is_the_floor(self):
        handler = ConstraintHandler(elite_count=0)
        fitness = np.array([5.0, 1.0, 3.0, 0.0])
        con_sum_val = np.array([0.0, 0.0, 0.5, 2.0])

        fun_val = handler.penalize(fitness, con_sum_val)

        assert fun_val.tolist() == [5.0, 1.0, 3.5, 3.0]

    def test_elite_count_larger_than_feasible_set(self):
        handler = ConstraintHandler(elite_count=5)
        fitness = np.array([2.0, 4.0, -1.0])
        con_sum_val = np.array([0.0, 0.0, 0.1])

        fun_val = handler.penalize(fitness, con_sum_val)

        assert fun_val[2] > max(fun_val[:2])

    def test_feasible_values_are_unchanged(self):
        handler = ConstraintHandler(elite_count=1)
        fitness = np.array([2.0, -3.0, 8.0])

        fun_val = handler.penalize(fitness, np.zeros(3))

        np.testing.assert_array_equal(fun_val, fitness)
