"""
Benchmark problems.

Every function accepts either one individual (shape ``(nvars,)``) or a batch
(shape ``(nvars, n)``), so the problems work with all evaluation strategies.
"""

import numpy as np

from src.rcmiga.core.problem import Problem
from src.rcmiga.problems.base import BenchmarkProblem, register_problem


def sphere(x: np.ndarray):
    x = np.asarray(x, dtype=float)
    return np.sum(x ** 2, axis=0)


def rastrigin(x: np.ndarray):
    x = np.asarray(x, dtype=float)
    return 10.0 * x.shape[0] + np.sum(x ** 2 - 10.0 * np.cos(2.0 * np.pi * x), axis=0)


def rosenbrock(x: np.ndarray):
    x = np.asarray(x, dtype=float)
    return np.sum(100.0 * (x[1:] - x[:-1] ** 2) ** 2 + (1.0 - x[:-1]) ** 2, axis=0)


def shifted_quadratic(x: np.ndarray):
    """Minimum 0 at (2.5, 3, -1.2); the second variable is integer."""
    x = np.asarray(x, dtype=float)
    return (x[0] - 2.5) ** 2 + (x[1] - 3.0) ** 2 + (x[2] + 1.2) ** 2


def linear_objective(x: np.ndarray):
    x = np.asarray(x, dtype=float)
    return x[0] + x[1]


def unit_disk(x: np.ndarray):
    """Feasible inside the unit disk."""
    x = np.asarray(x, dtype=float)
    return np.atleast_1d(x[0] ** 2 + x[1] ** 2 - 1.0)


def rosenbrock_2d(x: np.ndarray):
    x = np.asarray(x, dtype=float)
    return 100.0 * (x[0] ** 2 - x[1]) ** 2 + (1.0 - x[0]) ** 2


def hyperbola_constraints(x: np.ndarray):
    x = np.asarray(x, dtype=float)
    return np.array([
        1.5 + x[0] * x[1] + x[0] - x[1],
        -x[0] * x[1] + 10.0
    ])


SPHERE = register_problem(BenchmarkProblem(
    problem=Problem(nvars=3, fitness_fcn=sphere, name="sphere"),
    description="Sum of squares, minimum 0 at the origin",
    lb=[-5.0] * 3,
    ub=[5.0] * 3,
    optimum=0.0,
    tags=["unconstrained", "real"]
))

RASTRIGIN = register_problem(BenchmarkProblem(
    problem=Problem(nvars=2, fitness_fcn=rastrigin, name="rastrigin"),
    description="Multimodal Rastrigin function, minimum 0 at the origin",
    lb=[-5.12] * 2,
    ub=[5.12] * 2,
    optimum=0.0,
    tags=["unconstrained", "real", "multimodal"]
))

ROSENBROCK = register_problem(BenchmarkProblem(
    problem=Problem(nvars=2, fitness_fcn=rosenbrock, name="rosenbrock"),
    description="Rosenbrock valley, minimum 0 at (1, 1)",
    lb=[-2.0] * 2,
    ub=[2.0] * 2,
    optimum=0.0,
    tags=["unconstrained", "real"]
))

MIXED_INTEGER_QUADRATIC = register_problem(BenchmarkProblem(
    problem=Problem(nvars=3, fitness_fcn=shifted_quadratic, int_con=(1,),
                    name="mixed-integer-quadratic"),
    description="Shifted quadratic with one integer variable, minimum 0",
    lb=[-10.0] * 3,
    ub=[10.0] * 3,
    optimum=0.0,
    tags=["unconstrained", "mixed-integer"]
))

DISK_LINEAR = register_problem(BenchmarkProblem(
    problem=Problem(nvars=2, fitness_fcn=linear_objective, nonlcon_fcn=unit_disk,
                    name="disk-linear"),
    description="Minimize x0 + x1 inside the unit disk, minimum -sqrt(2)",
    lb=[-2.0] * 2,
    ub=[2.0] * 2,
    optimum=-float(np.sqrt(2.0)),
    tags=["constrained", "real"]
))

CONSTRAINED_ROSENBROCK = register_problem(BenchmarkProblem(
    problem=Problem(nvars=2, fitness_fcn=rosenbrock_2d, nonlcon_fcn=hyperbola_constraints,
                    int_con=(1,), name="constrained-rosenbrock"),
    description="Rosenbrock with two nonlinear constraints and an integer second variable",
    lb=[0.0, 0.0],
    ub=[1.0, 13.0],
    tags=["constrained", "mixed-integer"]
))
