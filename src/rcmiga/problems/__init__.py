"""
Named benchmark problems for the RCMIGA optimizer.
"""

from src.rcmiga.problems.base import BenchmarkProblem, register_problem, get_problem, list_problems
from src.rcmiga.problems import benchmarks

__all__ = [
    "BenchmarkProblem",
    "register_problem",
    "get_problem",
    "list_problems",
    "benchmarks",
]
