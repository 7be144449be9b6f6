"""
Registry of named optimization problems.

Registered problems are referenced by name from the command line. Their
functions are module-level, so they can also be shipped to process workers.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from src.rcmiga.core.config import BoundsConfig, RCMIGAConfig
from src.rcmiga.core.problem import Problem


@dataclass(frozen=True)
class BenchmarkProblem:
    """A problem together with its bounds and known optimum."""

    problem: Problem
    description: str
    lb: Optional[Sequence[float]] = None
    ub: Optional[Sequence[float]] = None
    optimum: Optional[float] = None
    tags: List[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.problem.name

    def default_config(self, **overrides: Any) -> RCMIGAConfig:
        """Options with this problem's bounds, updated with ``overrides``."""
        data: Dict[str, Any] = {}
        if self.lb is not None:
            data["bounds"] = BoundsConfig(lb=list(self.lb), ub=list(self.ub))
        data.update(overrides)
        return RCMIGAConfig(**data)


_REGISTRY: Dict[str, BenchmarkProblem] = {}


def register_problem(benchmark: BenchmarkProblem) -> BenchmarkProblem:
    """Add a problem to the registry; names must be unique."""
    if benchmark.name in _REGISTRY:
        raise ValueError(f"Problem '{benchmark.name}' is already registered")
    _REGISTRY[benchmark.name] = benchmark
    return benchmark


def get_problem(name: str) -> BenchmarkProblem:
    try:
        return _REGISTRY[name]
    except KeyError:
        raise KeyError(
            f"Unknown problem '{name}'. Available: {', '.join(list_problems())}"
        ) from None


def list_problems() -> List[str]:
    return sorted(_REGISTRY)
