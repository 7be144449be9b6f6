"""
RCMIGA - Real-Coded Mixed-Integer Genetic Algorithm.

This module implements a genetic algorithm for minimizing a scalar objective
over real and integer variables, with optional box bounds and nonlinear
inequality constraints handled by an adaptive penalty.
"""

from src.rcmiga.core.config import (
    RCMIGAConfig,
    EvolutionParameters,
    OperatorParameters,
    BoundsConfig,
    StoppingConfig,
    ParallelizationConfig,
    EvaluationConfig,
    LoggingConfig,
    create_default_config,
    create_test_config
)
from src.rcmiga.core.problem import Problem
from src.rcmiga.core.state import StopCode, ProgressReport, Solution
from src.rcmiga.core.engine import RCMIGAEngine, optimize
from src.rcmiga.core.exceptions import RCMIGAError, ConfigurationError, EvaluationError

__version__ = "1.0.0"

__all__ = [
    # Configuration
    "RCMIGAConfig",
    "EvolutionParameters",
    "OperatorParameters",
    "BoundsConfig",
    "StoppingConfig",
    "ParallelizationConfig",
    "EvaluationConfig",
    "LoggingConfig",
    "create_default_config",
    "create_test_config",
    # Problem
    "Problem",
    # Results
    "StopCode",
    "ProgressReport",
    "Solution",
    # Engine
    "RCMIGAEngine",
    "optimize",
    # Errors
    "RCMIGAError",
    "ConfigurationError",
    "EvaluationError",
]
