"""
RCMIGA Configuration Module.

This module defines the option groups of the real-coded mixed-integer genetic
algorithm: population and reproduction parameters, operator shape parameters,
variable bounds, stopping criteria, evaluation strategy and display settings.
Options whose defaults depend on the problem size are left as ``None`` and
resolved against the number of decision variables.
"""

import json
import math
import os
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    field_validator,
    model_validator,
)

from src.rcmiga.core.exceptions import ConfigurationError


class EvolutionParameters(BaseModel):
    """Population size and reproduction partition."""

    model_config = ConfigDict(validate_assignment=True)

    population_size: Optional[int] = Field(
        default=None,
        ge=2,
        description="Number of individuals (None: 50 for nvars <= 5, else 200)"
    )
    elite_count: Optional[int] = Field(
        default=None,
        ge=0,
        description="Individuals carried unchanged to the next generation "
                    "(None: ceil(0.05 * population_size))"
    )
    crossover_fraction: float = Field(
        default=0.8,
        ge=0.0,
        le=1.0,
        description="Fraction of the non-elite slice produced by crossover"
    )

    def resolve_population_size(self, nvars: int) -> int:
        if self.population_size is not None:
            return self.population_size
        return 50 if nvars <= 5 else 200

    def resolve_elite_count(self, population_size: int) -> int:
        if self.elite_count is not None:
            return self.elite_count
        return int(math.ceil(0.05 * population_size))


class OperatorParameters(BaseModel):
    """Shape parameters of the Laplace crossover and power mutation."""

    a: float = Field(default=0.0, description="Laplace location parameter")
    b_real: float = Field(
        default=0.15,
        gt=0.0,
        description="Laplace scale for real variables"
    )
    b_integer: float = Field(
        default=0.35,
        gt=0.0,
        description="Laplace scale for integer variables"
    )
    p_real: float = Field(
        default=10.0,
        gt=0.0,
        description="Power mutation index for real variables"
    )
    p_integer: float = Field(
        default=4.0,
        gt=0.0,
        description="Power mutation index for integer variables"
    )


class BoundsConfig(BaseModel):
    """Variable bounds; a run without both vectors is unbounded."""

    lb: Optional[List[float]] = Field(
        default=None,
        description="Lower bound per variable"
    )
    ub: Optional[List[float]] = Field(
        default=None,
        description="Upper bound per variable"
    )
    initial_unbounded_range: Optional[List[Tuple[float, float]]] = Field(
        default=None,
        description="Per-variable [lo, hi] used only to seed unbounded runs "
                    "(None: [0, 1] for every variable)"
    )

    @model_validator(mode="after")
    def check_pairs(self) -> "BoundsConfig":
        if (self.lb is None) != (self.ub is None):
            raise ValueError("lb and ub must be given together")
        if self.lb is not None and len(self.lb) != len(self.ub):
            raise ValueError("lb and ub must have the same length")
        if self.lb is not None and any(l > u for l, u in zip(self.lb, self.ub)):
            raise ValueError("lb must not exceed ub")
        if self.initial_unbounded_range is not None:
            for lo, hi in self.initial_unbounded_range:
                if lo > hi:
                    raise ValueError("Initial unbounded range must satisfy lo <= hi")
        return self

    @property
    def bounded(self) -> bool:
        return self.lb is not None and self.ub is not None


class StoppingConfig(BaseModel):
    """Stopping criteria thresholds."""

    model_config = ConfigDict(validate_assignment=True)

    max_generations: Optional[int] = Field(
        default=None,
        ge=1,
        description="Maximum number of generations (None: 100 * nvars)"
    )
    max_time: float = Field(
        default=math.inf,
        gt=0.0,
        description="Maximum wall time in seconds"
    )
    fitness_limit: float = Field(
        default=-math.inf,
        description="Stop once a feasible best reaches this value"
    )
    function_tolerance: float = Field(
        default=1e-6,
        description="Minimum improvement over the stall window"
    )
    max_stall_generations: int = Field(
        default=50,
        ge=2,
        description="Generations without improvement before stopping"
    )
    max_stall_time: float = Field(
        default=math.inf,
        gt=0.0,
        description="Seconds without improvement before stopping"
    )

    def resolve_max_generations(self, nvars: int) -> int:
        if self.max_generations is not None:
            return self.max_generations
        return 100 * nvars


class ParallelizationConfig(BaseModel):
    """Evaluation strategy selection."""

    use_vectorized: StrictBool = Field(
        default=False,
        description="Call the problem functions once with the whole batch"
    )
    use_parallel: StrictBool = Field(
        default=False,
        description="Fan the batch out to a worker pool"
    )
    num_workers: Optional[int] = Field(
        default=None,
        ge=1,
        description="Number of parallel workers (None for auto)"
    )
    backend: Literal["thread", "process"] = Field(
        default="thread",
        description="Worker pool kind; process workers need picklable functions"
    )


class EvaluationConfig(BaseModel):
    """Policy for exceptions raised by fitness or constraint functions."""

    error_policy: Literal["raise", "penalize"] = Field(
        default="raise",
        description="Abort the run, or mark failing individuals as infinitely bad"
    )
    max_retries: int = Field(
        default=0,
        ge=0,
        description="Retries of a failing evaluation before the policy applies"
    )


class LoggingConfig(BaseModel):
    """Configuration for progress display and logging."""

    display: Literal["iter", "final", "off"] = Field(
        default="iter",
        description="Per-generation table, final summary only, or nothing"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )
    header_interval: int = Field(
        default=20,
        ge=1,
        description="Generations between repeated table headers"
    )


class RCMIGAConfig(BaseModel):
    """Main configuration class for the optimizer."""

    model_config = ConfigDict(
        validate_assignment=True,
        extra='forbid'
    )

    evolution: EvolutionParameters = Field(
        default_factory=EvolutionParameters,
        description="Population and reproduction parameters"
    )
    operators: OperatorParameters = Field(
        default_factory=OperatorParameters,
        description="Crossover and mutation parameters"
    )
    bounds: BoundsConfig = Field(
        default_factory=BoundsConfig,
        description="Variable bounds"
    )
    stopping: StoppingConfig = Field(
        default_factory=StoppingConfig,
        description="Stopping criteria"
    )
    parallelization: ParallelizationConfig = Field(
        default_factory=ParallelizationConfig,
        description="Evaluation strategy"
    )
    evaluation: EvaluationConfig = Field(
        default_factory=EvaluationConfig,
        description="Evaluation error policy"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Display and logging configuration"
    )

    random_seed: str = Field(
        default="rcmiga",
        description="Seed string of the random stream"
    )
    generation_pause: float = Field(
        default=0.0,
        ge=0.0,
        description="Seconds to yield to the event loop between generations"
    )

    @field_validator('random_seed', mode='before')
    def coerce_seed(cls, v):
        """Accept integer seeds for convenience."""
        if isinstance(v, int):
            return str(v)
        return v

    @classmethod
    def from_env(cls) -> "RCMIGAConfig":
        """Create configuration from environment variables."""
        config_dict: Dict[str, Any] = {}

        if pop_size := os.getenv("RCMIGA_POPULATION_SIZE"):
            config_dict.setdefault("evolution", {})["population_size"] = int(pop_size)
        if elite_count := os.getenv("RCMIGA_ELITE_COUNT"):
            config_dict.setdefault("evolution", {})["elite_count"] = int(elite_count)
        if crossover_fraction := os.getenv("RCMIGA_CROSSOVER_FRACTION"):
            config_dict.setdefault("evolution", {})["crossover_fraction"] = float(crossover_fraction)

        if max_generations := os.getenv("RCMIGA_MAX_GENERATIONS"):
            config_dict.setdefault("stopping", {})["max_generations"] = int(max_generations)
        if max_time := os.getenv("RCMIGA_MAX_TIME"):
            config_dict.setdefault("stopping", {})["max_time"] = float(max_time)

        if num_workers := os.getenv("RCMIGA_NUM_WORKERS"):
            config_dict.setdefault("parallelization", {})["num_workers"] = int(num_workers)

        if display := os.getenv("RCMIGA_DISPLAY"):
            config_dict.setdefault("logging", {})["display"] = display

        if random_seed := os.getenv("RCMIGA_RANDOM_SEED"):
            config_dict["random_seed"] = random_seed

        return cls(**config_dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump()

    def save(self, filepath: str) -> None:
        """Save configuration to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2, default=str)

    @classmethod
    def load(cls, filepath: str) -> "RCMIGAConfig":
        """Load configuration from JSON file."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls(**data)

    def validate_consistency(self, nvars: int) -> None:
        """Validate the options against the problem dimension."""
        bounds = self.bounds
        if bounds.bounded and (len(bounds.lb) != nvars or len(bounds.ub) != nvars):
            raise ConfigurationError(
                f"Problem bounds have invalid dimension: expected {nvars}, "
                f"got lb={len(bounds.lb)}, ub={len(bounds.ub)}"
            )
        if bounds.initial_unbounded_range is not None and \
           len(bounds.initial_unbounded_range) != nvars:
            raise ConfigurationError(
                f"Initial unbounded range has {len(bounds.initial_unbounded_range)} "
                f"entries, expected {nvars}"
            )

        population_size = self.evolution.resolve_population_size(nvars)
        elite_count = self.evolution.resolve_elite_count(population_size)
        if elite_count > population_size:
            raise ConfigurationError(
                f"Elite count ({elite_count}) must not exceed "
                f"population size ({population_size})"
            )


# Convenience functions
def create_default_config() -> RCMIGAConfig:
    """Create a default configuration suitable for most use cases."""
    return RCMIGAConfig()


def create_test_config() -> RCMIGAConfig:
    """Create a configuration suitable for testing (smaller, quiet)."""
    return RCMIGAConfig(
        evolution=EvolutionParameters(
            population_size=20,
            elite_count=2
        ),
        stopping=StoppingConfig(
            max_generations=20
        ),
        logging=LoggingConfig(
            display="off"
        )
    )
