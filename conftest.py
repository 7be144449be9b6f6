"""
PyTest configuration and fixtures for the RCMIGA optimizer.

This module provides shared test fixtures: quiet optimizer configurations,
small problems and a Logfire setup that sends nothing.
"""

import os
import sys

import numpy as np
import pytest
import logfire

# Add project root to Python path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from src.core.config import settings
from src.rcmiga.core.config import (
    BoundsConfig,
    RCMIGAConfig,
    create_test_config,
)
from src.rcmiga.core.problem import Problem


# Override settings for testing
settings.environment = "testing"
settings.logfire_environment = "testing"

logfire.configure(send_to_logfire=False, console=False)


def quadratic(x):
    x = np.asarray(x, dtype=float)
    return np.sum(x ** 2, axis=0)


def always_violated(x):
    return np.array([1.0])


# Configuration fixtures
@pytest.fixture
def test_config() -> RCMIGAConfig:
    """Small, quiet optimizer configuration."""
    return create_test_config()


@pytest.fixture
def bounded_config() -> RCMIGAConfig:
    """Test configuration with bounds [-5, 5] on three variables."""
    config = create_test_config()
    config.bounds = BoundsConfig(lb=[-5.0] * 3, ub=[5.0] * 3)
    return config


# Problem fixtures
@pytest.fixture
def sphere_problem() -> Problem:
    return Problem(nvars=3, fitness_fcn=quadratic, name="sphere")


@pytest.fixture
def mixed_integer_problem() -> Problem:
    return Problem(nvars=3, fitness_fcn=quadratic, int_con=(0, 2), name="mixed")


@pytest.fixture
def infeasible_problem() -> Problem:
    return Problem(nvars=3, fitness_fcn=quadratic, nonlcon_fcn=always_violated,
                   name="infeasible")


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(12345)

