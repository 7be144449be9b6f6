"""
RCMIGA - Source Package

This package contains the real-coded mixed-integer genetic algorithm and the
application configuration around it.
"""

__version__ = "1.0.0"

# Package-level imports for convenience
from src.core.config import settings

__all__ = [
    "settings",
    "__version__",
]
