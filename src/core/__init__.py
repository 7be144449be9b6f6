"""
Core functionality for the RCMIGA optimizer.

This package contains application-wide configuration shared by the entry
point and the optimizer.
"""

from src.core.config import settings

__all__ = [
    "settings",
]
