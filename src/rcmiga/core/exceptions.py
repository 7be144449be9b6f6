"""
Exceptions raised by the RCMIGA optimizer.
"""

from typing import Any, Dict, Optional


class RCMIGAError(Exception):
    """Base exception for optimizer errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(RCMIGAError, ValueError):
    """Problem or options are invalid; raised before any generation runs."""


class EvaluationError(RCMIGAError):
    """Fitness or constraint output could not be interpreted."""
