"""Utility modules."""

from .logging_config import (
    setup_logging,
    ConsoleFormatter,
    FileFormatter,
)
from .validation import (
    validate_weight,
    validate_variation_period,
    validate_lookback,
    ValidationError,
)
from .parallel import parallel_map

__all__ = [
    # Logging
    "setup_logging",
    "ConsoleFormatter",
    "FileFormatter",
    # Validation
    "validate_weight",
    "validate_variation_period",
    "validate_lookback",
    "ValidationError",
    # Concurrency
    "parallel_map",
]
