"""Integrity checks of the raw input data."""

from .checks import CHECKS, validate_repository
from .report import IntegrityReport, IntegrityViolation, ViolationCategory

__all__ = [
    "CHECKS",
    "validate_repository",
    "IntegrityReport",
    "IntegrityViolation",
    "ViolationCategory",
]
