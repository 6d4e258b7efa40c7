"""
Argument validation utilities.

Every tunable coefficient of the processing is checked here before any
computation starts, so a bad weight or period is reported once with the
offending field name instead of surfacing as a nonsensical U-value later.

Usage:
    from building_stock_data.utils.validation import (
        validate_weight,
        ValidationError,
    )

    weight = validate_weight(0.5, field="thermal_conductivity_weight")
"""

import math
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)


class ValidationError(ValueError):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: str = "", suggestions: Optional[List[str]] = None):
        super().__init__(message)
        self.field = field
        self.suggestions = suggestions or []


def _require_number(value, field: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        try:
            value = float(value)
        except (ValueError, TypeError):
            raise ValidationError(
                f"`{field}` must be a number: got '{value}'",
                field=field,
            )
    if math.isnan(value):
        raise ValidationError(f"`{field}` must not be NaN", field=field)
    return float(value)


def validate_weight(weight: float, field: str = "weight") -> float:
    """
    Validate a sampling weight between a minimum and a maximum value.

    Args:
        weight: Weight to validate, 0 selects the minimum and 1 the maximum
        field: Name of the validated parameter, used in the error

    Returns:
        Validated weight as float

    Raises:
        ValidationError: If the weight is not a number within [0, 1]
    """
    weight = _require_number(weight, field)
    if not 0.0 <= weight <= 1.0:
        raise ValidationError(
            f"`{field}` must be between 0 and 1: got {weight}",
            field=field,
            suggestions=["Use 0 for the minimum value, 1 for the maximum value"],
        )
    return weight


def validate_variation_period(period_s: float, field: str = "variation_period") -> float:
    """
    Validate the "period of variations" of EN ISO 13786 in seconds.

    Raises:
        ValidationError: If the period is not strictly positive
    """
    period_s = _require_number(period_s, field)
    if period_s <= 0:
        raise ValidationError(
            f"`{field}` must be positive: got {period_s}",
            field=field,
            suggestions=["A diurnal cycle is 86400 seconds"],
        )
    return period_s


def validate_lookback(
    lookback_if_empty: int,
    max_lookbacks: int,
) -> tuple:
    """
    Validate the period relaxation step [years] and the number of relaxations.

    Returns:
        Tuple of (lookback_if_empty, max_lookbacks)

    Raises:
        ValidationError: If the step is not a positive integer or the count is negative
    """
    if isinstance(lookback_if_empty, bool) or not isinstance(lookback_if_empty, int):
        raise ValidationError(
            f"`lookback_if_empty` must be an integer: got '{lookback_if_empty}'",
            field="lookback_if_empty",
        )
    if lookback_if_empty <= 0:
        raise ValidationError(
            f"`lookback_if_empty` must be positive: got {lookback_if_empty}",
            field="lookback_if_empty",
        )
    if isinstance(max_lookbacks, bool) or not isinstance(max_lookbacks, int):
        raise ValidationError(
            f"`max_lookbacks` must be an integer: got '{max_lookbacks}'",
            field="max_lookbacks",
        )
    if max_lookbacks < 0:
        raise ValidationError(
            f"`max_lookbacks` must not be negative: got {max_lookbacks}",
            field="max_lookbacks",
        )
    return lookback_if_empty, max_lookbacks
