"""
Exceptions raised by the building stock data processing.

Invalid arguments are reported with `utils.validation.ValidationError`,
everything that goes wrong while processing the data derives from
`BuildingStockDataError`.
"""

from typing import Optional, Tuple


class BuildingStockDataError(Exception):
    """Base class for data processing errors."""


class MissingDataError(BuildingStockDataError, KeyError):
    """A reference required by the computation is absent from the repository."""

    def __str__(self) -> str:
        # KeyError would repr() the message
        return str(self.args[0]) if self.args else ""


class NoApplicableDataError(BuildingStockDataError, LookupError):
    """The period relaxation search found nothing for an aggregation cell."""

    def __init__(self, message: str, key: Tuple[str, ...] = (), probes: int = 0):
        super().__init__(message)
        self.key = key
        self.probes = probes


class WeightSumError(BuildingStockDataError):
    """Aggregation weights do not sum up to one."""

    def __init__(self, message: str, key: Tuple[str, ...] = (), total: Optional[float] = None):
        super().__init__(message)
        self.key = key
        self.total = total


class IntegrityError(BuildingStockDataError):
    """Raised in strict mode when the input data has integrity violations."""

    def __init__(self, message: str, report=None):
        super().__init__(message)
        self.report = report
