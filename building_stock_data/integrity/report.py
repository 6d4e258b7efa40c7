"""
Integrity violation report.

The validator collects every violation it finds instead of stopping at the
first one, so that a data curator can fix many issues per run.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional
import logging

from ..core.errors import IntegrityError

logger = logging.getLogger(__name__)


class ViolationCategory(Enum):
    """Types of integrity violations."""

    UNUSED_OBJECT = "unused_object"
    MISSING_REFERENCE = "missing_reference"
    PARAMETER_TYPE = "parameter_type"
    IMPLAUSIBLE_VALUE = "implausible_value"
    WEIGHT_SUM = "weight_sum"
    LAYER_SHAPE = "layer_shape"


@dataclass(frozen=True)
class IntegrityViolation:
    """A single failed integrity check."""

    category: ViolationCategory
    entity: str  # Class name of the checked entity
    key: str  # Checked object or relationship, members joined with `:`
    message: str

    def __str__(self) -> str:
        return f"[{self.category.value}] {self.entity} `{self.key}`: {self.message}"


@dataclass
class IntegrityReport:
    """All violations found by one validator run."""

    violations: List[IntegrityViolation] = field(default_factory=list)
    checks_run: List[str] = field(default_factory=list)

    def add(
        self,
        category: ViolationCategory,
        entity: str,
        key,
        message: str,
    ) -> None:
        if isinstance(key, tuple):
            key = ":".join(str(k) for k in key)
        self.violations.append(IntegrityViolation(category, entity, str(key), message))

    def check(
        self,
        condition: bool,
        category: ViolationCategory,
        entity: str,
        key,
        message: str,
    ) -> bool:
        """Record a violation unless `condition` holds, returns `condition`."""
        if not condition:
            self.add(category, entity, key, message)
        return bool(condition)

    @property
    def ok(self) -> bool:
        return not self.violations

    def __len__(self) -> int:
        return len(self.violations)

    def by_category(self, category: Optional[ViolationCategory] = None) -> List[IntegrityViolation]:
        if category is None:
            return list(self.violations)
        return [v for v in self.violations if v.category == category]

    def for_entity(self, entity: str) -> List[IntegrityViolation]:
        return [v for v in self.violations if v.entity == entity]

    def summary(self) -> Dict[str, int]:
        """Number of violations per category."""
        return dict(Counter(v.category.value for v in self.violations))

    def log(self, log: logging.Logger = logger) -> None:
        """Log every violation as a warning, followed by a summary."""
        for violation in self.violations:
            log.warning(str(violation))
        if self.ok:
            log.info(f"Integrity checks passed ({len(self.checks_run)} checks)")
        else:
            counts = ", ".join(f"{k}={v}" for k, v in sorted(self.summary().items()))
            log.info(f"Integrity checks found {len(self.violations)} violations ({counts})")

    def raise_if_any(self) -> None:
        """
        Raises:
            IntegrityError: If any violations were found
        """
        if not self.ok:
            raise IntegrityError(
                f"Input data has {len(self.violations)} integrity violations",
                report=self,
            )
