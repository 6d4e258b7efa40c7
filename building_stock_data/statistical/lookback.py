"""
Period relaxation search for relevant source data.

Structures and ventilation/fenestration sources are dated by the year of
their source. Data for a building period is searched within
`[period_start, period_end]`, and if nothing is found, `period_start` is
relaxed by `lookback_if_empty` years at a time, `max_lookbacks` times at
most. Older data is assumed to remain representative for newer buildings,
never the other way around.

Usage:
    result = find_relevant_entries(
        catalog, period, year_of=lambda s: s.year,
        predicate=lambda s: s.structure_type == "exterior_wall",
    )
    if result.found:
        ...
"""

from dataclasses import dataclass, field
from typing import Callable, Generic, Iterable, List, Optional, Tuple, TypeVar
import logging

from ..core.errors import MissingDataError, NoApplicableDataError
from ..core.models import BuildingPeriod
from ..utils.validation import validate_lookback

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class LookbackResult(Generic[T]):
    """
    Outcome of a period relaxation search.

    Attributes:
        entries: Relevant entries, empty if the search was exhausted
        lookbacks: Relaxations used for the found entries, or the last one tried
        probes: Number of filtering passes performed
    """
    entries: Tuple[T, ...] = field(default_factory=tuple)
    lookbacks: int = 0
    probes: int = 0

    @property
    def found(self) -> bool:
        return len(self.entries) > 0

    @property
    def exhausted(self) -> bool:
        return not self.found

    def require(self, key: Tuple[str, ...] = (), what: str = "data") -> List[T]:
        """
        The found entries as a list.

        Raises:
            NoApplicableDataError: If the search was exhausted
        """
        if self.exhausted:
            cell = ":".join(key)
            raise NoApplicableDataError(
                f"No relevant {what} can be found for `{cell}` "
                f"after {self.probes} probes",
                key=key,
                probes=self.probes,
            )
        return list(self.entries)


def period_bounds(period: BuildingPeriod) -> Tuple[float, float]:
    if period.period_start is None or period.period_end is None:
        raise MissingDataError(
            f"`period_start` or `period_end` undefined for building period `{period.name}`"
        )
    return float(period.period_start), float(period.period_end)


def find_relevant_entries(
    candidates: Iterable[T],
    period: BuildingPeriod,
    year_of: Callable[[T], float],
    predicate: Optional[Callable[[T], bool]] = None,
    lookback_if_empty: int = 10,
    max_lookbacks: int = 20,
) -> LookbackResult[T]:
    """
    Find the candidates relevant for `period`, relaxing the period start if needed.

    Pass `n` keeps the candidates satisfying `predicate` whose year lies within
    `[period_start - n * lookback_if_empty, period_end]`, for `n` from 0 up to
    and including `max_lookbacks`. The first non-empty pass is returned.

    Args:
        candidates: Entries to search
        period: Building period to search data for
        year_of: Reference year of an entry
        predicate: Additional non-temporal filter
        lookback_if_empty: Relaxation step [years]
        max_lookbacks: Maximum number of relaxations

    Returns:
        LookbackResult, exhausted if no pass found anything

    Raises:
        ValidationError: If the lookback arguments are invalid
    """
    lookback_if_empty, max_lookbacks = validate_lookback(lookback_if_empty, max_lookbacks)
    start, end = period_bounds(period)
    pool = [c for c in candidates if predicate is None or predicate(c)]

    n = 0
    for n in range(max_lookbacks + 1):
        lower = start - n * lookback_if_empty
        entries = tuple(c for c in pool if lower <= year_of(c) <= end)
        if entries:
            if n > 0:
                logger.debug(
                    f"Found data for `{period.name}` after {n} lookbacks (from {lower:.0f})",
                    extra={"building_period": period.name},
                )
            return LookbackResult(entries=entries, lookbacks=n, probes=n + 1)
    return LookbackResult(entries=(), lookbacks=n, probes=max_lookbacks + 1)
