"""
Ventilation and fenestration statistics.

Ventilation and fenestration properties are sampled between the min and
max values of every relevant source, and averaged over the sources with
equal weights. Relevant sources are found with the same period relaxation
search as the structures, for the building type in question.

The infiltration rate follows the Finnish building code convention: the
n50 infiltration rate is divided by an infiltration factor accounting for
the typical number of storeys of the building type.
"""

from typing import Dict, List, Mapping, Optional, Tuple, TypeVar
import logging

from ..core.config import ProcessingParameters
from ..core.errors import MissingDataError, NoApplicableDataError
from ..core.models import FenestrationRecord, VentilationRecord
from ..core.repository import BuildingStockRepository
from ..utils.parallel import parallel_map
from ..utils.validation import validate_weight
from .lookback import find_relevant_entries
from .records import VentilationAndFenestrationStatistics, VentilationKey

logger = logging.getLogger(__name__)

R = TypeVar("R", VentilationRecord, FenestrationRecord)


def _value(record, name: str) -> float:
    value = getattr(record, name)
    if value is None:
        raise MissingDataError(
            f"`{name}` undefined for `{record.source}:{record.building_type}`"
        )
    return float(value)


def _sample(record, name: str, weight: float) -> float:
    """Sample `min_<name>` and `max_<name>` with `weight`, 0 = min, 1 = max."""
    return weight * _value(record, f"max_{name}") + (1.0 - weight) * _value(record, f"min_{name}")


def _mean(values: List[float]) -> float:
    return sum(values) / len(values)


def relevant_source_records(
    repository: BuildingStockRepository,
    records: Mapping[Tuple[str, str], R],
    building_period: str,
    building_type: str,
    lookback_if_empty: int = 10,
    max_lookbacks: int = 20,
    what: str = "sources",
) -> List[R]:
    """
    Records of `building_type` from the sources relevant for `building_period`.

    Raises:
        NoApplicableDataError: If the period relaxation search finds nothing
        MissingDataError: If the period or a source year is missing
    """
    period = repository.building_periods.get(building_period)
    if period is None:
        raise MissingDataError(f"Building period `{building_period}` not found")

    def year_of(record) -> float:
        year = repository.source_year(record.source)
        if year is None:
            raise MissingDataError(f"`source_year` undefined for source `{record.source}`")
        return float(year)

    result = find_relevant_entries(
        (r for (_, bt), r in records.items() if bt == building_type),
        period,
        year_of=year_of,
        lookback_if_empty=lookback_if_empty,
        max_lookbacks=max_lookbacks,
    )
    return result.require((building_type, building_period), what=what)


# =============================================================================
# MEAN PROPERTIES
# =============================================================================

def mean_ventilation_rate(records: List[VentilationRecord], weight: float = 0.5) -> float:
    """Mean ventilation rate [1/h] over the relevant ventilation sources."""
    weight = validate_weight(weight, field="ventilation_rate_weight")
    return _mean([_sample(r, "ventilation_rate_1_h", weight) for r in records])


def mean_infiltration_rate(
    records: List[VentilationRecord],
    n50_weight: float = 0.5,
    factor_weight: float = 0.5,
) -> float:
    """
    Mean infiltration rate [1/h] over the relevant ventilation sources.

    Per source: sampled n50 infiltration rate / sampled infiltration factor.
    """
    n50_weight = validate_weight(n50_weight, field="n50_infiltration_rate_weight")
    factor_weight = validate_weight(factor_weight, field="infiltration_factor_weight")
    return _mean(
        [
            _sample(r, "n50_infiltration_rate_1_h", n50_weight)
            / _sample(r, "infiltration_factor", factor_weight)
            for r in records
        ]
    )


def mean_hru_efficiency(records: List[VentilationRecord], weight: float = 0.5) -> float:
    """Mean heat recovery unit efficiency over the relevant ventilation sources."""
    weight = validate_weight(weight, field="HRU_efficiency_weight")
    return _mean([_sample(r, "HRU_efficiency", weight) for r in records])


def mean_window_U_value(records: List[FenestrationRecord]) -> float:
    """Mean window U-value [W/m2K], the middle of each source's range."""
    return _mean([_sample(r, "U_value_W_m2K", 0.5) for r in records])


def mean_total_normal_solar_energy_transmittance(records: List[FenestrationRecord]) -> float:
    """Mean solar energy transmittance of the glazing, accounting for the window frames."""
    return _mean(
        [
            (1.0 - _value(r, "frame_area_fraction")) * _value(r, "solar_energy_transmittance")
            for r in records
        ]
    )


# =============================================================================
# STATISTICS
# =============================================================================

def ventilation_and_fenestration_parameter_values(
    repository: BuildingStockRepository,
    key: VentilationKey,
    parameters: ProcessingParameters = ProcessingParameters(),
) -> VentilationAndFenestrationStatistics:
    """
    Aggregate a `ventilation_and_fenestration_statistics` cell.

    Raises:
        NoApplicableDataError: If no ventilation or fenestration sources are found
    """
    building_type, building_period, _ = key
    lookback = dict(
        lookback_if_empty=parameters.lookback_if_empty,
        max_lookbacks=parameters.max_lookbacks,
    )
    ventilation = relevant_source_records(
        repository, repository.ventilation_sources, building_period, building_type,
        what="ventilation sources", **lookback,
    )
    fenestration = relevant_source_records(
        repository, repository.fenestration_sources, building_period, building_type,
        what="fenestration sources", **lookback,
    )
    return VentilationAndFenestrationStatistics(
        ventilation_rate_1_h=mean_ventilation_rate(ventilation, parameters.ventilation_rate_weight),
        infiltration_rate_1_h=mean_infiltration_rate(
            ventilation,
            parameters.n50_infiltration_rate_weight,
            parameters.infiltration_factor_weight,
        ),
        HRU_efficiency=mean_hru_efficiency(ventilation, parameters.HRU_efficiency_weight),
        window_U_value_W_m2K=mean_window_U_value(fenestration),
        total_normal_solar_energy_transmittance=mean_total_normal_solar_energy_transmittance(
            fenestration
        ),
    )


def create_ventilation_and_fenestration_statistics(
    repository: BuildingStockRepository,
    parameters: ProcessingParameters = ProcessingParameters(),
) -> Dict[VentilationKey, VentilationAndFenestrationStatistics]:
    """
    Create the `ventilation_and_fenestration_statistics` relation.

    One cell per `(building_type, building_period, location_id)` with floor
    area data. The location has no effect on the values.
    """
    keys: List[VentilationKey] = [
        (building_type, building_period, location_id)
        for (building_type, location_id, building_period) in repository.average_floor_areas
    ]

    def aggregate(key: VentilationKey) -> Tuple[VentilationKey, Optional[VentilationAndFenestrationStatistics]]:
        try:
            return key, ventilation_and_fenestration_parameter_values(repository, key, parameters)
        except NoApplicableDataError as e:
            logger.error(
                f"{e} (location `{key[2]}`)",
                extra={"building_type": key[0], "building_period": key[1], "location_id": key[2]},
            )
            if parameters.on_missing_data == "raise":
                raise NoApplicableDataError(str(e), key=key, probes=e.probes) from e
            return key, None

    cells = parallel_map(
        aggregate, keys, parameters.max_workers, description="ventilation statistics cells"
    )
    statistics = {key: values for key, values in cells if values is not None}
    skipped = len(cells) - len(statistics)
    if skipped:
        logger.warning(f"Skipped {skipped} ventilation and fenestration cells without data")
    logger.info(f"Created {len(statistics)} ventilation and fenestration statistics cells")
    return statistics
