"""
Building structure catalog.

Every `(source, structure)` with a positive total building type weight is
calculated once into a `BuildingStructure`. The statistical aggregation
only filters the catalog, it never modifies it.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple
import logging

from ..core.config import ProcessingParameters
from ..core.errors import MissingDataError
from ..core.models import BuildingStructure, Property, Zone
from ..core.repository import BuildingStockRepository
from ..utils.parallel import parallel_map
from .calculator import calculate_structure_properties
from .layers import total_applicability_weight

logger = logging.getLogger(__name__)


def applicable_building_types(
    repository: BuildingStockRepository,
    source: str,
    structure: str,
) -> Tuple[str, ...]:
    """Building types with a defined and positive weight for the structure."""
    return tuple(
        building_type
        for building_type, weight in repository.building_type_weights_of(source, structure).items()
        if weight is not None and weight > 0
    )


def build_building_structure(
    repository: BuildingStockRepository,
    source: str,
    structure: str,
    thermal_conductivity_weight: float = 0.5,
    interior_node_depth: float = 0.1,
    variation_period: float = 2225140.0,
) -> BuildingStructure:
    """Calculate the `BuildingStructure` of a `(source, structure)`."""
    structure_type = repository.structure_type_of(structure)
    properties = calculate_structure_properties(
        repository,
        source,
        structure,
        thermal_conductivity_weight=thermal_conductivity_weight,
        interior_node_depth=interior_node_depth,
        variation_period=variation_period,
    )
    year = repository.source_year(source)
    if year is None:
        raise MissingDataError(f"`source_year` undefined for source `{source}`")
    return BuildingStructure(
        name=f"{source}:{structure}",
        structure_type=structure_type.name,
        year=float(year),
        internal=bool(structure_type.is_internal),
        load_bearing=properties.load_bearing,
        load_bearing_materials=properties.load_bearing_materials,
        design_U_value=Property.of(repository.design_U_value(source, structure)),
        U_values=properties.U_values,
        effective_thermal_mass=properties.effective_thermal_mass,
        linear_thermal_bridges=Property.of(structure_type.linear_thermal_bridge_W_mK),
        building_types=applicable_building_types(repository, source, structure),
    )


def build_catalog(
    repository: BuildingStockRepository,
    parameters: ProcessingParameters = ProcessingParameters(),
) -> List[BuildingStructure]:
    """
    Build the catalog of calculated structures.

    Structures without any positive building type weight are not in use
    and are excluded.
    """
    pairs = [
        (source, structure)
        for source, structure in repository.source_structures()
        if total_applicability_weight(repository, source, structure) > 0
    ]
    excluded = len(repository.source_structures()) - len(pairs)
    if excluded:
        logger.debug(f"Excluded {excluded} structures without building type weights")

    def build(pair: Tuple[str, str]) -> BuildingStructure:
        source, structure = pair
        return build_building_structure(
            repository,
            source,
            structure,
            thermal_conductivity_weight=parameters.thermal_conductivity_weight,
            interior_node_depth=parameters.interior_node_depth,
            variation_period=parameters.variation_period,
        )

    catalog = parallel_map(build, pairs, parameters.max_workers, description="structures")
    logger.info(f"Catalogued {len(catalog)} building structures")
    return catalog


# =============================================================================
# DIAGNOSTICS
# =============================================================================

@dataclass(frozen=True)
class DesignUValueDeviation:
    """A structure whose calculated U-value exceeds its design U-value."""
    structure: str
    structure_type: str
    design_U_value: float
    total_U_value: float

    @property
    def relative_deviation(self) -> float:
        return (self.total_U_value - self.design_U_value) / self.design_U_value


def find_design_u_value_deviations(
    catalog: Sequence[BuildingStructure],
    tolerance: float = 0.1,
) -> List[DesignUValueDeviation]:
    """
    Structures whose minimum-thickness total U-value exceeds the design U-value.

    Large deviations usually point at missing or mistyped layers in the
    raw data. Structures without a positive design U-value are ignored.
    """
    deviations = []
    for structure in catalog:
        design = structure.design_U_value.min
        if design <= 0:
            continue
        total = structure.U_value(Zone.TOTAL).min
        if (total - design) / design >= tolerance:
            deviations.append(
                DesignUValueDeviation(
                    structure=structure.name,
                    structure_type=structure.structure_type,
                    design_U_value=design,
                    total_U_value=total,
                )
            )
    deviations.sort(key=lambda d: d.relative_deviation, reverse=True)
    return deviations
