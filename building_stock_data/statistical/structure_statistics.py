"""
Structure statistics aggregation.

For every `(building_type, building_period, location_id, structure_type)`
cell, the relevant catalogued structures are found with the period
relaxation search and averaged using frame material weights: structures
are weighted by how common their load-bearing frame materials are for the
building type in the location.

The `share` of a frame material is never allowed to be zero, `FRAME_SHARE_EPSILON`
is always added to it. Without meaningful share data this results in an even
mix of the relevant structures.
"""

from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple
import logging
import math

from ..core.config import ProcessingParameters
from ..core.errors import MissingDataError, NoApplicableDataError, WeightSumError
from ..core.models import BuildingStructure, StructureType, Zone
from ..core.repository import BuildingStockRepository
from ..utils.parallel import parallel_map
from .lookback import find_relevant_entries
from .records import StructureKey, StructureStatistics

logger = logging.getLogger(__name__)

FRAME_SHARE_EPSILON = 1e-6

# Generated non-load-bearing structure type -> load-bearing parent
LIGHT_STRUCTURE_TYPES = {
    "light_exterior_wall": "exterior_wall",
    "light_partition_wall": "partition_wall",
}

LIGHT_STRUCTURE_TYPE_NOTES = "Automatically generated."


# =============================================================================
# STRUCTURE TYPES
# =============================================================================

def add_light_structure_types(repository: BuildingStockRepository) -> List[str]:
    """
    Add the non-load-bearing structure types and the `is_load_bearing` flag.

    All structure types in the raw data are considered load-bearing. The light
    exterior and partition walls copy the properties of their load-bearing
    parents, only flagged as not load-bearing. Calling this again on the
    same repository changes nothing.

    Returns:
        Names of the newly added or updated light structure types
    """
    added = []
    for light, parent in LIGHT_STRUCTURE_TYPES.items():
        parent_type = repository.structure_types.get(parent)
        if parent_type is None:
            logger.debug(f"No `{parent}` structure type, `{light}` not generated")
            continue
        existing = repository.structure_types.get(light)
        if existing is not None and existing.load_bearing_parent == parent:
            continue
        repository.structure_types[light] = replace(
            parent_type,
            name=light,
            structure_type_notes=LIGHT_STRUCTURE_TYPE_NOTES,
            is_load_bearing=False,
            load_bearing_parent=parent,
        )
        added.append(light)

    for name, structure_type in repository.structure_types.items():
        if structure_type.is_load_bearing is None:
            repository.structure_types[name] = replace(structure_type, is_load_bearing=True)

    if added:
        logger.info(f"Added light structure types: {', '.join(added)}")
    return added


def structure_type_map(repository: BuildingStockRepository) -> Dict[str, str]:
    """Map every structure type to itself, and light types to their load-bearing parent."""
    return {
        name: structure_type.load_bearing_parent or name
        for name, structure_type in repository.structure_types.items()
    }


# =============================================================================
# WEIGHTING
# =============================================================================

def structure_frame_materials(
    repository: BuildingStockRepository,
    structure: BuildingStructure,
) -> List[str]:
    """Unique frame materials of the load-bearing materials of `structure`."""
    frame_materials: List[str] = []
    for material in structure.load_bearing_materials:
        for frame_material in repository.frame_materials_of(material):
            if frame_material not in frame_materials:
                frame_materials.append(frame_material)
    return frame_materials


def frame_material_weights(
    repository: BuildingStockRepository,
    structures: Sequence[BuildingStructure],
    building_type: str,
    location_id: str,
) -> List[float]:
    """
    Normalized weights of `structures` based on their frame material shares.

    A structure weighs `sum(share + epsilon)` over its frame materials, or
    `epsilon` if it has none, normalized by the total over all structures.

    Raises:
        WeightSumError: If the weights fail to sum up to one
    """
    raw = []
    for structure in structures:
        frame_materials = structure_frame_materials(repository, structure)
        if frame_materials:
            raw.append(
                sum(
                    repository.share(building_type, location_id, fm) + FRAME_SHARE_EPSILON
                    for fm in frame_materials
                )
            )
        else:
            raw.append(FRAME_SHARE_EPSILON)

    total = sum(raw)
    weights = [w / total for w in raw]
    weight_sum = sum(weights)
    if not math.isclose(weight_sum, 1.0, rel_tol=0.0, abs_tol=1e-8):
        raise WeightSumError(
            f"Frame material weights don't add up to one for "
            f"`{building_type}:{location_id}`: {weight_sum}",
            key=(building_type, location_id),
            total=weight_sum,
        )
    return weights


def _weighted_value(
    structures: Sequence[BuildingStructure],
    weights: Sequence[float],
    value_of,
) -> float:
    return float(sum(w * value_of(s) for s, w in zip(structures, weights)))


def structure_type_parameter_values(
    repository: BuildingStockRepository,
    structures: Sequence[BuildingStructure],
    key: StructureKey,
    st_map: Dict[str, str],
    lookback_if_empty: int = 10,
    max_lookbacks: int = 20,
) -> StructureStatistics:
    """
    Aggregate the structures relevant for a `structure_statistics` cell.

    Steps:
    1. Map the requested structure type to its load-bearing variant
    2. Find the relevant structures with the period relaxation search
    3. Weight them with the frame material shares
    4. Average the load-bearing or minimum thickness properties, depending
       on whether the requested structure type is load-bearing

    Raises:
        NoApplicableDataError: If no relevant structures are found
        WeightSumError: If the frame material weights fail to sum up to one
    """
    building_type, building_period, location_id, structure_type = key
    requested = _structure_type(repository, structure_type)
    mapped_type = st_map.get(structure_type, structure_type)

    result = find_relevant_entries(
        structures,
        _building_period(repository, building_period),
        year_of=lambda s: s.year,
        predicate=lambda s: s.structure_type == mapped_type and building_type in s.building_types,
        lookback_if_empty=lookback_if_empty,
        max_lookbacks=max_lookbacks,
    )
    relevant = result.require(key, what="structures")
    weights = frame_material_weights(repository, relevant, building_type, location_id)
    loadbearing = requested.is_load_bearing is not False

    def zone_value(zone: Zone) -> float:
        return _weighted_value(relevant, weights, lambda s: s.U_value(zone).variant(loadbearing))

    return StructureStatistics(
        effective_thermal_mass_J_m2K=_weighted_value(
            relevant, weights, lambda s: s.effective_thermal_mass.variant(loadbearing)
        ),
        linear_thermal_bridges_W_mK=_weighted_value(
            relevant, weights, lambda s: s.linear_thermal_bridges.variant(loadbearing)
        ),
        design_U_value_W_m2K=_weighted_value(
            relevant, weights, lambda s: s.design_U_value.variant(loadbearing)
        ),
        total_U_value_W_m2K=zone_value(Zone.TOTAL),
        external_U_value_to_ambient_air_W_m2K=zone_value(Zone.EXTERIOR),
        external_U_value_to_ground_W_m2K=zone_value(Zone.GROUND),
        internal_U_value_to_structure_W_m2K=zone_value(Zone.INTERIOR),
    )


def _structure_type(repository: BuildingStockRepository, name: str) -> StructureType:
    structure_type = repository.structure_types.get(name)
    if structure_type is None:
        raise MissingDataError(f"Structure type `{name}` not found")
    return structure_type


def _building_period(repository: BuildingStockRepository, name: str):
    period = repository.building_periods.get(name)
    if period is None:
        raise MissingDataError(f"Building period `{name}` not found")
    return period


# =============================================================================
# STATISTICS
# =============================================================================

def structure_statistics_keys(repository: BuildingStockRepository) -> List[StructureKey]:
    """Cells for every `(building_type, location_id, building_period)` and structure type."""
    return [
        (building_type, building_period, location_id, structure_type)
        for (building_type, location_id, building_period) in repository.average_floor_areas
        for structure_type in repository.structure_types
    ]


def create_structure_statistics(
    repository: BuildingStockRepository,
    catalog: Sequence[BuildingStructure],
    parameters: ProcessingParameters = ProcessingParameters(),
) -> Dict[StructureKey, StructureStatistics]:
    """
    Create the `structure_statistics` relation from the structure catalog.

    The light structure types must already be added to the repository,
    see `add_light_structure_types`.

    Cells without any relevant structures abort the run, or are logged and
    left out with `on_missing_data="skip"`.
    """
    st_map = structure_type_map(repository)
    by_type: Dict[str, List[BuildingStructure]] = {}
    for structure in catalog:
        by_type.setdefault(structure.structure_type, []).append(structure)

    def aggregate(key: StructureKey) -> Tuple[StructureKey, Optional[StructureStatistics]]:
        mapped_type = st_map.get(key[3], key[3])
        try:
            values = structure_type_parameter_values(
                repository,
                by_type.get(mapped_type, []),
                key,
                st_map,
                lookback_if_empty=parameters.lookback_if_empty,
                max_lookbacks=parameters.max_lookbacks,
            )
        except NoApplicableDataError as e:
            logger.error(
                str(e),
                extra={
                    "building_type": key[0],
                    "building_period": key[1],
                    "location_id": key[2],
                    "structure_type": key[3],
                },
            )
            if parameters.on_missing_data == "raise":
                raise
            return key, None
        return key, values

    cells = parallel_map(
        aggregate,
        structure_statistics_keys(repository),
        parameters.max_workers,
        description="structure statistics cells",
    )
    statistics = {key: values for key, values in cells if values is not None}
    skipped = len(cells) - len(statistics)
    if skipped:
        logger.warning(f"Skipped {skipped} structure statistics cells without data")
    logger.info(f"Created {len(statistics)} structure statistics cells")
    return statistics
