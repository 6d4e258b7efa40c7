"""
Structure property calculation.

Combines the property layers of a `(source, structure)` into U-values for
the interior, exterior and ground parts of the structure, the total U-value,
and the effective thermal mass according to EN ISO 13786:2017 Annex C.2.4.

The structure is modelled with a single temperature node located at
`interior_node_depth` of the interior thermal resistance, measured from the
interior surface. Heat flows from the node to the interior air, and in
parallel to the ambient air (exterior) and to the ground.

All values are computed for both the minimum and the load-bearing layer
thicknesses, see `Property`.
"""

import math
from typing import Dict, List
import logging

from ..core.errors import MissingDataError
from ..core.models import Property, PropertyLayer, StructureProperties, Zone
from ..core.repository import BuildingStockRepository
from ..utils.validation import validate_variation_period, validate_weight
from .layers import VentilationSpaceResistance, is_load_bearing, layers_with_properties

logger = logging.getLogger(__name__)

LAYER_ZONES = (Zone.INTERIOR, Zone.EXTERIOR, Zone.GROUND)


def layer_number_weight(layer: PropertyLayer) -> float:
    """The zeroth layer straddles the interior and exterior, so it only counts half."""
    return 0.5 if layer.number == 0 else 1.0


def calculate_ground_resistance(Rf: float, Rp: float = 0.0) -> float:
    """
    Effective thermal resistance [m2K/W] of a structure in contact with the ground.

    Correlation from Kissock et al. 2013:

        R_g = (0.114 / (0.7044 + Rf + Rp) + 0.8768 / (2.818 + Rf)) ** -1

    Args:
        Rf: Thermal resistance of the floor structure [m2K/W]
        Rp: Thermal resistance of the perimeter insulation [m2K/W]
    """
    return 1.0 / (0.114 / (0.7044 + Rf + Rp) + 0.8768 / (2.818 + Rf))


def effective_thermal_mass_correction(
    C: float,
    surface_resistance: float,
    variation_period: float,
) -> float:
    """
    Account for the surface resistance in the effective thermal mass [J/m2K].

    EN ISO 13786:2017 Annex C.2.4 effective thickness method:

        C_eff = C / sqrt(1 + (2 pi / P)^2 * C^2 * Rs^2)
    """
    if C == 0:
        return 0.0
    omega = 2.0 * math.pi / variation_period
    return C / math.sqrt(1.0 + (omega * C * surface_resistance) ** 2)


def _weighted_sum(layers: List[PropertyLayer], attribute: str) -> Property:
    return sum(
        (layer_number_weight(layer) * getattr(layer, attribute) for layer in layers),
        Property(0.0, 0.0),
    )


def _parallel_resistance(r_exterior: float, r_ground: float) -> float:
    """Resistance of two parallel paths, an infinite resistance marks a missing path."""
    conductance = 1.0 / r_exterior + 1.0 / r_ground
    return 1.0 / conductance if conductance > 0 else math.inf


def calculate_structure_properties(
    repository: BuildingStockRepository,
    source: str,
    structure: str,
    thermal_conductivity_weight: float = 0.5,
    interior_node_depth: float = 0.1,
    variation_period: float = 2225140.0,
) -> StructureProperties:
    """
    Calculate the thermal properties of a `(source, structure)`.

    Steps:
    1. Combine overlapping layers into property layers split into zones
    2. Effective thermal mass of the interior layers, and of the exterior
       layers for internal structures
    3. Zone thermal resistances with the surface resistances, the interior
       node depth and the ground correlation applied
    4. Exterior and ground resistances scaled as parallel heat flow paths,
       the exterior first and the ground against the scaled exterior
    5. Zone U-values and the total U-value from the scaled resistances

    Args:
        repository: Raw building stock data
        source, structure: The structure to calculate
        thermal_conductivity_weight: Sampling of material thermal conductivity
        interior_node_depth: Depth of the temperature node, 0 = interior surface
        variation_period: Period of variations [s] for the effective thermal mass

    Raises:
        ValidationError: If a coefficient is out of range
        MissingDataError: If referenced data is missing from the repository
    """
    thermal_conductivity_weight = validate_weight(
        thermal_conductivity_weight, field="thermal_conductivity_weight"
    )
    interior_node_depth = validate_weight(interior_node_depth, field="interior_node_depth")
    variation_period = validate_variation_period(variation_period)

    structure_type = repository.structure_type_of(structure)
    resistance_lookup = VentilationSpaceResistance(
        repository.heat_flow_direction_of(structure_type.name)
    )
    if (
        structure_type.exterior_resistance_m2K_W is None
        or structure_type.interior_resistance_m2K_W is None
    ):
        raise MissingDataError(
            f"Surface resistances undefined for structure type `{structure_type.name}`"
        )
    Rse = float(structure_type.exterior_resistance_m2K_W)
    Rsi = float(structure_type.interior_resistance_m2K_W)

    load_bearing_materials, layers = layers_with_properties(
        repository,
        source,
        structure,
        resistance_lookup,
        thermal_conductivity_weight=thermal_conductivity_weight,
    )
    zones: Dict[Zone, List[PropertyLayer]] = {
        zone: [layer for layer in layers if layer.in_zone(zone)] for zone in LAYER_ZONES
    }

    # Effective thermal mass
    C = _weighted_sum(zones[Zone.INTERIOR], "C").map(
        lambda c: effective_thermal_mass_correction(c, Rsi, variation_period)
    )
    if structure_type.is_internal:
        C = C + _weighted_sum(zones[Zone.EXTERIOR], "C").map(
            lambda c: effective_thermal_mass_correction(c, Rse, variation_period)
        )

    # Base thermal resistances of the zones with layers
    R: Dict[Zone, Property] = {
        zone: _weighted_sum(zone_layers, "R")
        for zone, zone_layers in zones.items()
        if zone_layers
    }
    R_interior = R.get(Zone.INTERIOR, Property(0.0, 0.0))

    if Zone.EXTERIOR in R:
        R[Zone.EXTERIOR] = R[Zone.EXTERIOR] + Rse + (1.0 - interior_node_depth) * R_interior

    if Zone.GROUND in R:
        R_ground = R[Zone.GROUND]
        R[Zone.GROUND] = Property(
            calculate_ground_resistance(R_ground.min + R_interior.min + Rsi, 0.0)
            - interior_node_depth * R_interior.min,
            calculate_ground_resistance(R_ground.loadbearing + R_interior.loadbearing + Rsi, 0.0)
            - interior_node_depth * R_interior.loadbearing,
        )

    R_node = interior_node_depth * R_interior + Rsi
    if Zone.INTERIOR in R:
        R[Zone.INTERIOR] = R_node

    # Parallel exterior and ground paths, the ground path sees the scaled exterior
    missing = Property(math.inf, math.inf)
    for zone in (Zone.EXTERIOR, Zone.GROUND):
        if zone in R:
            r = R[zone]
            R_exterior = R.get(Zone.EXTERIOR, missing)
            R_ground = R.get(Zone.GROUND, missing)
            R[zone] = Property(
                r.min * r.min / _parallel_resistance(R_exterior.min, R_ground.min),
                r.loadbearing * r.loadbearing
                / _parallel_resistance(R_exterior.loadbearing, R_ground.loadbearing),
            )

    R_exterior = R.get(Zone.EXTERIOR, missing)
    R_ground = R.get(Zone.GROUND, missing)
    U = {zone: R[zone].map(lambda r: 1.0 / r) for zone in LAYER_ZONES if zone in R}
    U[Zone.TOTAL] = Property(
        1.0 / (R_node.min + _parallel_resistance(R_exterior.min, R_ground.min)),
        1.0 / (R_node.loadbearing + _parallel_resistance(R_exterior.loadbearing, R_ground.loadbearing)),
    )

    logger.debug(
        f"Calculated `{source}:{structure}`: U_total={U[Zone.TOTAL].min:.3f}, C={C.min:.0f}",
        extra={"source": source, "structure": structure},
    )

    return StructureProperties(
        load_bearing=is_load_bearing(repository, source, structure),
        load_bearing_materials=load_bearing_materials,
        effective_thermal_mass=C,
        U_values=U,
        R_values=R,
    )
