"""
Structural layer ordering, classification and layer properties.

Layers are identified by their `layer_number`: 0 is the primary thermal
insulation layer (or the load-bearing structure), negative numbers lie
towards the interior and positive numbers towards the exterior or ground.
Layers sharing a number overlap, e.g. studs and the insulation between
them, and are combined using their `layer_weight`s.

Usage:
    layers, numbers = order_layers(repository, "source_1", "wall_a")
    materials, property_layers = layers_with_properties(
        repository, "source_1", "wall_a", resistance_lookup,
        thermal_conductivity_weight=0.5,
    )
"""

from typing import Callable, Iterable, List, Optional, Sequence, Tuple
import logging

import numpy as np

from ..core.errors import MissingDataError
from ..core.models import (
    HeatFlowDirection,
    Layer,
    LayerRecord,
    LayerTag,
    Property,
    PropertyLayer,
)
from ..core.repository import BuildingStockRepository
from .materials import (
    mean_density,
    mean_specific_heat_capacity,
    weighted_thermal_conductivity,
)

logger = logging.getLogger(__name__)

# Material whose thermal resistance is tabulated instead of calculated
VENTILATION_SPACE = "ventilation space"

EXTERIOR_TAGS = (LayerTag.EXTERIOR_FINISH, LayerTag.CRAWL_SPACE)
GROUND_TAGS = (LayerTag.GROUND,)

# Thickness attribute of a `Layer` for the `min` and `loadbearing` variants
THICKNESS_VARIANTS = ("minimum_thickness_mm", "load_bearing_thickness_mm")


class VentilationSpaceResistance:
    """
    Linear interpolation of tabulated ventilation space resistances.

    Widths [mm] outside the tabulated range are extrapolated flat.
    """

    def __init__(self, direction: HeatFlowDirection):
        self.direction = direction.name
        items = sorted(
            (float(width), float(resistance))
            for width, resistance in direction.thermal_resistance_m2K_W.items()
        )
        self.widths = np.array([w for w, _ in items], dtype=float)
        self.resistances = np.array([r for _, r in items], dtype=float)

    def __call__(self, width_mm: float) -> float:
        if self.widths.size == 0:
            raise MissingDataError(
                f"No ventilation space thermal resistances for `{self.direction}`"
            )
        return float(np.interp(width_mm, self.widths, self.resistances))


def _layer_from_record(record: LayerRecord) -> Layer:
    try:
        number = int(float(record.layer_number))
    except (TypeError, ValueError):
        raise MissingDataError(
            f"Invalid `layer_number` for "
            f"`{record.source}:{record.structure}:{record.layer_id}:{record.structure_material}`"
        )
    return Layer(
        number=number,
        tag=LayerTag.parse(record.layer_tag),
        id=record.layer_id,
        material=record.structure_material,
        weight=record.layer_weight,
        minimum_thickness_mm=record.layer_minimum_thickness_mm,
        load_bearing_thickness_mm=record.layer_load_bearing_thickness_mm,
    )


def order_layers(
    repository: BuildingStockRepository,
    source: str,
    structure: str,
) -> Tuple[List[Layer], List[int]]:
    """
    Order the structural layers of `(source, structure)` by layer number.

    Returns:
        The sorted layers and the sorted unique layer numbers
    """
    layers = sorted(
        (_layer_from_record(r) for r in repository.layer_records(source, structure)),
        key=lambda layer: layer.number,
    )
    layer_numbers = sorted({layer.number for layer in layers})
    return layers, layer_numbers


def is_load_bearing(repository: BuildingStockRepository, source: str, structure: str) -> bool:
    """A structure can be load-bearing if any layer has a load-bearing thickness."""
    return any(
        r.layer_load_bearing_thickness_mm is not None
        for r in repository.layer_records(source, structure)
    )


def total_applicability_weight(
    repository: BuildingStockRepository,
    source: str,
    structure: str,
) -> float:
    """Sum of the building type weights of `(source, structure)`, undefined as 0."""
    return float(
        sum(
            weight
            for weight in repository.building_type_weights_of(source, structure).values()
            if weight is not None
        )
    )


def load_bearing_materials(layers: Iterable[Layer]) -> Tuple[str, ...]:
    """Unique materials of the load-bearing structure layers, in layer order."""
    materials: List[str] = []
    for layer in layers:
        if layer.tag == LayerTag.LOAD_BEARING and layer.material not in materials:
            materials.append(layer.material)
    return tuple(materials)


def _first_number(layers: Sequence[Layer], tags) -> int:
    for layer in layers:
        if layer.tag in tags:
            return layer.number
    return -1


# =============================================================================
# LAYER PROPERTIES
# =============================================================================

def thermal_resistance(
    repository: BuildingStockRepository,
    layer: Layer,
    thickness_mm: float,
    ventilation_space_resistance: Callable[[float], float],
    thermal_conductivity_weight: float = 0.5,
) -> float:
    """
    Thermal resistance [m2K/W] of a single homogeneous layer.

    `thickness / conductivity` for regular materials, interpolated from
    tabulated values for ventilation spaces. A zero conductivity yields an
    infinite resistance, which the combination handles.
    """
    if layer.material == VENTILATION_SPACE:
        return ventilation_space_resistance(thickness_mm)
    material = repository.structure_materials.get(layer.material)
    if material is None:
        raise MissingDataError(f"Structure material `{layer.material}` not found")
    conductivity = weighted_thermal_conductivity(material, thermal_conductivity_weight)
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.float64(thickness_mm) * 1e-3 / np.float64(conductivity))


def _finite_or_zero(value) -> float:
    value = float(value)
    return value if np.isfinite(value) else 0.0


def _weight(layer: Layer) -> float:
    return float(layer.weight) if layer.weight is not None else float("nan")


def layer_thermal_resistance(
    repository: BuildingStockRepository,
    layers: Sequence[Layer],
    ventilation_space_resistance: Callable[[float], float],
    thermal_conductivity_weight: float = 0.5,
) -> Property:
    """
    Thermal resistance [m2K/W] of a potentially heterogeneous layer.

    Calculated for both thickness variants as `1 / sum(weight_i / R_i)` over
    the overlapping layers with that thickness defined. A NaN or infinite
    result counts as zero resistance, and a zero load-bearing resistance
    falls back to the minimum thickness resistance.
    """
    results = []
    for attribute in THICKNESS_VARIANTS:
        included = [layer for layer in layers if getattr(layer, attribute) is not None]
        weights = np.array([_weight(layer) for layer in included], dtype=float)
        resistances = np.array(
            [
                thermal_resistance(
                    repository,
                    layer,
                    float(getattr(layer, attribute)),
                    ventilation_space_resistance,
                    thermal_conductivity_weight,
                )
                for layer in included
            ],
            dtype=float,
        )
        with np.errstate(divide="ignore", invalid="ignore"):
            r = np.float64(1.0) / np.sum(weights / resistances)
        results.append(_finite_or_zero(r))
    r_min, r_loadbearing = results
    return Property(r_min, r_loadbearing if r_loadbearing != 0 else r_min)


def layer_heat_capacity(
    repository: BuildingStockRepository,
    layers: Sequence[Layer],
) -> Property:
    """
    Heat capacity [J/m2K] of a potentially heterogeneous layer.

    Calculated for both thickness variants as
    `sum(weight_i * specific heat capacity_i * density_i * thickness_i)`,
    with the same zero and fallback handling as the thermal resistance.
    """
    results = []
    for attribute in THICKNESS_VARIANTS:
        total = np.float64(0.0)
        for layer in layers:
            thickness = getattr(layer, attribute)
            if thickness is None:
                continue
            material = repository.structure_materials.get(layer.material)
            if material is None:
                raise MissingDataError(f"Structure material `{layer.material}` not found")
            with np.errstate(invalid="ignore", over="ignore"):
                total += (
                    np.float64(_weight(layer))
                    * mean_specific_heat_capacity(material)
                    * mean_density(material)
                    * float(thickness) * 1e-3
                )
        results.append(_finite_or_zero(total))
    c_min, c_loadbearing = results
    return Property(c_min, c_loadbearing if c_loadbearing != 0 else c_min)


def layers_with_properties(
    repository: BuildingStockRepository,
    source: str,
    structure: str,
    ventilation_space_resistance: Callable[[float], float],
    thermal_conductivity_weight: float = 0.5,
    layers: Optional[List[Layer]] = None,
) -> Tuple[Tuple[str, ...], List[PropertyLayer]]:
    """
    Combine the overlapping layers of `(source, structure)` into property layers.

    A property layer is interior if its number is at most 0, exterior if it
    lies between 0 and the first exterior finish or crawl space layer, and
    ground if it lies between 0 and the first ground layer.

    Returns:
        The load-bearing materials and the property layers in layer order
    """
    if layers is None:
        layers, layer_numbers = order_layers(repository, source, structure)
    else:
        layer_numbers = sorted({layer.number for layer in layers})

    exterior_number = _first_number(layers, EXTERIOR_TAGS)
    ground_number = _first_number(layers, GROUND_TAGS)

    property_layers = []
    for number in layer_numbers:
        overlap = [layer for layer in layers if layer.number == number]
        property_layers.append(
            PropertyLayer(
                number=number,
                R=layer_thermal_resistance(
                    repository, overlap, ventilation_space_resistance, thermal_conductivity_weight
                ),
                C=layer_heat_capacity(repository, overlap),
                interior=number <= 0,
                exterior=0 <= number <= exterior_number,
                ground=0 <= number <= ground_number,
            )
        )
    return load_bearing_materials(layers), property_layers
