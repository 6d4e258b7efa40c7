"""Structural calculations: materials, layers, structure properties and the catalog."""

from .calculator import (
    calculate_ground_resistance,
    calculate_structure_properties,
    effective_thermal_mass_correction,
)
from .catalog import build_building_structure, build_catalog, find_design_u_value_deviations
from .layers import (
    VentilationSpaceResistance,
    is_load_bearing,
    layers_with_properties,
    order_layers,
    total_applicability_weight,
)
from .materials import mean_density, mean_specific_heat_capacity, weighted_thermal_conductivity

__all__ = [
    "calculate_ground_resistance",
    "calculate_structure_properties",
    "effective_thermal_mass_correction",
    "build_building_structure",
    "build_catalog",
    "find_design_u_value_deviations",
    "VentilationSpaceResistance",
    "is_load_bearing",
    "layers_with_properties",
    "order_layers",
    "total_applicability_weight",
    "mean_density",
    "mean_specific_heat_capacity",
    "weighted_thermal_conductivity",
]
