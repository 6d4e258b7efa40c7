"""
Output records of the processed statistics.

Each output relation maps its key tuple to a record of named parameters.
Parameters without a value keep their declared default: undefined (None)
for most, and 0.0 for the ambient air and ground U-value portions, since
structures without an exterior or ground part exchange no heat there.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional, Tuple


BuildingStockKey = Tuple[str, str, str, str, str]  # building_stock, building_type, building_period, location_id, heat_source
StructureKey = Tuple[str, str, str, str]  # building_type, building_period, location_id, structure_type
VentilationKey = Tuple[str, str, str]  # building_type, building_period, location_id


class _Record:
    """Shared helpers of the output records."""

    @classmethod
    def parameter_defaults(cls) -> Dict[str, Any]:
        return {f.name: f.default for f in fields(cls)}

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BuildingStockStatistics(_Record):
    number_of_buildings: Optional[float] = None
    average_gross_floor_area_m2_per_building: Optional[float] = None


@dataclass(frozen=True)
class StructureStatistics(_Record):
    effective_thermal_mass_J_m2K: Optional[float] = None
    linear_thermal_bridges_W_mK: Optional[float] = None
    design_U_value_W_m2K: Optional[float] = None
    total_U_value_W_m2K: Optional[float] = None
    external_U_value_to_ambient_air_W_m2K: float = 0.0
    external_U_value_to_ground_W_m2K: float = 0.0
    internal_U_value_to_structure_W_m2K: Optional[float] = None


@dataclass(frozen=True)
class VentilationAndFenestrationStatistics(_Record):
    ventilation_rate_1_h: Optional[float] = None
    infiltration_rate_1_h: Optional[float] = None
    HRU_efficiency: Optional[float] = None
    window_U_value_W_m2K: Optional[float] = None
    total_normal_solar_energy_transmittance: Optional[float] = None


# Output relation name -> (key object classes, record type)
OUTPUT_RELATIONSHIPS = {
    "building_stock_statistics": (
        ("building_stock", "building_type", "building_period", "location_id", "heat_source"),
        BuildingStockStatistics,
    ),
    "structure_statistics": (
        ("building_type", "building_period", "location_id", "structure_type"),
        StructureStatistics,
    ),
    "ventilation_and_fenestration_statistics": (
        ("building_type", "building_period", "location_id"),
        VentilationAndFenestrationStatistics,
    ),
}
