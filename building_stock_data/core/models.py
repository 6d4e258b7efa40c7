"""
Data models for the building stock data.

Raw reference data (objects and relationship records) as read from the
external datastore, and the derived structural types used by the
calculations.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class LayerTag(str, Enum):
    """Purpose of a structural layer."""
    LOAD_BEARING = "load-bearing structure"
    THERMAL_INSULATION = "thermal insulation"
    INTERIOR_FINISH = "interior finish"
    EXTERIOR_FINISH = "exterior finish"
    GROUND = "ground"
    CRAWL_SPACE = "crawl space"
    OTHER = "other"

    @classmethod
    def parse(cls, value) -> "LayerTag":
        """Map a raw `layer_tag` to a tag, unknown tags become OTHER."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            return cls.OTHER


class Zone(str, Enum):
    """Parts of a structure the U-values are reported for."""
    INTERIOR = "interior"
    EXTERIOR = "exterior"
    GROUND = "ground"
    TOTAL = "total"


# =============================================================================
# TWO-VARIANT VALUES
# =============================================================================

@dataclass(frozen=True)
class Property:
    """
    A property of a structure in its two variants.

    `min` holds the value for the minimum (non-load-bearing) layer
    thicknesses, `loadbearing` the value for the load-bearing thicknesses.
    Supports componentwise addition and multiplication with numbers or
    other properties, and `sum()` over properties.
    """
    min: float = 0.0
    loadbearing: float = 0.0

    @classmethod
    def of(cls, value: Optional[float]) -> "Property":
        """Both variants equal to `value`, zero when undefined."""
        if value is None:
            return cls(0.0, 0.0)
        return cls(float(value), float(value))

    def variant(self, loadbearing: bool) -> float:
        return self.loadbearing if loadbearing else self.min

    def map(self, func) -> "Property":
        return Property(func(self.min), func(self.loadbearing))

    def __add__(self, other) -> "Property":
        if isinstance(other, Property):
            return Property(self.min + other.min, self.loadbearing + other.loadbearing)
        if isinstance(other, (int, float)):
            return Property(self.min + other, self.loadbearing + other)
        return NotImplemented

    __radd__ = __add__

    def __mul__(self, other) -> "Property":
        if isinstance(other, Property):
            return Property(self.min * other.min, self.loadbearing * other.loadbearing)
        if isinstance(other, (int, float)):
            return Property(self.min * other, self.loadbearing * other)
        return NotImplemented

    __rmul__ = __mul__


# =============================================================================
# OBJECTS
# =============================================================================

@dataclass
class BuildingPeriod:
    """Construction year interval used to bucket structures and statistics."""
    name: str
    period_start: Optional[float] = None
    period_end: Optional[float] = None


@dataclass
class BuildingStock:
    """A building stock snapshot, named `<NAME>_<YEAR>`."""
    name: str
    building_stock_year: Optional[float] = None


@dataclass
class Location:
    name: str
    location_name: Optional[str] = None


@dataclass
class Source:
    """Provenance of structural, ventilation or fenestration data."""
    name: str
    source_year: Optional[float] = None
    source_description: Optional[str] = None


@dataclass
class Material:
    """Construction material with literature min/max properties."""
    name: str
    minimum_density_kg_m3: Optional[float] = None
    maximum_density_kg_m3: Optional[float] = None
    minimum_specific_heat_capacity_J_kgK: Optional[float] = None
    maximum_specific_heat_capacity_J_kgK: Optional[float] = None
    minimum_thermal_conductivity_W_mK: Optional[float] = None
    maximum_thermal_conductivity_W_mK: Optional[float] = None


@dataclass
class StructureType:
    """
    Category of structures, e.g. exterior wall, roof or base floor.

    `is_load_bearing` is attached by `add_light_structure_types`, and the
    generated light variants point to their load-bearing parent via
    `load_bearing_parent`.
    """
    name: str
    exterior_resistance_m2K_W: Optional[float] = None
    interior_resistance_m2K_W: Optional[float] = None
    linear_thermal_bridge_W_mK: Optional[float] = None
    is_internal: Optional[bool] = None
    structure_type_notes: Optional[str] = None
    is_load_bearing: Optional[bool] = None
    load_bearing_parent: Optional[str] = None


@dataclass
class HeatFlowDirection:
    """Ventilation space thermal resistances [m2K/W] by air gap width [mm]."""
    name: str
    thermal_resistance_m2K_W: Dict[float, float] = field(default_factory=dict)


# =============================================================================
# RELATIONSHIP RECORDS
# =============================================================================

@dataclass
class BuildingStockRecord:
    building_stock: str
    building_type: str
    building_period: str
    location_id: str
    heat_source: str
    number_of_buildings: Optional[float] = None


@dataclass
class LayerRecord:
    """A raw `source__structure__layer_id__structure_material` entry."""
    source: str
    structure: str
    layer_id: str
    structure_material: str
    layer_number: Optional[float] = None
    layer_tag: Optional[str] = None
    layer_weight: Optional[float] = None
    layer_minimum_thickness_mm: Optional[float] = None
    layer_load_bearing_thickness_mm: Optional[float] = None
    layer_notes: Optional[str] = None


@dataclass
class VentilationRecord:
    source: str
    building_type: str
    min_ventilation_rate_1_h: Optional[float] = None
    max_ventilation_rate_1_h: Optional[float] = None
    min_n50_infiltration_rate_1_h: Optional[float] = None
    max_n50_infiltration_rate_1_h: Optional[float] = None
    min_infiltration_factor: Optional[float] = None
    max_infiltration_factor: Optional[float] = None
    min_HRU_efficiency: Optional[float] = None
    max_HRU_efficiency: Optional[float] = None
    notes: Optional[str] = None


@dataclass
class FenestrationRecord:
    source: str
    building_type: str
    min_U_value_W_m2K: Optional[float] = None
    max_U_value_W_m2K: Optional[float] = None
    frame_area_fraction: Optional[float] = None
    solar_energy_transmittance: Optional[float] = None
    notes: Optional[str] = None


# =============================================================================
# DERIVED STRUCTURAL TYPES
# =============================================================================

@dataclass(frozen=True)
class Layer:
    """A structural layer of a `(source, structure)`, ordered by `number`."""
    number: int
    tag: LayerTag
    id: str
    material: str
    weight: Optional[float] = None
    minimum_thickness_mm: Optional[float] = None
    load_bearing_thickness_mm: Optional[float] = None


@dataclass(frozen=True)
class PropertyLayer:
    """Combined properties of the overlapping layers at one layer number."""
    number: int
    R: Property  # m2K/W
    C: Property  # J/m2K
    interior: bool
    exterior: bool
    ground: bool

    def in_zone(self, zone: Zone) -> bool:
        return getattr(self, zone.value)


@dataclass(frozen=True)
class StructureProperties:
    """Output of the structure property calculation."""
    load_bearing: bool
    load_bearing_materials: Tuple[str, ...]
    effective_thermal_mass: Property  # J/m2K
    U_values: Dict[Zone, Property]  # W/m2K
    R_values: Dict[Zone, Property]  # m2K/W


@dataclass(frozen=True)
class BuildingStructure:
    """A catalogued `(source, structure)` with its computed properties."""
    name: str
    structure_type: str
    year: float
    internal: bool
    load_bearing: bool
    load_bearing_materials: Tuple[str, ...]
    design_U_value: Property
    U_values: Dict[Zone, Property]
    effective_thermal_mass: Property
    linear_thermal_bridges: Property
    building_types: Tuple[str, ...]

    def U_value(self, zone: Zone) -> Property:
        """U-value of `zone`, zero for zones the structure doesn't have."""
        return self.U_values.get(zone, Property(0.0, 0.0))
