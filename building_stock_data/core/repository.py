"""
Repository for the raw building stock data.

Holds the object classes and relationship classes of the input datastore
in typed in-memory collections, and provides the lookups the structural
and statistical processing needs. One repository is constructed per run
and passed to every component.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from .errors import MissingDataError
from .models import (
    BuildingPeriod,
    BuildingStock,
    BuildingStockRecord,
    FenestrationRecord,
    HeatFlowDirection,
    LayerRecord,
    Location,
    Material,
    Source,
    StructureType,
    VentilationRecord,
)

logger = logging.getLogger(__name__)


# Object class name -> repository attribute
OBJECT_CLASSES = {
    "building_period": "building_periods",
    "building_stock": "building_stocks",
    "building_type": "building_types",
    "frame_material": "frame_materials",
    "heat_source": "heat_sources",
    "layer_id": "layer_ids",
    "location_id": "location_ids",
    "source": "sources",
    "structure": "structures",
    "structure_material": "structure_materials",
    "structure_type": "structure_types",
    "ventilation_space_heat_flow_direction": "ventilation_space_heat_flow_directions",
}

# Relationship class name -> repository attribute
RELATIONSHIP_CLASSES = {
    "building_stock__building_type__building_period__location_id__heat_source": "building_stock_records",
    "building_type__location_id__building_period": "average_floor_areas",
    "building_type__location_id__frame_material": "frame_material_shares",
    "fenestration_source__building_type": "fenestration_sources",
    "source__structure": "design_U_values",
    "source__structure__building_type": "building_type_weights",
    "source__structure__layer_id__structure_material": "layers",
    "structure__structure_type": "structure_structure_types",
    "structure_material__frame_material": "structure_material_frame_materials",
    "structure_type__ventilation_space_heat_flow_direction": "structure_type_heat_flow_directions",
    "ventilation_source__building_type": "ventilation_sources",
}

# Relationship classes whose members are stored without parameter records
_VALUE_RELATIONSHIPS = {
    "building_type__location_id__building_period": "average_floor_area_m2",
    "building_type__location_id__frame_material": "share",
    "source__structure": "design_U_W_m2K",
    "source__structure__building_type": "building_type_weight",
}


@dataclass
class BuildingStockRepository:
    """
    Typed in-memory view of the raw building stock datastore.

    Object classes without parameters are plain name lists, the others map
    names to their model. Relationship classes map member tuples to either
    a parameter record or, for single-parameter relationships, the value.
    Pair relationships without parameters are lists of member tuples.
    """

    # Object classes
    building_periods: Dict[str, BuildingPeriod] = field(default_factory=dict)
    building_stocks: Dict[str, BuildingStock] = field(default_factory=dict)
    building_types: List[str] = field(default_factory=list)
    frame_materials: List[str] = field(default_factory=list)
    heat_sources: List[str] = field(default_factory=list)
    layer_ids: List[str] = field(default_factory=list)
    location_ids: Dict[str, Location] = field(default_factory=dict)
    sources: Dict[str, Source] = field(default_factory=dict)
    structures: List[str] = field(default_factory=list)
    structure_materials: Dict[str, Material] = field(default_factory=dict)
    structure_types: Dict[str, StructureType] = field(default_factory=dict)
    ventilation_space_heat_flow_directions: Dict[str, HeatFlowDirection] = field(default_factory=dict)

    # Relationship classes
    building_stock_records: Dict[Tuple[str, str, str, str, str], BuildingStockRecord] = field(default_factory=dict)
    average_floor_areas: Dict[Tuple[str, str, str], Optional[float]] = field(default_factory=dict)
    frame_material_shares: Dict[Tuple[str, str, str], Optional[float]] = field(default_factory=dict)
    fenestration_sources: Dict[Tuple[str, str], FenestrationRecord] = field(default_factory=dict)
    design_U_values: Dict[Tuple[str, str], Optional[float]] = field(default_factory=dict)
    building_type_weights: Dict[Tuple[str, str, str], Optional[float]] = field(default_factory=dict)
    layers: Dict[Tuple[str, str, str, str], LayerRecord] = field(default_factory=dict)
    structure_structure_types: List[Tuple[str, str]] = field(default_factory=list)
    structure_material_frame_materials: List[Tuple[str, str]] = field(default_factory=list)
    structure_type_heat_flow_directions: List[Tuple[str, str]] = field(default_factory=list)
    ventilation_sources: Dict[Tuple[str, str], VentilationRecord] = field(default_factory=dict)

    _layer_index: Optional[Dict[Tuple[str, str], List[LayerRecord]]] = field(
        default=None, init=False, repr=False, compare=False
    )

    # =========================================================================
    # GENERIC ACCESS
    # =========================================================================

    def get_object_class(self, name: str) -> List[str]:
        """Names of the objects in object class `name`."""
        try:
            return list(getattr(self, OBJECT_CLASSES[name]))
        except KeyError:
            raise MissingDataError(f"Unknown object class `{name}`")

    def get_relationship(self, name: str) -> List[Tuple[str, ...]]:
        """Member tuples of relationship class `name`."""
        try:
            return list(getattr(self, RELATIONSHIP_CLASSES[name]))
        except KeyError:
            raise MissingDataError(f"Unknown relationship class `{name}`")

    def get_parameter(self, class_name: str, parameter_name: str) -> Callable[..., Any]:
        """
        Accessor for a parameter of an object or relationship class.

        The returned callable takes the member names (a single name for
        object classes) and returns the value, or None when undefined.
        """
        if class_name in OBJECT_CLASSES:
            collection = getattr(self, OBJECT_CLASSES[class_name])
            if not isinstance(collection, dict):
                raise MissingDataError(f"Object class `{class_name}` has no parameters")

            def object_accessor(name: str) -> Any:
                obj = collection.get(name)
                return getattr(obj, parameter_name, None) if obj is not None else None

            return object_accessor

        if class_name in RELATIONSHIP_CLASSES:
            collection = getattr(self, RELATIONSHIP_CLASSES[class_name])
            if not isinstance(collection, dict):
                raise MissingDataError(f"Relationship class `{class_name}` has no parameters")
            single = _VALUE_RELATIONSHIPS.get(class_name)

            def relationship_accessor(*members: str) -> Any:
                value = collection.get(tuple(members))
                if single is not None:
                    return value if parameter_name == single else None
                return getattr(value, parameter_name, None) if value is not None else None

            return relationship_accessor

        raise MissingDataError(f"Unknown entity class `{class_name}`")

    # =========================================================================
    # STRUCTURAL LOOKUPS
    # =========================================================================

    def add_layer(self, record: LayerRecord) -> None:
        """Add a structural layer record."""
        key = (record.source, record.structure, record.layer_id, record.structure_material)
        self.layers[key] = record
        self._layer_index = None

    def invalidate_indexes(self) -> None:
        """Drop cached lookups after editing the collections directly."""
        self._layer_index = None

    def layer_records(self, source: str, structure: str) -> List[LayerRecord]:
        """Raw layer records of `(source, structure)`, in input order."""
        if self._layer_index is None:
            index: Dict[Tuple[str, str], List[LayerRecord]] = {}
            for (src, struct, _, _), record in self.layers.items():
                index.setdefault((src, struct), []).append(record)
            self._layer_index = index
        return list(self._layer_index.get((source, structure), []))

    def source_structures(self) -> List[Tuple[str, str]]:
        return list(self.design_U_values)

    def design_U_value(self, source: str, structure: str) -> Optional[float]:
        return self.design_U_values.get((source, structure))

    def source_year(self, source: str) -> Optional[float]:
        src = self.sources.get(source)
        if src is None:
            raise MissingDataError(f"Source `{source}` not found")
        return src.source_year

    def structure_types_of(self, structure: str) -> List[str]:
        return [st for (s, st) in self.structure_structure_types if s == structure]

    def structure_type_of(self, structure: str) -> StructureType:
        """The structure type of `structure`, the first one if several are mapped."""
        types = self.structure_types_of(structure)
        if not types:
            raise MissingDataError(f"Structure `{structure}` has no `structure_type`")
        name = types[0]
        if name not in self.structure_types:
            raise MissingDataError(f"Structure type `{name}` of `{structure}` not found")
        return self.structure_types[name]

    def heat_flow_direction_of(self, structure_type: str) -> HeatFlowDirection:
        directions = [d for (st, d) in self.structure_type_heat_flow_directions if st == structure_type]
        if not directions:
            raise MissingDataError(
                f"Structure type `{structure_type}` has no `ventilation_space_heat_flow_direction`"
            )
        name = directions[0]
        if name not in self.ventilation_space_heat_flow_directions:
            raise MissingDataError(f"Heat flow direction `{name}` not found")
        return self.ventilation_space_heat_flow_directions[name]

    def building_type_weights_of(self, source: str, structure: str) -> Dict[str, Optional[float]]:
        """Applicability weights of `(source, structure)` by building type."""
        return {
            bt: weight
            for (src, struct, bt), weight in self.building_type_weights.items()
            if src == source and struct == structure
        }

    def frame_materials_of(self, structure_material: str) -> List[str]:
        return [fm for (mat, fm) in self.structure_material_frame_materials if mat == structure_material]

    def share(self, building_type: str, location_id: str, frame_material: str) -> float:
        """Frame material share, zero when undefined."""
        value = self.frame_material_shares.get((building_type, location_id, frame_material))
        return float(value) if value is not None else 0.0

    # =========================================================================
    # LOCATIONS
    # =========================================================================

    def limit_location_ids(self, count: Optional[int]) -> List[str]:
        """
        Keep only the first `count` locations and drop relationships to the rest.

        Returns:
            Names of the included locations
        """
        names = list(self.location_ids)
        if count is None or count >= len(names):
            return names
        included = names[:count]
        keep = set(included)
        self.location_ids = {n: self.location_ids[n] for n in included}
        self.building_stock_records = {
            k: v for k, v in self.building_stock_records.items() if k[3] in keep
        }
        self.average_floor_areas = {
            k: v for k, v in self.average_floor_areas.items() if k[1] in keep
        }
        self.frame_material_shares = {
            k: v for k, v in self.frame_material_shares.items() if k[1] in keep
        }
        return included


def record_fields(record_type) -> List[str]:
    """Parameter field names of a model type, excluding its member fields."""
    members = {
        "name", "source", "structure", "layer_id", "structure_material",
        "building_type", "building_stock", "building_period", "location_id",
        "heat_source",
    }
    return [f.name for f in fields(record_type) if f.name not in members]
