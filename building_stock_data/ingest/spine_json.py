"""
Datastore JSON parser.

Parses the JSON export of the relational datastore into a
`BuildingStockRepository`. The export lists the objects, relationships and
their parameter values:

    {
        "objects": [["source", "source_1"], ...],
        "object_parameter_values": [["source", "source_1", "source_year", 1995], ...],
        "relationships": [["source__structure", ["source_1", "wall_a"]], ...],
        "relationship_parameter_values": [
            ["source__structure", ["source_1", "wall_a"], "design_U_W_m2K", 0.3], ...
        ]
    }

Map values are given as `{"type": "map", "data": [[x, y], ...]}`. Values are
kept as given: type and plausibility problems are reported by the integrity
checks, not by the parser.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field

from ..core.models import (
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
from ..core.repository import OBJECT_CLASSES, RELATIONSHIP_CLASSES, BuildingStockRepository

logger = logging.getLogger(__name__)

# Object classes with parameters -> model
OBJECT_MODELS = {
    "building_period": BuildingPeriod,
    "building_stock": BuildingStock,
    "location_id": Location,
    "source": Source,
    "structure_material": Material,
    "structure_type": StructureType,
    "ventilation_space_heat_flow_direction": HeatFlowDirection,
}

# Relationship classes with several parameters -> record
RELATIONSHIP_RECORDS = {
    "building_stock__building_type__building_period__location_id__heat_source": BuildingStockRecord,
    "fenestration_source__building_type": FenestrationRecord,
    "source__structure__layer_id__structure_material": LayerRecord,
    "ventilation_source__building_type": VentilationRecord,
}

# Relationship classes with a single parameter -> parameter name
RELATIONSHIP_VALUES = {
    "building_type__location_id__building_period": "average_floor_area_m2",
    "building_type__location_id__frame_material": "share",
    "source__structure": "design_U_W_m2K",
    "source__structure__building_type": "building_type_weight",
}

# Object classes used under another name in relationship classes
OBJECT_CLASS_ALIASES = {
    "fenestration_source": "source",
    "ventilation_source": "source",
}


class DatastoreExport(BaseModel):
    """Top-level structure of the datastore JSON export."""

    model_config = ConfigDict(extra="ignore")

    objects: List[List[Any]] = Field(default_factory=list)
    object_parameter_values: List[List[Any]] = Field(default_factory=list)
    relationships: List[List[Any]] = Field(default_factory=list)
    relationship_parameter_values: List[List[Any]] = Field(default_factory=list)


def parse_value(value: Any) -> Any:
    """Convert a datastore parameter value, maps become `{x: y}` dicts."""
    if isinstance(value, dict) and value.get("type") == "map":
        data = value.get("data", [])
        if isinstance(data, dict):
            items = data.items()
        else:
            items = [(row[0], row[1]) for row in data]
        return {float(x): parse_value(y) for x, y in items}
    return value


class SpineJSONParser:
    """
    Parser for datastore JSON export files.

    Handles:
    - Loading and validating the export structure
    - Creating the typed objects and relationship records
    - Attaching the parameter values
    """

    def load_json(self, file_path: Union[str, Path]) -> Dict[str, Any]:
        """Load raw JSON from file."""
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Datastore export not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def parse(self, file_path: Union[str, Path]) -> BuildingStockRepository:
        """Parse a datastore JSON export file into a repository."""
        return self.parse_from_dict(self.load_json(file_path))

    def parse_from_dict(self, data: Dict[str, Any]) -> BuildingStockRepository:
        """Parse datastore export data into a repository."""
        export = DatastoreExport.model_validate(data)
        repository = BuildingStockRepository()

        for entry in export.objects:
            self._add_object(repository, entry[0], entry[1])
        for entry in export.object_parameter_values:
            self._set_object_parameter(repository, entry[0], entry[1], entry[2], entry[3])
        for entry in export.relationships:
            self._add_relationship(repository, entry[0], tuple(entry[1]))
        for entry in export.relationship_parameter_values:
            self._set_relationship_parameter(
                repository, entry[0], tuple(entry[1]), entry[2], entry[3]
            )

        repository.invalidate_indexes()
        logger.info(
            f"Loaded {len(repository.structures)} structures, "
            f"{len(repository.layers)} layers and "
            f"{len(repository.building_stock_records)} building stock entries"
        )
        return repository

    # =========================================================================
    # OBJECTS
    # =========================================================================

    def _add_object(self, repository: BuildingStockRepository, class_name: str, name: str) -> None:
        class_name = OBJECT_CLASS_ALIASES.get(class_name, class_name)
        attribute = OBJECT_CLASSES.get(class_name)
        if attribute is None:
            logger.debug(f"Ignoring object `{name}` of unknown class `{class_name}`")
            return
        collection = getattr(repository, attribute)
        if isinstance(collection, dict):
            collection.setdefault(name, OBJECT_MODELS[class_name](name=name))
        elif name not in collection:
            collection.append(name)

    def _set_object_parameter(
        self,
        repository: BuildingStockRepository,
        class_name: str,
        name: str,
        parameter: str,
        value: Any,
    ) -> None:
        class_name = OBJECT_CLASS_ALIASES.get(class_name, class_name)
        model = OBJECT_MODELS.get(class_name)
        if model is None:
            logger.debug(f"Ignoring parameter `{parameter}` of class `{class_name}`")
            return
        collection = getattr(repository, OBJECT_CLASSES[class_name])
        obj = collection.setdefault(name, model(name=name))
        if parameter == "name" or not hasattr(obj, parameter):
            logger.debug(f"Ignoring unknown parameter `{class_name}.{parameter}`")
            return
        setattr(obj, parameter, parse_value(value))

    # =========================================================================
    # RELATIONSHIPS
    # =========================================================================

    def _add_relationship(
        self,
        repository: BuildingStockRepository,
        class_name: str,
        members: tuple,
    ) -> None:
        attribute = RELATIONSHIP_CLASSES.get(class_name)
        if attribute is None:
            logger.debug(f"Ignoring relationship `{':'.join(members)}` of unknown class `{class_name}`")
            return
        collection = getattr(repository, attribute)
        if class_name in RELATIONSHIP_RECORDS:
            collection.setdefault(members, RELATIONSHIP_RECORDS[class_name](*members))
        elif class_name in RELATIONSHIP_VALUES:
            collection.setdefault(members, None)
        elif members not in collection:
            collection.append(members)

    def _set_relationship_parameter(
        self,
        repository: BuildingStockRepository,
        class_name: str,
        members: tuple,
        parameter: str,
        value: Any,
    ) -> None:
        attribute = RELATIONSHIP_CLASSES.get(class_name)
        if attribute is None:
            logger.debug(f"Ignoring parameter `{parameter}` of unknown class `{class_name}`")
            return
        collection = getattr(repository, attribute)
        value = parse_value(value)

        if class_name in RELATIONSHIP_VALUES:
            if parameter != RELATIONSHIP_VALUES[class_name]:
                logger.debug(f"Ignoring unknown parameter `{class_name}.{parameter}`")
                return
            collection[members] = value
            return

        record_type = RELATIONSHIP_RECORDS.get(class_name)
        if record_type is None:
            logger.debug(f"Relationship class `{class_name}` has no parameters")
            return
        record = collection.setdefault(members, record_type(*members))
        if record_type is FenestrationRecord and parameter == "U_value_W_m2K":
            record.min_U_value_W_m2K = value
            record.max_U_value_W_m2K = value
        elif hasattr(record, parameter):
            setattr(record, parameter, value)
        else:
            logger.debug(f"Ignoring unknown parameter `{class_name}.{parameter}`")


def load_repository(source: Union[str, Path, Dict[str, Any]]) -> BuildingStockRepository:
    """
    Load a repository from a datastore JSON export file or already parsed data.

    Args:
        source: Path to the export file, or its parsed content
    """
    parser = SpineJSONParser()
    if isinstance(source, dict):
        return parser.parse_from_dict(source)
    return parser.parse(source)
