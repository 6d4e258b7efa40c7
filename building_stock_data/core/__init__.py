"""Core data model, repository and configuration."""

from .config import ProcessingParameters, Settings, settings
from .errors import (
    BuildingStockDataError,
    IntegrityError,
    MissingDataError,
    NoApplicableDataError,
    WeightSumError,
)
from .models import (
    BuildingPeriod,
    BuildingStock,
    BuildingStockRecord,
    BuildingStructure,
    FenestrationRecord,
    HeatFlowDirection,
    Layer,
    LayerRecord,
    LayerTag,
    Location,
    Material,
    Property,
    PropertyLayer,
    Source,
    StructureProperties,
    StructureType,
    VentilationRecord,
    Zone,
)
from .repository import BuildingStockRepository, OBJECT_CLASSES, RELATIONSHIP_CLASSES

__all__ = [
    "ProcessingParameters",
    "Settings",
    "settings",
    "BuildingStockDataError",
    "IntegrityError",
    "MissingDataError",
    "NoApplicableDataError",
    "WeightSumError",
    "BuildingPeriod",
    "BuildingStock",
    "BuildingStockRecord",
    "BuildingStructure",
    "FenestrationRecord",
    "HeatFlowDirection",
    "Layer",
    "LayerRecord",
    "LayerTag",
    "Location",
    "Material",
    "Property",
    "PropertyLayer",
    "Source",
    "StructureProperties",
    "StructureType",
    "VentilationRecord",
    "Zone",
    "BuildingStockRepository",
    "OBJECT_CLASSES",
    "RELATIONSHIP_CLASSES",
]
