"""
Building Stock Data

Aggregates raw building construction data and building stock statistics
into harmonized building archetype properties: U-values, effective thermal
mass, thermal bridges, ventilation and fenestration, indexed by building
type, building period, location and structure type.
"""

__version__ = "0.1.0"

from .core import BuildingStockRepository, ProcessingParameters
from .ingest import load_repository
from .export import export_statistics
from .pipeline import ProcessedStatistics, create_processed_statistics

__all__ = [
    "__version__",
    "BuildingStockRepository",
    "ProcessingParameters",
    "load_repository",
    "export_statistics",
    "ProcessedStatistics",
    "create_processed_statistics",
]
