"""Statistical aggregation of the processed building stock data."""

from .building_stock import (
    add_building_stock_year,
    create_building_stock_statistics,
    parse_building_stock_year,
)
from .lookback import LookbackResult, find_relevant_entries
from .records import (
    OUTPUT_RELATIONSHIPS,
    BuildingStockStatistics,
    StructureStatistics,
    VentilationAndFenestrationStatistics,
)
from .structure_statistics import (
    add_light_structure_types,
    create_structure_statistics,
    frame_material_weights,
    structure_type_parameter_values,
    structure_type_map,
)
from .ventilation import create_ventilation_and_fenestration_statistics

__all__ = [
    "add_building_stock_year",
    "create_building_stock_statistics",
    "parse_building_stock_year",
    "LookbackResult",
    "find_relevant_entries",
    "OUTPUT_RELATIONSHIPS",
    "BuildingStockStatistics",
    "StructureStatistics",
    "VentilationAndFenestrationStatistics",
    "add_light_structure_types",
    "create_structure_statistics",
    "frame_material_weights",
    "structure_type_parameter_values",
    "structure_type_map",
    "create_ventilation_and_fenestration_statistics",
]
