"""
Building stock data processing pipeline.

Processes the raw building stock data into the harmonized statistics:

1. Integrity checks of the raw data (optional, strict mode aborts)
2. Location limit for testing
3. Building stock years and building stock statistics
4. Light structure types, the structure catalog and structure statistics
5. Ventilation and fenestration statistics

Usage:
    repository = load_repository("data/raw_data.json")
    statistics = create_processed_statistics(repository, ProcessingParameters())
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging

from .core.config import ProcessingParameters
from .core.models import BuildingStructure
from .core.repository import BuildingStockRepository
from .integrity import IntegrityReport, validate_repository
from .statistical.building_stock import add_building_stock_year, create_building_stock_statistics
from .statistical.records import (
    BuildingStockKey,
    BuildingStockStatistics,
    StructureKey,
    StructureStatistics,
    VentilationAndFenestrationStatistics,
    VentilationKey,
)
from .statistical.structure_statistics import add_light_structure_types, create_structure_statistics
from .statistical.ventilation import create_ventilation_and_fenestration_statistics
from .structural.catalog import build_catalog

logger = logging.getLogger(__name__)


@dataclass
class ProcessedStatistics:
    """Output of one processing run."""

    repository: BuildingStockRepository
    parameters: ProcessingParameters
    building_stock_statistics: Dict[BuildingStockKey, BuildingStockStatistics] = field(default_factory=dict)
    structure_statistics: Dict[StructureKey, StructureStatistics] = field(default_factory=dict)
    ventilation_and_fenestration_statistics: Dict[
        VentilationKey, VentilationAndFenestrationStatistics
    ] = field(default_factory=dict)
    catalog: List[BuildingStructure] = field(default_factory=list)
    integrity_report: Optional[IntegrityReport] = None
    timings: Dict[str, float] = field(default_factory=dict)

    def relations(self) -> Dict[str, Dict[tuple, object]]:
        """The output relations by name."""
        return {
            "building_stock_statistics": self.building_stock_statistics,
            "structure_statistics": self.structure_statistics,
            "ventilation_and_fenestration_statistics": self.ventilation_and_fenestration_statistics,
        }


class _Step:
    """Times and logs a pipeline step."""

    def __init__(self, name: str, timings: Dict[str, float]):
        self.name = name
        self.timings = timings

    def __enter__(self):
        logger.info(f"{self.name}...")
        self.start = time.time()
        return self

    def __exit__(self, exc_type, exc, tb):
        elapsed = time.time() - self.start
        self.timings[self.name] = elapsed
        if exc_type is None:
            logger.info(f"{self.name} done in {elapsed:.2f} s")
        return False


def create_processed_statistics(
    repository: BuildingStockRepository,
    parameters: Optional[ProcessingParameters] = None,
) -> ProcessedStatistics:
    """
    Process the raw data in `repository` into the output statistics.

    The repository is modified in place: locations beyond `num_location_ids`
    are dropped, and the building stock years and light structure types are
    added. Both additions are idempotent, so processing the same repository
    again yields identical statistics.

    Args:
        repository: Raw building stock data
        parameters: Run parameters, validated on construction

    Raises:
        IntegrityError: With `strict_integrity` if the raw data has violations
        NoApplicableDataError: If a cell has no data and `on_missing_data="raise"`
        WeightSumError: If aggregation weights fail to sum up to one
    """
    parameters = parameters or ProcessingParameters()
    result = ProcessedStatistics(repository=repository, parameters=parameters)
    start_time = time.time()

    if parameters.run_integrity_checks:
        with _Step("Checking raw data integrity", result.timings):
            report = validate_repository(repository)
            report.log()
            result.integrity_report = report
        if parameters.strict_integrity:
            report.raise_if_any()

    if parameters.num_location_ids is not None:
        included = repository.limit_location_ids(parameters.num_location_ids)
        logger.info(f"Limited processing to {len(included)} locations")

    with _Step("Creating building stock statistics", result.timings):
        add_building_stock_year(repository)
        result.building_stock_statistics = create_building_stock_statistics(repository)

    with _Step("Creating structure statistics", result.timings):
        add_light_structure_types(repository)
        result.catalog = build_catalog(repository, parameters)
        result.structure_statistics = create_structure_statistics(
            repository, result.catalog, parameters
        )

    with _Step("Creating ventilation and fenestration statistics", result.timings):
        result.ventilation_and_fenestration_statistics = (
            create_ventilation_and_fenestration_statistics(repository, parameters)
        )

    logger.info(f"Processing finished in {time.time() - start_time:.2f} s")
    return result
