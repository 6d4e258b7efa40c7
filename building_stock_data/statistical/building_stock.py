"""
Building stock statistics.

Combines the number of buildings of every
`(building_stock, building_type, building_period, location_id, heat_source)`
with the average floor area of the `(building_type, location_id, building_period)`.
The floor area data has no building stock or heat source dimension, so the
average floor area is assumed independent of them.
"""

from dataclasses import replace
from typing import Dict
import logging

from ..core.repository import BuildingStockRepository
from ..utils.validation import ValidationError
from .records import BuildingStockKey, BuildingStockStatistics

logger = logging.getLogger(__name__)


def parse_building_stock_year(name: str) -> float:
    """
    Parse the year from a building stock name formatted as `<NAME>_<YEAR>`.

    Raises:
        ValidationError: If the name has no parseable year
    """
    parts = name.split("_")
    try:
        return float(parts[1])
    except (IndexError, ValueError):
        raise ValidationError(
            f"Cannot parse the year of building stock `{name}`",
            field="building_stock",
            suggestions=["Name building stocks as `<NAME>_<YEAR>`, e.g. `statistics_2020`"],
        )


def add_building_stock_year(repository: BuildingStockRepository) -> None:
    """Set the `building_stock_year` of every building stock from its name."""
    for name, stock in repository.building_stocks.items():
        repository.building_stocks[name] = replace(
            stock, building_stock_year=parse_building_stock_year(name)
        )


def create_building_stock_statistics(
    repository: BuildingStockRepository,
) -> Dict[BuildingStockKey, BuildingStockStatistics]:
    """Create the `building_stock_statistics` relation."""
    statistics = {}
    missing_floor_area = 0
    for key, record in repository.building_stock_records.items():
        _, building_type, building_period, location_id, _ = key
        floor_area = repository.average_floor_areas.get((building_type, location_id, building_period))
        if floor_area is None:
            missing_floor_area += 1
        statistics[key] = BuildingStockStatistics(
            number_of_buildings=record.number_of_buildings,
            average_gross_floor_area_m2_per_building=floor_area,
        )
    if missing_floor_area:
        logger.warning(f"No average floor area for {missing_floor_area} building stock entries")
    logger.info(f"Created {len(statistics)} building stock statistics entries")
    return statistics
