"""
Pytest configuration and fixtures for building stock data tests.

Provides reusable test fixtures for:
- A small literal raw data repository (materials, walls, a base floor
  on the ground, a partition wall, frame shares, ventilation and
  fenestration sources, building stock census rows)
- Processing parameters
- Hand-made catalogued structures for the aggregation tests
"""

import pytest
from pathlib import Path
import tempfile
import shutil

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from building_stock_data.core import (
    BuildingPeriod,
    BuildingStock,
    BuildingStockRecord,
    BuildingStockRepository,
    BuildingStructure,
    FenestrationRecord,
    HeatFlowDirection,
    LayerRecord,
    Location,
    Material,
    ProcessingParameters,
    Property,
    Source,
    StructureType,
    VentilationRecord,
    Zone,
)


# =============================================================================
# PATH FIXTURES
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory for test outputs, cleaned up after test."""
    tmp = tempfile.mkdtemp(prefix="building_stock_data_test_")
    yield Path(tmp)
    shutil.rmtree(tmp, ignore_errors=True)


# =============================================================================
# RAW DATA
# =============================================================================

MATERIALS = {
    # name: (density, specific heat capacity, thermal conductivity) ranges
    "gypsum board": ((800, 900), (1000, 1100), (0.2, 0.3)),
    "mineral wool": ((20, 40), (800, 1000), (0.035, 0.045)),
    "timber": ((400, 600), (1500, 1700), (0.12, 0.14)),
    "concrete": ((2200, 2400), (850, 950), (1.6, 2.0)),
    "brick": ((1600, 1800), (800, 900), (0.5, 0.7)),
    "sand": ((1500, 1700), (800, 900), (2.0, 2.0)),
    "ventilation space": ((1.2, 1.2), (1000, 1000), (0.025, 0.025)),
}

FRAME_MATERIALS = {
    "gypsum board": "other",
    "mineral wool": "other",
    "timber": "wood",
    "concrete": "concrete",
    "brick": "masonry",
    "sand": "other",
    "ventilation space": "other",
}

# (source, structure): [(layer_id, material, number, tag, weight, min mm, load-bearing mm)]
LAYERS = {
    ("src_2005", "timber_wall"): [
        ("layer_1", "gypsum board", -1, "interior finish", 1.0, 13.0, None),
        ("layer_2", "timber", 0, "load-bearing structure", 0.1, 150.0, 200.0),
        ("layer_2", "mineral wool", 0, "thermal insulation", 0.9, 150.0, 200.0),
        ("layer_3", "ventilation space", 1, "other", 1.0, 25.0, None),
        ("layer_4", "timber", 2, "exterior finish", 1.0, 20.0, None),
    ],
    ("src_1995", "concrete_wall"): [
        ("layer_1", "gypsum board", -2, "interior finish", 1.0, 13.0, None),
        ("layer_2", "concrete", -1, "load-bearing structure", 1.0, 150.0, 200.0),
        ("layer_3", "mineral wool", 0, "thermal insulation", 1.0, 100.0, None),
        ("layer_4", "brick", 1, "exterior finish", 1.0, 85.0, None),
    ],
    ("src_1995", "partition"): [
        ("layer_1", "gypsum board", -1, "interior finish", 1.0, 13.0, None),
        ("layer_2", "timber", 0, "load-bearing structure", 0.2, 70.0, 95.0),
        ("layer_2", "mineral wool", 0, "thermal insulation", 0.8, 70.0, 95.0),
        ("layer_3", "gypsum board", 1, "exterior finish", 1.0, 13.0, None),
    ],
    ("src_1960", "slab"): [
        ("layer_1", "timber", -1, "interior finish", 1.0, 20.0, None),
        ("layer_2", "concrete", 0, "load-bearing structure", 1.0, 100.0, 150.0),
        ("layer_3", "mineral wool", 1, "thermal insulation", 1.0, 50.0, None),
        ("layer_4", "sand", 2, "ground", 1.0, 300.0, None),
    ],
    ("src_1995", "unused_wall"): [
        ("layer_1", "gypsum board", -1, "interior finish", 1.0, 13.0, None),
        ("layer_2", "concrete", 0, "load-bearing structure", 1.0, 100.0, None),
    ],
}

STRUCTURE_TYPES = {
    "timber_wall": "exterior_wall",
    "concrete_wall": "exterior_wall",
    "unused_wall": "exterior_wall",
    "partition": "partition_wall",
    "slab": "base_floor",
}

DESIGN_U_VALUES = {
    ("src_2005", "timber_wall"): 0.17,
    ("src_1995", "concrete_wall"): 0.3,
    ("src_1995", "partition"): None,
    ("src_1960", "slab"): 0.4,
    ("src_1995", "unused_wall"): 0.5,
}

BUILDING_TYPE_WEIGHTS = {
    ("src_2005", "timber_wall", "detached_house"): 1.0,
    ("src_2005", "timber_wall", "apartment_block"): 0.0,
    ("src_1995", "concrete_wall", "detached_house"): 0.5,
    ("src_1995", "concrete_wall", "apartment_block"): 1.0,
    ("src_1995", "partition", "detached_house"): 1.0,
    ("src_1995", "partition", "apartment_block"): 1.0,
    ("src_1960", "slab", "detached_house"): 1.0,
    ("src_1960", "slab", "apartment_block"): 1.0,
    ("src_1995", "unused_wall", "detached_house"): 0.0,
}

FRAME_MATERIAL_SHARES = {
    ("detached_house", "L1"): {"wood": 0.6, "concrete": 0.2, "masonry": 0.1, "other": 0.1},
    ("detached_house", "L2"): {"wood": 0.5, "concrete": 0.3, "masonry": 0.1, "other": 0.1},
    ("apartment_block", "L1"): {"wood": 0.1, "concrete": 0.7, "masonry": 0.2, "other": 0.0},
    ("apartment_block", "L2"): {"wood": 0.1, "concrete": 0.6, "masonry": 0.3, "other": 0.0},
}

AVERAGE_FLOOR_AREAS = {
    ("detached_house", "L1", "1990-1999"): 140.0,
    ("detached_house", "L1", "2000-2010"): 150.0,
    ("detached_house", "L2", "1990-1999"): 135.0,
    ("detached_house", "L2", "2000-2010"): 145.0,
    ("apartment_block", "L1", "1990-1999"): 2400.0,
    ("apartment_block", "L1", "2000-2010"): 2500.0,
    ("apartment_block", "L2", "1990-1999"): 2300.0,
    ("apartment_block", "L2", "2000-2010"): 2600.0,
}

BUILDING_STOCK_RECORDS = {
    ("statistics_2020", "detached_house", "2000-2010", "L1", "district_heating"): 120.0,
    ("statistics_2020", "detached_house", "1990-1999", "L1", "electricity"): 80.0,
    ("statistics_2020", "apartment_block", "2000-2010", "L2", "district_heating"): 15.0,
}


def make_repository() -> BuildingStockRepository:
    """Build the literal test repository, passing all integrity checks."""
    repository = BuildingStockRepository()

    repository.building_periods = {
        "1990-1999": BuildingPeriod("1990-1999", 1990.0, 1999.0),
        "2000-2010": BuildingPeriod("2000-2010", 2000.0, 2010.0),
    }
    repository.building_stocks = {"statistics_2020": BuildingStock("statistics_2020")}
    repository.building_types = ["detached_house", "apartment_block"]
    repository.frame_materials = ["wood", "concrete", "masonry", "other"]
    repository.heat_sources = ["district_heating", "electricity"]
    repository.location_ids = {
        "L1": Location("L1", "Helsinki"),
        "L2": Location("L2", "Tampere"),
    }

    source_years = {
        "src_1960": 1960.0,
        "src_1995": 1995.0,
        "src_2005": 2005.0,
        "vent_1990": 1990.0,
        "vent_2003": 2003.0,
        "fen_1995": 1995.0,
        "fen_2008": 2008.0,
    }
    repository.sources = {
        name: Source(name, year, f"Test source from {year:.0f}")
        for name, year in source_years.items()
    }

    for name, (density, capacity, conductivity) in MATERIALS.items():
        repository.structure_materials[name] = Material(
            name,
            minimum_density_kg_m3=density[0],
            maximum_density_kg_m3=density[1],
            minimum_specific_heat_capacity_J_kgK=capacity[0],
            maximum_specific_heat_capacity_J_kgK=capacity[1],
            minimum_thermal_conductivity_W_mK=conductivity[0],
            maximum_thermal_conductivity_W_mK=conductivity[1],
        )
    repository.structure_material_frame_materials = list(FRAME_MATERIALS.items())

    repository.structure_types = {
        "exterior_wall": StructureType(
            "exterior_wall", 0.04, 0.13, 0.1, False, "Walls facing the ambient air"
        ),
        "partition_wall": StructureType(
            "partition_wall", 0.13, 0.13, 0.0, True, "Walls between interior spaces"
        ),
        "base_floor": StructureType(
            "base_floor", 0.04, 0.17, 0.2, False, "Floors on the ground or above a crawl space"
        ),
    }
    repository.ventilation_space_heat_flow_directions = {
        "horizontal": HeatFlowDirection("horizontal", {0.0: 0.0, 10.0: 0.15, 50.0: 0.18}),
        "downwards": HeatFlowDirection("downwards", {0.0: 0.0, 10.0: 0.15, 50.0: 0.21}),
    }
    repository.structure_type_heat_flow_directions = [
        ("exterior_wall", "horizontal"),
        ("partition_wall", "horizontal"),
        ("base_floor", "downwards"),
    ]

    repository.structures = list(STRUCTURE_TYPES)
    repository.structure_structure_types = list(STRUCTURE_TYPES.items())
    repository.design_U_values = dict(DESIGN_U_VALUES)
    repository.building_type_weights = dict(BUILDING_TYPE_WEIGHTS)

    layer_ids = []
    for (source, structure), layers in LAYERS.items():
        for layer_id, material, number, tag, weight, minimum, load_bearing in layers:
            repository.add_layer(
                LayerRecord(
                    source, structure, layer_id, material,
                    layer_number=number,
                    layer_tag=tag,
                    layer_weight=weight,
                    layer_minimum_thickness_mm=minimum,
                    layer_load_bearing_thickness_mm=load_bearing,
                )
            )
            if layer_id not in layer_ids:
                layer_ids.append(layer_id)
    repository.layer_ids = layer_ids

    for (building_type, location_id), shares in FRAME_MATERIAL_SHARES.items():
        for frame_material, share in shares.items():
            repository.frame_material_shares[(building_type, location_id, frame_material)] = share
    repository.average_floor_areas = dict(AVERAGE_FLOOR_AREAS)
    repository.building_stock_records = {
        key: BuildingStockRecord(*key, number_of_buildings=count)
        for key, count in BUILDING_STOCK_RECORDS.items()
    }

    repository.ventilation_sources = {
        ("vent_1990", "detached_house"): VentilationRecord(
            "vent_1990", "detached_house", 0.3, 0.5, 4.0, 6.0, 20.0, 30.0, 0.0, 0.2
        ),
        ("vent_1990", "apartment_block"): VentilationRecord(
            "vent_1990", "apartment_block", 0.4, 0.6, 2.0, 4.0, 30.0, 40.0, 0.4, 0.6
        ),
        ("vent_2003", "detached_house"): VentilationRecord(
            "vent_2003", "detached_house", 0.5, 0.7, 2.0, 4.0, 20.0, 30.0, 0.5, 0.7
        ),
    }
    repository.fenestration_sources = {
        ("fen_1995", "detached_house"): FenestrationRecord("fen_1995", "detached_house", 1.6, 2.0, 0.25, 0.6),
        ("fen_1995", "apartment_block"): FenestrationRecord("fen_1995", "apartment_block", 1.6, 2.0, 0.25, 0.6),
        ("fen_2008", "detached_house"): FenestrationRecord("fen_2008", "detached_house", 1.0, 1.2, 0.2, 0.5),
    }
    return repository


# =============================================================================
# REPOSITORY FIXTURES
# =============================================================================

@pytest.fixture
def repository() -> BuildingStockRepository:
    """Fresh literal raw data repository."""
    return make_repository()


@pytest.fixture
def parameters() -> ProcessingParameters:
    """Default processing parameters without the pre-flight integrity checks."""
    return ProcessingParameters(run_integrity_checks=False)


# =============================================================================
# CATALOG FIXTURES
# =============================================================================

@pytest.fixture
def structure_factory():
    """Factory for catalogued structures with uniform property values."""

    def make(
        name: str,
        load_bearing_materials=("timber",),
        structure_type: str = "exterior_wall",
        year: float = 2005.0,
        building_types=("detached_house",),
        total_U: float = 0.2,
        thermal_mass: float = 50000.0,
    ) -> BuildingStructure:
        return BuildingStructure(
            name=name,
            structure_type=structure_type,
            year=year,
            internal=False,
            load_bearing=True,
            load_bearing_materials=tuple(load_bearing_materials),
            design_U_value=Property.of(total_U),
            U_values={
                Zone.INTERIOR: Property(5.0, 5.0),
                Zone.EXTERIOR: Property(total_U, total_U),
                Zone.TOTAL: Property(total_U, total_U),
            },
            effective_thermal_mass=Property(thermal_mass, thermal_mass),
            linear_thermal_bridges=Property.of(0.1),
            building_types=tuple(building_types),
        )

    return make
