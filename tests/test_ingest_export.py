"""
Tests for loading the datastore JSON export and exporting the processed
statistics.

Run with: pytest tests/test_ingest_export.py -v
"""

import json

import pytest

from building_stock_data.core import LayerTag, ProcessingParameters
from building_stock_data.export import StatisticsJSONExporter, export_statistics
from building_stock_data.ingest import SpineJSONParser, load_repository, parse_value
from building_stock_data.pipeline import create_processed_statistics


@pytest.fixture
def export_data() -> dict:
    """Minimal datastore export with one structure."""
    return {
        "object_classes": ["source", "structure", "structure_type"],
        "objects": [
            ["source", "src_1995"],
            ["structure", "wall"],
            ["structure_type", "exterior_wall"],
            ["structure_material", "brick"],
            ["layer_id", "layer_1"],
            ["ventilation_space_heat_flow_direction", "horizontal"],
            ["fenestration_source", "fen_2000"],
            ["building_type", "detached_house"],
            ["unknown_class", "whatever"],
        ],
        "object_parameter_values": [
            ["source", "src_1995", "source_year", 1995],
            ["source", "src_1995", "source_description", "Literature"],
            ["structure_type", "exterior_wall", "exterior_resistance_m2K_W", 0.04],
            ["structure_type", "exterior_wall", "is_internal", False],
            ["structure_material", "brick", "minimum_thermal_conductivity_W_mK", 0.5],
            [
                "ventilation_space_heat_flow_direction", "horizontal", "thermal_resistance_m2K_W",
                {"type": "map", "data": [[0, 0.0], [10, 0.15], [50, 0.18]]},
            ],
            ["fenestration_source", "fen_2000", "source_year", 2000],
            ["source", "src_1995", "unknown_parameter", 1],
        ],
        "relationships": [
            ["source__structure", ["src_1995", "wall"]],
            ["structure__structure_type", ["wall", "exterior_wall"]],
            ["source__structure__layer_id__structure_material", ["src_1995", "wall", "layer_1", "brick"]],
            ["fenestration_source__building_type", ["fen_2000", "detached_house"]],
        ],
        "relationship_parameter_values": [
            ["source__structure", ["src_1995", "wall"], "design_U_W_m2K", 0.3],
            [
                "source__structure__layer_id__structure_material",
                ["src_1995", "wall", "layer_1", "brick"], "layer_number", 0.0,
            ],
            [
                "source__structure__layer_id__structure_material",
                ["src_1995", "wall", "layer_1", "brick"], "layer_tag", "load-bearing structure",
            ],
            ["fenestration_source__building_type", ["fen_2000", "detached_house"], "U_value_W_m2K", 1.4],
            ["source__structure__building_type", ["src_1995", "wall", "detached_house"], "building_type_weight", 1.0],
        ],
    }


class TestParseValue:
    """Tests for datastore value conversion."""

    def test_scalar_unchanged(self):
        assert parse_value(0.5) == 0.5
        assert parse_value("text") == "text"

    def test_map_from_rows(self):
        assert parse_value({"type": "map", "data": [[0, 1.0], [10, 2.0]]}) == {0.0: 1.0, 10.0: 2.0}

    def test_map_from_dict(self):
        assert parse_value({"type": "map", "data": {"5": 0.1}}) == {5.0: 0.1}


class TestSpineJSONParser:
    """Tests for the datastore JSON parser."""

    def test_objects(self, export_data):
        repository = load_repository(export_data)
        assert repository.structures == ["wall"]
        assert repository.building_types == ["detached_house"]
        assert repository.sources["src_1995"].source_year == 1995
        assert repository.sources["src_1995"].source_description == "Literature"
        assert repository.structure_types["exterior_wall"].is_internal is False

    def test_aliased_source_objects(self, export_data):
        repository = load_repository(export_data)
        assert repository.sources["fen_2000"].source_year == 2000

    def test_map_parameter(self, export_data):
        repository = load_repository(export_data)
        direction = repository.ventilation_space_heat_flow_directions["horizontal"]
        assert direction.thermal_resistance_m2K_W == {0.0: 0.0, 10.0: 0.15, 50.0: 0.18}

    def test_relationships(self, export_data):
        repository = load_repository(export_data)
        assert repository.design_U_value("src_1995", "wall") == 0.3
        assert repository.structure_types_of("wall") == ["exterior_wall"]
        assert repository.building_type_weights_of("src_1995", "wall") == {"detached_house": 1.0}
        records = repository.layer_records("src_1995", "wall")
        assert len(records) == 1
        assert records[0].layer_number == 0.0
        assert LayerTag.parse(records[0].layer_tag) == LayerTag.LOAD_BEARING

    def test_single_fenestration_U_value(self, export_data):
        repository = load_repository(export_data)
        record = repository.fenestration_sources[("fen_2000", "detached_house")]
        assert record.min_U_value_W_m2K == 1.4
        assert record.max_U_value_W_m2K == 1.4

    def test_unknown_entries_ignored(self, export_data):
        repository = load_repository(export_data)
        assert not hasattr(repository.sources["src_1995"], "unknown_parameter")

    def test_load_from_file(self, export_data, temp_dir):
        path = temp_dir / "raw_data.json"
        path.write_text(json.dumps(export_data), encoding="utf-8")
        repository = SpineJSONParser().parse(path)
        assert repository.design_U_value("src_1995", "wall") == 0.3

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_repository(temp_dir / "missing.json")


class TestStatisticsJSONExporter:
    """Tests for the processed statistics export."""

    @pytest.fixture
    def statistics(self, repository):
        return create_processed_statistics(repository, ProcessingParameters())

    def test_layout(self, statistics):
        data = StatisticsJSONExporter().to_dict(statistics)
        assert set(data) == {
            "object_classes",
            "relationship_classes",
            "objects",
            "object_parameter_values",
            "relationships",
            "relationship_parameter_values",
        }
        assert ["structure_statistics", ["building_type", "building_period", "location_id", "structure_type"]] in (
            data["relationship_classes"]
        )

    def test_relationships_exported(self, statistics):
        data = StatisticsJSONExporter().to_dict(statistics)
        names = [r[0] for r in data["relationships"]]
        assert names.count("building_stock_statistics") == 3
        assert names.count("structure_statistics") == 40
        assert names.count("ventilation_and_fenestration_statistics") == 8

    def test_referenced_objects_with_parameters(self, statistics):
        data = StatisticsJSONExporter().to_dict(statistics)
        assert ["structure_type", "light_exterior_wall"] in data["objects"]
        assert ["building_stock", "statistics_2020", "building_stock_year", 2020.0] in (
            data["object_parameter_values"]
        )
        assert ["location_id", "L1", "location_name", "Helsinki"] in data["object_parameter_values"]

    def test_undefined_values_omitted(self, statistics):
        data = StatisticsJSONExporter().to_dict(statistics)
        assert all(value is not None for *_, value in data["relationship_parameter_values"])

    def test_export_file(self, statistics, temp_dir):
        path = export_statistics(statistics, temp_dir / "out" / "statistics.json")
        assert path.exists()
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        assert len(data["relationships"]) == 51

    def test_export_reloads(self, statistics, temp_dir):
        path = export_statistics(statistics, temp_dir / "statistics.json", pretty=False)
        reloaded = load_repository(path)
        assert "statistics_2020" in reloaded.building_stocks
        assert reloaded.building_stocks["statistics_2020"].building_stock_year == 2020.0
