"""
Tests for the processing pipeline, configuration and CLI.

Run with: pytest tests/test_pipeline.py -v
"""

import json
import logging

import pydantic
import pytest
from typer.testing import CliRunner

from building_stock_data import __version__
from building_stock_data.cli import app
from building_stock_data.core import (
    IntegrityError,
    NoApplicableDataError,
    ProcessingParameters,
    Settings,
)
from building_stock_data.pipeline import create_processed_statistics
from building_stock_data.utils import parallel_map, setup_logging
from building_stock_data.utils.logging_config import ConsoleFormatter

from conftest import make_repository


def repository_to_export(repository) -> dict:
    """Datastore export layout of the literal test repository."""
    objects = []
    object_parameter_values = []
    object_collections = {
        "building_period": repository.building_periods,
        "building_stock": repository.building_stocks,
        "location_id": repository.location_ids,
        "source": repository.sources,
        "structure_material": repository.structure_materials,
        "structure_type": repository.structure_types,
    }
    for class_name, collection in object_collections.items():
        for name, obj in collection.items():
            objects.append([class_name, name])
            for parameter, value in vars(obj).items():
                if parameter != "name" and value is not None:
                    object_parameter_values.append([class_name, name, parameter, value])
    for name, direction in repository.ventilation_space_heat_flow_directions.items():
        objects.append(["ventilation_space_heat_flow_direction", name])
        object_parameter_values.append([
            "ventilation_space_heat_flow_direction", name, "thermal_resistance_m2K_W",
            {"type": "map", "data": [[w, r] for w, r in direction.thermal_resistance_m2K_W.items()]},
        ])
    for class_name, names in [
        ("building_type", repository.building_types),
        ("frame_material", repository.frame_materials),
        ("heat_source", repository.heat_sources),
        ("layer_id", repository.layer_ids),
        ("structure", repository.structures),
    ]:
        objects.extend([class_name, name] for name in names)

    relationships = []
    relationship_parameter_values = []
    for class_name, collection in [
        ("structure__structure_type", repository.structure_structure_types),
        ("structure_material__frame_material", repository.structure_material_frame_materials),
        ("structure_type__ventilation_space_heat_flow_direction", repository.structure_type_heat_flow_directions),
    ]:
        relationships.extend([class_name, list(members)] for members in collection)
    for class_name, parameter, collection in [
        ("building_type__location_id__building_period", "average_floor_area_m2", repository.average_floor_areas),
        ("building_type__location_id__frame_material", "share", repository.frame_material_shares),
        ("source__structure", "design_U_W_m2K", repository.design_U_values),
        ("source__structure__building_type", "building_type_weight", repository.building_type_weights),
    ]:
        for members, value in collection.items():
            relationships.append([class_name, list(members)])
            if value is not None:
                relationship_parameter_values.append([class_name, list(members), parameter, value])
    members_count = {
        "building_stock__building_type__building_period__location_id__heat_source": 5,
        "source__structure__layer_id__structure_material": 4,
        "ventilation_source__building_type": 2,
        "fenestration_source__building_type": 2,
    }
    for class_name, collection in [
        ("building_stock__building_type__building_period__location_id__heat_source", repository.building_stock_records),
        ("source__structure__layer_id__structure_material", repository.layers),
        ("ventilation_source__building_type", repository.ventilation_sources),
        ("fenestration_source__building_type", repository.fenestration_sources),
    ]:
        for members, record in collection.items():
            relationships.append([class_name, list(members)])
            for parameter, value in list(vars(record).items())[members_count[class_name]:]:
                if value is not None:
                    relationship_parameter_values.append([class_name, list(members), parameter, value])

    return {
        "objects": objects,
        "object_parameter_values": object_parameter_values,
        "relationships": relationships,
        "relationship_parameter_values": relationship_parameter_values,
    }


class TestProcessingParameters:
    """Tests for the run parameter validation."""

    def test_defaults(self):
        parameters = ProcessingParameters()
        assert parameters.thermal_conductivity_weight == 0.5
        assert parameters.interior_node_depth == 0.1
        assert parameters.variation_period == 2225140.0
        assert parameters.lookback_if_empty == 10
        assert parameters.max_lookbacks == 20
        assert parameters.on_missing_data == "raise"

    @pytest.mark.parametrize("overrides", [
        {"thermal_conductivity_weight": 1.5},
        {"interior_node_depth": -0.1},
        {"variation_period": 0.0},
        {"HRU_efficiency_weight": 2.0},
        {"lookback_if_empty": 0},
        {"max_lookbacks": -1},
        {"num_location_ids": 0},
        {"on_missing_data": "ignore"},
        {"unknown_parameter": 1},
    ])
    def test_invalid_rejected(self, overrides):
        with pytest.raises(pydantic.ValidationError):
            ProcessingParameters(**overrides)

    def test_settings_overrides(self):
        parameters = Settings().processing_parameters(interior_node_depth=0.3, max_lookbacks=None)
        assert parameters.interior_node_depth == 0.3
        assert parameters.max_lookbacks == 20

    def test_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("BSD_THERMAL_CONDUCTIVITY_WEIGHT", "0.8")
        assert Settings().processing_parameters().thermal_conductivity_weight == 0.8


class TestPipeline:
    """Tests for the full processing run."""

    def test_all_relations_created(self, repository):
        statistics = create_processed_statistics(repository, ProcessingParameters())
        assert statistics.integrity_report is not None and statistics.integrity_report.ok
        assert len(statistics.building_stock_statistics) == 3
        assert len(statistics.structure_statistics) == 40
        assert len(statistics.ventilation_and_fenestration_statistics) == 8
        assert len(statistics.catalog) == 4
        assert "Creating structure statistics" in statistics.timings

    def test_idempotent(self, repository):
        first = create_processed_statistics(repository, ProcessingParameters())
        second = create_processed_statistics(repository, ProcessingParameters())
        assert second.relations() == first.relations()
        assert len(repository.structure_types) == 5

    def test_identical_inputs_identical_outputs(self):
        first = create_processed_statistics(make_repository())
        second = create_processed_statistics(make_repository())
        assert second.relations() == first.relations()

    def test_threaded_matches_sequential(self, repository):
        sequential = create_processed_statistics(make_repository())
        threaded = create_processed_statistics(repository, ProcessingParameters(max_workers=4))
        assert threaded.relations() == sequential.relations()

    def test_location_limit(self, repository):
        statistics = create_processed_statistics(repository, ProcessingParameters(num_location_ids=1))
        assert {key[2] for key in statistics.structure_statistics} == {"L1"}
        assert list(repository.location_ids) == ["L1"]

    def test_strict_integrity(self, repository):
        repository.heat_sources.append("wood_stove")
        with pytest.raises(IntegrityError) as exc_info:
            create_processed_statistics(repository, ProcessingParameters(strict_integrity=True))
        assert len(exc_info.value.report) == 1

    def test_violations_not_fatal_by_default(self, repository):
        repository.heat_sources.append("wood_stove")
        statistics = create_processed_statistics(repository)
        assert len(statistics.integrity_report) == 1
        assert len(statistics.structure_statistics) == 40

    def test_missing_data_aborts(self, repository):
        repository.ventilation_sources = {}
        with pytest.raises(NoApplicableDataError):
            create_processed_statistics(repository)

    def test_missing_data_skipped(self, repository):
        repository.ventilation_sources = {}
        statistics = create_processed_statistics(
            repository, ProcessingParameters(on_missing_data="skip")
        )
        assert statistics.ventilation_and_fenestration_statistics == {}
        assert len(statistics.structure_statistics) == 40


class TestUtilities:
    """Tests for logging and the parallel map."""

    def test_setup_logging_adds_handler(self):
        setup_logging(level="DEBUG")
        root = logging.getLogger()
        assert [type(h.formatter) for h in root.handlers] == [ConsoleFormatter]
        assert root.level == logging.DEBUG
        setup_logging(level="INFO")

    def test_log_to_file(self, temp_dir):
        log_file = temp_dir / "logs" / "run.log"
        setup_logging(level="INFO", log_file=log_file)
        logging.getLogger("building_stock_data.test").debug(
            "Cell skipped", extra={"location_id": "L1"}
        )
        for handler in logging.getLogger().handlers:
            handler.flush()
        entry = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
        assert entry["message"] == "Cell skipped"
        assert entry["level"] == "DEBUG"
        assert entry["location_id"] == "L1"
        for handler in logging.getLogger().handlers:
            handler.close()
        setup_logging(level="INFO")

    def test_console_formatter_appends_context(self):
        formatter = ConsoleFormatter()
        record = logging.LogRecord("test", logging.ERROR, __file__, 1, "No data", None, None)
        record.building_type = "detached_house"
        assert formatter.format(record).endswith("No data [building_type=detached_house]")

    def test_parallel_map_preserves_order(self):
        assert parallel_map(lambda x: x * x, list(range(20)), max_workers=4) == [x * x for x in range(20)]

    def test_parallel_map_propagates_errors(self):
        def fail(x):
            raise ValueError(x)

        with pytest.raises(ValueError):
            parallel_map(fail, [1, 2, 3], max_workers=2)


class TestCLI:
    """Tests for the command-line interface."""

    @pytest.fixture
    def runner(self) -> CliRunner:
        return CliRunner()

    @pytest.fixture
    def input_file(self, temp_dir):
        path = temp_dir / "raw_data.json"
        path.write_text(json.dumps(repository_to_export(make_repository())), encoding="utf-8")
        return path

    def test_version(self, runner):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_check(self, runner, input_file):
        result = runner.invoke(app, ["check", str(input_file)])
        assert result.exit_code == 0, result.output
        assert "No integrity violations" in result.output

    def test_process(self, runner, input_file, temp_dir):
        output = temp_dir / "statistics.json"
        result = runner.invoke(app, ["process", str(input_file), "--output", str(output)])
        assert result.exit_code == 0, result.output
        with open(output, encoding="utf-8") as f:
            data = json.load(f)
        assert len(data["relationships"]) == 51

    def test_process_invalid_parameter(self, runner, input_file):
        result = runner.invoke(app, ["process", str(input_file), "--interior-node-depth", "2"])
        assert result.exit_code == 2

    @pytest.mark.parametrize("command", ["process", "check", "diagnose"])
    def test_missing_input_file(self, runner, temp_dir, command):
        result = runner.invoke(app, [command, str(temp_dir / "missing.json")])
        assert result.exit_code == 1
        assert "Cannot load" in result.output
        assert not isinstance(result.exception, FileNotFoundError)

    @pytest.mark.parametrize("command", ["process", "check"])
    def test_malformed_input_file(self, runner, temp_dir, command):
        path = temp_dir / "raw_data.json"
        path.write_text(json.dumps({"objects": 5}), encoding="utf-8")
        result = runner.invoke(app, [command, str(path)])
        assert result.exit_code == 1
        assert "Cannot load" in result.output
        assert not isinstance(result.exception, pydantic.ValidationError)

    def test_diagnose(self, runner, input_file):
        result = runner.invoke(app, ["diagnose", str(input_file), "--tolerance", "100"])
        assert result.exit_code == 0, result.output
        assert "0 of 4 structures" in result.output
