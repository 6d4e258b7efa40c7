"""
Processed statistics JSON exporter.

Writes the output relations in the same JSON layout as the datastore
export read by `ingest.spine_json`, so the result can be imported back
into the datastore. Parameter values equal to None are omitted and the
declared defaults apply.
"""

from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, List, Union

from rich.console import Console

from ..statistical.records import OUTPUT_RELATIONSHIPS

console = Console()

# Object classes referenced by the output relations -> exported parameters
EXPORTED_OBJECT_PARAMETERS = {
    "building_period": ("period_start", "period_end"),
    "building_stock": ("building_stock_year",),
    "building_type": (),
    "heat_source": (),
    "location_id": ("location_name",),
    "structure_type": (
        "exterior_resistance_m2K_W",
        "interior_resistance_m2K_W",
        "linear_thermal_bridge_W_mK",
        "is_internal",
        "is_load_bearing",
        "structure_type_notes",
    ),
}


class StatisticsJSONExporter:
    """
    Export processed statistics to the datastore JSON layout.

    Exports the objects referenced by the output relations with their
    parameters, the output relationships and their parameter values.
    """

    def __init__(self, pretty: bool = True):
        """
        Initialize exporter.

        Args:
            pretty: Whether to format JSON with indentation
        """
        self.pretty = pretty

    def to_dict(self, statistics) -> Dict[str, Any]:
        """Convert `ProcessedStatistics` into the datastore export layout."""
        relations = statistics.relations()
        referenced: Dict[str, List[str]] = {name: [] for name in EXPORTED_OBJECT_PARAMETERS}
        relationships = []
        relationship_parameter_values = []

        for relation_name, (object_classes, record_type) in OUTPUT_RELATIONSHIPS.items():
            for key, record in relations[relation_name].items():
                relationships.append([relation_name, list(key)])
                for object_class, member in zip(object_classes, key):
                    if member not in referenced[object_class]:
                        referenced[object_class].append(member)
                for f in fields(record_type):
                    value = getattr(record, f.name)
                    if value is not None:
                        relationship_parameter_values.append(
                            [relation_name, list(key), f.name, value]
                        )

        objects = []
        object_parameter_values = []
        repository = statistics.repository
        for object_class, parameters in EXPORTED_OBJECT_PARAMETERS.items():
            accessors = {p: repository.get_parameter(object_class, p) for p in parameters}
            for name in referenced[object_class]:
                objects.append([object_class, name])
                for parameter, accessor in accessors.items():
                    value = accessor(name)
                    if value is not None:
                        object_parameter_values.append([object_class, name, parameter, value])

        return {
            "object_classes": list(EXPORTED_OBJECT_PARAMETERS),
            "relationship_classes": [
                [name, list(object_classes)]
                for name, (object_classes, _) in OUTPUT_RELATIONSHIPS.items()
            ],
            "objects": objects,
            "object_parameter_values": object_parameter_values,
            "relationships": relationships,
            "relationship_parameter_values": relationship_parameter_values,
        }

    def export(self, statistics, output_path: Union[Path, str]) -> Path:
        """
        Export the processed statistics to JSON.

        Args:
            statistics: `ProcessedStatistics` of a processing run
            output_path: Output file path

        Returns:
            Path to exported file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.to_dict(statistics)
        with open(output_path, "w", encoding="utf-8") as f:
            if self.pretty:
                json.dump(data, f, indent=2, ensure_ascii=False)
            else:
                json.dump(data, f, ensure_ascii=False)

        console.print(f"[green]Exported statistics JSON: {output_path}[/green]")
        return output_path


def export_statistics(statistics, output_path: Union[Path, str], pretty: bool = True) -> Path:
    """Write `ProcessedStatistics` to `output_path` in the datastore JSON layout."""
    return StatisticsJSONExporter(pretty=pretty).export(statistics, output_path)
