"""Exporting the processed statistics."""

from .statistics_json import StatisticsJSONExporter, export_statistics

__all__ = ["StatisticsJSONExporter", "export_statistics"]
