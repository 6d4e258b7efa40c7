"""Loading the raw building stock data."""

from .spine_json import DatastoreExport, SpineJSONParser, load_repository, parse_value

__all__ = ["DatastoreExport", "SpineJSONParser", "load_repository", "parse_value"]
