"""
Logging setup for processing runs.

Modules log through `logging.getLogger(__name__)`. Aggregation cells, sources
and structures are attached with `extra=` and rendered after the message:

    logger.error("No applicable data", extra={"building_type": "detached_house"})
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Union
import json
import logging
import sys


CONTEXT_KEYS = (
    "building_type",
    "building_period",
    "location_id",
    "structure_type",
    "source",
    "structure",
)


def record_context(record: logging.LogRecord) -> Dict[str, object]:
    return {key: getattr(record, key) for key in CONTEXT_KEYS if hasattr(record, key)}


class ConsoleFormatter(logging.Formatter):
    """One line per record, the cell context appended in brackets."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record)
        if context:
            line += " [" + ", ".join(f"{k}={v}" for k, v in context.items()) + "]"
        return line


class FileFormatter(logging.Formatter):
    """JSON lines, so skipped cells can be collected from a run log."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **record_context(record),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", log_file: Optional[Union[str, Path]] = None) -> None:
    """
    Replace the root handlers with a console handler at `level`.

    With `log_file`, every record down to DEBUG is also written there as JSON lines.
    """
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG if log_file else level)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ConsoleFormatter())
    console.setLevel(level)
    root.addHandler(console)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(FileFormatter())
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)
