"""
Handles exporting the accumulated result records.
"""

from __future__ import annotations

import csv
import io
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

import structlog

from .config.config import ExportConfig
from .protocols import ResultRecord

logger = structlog.get_logger(__name__)


def default_export_path(config: ExportConfig, now: Optional[datetime] = None) -> Path:
    """<output_dir>/<prefix>_<YYYY-MM-DD-HH-MM-SS>.csv"""
    stamp = (now or datetime.now()).strftime("%Y-%m-%d-%H-%M-%S")
    return Path(config.output_dir) / f"{config.filename_prefix}_{stamp}.csv"


class CsvExporter:
    """Exports records as delimited text with the fixed column header."""

    def __init__(self, config: Optional[ExportConfig] = None) -> None:
        self.config = config or ExportConfig()

    def render(self, records: Iterable[ResultRecord]) -> str:
        buffer = io.StringIO()
        writer = csv.DictWriter(
            buffer,
            fieldnames=list(ResultRecord.COLUMNS),
            delimiter=self.config.delimiter,
            lineterminator="\n",
        )
        writer.writeheader()
        for record in records:
            writer.writerow(record.to_row())
        return buffer.getvalue()

    def export(self, records: Iterable[ResultRecord], output_path: Optional[Path] = None) -> Path:
        path = Path(output_path) if output_path else default_export_path(self.config)
        records = list(records)
        logger.info("Exporting results", path=str(path), rows=len(records))
        self._write(path, self.render(records).encode(self.config.encoding))
        logger.info("Export complete", path=str(path))
        return path

    def _write(self, path: Path, payload: bytes) -> None:
        """Write payload beside path, then swap it in so a partial export is never visible."""
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, path)
        except OSError as e:
            if os.path.exists(temp_name):
                os.unlink(temp_name)
            raise OSError(f"Failed to write export {path}: {e}") from e
