"""Drive reference loading, row transformation and bulk delivery."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .config import LoadSettings
from .delivery import BulkDeliverer
from .errors import LoaderError, SourceReadError
from .reference import ReferenceTables, load_reference_tables
from .sources import iter_rows
from .transform import RecordTransformer

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunResult:
    files: int = 0
    rows: int = 0
    headers: int = 0
    delivered: int = 0
    error: Optional[LoaderError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def record_id(self) -> Optional[str]:
        return self.error.record_id if self.error is not None else None


class FlightPipeline:
    """Stream flight files through the transformer into the deliverer."""

    def __init__(self, tables: ReferenceTables, deliverer: BulkDeliverer):
        self._transformer = RecordTransformer(tables)
        self._deliverer = deliverer
        self._files = 0
        self._rows = 0
        self._headers = 0

    def run(self, files: Iterable[Path]) -> RunResult:
        try:
            for file_path in files:
                self._load_file(file_path)
            delivered = self._deliverer.flush()
        except LoaderError as exc:
            # Queued batches must not be written once the run has failed.
            self._deliverer.abort(exc)
            return self._result(error=exc)
        return self._result(delivered=delivered)

    def _result(self, delivered: Optional[int] = None, error: Optional[LoaderError] = None) -> RunResult:
        return RunResult(
            files=self._files,
            rows=self._rows,
            headers=self._headers,
            delivered=self._deliverer.delivered if delivered is None else delivered,
            error=error,
        )

    def _load_file(self, file_path: Path) -> None:
        LOGGER.info("Parsing file %s", file_path)
        rows = 0
        line = 0
        try:
            for line, row in enumerate(iter_rows(file_path), start=1):
                # Blank lines carry no flight.
                if not row:
                    continue
                record = self._transformer.transform(row)
                if record is None:
                    self._headers += 1
                    continue
                self._deliverer.add(record)
                rows += 1
                self._rows += 1
        except (OSError, csv.Error, UnicodeDecodeError) as exc:
            raise SourceReadError(f"Reading flight file {file_path} (line {line}): {exc}") from exc

        self._files += 1
        LOGGER.info("Finished %s (rows transformed: %s)", file_path, f"{rows:,}")


def run_load(settings: LoadSettings, deliverer: BulkDeliverer) -> RunResult:
    """Load airlines, then airports, then every configured flight file in order."""
    try:
        tables = load_reference_tables(settings.airlines_path, settings.airports_path)
    except LoaderError as exc:
        return RunResult(error=exc)

    files = [settings.data_dir / name for name in settings.flight_files]
    return FlightPipeline(tables, deliverer).run(files)
