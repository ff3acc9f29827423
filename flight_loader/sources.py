"""Positional CSV readers for plain, gzip and zip extracts."""

from __future__ import annotations

import csv
import gzip
import io
import zipfile
from pathlib import Path
from typing import Iterator, List


def iter_rows(file_path: Path) -> Iterator[List[str]]:
    suffix = file_path.suffix.lower()
    if suffix == ".zip":
        with zipfile.ZipFile(file_path) as archive:
            entry_name = next(
                (name for name in archive.namelist() if name.lower().endswith(".csv")), None
            )
            if entry_name is None:
                raise FileNotFoundError(f"No CSV entry found in archive {file_path}")
            with archive.open(entry_name, "r") as entry:
                with io.TextIOWrapper(entry, encoding="utf-8", newline="") as text_stream:
                    yield from csv.reader(text_stream)
    elif suffix == ".gz":
        with gzip.open(file_path, "rt", encoding="utf-8", newline="") as handle:
            yield from csv.reader(handle)
    else:
        with file_path.open("r", encoding="utf-8", newline="") as handle:
            yield from csv.reader(handle)


def resolve_file_path(path: Path, data_dir: Path) -> Path:
    if path.is_absolute():
        if path.exists():
            return path
        raise FileNotFoundError(f"File not found: {path}")

    candidate = data_dir / path
    if candidate.exists():
        return candidate

    if path.exists():
        return path.resolve()

    raise FileNotFoundError(f"File not found: {path} (data dir: {data_dir})")
