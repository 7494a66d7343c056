"""Export utilities for extracted carrier records."""
from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import MutableMapping, Optional, Sequence, Union

import pandas as pd

from ..models import ExtractedRecord
from .loaders import UnsupportedFileTypeError

PathLike = Union[str, Path]

RECORD_COLUMNS = ["identifier", "url", "mc_number", "phone", "legal_name", "usdot_number", "status", "error"]
URL_COLUMNS = ["identifier", "url"]

_CSV_SUFFIXES = {".csv", ".tsv"}
_EXCEL_SUFFIXES = {".xlsx", ".xlsm"}


def default_output_path(output_dir: PathLike = "output", *, now: Optional[datetime] = None) -> Path:
    """Return ``<output_dir>/fmcsa_batch_<UTC timestamp>.csv``."""

    stamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H-%M-%S")
    return Path(output_dir) / f"fmcsa_batch_{stamp}.csv"


def validate_output_path(path: PathLike) -> Path:
    """Return ``path`` as a :class:`Path`, rejecting extensions no writer handles."""

    output_path = Path(path)
    suffix = output_path.suffix.lower()
    if suffix not in _CSV_SUFFIXES | _EXCEL_SUFFIXES:
        raise UnsupportedFileTypeError(f"Unsupported export file extension: {suffix or output_path.name}")
    return output_path


def records_to_dataframe(records: Sequence[ExtractedRecord], *, urls_only: bool = False) -> pd.DataFrame:
    """Convert records into a :class:`pandas.DataFrame`, one row per record in order."""

    columns = URL_COLUMNS if urls_only else RECORD_COLUMNS
    rows = [{column: record.as_row()[column] for column in columns} for record in records]
    return pd.DataFrame(rows, columns=columns)


def export_records(
    records: Sequence[ExtractedRecord],
    path: PathLike,
    *,
    urls_only: bool = False,
    sheet_name: str = "Carriers",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write records to a CSV, TSV, or Excel file and return the path."""

    output_path = validate_output_path(path)
    dataframe = records_to_dataframe(records, urls_only=urls_only)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _write_dataframe(dataframe, output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def _write_dataframe(
    dataframe: pd.DataFrame,
    path: Path,
    *,
    sheet_name: str,
    exporter_kwargs: Optional[MutableMapping[str, object]],
) -> None:
    exporter_kwargs = dict(exporter_kwargs or {})
    suffix = path.suffix.lower()

    if suffix in _CSV_SUFFIXES:
        if suffix == ".tsv":
            exporter_kwargs.setdefault("sep", "\t")
        dataframe.to_csv(path, index=False, **exporter_kwargs)
        return

    if suffix in _EXCEL_SUFFIXES:
        engine = exporter_kwargs.pop("engine", None) or "openpyxl"
        dataframe.to_excel(path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
        return

    raise UnsupportedFileTypeError(f"Unsupported export file extension: {suffix}")


__all__ = [
    "RECORD_COLUMNS",
    "URL_COLUMNS",
    "UnsupportedFileTypeError",
    "default_output_path",
    "export_records",
    "records_to_dataframe",
    "validate_output_path",
]
