"""Utilities for loading carrier identifiers from text files and spreadsheets."""
from __future__ import annotations

from pathlib import Path
from typing import Any, List, Mapping, MutableMapping, Optional, Sequence, Union

import pandas as pd

PathLike = Union[str, Path]

_SPREADSHEET_SUFFIXES = {".csv", ".tsv", ".xls", ".xlsx", ".xlsm", ".xlsb"}
_IDENTIFIER_SYNONYMS: Sequence[str] = ("mc", "mc_number", "mc_mx", "mc_no", "docket", "docket_number", "identifier")


class UnsupportedFileTypeError(ValueError):
    """Raised when an unsupported file format is passed to the loader."""


def load_identifiers(
    path: PathLike,
    *,
    column: Optional[str] = None,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> List[str]:
    """Load identifiers in file order, trimmed, with blank entries dropped.

    Parameters
    ----------
    path:
        Plain text file with one identifier per line, or a CSV/TSV/Excel
        spreadsheet.
    column:
        Spreadsheet column holding the identifiers. When omitted the column is
        picked by name (``mc``, ``mc_number``, ``docket``...) or the first
        column is used.
    sheet_name:
        Sheet selector passed to :func:`pandas.read_excel`.
    loader_kwargs:
        Extra keyword arguments forwarded to :func:`pandas.read_csv` or
        :func:`pandas.read_excel`.
    """

    path_obj = Path(path)
    if not path_obj.exists():
        raise FileNotFoundError(path_obj)

    if path_obj.suffix.lower() not in _SPREADSHEET_SUFFIXES:
        return parse_identifier_lines(path_obj.read_text(encoding="utf-8-sig").splitlines())

    dataframe = _read_dataframe(path_obj, sheet_name=sheet_name, loader_kwargs=loader_kwargs)
    if dataframe.empty or not len(dataframe.columns):
        return []
    selected = column or _resolve_column(dataframe.columns)
    if selected not in dataframe.columns:
        raise KeyError(f"Column '{selected}' not found in {path_obj.name}")
    return [text for text in (_clean_text(value) for value in dataframe[selected]) if text]


def parse_identifier_lines(lines: Sequence[str]) -> List[str]:
    """Trim every line and drop the blank ones."""

    return [line.strip() for line in lines if line and line.strip()]


def _read_dataframe(
    path: Path,
    *,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> pd.DataFrame:
    loader_kwargs = dict(loader_kwargs or {})
    suffix = path.suffix.lower()

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            loader_kwargs.setdefault("sep", "\t")
        loader_kwargs.setdefault("dtype", str)
        return pd.read_csv(path, **loader_kwargs)

    if suffix in {".xls", ".xlsx", ".xlsm", ".xlsb"}:
        loader_kwargs.setdefault("dtype", str)
        return pd.read_excel(path, sheet_name=sheet_name, engine=loader_kwargs.pop("engine", None) or "openpyxl", **loader_kwargs)

    raise UnsupportedFileTypeError(f"Unsupported file extension: {path.suffix}")


def _resolve_column(columns: Sequence[Any]) -> Any:
    normalised: Mapping[str, Any] = {str(column).strip().lower().replace(" ", "_"): column for column in columns}
    for synonym in _IDENTIFIER_SYNONYMS:
        if synonym in normalised:
            return normalised[synonym]
    return columns[0]


def _clean_text(value: Any) -> Optional[str]:
    if pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


__all__ = ["load_identifiers", "parse_identifier_lines", "UnsupportedFileTypeError"]
