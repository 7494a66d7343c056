"""Reading identifier lists and writing extracted record tables."""

from .exporters import default_output_path, export_records, records_to_dataframe, validate_output_path
from .loaders import UnsupportedFileTypeError, load_identifiers, parse_identifier_lines

__all__ = [
    "UnsupportedFileTypeError",
    "default_output_path",
    "export_records",
    "load_identifiers",
    "parse_identifier_lines",
    "records_to_dataframe",
    "validate_output_path",
]
