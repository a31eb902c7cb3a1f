"""CSV reading and writing for catalog import files."""

from .exporter import build_csv_content, sort_records_for_export, write_csv_file
from .parser import CsvFormatError, ParsedCsv, parse_csv_text, read_csv_file

__all__ = [
    "CsvFormatError",
    "ParsedCsv",
    "parse_csv_text",
    "read_csv_file",
    "build_csv_content",
    "sort_records_for_export",
    "write_csv_file",
]
