from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

"""CSV reader for catalog import files.

- UTF-8 BOM removal, CRLF / CR -> LF normalisation
- quoting: ``"`` toggles quote mode anywhere in a field, ``""`` inside quotes
  is a literal quote, commas and newlines inside quotes are literal
- lines that are blank after trimming are dropped
- header cells trimmed; each record is zipped against the header: missing
  trailing cells -> "", extra cells ignored, values trimmed
- every cell is a str ("NA" / "null" stay literal)

No semantic validation happens here (see services.validator).
"""

__all__ = [
    "CsvFormatError",
    "ParsedCsv",
    "parse_csv_text",
    "read_csv_file",
]

QUOTE = '"'
DELIMITER = ","


class CsvFormatError(Exception):
    """Raised when the text cannot be tokenised as CSV (unterminated quote, bad encoding)."""


@dataclass
class ParsedCsv:
    headers: list[str] = field(default_factory=list)
    raw_rows: list[dict[str, str]] = field(default_factory=list)  # 列名 -> trim 済み文字列


def _normalise(text: str) -> str:
    if text.startswith("\ufeff"):
        text = text[1:]
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _tokenise(text: str) -> list[list[str]]:
    """Split normalised text into records of raw (untrimmed) cells.

    Raises:
        CsvFormatError: a quoted field is still open at end of input
    """
    records: list[list[str]] = []
    cells: list[str] = []
    current: list[str] = []
    in_quotes = False
    blank = True  # 改行までに空白以外の文字が無ければ空行
    line_no = 1
    quote_line = 0

    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == QUOTE:
            blank = False
            if in_quotes and i + 1 < n and text[i + 1] == QUOTE:
                current.append(QUOTE)
                i += 2
                continue
            in_quotes = not in_quotes
            if in_quotes:
                quote_line = line_no
        elif ch == "\n":
            line_no += 1
            if in_quotes:
                current.append(ch)
            else:
                if not blank:
                    cells.append("".join(current))
                    records.append(cells)
                cells, current, blank = [], [], True
        elif ch == DELIMITER and not in_quotes:
            blank = False
            cells.append("".join(current))
            current = []
        else:
            if not ch.isspace():
                blank = False
            current.append(ch)
        i += 1

    if in_quotes:
        raise CsvFormatError(f"unterminated quoted field starting on line {quote_line}")
    if not blank:
        cells.append("".join(current))
        records.append(cells)
    return records


def parse_csv_text(text: str) -> ParsedCsv:
    """Parse raw CSV text into trimmed headers and string-keyed rows.

    Parameters
    ----------
    text: 生の CSV テキスト (先頭行がヘッダ)

    Raises
    ------
    CsvFormatError: when a quoted field is never closed
    """
    records = _tokenise(_normalise(text))
    if not records:
        return ParsedCsv()

    headers = [h.strip() for h in records[0]]
    rows: list[dict[str, str]] = []
    for values in records[1:]:
        rows.append({h: (values[i] if i < len(values) else "").strip() for i, h in enumerate(headers)})
    return ParsedCsv(headers=headers, raw_rows=rows)


def read_csv_file(path: Path) -> ParsedCsv:
    """Read and parse a UTF-8 CSV file (BOM tolerated)."""
    try:
        text = path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as e:
        raise CsvFormatError(f"{path.name} is not valid UTF-8: {e}") from e
    return parse_csv_text(text)
