from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.row_error import RowError

"""Import error log (JSON Lines).

- One file per process: ``<logs_dir>/import-errors-YYYYMMDD-HHMMSS.log`` (UTC),
  created on first flush that has something to write
- Fixed key set per line (error_log_schema.json, no extra keys)
- Buffered; flush() appends and clears. Serial use only.
"""

__all__ = [
    "ErrorLogBuffer",
    "DEFAULT_LOGS_DIR",
    "SCHEMA_PATH",
]

DEFAULT_LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"
SCHEMA_PATH = Path(__file__).with_name("error_log_schema.json")


class ErrorLogBuffer:
    """In-memory buffer of row errors, flushed as JSON Lines."""

    def __init__(self, logs_dir: Path | str = DEFAULT_LOGS_DIR) -> None:
        self.logs_dir = Path(logs_dir)
        self._lines: list[str] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self.logs_dir / f"import-errors-{stamp}.log"
        return self._file_path

    def append(self, error: RowError, import_id: str, file: str) -> None:
        self._lines.append(error.to_json_line(import_id, file))

    def extend(self, errors: list[RowError], import_id: str, file: str) -> None:
        for e in errors:
            self.append(e, import_id, file)

    def __len__(self) -> int:
        return len(self._lines)

    def flush(self) -> Path | None:
        """Append buffered lines to the log file.

        Returns the file path, or None when nothing was buffered (no file is
        created for error-free imports).
        """
        if not self._lines:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for line in self._lines:
                f.write(line + "\n")
        self._lines.clear()
        return fp
