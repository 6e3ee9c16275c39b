"""
Append-only CSV output.

Reports are never rewritten: every run appends to the existing file. The header
row is written only when the file is new (or empty), so repeated runs against
the same directory do not produce duplicate headers. All fields are quoted.
"""

import csv
from pathlib import Path
from typing import Iterable, List, Protocol, Sequence, Union

import structlog

from ad_repl_reporter.exceptions import OutputPathError

logger = structlog.get_logger(__name__)


class CsvRecord(Protocol):
    def csv_row(self) -> List[object]: ...


def _needs_header(path: Path) -> bool:
    return not path.exists() or path.stat().st_size == 0


def append_rows(
    path: Union[str, Path],
    header: Sequence[str],
    rows: Iterable[Sequence[object]],
) -> int:
    """
    Append rows to a CSV file, creating it with a header row if needed.

    The file is created even when ``rows`` is empty.

    Returns:
        Number of data rows written.

    Raises:
        OutputPathError: If the file cannot be opened or written.
    """
    path = Path(path)
    count = 0
    try:
        write_header = _needs_header(path)
        with open(path, "a", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, quoting=csv.QUOTE_ALL)
            if write_header:
                writer.writerow(header)
            for row in rows:
                writer.writerow(row)
                count += 1
    except OSError as e:
        raise OutputPathError(
            f"Cannot write report file: {e.strerror or e}", path=str(path), cause=e
        ) from e

    logger.debug("Appended CSV rows", path=str(path), rows=count)
    return count


def append_records(
    path: Union[str, Path], header: Sequence[str], records: Iterable[CsvRecord]
) -> int:
    """Append dataclass records (anything with ``csv_row()``) to a CSV file."""
    return append_rows(path, header, (record.csv_row() for record in records))
