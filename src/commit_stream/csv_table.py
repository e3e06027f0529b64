"""CSV reinterpretation of a changed file's content."""
from __future__ import annotations

import csv
import io

from commit_stream.exceptions import CsvShapeError, InconsistentRowWidthError
from commit_stream.models import CsvFile, CsvTable, File


def parse_csv(content: str) -> CsvTable:
    """Parse CSV text into a header and rows of the same width.

    Args:
        content: CSV text; the first record is the header.

    Returns:
        The parsed table.

    Raises:
        InconsistentRowWidthError: If a row's column count differs from the header's.
        CsvShapeError: If the content is empty or not valid CSV.
    """
    try:
        reader = csv.reader(io.StringIO(content, newline=""), strict=True)
        # Blank lines carry no record
        records = [row for row in reader if row]
    except csv.Error as e:
        raise CsvShapeError(f"Invalid CSV content: {e}") from e

    if not records:
        raise CsvShapeError("CSV content has no header row")

    header = records[0]
    for index, row in enumerate(records[1:], start=1):
        if len(row) != len(header):
            raise InconsistentRowWidthError(index, len(header), len(row))

    return CsvTable(header=header, rows=records[1:])


def parse_csv_file(file: File) -> CsvFile:
    """Read a changed file's content as a CSV table."""
    return CsvFile(file=file, table=parse_csv(file.content))
