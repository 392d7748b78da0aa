"""Markdown-table source parsing.

The source document is a single-column Markdown table::

    | text |
    |------|
    | 42% of Gen Z discover brands on social media. |
    | ... |

Every content row becomes one chunk of raw text.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from grounded_chat.errors import ValidationError

logger = logging.getLogger(__name__)

ROW_DELIMITER = "|"

_SEPARATOR_RE = re.compile(r"^\|?\s*:?-{3,}:?\s*(\|\s*:?-{3,}:?\s*)*\|?$")


@dataclass
class ParsedTable:
    """Result of parsing a table source.

    Attributes
    ----------
    rows:
        Trimmed first-cell text of every content row, in document order.
    skipped:
        Number of non-empty lines that were ignored (header, separator,
        malformed or empty rows, stray text).
    """

    rows: list[str] = field(default_factory=list)
    skipped: int = 0


def is_separator_row(line: str) -> bool:
    """``True`` for Markdown header separators such as ``|---|:--:|``."""
    return bool(_SEPARATOR_RE.match(line.strip()))


def is_table_row(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith(ROW_DELIMITER) and stripped.endswith(ROW_DELIMITER)


def parse_table_rows(content: str) -> ParsedTable:
    """Extract one text chunk per content row of a Markdown table.

    The first table row is treated as the header when the next non-empty
    line is a separator row. Malformed rows are skipped with a log line,
    never raised.
    """
    lines = [line.strip() for line in content.splitlines()]
    non_empty = [line for line in lines if line]
    result = ParsedTable()
    header_seen = False

    for i, line in enumerate(non_empty):
        if is_separator_row(line):
            logger.debug("Skipping table separator: %s", line)
            result.skipped += 1
            continue

        if not is_table_row(line):
            logger.info("Skipping line not matching table row format: %.80s", line)
            result.skipped += 1
            continue

        if not header_seen:
            header_seen = True
            following = non_empty[i + 1] if i + 1 < len(non_empty) else ""
            if is_separator_row(following):
                logger.info("Skipping table header: %s", line)
                result.skipped += 1
                continue

        parts = line.split(ROW_DELIMITER)
        # "| content |" splits into ["", " content ", ""]
        if len(parts) < 3:
            logger.warning("Skipping malformed table row (not enough '|'): %s", line)
            result.skipped += 1
            continue

        cell = parts[1].strip()
        if not cell:
            logger.warning("Skipping row with empty cell content: %s", line)
            result.skipped += 1
            continue

        result.rows.append(cell)

    return result


def load_table_file(path: str | Path) -> ParsedTable:
    """Read *path* and parse it with :func:`parse_table_rows`."""
    try:
        content = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ValidationError(f"failed to read data file {path}: {exc}") from exc
    return parse_table_rows(content)
