"""
Data cleaning — column text operations, duplicate removal and empty-cell fill.

Every operation returns a new Table snapshot; the input is never modified.

Column operations:
  trim, uppercase, lowercase, titlecase  — case / whitespace standardisation
  removeSpecialChars                     — keep letters, digits and whitespace
  removeNumbers / numbersOnly            — strip digits / keep digits, '.' and '-'
"""

import logging
import re
from typing import Any, Callable, Dict, List

from gridsight.errors import InvalidConfigError
from gridsight.services.table import Table, duplicate_indices
from gridsight.services.values import is_blank, to_text

logger = logging.getLogger(__name__)


def _titlecase(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in text.lower().split(" "))


CLEANING_OPERATIONS: Dict[str, Callable[[str], str]] = {
    "trim": str.strip,
    "uppercase": str.upper,
    "lowercase": str.lower,
    "titlecase": _titlecase,
    "removeSpecialChars": lambda s: re.sub(r"[^a-zA-Z0-9\s]", "", s),
    "removeNumbers": lambda s: re.sub(r"[0-9]", "", s),
    "numbersOnly": lambda s: re.sub(r"[^0-9.-]", "", s),
}


def _get_operation(operation: str) -> Callable[[str], str]:
    try:
        return CLEANING_OPERATIONS[operation]
    except KeyError:
        raise InvalidConfigError(
            f"Unknown cleaning operation '{operation}'", field="operation", value=operation
        ) from None


def _clean_cell(value: Any, fn: Callable[[str], str]) -> Any:
    if value is None:
        return value
    return fn(to_text(value))


# ─────────────────────────────────────────────────────────────────────────────
# Column operations
# ─────────────────────────────────────────────────────────────────────────────

def clean_column(table: Table, column: str, operation: str) -> Table:
    """Apply *operation* to every non-null cell of *column*."""
    fn = _get_operation(operation)
    rows = []
    changed = 0
    for row in table.rows:
        new_row = dict(row)
        if column in row:
            new_row[column] = _clean_cell(row[column], fn)
            if new_row[column] != row[column]:
                changed += 1
        rows.append(new_row)
    logger.info("Cleaning '%s' on column '%s' changed %d cell(s)", operation, column, changed)
    return table.replace(rows)


def preview_cleaning(
    table: Table,
    column: str,
    operation: str,
    sample: int = 100,
    limit: int = 10,
) -> List[dict]:
    """Before/after pairs for cells the operation would change, scanning the first *sample* rows."""
    fn = _get_operation(operation)
    changes = []
    for idx, row in enumerate(table.rows[:sample]):
        before = row.get(column)
        after = _clean_cell(before, fn)
        if after != before:
            changes.append({"row_index": idx, "before": before, "after": after})
            if len(changes) >= limit:
                break
    return changes


# ─────────────────────────────────────────────────────────────────────────────
# Row operations
# ─────────────────────────────────────────────────────────────────────────────

def remove_duplicate_rows(table: Table) -> Table:
    """Drop rows that exactly repeat an earlier row, keeping the first occurrence."""
    if table.is_empty:
        return table
    dupes = set(duplicate_indices(table.rows, table.columns))
    rows = [row for idx, row in enumerate(table.rows) if idx not in dupes]
    logger.info("Removed %d duplicate row(s) from %r", len(table) - len(rows), table.name)
    return table.derive(rows)


def fill_empty(table: Table, column: str, fill_value: Any) -> Table:
    """Replace blank cells (None, missing, empty or whitespace-only) of *column* with *fill_value*."""
    rows = []
    filled = 0
    for row in table.rows:
        new_row = dict(row)
        if is_blank(row.get(column)):
            new_row[column] = fill_value
            filled += 1
        rows.append(new_row)
    logger.info("Filled %d empty cell(s) in column '%s'", filled, column)
    return table.replace(rows)
