"""
Join engine — chains equi-joins across loaded tables.

A join configuration is an ordered list of JoinSpec stages. The first stage
joins two loaded tables; every later stage joins the running result (its
columns already prefixed) with another loaded table. Each stage builds a
hash index on one side keyed by the lowercased string form of the join
column, so matching is case-insensitive and one-to-many.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from gridsight.errors import InvalidConfigError
from gridsight.services.table import Row, Table
from gridsight.services.values import to_text

logger = logging.getLogger(__name__)

JOIN_TYPES = ("inner", "left", "right", "full")

_EXTENSION_RE = re.compile(r"\.(csv|xlsx?|json)$", re.IGNORECASE)


@dataclass(frozen=True)
class JoinSpec:
    left_table: str
    left_column: str
    right_table: str
    right_column: str
    join_type: str = "inner"

    def __post_init__(self):
        if self.join_type not in JOIN_TYPES:
            raise InvalidConfigError(
                f"Unknown join type '{self.join_type}'", field="join_type", value=self.join_type
            )


def default_alias(table_name: str, index: int) -> str:
    """Short alias for a table: its cleaned base name when 6 chars or fewer, else t{index+1}."""
    base = _EXTENSION_RE.sub("", table_name)
    base = re.sub(r"[^a-zA-Z0-9]", "_", base)
    if len(base) <= 6:
        return base
    return f"t{index + 1}"


def _join_key(value: Any) -> str:
    return to_text(value).lower()


def _prefixed(table: Table, prefix: str) -> Tuple[List[Row], List[str]]:
    columns = [f"{prefix}.{col}" for col in table.columns]
    rows = [{f"{prefix}.{col}": row.get(col) for col in table.columns} for row in table.rows]
    return rows, columns


def _build_index(rows: Sequence[Row], key_column: str) -> Dict[str, List[Row]]:
    index: Dict[str, List[Row]] = {}
    for row in rows:
        index.setdefault(_join_key(row.get(key_column)), []).append(row)
    return index


def _combine(left: Optional[Row], left_columns: List[str], right: Optional[Row], right_columns: List[str]) -> Row:
    combined = {col: (left.get(col) if left is not None else None) for col in left_columns}
    for col in right_columns:
        combined[col] = right.get(col) if right is not None else None
    return combined


def _join_stage(
    left_rows: List[Row],
    left_columns: List[str],
    left_key: str,
    right_rows: List[Row],
    right_columns: List[str],
    right_key: str,
    join_type: str,
) -> List[Row]:
    result: List[Row] = []

    if join_type == "right":
        left_index = _build_index(left_rows, left_key)
        for right in right_rows:
            matches = left_index.get(_join_key(right.get(right_key)), [])
            if not matches:
                result.append(_combine(None, left_columns, right, right_columns))
            for left in matches:
                result.append(_combine(left, left_columns, right, right_columns))
        return result

    right_index = _build_index(right_rows, right_key)
    matched_keys = set()
    for left in left_rows:
        key = _join_key(left.get(left_key))
        matches = right_index.get(key, [])
        if matches:
            matched_keys.add(key)
        elif join_type in ("left", "full"):
            result.append(_combine(left, left_columns, None, right_columns))
        for right in matches:
            result.append(_combine(left, left_columns, right, right_columns))

    if join_type == "full":
        for right in right_rows:
            if _join_key(right.get(right_key)) not in matched_keys:
                result.append(_combine(None, left_columns, right, right_columns))
    return result


def perform_join(
    tables: Mapping[str, Table],
    joins: Sequence[JoinSpec],
    aliases: Optional[Mapping[str, str]] = None,
) -> Table:
    """
    Apply *joins* left to right and return the joined snapshot.

    Output columns are prefixed with the table alias (or the table name when
    no alias is set), left columns first. A configuration that references a
    table which is not loaded yields an empty table.
    """
    aliases = aliases or {}
    if not joins:
        return Table([], name="joined")

    missing = sorted(
        {name for join in joins for name in (join.left_table, join.right_table) if name not in tables}
    )
    if missing:
        logger.warning("Join references tables that are not loaded: %s", ", ".join(missing))
        return Table([], name="joined", types={}, smart_types={})

    def prefix_of(name: str) -> str:
        return aliases.get(name) or name

    first = joins[0]
    left_rows, left_columns = _prefixed(tables[first.left_table], prefix_of(first.left_table))
    right_rows, right_columns = _prefixed(tables[first.right_table], prefix_of(first.right_table))
    rows = _join_stage(
        left_rows, left_columns, f"{prefix_of(first.left_table)}.{first.left_column}",
        right_rows, right_columns, f"{prefix_of(first.right_table)}.{first.right_column}",
        first.join_type,
    )
    columns = left_columns + [c for c in right_columns if c not in left_columns]

    for join in joins[1:]:
        left_key = f"{prefix_of(join.left_table)}.{join.left_column}"
        if left_key not in columns:
            # already a prefixed column name of the running result
            left_key = join.left_column
        right_rows, right_columns = _prefixed(tables[join.right_table], prefix_of(join.right_table))
        rows = _join_stage(
            rows, columns, left_key,
            right_rows, right_columns, f"{prefix_of(join.right_table)}.{join.right_column}",
            join.join_type,
        )
        columns = columns + [c for c in right_columns if c not in columns]

    types: Dict[str, str] = {}
    smart_types = {}
    for join in joins:
        for name in (join.left_table, join.right_table):
            prefix = prefix_of(name)
            table = tables[name]
            for col, col_type in table.types.items():
                types[f"{prefix}.{col}"] = col_type
            for col, info in table.smart_types.items():
                smart_types[f"{prefix}.{col}"] = info

    logger.debug("Joined %d stage(s) into %d rows", len(joins), len(rows))
    return Table(rows, name="joined", columns=columns, types=types, smart_types=smart_types)
