"""
Table — immutable in-memory snapshot of parsed rows.

A Table is created whole when a source is loaded and replaced wholesale by
any cleaning or anonymization step; nothing here mutates rows in place.
Derived metadata (column types, smart types, unique values, statistics) is
memoized on the snapshot itself, so a new snapshot recomputes it and a
discarded one takes its memo with it.
"""

from __future__ import annotations

import itertools
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

import pandas as pd

from gridsight.services.type_inference import SmartTypeInfo, detect_column_types, detect_smart_column_types

Row = Dict[str, Any]

_snapshot_counter = itertools.count(1)


def rows_to_frame(rows: Iterable[Mapping[str, Any]], columns: Iterable[str]) -> pd.DataFrame:
    """Object-dtype DataFrame of *rows* restricted to *columns*; absent and NaN cells become None."""
    df = pd.DataFrame.from_records(list(rows), columns=list(columns))
    df = df.astype(object)
    return df.where(pd.notna(df), None)


def duplicate_indices(rows: Iterable[Mapping[str, Any]], columns: Iterable[str]) -> List[int]:
    """
    Indices of rows whose cells (over *columns*) repeat an earlier row.

    Cells compare by value, so 1 and 1.0 are the same cell while 1 and "1"
    are not. The first occurrence is never reported.
    """
    rows = list(rows)
    columns = list(columns)
    if not rows or not columns:
        return []
    mask = rows_to_frame(rows, columns).duplicated(keep="first")
    return [idx for idx, is_dupe in enumerate(mask.tolist()) if is_dupe]


class Table:
    def __init__(
        self,
        rows: Iterable[Mapping[str, Any]],
        name: Optional[str] = None,
        columns: Optional[Iterable[str]] = None,
        types: Optional[Mapping[str, str]] = None,
        smart_types: Optional[Mapping[str, SmartTypeInfo]] = None,
        source: Optional["Table"] = None,
    ):
        self._rows: Tuple[Row, ...] = tuple(dict(r) for r in rows)
        self.name = name
        if columns is None:
            columns = self._rows[0].keys() if self._rows else ()
        self._columns: Tuple[str, ...] = tuple(columns)
        self._types = dict(types) if types is not None else None
        self._smart_types = dict(smart_types) if smart_types is not None else None
        # metadata is inherited from the table this one was derived from
        self._source = source
        self.version = next(_snapshot_counter)
        self._memo: Dict[Tuple, Any] = {}

    # ------------------------------------------------------------------
    # Basic accessors
    # ------------------------------------------------------------------

    @property
    def rows(self) -> Tuple[Row, ...]:
        """Rows of the snapshot. Treat as read-only."""
        return self._rows

    @property
    def columns(self) -> List[str]:
        return list(self._columns)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Row]:
        return iter(self._rows)

    def __repr__(self) -> str:
        return f"Table(name={self.name!r}, rows={len(self._rows)}, columns={len(self._columns)}, version={self.version})"

    @property
    def is_empty(self) -> bool:
        return len(self._rows) == 0

    # ------------------------------------------------------------------
    # Derived metadata
    # ------------------------------------------------------------------

    @property
    def types(self) -> Dict[str, str]:
        if self._types is not None:
            return dict(self._types)
        if self._source is not None:
            return self._source.types
        return dict(self.memoize(("types",), lambda: detect_column_types(self._rows)))

    @property
    def smart_types(self) -> Dict[str, SmartTypeInfo]:
        if self._smart_types is not None:
            return dict(self._smart_types)
        if self._source is not None:
            return self._source.smart_types
        return dict(self.memoize(("smart_types",), lambda: detect_smart_column_types(self._rows)))

    def memoize(self, key: Tuple, factory: Callable[[], Any]) -> Any:
        """Return the value memoized under *key* for this snapshot, computing it once."""
        if key not in self._memo:
            self._memo[key] = factory()
        return self._memo[key]

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def derive(self, rows: Iterable[Mapping[str, Any]], columns: Optional[Iterable[str]] = None) -> "Table":
        """New snapshot with the same name and inherited type metadata."""
        return Table(
            rows,
            name=self.name,
            columns=self._columns if columns is None else columns,
            source=self,
        )

    def replace(self, rows: Iterable[Mapping[str, Any]]) -> "Table":
        """New snapshot whose metadata is re-inferred from the new rows."""
        return Table(rows, name=self.name)
