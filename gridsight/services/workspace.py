"""
Workspace — the interactive state of one analysis session.

Holds the loaded table snapshots, the active table, join configuration,
aliases, the filter tree and the case-sensitivity flag, and derives the
views (joined, filtered, pivot, quality...) from them. Derived views are
cached by the versions of the snapshots they came from, so replacing a
table is all it takes to make every dependent view recompute.
"""

import json
import logging
import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from gridsight.errors import FilterConfigError, TableNotFoundError
from gridsight.services import anonymization, cleaning, filter_tree, statistics
from gridsight.services.cache import SnapshotCache
from gridsight.services.filter_tree import FilterCondition, FilterGroup, FilterNode
from gridsight.services.filtering import (
    filter_rows,
    operators_for,
    search_rows,
    sort_rows,
    validate_condition,
    validate_tree,
)
from gridsight.services.joins import JoinSpec, default_alias, perform_join
from gridsight.services.pivot import PivotConfig, PivotResult, create_pivot
from gridsight.services.quality import QualityReport, analyze_quality
from gridsight.services.table import Row, Table
from gridsight.services.type_inference import STRING

logger = logging.getLogger(__name__)


class Workspace:
    def __init__(self, workspace_id: Optional[str] = None):
        self.id = workspace_id or uuid.uuid4().hex
        self.tables: Dict[str, Table] = {}
        self.active_table: Optional[str] = None
        self.aliases: Dict[str, str] = {}
        self.joins: List[JoinSpec] = []
        self.filter_tree: FilterGroup = filter_tree.new_root()
        self.case_sensitive = False
        self._cache = SnapshotCache()

    # ─────────────────────────────────────────────────────────────────
    # Tables
    # ─────────────────────────────────────────────────────────────────

    def get_table(self, name: str) -> Table:
        try:
            return self.tables[name]
        except KeyError:
            raise TableNotFoundError(name) from None

    def load_table(self, name: str, rows: Iterable[Mapping[str, Any]]) -> Table:
        """Load (or reload) a table; the first table loaded becomes active."""
        table = Table(rows, name=name)
        self.tables[name] = table
        if self.active_table is None:
            self.active_table = name
        logger.info("Loaded table '%s' (%d rows, %d columns)", name, len(table), len(table.columns))
        return table

    def remove_table(self, name: str) -> None:
        """Drop a table, its alias and every join that references it."""
        self.get_table(name)
        del self.tables[name]
        self.aliases.pop(name, None)
        self.joins = [j for j in self.joins if name not in (j.left_table, j.right_table)]
        if self.active_table == name:
            self.active_table = next(iter(self.tables), None)
        logger.info("Removed table '%s'", name)

    def set_active_table(self, name: str) -> None:
        self.get_table(name)
        self.active_table = name

    def clear(self) -> None:
        self.tables = {}
        self.active_table = None
        self.aliases = {}
        self.joins = []
        self.filter_tree = filter_tree.new_root()
        self._cache.clear()

    # ─────────────────────────────────────────────────────────────────
    # Joins & aliases
    # ─────────────────────────────────────────────────────────────────

    def set_joins(self, joins: Sequence[JoinSpec]) -> None:
        self.joins = list(joins)

    def set_alias(self, name: str, alias: str) -> str:
        """Set a table's column prefix; a blank alias falls back to the default short alias."""
        self.get_table(name)
        alias = (alias or "").strip() or default_alias(name, list(self.tables).index(name))
        self.aliases[name] = alias
        return alias

    def prefix_of(self, name: str) -> str:
        return self.aliases.get(name) or name

    # ─────────────────────────────────────────────────────────────────
    # Filter tree
    # ─────────────────────────────────────────────────────────────────

    def _insert(self, parent_id: Optional[str], node: FilterNode) -> str:
        parent_id = parent_id or self.filter_tree.id
        parent = filter_tree.find_node(self.filter_tree, parent_id)
        if not isinstance(parent, FilterGroup):
            raise FilterConfigError(f"No filter group with id '{parent_id}'", field="parent_id", value=parent_id)
        self.filter_tree = filter_tree.insert_node(self.filter_tree, parent_id, node)
        return node.id

    def add_condition(self, parent_id: Optional[str] = None, **fields: Any) -> str:
        """Append a new condition under *parent_id* (the root by default); returns its id."""
        condition = filter_tree.new_condition(**fields)
        validate_condition(condition, self.current_view().types)
        return self._insert(parent_id, condition)

    def add_group(self, parent_id: Optional[str] = None, logic: str = "AND") -> str:
        return self._insert(parent_id, filter_tree.new_group(logic))

    def update_node(self, node_id: str, **changes: Any) -> None:
        """
        Update a node. Pointing a condition at a new field resets its value and
        picks the first operator offered for that field's type, unless the
        caller supplies them.
        """
        node = filter_tree.find_node(self.filter_tree, node_id)
        if node is None:
            raise FilterConfigError(f"No filter node with id '{node_id}'", field="node_id", value=node_id)
        types = self.current_view().types
        if isinstance(node, FilterCondition) and "field" in changes and changes["field"] != node.field:
            changes.setdefault("operator", operators_for(types.get(changes["field"], STRING))[0])
            changes.setdefault("value", "")
        new_tree = filter_tree.update_node(self.filter_tree, node_id, **changes)
        updated = filter_tree.find_node(new_tree, node_id)
        if isinstance(updated, FilterCondition):
            validate_condition(updated, types)
        self.filter_tree = new_tree

    def remove_node(self, node_id: str) -> None:
        self.filter_tree = filter_tree.remove_node(self.filter_tree, node_id)

    def set_filter_tree(self, root: FilterNode) -> None:
        if not isinstance(root, FilterGroup):
            raise FilterConfigError("The filter root must be a group", field="type", value="condition")
        validate_tree(root, self.current_view().types)
        self.filter_tree = root

    def set_case_sensitive(self, enabled: bool) -> None:
        self.case_sensitive = bool(enabled)

    def filter_columns(self) -> List[Dict[str, str]]:
        """Every loaded column, prefixed with its table's alias or name, with its type."""
        columns = []
        for name, table in self.tables.items():
            types = table.types
            for col in table.columns:
                columns.append(
                    {
                        "table": name,
                        "column": col,
                        "name": f"{self.prefix_of(name)}.{col}",
                        "type": types.get(col, STRING),
                    }
                )
        return columns

    # ─────────────────────────────────────────────────────────────────
    # Views
    # ─────────────────────────────────────────────────────────────────

    def _versions(self) -> tuple:
        return tuple(t.version for t in self.tables.values())

    def current_view(self) -> Table:
        """Joined table when joins are configured over 2+ tables, else the active table."""
        if self.joins and len(self.tables) >= 2:
            params = (tuple(self.joins), tuple(sorted(self.aliases.items())))
            return self._cache.get_or_compute(
                "join", self._versions(), params,
                lambda: perform_join(self.tables, self.joins, self.aliases),
            )
        if self.active_table is not None:
            return self.tables[self.active_table]
        return Table([])

    def filtered_view(self) -> Table:
        view = self.current_view()
        tree_key = json.dumps(filter_tree.to_dict(self.filter_tree), sort_keys=True, default=str)
        return self._cache.get_or_compute(
            "filter", (view.version,), (tree_key, self.case_sensitive),
            lambda: filter_rows(view, self.filter_tree, self.case_sensitive),
        )

    def data_view(
        self,
        search: Optional[str] = None,
        search_case_sensitive: bool = False,
        sort_by: Optional[str] = None,
        direction: str = "asc",
    ) -> Table:
        """
        The filtered view narrowed by a global search and optionally sorted.

        Search has its own case flag, independent of the filter tree's.
        """
        view = self.filtered_view()

        def compute() -> Table:
            table = search_rows(view, search or "", search_case_sensitive)
            if sort_by:
                table = sort_rows(table, sort_by, direction)
            return table

        return self._cache.get_or_compute(
            "view", (view.version,), (search or "", search_case_sensitive, sort_by, direction), compute
        )

    def column_sums(self, search: Optional[str] = None, search_case_sensitive: bool = False) -> Dict[str, float]:
        """Number-column totals over the searched rows; sorting does not change them."""
        return statistics.column_sums(self.data_view(search, search_case_sensitive))

    def pivot(self, config: PivotConfig) -> PivotResult:
        view = self.filtered_view()
        return self._cache.get_or_compute(
            "pivot", (view.version,), config, lambda: create_pivot(view, config)
        )

    def quality(self) -> QualityReport:
        view = self.filtered_view()
        return view.memoize(("quality",), lambda: analyze_quality(view))

    def column_stats(self, column: str) -> Optional[Dict[str, Any]]:
        return statistics.calculate_column_stats(self.filtered_view(), column)

    def unique_values(self, column: str, limit: Optional[int] = None) -> List[str]:
        return statistics.unique_values(self.current_view(), column, limit)

    def suggested_anonymization(self) -> Dict[str, str]:
        return anonymization.suggest_methods(self.filtered_view().smart_types)

    def anonymize(self, methods: Optional[Mapping[str, str]] = None) -> Table:
        view = self.filtered_view()
        if methods is None:
            methods = anonymization.suggest_methods(view.smart_types)
        return anonymization.anonymize_table(view, methods)

    def anonymize_preview(self, methods: Optional[Mapping[str, str]] = None, limit: Optional[int] = None) -> List[Row]:
        view = self.filtered_view()
        if methods is None:
            methods = anonymization.suggest_methods(view.smart_types)
        return anonymization.preview(view, methods, limit)

    # ─────────────────────────────────────────────────────────────────
    # Cleaning (replaces a table snapshot)
    # ─────────────────────────────────────────────────────────────────

    def _target(self, name: Optional[str]) -> str:
        name = name or self.active_table
        if name is None:
            raise TableNotFoundError("")
        self.get_table(name)
        return name

    def clean_column(self, column: str, operation: str, table: Optional[str] = None) -> Table:
        name = self._target(table)
        self.tables[name] = cleaning.clean_column(self.tables[name], column, operation)
        return self.tables[name]

    def preview_cleaning(self, column: str, operation: str, table: Optional[str] = None) -> List[dict]:
        name = self._target(table)
        return cleaning.preview_cleaning(self.tables[name], column, operation)

    def remove_duplicates(self, table: Optional[str] = None) -> int:
        name = self._target(table)
        before = len(self.tables[name])
        self.tables[name] = cleaning.remove_duplicate_rows(self.tables[name])
        return before - len(self.tables[name])

    def fill_empty(self, column: str, fill_value: Any, table: Optional[str] = None) -> Table:
        name = self._target(table)
        self.tables[name] = cleaning.fill_empty(self.tables[name], column, fill_value)
        return self.tables[name]


class WorkspaceStore:
    """In-process registry of workspaces, one per browser session."""

    def __init__(self):
        self._workspaces: Dict[str, Workspace] = {}

    def create(self) -> Workspace:
        workspace = Workspace()
        self._workspaces[workspace.id] = workspace
        logger.info("Created workspace %s", workspace.id)
        return workspace

    def get(self, workspace_id: str) -> Optional[Workspace]:
        return self._workspaces.get(workspace_id)

    def delete(self, workspace_id: str) -> bool:
        return self._workspaces.pop(workspace_id, None) is not None

    def __len__(self) -> int:
        return len(self._workspaces)
