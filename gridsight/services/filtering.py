"""
Filter evaluation over rows.

Each operator belongs to one comparison family:

  empty   — 'is empty' / 'is not empty', checked first and type-agnostic
  string  — compares string forms, lowercased unless case-sensitive
  number  — both sides must parse as finite numbers, else no match
  date    — both sides must parse as calendar dates, else no match

Evaluation never raises: an invalid regex or an unknown operator simply
does not match. ``validate_condition`` is the place configuration errors
surface.
"""

import functools
import logging
import operator as op
import re
from typing import Any, Callable, Dict, List, Mapping

from gridsight.errors import FilterConfigError, InvalidConfigError
from gridsight.services.filter_tree import LOGIC_AND, FilterCondition, FilterGroup, FilterNode
from gridsight.services.table import Table
from gridsight.services.type_inference import STRING
from gridsight.services.values import is_blank, parse_date, parse_number, to_text

logger = logging.getLogger(__name__)

EMPTY_OPERATORS = ["is empty", "is not empty"]

OPERATORS_BY_TYPE: Dict[str, List[str]] = {
    "string": [
        "is", "is not",
        "contains", "does not contain",
        "startswith", "endswith",
        "in", "not in",
        "is empty", "is not empty",
        "regexp",
    ],
    "number": [
        "=", "≠", "<", ">", "≤", "≥",
        "is empty", "is not empty",
    ],
    "date": [
        "is before", "is after",
        "is empty", "is not empty",
    ],
}

# ASCII spellings accepted from API clients
OPERATOR_ALIASES = {
    "!=": "≠",
    "<=": "≤",
    ">=": "≥",
    "==": "=",
}


def _in_list(a: str, b_raw: str, case_sensitive: bool) -> bool:
    options = [s.strip() for s in b_raw.split(",")]
    if not case_sensitive:
        options = [o.lower() for o in options]
    return a in options


# (a, b, raw_b, case_sensitive) -> bool; a and b already case-folded
STRING_OPERATORS: Dict[str, Callable[[str, str, str, bool], bool]] = {
    "is": lambda a, b, raw, cs: a == b,
    "is not": lambda a, b, raw, cs: a != b,
    "contains": lambda a, b, raw, cs: b in a,
    "does not contain": lambda a, b, raw, cs: b not in a,
    "startswith": lambda a, b, raw, cs: a.startswith(b),
    "endswith": lambda a, b, raw, cs: a.endswith(b),
    "in": lambda a, b, raw, cs: _in_list(a, raw, cs),
    "not in": lambda a, b, raw, cs: not _in_list(a, raw, cs),
}

NUMBER_OPERATORS: Dict[str, Callable[[float, float], bool]] = {
    "=": op.eq,
    "≠": op.ne,
    "<": op.lt,
    ">": op.gt,
    "≤": op.le,
    "≥": op.ge,
}

DATE_OPERATORS = {
    "is before": op.lt,
    "is after": op.gt,
}


def normalize_operator(operator: str) -> str:
    return OPERATOR_ALIASES.get(operator, operator)


def operators_for(column_type: str) -> List[str]:
    """Operators offered for a column of *column_type*; unknown types get the string list."""
    return list(OPERATORS_BY_TYPE.get(column_type, OPERATORS_BY_TYPE[STRING]))


def _regexp_match(text: str, pattern: str, case_sensitive: bool) -> bool:
    flags = 0 if case_sensitive else re.IGNORECASE
    try:
        return re.search(pattern, text, flags) is not None
    except re.error as exc:
        logger.warning("Invalid filter pattern %r: %s", pattern, exc)
        return False


def _evaluate_condition(row: Mapping[str, Any], cond: FilterCondition, case_sensitive: bool) -> bool:
    operator = normalize_operator(cond.operator)
    cell = row.get(cond.field)

    if operator == "is empty":
        return is_blank(cell)
    if operator == "is not empty":
        return not is_blank(cell)

    # an unfinished condition does not restrict
    if not cond.field:
        return True

    if operator in STRING_OPERATORS or operator == "regexp":
        text_a = to_text(cell)
        text_b = to_text(cond.value)
        if operator == "regexp":
            return _regexp_match(text_a, text_b, case_sensitive)
        if not case_sensitive:
            return STRING_OPERATORS[operator](text_a.lower(), text_b.lower(), text_b, False)
        return STRING_OPERATORS[operator](text_a, text_b, text_b, True)

    if operator in NUMBER_OPERATORS:
        num_a = parse_number(cell)
        num_b = parse_number(cond.value)
        if num_a is None or num_b is None:
            return False
        return NUMBER_OPERATORS[operator](num_a, num_b)

    if operator in DATE_OPERATORS:
        date_a = parse_date(cell)
        date_b = parse_date(cond.value)
        if date_a is None or date_b is None:
            return False
        return DATE_OPERATORS[operator](date_a, date_b)

    return False


def evaluate(row: Mapping[str, Any], node: FilterNode, case_sensitive: bool = False) -> bool:
    """True when *row* satisfies the filter tree rooted at *node*."""
    if isinstance(node, FilterGroup):
        if not node.children:
            return True
        results = (evaluate(row, child, case_sensitive) for child in node.children)
        if node.logic == LOGIC_AND:
            return all(results)
        return any(results)
    if isinstance(node, FilterCondition):
        return _evaluate_condition(row, node, case_sensitive)
    return True


def filter_rows(table: Table, node: FilterNode, case_sensitive: bool = False) -> Table:
    """New snapshot with the rows of *table* that satisfy *node*; column types carry over."""
    if isinstance(node, FilterGroup) and not node.children:
        return table
    matched = [row for row in table.rows if evaluate(row, node, case_sensitive)]
    logger.debug("Filter kept %d of %d rows", len(matched), len(table))
    return table.derive(matched)


def validate_condition(condition: FilterCondition, column_types: Mapping[str, str]) -> None:
    """Raise FilterConfigError when the operator is unknown or not offered for the column's type."""
    operator = normalize_operator(condition.operator)
    known = set().union(*OPERATORS_BY_TYPE.values())
    if operator not in known:
        raise FilterConfigError(
            f"Unknown filter operator '{condition.operator}'",
            field="operator",
            value=condition.operator,
        )
    if not condition.field or operator in EMPTY_OPERATORS:
        return
    column_type = column_types.get(condition.field, STRING)
    if operator not in operators_for(column_type):
        raise FilterConfigError(
            f"Operator '{condition.operator}' does not apply to {column_type} column '{condition.field}'",
            field="operator",
            value=condition.operator,
        )


def validate_tree(node: FilterNode, column_types: Mapping[str, str]) -> None:
    if isinstance(node, FilterGroup):
        for child in node.children:
            validate_tree(child, column_types)
    else:
        validate_condition(node, column_types)


# ─────────────────────────────────────────────────────────────────────────────
# Search & sort over a filtered view
# ─────────────────────────────────────────────────────────────────────────────

SORT_DIRECTIONS = ("asc", "desc")


def search_rows(table: Table, term: str, case_sensitive: bool = False) -> Table:
    """Rows where any cell's display form contains *term*; a blank term keeps every row."""
    if not term:
        return table
    needle = term if case_sensitive else term.lower()

    def matches(row: Mapping[str, Any]) -> bool:
        for value in row.values():
            text = to_text(value)
            if needle in (text if case_sensitive else text.lower()):
                return True
        return False

    matched = [row for row in table.rows if matches(row)]
    logger.debug("Search %r kept %d of %d rows", term, len(matched), len(table))
    return table.derive(matched)


def _compare_cells(a: Any, b: Any) -> int:
    # numeric when both sides are numbers, else case-insensitive text
    num_a, num_b = parse_number(a), parse_number(b)
    if num_a is not None and num_b is not None:
        left, right = num_a, num_b
    else:
        left, right = to_text(a).lower(), to_text(b).lower()
    return (left > right) - (left < right)


def sort_rows(table: Table, column: str, direction: str = "asc") -> Table:
    """Stable sort of *table* by *column*; ties keep their filtered order."""
    if direction not in SORT_DIRECTIONS:
        raise InvalidConfigError(f"Unknown sort direction '{direction}'", field="direction", value=direction)
    sign = 1 if direction == "asc" else -1
    ordered = sorted(
        table.rows,
        key=functools.cmp_to_key(lambda a, b: sign * _compare_cells(a.get(column), b.get(column))),
    )
    return table.derive(ordered)
