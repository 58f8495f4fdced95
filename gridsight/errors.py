"""
Exceptions for GridSight.

The engine never raises for malformed *data* (bad numbers, invalid regex
patterns, unknown join tables); those degrade to well-typed empty results.
It raises only for malformed *configuration* caught at the boundary.
"""

from typing import Any, Optional


class GridSightError(Exception):
    """Base exception for all GridSight errors."""

    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (Context: {context_str})"
        return self.message


class InvalidConfigError(GridSightError):
    """Raised when a view configuration (pivot, cleaning, anonymization...) is invalid."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        context = {}
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = value
        super().__init__(message, context)
        self.field = field
        self.value = value


class FilterConfigError(InvalidConfigError):
    """Raised when a filter condition names an operator that cannot apply."""


class TableNotFoundError(GridSightError):
    """Raised when an operation names a table that is not loaded in the workspace."""

    def __init__(self, name: str):
        super().__init__(f"Table '{name}' is not loaded", {"table": name})
        self.name = name
