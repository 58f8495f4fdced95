"""
Anonymization — per-column masking, redaction, hashing or removal.

Every method is a pure function of the input value (and the column's smart
type for masking), so the same input always yields the same output. The
``hash`` token is a 32-bit rolling hash, meant for obfuscated previews and
exports only; it is not a cryptographic digest and must not be used where
collision or preimage resistance matters.
"""

import logging
import math
import re
from typing import Any, Dict, List, Mapping, Optional

from gridsight.config import settings
from gridsight.errors import InvalidConfigError
from gridsight.services.table import Row, Table
from gridsight.services.type_inference import SmartTypeInfo
from gridsight.services.values import to_text

logger = logging.getLogger(__name__)

ANONYMIZATION_METHODS: Dict[str, str] = {
    "mask": "Partially hide the value (j***@domain.com, ***-***-1234)",
    "redact": "Replace the entire value with a redaction marker",
    "hash": "Replace with a short deterministic token (8 hex characters)",
    "remove": "Drop the column from the output",
}

SENSITIVE_SMART_TYPES = ("email", "phone", "url", "zipcode")

_NON_DIGIT_RE = re.compile(r"\D")


def _check_method(method: str, column: Optional[str] = None) -> None:
    if method not in ANONYMIZATION_METHODS:
        raise InvalidConfigError(
            f"Unknown anonymization method '{method}'"
            + (f" for column '{column}'" if column else ""),
            field="method",
            value=method,
        )


# ─────────────────────────────────────────────────────────────────────────────
# Value-level transforms
# ─────────────────────────────────────────────────────────────────────────────

def mask_generic(text: str) -> str:
    """Keep the first and last character, starring up to 5 in between."""
    if len(text) <= 2:
        return "***"
    return text[0] + "*" * min(len(text) - 2, 5) + text[-1]


def mask_value(text: str, smart_type: Optional[str] = None) -> str:
    if smart_type == "email":
        parts = text.split("@")
        if len(parts) == 2:
            local, domain = parts
            masked = local[0] + "***" if len(local) > 1 else "***"
            return f"{masked}@{domain}"
        return mask_generic(text)

    if smart_type == "phone":
        digits = _NON_DIGIT_RE.sub("", text)
        if len(digits) >= 4:
            return "***-***-" + digits[-4:]
        return "***-***-****"

    if smart_type == "zipcode":
        digits = _NON_DIGIT_RE.sub("", text)
        if len(digits) >= 2:
            return digits[:2] + "***"
        return "*****"

    return mask_generic(text)


def hash_value(text: str) -> str:
    """
    31-multiplier rolling hash over UTF-16 code units, wrapped to a signed
    32-bit integer; the absolute value as 8 upper-case hex digits.
    """
    h = 0
    units = text.encode("utf-16-le")
    for i in range(0, len(units), 2):
        code_unit = units[i] | (units[i + 1] << 8)
        h = (h * 31 + code_unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return format(abs(h), "08x")[:8].upper()


def anonymize_value(value: Any, method: str, smart_type: Optional[str] = None) -> Any:
    """Apply *method* to a single cell. Blank cells (None, '') pass through unchanged."""
    _check_method(method)
    if value is None or value == "" or (isinstance(value, float) and math.isnan(value)):
        return value

    text = to_text(value)
    if method == "mask":
        return mask_value(text, smart_type)
    if method == "redact":
        return settings.REDACTED_MARKER
    if method == "hash":
        return hash_value(text)
    # remove is applied at column level
    return None


# ─────────────────────────────────────────────────────────────────────────────
# Table-level transforms
# ─────────────────────────────────────────────────────────────────────────────

def suggest_methods(smart_types: Mapping[str, SmartTypeInfo]) -> Dict[str, str]:
    """Default to 'mask' for every column whose dominant smart type looks sensitive."""
    return {
        col: "mask"
        for col, info in smart_types.items()
        if info.kind in SENSITIVE_SMART_TYPES
    }


def _anonymize_row(
    row: Mapping[str, Any],
    columns: List[str],
    methods: Mapping[str, str],
    kinds: Mapping[str, str],
) -> Row:
    out = {}
    for col in columns:
        method = methods.get(col)
        value = row.get(col)
        out[col] = anonymize_value(value, method, kinds.get(col)) if method else value
    return out


def _prepare(table: Table, methods: Mapping[str, str], smart_types: Optional[Mapping[str, SmartTypeInfo]]):
    for col, method in methods.items():
        _check_method(method, col)
    if smart_types is None:
        smart_types = table.smart_types
    kinds = {col: info.kind for col, info in smart_types.items()}
    columns = [col for col in table.columns if methods.get(col) != "remove"]
    return columns, kinds


def anonymize_table(
    table: Table,
    methods: Mapping[str, str],
    smart_types: Optional[Mapping[str, SmartTypeInfo]] = None,
) -> Table:
    """New snapshot with every configured column transformed; 'remove' columns are dropped."""
    columns, kinds = _prepare(table, methods, smart_types)
    rows = [_anonymize_row(row, columns, methods, kinds) for row in table.rows]
    logger.info(
        "Anonymized %d column(s) of %r over %d rows",
        sum(1 for col in methods if col in table.columns), table.name, len(rows),
    )
    return Table(rows, name=table.name, columns=columns)


def preview(
    table: Table,
    methods: Mapping[str, str],
    limit: Optional[int] = None,
    smart_types: Optional[Mapping[str, SmartTypeInfo]] = None,
) -> List[Row]:
    """First *limit* rows as they would look after anonymization."""
    if limit is None:
        limit = settings.PREVIEW_ROWS
    columns, kinds = _prepare(table, methods, smart_types)
    return [_anonymize_row(row, columns, methods, kinds) for row in table.rows[:limit]]
