# src/plumbline/engine/sql_utils.py
"""
Shared SQL utilities for database-resident tables.

Identifier/literal escaping and the few DuckDB-specific fragments used when
predicates are compiled to SQL.
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any


# =============================================================================
# Identifier and Literal Escaping
# =============================================================================

def esc_ident(name: str) -> str:
    """
    Escape a SQL identifier (column name, table name).

    DuckDB uses "name" with " doubled.
    """
    return '"' + name.replace('"', '""') + '"'


def lit_str(value: str) -> str:
    """
    Escape a string literal for SQL (single quotes, ' doubled).
    """
    return "'" + value.replace("'", "''") + "'"


def lit_value(value: Any) -> str:
    """
    Convert a Python value to a SQL literal.
    """
    if value is None:
        return "NULL"
    elif isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    elif isinstance(value, str):
        return lit_str(value)
    elif isinstance(value, (int, float, Decimal)):
        return str(value)
    elif isinstance(value, datetime):
        return f"TIMESTAMP {lit_str(value.isoformat(sep=' '))}"
    elif isinstance(value, date):
        return f"DATE {lit_str(value.isoformat())}"
    elif isinstance(value, time):
        return f"TIME {lit_str(value.isoformat())}"
    else:
        return lit_str(str(value))


# =============================================================================
# Expression Fragments
# =============================================================================

def regex_match(expr: str, pattern: str) -> str:
    """Unanchored regex search over the text form of `expr` (NULL in, NULL out)."""
    return f"regexp_matches(CAST({expr} AS VARCHAR), {lit_str(pattern)})"


def nan_to_null(expr: str) -> str:
    """Treat floating-point NaN as missing."""
    return f"(CASE WHEN isnan({expr}) THEN NULL ELSE {expr} END)"
