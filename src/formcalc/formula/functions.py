"""Formula functions for formcalc.

Function calls are resolved before the arithmetic parser sees an
expression: every call is replaced in the text by its numeric result.
Functions receive their raw, comma-split argument strings and the form
values, and return a number or raise a FormulaError.
"""

import math
import re
from decimal import Decimal
from functools import lru_cache
from typing import Any, Callable, Mapping

from formcalc.core.exceptions import (
    ArithmeticFailureError,
    FormulaError,
    MissingTableError,
    TableSumArityError,
)
from formcalc.core.logging import get_logger, log_recovered_error
from formcalc.formula.values import Number, TableRows, classify_value, is_row

logger = get_logger(__name__)

# Type alias for formula functions
FormulaFunction = Callable[[list[str], Mapping[str, Any]], float | int]

# Registry of formula functions
FORMULA_FUNCTIONS: dict[str, FormulaFunction] = {}

# Bare identifiers left in an expression are field references
FIELD_REFERENCE = re.compile(r"[a-zA-Z_][a-zA-Z0-9_]*")


def register_function(name: str) -> Callable[[FormulaFunction], FormulaFunction]:
    """Decorator to register a formula function."""

    def decorator(func: FormulaFunction) -> FormulaFunction:
        FORMULA_FUNCTIONS[name.upper()] = func
        _call_pattern.cache_clear()
        return func

    return decorator


@lru_cache(maxsize=None)
def _call_pattern() -> re.Pattern[str]:
    """Regex matching a call to any registered function (no nested parens)."""
    names = "|".join(re.escape(n) for n in sorted(FORMULA_FUNCTIONS, key=len, reverse=True))
    return re.compile(rf"(?<![A-Za-z0-9_])({names})\s*\(([^()]*)\)", re.IGNORECASE)


# Marks a column missing from a row, as opposed to one holding None
_ABSENT = object()


def _stringify_cell(value: Any) -> str:
    """Render a table cell for filter comparison the way JavaScript's String() does."""
    if value is _ABSENT:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_number_literal(value: float | int) -> str:
    """Render a number as plain decimal text the parser accepts."""
    if isinstance(value, float):
        text = format(Decimal(repr(value)), "f")
    else:
        text = str(value)
    # Parenthesized so "a -(-5)" never reads as a doubled operator
    return f"({text})" if text.startswith("-") else text


# =============================================================================
# Aggregate Functions
# =============================================================================


@register_function("TABLE_SUM")
def func_table_sum(args: list[str], values: Mapping[str, Any]) -> float | int:
    """
    Sum one column of a table field's rows, filtered on another column.

    Syntax: TABLE_SUM(table_id, sum_column, filter_column, filter_value)

    The filter is a case-insensitive string comparison. Cells that are not
    numbers or numeric strings contribute 0.
    """
    if len(args) != 4:
        raise TableSumArityError(len(args))

    table_id, sum_column, filter_column, filter_value = (a.strip() for a in args)
    table = classify_value(values.get(table_id))
    if not isinstance(table, TableRows):
        raise MissingTableError(table_id)

    target = filter_value.lower()
    total: float | int = 0
    for row in table.rows:
        if not is_row(row):
            continue
        if _stringify_cell(row.get(filter_column, _ABSENT)).lower() != target:
            continue
        cell = classify_value(row.get(sum_column))
        if isinstance(cell, Number):
            total += cell.value

    try:
        finite = math.isfinite(total)
    except OverflowError:
        finite = False
    if not finite:
        raise ArithmeticFailureError(f"TABLE_SUM({', '.join(args)})", "sum is not finite")
    return total


# =============================================================================
# Call Resolution
# =============================================================================


def call_function(name: str, args: list[str], values: Mapping[str, Any]) -> float | int | None:
    """
    Call a registered function, returning None if it cannot produce a value.

    Args:
        name: Function name (case-insensitive)
        args: Raw argument strings
        values: Current form values

    Returns:
        Function result, or None when the table is missing or the call is malformed

    Raises:
        ArithmeticFailureError: If the result is not a finite number
    """
    func = FORMULA_FUNCTIONS.get(name.upper())
    if func is None:
        logger.warning("Unknown formula function", extra={"function": name})
        return None

    try:
        return func(args, values)
    except ArithmeticFailureError:
        # A non-finite result fails the whole formula
        raise
    except FormulaError as e:
        log_recovered_error(logger, e)
        return None


def table_sum(args: list[str], values: Mapping[str, Any]) -> float | int | None:
    """
    Evaluate TABLE_SUM; None when the table is missing or the call is malformed.

    Raises:
        ArithmeticFailureError: If the matching cells sum to a non-finite number
    """
    return call_function("TABLE_SUM", args, values)


def substitute_function_calls(formula: str, values: Mapping[str, Any]) -> str:
    """
    Replace every function call in a formula with its numeric result.

    A call that cannot be evaluated (missing table, wrong argument count)
    is replaced with 0.

    Args:
        formula: Formula text
        values: Current form values

    Returns:
        Formula text with calls replaced by number literals

    Raises:
        ArithmeticFailureError: If a call's result is not a finite number
    """
    if not FORMULA_FUNCTIONS:
        return formula

    def _replace(match: re.Match[str]) -> str:
        result = call_function(match.group(1), match.group(2).split(","), values)
        return "0" if result is None else format_number_literal(result)

    return _call_pattern().sub(_replace, formula)


def strip_function_calls(formula: str) -> tuple[str, list[tuple[str, list[str]]]]:
    """
    Replace every function call with 0 without evaluating it.

    Returns:
        Tuple of (formula text with calls replaced, list of (name, args) found)
    """
    calls: list[tuple[str, list[str]]] = []

    def _replace(match: re.Match[str]) -> str:
        calls.append((match.group(1).upper(), [a.strip() for a in match.group(2).split(",")]))
        return "0"

    if not FORMULA_FUNCTIONS:
        return formula, calls
    return _call_pattern().sub(_replace, formula), calls


def extract_field_references(expression: str) -> list[str]:
    """
    Extract bare identifier tokens from an expression as field references.

    Leftover function names (a malformed call) are skipped.

    Args:
        expression: Expression text, usually after function substitution

    Returns:
        Unique field ids in first-seen order
    """
    refs = [
        token
        for token in FIELD_REFERENCE.findall(expression)
        if token.upper() not in FORMULA_FUNCTIONS
    ]
    return list(dict.fromkeys(refs))


def get_formula_dependencies(formula: str) -> set[str]:
    """
    Get every field id a formula reads, including TABLE_SUM tables.

    Args:
        formula: Formula text

    Returns:
        Set of field ids
    """
    expression, calls = strip_function_calls(formula)
    dependencies = set(extract_field_references(expression))
    for name, args in calls:
        if name == "TABLE_SUM" and args and args[0]:
            dependencies.add(args[0])
    return dependencies
