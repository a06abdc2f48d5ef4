"""
Custom exceptions for formcalc.

Provides a hierarchy of exceptions with machine-readable codes and
structured error details. Formula errors are recovered inside the
evaluator; schema errors propagate to whoever builds the registry.
"""

import logging
from typing import Any


class FormCalcException(Exception):
    """
    Base exception for all formcalc errors.

    All custom exceptions should inherit from this class.
    """

    # Level used when the error is recovered and logged instead of raised
    log_level = logging.WARNING

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
            details: Additional error details
        """
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for diagnostics."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


# =============================================================================
# Formula Evaluation Errors
# =============================================================================


class FormulaError(FormCalcException):
    """A formula cannot be computed against the current values."""


class UnresolvedReferenceError(FormulaError):
    """A referenced field holds a non-numeric, non-empty value."""

    # Routine while a user is mid-edit
    log_level = logging.DEBUG

    def __init__(self, field_id: str, value: Any) -> None:
        super().__init__(
            message=f"Field '{field_id}' does not hold a numeric value",
            code="UNRESOLVED_REFERENCE",
            details={
                "field_id": field_id,
                "value": str(value)[:100],
            },
        )


class MalformedExpressionError(FormulaError):
    """Expression text is not pure arithmetic after substitution."""

    def __init__(self, expression: str, reason: str) -> None:
        super().__init__(
            message=f"Invalid formula expression: {reason}",
            code="MALFORMED_EXPRESSION",
            details={"expression": expression[:200], "reason": reason},
        )


class ArithmeticFailureError(FormulaError):
    """Evaluation failed or produced a non-finite number."""

    def __init__(self, expression: str, reason: str) -> None:
        super().__init__(
            message=f"Formula evaluation error: {reason}",
            code="ARITHMETIC_FAILURE",
            details={"expression": expression[:200], "reason": reason},
        )


class MissingTableError(FormulaError):
    """A TABLE_SUM table id does not resolve to a list of rows."""

    log_level = logging.DEBUG

    def __init__(self, table_id: str) -> None:
        super().__init__(
            message=f"Table '{table_id}' is not available",
            code="MISSING_TABLE",
            details={"table_id": table_id},
        )


class TableSumArityError(FormulaError):
    """TABLE_SUM was called with the wrong number of arguments."""

    def __init__(self, arg_count: int) -> None:
        super().__init__(
            message=(
                "TABLE_SUM requires 4 arguments: "
                "table_id, sum_column, filter_column, filter_value"
            ),
            code="TABLE_SUM_ARITY",
            details={"expected": 4, "received": arg_count},
        )


# =============================================================================
# Schema Errors
# =============================================================================


class SchemaError(FormCalcException):
    """Form schema cannot be turned into a computed field registry."""


class CircularReferenceError(SchemaError):
    """Computed fields depend on each other in a cycle."""

    def __init__(self, field_ids: list[str]) -> None:
        super().__init__(
            message="Circular reference detected in formula dependencies",
            code="CIRCULAR_REFERENCE",
            details={"field_ids": list(field_ids)},
        )


class InvalidFormulaError(SchemaError):
    """A computed field's formula has invalid syntax."""

    def __init__(self, field_id: str, reason: str) -> None:
        super().__init__(
            message=f"Invalid formula for field '{field_id}': {reason}",
            code="INVALID_FORMULA",
            details={"field_id": field_id, "reason": reason},
        )
