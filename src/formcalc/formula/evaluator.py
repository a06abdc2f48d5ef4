"""Formula evaluator for formcalc.

Evaluates computed field formulas against a snapshot of form values.
``evaluate_formula`` is the public entry point; it is pure and never
raises, returning None whenever a formula cannot be computed.
"""

import math
from typing import Any, Mapping

from formcalc.core.exceptions import (
    ArithmeticFailureError,
    FormCalcException,
    FormulaError,
    MalformedExpressionError,
    TableSumArityError,
    UnresolvedReferenceError,
)
from formcalc.core.logging import get_logger, log_recovered_error
from formcalc.formula.functions import (
    extract_field_references,
    strip_function_calls,
    substitute_function_calls,
)
from formcalc.formula.parser import (
    BinaryOpNode,
    FieldRefNode,
    NumberNode,
    UnaryOpNode,
    get_parser,
)
from formcalc.formula.values import Missing, Number, classify_value

logger = get_logger(__name__)


class FormulaEvaluator:
    """
    Evaluates arithmetic ASTs against resolved numeric field values.

    Field references must already be resolved to numbers; an unbound
    reference means the expression was not pure arithmetic.
    """

    def __init__(self, fields: dict[str, float | int] | None = None):
        """
        Initialize evaluator with optional field values.

        Args:
            fields: Dictionary mapping field ids to numbers
        """
        self._fields = fields or {}
        self._expression = ""

    def evaluate(
        self,
        ast: Any,
        fields: dict[str, float | int] | None = None,
        expression: str = "",
    ) -> float | int:
        """
        Evaluate an AST node.

        Args:
            ast: AST node to evaluate
            fields: Optional field values (overrides constructor values)
            expression: Source text, used in error details

        Returns:
            Finite numeric result

        Raises:
            MalformedExpressionError: If the AST references an unbound name
            ArithmeticFailureError: On division by zero, overflow or a non-finite result
        """
        if fields is not None:
            self._fields = fields
        self._expression = expression

        result = self._eval(ast)
        try:
            finite = math.isfinite(result)
        except OverflowError:
            finite = False
        if not finite:
            raise ArithmeticFailureError(expression, "result is not a finite number")
        return result

    def _eval(self, node: Any) -> float | int:
        """Recursively evaluate an AST node."""
        if isinstance(node, NumberNode):
            return node.value

        if isinstance(node, FieldRefNode):
            if node.field_name not in self._fields:
                raise MalformedExpressionError(
                    self._expression, f"unexpected name '{node.field_name}'"
                )
            return self._fields[node.field_name]

        if isinstance(node, BinaryOpNode):
            return self._eval_binary(node)

        if isinstance(node, UnaryOpNode):
            return self._eval_unary(node)

        raise MalformedExpressionError(self._expression, f"unexpected node {node!r}")

    def _eval_binary(self, node: BinaryOpNode) -> float | int:
        """Evaluate a binary operation."""
        left = self._eval(node.left)
        right = self._eval(node.right)
        op = node.operator

        try:
            if op == "+":
                return left + right
            if op == "-":
                return left - right
            if op == "*":
                return left * right
            if op == "/":
                return left / right
        except ZeroDivisionError:
            raise ArithmeticFailureError(self._expression, "division by zero")
        except OverflowError:
            raise ArithmeticFailureError(self._expression, "numeric overflow")

        raise MalformedExpressionError(self._expression, f"unknown operator '{op}'")

    def _eval_unary(self, node: UnaryOpNode) -> float | int:
        """Evaluate a unary operation."""
        operand = self._eval(node.operand)
        if node.operator == "-":
            return -operand
        raise MalformedExpressionError(self._expression, f"unknown operator '{node.operator}'")


def resolve_references(
    references: list[str],
    values: Mapping[str, Any],
) -> dict[str, float | int]:
    """
    Resolve field references to numbers.

    Missing values (None, empty string, absent key) count as 0.

    Raises:
        UnresolvedReferenceError: If a referenced field holds a non-numeric value
    """
    resolved: dict[str, float | int] = {}
    for ref in references:
        raw = values.get(ref)
        tagged = classify_value(raw)
        if isinstance(tagged, Missing):
            resolved[ref] = 0
        elif isinstance(tagged, Number):
            resolved[ref] = tagged.value
        else:
            raise UnresolvedReferenceError(ref, raw)
    return resolved


def compute_formula(formula: str, values: Mapping[str, Any]) -> float | int:
    """
    Evaluate a formula, raising on failure.

    Steps, in order:
    1. Replace TABLE_SUM (and any other registered function) calls with numbers.
    2. Extract the remaining identifiers as field references.
    3. Resolve each reference to a number.
    4. Parse the expression; only arithmetic is accepted.
    5. Evaluate it.

    Raises:
        FormulaError: If the formula cannot be computed
    """
    expression = substitute_function_calls(formula, values)
    references = extract_field_references(expression)
    resolved = resolve_references(references, values)
    ast = get_parser().parse(expression)
    return FormulaEvaluator(resolved).evaluate(ast, expression=expression)


def evaluate_formula(formula: str, values: Mapping[str, Any]) -> float | int | None:
    """
    Safely evaluate a computed field formula.

    Supports +, -, *, /, parentheses, unary minus, field references and
    TABLE_SUM(table_id, sum_column, filter_column, filter_value).

    Args:
        formula: Formula text, e.g. "a + b - TABLE_SUM(t, amount, category, wages)"
        values: Current form values

    Returns:
        Numeric result, or None if the formula cannot be computed
    """
    try:
        return compute_formula(formula, values)
    except FormulaError as e:
        log_recovered_error(logger, e)
        return None
    except Exception:
        logger.exception("Unexpected formula evaluation error", extra={"formula": formula})
        return None


def validate_formula(formula: str) -> tuple[bool, str | None]:
    """
    Validate formula syntax without evaluating it.

    Function calls are checked for their argument count and then treated
    as numbers.

    Args:
        formula: Formula text

    Returns:
        Tuple of (is_valid, error_message)
    """
    expression, calls = strip_function_calls(formula)
    for name, args in calls:
        if name == "TABLE_SUM" and len(args) != 4:
            return False, TableSumArityError(len(args)).message

    try:
        ast = get_parser().parse(expression)
        # A leftover function name means a call the pattern could not match
        FormulaEvaluator({ref: 0 for ref in extract_field_references(expression)}).evaluate(
            ast, expression=expression
        )
    except ArithmeticFailureError:
        # Syntax is fine; 0 placeholders may divide by zero
        return True, None
    except FormCalcException as e:
        return False, e.message
    return True, None
