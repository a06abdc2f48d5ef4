"""Formula parser for formcalc.

Parses arithmetic expression strings into an AST using Lark.
"""

from dataclasses import dataclass
from typing import Any

from lark import Lark, Transformer, v_args
from lark.exceptions import LarkError

from formcalc.core.exceptions import MalformedExpressionError
from formcalc.formula.grammar import FORMULA_GRAMMAR


# AST Node types
@dataclass
class NumberNode:
    value: float | int


@dataclass
class FieldRefNode:
    field_name: str


@dataclass
class BinaryOpNode:
    operator: str
    left: Any
    right: Any


@dataclass
class UnaryOpNode:
    operator: str
    operand: Any


class FormulaTransformer(Transformer):
    """Transform Lark parse tree into AST nodes."""

    @v_args(inline=True)
    def number(self, token):
        text = str(token)
        return NumberNode(float(text) if "." in text else int(text))

    @v_args(inline=True)
    def field_ref(self, token):
        return FieldRefNode(str(token))

    @v_args(inline=True)
    def binary_op(self, left, operator, right):
        return BinaryOpNode(str(operator), left, right)

    @v_args(inline=True)
    def unary_op(self, operator, operand):
        # Unary plus leaves its operand unchanged
        if operator == "+":
            return operand
        return UnaryOpNode(str(operator), operand)


class FormulaParser:
    """
    Parser for arithmetic formula expressions.

    Parses expression strings into an AST that can be evaluated. Parsing
    never executes anything; text that is not arithmetic is rejected.
    """

    def __init__(self):
        self._parser = Lark(
            FORMULA_GRAMMAR,
            parser="lalr",
            transformer=FormulaTransformer(),
        )

    def parse(self, expression: str) -> Any:
        """
        Parse an expression string into an AST.

        Args:
            expression: Expression string to parse

        Returns:
            AST root node

        Raises:
            MalformedExpressionError: If the expression is not valid arithmetic
        """
        try:
            return self._parser.parse(expression)
        except LarkError as e:
            lines = str(e).strip().splitlines()
            reason = lines[0] if lines else e.__class__.__name__
            raise MalformedExpressionError(expression, reason) from e

    def validate(self, expression: str) -> tuple[bool, str | None]:
        """
        Validate expression syntax.

        Args:
            expression: Expression string to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        try:
            self.parse(expression)
            return True, None
        except MalformedExpressionError as e:
            return False, e.message

    def get_field_references(self, expression: str) -> list[str]:
        """
        Extract all field references from an expression.

        Args:
            expression: Expression string

        Returns:
            Field names referenced in the expression, in first-seen order
        """
        ast = self.parse(expression)
        fields: list[str] = []
        self._collect_fields(ast, fields)
        return list(dict.fromkeys(fields))

    def _collect_fields(self, node: Any, fields: list[str]) -> None:
        """Recursively collect field references from AST."""
        if isinstance(node, FieldRefNode):
            fields.append(node.field_name)
        elif isinstance(node, BinaryOpNode):
            self._collect_fields(node.left, fields)
            self._collect_fields(node.right, fields)
        elif isinstance(node, UnaryOpNode):
            self._collect_fields(node.operand, fields)


_parser: FormulaParser | None = None


def get_parser() -> FormulaParser:
    """Lazily build the shared parser; grammar compilation is not free."""
    global _parser
    if _parser is None:
        _parser = FormulaParser()
    return _parser
