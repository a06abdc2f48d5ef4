"""Formula engine for formcalc.

This module provides safe evaluation of computed field formulas:
- Arithmetic operations (+, -, *, /) with parentheses and unary minus
- Field references (bare field ids; missing values count as 0)
- TABLE_SUM(table_id, sum_column, filter_column, filter_value)

Formulas are parsed with a real grammar; nothing is executed as code.
"""

from formcalc.formula.dependencies import FormulaDependencyGraph
from formcalc.formula.evaluator import FormulaEvaluator, evaluate_formula, validate_formula
from formcalc.formula.functions import (
    FORMULA_FUNCTIONS,
    extract_field_references,
    get_formula_dependencies,
    register_function,
    table_sum,
)
from formcalc.formula.parser import FormulaParser

__all__ = [
    "FormulaParser",
    "FormulaEvaluator",
    "FORMULA_FUNCTIONS",
    "register_function",
    "FormulaDependencyGraph",
    "evaluate_formula",
    "validate_formula",
    "extract_field_references",
    "get_formula_dependencies",
    "table_sum",
]
