"""
formcalc - Computed field formulas for schema-driven forms.

Evaluates arithmetic formulas (with a TABLE_SUM aggregate) over form
values without executing any code, and keeps derived fields consistent
as the form is edited.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from formcalc.fields import (
    ComputedFieldBinding,
    ComputedFieldRegistry,
    InMemoryFormStore,
    build_computed_field_registry,
    update_computed_fields,
)
from formcalc.formula import evaluate_formula, validate_formula
from formcalc.schemas import FormSchema

__all__ = [
    "__version__",
    "evaluate_formula",
    "validate_formula",
    "update_computed_fields",
    "build_computed_field_registry",
    "ComputedFieldRegistry",
    "ComputedFieldBinding",
    "InMemoryFormStore",
    "FormSchema",
]
