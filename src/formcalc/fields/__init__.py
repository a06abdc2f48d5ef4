"""Computed fields for formcalc.

Builds the computed field registry from a form schema and keeps computed
values current as the host store changes.
"""

from formcalc.fields.recompute import update_computed_fields
from formcalc.fields.registry import (
    ComputedField,
    ComputedFieldRegistry,
    build_computed_field_registry,
)
from formcalc.fields.rounding import round_half_up
from formcalc.fields.store import ComputedFieldBinding, FormStore, InMemoryFormStore

__all__ = [
    "ComputedField",
    "ComputedFieldRegistry",
    "build_computed_field_registry",
    "update_computed_fields",
    "round_half_up",
    "FormStore",
    "InMemoryFormStore",
    "ComputedFieldBinding",
]
