"""Pydantic models for form schemas."""

from formcalc.schemas.form import (
    FieldGroup,
    FieldInfo,
    FormField,
    FormSchema,
    FormSection,
    PairedField,
    SubSection,
)

__all__ = [
    "FieldGroup",
    "FieldInfo",
    "FormField",
    "FormSchema",
    "FormSection",
    "PairedField",
    "SubSection",
]
