"""Form schema descriptors.

Only the parts of a form schema the computed field engine reads are
modelled; every other key (styling, doc links, help text, ...) is kept
as an extra attribute and ignored.
"""

from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field


class FieldInfo(BaseModel):
    """Type-specific field configuration."""

    model_config = ConfigDict(extra="allow")

    field_type: str = Field(default="text", description="Field type, e.g. 'computed'")
    computed_formula: Optional[str] = Field(None, description="Formula for derived values")
    computed_dependencies: Optional[list[str]] = Field(
        None, description="Extra field ids the formula depends on"
    )
    decimal_places: Optional[int] = Field(
        None, ge=0, le=15, description="Decimal places for rounding computed values"
    )
    default_value: Any = Field(None, description="Default value when none is provided")


class PairedField(BaseModel):
    """Second field rendered on the same row as its parent."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1, description="Field id")
    field_info: FieldInfo = Field(default_factory=FieldInfo)
    value: Any = Field(None, description="Initial value")
    default_value: Any = Field(None, description="Default value")


class FormField(BaseModel):
    """Individual field definition."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1, description="Field id")
    label: str = Field(default="", description="Display label")
    field_info: FieldInfo = Field(default_factory=FieldInfo)
    value: Any = Field(None, description="Initial value")
    default_value: Any = Field(None, description="Default value")
    paired_field: Optional[PairedField] = None


class FieldGroup(BaseModel):
    """Group of fields within a sub-section."""

    model_config = ConfigDict(extra="allow")

    orientation: str = Field(default="vertical")
    fields: list[FormField] = Field(default_factory=list)


class SubSection(BaseModel):
    """Sub-section within a section."""

    model_config = ConfigDict(extra="allow")

    sub_section_id: str = Field(default="")
    sub_section_label: str = Field(default="")
    field_group: FieldGroup = Field(default_factory=FieldGroup)


class FormSection(BaseModel):
    """Top-level section."""

    model_config = ConfigDict(extra="allow")

    section_name: str = Field(default="")
    sub_sections: list[SubSection] = Field(default_factory=list)


class FormSchema(BaseModel):
    """Complete form schema: an ordered list of sections."""

    sections: list[FormSection] = Field(default_factory=list)

    @classmethod
    def from_sections(cls, sections: list[dict[str, Any]]) -> "FormSchema":
        """Build a schema from the plain list-of-sections layout."""
        return cls.model_validate({"sections": sections})

    def iter_fields(self) -> Iterator[FormField]:
        """Yield every field in schema order."""
        for section in self.sections:
            for sub_section in section.sub_sections:
                yield from sub_section.field_group.fields

    def collect_defaults(self) -> dict[str, Any]:
        """
        Collect initial values declared in the schema.

        Priority per field: value, then default_value, then
        field_info.default_value. Paired fields are included.

        Returns:
            Mapping of field id to its initial value
        """
        defaults: dict[str, Any] = {}
        for field in self.iter_fields():
            _store_default(defaults, field)
            if field.paired_field is not None:
                _store_default(defaults, field.paired_field)
        return defaults


def _store_default(defaults: dict[str, Any], field: FormField | PairedField) -> None:
    for candidate in (field.value, field.default_value, field.field_info.default_value):
        if candidate is not None:
            defaults[field.id] = candidate
            return
