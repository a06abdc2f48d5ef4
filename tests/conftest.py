"""
Pytest configuration and fixtures for formcalc tests.
"""

from typing import Any

import pytest

from formcalc.core.config import Settings
from formcalc.schemas.form import FormSchema


def make_schema(fields: list[dict[str, Any]]) -> FormSchema:
    """Wrap field definitions in a single-section form schema."""
    return FormSchema.from_sections(
        [
            {
                "section_name": "Main",
                "sub_sections": [
                    {
                        "sub_section_id": "main",
                        "sub_section_label": "Main",
                        "field_group": {"orientation": "vertical", "fields": fields},
                    }
                ],
            }
        ]
    )


def computed(field_id: str, formula: str | None, **field_info: Any) -> dict[str, Any]:
    """Computed field definition."""
    info = {"field_type": "computed", **field_info}
    if formula is not None:
        info["computed_formula"] = formula
    return {"id": field_id, "label": field_id.title(), "field_info": info}


def number(field_id: str, **extra: Any) -> dict[str, Any]:
    """Plain numeric input field definition."""
    return {"id": field_id, "label": field_id.title(), "field_info": {"field_type": "number"}, **extra}


class Recorder:
    """Collects set_value calls."""

    def __init__(self):
        self.calls: list[tuple[str, Any]] = []

    def __call__(self, field_id: str, value: Any) -> None:
        self.calls.append((field_id, value))


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults, ignoring any .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def subtotal_schema() -> FormSchema:
    """Schema with a, b and subtotal = a + b."""
    return make_schema([number("a"), number("b"), computed("subtotal", "a + b")])


@pytest.fixture
def wages_rows() -> list[dict[str, Any]]:
    return [
        {"category": "wages", "amount": 100},
        {"category": "interest", "amount": 50},
    ]
