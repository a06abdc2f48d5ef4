"""Tagged value model for formula inputs.

Raw form values are classified once into a closed set of variants so the
evaluator never inspects raw types itself:

- ``Number``: a finite int/float, or a plain ASCII decimal string such as "12.5"
- ``Missing``: ``None`` or the empty string (counts as 0 in formulas)
- ``TableRows``: a list of row mappings (a table field)
- ``Text``: anything else (words, booleans, NaN, ...)
"""

import math
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Mapping

# Strings that count as numbers: optional sign, digits with optional point
NUMERIC_STRING = re.compile(r"^\s*[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)\s*$")


@dataclass(frozen=True)
class Number:
    value: float | int


@dataclass(frozen=True)
class Missing:
    pass


@dataclass(frozen=True)
class TableRows:
    rows: tuple[Any, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Text:
    value: Any


TaggedValue = Number | Missing | TableRows | Text

MISSING = Missing()


def classify_value(value: Any) -> TaggedValue:
    """Classify a raw form value into its tagged variant."""
    if value is None:
        return MISSING

    # bool is an int subclass but never a number in a formula
    if isinstance(value, bool):
        return Text(value)

    if isinstance(value, (int, float, Decimal)):
        if isinstance(value, int):
            return Number(value)
        number = float(value)
        return Number(number) if math.isfinite(number) else Text(value)

    if isinstance(value, str):
        if value == "":
            return MISSING
        if NUMERIC_STRING.match(value):
            return Number(float(value))
        return Text(value)

    if isinstance(value, (list, tuple)):
        return TableRows(tuple(value))

    return Text(value)


def is_row(value: Any) -> bool:
    """Check whether a table entry is a usable row mapping."""
    return isinstance(value, Mapping)
