"""Reactive recompute loop for computed fields.

``update_computed_fields`` runs one synchronous pass over a form's
computed fields. The host calls it once when initial values are
available and again from its change-notification subscription.
"""

from typing import Any, Callable, Mapping

from formcalc.core.config import Settings, get_settings
from formcalc.core.logging import get_logger
from formcalc.fields.registry import ComputedFieldRegistry
from formcalc.fields.rounding import round_half_up
from formcalc.formula.evaluator import evaluate_formula

logger = get_logger(__name__)

SetValue = Callable[[str, Any], None]


def _differs(new_value: float, current: Any) -> bool:
    # "15" and 15.0 are different values; 15 and 15.0 are not
    if isinstance(current, bool) or not isinstance(current, (int, float)):
        return True
    return new_value != current


def update_computed_fields(
    values: Mapping[str, Any],
    changed_field_id: str | None = None,
    *,
    registry: ComputedFieldRegistry,
    set_value: SetValue,
    settings: Settings | None = None,
) -> dict[str, float]:
    """
    Recompute every computed field and write back the ones that changed.

    A change event naming a computed field is ignored: that value was
    written by an earlier pass, and recomputing would only loop.

    Args:
        values: Snapshot of the current form values
        changed_field_id: Field whose change triggered this pass; None on initial mount
        registry: Computed field registry for the form's schema
        set_value: Callback that writes a value into the host store
        settings: Settings to apply (defaults to the global settings)

    Returns:
        Mapping of field id to the value written during this pass
    """
    if registry.is_computed(changed_field_id):
        logger.debug(
            "Skipping recompute for computed field change",
            extra={"changed_field_id": changed_field_id},
        )
        return {}

    settings = settings or get_settings()
    # Later fields in the pass see values written by earlier ones
    working = dict(values)
    written: dict[str, float] = {}

    for field in registry.iter_evaluation_order():
        result = evaluate_formula(field.formula, working)
        if result is None:
            continue

        places = (
            field.decimal_places
            if field.decimal_places is not None
            else settings.default_decimal_places
        )
        rounded = round_half_up(result, places)

        if _differs(rounded, working.get(field.id)):
            set_value(field.id, rounded)
            working[field.id] = rounded
            written[field.id] = rounded

    if written:
        logger.debug(
            "Computed fields updated",
            extra={"changed_field_id": changed_field_id, "updated": list(written)},
        )
    return written
