"""Computed field registry.

Derived once per form schema: which fields are formula-driven, how to
round them, and in what order a recompute pass should evaluate them.
"""

from dataclasses import dataclass

from formcalc.core.config import Settings, get_settings
from formcalc.core.exceptions import CircularReferenceError, InvalidFormulaError
from formcalc.core.logging import get_logger
from formcalc.formula.dependencies import FormulaDependencyGraph
from formcalc.formula.evaluator import validate_formula
from formcalc.formula.functions import get_formula_dependencies
from formcalc.schemas.form import FieldInfo, FormSchema

logger = get_logger(__name__)

COMPUTED_FIELD_TYPE = "computed"


@dataclass(frozen=True)
class ComputedField:
    """A computed field as seen by the recompute loop."""

    id: str
    formula: str | None
    decimal_places: int | None = None
    label: str = ""


@dataclass(frozen=True)
class ComputedFieldRegistry:
    """
    Read-only view of a schema's computed fields.

    Attributes:
        fields: Computed fields in schema order
        field_ids: The computed field set, used to suppress recompute loops
        evaluation_order: Ids of fields with formulas, dependencies first
        cyclic_field_ids: Ids whose formulas form a dependency cycle
    """

    fields: tuple[ComputedField, ...]
    field_ids: frozenset[str]
    evaluation_order: tuple[str, ...]
    cyclic_field_ids: tuple[str, ...]
    graph: FormulaDependencyGraph

    def is_computed(self, field_id: str | None) -> bool:
        """Check whether a field id belongs to the computed field set."""
        return field_id is not None and field_id in self.field_ids

    def get(self, field_id: str) -> ComputedField | None:
        """Get a computed field by id."""
        for field in self.fields:
            if field.id == field_id:
                return field
        return None

    def iter_evaluation_order(self):
        """Yield computed fields with formulas in evaluation order."""
        by_id = {field.id: field for field in self.fields}
        for field_id in self.evaluation_order:
            yield by_id[field_id]

    def dependencies_of(self, field_id: str) -> set[str]:
        """Field ids a computed field's formula reads."""
        return self.graph.get_dependencies(field_id)

    def dependents_of(self, field_id: str) -> set[str]:
        """Computed field ids whose formulas read the given field."""
        return self.graph.get_dependents(field_id)

    def __len__(self) -> int:
        return len(self.fields)


def _is_computed(info: FieldInfo) -> bool:
    return info.field_type == COMPUTED_FIELD_TYPE or bool(info.computed_formula)


def collect_computed_fields(schema: FormSchema) -> list[ComputedField]:
    """
    Find every computed field in a schema, paired fields included.

    A main field counts when its type is "computed" or it carries a formula;
    a paired field counts when it carries a formula. The first occurrence
    of a duplicated id wins.
    """
    found: dict[str, ComputedField] = {}

    for field in schema.iter_fields():
        info = field.field_info
        if _is_computed(info) and field.id not in found:
            found[field.id] = ComputedField(
                id=field.id,
                formula=info.computed_formula or None,
                decimal_places=info.decimal_places,
                label=field.label,
            )

        paired = field.paired_field
        if paired is not None and paired.field_info.computed_formula and paired.id not in found:
            found[paired.id] = ComputedField(
                id=paired.id,
                formula=paired.field_info.computed_formula,
                decimal_places=paired.field_info.decimal_places,
                # Paired fields borrow the parent label
                label=field.label,
            )

    return list(found.values())


def _declared_dependencies(schema: FormSchema) -> dict[str, set[str]]:
    declared: dict[str, set[str]] = {}
    for field in schema.iter_fields():
        for item in (field, field.paired_field):
            if item is not None and item.field_info.computed_dependencies:
                declared.setdefault(item.id, set()).update(item.field_info.computed_dependencies)
    return declared


def build_computed_field_registry(
    schema: FormSchema,
    settings: Settings | None = None,
) -> ComputedFieldRegistry:
    """
    Build the computed field registry for a schema.

    Args:
        schema: Form schema
        settings: Settings to apply (defaults to the global settings)

    Returns:
        Immutable registry

    Raises:
        InvalidFormulaError: If formula validation is enabled and a formula is invalid
        CircularReferenceError: If cycles are rejected and formulas form one
    """
    settings = settings or get_settings()
    fields = collect_computed_fields(schema)
    declared = _declared_dependencies(schema)

    graph = FormulaDependencyGraph()
    evaluated: list[str] = []
    cyclic: list[str] = []

    for field in fields:
        if field.formula is None:
            continue

        if settings.validate_formulas_on_load:
            is_valid, error = validate_formula(field.formula)
            if not is_valid:
                raise InvalidFormulaError(field.id, error or "invalid syntax")

        evaluated.append(field.id)
        depends_on = get_formula_dependencies(field.formula) | declared.get(field.id, set())
        success, _ = graph.add_formula_field(field.id, depends_on)
        if not success:
            cyclic.append(field.id)

    if cyclic:
        if settings.cyclic_formula_policy == "reject":
            raise CircularReferenceError(cyclic)
        logger.warning(
            "Circular reference detected in formula dependencies",
            extra={"field_ids": cyclic},
        )

    # A field whose edges would close a cycle enters the graph without them,
    # so it sorts before every field that reads it
    order = graph.get_evaluation_order(evaluated)

    registry = ComputedFieldRegistry(
        fields=tuple(fields),
        field_ids=frozenset(field.id for field in fields),
        evaluation_order=tuple(order),
        cyclic_field_ids=tuple(cyclic),
        graph=graph,
    )
    logger.debug(
        "Computed field registry built",
        extra={"computed_fields": len(fields), "cyclic_fields": len(cyclic)},
    )
    return registry
