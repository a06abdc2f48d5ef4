"""Unit tests for the recompute loop."""

from formcalc.core.config import Settings
from formcalc.fields.recompute import update_computed_fields
from formcalc.fields.registry import build_computed_field_registry
from tests.conftest import computed, make_schema, number


def run(schema, values, recorder, changed=None, settings=None):
    settings = settings or Settings(_env_file=None)
    registry = build_computed_field_registry(schema, settings)
    return update_computed_fields(
        values,
        changed,
        registry=registry,
        set_value=recorder,
        settings=settings,
    )


class TestUpdateComputedFields:
    """Tests for update_computed_fields."""

    def test_initial_pass_writes_subtotal(self, subtotal_schema, recorder):
        """Test the initial pass with no changed field."""
        written = run(subtotal_schema, {"a": 10, "b": 5}, recorder)
        assert written == {"subtotal": 15.0}
        assert recorder.calls == [("subtotal", 15.0)]

    def test_unchanged_value_is_not_written(self, subtotal_schema, recorder):
        """Test that an equal value is not written again."""
        written = run(subtotal_schema, {"a": 10, "b": 5, "subtotal": 15}, recorder)
        assert written == {}
        assert recorder.calls == []

    def test_string_value_is_replaced(self, subtotal_schema, recorder):
        """Test that a numeric string is replaced by a number."""
        run(subtotal_schema, {"a": 10, "b": 5, "subtotal": "15"}, recorder)
        assert recorder.calls == [("subtotal", 15.0)]

    def test_input_change_triggers_write(self, subtotal_schema, recorder):
        """Test recompute after an input change."""
        run(subtotal_schema, {"a": 20, "b": 5, "subtotal": 15}, recorder, changed="a")
        assert recorder.calls == [("subtotal", 25.0)]

    def test_computed_field_change_is_ignored(self, subtotal_schema, recorder):
        """Test that a change to a computed field does nothing."""
        written = run(subtotal_schema, {"a": 20, "b": 5, "subtotal": 99}, recorder, changed="subtotal")
        assert written == {}
        assert recorder.calls == []

    def test_uncomputable_formula_leaves_field_alone(self, subtotal_schema, recorder):
        """Test that a None result writes nothing."""
        run(subtotal_schema, {"a": "abc", "b": 5, "subtotal": 7}, recorder, changed="a")
        assert recorder.calls == []

    def test_default_rounding(self, recorder):
        """Test rounding to two places by default."""
        schema = make_schema([number("a"), computed("third", "a / 3")])
        run(schema, {"a": 10}, recorder)
        assert recorder.calls == [("third", 3.33)]

    def test_field_decimal_places(self, recorder):
        """Test a field's own decimal places."""
        schema = make_schema([number("a"), computed("third", "a / 3", decimal_places=0)])
        run(schema, {"a": 10}, recorder)
        assert recorder.calls == [("third", 3.0)]

    def test_configured_default_decimal_places(self, recorder):
        """Test the configured default decimal places."""
        schema = make_schema([number("a"), computed("third", "a / 3")])
        run(schema, {"a": 10}, recorder, settings=Settings(_env_file=None, default_decimal_places=4))
        assert recorder.calls == [("third", 3.3333)]

    def test_half_up_rounding(self, recorder):
        """Test that halves round up."""
        schema = make_schema([number("a"), computed("x", "a * 1")])
        run(schema, {"a": 10.005}, recorder)
        assert recorder.calls == [("x", 10.01)]

    def test_chained_fields_see_fresh_values(self, recorder):
        """Test that later fields read values written earlier in the pass."""
        schema = make_schema(
            [
                number("a"),
                number("b"),
                computed("total", "subtotal * 2"),
                computed("subtotal", "a + b"),
            ]
        )
        written = run(schema, {"a": 1, "b": 2, "subtotal": 0, "total": 0}, recorder)
        assert written == {"subtotal": 3.0, "total": 6.0}
        assert recorder.calls == [("subtotal", 3.0), ("total", 6.0)]

    def test_does_not_mutate_values(self, subtotal_schema, recorder):
        """Test that the snapshot passed in is left as is."""
        values = {"a": 1, "b": 2}
        run(subtotal_schema, values, recorder)
        assert values == {"a": 1, "b": 2}

    def test_table_sum_field(self, recorder, wages_rows):
        """Test a TABLE_SUM field."""
        schema = make_schema(
            [computed("wages_total", "TABLE_SUM(income, amount, category, wages)")]
        )
        run(schema, {"income": wages_rows}, recorder)
        assert recorder.calls == [("wages_total", 100.0)]

    def test_missing_inputs_compute_zero(self, subtotal_schema, recorder):
        """Test that missing inputs count as 0."""
        run(subtotal_schema, {}, recorder)
        assert recorder.calls == [("subtotal", 0.0)]

    def test_cyclic_fields_are_still_evaluated(self, recorder):
        """Test that tolerated cycles are evaluated once."""
        schema = make_schema([computed("x", "y + 1"), computed("y", "x + 1")])
        written = run(schema, {}, recorder)
        assert written == {"y": 1.0, "x": 2.0}

    def test_reader_of_cyclic_field_sees_fresh_value(self, recorder):
        """c = b * 10 uses the b written earlier in the same pass."""
        schema = make_schema(
            [computed("a", "b + 1"), computed("b", "a + 1"), computed("c", "b * 10")]
        )
        written = run(schema, {}, recorder)
        assert written == {"b": 1.0, "a": 2.0, "c": 10.0}
        assert [field_id for field_id, _ in recorder.calls] == ["b", "a", "c"]

    def test_empty_registry(self, recorder):
        """Test a schema without computed fields."""
        schema = make_schema([number("a")])
        assert run(schema, {"a": 1}, recorder) == {}
        assert recorder.calls == []
