"""Unit tests for the in-memory store and computed field binding."""

from formcalc.fields.registry import build_computed_field_registry
from formcalc.fields.store import ComputedFieldBinding, InMemoryFormStore
from tests.conftest import computed, make_schema, number


class TestInMemoryFormStore:
    """Tests for InMemoryFormStore."""

    def test_get_and_set(self):
        """Test reading and writing values."""
        store = InMemoryFormStore({"a": 1})
        store.set_value("b", 2)
        assert store.get_values() == {"a": 1, "b": 2}
        assert store.get_value("b") == 2
        assert store.get_value("missing", 0) == 0

    def test_get_values_is_a_copy(self):
        """Test that snapshots are independent of the store."""
        store = InMemoryFormStore({"a": 1})
        store.get_values()["a"] = 99
        assert store.get_value("a") == 1

    def test_subscribers_receive_snapshot_and_field_id(self, recorder):
        """Test change notifications."""
        store = InMemoryFormStore()
        store.subscribe(recorder)
        store.set_value("a", 5)
        assert recorder.calls == [({"a": 5}, "a")]

    def test_update_notifies_once_without_field_id(self, recorder):
        """Test bulk updates."""
        store = InMemoryFormStore()
        store.subscribe(recorder)
        store.update({"a": 1, "b": 2})
        assert recorder.calls == [({"a": 1, "b": 2}, None)]

    def test_unsubscribe(self, recorder):
        """Test that unsubscribing twice is harmless."""
        store = InMemoryFormStore()
        unsubscribe = store.subscribe(recorder)
        unsubscribe()
        unsubscribe()
        store.set_value("a", 1)
        assert recorder.calls == []


class TestComputedFieldBinding:
    """Tests for ComputedFieldBinding."""

    def test_attach_runs_initial_pass(self, subtotal_schema, settings):
        """Test the initial pass on attach."""
        store = InMemoryFormStore({"a": 10, "b": 5})
        binding = ComputedFieldBinding.from_schema(store, subtotal_schema, settings)
        assert binding.attach() == {"subtotal": 15.0}
        assert binding.attached is True
        assert store.get_value("subtotal") == 15.0

    def test_input_change_recomputes(self, subtotal_schema, settings):
        """Test recompute on an input write."""
        store = InMemoryFormStore({"a": 10, "b": 5})
        ComputedFieldBinding.from_schema(store, subtotal_schema, settings).attach()
        store.set_value("a", 20)
        assert store.get_value("subtotal") == 25.0

    def test_external_write_to_computed_field_is_kept(self, subtotal_schema, settings):
        """Test that a write to a computed field is not recomputed."""
        store = InMemoryFormStore({"a": 10, "b": 5})
        ComputedFieldBinding.from_schema(store, subtotal_schema, settings).attach()
        store.set_value("subtotal", 99)
        assert store.get_value("subtotal") == 99

    def test_detach_stops_recompute(self, subtotal_schema, settings):
        """Test detach."""
        store = InMemoryFormStore({"a": 10, "b": 5})
        binding = ComputedFieldBinding.from_schema(store, subtotal_schema, settings)
        binding.attach()
        binding.detach()
        assert binding.attached is False
        store.set_value("a", 20)
        assert store.get_value("subtotal") == 15.0

    def test_attach_twice_subscribes_once(self, subtotal_schema, settings):
        """Test that attach is idempotent."""
        store = InMemoryFormStore({"a": 10, "b": 5})
        binding = ComputedFieldBinding.from_schema(store, subtotal_schema, settings)
        binding.attach()
        binding.attach()
        assert len(store._subscribers) == 1

    def test_schema_defaults_feed_formulas(self, settings, wages_rows):
        """Test that schema defaults reach formulas."""
        schema = make_schema(
            [
                {
                    "id": "income",
                    "field_info": {"field_type": "table"},
                    "default_value": wages_rows,
                },
                computed("wages_total", "TABLE_SUM(income, amount, category, wages)"),
            ]
        )
        store = InMemoryFormStore()
        ComputedFieldBinding.from_schema(store, schema, settings).attach()
        assert store.get_value("wages_total") == 100.0

    def test_store_values_override_defaults(self, settings):
        """Test that store values win over schema defaults."""
        schema = make_schema([number("a", value=1), number("b", value=1), computed("subtotal", "a + b")])
        store = InMemoryFormStore({"a": 4})
        ComputedFieldBinding.from_schema(store, schema, settings).attach()
        assert store.get_value("subtotal") == 5.0

    def test_empty_registry_skips_initial_pass(self, settings):
        """Test attach with no computed fields."""
        registry = build_computed_field_registry(make_schema([number("a")]), settings)
        store = InMemoryFormStore({"a": 1})
        binding = ComputedFieldBinding(store, registry, settings=settings)
        assert binding.attach() == {}
        assert binding.attached is True

    def test_manual_recompute(self, subtotal_schema, settings):
        """Test recompute without attaching."""
        registry = build_computed_field_registry(subtotal_schema, settings)
        store = InMemoryFormStore({"a": 2, "b": 3})
        binding = ComputedFieldBinding(store, registry, settings=settings)
        assert binding.recompute() == {"subtotal": 5.0}
        assert binding.attached is False
