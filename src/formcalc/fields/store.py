"""Host form-state contract and computed field wiring.

The engine does not own form values. A host store exposes get, set and
subscribe; ``ComputedFieldBinding`` connects such a store to the
recompute loop.
"""

import threading
from typing import Any, Callable, Protocol

from formcalc.core.config import Settings
from formcalc.core.logging import LoggerMixin
from formcalc.fields.recompute import update_computed_fields
from formcalc.fields.registry import ComputedFieldRegistry, build_computed_field_registry
from formcalc.schemas.form import FormSchema

ChangeCallback = Callable[[dict[str, Any], str | None], None]
Unsubscribe = Callable[[], None]


class FormStore(Protocol):
    """Key/value store owned by the host form-state library."""

    def get_values(self) -> dict[str, Any]:
        """Return a snapshot of all current values."""
        ...

    def set_value(self, field_id: str, value: Any) -> None:
        """Write one value and notify subscribers."""
        ...

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        """Register for change notifications; returns an unsubscribe callable."""
        ...


class InMemoryFormStore:
    """
    Minimal FormStore keeping values in a dict.

    Subscribers are notified synchronously, after each write, with a
    snapshot of all values and the id of the field that changed. Writes
    are serialized with a re-entrant lock so a subscriber may write back
    from inside its callback.
    """

    def __init__(self, values: dict[str, Any] | None = None):
        self._values: dict[str, Any] = dict(values or {})
        self._subscribers: list[ChangeCallback] = []
        self._lock = threading.RLock()

    def get_values(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._values)

    def get_value(self, field_id: str, default: Any = None) -> Any:
        with self._lock:
            return self._values.get(field_id, default)

    def set_value(self, field_id: str, value: Any) -> None:
        with self._lock:
            self._values[field_id] = value
            self._notify(field_id)

    def update(self, values: dict[str, Any]) -> None:
        """Write several values, then notify once with no changed field."""
        with self._lock:
            self._values.update(values)
            self._notify(None)

    def subscribe(self, callback: ChangeCallback) -> Unsubscribe:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, field_id: str | None) -> None:
        for callback in list(self._subscribers):
            callback(dict(self._values), field_id)


class ComputedFieldBinding(LoggerMixin):
    """
    Keeps a store's computed fields current.

    ``attach`` subscribes to the store and runs the initial pass.
    Schema defaults are merged under the store's values on every pass so
    table data declared in the schema is always visible to formulas.
    """

    def __init__(
        self,
        store: FormStore,
        registry: ComputedFieldRegistry,
        defaults: dict[str, Any] | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.registry = registry
        self.defaults = dict(defaults or {})
        self.settings = settings
        self._unsubscribe: Unsubscribe | None = None

    @classmethod
    def from_schema(
        cls,
        store: FormStore,
        schema: FormSchema,
        settings: Settings | None = None,
    ) -> "ComputedFieldBinding":
        """Build the registry and defaults from a schema and bind them to a store."""
        registry = build_computed_field_registry(schema, settings)
        return cls(store, registry, defaults=schema.collect_defaults(), settings=settings)

    @property
    def attached(self) -> bool:
        return self._unsubscribe is not None

    def attach(self) -> dict[str, float]:
        """
        Subscribe to store changes and run the initial recompute pass.

        Returns:
            Values written by the initial pass
        """
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_change)
        if not len(self.registry):
            return {}
        return self.recompute()

    def detach(self) -> None:
        """Stop listening to store changes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def recompute(self, changed_field_id: str | None = None) -> dict[str, float]:
        """Run one recompute pass against the store's current values."""
        return self._run(self.store.get_values(), changed_field_id)

    def _on_change(self, values: dict[str, Any], changed_field_id: str | None) -> None:
        self._run(values, changed_field_id)

    def _run(self, values: dict[str, Any], changed_field_id: str | None) -> dict[str, float]:
        written = update_computed_fields(
            {**self.defaults, **values},
            changed_field_id,
            registry=self.registry,
            set_value=self.store.set_value,
            settings=self.settings,
        )
        if written:
            self.logger.debug(
                "Recompute pass wrote values",
                extra={"changed_field_id": changed_field_id, "fields": list(written)},
            )
        return written
