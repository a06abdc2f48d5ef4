"""Formula dependency tracking for formcalc.

Computed fields form a directed graph: an edge runs from each field a
formula reads to the computed field that owns the formula. The graph
refuses edges that would close a cycle and yields a stable evaluation
order for a recompute pass.
"""

import heapq
from collections import defaultdict
from typing import Iterable, Sequence

CIRCULAR_REFERENCE_MESSAGE = "Circular reference detected in formula dependencies"


class FormulaDependencyGraph:
    """
    Track computed field dependencies.

    Attributes:
        reads: computed field id -> field ids its formula reads
        read_by: field id -> computed field ids whose formulas read it
    """

    def __init__(self):
        self.reads: dict[str, set[str]] = {}
        self.read_by: dict[str, set[str]] = defaultdict(set)

    def add_formula_field(self, field_id: str, depends_on: Iterable[str]) -> tuple[bool, str | None]:
        """
        Add or replace a computed field's dependencies.

        Args:
            field_id: Computed field id
            depends_on: Field ids its formula reads

        Returns:
            Tuple of (success, error_message); the graph is unchanged on failure
        """
        depends_on = set(depends_on)
        if self.detect_circular_reference(field_id, depends_on):
            return False, CIRCULAR_REFERENCE_MESSAGE

        for old in self.reads.get(field_id, ()):
            self.read_by[old].discard(field_id)

        self.reads[field_id] = depends_on
        for source in depends_on:
            self.read_by[source].add(field_id)
        return True, None

    def detect_circular_reference(self, field_id: str, depends_on: Iterable[str]) -> bool:
        """Check whether reading ``depends_on`` from ``field_id`` would close a cycle."""
        pending = list(depends_on)
        seen: set[str] = set()

        while pending:
            current = pending.pop()
            if current == field_id:
                return True
            if current not in seen:
                seen.add(current)
                pending.extend(self.reads.get(current, ()))
        return False

    def get_evaluation_order(self, field_ids: Sequence[str]) -> list[str]:
        """
        Order computed fields so every field comes after the fields it reads.

        Kahn's algorithm over the requested fields only; reads of fields
        outside ``field_ids`` are ignored. When several fields are ready at
        once, the one earliest in ``field_ids`` goes first.

        Args:
            field_ids: Computed field ids, in schema order

        Returns:
            Ordered field ids, or an empty list if they contain a cycle
        """
        position = {field_id: index for index, field_id in enumerate(field_ids)}
        waiting_on = {
            field_id: len(self.reads.get(field_id, set()) & position.keys())
            for field_id in field_ids
        }

        ready = [position[field_id] for field_id, count in waiting_on.items() if count == 0]
        heapq.heapify(ready)

        order: list[str] = []
        while ready:
            field_id = field_ids[heapq.heappop(ready)]
            order.append(field_id)
            for reader in self.read_by.get(field_id, ()):
                if reader in waiting_on:
                    waiting_on[reader] -= 1
                    if waiting_on[reader] == 0:
                        heapq.heappush(ready, position[reader])

        return order if len(order) == len(waiting_on) else []

    def get_dependencies(self, field_id: str) -> set[str]:
        """Field ids a computed field reads."""
        return set(self.reads.get(field_id, ()))

    def get_dependents(self, field_id: str) -> set[str]:
        """Computed field ids that read a field."""
        return set(self.read_by.get(field_id, ()))

    def __repr__(self) -> str:
        edges = sum(len(sources) for sources in self.reads.values())
        return f"FormulaDependencyGraph(fields={len(self.reads)}, edges={edges})"
