"""Compiled form: field specs, dependency graph and schema diagnostics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from formcalc._graph import DependencyGraph, Schedule, schedule

if TYPE_CHECKING:
    from collections.abc import Iterable

    from formcalc._diagnostics import Diagnostic

    from ._field_spec import FieldSpec


@dataclass(frozen=True, slots=True)
class FormGraph:
    """Everything the engine needs to evaluate a loaded form.

    Built once per schema load by ``build_form_graph`` and never mutated
    afterwards; a schema change produces a new FormGraph.

    Attributes:
        fields: Mapping from field id to FieldSpec, in declaration order.
        graph: Dependency graph over field ids (edge a -> b: b depends on a).
        cycles: Member sets of each dependency cycle, ordered by declaration.
        diagnostics: Schema diagnostics found while building the graph.

    """

    fields: dict[str, FieldSpec] = field(default_factory=dict)
    graph: DependencyGraph[str] = field(default_factory=DependencyGraph)
    cycles: tuple[frozenset[str], ...] = ()
    diagnostics: tuple[Diagnostic, ...] = ()

    def get_field(self, field_id: str) -> FieldSpec:
        """Get a field spec by id.

        Raises:
            KeyError: If no field has the given id.

        """
        return self.fields[field_id]

    def rank(self, field_id: str) -> int:
        """Declaration index of a field, the tie-break key for scheduling."""
        return self.fields[field_id].rank

    def expression_fields(self) -> list[FieldSpec]:
        """Derived fields in declaration order."""
        return [spec for spec in self.fields.values() if spec.is_derived]

    @property
    def cycle_members(self) -> frozenset[str]:
        return frozenset().union(*self.cycles)

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)

    def is_blocked(self, field_id: str) -> bool:
        """Whether a schema error (unknown dependency, parse error, cycle) prevents evaluation."""
        spec = self.fields[field_id]
        return spec.blocked_reason is not None or spec.parse_error is not None or field_id in self.cycle_members

    def diagnostics_for(self, field_id: str) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.field_id == field_id]

    def affected_by(self, changed: Iterable[str]) -> frozenset[str]:
        """Derived fields to recompute after ``changed`` fields receive new values.

        Walks forward through dependents. Fields with ``evaluate_on_change``
        disabled are neither recomputed nor traversed, since their value does
        not move. A changed field that is itself derived is included.
        """
        start = [fid for fid in changed if fid in self.fields]
        affected: set[str] = {fid for fid in start if self._recomputes(fid)}
        stack = [succ for fid in start for succ in self.graph.successors(fid)]
        while stack:
            current = stack.pop()
            if current in affected or not self._recomputes(current):
                continue
            affected.add(current)
            stack.extend(self.graph.successors(current))
        return frozenset(affected)

    def has_dependents(self, field_id: str) -> bool:
        return bool(self.affected_by([field_id]))

    def debounce_for(self, field_ids: Iterable[str]) -> int:
        """Shared debounce window (ms) for a set of fields: the largest of theirs."""
        return max((self.fields[fid].debounce_ms for fid in field_ids if fid in self.fields), default=0)

    def schedule(self, targets: Iterable[str]) -> Schedule[str]:
        """Evaluation order for ``targets``, ties broken by declaration order."""
        return schedule(self.graph, targets, key=self.rank)

    def _recomputes(self, field_id: str) -> bool:
        spec = self.fields.get(field_id)
        return spec is not None and spec.is_derived and spec.evaluate_on_change

    def __len__(self) -> int:
        """Return the number of fields in the form."""
        return len(self.fields)

    def __contains__(self, field_id: object) -> bool:
        """Check if a field exists in the form."""
        return field_id in self.fields
