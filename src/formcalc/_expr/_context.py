"""Value context handed to expressions and templates during a propagation pass."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from ._errors import UnresolvedReferenceError

SNAPSHOT_ATTRIBUTES = frozenset({"value", "valid", "required"})


@dataclass(frozen=True, slots=True)
class FieldSnapshot:
    """The state of one field as seen by an expression."""

    value: Any = None
    valid: bool = True
    required: bool = False


def match_field_id(
    path: tuple[str, ...],
    field_ids: Iterable[str] | Mapping[str, Any],
) -> tuple[str, tuple[str, ...]] | None:
    """Split a dotted reference into the field id it names and the remaining parts.

    Field ids may themselves contain dots (``result.total``), so the longest
    prefix that names a known field wins.

    Example:
        >>> match_field_id(("price", "value"), {"price"})
        ('price', ('value',))

    """
    known = field_ids if isinstance(field_ids, (Mapping, set, frozenset)) else set(field_ids)
    for end in range(len(path), 0, -1):
        candidate = ".".join(path[:end])
        if candidate in known:
            return candidate, path[end:]
    return None


class ValueContext(Mapping[str, FieldSnapshot]):
    """Mapping from field id to FieldSnapshot for the duration of one pass.

    A context is created at the start of a pass, patched with ``set`` as
    fields settle, and discarded afterwards. ``restrict`` produces the
    read-only view handed to a single expression, so an expression can only
    see the fields it declared.
    """

    __slots__ = ("_snapshots",)

    def __init__(self, snapshots: Mapping[str, FieldSnapshot] | None = None) -> None:
        self._snapshots: dict[str, FieldSnapshot] = dict(snapshots or {})

    @classmethod
    def from_values(cls, values: Mapping[str, Any], *, required: Iterable[str] = ()) -> ValueContext:
        """Build a context from plain values, marking empty required fields invalid."""
        required_ids = frozenset(required)
        return cls(
            {
                field_id: FieldSnapshot(
                    value=value,
                    valid=not (field_id in required_ids and _is_empty(value)),
                    required=field_id in required_ids,
                )
                for field_id, value in values.items()
            },
        )

    def __getitem__(self, field_id: str) -> FieldSnapshot:
        return self._snapshots[field_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._snapshots)

    def __len__(self) -> int:
        return len(self._snapshots)

    def __repr__(self) -> str:
        return f"ValueContext({self.as_values()!r})"

    def set(self, field_id: str, value: Any, *, valid: bool = True) -> None:
        """Patch a field's value in place (used by the owner of the pass)."""
        previous = self._snapshots.get(field_id)
        required = previous.required if previous is not None else False
        self._snapshots[field_id] = FieldSnapshot(value=value, valid=valid, required=required)

    def restrict(self, field_ids: Iterable[str]) -> ValueContext:
        """Return a copy containing only ``field_ids`` (missing ids are skipped)."""
        return ValueContext({fid: self._snapshots[fid] for fid in field_ids if fid in self._snapshots})

    def as_values(self) -> dict[str, Any]:
        """Return the plain ``{field_id: value}`` mapping."""
        return {fid: snap.value for fid, snap in self._snapshots.items()}

    def resolve(self, path: tuple[str, ...]) -> Any:
        """Resolve a (possibly dotted) reference to a value.

        ``field`` and ``field.value`` give the value, ``field.valid`` and
        ``field.required`` the corresponding flags.

        Raises:
            UnresolvedReferenceError: If no field matches or the attribute is unknown.

        """
        match = match_field_id(path, self._snapshots)
        if match is None:
            raise UnresolvedReferenceError(".".join(path))
        field_id, rest = match
        snapshot = self._snapshots[field_id]
        if not rest:
            return snapshot.value
        if len(rest) == 1 and rest[0] in SNAPSHOT_ATTRIBUTES:
            return getattr(snapshot, rest[0])
        raise UnresolvedReferenceError(".".join(path))


def _is_empty(value: Any) -> bool:
    return value is None or value == ""
