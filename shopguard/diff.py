"""
Shopguard document diff engine.

Computes the proposed state of a write and classifies every field the
write touches. A field is touched when it appears in the write payload,
or when a replace write drops it from a document that held a value for
it. Re-writing a field with the value it already has is still a touch,
which is what makes "set once" fields strict.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ChangeKind(str, Enum):
    UNCHANGED = "unchanged"
    SET = "set"
    OVERWRITTEN = "overwritten"
    CLEARED = "cleared"


@dataclass
class FieldChange:
    """How a single touched field changes between prior and proposed state."""
    field: str
    kind: ChangeKind
    old: Any = None
    new: Any = None
    dropped: bool = False  # removed by a replace write rather than written


@dataclass
class Diff:
    """All touched fields of one write, keyed by field name."""
    changes: dict[str, FieldChange] = field(default_factory=dict)

    def __contains__(self, name: str) -> bool:
        return name in self.changes

    def __iter__(self):
        return iter(self.changes.values())

    def __len__(self) -> int:
        return len(self.changes)

    def get(self, name: str) -> Optional[FieldChange]:
        return self.changes.get(name)

    def touched(self) -> set[str]:
        return set(self.changes)

    def affected_keys(self) -> set[str]:
        """Fields whose value actually differs after the write."""
        return {
            name for name, change in self.changes.items()
            if change.kind is not ChangeKind.UNCHANGED
        }

    def dropped(self) -> set[str]:
        return {name for name, change in self.changes.items() if change.dropped}


def _same_value(old: Any, new: Any) -> bool:
    # True == 1 in Python; a document store keeps them apart.
    return type(old) is type(new) and old == new


def classify(old: Any, new: Any) -> ChangeKind:
    """Classify the transition of one field value."""
    if new is None:
        return ChangeKind.UNCHANGED if old is None else ChangeKind.CLEARED
    if old is None:
        return ChangeKind.SET
    if _same_value(old, new):
        return ChangeKind.UNCHANGED
    return ChangeKind.OVERWRITTEN


def apply_write(prior: Optional[dict], data: dict, merge: bool = False) -> dict:
    """Compute the document state a write would produce.

    Args:
        prior: The stored document, or None if it does not exist.
        data: The write payload.
        merge: True for a merge write, False for a replace write.

    Returns:
        A new dict; neither input is mutated.
    """
    if merge and prior:
        proposed = copy.deepcopy(prior)
        proposed.update(copy.deepcopy(data))
        return proposed
    return copy.deepcopy(data)


def compute_diff(prior: Optional[dict], data: dict, merge: bool = False) -> Diff:
    """Classify every field touched by a write.

    Args:
        prior: The stored document, or None if it does not exist.
        data: The write payload.
        merge: True for a merge write, False for a replace write.

    Returns:
        A Diff over the touched fields.
    """
    before = prior or {}
    diff = Diff()

    for name, new in data.items():
        old = before.get(name)
        diff.changes[name] = FieldChange(
            field=name, kind=classify(old, new), old=old, new=new
        )

    if not merge:
        for name, old in before.items():
            if name in data or old is None:
                continue
            diff.changes[name] = FieldChange(
                field=name, kind=ChangeKind.CLEARED, old=old, new=None, dropped=True
            )

    return diff


def symmetric_difference(old: Any, new: Any) -> set:
    """Set symmetric difference of two sequences; non-sequences count as empty."""
    old_set = set(old) if isinstance(old, (list, tuple, set)) else set()
    new_set = set(new) if isinstance(new, (list, tuple, set)) else set()
    return old_set ^ new_set
