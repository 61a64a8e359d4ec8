"""A map of one-parent-to-many-children relations whose edges carry data."""

from __future__ import annotations

from collections.abc import Hashable
from typing import Generic, TypeVar

from scopegraph.scope import StateError

I = TypeVar("I", bound=Hashable)
T = TypeVar("T")


class OneToNElementsMap(Generic[I, T]):
    """Each child has at most one parent; each parent any number of children."""

    def __init__(self) -> None:
        self.child_to_parent: dict[I, tuple[I, T]] = {}
        self.parent_to_children: dict[I, set[I]] = {}

    def __repr__(self) -> str:
        return (
            f"OneToNElementsMap(child_to_parent={self.child_to_parent!r}, "
            f"parent_to_children={self.parent_to_children!r})"
        )

    def clear(self) -> None:
        self.child_to_parent.clear()
        self.parent_to_children.clear()

    def insert(self, child: I, parent: I, edge: T) -> None:
        """Connect child to parent; raises StateError if the child already has a parent."""
        if child in self.child_to_parent:
            raise StateError("this child already has a parent")
        self.child_to_parent[child] = (parent, edge)
        self.parent_to_children.setdefault(parent, set()).add(child)

    def remove(self, scope: I) -> None:
        """Remove the element together with its edges to its children and to its parent."""
        for child in self.parent_to_children.pop(scope, set()):
            self.child_to_parent.pop(child, None)
        entry = self.child_to_parent.pop(scope, None)
        if entry is not None:
            siblings = self.parent_to_children.get(entry[0])
            if siblings is not None:
                siblings.discard(scope)

    def get_parent_of(self, index: I) -> I | None:
        entry = self.child_to_parent.get(index)
        return None if entry is None else entry[0]

    def get_parent_edge_of(self, index: I) -> tuple[I, T] | None:
        return self.child_to_parent.get(index)

    def get_children_of(self, index: I) -> set[I]:
        return set(self.parent_to_children.get(index, ()))

    def get_children_edges_of(self, index: I) -> list[tuple[I, T]]:
        """The children of the given element with the edges leading to them."""
        result = []
        for child in self.parent_to_children.get(index, ()):
            entry = self.child_to_parent.get(child)
            if entry is None:
                raise StateError("OneToNElementsMap got into inconsistent state")
            result.append((child, entry[1]))
        return result

    def validate(self) -> None:
        """Raise StateError if the two directions of the map disagree."""
        for parent, children in self.parent_to_children.items():
            for child in children:
                entry = self.child_to_parent.get(child)
                if entry is None:
                    raise StateError(
                        f"parent_to_child stored mapping from {parent!r} to {child!r}, "
                        "which was not found in child_to_parent"
                    )
                if entry[0] != parent:
                    raise StateError(
                        f"parent_to_child stored mapping from {parent!r} to {child!r}, "
                        f"but child_to_parent contained mapping to {entry[0]!r} instead"
                    )