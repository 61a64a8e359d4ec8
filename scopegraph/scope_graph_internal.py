"""The raw graph of scopes behind the public scope graph."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from scopegraph.one_to_n_elements_map import OneToNElementsMap
from scopegraph.scope import Expression, Scope, StateError

logger = logging.getLogger(__name__)


@dataclass
class ProvidedAttr:
    """An ancestor provides attribute `attr_name`, computed by `expression`, to a descendant."""

    attr_name: str
    expression: Expression


@dataclass
class Inherits:
    """A subscope inherits from a superscope and references these variables from it.

    A referenced variable may live in the superscope itself or in scopes it inherits from.
    """

    references: set[str] = field(default_factory=set)


def _index_label(index: int) -> str:
    return f"ScopeIndex({index})"


def _set_label(values: Iterable[str]) -> str:
    return "{" + ", ".join(repr(value) for value in sorted(values)) + "}"


class ScopeGraphInternal:
    """Scopes joined by hierarchy (ancestor to descendant) and inheritance (superscope to subscope) edges.

    Unlike the public graph, this may be inconsistent while changes are being made.
    """

    def __init__(self) -> None:
        self.last_index = 0
        self.scopes: dict[int, Scope] = {}
        self.hierarchy_relations: OneToNElementsMap[int, list[ProvidedAttr]] = OneToNElementsMap()
        self.inheritance_relations: OneToNElementsMap[int, Inherits] = OneToNElementsMap()

    def __repr__(self) -> str:
        return (
            f"ScopeGraphInternal(last_index={self.last_index!r}, scopes={self.scopes!r}, "
            f"hierarchy_relations={self.hierarchy_relations!r}, "
            f"inheritance_relations={self.inheritance_relations!r})"
        )

    def clear(self) -> None:
        """Drop all scopes and edges; indices handed out later stay unique."""
        self.scopes.clear()
        self.inheritance_relations.clear()
        self.hierarchy_relations.clear()

    def add_scope(self, scope: Scope) -> int:
        """Store the scope under a fresh index, linking it to its ancestor if it has one."""
        index = self.last_index
        if scope.ancestor is not None:
            try:
                self.hierarchy_relations.insert(index, scope.ancestor, [])
            except StateError:
                pass
        self.scopes[index] = scope
        self.last_index += 1
        return index

    def descendant_edges_of(self, index: int) -> list[tuple[int, list[ProvidedAttr]]]:
        return self.hierarchy_relations.get_children_edges_of(index)

    def subscope_edges_of(self, index: int) -> list[tuple[int, Inherits]]:
        return self.inheritance_relations.get_children_edges_of(index)

    def superscope_edge_of(self, index: int) -> tuple[int, Inherits] | None:
        return self.inheritance_relations.get_parent_edge_of(index)

    def remove_scope(self, index: int) -> None:
        """Remove the scope and, recursively, all of its descendants."""
        self.scopes.pop(index, None)
        for descendant in list(self.hierarchy_relations.parent_to_children.get(index, ())):
            self.remove_scope(descendant)
        self.hierarchy_relations.remove(index)
        self.inheritance_relations.remove(index)

    def add_inheritance_relation(self, a: int, b: int) -> None:
        """Make scope `a` a subscope of `b`; raises StateError if `a` already has a superscope."""
        self.inheritance_relations.insert(a, b, Inherits())

    def register_scope_provides_attr(self, a: int, b: int, edge: ProvidedAttr) -> None:
        """Register that scope `a` provides an attribute to its descendant `b`."""
        entry = self.hierarchy_relations.get_parent_edge_of(b)
        if entry is None:
            logger.error(
                "Tried to register a provided attribute edge between two scopes "
                "that are not connected in the hierarchy map"
            )
            return
        superscope, edges = entry
        if superscope != a:
            raise StateError(
                "Hierarchy map had a different superscope for a given scope than what was given here"
            )
        edges.append(edge)

    def scope_at(self, index: int) -> Scope | None:
        return self.scopes.get(index)

    def subscopes_referencing(self, index: int, var_name: str) -> list[int]:
        """Subscopes whose inheritance edge lists the variable directly."""
        return [
            scope
            for scope, edge in self.inheritance_relations.get_children_edges_of(index)
            if var_name in edge.references
        ]

    def superscope_of(self, index: int) -> int | None:
        return self.inheritance_relations.get_parent_of(index)

    def scopes_getting_attr_using(self, index: int, var_name: str) -> list[tuple[int, ProvidedAttr]]:
        """Descendants that the scope provides an attribute to whose expression uses the variable."""
        return [
            (descendant, edge)
            for descendant, edges in self.hierarchy_relations.get_children_edges_of(index)
            for edge in edges
            if edge.expression.references_var(var_name)
        ]

    def add_reference_to_inherits_edge(self, subscope: int, var_name: str) -> None:
        """Record that the subscope references a variable from its direct superscope."""
        entry = self.inheritance_relations.get_parent_edge_of(subscope)
        if entry is None:
            raise StateError(f"Given scope {_index_label(subscope)} does not have any superscope")
        entry[1].references.add(var_name)

    def validate(self) -> None:
        """Raise StateError if the edges refer to missing scopes or inaccessible variables."""
        for child, (parent, _edges) in self.hierarchy_relations.child_to_parent.items():
            if child not in self.scopes:
                raise StateError("hierarchy_relations lists key that is not in graph")
            if parent not in self.scopes:
                raise StateError("hierarchy_relations values lists scope that is not in graph")

        for child, (parent_index, edge) in self.inheritance_relations.child_to_parent.items():
            if child not in self.scopes:
                raise StateError("inheritance_relations lists key that is not in graph")
            parent_scope = self.scopes.get(parent_index)
            if parent_scope is None:
                raise StateError("inheritance_relations values lists scope that is not in graph")
            parent_entry = self.inheritance_relations.child_to_parent.get(parent_index)
            for var in edge.references:
                has_access = var in parent_scope.data or (
                    parent_entry is not None and var in parent_entry[1].references
                )
                if not has_access:
                    raise StateError("scope inherited variable that parent scope doesn't have access to")

        self.hierarchy_relations.validate()
        self.inheritance_relations.validate()

    def visualize(self) -> str:
        """Render the graph in graphviz dot syntax."""
        lines = ["digraph {"]
        for index, scope in self.scopes.items():
            data = [(name, value) for name, value in scope.data.items() if not name.startswith("EWW")]
            listeners = [
                f"on {name}: {[repr(listener.needed_variables) for listener in entries]!r}"
                for name, entries in scope.listeners.items()
            ]
            details = f"data: {data!r}, listeners: {listeners!r}".replace('"', "'")
            lines.append(f'  "{_index_label(index)}"[label="{scope.name}\\n{details}"]')
            if scope.ancestor is not None:
                lines.append(
                    f'  "{_index_label(scope.ancestor)}" -> "{_index_label(index)}"[label="ancestor"]'
                )

        for child, (parent, edges) in self.hierarchy_relations.child_to_parent.items():
            for edge in edges:
                label = f":{edge.attr_name} `{edge.expression!r}`".replace('"', "'")
                lines.append(
                    f'  "{_index_label(parent)}" -> "{_index_label(child)}" '
                    f'[color = "red", label = "{label}"]'
                )

        for child, (parent, edge) in self.inheritance_relations.child_to_parent.items():
            label = f"inherits({_set_label(edge.references)})".replace('"', "'")
            lines.append(
                f'  "{_index_label(child)}" -> "{_index_label(parent)}" '
                f'[color = "blue", label = "{label}"]'
            )

        return "\n".join(lines) + "\n}"