"""A graph of scopes in which variable changes propagate to listeners and descendants."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from scopegraph.scope import Expression, Listener, Scope, StateError
from scopegraph.scope_graph_internal import ProvidedAttr, ScopeGraphInternal

logger = logging.getLogger(__name__)

_LISTENER_ERROR = "Error while updating UI after state change"


@dataclass(frozen=True)
class RemoveScope:
    """Event asking the graph to remove a scope and its descendants."""

    scope_index: int


class ScopeGraph:
    """Scopes where each may inherit from one superscope and provide attributes to descendants.

    A subscope has access to the variables of its superscope, transitively; every
    inheritance step records the variables referenced through it. An ancestor scope
    provides attributes to the descendant scopes created within it.
    """

    def __init__(self, graph: ScopeGraphInternal, root_index: int, event_sender: Any = None) -> None:
        self.graph = graph
        self.root_index = root_index
        self.event_sender = event_sender

    def __repr__(self) -> str:
        return f"ScopeGraph(graph={self.graph!r}, root_index={self.root_index!r})"

    @classmethod
    def from_global_vars(cls, vars: Mapping[str, Any], event_sender: Any = None) -> ScopeGraph:
        """Create a graph whose global scope holds the given variables."""
        graph = ScopeGraphInternal()
        root_index = cls._add_global_scope(graph, vars)
        return cls(graph, root_index, event_sender)

    @staticmethod
    def _add_global_scope(graph: ScopeGraphInternal, vars: Mapping[str, Any]) -> int:
        root_index = graph.add_scope(Scope(name="global", ancestor=None, data=dict(vars)))
        graph.scopes[root_index].node_index = root_index
        return root_index

    def update_global_value(self, var_name: str, value: Any) -> None:
        self.update_value(self.root_index, var_name, value)

    def handle_scope_graph_event(self, evt: RemoveScope) -> None:
        if isinstance(evt, RemoveScope):
            self.remove_scope(evt.scope_index)
        else:
            raise TypeError(f"Unknown scope graph event {evt!r}")

    def clear(self, vars: Mapping[str, Any]) -> None:
        """Remove all state and start over with a new global scope holding `vars`."""
        self.graph.clear()
        self.root_index = self._add_global_scope(self.graph, vars)

    def remove_scope(self, scope_index: int) -> None:
        self.graph.remove_scope(scope_index)

    def validate(self) -> None:
        self.graph.validate()

    def visualize(self) -> str:
        return self.graph.visualize()

    def currently_used_globals(self) -> set[str]:
        return self.variables_used_in_self_or_subscopes_of(self.root_index)

    def currently_unused_globals(self) -> set[str]:
        return set(self.global_scope().data) - self.currently_used_globals()

    def scope_at(self, index: int) -> Scope | None:
        return self.graph.scope_at(index)

    def global_scope(self) -> Scope:
        scope = self.graph.scope_at(self.root_index)
        if scope is None:
            raise StateError("No root scope in graph")
        return scope

    def evaluate_simplexpr_in_scope(self, index: int, expr: Expression) -> Any:
        """Evaluate an expression in a scope.

        Raises StateError if a referenced variable is not available. Any other
        evaluation failure is logged and yields an empty string.
        """
        needed_vars = self.lookup_variables_in_scope(index, expr.collect_var_refs())
        try:
            return expr.eval(needed_vars)
        except Exception as err:  # evaluation failures are reported, not propagated
            logger.error("%s", err)
            return ""

    def register_new_scope(
        self,
        name: str,
        superscope: int | None,
        calling_scope: int,
        attributes: Mapping[str, Expression],
    ) -> int:
        """Add a scope created within `calling_scope`, inheriting from `superscope` if given."""
        # Evaluate everything first so a failure leaves the graph untouched.
        scope_variables = {
            attr_name: self.evaluate_simplexpr_in_scope(calling_scope, expression)
            for attr_name, expression in attributes.items()
        }

        new_scope_index = self.graph.add_scope(Scope(name=name, ancestor=calling_scope, data=scope_variables))
        if superscope is not None:
            self.graph.add_inheritance_relation(new_scope_index, superscope)
        self.graph.scopes[new_scope_index].node_index = new_scope_index

        for attr_name, expression in attributes.items():
            var_refs = expression.collect_var_refs()
            if var_refs:
                self.graph.register_scope_provides_attr(
                    calling_scope, new_scope_index, ProvidedAttr(attr_name, expression)
                )
                for used_variable in var_refs:
                    self.register_scope_referencing_variable(calling_scope, used_variable)

        self.validate()
        return new_scope_index

    def _call_listener(self, listener: Listener, values: dict[str, Any]) -> None:
        try:
            listener.f(self, values)
        except Exception as err:  # listener failures must not break propagation
            logger.error("%s: %s", _LISTENER_ERROR, err)

    def register_listener(self, scope_index: int, listener: Listener) -> None:
        """Register a listener for its needed variables and call it once right away.

        A listener without needed variables is only called once and not stored.
        """
        if not listener.needed_variables:
            self._call_listener(listener, {})
            return

        for required_var in listener.needed_variables:
            self.register_scope_referencing_variable(scope_index, required_var)
        scope = self.graph.scope_at(scope_index)
        if scope is None:
            raise StateError("Scope not in graph")
        for required_var in listener.needed_variables:
            scope.listeners.setdefault(required_var, []).append(listener)

        values = self.lookup_variables_in_scope(scope_index, listener.needed_variables)
        self._call_listener(listener, values)
        self.validate()

    def register_scope_referencing_variable(self, scope_index: int, var_name: str) -> None:
        """Record that a scope uses a variable, along every inheritance step up to its owner."""
        scope = self.graph.scope_at(scope_index)
        if scope is None:
            raise StateError("scope not in graph")
        if var_name in scope.data:
            return
        superscope = self.graph.superscope_of(scope_index)
        if superscope is None:
            raise StateError(f"Variable {var_name} not in scope")
        self.graph.add_reference_to_inherits_edge(scope_index, var_name)
        self.register_scope_referencing_variable(superscope, var_name)

    def update_value(self, original_scope_index: int, updated_var: str, new_value: Any) -> None:
        """Set the variable in the closest scope that holds it and propagate the change."""
        scope_index = self.find_scope_with_variable(original_scope_index, updated_var)
        if scope_index is None:
            raise StateError(f"Variable {updated_var} not scope")
        self.graph.scopes[scope_index].data[updated_var] = new_value
        self.notify_value_changed(scope_index, updated_var)
        self.graph.validate()

    def notify_value_changed(self, scope_index: int, updated_var: str) -> None:
        """Update dependent attributes, call listeners and notify subscopes recursively."""
        for referencing_scope, edge in list(self.graph.scopes_getting_attr_using(scope_index, updated_var)):
            try:
                value = self.evaluate_simplexpr_in_scope(scope_index, edge.expression)
                self.update_value(referencing_scope, edge.attr_name, value)
            except StateError as err:
                logger.error("%s", err)

        self._call_listeners_in_scope(scope_index, updated_var)

        for subscope in self.graph.subscopes_referencing(scope_index, updated_var):
            self.notify_value_changed(subscope, updated_var)

    def _call_listeners_in_scope(self, scope_index: int, updated_var: str) -> None:
        scope = self.graph.scope_at(scope_index)
        if scope is None:
            raise StateError("Scope not in graph")
        for listener in list(scope.listeners.get(updated_var, ())):
            values = self.lookup_variables_in_scope(scope_index, listener.needed_variables)
            self._call_listener(listener, values)

    def find_scope_with_variable(self, index: int, var_name: str) -> int | None:
        """The closest scope, following superscopes, that holds the variable."""
        current: int | None = index
        while current is not None:
            scope = self.graph.scope_at(current)
            if scope is None:
                return None
            if var_name in scope.data:
                return current
            current = self.graph.superscope_of(current)
        return None

    def lookup_variable_in_scope(self, index: int, var_name: str) -> Any:
        """The variable's value in the closest scope that holds it, or None."""
        scope_index = self.find_scope_with_variable(index, var_name)
        if scope_index is None:
            return None
        return self.graph.scopes[scope_index].data[var_name]

    def variables_used_in_self_or_subscopes_of(self, index: int) -> set[str]:
        """Variables used in the scope or its descendants; empty for unknown scopes."""
        scope = self.scope_at(index)
        if scope is None:
            return set()

        variables: set[str] = set(scope.listeners)
        descendant_edges = self.graph.descendant_edges_of(index)
        for _, provided_attrs in descendant_edges:
            for attr in provided_attrs:
                variables.update(attr.expression.collect_var_refs())
        for _, edge in self.graph.subscope_edges_of(index):
            variables.update(edge.references)

        superscope_edge = self.graph.superscope_edge_of(index)
        if superscope_edge is not None:
            variables.update(superscope_edge[1].references)

        for descendant, _ in descendant_edges:
            used_in_descendant = self.variables_used_in_self_or_subscopes_of(descendant)
            descendant_scope = self.scope_at(descendant)
            shadowed = set(descendant_scope.data) if descendant_scope is not None else set()
            variables.update(used_in_descendant - shadowed)

        return variables

    def lookup_variables_in_scope(self, scope_index: int, vars: Iterable[str]) -> dict[str, Any]:
        """Look up several variables; raises StateError if any is not reachable."""
        result = {}
        for name in vars:
            owner = self.find_scope_with_variable(scope_index, name)
            if owner is None:
                raise StateError(f"Variable {name} neither in scope nor any superscope")
            result[name] = self.graph.scopes[owner].data[name]
        return result