"""Graphs of variable scopes with inheritance, provided attributes and change listeners."""

__version__ = "0.6.0"
__all__ = ["one_to_n_elements_map", "scope", "scope_graph", "scope_graph_internal", "util"]