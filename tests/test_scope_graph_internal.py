import pytest

from scopegraph.scope import Expression, Scope, StateError
from scopegraph.scope_graph_internal import Inherits, ProvidedAttr, ScopeGraphInternal


def make_graph():
    graph = ScopeGraphInternal()
    root = graph.add_scope(Scope(name="global", ancestor=None, data={"the_var": "hi"}))
    return graph, root


def test_add_scope_hands_out_increasing_indices_and_links_ancestor():
    graph, root = make_graph()
    child = graph.add_scope(Scope(name="child", ancestor=root, data={}))
    grandchild = graph.add_scope(Scope(name="grandchild", ancestor=child, data={}))
    assert [root, child, grandchild] == [0, 1, 2]
    assert graph.hierarchy_relations.get_parent_of(child) == root
    assert graph.hierarchy_relations.get_parent_of(grandchild) == child
    assert graph.hierarchy_relations.get_parent_of(root) is None
    assert graph.scope_at(child).name == "child"
    assert graph.descendant_edges_of(root) == [(child, [])]


def test_clear_keeps_indices_unique():
    graph, root = make_graph()
    graph.clear()
    assert graph.scope_at(root) is None
    new_index = graph.add_scope(Scope(name="global", ancestor=None, data={}))
    assert new_index > root
    graph.validate()


def test_inheritance_relation_and_references():
    graph, root = make_graph()
    child = graph.add_scope(Scope(name="child", ancestor=root, data={}))
    graph.add_inheritance_relation(child, root)
    assert graph.superscope_of(child) == root
    graph.add_reference_to_inherits_edge(child, "the_var")
    assert graph.superscope_edge_of(child) == (root, Inherits({"the_var"}))
    assert graph.subscope_edges_of(root) == [(child, Inherits({"the_var"}))]
    assert graph.subscopes_referencing(root, "the_var") == [child]
    assert graph.subscopes_referencing(root, "other") == []
    graph.validate()


def test_second_inheritance_relation_raises():
    graph, root = make_graph()
    child = graph.add_scope(Scope(name="child", ancestor=root, data={}))
    graph.add_inheritance_relation(child, root)
    with pytest.raises(StateError):
        graph.add_inheritance_relation(child, root)


def test_reference_without_superscope_raises():
    graph, root = make_graph()
    with pytest.raises(StateError):
        graph.add_reference_to_inherits_edge(root, "the_var")


def test_validate_rejects_inaccessible_inherited_variable():
    graph, root = make_graph()
    child = graph.add_scope(Scope(name="child", ancestor=root, data={}))
    graph.add_inheritance_relation(child, root)
    graph.add_reference_to_inherits_edge(child, "missing")
    with pytest.raises(StateError):
        graph.validate()


def test_validate_accepts_transitively_inherited_variable():
    graph, root = make_graph()
    a = graph.add_scope(Scope(name="a", ancestor=root, data={}))
    b = graph.add_scope(Scope(name="b", ancestor=a, data={}))
    graph.add_inheritance_relation(a, root)
    graph.add_inheritance_relation(b, a)
    graph.add_reference_to_inherits_edge(b, "the_var")
    with pytest.raises(StateError):
        graph.validate()
    graph.add_reference_to_inherits_edge(a, "the_var")
    graph.validate()
    assert graph.subscopes_referencing(a, "the_var") == [b]


def test_provided_attributes():
    graph, root = make_graph()
    child = graph.add_scope(Scope(name="child", ancestor=root, data={"arg": "hi"}))
    attr = ProvidedAttr(attr_name="arg", expression=Expression("${the_var}!"))
    graph.register_scope_provides_attr(root, child, attr)
    assert graph.descendant_edges_of(root) == [(child, [attr])]
    assert graph.scopes_getting_attr_using(root, "the_var") == [(child, attr)]
    assert graph.scopes_getting_attr_using(root, "unrelated") == []


def test_provided_attribute_with_wrong_ancestor_raises():
    graph, root = make_graph()
    a = graph.add_scope(Scope(name="a", ancestor=root, data={}))
    b = graph.add_scope(Scope(name="b", ancestor=a, data={}))
    attr = ProvidedAttr(attr_name="x", expression=Expression("${the_var}"))
    with pytest.raises(StateError):
        graph.register_scope_provides_attr(root, b, attr)


def test_provided_attribute_between_unconnected_scopes_is_ignored():
    graph, root = make_graph()
    other = graph.add_scope(Scope(name="other", ancestor=None, data={}))
    attr = ProvidedAttr(attr_name="x", expression=Expression("${the_var}"))
    graph.register_scope_provides_attr(root, other, attr)
    assert graph.descendant_edges_of(root) == []
    assert graph.scopes_getting_attr_using(root, "the_var") == []


def test_remove_scope_removes_descendants_recursively():
    graph, root = make_graph()
    a = graph.add_scope(Scope(name="a", ancestor=root, data={}))
    b = graph.add_scope(Scope(name="b", ancestor=a, data={}))
    c = graph.add_scope(Scope(name="c", ancestor=b, data={}))
    sibling = graph.add_scope(Scope(name="sibling", ancestor=root, data={}))
    graph.add_inheritance_relation(c, root)
    graph.remove_scope(a)
    assert graph.scope_at(a) is None
    assert graph.scope_at(b) is None
    assert graph.scope_at(c) is None
    assert graph.scope_at(sibling).name == "sibling"
    assert graph.descendant_edges_of(root) == [(sibling, [])]
    assert graph.subscope_edges_of(root) == []
    graph.validate()


def test_visualize_lists_scopes_and_edges():
    graph, root = make_graph()
    child = graph.add_scope(Scope(name="child", ancestor=root, data={}))
    graph.add_inheritance_relation(child, root)
    graph.add_reference_to_inherits_edge(child, "the_var")
    output = graph.visualize()
    assert output.startswith("digraph {\n")
    assert output.endswith("}")
    assert '"ScopeIndex(0)" -> "ScopeIndex(1)"[label="ancestor"]' in output
    assert '"ScopeIndex(1)" -> "ScopeIndex(0)" [color = "blue"' in output
    assert "inherits({'the_var'})" in output


def test_visualize_hides_eww_variables():
    graph = ScopeGraphInternal()
    graph.add_scope(Scope(name="global", ancestor=None, data={"EWW_TIME": "1", "shown": "yes"}))
    output = graph.visualize()
    assert "EWW_TIME" not in output
    assert "shown" in output