# scopegraph

A small library for keeping named values in a graph of scopes. It tracks how
scopes inherit variables from one another, passes attributes from a scope to
the scopes created within it, and calls listeners whenever a value they
depend on changes.

## Concepts

- **Global scope**: the root of the graph. It holds the global variables.
- **Subscope / superscope**: a subscope *inherits* from its superscope and can
  read every variable that the superscope can reach. Inheritance is
  transitive, and every inheritance step records the variables referenced
  through it.
- **Descendant / ancestor**: a descendant scope is created *within* an
  ancestor scope. The ancestor can provide it attributes, which are
  expressions evaluated in the ancestor's scope and re-evaluated when the
  variables they use change. Removing a scope removes all its descendants.
- **Listener** (`scopegraph.scope.Listener`): a callback `f(graph, values)`
  together with the names of the variables it needs. It runs once when it is
  registered, and again each time any of those variables changes. A listener
  that needs no variables runs once and is not stored.
- **Expression** (`scopegraph.scope.Expression`): a string template in which
  every `${name}` is replaced by the value of the variable `name`.
  `collect_var_refs()` lists the referenced names, `references_var(name)`
  checks for one, and `eval(values)` fills the template in.

## Usage

```python
from scopegraph.scope import Expression, Listener
from scopegraph.scope_graph import ScopeGraph

graph = ScopeGraph.from_global_vars({"greeting": "hi"})
root = graph.root_index

# A widget scope that inherits from the globals and is given an attribute
# computed from the global variable "greeting".
widget = graph.register_new_scope(
    "widget",
    root,
    root,
    {"label": Expression("${greeting}, world")},
)

seen = []
graph.register_listener(
    widget,
    Listener(["label"], lambda g, values: seen.append(values["label"])),
)

graph.update_global_value("greeting", "hello")
print(seen)  # ['hi, world', 'hello, world']
```

Other methods of `ScopeGraph`:

- `update_value(index, name, value)`: set a variable in the closest scope,
  following superscopes, that holds it, and propagate the change.
- `lookup_variable_in_scope(index, name)`: the value visible from a scope, or
  `None`; `lookup_variables_in_scope(index, names)` returns a dict and raises
  `StateError` if any name is unreachable.
- `currently_used_globals()` and `currently_unused_globals()`: the global
  variables something in the graph refers to, and the ones nothing uses.
- `visualize()`: a Graphviz `digraph` description of the whole graph.
- `validate()`: checks internal consistency and raises `StateError` when
  something is wrong.
- `remove_scope(index)`, or `handle_scope_graph_event(RemoveScope(index))`:
  remove a scope and its descendants.
- `clear(vars)`: drop all state and start over with a new global scope.

Errors raised inside listeners, and expression evaluation failures other
than missing variables, are logged through the `logging` module instead of
being propagated; a failed evaluation yields an empty string.

The lower-level pieces are `scopegraph.scope_graph_internal.ScopeGraphInternal`
(the raw graph of scopes and edges) and
`scopegraph.one_to_n_elements_map.OneToNElementsMap` (a one-parent,
many-children map whose edges carry data).

The `scopegraph.util` module holds small helpers: `unindent`, `trim_lines`,
`is_blank`, `replace_env_var_references` (expands `${NAME}` from the
environment, or to an empty string if unset), `list_difference` and `avg`.

## What it does not do

This is a state library only. It draws no widgets and runs no event loop:
the `event_sender` passed to `ScopeGraph.from_global_vars` is stored on the
graph but never used by it, and events must be passed to
`handle_scope_graph_event` by the caller. Expressions are plain `${name}`
string templates, not a full expression language.

## Running the tests

```
pip install -e ".[test]"
pytest
```