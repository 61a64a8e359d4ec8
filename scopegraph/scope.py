"""Scopes, listeners and the expressions evaluated within them."""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

_VAR_REFERENCE = re.compile(r"\$\{([^\s{}]+)\}")


class StateError(Exception):
    """Raised when the scope state is inconsistent or a variable cannot be resolved."""


@dataclass(frozen=True)
class Expression:
    """A string template whose `${name}` parts are replaced by variable values."""

    source: str

    def collect_var_refs(self) -> list[str]:
        """Names of all referenced variables, each once, in order of appearance."""
        return list(dict.fromkeys(_VAR_REFERENCE.findall(self.source)))

    def references_var(self, var_name: str) -> bool:
        """Whether the expression references the given variable."""
        return var_name in self.collect_var_refs()

    def eval(self, values: Mapping[str, Any]) -> str:
        """Evaluate the expression with the given variable values."""

        def substitute(match: re.Match[str]) -> str:
            name = match.group(1)
            try:
                return str(values[name])
            except KeyError:
                raise StateError(f"Unknown variable {name}") from None

        return _VAR_REFERENCE.sub(substitute, self.source)


@dataclass(eq=False)
class Listener:
    """A callback run with the values of its needed variables whenever one of them changes."""

    needed_variables: list[str]
    f: Callable[[Any, dict[str, Any]], None]

    def __repr__(self) -> str:
        return f"Listener(needed_variables={self.needed_variables!r}, f=function)"


@dataclass
class Scope:
    """A named set of variables, possibly created by an ancestor scope.

    Listeners may reference variables not defined here; those are found in the
    scopes this one inherits from. `node_index` is set once the scope is placed
    in a graph.
    """

    name: str
    ancestor: int | None
    data: dict[str, Any]
    listeners: dict[str, list[Listener]] = field(default_factory=dict)
    node_index: int = 0