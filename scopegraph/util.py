"""Small string and collection helpers."""

from __future__ import annotations

import os
import re
from collections.abc import Iterable, Sequence
from typing import TypeVar

T = TypeVar("T")

_ENV_VAR_REFERENCE = re.compile(r"\$\{([^\s]*)\}")


def list_difference(a: Sequence[T], b: Sequence[T]) -> tuple[list[T], list[T]]:
    """Return (elements of a missing from b, elements of b missing from a)."""
    missing = [elem for elem in a if elem not in b]
    new = [elem for elem in b if elem not in a]
    return missing, new


def _lines(text: str) -> list[str]:
    """Split text into lines the way a line iterator does: no trailing empty line, no CR."""
    if not text:
        return []
    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


def is_blank(text: str) -> bool:
    """Check whether the text is empty after removing line breaks and surrounding whitespace."""
    return not text.replace("\n", "").strip()


def trim_lines(text: str) -> str:
    """Strip the whitespace around every line of the text."""
    return "\n".join(line.strip() for line in _lines(text))


def avg(values: Iterable[float]) -> float:
    """Arithmetic mean of the values; NaN when there are none."""
    total = 0.0
    count = 0
    for value in values:
        total += value
        count += 1
    if count == 0:
        return float("nan")
    return total / count


def replace_env_var_references(text: str) -> str:
    """Replace every `${NAME}` by the environment variable NAME, or by "" if it is unset."""
    return _ENV_VAR_REFERENCE.sub(lambda match: os.environ.get(match.group(1), ""), text)


def _leading_spaces(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def unindent(text: str) -> str:
    """Drop leading empty lines and remove the common indentation of the remaining ones."""
    lines = _lines(text)
    start = 0
    while start < len(lines) and lines[start] == "":
        start += 1
    lines = lines[start:]
    indent = min((_leading_spaces(line) for line in lines), default=0)
    return "\n".join(line[indent:] for line in lines)