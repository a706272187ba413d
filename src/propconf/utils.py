"""Utility functions for PropConf."""

import builtins
import functools
import importlib
import re
from typing import Any, Callable, List, Type

import yaml

OBJECT_TYPE = Callable | Type[Any]


class _ConfigValueLoader(yaml.SafeLoader):
    """Safe YAML loader that also reads 1e-4 style floats."""


# Custom resolver to handle scientific notation correctly
_ConfigValueLoader.add_implicit_resolver(
    tag="tag:yaml.org,2002:float",
    regexp=re.compile(r"-? [1-9] ( \. [0-9]* [1-9] )? ( e [-+] [1-9] [0-9]* )? $", re.X),
    first=list("-+0123456789."),
)


def load_yaml(stream: Any) -> Any:
    """Load YAML content from a stream.

    Args:
        stream: Stream to read YAML from  # (file-like object or string)
    Returns:
        Parsed YAML content  # (scalar, list or nested dict)
    """
    return yaml.load(stream, Loader=_ConfigValueLoader)


def import_object(path: str) -> OBJECT_TYPE:
    """Look up a class or other object by its qualified name.

    Args:
        path: Qualified name like 'decimal.Decimal' or 'collections.OrderedDict'  # (bare names are builtins)

    Returns:
        Object found under that name

    Raises:
        ImportError: If no module and attribute chain matches the name
    """
    if "." not in path:
        if not hasattr(builtins, path):
            raise ImportError(f"No builtin named {path!r}")
        return getattr(builtins, path)

    # Nested classes need the module boundary to move left
    parts = path.split(".")
    for split_at in range(len(parts) - 1, 0, -1):
        try:
            obj = importlib.import_module(".".join(parts[:split_at]))
        except ImportError:
            continue
        try:
            return functools.reduce(getattr, parts[split_at:], obj)
        except AttributeError:
            continue
    raise ImportError(f"Cannot import {path}")


def check_separator(separator: str) -> str:
    """Validate an element separator, returning it unchanged."""
    if not isinstance(separator, str) or len(separator) != 1:
        raise ValueError(f"Separator must be a single character, got {separator!r}")
    if separator == "\\":
        raise ValueError("Backslash is the escape character and can not be used as separator")
    return separator


def split_values(value: str, separator: str = ",") -> List[str]:
    """Split a multi-valued property into its elements.

    A separator preceded by a backslash is kept as a literal character and the
    backslash is dropped. Empty elements are skipped.

    Args:
        value: Raw property value  # (e.g., "a,b\\,c")
        separator: Single character separating the elements

    Returns:
        Elements in declaration order  # (e.g., ["a", "b,c"])

    Raises:
        ValueError: If the separator is not exactly one character
    """
    check_separator(separator)

    items = []  # List[str] (completed elements)
    current = []  # List[str] (characters of the element being read)
    escaped = False

    for char in value:
        if escaped:
            # Only the separator is an escapable character
            if char != separator:
                current.append("\\")
            current.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == separator:
            if current:
                items.append("".join(current))
            current = []
        else:
            current.append(char)

    # Trailing backslash is kept as-is
    if escaped:
        current.append("\\")
    if current:
        items.append("".join(current))
    return items
