"""Variable interpolation engine for PropConf property values."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, List, Optional, Tuple, Union

from .exceptions import ExpansionError

TOKEN_START = "${"
TOKEN_END = "}"
DEFAULT_SEPARATOR = ":"

Resolver = Callable[[str], Optional[str]]


@dataclass(frozen=True)
class Reference:
    """A ${name} or ${name:default} token."""

    name: str
    default: Optional["Expression"] = None


@dataclass(frozen=True)
class Expression:
    """Compiled template made of literal text and references."""

    template: str
    parts: Tuple[Union[str, Reference], ...]

    @property
    def is_literal(self) -> bool:
        return all(isinstance(part, str) for part in self.parts)


def _find_token_end(text: str, start: int) -> int:
    """Find the brace closing a token whose body starts at `start`.

    Args:
        text: Template text
        start: Index right after the opening ${

    Returns:
        Index of the closing brace, or -1 if the token never closes
    """
    depth = 1
    i = start
    while i < len(text):
        if text.startswith(TOKEN_START, i):
            depth += 1
            i += len(TOKEN_START)
            continue
        if text[i] == TOKEN_END:
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


@lru_cache(maxsize=None)
def compile_expression(template: str) -> Expression:
    """Compile a raw property value into an expression.

    Malformed tokens (unclosed, or with an empty name) are kept as literal
    text. Results are cached per distinct template for the process lifetime.

    Args:
        template: Raw property value  # (e.g., "http://${host:localhost}:${port}")

    Returns:
        Compiled expression
    """
    parts: List[Union[str, Reference]] = []
    literal: List[str] = []  # (pending literal fragments)
    i = 0

    while i < len(template):
        start = template.find(TOKEN_START, i)
        if start == -1:
            literal.append(template[i:])
            break

        literal.append(template[i:start])
        body_start = start + len(TOKEN_START)
        end = _find_token_end(template, body_start)

        # Unclosed token, keep "${" as text and continue scanning after it
        if end == -1:
            literal.append(TOKEN_START)
            i = body_start
            continue

        body = template[body_start:end]
        name, separator, default = body.partition(DEFAULT_SEPARATOR)
        if not name or TOKEN_START in name:
            literal.append(template[start : end + 1])
        else:
            pending = "".join(literal)
            if pending:
                parts.append(pending)
            literal = []
            parts.append(Reference(name, compile_expression(default) if separator else None))
        i = end + 1

    if any(literal):
        parts.append("".join(literal))
    return Expression(template, tuple(parts))


class InterpolationEngine:
    """Engine for ${...} variable expansion."""

    def __init__(self, resolver: Resolver):
        """Initialize interpolation engine.

        Args:
            resolver: Plain lookup of a property's raw value  # (name -> str, or None if undefined)
        """
        self.resolver = resolver

    def expand(self, value: str) -> str:
        """Expand all references in a raw value.

        Substituted values are inserted verbatim and never scanned again.

        Args:
            value: Raw property value

        Returns:
            Expanded value

        Raises:
            ExpansionError: If a reference without default is undefined
        """
        # No interpolations found, return as-is
        if TOKEN_START not in value:
            return value

        expression = compile_expression(value)
        if expression.is_literal:
            return value
        return self._resolve_expression(expression, value)

    def _resolve_expression(self, expression: Expression, template: str) -> str:
        """Evaluate a compiled expression.

        Args:
            expression: Expression or nested default expression
            template: Outermost raw value  # (for error reporting)

        Returns:
            Evaluated text
        """
        pieces = []  # List[str] (evaluated fragments)
        for part in expression.parts:
            if isinstance(part, Reference):
                pieces.append(self._resolve_reference(part, template))
            else:
                pieces.append(part)
        return "".join(pieces)

    def _resolve_reference(self, reference: Reference, template: str) -> str:
        """Resolve a single reference, falling back to its default.

        Defaults are only evaluated when the reference is undefined.
        """
        value = self.resolver(reference.name)
        if value is not None:
            return value
        if reference.default is None:
            raise ExpansionError(reference.name, template)
        return self._resolve_expression(reference.default, template)


def expand(value: str, resolver: Resolver) -> str:
    """Expand ${...} references of a raw value using the given resolver."""
    return InterpolationEngine(resolver).expand(value)
